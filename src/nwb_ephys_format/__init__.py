"""
NWB Electrophysiology Format.

Map electrophysiology recording sessions to and from NWB v1 HDF5 containers.

This package provides codecs for the channel naming convention, the
``source`` provenance attribute, timestamps and physical units, a schema
walker and writer for the fixed NWB record sets, and an integrity validator.

CLI usage::

    nwb-ephys-format init session.nwb --metadata session.json
    nwb-ephys-format validate session.nwb

Programmatic usage::

    from nwb_ephys_format import H5Store, IntegrityValidator

    with H5Store("session.nwb") as store:
        result = IntegrityValidator(store).validate()
        print("\\n".join(result.summary()))
"""

__version__ = "0.1.0"

from .store import H5Store, HierarchicalStore
from .validator import IntegrityValidator, ValidationResult
from .walker import SchemaWalker
from .writer import NwbWriter, create_container

__all__ = [
    "H5Store",
    "HierarchicalStore",
    "IntegrityValidator",
    "NwbWriter",
    "SchemaWalker",
    "ValidationResult",
    "create_container",
    "__version__",
]
