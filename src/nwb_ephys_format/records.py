"""
Flat metadata records read from and written to an NWB container.

Each field maps to one child dataset of the same name. A field that is not
present in the container is None.
"""

from dataclasses import dataclass, fields
from typing import Any, Optional

from .codecs.names import ChannelIdentifier
from .codecs.provenance import ProvenanceRecord


class _FieldRecord:
    """Mixin with helpers shared by the dataset-backed records."""

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        """Build a record from a dict, ignoring unknown keys."""
        names = set(cls.field_names())
        return cls(**{k: v for k, v in data.items() if k in names})

    def to_dict(self, include_none: bool = False) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in self.field_names()
            if include_none or getattr(self, name) is not None
        }

    def present_fields(self) -> dict[str, Any]:
        """Fields that are set and would be written as datasets."""
        return self.to_dict(include_none=False)


@dataclass
class TopLevelInfo(_FieldRecord):
    """
    Datasets at the container root.

    ``session_start_time`` is seconds since the Unix epoch.
    """

    session_description: Optional[str] = None
    nwb_version: Optional[str] = None
    identifier: Optional[str] = None
    session_start_time: Optional[float] = None
    file_create_date: Optional[str] = None


@dataclass
class GeneralInfo(_FieldRecord):
    """Datasets under ``/general``."""

    session_id: Optional[str] = None
    experimenter: Optional[str] = None
    institution: Optional[str] = None
    lab: Optional[str] = None
    related_publications: Optional[str] = None
    notes: Optional[str] = None
    experiment_description: Optional[str] = None
    data_collection: Optional[str] = None
    stimulus: Optional[str] = None
    pharmacology: Optional[str] = None
    surgery: Optional[str] = None
    protocol: Optional[str] = None
    virus: Optional[str] = None
    slices: Optional[str] = None


@dataclass
class SubjectInfo(_FieldRecord):
    """Datasets under ``/general/subject``."""

    subject_id: Optional[str] = None
    description: Optional[str] = None
    species: Optional[str] = None
    genotype: Optional[str] = None
    sex: Optional[str] = None
    age: Optional[str] = None
    weight: Optional[str] = None


@dataclass
class ChannelInfo:
    """
    Metadata of one channel group, as read back from the container.

    ``identifier`` is None when the group name does not follow the channel
    naming convention; ``provenance`` is None when the ``source`` attribute
    could not be decoded.
    """

    name: str
    path: str
    identifier: Optional[ChannelIdentifier] = None
    provenance: Optional[ProvenanceRecord] = None
    unit: Optional[str] = None
    conversion: Optional[float] = None
    starting_time: Optional[float] = None
    rate: Optional[float] = None
    num_samples: Optional[int] = None
    has_data: bool = False

    @property
    def is_consistent(self) -> bool:
        """Whether name and provenance agree on channel type and number."""
        if self.identifier is None or self.provenance is None:
            return False
        return (
            self.identifier.channel_type == self.provenance.channel_type
            and self.identifier.channel_number == self.provenance.channel_number
        )


@dataclass
class SessionMetadata:
    """Everything needed to initialize a container."""

    top_level: TopLevelInfo
    general: GeneralInfo
    subject: SubjectInfo
