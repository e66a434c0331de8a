"""
Constants and enums for NWB electrophysiology containers.

Centralizes the fixed group layout, naming prefixes and lookup tables so
they are built once and never mutated.
"""

from enum import Enum, IntEnum
from types import MappingProxyType


class ChannelType(str, Enum):
    """Channel types encoded in channel names and provenance records."""

    ADC = "ADC"
    DAC = "DAC"
    TTL = "TTL"
    OTHER = "OTHER"


class Severity(IntEnum):
    """Validation issue severity levels."""

    OK = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    FATAL = 4


# Channel name type codes; anything else decodes as OTHER
CHANNEL_TYPE_CODES = MappingProxyType(
    {
        "AD": ChannelType.ADC,
        "DA": ChannelType.DAC,
        "TTL": ChannelType.TTL,
    }
)

CHANNEL_TYPE_NAME_CODES = MappingProxyType(
    {
        ChannelType.ADC: "AD",
        ChannelType.DAC: "DA",
        ChannelType.TTL: "TTL",
        ChannelType.OTHER: "OT",
    }
)

# Group containers
ROOT_PATH = "/"
ACQUISITION_PATH = "/acquisition/timeseries"
STIMULUS_PRESENTATION_PATH = "/stimulus/presentation"
STIMULUS_TEMPLATE_PATH = "/stimulus/template"
GENERAL_PATH = "/general"
DEVICES_PATH = "/general/devices"
INTRACELLULAR_EPHYS_PATH = "/general/intracellular_ephys"
LABNOTEBOOK_PATH = "/general/labnotebook"
STIMSETS_PATH = "/general/stimsets"
SUBJECT_PATH = "/general/subject"

SKELETON_GROUPS = (
    ACQUISITION_PATH,
    "/analysis",
    "/epochs",
    "/processing",
    STIMULUS_PRESENTATION_PATH,
    STIMULUS_TEMPLATE_PATH,
    DEVICES_PATH,
    INTRACELLULAR_EPHYS_PATH,
    LABNOTEBOOK_PATH,
    STIMSETS_PATH,
    SUBJECT_PATH,
)

DEVICE_PREFIX = "device_"
ELECTRODE_PREFIX = "electrode_"

# Attribute and dataset names used on channel groups
SOURCE_ATTRIBUTE = "source"
VERSION_ATTRIBUTE = "nwb_version"
DATA_DATASET = "data"

# Default values for files written by this package
NWB_VERSION = "NWB-1.0.5"
SUPPORTED_MAJOR_VERSIONS = frozenset({1})
DEFAULT_TIMESTAMP_DIGITS = 3
DEFAULT_UNIT = "V"
DEFAULT_RESOLUTION = float("nan")

# Environment variable pointing at a session metadata JSON schema
SCHEMA_PATH_ENV = "NWB_EPHYS_SCHEMA_PATH"
