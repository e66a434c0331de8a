"""
Pure codecs between NWB wire formats and immutable Python values.

Each codec is a set of stateless functions; none of them touches the
container.
"""

from .names import ChannelIdentifier, decode_channel_name, encode_channel_name
from .provenance import (
    ProvenanceRecord,
    decode_provenance,
    encode_provenance,
    normalize_source_entries,
)
from .timestamps import format_datetime, format_timestamp, parse_timestamp
from .units import Unit, format_unit, parse_unit, prefix_multiplier

__all__ = [
    # Names
    "ChannelIdentifier",
    "decode_channel_name",
    "encode_channel_name",
    # Provenance
    "ProvenanceRecord",
    "decode_provenance",
    "encode_provenance",
    "normalize_source_entries",
    # Timestamps
    "format_datetime",
    "format_timestamp",
    "parse_timestamp",
    # Units
    "Unit",
    "format_unit",
    "parse_unit",
    "prefix_multiplier",
]
