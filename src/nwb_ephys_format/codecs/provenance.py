"""
Provenance codec for the ``source`` attribute of channel groups.

Two layouts exist in the wild:

- one string of ``;``-separated ``Key=Value`` entries (current writers)
- several strings, one ``Key=Value`` entry each (legacy writers)

Both are first normalized to a flat entry list and then folded into a
:class:`ProvenanceRecord`.
"""

import logging
import math
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Optional, Sequence

from ..constants import CHANNEL_TYPE_CODES, CHANNEL_TYPE_NAME_CODES, ChannelType
from ..errors import MissingAttributeError

logger = logging.getLogger(__name__)

ENTRY_SEPARATOR = ";"
KEY_VALUE_SEPARATOR = "="

RECOGNIZED_KEYS = frozenset({"Device", "Sweep", "ElectrodeNumber", "AD", "DA", "TTL", "TTLBit"})

# Provenance keys are exactly the name type codes, except for OTHER
_TYPE_KEYS = MappingProxyType(dict(CHANNEL_TYPE_CODES))


@dataclass(frozen=True)
class ProvenanceRecord:
    """Provenance of a single channel as stored in its ``source`` attribute."""

    device: Optional[str] = None
    sweep: Optional[int] = None
    electrode_number: Optional[int] = None
    channel_type: Optional[ChannelType] = None
    channel_number: Optional[int] = None
    ttl_bit: Optional[int] = None


def _parse_int(value: str) -> Optional[int]:
    """Parse an integer entry value; NaN and garbage become None."""
    value = value.strip()
    try:
        return int(value)
    except ValueError:
        pass

    try:
        number = float(value)
    except ValueError:
        logger.debug(f"Ignoring non-numeric provenance value {value!r}")
        return None

    if math.isfinite(number) and number.is_integer():
        return int(number)
    return None


def normalize_source_entries(raw: Sequence[str]) -> list[tuple[str, str]]:
    """
    Flatten raw ``source`` strings into ordered ``(key, value)`` pairs.

    A single string is split on ``;``; multiple strings are one entry each.
    Empty entries and entries without ``=`` are dropped.
    """
    if len(raw) == 1:
        entries = raw[0].split(ENTRY_SEPARATOR)
    else:
        entries = list(raw)

    pairs = []
    for entry in entries:
        entry = entry.strip()
        if not entry:
            continue
        key, sep, value = entry.partition(KEY_VALUE_SEPARATOR)
        if not sep:
            logger.debug(f"Skipping provenance entry without '=': {entry!r}")
            continue
        pairs.append((key.strip(), value.strip()))
    return pairs


def _apply_entry(record: ProvenanceRecord, key: str, value: str) -> ProvenanceRecord:
    if key not in RECOGNIZED_KEYS:
        logger.debug(f"Ignoring unrecognized provenance key {key!r}")
        return record

    if key == "Device":
        return replace(record, device=value)
    if key == "Sweep":
        return replace(record, sweep=_parse_int(value))
    if key == "ElectrodeNumber":
        return replace(record, electrode_number=_parse_int(value))
    if key == "TTLBit":
        return replace(record, ttl_bit=_parse_int(value))

    return replace(record, channel_type=_TYPE_KEYS[key], channel_number=_parse_int(value))


def decode_provenance(raw: Optional[Sequence[str]]) -> ProvenanceRecord:
    """
    Decode the contents of a ``source`` attribute.

    Args:
        raw: The attribute strings, or None if the attribute is missing

    Returns:
        The folded provenance record

    Raises:
        MissingAttributeError: If the attribute is absent, empty or not text
    """
    if raw is None or isinstance(raw, (str, bytes)) or len(raw) == 0:
        raise MissingAttributeError("source attribute is missing or empty")
    if not all(isinstance(item, str) for item in raw):
        raise MissingAttributeError("source attribute is not stored as text")

    record = ProvenanceRecord()
    for key, value in normalize_source_entries(raw):
        record = _apply_entry(record, key, value)
    return record


def encode_provenance(record: ProvenanceRecord) -> str:
    """
    Encode a provenance record as the canonical single ``;``-joined string.

    Absent fields are omitted.

    Raises:
        ValueError: If the channel type cannot be expressed as a key, or the
                    device name cannot be decoded back unchanged
    """
    entries = []

    if record.device is not None:
        if ENTRY_SEPARATOR in record.device:
            raise ValueError(f"Device name {record.device!r} contains {ENTRY_SEPARATOR!r}")
        if record.device != record.device.strip():
            raise ValueError(f"Device name {record.device!r} has surrounding whitespace")
        entries.append(f"Device={record.device}")
    if record.sweep is not None:
        entries.append(f"Sweep={record.sweep}")
    if record.electrode_number is not None:
        entries.append(f"ElectrodeNumber={record.electrode_number}")

    if record.channel_type is not None or record.channel_number is not None:
        if record.channel_type is None or record.channel_number is None:
            raise ValueError("channel_type and channel_number must be set together")
        if record.channel_type == ChannelType.OTHER:
            raise ValueError("Channel type OTHER has no provenance key")
        entries.append(f"{CHANNEL_TYPE_NAME_CODES[record.channel_type]}={record.channel_number}")

    if record.ttl_bit is not None:
        entries.append(f"TTLBit={record.ttl_bit}")

    return ENTRY_SEPARATOR.join(entries)
