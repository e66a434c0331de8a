"""
Channel name codec.

Channel groups are named ``data_<groupIndex>_<TYPE><number>[_<suffix>]``,
for example ``data_00001_AD3`` or ``data_00002_TTL1_3``.
"""

import re
from dataclasses import dataclass
from typing import Optional

from ..constants import CHANNEL_TYPE_CODES, CHANNEL_TYPE_NAME_CODES, ChannelType

_CHANNEL_NAME_PATTERN = re.compile(
    r"^data_([A-Za-z0-9]+)_([A-Za-z]{1,3})([0-9]+)(?:_([A-Za-z0-9]+))?$"
)

_NUMERIC = re.compile(r"[0-9]+")
_SUFFIX = re.compile(r"[A-Za-z0-9]+")

GROUP_INDEX_WIDTH = 5


def channel_type_from_code(code: str) -> ChannelType:
    """Map a type code (``AD``, ``DA``, ``TTL``, any case) to a ChannelType."""
    return CHANNEL_TYPE_CODES.get(code.upper(), ChannelType.OTHER)


@dataclass(frozen=True)
class ChannelIdentifier:
    """
    Structured form of a channel name.

    A purely numeric ``suffix`` doubles as the TTL bit. Construction keeps
    ``suffix`` and ``ttl_bit`` in agreement: passing only one of them fills
    in the other.
    """

    group_index: Optional[int]
    channel_type: ChannelType
    channel_number: int
    suffix: Optional[str] = None
    ttl_bit: Optional[int] = None

    def __post_init__(self):
        if self.suffix is not None and _NUMERIC.fullmatch(self.suffix):
            bit = int(self.suffix)
            if self.ttl_bit is None:
                object.__setattr__(self, "ttl_bit", bit)
            elif self.ttl_bit != bit:
                raise ValueError(
                    f"suffix {self.suffix!r} contradicts ttl_bit {self.ttl_bit}"
                )
        elif self.ttl_bit is not None:
            if self.ttl_bit < 0:
                raise ValueError(f"ttl_bit must be non-negative, got {self.ttl_bit}")
            if self.suffix is not None:
                raise ValueError(
                    f"ttl_bit {self.ttl_bit} requires a numeric suffix, got {self.suffix!r}"
                )
            object.__setattr__(self, "suffix", str(self.ttl_bit))

    @property
    def type_code(self) -> str:
        return CHANNEL_TYPE_NAME_CODES[self.channel_type]


def decode_channel_name(name: str) -> Optional[ChannelIdentifier]:
    """
    Decode a channel name.

    Returns:
        The identifier, or None if the name does not follow the naming
        convention (it may belong to an unrelated group)
    """
    match = _CHANNEL_NAME_PATTERN.match(name)
    if match is None:
        return None

    group_index, code, number, suffix = match.groups()
    return ChannelIdentifier(
        group_index=int(group_index) if group_index.isdigit() else None,
        channel_type=channel_type_from_code(code),
        channel_number=int(number),
        suffix=suffix,
    )


def encode_channel_name(identifier: ChannelIdentifier) -> str:
    """
    Encode an identifier as a channel name.

    Raises:
        ValueError: If the identifier has no group index or a negative number
    """
    if identifier.group_index is None or identifier.group_index < 0:
        raise ValueError(f"Cannot encode group index {identifier.group_index!r}")
    if identifier.channel_number < 0:
        raise ValueError(f"Cannot encode channel number {identifier.channel_number}")
    if identifier.suffix is not None and not _SUFFIX.fullmatch(identifier.suffix):
        raise ValueError(f"Cannot encode suffix {identifier.suffix!r}")

    name = (
        f"data_{identifier.group_index:0{GROUP_INDEX_WIDTH}d}_"
        f"{identifier.type_code}{identifier.channel_number}"
    )
    if identifier.suffix is not None:
        name += f"_{identifier.suffix}"
    return name
