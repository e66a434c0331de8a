"""
Physical unit codec.

Splits unit strings such as ``"ms"`` or ``"kHz"`` into an SI prefix and a
base unit. NWB stores the base unit in the ``unit`` attribute and the prefix
as the ``conversion`` multiplier.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType

from ..errors import UnitParseError

SI_PREFIXES = MappingProxyType(
    {
        "Y": 1e24,
        "Z": 1e21,
        "E": 1e18,
        "P": 1e15,
        "T": 1e12,
        "G": 1e9,
        "M": 1e6,
        "k": 1e3,
        "h": 1e2,
        "da": 1e1,
        "d": 1e-1,
        "c": 1e-2,
        "m": 1e-3,
        "µ": 1e-6,
        "n": 1e-9,
        "p": 1e-12,
        "f": 1e-15,
        "a": 1e-18,
        "z": 1e-21,
        "y": 1e-24,
    }
)

# Input spellings of the micro sign
PREFIX_ALIASES = MappingProxyType({"u": "µ", "μ": "µ"})

BASE_UNITS = frozenset({"m", "kg", "s", "A", "K", "mol", "cd", "Hz", "V", "N", "W", "J", "a.u."})


def _alternation(symbols) -> str:
    # Longest first so that "da" wins over "d"
    ordered = sorted(symbols, key=lambda s: (-len(s), s))
    return "|".join(re.escape(s) for s in ordered)


_UNIT_PATTERN = re.compile(
    r"^(?P<prefix>{prefixes})?\s*(?P<base>{bases})$".format(
        prefixes=_alternation(list(SI_PREFIXES) + list(PREFIX_ALIASES)),
        bases=_alternation(BASE_UNITS),
    )
)


@dataclass(frozen=True)
class Unit:
    """A physical unit split into SI prefix and base unit."""

    prefix: str
    multiplier: float
    base_unit: str

    def __str__(self) -> str:
        return format_unit(self)


def prefix_multiplier(prefix: str) -> float:
    """
    Look up the power-of-ten value of an SI prefix.

    The empty prefix maps to 1.

    Raises:
        UnitParseError: If ``prefix`` is not one of the 20 SI prefixes
    """
    if not prefix:
        return 1.0

    prefix = PREFIX_ALIASES.get(prefix, prefix)
    try:
        return SI_PREFIXES[prefix]
    except KeyError:
        raise UnitParseError(f"Unknown SI prefix: {prefix!r}") from None


def parse_unit(text: str) -> Unit:
    """
    Parse a unit string into a :class:`Unit`.

    Args:
        text: Unit string, e.g. ``"ms"``, ``"kHz"`` or ``"m V"``

    Returns:
        The parsed unit

    Raises:
        UnitParseError: If the string is not ``[prefix][whitespace]base``
    """
    match = _UNIT_PATTERN.match(text.strip()) if isinstance(text, str) else None
    if match is None:
        raise UnitParseError(f"Cannot parse unit: {text!r}")

    prefix = PREFIX_ALIASES.get(match.group("prefix") or "", match.group("prefix") or "")
    return Unit(
        prefix=prefix,
        multiplier=prefix_multiplier(prefix),
        base_unit=match.group("base"),
    )


def format_unit(unit: Unit) -> str:
    """Render a unit back to its compact text form."""
    return f"{unit.prefix}{unit.base_unit}"
