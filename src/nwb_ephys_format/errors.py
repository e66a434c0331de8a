"""
Named hard failures raised by the codecs, the store and the walker.

Soft failures (absent optional fields, foreign channel names, unparsable
timestamps) are returned as ``None`` and never raised.
"""


class NwbFormatError(Exception):
    """Base class for all errors raised by this package."""


class MissingAttributeError(NwbFormatError, KeyError):
    """A mandatory attribute is absent or not stored as text."""

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the plain message
        return str(self.args[0]) if self.args else ""


class MissingGroupError(NwbFormatError, KeyError):
    """A group that must exist in the container is missing."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class UnitParseError(NwbFormatError, ValueError):
    """A unit string cannot be decomposed into prefix and base unit."""


class StructureError(NwbFormatError, ValueError):
    """The container layout violates a structural assumption."""


class UnsupportedVersionError(NwbFormatError):
    """The container uses an unsupported NWB major version."""


class MetadataValidationError(NwbFormatError, ValueError):
    """Session metadata does not conform to the metadata schema."""

    def __init__(self, message: str, errors: list[str]):
        super().__init__(message)
        self.errors = errors
