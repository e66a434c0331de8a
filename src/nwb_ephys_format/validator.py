"""
Integrity validation for NWB electrophysiology containers.

Cross-checks independently stored copies of the same facts: the device list
against the labnotebook groups, and each channel's name against its
``source`` provenance attribute.
"""

import logging
import posixpath
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Optional

from .codecs.names import decode_channel_name
from .codecs.provenance import decode_provenance
from .codecs.timestamps import parse_timestamp
from .constants import (
    ACQUISITION_PATH,
    DATA_DATASET,
    LABNOTEBOOK_PATH,
    ROOT_PATH,
    SOURCE_ATTRIBUTE,
    STIMULUS_PRESENTATION_PATH,
    SUPPORTED_MAJOR_VERSIONS,
    Severity,
)
from .errors import MissingAttributeError, MissingGroupError, StructureError
from .store import HierarchicalStore
from .walker import SchemaWalker, parse_major_version

logger = logging.getLogger(__name__)

ISSUE_CODES = MappingProxyType(
    {
        "UNSUPPORTED_VERSION": (Severity.FATAL, "The NWB major version is not supported"),
        "VERSION_UNKNOWN": (Severity.WARNING, "The NWB version could not be determined"),
        "LABNOTEBOOK_CORRUPT": (
            Severity.ERROR,
            "The device list does not match the labnotebook groups",
        ),
        "REQUIRED_GROUP_MISSING": (Severity.ERROR, "A required channel group is missing"),
        "MISSING_PROVENANCE": (
            Severity.ERROR,
            "A channel has no text source attribute; remaining channels were not checked",
        ),
        "CHANNEL_MISMATCH": (
            Severity.ERROR,
            "Channel name and source attribute disagree on channel type or number",
        ),
        "MISSING_DATA": (Severity.ERROR, "A channel has no data dataset"),
        "MALFORMED_DATASET": (Severity.ERROR, "A dataset does not have the expected shape"),
        "UNRECOGNIZED_CHANNEL_NAME": (
            Severity.WARNING,
            "A group in a channel container does not follow the channel naming convention",
        ),
        "INVALID_TIMESTAMP": (Severity.WARNING, "session_start_time is not a valid timestamp"),
    }
)

CHANNEL_GROUPS = (ACQUISITION_PATH, STIMULUS_PRESENTATION_PATH)


@dataclass(frozen=True)
class ValidationIssue:
    """One finding of the validator, located at an HDF5 path."""

    code: str
    location: str
    detail: str = ""

    @property
    def severity(self) -> Severity:
        return ISSUE_CODES[self.code][0]

    @property
    def message(self) -> str:
        return ISSUE_CODES[self.code][1]

    def __str__(self) -> str:
        text = f"{self.location} {self.severity.name} {self.code}: {self.message}"
        return f"{text} ({self.detail})" if self.detail else text


@dataclass
class ValidationResult:
    """
    Aggregate outcome of :meth:`IntegrityValidator.validate`.

    Attributes:
        issues: Every issue found, in discovery order
        nwb_version: Version text read from the container, if any
        checked_channels: Number of channels that were cross-checked
    """

    issues: list[ValidationIssue] = field(default_factory=list)
    nwb_version: Optional[str] = None
    checked_channels: int = 0

    def add(self, code: str, location: str, detail: str = "") -> ValidationIssue:
        if code not in ISSUE_CODES:
            raise KeyError(f"Invalid issue code '{code}'")
        issue = ValidationIssue(code, location, detail)
        self.issues.append(issue)
        if issue.severity >= Severity.WARNING:
            logger.warning(str(issue))
        else:
            logger.info(str(issue))
        return issue

    @property
    def is_valid(self) -> bool:
        """True if no ERROR or FATAL issue was found."""
        return all(issue.severity < Severity.ERROR for issue in self.issues)

    @property
    def is_supported(self) -> bool:
        return not any(issue.code == "UNSUPPORTED_VERSION" for issue in self.issues)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity >= Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == Severity.WARNING]

    @property
    def codes(self) -> list[str]:
        return [issue.code for issue in self.issues]

    @property
    def failing_channels(self) -> list[str]:
        """Paths of channels with an ERROR issue of their own."""
        channel_codes = {"CHANNEL_MISMATCH", "MISSING_DATA", "MISSING_PROVENANCE"}
        paths = []
        for issue in self.issues:
            if issue.code in channel_codes and issue.location not in paths:
                paths.append(issue.location)
        return paths

    def summary(self) -> list[str]:
        """Human-readable lines, one per issue, followed by the verdict."""
        lines = [str(issue) for issue in self.issues]
        lines.append(f"Checked {self.checked_channels} channel(s)")
        lines.append("File is VALID" if self.is_valid else "File is INVALID")
        return lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "is_supported": self.is_supported,
            "nwb_version": self.nwb_version,
            "checked_channels": self.checked_channels,
            "issues": [
                {
                    "code": issue.code,
                    "severity": issue.severity.name,
                    "location": issue.location,
                    "message": issue.message,
                    "detail": issue.detail,
                }
                for issue in self.issues
            ],
        }


class IntegrityValidator:
    """
    Cross-checks a container for internal consistency.

    Individual channel problems are collected rather than raised. Only an
    unsupported NWB major version stops validation early.

    Example:
        with H5Store("session.nwb") as store:
            result = IntegrityValidator(store).validate()
            if not result.is_valid:
                print("\\n".join(result.summary()))
    """

    def __init__(
        self,
        store: HierarchicalStore,
        supported_major_versions: frozenset = SUPPORTED_MAJOR_VERSIONS,
    ):
        self.store = store
        self.walker = SchemaWalker(store)
        self.supported_major_versions = frozenset(supported_major_versions)

    def validate(self) -> ValidationResult:
        """Run all checks and return the aggregate result."""
        result = ValidationResult()

        if not self._check_version(result):
            return result

        self._check_session_start_time(result)
        self._check_labnotebook(result)
        for group_path in CHANNEL_GROUPS:
            self._check_channel_group(group_path, result)

        logger.info(
            f"Validation finished: {len(result.errors)} error(s), "
            f"{len(result.warnings)} warning(s)"
        )
        return result

    def _check_version(self, result: ValidationResult) -> bool:
        """Record version issues; False if validation cannot continue."""
        try:
            result.nwb_version = self.walker.read_nwb_version()
        except StructureError as e:
            result.add("MALFORMED_DATASET", ROOT_PATH, str(e))
            return True

        major = parse_major_version(result.nwb_version)
        if major is None:
            result.add("VERSION_UNKNOWN", ROOT_PATH, repr(result.nwb_version))
            return True

        if major not in self.supported_major_versions:
            result.add(
                "UNSUPPORTED_VERSION",
                ROOT_PATH,
                f"{result.nwb_version} (supported: {sorted(self.supported_major_versions)})",
            )
            return False

        return True

    def _check_session_start_time(self, result: ValidationResult) -> None:
        path = posixpath.join(ROOT_PATH, "session_start_time")
        try:
            text = self.walker.read_text(path)
        except StructureError as e:
            result.add("MALFORMED_DATASET", path, str(e))
            return

        if text is not None and parse_timestamp(text) is None:
            result.add("INVALID_TIMESTAMP", path, repr(text))

    def _check_labnotebook(self, result: ValidationResult) -> None:
        devices = set(self.walker.list_devices())
        notebooks = set(self.walker.list_labnotebook_devices())

        if devices != notebooks:
            detail = []
            if devices - notebooks:
                detail.append(f"devices without labnotebook: {sorted(devices - notebooks)}")
            if notebooks - devices:
                detail.append(f"labnotebooks without device: {sorted(notebooks - devices)}")
            result.add("LABNOTEBOOK_CORRUPT", LABNOTEBOOK_PATH, "; ".join(detail))

    def _check_channel_group(self, group_path: str, result: ValidationResult) -> None:
        try:
            with self.store.group(group_path):
                for name in self.store.list_group_names(group_path):
                    if not self._check_channel(posixpath.join(group_path, name), result):
                        break
        except MissingGroupError:
            result.add("REQUIRED_GROUP_MISSING", group_path)

    def _check_channel(self, path: str, result: ValidationResult) -> bool:
        """
        Cross-check a single channel.

        Returns False if the rest of the channel group must be skipped.
        """
        name = posixpath.basename(path)

        identifier = decode_channel_name(name)
        if identifier is None:
            result.add("UNRECOGNIZED_CHANNEL_NAME", path)
            return True

        try:
            provenance = decode_provenance(self.store.load_text_attribute(path, SOURCE_ATTRIBUTE))
        except MissingAttributeError as e:
            result.add("MISSING_PROVENANCE", path, str(e))
            return False

        result.checked_channels += 1

        if (
            identifier.channel_type != provenance.channel_type
            or identifier.channel_number != provenance.channel_number
        ):
            source_type = provenance.channel_type.value if provenance.channel_type else None
            result.add(
                "CHANNEL_MISMATCH",
                path,
                f"name: {identifier.channel_type.value} {identifier.channel_number}, "
                f"source: {source_type} {provenance.channel_number}",
            )

        if not self.store.dataset_exists(posixpath.join(path, DATA_DATASET)):
            result.add("MISSING_DATA", path)

        return True


def validate_container(store: HierarchicalStore) -> ValidationResult:
    """Convenience function to validate an open store."""
    return IntegrityValidator(store).validate()
