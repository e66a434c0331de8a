"""
Schema walker for NWB electrophysiology containers.

Reads and writes the fixed top-level, general and subject record sets and
enumerates the device, electrode, channel and stimulus set groups. All
access goes through a :class:`~nwb_ephys_format.store.HierarchicalStore`.
"""

import logging
import math
import posixpath
import re
from typing import Iterable, Optional, TypeVar

from .codecs.names import decode_channel_name
from .codecs.provenance import decode_provenance
from .codecs.timestamps import format_timestamp, parse_timestamp
from .constants import (
    ACQUISITION_PATH,
    DATA_DATASET,
    DEFAULT_TIMESTAMP_DIGITS,
    DEVICE_PREFIX,
    DEVICES_PATH,
    ELECTRODE_PREFIX,
    GENERAL_PATH,
    INTRACELLULAR_EPHYS_PATH,
    LABNOTEBOOK_PATH,
    ROOT_PATH,
    SOURCE_ATTRIBUTE,
    STIMSETS_PATH,
    STIMULUS_PRESENTATION_PATH,
    STIMULUS_TEMPLATE_PATH,
    SUBJECT_PATH,
    SUPPORTED_MAJOR_VERSIONS,
    VERSION_ATTRIBUTE,
)
from .errors import MissingAttributeError, StructureError, UnsupportedVersionError
from .records import ChannelInfo, GeneralInfo, SubjectInfo, TopLevelInfo
from .store import HierarchicalStore

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", TopLevelInfo, GeneralInfo, SubjectInfo)

_VERSION_PATTERN = re.compile(r"^\s*(?:NWB-)?(\d+)(?:\.|$)")

# Timestamp fields stored as text but held as epoch seconds
_TIMESTAMP_FIELDS = frozenset({"session_start_time"})

# Text fields that may hold more than one row; the first row is used
_MULTI_ROW_FIELDS = frozenset({"file_create_date"})

# Text fields written as chunked, extendable datasets
_CHUNKED_FIELDS = frozenset({"file_create_date"})


def remove_prefix_from_list_items(prefix: str, items: Iterable[str]) -> list[str]:
    """
    Strip ``prefix`` from every item that starts with it.

    Items without the prefix are passed through unchanged.

    Example:
        >>> remove_prefix_from_list_items("device_", ["device_1", "device_2"])
        ['1', '2']
    """
    return [item[len(prefix):] if item.startswith(prefix) else item for item in items]


def parse_major_version(version: Optional[str]) -> Optional[int]:
    """
    Extract the major version from ``NWB-1.0.5`` or ``2.2.4`` style text.

    Returns None if the text carries no recognizable version.
    """
    if not version:
        return None
    match = _VERSION_PATTERN.match(version)
    return int(match.group(1)) if match else None


def _join(base: str, name: str) -> str:
    return posixpath.join(base, name)


class SchemaWalker:
    """
    Reads and writes the fixed NWB record sets through a store.

    Attributes:
        store: The container store
        timestamp_digits: Fractional digits used when writing timestamps
    """

    def __init__(self, store: HierarchicalStore, timestamp_digits: int = DEFAULT_TIMESTAMP_DIGITS):
        self.store = store
        self.timestamp_digits = timestamp_digits

    # -------------------------------------------------------------------------
    # Field access
    # -------------------------------------------------------------------------

    def read_text(self, path: str, allow_multiple_rows: bool = False) -> Optional[str]:
        """
        Read a single-row text dataset.

        Returns:
            The text, or None if the dataset is absent

        Raises:
            StructureError: If the dataset holds more than one row
        """
        rows = self.store.load_text_dataset(path)
        if not rows:
            return None
        if len(rows) > 1 and not allow_multiple_rows:
            raise StructureError(f"Expected one row in {path}, found {len(rows)}")
        return rows[0]

    def read_number(self, path: str) -> Optional[float]:
        """
        Read a single-value numeric dataset.

        Returns:
            The value, or None if the dataset is absent or holds NaN

        Raises:
            StructureError: If the dataset holds more than one value
        """
        values = self.store.load_numeric_dataset(path)
        if not values:
            return None
        if len(values) > 1:
            raise StructureError(f"Expected one value in {path}, found {len(values)}")
        return None if math.isnan(values[0]) else values[0]

    def _read_record(self, record_cls: type[RecordT], base_path: str) -> RecordT:
        values = {}
        for name in record_cls.field_names():
            path = _join(base_path, name)
            text = self.read_text(path, allow_multiple_rows=name in _MULTI_ROW_FIELDS)
            if name in _TIMESTAMP_FIELDS:
                values[name] = parse_timestamp(text)
                if text is not None and values[name] is None:
                    logger.warning(f"Could not parse timestamp {text!r} in {path}")
            else:
                values[name] = text
        return record_cls(**values)

    def _write_record(self, record: RecordT, base_path: str) -> None:
        self.store.create_group(base_path)
        for name, value in record.present_fields().items():
            path = _join(base_path, name)
            if name in _TIMESTAMP_FIELDS:
                value = format_timestamp(value, self.timestamp_digits)
            self.store.write_text_dataset(path, value, chunked=name in _CHUNKED_FIELDS)

        skipped = set(record.field_names()) - set(record.present_fields())
        if skipped:
            logger.debug(f"Skipped absent fields under {base_path}: {sorted(skipped)}")

    # -------------------------------------------------------------------------
    # Record sets
    # -------------------------------------------------------------------------

    def read_top_level_info(self) -> TopLevelInfo:
        return self._read_record(TopLevelInfo, ROOT_PATH)

    def read_general_info(self) -> GeneralInfo:
        return self._read_record(GeneralInfo, GENERAL_PATH)

    def read_subject_info(self) -> SubjectInfo:
        return self._read_record(SubjectInfo, SUBJECT_PATH)

    def write_top_level_info(self, info: TopLevelInfo) -> None:
        """Write the root datasets; fields that are None are not written."""
        self._write_record(info, ROOT_PATH)

    def write_general_info(self, info: GeneralInfo) -> None:
        self._write_record(info, GENERAL_PATH)

    def write_subject_info(self, info: SubjectInfo) -> None:
        self._write_record(info, SUBJECT_PATH)

    # -------------------------------------------------------------------------
    # Version
    # -------------------------------------------------------------------------

    def read_nwb_version(self) -> Optional[str]:
        """
        Read the container's NWB version.

        The root ``nwb_version`` attribute takes precedence over the
        ``/nwb_version`` dataset.
        """
        attribute = self.store.load_text_attribute(ROOT_PATH, VERSION_ATTRIBUTE)
        if attribute:
            return attribute[0]
        return self.read_text(_join(ROOT_PATH, VERSION_ATTRIBUTE))

    def nwb_major_version(self) -> Optional[int]:
        return parse_major_version(self.read_nwb_version())

    def require_supported_version(
        self, supported: frozenset = SUPPORTED_MAJOR_VERSIONS
    ) -> Optional[int]:
        """
        Return the major version, raising if it is known and unsupported.

        A missing or unparsable version is not rejected; it returns None and
        is logged, matching the VERSION_UNKNOWN warning of the validator.

        Raises:
            UnsupportedVersionError: If the major version is not in ``supported``
        """
        major = self.nwb_major_version()
        if major is None:
            logger.warning(f"NWB version {self.read_nwb_version()!r} could not be determined")
            return None
        if major not in supported:
            raise UnsupportedVersionError(
                f"NWB version {self.read_nwb_version()!r} is not supported "
                f"(supported major versions: {sorted(supported)})"
            )
        return major

    # -------------------------------------------------------------------------
    # Enumeration
    # -------------------------------------------------------------------------

    def list_devices(self) -> list[str]:
        """Device names under ``/general/devices`` without the ``device_`` prefix."""
        if not self.store.group_exists(DEVICES_PATH):
            return []
        members = self.store.list_group_member_names(DEVICES_PATH)
        return remove_prefix_from_list_items(DEVICE_PREFIX, members)

    def list_electrodes(self) -> list[str]:
        """Electrode names under ``/general/intracellular_ephys``."""
        if not self.store.group_exists(INTRACELLULAR_EPHYS_PATH):
            return []
        groups = self.store.list_group_names(INTRACELLULAR_EPHYS_PATH)
        return remove_prefix_from_list_items(ELECTRODE_PREFIX, groups)

    def list_acquisition_channels(self) -> list[str]:
        return self.store.list_group_names(ACQUISITION_PATH)

    def list_stimulus_channels(self) -> list[str]:
        return self.store.list_group_names(STIMULUS_PRESENTATION_PATH)

    def list_stimulus_templates(self) -> list[str]:
        return self.store.list_group_names(STIMULUS_TEMPLATE_PATH)

    def list_labnotebook_devices(self) -> list[str]:
        """Per-device labnotebook group names; empty if there is no labnotebook."""
        if not self.store.group_exists(LABNOTEBOOK_PATH):
            return []
        return self.store.list_group_names(LABNOTEBOOK_PATH)

    def list_stimsets(self) -> list[str]:
        """Stimulus set entries; empty if ``/general/stimsets`` does not exist."""
        if not self.store.group_exists(STIMSETS_PATH):
            return []
        return self.store.list_group_member_names(STIMSETS_PATH)

    # -------------------------------------------------------------------------
    # Channels
    # -------------------------------------------------------------------------

    def read_channel_info(self, path: str) -> ChannelInfo:
        """
        Read name, provenance and data attributes of one channel group.

        A missing ``source`` attribute leaves ``provenance`` as None; use
        :func:`~nwb_ephys_format.codecs.decode_provenance` directly to get the
        hard failure.
        """
        name = posixpath.basename(path.rstrip("/"))
        info = ChannelInfo(name=name, path=path, identifier=decode_channel_name(name))

        try:
            info.provenance = decode_provenance(
                self.store.load_text_attribute(path, SOURCE_ATTRIBUTE)
            )
        except MissingAttributeError as e:
            logger.debug(f"{path}: {e}")

        data_path = _join(path, DATA_DATASET)
        info.has_data = self.store.dataset_exists(data_path)
        if info.has_data:
            unit = self.store.load_text_attribute(data_path, "unit")
            info.unit = unit[0] if unit else None
            conversion = self.store.load_numeric_attribute(data_path, "conversion")
            info.conversion = conversion[0] if conversion else None

        info.starting_time = self.read_number(_join(path, "starting_time"))
        rate = self.store.load_numeric_attribute(_join(path, "starting_time"), "rate")
        info.rate = rate[0] if rate else None

        num_samples = self.read_number(_join(path, "num_samples"))
        info.num_samples = int(num_samples) if num_samples is not None else None

        return info

    def read_channels(self, group_path: str) -> list[ChannelInfo]:
        """Read every channel group under ``group_path``."""
        with self.store.group(group_path):
            names = self.store.list_group_names(group_path)
            return [self.read_channel_info(_join(group_path, name)) for name in names]
