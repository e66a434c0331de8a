"""
NWB container writer.

Builds the NWB v1 group skeleton and writes record sets, devices,
electrodes, channels and stimulus sets through a HierarchicalStore.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import numpy as np

from .codecs.names import ChannelIdentifier, encode_channel_name
from .codecs.provenance import ProvenanceRecord, encode_provenance
from .codecs.timestamps import EPOCH, format_datetime
from .codecs.units import parse_unit
from .constants import (
    ACQUISITION_PATH,
    DATA_DATASET,
    DEFAULT_RESOLUTION,
    DEFAULT_TIMESTAMP_DIGITS,
    DEFAULT_UNIT,
    DEVICE_PREFIX,
    DEVICES_PATH,
    ELECTRODE_PREFIX,
    INTRACELLULAR_EPHYS_PATH,
    LABNOTEBOOK_PATH,
    NWB_VERSION,
    SKELETON_GROUPS,
    SOURCE_ATTRIBUTE,
    STIMSETS_PATH,
    STIMULUS_PRESENTATION_PATH,
)
from .identifiers import generate_identifier
from .records import GeneralInfo, SessionMetadata, SubjectInfo, TopLevelInfo
from .store import H5Store, HierarchicalStore
from .walker import SchemaWalker

__all__ = ["NwbWriter", "create_container"]

logger = logging.getLogger(__name__)

# Type alias for clock function injection
ClockFunc = Callable[[], datetime]


class NwbWriter:
    """
    Writer for NWB v1 electrophysiology containers.

    Example:
        with H5Store("session.nwb", mode="w") as store:
            writer = NwbWriter(store)
            writer.initialize(TopLevelInfo(session_description="patch clamp"))
            writer.add_device("ITC18USB_Dev_0")
            writer.add_channel(
                ChannelIdentifier(0, ChannelType.ADC, 1),
                ProvenanceRecord(device="ITC18USB_Dev_0", sweep=0,
                                 channel_type=ChannelType.ADC, channel_number=1),
                data=samples,
                unit="mV",
            )

    Attributes:
        store: Destination store
        walker: SchemaWalker used for the record sets
        timestamp_digits: Fractional digits of written timestamps
    """

    def __init__(
        self,
        store: HierarchicalStore,
        clock: Optional[ClockFunc] = None,
        timestamp_digits: int = DEFAULT_TIMESTAMP_DIGITS,
    ):
        """
        Initialize the writer.

        Args:
            store: Store opened for writing
            clock: Optional function returning current datetime (for testing)
            timestamp_digits: Fractional digits of written timestamps
        """
        self.store = store
        self.timestamp_digits = timestamp_digits
        self.walker = SchemaWalker(store, timestamp_digits=timestamp_digits)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def initialize(
        self,
        top_level: Optional[TopLevelInfo] = None,
        general: Optional[GeneralInfo] = None,
        subject: Optional[SubjectInfo] = None,
    ) -> TopLevelInfo:
        """
        Create the group skeleton and write the record sets.

        Missing ``nwb_version``, ``identifier``, ``session_start_time`` and
        ``file_create_date`` are filled in.

        Returns:
            The top-level record as written
        """
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        top_level = replace(top_level) if top_level else TopLevelInfo()
        if top_level.nwb_version is None:
            top_level.nwb_version = NWB_VERSION
        if top_level.session_start_time is None:
            top_level.session_start_time = (now - EPOCH).total_seconds()
        if top_level.identifier is None:
            top_level.identifier = generate_identifier(top_level.session_start_time)
        if top_level.file_create_date is None:
            top_level.file_create_date = format_datetime(now, self.timestamp_digits)

        for path in SKELETON_GROUPS:
            self.store.create_group(path)

        self.walker.write_top_level_info(top_level)
        self.walker.write_general_info(general or GeneralInfo())
        self.walker.write_subject_info(subject or SubjectInfo())

        logger.info(f"Initialized NWB container {top_level.identifier}")
        return top_level

    def add_device(self, name: str, description: Optional[str] = None) -> None:
        """Add a device entry and its labnotebook group."""
        self.store.write_text_dataset(
            posixpath.join(DEVICES_PATH, DEVICE_PREFIX + name), description or name
        )
        self.store.create_group(posixpath.join(LABNOTEBOOK_PATH, name))
        logger.info(f"Added device {name}")

    def add_electrode(self, name: str, description: str, device: str) -> str:
        """Add an intracellular electrode; returns its group path."""
        path = posixpath.join(INTRACELLULAR_EPHYS_PATH, ELECTRODE_PREFIX + name)
        self.store.create_group(path)
        self.store.write_text_dataset(posixpath.join(path, "description"), description)
        self.store.write_text_dataset(posixpath.join(path, "device"), device)
        return path

    def add_channel(
        self,
        identifier: ChannelIdentifier,
        provenance: ProvenanceRecord,
        data: Any,
        unit: str = DEFAULT_UNIT,
        stimulus: bool = False,
        starting_time: float = 0.0,
        rate: Optional[float] = None,
        resolution: float = DEFAULT_RESOLUTION,
    ) -> str:
        """
        Write one channel group.

        Args:
            identifier: Channel identifier, encoded as the group name
            provenance: Provenance record, encoded as the ``source`` attribute
            data: Sample values
            unit: Unit of ``data``, e.g. ``"mV"``; stored as base unit plus
                  ``conversion`` factor
            stimulus: Write below ``/stimulus/presentation`` instead of
                      ``/acquisition/timeseries``
            starting_time: Start of the sweep in seconds
            rate: Sampling rate in Hz
            resolution: Smallest meaningful difference in ``data``

        Returns:
            Path of the channel group

        Raises:
            ValueError: If identifier and provenance disagree on channel type
                        or number
            UnitParseError: If ``unit`` cannot be parsed
        """
        if (
            provenance.channel_type != identifier.channel_type
            or provenance.channel_number != identifier.channel_number
        ):
            raise ValueError(
                f"Provenance {provenance.channel_type}={provenance.channel_number} "
                f"does not match identifier {identifier.channel_type}={identifier.channel_number}"
            )

        parsed_unit = parse_unit(unit)
        source = encode_provenance(provenance)

        base = STIMULUS_PRESENTATION_PATH if stimulus else ACQUISITION_PATH
        path = posixpath.join(base, encode_channel_name(identifier))
        data_path = posixpath.join(path, DATA_DATASET)

        values = np.asarray(data)

        self.store.create_group(path)
        self.store.write_attribute(path, SOURCE_ATTRIBUTE, source)

        self.store.write_numeric_dataset(data_path, values)
        self.store.write_attribute(data_path, "unit", parsed_unit.base_unit)
        self.store.write_attribute(data_path, "conversion", parsed_unit.multiplier)
        self.store.write_attribute(data_path, "resolution", resolution)

        self.store.write_numeric_dataset(
            posixpath.join(path, "num_samples"), values.shape[0] if values.ndim else 1
        )
        starting_time_path = posixpath.join(path, "starting_time")
        self.store.write_numeric_dataset(starting_time_path, float(starting_time))
        if rate is not None:
            self.store.write_attribute(starting_time_path, "rate", float(rate))

        logger.info(f"Wrote channel {path}")
        return path

    def add_stimset(self, name: str, data: Any) -> str:
        """Store a stimulus set entry; text is stored as text, anything else as numbers."""
        path = posixpath.join(STIMSETS_PATH, name)
        if isinstance(data, str):
            self.store.write_text_dataset(path, data)
        else:
            self.store.write_numeric_dataset(path, data)
        return path


def create_container(
    path: str | Path,
    metadata: Optional[SessionMetadata] = None,
    clock: Optional[ClockFunc] = None,
    overwrite: bool = False,
) -> TopLevelInfo:
    """
    Convenience function to create a new container skeleton.

    Args:
        path: Output file path
        metadata: Session metadata to write
        clock: Optional function returning current datetime (for testing)
        overwrite: Replace an existing file

    Returns:
        The top-level record as written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with H5Store(path, mode="w" if overwrite else "w-") as store:
        writer = NwbWriter(store, clock=clock)
        if metadata is None:
            return writer.initialize()
        return writer.initialize(metadata.top_level, metadata.general, metadata.subject)
