"""
Tests for the integrity validator.
"""

import numpy as np
import pytest

from nwb_ephys_format.constants import Severity
from nwb_ephys_format.store import H5Store
from nwb_ephys_format.validator import (
    ISSUE_CODES,
    IntegrityValidator,
    ValidationIssue,
    ValidationResult,
    validate_container,
)
from nwb_ephys_format.writer import NwbWriter

from .fixtures import create_session_file, fixed_clock

ACQ = "/acquisition/timeseries"


@pytest.fixture
def session_store(tmp_path):
    """A consistent session opened for modification."""
    path = create_session_file(tmp_path / "session.nwb")
    with H5Store(path, mode="a") as s:
        yield s


@pytest.fixture
def empty_store(tmp_path):
    """An initialized container without devices or channels."""
    with H5Store(tmp_path / "empty.nwb", mode="w") as s:
        NwbWriter(s, clock=fixed_clock).initialize()
        yield s


class TestConsistentSession:
    def test_session_is_valid(self, session_store):
        result = IntegrityValidator(session_store).validate()
        assert result.is_valid
        assert result.is_supported
        assert result.issues == []
        assert result.nwb_version == "NWB-1.0.5"
        assert result.checked_channels == 4

    def test_handles_are_released(self, session_store):
        validate_container(session_store)
        assert session_store.open_handles == 0


class TestChannelChecks:
    """Cross-checks between channel names and source attributes."""

    def test_mismatch_is_reported_for_that_channel_only(self, session_store):
        path = f"{ACQ}/data_00001_AD3"
        session_store.create_group(path)
        session_store.write_attribute(path, "source", "Device=ITC18USB_Dev_0;Sweep=1;AD=4")
        session_store.write_numeric_dataset(f"{path}/data", np.zeros(10))

        result = IntegrityValidator(session_store).validate()

        assert not result.is_valid
        assert result.codes == ["CHANNEL_MISMATCH"]
        assert result.failing_channels == [path]
        assert "ADC 3" in result.issues[0].detail
        assert "ADC 4" in result.issues[0].detail
        assert result.checked_channels == 5

    def test_type_mismatch(self, session_store):
        path = f"{ACQ}/data_00001_AD3"
        session_store.create_group(path)
        session_store.write_attribute(path, "source", "DA=3")
        session_store.write_numeric_dataset(f"{path}/data", np.zeros(10))

        result = IntegrityValidator(session_store).validate()
        assert result.codes == ["CHANNEL_MISMATCH"]

    def test_legacy_multi_string_source(self, session_store):
        path = f"{ACQ}/data_00001_AD3"
        session_store.create_group(path)
        session_store.write_attribute(path, "source", ["Device=ITC18USB_Dev_0", "Sweep=1", "AD=3"])
        session_store.write_numeric_dataset(f"{path}/data", np.zeros(10))

        assert IntegrityValidator(session_store).validate().is_valid

    def test_missing_source_aborts_the_group(self, session_store):
        del session_store.file[f"{ACQ}/data_00000_AD0"].attrs["source"]

        result = IntegrityValidator(session_store).validate()

        assert not result.is_valid
        assert result.codes == ["MISSING_PROVENANCE"]
        assert result.issues[0].location == f"{ACQ}/data_00000_AD0"
        # Remaining acquisition channels are skipped, stimulus channels are not
        assert result.checked_channels == 1

    def test_numeric_source_is_missing_provenance(self, session_store):
        session_store.write_attribute(f"{ACQ}/data_00000_AD1", "source", 7)
        result = IntegrityValidator(session_store).validate()
        assert result.codes == ["MISSING_PROVENANCE"]
        assert result.checked_channels == 2

    def test_undecodable_source_is_missing_provenance(self, session_store):
        session_store.file[f"{ACQ}/data_00000_AD0"].attrs["source"] = np.bytes_(b"Device=\xff;AD=0")

        result = IntegrityValidator(session_store).validate()

        assert result.codes == ["MISSING_PROVENANCE"]
        assert result.issues[0].location == f"{ACQ}/data_00000_AD0"
        assert result.checked_channels == 1
        assert session_store.open_handles == 0

    def test_missing_data(self, session_store):
        del session_store.file[f"{ACQ}/data_00000_AD1/data"]
        result = IntegrityValidator(session_store).validate()
        assert result.codes == ["MISSING_DATA"]
        assert result.failing_channels == [f"{ACQ}/data_00000_AD1"]

    def test_foreign_group_is_a_warning(self, session_store):
        session_store.create_group(f"{ACQ}/notes")
        result = IntegrityValidator(session_store).validate()
        assert result.is_valid
        assert result.codes == ["UNRECOGNIZED_CHANNEL_NAME"]
        assert result.warnings[0].severity == Severity.WARNING
        assert result.checked_channels == 4

    def test_missing_channel_group(self, empty_store):
        del empty_store.file["/stimulus/presentation"]
        result = IntegrityValidator(empty_store).validate()
        assert result.codes == ["REQUIRED_GROUP_MISSING"]
        assert result.issues[0].location == "/stimulus/presentation"
        assert empty_store.open_handles == 0


class TestLabnotebook:
    """Device list against labnotebook groups."""

    def test_extra_labnotebook_group(self, empty_store):
        writer = NwbWriter(empty_store, clock=fixed_clock)
        writer.add_device("DeviceA")
        empty_store.create_group("/general/labnotebook/DeviceB")

        result = IntegrityValidator(empty_store).validate()

        assert not result.is_valid
        assert result.codes == ["LABNOTEBOOK_CORRUPT"]
        assert "DeviceB" in result.issues[0].detail

    def test_device_without_labnotebook(self, empty_store):
        writer = NwbWriter(empty_store, clock=fixed_clock)
        writer.add_device("DeviceA")
        writer.add_device("DeviceB")
        del empty_store.file["/general/labnotebook/DeviceB"]

        result = IntegrityValidator(empty_store).validate()

        assert not result.is_valid
        assert result.codes == ["LABNOTEBOOK_CORRUPT"]
        assert "devices without labnotebook" in result.issues[0].detail

    def test_matching_sets(self, empty_store):
        writer = NwbWriter(empty_store, clock=fixed_clock)
        writer.add_device("DeviceA")
        writer.add_device("DeviceB")
        assert IntegrityValidator(empty_store).validate().is_valid


class TestVersion:
    """Version policy."""

    def test_unsupported_major_version_stops_validation(self, session_store):
        session_store.write_attribute("/", "nwb_version", "2.2.4")
        # Would otherwise be reported
        session_store.create_group("/general/labnotebook/Orphan")

        result = IntegrityValidator(session_store).validate()

        assert result.codes == ["UNSUPPORTED_VERSION"]
        assert result.issues[0].severity == Severity.FATAL
        assert not result.is_supported
        assert not result.is_valid
        assert result.checked_channels == 0

    def test_supported_versions_are_configurable(self, session_store):
        result = IntegrityValidator(session_store, supported_major_versions={2}).validate()
        assert result.codes == ["UNSUPPORTED_VERSION"]

    def test_unknown_version_is_a_warning(self, empty_store):
        del empty_store.file["/nwb_version"]
        result = IntegrityValidator(empty_store).validate()
        assert result.codes == ["VERSION_UNKNOWN"]
        assert result.is_valid
        assert result.nwb_version is None

    def test_invalid_session_start_time(self, empty_store):
        empty_store.write_text_dataset("/session_start_time", "yesterday")
        result = IntegrityValidator(empty_store).validate()
        assert result.codes == ["INVALID_TIMESTAMP"]
        assert result.is_valid


class TestValidationResult:
    """Tests for result aggregation and reporting."""

    def test_unknown_code_raises(self):
        with pytest.raises(KeyError):
            ValidationResult().add("NOT_A_CODE", "/")

    def test_every_code_has_severity_and_message(self):
        for severity, message in ISSUE_CODES.values():
            assert isinstance(severity, Severity)
            assert message

    def test_issue_str(self):
        issue = ValidationIssue("MISSING_DATA", f"{ACQ}/data_00000_AD0")
        assert str(issue).startswith(f"{ACQ}/data_00000_AD0 ERROR MISSING_DATA: ")
        assert str(ValidationIssue("VERSION_UNKNOWN", "/", "None")).endswith("(None)")

    def test_summary(self):
        result = ValidationResult(checked_channels=2)
        result.add("MISSING_DATA", "/acquisition/timeseries/data_00000_AD0")
        lines = result.summary()
        assert lines[-2] == "Checked 2 channel(s)"
        assert lines[-1] == "File is INVALID"

    def test_to_dict(self):
        result = ValidationResult(nwb_version="NWB-1.0.5", checked_channels=1)
        result.add("INVALID_TIMESTAMP", "/session_start_time", "'x'")
        data = result.to_dict()
        assert data["is_valid"] is True
        assert data["nwb_version"] == "NWB-1.0.5"
        assert data["issues"] == [
            {
                "code": "INVALID_TIMESTAMP",
                "severity": "WARNING",
                "location": "/session_start_time",
                "message": ISSUE_CODES["INVALID_TIMESTAMP"][1],
                "detail": "'x'",
            }
        ]
