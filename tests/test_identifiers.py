"""Tests for container identifier generation."""

from ulid import ULID

from nwb_ephys_format.identifiers import generate_identifier


class TestGenerateIdentifier:
    def test_format(self):
        """Generated identifiers should be 26 uppercase alphanumeric characters."""
        identifier = generate_identifier()

        assert len(identifier) == 26
        assert identifier.isupper()
        assert all(c.isalnum() for c in identifier)

    def test_encodes_session_start(self):
        """The session start should become the ULID time component."""
        identifier = generate_identifier(1709285400.25)
        assert ULID.from_str(identifier).timestamp == 1709285400.25

    def test_sortable_by_session_start(self):
        earlier = generate_identifier(1704067200.0)
        later = generate_identifier(1717200000.0)
        assert earlier < later

    def test_pre_epoch_session_uses_current_time(self):
        identifier = generate_identifier(-10.0)
        assert ULID.from_str(identifier).timestamp > 0

    def test_unique(self):
        assert len({generate_identifier(1709285400.0) for _ in range(100)}) == 100
