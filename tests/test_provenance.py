"""
Tests for the provenance codec.
"""

import pytest

from nwb_ephys_format.codecs.provenance import (
    ProvenanceRecord,
    decode_provenance,
    encode_provenance,
    normalize_source_entries,
)
from nwb_ephys_format.constants import ChannelType
from nwb_ephys_format.errors import MissingAttributeError


class TestNormalizeSourceEntries:
    """Tests for the normalization stage."""

    def test_single_joined_string(self):
        entries = normalize_source_entries(["Device=ITC18USB_Dev_0;Sweep=3;AD=1"])
        assert entries == [("Device", "ITC18USB_Dev_0"), ("Sweep", "3"), ("AD", "1")]

    def test_multiple_strings(self):
        entries = normalize_source_entries(["Device=ITC18USB_Dev_0", "Sweep=3", "AD=1"])
        assert entries == [("Device", "ITC18USB_Dev_0"), ("Sweep", "3"), ("AD", "1")]

    def test_multiple_strings_are_not_split(self):
        """Only a single raw string is split on ';'."""
        entries = normalize_source_entries(["Device=a;b", "Sweep=1"])
        assert entries == [("Device", "a;b"), ("Sweep", "1")]

    def test_empty_and_malformed_entries_dropped(self):
        entries = normalize_source_entries(["Device=dev;;garbage; Sweep = 2 ;"])
        assert entries == [("Device", "dev"), ("Sweep", "2")]

    def test_value_may_contain_equals(self):
        assert normalize_source_entries(["Device=a=b"]) == [("Device", "a=b")]


class TestDecodeProvenance:
    """Tests for decode_provenance."""

    def test_full_record(self):
        record = decode_provenance(
            ["Device=ITC18USB_Dev_0;Sweep=12;ElectrodeNumber=1;AD=3"]
        )
        assert record == ProvenanceRecord(
            device="ITC18USB_Dev_0",
            sweep=12,
            electrode_number=1,
            channel_type=ChannelType.ADC,
            channel_number=3,
        )

    def test_legacy_layout_matches_joined_layout(self):
        joined = decode_provenance(["Device=dev;Sweep=1;DA=0"])
        legacy = decode_provenance(["Device=dev", "Sweep=1", "DA=0"])
        assert joined == legacy

    def test_ttl_with_bit(self):
        record = decode_provenance(["Device=dev;Sweep=0;TTL=1;TTLBit=3"])
        assert record.channel_type == ChannelType.TTL
        assert record.channel_number == 1
        assert record.ttl_bit == 3

    def test_later_entries_overwrite(self):
        """Later entries for the same key win; type keys overwrite each other."""
        record = decode_provenance(["Sweep=1;AD=3;Sweep=2;DA=5"])
        assert record.sweep == 2
        assert record.channel_type == ChannelType.DAC
        assert record.channel_number == 5

    def test_unknown_keys_ignored(self):
        record = decode_provenance(["Device=dev;Comment=hello;Sweep=4"])
        assert record == ProvenanceRecord(device="dev", sweep=4)

    def test_keys_are_case_sensitive(self):
        record = decode_provenance(["device=dev;ad=3"])
        assert record == ProvenanceRecord()

    def test_nan_values_are_absent(self):
        record = decode_provenance(["Device=dev;ElectrodeNumber=NaN;TTLBit=nan;AD=1"])
        assert record.electrode_number is None
        assert record.ttl_bit is None
        assert record.channel_number == 1

    def test_float_integer_values(self):
        assert decode_provenance(["Sweep=3.0"]).sweep == 3

    @pytest.mark.parametrize("raw", [None, [], "Device=dev", b"Device=dev"])
    def test_missing_attribute(self, raw):
        with pytest.raises(MissingAttributeError):
            decode_provenance(raw)

    def test_non_text_attribute(self):
        with pytest.raises(MissingAttributeError):
            decode_provenance([1, 2])


class TestEncodeProvenance:
    """Tests for encode_provenance."""

    def test_canonical_order(self):
        record = ProvenanceRecord(
            device="dev",
            sweep=1,
            electrode_number=0,
            channel_type=ChannelType.TTL,
            channel_number=2,
            ttl_bit=3,
        )
        assert encode_provenance(record) == "Device=dev;Sweep=1;ElectrodeNumber=0;TTL=2;TTLBit=3"

    def test_absent_fields_omitted(self):
        record = ProvenanceRecord(device="dev", channel_type=ChannelType.ADC, channel_number=0)
        assert encode_provenance(record) == "Device=dev;AD=0"

    def test_other_type_cannot_be_encoded(self):
        with pytest.raises(ValueError):
            encode_provenance(ProvenanceRecord(channel_type=ChannelType.OTHER, channel_number=1))

    def test_type_without_number(self):
        with pytest.raises(ValueError):
            encode_provenance(ProvenanceRecord(channel_type=ChannelType.ADC))

    def test_device_with_separator(self):
        with pytest.raises(ValueError):
            encode_provenance(ProvenanceRecord(device="a;b"))

    @pytest.mark.parametrize("device", [" dev", "dev ", " dev ", "dev\t"])
    def test_device_with_surrounding_whitespace(self, device):
        """Decoding strips values, so such names would not survive a round trip."""
        with pytest.raises(ValueError):
            encode_provenance(ProvenanceRecord(device=device))

    @pytest.mark.parametrize(
        "record",
        [
            ProvenanceRecord(),
            ProvenanceRecord(device="ITC18USB_Dev_0", sweep=0),
            ProvenanceRecord(device="ITC 18 USB", sweep=0),
            ProvenanceRecord(device="dev", sweep=7, electrode_number=2,
                             channel_type=ChannelType.ADC, channel_number=4),
            ProvenanceRecord(channel_type=ChannelType.DAC, channel_number=1),
            ProvenanceRecord(device="dev", channel_type=ChannelType.TTL,
                             channel_number=0, ttl_bit=2),
        ],
    )
    def test_decode_inverts_encode(self, record):
        assert decode_provenance([encode_provenance(record)]) == record
