"""
Tests for BER-TLV parsing.
"""

import pytest

from ber_tlv import (
    BerTlv, TLVParseError,
    encode_length, find_tlv, is_constructed, parse_length, parse_tag, parse_tlvs,
)
from bit_errors import BitStringError, MalformedHexError


RESPONSE_TEMPLATE = "770B9F27018095050000000000"


class TestParseTag:
    """Tests for tag parsing."""

    @pytest.mark.parametrize("data,expected", [
        ("95", "95"),
        ("9F2701", "9F27"),
        ("DF810101", "DF8101"),
    ])
    def test_tag_lengths(self, data, expected):
        tag, offset = parse_tag(bytes.fromhex(data), 0)
        assert tag == bytes.fromhex(expected)
        assert offset == len(tag)

    def test_no_tag(self):
        with pytest.raises(TLVParseError, match="No tag at offset 0"):
            parse_tag(b"", 0)

    def test_truncated_multi_byte_tag(self):
        with pytest.raises(TLVParseError, match="runs past end of data"):
            parse_tag(bytes.fromhex("9F"), 0)

    @pytest.mark.parametrize("tag,constructed", [
        ("77", True), ("70", True), ("95", False), ("9F27", False), ("", False),
    ])
    def test_is_constructed(self, tag, constructed):
        assert is_constructed(bytes.fromhex(tag)) == constructed


class TestLength:
    """Tests for length parsing and encoding."""

    @pytest.mark.parametrize("data,length,offset", [
        ("05", 5, 1),
        ("7F", 127, 1),
        ("8180", 128, 2),
        ("820100", 256, 3),
    ])
    def test_definite_lengths(self, data, length, offset):
        assert parse_length(bytes.fromhex(data), 0) == (length, offset)

    def test_indefinite_length(self):
        with pytest.raises(TLVParseError, match="Indefinite length"):
            parse_length(bytes.fromhex("80"), 0)

    def test_truncated_long_form(self):
        with pytest.raises(TLVParseError, match="runs past end of data"):
            parse_length(bytes.fromhex("8201"), 0)

    @pytest.mark.parametrize("length,expected", [
        (0, "00"), (0x7F, "7F"), (0x80, "8180"), (0x100, "820100"),
    ])
    def test_encode_length(self, length, expected):
        assert encode_length(length) == bytes.fromhex(expected)


class TestParseTlvs:
    """Tests for parse_tlvs."""

    def test_primitive_sequence(self):
        tlvs = parse_tlvs("9F2701809505" + "8000000000")
        assert [t.tag_hex for t in tlvs] == ["9F27", "95"]
        assert tlvs[1].value_hex == "8000000000"
        assert not tlvs[0].constructed

    def test_padding_skipped(self):
        tlvs = parse_tlvs("00009F2701800000")
        assert len(tlvs) == 1
        assert tlvs[0].value_hex == "80"

    def test_constructed(self):
        tlvs = parse_tlvs(RESPONSE_TEMPLATE)
        assert len(tlvs) == 1
        assert tlvs[0].constructed
        assert [c.tag_hex for c in tlvs[0].children] == ["9F27", "95"]
        assert str(tlvs[0]) == "77: [9F27: 80, 95: 0000000000]"

    def test_constructed_not_parsed_on_request(self):
        tlvs = parse_tlvs(RESPONSE_TEMPLATE, parse_constructed=False)
        assert tlvs[0].children is None
        assert tlvs[0].value_hex == RESPONSE_TEMPLATE[4:]

    def test_constructed_with_invalid_value_kept_primitive(self):
        tlvs = parse_tlvs("7002DF81")
        assert not tlvs[0].constructed
        assert tlvs[0].value_hex == "DF81"

    def test_value_truncated_to_data(self):
        tlvs = parse_tlvs("950380")
        assert tlvs[0].value_hex == "80"

    def test_bytes_input(self):
        assert parse_tlvs(bytes.fromhex("9F270140"))[0].value == b"\x40"

    def test_missing_length(self):
        with pytest.raises(TLVParseError, match="Failed parsing 95: No length at offset 1"):
            parse_tlvs("95")

    def test_malformed_hex(self):
        with pytest.raises(MalformedHexError):
            parse_tlvs("770")

    def test_error_is_bit_string_error(self):
        with pytest.raises(BitStringError):
            parse_tlvs("9F")


class TestEncodeAndFind:
    """Tests for re-encoding and searching parsed objects."""

    def test_to_hex_roundtrip(self):
        assert parse_tlvs(RESPONSE_TEMPLATE)[0].to_hex() == RESPONSE_TEMPLATE

    def test_long_form_roundtrip(self):
        data = "9F058180" + "00" * 128
        assert parse_tlvs(data)[0].to_hex() == data

    def test_to_binary_primitive(self):
        assert BerTlv(b"\x95", bytes(5)).to_binary() == bytes.fromhex("95050000000000")

    def test_find_nested(self):
        tlv = find_tlv(parse_tlvs(RESPONSE_TEMPLATE), "95")
        assert tlv is not None
        assert tlv.value_hex == "0000000000"

    def test_find_by_bytes(self):
        tlv = find_tlv(parse_tlvs(RESPONSE_TEMPLATE), b"\x9f\x27")
        assert tlv.value_hex == "80"

    def test_find_lowercase_tag(self):
        assert find_tlv(parse_tlvs(RESPONSE_TEMPLATE), "9f27").value_hex == "80"

    def test_find_missing(self):
        assert find_tlv(parse_tlvs(RESPONSE_TEMPLATE), "9B") is None

    def test_find_from_object(self):
        template = parse_tlvs(RESPONSE_TEMPLATE)[0]
        assert template.find_tlv("77") is template
        assert template.find_tlv("9F27").value_hex == "80"
