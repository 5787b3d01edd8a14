#!/usr/bin/env python3
"""
ber_tlv.py - BER-TLV parsing for EMV data objects

Parses BER-TLV encoded data (as returned by READ RECORD, GENERATE AC and
friends) into primitive and constructed objects, and encodes them back.

Handles:
    - Multi-byte tags (low 5 bits of first byte all set)
    - Short and long form definite lengths
    - 0x00 padding between objects (EMV Specification Update 69)
    - Constructed tags whose value is not itself valid TLV (kept primitive)

Usage:
    from ber_tlv import parse_tlvs, find_tlv

    tlvs = parse_tlvs('770B9F27018095050000000000')
    tvr = find_tlv(tlvs, '95')
    tvr.value_hex   # '0000000000'
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from bit_errors import BitStringError
from bit_package import from_hex, hex_of


logger = logging.getLogger(__name__)


class TLVParseError(BitStringError):
    """BER-TLV data cannot be parsed."""


def is_constructed(tag_bytes: bytes) -> bool:
    """True when the tag's first byte has the constructed bit (0x20)."""
    return bool(tag_bytes) and bool(tag_bytes[0] & 0x20)


def parse_tag(data: bytes, offset: int) -> Tuple[bytes, int]:
    """
    Parse tag bytes from data.

    Returns:
        Tuple of (tag_bytes, next_offset)
    """
    if offset >= len(data):
        raise TLVParseError(f"No tag at offset {offset}")

    first_byte = data[offset]
    end = offset + 1

    # Multi-byte tag: subsequent bytes continue while bit 8 is set
    if (first_byte & 0x1F) == 0x1F:
        while True:
            if end >= len(data):
                raise TLVParseError(f"Tag at offset {offset} runs past end of data")
            byte = data[end]
            end += 1
            if not (byte & 0x80):
                break

    return bytes(data[offset:end]), end


def parse_length(data: bytes, offset: int) -> Tuple[int, int]:
    """
    Parse a definite length field.

    Returns:
        Tuple of (length, next_offset)
    """
    if offset >= len(data):
        raise TLVParseError(f"No length at offset {offset}")

    first_byte = data[offset]
    if not (first_byte & 0x80):
        return first_byte, offset + 1

    count = first_byte & 0x7F
    if count == 0:
        raise TLVParseError(f"Indefinite length at offset {offset} not supported")
    if offset + 1 + count > len(data):
        raise TLVParseError(f"Length field at offset {offset} runs past end of data")

    length = int.from_bytes(data[offset + 1:offset + 1 + count], 'big')
    return length, offset + 1 + count


def encode_length(length: int) -> bytes:
    """Definite length in short form up to 0x7F, long form above."""
    if length <= 0x7F:
        return bytes([length])
    size = (length.bit_length() + 7) // 8
    return bytes([0x80 | size]) + length.to_bytes(size, 'big')


@dataclass
class BerTlv:
    """
    One BER-TLV data object.

    children is None for primitive objects and a list for constructed ones.
    """
    tag: bytes
    value: bytes = b''
    children: Optional[List['BerTlv']] = None

    @property
    def tag_hex(self) -> str:
        return hex_of(self.tag)

    @property
    def value_hex(self) -> str:
        return hex_of(self.value)

    @property
    def constructed(self) -> bool:
        return self.children is not None

    def to_binary(self) -> bytes:
        if self.children is not None:
            value = b''.join(child.to_binary() for child in self.children)
        else:
            value = self.value
        return self.tag + encode_length(len(value)) + value

    def to_hex(self) -> str:
        return hex_of(self.to_binary())

    def find_tlv(self, tag: Union[str, bytes]) -> Optional['BerTlv']:
        """Depth-first search of this object and its children."""
        return find_tlv([self], tag)

    def __str__(self) -> str:
        if self.children is not None:
            return f"{self.tag_hex}: [{', '.join(str(c) for c in self.children)}]"
        return f"{self.tag_hex}: {self.value_hex}"


def parse_tlvs(data: Union[bytes, str], parse_constructed: bool = True) -> List[BerTlv]:
    """
    Parse a sequence of BER-TLV objects.

    Args:
        data: Raw bytes or hex string
        parse_constructed: Parse the value of constructed tags into children

    Returns:
        Top-level objects in order. Values longer than the remaining data
        are truncated to what is there.

    Raises:
        TLVParseError: Tag or length field is malformed
    """
    if isinstance(data, str):
        data = from_hex(data)

    tlvs = []
    pos = 0
    while pos < len(data):
        if data[pos] == 0x00:
            pos += 1
            continue

        tag, pos = parse_tag(data, pos)
        try:
            length, pos = parse_length(data, pos)
        except TLVParseError as e:
            raise TLVParseError(f"Failed parsing {hex_of(tag)}: {e}") from e
        value = bytes(data[pos:pos + length])
        pos += len(value)

        children = None
        if parse_constructed and is_constructed(tag):
            try:
                children = parse_tlvs(value, True)
            except TLVParseError as e:
                logger.debug("Keeping %s as primitive: %s", hex_of(tag), e)
        tlvs.append(BerTlv(tag, value, children))
    return tlvs


def find_tlv(tlvs: List[BerTlv], tag: Union[str, bytes]) -> Optional[BerTlv]:
    """First object with the given tag, searching constructed values depth-first."""
    if isinstance(tag, str):
        tag = from_hex(tag)
    for tlv in tlvs:
        if tlv.tag == tag:
            return tlv
        if tlv.children:
            found = find_tlv(tlv.children, tag)
            if found is not None:
                return found
    return None
