#!/usr/bin/env python3
"""
bit_package.py - Ordered groups of EMV bits matched against byte buffers

A BitPackage is an ordered, immutable collection of EmvBit locators. It
answers two questions about a byte buffer: does every bit hold its
expected value (matches), and which bits would the package turn on
(mask).

Also provides the hex codec used across the tools and helpers for
converting between hex values and sets of bits.

Usage:
    from bit_package import BitPackage, from_hex, hex_of
    from emv_bit import EmvBit

    package = BitPackage.set_of(EmvBit(3, 8, True), EmvBit(3, 7, False))
    package.matches(from_hex('000080'))       # True
    hex_of(package.mask(from_hex('000000')))  # '000080'
"""

import re
from typing import Iterable, Iterator, Tuple, Union

from bit_errors import MalformedHexError, InconsistentPackageError, InvalidBitError
from emv_bit import EmvBit, BITS_PER_BYTE


_HEX_RE = re.compile(r'[0-9A-Fa-f]*')


def from_hex(hex_str: str) -> bytes:
    """
    Parse a hex string into a byte buffer.

    Args:
        hex_str: Even number of hex digits, any case, no separators

    Returns:
        Buffer of len(hex_str) // 2 bytes

    Raises:
        MalformedHexError: On odd length or non-hex characters
    """
    if not isinstance(hex_str, str):
        raise MalformedHexError(f"Expected hex string, got {type(hex_str).__name__}")
    if len(hex_str) % 2 != 0:
        raise MalformedHexError(f"Odd-length hex string: {hex_str!r}")
    if not _HEX_RE.fullmatch(hex_str):
        raise MalformedHexError(f"Non-hex character in: {hex_str!r}")
    return bytes.fromhex(hex_str)


def hex_of(buffer: Union[bytes, bytearray]) -> str:
    """Render a buffer as uppercase hex, two digits per byte."""
    return ''.join(f'{b:02X}' for b in buffer)


def bit_is_set(buffer: bytes, bit: EmvBit) -> bool:
    """Actual state of the addressed bit. Buffer must cover the bit's byte."""
    return bool(buffer[bit.byte_index] & bit.bit_mask)


class BitPackage:
    """
    Ordered collection of EmvBit locators.

    Insertion order is kept for rendering only; matching does not depend on
    it. Repeated locators are collapsed to their first occurrence and a bit
    expected both set and clear is rejected.
    """

    __slots__ = ('_bits',)

    def __init__(self, bits: Iterable[EmvBit] = ()):
        ordered = []
        seen = {}
        for bit in bits:
            if not isinstance(bit, EmvBit):
                raise InvalidBitError(f"Expected EmvBit, got {type(bit).__name__}")
            position = (bit.byte_number, bit.bit_number)
            if position in seen:
                if seen[position] != bit.set:
                    raise InconsistentPackageError(
                        f"Byte {position[0]} Bit {position[1]} expected both set and clear")
                continue
            seen[position] = bit.set
            ordered.append(bit)
        self._bits: Tuple[EmvBit, ...] = tuple(ordered)

    @classmethod
    def set_of(cls, *bits: EmvBit) -> 'BitPackage':
        return cls(bits)

    @property
    def bits(self) -> Tuple[EmvBit, ...]:
        return self._bits

    @property
    def min_byte_number(self) -> int:
        return min(bit.byte_number for bit in self._bits)

    @property
    def max_byte_number(self) -> int:
        return max(bit.byte_number for bit in self._bits)

    def matches(self, buffer: bytes) -> bool:
        """True when every bit holds its expected value in buffer."""
        if self._bits and len(buffer) < self.max_byte_number:
            return False
        return all(bit_is_set(buffer, bit) == bit.set for bit in self._bits)

    def mask(self, buffer: bytes) -> bytes:
        """
        Buffer of the same length with only the package's set bits on.

        Bits expected clear constrain matching but contribute nothing here.
        Bits beyond the buffer are dropped.
        """
        out = bytearray(len(buffer))
        for bit in self._bits:
            if bit.set and bit.byte_index < len(out):
                out[bit.byte_index] |= bit.bit_mask
        return bytes(out)

    def __len__(self) -> int:
        return len(self._bits)

    def __iter__(self) -> Iterator[EmvBit]:
        return iter(self._bits)

    def __getitem__(self, index):
        return self._bits[index]

    def __contains__(self, bit) -> bool:
        return bit in self._bits

    def __eq__(self, other) -> bool:
        if not isinstance(other, BitPackage):
            return NotImplemented
        return self._bits == other._bits

    def __hash__(self) -> int:
        return hash(('bit_package', self._bits))

    def __repr__(self) -> str:
        return f"BitPackage({', '.join(bit.describe() for bit in self._bits)})"


def bits_from_hex(hex_str: str, first_byte_number: int = 1) -> Tuple[EmvBit, ...]:
    """
    Every bit of a hex value as a sorted tuple of EmvBit.

    Args:
        hex_str: Value to explode
        first_byte_number: Byte number given to the first byte

    Returns:
        One EmvBit per bit position, set reflecting the actual bit
    """
    buffer = from_hex(hex_str)
    bits = []
    for i, b in enumerate(buffer):
        byte_number = i + first_byte_number
        for j in range(BITS_PER_BYTE - 1, -1, -1):
            bits.append(EmvBit(byte_number, j + 1, bool((b >> j) & 1)))
    return tuple(sorted(bits))


def bits_to_hex(bits: Iterable[EmvBit], length_in_bytes: int) -> str:
    """Hex of a length_in_bytes buffer with each set bit turned on."""
    out = bytearray(length_in_bytes)
    for bit in bits:
        if not bit.set:
            continue
        if bit.byte_index >= length_in_bytes:
            raise InvalidBitError(
                f"Byte {bit.byte_number} outside {length_in_bytes} byte field")
        out[bit.byte_index] |= bit.bit_mask
    return hex_of(out)


def label_for(hex_str: str) -> str:
    """Label the set bits (those = 1) of a hex value."""
    return ','.join(bit.to_label(False) for bit in bits_from_hex(hex_str) if bit.set)
