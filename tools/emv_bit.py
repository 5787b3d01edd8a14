#!/usr/bin/env python3
"""
emv_bit.py - Single bit addressing within an EMV byte string

EMV specifications number bytes left to right and bits right to left
within each byte, both starting at 1. Bit 8 is the most significant bit
(0x80) and bit 1 the least significant (0x01).

Usage:
    from emv_bit import EmvBit

    bit = EmvBit(3, 8, True)
    bit.describe()        # 'Byte 3 Bit 8 = 1'
    bit.to_label(False)   # 'Byte 3 Bit 8'
"""

from dataclasses import dataclass
from typing import Tuple

from bit_errors import InvalidBitError


BITS_PER_BYTE = 8


@dataclass(frozen=True)
class EmvBit:
    """One bit of a byte string with the value it is expected to hold."""
    byte_number: int
    bit_number: int
    set: bool = True

    def __post_init__(self):
        for name in ('byte_number', 'bit_number'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidBitError(f"{name} must be an integer, got {value!r}")
        if self.byte_number < 1:
            raise InvalidBitError(f"Byte number must be >= 1, got {self.byte_number}")
        if not 1 <= self.bit_number <= BITS_PER_BYTE:
            raise InvalidBitError(
                f"Bit number must be in 1..{BITS_PER_BYTE}, got {self.bit_number}")
        if not isinstance(self.set, bool):
            raise InvalidBitError(f"Expected value must be a bool, got {self.set!r}")

    def is_set(self) -> bool:
        return self.set

    @property
    def value(self) -> str:
        return '1' if self.set else '0'

    @property
    def byte_index(self) -> int:
        """Zero-based index of the byte holding this bit."""
        return self.byte_number - 1

    @property
    def bit_mask(self) -> int:
        """Mask selecting this bit within its byte."""
        return 1 << (self.bit_number - 1)

    def describe(self) -> str:
        return self.to_label(True)

    def to_label(self, include_value: bool) -> str:
        label = f"Byte {self.byte_number} Bit {self.bit_number}"
        if include_value:
            label += f" = {self.value}"
        return label

    def sort_key(self) -> Tuple[int, int, bool]:
        # Bytes ascending, bits MSB first, clear before set
        return self.byte_number, -self.bit_number, self.set

    def __lt__(self, other: 'EmvBit') -> bool:
        if not isinstance(other, EmvBit):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        return self.describe()
