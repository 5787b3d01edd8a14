#!/usr/bin/env python3
"""
bit_string_field.py - Enumerated fields within EMV bit strings

An enumerated bit-string field names one pattern of bits, for example
"Offline data authentication was not performed" for TVR byte 1 bit 8.
The field reports its label when a value carries the pattern and can
describe where the pattern lives.

Usage:
    from bit_string_field import EnumeratedBitStringField
    from bit_package import BitPackage, from_hex
    from emv_bit import EmvBit

    field = EnumeratedBitStringField(BitPackage.set_of(EmvBit(3, 8, True)), 'V1')
    field.get_value_in(from_hex('000080'))     # 'V1'
    field.get_position_in(from_hex('000000'))  # '000080 (Byte 3 Bit 8)'
"""

from dataclasses import dataclass
from typing import Optional

from bit_errors import InvalidFieldError
from bit_package import BitPackage, hex_of


@dataclass(frozen=True)
class EnumeratedBitStringField:
    """Label recognised when every bit of a package holds its expected value."""
    package: BitPackage
    label: str

    def __post_init__(self):
        if not isinstance(self.package, BitPackage):
            object.__setattr__(self, 'package', BitPackage(self.package))
        if len(self.package) == 0:
            raise InvalidFieldError("Field needs at least one bit")
        if not isinstance(self.label, str) or not self.label:
            raise InvalidFieldError(f"Field label must be a non-empty string, got {self.label!r}")

    def get_value_in(self, buffer: bytes) -> Optional[str]:
        """Label when buffer carries the pattern, otherwise None."""
        if self.package.matches(buffer):
            return self.label
        return None

    def get_position_in(self, buffer: Optional[bytes] = None) -> str:
        """
        Describe where the field's bits live.

        Without a buffer, every bit is listed with its expected value. With a
        buffer, the mask of the field over a same-length buffer is prefixed in
        hex; single-bit fields then drop the "= v" suffix since the hex
        already shows it.
        """
        if buffer is None:
            return ', '.join(bit.describe() for bit in self.package)
        include_value = len(self.package) > 1
        positions = ', '.join(bit.to_label(include_value) for bit in self.package)
        return f"{hex_of(self.package.mask(buffer))} ({positions})"

    def get_start_bytes_offset(self) -> int:
        return self.package.min_byte_number - 1

    def get_length_in_bytes(self) -> int:
        return self.package.max_byte_number - self.package.min_byte_number + 1

    def __str__(self) -> str:
        return f"{self.label}: {self.get_position_in()}"
