#!/usr/bin/env python3
"""
bit_errors.py - Error types for EMV bit-string decoding

All errors are raised while building values (parsing hex, creating bits,
packages, fields or schemas). Queries against a buffer never raise.
"""


class BitStringError(ValueError):
    """Base class for bit-string construction errors."""


class MalformedHexError(BitStringError):
    """Hex string has odd length or a non-hex character."""


class InvalidBitError(BitStringError):
    """Byte or bit number out of range."""


class InconsistentPackageError(BitStringError):
    """Same bit expected to be both set and clear."""


class InvalidFieldError(BitStringError):
    """Field with an empty label or no bits."""


class SchemaError(BitStringError):
    """Bit-string schema is structurally invalid."""
