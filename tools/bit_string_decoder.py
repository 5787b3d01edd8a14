#!/usr/bin/env python3
"""
bit_string_decoder.py - Schema-driven decoding of EMV bit strings

Loads a bit-string schema (YAML) listing the enumerated fields of one EMV
tag and decodes values against every field at once.

Schema format:
    name: tvr
    tag: "95"
    description: Terminal Verification Results
    length: 5
    fields:
      - label: Offline data authentication was not performed
        bits: ["(1,8)=1"]
      - label: Unrecognised CVM
        bits:
          - {byte: 3, bit: 7, value: 1}
    test_vectors:
      - name: oda_not_performed
        payload: "8000000000"
        expected: [Offline data authentication was not performed]

Bit notations:
    "(3,8)=1"            compact
    "Byte 3 Bit 8 = 1"   descriptive (as printed by EmvBit.describe)
    {byte: 3, bit: 8, value: 1}

Usage:
    from bit_string_decoder import BitStringDecoder, load_schema

    decoder = load_schema('schemas/tvr.yaml')
    result = decoder.decode('8000000000')
    for field in result.matched:
        print(field.label, field.position)
"""

import logging
import re
import yaml
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Union

from ber_tlv import parse_tlvs, find_tlv
from bit_errors import BitStringError, MalformedHexError, SchemaError
from bit_package import BitPackage, from_hex, hex_of, label_for
from bit_string_field import EnumeratedBitStringField
from emv_bit import EmvBit


logger = logging.getLogger(__name__)


_COMPACT_RE = re.compile(r'\(\s*(\d+)\s*,\s*(\d+)\s*\)\s*=\s*([01])')
_DESCRIPTIVE_RE = re.compile(r'byte\s+(\d+)\s*,?\s+bit\s+(\d+)\s*=\s*([01])', re.IGNORECASE)


def parse_bit(spec: Union[str, Dict[str, Any]]) -> EmvBit:
    """
    Parse one bit notation into an EmvBit.

    Raises:
        SchemaError: Unknown notation
        InvalidBitError: Byte or bit number out of range
    """
    if isinstance(spec, dict):
        if 'byte' not in spec or 'bit' not in spec:
            raise SchemaError(f"Bit mapping needs 'byte' and 'bit': {spec}")
        value = spec.get('value', 1)
        if value not in (0, 1, True, False):
            raise SchemaError(f"Bit value must be 0 or 1: {spec}")
        return EmvBit(spec['byte'], spec['bit'], bool(value))

    if isinstance(spec, str):
        text = spec.strip()
        for pattern in (_COMPACT_RE, _DESCRIPTIVE_RE):
            match = pattern.fullmatch(text)
            if match:
                return EmvBit(int(match.group(1)), int(match.group(2)), match.group(3) == '1')

    raise SchemaError(f"Unknown bit notation: {spec!r}")


@dataclass
class DecodedField:
    """A schema field found in a value."""
    label: str
    position: str
    start_bytes_offset: int
    length_in_bytes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'position': self.position,
            'start_bytes_offset': self.start_bytes_offset,
            'length_in_bytes': self.length_in_bytes,
        }


@dataclass
class DecodeResult:
    """Result of decoding a value against a schema."""
    value: str
    matched: List[DecodedField] = field(default_factory=list)
    set_bits: str = ''
    warnings: List[str] = field(default_factory=list)

    @property
    def labels(self) -> List[str]:
        return [f.label for f in self.matched]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': self.value,
            'matched': [f.to_dict() for f in self.matched],
            'set_bits': self.set_bits,
            'warnings': self.warnings,
        }


@dataclass
class VectorResult:
    """Result of a single schema test vector."""
    name: str
    passed: bool
    payload_hex: str = ""
    expected: List[str] = field(default_factory=list)
    actual: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'passed': self.passed,
            'payload': self.payload_hex,
            'expected': self.expected,
            'actual': self.actual,
            'errors': self.errors,
        }


@dataclass
class ValidationResult:
    """Results of running every test vector of a schema."""
    schema_name: str
    vector_results: List[VectorResult] = field(default_factory=list)

    @property
    def tests_passed(self) -> int:
        return sum(1 for v in self.vector_results if v.passed)

    @property
    def tests_failed(self) -> int:
        return sum(1 for v in self.vector_results if not v.passed)

    @property
    def total_tests(self) -> int:
        return len(self.vector_results)

    @property
    def all_passed(self) -> bool:
        return self.tests_failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'schema': self.schema_name,
            'tests_passed': self.tests_passed,
            'tests_failed': self.tests_failed,
            'total_tests': self.total_tests,
            'all_passed': self.all_passed,
            'vector_results': [v.to_dict() for v in self.vector_results],
        }


class BitStringDecoder:
    """
    Decoder for every enumerated field of one bit-string schema.

    Fields are built once at construction; decoding is read-only.
    """

    def __init__(self, schema: Dict[str, Any]):
        if not isinstance(schema, dict):
            raise SchemaError(f"Schema must be a mapping, got {type(schema).__name__}")
        self.schema = schema
        self.name = schema.get('name', 'unknown')
        self.tag = self._normalize_tag(schema.get('tag'))
        self.description = schema.get('description', '')
        self.length = schema.get('length')
        if self.length is not None and (not isinstance(self.length, int) or self.length < 1):
            raise SchemaError(f"Schema '{self.name}': length must be a positive integer")
        self.fields = self._build_fields(schema.get('fields'))
        self.test_vectors = self._check_test_vectors(schema.get('test_vectors'))

    def _normalize_tag(self, tag: Any) -> Optional[str]:
        if tag is None:
            return None
        tag = str(tag).upper()
        try:
            if not from_hex(tag):
                raise SchemaError(f"Schema '{self.name}': tag must not be empty")
        except MalformedHexError as e:
            raise SchemaError(f"Schema '{self.name}': invalid tag: {e}") from e
        return tag

    def _check_test_vectors(self, vectors: Any) -> List[Dict[str, Any]]:
        if vectors is None:
            return []
        if not isinstance(vectors, list):
            raise SchemaError(f"Schema '{self.name}': 'test_vectors' must be a list")
        for i, tv in enumerate(vectors):
            if not isinstance(tv, dict):
                raise SchemaError(f"Schema '{self.name}': test vector {i} must be a mapping")
            name = tv.get('name', i)
            if 'payload' not in tv:
                raise SchemaError(f"Test vector '{name}': missing 'payload'")
            expected = tv.get('expected')
            if not isinstance(expected, list) or not all(isinstance(e, str) for e in expected):
                raise SchemaError(f"Test vector '{name}': 'expected' must be a list of labels")
        return vectors

    def _build_fields(self, field_defs: Any) -> List[EnumeratedBitStringField]:
        if not isinstance(field_defs, list) or not field_defs:
            raise SchemaError(f"Schema '{self.name}': 'fields' must be a non-empty list")

        fields = []
        for i, field_def in enumerate(field_defs):
            if not isinstance(field_def, dict):
                raise SchemaError(f"Schema '{self.name}': field {i} must be a mapping")
            label = field_def.get('label', '')
            bit_specs = field_def.get('bits')
            if not isinstance(bit_specs, list):
                raise SchemaError(f"Field '{label or i}': 'bits' must be a list")
            try:
                package = BitPackage(parse_bit(spec) for spec in bit_specs)
                enumerated = EnumeratedBitStringField(package, label)
            except SchemaError:
                raise
            except BitStringError as e:
                raise SchemaError(f"Field '{label or i}': {e}") from e

            if self.length is not None and package.max_byte_number > self.length:
                raise SchemaError(
                    f"Field '{label}': byte {package.max_byte_number} "
                    f"beyond {self.length} byte value")
            fields.append(enumerated)
        return fields

    def decode(self, value: Union[str, bytes]) -> DecodeResult:
        """
        Decode a value against every field.

        Args:
            value: Hex string or raw bytes

        Returns:
            DecodeResult listing matched fields in schema order

        Raises:
            MalformedHexError: value is a malformed hex string
        """
        buffer = from_hex(value) if isinstance(value, str) else bytes(value)
        value_hex = hex_of(buffer)
        result = DecodeResult(value=value_hex, set_bits=label_for(value_hex))

        if self.length is not None and len(buffer) != self.length:
            warning = f"Expected {self.length} bytes, got {len(buffer)}"
            logger.warning("%s: %s", self.name, warning)
            result.warnings.append(warning)

        for f in self.fields:
            if f.get_value_in(buffer) is None:
                continue
            logger.debug("%s: %s matched %s", self.name, value_hex, f.label)
            result.matched.append(DecodedField(
                label=f.label,
                position=f.get_position_in(buffer),
                start_bytes_offset=f.get_start_bytes_offset(),
                length_in_bytes=f.get_length_in_bytes(),
            ))
        return result

    def decode_tlv(self, data: Union[str, bytes]) -> Optional[DecodeResult]:
        """
        Find the schema tag in BER-TLV data and decode its value.

        Returns:
            DecodeResult, or None when the tag is not present

        Raises:
            SchemaError: Schema has no tag
            TLVParseError: data is not valid BER-TLV
        """
        if self.tag is None:
            raise SchemaError(f"Schema '{self.name}' has no tag to look up")
        tlv = find_tlv(parse_tlvs(data), self.tag)
        if tlv is None:
            logger.debug("%s: tag %s not found", self.name, self.tag)
            return None
        return self.decode(tlv.value)

    def describe(self) -> List[str]:
        """One line per field: label and bit positions."""
        return [str(f) for f in self.fields]

    def field_for(self, label: str) -> Optional[EnumeratedBitStringField]:
        for f in self.fields:
            if f.label == label:
                return f
        return None


def load_schema(path: str) -> BitStringDecoder:
    """Load a YAML bit-string schema into a decoder."""
    with open(path, encoding='utf-8') as f:
        schema = yaml.safe_load(f)
    return BitStringDecoder(schema)


def decode_value(schema: Dict[str, Any], value: Union[str, bytes]) -> DecodeResult:
    """Convenience function to decode one value."""
    return BitStringDecoder(schema).decode(value)


def run_test_vectors(decoder: BitStringDecoder) -> ValidationResult:
    """Decode each schema test vector and compare matched labels."""
    result = ValidationResult(schema_name=decoder.name)
    for i, tv in enumerate(decoder.test_vectors):
        name = tv.get('name', f'vector_{i}')
        payload = str(tv['payload'])
        expected = list(tv['expected'])
        vector = VectorResult(name=name, passed=False, payload_hex=payload, expected=expected)
        try:
            vector.actual = decoder.decode(payload).labels
        except BitStringError as e:
            vector.errors.append(str(e))
            result.vector_results.append(vector)
            continue

        missing = [label for label in expected if label not in vector.actual]
        unexpected = [label for label in vector.actual if label not in expected]
        for label in missing:
            vector.errors.append(f"Missing: {label}")
        for label in unexpected:
            vector.errors.append(f"Unexpected: {label}")
        vector.passed = not vector.errors
        if not vector.passed:
            logger.info("%s: vector %s failed", decoder.name, name)
        result.vector_results.append(vector)
    return result
