#!/usr/bin/env python3
"""
decode_bits.py - Decode an EMV bit-string value against a schema

Usage:
    python tools/decode_bits.py schemas/tvr.yaml 8000000000
    python tools/decode_bits.py schemas/tvr.yaml 8000000000 --json
    python tools/decode_bits.py schemas/tvr.yaml --describe
    python tools/decode_bits.py schemas/tvr.yaml --check
    python tools/decode_bits.py schemas/tvr.yaml 770B9F27018095058000000000 --tlv
"""

import argparse
import json
import logging
import sys
import yaml
from pathlib import Path

# Add tools to path
sys.path.insert(0, str(Path(__file__).parent))
from bit_errors import BitStringError
from bit_string_decoder import DecodeResult, ValidationResult, load_schema, run_test_vectors


def print_decoded(result: DecodeResult):
    """Print matched fields to console."""
    for warning in result.warnings:
        print(f"Warning: {warning}")
    if not result.matched:
        print("No fields matched.")
    for f in result.matched:
        print(f"{f.label}: {f.position}")
    print(f"Set bits: {result.set_bits or '-'}")


def print_validation(result: ValidationResult):
    """Print test vector results to console."""
    if result.total_tests == 0:
        print("No test vectors found in schema.")
        return

    print(f"Test Vectors: {result.tests_passed}/{result.total_tests} passed")
    for vr in result.vector_results:
        status = "PASS" if vr.passed else "FAIL"
        print(f"  {vr.name}: {status}")
        for error in vr.errors:
            print(f"    {error}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Decode an EMV bit-string value using a bit-string schema'
    )
    parser.add_argument('schema', help='Path to schema YAML file')
    parser.add_argument('value', nargs='?', help='Value to decode, in hex')
    parser.add_argument('--json', action='store_true',
                        help='Output results as JSON')
    parser.add_argument('--describe', action='store_true',
                        help='List the schema fields instead of decoding')
    parser.add_argument('--check', action='store_true',
                        help='Run the schema test vectors')
    parser.add_argument('--tlv', action='store_true',
                        help='Treat the value as BER-TLV and decode the schema tag')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')

    try:
        decoder = load_schema(args.schema)
    except (OSError, yaml.YAMLError, BitStringError) as e:
        print(f"Error loading schema: {e}", file=sys.stderr)
        sys.exit(1)

    if args.describe:
        for line in decoder.describe():
            print(line)
        return

    if args.check:
        validation = run_test_vectors(decoder)
        if args.json:
            print(json.dumps(validation.to_dict(), indent=2))
        else:
            print_validation(validation)
        sys.exit(0 if validation.all_passed else 1)

    if args.value is None:
        parser.error('value is required unless --describe or --check is given')

    try:
        if args.tlv:
            result = decoder.decode_tlv(args.value)
        else:
            result = decoder.decode(args.value)
    except BitStringError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if result is None:
        print(f"Error: tag {decoder.tag} not found", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_decoded(result)


if __name__ == '__main__':
    main()
