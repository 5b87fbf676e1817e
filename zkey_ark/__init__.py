"""
zkey-ark: snarkjs .zkey to compact canonical proving-key converter.

Reads a Groth16 proving key from the section-based zkey container (BN254,
Montgomery-form coordinates) and rewrites it in a fixed-order format with
compressed points and no section table.

This package provides:
- BN254 field codecs and Fq2 arithmetic (via galois)
- G1/G2 point encodings, uncompressed and compressed
- zkey container reader and writer
- Canonical format writer and reader
- Conversion driver reporting input/output sizes

Usage:
    from zkey_ark import convert

    with open("circuit.zkey", "rb") as f:
        ark_bytes = convert(f.read())
"""

from zkey_ark.convert import ConversionResult, ConvertOptions, convert, convert_with_report
from zkey_ark.errors import (
    ConversionError,
    InconsistentDimensions,
    InvalidPoint,
    MalformedField,
    MissingSection,
    SectionSizeMismatch,
    TruncatedInput,
    UnsupportedFormat,
)
from zkey_ark.protocol import ProvingKey, read_ark, read_zkey, write_ark, write_zkey

__all__ = [
    # Driver
    "convert",
    "convert_with_report",
    "ConvertOptions",
    "ConversionResult",
    # Model and codecs
    "ProvingKey",
    "read_zkey",
    "write_zkey",
    "read_ark",
    "write_ark",
    # Errors
    "ConversionError",
    "UnsupportedFormat",
    "TruncatedInput",
    "SectionSizeMismatch",
    "MissingSection",
    "InconsistentDimensions",
    "MalformedField",
    "InvalidPoint",
]
