"""Primitives - BN254 field arithmetic and curve point encodings."""

from zkey_ark.primitives.curve import (
    G1_GENERATOR,
    G2_GENERATOR,
    G1Point,
    G2Point,
    decode_g1,
    decode_g1_compressed,
    decode_g2,
    decode_g2_compressed,
    encode_g1,
    encode_g1_compressed,
    encode_g2,
    encode_g2_compressed,
)
from zkey_ark.primitives.field import (
    BN254_Q,
    BN254_R,
    FQ,
    FQ_MONT,
    FR,
    FR_MONT2,
    FieldCodec,
    Fq,
    Fq2,
    Fr,
)

__all__ = [
    # Field
    "Fq",
    "Fr",
    "Fq2",
    "BN254_Q",
    "BN254_R",
    "FieldCodec",
    "FQ",
    "FQ_MONT",
    "FR",
    "FR_MONT2",
    # Curve
    "G1Point",
    "G2Point",
    "G1_GENERATOR",
    "G2_GENERATOR",
    "decode_g1",
    "encode_g1",
    "decode_g2",
    "encode_g2",
    "decode_g1_compressed",
    "encode_g1_compressed",
    "decode_g2_compressed",
    "encode_g2_compressed",
]
