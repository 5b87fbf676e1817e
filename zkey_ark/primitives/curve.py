"""BN254 G1/G2 affine points and their byte encodings.

Two encodings are supported:

Uncompressed (zkey sections):
    G1 = x || y, G2 = x.c0 || x.c1 || y.c0 || y.c1, each coordinate through
    a FieldCodec (Montgomery form in zkey files). The all-zero block is the
    point at infinity.

Compressed (canonical output):
    G1 = x, G2 = x.c0 || x.c1, standard form, little-endian. The two top bits
    of the last byte carry flags: FLAG_NEGATIVE marks y as the larger of
    {y, -y}, FLAG_INFINITY marks the point at infinity (x must then be zero).
    The field moduli are below 2^254, so these bits are always free.
"""

from dataclasses import dataclass
from typing import Tuple

from zkey_ark.errors import InvalidPoint
from zkey_ark.primitives.field import (
    BN254_Q,
    FIELD_BYTES,
    FQ,
    FQ_MONT,
    FieldCodec,
    Fq,
    Fq2,
    Fq2Coeffs,
    fq2_is_negative,
    fq_is_negative,
    fq_sqrt,
)

# --- Curve Parameters ---

G1_B = Fq(3)
"""E: y^2 = x^3 + 3 over Fq."""

G2_B = Fq2(3, 0) * Fq2(9, 1).inverse()
"""E': y^2 = x^3 + 3/(u + 9) over Fq2 (D-type twist)."""

G1_UNCOMPRESSED_SIZE = 2 * FIELD_BYTES
G2_UNCOMPRESSED_SIZE = 4 * FIELD_BYTES
G1_COMPRESSED_SIZE = FIELD_BYTES
G2_COMPRESSED_SIZE = 2 * FIELD_BYTES

FLAG_NEGATIVE = 0x80
FLAG_INFINITY = 0x40
FLAG_MASK = FLAG_NEGATIVE | FLAG_INFINITY


# --- Points ---

@dataclass(frozen=True)
class G1Point:
    """Affine point on E(Fq). (0, 0) is not on the curve and stands for infinity."""
    x: int = 0
    y: int = 0

    @classmethod
    def infinity(cls) -> "G1Point":
        return cls()

    @property
    def is_infinity(self) -> bool:
        return self.x == 0 and self.y == 0

    def is_on_curve(self) -> bool:
        if self.is_infinity:
            return True
        x, y = Fq(self.x), Fq(self.y)
        return bool(y * y == x * x * x + G1_B)

    def __neg__(self) -> "G1Point":
        if self.is_infinity:
            return self
        return G1Point(self.x, int(-Fq(self.y)))


@dataclass(frozen=True)
class G2Point:
    """Affine point on E'(Fq2), coordinates as (c0, c1). All-zero is infinity."""
    x: Fq2Coeffs = (0, 0)
    y: Fq2Coeffs = (0, 0)

    @classmethod
    def infinity(cls) -> "G2Point":
        return cls()

    @property
    def is_infinity(self) -> bool:
        return self.x == (0, 0) and self.y == (0, 0)

    def is_on_curve(self) -> bool:
        if self.is_infinity:
            return True
        x, y = Fq2.from_coeffs(self.x), Fq2.from_coeffs(self.y)
        return y.square() == x.square() * x + G2_B

    def __neg__(self) -> "G2Point":
        if self.is_infinity:
            return self
        return G2Point(self.x, (-Fq2.from_coeffs(self.y)).coeffs())


G1_GENERATOR = G1Point(1, 2)

G2_GENERATOR = G2Point(
    x=(
        10857046999023057135944570762232829481370756359578518086990519993285655852781,
        11559732032986387107991004021392285783925812861821192530917403151452391805634,
    ),
    y=(
        8495653923123431417604973247489272438418190587263600148770280649306958101930,
        4082367875863433681332203403145435568316851327593401208105741076214120093531,
    ),
)


# --- Uncompressed Encoding ---

def _check_size(data: bytes, size: int, what: str) -> None:
    if len(data) != size:
        raise InvalidPoint(f"{what} encoding needs {size} bytes, got {len(data)}")


def decode_g1(data: bytes, codec: FieldCodec = FQ_MONT) -> G1Point:
    """Decode x || y. Rejects points off the curve."""
    _check_size(data, G1_UNCOMPRESSED_SIZE, "G1")
    point = G1Point(codec.decode(data[:FIELD_BYTES]), codec.decode(data[FIELD_BYTES:]))
    if not point.is_on_curve():
        raise InvalidPoint("G1 point is not on the curve")
    return point


def encode_g1(point: G1Point, codec: FieldCodec = FQ_MONT) -> bytes:
    return codec.encode(point.x) + codec.encode(point.y)


def decode_g2(data: bytes, codec: FieldCodec = FQ_MONT) -> G2Point:
    """Decode x.c0 || x.c1 || y.c0 || y.c1. Rejects points off the twist."""
    _check_size(data, G2_UNCOMPRESSED_SIZE, "G2")
    half = 2 * FIELD_BYTES
    point = G2Point(codec.decode_ext(data[:half]), codec.decode_ext(data[half:]))
    if not point.is_on_curve():
        raise InvalidPoint("G2 point is not on the twist curve")
    return point


def encode_g2(point: G2Point, codec: FieldCodec = FQ_MONT) -> bytes:
    return codec.encode_ext(point.x) + codec.encode_ext(point.y)


# --- Compressed Encoding ---

def _split_flags(data: bytes) -> Tuple[bytes, bool, bool]:
    """Strip the flag bits from the last byte. Returns (x_bytes, negative, infinity)."""
    flags = data[-1] & FLAG_MASK
    if flags == FLAG_MASK:
        raise InvalidPoint("sign and infinity flags are both set")
    masked = data[:-1] + bytes([data[-1] & ~FLAG_MASK & 0xFF])
    return masked, bool(flags & FLAG_NEGATIVE), bool(flags & FLAG_INFINITY)


def _flagged(body: bytes, flags: int) -> bytes:
    out = bytearray(body)
    out[-1] |= flags
    return bytes(out)


def encode_g1_compressed(point: G1Point) -> bytes:
    if point.is_infinity:
        return _flagged(bytes(G1_COMPRESSED_SIZE), FLAG_INFINITY)
    flags = FLAG_NEGATIVE if fq_is_negative(point.y) else 0
    return _flagged(FQ.encode(point.x), flags)


def decode_g1_compressed(data: bytes) -> G1Point:
    """Recover y from x^3 + 3 and pick the root matching the sign flag."""
    _check_size(data, G1_COMPRESSED_SIZE, "compressed G1")
    body, negative, infinity = _split_flags(data)
    if infinity:
        if any(body):
            raise InvalidPoint("infinity flag set with a nonzero x-coordinate")
        return G1Point.infinity()

    x = FQ.decode(body)
    fx = Fq(x)
    root = fq_sqrt(fx * fx * fx + G1_B)
    if root is None:
        raise InvalidPoint("x^3 + b is not a square; no G1 point has this x-coordinate")
    y = int(root)
    if fq_is_negative(y) != negative:
        y = BN254_Q - y
    return G1Point(x, y)


def encode_g2_compressed(point: G2Point) -> bytes:
    if point.is_infinity:
        return _flagged(bytes(G2_COMPRESSED_SIZE), FLAG_INFINITY)
    flags = FLAG_NEGATIVE if fq2_is_negative(point.y) else 0
    return _flagged(FQ.encode_ext(point.x), flags)


def decode_g2_compressed(data: bytes) -> G2Point:
    """Recover y from x^3 + b' in Fq2 and pick the root matching the sign flag."""
    _check_size(data, G2_COMPRESSED_SIZE, "compressed G2")
    body, negative, infinity = _split_flags(data)
    if infinity:
        if any(body):
            raise InvalidPoint("infinity flag set with a nonzero x-coordinate")
        return G2Point.infinity()

    x = FQ.decode_ext(body)
    fx = Fq2.from_coeffs(x)
    root = (fx.square() * fx + G2_B).sqrt()
    if root is None:
        raise InvalidPoint("x^3 + b' is not a square; no G2 point has this x-coordinate")
    y = root.coeffs()
    if fq2_is_negative(y) != negative:
        y = (-root).coeffs()
    return G2Point(x, y)
