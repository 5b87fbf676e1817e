"""Tests for G1/G2 point encodings."""

import pytest

from zkey_ark.errors import InvalidPoint, MalformedField
from zkey_ark.primitives.curve import (
    FLAG_INFINITY,
    FLAG_NEGATIVE,
    G1_GENERATOR,
    G2_B,
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
from zkey_ark.primitives.field import BN254_Q, FQ, FQ_MONT, Fq2

G1_POINTS = [G1_GENERATOR, -G1_GENERATOR, G1Point.infinity()]
G2_POINTS = [G2_GENERATOR, -G2_GENERATOR, G2Point.infinity()]


def _is_qr(n: int) -> bool:
    n %= BN254_Q
    return n == 0 or pow(n, (BN254_Q - 1) // 2, BN254_Q) == 1


def _g1_non_residue_x() -> int:
    """Smallest x for which x^3 + 3 has no square root."""
    return next(x for x in range(1, 1000) if not _is_qr(x ** 3 + 3))


def _g1_point_with_x_at_least(start: int) -> G1Point:
    """Some valid G1 point other than the generator, found by decompression."""
    x = next(x for x in range(start, start + 1000) if _is_qr(x ** 3 + 3))
    return decode_g1_compressed(FQ.encode(x))


class TestCurveParameters:
    """Generators and twist coefficient."""

    def test_generators_on_curve(self) -> None:
        """Both generators satisfy their curve equations."""
        assert G1_GENERATOR.is_on_curve()
        assert G2_GENERATOR.is_on_curve()

    def test_twist_coefficient(self) -> None:
        """b' * (9 + u) == 3."""
        assert G2_B * Fq2(9, 1) == Fq2(3, 0)

    def test_negation(self) -> None:
        """-P keeps x and negates y; infinity is its own negation."""
        neg = -G1_GENERATOR
        assert neg == G1Point(1, BN254_Q - 2)
        assert neg.is_on_curve()
        assert (-G2_GENERATOR).is_on_curve()
        assert -G1Point.infinity() == G1Point.infinity()

    def test_off_curve(self) -> None:
        """(1, 3) is not on y^2 = x^3 + 3."""
        assert not G1Point(1, 3).is_on_curve()
        assert not G2Point(G2_GENERATOR.x, G2_GENERATOR.x).is_on_curve()


class TestUncompressed:
    """Raw coordinate encoding used by zkey sections."""

    @pytest.mark.parametrize("codec", [FQ, FQ_MONT])
    @pytest.mark.parametrize("point", G1_POINTS)
    def test_g1_round_trip(self, codec, point: G1Point) -> None:
        """decode(encode(p)) == p."""
        data = encode_g1(point, codec)
        assert len(data) == 64
        assert decode_g1(data, codec) == point

    @pytest.mark.parametrize("codec", [FQ, FQ_MONT])
    @pytest.mark.parametrize("point", G2_POINTS)
    def test_g2_round_trip(self, codec, point: G2Point) -> None:
        """decode(encode(p)) == p."""
        data = encode_g2(point, codec)
        assert len(data) == 128
        assert decode_g2(data, codec) == point

    def test_all_zero_is_infinity(self) -> None:
        """The all-zero block is the point at infinity."""
        assert decode_g1(bytes(64)).is_infinity
        assert decode_g2(bytes(128)).is_infinity
        assert encode_g1(G1Point.infinity()) == bytes(64)

    def test_rejects_off_curve_g1(self) -> None:
        """Coordinates must satisfy the curve equation."""
        with pytest.raises(InvalidPoint):
            decode_g1(encode_g1(G1Point(1, 3)))

    def test_rejects_off_curve_g2(self) -> None:
        """Coordinates must satisfy the twist equation."""
        bad = G2Point(G2_GENERATOR.x, G2_GENERATOR.x)
        with pytest.raises(InvalidPoint):
            decode_g2(encode_g2(bad))

    def test_rejects_unreduced_coordinate(self) -> None:
        """Coordinates >= q are malformed."""
        data = BN254_Q.to_bytes(32, "little") + bytes(32)
        with pytest.raises(MalformedField):
            decode_g1(data)

    def test_rejects_wrong_size(self) -> None:
        """Block size is fixed."""
        with pytest.raises(InvalidPoint):
            decode_g1(bytes(63))
        with pytest.raises(InvalidPoint):
            decode_g2(bytes(129))


class TestCompressed:
    """x-coordinate plus sign flag encoding used by the canonical format."""

    @pytest.mark.parametrize("point", G1_POINTS)
    def test_g1_round_trip(self, point: G1Point) -> None:
        """decode(encode_compressed(p)) == p, including infinity."""
        data = encode_g1_compressed(point)
        assert len(data) == 32
        assert decode_g1_compressed(data) == point

    @pytest.mark.parametrize("point", G2_POINTS)
    def test_g2_round_trip(self, point: G2Point) -> None:
        """decode(encode_compressed(p)) == p, including infinity."""
        data = encode_g2_compressed(point)
        assert len(data) == 64
        assert decode_g2_compressed(data) == point

    @pytest.mark.parametrize("start", [2, 100, 2**128])
    def test_other_g1_points_round_trip(self, start: int) -> None:
        """Points recovered by decompression re-encode to the same bytes."""
        point = _g1_point_with_x_at_least(start)
        assert point.is_on_curve()
        for p in (point, -point):
            assert decode_g1_compressed(encode_g1_compressed(p)) == p

    def test_sign_flag(self) -> None:
        """y = 2 is the smaller root, so only -G carries the flag."""
        assert encode_g1_compressed(G1_GENERATOR) == FQ.encode(1)
        assert encode_g1_compressed(-G1_GENERATOR)[-1] & FLAG_NEGATIVE
        pos, neg = encode_g2_compressed(G2_GENERATOR), encode_g2_compressed(-G2_GENERATOR)
        assert pos[:-1] == neg[:-1]
        assert (pos[-1] ^ neg[-1]) == FLAG_NEGATIVE

    def test_infinity_encoding(self) -> None:
        """Infinity is zero x with the infinity flag."""
        assert encode_g1_compressed(G1Point.infinity()) == bytes(31) + bytes([FLAG_INFINITY])
        assert encode_g2_compressed(G2Point.infinity()) == bytes(63) + bytes([FLAG_INFINITY])

    def test_rejects_both_flags(self) -> None:
        """Sign and infinity flags are mutually exclusive."""
        data = bytes(31) + bytes([FLAG_INFINITY | FLAG_NEGATIVE])
        with pytest.raises(InvalidPoint):
            decode_g1_compressed(data)

    def test_rejects_infinity_with_nonzero_x(self) -> None:
        """Infinity must carry x = 0."""
        data = bytearray(encode_g1_compressed(G1_GENERATOR))
        data[-1] |= FLAG_INFINITY
        with pytest.raises(InvalidPoint):
            decode_g1_compressed(bytes(data))
        data = bytearray(encode_g2_compressed(G2_GENERATOR))
        data[-1] |= FLAG_INFINITY
        with pytest.raises(InvalidPoint):
            decode_g2_compressed(bytes(data))

    def test_rejects_non_residue_g1(self) -> None:
        """An x with x^3 + 3 a non-residue is not on the curve."""
        x = _g1_non_residue_x()
        with pytest.raises(InvalidPoint):
            decode_g1_compressed(FQ.encode(x))

    def test_rejects_non_residue_g2(self) -> None:
        """An x with x^3 + b' a non-square in Fq2 is not on the twist."""
        for k in range(1, 1000):
            rhs = Fq2(k, 1).square() * Fq2(k, 1) + G2_B
            c0, c1 = rhs.coeffs()
            if not _is_qr(c0 * c0 + c1 * c1):
                break
        with pytest.raises(InvalidPoint):
            decode_g2_compressed(FQ.encode_ext((k, 1)))

    def test_rejects_unreduced_x(self) -> None:
        """x >= q is malformed rather than reduced."""
        with pytest.raises(MalformedField):
            decode_g1_compressed(BN254_Q.to_bytes(32, "little"))
