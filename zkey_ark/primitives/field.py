"""BN254 base field GF(q), scalar field GF(r) and quadratic extension Fq2.

Uses the galois library for prime-field arithmetic. Fq2 = Fq[u]/(u^2 + 1) is
a thin pair type over galois Fq scalars, which avoids constructing a galois
extension field of ~508-bit order.

Model values (points, coefficients) are plain Python ints; galois is only
used where arithmetic happens.
"""

from typing import Optional, Tuple

import galois

from zkey_ark.errors import MalformedField

# --- Field Construction ---

BN254_Q = 21888242871839275222246405745257275088696311157297823662689037894645226208583
"""Base field modulus q."""

BN254_R = 21888242871839275222246405745257275088548364400416034343698204186575808495617
"""Scalar field modulus r (group order)."""

FIELD_BYTES = 32

# Known multiplicative generators; passing them skips factoring q-1 and r-1.
Fq = galois.GF(BN254_Q, primitive_element=3, verify=False)
"""Base field GF(q)."""

Fr = galois.GF(BN254_R, primitive_element=5, verify=False)
"""Scalar field GF(r)."""

Fq2Coeffs = Tuple[int, int]

_SQRT_EXP = (BN254_Q + 1) // 4
_HALF_Q = (BN254_Q - 1) // 2


# --- Fixed-Width Codec ---

class FieldCodec:
    """Fixed-width little-endian codec for one prime field.

    The stored integer must already be reduced; a value >= the modulus means
    the buffer is corrupt and is rejected instead of being reduced.

    Args:
        field: galois prime field class (Fq or Fr)
        n8: Byte width of one element
        montgomery: Power k of the Montgomery factor R = 2^(8*n8) mod p
            carried by the stored integer. 0 is standard form, 1 is
            Montgomery form (zkey coordinates), 2 is the doubly scaled form
            of zkey matrix coefficients.
    """

    def __init__(self, field, n8: int = FIELD_BYTES, montgomery: int = 0) -> None:
        self.field = field
        self.order = int(field.order)
        self.n8 = n8
        self.montgomery = montgomery
        r = field(pow(2, 8 * n8, self.order))
        self._to_stored = r ** montgomery
        self._from_stored = r ** -montgomery

    def __repr__(self) -> str:
        return f"FieldCodec(order={self.order:#x}, n8={self.n8}, montgomery={self.montgomery})"

    def decode(self, data: bytes) -> int:
        """Decode one element from exactly n8 bytes."""
        if len(data) != self.n8:
            raise MalformedField(f"field element needs {self.n8} bytes, got {len(data)}")
        raw = int.from_bytes(data, "little")
        if raw >= self.order:
            raise MalformedField("field element is not reduced below the modulus")
        if self.montgomery == 0:
            return raw
        return int(self.field(raw) * self._from_stored)

    def encode(self, value: int) -> bytes:
        """Encode one element into exactly n8 bytes."""
        if not 0 <= value < self.order:
            raise MalformedField("cannot encode a value outside [0, modulus)")
        if self.montgomery != 0:
            value = int(self.field(value) * self._to_stored)
        return value.to_bytes(self.n8, "little")

    def decode_ext(self, data: bytes) -> Fq2Coeffs:
        """Decode a quadratic-extension element stored as c0 || c1."""
        if len(data) != 2 * self.n8:
            raise MalformedField(f"extension element needs {2 * self.n8} bytes, got {len(data)}")
        return self.decode(data[:self.n8]), self.decode(data[self.n8:])

    def encode_ext(self, value: Fq2Coeffs) -> bytes:
        """Encode a quadratic-extension element as c0 || c1."""
        c0, c1 = value
        return self.encode(c0) + self.encode(c1)


FQ = FieldCodec(Fq)
"""Fq in standard form."""

FQ_MONT = FieldCodec(Fq, montgomery=1)
"""Fq in Montgomery form, as stored in zkey point sections."""

FR = FieldCodec(Fr)
"""Fr in standard form."""

FR_MONT2 = FieldCodec(Fr, montgomery=2)
"""Fr scaled by R^2, as stored in the zkey coefficients section."""


# --- Square Roots and Signs ---

def fq_sqrt(a: Fq) -> Optional[Fq]:
    """Square root in Fq (q = 3 mod 4), or None if a is not a square."""
    root = a ** _SQRT_EXP
    if root * root != a:
        return None
    return root


def fq_is_negative(value: int) -> bool:
    """True if value > -value, i.e. value is the larger of the two roots."""
    return value > _HALF_Q


def fq2_is_negative(value: Fq2Coeffs) -> bool:
    """Lexicographic "value > -value" on Fq2, comparing c1 before c0."""
    c0, c1 = value
    if c1 != 0:
        return c1 > _HALF_Q
    return c0 > _HALF_Q


class Fq2:
    """Element c0 + c1*u of Fq2 = Fq[u]/(u^2 + 1)."""

    __slots__ = ("c0", "c1")

    def __init__(self, c0, c1=0) -> None:
        self.c0 = c0 if isinstance(c0, Fq) else Fq(c0)
        self.c1 = c1 if isinstance(c1, Fq) else Fq(c1)

    @classmethod
    def from_coeffs(cls, coeffs: Fq2Coeffs) -> "Fq2":
        return cls(coeffs[0], coeffs[1])

    def coeffs(self) -> Fq2Coeffs:
        return int(self.c0), int(self.c1)

    def is_zero(self) -> bool:
        return self.coeffs() == (0, 0)

    def __repr__(self) -> str:
        return f"Fq2({int(self.c0)}, {int(self.c1)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fq2):
            return NotImplemented
        return self.coeffs() == other.coeffs()

    def __add__(self, other: "Fq2") -> "Fq2":
        return Fq2(self.c0 + other.c0, self.c1 + other.c1)

    def __sub__(self, other: "Fq2") -> "Fq2":
        return Fq2(self.c0 - other.c0, self.c1 - other.c1)

    def __neg__(self) -> "Fq2":
        return Fq2(-self.c0, -self.c1)

    def __mul__(self, other) -> "Fq2":
        if isinstance(other, Fq2):
            # (a0 + a1 u)(b0 + b1 u) with u^2 = -1
            return Fq2(
                self.c0 * other.c0 - self.c1 * other.c1,
                self.c0 * other.c1 + self.c1 * other.c0,
            )
        return Fq2(self.c0 * other, self.c1 * other)

    def square(self) -> "Fq2":
        return self * self

    def inverse(self) -> "Fq2":
        """Multiplicative inverse via the norm c0^2 + c1^2.

        Raises:
            ZeroDivisionError: If self is zero
        """
        norm_inv = (self.c0 * self.c0 + self.c1 * self.c1) ** -1
        return Fq2(self.c0 * norm_inv, -self.c1 * norm_inv)

    def sqrt(self) -> Optional["Fq2"]:
        """Square root, or None if self is not a square in Fq2.

        Uses the norm method for u^2 = -1: with t = sqrt(c0^2 + c1^2),
        x^2 = (c0 +/- t) / 2 and y = c1 / 2x. The returned root is not
        normalized; callers pick the sign they need.
        """
        if int(self.c1) == 0:
            root = fq_sqrt(self.c0)
            if root is not None:
                return Fq2(root, Fq(0))
            # -1 is a non-residue, so sqrt(c0) = u * sqrt(-c0)
            root = fq_sqrt(-self.c0)
            if root is None:
                return None
            return Fq2(Fq(0), root)

        t = fq_sqrt(self.c0 * self.c0 + self.c1 * self.c1)
        if t is None:
            return None
        half = Fq(2) ** -1
        x = fq_sqrt((self.c0 + t) * half)
        if x is None:
            x = fq_sqrt((self.c0 - t) * half)
            if x is None:
                return None
        y = self.c1 * (x + x) ** -1
        root = Fq2(x, y)
        if root.square() != self:
            return None
        return root
