"""Groth16 proving key model.

Pure data: built once by a reader, consumed read-only by a writer. Points are
G1Point/G2Point values, coefficients are Fr integers in standard form.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Tuple

from zkey_ark.errors import InconsistentDimensions
from zkey_ark.primitives.curve import G1Point, G2Point


@dataclass(frozen=True)
class MatrixEntry:
    """One non-zero coefficient of a sparse constraint matrix."""
    row: int    # constraint index
    col: int    # signal index
    value: int  # Fr element


def sort_entries(entries: Iterable[MatrixEntry]) -> Tuple[MatrixEntry, ...]:
    """Canonical entry order: by (row, col)."""
    return tuple(sorted(entries, key=lambda e: (e.row, e.col)))


@dataclass(frozen=True)
class ConstraintMatrices:
    """Sparse R1CS matrices A, B, C, each sorted by (row, col).

    zkey files only carry A and B; C is reconstructed by the prover from the
    witness and stays empty here.
    """
    a: Tuple[MatrixEntry, ...] = ()
    b: Tuple[MatrixEntry, ...] = ()
    c: Tuple[MatrixEntry, ...] = ()

    def named(self) -> Iterator[Tuple[str, Tuple[MatrixEntry, ...]]]:
        yield "A", self.a
        yield "B", self.b
        yield "C", self.c

    @property
    def num_entries(self) -> int:
        return len(self.a) + len(self.b) + len(self.c)

    @property
    def num_constraints(self) -> int:
        """Number of rows touched by any entry (highest row index + 1)."""
        rows = [e.row for _, entries in self.named() for e in entries]
        return max(rows) + 1 if rows else 0


@dataclass(frozen=True)
class ProvingKey:
    """Groth16 proving key over BN254.

    Attributes:
        n_vars: Number of signals, including the constant-one signal
        n_public: Number of public inputs/outputs
        domain_size: Size of the evaluation domain (power of two)
        alpha_g1, beta_g1, beta_g2, gamma_g2, delta_g1, delta_g2: Setup elements
        ic: Input-commitment points, one per public signal plus the constant
            (n_public + 1)
        a_query: A basis in G1 (n_vars)
        b_g1_query: B basis in G1 (n_vars)
        b_g2_query: B basis in G2 (n_vars)
        c_query: Private-witness basis in G1 (n_vars - n_public - 1); known
            as the L query in arkworks
        h_query: Quotient-polynomial basis in G1 (domain_size)
        matrices: Sparse A/B/C constraint matrices
    """
    n_vars: int
    n_public: int
    domain_size: int
    alpha_g1: G1Point
    beta_g1: G1Point
    beta_g2: G2Point
    gamma_g2: G2Point
    delta_g1: G1Point
    delta_g2: G2Point
    ic: Tuple[G1Point, ...] = ()
    a_query: Tuple[G1Point, ...] = ()
    b_g1_query: Tuple[G1Point, ...] = ()
    b_g2_query: Tuple[G2Point, ...] = ()
    c_query: Tuple[G1Point, ...] = ()
    h_query: Tuple[G1Point, ...] = ()
    matrices: ConstraintMatrices = field(default_factory=ConstraintMatrices)

    @property
    def num_instance_variables(self) -> int:
        return self.n_public + 1

    @property
    def num_witness_variables(self) -> int:
        return self.n_vars - self.n_public

    def expected_lengths(self) -> dict[str, int]:
        """Required length of every point sequence, derived from the header."""
        return {
            "ic": self.n_public + 1,
            "a_query": self.n_vars,
            "b_g1_query": self.n_vars,
            "b_g2_query": self.n_vars,
            "c_query": self.n_vars - self.n_public - 1,
            "h_query": self.domain_size,
        }

    def check_dimensions(self) -> None:
        """Validate point counts and matrix indices against the header.

        Raises:
            InconsistentDimensions: On the first violation found
        """
        if self.n_vars < self.n_public + 1:
            raise InconsistentDimensions(
                f"n_vars={self.n_vars} cannot hold {self.n_public} public signals plus the constant"
            )

        for name, expected in self.expected_lengths().items():
            actual = len(getattr(self, name))
            if actual != expected:
                raise InconsistentDimensions(f"{name} has {actual} points, header implies {expected}")

        for name, entries in self.matrices.named():
            seen = set()
            for entry in entries:
                if entry.row >= self.domain_size:
                    raise InconsistentDimensions(
                        f"matrix {name} row {entry.row} is outside the domain of size {self.domain_size}"
                    )
                if entry.col >= self.n_vars:
                    raise InconsistentDimensions(
                        f"matrix {name} column {entry.col} exceeds n_vars={self.n_vars}"
                    )
                key = (entry.row, entry.col)
                if key in seen:
                    raise InconsistentDimensions(f"matrix {name} has a duplicate entry at {key}")
                seen.add(key)
