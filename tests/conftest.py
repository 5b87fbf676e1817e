"""
Pytest configuration and shared fixtures.

Fixtures build proving keys from the curve generators (and their negations
and the point at infinity) so every encoded point is known in advance.
"""

import sys
from pathlib import Path
from typing import Callable, Dict, Iterable

import pytest

# Add the repository root to the path so the package imports without installing
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from zkey_ark.primitives.curve import G1_GENERATOR, G2_GENERATOR, G1Point, G2Point  # noqa: E402
from zkey_ark.primitives.field import BN254_R  # noqa: E402
from zkey_ark.protocol.binfile import BinFileWriter  # noqa: E402
from zkey_ark.protocol.proving_key import (  # noqa: E402
    ConstraintMatrices,
    MatrixEntry,
    ProvingKey,
    sort_entries,
)
from zkey_ark.protocol.zkey import ZKEY_MAGIC, read_section_table, write_zkey  # noqa: E402

G1 = G1_GENERATOR
G2 = G2_GENERATOR
G1_INF = G1Point.infinity()
G2_INF = G2Point.infinity()


@pytest.fixture
def minimal_pk() -> ProvingKey:
    """One signal, no public inputs, domain of size one, empty matrices."""
    return ProvingKey(
        n_vars=1,
        n_public=0,
        domain_size=1,
        alpha_g1=G1,
        beta_g1=G1,
        beta_g2=G2,
        gamma_g2=G2,
        delta_g1=G1,
        delta_g2=G2,
        ic=(G1,),
        a_query=(G1,),
        b_g1_query=(G1,),
        b_g2_query=(G2,),
        c_query=(),
        h_query=(G1,),
    )


@pytest.fixture
def sample_pk() -> ProvingKey:
    """Four signals, one public input, mixed signs and infinities, non-empty matrices."""
    return ProvingKey(
        n_vars=4,
        n_public=1,
        domain_size=4,
        alpha_g1=G1,
        beta_g1=-G1,
        beta_g2=G2,
        gamma_g2=-G2,
        delta_g1=G1,
        delta_g2=G2,
        ic=(G1, -G1),
        a_query=(G1, G1_INF, -G1, G1),
        b_g1_query=(G1_INF, G1, G1, -G1),
        b_g2_query=(G2, -G2, G2_INF, G2),
        c_query=(G1, -G1),
        h_query=(G1, G1, G1_INF, -G1),
        matrices=ConstraintMatrices(
            a=sort_entries([
                MatrixEntry(2, 3, 5),
                MatrixEntry(0, 0, 1),
                MatrixEntry(1, 2, BN254_R - 1),
            ]),
            b=sort_entries([
                MatrixEntry(3, 0, 123456789),
                MatrixEntry(0, 1, 7),
            ]),
        ),
    )


@pytest.fixture
def sample_zkey(sample_pk: ProvingKey) -> bytes:
    return write_zkey(sample_pk)


@pytest.fixture
def rebuild_zkey() -> Callable[..., bytes]:
    """Rebuild a zkey, dropping, replacing or appending section payloads.

    rebuild(data, drop=(ids...), replace={id: payload}, extra=[(id, payload), ...])
    """
    def rebuild(data: bytes, drop: Iterable[int] = (), replace: Dict[int, bytes] = None,
                extra: Iterable = ()) -> bytes:
        replace = replace or {}
        extra = list(extra)
        kept = [d for d in read_section_table(data) if d.section_id not in drop]
        writer = BinFileWriter(ZKEY_MAGIC, 1, n_sections=len(kept) + len(extra))
        for d in kept:
            writer.start_write_section(d.section_id)
            writer.write_bytes(replace.get(d.section_id, data[d.offset:d.end]))
            writer.end_write_section()
        for section_id, payload in extra:
            writer.start_write_section(section_id)
            writer.write_bytes(payload)
            writer.end_write_section()
        return writer.getvalue()

    return rebuild
