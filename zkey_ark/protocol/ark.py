"""Canonical compact proving-key format.

Fields are in a fixed order, so no section table is needed. All integers are
little-endian; points use the compressed encoding from primitives.curve.

    magic "arkz" | version u32 |
    curve_id u32 | n8r u32 | r (n8r bytes) |
    n_vars u32 | n_public u32 | domain_size u32 |
    alpha_g1 | beta_g1 | beta_g2 | gamma_g2 | delta_g1 | delta_g2
    ic | a_query | b_g1_query | b_g2_query | c_query | h_query
    matrix A | matrix B | matrix C

Point sequences are a u64 count followed by the compressed points. Matrices
are a u64 count followed by {row u32 | col u32 | value (Fr, 32 bytes)}
entries sorted by (row, col).
"""

import logging
import struct
from contextlib import contextmanager
from typing import BinaryIO, Callable, Iterator, List, Sequence, Tuple

from zkey_ark.errors import (
    ConversionError,
    SectionSizeMismatch,
    TruncatedInput,
    UnsupportedFormat,
)
from zkey_ark.primitives.curve import (
    G1_COMPRESSED_SIZE,
    G2_COMPRESSED_SIZE,
    decode_g1_compressed,
    decode_g2_compressed,
    encode_g1_compressed,
    encode_g2_compressed,
)
from zkey_ark.primitives.field import BN254_R, FIELD_BYTES, FR
from zkey_ark.protocol.proving_key import (
    ConstraintMatrices,
    MatrixEntry,
    ProvingKey,
    sort_entries,
)

logger = logging.getLogger(__name__)

ARK_MAGIC = b"arkz"
ARK_VERSIONS = (1,)

CURVE_BN254 = 1

MATRIX_ENTRY_SIZE = 8 + FIELD_BYTES

# Fixed prologue: magic, version, curve id, n8r, r, three dimensions
PROLOGUE_SIZE = len(ARK_MAGIC) + 4 + 4 + 4 + FIELD_BYTES + 3 * 4

# alpha_g1, beta_g1, delta_g1 in G1; beta_g2, gamma_g2, delta_g2 in G2
SINGLETONS_SIZE = 3 * G1_COMPRESSED_SIZE + 3 * G2_COMPRESSED_SIZE

LENGTH_PREFIX_SIZE = 8


# --- Writing ---

def _write_vec(out: bytearray, items: Sequence, encode: Callable[..., bytes]) -> None:
    out += struct.pack('<Q', len(items))
    for item in items:
        out += encode(item)


def _encode_entry(entry: MatrixEntry) -> bytes:
    return struct.pack('<II', entry.row, entry.col) + FR.encode(entry.value)


def write_ark(pk: ProvingKey) -> bytes:
    """Serialize a ProvingKey. Same key in, same bytes out."""
    out = bytearray(ARK_MAGIC)
    out += struct.pack('<I', ARK_VERSIONS[-1])
    out += struct.pack('<II', CURVE_BN254, FIELD_BYTES)
    out += BN254_R.to_bytes(FIELD_BYTES, "little")
    out += struct.pack('<III', pk.n_vars, pk.n_public, pk.domain_size)

    out += encode_g1_compressed(pk.alpha_g1)
    out += encode_g1_compressed(pk.beta_g1)
    out += encode_g2_compressed(pk.beta_g2)
    out += encode_g2_compressed(pk.gamma_g2)
    out += encode_g1_compressed(pk.delta_g1)
    out += encode_g2_compressed(pk.delta_g2)

    _write_vec(out, pk.ic, encode_g1_compressed)
    _write_vec(out, pk.a_query, encode_g1_compressed)
    _write_vec(out, pk.b_g1_query, encode_g1_compressed)
    _write_vec(out, pk.b_g2_query, encode_g2_compressed)
    _write_vec(out, pk.c_query, encode_g1_compressed)
    _write_vec(out, pk.h_query, encode_g1_compressed)

    for _, entries in pk.matrices.named():
        _write_vec(out, sort_entries(entries), _encode_entry)

    logger.debug("Serialized proving key: %d bytes", len(out))
    return bytes(out)


def dump_ark(pk: ProvingKey, sink: BinaryIO) -> int:
    """Write the canonical encoding to a binary sink. Returns the byte count.

    Errors raised by the sink propagate unchanged.
    """
    data = write_ark(pk)
    sink.write(data)
    return len(data)


# --- Reading ---

class _ArkReader:
    """Cursor over a canonical buffer; running past the end is TruncatedInput."""

    def __init__(self, data: bytes) -> None:
        self.data = bytes(data)
        self.pos = 0

    def remaining(self) -> int:
        return len(self.data) - self.pos

    def take(self, n: int) -> bytes:
        if n > self.remaining():
            raise TruncatedInput(f"need {n} bytes, only {self.remaining()} remain", offset=self.pos)
        out = self.data[self.pos:self.pos + n]
        self.pos += n
        return out

    def u32(self) -> int:
        return struct.unpack('<I', self.take(4))[0]

    def u64(self) -> int:
        return struct.unpack('<Q', self.take(8))[0]

    @contextmanager
    def locating(self) -> Iterator[None]:
        start = self.pos
        try:
            yield
        except ConversionError as err:
            err.locate(None, start)
            raise

    def item(self, size: int, decode: Callable[[bytes], object]):
        with self.locating():
            return decode(self.take(size))

    def vec(self, size: int, decode: Callable[[bytes], object]) -> Tuple:
        start = self.pos
        n = self.u64()
        if n * size > self.remaining():
            raise TruncatedInput(
                f"sequence of {n} x {size} bytes exceeds the {self.remaining()} bytes left",
                offset=start,
            )
        return tuple(self.item(size, decode) for _ in range(n))


def _decode_entry(data: bytes) -> MatrixEntry:
    row, col = struct.unpack('<II', data[:8])
    return MatrixEntry(row, col, FR.decode(data[8:]))


def read_ark(data: bytes) -> ProvingKey:
    """Parse canonical bytes back into a validated ProvingKey.

    Raises:
        UnsupportedFormat: Wrong magic, version, curve or scalar modulus
        TruncatedInput: Buffer ends early
        SectionSizeMismatch: Bytes left over after the last matrix
        InvalidPoint, MalformedField, InconsistentDimensions: Invalid content
    """
    r = _ArkReader(data)

    magic = r.data[:len(ARK_MAGIC)]
    if magic != ARK_MAGIC:
        raise UnsupportedFormat(f"invalid magic: expected {ARK_MAGIC!r}, got {magic!r}", offset=0)
    r.pos = len(ARK_MAGIC)

    version = r.u32()
    if version not in ARK_VERSIONS:
        raise UnsupportedFormat(f"unsupported version {version}", offset=len(ARK_MAGIC))

    curve_start = r.pos
    curve_id = r.u32()
    n8r = r.u32()
    modulus = int.from_bytes(r.take(n8r), "little")
    if curve_id != CURVE_BN254 or n8r != FIELD_BYTES or modulus != BN254_R:
        raise UnsupportedFormat(f"unsupported curve id {curve_id} or scalar modulus", offset=curve_start)

    n_vars, n_public, domain_size = r.u32(), r.u32(), r.u32()

    pk = ProvingKey(
        n_vars=n_vars,
        n_public=n_public,
        domain_size=domain_size,
        alpha_g1=r.item(G1_COMPRESSED_SIZE, decode_g1_compressed),
        beta_g1=r.item(G1_COMPRESSED_SIZE, decode_g1_compressed),
        beta_g2=r.item(G2_COMPRESSED_SIZE, decode_g2_compressed),
        gamma_g2=r.item(G2_COMPRESSED_SIZE, decode_g2_compressed),
        delta_g1=r.item(G1_COMPRESSED_SIZE, decode_g1_compressed),
        delta_g2=r.item(G2_COMPRESSED_SIZE, decode_g2_compressed),
        ic=r.vec(G1_COMPRESSED_SIZE, decode_g1_compressed),
        a_query=r.vec(G1_COMPRESSED_SIZE, decode_g1_compressed),
        b_g1_query=r.vec(G1_COMPRESSED_SIZE, decode_g1_compressed),
        b_g2_query=r.vec(G2_COMPRESSED_SIZE, decode_g2_compressed),
        c_query=r.vec(G1_COMPRESSED_SIZE, decode_g1_compressed),
        h_query=r.vec(G1_COMPRESSED_SIZE, decode_g1_compressed),
        matrices=ConstraintMatrices(*_read_matrices(r)),
    )

    if r.remaining():
        raise SectionSizeMismatch(f"{r.remaining()} trailing bytes after the last matrix", offset=r.pos)
    pk.check_dimensions()
    return pk


def _read_matrices(r: _ArkReader) -> List[Tuple[MatrixEntry, ...]]:
    return [sort_entries(r.vec(MATRIX_ENTRY_SIZE, _decode_entry)) for _ in range(3)]


def canonical_size(pk: ProvingKey) -> int:
    """Exact length of write_ark(pk), computed from counts alone."""
    points = (
        G1_COMPRESSED_SIZE * (len(pk.ic) + len(pk.a_query) + len(pk.b_g1_query)
                              + len(pk.c_query) + len(pk.h_query))
        + G2_COMPRESSED_SIZE * len(pk.b_g2_query)
    )
    entries = MATRIX_ENTRY_SIZE * pk.matrices.num_entries
    return PROLOGUE_SIZE + SINGLETONS_SIZE + 9 * LENGTH_PREFIX_SIZE + points + entries
