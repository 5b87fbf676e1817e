"""snarkjs .zkey container codec (Groth16 over BN254).

Sections (binfile layout, see binfile.py):
    1  header          protocol u32 (1 = Groth16)
    2  groth16 header  n8q u32 | q | n8r u32 | r | n_vars u32 | n_public u32 |
                       domain_size u32 | alpha1 | beta1 | beta2 | gamma2 |
                       delta1 | delta2
    3  IC              (n_public + 1) G1
    4  coefficients    count u32 | count x {matrix u32 | row u32 | col u32 | value}
    5  A               n_vars G1
    6  B1              n_vars G1
    7  B2              n_vars G2
    8  C               (n_vars - n_public - 1) G1
    9  H               domain_size G1
    10 contributions   optional, ignored

Coordinates are stored in Montgomery form; coefficient values carry the
Montgomery factor twice. Section 10 and unknown sections are skipped.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Tuple, TypeVar

import numpy as np

from zkey_ark.errors import SectionSizeMismatch, UnsupportedFormat
from zkey_ark.primitives.curve import (
    G1_UNCOMPRESSED_SIZE,
    G2_UNCOMPRESSED_SIZE,
    G1Point,
    G2Point,
    decode_g1,
    decode_g2,
    encode_g1,
    encode_g2,
)
from zkey_ark.primitives.field import BN254_Q, BN254_R, FIELD_BYTES, FR_MONT2
from zkey_ark.protocol.binfile import BinFileReader, BinFileWriter, SectionDescriptor
from zkey_ark.protocol.proving_key import (
    ConstraintMatrices,
    MatrixEntry,
    ProvingKey,
    sort_entries,
)

logger = logging.getLogger(__name__)

ZKEY_MAGIC = b"zkey"
ZKEY_VERSIONS = (1,)

# Section IDs
HEADER_SECTION = 1
GROTH16_HEADER_SECTION = 2
IC_SECTION = 3
COEFFS_SECTION = 4
A_SECTION = 5
B1_SECTION = 6
B2_SECTION = 7
C_SECTION = 8
H_SECTION = 9
CONTRIBUTIONS_SECTION = 10
MAX_SECTION_ID = CONTRIBUTIONS_SECTION

SECTION_NAMES = {
    HEADER_SECTION: "header",
    GROTH16_HEADER_SECTION: "groth16 header",
    IC_SECTION: "IC (G1)",
    COEFFS_SECTION: "coefficients",
    A_SECTION: "A (G1)",
    B1_SECTION: "B1 (G1)",
    B2_SECTION: "B2 (G2)",
    C_SECTION: "C (G1)",
    H_SECTION: "H (G1)",
    CONTRIBUTIONS_SECTION: "contributions",
}

GROTH16_PROTOCOL = 1

MATRIX_A = 0
MATRIX_B = 1

COEFF_DTYPE = np.dtype([
    ("matrix", "<u4"),
    ("row", "<u4"),     # constraint index
    ("col", "<u4"),     # signal index
    ("value", f"V{FIELD_BYTES}"),
])

Point = TypeVar("Point", G1Point, G2Point)


@dataclass(frozen=True)
class Groth16Header:
    """Contents of the Groth16 header section."""
    n_vars: int
    n_public: int
    domain_size: int
    alpha_g1: G1Point
    beta_g1: G1Point
    beta_g2: G2Point
    gamma_g2: G2Point
    delta_g1: G1Point
    delta_g2: G2Point


# --- Reading ---

def read_section_table(data: bytes, strict_sections: bool = False) -> List[SectionDescriptor]:
    """Parse only the header and section table, in file order."""
    reader = BinFileReader(data, ZKEY_MAGIC, ZKEY_VERSIONS, MAX_SECTION_ID, strict=strict_sections)
    return reader.descriptors()


def read_zkey(data: bytes, strict_sections: bool = False) -> ProvingKey:
    """Parse a zkey container into a validated ProvingKey.

    Args:
        data: Whole zkey file
        strict_sections: Reject unknown section ids instead of skipping them

    Raises:
        ConversionError: The first problem found; no partial key is returned
    """
    reader = BinFileReader(data, ZKEY_MAGIC, ZKEY_VERSIONS, MAX_SECTION_ID, strict=strict_sections)

    _read_protocol(reader)
    header = _read_groth16_header(reader)
    logger.debug(
        "Groth16 header: n_vars=%d n_public=%d domain_size=%d",
        header.n_vars, header.n_public, header.domain_size,
    )

    pk = ProvingKey(
        n_vars=header.n_vars,
        n_public=header.n_public,
        domain_size=header.domain_size,
        alpha_g1=header.alpha_g1,
        beta_g1=header.beta_g1,
        beta_g2=header.beta_g2,
        gamma_g2=header.gamma_g2,
        delta_g1=header.delta_g1,
        delta_g2=header.delta_g2,
        ic=_read_point_section(reader, IC_SECTION, decode_g1, G1_UNCOMPRESSED_SIZE, G1Point),
        a_query=_read_point_section(reader, A_SECTION, decode_g1, G1_UNCOMPRESSED_SIZE, G1Point),
        b_g1_query=_read_point_section(reader, B1_SECTION, decode_g1, G1_UNCOMPRESSED_SIZE, G1Point),
        b_g2_query=_read_point_section(reader, B2_SECTION, decode_g2, G2_UNCOMPRESSED_SIZE, G2Point),
        c_query=_read_point_section(reader, C_SECTION, decode_g1, G1_UNCOMPRESSED_SIZE, G1Point),
        h_query=_read_point_section(reader, H_SECTION, decode_g1, G1_UNCOMPRESSED_SIZE, G1Point),
        matrices=_read_coefficients(reader),
    )
    pk.check_dimensions()
    return pk


def _read_protocol(reader: BinFileReader) -> None:
    descriptor = reader.start_read_section(HEADER_SECTION)
    protocol = reader.read_u32_le()
    reader.end_read_section()
    if protocol != GROTH16_PROTOCOL:
        raise UnsupportedFormat(
            f"protocol {protocol} is not Groth16 ({GROTH16_PROTOCOL})",
            section_id=HEADER_SECTION, offset=descriptor.offset,
        )


def _read_modulus(reader: BinFileReader, expected: int, name: str) -> None:
    start = reader.pos
    n8 = reader.read_u32_le()
    modulus = int.from_bytes(reader.read_bytes(n8), "little")
    if n8 != FIELD_BYTES or modulus != expected:
        raise UnsupportedFormat(
            f"{name} modulus ({n8} bytes) is not the BN254 {name} modulus",
            section_id=reader.reading_section, offset=start,
        )


def _read_g1(reader: BinFileReader) -> G1Point:
    with reader.locating():
        return decode_g1(reader.read_bytes(G1_UNCOMPRESSED_SIZE))


def _read_g2(reader: BinFileReader) -> G2Point:
    with reader.locating():
        return decode_g2(reader.read_bytes(G2_UNCOMPRESSED_SIZE))


def _read_groth16_header(reader: BinFileReader) -> Groth16Header:
    reader.start_read_section(GROTH16_HEADER_SECTION)
    _read_modulus(reader, BN254_Q, "base field")
    _read_modulus(reader, BN254_R, "scalar field")
    n_vars = reader.read_u32_le()
    n_public = reader.read_u32_le()
    domain_size = reader.read_u32_le()
    header = Groth16Header(
        n_vars=n_vars,
        n_public=n_public,
        domain_size=domain_size,
        alpha_g1=_read_g1(reader),
        beta_g1=_read_g1(reader),
        beta_g2=_read_g2(reader),
        gamma_g2=_read_g2(reader),
        delta_g1=_read_g1(reader),
        delta_g2=_read_g2(reader),
    )
    reader.end_read_section()
    return header


def _read_point_section(reader: BinFileReader, section_id: int,
                        decode: Callable[[bytes], Point], size: int,
                        point_type: type) -> Tuple[Point, ...]:
    """Decode a section made of back-to-back uncompressed points."""
    descriptor = reader.start_read_section(section_id)
    if descriptor.length % size != 0:
        raise SectionSizeMismatch(
            f"{descriptor.length} bytes is not a whole number of {size}-byte points",
            section_id=section_id, offset=descriptor.offset,
        )

    blocks = np.frombuffer(reader.read_bytes(descriptor.length), dtype=np.uint8).reshape(-1, size)
    is_zero = ~blocks.any(axis=1)

    points = []
    for i, block in enumerate(blocks):
        if is_zero[i]:
            points.append(point_type.infinity())
            continue
        with reader.locating(descriptor.offset + i * size):
            points.append(decode(block.tobytes()))
    reader.end_read_section()

    logger.debug(
        "Section %d (%s): %d points, %d at infinity",
        section_id, SECTION_NAMES[section_id], len(points), int(is_zero.sum()),
    )
    return tuple(points)


def _read_coefficients(reader: BinFileReader) -> ConstraintMatrices:
    descriptor = reader.start_read_section(COEFFS_SECTION)
    n_coeffs = reader.read_u32_le()
    body_start = reader.pos
    expected = 4 + n_coeffs * COEFF_DTYPE.itemsize
    if expected != descriptor.length:
        raise SectionSizeMismatch(
            f"{n_coeffs} coefficients need {expected} bytes, section declares {descriptor.length}",
            section_id=COEFFS_SECTION, offset=descriptor.offset,
        )

    entries = np.frombuffer(reader.read_bytes(n_coeffs * COEFF_DTYPE.itemsize), dtype=COEFF_DTYPE)
    unknown = entries["matrix"] > MATRIX_B
    if unknown.any():
        i = int(np.argmax(unknown))
        raise UnsupportedFormat(
            f"coefficient {i} references matrix {int(entries['matrix'][i])}; "
            f"version 1 defines only A ({MATRIX_A}) and B ({MATRIX_B})",
            section_id=COEFFS_SECTION, offset=body_start + i * COEFF_DTYPE.itemsize,
        )

    a: List[MatrixEntry] = []
    b: List[MatrixEntry] = []
    for i, entry in enumerate(entries):
        with reader.locating(body_start + i * COEFF_DTYPE.itemsize):
            value = FR_MONT2.decode(entry["value"].tobytes())
        target = a if entry["matrix"] == MATRIX_A else b
        target.append(MatrixEntry(int(entry["row"]), int(entry["col"]), value))
    reader.end_read_section()

    logger.debug("Coefficients: %d in A, %d in B", len(a), len(b))
    return ConstraintMatrices(a=sort_entries(a), b=sort_entries(b))


# --- Writing ---

def write_zkey(pk: ProvingKey) -> bytes:
    """Serialize a ProvingKey as a zkey container (sections 1-9, no contributions).

    Raises:
        UnsupportedFormat: If the key has a C matrix, which zkey cannot hold
    """
    if pk.matrices.c:
        raise UnsupportedFormat("zkey containers cannot store a C matrix")

    writer = BinFileWriter(ZKEY_MAGIC, ZKEY_VERSIONS[-1], n_sections=H_SECTION - HEADER_SECTION + 1)

    writer.start_write_section(HEADER_SECTION)
    writer.write_u32_le(GROTH16_PROTOCOL)
    writer.end_write_section()

    writer.start_write_section(GROTH16_HEADER_SECTION)
    for modulus in (BN254_Q, BN254_R):
        writer.write_u32_le(FIELD_BYTES)
        writer.write_bytes(modulus.to_bytes(FIELD_BYTES, "little"))
    writer.write_u32_le(pk.n_vars)
    writer.write_u32_le(pk.n_public)
    writer.write_u32_le(pk.domain_size)
    writer.write_bytes(encode_g1(pk.alpha_g1))
    writer.write_bytes(encode_g1(pk.beta_g1))
    writer.write_bytes(encode_g2(pk.beta_g2))
    writer.write_bytes(encode_g2(pk.gamma_g2))
    writer.write_bytes(encode_g1(pk.delta_g1))
    writer.write_bytes(encode_g2(pk.delta_g2))
    writer.end_write_section()

    _write_point_section(writer, IC_SECTION, pk.ic, encode_g1)

    writer.start_write_section(COEFFS_SECTION)
    writer.write_u32_le(len(pk.matrices.a) + len(pk.matrices.b))
    for matrix, entries in ((MATRIX_A, pk.matrices.a), (MATRIX_B, pk.matrices.b)):
        for entry in entries:
            writer.write_u32_le(matrix)
            writer.write_u32_le(entry.row)
            writer.write_u32_le(entry.col)
            writer.write_bytes(FR_MONT2.encode(entry.value))
    writer.end_write_section()

    _write_point_section(writer, A_SECTION, pk.a_query, encode_g1)
    _write_point_section(writer, B1_SECTION, pk.b_g1_query, encode_g1)
    _write_point_section(writer, B2_SECTION, pk.b_g2_query, encode_g2)
    _write_point_section(writer, C_SECTION, pk.c_query, encode_g1)
    _write_point_section(writer, H_SECTION, pk.h_query, encode_g1)

    return writer.getvalue()


def _write_point_section(writer: BinFileWriter, section_id: int, points,
                         encode: Callable) -> None:
    writer.start_write_section(section_id)
    for point in points:
        writer.write_bytes(encode(point))
    writer.end_write_section()
