"""Protocol - proving key model and the zkey / canonical container codecs."""

from zkey_ark.protocol.ark import canonical_size, dump_ark, read_ark, write_ark
from zkey_ark.protocol.binfile import BinFileReader, BinFileWriter, SectionDescriptor
from zkey_ark.protocol.proving_key import (
    ConstraintMatrices,
    MatrixEntry,
    ProvingKey,
)
from zkey_ark.protocol.zkey import read_section_table, read_zkey, write_zkey

__all__ = [
    # Model
    "ProvingKey",
    "ConstraintMatrices",
    "MatrixEntry",
    # Container
    "BinFileReader",
    "BinFileWriter",
    "SectionDescriptor",
    "read_section_table",
    "read_zkey",
    "write_zkey",
    # Canonical
    "write_ark",
    "dump_ark",
    "read_ark",
    "canonical_size",
]
