"""Sectioned binary container reader/writer (snarkjs binfile layout).

Layout, all little-endian:
    magic (4 bytes) | version u32 | n_sections u32 |
    n_sections x { section_id u32 | size u64 | payload[size] }

Sections are addressed by id. The table is a fixed array indexed by id since
every container type has a small closed set of ids.
"""

import logging
import struct
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from zkey_ark.errors import (
    ConversionError,
    MissingSection,
    SectionSizeMismatch,
    TruncatedInput,
    UnsupportedFormat,
)

logger = logging.getLogger(__name__)

SECTION_HEADER_SIZE = 12  # id u32 + size u64


@dataclass(frozen=True)
class SectionDescriptor:
    """Location of one section payload inside the container."""
    section_id: int
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


class BinFileReader:
    """Binary container reader with little-endian decoding.

    Construction runs the header phase and the section-table phase; payloads
    are read afterwards with start_read_section()/end_read_section().

    Args:
        data: Whole container
        magic: Expected 4-byte magic
        versions: Accepted version numbers
        max_section_id: Highest known section id
        strict: Reject unknown section ids instead of skipping them

    Raises:
        UnsupportedFormat: Wrong magic or version, duplicated known section,
            or (strict) unknown section
        TruncatedInput: Header or section table runs past the buffer
    """

    def __init__(self, data: bytes, magic: bytes, versions: Sequence[int],
                 max_section_id: int, strict: bool = False) -> None:
        self.data = bytes(data)
        self.pos = 0
        self.reading_section: Optional[int] = None
        self.section_start = 0
        self.section_end = 0

        self.sections: List[Optional[SectionDescriptor]] = [None] * (max_section_id + 1)
        self.unknown_sections: List[SectionDescriptor] = []

        self._read_header(magic, versions)
        self._read_section_table(strict)

    # --- Header and table phases ---

    def _read_header(self, magic: bytes, versions: Sequence[int]) -> None:
        found = self.data[:len(magic)]
        if found != magic:
            raise UnsupportedFormat(f"invalid magic: expected {magic!r}, got {found!r}", offset=0)
        self.pos = len(magic)

        self.version = self.read_u32_le()
        if self.version not in versions:
            raise UnsupportedFormat(
                f"unsupported version {self.version}, expected one of {list(versions)}",
                offset=len(magic),
            )
        self.n_sections = self.read_u32_le()

    def _read_section_table(self, strict: bool) -> None:
        for _ in range(self.n_sections):
            header_pos = self.pos
            section_id = self.read_u32_le()
            size = self.read_u64_le()
            descriptor = SectionDescriptor(section_id, self.pos, size)
            if descriptor.end > len(self.data):
                raise TruncatedInput(
                    f"section {section_id} declares {size} bytes but only "
                    f"{len(self.data) - self.pos} remain",
                    section_id=section_id, offset=header_pos,
                )

            if 0 < section_id < len(self.sections):
                if self.sections[section_id] is not None:
                    raise UnsupportedFormat(
                        f"section {section_id} appears more than once",
                        section_id=section_id, offset=header_pos,
                    )
                self.sections[section_id] = descriptor
            elif strict:
                raise UnsupportedFormat(
                    f"unknown section id {section_id}", section_id=section_id, offset=header_pos,
                )
            else:
                logger.debug("Skipping unknown section %d (%d bytes)", section_id, size)
                self.unknown_sections.append(descriptor)

            self.pos = descriptor.end

        logger.debug(
            "Read section table: %d sections, %d bytes",
            self.n_sections, len(self.data),
        )
        self.pos = 0

    def descriptors(self) -> List[SectionDescriptor]:
        """All recorded sections (known and skipped) in file order."""
        found = [d for d in self.sections if d is not None] + self.unknown_sections
        return sorted(found, key=lambda d: d.offset)

    # --- Primitive reads ---

    def read_bytes(self, n: int) -> bytes:
        """Read n raw bytes, bounded by the current section if one is open."""
        limit = self.section_end if self.reading_section is not None else len(self.data)
        if self.pos + n > limit:
            if self.reading_section is not None:
                raise SectionSizeMismatch(
                    f"section content needs {self.pos + n - self.section_start} bytes, "
                    f"declared {self.section_end - self.section_start}",
                    section_id=self.reading_section, offset=self.pos,
                )
            raise TruncatedInput(
                f"need {n} bytes, only {len(self.data) - self.pos} remain", offset=self.pos,
            )
        result = self.data[self.pos:self.pos + n]
        self.pos += n
        return result

    def read_u32_le(self) -> int:
        """Read uint32 little-endian."""
        return struct.unpack('<I', self.read_bytes(4))[0]

    def read_u64_le(self) -> int:
        """Read uint64 little-endian."""
        return struct.unpack('<Q', self.read_bytes(8))[0]

    # --- Section reads ---

    def has_section(self, section_id: int) -> bool:
        return 0 < section_id < len(self.sections) and self.sections[section_id] is not None

    def start_read_section(self, section_id: int) -> SectionDescriptor:
        """Seek to the start of a section payload.

        Raises:
            MissingSection: If the section is absent
        """
        if not self.has_section(section_id):
            raise MissingSection(f"required section {section_id} is missing", section_id=section_id)

        descriptor = self.sections[section_id]
        self.pos = descriptor.offset
        self.section_start = descriptor.offset
        self.section_end = descriptor.end
        self.reading_section = section_id
        return descriptor

    def end_read_section(self, check: bool = True) -> None:
        """End reading a section.

        Args:
            check: If True, verify we read exactly the declared size
        """
        if check and self.reading_section is not None and self.pos != self.section_end:
            raise SectionSizeMismatch(
                f"read {self.pos - self.section_start} bytes, "
                f"declared {self.section_end - self.section_start}",
                section_id=self.reading_section, offset=self.pos,
            )
        self.reading_section = None

    def read_section(self, section_id: int) -> bytes:
        """Return a whole section payload."""
        descriptor = self.start_read_section(section_id)
        payload = self.read_bytes(descriptor.length)
        self.end_read_section()
        return payload

    @contextmanager
    def locating(self, offset: Optional[int] = None) -> Iterator[None]:
        """Attach the current section id and offset to codec errors raised inside."""
        start = self.pos if offset is None else offset
        try:
            yield
        except ConversionError as err:
            err.locate(self.reading_section, start)
            raise


class BinFileWriter:
    """Builds a container with the same layout as BinFileReader consumes."""

    def __init__(self, magic: bytes, version: int, n_sections: int) -> None:
        self.buf = bytearray(magic)
        self.write_u32_le(version)
        self.write_u32_le(n_sections)
        self._size_pos: Optional[int] = None

    def write_bytes(self, data: bytes) -> None:
        self.buf += data

    def write_u32_le(self, value: int) -> None:
        self.buf += struct.pack('<I', value)

    def write_u64_le(self, value: int) -> None:
        self.buf += struct.pack('<Q', value)

    def start_write_section(self, section_id: int) -> None:
        self.write_u32_le(section_id)
        self._size_pos = len(self.buf)
        self.write_u64_le(0)  # patched by end_write_section

    def end_write_section(self) -> None:
        size = len(self.buf) - self._size_pos - 8
        struct.pack_into('<Q', self.buf, self._size_pos, size)
        self._size_pos = None

    def getvalue(self) -> bytes:
        return bytes(self.buf)
