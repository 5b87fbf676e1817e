"""Tests for the sectioned container reader/writer."""

import struct

import pytest

from zkey_ark.errors import (
    InvalidPoint,
    MissingSection,
    SectionSizeMismatch,
    TruncatedInput,
    UnsupportedFormat,
)
from zkey_ark.protocol.binfile import BinFileReader, BinFileWriter

MAGIC = b"test"


def _container(*sections, version: int = 1, n_sections: int = None) -> bytes:
    writer = BinFileWriter(MAGIC, version, len(sections) if n_sections is None else n_sections)
    for section_id, payload in sections:
        writer.start_write_section(section_id)
        writer.write_bytes(payload)
        writer.end_write_section()
    return writer.getvalue()


def _reader(data: bytes, strict: bool = False) -> BinFileReader:
    return BinFileReader(data, MAGIC, versions=(1,), max_section_id=4, strict=strict)


class TestBinFileLayout:
    """Header and section table phases."""

    def test_writer_layout(self) -> None:
        """magic | version | n_sections | {id u32 | size u64 | payload}."""
        data = _container((2, b"abc"))
        assert data[:4] == MAGIC
        assert struct.unpack('<III', data[4:16]) == (1, 1, 2)
        assert struct.unpack('<Q', data[16:24]) == (3,)
        assert data[24:] == b"abc"

    def test_section_table(self) -> None:
        """Descriptors record payload offsets and lengths."""
        data = _container((1, b"\x01\x00\x00\x00"), (3, b"xyz"))
        reader = _reader(data)
        assert reader.n_sections == 2
        first, second = reader.descriptors()
        assert (first.section_id, first.offset, first.length) == (1, 24, 4)
        assert (second.section_id, second.offset, second.length) == (3, 40, 3)
        assert reader.read_section(3) == b"xyz"

    def test_rejects_bad_magic(self) -> None:
        """Magic must match exactly."""
        data = b"TEST" + _container((1, b""))[4:]
        with pytest.raises(UnsupportedFormat):
            _reader(data)

    def test_rejects_short_buffer_with_bad_magic(self) -> None:
        """The magic check runs before any length check."""
        with pytest.raises(UnsupportedFormat):
            _reader(b"te")

    def test_rejects_unknown_version(self) -> None:
        """Only listed versions are accepted."""
        with pytest.raises(UnsupportedFormat):
            _reader(_container((1, b""), version=2))

    def test_truncated_header(self) -> None:
        """Magic alone is not a container."""
        with pytest.raises(TruncatedInput):
            _reader(MAGIC + b"\x01\x00")

    def test_table_claims_more_sections_than_present(self) -> None:
        """Walking past the buffer while reading section headers."""
        with pytest.raises(TruncatedInput):
            _reader(_container((1, b"abcd"), n_sections=5))

    def test_section_longer_than_buffer(self) -> None:
        """A declared size past the end of the buffer."""
        data = bytearray(_container((1, b"abcd")))
        struct.pack_into('<Q', data, 16, 1000)
        with pytest.raises(TruncatedInput) as exc:
            _reader(bytes(data))
        assert exc.value.section_id == 1

    def test_unknown_sections_skipped(self) -> None:
        """Ids beyond max_section_id are recorded but not indexed."""
        reader = _reader(_container((1, b"a"), (42, b"zz")))
        assert reader.has_section(1)
        assert not reader.has_section(42)
        assert [d.section_id for d in reader.unknown_sections] == [42]

    def test_unknown_sections_rejected_when_strict(self) -> None:
        """strict turns unknown ids into errors."""
        with pytest.raises(UnsupportedFormat):
            _reader(_container((1, b"a"), (42, b"zz")), strict=True)

    def test_duplicate_section(self) -> None:
        """A known id may appear once."""
        with pytest.raises(UnsupportedFormat):
            _reader(_container((1, b"a"), (1, b"b")))


class TestBinFileSections:
    """Section payload reads."""

    def test_missing_section(self) -> None:
        """Reading an absent section names it."""
        reader = _reader(_container((1, b"a")))
        with pytest.raises(MissingSection) as exc:
            reader.start_read_section(2)
        assert exc.value.section_id == 2

    def test_read_past_section_end(self) -> None:
        """Reads are bounded by the declared section length."""
        reader = _reader(_container((1, b"\x01\x00"), (2, b"\x00" * 8)))
        reader.start_read_section(1)
        with pytest.raises(SectionSizeMismatch):
            reader.read_u32_le()

    def test_unconsumed_section(self) -> None:
        """end_read_section checks the whole payload was consumed."""
        reader = _reader(_container((1, b"\x01\x00\x00\x00\xff")))
        reader.start_read_section(1)
        assert reader.read_u32_le() == 1
        with pytest.raises(SectionSizeMismatch):
            reader.end_read_section()

    def test_integers_little_endian(self) -> None:
        """u32 and u64 reads are little-endian."""
        reader = _reader(_container((1, struct.pack('<IQ', 7, 2**40 + 1))))
        reader.start_read_section(1)
        assert reader.read_u32_le() == 7
        assert reader.read_u64_le() == 2**40 + 1
        reader.end_read_section()

    def test_locating_fills_context(self) -> None:
        """Codec errors raised inside locating() gain section id and offset."""
        reader = _reader(_container((3, b"abcd")))
        reader.start_read_section(3)
        with pytest.raises(InvalidPoint) as exc:
            with reader.locating():
                raise InvalidPoint("bad")
        assert exc.value.section_id == 3
        assert exc.value.offset == 24
        assert "section 3" in str(exc.value)

    def test_locating_keeps_existing_context(self) -> None:
        """A location recorded closer to the fault wins."""
        reader = _reader(_container((3, b"abcd")))
        reader.start_read_section(3)
        with pytest.raises(InvalidPoint) as exc:
            with reader.locating():
                raise InvalidPoint("bad", section_id=9, offset=1)
        assert (exc.value.section_id, exc.value.offset) == (9, 1)
