"""Conversion errors.

Every failure aborts the conversion. Errors raised deep inside the codecs
carry no location; the container reader fills in the section id and byte
offset before re-raising them.
"""

from typing import Optional


class ConversionError(ValueError):
    """Base class for all proving-key conversion failures."""

    def __init__(self, message: str, *, section_id: Optional[int] = None,
                 offset: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.section_id = section_id
        self.offset = offset

    def locate(self, section_id: Optional[int], offset: Optional[int]) -> "ConversionError":
        """Attach a location if none is recorded yet. Returns self."""
        if self.section_id is None:
            self.section_id = section_id
        if self.offset is None:
            self.offset = offset
        return self

    def __str__(self) -> str:
        where = []
        if self.section_id is not None:
            where.append(f"section {self.section_id}")
        if self.offset is not None:
            where.append(f"offset {self.offset}")
        if where:
            return f"{self.message} ({', '.join(where)})"
        return self.message


class UnsupportedFormat(ConversionError):
    """Unknown magic, version, protocol, curve or sub-layout."""


class TruncatedInput(ConversionError):
    """The buffer ends before a declared structure does."""


class SectionSizeMismatch(ConversionError):
    """Parsed content does not consume exactly the declared length."""


class MissingSection(ConversionError):
    """A required section id is absent from the section table."""


class InconsistentDimensions(ConversionError):
    """Point or matrix counts disagree with the declared header dimensions."""


class MalformedField(ConversionError):
    """A field element encoding is not canonically reduced."""


class InvalidPoint(ConversionError):
    """A point encoding does not describe a point on the curve."""
