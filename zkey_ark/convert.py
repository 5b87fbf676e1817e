"""zkey -> canonical conversion driver.

Parses the whole container into a ProvingKey, then serializes it. Nothing is
returned (and nothing should be written by the caller) unless both steps
succeed.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from zkey_ark.protocol.ark import write_ark
from zkey_ark.protocol.zkey import read_zkey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvertOptions:
    """Conversion knobs."""
    strict_sections: bool = False  # reject unknown zkey section ids


@dataclass(frozen=True)
class ConversionResult:
    """Canonical bytes plus the sizes reported to the caller."""
    output: bytes
    input_size: int

    @property
    def output_size(self) -> int:
        return len(self.output)

    @property
    def ratio(self) -> float:
        """output_size / input_size (0.0 for an empty input)."""
        if self.input_size == 0:
            return 0.0
        return self.output_size / self.input_size


def convert_with_report(data: bytes, options: Optional[ConvertOptions] = None) -> ConversionResult:
    """Convert zkey bytes and report sizes.

    Raises:
        ConversionError: First error from parsing or validation
    """
    options = options or ConvertOptions()
    pk = read_zkey(data, strict_sections=options.strict_sections)
    output = write_ark(pk)
    result = ConversionResult(output=output, input_size=len(data))
    logger.info(
        "Converted proving key: %d -> %d bytes (%.1f%%)",
        result.input_size, result.output_size, result.ratio * 100,
    )
    return result


def convert(data: bytes, options: Optional[ConvertOptions] = None) -> bytes:
    """Convert zkey bytes to canonical bytes."""
    return convert_with_report(data, options).output
