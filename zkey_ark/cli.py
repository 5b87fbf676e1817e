"""Command-line wrapper: convert a snarkjs .zkey file to the canonical .ark format.

Usage:
    zkey-to-ark <input.zkey> <output.ark> [--strict] [-v]
    zkey-to-ark <input.zkey> --list-sections
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from zkey_ark.convert import ConvertOptions, convert_with_report
from zkey_ark.errors import ConversionError
from zkey_ark.protocol.zkey import SECTION_NAMES, read_section_table


def _kib(n: int) -> str:
    return f"{n} bytes ({n / 1024:.2f} KB)"


def _list_sections(data: bytes, strict: bool) -> None:
    print(f"{'id':>4}  {'offset':>10}  {'length':>10}  name")
    for d in read_section_table(data, strict_sections=strict):
        name = SECTION_NAMES.get(d.section_id, f"unknown {d.section_id}")
        print(f"{d.section_id:>4}  {d.offset:>10}  {d.length:>10}  {name}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Convert a snarkjs .zkey proving key to the compact canonical .ark format'
    )
    parser.add_argument('input', type=Path, help='Input .zkey file')
    parser.add_argument('output', type=Path, nargs='?', help='Output .ark file')
    parser.add_argument(
        '--strict',
        action='store_true',
        help='Reject unknown zkey sections instead of skipping them',
    )
    parser.add_argument(
        '--list-sections',
        action='store_true',
        help='Print the zkey section table and exit',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if args.output is None and not args.list_sections:
        parser.error('output path is required unless --list-sections is given')

    try:
        data = args.input.read_bytes()
        if args.list_sections:
            _list_sections(data, args.strict)
            return 0

        print(f"Converting {args.input} to {args.output}")
        result = convert_with_report(data, ConvertOptions(strict_sections=args.strict))
        # Written only after a successful conversion, so a failure leaves no output file
        args.output.write_bytes(result.output)
    except ConversionError as e:
        print(f"Error: failed to convert {args.input}: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Created {args.output}")
    print()
    print("File sizes:")
    print(f"  .zkey: {_kib(result.input_size)}")
    print(f"  .ark:  {_kib(result.output_size)}")
    print(f"  Ratio: {result.ratio * 100:.1f}%")
    return 0


if __name__ == '__main__':
    sys.exit(main())
