#!/usr/bin/env python3
"""
goasmify CLI

Command-line interface for translating clang assembly into Go assembler.

Usage:
    goasmify sum_float.s -o sum_float_amd64.s --stub sum_float_amd64.go
    goasmify sum_float.s --args sum_float=3   # output to sum_float_amd64.s
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List


def _argument_count(value: str) -> tuple:
    name, sep, count = value.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=COUNT, got {value!r}")
    try:
        return name, int(count)
    except ValueError:
        raise argparse.ArgumentTypeError(f"argument count must be an integer: {value!r}")


def main(args: List[str] | None = None) -> int:
    """Main entry point for the goasmify CLI."""
    parser = argparse.ArgumentParser(
        prog="goasmify",
        description="Translate clang x86-64 assembly into Go assembler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    goasmify sum_float.s -o sum_float_amd64.s --stub sum_float_amd64.go
    goasmify sum_float.s --args sum_float=3
    goasmify sum_float.s --stub sum_float_amd64.go --encode
""",
    )

    parser.add_argument(
        "source",
        type=Path,
        help="clang assembly listing (Intel syntax)",
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output Go assembly file (default: source with _amd64.s suffix)",
    )

    parser.add_argument(
        "--stub",
        type=Path,
        default=None,
        help="Go file declaring the functions, for their argument counts",
    )

    parser.add_argument(
        "--args",
        type=_argument_count,
        action="append",
        default=[],
        metavar="NAME=COUNT",
        help="Argument count of a function (overrides --stub)",
    )

    parser.add_argument(
        "--table-name",
        type=str,
        default="LCDATA1",
        help="Symbol for the constant table (default: LCDATA1)",
    )

    parser.add_argument(
        "--encode",
        action="store_true",
        help="Assemble unsupported instructions into data directives (needs keystone-engine)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    parsed = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    # Import here to avoid slow startup
    from . import translate_file

    source_path = parsed.source
    output_path = parsed.output

    if output_path is None:
        output_path = source_path.with_name(source_path.stem + "_amd64.s")

    if not source_path.exists():
        print(f"Error: Source file not found: {source_path}", file=sys.stderr)
        return 1

    arguments: Dict[str, int] = dict(parsed.args)

    if parsed.verbose:
        print(f"Translating: {source_path}")
        print(f"Output: {output_path}")

    result = translate_file(
        source_path,
        output_path=output_path,
        stub_path=parsed.stub,
        arguments=arguments,
        table_name=parsed.table_name,
        encode=parsed.encode,
    )

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    if not result.success:
        for error in result.errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    print(f"Translated: {output_path} ({len(result.subroutines)} subroutines)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
