"""
goasmify - clang x86-64 assembly to Go assembler translator

Rewrites Intel-syntax, System V listings emitted by clang into Go
assembler (Plan 9 dialect) functions callable from Go, recomputing frame
offsets and synthesizing the Go calling-convention prologue/epilogue.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from .abi import ARGUMENT_REGISTERS
from .constants import DEFAULT_TABLE_NAME, build_table, render_data, restrict_table
from .errors import ListingError, TranslationError
from .model import Epilogue, Label, StackArgs, Subroutine, Table
from .pipeline import translate_body, translate_subroutine
from .rewriter import is_disabled
from .segments import analyze, split_functions
from .stubs import parse_stubs

__version__ = "0.1.0"
__all__ = [
    "translate",
    "translate_file",
    "translate_subroutine",
    "translate_body",
    "TranslationResult",
    "TranslationError",
    "Subroutine",
    "Epilogue",
    "StackArgs",
    "Table",
    "Label",
]

LOGGER = logging.getLogger("goasmify")

HEADER = [
    "//+build !noasm !appengine",
    "// Code generated by goasmify. DO NOT EDIT.",
    "",
    '#include "textflag.h"',
    "",
]


@dataclass
class TranslationResult:
    """Result of translating a listing."""

    lines: List[str] = field(default_factory=list)
    """The Go assembler output."""

    subroutines: List[str] = field(default_factory=list)
    """Names of the subroutines that were translated."""

    errors: List[str] = field(default_factory=list)
    """Fatal errors, one per subroutine that could not be translated."""

    warnings: List[str] = field(default_factory=list)
    """Non-fatal findings: unknown constant directives, lines Keystone rejected."""

    @property
    def success(self) -> bool:
        """Return True if every subroutine was translated."""
        return len(self.errors) == 0

    @property
    def text(self) -> str:
        return "\n".join(self.lines) + "\n"


def translate(
    source: str,
    arguments: Mapping[str, int],
    table_name: str = DEFAULT_TABLE_NAME,
    encode: bool = False,
) -> TranslationResult:
    """
    Translate a clang listing into Go assembler.

    Args:
        source: Intel-syntax assembly as emitted by clang.
        arguments: Declared argument count per function name.
        table_name: Symbol for the consolidated constant data.
        encode: Assemble disabled lines into data directives with Keystone;
                lines it cannot assemble are reported in ``warnings``.

    Returns:
        TranslationResult. A subroutine that fails is reported in
        ``errors`` and left out of the output; the others are still
        translated.

    Example:
        >>> result = translate(listing, {"sum_float": 3})
        >>> if result.success:
        ...     Path("sum_float_amd64.s").write_text(result.text)
    """
    result = TranslationResult()
    source_lines = source.splitlines()

    constants = build_table(source_lines, table_name)
    result.warnings.extend(constants.warnings)

    result.lines.extend(HEADER)
    if constants.table.is_present():
        result.lines.extend(render_data(constants))
        result.lines.append("")

    for function in split_functions(source_lines):
        try:
            lines = _translate_function(function, arguments, constants.table)
        except TranslationError as e:
            LOGGER.debug("Skipping %s", function.name, exc_info=True)
            result.errors.append(f"{function.name}: {e}")
            continue

        disabled = sum(1 for line in lines if is_disabled(line))
        LOGGER.info("Translated %s (%d lines, %d left for encoding)",
                    function.name, len(lines), disabled)
        result.subroutines.append(function.name)
        result.lines.extend(lines)
        result.lines.append("")

    if encode:
        _encode(result)

    return result


def _translate_function(function, arguments: Mapping[str, int], table: Table) -> List[str]:
    if function.name not in arguments:
        raise ListingError(f"no argument count declared for {function.name}")
    count = arguments[function.name]

    layout = analyze(function)
    stack_args = StackArgs(
        number=max(0, count - len(ARGUMENT_REGISTERS)),
        offset_to_first=layout.offset_to_first,
    )
    subroutine = Subroutine(name=function.name, epilogue=layout.epilogue)
    return translate_subroutine(
        layout.body,
        subroutine,
        count,
        stack_args,
        restrict_table(table, layout.body),
    )


def _encode(result: TranslationResult) -> None:
    from .encoder import Encoder

    try:
        encoder = Encoder()
    except (ImportError, RuntimeError) as e:
        result.errors.append(str(e))
        return

    result.lines, warnings = encoder.encode_lines(result.lines)
    result.warnings.extend(f"not encoded: {w}" for w in warnings)


def translate_file(
    source_path: Union[str, Path],
    output_path: Optional[Union[str, Path]] = None,
    stub_path: Optional[Union[str, Path]] = None,
    arguments: Optional[Mapping[str, int]] = None,
    table_name: str = DEFAULT_TABLE_NAME,
    encode: bool = False,
) -> TranslationResult:
    """
    Translate an assembly file.

    Args:
        source_path: Path to the clang listing.
        output_path: Where to write the Go assembler. Nothing is written
                     when None or when translation failed.
        stub_path: Go file declaring the functions; argument counts are
                   read from it.
        arguments: Argument counts overriding those from the stub.
        table_name: Symbol for the consolidated constant data.
        encode: Assemble disabled lines with Keystone.

    Returns:
        TranslationResult.
    """
    source_path = Path(source_path)

    if not source_path.exists():
        return TranslationResult(errors=[f"Source file not found: {source_path}"])

    try:
        source = source_path.read_text()
    except OSError as e:
        return TranslationResult(errors=[f"Failed to read source file: {e}"])

    counts: Dict[str, int] = {}
    if stub_path is not None:
        try:
            counts.update(parse_stubs(Path(stub_path).read_text()))
        except OSError as e:
            return TranslationResult(errors=[f"Failed to read stub file: {e}"])
    if arguments:
        counts.update(arguments)

    result = translate(source, counts, table_name=table_name, encode=encode)

    if result.success and output_path is not None:
        try:
            Path(output_path).write_text(result.text)
        except OSError as e:
            result.errors.append(f"Failed to write output file: {e}")

    return result
