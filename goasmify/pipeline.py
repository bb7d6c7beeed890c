"""
Per-line translation of a subroutine body.

Drives the rewriter and the frame offset resolver over every line that is
not part of the compiler epilogue, and splices the synthesized epilogue in
where the compiler's one ended.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from . import rewriter
from .frame import (
    StackArgLayout,
    check_rbp_minus_access,
    fix_pic_labels,
    fix_rbp_plus_load,
    select_layout,
)
from .model import Epilogue, NO_TABLE, StackArgs, Subroutine, Table
from .prologue import write_epilogue, write_prologue


def translate_line(
    line: str,
    table: Table,
    layout: StackArgLayout,
) -> Optional[str]:
    """
    Translate one body line.

    Returns:
        The rewritten line, or None when the line is dropped.

    Raises:
        UnresolvedPicReference, UnsupportedFrameAccess
    """
    line, skip = rewriter.strip_comments(line)
    if skip:
        return None

    if ".align" in line:
        return None

    line, _ = rewriter.fix_labels(line)
    line, _, _ = rewriter.upper_case_jumps(line)
    line = rewriter.upper_case_calls(line)
    line = rewriter.disable_untranslated(line)

    line = rewriter.remove_size_markers(line)
    line = rewriter.fix_shift_instructions(line)
    line = rewriter.fix_movabs_instructions(line)

    if table.is_present():
        line = fix_pic_labels(line, table)

    line = fix_rbp_plus_load(line, layout)
    return check_rbp_minus_access(line)


def translate_body(
    lines: Sequence[str],
    epilogue: Epilogue,
    stack_args: StackArgs = StackArgs(),
    table: Table = NO_TABLE,
) -> List[str]:
    """
    Translate the body lines of a subroutine.

    Lines in ``[epilogue.start, epilogue.end)`` are not translated; the
    synthesized epilogue takes the place of the last of them.

    Raises:
        ValueError: If the epilogue range does not fit the lines.
        TranslationError: On the first fatal line; no output is returned.
    """
    epilogue.validate(len(lines))
    layout = select_layout(stack_args, epilogue.aligned_stack, table.is_present())

    result: List[str] = []
    for index, line in enumerate(lines):
        if epilogue.start <= index < epilogue.end:
            if index == epilogue.end - 1:
                result.extend(write_epilogue(epilogue))
            continue

        translated = translate_line(line, table, layout)
        if translated is not None:
            result.append(translated)

    return result


def translate_subroutine(
    lines: Sequence[str],
    subroutine: Subroutine,
    arguments: int,
    stack_args: StackArgs = StackArgs(),
    table: Table = NO_TABLE,
) -> List[str]:
    """
    Translate a whole subroutine: prologue followed by the body.

    Args:
        lines: Body lines, with the compiler prologue already removed.
        subroutine: Name and epilogue descriptor.
        arguments: Declared argument count.
        stack_args: Layout of the stack-passed arguments.
        table: Constant table, or NO_TABLE.

    Returns:
        The translated lines.
    """
    body = translate_body(lines, subroutine.epilogue, stack_args, table)
    return write_prologue(subroutine, arguments, table) + body
