"""
Layout-independent rewriting of single source lines.

Every function here takes one line of clang Intel-syntax assembly and
returns its rewritten form. None of them depend on the frame layout or
hold any state, so they can be applied in any order the pipeline needs.
"""

from __future__ import annotations

import re
from typing import Dict, Tuple

# Regex patterns
CALL_PATTERN = re.compile(r'^\s*call\s*')
LABEL_PATTERN = re.compile(r'^(\.?LBB.*:)')
JUMP_WITH_LABEL_PATTERN = re.compile(r'^(\s*j\w*)\s*(\.?LBB.*)')
# '#' or '##' followed by whitespace, up to end of line
COMMENT_PATTERN = re.compile(r'\s*#?#\s.*$')

# Markers the Go assembler neither needs nor accepts
UNDEFINED_MARKERS = ("ptr", "xmmword", "ymmword", "# NOREX")

# Shift instructions whose count defaults to 1 in Intel syntax
IMPLICIT_COUNT_SHIFTS = ("shr", "sar")

# C runtime routines with an equivalent in the Go support library
RUNTIME_SUBSTITUTES: Dict[str, str] = {
    "_memcpy": "clib·_memcpy(SB)",
}

DISABLED_PREFIX = " " * 33 + "// "


def strip_comments(line: str) -> Tuple[str, bool]:
    """
    Remove a trailing ``#``/``##`` comment.

    Returns:
        (line, skip) where skip is True when nothing is left of the line.
    """
    match = COMMENT_PATTERN.search(line)
    if match:
        line = line[:match.start()]
        if line == "":
            return "", True
    return line, False


def fix_labels(line: str) -> Tuple[str, str]:
    """
    Drop the leading ``.`` from a local block label.

    Returns:
        (line, label) where label is the bare name without the colon, or
        an empty string when the line is not a block label.
    """
    label = ""
    match = LABEL_PATTERN.match(line)
    if match:
        label = match.group(1).replace(".", "", 1)
        line = label
        label = label.replace(":", "", 1)
    return line, label


def upper_case_jumps(line: str) -> Tuple[str, str, str]:
    """
    Upper-case the mnemonic of a jump to a block label.

    Returns:
        (line, instruction, label); instruction and label are empty when
        the line is not a jump.
    """
    instruction, label = "", ""
    match = JUMP_WITH_LABEL_PATTERN.match(line)
    if match:
        instruction = match.group(1).upper()
        label = match.group(2).replace(".", "", 1)
        line = instruction + " " + label
    return line, instruction.strip(), label


def upper_case_calls(line: str) -> str:
    """Upper-case ``call`` and map whitelisted C runtime callees."""
    if CALL_PATTERN.match(line):
        head, callee = line.split("call", 1)
        callee = callee.strip()
        callee = RUNTIME_SUBSTITUTES.get(callee, callee)
        line = head + "CALL " + callee
    return line


def is_lower(token: str) -> bool:
    return token[:1].islower()


def disable_line(line: str) -> str:
    """Turn a line into a Go comment, leaving it for a later encoding pass."""
    return DISABLED_PREFIX + line.strip()


def is_disabled(line: str) -> bool:
    return line.startswith(DISABLED_PREFIX)


def disable_untranslated(line: str) -> str:
    """
    Comment out a line whose mnemonic is still lower case.

    Every mnemonic this tool translates has been upper-cased by the time
    this runs, so a lower-case one is an instruction form that has no Go
    assembler spelling here. Labels are left alone.
    """
    fields = line.split()
    if fields and ":" not in fields[0] and is_lower(fields[0]):
        line = disable_line(line)
    return line


def remove_undefined(line: str, undefined: str) -> str:
    """Remove the first occurrence of ``undefined`` and the whitespace after it."""
    parts = line.split(undefined, 1)
    if len(parts) > 1:
        line = parts[0] + parts[1].strip()
    return line


def remove_size_markers(line: str) -> str:
    for marker in UNDEFINED_MARKERS:
        line = remove_undefined(line, marker)
    return line


def fix_shift_no_argument(line: str, instruction: str) -> str:
    """Append an explicit count of 1 to a single-operand shift."""
    if instruction in line:
        operands = line.split(instruction, 1)[1]
        if "," not in operands:
            line += ", 1"
    return line


def fix_shift_instructions(line: str) -> str:
    for instruction in IMPLICIT_COUNT_SHIFTS:
        line = fix_shift_no_argument(line, instruction)
    return line


def fix_movabs_instructions(line: str) -> str:
    """``movabs`` is spelled as a plain ``mov``."""
    if "movabs" in line:
        head, tail = line.split("movabs", 1)
        line = head + "mov" + tail
    return line
