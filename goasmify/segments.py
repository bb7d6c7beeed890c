"""
Discovery of subroutines in a clang listing.

Splits the listing at global function labels, drops assembler directives
from each body, and summarizes the compiler prologue and epilogue into
the records the translation pipeline consumes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .errors import ListingError
from .model import Epilogue
from .rewriter import strip_comments

LOGGER = logging.getLogger("goasmify.segments")

GLOBAL_PATTERN = re.compile(r'^\s*\.glob(?:a)?l\s+([\w$.]+)')
FUNCTION_LABEL_PATTERN = re.compile(r'^([A-Za-z_$][\w$.]*):')
FUNCTION_END_PATTERN = re.compile(r'^\.?Lfunc_end\d+:')
SECTION_PATTERN = re.compile(r'^\s*\.(section|text|data|bss|rodata)\b\s*(.*)$')
LOCAL_LABEL_PATTERN = re.compile(r'^\s*\.?L[\w$.]*:')
MACH_O_SECTION = "__TEXT,"

# Compiler prologue forms, matched on whitespace-normalized text
PUSH_RBP = re.compile(r'^push rbp$')
MOV_RBP_RSP = re.compile(r'^mov rbp, rsp$')
PUSH_REGISTER = re.compile(r'^push r\w+$')
AND_RSP = re.compile(r'^and rsp, (-?\d+)$')
SUB_RSP = re.compile(r'^sub rsp, (\d+)$')

# Compiler epilogue forms
RET = re.compile(r'^retq?$')
EPILOGUE_FORMS = (
    re.compile(r'^vzeroupper$'),
    re.compile(r'^pop r\w+$'),
    re.compile(r'^mov rsp, rbp$'),
    re.compile(r'^lea rsp, \[rbp - \d+\]$'),
    re.compile(r'^add rsp, \d+$'),
)


@dataclass
class FunctionListing:
    """The raw lines of one global function."""

    name: str
    """C name of the function (Mach-O symbols lose their leading ``_``)."""

    line_number: int
    """Line number of the function label (1-based)."""

    lines: List[str] = field(default_factory=list)
    """Lines after the function label, up to the end marker."""


@dataclass(frozen=True)
class FrameLayout:
    """Structural metadata derived from a function's compiler prologue and epilogue."""

    body: List[str]
    """Body lines with directives and the prologue removed."""

    epilogue: Epilogue
    """Epilogue range into ``body`` and frame description."""

    offset_to_first: int
    """Frame-pointer offset of the first stack-passed argument."""


def normalize(line: str) -> str:
    """Comment-free, lower-case, single-spaced instruction text."""
    line, _ = strip_comments(line)
    return " ".join(line.replace(",", ", ").split()).replace(" ,", ",").lower()


def _is_text_section(kind: str, args: str) -> bool:
    if kind == "text":
        return True
    if kind == "section":
        parts = [part.strip().lower() for part in args.split(",")]
        if parts[0] == "__text":
            return len(parts) > 1 and parts[1] == "__text"
        return parts[0].startswith(".text")
    return False


def is_mach_o(lines: Sequence[str]) -> bool:
    """True for a listing with Mach-O (``__TEXT,...``) sections."""
    return any(MACH_O_SECTION in line for line in lines)


def c_name(symbol: str, mach_o: bool) -> str:
    """Drop the underscore Mach-O prepends to C symbols."""
    if mach_o and symbol.startswith("_"):
        return symbol[1:]
    return symbol


def split_functions(lines: Sequence[str]) -> List[FunctionListing]:
    """
    Split a listing into its global functions.

    A function starts at the label of a symbol declared with ``.globl``
    in a text section, and ends at its ``.Lfunc_end`` marker, at the next
    function, at a switch to a non-text section, or at the end of input.
    In a Mach-O listing the function is named without the symbol's
    leading ``_``, so ``_scale`` becomes ``scale``.
    """
    globals_ = {m.group(1) for m in map(GLOBAL_PATTERN.match, lines) if m}
    mach_o = is_mach_o(lines)

    functions: List[FunctionListing] = []
    current: Optional[FunctionListing] = None
    in_text = True

    for line_num, line in enumerate(lines, 1):
        section = SECTION_PATTERN.match(line)
        if section:
            in_text = _is_text_section(section.group(1), section.group(2))
            if not in_text:
                current = None
            continue

        label = FUNCTION_LABEL_PATTERN.match(line)
        if in_text and label and label.group(1) in globals_:
            current = FunctionListing(name=c_name(label.group(1), mach_o), line_number=line_num)
            functions.append(current)
            LOGGER.debug("Found function %s at line %d", current.name, line_num)
            continue

        if FUNCTION_END_PATTERN.match(line):
            current = None
            continue

        if current is not None:
            current.lines.append(line)

    return functions


def _is_directive(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith(".") and not LOCAL_LABEL_PATTERN.match(stripped)


def body_lines(lines: Sequence[str]) -> List[str]:
    """Drop blank lines, comment-only lines and directives; local labels stay."""
    body = []
    for line in lines:
        text, skip = strip_comments(line)
        if skip or not text.strip() or _is_directive(text):
            continue
        body.append(line)
    return body


def analyze(function: FunctionListing) -> FrameLayout:
    """
    Derive the frame layout of a function.

    Raises:
        ListingError: If the function has no ``ret`` or more than one.
    """
    body = body_lines(function.lines)

    pushes_frame_pointer = False
    aligned_stack = False
    align_value = 0
    stack_size = 0

    prologue_end = 0
    for line in body:
        text = normalize(line)
        if PUSH_RBP.match(text):
            pushes_frame_pointer = True
        elif AND_RSP.match(text):
            aligned_stack = True
            align_value = int(AND_RSP.match(text).group(1))
        elif SUB_RSP.match(text):
            stack_size = int(SUB_RSP.match(text).group(1))
        elif not (MOV_RBP_RSP.match(text) or PUSH_REGISTER.match(text)):
            break
        prologue_end += 1

    body = body[prologue_end:]

    returns = [i for i, line in enumerate(body) if RET.match(normalize(line))]
    if not returns:
        raise ListingError(f"no ret instruction in {function.name}")
    if len(returns) > 1:
        raise ListingError(
            f"{function.name} has {len(returns)} epilogues, only one is supported"
        )

    end = returns[0] + 1
    start = returns[0]
    while start > 0 and any(form.match(normalize(body[start - 1])) for form in EPILOGUE_FORMS):
        start -= 1

    vzeroupper = any(normalize(line) == "vzeroupper" for line in body[start:end])

    epilogue = Epilogue(
        start=start,
        end=end,
        aligned_stack=aligned_stack,
        align_value=align_value,
        stack_size=stack_size,
        vzeroupper=vzeroupper,
    )
    # return address, plus the saved frame pointer when there is one
    offset_to_first = 16 if pushes_frame_pointer else 8

    LOGGER.debug("%s: %s, first stack argument at rbp+%d",
                 function.name, epilogue, offset_to_first)
    return FrameLayout(body=body, epilogue=epilogue, offset_to_first=offset_to_first)
