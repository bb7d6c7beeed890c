"""
Constant-table construction for goasmify.

Collects the constant pool entries clang emits in read-only data sections
(``.LCPI0_0:``, ``.L.str:`` ...) into one contiguous blob, records each
label's offset in it, and renders the blob as Go ``DATA``/``GLOBL``
directives.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .abi import RODATA_FLAGS
from .errors import UnresolvedPicReference
from .model import Label, Table

DEFAULT_TABLE_NAME = "LCDATA1"

LABEL_PATTERN = re.compile(r'^\s*([.\w$]+):')
DIRECTIVE_PATTERN = re.compile(r'^\s*\.(\w+)\s*(.*)$')
RIP_REFERENCE_PATTERN = re.compile(r'\[rip \+ ([^\]]+)\]')
COMMENT_START = re.compile(r'#?#(\s|$)')
OCTAL_LITERAL = re.compile(r'-?0[0-7]+')
STRING_ESCAPE = re.compile(r'\\(x[0-9a-fA-F]{1,2}|[0-7]{1,3}|.)', re.DOTALL)

SIMPLE_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', 'b': '\b', 'f': '\f'}

# Section names holding constants, on ELF and Mach-O
DATA_SECTION_MARKERS = ("rodata", "literal", "const", "cstring")
CONSTANT_SECTIONS = ("rodata", "literal4", "literal8", "literal16", "const", "cstring")
VALUE_SIZES = {
    "byte": 1,
    "short": 2, "value": 2, "2byte": 2,
    "long": 4, "int": 4, "4byte": 4,
    "quad": 8, "8byte": 8,
}
IGNORED_DIRECTIVES = ("globl", "global", "type", "size", "p2alignl")


def split_operands(text: str) -> List[str]:
    """
    Split directive operands at commas, up to a trailing ``#`` comment.

    Commas and ``#`` inside quoted strings belong to the string.
    """
    operands: List[str] = []
    start = 0
    quote = None
    i = 0
    while i < len(text):
        char = text[i]
        if quote:
            if char == '\\':
                i += 1
            elif char == quote:
                quote = None
        elif char in '"\'':
            quote = char
        elif char == ',':
            operands.append(text[start:i])
            start = i + 1
        elif char == '#' and COMMENT_START.match(text, i):
            break
        i += 1
    operands.append(text[start:i])
    return [op.strip() for op in operands if op.strip()]


def parse_number(text: str) -> int:
    """Evaluate an integer or character literal as gas reads it."""
    text = text.strip()
    if OCTAL_LITERAL.fullmatch(text):
        return int(text, 8)
    if len(text) >= 3 and text[0] == text[-1] == "'":
        return ord(unquote(text))
    try:
        return int(text, 0)
    except ValueError:
        raise ValueError(f"Cannot evaluate: {text}")


def _escape(match: "re.Match[str]") -> str:
    escape = match.group(1)
    if escape[0] == 'x' and len(escape) > 1:
        return chr(int(escape[1:], 16))
    if escape[0] in '01234567':
        return chr(int(escape, 8))
    return SIMPLE_ESCAPES.get(escape, escape)


def unquote(text: str) -> str:
    """Strip the quotes of a string literal and resolve its escapes."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in '"\'':
        text = text[1:-1]
    return STRING_ESCAPE.sub(_escape, text)


@dataclass
class ConstantTable:
    """A constant table together with its data."""

    table: Table
    """Name and label offsets."""

    data: bytes = b""
    """The consolidated constant blob."""

    warnings: List[str] = field(default_factory=list)
    """Directives that were not understood."""


class ConstantParser:
    """
    Accumulates the read-only data sections of a clang listing into one blob.

    Supports:
    - Section switches: .section, .text, .data, .rodata, .literal*/.const
    - Data directives: .byte, .short/.value, .long/.int, .quad
    - String directives: .ascii, .asciz, .string
    - Alignment: .align, .balign, .p2align
    - Space: .zero, .space, .skip
    """

    def __init__(self) -> None:
        self.in_constants: bool = False
        self.data = bytearray()
        self.labels: Dict[str, int] = {}
        self.warnings: List[str] = []

    def parse(self, lines: Sequence[str]) -> Dict[str, int]:
        """
        Parse a listing and accumulate its constant data.

        Returns:
            Dictionary of label name -> offset in the blob.
        """
        for line_num, line in enumerate(lines, 1):
            label = LABEL_PATTERN.match(line)
            if label:
                if self.in_constants:
                    self.labels[label.group(1)] = len(self.data)
                continue

            directive = DIRECTIVE_PATTERN.match(line)
            if not directive:
                continue
            try:
                self.feed(directive.group(1).lower(), split_operands(directive.group(2)))
            except ValueError as e:
                self.warnings.append(f"Line {line_num}: {e}")

        return self.labels

    def feed(self, directive: str, operands: List[str]) -> None:
        """Apply one directive to the section state or the blob."""
        if directive == "section":
            name = ",".join(operands).lower()
            self.in_constants = any(m in name for m in DATA_SECTION_MARKERS)
        elif directive in ("text", "data", "bss"):
            self.in_constants = False
        elif directive in CONSTANT_SECTIONS:
            self.in_constants = True
        elif not self.in_constants or directive in IGNORED_DIRECTIVES:
            return
        elif directive in VALUE_SIZES:
            self._append_values(operands, VALUE_SIZES[directive])
        elif directive in ("ascii", "asciz", "string"):
            terminator = b"" if directive == "ascii" else b"\x00"
            for operand in operands:
                self.data.extend(unquote(operand).encode('latin-1') + terminator)
        elif directive in ("align", "balign", "p2align"):
            if operands:
                alignment = parse_number(operands[0])
                if directive == "p2align":
                    alignment = 1 << alignment
                self.data.extend(b'\x00' * (-len(self.data) % max(alignment, 1)))
        elif directive in ("zero", "space", "skip"):
            if operands:
                fill = parse_number(operands[1]) & 0xFF if len(operands) > 1 else 0
                self.data.extend(bytes([fill]) * parse_number(operands[0]))
        else:
            raise ValueError(f"Unknown directive .{directive}")

    def _append_values(self, operands: List[str], size: int) -> None:
        mask = (1 << (size * 8)) - 1
        for operand in operands:
            try:
                value = parse_number(operand)
            except ValueError as e:
                self.warnings.append(f"{e}, stored as zero")
                value = 0
            self.data.extend((value & mask).to_bytes(size, 'little'))


def build_table(lines: Sequence[str], name: str = DEFAULT_TABLE_NAME) -> ConstantTable:
    """
    Build the constant table of a listing.

    Args:
        lines: The whole clang listing.
        name: Symbol for the constant-data base.

    Returns:
        ConstantTable; its table has no labels when the listing has no
        constants.
    """
    parser = ConstantParser()
    offsets = parser.parse(lines)
    labels = tuple(Label(label, offset) for label, offset in offsets.items())
    return ConstantTable(
        table=Table(name=name, labels=labels),
        data=bytes(parser.data),
        warnings=parser.warnings,
    )


def restrict_table(table: Table, lines: Sequence[str]) -> Table:
    """
    Keep only the labels referenced through ``[rip + ...]`` in ``lines``.

    Raises:
        UnresolvedPicReference: If a referenced symbol is not in ``table``.
    """
    referenced = []
    for line in lines:
        for symbol in RIP_REFERENCE_PATTERN.findall(line):
            symbol = symbol.strip()
            if table.lookup(symbol) is None:
                raise UnresolvedPicReference(symbol)
            referenced.append(symbol)
    used = tuple(label for label in table.labels if label.name in referenced)
    return Table(name=table.name, labels=used)


def render_data(constants: ConstantTable) -> List[str]:
    """
    Render the constant blob as Go DATA/GLOBL directives.

    The blob is zero-padded to a multiple of 8 bytes and emitted one
    quadword per DATA line.
    """
    data = constants.data + b'\x00' * (-len(constants.data) % 8)
    name = constants.table.name

    result = []
    for offset in range(0, len(data), 8):
        value = int.from_bytes(data[offset:offset + 8], 'little')
        result.append(f"DATA {name}<>+0x{offset:03x}(SB)/8, $0x{value:016x}")
    result.append(f"GLOBL {name}<>(SB), {RODATA_FLAGS}, ${len(data)}")
    return result
