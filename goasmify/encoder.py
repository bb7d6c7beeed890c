"""
Encoding of disabled lines using Keystone Engine.

Lines the rewriter could not translate are left as Go comments holding
the Intel-syntax instruction. This pass assembles each of them and puts
the machine code in front of the comment as QUAD/LONG/WORD/BYTE directives,
one output line per input line.
"""

from __future__ import annotations

import re
from typing import List, Sequence, Tuple

try:
    import keystone
    # Verify keystone actually works by trying to access a constant
    _ = keystone.KS_ARCH_X86
    KEYSTONE_AVAILABLE = True
    KEYSTONE_ERROR = None
except ImportError as e:
    KEYSTONE_AVAILABLE = False
    KEYSTONE_ERROR = str(e)
    keystone = None
except Exception as e:
    # Keystone installed but native library failed to load
    KEYSTONE_AVAILABLE = False
    KEYSTONE_ERROR = f"Keystone native library failed: {e}"
    keystone = None

from .rewriter import DISABLED_PREFIX, is_disabled

INDENT = "    "

BLOCK_COMMENT = re.compile(r'\s*/\*.*?\*/')
DISPLACEMENT_FIRST = re.compile(r'(-?\d+)\[(\w+)\]')
SIZE_WITHOUT_PTR = re.compile(r'\b(byte|word|dword|qword)\s+\[')

# Largest chunk first
DATA_DIRECTIVES = ((8, "QUAD"), (4, "LONG"), (2, "WORD"), (1, "BYTE"))


def _displacement(match: "re.Match[str]") -> str:
    offset = int(match.group(1))
    sign = "-" if offset < 0 else "+"
    return f"[{match.group(2)} {sign} {abs(offset)}]"


def to_intel(text: str) -> str:
    """
    Turn a rewritten instruction back into plain Intel syntax.

    Undoes what the rewriter did for the Go assembler's benefit:
    ``/* ... */`` trailers go, ``16[rbp]`` becomes ``[rbp + 16]`` and
    ``qword [`` gets its ``ptr`` back.
    """
    text = BLOCK_COMMENT.sub("", text)
    text = DISPLACEMENT_FIRST.sub(_displacement, text)
    text = SIZE_WITHOUT_PTR.sub(r'\1 ptr [', text)
    return text.strip()


def render_bytes(code: bytes) -> str:
    """Render machine code as ``QUAD $0x...; LONG $0x...; BYTE $0x..``."""
    parts = []
    i = 0
    while i < len(code):
        for size, directive in DATA_DIRECTIVES:
            if len(code) - i >= size:
                value = int.from_bytes(code[i:i + size], 'little')
                parts.append(f"{directive} $0x{value:0{size * 2}x}")
                i += size
                break
    return "; ".join(parts)


class Encoder:
    """
    x86-64 encoder for disabled lines.

    Example:
        >>> encoder = Encoder()
        >>> encoder.encode("vpxor xmm0, xmm0, xmm0")
        b'\\xc5\\xf9\\xef\\xc0'
    """

    def __init__(self) -> None:
        """
        Raises:
            ImportError: If Keystone is not available.
        """
        if not KEYSTONE_AVAILABLE:
            msg = "Keystone Engine not available.\n"
            if KEYSTONE_ERROR:
                msg += f"Error: {KEYSTONE_ERROR}\n\n"
            msg += "Install with: pip install keystone-engine"
            raise ImportError(msg)

        try:
            self._ks = keystone.Ks(keystone.KS_ARCH_X86, keystone.KS_MODE_64)
        except keystone.KsError as e:
            raise RuntimeError(f"Failed to initialize Keystone for x86_64: {e}")

    def encode(self, text: str) -> bytes:
        """
        Assemble one Intel-syntax instruction.

        Raises:
            ValueError: If Keystone rejects the instruction.
        """
        instr = to_intel(text)
        try:
            encoding, count = self._ks.asm(instr)
        except keystone.KsError as e:
            raise ValueError(f"{e} - {instr}")
        if encoding is None or count == 0:
            raise ValueError(f"Failed to assemble: {instr}")
        return bytes(encoding)

    def encode_line(self, line: str) -> str:
        """Encode a disabled line; any other line is returned unchanged."""
        if not is_disabled(line):
            return line
        text = line[len(DISABLED_PREFIX):]
        return f"{INDENT}{render_bytes(self.encode(text))} // {text}"

    def encode_lines(self, lines: Sequence[str]) -> Tuple[List[str], List[str]]:
        """
        Encode every disabled line.

        Returns:
            (lines, warnings); lines Keystone rejects stay disabled and
            produce a warning.
        """
        result: List[str] = []
        warnings: List[str] = []
        for line in lines:
            try:
                result.append(self.encode_line(line))
            except ValueError as e:
                warnings.append(str(e))
                result.append(line)
        return result, warnings
