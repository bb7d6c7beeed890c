"""
Fixed ABI constants for the one supported translation target.

The source side is the System V AMD64 convention emitted by clang; the
target side is the Go assembler's stack-based convention. Both are fixed:
there is exactly one target ABI, so none of these values are configurable.
"""

from __future__ import annotations

from typing import Tuple

RETURN_ADDRESS_SIZE = 8
"""Bytes occupied by a return address on the native stack."""

REGISTER_SLOT_SIZE = 8
"""Bytes of one register-sized argument slot."""

ARGUMENT_REGISTERS: Tuple[str, ...] = ("DI", "SI", "DX", "CX", "R8", "R9")
"""Registers that carry the leading integer arguments, in order."""

TEXT_FLAGS = 7
"""Flags placed on every TEXT directive (NOPROF|DUPOK|NOSPLIT)."""

RODATA_FLAGS = 8
"""Flags placed on the GLOBL directive of a constant table (RODATA)."""

BASE_REGISTER = "BP"
STACK_POINTER = "SP"
SCRATCH_REGISTER = "DI"


def register_argument_area() -> int:
    """Size of the register-argument area as seen from the target stack pointer."""
    return REGISTER_SLOT_SIZE * len(ARGUMENT_REGISTERS)
