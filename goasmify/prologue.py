"""
Synthesis of Go assembler entry and exit sequences.

The compiler's own prologue and epilogue are discarded; these functions
emit the replacements that take the arguments from the Go stack frame,
set up the base pointer and reserve (and optionally realign) the local
frame.
"""

from __future__ import annotations

from typing import List

from .abi import (
    ARGUMENT_REGISTERS,
    BASE_REGISTER,
    REGISTER_SLOT_SIZE,
    SCRATCH_REGISTER,
    STACK_POINTER,
    TEXT_FLAGS,
)
from .model import Epilogue, NO_TABLE, Subroutine, Table

INDENT = "    "


def _argument(index: int) -> str:
    """Go frame reference for the zero-based argument ``index``."""
    return f"arg{index + 1}+{index * REGISTER_SLOT_SIZE}(FP)"


def write_header(subroutine: Subroutine) -> List[str]:
    return [f"TEXT ·_{subroutine.name}(SB), {TEXT_FLAGS}, $0", ""]


def write_prologue(
    subroutine: Subroutine,
    arguments: int,
    table: Table = NO_TABLE,
) -> List[str]:
    """
    Write the prologue for a subroutine.

    Args:
        subroutine: The subroutine being translated.
        arguments: Declared argument count.
        table: Constant table, if the subroutine references constants.

    Returns:
        Lines of the TEXT header followed by the entry sequence.
    """
    epilogue = subroutine.epilogue
    result = write_header(subroutine)

    if epilogue.aligned_stack:
        # Save the original stack pointer right below the aligned frame
        result.append(f"{INDENT}MOVQ {STACK_POINTER}, {BASE_REGISTER}")
        result.append(f"{INDENT}ANDQ ${epilogue.align_value}, {BASE_REGISTER}")
        result.append(f"{INDENT}SUBQ ${epilogue.stack_size}, {BASE_REGISTER}")
        result.append(f"{INDENT}MOVQ {STACK_POINTER}, -8({BASE_REGISTER})")

        # BP will hold the table, so stack arguments cannot be reached
        # through it; copy them below the saved stack pointer
        if table.is_present():
            for arg in range(arguments - 1, len(ARGUMENT_REGISTERS) - 1, -1):
                slot = -8 - (arguments - arg) * 8
                result.append(f"{INDENT}MOVQ {_argument(arg)}, {SCRATCH_REGISTER}")
                result.append(f"{INDENT}MOVQ {SCRATCH_REGISTER}, {slot}({BASE_REGISTER})")

    # Leading arguments go into their registers
    for arg, register in enumerate(ARGUMENT_REGISTERS[:max(arguments, 0)]):
        result.append(f"{INDENT}MOVQ {_argument(arg)}, {register}")

    if table.is_present():
        result.extend(["", f"{INDENT}LEAQ {table.name}<>(SB), {BASE_REGISTER}", ""])
    elif epilogue.aligned_stack:
        # Keep the caller's stack arguments reachable
        result.extend(["", f"{INDENT}MOVQ {STACK_POINTER}, {BASE_REGISTER}", ""])

    if epilogue.aligned_stack:
        result.append(f"{INDENT}ANDQ ${epilogue.align_value}, {STACK_POINTER}")
        result.append(f"{INDENT}SUBQ ${epilogue.stack_size}, {STACK_POINTER}")
    elif epilogue.stack_size != 0:
        result.append(f"{INDENT}SUBQ ${epilogue.stack_size}, {STACK_POINTER}")

    return result


def write_epilogue(epilogue: Epilogue) -> List[str]:
    """Write the exit sequence: restore SP, clear YMM upper halves, return."""
    result: List[str] = []

    if epilogue.aligned_stack:
        result.append(f"{INDENT}MOVQ -8({STACK_POINTER}), {STACK_POINTER}")
    elif epilogue.stack_size != 0:
        result.append(f"{INDENT}ADDQ ${epilogue.stack_size}, {STACK_POINTER}")

    if epilogue.vzeroupper:
        result.append(f"{INDENT}VZEROUPPER")

    result.append(f"{INDENT}RET")
    return result
