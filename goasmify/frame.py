"""
Frame offset resolution.

Recomputes memory operands addressed relative to ``rip`` or ``rbp`` in
the source listing. In the Go frame ``BP`` anchors the constant table
(or nothing at all), and the stack pointer sits at a different distance
from the caller's arguments, so these operands must be renumbered.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from .abi import RETURN_ADDRESS_SIZE, register_argument_area
from .errors import UnresolvedPicReference, UnsupportedFrameAccess
from .model import StackArgs, Table

RBP_LOAD_HIGHER_PATTERN = re.compile(r'\[rbp \+ ([0-9]+)\]\s*$')
RBP_LOAD_LOWER_PATTERN = re.compile(r'\[rbp - ([0-9]+)\]')

RIP_OPERAND = "[rip + "
RBP_OPERAND = "[rbp + "


@dataclass(frozen=True)
class CopiedArguments:
    """
    Stack arguments were copied below the realigned frame by the prologue.

    Applies only when the stack is realigned and a constant table is
    present; one extra slot sits between the copies and the frame for
    the saved original stack pointer.
    """

    stack_args: StackArgs

    def resolve(self, offset: int) -> int:
        slots = self.stack_args.number + 1 + self.stack_args.offset_to_first // 8
        return offset - slots * 8


@dataclass(frozen=True)
class CallerArguments:
    """Stack arguments are read in place from the caller's argument area."""

    stack_args: StackArgs

    def resolve(self, offset: int) -> int:
        return (
            offset
            - self.stack_args.offset_to_first
            + RETURN_ADDRESS_SIZE
            + register_argument_area()
        )


StackArgLayout = Union[CopiedArguments, CallerArguments]


def select_layout(
    stack_args: StackArgs,
    aligned_stack: bool,
    table_present: bool,
) -> StackArgLayout:
    """
    Pick the formula for stack-argument offsets.

    Realigned with a table: the prologue copied the arguments, so use
    CopiedArguments. Realigned without a table and unaligned (with or
    without a table) all read the caller's area through CallerArguments.
    """
    if aligned_stack and table_present:
        return CopiedArguments(stack_args)
    return CallerArguments(stack_args)


def fix_pic_labels(line: str, table: Table) -> str:
    """
    Rewrite ``[rip + symbol]`` into an offset from the constant-table base.

    Raises:
        UnresolvedPicReference: If the symbol is not in the table.
    """
    if RIP_OPERAND not in line:
        return line

    head, tail = line.split(RIP_OPERAND, 1)
    symbol = tail.split("]", 1)[0].strip()
    label = table.lookup(symbol)
    if label is None:
        raise UnresolvedPicReference(symbol)
    return head + f"{label.offset}[rbp] /* {RIP_OPERAND}{tail} */"


def fix_rbp_plus_load(line: str, layout: StackArgLayout) -> str:
    """Rewrite a ``[rbp + N]`` stack-argument load as an ``rsp`` offset."""
    match = RBP_LOAD_HIGHER_PATTERN.search(line)
    if match:
        offset = layout.resolve(int(match.group(1)))
        head, tail = line.split(RBP_OPERAND, 1)
        line = head + f"{offset}[rsp] /* {RBP_OPERAND}{tail} */"
    return line


def check_rbp_minus_access(line: str) -> str:
    """
    Reject ``[rbp - N]`` operands.

    Raises:
        UnsupportedFrameAccess: Spilled locals addressed from the frame
            pointer cannot be relocated into the Go frame.
    """
    if RBP_LOAD_LOWER_PATTERN.search(line):
        raise UnsupportedFrameAccess(line)
    return line
