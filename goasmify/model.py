"""
Records describing one subroutine's translation inputs.

All records are immutable snapshots; they are built once per subroutine
and only read during translation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Label:
    """A constant's symbolic name and its byte offset in the constant blob."""

    name: str
    offset: int


@dataclass(frozen=True)
class Table:
    """Index of the consolidated constant data referenced by a subroutine."""

    name: str = ""
    """Symbol of the constant-data base (e.g. ``LCDATA1``)."""

    labels: Tuple[Label, ...] = ()
    """Labels in blob order."""

    def is_present(self) -> bool:
        return len(self.labels) > 0

    def lookup(self, name: str) -> Optional[Label]:
        for label in self.labels:
            if label.name == name:
                return label
        return None


NO_TABLE = Table()


@dataclass(frozen=True)
class StackArgs:
    """Arguments passed on the stack beyond the register-passed ones."""

    number: int = 0
    """Count of stack-passed arguments."""

    offset_to_first: int = 0
    """Offset of the first stack argument relative to the source frame pointer."""

    def __post_init__(self) -> None:
        if self.number < 0:
            raise ValueError(f"Stack argument count must be >= 0, got {self.number}")


@dataclass(frozen=True)
class Epilogue:
    """The compiler epilogue to discard and the frame the replacement must unwind."""

    start: int
    """First line index of the source epilogue."""

    end: int
    """One past the last line index of the source epilogue."""

    aligned_stack: bool = False
    """Whether the target frame realigns the stack pointer."""

    align_value: int = 0
    """Mask applied to the stack pointer when ``aligned_stack`` is set."""

    stack_size: int = 0
    """Bytes of local frame space to reserve."""

    vzeroupper: bool = False
    """Whether the upper halves of the YMM registers are cleared before return."""

    def validate(self, line_count: int) -> None:
        if not 0 <= self.start <= self.end <= line_count:
            raise ValueError(
                f"Epilogue range [{self.start}, {self.end}) does not fit "
                f"in {line_count} lines"
            )


@dataclass(frozen=True)
class Subroutine:
    """A function being translated."""

    name: str
    epilogue: Epilogue
