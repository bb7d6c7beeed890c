"""Argument counts from Go declaration stubs."""

from __future__ import annotations

import re
from typing import Dict

FUNC_PATTERN = re.compile(r'^\s*func\s+(\w+)\s*\(([^)]*)\)', re.MULTILINE)


def count_parameters(params: str) -> int:
    """Count the parameters of a Go parameter list (``a, b unsafe.Pointer, n int``)."""
    return sum(1 for p in params.split(",") if p.strip())


def parse_stubs(source: str) -> Dict[str, int]:
    """
    Map each declared function to its parameter count.

    The Go name ``_sum_float`` declares the assembly function ``sum_float``,
    so one leading underscore is dropped from the key.
    """
    counts: Dict[str, int] = {}
    for match in FUNC_PATTERN.finditer(source):
        name = match.group(1)
        if name.startswith("_"):
            name = name[1:]
        counts[name] = count_parameters(match.group(2))
    return counts
