"""Exceptions raised while translating a subroutine."""

from __future__ import annotations


class TranslationError(Exception):
    """A fatal problem that stops translation of the current subroutine."""


class UnresolvedPicReference(TranslationError):
    """An instruction-pointer-relative operand names a symbol missing from the table."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(
            f"Failed to find label to replace of position independent code: {symbol}"
        )


class UnsupportedFrameAccess(TranslationError):
    """A frame-pointer-minus-constant operand (spilled local) was found."""

    def __init__(self, line: str):
        self.line = line
        super().__init__(f"Not expected to find [rbp -] based loads: {line.strip()}")


class ListingError(TranslationError):
    """Structural metadata for a subroutine could not be derived from the listing."""
