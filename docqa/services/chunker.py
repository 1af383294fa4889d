"""Fixed-size overlapping character windows.

Walks the text in windows of ``window_size`` characters.  After each
window the cursor moves forward by ``window_size - overlap``; the walk
stops once the remaining tail would be no longer than the overlap, so the
last window is never a near-duplicate sliver of the one before it.

Offsets are Python string indices (code points), not bytes or tokens, and
every window is exactly ``text[start:end]``.  Dropping the first
``overlap`` characters of every window after the first and concatenating
the results reproduces the input.

Example (2500 characters, defaults)::

    [0, 1000)  [900, 1900)  [1800, 2500)
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_WINDOW_SIZE = 1000
DEFAULT_OVERLAP = 100


@dataclass(frozen=True)
class TextWindow:
    """One window of the source text and its half-open ``[start, end)`` range."""

    text: str
    start: int
    end: int


class TextChunker:
    """Splits text into overlapping fixed-size character windows.

    Parameters
    ----------
    window_size:
        Maximum characters per window (default 1000).
    overlap:
        Characters shared by consecutive windows (default 100).  Must be
        smaller than ``window_size`` or the cursor would never advance.
    """

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        overlap: int = DEFAULT_OVERLAP,
    ) -> None:
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")
        if overlap < 0:
            raise ValueError(f"overlap must not be negative, got {overlap}")
        if overlap >= window_size:
            raise ValueError(
                f"overlap ({overlap}) must be smaller than window_size ({window_size})"
            )
        self._window_size = window_size
        self._overlap = overlap

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def overlap(self) -> int:
        return self._overlap

    def windows(self, text: str) -> list[TextWindow]:
        """Return the ordered windows of *text* with their offsets."""
        length = len(text)
        result: list[TextWindow] = []
        start = 0
        while start < length:
            end = min(start + self._window_size, length)
            result.append(TextWindow(text=text[start:end], start=start, end=end))
            start = end - self._overlap
            if start >= length - self._overlap:
                break
        return result

    def chunk(self, text: str) -> list[str]:
        """Return just the window strings of *text*."""
        return [w.text for w in self.windows(text)]


def chunk_text(
    text: str,
    window_size: int = DEFAULT_WINDOW_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[str]:
    """Convenience wrapper: ``TextChunker(window_size, overlap).chunk(text)``."""
    return TextChunker(window_size=window_size, overlap=overlap).chunk(text)
