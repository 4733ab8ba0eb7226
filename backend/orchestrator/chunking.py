"""
Pure TTS input chunking.

The speech backend rejects inputs above TTS_MAX_INPUT_BYTES (UTF-8), so a
long fragment is split into a Chunked-Request Plan before synthesis.

This module contains NO side effects. It is a deterministic function of
(text, max_bytes).

Guarantees:
- Every chunk encodes to at most max_bytes bytes
- "".join(chunks) == text (nothing added, nothing dropped)
- Cuts never land inside a multi-byte character

Cut preference, per window of max_bytes bytes:
1. right after the last sentence terminator past the window midpoint
2. right after the last clause separator past the window midpoint
3. forced cut at TTS_FORCE_CUT_RATIO of the window, nudged forward onto a
   character boundary
"""

from __future__ import annotations

from constants import (
    TTS_MAX_INPUT_BYTES,
    TTS_FORCE_CUT_RATIO,
    TTS_SENTENCE_BREAK_CHARS,
    TTS_CLAUSE_BREAK_CHARS,
)


_SENTENCE_BREAKS: tuple[bytes, ...] = tuple(
    ch.encode("utf-8") for ch in TTS_SENTENCE_BREAK_CHARS
)
_CLAUSE_BREAKS: tuple[bytes, ...] = tuple(
    ch.encode("utf-8") for ch in TTS_CLAUSE_BREAK_CHARS
)


# =============================================================================
# Public API
# =============================================================================

def split_text(text: str, max_bytes: int = TTS_MAX_INPUT_BYTES) -> list[str]:
    """
    Split text into synthesis-safe chunks.

    Args:
        text:
            Arbitrary text. Empty text yields no chunks.
        max_bytes:
            Maximum UTF-8 byte length of each chunk.

    Returns:
        Ordered list of substrings whose concatenation is `text`.

    Raises:
        ValueError if max_bytes <= 0, or if a single character does not
        fit in max_bytes.
    """
    if max_bytes <= 0:
        raise ValueError("max_bytes must be > 0")

    data = text.encode("utf-8")
    chunks: list[str] = []

    while data:
        if len(data) <= max_bytes:
            chunks.append(data.decode("utf-8"))
            break

        cut = _find_cut(data[:max_bytes])
        chunks.append(data[:cut].decode("utf-8"))
        data = data[cut:]

    return chunks


def needs_split(text: str, max_bytes: int = TTS_MAX_INPUT_BYTES) -> bool:
    """True when the UTF-8 encoding of text exceeds max_bytes."""
    return len(text.encode("utf-8")) > max_bytes


# =============================================================================
# Helpers
# =============================================================================

def _find_cut(window: bytes) -> int:
    """Return the byte offset to cut the window at (exclusive end)."""
    midpoint = len(window) // 2

    for breaks in (_SENTENCE_BREAKS, _CLAUSE_BREAKS):
        cut = _last_break_after(window, breaks, midpoint)
        if cut is not None:
            return cut

    return _forced_cut(window)


def _last_break_after(
    window: bytes,
    breaks: tuple[bytes, ...],
    midpoint: int,
) -> int | None:
    """
    Find the right-most break mark starting past the midpoint.

    UTF-8 is self-synchronizing, so a byte search for an encoded mark can
    only match a whole character.
    """
    best: int | None = None
    best_end = 0
    for mark in breaks:
        pos = window.rfind(mark)
        if pos > midpoint and (best is None or pos > best):
            best = pos
            best_end = pos + len(mark)

    if best is None:
        return None
    return best_end


def _forced_cut(window: bytes) -> int:
    start = max(1, int(len(window) * TTS_FORCE_CUT_RATIO))

    cut = start
    while cut < len(window) and _is_continuation(window[cut]):
        cut += 1
    if cut < len(window) or not _is_continuation_at_end(window):
        return cut

    # Walking forward left the window; cut before its last character instead
    cut = len(window) - 1
    while cut > 0 and _is_continuation(window[cut]):
        cut -= 1
    if cut == 0:
        raise ValueError("max_bytes is smaller than a single character")
    return cut


def _is_continuation(byte: int) -> bool:
    return byte & 0xC0 == 0x80


def _is_continuation_at_end(window: bytes) -> bool:
    """
    True when the window ends mid-character, i.e. a cut at len(window)
    would split a multi-byte sequence.
    """
    # Find the lead byte of the last character in the window
    i = len(window) - 1
    while i > 0 and _is_continuation(window[i]):
        i -= 1
    lead = window[i]
    if lead < 0x80:
        expected = 1
    elif lead >= 0xF0:
        expected = 4
    elif lead >= 0xE0:
        expected = 3
    else:
        expected = 2
    return len(window) - i < expected
