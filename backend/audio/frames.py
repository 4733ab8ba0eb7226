"""
Audio frame primitives.

- AudioFrame: immutable fixed-duration PCM16 slice handed to an output writer
- PcmFramer: incremental re-framer turning arbitrarily-sized provider chunks
  into fixed-size frames

Invariants:
- PCM16 signed, little-endian, mono
- Frames are exactly bytes_per_frame long (the final flushed frame is
  padded with silence)
- Byte order across push() calls is preserved
"""

from __future__ import annotations

from dataclasses import dataclass

from audio.pcm import silence
from constants import AUDIO_BYTES_PER_FRAME_PCM


@dataclass(frozen=True)
class AudioFrame:
    """
    Canonical audio frame on the playback path.

    sequence_num:
        Monotonic per play() call, starting at 1.

    pcm_bytes:
        Raw PCM16 audio bytes, exactly one frame long.

    ts_ms:
        Wall-clock timestamp (milliseconds) when the frame was produced.
        Used for observability only (not control logic).
    """
    sequence_num: int
    pcm_bytes: bytes
    ts_ms: int


class PcmFramer:
    """
    Accumulate PCM bytes and cut them into fixed-size frames.

    Odd bytes and partial frames are carried over to the next push().
    """

    def __init__(self, bytes_per_frame: int = AUDIO_BYTES_PER_FRAME_PCM) -> None:
        if bytes_per_frame <= 0 or bytes_per_frame % 2 != 0:
            raise ValueError("bytes_per_frame must be a positive even number")
        self._bytes_per_frame = bytes_per_frame
        self._buffer = bytearray()

    def push(self, pcm_bytes: bytes) -> list[bytes]:
        """Add bytes; return every whole frame now available."""
        self._buffer.extend(pcm_bytes)

        whole = len(self._buffer) // self._bytes_per_frame
        if whole == 0:
            return []

        end = whole * self._bytes_per_frame
        out = [
            bytes(self._buffer[offset: offset + self._bytes_per_frame])
            for offset in range(0, end, self._bytes_per_frame)
        ]
        del self._buffer[:end]
        return out

    def flush(self) -> bytes | None:
        """
        Return the remaining partial frame padded with silence, or None.

        A dangling odd byte (half a sample) is dropped.
        """
        if len(self._buffer) % 2:
            del self._buffer[-1:]
        if not self._buffer:
            return None

        frame = bytes(self._buffer) + silence(self._bytes_per_frame - len(self._buffer))
        self._buffer.clear()
        return frame

    def pending_bytes(self) -> int:
        return len(self._buffer)
