"""
Playback sinks.

- PlaybackSink: the contract the orchestrator depends on.
- FramedPlaybackSink: reference sink that re-frames PCM16 audio into fixed
  20ms frames and hands them to an injected async writer (a sound device
  callback, a WebSocket, a file, ...).

Speaker hardware lives outside the core.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import AsyncIterable, Awaitable, Callable

from audio.frames import AudioFrame, PcmFramer
from observability.logger import log_event, now_ms
from constants import AUDIO_BYTES_PER_FRAME_PCM


FrameWriter = Callable[[AudioFrame], Awaitable[None]]


class PlaybackSink(ABC):
    """
    Abstract playback sink.

    Contract:
    - play() consumes the audio stream and returns when it is exhausted,
      when stop() is called, or raises CancelledError when its task is
      cancelled.
    - stop() preempts an in-progress play(); with nothing playing it is
      a no-op.
    """

    @abstractmethod
    async def play(self, audio: AsyncIterable[bytes]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def stop(self) -> None:
        raise NotImplementedError


class FramedPlaybackSink(PlaybackSink):
    """
    Reference sink writing fixed-size frames to an async writer.

    Design:
    - One play() at a time; each play() owns a fresh stop event
    - The trailing partial frame is padded with silence and written
      at the end of a completed stream, never after stop()
    """

    def __init__(
        self,
        *,
        writer: FrameWriter,
        bytes_per_frame: int = AUDIO_BYTES_PER_FRAME_PCM,
    ) -> None:
        self._writer = writer
        self._bytes_per_frame = bytes_per_frame
        self._stop_requested: asyncio.Event | None = None
        self.frames_written = 0

    # ------------------------------------------------------------------
    # Public API (PlaybackSink contract)
    # ------------------------------------------------------------------

    async def play(self, audio: AsyncIterable[bytes]) -> None:
        stop_requested = asyncio.Event()
        self._stop_requested = stop_requested

        consume = asyncio.create_task(self._consume(audio))
        stop_waiter = asyncio.create_task(stop_requested.wait())

        try:
            done, _ = await asyncio.wait(
                {consume, stop_waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (consume, stop_waiter):
                if not task.done():
                    task.cancel()
            await asyncio.gather(consume, stop_waiter, return_exceptions=True)
            if self._stop_requested is stop_requested:
                self._stop_requested = None

        if consume in done and not consume.cancelled():
            # Surface writer/stream errors to the caller
            consume.result()
        else:
            log_event({"event_type": "playback_preempted"})

    async def stop(self) -> None:
        if self._stop_requested is not None:
            self._stop_requested.set()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _consume(self, audio: AsyncIterable[bytes]) -> None:
        framer = PcmFramer(self._bytes_per_frame)
        sequence = 1

        async for chunk in audio:
            for pcm in framer.push(chunk):
                await self._write(sequence, pcm)
                sequence += 1

        tail = framer.flush()
        if tail is not None:
            await self._write(sequence, tail)

    async def _write(self, sequence: int, pcm: bytes) -> None:
        await self._writer(AudioFrame(sequence_num=sequence, pcm_bytes=pcm, ts_ms=now_ms()))
        self.frames_written += 1
