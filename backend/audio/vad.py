"""
Voice-activity monitoring.

- VoiceActivityMonitor: the contract the orchestrator depends on.
- EnergyVAD: a minimal RMS-energy frame detector.
- EnergyVoiceMonitor: a reference monitor that runs EnergyVAD over PCM16
  frames pushed in by capture code and emits one signal per utterance.

Model inference (e.g. Silero) and microphone capture live outside the core;
any implementation of VoiceActivityMonitor is interchangeable.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import AsyncIterator

import numpy as np

from audio.pcm import pcm16le_to_float32, rms
from observability.logger import log_event
from constants import (
    VAD_RMS_THRESHOLD_DEFAULT,
    VAD_FRAMES_REQUIRED_DEFAULT,
    VAD_RELEASE_FRAMES_DEFAULT,
    VAD_MAX_BUFFERED_FRAMES,
)


class VoiceActivityMonitor(ABC):
    """
    Abstract voice-activity monitor.

    Contract:
    - start() returns a signal stream yielding one None per detected
      utterance; the stream closes when the monitor is stopped.
    - stop() is idempotent and must not block indefinitely.
    """

    @abstractmethod
    def start(self) -> AsyncIterator[None]:
        raise NotImplementedError

    @abstractmethod
    async def stop(self) -> None:
        raise NotImplementedError


class EnergyVAD:
    """
    Simple energy-based Voice Activity Detector (VAD).

    For each observed frame the RMS energy is compared against a fixed
    threshold. Voice activity is reported only after `frames_required`
    *consecutive* frames exceed it, which avoids triggering on single-frame
    noise spikes. The detector also counts consecutive quiet frames so a
    caller can tell when an utterance has ended.
    """
    def __init__(self, threshold: float, frames_required: int):
        self._threshold = threshold
        self._frames_required = frames_required
        self._count = 0
        self._quiet = 0

    def observe(self, f32: np.ndarray) -> bool:
        """
        Observe a single audio frame and update VAD state.

        Returns:
            True if at least `frames_required` consecutive frames (including
            this one) have exceeded the energy threshold.
        """
        if rms(f32) >= self._threshold:
            self._count += 1
            self._quiet = 0
        else:
            self._count = 0
            self._quiet += 1
        return self._count >= self._frames_required

    @property
    def quiet_frames(self) -> int:
        """Consecutive below-threshold frames seen so far."""
        return self._quiet

    def reset(self) -> None:
        """
        Clear both counters; detection needs a fresh run of
        `frames_required` qualifying frames.
        """
        self._count = 0
        self._quiet = 0


class EnergyVoiceMonitor(VoiceActivityMonitor):
    """
    Reference monitor over pushed PCM16 frames.

    Capture code hands every frame to feed(); from a hardware callback
    thread use `loop.call_soon_threadsafe(monitor.feed, frame)`. Frames wait
    in a bounded asyncio.Queue; when it is full the OLDEST frame is dropped
    so detection never lags behind the listener.

    Signals on the rising edge of voice activity, then stays silent until
    `release_frames` consecutive quiet frames re-arm it, so one utterance
    produces exactly one signal.

    Each start() gets its own stop Event, so the monitor can be started
    again after stop(). Frames fed while nobody listens are discarded when
    the next stream starts. One stream at a time.
    """

    def __init__(
        self,
        *,
        threshold: float = VAD_RMS_THRESHOLD_DEFAULT,
        frames_required: int = VAD_FRAMES_REQUIRED_DEFAULT,
        release_frames: int = VAD_RELEASE_FRAMES_DEFAULT,
        max_buffered_frames: int = VAD_MAX_BUFFERED_FRAMES,
    ) -> None:
        if max_buffered_frames <= 0:
            raise ValueError("max_buffered_frames must be > 0")

        self._frames: asyncio.Queue[bytes] = asyncio.Queue(maxsize=max_buffered_frames)
        self._vad = EnergyVAD(threshold, frames_required)
        self._release_frames = release_frames
        self._stopped = asyncio.Event()
        self.dropped_frames = 0

    def feed(self, frame: bytes) -> None:
        """Queue one captured frame. Must run on the event loop thread."""
        if self._frames.full():
            self._frames.get_nowait()
            self.dropped_frames += 1
        self._frames.put_nowait(frame)

    async def start(self) -> AsyncIterator[None]:
        stopped = asyncio.Event()
        self._stopped = stopped
        self._discard_buffered()
        self._vad.reset()

        stop_waiter = asyncio.ensure_future(stopped.wait())
        next_frame: asyncio.Future[bytes] | None = None
        armed = True

        try:
            while True:
                next_frame = asyncio.ensure_future(self._frames.get())
                done, _ = await asyncio.wait(
                    {next_frame, stop_waiter},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if next_frame not in done:
                    return

                active = self._vad.observe(pcm16le_to_float32(next_frame.result()))
                if active and armed:
                    armed = False
                    log_event({"event_type": "vad_voice_detected", "level": "DEBUG"})
                    yield None
                elif not armed and self._vad.quiet_frames >= self._release_frames:
                    armed = True
                    self._vad.reset()
        finally:
            # Cancelling a pending queue read loses no frame
            waiters = [f for f in (next_frame, stop_waiter) if f is not None and not f.done()]
            for waiter in waiters:
                waiter.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

    async def stop(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        log_event({
            "event_type": "vad_stopped",
            "dropped_frames": self.dropped_frames,
        })

    def _discard_buffered(self) -> None:
        while not self._frames.empty():
            self._frames.get_nowait()
