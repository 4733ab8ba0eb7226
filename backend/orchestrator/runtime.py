"""
Runtime execution shell for a single podcast session.

Responsibilities:
- Own the session state machine
- Drive the playback loop (script text -> synthesis -> playback)
- Watch the voice-activity monitor and run the interruption cycle
  (stop playback -> record question -> speak answer -> resume policy)
- Own every task it starts, and join them on stop()

Non-responsibilities:
- No network protocol details (clients own them)
- No audio hardware (collaborators own it)
- No retries, no internal timeouts
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable

from adapters.asr.base import RecordingSource
from adapters.llm.base import GenerationClient
from adapters.tts.base import SynthesisClient
from audio.playback import PlaybackSink
from audio.vad import VoiceActivityMonitor
from context.transcript import ScriptTranscript
from errors import OrchestratorBusyError, ScopeCancelled
from observability.logger import log_event
from observability.metrics import (
    METRIC_ANSWER_PLAYBACK_MS,
    METRIC_BARGE_IN_TO_PLAYBACK_STOP_MS,
    METRIC_INTERRUPTIONS,
    METRIC_QUESTION_RECORDING_MS,
    METRIC_RECORDING_FAILURES,
    counter_value,
    increment,
    reset_counters,
    timed,
)
from orchestrator.cancellation import CancellationScope
from orchestrator.enums.policy import AnswerContextMode, ResumePolicy
from orchestrator.enums.state import State
from orchestrator.state_machine import SessionStateMachine, TransitionListener


_PREVIEW_CHARS = 40


@asynccontextmanager
async def _closing(stream: Any) -> AsyncIterator[Any]:
    """Close an async generator on exit, if the stream is one."""
    try:
        yield stream
    finally:
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()


class Orchestrator:
    """
    Interruption-aware playback orchestrator.

    Task layout:
    - session scope: playback loop + interruption monitor, from start()
      until stop() (or until the next start() after a natural finish)
    - speech scope: the current unit of spoken work, i.e. one script
      fragment, or one question/answer exchange

    Guarantees:
    - At most one session is active; start() while active is rejected
    - Interruption handlers never run concurrently (the monitor awaits
      each one before reading the next signal)
    - The script pipeline and an answer pipeline never speak at the same
      time: the resume gate holds the playback loop during an interruption
    - Cancelled work never changes state; the cancelling party does
    - stop() is idempotent and returns only after every task has finished

    stop() must be called from outside the session's own tasks.
    """

    def __init__(
        self,
        *,
        generation: GenerationClient,
        synthesis: SynthesisClient,
        vad: VoiceActivityMonitor,
        player: PlaybackSink,
        recorder: RecordingSource,
        resume_policy: ResumePolicy = ResumePolicy.DISCARD,
        answer_context_mode: AnswerContextMode = AnswerContextMode.NONE,
        session_id: str | None = None,
    ) -> None:
        self._generation = generation
        self._synthesis = synthesis
        self._vad = vad
        self._player = player
        self._recorder = recorder
        self._resume_policy = resume_policy
        self._answer_context_mode = answer_context_mode
        self._session_id = session_id or uuid.uuid4().hex[:12]

        self._state = SessionStateMachine(session_id=self._session_id)
        self._transcript = ScriptTranscript(self._session_id)

        self._session_scope: CancellationScope | None = None
        self._speech_scope: CancellationScope | None = None
        self._playback_task: asyncio.Task[None] | None = None
        self._monitor_task: asyncio.Task[None] | None = None

        # Set = playback loop may speak; cleared while an interruption runs
        self._resume_gate = asyncio.Event()
        self._resume_gate.set()

        self._topic = ""

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def transcript(self) -> ScriptTranscript:
        return self._transcript

    def get_state(self) -> State:
        """Lock-protected snapshot; safe from any task or thread."""
        return self._state.get()

    def add_state_listener(self, listener: TransitionListener) -> None:
        self._state.add_listener(listener)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start(self, topic: str) -> None:
        """
        Start a podcast about `topic` and return immediately.

        Raises:
            OrchestratorBusyError if a session is already active.
        """
        if not self._state.transition_if(State.IDLE, State.PLAYING):
            raise OrchestratorBusyError(
                f"session {self._session_id} is {self._state.get().value}"
            )

        # Leftovers of a session that finished on its own
        await self._teardown()

        self._topic = topic
        self._transcript.clear()
        self._resume_gate.set()
        reset_counters(self._session_id)

        scope = CancellationScope("session")
        self._session_scope = scope
        self._playback_task = scope.spawn(self._playback_loop(topic), name="playback_loop")
        self._monitor_task = scope.spawn(self._monitor_interruptions(), name="interruption_monitor")

        log_event({
            "event_type": "session_started",
            "session_id": self._session_id,
            "topic": topic,
            "resume_policy": self._resume_policy.value,
            "answer_context_mode": self._answer_context_mode.value,
        })

    async def stop(self) -> None:
        """
        Cancel all work, stop playback and voice monitoring, force IDLE.

        Idempotent: a second call only re-asserts IDLE.
        """
        session = self._session_scope
        if session is not None:
            log_event({
                "event_type": "session_stopping",
                "session_id": self._session_id,
                "state": self._state.get().value,
                "tasks_pending": session.pending_tasks(),
                "interruptions": counter_value(METRIC_INTERRUPTIONS, session_id=self._session_id),
            })

            if self._speech_scope is not None:
                self._speech_scope.cancel()
            session.cancel()

            await self._call_collaborator(self._player.stop(), "player_stop")
            await self._call_collaborator(self._vad.stop(), "vad_stop")

            await self._teardown()

        self._resume_gate.set()
        if self._state.get() is not State.IDLE:
            self._state.transition(State.IDLE)

    # ------------------------------------------------------------------
    # Playback loop
    # ------------------------------------------------------------------

    async def _playback_loop(self, topic: str) -> None:
        """
        Speak the script fragment by fragment.

        Natural end -> IDLE. Cancellation -> exit without a transition.
        """
        log_event({
            "event_type": "playback_loop_started",
            "session_id": self._session_id,
        })
        fragments = 0

        try:
            async with _closing(self._generation.generate_script(topic)) as script:
                async for fragment in script:
                    await self._resume_gate.wait()

                    fragments += 1
                    self._transcript.add_script(fragment)
                    scope = self._new_speech_scope("script")
                    try:
                        await scope.run(self._synthesize_and_play(fragment))
                    except ScopeCancelled:
                        log_event({
                            "event_type": "fragment_interrupted",
                            "session_id": self._session_id,
                            "fragment_index": fragments - 1,
                        })

            # An interruption may still be answering the last fragment
            await self._resume_gate.wait()

        except asyncio.CancelledError:
            log_event({
                "event_type": "playback_loop_cancelled",
                "session_id": self._session_id,
                "fragments": fragments,
            })
            raise

        log_event({
            "event_type": "script_completed",
            "session_id": self._session_id,
            "fragments": fragments,
        })
        if self._state.get() is State.PLAYING:
            await self._complete_session("script_completed")

    async def _synthesize_and_play(self, text: str) -> None:
        """
        Synthesize and play one fragment.

        Playback failures are logged and swallowed (degraded continuation);
        cancellation propagates.
        """
        log_event({
            "event_type": "fragment_started",
            "level": "DEBUG",
            "session_id": self._session_id,
            "chars": len(text),
            "preview": text[:_PREVIEW_CHARS],
        })
        try:
            async with _closing(self._synthesis.synthesize(text)) as audio:
                await self._player.play(audio)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "playback_error",
                "level": "WARNING",
                "session_id": self._session_id,
                "reason": f"{type(exc).__name__}: {exc}",
            })

    # ------------------------------------------------------------------
    # Interruption cycle
    # ------------------------------------------------------------------

    async def _monitor_interruptions(self) -> None:
        """Serially handle each detected-voice signal until the stream closes."""
        async with _closing(self._vad.start()) as signals:
            async for _ in signals:
                state = self._state.get().value
                log_event({
                    "event_type": "interruption_detected",
                    "session_id": self._session_id,
                    "state": state,
                })
                increment(METRIC_INTERRUPTIONS, session_id=self._session_id, state=state)
                try:
                    await self._handle_interruption()
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    log_event({
                        "event_type": "interruption_handler_error",
                        "level": "ERROR",
                        "session_id": self._session_id,
                        "reason": f"{type(exc).__name__}: {exc}",
                    })

        log_event({
            "event_type": "interruption_monitor_closed",
            "session_id": self._session_id,
        })

    async def _handle_interruption(self) -> None:
        """
        PLAYING -> INTERRUPTED -> THINKING -> PLAYING, then the resume policy.

        Cancellation (stop()) exits without a transition.
        """
        if self._state.get() is not State.PLAYING:
            log_event({
                "event_type": "interruption_ignored",
                "session_id": self._session_id,
                "state": self._state.get().value,
            })
            return

        with timed(METRIC_BARGE_IN_TO_PLAYBACK_STOP_MS, session_id=self._session_id):
            self._state.transition(State.INTERRUPTED)
            self._resume_gate.clear()

            if self._speech_scope is not None:
                self._speech_scope.cancel()
            if self._resume_policy is not ResumePolicy.RESUME:
                await self._cancel_playback_loop()

            await self._call_collaborator(self._player.stop(), "player_stop")

        self._state.transition(State.THINKING)
        scope = self._new_speech_scope("response")

        try:
            with timed(METRIC_QUESTION_RECORDING_MS, session_id=self._session_id):
                question = await scope.run(self._recorder.record())
        except ScopeCancelled:
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "recording_error",
                "level": "WARNING",
                "session_id": self._session_id,
                "reason": f"{type(exc).__name__}: {exc}",
            })
            increment(METRIC_RECORDING_FAILURES, session_id=self._session_id)
            self._state.transition(State.PLAYING)
            await self._apply_resume_policy()
            return

        log_event({
            "event_type": "question_recorded",
            "session_id": self._session_id,
            "chars": len(question),
            "preview": question[:_PREVIEW_CHARS],
        })

        try:
            with timed(METRIC_ANSWER_PLAYBACK_MS, session_id=self._session_id):
                answer = await scope.run(self._speak_answer(question, self._answer_context()))
        except ScopeCancelled:
            return

        self._transcript.add_exchange(question, answer)
        self._state.transition(State.PLAYING)
        log_event({
            "event_type": "answer_completed",
            "session_id": self._session_id,
            "chars": len(answer),
        })
        await self._apply_resume_policy()

    async def _speak_answer(self, question: str, context: str) -> str:
        """Speak the answer fragment by fragment; return the full answer text."""
        parts: list[str] = []
        async with _closing(self._generation.generate_answer(question, context)) as answer:
            async for fragment in answer:
                parts.append(fragment)
                await self._synthesize_and_play(fragment)
        return "".join(parts)

    def _answer_context(self) -> str:
        mode = self._answer_context_mode
        if mode is AnswerContextMode.TOPIC:
            return self._topic
        if mode is AnswerContextMode.SCRIPT:
            return self._transcript.script_text()
        return ""

    async def _apply_resume_policy(self) -> None:
        """Decide what the script does once the listener has been answered."""
        policy = self._resume_policy
        log_event({
            "event_type": "resume_policy_applied",
            "session_id": self._session_id,
            "policy": policy.value,
        })

        if policy is ResumePolicy.RESUME:
            self._resume_gate.set()
            return

        if policy is ResumePolicy.RESTART:
            session = self._session_scope
            if session is None:
                return
            self._resume_gate.set()
            try:
                self._playback_task = session.spawn(
                    self._playback_loop(self._topic), name="playback_loop"
                )
            except ScopeCancelled:
                return
            return

        # DISCARD
        self._resume_gate.set()
        await self._complete_session("script_discarded")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _new_speech_scope(self, name: str) -> CancellationScope:
        scope = CancellationScope(f"speech:{name}")
        self._speech_scope = scope
        return scope

    async def _cancel_playback_loop(self) -> None:
        task = self._playback_task
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _complete_session(self, reason: str) -> None:
        """The session ends on its own: stop listening, then IDLE."""
        await self._call_collaborator(self._vad.stop(), "vad_stop")
        self._state.transition(State.IDLE)
        log_event({
            "event_type": "session_completed",
            "session_id": self._session_id,
            "reason": reason,
            "interruptions": counter_value(METRIC_INTERRUPTIONS, session_id=self._session_id),
        })

    async def _teardown(self) -> None:
        """Cancel and join every task of the previous session."""
        session = self._session_scope
        if self._speech_scope is not None:
            self._speech_scope.cancel()
        if session is not None:
            session.cancel()
            await session.join()

        self._session_scope = None
        self._speech_scope = None
        self._playback_task = None
        self._monitor_task = None

    async def _call_collaborator(self, call: Awaitable[Any], what: str) -> None:
        """Await a collaborator call; failures are logged, never raised."""
        try:
            await call
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "collaborator_error",
                "level": "WARNING",
                "session_id": self._session_id,
                "call": what,
                "reason": f"{type(exc).__name__}: {exc}",
            })
