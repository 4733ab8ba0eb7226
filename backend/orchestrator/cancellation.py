"""
Cancellation scopes.

Responsibilities:
- Represent "the current unit of work" (a playback session, one spoken
  fragment, or one question/answer exchange)
- Track every task started on behalf of that unit
- Cancel all of them at once, unblocking any pending await
- Report preemption as ScopeCancelled, distinct from transport errors

Non-responsibilities:
- NO state machine decisions
- NO timeouts (callers own timing)
- NO retry logic

This module is infrastructure only.
"""

from __future__ import annotations

import asyncio
from asyncio import Task
from typing import Any, Coroutine, TypeVar

from errors import ScopeCancelled
from observability.logger import log_event


T = TypeVar("T")


class CancellationScope:
    """
    Cooperative cancellation token backed by tracked asyncio tasks.

    Lifecycle:
    1. Owner creates a scope for a unit of work
    2. Work is launched with spawn() (fire-and-track) or run() (await)
    3. cancel() cancels every tracked task; awaiting callers of run()
       receive ScopeCancelled
    4. join() waits until every tracked task has finished

    A cancelled scope never accepts new work.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._cancelled = asyncio.Event()
        self._tasks: set[Task[Any]] = set()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def pending_tasks(self) -> int:
        """Number of tracked tasks that have not finished."""
        return sum(1 for t in self._tasks if not t.done())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def spawn(self, coro: Coroutine[Any, Any, T], *, name: str | None = None) -> Task[T]:
        """
        Start a tracked task inside this scope.

        Raises:
            ScopeCancelled if the scope is already cancelled
            (the coroutine is closed without running).
        """
        if self.cancelled:
            coro.close()
            raise ScopeCancelled(self._name)

        task = asyncio.create_task(coro, name=name or f"{self._name}:task")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """
        Run a coroutine inside this scope and wait for its result.

        Raises:
            ScopeCancelled if the scope is (or becomes) cancelled before
            the coroutine finishes.
            Any exception raised by the coroutine itself.
        """
        task = self.spawn(coro)
        try:
            return await task
        except asyncio.CancelledError:
            # Our own caller being cancelled must keep propagating as-is
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            if self.cancelled:
                raise ScopeCancelled(self._name) from None
            raise

    def cancel(self) -> None:
        """
        Cancel every tracked task.

        Idempotent: repeated calls are no-ops.
        """
        if self.cancelled:
            return

        self._cancelled.set()
        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()

        log_event({
            "event_type": "scope_cancelled",
            "scope": self._name,
            "tasks_cancelled": len(pending),
        })

    async def join(self) -> None:
        """
        Wait for every tracked task to finish (cancelled or not).

        The calling task is never awaited by itself.
        """
        current = asyncio.current_task()
        tasks = [t for t in self._tasks if t is not current]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
