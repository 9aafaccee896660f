"""Persistence scheduler: decides when a profile flush runs.

Three rules:

- :meth:`PersistenceScheduler.request` is a trailing-edge debounce. Each
  call resets a fixed quiescence window; the flush runs only once the
  window passes with no further requests.
- :meth:`PersistenceScheduler.flush_now` cancels the pending window and
  runs a flush the caller awaits (privileged mutations).
- At most one flush is in flight. Requests that arrive meanwhile coalesce
  into exactly one re-run once it finishes, and the flush callback reads
  the state current at re-run time.

One scheduler serves one identity. :meth:`cancel` retires it on an
identity switch: the pending window and any queued re-run are dropped, and
an in-flight flush is left to finish (the engine discards its result).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

FlushFn = Callable[[], Awaitable[None]]
"""Async callable that reads the current state and persists it."""


class PersistenceScheduler:
    """Debounced, serialized flush runner for a single identity.

    Args:
        flush_fn: Coroutine function performing one flush.
        delay: Quiescence window in seconds.
        name: Label used in logs and task names.
    """

    def __init__(self, flush_fn: FlushFn, delay: float = 1.0, name: str = "profile"):
        self._flush_fn = flush_fn
        self.delay = delay
        self.name = name
        self._timer: asyncio.Task | None = None
        self._running = False
        self._rerun = False
        self._idle: asyncio.Event | None = None
        self._cancelled = False
        self._background_tasks: set[asyncio.Task] = set()
        self.flush_count = 0

    # ── State ──────────────────────────────────────────────────────

    @property
    def pending(self) -> bool:
        """True while a debounce window is counting down."""
        return self._timer is not None and not self._timer.done()

    @property
    def in_flight(self) -> bool:
        return self._running

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    # ── Public API ─────────────────────────────────────────────────

    def request(self) -> None:
        """(Re)start the quiescence window."""
        if self._cancelled:
            logger.debug(f"Ignoring flush request for retired scheduler {self.name}")
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop; flush for {self.name} deferred to the next request")
            return
        self._cancel_timer()
        self._timer = loop.create_task(self._debounced(), name=f"flush-timer-{self.name}")

    async def flush_now(self) -> None:
        """Cancel the pending window and flush; returns once persisted."""
        if self._cancelled:
            return
        self._cancel_timer()
        await self._run()

    def flush_soon(self) -> asyncio.Task | None:
        """Start :meth:`flush_now` in the background (for sync callers)."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop; immediate flush for {self.name} skipped")
            return None
        self._cancel_timer()
        task = loop.create_task(self.flush_now(), name=f"flush-now-{self.name}")
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def drain(self) -> None:
        """Flush a pending window immediately, or wait out an in-flight flush."""
        if self.pending:
            await self.flush_now()
        elif self._running and self._idle is not None:
            await self._idle.wait()

    def cancel(self) -> None:
        """Retire the scheduler: drop the pending window and any queued re-run."""
        self._cancelled = True
        self._rerun = False
        self._cancel_timer()
        logger.debug(f"Scheduler {self.name} cancelled (in flight: {self._running})")

    # ── Internal ───────────────────────────────────────────────────

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _debounced(self) -> None:
        await asyncio.sleep(self.delay)
        # Detach before flushing so a later request() cannot cancel this flush.
        self._timer = None
        await self._run()

    async def _run(self) -> None:
        if self._running:
            self._rerun = True
            logger.debug(f"Flush for {self.name} in flight; queued one re-run")
            idle = self._idle
            if idle is not None:
                await idle.wait()
            return

        self._running = True
        self._idle = asyncio.Event()
        try:
            while True:
                self._rerun = False
                self.flush_count += 1
                try:
                    await self._flush_fn()
                except Exception:
                    logger.exception(f"Unhandled error flushing {self.name}")
                if not self._rerun or self._cancelled:
                    break
        finally:
            self._running = False
            self._idle.set()
