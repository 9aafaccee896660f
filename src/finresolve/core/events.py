"""Change notifications for profile state and sync progress.

The profile store and sync engine publish here instead of handing out
shared mutable references. Event names are dotted (``profile.changed``,
``sync.flush.failed``); a subscription may name one event, a namespace
(``"sync.*"``) or everything (:meth:`EventBus.on_all`), and may be limited
to one identity key via ``source``. Hooks can be sync or async.

Usage::

    from finresolve.core.events import EventBus, Event, PROFILE_CHANGED

    bus = EventBus()

    def redraw(event: Event) -> None:
        print(event.payload["mutation"])

    bus.on(PROFILE_CHANGED, redraw, source="user:42")
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from time import time
from typing import Any

from loguru import logger

PROFILE_LOADED = "profile.loaded"
PROFILE_CHANGED = "profile.changed"
PROFILE_DELETED = "profile.deleted"
SYNC_FLUSH_COMPLETE = "sync.flush.complete"
SYNC_FLUSH_FAILED = "sync.flush.failed"

ALL = "*"

Hook = Any  # Callable[[Event], None] | Callable[[Event], Awaitable[None]]


@dataclass(frozen=True)
class Event:
    """An immutable notification.

    ``source`` is the identity key the event concerns, or empty.
    """

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time)
    source: str = ""


@dataclass(frozen=True)
class _Subscription:
    pattern: str
    hook: Hook
    source: str | None = None

    def matches(self, event: Event) -> bool:
        if self.source is not None and event.source != self.source:
            return False
        if self.pattern == ALL or self.pattern == event.name:
            return True
        if self.pattern.endswith(".*"):
            return event.name.startswith(self.pattern[:-1])
        return False


class EventBus:
    """In-process pub/sub with per-identity filtering."""

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []
        self._background_tasks: set[asyncio.Task] = set()

    def on(self, pattern: str, hook: Hook, source: str | None = None) -> None:
        """Call *hook* for events matching *pattern* (a name or ``"ns.*"``).

        With *source*, only events about that identity key are delivered.
        """
        self._subscriptions.append(_Subscription(pattern, hook, source))

    def on_all(self, hook: Hook) -> None:
        self.on(ALL, hook)

    def off(self, pattern: str, hook: Hook) -> None:
        """Remove every subscription of *hook* under *pattern*; unknown pairs are ignored."""
        self._subscriptions = [s for s in self._subscriptions if not (s.pattern == pattern and s.hook is hook)]

    async def emit(self, event: Event) -> None:
        """Deliver *event*, awaiting async hooks in subscription order."""
        for hook in self._matching(event):
            try:
                if inspect.iscoroutinefunction(hook):
                    await hook(event)
                else:
                    hook(event)
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")

    def emit_sync(self, event: Event) -> None:
        """Deliver *event* from synchronous code.

        Sync hooks run inline. Async hooks become tasks on the running loop,
        or are skipped when there is none.
        """
        try:
            loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        for hook in self._matching(event):
            if not inspect.iscoroutinefunction(hook):
                try:
                    hook(event)
                except Exception as exc:
                    logger.warning(f"Event hook failed for {event.name}: {exc}")
            elif loop is None:
                logger.debug(f"No running loop; async hook {hook!r} skipped for {event.name}")
            else:
                task = loop.create_task(self._run_async(hook, event))
                self._background_tasks.add(task)
                task.add_done_callback(self._background_tasks.discard)

    @staticmethod
    async def _run_async(hook: Hook, event: Event) -> None:
        try:
            await hook(event)
        except Exception as exc:
            logger.warning(f"Event hook failed for {event.name}: {exc}")

    def _matching(self, event: Event) -> list[Hook]:
        return [s.hook for s in self._subscriptions if s.matches(event)]
