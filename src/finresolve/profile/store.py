"""ProfileStore: owner of the single live profile.

The store holds one ``FinancialProfile`` and changes it only through
:func:`finresolve.profile.mutations.apply`. Consumers read immutable
snapshots via :attr:`ProfileStore.profile` and learn about changes from
``profile.changed`` events on the bus. The store never performs I/O.
"""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from finresolve.core.events import PROFILE_CHANGED, Event, EventBus
from finresolve.profile.models import FinancialProfile
from finresolve.profile.mutations import Mutation, apply

Clock = Callable[[], str]


class ProfileStore:
    """Single-writer container for one identity's profile.

    Args:
        profile: Initial aggregate.
        identity_key: Identity the profile belongs to; used as event source.
        events: Bus that receives ``profile.changed`` notifications.
        clock: Optional timestamp provider for ``last_updated`` (tests).
    """

    def __init__(
        self,
        profile: FinancialProfile,
        identity_key: str,
        events: EventBus | None = None,
        clock: Clock | None = None,
    ):
        self._profile = profile
        self.identity_key = identity_key
        self._events = events or EventBus()
        self._clock = clock
        self.version = 0

    @property
    def profile(self) -> FinancialProfile:
        return self._profile

    @property
    def events(self) -> EventBus:
        return self._events

    def dispatch(self, mutation: Mutation) -> FinancialProfile:
        """Apply *mutation*, publish the change, and return the new profile."""
        now = self._clock() if self._clock else None
        self._profile = apply(self._profile, mutation, now=now)
        self.version += 1
        logger.debug(f"Applied {mutation.kind} to {self.identity_key} (v{self.version})")
        self._events.emit_sync(
            Event(
                name=PROFILE_CHANGED,
                payload={"mutation": mutation.kind, "profile": self._profile, "version": self.version},
                source=self.identity_key,
            )
        )
        return self._profile

    def replace(self, profile: FinancialProfile) -> None:
        """Swap in a whole aggregate without publishing a change event."""
        self._profile = profile
        self.version += 1
