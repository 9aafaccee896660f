"""Profile sync engine: one live profile, kept in step with the remote store.

The engine owns a *session* per resolved identity: the identity key, a
:class:`~finresolve.profile.store.ProfileStore`, a
:class:`~finresolve.sync.scheduler.PersistenceScheduler` and the id sets
last seen remotely. Mutations apply to the store synchronously; the
scheduler later diffs the store against those id sets and pushes the
writes through the gateway, mirroring the full profile into the local
cache on every attempt.

Load order on identity resolution: remote profile (its id wins), else the
local cache entry, else a fresh empty profile. Remote failures on load or
flush are logged and swallowed; the local cache stays authoritative until
a later mutation-triggered flush succeeds. A session whose remote load
failed re-reads the remote profile row before its first push and takes
over that row's id. Anonymous identities never touch the remote store.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Any

from loguru import logger

from finresolve.core.events import (
    PROFILE_DELETED,
    PROFILE_LOADED,
    SYNC_FLUSH_COMPLETE,
    SYNC_FLUSH_FAILED,
    Event,
    EventBus,
)
from finresolve.core.exceptions import (
    CacheError,
    IdentityConflictError,
    ProfileNotFoundError,
    RemoteUnavailableError,
)
from finresolve.profile.identity import identity_key_for, is_anonymous
from finresolve.profile.models import FinancialProfile
from finresolve.profile.mutations import CompleteOnboarding, Mutation, with_derived_fields
from finresolve.profile.store import Clock, ProfileStore
from finresolve.sync.cache import LocalCache
from finresolve.sync.gateway import EntityKind, RemoteGateway, profile_from_rows
from finresolve.sync.reconcile import KnownIds, SyncPlan, empty_known_ids, known_ids_of, plan_sync
from finresolve.sync.scheduler import PersistenceScheduler

_UNRESOLVED = "unresolved"


@dataclass
class _Session:
    """State scoped to one identity key."""

    identity_key: str
    store: ProfileStore
    known_ids: KnownIds
    source: str
    # False until the remote profile row has been seen (degraded loads).
    confirmed: bool = True
    scheduler: PersistenceScheduler | None = None
    closed: bool = False
    log: Any = field(default=None, repr=False)

    def retire(self) -> None:
        self.closed = True
        if self.scheduler is not None:
            self.scheduler.cancel()


class ProfileSyncEngine:
    """Holds the active identity's profile and persists it.

    Args:
        gateway: Remote store implementing :class:`RemoteGateway`.
        cache: Identity-keyed local cache.
        debounce_seconds: Quiescence window before a flush.
        events: Bus for ``profile.*`` and ``sync.*`` notifications.
        clock: Optional timestamp provider for ``last_updated``.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        cache: LocalCache,
        *,
        debounce_seconds: float = 1.0,
        events: EventBus | None = None,
        clock: Clock | None = None,
    ):
        self.gateway = gateway
        self.cache = cache
        self.debounce_seconds = debounce_seconds
        self.events = events or EventBus()
        self._clock = clock
        self._session: _Session | None = None
        self._loading = False
        self._generation = 0
        # Receives mutations issued before any identity is resolved; never persisted.
        self._detached = ProfileStore(FinancialProfile.empty(), _UNRESOLVED, self.events, clock)

    @classmethod
    def from_config(cls, config, gateway: RemoteGateway, events: EventBus | None = None) -> ProfileSyncEngine:
        """Build an engine using ``paths.cache_dir`` and ``sync.debounce_ms``."""
        return cls(
            gateway,
            LocalCache(config.get_cache_dir()),
            debounce_seconds=config.get_debounce_seconds(),
            events=events,
        )

    # ── State ──────────────────────────────────────────────────────

    @property
    def profile(self) -> FinancialProfile:
        return self.store.profile

    @property
    def store(self) -> ProfileStore:
        session = self._active()
        return session.store if session else self._detached

    @property
    def identity_key(self) -> str | None:
        session = self._active()
        return session.identity_key if session else None

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def scheduler(self) -> PersistenceScheduler | None:
        session = self._active()
        return session.scheduler if session else None

    def _active(self) -> _Session | None:
        if self._session is None or self._session.closed or self._loading:
            return None
        return self._session

    # ── Identity ───────────────────────────────────────────────────

    async def resolve_identity(self, user_id: str | None, *, loading: bool = False) -> FinancialProfile | None:
        """Adopt the identity reported by the identity provider.

        While ``loading`` is True nothing is loaded or flushed and the
        current session is retired. Re-resolving the active identity is a
        no-op. A bootstrap overtaken by a newer resolution is discarded.
        """
        if loading:
            self._loading = True
            self._generation += 1
            self._retire_current()
            return None

        key = identity_key_for(user_id)
        active = self._active()
        if active is not None and active.identity_key == key:
            return active.store.profile

        self._generation += 1
        generation = self._generation
        self._retire_current()
        self._loading = True
        session = await self._bootstrap(key)
        if generation != self._generation:
            session.log.debug("Discarding bootstrap overtaken by a newer identity")
            session.retire()
            return None

        self._session = session
        self._loading = False
        session.log.info(f"Active identity {key} (profile {session.store.profile.id}, from {session.source})")
        await self.events.emit(
            Event(
                name=PROFILE_LOADED,
                payload={"profile": session.store.profile, "source": session.source},
                source=key,
            )
        )
        return session.store.profile

    def _retire_current(self) -> None:
        if self._session is not None and not self._session.closed:
            self._session.log.info(f"Retiring session for {self._session.identity_key}")
            self._session.retire()

    # ── Load / bootstrap ───────────────────────────────────────────

    async def _bootstrap(self, key: str) -> _Session:
        log = logger.bind(identity=key)
        cached = self.cache.get(key)
        profile: FinancialProfile | None = None
        known = empty_known_ids()
        source = "new"
        remote_failed = False

        if not is_anonymous(key):
            remote = None
            try:
                remote = await self._load_remote(key)
            except ProfileNotFoundError:
                remote = None
            except RemoteUnavailableError as e:
                remote_failed = True
                log.warning(f"Remote load failed for {key}, using local cache: {e}")
            except Exception as e:
                remote_failed = True
                log.warning(f"Unexpected error loading {key} remotely, using local cache: {e}")

            if remote is not None:
                profile = with_derived_fields(remote)
                known = known_ids_of(profile)
                source = "remote"
                if cached is not None and cached.id != profile.id:
                    log.info(f"{IdentityConflictError(key, cached.id, profile.id)}; remote id wins")
                self._write_cache(key, profile, known, log)

        if profile is None and cached is not None:
            profile = with_derived_fields(cached)
            source = "cache"
            if remote_failed:
                known = {**known, **(self.cache.get_known_ids(key) or {})}
        if profile is None:
            profile = FinancialProfile.empty()

        session = _Session(
            identity_key=key,
            store=ProfileStore(profile, key, self.events, self._clock),
            known_ids=known,
            source=source,
            confirmed=not remote_failed,
            log=log,
        )
        session.scheduler = self._new_scheduler(session)
        return session

    async def _load_remote(self, key: str) -> FinancialProfile | None:
        row = await self.gateway.fetch_profile(key)
        if row is None:
            return None
        kinds = list(EntityKind)
        results = await asyncio.gather(*(self.gateway.fetch_collection(kind, row["id"]) for kind in kinds))
        return profile_from_rows(row, dict(zip(kinds, results, strict=True)))

    def _new_scheduler(self, session: _Session) -> PersistenceScheduler:
        async def flush() -> None:
            await self._flush(session)

        return PersistenceScheduler(flush, delay=self.debounce_seconds, name=session.identity_key)

    # ── Mutations ──────────────────────────────────────────────────

    def dispatch(self, mutation: Mutation) -> FinancialProfile:
        """Apply *mutation* now and schedule persistence.

        Privileged mutations start an immediate flush in the background;
        use :meth:`commit` to wait for it.
        """
        session = self._active()
        if session is None:
            logger.warning(f"{mutation.kind} applied with no resolved identity; it will not be persisted")
            return self._detached.dispatch(mutation)

        profile = session.store.dispatch(mutation)
        if mutation.privileged:
            session.scheduler.flush_soon()
        else:
            session.scheduler.request()
        return profile

    async def commit(self, mutation: Mutation) -> FinancialProfile:
        """Apply *mutation* and return once a flush including it has finished."""
        session = self._active()
        if session is None:
            return self.dispatch(mutation)
        profile = session.store.dispatch(mutation)
        await session.scheduler.flush_now()
        return profile

    async def complete_onboarding(self) -> FinancialProfile:
        """Mark onboarding complete and persist before returning."""
        return await self.commit(CompleteOnboarding())

    async def flush(self) -> None:
        session = self._active()
        if session is not None:
            await session.scheduler.flush_now()

    async def close(self) -> None:
        """Persist anything pending and retire the session."""
        session = self._active()
        if session is None:
            return
        await session.scheduler.drain()
        session.retire()

    # ── Flush ──────────────────────────────────────────────────────

    async def _flush(self, session: _Session) -> None:
        if session.closed:
            return
        key = session.identity_key
        self._write_cache(key, session.store.profile, session.known_ids, session.log)
        if is_anonymous(key):
            return

        try:
            if not session.confirmed:
                await self._confirm(session)
                if session.closed:
                    return
            plan = plan_sync(session.store.profile, key, session.known_ids)
            await self._push(plan)
        except RemoteUnavailableError as e:
            session.log.warning(f"Remote flush for {key} failed; local cache remains authoritative: {e}")
            await self._emit_failed(key, e)
            return
        except Exception as e:
            session.log.exception(f"Unexpected error flushing {key}")
            await self._emit_failed(key, e)
            return

        if session.closed:
            session.log.debug(f"Discarding flush result for retired identity {key}")
            return
        session.known_ids = plan.known_ids
        self._write_cache(key, session.store.profile, session.known_ids, session.log)
        session.log.debug(f"Flushed profile {plan.profile_id} for {key}")
        await self.events.emit(Event(name=SYNC_FLUSH_COMPLETE, payload={"profile_id": plan.profile_id}, source=key))

    async def _confirm(self, session: _Session) -> None:
        """Check a profile loaded from cache against the remote store.

        Runs before the first push of a session whose remote load failed.
        When the remote store already holds a profile row for the identity,
        the local aggregate takes over that row's id and the known ids are
        re-seeded from the rows it owns, so the push updates that row
        instead of creating a second one.
        """
        key = session.identity_key
        row = await self.gateway.fetch_profile(key)
        if row is not None:
            remote_id = row["id"]
            kinds = list(empty_known_ids())
            results = await asyncio.gather(*(self.gateway.fetch_collection(kind, remote_id) for kind in kinds))
            if session.closed:
                return
            profile = session.store.profile
            if profile.id != remote_id:
                session.log.info(f"{IdentityConflictError(key, profile.id, remote_id)}; adopting remote id")
                session.store.replace(replace(profile, id=remote_id))
            session.known_ids = {
                kind: frozenset(r["id"] for r in rows) for kind, rows in zip(kinds, results, strict=True)
            }
            self._write_cache(key, session.store.profile, session.known_ids, session.log)
        session.confirmed = True

    async def _push(self, plan: SyncPlan) -> None:
        # Scalar row first: child rows reference it.
        await self.gateway.upsert_profile(plan.profile_row)
        for collection in plan.collections:
            if collection.replace_all:
                await self.gateway.delete_for_profile(collection.kind, plan.profile_id)
                if collection.upserts:
                    await self.gateway.insert_rows(collection.kind, collection.upserts)
                continue
            if collection.upserts:
                await self.gateway.upsert_rows(collection.kind, collection.upserts)
            if collection.deletes:
                await self.gateway.delete_rows(collection.kind, collection.deletes)

    async def _emit_failed(self, key: str, error: Exception) -> None:
        await self.events.emit(Event(name=SYNC_FLUSH_FAILED, payload={"error": str(error)}, source=key))

    def _write_cache(self, key: str, profile: FinancialProfile, known: KnownIds, log) -> None:
        try:
            self.cache.set(key, profile, known_ids=known)
        except CacheError as e:
            log.error(str(e))

    # ── Account deletion ───────────────────────────────────────────

    async def delete_account(self) -> FinancialProfile:
        """Destroy the active profile remotely and locally.

        Remote rows of every kind and the profile row are deleted, the
        cache entry is cleared and a fresh empty profile takes over for the
        same identity. Remote errors propagate to the caller; the session
        is then left in place with persistence re-armed.
        """
        session = self._active()
        if session is None:
            raise RuntimeError("No resolved identity to delete")
        key = session.identity_key

        session.scheduler.cancel()
        await session.scheduler.drain()

        profile_id = session.store.profile.id
        if not is_anonymous(key):
            try:
                if not session.confirmed:
                    await self._confirm(session)
                    profile_id = session.store.profile.id
                for kind in EntityKind:
                    await self.gateway.delete_for_profile(kind, profile_id)
                await self.gateway.delete_profile(profile_id)
            except Exception:
                session.log.error(f"Account deletion for {key} failed; keeping current profile")
                session.scheduler = self._new_scheduler(session)
                session.scheduler.request()
                raise

        self.cache.clear(key)
        session.closed = True
        fresh = _Session(
            identity_key=key,
            store=ProfileStore(FinancialProfile.empty(), key, self.events, self._clock),
            known_ids=empty_known_ids(),
            source="new",
            log=session.log,
        )
        fresh.scheduler = self._new_scheduler(fresh)
        self._session = fresh
        session.log.info(f"Deleted profile {profile_id} for {key}")
        await self.events.emit(Event(name=PROFILE_DELETED, payload={"profile_id": profile_id}, source=key))
        return fresh.store.profile
