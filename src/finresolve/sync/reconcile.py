"""Reconciliation: the write set that makes the remote store match local state.

For each id-keyed collection, given the ids seen remotely at the last
successful sync (``R``) and the ids present locally (``L``)::

    to_delete = R - L
    to_upsert = L        (every local row, in full; no dirty tracking)

Spending entries are upsert-only and never deleted remotely. The
spending rollup has no stable id: it is replaced wholesale (delete every
row for the profile, then insert the current rows) on every sync.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from finresolve.profile.models import FinancialProfile
from finresolve.sync.gateway import (
    COLLECTION_OF,
    STRATEGY_OF,
    EntityKind,
    Row,
    SyncStrategy,
    profile_to_row,
    rows_for,
)

KnownIds = dict[EntityKind, frozenset[str]]


@dataclass(frozen=True)
class IdDiff:
    """Result of diffing a remote id set against a local one."""

    to_upsert: frozenset[str]
    to_delete: frozenset[str]


def diff_ids(remote: set[str] | frozenset[str], local: set[str] | frozenset[str]) -> IdDiff:
    return IdDiff(to_upsert=frozenset(local), to_delete=frozenset(remote) - frozenset(local))


@dataclass
class CollectionPlan:
    """Writes for one entity kind."""

    kind: EntityKind
    strategy: SyncStrategy
    upserts: list[Row] = field(default_factory=list)
    deletes: list[str] = field(default_factory=list)

    @property
    def replace_all(self) -> bool:
        return self.strategy is SyncStrategy.REPLACE_ALL


@dataclass
class SyncPlan:
    """Everything one flush sends to the remote store.

    Attributes:
        profile_row: Scalar profile row, always upserted first.
        collections: Per-kind writes in a stable order.
        known_ids: Remote id sets once the plan has been applied.
    """

    profile_id: str
    profile_row: Row
    collections: list[CollectionPlan]
    known_ids: KnownIds

    def for_kind(self, kind: EntityKind) -> CollectionPlan:
        for plan in self.collections:
            if plan.kind is kind:
                return plan
        raise KeyError(kind)


def empty_known_ids() -> KnownIds:
    return {kind: frozenset() for kind in EntityKind if STRATEGY_OF[kind] is not SyncStrategy.REPLACE_ALL}


def known_ids_of(profile: FinancialProfile) -> KnownIds:
    """Id sets of every id-keyed collection in *profile*."""
    return {kind: frozenset(profile.ids(COLLECTION_OF[kind])) for kind in empty_known_ids()}


def plan_sync(
    profile: FinancialProfile,
    identity_key: str,
    known_ids: Mapping[EntityKind, frozenset[str]],
) -> SyncPlan:
    """Compute the write set for *profile* against the last-known remote ids."""
    collections: list[CollectionPlan] = []
    after: KnownIds = {}
    for kind in EntityKind:
        strategy = STRATEGY_OF[kind]
        rows = rows_for(kind, profile)
        plan = CollectionPlan(kind=kind, strategy=strategy, upserts=rows)
        if strategy is not SyncStrategy.REPLACE_ALL:
            remote = known_ids.get(kind, frozenset())
            diff = diff_ids(remote, {row["id"] for row in rows})
            if strategy is SyncStrategy.ID_DIFF:
                plan.deletes = sorted(diff.to_delete)
                after[kind] = diff.to_upsert
            else:
                # Upsert-only: rows we never delete stay known remotely.
                after[kind] = diff.to_upsert | remote
        collections.append(plan)
    return SyncPlan(
        profile_id=profile.id,
        profile_row=profile_to_row(profile, identity_key),
        collections=collections,
        known_ids=after,
    )
