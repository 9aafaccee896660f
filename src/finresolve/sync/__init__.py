"""Profile synchronization: remote gateway contract, local cache,
reconciliation, debounced persistence scheduling and the sync engine.
"""

from .cache import LocalCache
from .engine import ProfileSyncEngine
from .gateway import (
    COLLECTION_OF,
    STRATEGY_OF,
    EntityKind,
    RemoteGateway,
    SyncStrategy,
    profile_from_rows,
    profile_to_row,
    record_from_row,
    record_to_row,
)
from .memory import GatewayCall, InMemoryGateway
from .reconcile import CollectionPlan, IdDiff, SyncPlan, diff_ids, plan_sync
from .scheduler import PersistenceScheduler

__all__ = [
    "COLLECTION_OF",
    "STRATEGY_OF",
    "CollectionPlan",
    "EntityKind",
    "GatewayCall",
    "IdDiff",
    "InMemoryGateway",
    "LocalCache",
    "PersistenceScheduler",
    "ProfileSyncEngine",
    "RemoteGateway",
    "SyncPlan",
    "SyncStrategy",
    "diff_ids",
    "plan_sync",
    "profile_from_rows",
    "profile_to_row",
    "record_from_row",
    "record_to_row",
]
