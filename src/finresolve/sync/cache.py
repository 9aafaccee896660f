"""
Identity-keyed local profile cache.

One JSON blob per identity key, written through on every flush attempt
and read on startup as the instant fallback. File names are hashes of the
namespaced cache key and each blob records the identity it was written
for, so one identity's data is never returned under another's key. The
remote id sets seen at the last successful sync are kept in the same blob.
"""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from collections.abc import Mapping
from typing import Any

from loguru import logger

from finresolve.core.exceptions import CacheError
from finresolve.profile.identity import cache_key_for
from finresolve.profile.models import FinancialProfile
from finresolve.sync.gateway import EntityKind

_FORMAT_VERSION = 1


class LocalCache:
    """Durable per-identity profile store backed by JSON files."""

    def __init__(self, cache_dir: str | None = None):
        """
        Args:
            cache_dir: Directory to store cache files.
                       If None, defaults to ~/.finresolve-data/cache.
        """
        if cache_dir is None:
            cache_dir = os.path.join(os.path.expanduser("~"), ".finresolve-data", "cache")
        self.cache_dir = cache_dir
        os.makedirs(self.cache_dir, exist_ok=True)

    def _path(self, identity_key: str) -> str:
        digest = hashlib.sha256(cache_key_for(identity_key).encode("utf-8")).hexdigest()
        return os.path.join(self.cache_dir, f"{digest}.json")

    def _read(self, identity_key: str) -> dict[str, Any] | None:
        path = self._path(identity_key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, encoding="utf-8") as f:
                blob: dict[str, Any] = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable profile cache for {identity_key}: {e}")
            return None
        if not isinstance(blob, dict) or blob.get("identity") != identity_key:
            logger.warning(f"Cache entry at {path} belongs to another identity; ignoring")
            return None
        return blob

    def get(self, identity_key: str) -> FinancialProfile | None:
        """Return the cached profile for *identity_key*, or None."""
        blob = self._read(identity_key)
        if blob is None:
            return None
        try:
            return FinancialProfile.from_dict(blob["profile"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Unreadable profile cache for {identity_key}: {e}")
            return None

    def get_known_ids(self, identity_key: str) -> dict[EntityKind, frozenset[str]] | None:
        """Return the remote id sets recorded with the cached profile.

        These are the ids the remote store held after the last successful
        load or flush. None when the entry is missing or predates them.
        """
        blob = self._read(identity_key)
        if blob is None or not isinstance(blob.get("known_ids"), dict):
            return None
        try:
            return {EntityKind(kind): frozenset(ids) for kind, ids in blob["known_ids"].items()}
        except (ValueError, TypeError) as e:
            logger.warning(f"Ignoring unreadable known ids for {identity_key}: {e}")
            return None

    def set(
        self,
        identity_key: str,
        profile: FinancialProfile,
        known_ids: Mapping[EntityKind, frozenset[str]] | None = None,
    ) -> None:
        """Replace the cached profile for *identity_key*.

        Writes to a temp file and renames it so a crash never leaves a
        half-written blob behind. *known_ids* are stored alongside when
        given.
        """
        path = self._path(identity_key)
        blob: dict[str, Any] = {
            "version": _FORMAT_VERSION,
            "identity": identity_key,
            "profile": profile.to_dict(),
        }
        if known_ids is not None:
            blob["known_ids"] = {kind.value: sorted(ids) for kind, ids in known_ids.items()}
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
        except OSError as e:
            raise CacheError(f"Cannot write profile cache for {identity_key}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(blob, f)
            os.replace(tmp_path, path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise CacheError(f"Cannot write profile cache for {identity_key}: {e}") from e

    def clear(self, identity_key: str) -> None:
        """Remove the cached profile for *identity_key* (no-op if absent)."""
        path = self._path(identity_key)
        if os.path.exists(path):
            os.remove(path)

    def has(self, identity_key: str) -> bool:
        return os.path.exists(self._path(identity_key))
