"""Identity keys.

Every profile and every cache entry is namespaced by an identity key:
``user:<id>`` for an authenticated user, or the anonymous sentinel. The
``user:`` prefix keeps a user whose id happens to be the literal string
"anonymous" from sharing the anonymous entry.
"""

from __future__ import annotations

ANONYMOUS = "anonymous"
_USER_PREFIX = "user:"
_CACHE_NAMESPACE = "finresolve-profile"


def identity_key_for(user_id: str | None) -> str:
    """Map an authenticated user id (or None) to its identity key."""
    if user_id is None or not str(user_id).strip():
        return ANONYMOUS
    return f"{_USER_PREFIX}{str(user_id).strip()}"


def is_anonymous(identity_key: str) -> bool:
    return identity_key == ANONYMOUS


def user_id_of(identity_key: str) -> str | None:
    """Return the user id inside an identity key, or None for anonymous."""
    if identity_key.startswith(_USER_PREFIX):
        return identity_key[len(_USER_PREFIX) :]
    return None


def cache_key_for(identity_key: str) -> str:
    """Namespaced local cache key for an identity key."""
    return f"{_CACHE_NAMESPACE}:{identity_key}"
