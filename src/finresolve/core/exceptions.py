"""
FinResolve exception hierarchy.

All finresolve exceptions inherit from FinResolveError, making it easy for
consumers to catch library-level errors while still distinguishing specific
failure modes. Profile mutations never raise; everything here belongs to the
I/O boundary (remote gateway, local cache, configuration).
"""


class FinResolveError(Exception):
    """Base exception class for all finresolve errors."""


class ConfigurationError(FinResolveError):
    """Raised for configuration errors (missing keys, invalid values)."""


class CacheError(FinResolveError):
    """Raised when the local profile cache cannot be written."""


class SyncError(FinResolveError):
    """Base class for remote synchronization failures."""


class RemoteUnavailableError(SyncError):
    """Raised by gateways for network/transport failures during load or flush."""


class ProfileNotFoundError(SyncError):
    """Raised by gateways that signal a missing profile row instead of returning None."""


class IdentityConflictError(SyncError):
    """Raised when the local and remote profile ids disagree for one identity.

    The sync engine resolves this itself (remote id wins) and only logs it;
    the exception exists for gateways and consumers that want to surface it.
    """

    def __init__(self, identity_key: str, local_id: str, remote_id: str):
        self.identity_key = identity_key
        self.local_id = local_id
        self.remote_id = remote_id
        super().__init__(f"Profile id conflict for {identity_key}: local={local_id} remote={remote_id}")
