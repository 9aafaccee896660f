"""Shared setup logic for CLI commands."""

from __future__ import annotations

import os

import click

from finresolve.core.config import CONFIG_FILE_ENV_VAR, Config

identity_options = [
    click.option("--user", "user_id", default=None, help="Authenticated user id."),
    click.option("--anonymous", is_flag=True, help="Use the anonymous identity."),
]


def with_identity(fn):
    for option in reversed(identity_options):
        fn = option(fn)
    return fn


def load_config():
    """Load config from $FINRESOLVE_CONFIG when set, else defaults + env."""
    return Config(config_file=os.environ.get(CONFIG_FILE_ENV_VAR) or None)


def resolve_identity_key(user_id: str | None, anonymous: bool) -> str:
    from finresolve.profile.identity import identity_key_for

    if not user_id and not anonymous:
        raise click.UsageError("Pass --user USER_ID or --anonymous.")
    return identity_key_for(None if anonymous else user_id)


def open_cache():
    from finresolve.sync.cache import LocalCache

    return LocalCache(load_config().get_cache_dir())
