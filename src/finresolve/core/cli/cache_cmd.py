"""finresolve cache: show or clear a locally cached profile."""

from __future__ import annotations

import json

import click

from .common import open_cache, resolve_identity_key, with_identity


@click.group()
def cache() -> None:
    """Inspect the local profile cache."""


@cache.command()
@with_identity
def show(user_id: str | None, anonymous: bool) -> None:
    """Print the cached profile as JSON."""
    key = resolve_identity_key(user_id, anonymous)
    profile = open_cache().get(key)
    if profile is None:
        click.echo(f"No cached profile for {key}.")
        raise SystemExit(1)
    click.echo(json.dumps(profile.to_dict(), indent=2))


@cache.command()
@with_identity
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
def clear(user_id: str | None, anonymous: bool, yes: bool) -> None:
    """Delete the cached profile for one identity."""
    key = resolve_identity_key(user_id, anonymous)
    if not yes:
        click.confirm(f"Delete the cached profile for {key}?", abort=True)
    open_cache().clear(key)
    click.echo(f"Cleared cached profile for {key}.")
