"""finresolve profile: summaries of a locally cached profile."""

from __future__ import annotations

import click

from .common import open_cache, resolve_identity_key, with_identity


@click.group()
def profile() -> None:
    """Summaries of the cached profile."""


@profile.command()
@with_identity
def completeness(user_id: str | None, anonymous: bool) -> None:
    """Show how complete the cached profile is (0-100)."""
    from finresolve.profile.completeness import calculate_data_completeness
    from finresolve.profile.lookups import dangling_entries

    key = resolve_identity_key(user_id, anonymous)
    cached = open_cache().get(key)
    if cached is None:
        click.echo(f"No cached profile for {key}.")
        raise SystemExit(1)
    click.echo(f"Data completeness: {calculate_data_completeness(cached)}%")
    click.echo(
        f"Accounts: {len(cached.accounts)}  Budgets: {len(cached.budgets)}  "
        f"Goals: {len(cached.goals)}  Entries: {len(cached.spending_entries)}"
    )
    orphaned = dangling_entries(cached)
    if orphaned:
        click.echo(f"Entries referencing deleted accounts: {len(orphaned)}")


@profile.command()
@with_identity
def score(user_id: str | None, anonymous: bool) -> None:
    """Show the FinResolve score of the cached profile and what to do next."""
    from finresolve.profile.lookups import spending_by_category
    from finresolve.profile.score import calculate_score, recommend

    key = resolve_identity_key(user_id, anonymous)
    cached = open_cache().get(key)
    if cached is None:
        click.echo(f"No cached profile for {key}.")
        raise SystemExit(1)

    breakdown = calculate_score(cached)
    click.echo(f"FinResolve score: {breakdown.overall} ({breakdown.label})")
    for name, value in breakdown.components().items():
        click.echo(f"  {name.replace('_', ' ')}: {value}")
    for alert in breakdown.alerts:
        click.echo(f"  ! {alert}")

    by_category = spending_by_category(cached)
    if by_category:
        click.echo("Spending by category:")
        for category, total in by_category.items():
            click.echo(f"  {category}: {total}")

    click.echo(recommend(cached, breakdown).primary_action)
