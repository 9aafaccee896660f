"""FinResolve CLI: inspect and manage locally cached profiles."""

import click

from finresolve import __version__


@click.group()
@click.version_option(version=__version__, package_name="finresolve")
@click.option("--log-level", default=None, help="Override logging.level (DEBUG, INFO, WARNING, ERROR).")
def main(log_level: str | None) -> None:
    """FinResolve: financial profile sync tools."""
    from finresolve.core.utils.logging import setup_logging_from_config

    from .common import load_config

    setup_logging_from_config(load_config(), level=log_level)


# Register subcommands
from .cache_cmd import cache
from .profile_cmd import profile

main.add_command(cache)
main.add_command(profile)
