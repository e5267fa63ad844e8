"""Subcommand modules for unsctl."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the standalone commands on the root group."""
    from unsctl.commands.deploy import deploy
    from unsctl.commands.network import network_config
    from unsctl.commands.tasks import tasks

    cli.add_command(deploy)
    cli.add_command(network_config)
    cli.add_command(tasks)
