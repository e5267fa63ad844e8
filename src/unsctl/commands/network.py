"""Command: show the persisted network config."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from unsctl.commands._base import UnsCommand

if TYPE_CHECKING:
    from unsctl.commands._context import AppContext


@click.command(
    "network-config",
    cls=UnsCommand,
    examples="""\
  unsctl network-config
  unsctl --network sepolia --json network-config""",
)
@click.pass_obj
def network_config(app: AppContext) -> None:
    """Print contract addresses and deployment blocks for the active network."""
    app.emit(app.service.network_config())
