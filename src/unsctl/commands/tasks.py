"""Command: list registered deployment tasks."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from unsctl.commands._base import UnsCommand

if TYPE_CHECKING:
    from unsctl.commands._context import AppContext


@click.command(cls=UnsCommand, examples="  unsctl tasks\n  unsctl --json tasks")
@click.pass_obj
def tasks(app: AppContext) -> None:
    """List tasks in execution order with the tags that select them."""
    app.emit(app.service.list_tasks())
