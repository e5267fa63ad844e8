"""Command: run tagged deployment tasks."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import click

from unsctl.commands._base import UnsCommand

if TYPE_CHECKING:
    from unsctl.commands._context import AppContext


def _load_overlay(path: str | None) -> dict | None:
    if path is None:
        return None
    with open(path, encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            msg = f"Invalid JSON in {path}: {exc}"
            raise click.BadParameter(msg, param_hint="--contracts") from exc
    if not isinstance(data, dict):
        raise click.BadParameter("must contain a JSON object", param_hint="--contracts")
    return data


@click.command(
    cls=UnsCommand,
    examples="""\
  unsctl deploy full
  unsctl deploy cns
  unsctl --network sepolia deploy uns cns_config
  unsctl --network sepolia deploy uns_upgrade
  unsctl deploy uns --contracts existing.json""",
)
@click.argument("tags", nargs=-1, required=True)
@click.option(
    "--contracts",
    "contracts_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help='JSON overlay ({"contracts": {...}}) merged over the stored record.',
)
@click.pass_obj
def deploy(app: AppContext, tags: tuple[str, ...], contracts_path: str | None) -> None:
    """Run every task whose tags match TAGS, in registration order."""
    app.emit(app.service.deploy(list(tags), _load_overlay(contracts_path)))
