"""Rich/JSON rendering of ServiceResult.

``--json`` dumps the result model; ``--quiet`` prints one line; the
default renders contract and task tables with Rich.
"""

from __future__ import annotations

import json as _json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from unsctl.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from unsctl.services.result import ServiceResult


@dataclass(frozen=True)
class OutputSettings:
    """How results are rendered."""

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)
    if settings.quiet:
        return _render_quiet(result)

    console = create_console()
    if result.ok:
        _status_line(console, result)
        if result.tasks and result.op == "deploy":
            console.print(Text.assemble(("  tasks: ", "uns.key"), ", ".join(result.tasks)))
        if "networks" in result.data:
            _render_networks(console, result.data)
        elif "items" in result.data:
            _render_tasks(console, result.data["items"])
        else:
            _render_fields(console, result.data)
        if settings.verbose and result.meta:
            _render_fields(console, {"meta": result.meta})
    else:
        _render_error(console, result, verbose=settings.verbose)
    return get_output(console).rstrip("\n")


def _render_quiet(result: ServiceResult) -> str:
    if not result.ok:
        message = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {message}"
    return f"OK: {result.op}"


def _status_line(console: Console, result: ServiceResult) -> None:
    line = Text.assemble(("OK", "uns.ok"), (f"  {result.op}", "uns.op"))
    if result.network:
        line.append(f"  {result.network}")
    if result.chain_id is not None:
        line.append(f" (chain {result.chain_id}, {len(result.contracts())} contracts)")
    console.print(line)


def _render_fields(console: Console, data: dict[str, Any]) -> None:
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            value = _json.dumps(value, separators=(",", ":"))
        console.print(Text.assemble((f"  {key}: ", "uns.key"), str(value)))


def _render_networks(console: Console, data: dict[str, Any]) -> None:
    for chain_id, network in data["networks"].items():
        contracts = network.get("contracts") or {}
        if not contracts:
            console.print(Text(f"  chain {chain_id}: no contracts recorded", style="uns.key"))
            continue
        table = Table(title=f"chain {chain_id}", title_justify="left")
        table.add_column("Contract")
        table.add_column("Address", style="uns.address")
        table.add_column("Implementation")
        table.add_column("Block", style="uns.block", justify="right")
        table.add_column("Legacy")
        for name, record in contracts.items():
            table.add_row(
                name,
                record["address"],
                record.get("implementation") or "",
                record["deploymentBlock"],
                ", ".join(record.get("legacyAddresses") or []),
            )
        console.print(table)


def _render_tasks(console: Console, items: list[dict[str, Any]]) -> None:
    table = Table()
    table.add_column("#", justify="right")
    table.add_column("Task")
    table.add_column("Tags", style="uns.tag")
    for position, item in enumerate(items, start=1):
        table.add_row(str(position), item["name"], ", ".join(item["tags"]))
    console.print(table)


def _render_error(console: Console, result: ServiceResult, *, verbose: bool) -> None:
    error = result.error
    message = error.message if error else "Unknown error"
    console.print(Text.assemble(("ERROR", "uns.error"), f"  {result.op}: {message}"))
    if error is not None:
        console.print(Text(f"  code: {error.code}", style="uns.key"))
        if result.network:
            console.print(Text(f"  network: {result.network}", style="uns.key"))
        if verbose and error.detail:
            _render_fields(console, error.detail)
