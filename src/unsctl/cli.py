"""Root CLI group for unsctl with global flags and command registration."""

from __future__ import annotations

import click

from unsctl import __version__
from unsctl.commands import register_commands
from unsctl.commands._context import AppContext
from unsctl.config.settings import UnsSettings


@click.group(name="unsctl", invoke_without_command=True)
@click.version_option(version=__version__, prog_name="unsctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug logs.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("-n", "--network", default=None, help="Network profile to target.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    network: str | None,
) -> None:
    """unsctl — UNS registry deployer."""
    ctx.ensure_object(dict)
    settings = UnsSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        network=network,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
