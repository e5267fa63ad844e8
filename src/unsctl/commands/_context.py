"""AppContext — shared Click context for all commands.

Created once by the root group and passed down via ``@click.pass_obj``.
Owns logging setup, the deploy service, and result emission (stdout or
stderr plus exit code).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from unsctl.config.logging import configure_logging
from unsctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from unsctl.config.settings import UnsSettings
    from unsctl.services.deploy import DeployService
    from unsctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The service is built lazily so ``--help`` and ``--version`` never
    resolve a network.
    """

    def __init__(self, settings: UnsSettings) -> None:
        self.settings = settings
        self._service: DeployService | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def service(self) -> DeployService:
        if self._service is None:
            from unsctl.services.deploy import DeployService

            self._service = DeployService(self.settings)
        return self._service

    def emit(self, result: ServiceResult) -> None:
        """Print *result*; failures go to stderr and exit with code 1."""
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
