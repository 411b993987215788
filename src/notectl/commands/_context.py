"""AppContext: shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy Repository initialization and
centralized result emission (stdout/stderr routing and exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from notectl.config.logging import bind_context, configure_logging
from notectl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from notectl.config.settings import NotectlSettings
    from notectl.infrastructure.repository import Repository
    from notectl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The repository is opened on first use so ``--help`` and
    ``--version`` never touch the database.
    """

    def __init__(self, settings: NotectlSettings) -> None:
        self.settings = settings
        self._repository: Repository | None = None

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        bind_context(project=settings.repository.name, author=settings.author)

    @property
    def repository(self) -> Repository:
        """The project repository (created lazily on first access)."""
        if self._repository is None:
            from notectl.infrastructure.repository import Repository

            self._repository = Repository(self.settings)
        return self._repository

    def close(self) -> None:
        if self._repository is not None:
            self._repository.close()
            self._repository = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings go to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output and not settings.quiet:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
