from __future__ import annotations

import typer

from .commands import check_cmd, deploy_cmd, logs_cmd, settings_cmd, setup_cmd, status_cmd
from .logging_ import setup_logging

# (canonical name, hidden aliases, callback)
COMMANDS = (
    ("setup", ("init", "configure"), setup_cmd.setup),
    ("deploy", ("bootstrap", "install"), deploy_cmd.deploy),
    ("status", ("health",), status_cmd.status),
    ("logs", ("log",), logs_cmd.logs),
    ("test", ("verify", "check"), check_cmd.check),
)


def _build_app() -> typer.Typer:
    app = typer.Typer(
        name="kamal-registry",
        help="Bootstrap a self-hosted container registry with Kamal.",
        no_args_is_help=False,
        context_settings={"help_option_names": ["-h", "--help"]},
    )

    for name, aliases, callback in COMMANDS:
        app.command(name)(callback)
        for alias in aliases:
            app.command(alias, hidden=True)(callback)

    app.add_typer(settings_cmd.app, name="settings")

    @app.command("help")
    def _help(ctx: typer.Context) -> None:
        """Show this message and exit."""
        typer.echo(ctx.parent.get_help() if ctx.parent else ctx.get_help())

    @app.callback(invoke_without_command=True)
    def _main(
            ctx: typer.Context,
            verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logs."),
    ):
        setup_logging(verbose)
        if ctx.invoked_subcommand is None:
            typer.echo(ctx.get_help())
            raise typer.Exit(code=0)

    return app


app = _build_app()
