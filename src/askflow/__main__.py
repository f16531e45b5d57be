"""Askflow CLI bootstrap."""

from __future__ import annotations

import typer

from askflow.config import get_settings
from askflow.framework import AskflowFramework
from askflow.logging_utils import configure_logging


def create_cli_app() -> typer.Typer:
    app = typer.Typer(name="askflow", help="Route, inquire, research, answer.", add_completion=False)
    framework = AskflowFramework(get_settings())
    framework.load_hooks()
    framework.register_cli_commands(app)

    if not app.registered_commands:

        @app.command("help")
        def _help() -> None:
            typer.echo("No CLI command plugins loaded.")

    return app


def main() -> None:
    settings = get_settings()
    configure_logging(profile=settings.log_profile, level=settings.log_level)
    create_cli_app()()


if __name__ == "__main__":
    main()
