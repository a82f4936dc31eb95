"""
zistogram - a histogram of the shell commands you run.

Usage:
    zistogram record -- "<command line>"
    zistogram top [period] [limit]
    zistogram timeline <command> [hour|day|week|month]
    zistogram detail <command> [limit]
    zistogram stats
    zistogram export [file]
    zistogram clear
"""

from importlib.metadata import PackageNotFoundError, version

import typer

from zistogram.cli.commands import register_commands
from zistogram.cli.helpers import configure_logging

try:
    __version__ = version("zistogram")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"


app = typer.Typer(
    name="zistogram",
    help="Track how often you run shell commands and report on it.",
    add_completion=False,
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"zistogram {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    show_version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """Track how often you run shell commands and report on it."""
    configure_logging(verbose)


register_commands(app)


def main():
    app()


if __name__ == "__main__":
    main()
