from __future__ import annotations

import os
from pathlib import Path

import typer

from aprel import __version__
from aprel.cli.commands.platforms import platforms
from aprel.cli.commands.release_cmd import build, package, publish, release
from aprel.cli.commands.version_cmd import version
from aprel.cli.context import ROOT_ENV
from aprel.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(version)
app.command()(platforms)
app.command()(build)
app.command()(package)
app.command()(publish)
app.command()(release)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    show_version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
    root: Path | None = typer.Option(
        None,
        "--root",
        help="Project root (defaults to the current directory)",
    ),
) -> None:
    del show_version
    if root is not None:
        try:
            resolved = root.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --root: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not resolved.is_dir():
            typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        os.environ[ROOT_ENV] = str(resolved)


def main() -> None:
    app()
