from __future__ import annotations

import typer

from aprel.cli.commands._helpers import version_or_exit
from aprel.cli.context import build_context


def version(
    tag: str | None = typer.Argument(
        None, help="Tag or ref (e.g. 1.2.3, refs/tags/1.2.3). Defaults to $GITHUB_REF."
    ),
) -> None:
    """Print the release version resolved from a tag."""
    ctx = build_context()
    resolved = version_or_exit(tag, ctx)
    typer.echo(str(resolved))
