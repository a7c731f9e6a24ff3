from __future__ import annotations

from aprel.cli.context import build_context
from aprel.output.console import Style
from aprel.services.matrix import ACTIVE_PLATFORMS, RESERVED_PLATFORMS, PlatformEntry


def _describe(entry: PlatformEntry) -> str:
    files = ", ".join(entry.binary_files)
    line = f"{entry.platform_id:<8} {entry.target_triple:<26} {entry.archive_format!s:<7} {files}"
    if entry.system_packages:
        line += f"  (deps: {', '.join(entry.system_packages)})"
    return line


def platforms() -> None:
    """Show the platform matrix."""
    ctx = build_context()
    ctx.console.header("Platforms")
    for entry in ACTIVE_PLATFORMS:
        ctx.console.print(_describe(entry))
    for entry in RESERVED_PLATFORMS:
        ctx.console.print(f"{_describe(entry)}  [reserved]", Style.DIM)
