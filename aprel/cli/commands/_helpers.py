"""Shared helpers for CLI commands."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, NoReturn

import typer

from aprel.core.config import CONFLICT_POLICIES, ConflictPolicy, parse_conflict_policy
from aprel.core.errors import ErrorCode
from aprel.core.result import Err
from aprel.output.console import Style
from aprel.output.errors import pipeline_error_exit_code, print_pipeline_error
from aprel.services.errors import PipelineError
from aprel.services.matrix import ACTIVE_PLATFORMS, PlatformEntry, find_platform
from aprel.services.version import ReleaseVersion, ref_from_env, resolve_version

if TYPE_CHECKING:
    from aprel.cli.context import CLIContext


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)


def select_platforms(ids: Sequence[str] | None, ctx: CLIContext) -> tuple[PlatformEntry, ...]:
    """Active platforms named by ids (all of them when ids is empty)."""
    if not ids:
        return ACTIVE_PLATFORMS

    selected: list[PlatformEntry] = []
    for platform_id in ids:
        entry = find_platform(platform_id)
        if entry is None:
            ctx.console.error(f"unknown platform: {platform_id}")
            available = ", ".join(e.platform_id for e in ACTIVE_PLATFORMS)
            ctx.console.print(f"Available: {available}", Style.DIM)
            exit_with_code(int(ErrorCode.USER_ERROR))
        if entry not in selected:
            selected.append(entry)
    return tuple(selected)


def ref_or_exit(tag: str | None, ctx: CLIContext) -> str:
    """The tag given on the command line, else $GITHUB_REF."""
    ref = tag or ref_from_env()
    if ref is None:
        ctx.console.error("no tag given and GITHUB_REF is not set")
        ctx.console.print("hint: pass --tag 1.2.3", Style.DIM)
        exit_with_code(int(ErrorCode.USER_ERROR))
    return ref


def version_or_exit(tag: str | None, ctx: CLIContext) -> ReleaseVersion:
    resolved = resolve_version(ref_or_exit(tag, ctx))
    if isinstance(resolved, Err):
        exit_on_errors([resolved.error], ctx)
    return resolved.value


def policy_or_exit(option: str | None, ctx: CLIContext) -> ConflictPolicy:
    """Asset conflict policy from --on-conflict, else from aprel.toml."""
    if option is not None:
        policy = parse_conflict_policy(option)
        if policy is None:
            ctx.console.error(f"invalid --on-conflict: {option}")
            ctx.console.print(f"Available: {', '.join(CONFLICT_POLICIES)}", Style.DIM)
            exit_with_code(int(ErrorCode.USER_ERROR))
        return policy

    if ctx.config.publish.on_conflict is not None:
        return ctx.config.publish.on_conflict

    ctx.console.error("asset conflict policy is not set")
    ctx.console.print(
        "hint: pass --on-conflict clobber|fail|skip or set publish.on_conflict in aprel.toml",
        Style.DIM,
    )
    exit_with_code(int(ErrorCode.USER_ERROR))


def exit_on_errors(errors: Sequence[PipelineError], ctx: CLIContext) -> None:
    """Print every error, then exit with the code of the first one."""
    if not errors:
        return
    for error in errors:
        print_pipeline_error(error, ctx.console)
    exit_with_code(pipeline_error_exit_code(errors[0]))
