from __future__ import annotations

from pathlib import Path

import typer

from aprel.cli.commands._helpers import (
    exit_on_errors,
    exit_with_code,
    policy_or_exit,
    ref_or_exit,
    select_platforms,
    version_or_exit,
)
from aprel.cli.context import CLIContext, build_context
from aprel.core.errors import ErrorCode
from aprel.core.result import Err, Ok
from aprel.output.console import Style
from aprel.services.archive import ArchiveArtifact, archive_path_for
from aprel.services.ci import export_github_env
from aprel.services.errors import PipelineError
from aprel.services.pipeline import build_platforms, package_platforms, run_release
from aprel.services.publish import ensure_gh_available, publish_assets
from aprel.services.version import ReleaseVersion

_TAG_HELP = "Release tag or ref (e.g. 1.2.3). Defaults to $GITHUB_REF."
_PLATFORM_HELP = "Platform id to process (repeatable). Defaults to all active platforms."
_CONFLICT_HELP = "What to do when the release already has an asset of the same name."


def _report_artifacts(artifacts: tuple[ArchiveArtifact, ...], ctx: CLIContext) -> None:
    for artifact in artifacts:
        ctx.console.print(
            f"{artifact.path}  {artifact.size} bytes  sha256:{artifact.sha256}", Style.DIM
        )


def _export_ci(
    version: ReleaseVersion, artifacts: tuple[ArchiveArtifact, ...], ctx: CLIContext
) -> None:
    exported = export_github_env(version, [a.path for a in artifacts])
    if isinstance(exported, Err):
        ctx.console.warning(exported.error)


def build(
    platform: list[str] | None = typer.Option(None, "--platform", "-p", help=_PLATFORM_HELP),
) -> None:
    """Compile release builds for the selected platforms."""
    ctx = build_context()
    entries = select_platforms(platform, ctx)

    outcomes = build_platforms(
        entries, project_root=ctx.root, config=ctx.config, console=ctx.console
    )
    errors: list[PipelineError] = []
    for outcome in outcomes:
        match outcome.result:
            case Ok(output):
                ctx.console.success(f"[{outcome.entry.platform_id}] {output.directory}")
            case Err(error):
                errors.append(error)
    exit_on_errors(errors, ctx)


def package(
    tag: str | None = typer.Option(None, "--tag", "-t", help=_TAG_HELP),
    platform: list[str] | None = typer.Option(None, "--platform", "-p", help=_PLATFORM_HELP),
    skip_build: bool = typer.Option(
        False, "--skip-build", help="Assemble from an existing build output"
    ),
) -> None:
    """Build and assemble the distributable archive for each platform."""
    ctx = build_context()
    version = version_or_exit(tag, ctx)
    entries = select_platforms(platform, ctx)

    outcomes = package_platforms(
        entries,
        version,
        project_root=ctx.root,
        config=ctx.config,
        console=ctx.console,
        build=not skip_build,
    )
    artifacts = tuple(o.result.value for o in outcomes if isinstance(o.result, Ok))
    _report_artifacts(artifacts, ctx)
    _export_ci(version, artifacts, ctx)
    exit_on_errors([o.result.error for o in outcomes if isinstance(o.result, Err)], ctx)


def publish(
    files: list[Path] | None = typer.Argument(
        None, help="Archives to upload. Defaults to the selected platforms' archives in dist."
    ),
    tag: str | None = typer.Option(None, "--tag", "-t", help=_TAG_HELP),
    platform: list[str] | None = typer.Option(None, "--platform", "-p", help=_PLATFORM_HELP),
    on_conflict: str | None = typer.Option(None, "--on-conflict", help=_CONFLICT_HELP),
) -> None:
    """Upload archives as assets of the release tagged with the version."""
    ctx = build_context()
    version = version_or_exit(tag, ctx)
    policy = policy_or_exit(on_conflict, ctx)

    if files:
        paths = [p if p.is_absolute() else ctx.root / p for p in files]
    else:
        entries = select_platforms(platform, ctx)
        paths = [archive_path_for(version, e, ctx.dist_dir) for e in entries]

    missing = [p for p in paths if not p.is_file()]
    if missing:
        for p in missing:
            ctx.console.error(f"archive not found: {p}")
        exit_with_code(int(ErrorCode.IO_ERROR))

    gh = ensure_gh_available()
    if isinstance(gh, Err):
        exit_on_errors([gh.error], ctx)

    results = publish_assets(
        version,
        paths,
        project_root=ctx.root,
        policy=policy,
        repo=ctx.config.publish.repo,
        console=ctx.console,
    )
    exit_on_errors([r.error for r in results if isinstance(r, Err)], ctx)


def release(
    tag: str | None = typer.Option(None, "--tag", "-t", help=_TAG_HELP),
    platform: list[str] | None = typer.Option(None, "--platform", "-p", help=_PLATFORM_HELP),
    on_conflict: str | None = typer.Option(None, "--on-conflict", help=_CONFLICT_HELP),
    no_publish: bool = typer.Option(False, "--no-publish", help="Stop after packaging"),
) -> None:
    """Run the whole pipeline: build, package and publish every platform."""
    ctx = build_context()
    ref = ref_or_exit(tag, ctx)
    entries = select_platforms(platform, ctx)
    policy = None if no_publish else policy_or_exit(on_conflict, ctx)

    result = run_release(
        ref,
        entries,
        project_root=ctx.root,
        config=ctx.config,
        console=ctx.console,
        policy=policy,
    )
    if isinstance(result, Err):
        exit_on_errors([result.error], ctx)
        return

    report = result.value
    _report_artifacts(report.artifacts, ctx)
    _export_ci(report.version, report.artifacts, ctx)
    exit_on_errors(report.errors, ctx)
