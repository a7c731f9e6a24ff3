"""Release pipeline orchestration.

    resolve version ──► per platform, in parallel: build ──► assemble
                                                     │
                        all archives that succeeded ─┴──► publish

The version is resolved once and passed to every platform pipeline as an
immutable value. Platform pipelines share nothing else: each owns its build
output and staging dir (keyed by target triple), so one platform failing
never stops another. The run as a whole fails if any platform or any upload
fails.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from aprel.core.config import ConflictPolicy, ReleaseConfig
from aprel.core.result import Err, Ok, Result
from aprel.output.console import ConsoleProtocol
from aprel.services.archive import ArchiveArtifact, assemble_archive
from aprel.services.build import BuildOutput, build_platform, output_for
from aprel.services.errors import (
    BuildFailed,
    InvalidVersionFormat,
    PipelineError,
    PlatformError,
    PublisherUnavailable,
    PublishFailed,
)
from aprel.services.matrix import PlatformEntry
from aprel.services.publish import PublishedAsset, ensure_gh_available, publish_assets
from aprel.services.version import ReleaseVersion, resolve_version

__all__ = [
    "BuildOutcome",
    "PlatformOutcome",
    "RunReport",
    "build_platforms",
    "package_platforms",
    "run_release",
]


@dataclass(frozen=True, slots=True)
class BuildOutcome:
    entry: PlatformEntry
    result: Result[BuildOutput, BuildFailed]


@dataclass(frozen=True, slots=True)
class PlatformOutcome:
    entry: PlatformEntry
    result: Result[ArchiveArtifact, PlatformError]


@dataclass(frozen=True, slots=True)
class RunReport:
    version: ReleaseVersion
    platforms: tuple[PlatformOutcome, ...]
    published: tuple[Result[PublishedAsset, PublishFailed], ...] = ()

    @property
    def artifacts(self) -> tuple[ArchiveArtifact, ...]:
        return tuple(o.result.value for o in self.platforms if isinstance(o.result, Ok))

    @property
    def errors(self) -> tuple[PipelineError, ...]:
        """Failures in matrix order, then upload failures in upload order."""
        out: list[PipelineError] = [
            o.result.error for o in self.platforms if isinstance(o.result, Err)
        ]
        out += [r.error for r in self.published if isinstance(r, Err)]
        return tuple(out)

    @property
    def ok(self) -> bool:
        return not self.errors


T = TypeVar("T")


def _for_each_platform(
    entries: Sequence[PlatformEntry],
    work: Callable[[PlatformEntry], T],
) -> list[T]:
    """Run work for every entry concurrently; results keep entry order."""
    if not entries:
        return []
    with ThreadPoolExecutor(max_workers=len(entries), thread_name_prefix="platform") as pool:
        futures = [pool.submit(work, entry) for entry in entries]
        return [f.result() for f in futures]


def build_platforms(
    entries: Sequence[PlatformEntry],
    *,
    project_root: Path,
    config: ReleaseConfig,
    console: ConsoleProtocol,
) -> tuple[BuildOutcome, ...]:
    def work(entry: PlatformEntry) -> BuildOutcome:
        result = build_platform(
            entry, project_root=project_root, config=config.build, console=console
        )
        return BuildOutcome(entry=entry, result=result)

    return tuple(_for_each_platform(entries, work))


def _run_platform(
    entry: PlatformEntry,
    version: ReleaseVersion,
    *,
    project_root: Path,
    config: ReleaseConfig,
    console: ConsoleProtocol,
    build: bool,
) -> PlatformOutcome:
    if build:
        built = build_platform(
            entry, project_root=project_root, config=config.build, console=console
        )
        if isinstance(built, Err):
            return PlatformOutcome(entry=entry, result=built)
        output = built.value
    else:
        output = output_for(entry, project_root=project_root, config=config.build)

    assembled = assemble_archive(
        version,
        output,
        dist_dir=project_root / config.dist.dir,
        console=console,
    )
    return PlatformOutcome(entry=entry, result=assembled)


def package_platforms(
    entries: Sequence[PlatformEntry],
    version: ReleaseVersion,
    *,
    project_root: Path,
    config: ReleaseConfig,
    console: ConsoleProtocol,
    build: bool = True,
) -> tuple[PlatformOutcome, ...]:
    """Build (optionally) then assemble every entry, in parallel."""

    def work(entry: PlatformEntry) -> PlatformOutcome:
        return _run_platform(
            entry,
            version,
            project_root=project_root,
            config=config,
            console=console,
            build=build,
        )

    return tuple(_for_each_platform(entries, work))


def run_release(
    ref: str,
    entries: Sequence[PlatformEntry],
    *,
    project_root: Path,
    config: ReleaseConfig,
    console: ConsoleProtocol,
    policy: ConflictPolicy | None,
) -> Result[RunReport, InvalidVersionFormat | PublisherUnavailable]:
    """Resolve, build, assemble and (when policy is set) publish.

    A malformed ref or a missing publisher aborts before any build starts.
    ``policy=None`` skips publishing.
    """
    resolved = resolve_version(ref)
    if isinstance(resolved, Err):
        return resolved
    version = resolved.value

    if policy is not None:
        gh = ensure_gh_available()
        if isinstance(gh, Err):
            return gh

    console.header(f"Release {version}")
    outcomes = package_platforms(
        entries,
        version,
        project_root=project_root,
        config=config,
        console=console,
    )

    published: tuple[Result[PublishedAsset, PublishFailed], ...] = ()
    paths = [o.result.value.path for o in outcomes if isinstance(o.result, Ok)]
    if policy is not None and paths:
        published = tuple(
            publish_assets(
                version,
                paths,
                project_root=project_root,
                policy=policy,
                repo=config.publish.repo,
                console=console,
            )
        )

    return Ok(RunReport(version=version, platforms=outcomes, published=published))
