"""Platform build driver.

Compiles one platform entry with cargo, after installing the host packages
the entry declares. Compilation itself is opaque: success means the binaries
are expected under ``{output_root}/{target_triple}/release/``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from aprel.core.config import BuildConfig
from aprel.core.result import Err, Ok, Result
from aprel.output.console import ConsoleProtocol, Style
from aprel.platform.process import run as run_process
from aprel.services.errors import BuildFailed
from aprel.services.matrix import PlatformEntry

__all__ = ["BuildOutput", "build_command", "build_platform", "install_command"]


@dataclass(frozen=True, slots=True)
class BuildOutput:
    """Binaries deposited by a successful build (read-only to us)."""

    entry: PlatformEntry
    directory: Path

    def binary_path(self, name: str) -> Path:
        return self.directory / self.entry.binary_file(name)


def install_command(entry: PlatformEntry) -> list[str] | None:
    if not entry.system_packages:
        return None
    return ["sudo", "apt-get", "install", "-y", *entry.system_packages]


def build_command(entry: PlatformEntry, config: BuildConfig) -> list[str]:
    cmd = [config.cargo, "build"]
    if config.verbose:
        cmd.append("--verbose")
    cmd += ["--release", "--target", entry.target_triple]
    return cmd


def output_for(entry: PlatformEntry, *, project_root: Path, config: BuildConfig) -> BuildOutput:
    """Where a completed build of entry is expected, without building it."""
    return BuildOutput(
        entry=entry,
        directory=entry.output_dir(project_root / config.output_root),
    )


def build_platform(
    entry: PlatformEntry,
    *,
    project_root: Path,
    config: BuildConfig,
    console: ConsoleProtocol,
) -> Result[BuildOutput, BuildFailed]:
    """Install dependencies (if any) and compile a release build of entry."""
    prefix = f"[{entry.platform_id}]"

    install = install_command(entry)
    if install is not None:
        console.info(f"{prefix} installing {', '.join(entry.system_packages)}")
        deps = run_process(install, cwd=project_root, timeout=config.timeout_seconds)
        if isinstance(deps, Err):
            return Err(
                BuildFailed(
                    platform_id=entry.platform_id,
                    stage="dependencies",
                    returncode=deps.error.returncode,
                    detail=deps.error.detail,
                )
            )

    cmd = build_command(entry, config)
    console.info(f"{prefix} building {entry.target_triple}")
    console.print(f"{prefix} {' '.join(cmd)}", Style.DIM)
    result = run_process(cmd, cwd=project_root, timeout=config.timeout_seconds)
    if isinstance(result, Err):
        return Err(
            BuildFailed(
                platform_id=entry.platform_id,
                stage="compile",
                returncode=result.error.returncode,
                detail=result.error.detail,
            )
        )

    return Ok(output_for(entry, project_root=project_root, config=config))
