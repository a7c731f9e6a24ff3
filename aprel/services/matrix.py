"""Static platform matrix.

One record per supported platform. Entries that are not released yet live in
``RESERVED_PLATFORMS`` and are never part of the active set.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

__all__ = [
    "ACTIVE_PLATFORMS",
    "ARCHIVE_PREFIX",
    "BINARIES",
    "ArchiveFormat",
    "PlatformEntry",
    "RESERVED_PLATFORMS",
    "archive_base_name",
    "find_platform",
]

ARCHIVE_PREFIX = "ap"

# Logical binary names, in archive order.
BINARIES: tuple[str, ...] = ("ap", "ap-iced", "ap-tui")


class ArchiveFormat(Enum):
    ZIP = "zip"
    TAR_GZ = "tar.gz"

    def __str__(self) -> str:
        return self.value

    @property
    def extension(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class PlatformEntry:
    """A supported release platform.

    Attributes:
        platform_id: Symbolic name ("windows", "linux").
        target_triple: Compiler-facing target identifier.
        binaries: Logical binary names, without executable suffix.
        archive_format: Container used for the distributable.
        exe_suffix: Native executable suffix (".exe" on Windows).
        system_packages: Host packages to install before compiling.
    """

    platform_id: str
    target_triple: str
    binaries: tuple[str, ...]
    archive_format: ArchiveFormat
    exe_suffix: str = ""
    system_packages: tuple[str, ...] = ()

    def binary_file(self, name: str) -> str:
        """File name the compiler emits for a logical binary name."""
        return f"{name}{self.exe_suffix}"

    @property
    def binary_files(self) -> tuple[str, ...]:
        return tuple(self.binary_file(name) for name in self.binaries)

    def output_dir(self, output_root: Path) -> Path:
        """Directory the release build of this target is written to."""
        return output_root / self.target_triple / "release"


ACTIVE_PLATFORMS: tuple[PlatformEntry, ...] = (
    PlatformEntry(
        platform_id="windows",
        target_triple="x86_64-pc-windows-msvc",
        binaries=BINARIES,
        archive_format=ArchiveFormat.ZIP,
        exe_suffix=".exe",
    ),
    PlatformEntry(
        platform_id="linux",
        target_triple="x86_64-unknown-linux-gnu",
        binaries=BINARIES,
        archive_format=ArchiveFormat.TAR_GZ,
        system_packages=("libasound2-dev",),
    ),
)

RESERVED_PLATFORMS: tuple[PlatformEntry, ...] = (
    PlatformEntry(
        platform_id="macos",
        target_triple="x86_64-apple-darwin",
        binaries=BINARIES,
        archive_format=ArchiveFormat.TAR_GZ,
    ),
)


def find_platform(platform_id: str) -> PlatformEntry | None:
    """Look up an active platform by id (reserved entries are not returned)."""
    for entry in ACTIVE_PLATFORMS:
        if entry.platform_id == platform_id:
            return entry
    return None


def archive_base_name(version: str, entry: PlatformEntry) -> str:
    """``ap-{version}-{target_triple}``: staging dir name and archive stem."""
    return f"{ARCHIVE_PREFIX}-{version}-{entry.target_triple}"
