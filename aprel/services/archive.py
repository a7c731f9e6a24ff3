"""Archive assembly.

Turns a completed build into the distributable for one platform:

    dist/
      ap-2.0.1-x86_64-unknown-linux-gnu/          staging dir (kept)
        ap  ap-iced  ap-tui
      ap-2.0.1-x86_64-unknown-linux-gnu.tar.gz    archive

The archive holds the staging directory as its only top-level entry and
nothing but the binaries inside it. Binaries are moved (not copied) out of
the build output, in matrix order, so archive listings are reproducible. If
the archive cannot be written they are moved back.
"""

from __future__ import annotations

import hashlib
import os
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile

from aprel.core.result import Err, Ok, Result
from aprel.output.console import ConsoleProtocol
from aprel.services.build import BuildOutput
from aprel.services.errors import ArchiveWriteFailed, MissingBinary
from aprel.services.matrix import ArchiveFormat, PlatformEntry, archive_base_name
from aprel.services.version import ReleaseVersion

__all__ = ["ArchiveArtifact", "archive_path_for", "assemble_archive"]


@dataclass(frozen=True, slots=True)
class ArchiveArtifact:
    platform_id: str
    path: Path
    size: int
    sha256: str

    @property
    def name(self) -> str:
        return self.path.name


def archive_path_for(version: ReleaseVersion, entry: PlatformEntry, dist_dir: Path) -> Path:
    base = archive_base_name(str(version), entry)
    return dist_dir / f"{base}.{entry.archive_format.extension}"


def _sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def _write_zip(dest: Path, staging: Path, base: str, files: tuple[str, ...]) -> None:
    # Build outputs may carry mtime=0, which ZIP cannot represent.
    with ZipFile(dest, "w", compression=ZIP_DEFLATED, strict_timestamps=False) as zf:
        zf.write(staging, arcname=base)
        for name in files:
            zf.write(staging / name, arcname=f"{base}/{name}")


def _write_tar_gz(dest: Path, staging: Path, base: str, files: tuple[str, ...]) -> None:
    with tarfile.open(dest, "w:gz") as tar:
        tar.add(staging, arcname=base, recursive=False)
        for name in files:
            tar.add(staging / name, arcname=f"{base}/{name}", recursive=False)


_WRITERS = {
    ArchiveFormat.ZIP: _write_zip,
    ArchiveFormat.TAR_GZ: _write_tar_gz,
}


def _remove_tree_or_file(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def _discard_partial(
    reason: str,
    tmp_path: Path,
    archive_path: Path,
    moved: list[tuple[Path, Path]],
) -> str:
    """Remove partial archives and return staged binaries to the build output.

    Returns reason, extended with whatever could not be cleaned up.
    """
    for path in (tmp_path, archive_path):
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            reason += f"; cannot remove {path}: {e}"

    for src, dest in reversed(moved):
        try:
            shutil.move(dest, src)
        except OSError as e:
            reason += f"; {src.name} left in {dest.parent}: {e}"
    return reason


def assemble_archive(
    version: ReleaseVersion,
    output: BuildOutput,
    *,
    dist_dir: Path,
    console: ConsoleProtocol,
) -> Result[ArchiveArtifact, MissingBinary | ArchiveWriteFailed]:
    """Stage the platform's binaries and compress them into its archive.

    Every expected binary is checked before anything is moved: a missing one
    fails the platform without creating a staging dir or an archive.
    """
    entry = output.entry
    base = archive_base_name(str(version), entry)
    staging = dist_dir / base
    archive_path = archive_path_for(version, entry, dist_dir)
    tmp_path = dist_dir / f".{archive_path.name}.tmp"
    files = entry.binary_files

    try:
        # A stale archive of the same name must not outlive a failed re-run.
        _remove_tree_or_file(archive_path)
    except OSError as e:
        return Err(ArchiveWriteFailed(entry.platform_id, archive_path, str(e)))

    for name in entry.binaries:
        src = output.binary_path(name)
        if not src.is_file():
            return Err(
                MissingBinary(
                    platform_id=entry.platform_id,
                    name=entry.binary_file(name),
                    path=src,
                )
            )

    moved: list[tuple[Path, Path]] = []
    try:
        dist_dir.mkdir(parents=True, exist_ok=True)
        _remove_tree_or_file(staging)
        staging.mkdir()
        for name in entry.binaries:
            src = output.binary_path(name)
            dest = staging / entry.binary_file(name)
            shutil.move(src, dest)
            moved.append((src, dest))

        _WRITERS[entry.archive_format](tmp_path, staging, base, files)
        os.replace(tmp_path, archive_path)

        artifact = ArchiveArtifact(
            platform_id=entry.platform_id,
            path=archive_path,
            size=archive_path.stat().st_size,
            sha256=_sha256_file(archive_path),
        )
    except (OSError, tarfile.TarError) as e:
        return Err(
            ArchiveWriteFailed(
                entry.platform_id,
                archive_path,
                _discard_partial(str(e), tmp_path, archive_path, moved),
            )
        )

    console.success(f"[{entry.platform_id}] {archive_path.name}")
    return Ok(artifact)
