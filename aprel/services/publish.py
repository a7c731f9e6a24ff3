"""Release publisher.

Attaches archives to the GitHub release tagged with the version, through the
``gh`` CLI. The release itself must already exist. Each upload is
independent: a failed asset does not retract the ones already uploaded, and
nothing is retried.
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from aprel.core.config import ConflictPolicy
from aprel.core.result import Err, Ok, Result
from aprel.core.structured import as_str_dict, get_list, get_str
from aprel.output.console import ConsoleProtocol
from aprel.platform.process import run as run_process
from aprel.services.errors import PublisherUnavailable, PublishFailed
from aprel.services.version import ReleaseVersion

__all__ = [
    "PublishedAsset",
    "ensure_gh_available",
    "existing_asset_names",
    "publish_assets",
    "upload_command",
]

GH_TIMEOUT_SECONDS = 60.0
GH_UPLOAD_TIMEOUT_SECONDS = 15 * 60.0


@dataclass(frozen=True, slots=True)
class PublishedAsset:
    name: str
    path: Path
    status: Literal["uploaded", "skipped"]


def ensure_gh_available() -> Result[None, PublisherUnavailable]:
    if shutil.which("gh") is None:
        return Err(
            PublisherUnavailable(
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def _repo_args(repo: str | None) -> list[str]:
    return ["--repo", repo] if repo else []


def upload_command(
    version: ReleaseVersion,
    path: Path,
    *,
    repo: str | None,
    clobber: bool,
) -> list[str]:
    cmd = ["gh", "release", "upload", version.tag, str(path)]
    if clobber:
        cmd.append("--clobber")
    return cmd + _repo_args(repo)


def existing_asset_names(
    version: ReleaseVersion,
    *,
    project_root: Path,
    repo: str | None,
) -> Result[frozenset[str], str]:
    """Names of the assets already attached to the release."""
    cmd = ["gh", "release", "view", version.tag, "--json", "assets", *_repo_args(repo)]
    result = run_process(cmd, cwd=project_root, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(result.error.detail or str(result.error))

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError as e:
        return Err(f"gh release view returned invalid JSON: {e}")

    data = as_str_dict(obj)
    assets = get_list(data, "assets") if data is not None else None
    if assets is None:
        return Err("unexpected payload from gh release view")

    names: set[str] = set()
    for item in assets:
        d = as_str_dict(item)
        if d is None:
            continue
        name = get_str(d, "name")
        if name is not None:
            names.add(name)
    return Ok(frozenset(names))


def publish_assets(
    version: ReleaseVersion,
    paths: Sequence[Path],
    *,
    project_root: Path,
    policy: ConflictPolicy,
    repo: str | None,
    console: ConsoleProtocol,
) -> list[Result[PublishedAsset, PublishFailed]]:
    """Upload each archive as an asset of the release for version.

    Returns one result per path, in input order.
    """
    existing: frozenset[str] = frozenset()
    if policy == "skip" and paths:
        listed = existing_asset_names(version, project_root=project_root, repo=repo)
        if isinstance(listed, Err):
            return [
                Err(PublishFailed(asset_name=p.name, returncode=-1, detail=listed.error))
                for p in paths
            ]
        existing = listed.value

    results: list[Result[PublishedAsset, PublishFailed]] = []
    for path in paths:
        name = path.name
        if name in existing:
            console.warning(f"{name}: already on release {version.tag}, skipped")
            results.append(Ok(PublishedAsset(name=name, path=path, status="skipped")))
            continue

        cmd = upload_command(version, path, repo=repo, clobber=policy == "clobber")
        uploaded = run_process(cmd, cwd=project_root, timeout=GH_UPLOAD_TIMEOUT_SECONDS)
        if isinstance(uploaded, Err):
            results.append(
                Err(
                    PublishFailed(
                        asset_name=name,
                        returncode=uploaded.error.returncode,
                        detail=uploaded.error.detail,
                    )
                )
            )
            continue

        console.success(f"uploaded {name} to {version.tag}")
        results.append(Ok(PublishedAsset(name=name, path=path, status="uploaded")))

    return results
