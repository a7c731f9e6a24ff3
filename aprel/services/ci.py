"""GitHub Actions environment export.

Later workflow steps read ``VERSION`` and ``ARCHIVE`` from ``$GITHUB_ENV``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from pathlib import Path

from aprel.core.result import Err, Ok, Result
from aprel.services.version import ReleaseVersion

GITHUB_ENV_VAR = "GITHUB_ENV"


def github_env_path(env: Mapping[str, str] | None = None) -> Path | None:
    source = os.environ if env is None else env
    value = source.get(GITHUB_ENV_VAR, "").strip()
    return Path(value) if value else None


def export_github_env(
    version: ReleaseVersion,
    archives: Sequence[Path],
    *,
    env: Mapping[str, str] | None = None,
) -> Result[Path | None, str]:
    """Append VERSION (and ARCHIVE, for a single archive) to $GITHUB_ENV.

    Returns Ok(None) when not running under GitHub Actions.
    """
    target = github_env_path(env)
    if target is None:
        return Ok(None)

    lines = [f"VERSION={version}"]
    # GITHUB_ENV values are single-line; one runner packages one platform.
    if len(archives) == 1:
        lines.append(f"ARCHIVE={archives[0]}")

    try:
        with target.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
    except OSError as e:
        return Err(f"cannot write {target}: {e}")
    return Ok(target)
