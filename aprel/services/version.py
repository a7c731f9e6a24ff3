from __future__ import annotations

import os
import re
from dataclasses import dataclass

from aprel.core.result import Err, Ok, Result
from aprel.services.errors import InvalidVersionFormat

TAG_REF_PREFIX = "refs/tags/"
GITHUB_REF_ENV = "GITHUB_REF"

_VERSION_RE = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+")


@dataclass(frozen=True, slots=True)
class ReleaseVersion:
    """Version string of a release, e.g. ``2.0.1`` (no ``v`` prefix)."""

    value: str

    def __str__(self) -> str:
        return self.value

    @property
    def tag(self) -> str:
        # Releases are tagged with the bare version.
        return self.value


def resolve_version(ref: str) -> Result[ReleaseVersion, InvalidVersionFormat]:
    """Strip an optional ``refs/tags/`` prefix and validate MAJOR.MINOR.PATCH."""
    remainder = ref.removeprefix(TAG_REF_PREFIX)
    if _VERSION_RE.fullmatch(remainder) is None:
        return Err(InvalidVersionFormat(ref=ref, remainder=remainder))
    return Ok(ReleaseVersion(remainder))


def ref_from_env(env: dict[str, str] | None = None) -> str | None:
    """Triggering ref from the CI environment, if any."""
    source = os.environ if env is None else env
    value = source.get(GITHUB_REF_ENV, "").strip()
    return value or None
