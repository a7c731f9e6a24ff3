"""Typed configuration loading.

The project root may carry an ``aprel.toml``:

    [build]
    cargo = "cargo"
    output_root = "target"
    verbose = true
    timeout_seconds = 3600

    [dist]
    dir = "dist"

    [publish]
    repo = "owner/name"
    on_conflict = "clobber"   # clobber | fail | skip

Every key is optional. The platform matrix itself is not configurable; see
``aprel.services.matrix``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, cast

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_number, get_str, get_table

__all__ = [
    "CONFIG_FILENAME",
    "CONFLICT_POLICIES",
    "BuildConfig",
    "ConfigError",
    "ConflictPolicy",
    "DistConfig",
    "PublishConfig",
    "ReleaseConfig",
    "load_config",
    "load_config_or_default",
    "parse_conflict_policy",
]

CONFIG_FILENAME = "aprel.toml"

ConflictPolicy = Literal["clobber", "fail", "skip"]
CONFLICT_POLICIES: tuple[ConflictPolicy, ...] = ("clobber", "fail", "skip")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """How the external compiler is invoked."""

    cargo: str = "cargo"
    output_root: str = "target"
    verbose: bool = True
    timeout_seconds: float | None = None


@dataclass(frozen=True, slots=True)
class DistConfig:
    dir: str = "dist"


@dataclass(frozen=True, slots=True)
class PublishConfig:
    """Release publishing settings.

    ``on_conflict`` has no default: what happens when an asset with the same
    name already exists must be chosen explicitly.
    """

    repo: str | None = None
    on_conflict: ConflictPolicy | None = None


def parse_conflict_policy(value: str) -> ConflictPolicy | None:
    """Return value as a ConflictPolicy, or None if it is not one."""
    v = value.strip().lower()
    if v in CONFLICT_POLICIES:
        return cast(ConflictPolicy, v)
    return None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Main configuration container."""

    build: BuildConfig = field(default_factory=BuildConfig)
    dist: DistConfig = field(default_factory=DistConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ReleaseConfig:
        """Create a config from a parsed TOML mapping.

        Raises:
            ValueError: If a value is present but invalid.
        """
        build: StrDict = get_table(data, "build") or {}
        dist: StrDict = get_table(data, "dist") or {}
        publish: StrDict = get_table(data, "publish") or {}

        timeout = get_number(build, "timeout_seconds")
        if timeout is not None and timeout <= 0:
            raise ValueError("build.timeout_seconds must be positive")

        verbose = get_bool(build, "verbose")

        on_conflict: ConflictPolicy | None = None
        raw_policy = get_str(publish, "on_conflict")
        if raw_policy is not None:
            on_conflict = parse_conflict_policy(raw_policy)
            if on_conflict is None:
                raise ValueError(
                    f"publish.on_conflict must be one of {', '.join(CONFLICT_POLICIES)}"
                    f" (got {raw_policy!r})"
                )

        return cls(
            build=BuildConfig(
                cargo=get_str(build, "cargo") or "cargo",
                output_root=get_str(build, "output_root") or "target",
                verbose=True if verbose is None else verbose,
                timeout_seconds=timeout,
            ),
            dist=DistConfig(dir=get_str(dist, "dir") or "dist"),
            publish=PublishConfig(
                repo=get_str(publish, "repo"),
                on_conflict=on_conflict,
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to aprel.toml

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(ReleaseConfig.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config: {e}", path=path))


def load_config_or_default(root: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load ``aprel.toml`` from a project root, or defaults if it is absent.

    A file that exists but is invalid is still an error.
    """
    path = root / CONFIG_FILENAME
    if not path.exists():
        return Ok(ReleaseConfig())
    return load_config(path)
