from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal


@dataclass(frozen=True, slots=True)
class InvalidVersionFormat:
    ref: str
    remainder: str


BuildStage = Literal["dependencies", "compile"]


@dataclass(frozen=True, slots=True)
class BuildFailed:
    platform_id: str
    stage: BuildStage
    returncode: int
    detail: str


@dataclass(frozen=True, slots=True)
class MissingBinary:
    platform_id: str
    name: str
    path: Path


@dataclass(frozen=True, slots=True)
class ArchiveWriteFailed:
    platform_id: str
    path: Path
    reason: str


@dataclass(frozen=True, slots=True)
class PublishFailed:
    asset_name: str
    returncode: int
    detail: str


@dataclass(frozen=True, slots=True)
class PublisherUnavailable:
    message: str
    hint: str | None = None


PlatformError = BuildFailed | MissingBinary | ArchiveWriteFailed

PipelineError = (
    InvalidVersionFormat
    | BuildFailed
    | MissingBinary
    | ArchiveWriteFailed
    | PublishFailed
    | PublisherUnavailable
)
