"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from aprel.core.errors import ErrorCode
from aprel.output.console import Style
from aprel.services.errors import (
    ArchiveWriteFailed,
    BuildFailed,
    InvalidVersionFormat,
    MissingBinary,
    PipelineError,
    PublisherUnavailable,
    PublishFailed,
)

if TYPE_CHECKING:
    from aprel.output.console import ConsoleProtocol

__all__ = ["pipeline_error_exit_code", "print_pipeline_error"]


def _print_detail(detail: str, console: ConsoleProtocol) -> None:
    for line in detail.splitlines():
        console.print(f"  {line}", Style.DIM)


def print_pipeline_error(error: PipelineError, console: ConsoleProtocol) -> None:
    """Print a pipeline error with appropriate formatting."""
    match error:
        case InvalidVersionFormat(ref=ref, remainder=remainder):
            console.error(
                f"invalid version tag: {ref!r} ({remainder!r} is not MAJOR.MINOR.PATCH)"
            )
            console.print("hint: tags look like 1.2.3, without a leading 'v'", Style.DIM)
        case BuildFailed(platform_id=pid, stage="dependencies", returncode=rc, detail=detail):
            console.error(f"[{pid}] dependency install failed (exit {rc})")
            _print_detail(detail, console)
        case BuildFailed(platform_id=pid, returncode=rc, detail=detail):
            console.error(f"[{pid}] build failed (exit {rc})")
            _print_detail(detail, console)
        case MissingBinary(platform_id=pid, name=name, path=path):
            console.error(f"[{pid}] missing binary {name}: {path}")
        case ArchiveWriteFailed(platform_id=pid, path=path, reason=reason):
            console.error(f"[{pid}] cannot write {path}: {reason}")
        case PublishFailed(asset_name=name, returncode=rc, detail=detail):
            console.error(f"upload failed: {name} (exit {rc})")
            _print_detail(detail, console)
        case PublisherUnavailable(message=message, hint=hint):
            console.error(message)
            if hint:
                console.print(f"hint: {hint}", Style.DIM)


def pipeline_error_exit_code(error: PipelineError) -> int:
    """Get exit code for a pipeline error."""
    match error:
        case InvalidVersionFormat():
            return int(ErrorCode.USER_ERROR)
        case BuildFailed():
            return int(ErrorCode.BUILD_ERROR)
        case MissingBinary() | ArchiveWriteFailed():
            return int(ErrorCode.IO_ERROR)
        case PublishFailed():
            return int(ErrorCode.NETWORK_ERROR)
        case PublisherUnavailable():
            return int(ErrorCode.ENV_ERROR)
