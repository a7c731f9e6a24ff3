from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from aprel.core.config import ReleaseConfig, load_config_or_default
from aprel.core.errors import ErrorCode
from aprel.core.result import Err
from aprel.output.console import ConsoleProtocol, RichConsole

ROOT_ENV = "APREL_ROOT"


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: ReleaseConfig
    console: ConsoleProtocol

    @property
    def dist_dir(self) -> Path:
        return self.root / self.config.dist.dir


def project_root() -> Path:
    env = os.environ.get(ROOT_ENV)
    if env:
        return Path(env)
    return Path.cwd().resolve()


def build_context() -> CLIContext:
    root = project_root()
    config_result = load_config_or_default(root)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(root=root, config=config_result.value, console=RichConsole())
