"""Tests for aprel.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

from aprel.core.result import Err, Ok
from aprel.platform.process import ProcessError, run


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(command=("cargo", "build"), returncode=101, stdout="", stderr="")
        assert str(error) == "cargo build failed (exit 101)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("cargo", "build", "--release", "--target", "x86_64-unknown-linux-gnu"),
            returncode=101,
            stdout="",
            stderr="",
        )
        assert str(error) == "cargo build --release ... failed (exit 101)"

    def test_detail_prefers_stderr(self) -> None:
        error = ProcessError(("gh",), 1, stdout="out", stderr="HTTP 422\n")
        assert error.detail == "HTTP 422"

    def test_detail_falls_back_to_stdout(self) -> None:
        error = ProcessError(("gh",), 1, stdout="only stdout\n", stderr="  ")
        assert error.detail == "only stdout"

    def test_detail_keeps_tail(self) -> None:
        stderr = "\n".join(f"line {i}" for i in range(50))
        error = ProcessError(("cargo",), 101, stdout="", stderr=stderr)
        lines = error.detail.splitlines()
        assert len(lines) == 20
        assert lines[-1] == "line 49"


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(42)"],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert result.error.returncode == 42
        assert "bad" in result.error.stderr

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert result.error.stderr

    def test_timeout(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout=0.2
        )

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert "timed out" in result.error.stderr

    def test_missing_cwd_is_error(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "pass"], cwd=tmp_path / "missing")

        assert isinstance(result, Err)
        assert result.error.command[0] == sys.executable

    def test_undecodable_output_is_replaced(self, tmp_path: Path) -> None:
        result = run(
            [
                sys.executable,
                "-c",
                "import sys; sys.stdout.buffer.write(b'ok \\xff'); "
                "sys.stderr.buffer.write(b'link error \\xff\\xfe'); sys.exit(1)",
            ],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert result.error.returncode == 1
        assert result.error.stderr.startswith("link error ")
        assert "\ufffd" in result.error.stderr
        assert "\ufffd" in result.error.stdout
