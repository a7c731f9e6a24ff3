from __future__ import annotations

import sys
import tarfile
import textwrap
import threading
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

import pytest

from aprel.core.config import BuildConfig, ConflictPolicy, ReleaseConfig
from aprel.core.result import Err, Ok, Result
from aprel.output.console import ConsoleProtocol, MockConsole
from aprel.services import pipeline as pipeline_mod
from aprel.services.build import BuildOutput, output_for
from aprel.services.errors import (
    BuildFailed,
    InvalidVersionFormat,
    MissingBinary,
    PublisherUnavailable,
    PublishFailed,
)
from aprel.services.matrix import ACTIVE_PLATFORMS, PlatformEntry, find_platform
from aprel.services.pipeline import RunReport
from aprel.services.publish import PublishedAsset
from aprel.services.version import ReleaseVersion


def _linux() -> PlatformEntry:
    entry = find_platform("linux")
    assert entry is not None
    return entry


class _FakeCargo:
    """Writes the expected binaries, except for the platforms told to fail."""

    def __init__(
        self,
        *,
        fail: set[str] | None = None,
        omit: dict[str, str] | None = None,
        barrier: threading.Barrier | None = None,
    ) -> None:
        self.fail = fail or set()
        self.omit = omit or {}
        self.barrier = barrier
        self.built: list[str] = []
        self._lock = threading.Lock()

    def __call__(
        self,
        entry: PlatformEntry,
        *,
        project_root: Path,
        config: BuildConfig,
        console: ConsoleProtocol,
    ) -> Result[BuildOutput, BuildFailed]:
        del console
        with self._lock:
            self.built.append(entry.platform_id)
        if self.barrier is not None:
            self.barrier.wait()
        if entry.platform_id in self.fail:
            return Err(BuildFailed(entry.platform_id, "compile", 101, "linker error"))
        output = output_for(entry, project_root=project_root, config=config)
        output.directory.mkdir(parents=True, exist_ok=True)
        for name in entry.binaries:
            if self.omit.get(entry.platform_id) == name:
                continue
            output.binary_path(name).write_bytes(name.encode())
        return Ok(output)


class _FakePublisher:
    def __init__(self, failing: set[str] | None = None) -> None:
        self.uploaded: list[str] = []
        self.failing = failing or set()

    def __call__(
        self,
        version: ReleaseVersion,
        paths: Sequence[Path],
        *,
        project_root: Path,
        policy: ConflictPolicy,
        repo: str | None,
        console: ConsoleProtocol,
    ) -> list[Result[PublishedAsset, PublishFailed]]:
        del version, project_root, policy, repo, console
        out: list[Result[PublishedAsset, PublishFailed]] = []
        for p in paths:
            if p.name in self.failing:
                out.append(Err(PublishFailed(p.name, 1, "HTTP 502")))
                continue
            self.uploaded.append(p.name)
            out.append(Ok(PublishedAsset(name=p.name, path=p, status="uploaded")))
        return out


@pytest.fixture
def gh_available(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(pipeline_mod, "ensure_gh_available", lambda: Ok(None))


def _run(
    tmp_path: Path,
    *,
    ref: str = "2.0.1",
    entries: Sequence[PlatformEntry] = ACTIVE_PLATFORMS,
    policy: ConflictPolicy | None = "clobber",
) -> Result[RunReport, InvalidVersionFormat | PublisherUnavailable]:
    return pipeline_mod.run_release(
        ref,
        entries,
        project_root=tmp_path,
        config=ReleaseConfig(),
        console=MockConsole(),
        policy=policy,
    )


@pytest.mark.usefixtures("gh_available")
def test_linux_end_to_end(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    publisher = _FakePublisher()
    monkeypatch.setattr(pipeline_mod, "build_platform", _FakeCargo())
    monkeypatch.setattr(pipeline_mod, "publish_assets", publisher)

    result = _run(tmp_path, ref="refs/tags/2.0.1", entries=[_linux()])

    assert isinstance(result, Ok)
    report = result.value
    assert report.ok
    archive = tmp_path / "dist" / "ap-2.0.1-x86_64-unknown-linux-gnu.tar.gz"
    assert [a.path for a in report.artifacts] == [archive]
    with tarfile.open(archive, "r:gz") as tar:
        assert tar.getnames() == [
            "ap-2.0.1-x86_64-unknown-linux-gnu",
            "ap-2.0.1-x86_64-unknown-linux-gnu/ap",
            "ap-2.0.1-x86_64-unknown-linux-gnu/ap-iced",
            "ap-2.0.1-x86_64-unknown-linux-gnu/ap-tui",
        ]
    assert publisher.uploaded == [archive.name]


def test_malformed_tag_aborts_before_any_build(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    cargo = _FakeCargo()
    monkeypatch.setattr(pipeline_mod, "build_platform", cargo)

    result = _run(tmp_path, ref="v2.0")

    assert result == Err(InvalidVersionFormat(ref="v2.0", remainder="v2.0"))
    assert cargo.built == []
    assert not (tmp_path / "dist").exists()


def test_missing_publisher_aborts_before_any_build(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    cargo = _FakeCargo()
    monkeypatch.setattr(pipeline_mod, "build_platform", cargo)
    monkeypatch.setattr(
        pipeline_mod, "ensure_gh_available", lambda: Err(PublisherUnavailable("gh: missing"))
    )

    result = _run(tmp_path)

    assert isinstance(result, Err)
    assert cargo.built == []


@pytest.mark.usefixtures("gh_available")
def test_failed_platform_does_not_block_others(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    publisher = _FakePublisher()
    monkeypatch.setattr(pipeline_mod, "build_platform", _FakeCargo(fail={"windows"}))
    monkeypatch.setattr(pipeline_mod, "publish_assets", publisher)

    result = _run(tmp_path)

    assert isinstance(result, Ok)
    report = result.value
    assert not report.ok
    windows, linux = report.platforms
    assert isinstance(windows.result, Err)
    assert isinstance(linux.result, Ok)
    assert report.errors == (BuildFailed("windows", "compile", 101, "linker error"),)
    assert publisher.uploaded == ["ap-2.0.1-x86_64-unknown-linux-gnu.tar.gz"]
    assert not list((tmp_path / "dist").glob("*.zip"))


@pytest.mark.usefixtures("gh_available")
def test_missing_binary_fails_only_that_platform(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setattr(pipeline_mod, "build_platform", _FakeCargo(omit={"linux": "ap-tui"}))
    monkeypatch.setattr(pipeline_mod, "publish_assets", _FakePublisher())

    result = _run(tmp_path)

    assert isinstance(result, Ok)
    errors = result.value.errors
    assert len(errors) == 1
    assert isinstance(errors[0], MissingBinary)
    assert errors[0].name == "ap-tui"
    assert [a.platform_id for a in result.value.artifacts] == ["windows"]


@pytest.mark.usefixtures("gh_available")
def test_publish_failure_is_reported_per_asset(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    publisher = _FakePublisher(failing={"ap-2.0.1-x86_64-pc-windows-msvc.zip"})
    monkeypatch.setattr(pipeline_mod, "build_platform", _FakeCargo())
    monkeypatch.setattr(pipeline_mod, "publish_assets", publisher)

    result = _run(tmp_path)

    assert isinstance(result, Ok)
    assert result.value.errors == (
        PublishFailed("ap-2.0.1-x86_64-pc-windows-msvc.zip", 1, "HTTP 502"),
    )
    assert publisher.uploaded == ["ap-2.0.1-x86_64-unknown-linux-gnu.tar.gz"]


def test_no_policy_means_no_publish(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    publisher = _FakePublisher()
    monkeypatch.setattr(pipeline_mod, "build_platform", _FakeCargo())
    monkeypatch.setattr(pipeline_mod, "publish_assets", publisher)

    result = _run(tmp_path, policy=None)

    assert isinstance(result, Ok)
    assert result.value.ok
    assert len(result.value.artifacts) == 2
    assert publisher.uploaded == []


def test_platform_pipelines_run_in_parallel(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    # Each fake build waits for the other; sequential execution would time out.
    cargo = _FakeCargo(barrier=threading.Barrier(len(ACTIVE_PLATFORMS), timeout=10))
    monkeypatch.setattr(pipeline_mod, "build_platform", cargo)

    result = _run(tmp_path, policy=None)

    assert isinstance(result, Ok)
    assert sorted(cargo.built) == ["linux", "windows"]
    assert [o.entry.platform_id for o in result.value.platforms] == ["windows", "linux"]


def test_package_without_build_uses_existing_output(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    cargo = _FakeCargo()
    monkeypatch.setattr(pipeline_mod, "build_platform", cargo)
    output = output_for(_linux(), project_root=tmp_path, config=BuildConfig())
    output.directory.mkdir(parents=True)
    for name in output.entry.binaries:
        output.binary_path(name).write_bytes(b"bin")

    outcomes = pipeline_mod.package_platforms(
        [_linux()],
        ReleaseVersion("1.0.0"),
        project_root=tmp_path,
        config=ReleaseConfig(),
        console=MockConsole(),
        build=False,
    )

    assert cargo.built == []
    assert isinstance(outcomes[0].result, Ok)
    assert outcomes[0].result.value.name == "ap-1.0.0-x86_64-unknown-linux-gnu.tar.gz"


def test_build_platforms_collects_each_outcome(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setattr(pipeline_mod, "build_platform", _FakeCargo(fail={"linux"}))

    outcomes = pipeline_mod.build_platforms(
        ACTIVE_PLATFORMS, project_root=tmp_path, config=ReleaseConfig(), console=MockConsole()
    )

    assert [isinstance(o.result, Ok) for o in outcomes] == [True, False]


_COMPILER_SCRIPT = textwrap.dedent(
    """
    import pathlib
    import sys

    triple = sys.argv[sys.argv.index("--target") + 1]
    if "windows" in triple:
        sys.stderr.buffer.write(b"error: linking with link.exe failed \\xff\\xfe\\n")
        sys.exit(101)
    out = pathlib.Path("target", triple, "release")
    out.mkdir(parents=True, exist_ok=True)
    for name in ("ap", "ap-iced", "ap-tui"):
        (out / name).write_bytes(name.encode())
    """
)


def test_undecodable_compiler_output_fails_only_that_platform(tmp_path: Path) -> None:
    # Stand-in compiler invoked as `<python> build --release --target <triple>`.
    (tmp_path / "build").write_text(_COMPILER_SCRIPT, encoding="utf-8")
    windows = find_platform("windows")
    assert windows is not None
    linux = replace(_linux(), system_packages=())
    config = ReleaseConfig(build=BuildConfig(cargo=sys.executable, verbose=False))

    result = pipeline_mod.run_release(
        "2.0.1",
        [windows, linux],
        project_root=tmp_path,
        config=config,
        console=MockConsole(),
        policy=None,
    )

    assert isinstance(result, Ok)
    windows_outcome, linux_outcome = result.value.platforms
    assert isinstance(windows_outcome.result, Err)
    error = windows_outcome.result.error
    assert isinstance(error, BuildFailed)
    assert error.stage == "compile"
    assert error.returncode == 101
    assert "linking with link.exe failed" in error.detail
    assert isinstance(linux_outcome.result, Ok)
    assert linux_outcome.result.value.name == "ap-2.0.1-x86_64-unknown-linux-gnu.tar.gz"
