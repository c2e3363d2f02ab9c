"""Shared test fixtures."""

from __future__ import annotations

import subprocess
import sys
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from mirrorctl.config import MirrorCtlConfig


def exe(tool: str) -> str:
    return f"{tool}.exe" if sys.platform == "win32" else tool


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class FakeProcess:
    """Stands in for subprocess.Popen; exits when told to."""

    _next_pid = 40000

    def __init__(self, args: list[str], exit_on_terminate: bool = True, **kwargs: Any):
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.args = args
        self.kwargs = kwargs
        self.stdout = None
        self.stderr = None
        self.returncode: int | None = None
        self.exit_on_terminate = exit_on_terminate
        self.terminate_calls = 0
        self.kill_calls = 0
        self._exited = threading.Event()

    def poll(self) -> int | None:
        return self.returncode

    def wait(self, timeout: float | None = None) -> int | None:
        if not self._exited.wait(timeout):
            raise subprocess.TimeoutExpired(self.args, timeout)
        return self.returncode

    def exit(self, code: int = 0) -> None:
        if self.returncode is None:
            self.returncode = code
        self._exited.set()

    def terminate(self) -> None:
        self.terminate_calls += 1
        if self.exit_on_terminate:
            self.exit(-15)

    def kill(self) -> None:
        self.kill_calls += 1
        self.exit(-9)


class FakePopen:
    """Popen factory that records every launch."""

    def __init__(self) -> None:
        self.processes: list[FakeProcess] = []
        self.exit_on_terminate = True
        self.error: Exception | None = None
        self.previous_all_exited: list[bool] = []

    def __call__(self, args: list[str], **kwargs: Any) -> FakeProcess:
        if self.error is not None:
            raise self.error
        self.previous_all_exited.append(
            all(p.poll() is not None for p in self.processes)
        )
        process = FakeProcess(args, exit_on_terminate=self.exit_on_terminate, **kwargs)
        self.processes.append(process)
        return process

    @property
    def last(self) -> FakeProcess:
        return self.processes[-1]


class FakeTimer:
    """threading.Timer replacement that only runs when fired."""

    def __init__(
        self,
        interval: float,
        function: Callable[..., Any],
        args: tuple | None = None,
        kwargs: dict | None = None,
    ) -> None:
        self.interval = interval
        self.function = function
        self.args = tuple(args or ())
        self.kwargs = dict(kwargs or {})
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if self.started and not self.cancelled:
            self.function(*self.args, **self.kwargs)


class TimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function: Callable[..., Any], **kwargs: Any):
        timer = FakeTimer(interval, function, **kwargs)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled]


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in (
        "MIRRORCTL_TOOL_DIR",
        "MIRRORCTL_POLL_INTERVAL",
        "MIRRORCTL_AUTO_CONNECT",
        "MIRRORCTL_AUTO_RECONNECT",
        "MIRRORCTL_OPTIONS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tool_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "scrcpy-tools"
    folder.mkdir()
    (folder / exe("adb")).write_text("")
    (folder / exe("scrcpy")).write_text("")
    return folder


@pytest.fixture
def config(tool_dir: Path) -> MirrorCtlConfig:
    return MirrorCtlConfig(tool_dir=tool_dir, force_kill_delay=0.05)


@pytest.fixture
def unconfigured(tmp_path: Path) -> MirrorCtlConfig:
    empty = tmp_path / "empty"
    empty.mkdir()
    return MirrorCtlConfig(tool_dir=empty)


@pytest.fixture
def fake_popen() -> FakePopen:
    return FakePopen()


@pytest.fixture
def timers() -> TimerFactory:
    return TimerFactory()


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"
