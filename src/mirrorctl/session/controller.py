"""Session controller — owns the single scrcpy subprocess.

At most one mirroring process is live at a time. ``start()`` stops and
reaps any previous process before launching the next. The (device, options)
pair of the last successful launch is kept after the process dies, unless
the user asked for the stop, so the reconnection policy can resume it.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import IO, Any

import psutil

from mirrorctl.config import MirrorCtlConfig
from mirrorctl.errors import ActionResult, ToolNotConfiguredError
from mirrorctl.events import Signal
from mirrorctl.session.arguments import build_arguments
from mirrorctl.session.models import (
    LastSession,
    SessionOptions,
    SessionState,
    SessionStatus,
    SessionStatusReport,
)

logger = logging.getLogger(__name__)

_STDERR_TAIL = 20


@dataclass
class _Watched:
    """A launched process plus the threads relaying its output."""

    process: subprocess.Popen[str]
    stderr_tail: deque[str] = field(default_factory=lambda: deque(maxlen=_STDERR_TAIL))
    pumps: list[threading.Thread] = field(default_factory=list)

    def diagnostic(self) -> str:
        for pump in self.pumps:
            pump.join(timeout=0.5)
        for line in reversed(self.stderr_tail):
            if "ERROR" in line:
                return line
        return self.stderr_tail[-1] if self.stderr_tail else ""


class SessionController:
    """Start/stop wrapper around the scrcpy process with exit reconciliation."""

    def __init__(
        self,
        config: MirrorCtlConfig,
        popen: Callable[..., subprocess.Popen[str]] = subprocess.Popen,
        sleep: Callable[[float], None] = time.sleep,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self._config = config
        self._popen = popen
        self._sleep = sleep
        self._timer_factory = timer_factory
        self.state_changed: Signal[SessionStatusReport] = Signal("session-changed")

        self._lock = threading.RLock()
        self._transition_lock = threading.Lock()
        self._process: subprocess.Popen[str] | None = None
        self._retiring: list[subprocess.Popen[str]] = []
        self._state: SessionState | None = None
        # Sessions discarded by a user stop whose process has not exited yet
        self._ending: dict[int, SessionState] = {}
        self._status = SessionStatus.IDLE
        self._user_stop = False

    # -- queries -----------------------------------------------------------

    def status(self) -> SessionStatusReport:
        """Running state from the controller's own bookkeeping."""
        with self._lock:
            return SessionStatusReport(
                running=self._process is not None,
                status=self._status,
                device_id=self._state.device_id if self._state else None,
            )

    @property
    def session(self) -> SessionState | None:
        return self._state

    def get_last_session(self) -> LastSession | None:
        """The running session, or the last one not stopped by the user."""
        with self._lock:
            return self._state.as_last_session() if self._state else None

    def clear_last_session(self) -> None:
        with self._lock:
            self._state = None
            self._user_stop = False

    # -- transitions -------------------------------------------------------

    def start(self, device_id: str, options: SessionOptions) -> ActionResult:
        """Launch scrcpy for a device, replacing any running session."""
        with self._transition_lock:
            self.stop(user_initiated=False)
            self._await_retired()

            path = self._config.scrcpy_path()
            if path is None:
                return ActionResult.fail(str(ToolNotConfiguredError("scrcpy")))

            args = build_arguments(device_id, options)
            logger.info("Starting scrcpy: %s %s", path, " ".join(args))

            with self._lock:
                self._status = SessionStatus.STARTING
            try:
                process = self._popen(
                    [path, *args],
                    cwd=os.path.dirname(path) or None,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    **_window_kwargs(options),
                )
            except (OSError, ValueError) as exc:
                logger.error("Failed to start scrcpy: %s", exc)
                with self._lock:
                    self._status = SessionStatus.IDLE
                return ActionResult.fail(str(exc) or "Failed to start scrcpy")

            with self._lock:
                self._process = process
            watched = self._watch(process)

            # Rule out an immediate failure (bad device id, missing server...)
            self._sleep(self._config.start_grace)

            with self._lock:
                alive = self._process is process and process.poll() is None
                if alive:
                    self._state = SessionState(
                        device_id=device_id,
                        options=options,
                        pid=process.pid,
                        alive=True,
                    )
                    self._user_stop = False
                    self._status = SessionStatus.RUNNING
                else:
                    if self._process is process:
                        self._process = None
                    self._status = SessionStatus.IDLE

            if alive:
                logger.info("Session started on %s (PID %d)", device_id, process.pid)
                self._notify()
                return ActionResult.ok("Scrcpy started successfully")

            message = watched.diagnostic() or "Scrcpy failed to start"
            logger.warning("Scrcpy failed to start on %s: %s", device_id, message)
            return ActionResult.fail(message)

    def stop(self, user_initiated: bool = True) -> ActionResult:
        """Terminate the running session.

        The handle is cleared immediately; a forced kill follows after
        ``force_kill_delay`` if the process is still alive. A user-initiated
        stop also discards the retained session.
        """
        with self._lock:
            process = self._process
            if process is None:
                return ActionResult.ok("No session running")

            logger.info("Stopping scrcpy (user initiated: %s)", user_initiated)
            try:
                process.terminate()
            except OSError as exc:
                logger.error("Failed to stop scrcpy: %s", exc)
                return ActionResult.fail(f"Failed to stop scrcpy: {exc}")

            self._user_stop = user_initiated
            self._process = None
            self._retiring.append(process)
            self._status = SessionStatus.STOPPING
            if user_initiated:
                if self._state is not None:
                    self._state.alive = False
                    self._ending[self._state.pid] = self._state
                self._state = None
            elif self._state is not None:
                self._state.alive = False

        timer = self._timer_factory(
            self._config.force_kill_delay, self._force_kill, args=(process,)
        )
        timer.daemon = True
        timer.start()

        self._notify()
        return ActionResult.ok("Scrcpy stopped")

    # -- process bookkeeping -----------------------------------------------

    def _watch(self, process: subprocess.Popen[str]) -> _Watched:
        watched = _Watched(process)
        streams: tuple[tuple[IO[str] | None, int, deque[str] | None], ...] = (
            (process.stdout, logging.DEBUG, None),
            (process.stderr, logging.WARNING, watched.stderr_tail),
        )
        for stream, level, tail in streams:
            if stream is None:
                continue
            pump = threading.Thread(
                target=_pump,
                args=(stream, level, tail),
                name=f"scrcpy-output-{process.pid}",
                daemon=True,
            )
            pump.start()
            watched.pumps.append(pump)

        threading.Thread(
            target=self._reap,
            args=(watched,),
            name=f"scrcpy-reaper-{process.pid}",
            daemon=True,
        ).start()
        return watched

    def _reap(self, watched: _Watched) -> None:
        returncode = watched.process.wait()
        for pump in watched.pumps:
            pump.join(timeout=1.0)
        self._on_exit(watched.process, returncode)

    def _on_exit(self, process: subprocess.Popen[str], returncode: int | None) -> None:
        """Reconcile session state after a process exit."""
        with self._lock:
            if process is self._process:
                logger.warning("Scrcpy exited unexpectedly with code %s", returncode)
                self._process = None
            else:
                logger.info("Scrcpy exited with code %s", returncode)
            if process in self._retiring:
                self._retiring.remove(process)

            ended = self._ending.pop(process.pid, None)
            if self._state is not None and self._state.pid == process.pid:
                ended = self._state
            if ended is not None:
                ended.alive = False
                ended.end_time = time.time()
                ended.returncode = returncode

            if self._user_stop:
                logger.info("Clearing session (user initiated stop)")
                self._state = None
                self._user_stop = False
            elif self._state is not None and not self._state.alive:
                logger.info(
                    "Preserving session for reconnect on %s", self._state.device_id
                )

            if self._process is None and self._status is not SessionStatus.STARTING:
                self._status = SessionStatus.IDLE

        self._notify()

    def _await_retired(self) -> None:
        """Block until every stopped process has exited."""
        with self._lock:
            retiring = list(self._retiring)
        for process in retiring:
            try:
                process.wait(timeout=self._config.force_kill_delay)
            except subprocess.TimeoutExpired:
                self._force_kill(process)
                try:
                    process.wait(timeout=self._config.force_kill_delay)
                except subprocess.TimeoutExpired:
                    logger.error("Scrcpy (PID %d) did not exit after kill", process.pid)

    def _force_kill(self, process: subprocess.Popen[str]) -> None:
        if process.poll() is not None:
            return
        logger.warning("Scrcpy (PID %d) ignored terminate, killing", process.pid)
        try:
            children = psutil.Process(process.pid).children(recursive=True)
        except psutil.Error:
            children = []
        for child in children:
            try:
                child.kill()
            except psutil.Error:
                continue
        try:
            process.kill()
        except OSError as exc:
            logger.debug("Kill of PID %d failed: %s", process.pid, exc)

    def _notify(self) -> None:
        self.state_changed.emit(self.status())


def _pump(stream: IO[str], level: int, tail: deque[str] | None) -> None:
    try:
        for raw in stream:
            line = raw.rstrip()
            if not line:
                continue
            logger.log(level, "scrcpy: %s", line)
            if tail is not None:
                tail.append(line)
    except (OSError, ValueError):
        logger.debug("scrcpy output stream closed")


def _window_kwargs(options: SessionOptions) -> dict[str, Any]:
    if sys.platform == "win32" and options.start_minimized:
        return {"creationflags": subprocess.CREATE_NO_WINDOW}
    return {}
