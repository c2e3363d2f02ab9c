"""Device monitor — polls the inventory and emits connect/disconnect events."""

from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

from mirrorctl.devices.models import DeviceRecord
from mirrorctl.events import Signal

logger = logging.getLogger(__name__)


@runtime_checkable
class DeviceSource(Protocol):
    """Anything that can list attached devices."""

    def list_devices(self) -> list[DeviceRecord]:
        ...


class DeviceMonitor:
    """Tracks wired, authorized devices across polls.

    Each poll diffs the current id set against the previous one and emits
    one ``device_connected`` per new id, then one ``device_disconnected``
    per departed id. Polls never overlap: the next one is scheduled only
    after the current tick, including notification dispatch, completes.
    """

    def __init__(self, source: DeviceSource, poll_interval: float = 2.0) -> None:
        self._source = source
        self._poll_interval = poll_interval
        self.device_connected: Signal[DeviceRecord] = Signal("device-connected")
        self.device_disconnected: Signal[DeviceRecord] = Signal("device-disconnected")
        self._previous: dict[str, DeviceRecord] = {}
        self._tick_lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._stop_event is not None

    def current_devices(self) -> list[DeviceRecord]:
        """Devices seen at the most recent poll."""
        with self._tick_lock:
            return list(self._previous.values())

    def start(self) -> None:
        """Poll once immediately, then every ``poll_interval`` seconds."""
        with self._state_lock:
            if self._stop_event is not None:
                logger.debug("Device monitor already running")
                return
            stop_event = threading.Event()
            self._stop_event = stop_event

        logger.info("Starting device monitor (interval %.1fs)", self._poll_interval)
        self.poll()

        thread = threading.Thread(
            target=self._loop,
            args=(stop_event,),
            name="device-monitor",
            daemon=True,
        )
        with self._state_lock:
            self._thread = thread
        thread.start()

    def stop(self) -> None:
        """Stop polling and forget the baseline."""
        with self._state_lock:
            if self._stop_event is None:
                return
            self._stop_event.set()
            self._stop_event = None
            thread, self._thread = self._thread, None

        logger.info("Stopping device monitor")
        if thread is not None and thread is not threading.current_thread():
            thread.join()

        with self._tick_lock:
            self._previous = {}

    def poll(self) -> None:
        """Run a single poll tick."""
        with self._tick_lock:
            try:
                devices = self._source.list_devices()
            except Exception:
                logger.exception("Error checking devices")
                return

            current = {d.id: d for d in devices if d.is_wired and d.is_ready}
            connected = [d for i, d in current.items() if i not in self._previous]
            disconnected = [d for i, d in self._previous.items() if i not in current]
            self._previous = current

            if connected:
                logger.info(
                    "New USB device(s) detected: %s", ", ".join(d.id for d in connected)
                )
            for device in connected:
                self.device_connected.emit(device)

            if disconnected:
                logger.info(
                    "USB device(s) disconnected: %s",
                    ", ".join(d.id for d in disconnected),
                )
            for device in disconnected:
                self.device_disconnected.emit(device)

    def _loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(timeout=self._poll_interval):
            self.poll()
