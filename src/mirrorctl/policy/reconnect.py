"""Reconnection policy — resume a dropped session or auto-connect new devices.

On each device-connected event the policy picks one of:

1. *Reconnect* — the controller still holds a session for this device (it
   died without a user stop). The start is delayed by ``reconnect_delay``
   so the device can finish re-enumerating; a repeat event for the same
   device replaces the pending start.
2. *Auto-connect* — a device with no retained session; started immediately
   with the configured default options.
3. Nothing.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

from mirrorctl.devices.models import DeviceRecord
from mirrorctl.devices.monitor import DeviceMonitor
from mirrorctl.errors import ActionResult
from mirrorctl.events import Signal
from mirrorctl.policy.models import Decision, PolicyOutcome, ReconnectSettings
from mirrorctl.session.models import LastSession, SessionOptions

logger = logging.getLogger(__name__)


class SessionStarter(Protocol):
    """The parts of the session controller the policy depends on."""

    def start(self, device_id: str, options: SessionOptions) -> ActionResult:
        ...

    def get_last_session(self) -> LastSession | None:
        ...


class ReconnectPolicy:
    """Arbitrates between resuming the last session and auto-connecting."""

    def __init__(
        self,
        controller: SessionStarter,
        settings: ReconnectSettings | None = None,
        is_configured: Callable[[], bool] = lambda: True,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self._controller = controller
        self.settings = settings if settings is not None else ReconnectSettings()
        self._is_configured = is_configured
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._pending: dict[str, tuple[object, threading.Timer]] = {}
        self.auto_connect_triggered: Signal[PolicyOutcome] = Signal(
            "auto-connect-triggered"
        )
        self.auto_reconnect_triggered: Signal[PolicyOutcome] = Signal(
            "auto-reconnect-triggered"
        )

    def attach(self, monitor: DeviceMonitor) -> Callable[[], None]:
        """Subscribe to a monitor's connect events. Returns the unsubscriber."""
        return monitor.device_connected.subscribe(self.on_device_connected)

    @property
    def pending_devices(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    def decide(self, device_id: str) -> tuple[Decision, SessionOptions | None]:
        """Pick the action for a connecting device without acting on it."""
        settings = self.settings
        configured = self._is_configured()
        last = self._controller.get_last_session()

        if (
            last is not None
            and settings.auto_reconnect
            and configured
            and last.device_id == device_id
        ):
            return Decision.RECONNECT, last.options

        if settings.auto_connect and configured:
            return Decision.AUTO_CONNECT, settings.default_options

        return Decision.IGNORE, None

    def on_device_connected(self, device: DeviceRecord) -> Decision:
        decision, options = self.decide(device.id)

        if decision is Decision.RECONNECT and options is not None:
            self._schedule_reconnect(device.id, options)
        elif decision is Decision.AUTO_CONNECT and options is not None:
            logger.info("Auto-connecting to new device %s", device.id)
            self._start(device.id, options, decision)
        else:
            logger.debug("No policy action for %s", device.id)
        return decision

    def cancel_pending(self) -> None:
        """Cancel every scheduled reconnect."""
        with self._lock:
            pending, self._pending = self._pending, {}
        for _, timer in pending.values():
            timer.cancel()

    def _schedule_reconnect(self, device_id: str, options: SessionOptions) -> None:
        token = object()
        timer = self._timer_factory(
            self.settings.reconnect_delay,
            self._fire,
            args=(device_id, options, token),
        )
        timer.daemon = True

        with self._lock:
            previous = self._pending.get(device_id)
            if previous is not None:
                previous[1].cancel()
                logger.debug("Superseding pending reconnect for %s", device_id)
            self._pending[device_id] = (token, timer)
            timer.start()

        logger.info(
            "Device %s returned; reconnecting in %.1fs",
            device_id,
            self.settings.reconnect_delay,
        )

    def _fire(self, device_id: str, options: SessionOptions, token: object) -> None:
        with self._lock:
            current = self._pending.get(device_id)
            if current is None or current[0] is not token:
                return
            del self._pending[device_id]
        self._start(device_id, options, Decision.RECONNECT)

    def _start(
        self, device_id: str, options: SessionOptions, decision: Decision
    ) -> None:
        try:
            result = self._controller.start(device_id, options)
        except Exception as exc:
            logger.exception("Session start for %s raised", device_id)
            result = ActionResult.fail(str(exc) or "Failed to start scrcpy")

        outcome = PolicyOutcome(
            device_id=device_id,
            success=result.success,
            message=result.message,
            decision=decision,
        )
        if result.success:
            logger.info("%s to %s succeeded", decision.value, device_id)
        else:
            logger.warning(
                "%s to %s failed: %s", decision.value, device_id, result.message
            )

        if decision is Decision.RECONNECT:
            self.auto_reconnect_triggered.emit(outcome)
        else:
            self.auto_connect_triggered.emit(outcome)
