"""ControlCenter — wires the adb client, monitor, controller and policy."""

from __future__ import annotations

import logging
from collections.abc import Callable

from mirrorctl.config import MirrorCtlConfig
from mirrorctl.devices.adb import AdbClient
from mirrorctl.devices.models import DeviceRecord
from mirrorctl.devices.monitor import DeviceMonitor
from mirrorctl.policy.models import ReconnectSettings
from mirrorctl.policy.reconnect import ReconnectPolicy
from mirrorctl.session.controller import SessionController
from mirrorctl.session.models import LastSession

logger = logging.getLogger(__name__)


class ControlCenter:
    """Service object owning one instance of each component.

    Lifecycle: construct, ``start()``, ``stop()``, ``dispose()``. The signals
    below are the surface the presentation layer subscribes to.
    """

    def __init__(
        self,
        config: MirrorCtlConfig,
        adb: AdbClient | None = None,
        controller: SessionController | None = None,
    ) -> None:
        self.config = config
        self.adb = adb if adb is not None else AdbClient(config)
        self.controller = (
            controller if controller is not None else SessionController(config)
        )
        self.monitor = DeviceMonitor(self.adb, poll_interval=config.poll_interval)
        self.policy = ReconnectPolicy(
            self.controller,
            settings=ReconnectSettings(
                auto_reconnect=config.auto_reconnect,
                auto_connect=config.auto_connect,
                default_options=config.default_options,
                reconnect_delay=config.reconnect_delay,
            ),
            is_configured=config.is_configured,
        )
        self._unsubscribers: list[Callable[[], None]] = []
        self._disposed = False

        self.device_connected = self.monitor.device_connected
        self.device_disconnected = self.monitor.device_disconnected
        self.auto_connect_triggered = self.policy.auto_connect_triggered
        self.auto_reconnect_triggered = self.policy.auto_reconnect_triggered
        self.session_changed = self.controller.state_changed

    def start(self) -> None:
        if self._disposed:
            raise RuntimeError("ControlCenter has been disposed")
        if not self._unsubscribers:
            self._unsubscribers.append(self.policy.attach(self.monitor))
        self.monitor.start()

    def stop(self) -> None:
        self.monitor.stop()
        self.policy.cancel_pending()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def dispose(self) -> None:
        """Stop everything, including the running session (as a user stop)."""
        if self._disposed:
            return
        self.stop()
        self.controller.stop(user_initiated=True)
        self._disposed = True
        logger.info("Control center disposed")

    # -- queries -----------------------------------------------------------

    def devices(self) -> list[DeviceRecord]:
        return self.adb.list_devices()

    def session_running(self) -> bool:
        return self.controller.status().running

    def last_session(self) -> LastSession | None:
        return self.controller.get_last_session()
