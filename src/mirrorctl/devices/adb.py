"""adb wrapper — device inventory and auxiliary device queries.

Every public method absorbs tool failures: a missing executable, a timeout
or a non-zero exit degrade to an empty list, ``None`` or a failed
``ActionResult``. Nothing raises past this module.
"""

from __future__ import annotations

import logging
import re
import subprocess
import threading
import time
from collections.abc import Callable

from mirrorctl.config import MirrorCtlConfig
from mirrorctl.devices.models import (
    AuthState,
    ConnectionKind,
    DeviceRecord,
    DeviceSpecs,
)
from mirrorctl.errors import ActionResult, ToolNotConfiguredError

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    "device": AuthState.READY,
    "unauthorized": AuthState.PENDING_AUTHORIZATION,
}

_MODEL_RE = re.compile(r"model:(\S+)")
_ROUTE_SRC_RE = re.compile(r"src\s+(\d+\.\d+\.\d+\.\d+)")
_SIZE_RE = re.compile(r"Physical size:\s*(\d+)x(\d+)")
_DENSITY_RE = re.compile(r"Physical density:\s*(\d+)")

_DEFAULT_SPECS = DeviceSpecs()

# Failures of a single adb invocation, including undecodable output
_ADB_ERRORS = (subprocess.SubprocessError, OSError, UnicodeDecodeError)


def parse_devices(text: str) -> list[DeviceRecord]:
    """Parse ``adb devices -l`` output into records.

    The header line, blank lines and ``*`` daemon advisories are skipped.
    Records are returned as reported, including unreachable wireless ones.
    """
    records: list[DeviceRecord] = []
    for line in text.splitlines()[1:]:
        stripped = line.strip()
        if not stripped or stripped.startswith("*"):
            continue

        parts = stripped.split()
        if len(parts) < 2:
            continue

        device_id, status = parts[0], parts[1]
        kind = ConnectionKind.WIRELESS if ":" in device_id else ConnectionKind.WIRED
        auth = _STATUS_MAP.get(status, AuthState.UNREACHABLE)

        display_name = None
        match = _MODEL_RE.search(stripped)
        if match:
            display_name = match.group(1).replace("_", " ")

        records.append(
            DeviceRecord(
                id=device_id,
                connection_kind=kind,
                auth_state=auth,
                display_name=display_name,
            )
        )
    return records


def _spawn_background(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, name="adb-housekeeping", daemon=True).start()


class AdbClient:
    """Invokes the adb executable resolved from the configuration."""

    def __init__(
        self,
        config: MirrorCtlConfig,
        background: Callable[[Callable[[], None]], None] = _spawn_background,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._background = background
        self._sleep = sleep

    def _adb(self) -> str:
        path = self._config.adb_path()
        if path is None:
            raise ToolNotConfiguredError("adb")
        return path

    def _run(self, args: list[str], timeout: float | None = None) -> str:
        result = subprocess.run(
            [self._adb(), *args],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout if timeout is not None else self._config.adb_timeout,
            check=True,
        )
        return result.stdout

    def _query(self, device_id: str, *command: str) -> str | None:
        """Run ``adb -s <id> shell <command>``; None on any failure."""
        try:
            return self._run(["-s", device_id, "shell", *command])
        except ToolNotConfiguredError:
            return None
        except _ADB_ERRORS as exc:
            logger.debug("adb shell %s failed on %s: %s", command, device_id, exc)
            return None

    # -- inventory ---------------------------------------------------------

    def list_devices(self) -> list[DeviceRecord]:
        """Return attached devices, pruning stale wireless entries."""
        try:
            output = self._run(["devices", "-l"])
        except ToolNotConfiguredError:
            logger.debug("adb path not configured, no devices listed")
            return []
        except _ADB_ERRORS as exc:
            logger.warning("Error listing devices: %s", exc)
            return []

        devices: list[DeviceRecord] = []
        for record in parse_devices(output):
            # A stale wireless entry almost always means the IP changed
            if (
                record.connection_kind is ConnectionKind.WIRELESS
                and record.auth_state is AuthState.UNREACHABLE
            ):
                self._prune(record.id)
                continue
            devices.append(record)
        return devices

    def _prune(self, device_id: str) -> None:
        logger.info("Disconnecting stale wireless device %s", device_id)

        def disconnect() -> None:
            try:
                self._run(
                    ["disconnect", device_id],
                    timeout=self._config.disconnect_timeout,
                )
            except (*_ADB_ERRORS, ToolNotConfiguredError):
                logger.debug("Ignoring failed disconnect of %s", device_id)

        self._background(disconnect)

    # -- queries -----------------------------------------------------------

    def get_device_ip(self, device_id: str) -> str | None:
        """IPv4 address the device uses on its default route."""
        output = self._query(device_id, "ip", "route")
        if output is None:
            return None
        match = _ROUTE_SRC_RE.search(output)
        return match.group(1) if match else None

    def get_device_specs(self, device_id: str) -> DeviceSpecs | None:
        """Screen, model and OS descriptors; each falls back independently."""
        try:
            self._adb()
        except ToolNotConfiguredError:
            return None

        width, height = _DEFAULT_SPECS.screen_width, _DEFAULT_SPECS.screen_height
        size_out = self._query(device_id, "wm", "size") or ""
        size_match = _SIZE_RE.search(size_out)
        if size_match:
            width, height = int(size_match.group(1)), int(size_match.group(2))

        density = _DEFAULT_SPECS.density
        density_out = self._query(device_id, "wm", "density") or ""
        density_match = _DENSITY_RE.search(density_out)
        if density_match:
            density = int(density_match.group(1))

        model = self._getprop(device_id, "ro.product.model") or _DEFAULT_SPECS.model
        version = (
            self._getprop(device_id, "ro.build.version.release")
            or _DEFAULT_SPECS.android_version
        )
        try:
            sdk = int(self._getprop(device_id, "ro.build.version.sdk") or "")
        except ValueError:
            sdk = 0
        if sdk <= 0:
            sdk = _DEFAULT_SPECS.sdk_version

        return DeviceSpecs(
            screen_width=width,
            screen_height=height,
            density=density,
            model=model,
            android_version=version,
            sdk_version=sdk,
        )

    def _getprop(self, device_id: str, name: str) -> str:
        output = self._query(device_id, "getprop", name)
        return output.strip() if output else ""

    # -- connection management ---------------------------------------------

    def connect_wifi(self, device_id: str) -> ActionResult:
        """Switch a wired device to TCP mode and connect to it over Wi-Fi."""
        port = self._config.wifi_port
        try:
            self._run(["-s", device_id, "tcpip", str(port)])
            # adbd restarts in TCP mode
            self._sleep(2.0)

            ip = self.get_device_ip(device_id)
            if ip is None:
                return ActionResult.fail("Could not determine device IP address")

            output = self._run(["connect", f"{ip}:{port}"])
        except ToolNotConfiguredError as exc:
            return ActionResult.fail(str(exc))
        except _ADB_ERRORS as exc:
            logger.warning("Wi-Fi connect failed for %s: %s", device_id, exc)
            return ActionResult.fail(str(exc) or "Failed to connect via WiFi")

        if "connected" in output:
            return ActionResult.ok(f"Connected to {ip}:{port}")
        return ActionResult.fail(output.strip())

    def disconnect_device(self, device_id: str) -> ActionResult:
        """Disconnect a wireless device. Wired devices cannot be disconnected."""
        if ":" not in device_id:
            return ActionResult.fail("Cannot disconnect USB device")
        try:
            self._run(["disconnect", device_id])
        except ToolNotConfiguredError as exc:
            return ActionResult.fail(str(exc))
        except _ADB_ERRORS as exc:
            return ActionResult.fail(str(exc) or "Failed to disconnect")
        return ActionResult.ok(f"Disconnected from {device_id}")

    def start_server(self) -> bool:
        return self._server_command("start-server")

    def kill_server(self) -> bool:
        return self._server_command("kill-server")

    def _server_command(self, command: str) -> bool:
        try:
            self._run([command])
            return True
        except ToolNotConfiguredError:
            return False
        except _ADB_ERRORS as exc:
            logger.error("adb %s failed: %s", command, exc)
            return False
