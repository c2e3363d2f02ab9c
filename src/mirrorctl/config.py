"""Global configuration — tool paths, env vars, timeouts, defaults."""

from __future__ import annotations

import os
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path

from mirrorctl.session.models import SessionOptions

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "mirrorctl"
    return Path.home() / ".config" / "mirrorctl"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _executable_name(tool: str) -> str:
    return f"{tool}.exe" if sys.platform == "win32" else tool


@dataclass
class MirrorCtlConfig:
    """Application-wide configuration."""

    config_dir: Path = field(default_factory=_default_config_dir)
    tool_dir: Path | None = None
    poll_interval: float = 2.0
    adb_timeout: float = 10.0
    disconnect_timeout: float = 2.0
    start_grace: float = 0.5
    force_kill_delay: float = 2.0
    reconnect_delay: float = 2.0
    wifi_port: int = 5555
    auto_connect: bool = False
    auto_reconnect: bool = True
    default_options: SessionOptions = field(default_factory=SessionOptions)
    verbose: bool = False

    @classmethod
    def load(cls, options_path: str | Path | None = None) -> MirrorCtlConfig:
        """Load config from environment variables with XDG defaults."""
        from mirrorctl.session.loader import load_options

        config = cls()

        env_tool_dir = os.environ.get("MIRRORCTL_TOOL_DIR")
        if env_tool_dir:
            config.tool_dir = Path(env_tool_dir)

        env_interval = os.environ.get("MIRRORCTL_POLL_INTERVAL")
        if env_interval:
            config.poll_interval = float(env_interval)

        config.auto_connect = _env_flag("MIRRORCTL_AUTO_CONNECT", config.auto_connect)
        config.auto_reconnect = _env_flag(
            "MIRRORCTL_AUTO_RECONNECT", config.auto_reconnect
        )

        # Explicit path wins, then env var, then the config dir's options.yaml
        if options_path is None:
            options_path = os.environ.get("MIRRORCTL_OPTIONS") or None
        if options_path is None:
            candidate = config.config_dir / "options.yaml"
            if candidate.is_file():
                options_path = candidate
        if options_path is not None:
            config.default_options = load_options(options_path)

        return config

    def _resolve(self, tool: str) -> str | None:
        name = _executable_name(tool)
        if self.tool_dir is not None:
            candidate = self.tool_dir / name
            return str(candidate) if candidate.is_file() else None
        return shutil.which(name)

    def adb_path(self) -> str | None:
        """Absolute path of the adb executable, or None when unresolvable."""
        return self._resolve("adb")

    def scrcpy_path(self) -> str | None:
        """Absolute path of the scrcpy executable, or None when unresolvable."""
        return self._resolve("scrcpy")

    def is_configured(self) -> bool:
        return self.scrcpy_path() is not None
