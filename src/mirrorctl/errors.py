"""Exception types and the result value returned by public operations."""

from __future__ import annotations

from dataclasses import dataclass


class MirrorCtlError(Exception):
    """Base class for mirrorctl errors."""


class ToolNotConfiguredError(MirrorCtlError):
    """An external executable (adb or scrcpy) could not be resolved."""

    def __init__(self, tool: str) -> None:
        super().__init__(
            f"{tool} path not configured. Set MIRRORCTL_TOOL_DIR or "
            f"pass --tool-dir with the scrcpy folder."
        )
        self.tool = tool


@dataclass(frozen=True)
class ActionResult:
    """Outcome of an operation: a success flag plus a human-readable message."""

    success: bool
    message: str = ""

    @classmethod
    def ok(cls, message: str = "") -> ActionResult:
        return cls(success=True, message=message)

    @classmethod
    def fail(cls, message: str) -> ActionResult:
        return cls(success=False, message=message)
