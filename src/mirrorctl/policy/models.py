"""Reconnection policy data models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from mirrorctl.session.models import SessionOptions


class Decision(enum.Enum):
    """What the policy does with a device-connected event."""

    RECONNECT = "reconnect"
    AUTO_CONNECT = "auto-connect"
    IGNORE = "ignore"


@dataclass
class ReconnectSettings:
    """User opt-ins consulted on every connect event. Mutable at runtime."""

    auto_reconnect: bool = True
    auto_connect: bool = False
    default_options: SessionOptions = field(default_factory=SessionOptions)
    reconnect_delay: float = 2.0


@dataclass(frozen=True)
class PolicyOutcome:
    """Result of a policy-triggered session start."""

    device_id: str
    success: bool
    message: str
    decision: Decision
