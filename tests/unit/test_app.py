"""Tests for the ControlCenter composition root."""

from __future__ import annotations

import dataclasses
from unittest.mock import MagicMock

import pytest

from mirrorctl.app import ControlCenter
from mirrorctl.devices.models import AuthState, ConnectionKind, DeviceRecord
from mirrorctl.errors import ActionResult
from mirrorctl.events import Signal
from mirrorctl.session.models import LastSession, SessionOptions, SessionStatusReport

PHONE = DeviceRecord(
    id="ABC123",
    connection_kind=ConnectionKind.WIRED,
    auth_state=AuthState.READY,
    display_name="Pixel 7",
)


@pytest.fixture
def adb():
    client = MagicMock()
    client.list_devices.return_value = [PHONE]
    return client


@pytest.fixture
def controller():
    controller = MagicMock()
    controller.state_changed = Signal("session-changed")
    controller.get_last_session.return_value = None
    controller.status.return_value = SessionStatusReport(running=False)
    controller.start.return_value = ActionResult.ok("Scrcpy started successfully")
    return controller


def test_start_polls_and_reports_devices(config, adb, controller):
    center = ControlCenter(config, adb=adb, controller=controller)
    connected = []
    center.device_connected.subscribe(connected.append)

    center.start()
    try:
        assert connected == [PHONE]
        assert center.monitor.is_running
        controller.start.assert_not_called()
    finally:
        center.dispose()


def test_auto_connect_uses_configured_defaults(config, adb, controller):
    defaults = SessionOptions(bitrate=4)
    config = dataclasses.replace(config, auto_connect=True, default_options=defaults)
    center = ControlCenter(config, adb=adb, controller=controller)
    outcomes = []
    center.auto_connect_triggered.subscribe(outcomes.append)

    center.start()
    center.dispose()

    controller.start.assert_called_once_with("ABC123", defaults)
    assert outcomes[0].success


def test_reconnect_settings_come_from_config(config, adb, controller):
    config = dataclasses.replace(config, reconnect_delay=0.25, auto_reconnect=False)
    center = ControlCenter(config, adb=adb, controller=controller)
    assert center.policy.settings.reconnect_delay == 0.25
    assert center.policy.settings.auto_reconnect is False


def test_stop_detaches_policy(config, adb, controller):
    controller.get_last_session.return_value = LastSession("ABC123", SessionOptions())
    center = ControlCenter(config, adb=adb, controller=controller)

    center.start()
    assert center.policy.pending_devices == ["ABC123"]
    center.stop()

    assert center.policy.pending_devices == []
    assert not center.monitor.is_running
    assert len(center.device_connected) == 0
    controller.stop.assert_not_called()


def test_restart_after_stop(config, adb, controller):
    center = ControlCenter(config, adb=adb, controller=controller)
    connected = []
    center.device_connected.subscribe(connected.append)

    center.start()
    center.stop()
    center.start()
    center.dispose()

    assert connected == [PHONE, PHONE]


def test_dispose_stops_session_as_user(config, adb, controller):
    center = ControlCenter(config, adb=adb, controller=controller)
    center.start()

    center.dispose()
    center.dispose()

    controller.stop.assert_called_once_with(user_initiated=True)
    with pytest.raises(RuntimeError):
        center.start()


def test_queries_delegate(config, adb, controller):
    controller.status.return_value = SessionStatusReport(
        running=True, device_id="ABC123"
    )
    controller.get_last_session.return_value = LastSession("ABC123", SessionOptions())
    center = ControlCenter(config, adb=adb, controller=controller)

    assert center.devices() == [PHONE]
    assert center.session_running()
    assert center.last_session().device_id == "ABC123"


def test_session_changed_is_controller_signal(config, adb, controller):
    center = ControlCenter(config, adb=adb, controller=controller)
    assert center.session_changed is controller.state_changed
