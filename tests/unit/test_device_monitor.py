"""Tests for the device monitor's snapshot diffing."""

from __future__ import annotations

from mirrorctl.devices.models import AuthState, ConnectionKind, DeviceRecord
from mirrorctl.devices.monitor import DeviceMonitor


def _wired(device_id: str, auth: AuthState = AuthState.READY) -> DeviceRecord:
    return DeviceRecord(
        id=device_id, connection_kind=ConnectionKind.WIRED, auth_state=auth
    )


def _wireless(device_id: str) -> DeviceRecord:
    return DeviceRecord(
        id=device_id,
        connection_kind=ConnectionKind.WIRELESS,
        auth_state=AuthState.READY,
    )


class ScriptedSource:
    """Returns one snapshot per call; repeats the last one when exhausted."""

    def __init__(self, *snapshots: list[DeviceRecord]) -> None:
        self.snapshots = list(snapshots)
        self.calls = 0

    def list_devices(self) -> list[DeviceRecord]:
        index = min(self.calls, len(self.snapshots) - 1)
        self.calls += 1
        return list(self.snapshots[index])


def _recorder(monitor: DeviceMonitor) -> list[tuple[str, str]]:
    seen: list[tuple[str, str]] = []
    monitor.device_connected.subscribe(lambda d: seen.append(("connect", d.id)))
    monitor.device_disconnected.subscribe(lambda d: seen.append(("disconnect", d.id)))
    return seen


def test_poll_emits_set_differences():
    source = ScriptedSource(
        [_wired("A"), _wired("B")],
        [_wired("B"), _wired("C"), _wired("D")],
    )
    monitor = DeviceMonitor(source, poll_interval=60)
    seen = _recorder(monitor)

    monitor.poll()
    assert seen == [("connect", "A"), ("connect", "B")]

    seen.clear()
    monitor.poll()
    # All connects before disconnects; nothing for B
    assert seen == [("connect", "C"), ("connect", "D"), ("disconnect", "A")]


def test_unchanged_snapshot_emits_nothing():
    monitor = DeviceMonitor(ScriptedSource([_wired("A")]), poll_interval=60)
    seen = _recorder(monitor)
    monitor.poll()
    seen.clear()
    monitor.poll()
    monitor.poll()
    assert seen == []


def test_only_wired_ready_devices_are_tracked():
    source = ScriptedSource(
        [
            _wired("A"),
            _wired("PENDING", AuthState.PENDING_AUTHORIZATION),
            _wired("OFF", AuthState.UNREACHABLE),
            _wireless("10.0.0.5:5555"),
        ]
    )
    monitor = DeviceMonitor(source, poll_interval=60)
    seen = _recorder(monitor)

    monitor.poll()

    assert seen == [("connect", "A")]
    assert [d.id for d in monitor.current_devices()] == ["A"]


def test_device_becoming_authorized_counts_as_connect():
    source = ScriptedSource(
        [_wired("A", AuthState.PENDING_AUTHORIZATION)],
        [_wired("A")],
    )
    monitor = DeviceMonitor(source, poll_interval=60)
    seen = _recorder(monitor)
    monitor.poll()
    monitor.poll()
    assert seen == [("connect", "A")]


def test_start_polls_immediately_and_is_idempotent():
    source = ScriptedSource([_wired("A")])
    monitor = DeviceMonitor(source, poll_interval=60)
    seen = _recorder(monitor)

    monitor.start()
    monitor.start()
    try:
        assert monitor.is_running
        assert seen == [("connect", "A")]
        assert source.calls == 1
    finally:
        monitor.stop()
    assert not monitor.is_running


def test_stop_then_start_treats_present_devices_as_new():
    source = ScriptedSource([_wired("A"), _wired("B")])
    monitor = DeviceMonitor(source, poll_interval=60)
    seen = _recorder(monitor)

    monitor.start()
    monitor.stop()
    assert monitor.current_devices() == []

    seen.clear()
    monitor.start()
    monitor.stop()
    assert seen == [("connect", "A"), ("connect", "B")]


def test_stop_when_stopped_is_noop():
    monitor = DeviceMonitor(ScriptedSource([]), poll_interval=60)
    monitor.stop()
    assert not monitor.is_running


def test_source_error_does_not_break_polling():
    class Flaky:
        calls = 0

        def list_devices(self):
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("adb exploded")
            return [_wired("A")]

    monitor = DeviceMonitor(Flaky(), poll_interval=60)
    seen = _recorder(monitor)
    monitor.poll()
    monitor.poll()
    assert seen == [("connect", "A")]


def test_unsubscribe_stops_delivery():
    monitor = DeviceMonitor(ScriptedSource([_wired("A")], []), poll_interval=60)
    seen: list[str] = []
    unsubscribe = monitor.device_connected.subscribe(lambda d: seen.append(d.id))
    unsubscribe()
    monitor.poll()
    assert seen == []
