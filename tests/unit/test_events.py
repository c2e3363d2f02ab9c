"""Tests for the Signal pub/sub channel."""

from __future__ import annotations

from mirrorctl.events import Signal


def test_emit_in_subscription_order():
    signal: Signal[int] = Signal("numbers")
    seen = []
    signal.subscribe(lambda n: seen.append(("a", n)))
    signal.subscribe(lambda n: seen.append(("b", n)))

    signal.emit(1)

    assert seen == [("a", 1), ("b", 1)]


def test_unsubscribe():
    signal: Signal[int] = Signal("numbers")
    seen = []
    unsubscribe = signal.subscribe(seen.append)

    unsubscribe()
    unsubscribe()
    signal.emit(1)

    assert seen == []
    assert len(signal) == 0


def test_failing_subscriber_does_not_block_others(caplog):
    signal: Signal[str] = Signal("words")
    seen = []

    def broken(_: str) -> None:
        raise RuntimeError("subscriber bug")

    signal.subscribe(broken)
    signal.subscribe(seen.append)

    signal.emit("hello")

    assert seen == ["hello"]
    assert "Subscriber to 'words' failed" in caplog.text


def test_subscriber_may_unsubscribe_during_emit():
    signal: Signal[int] = Signal("numbers")
    seen = []
    unsubscribe = None

    def once(n: int) -> None:
        seen.append(n)
        unsubscribe()

    unsubscribe = signal.subscribe(once)
    signal.emit(1)
    signal.emit(2)

    assert seen == [1]


def test_clear():
    signal: Signal[int] = Signal("numbers")
    signal.subscribe(lambda n: None)
    signal.clear()
    assert len(signal) == 0
