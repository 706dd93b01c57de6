"""Tests for the notification registry."""

from __future__ import annotations

import pytest

from frameclient.events import EventEmitter, Signal


class TestEventEmitter:
    def test_emit_calls_subscribers(self):
        emitter = EventEmitter()
        received = []
        emitter.on(Signal.FAVORITE_CHANGED, lambda cid, on: received.append((cid, on)))
        emitter.emit(Signal.FAVORITE_CHANGED, "MY_F0001", True)
        assert received == [("MY_F0001", True)]

    def test_subscribe_by_name(self):
        emitter = EventEmitter()
        received = []
        emitter.on("api_version", received.append)
        emitter.emit(Signal.API_VERSION, "4.3")
        assert received == ["4.3"]

    def test_unknown_name_rejected(self):
        with pytest.raises(ValueError):
            EventEmitter().on("not_a_signal", print)

    def test_off(self):
        emitter = EventEmitter()
        received = []
        cb = emitter.on(Signal.ERROR, received.append)
        emitter.off(Signal.ERROR, cb)
        emitter.off(Signal.ERROR, cb)
        emitter.emit(Signal.ERROR, "x")
        assert received == []

    def test_callback_error_does_not_propagate(self):
        emitter = EventEmitter()
        received = []
        emitter.on(Signal.ERROR, lambda _: 1 / 0)
        emitter.on(Signal.ERROR, received.append)
        emitter.emit(Signal.ERROR, "boom")
        assert received == ["boom"]

    def test_emit_without_subscribers(self):
        EventEmitter().emit(Signal.CONNECTION_CHANGED, True)
