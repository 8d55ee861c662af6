"""Tests for bus module."""

from src.mountie.bus import EventBus, MonitorSignal


class TestEventBus:
    """Tests for EventBus class."""

    def test_publish_to_subscriber(self):
        bus = EventBus()
        received = []
        bus.subscribe(MonitorSignal.MOUNT, received.append)
        
        count = bus.publish(MonitorSignal.MOUNT, "payload")
        
        assert count == 1
        assert received == ["payload"]

    def test_only_matching_signal_delivered(self):
        bus = EventBus()
        received = []
        bus.subscribe(MonitorSignal.UNMOUNT, received.append)
        
        bus.publish(MonitorSignal.MOUNT, "payload")
        
        assert received == []

    def test_subscribers_called_in_registration_order(self):
        bus = EventBus()
        order = []
        bus.subscribe(MonitorSignal.ALL, lambda p: order.append("first"))
        bus.subscribe(MonitorSignal.ALL, lambda p: order.append("second"))
        
        bus.publish(MonitorSignal.ALL)
        
        assert order == ["first", "second"]

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        token = bus.subscribe(MonitorSignal.REFRESH, received.append)
        
        assert bus.unsubscribe(token) is True
        bus.publish(MonitorSignal.REFRESH)
        
        assert received == []
        assert len(bus) == 0

    def test_unsubscribe_unknown_token(self):
        bus = EventBus()
        assert bus.unsubscribe(12345) is False

    def test_failing_subscriber_does_not_block_others(self):
        bus = EventBus()
        received = []
        
        def broken(payload):
            raise RuntimeError("boom")
        
        bus.subscribe(MonitorSignal.CHANGED, broken)
        bus.subscribe(MonitorSignal.CHANGED, received.append)
        
        bus.publish(MonitorSignal.CHANGED, "x")
        
        assert received == ["x"]

    def test_subscriber_may_unsubscribe_during_publish(self):
        bus = EventBus()
        calls = []
        tokens = {}
        
        def once(payload):
            calls.append(payload)
            bus.unsubscribe(tokens["once"])
        
        tokens["once"] = bus.subscribe(MonitorSignal.ALL, once)
        bus.publish(MonitorSignal.ALL, 1)
        bus.publish(MonitorSignal.ALL, 2)
        
        assert calls == [1]

    def test_clear(self):
        bus = EventBus()
        bus.subscribe(MonitorSignal.MOUNT, lambda p: None)
        bus.subscribe(MonitorSignal.UNMOUNT, lambda p: None)
        
        bus.clear()
        
        assert len(bus) == 0
