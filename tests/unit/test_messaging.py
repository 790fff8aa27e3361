#!/usr/bin/env python3
"""
Messaging Unit Tests

Tests for the in-memory event bus and its handlers.
"""

import json
import unittest
from unittest.mock import Mock

from smartpark.infrastructure.messaging import (
    EventBus, EventType, DomainEvent, EventHandler,
    LoggingEventHandler, RecordingEventHandler
)


class TestEventBus(unittest.TestCase):
    """Unit tests for EventBus"""

    def setUp(self):
        self.bus = EventBus()
        self.recorder = RecordingEventHandler()

    def test_publish_reaches_type_subscribers_only(self):
        self.bus.subscribe(EventType.VEHICLE_PARKED, self.recorder)

        self.bus.publish(DomainEvent(EventType.VEHICLE_PARKED, {"vehicle_id": 1}))
        self.bus.publish(DomainEvent(EventType.VEHICLE_EXITED, {"vehicle_id": 1}))

        self.assertEqual(len(self.recorder.events), 1)
        self.assertEqual(self.recorder.events[0].data["vehicle_id"], 1)

    def test_subscribe_all(self):
        self.bus.subscribe_all(self.recorder)
        for event_type in EventType:
            self.assertEqual(self.bus.subscriber_count(event_type), 1)

    def test_duplicate_subscription_ignored(self):
        self.bus.subscribe(EventType.VEHICLE_QUEUED, self.recorder)
        self.bus.subscribe(EventType.VEHICLE_QUEUED, self.recorder)
        self.assertEqual(self.bus.subscriber_count(EventType.VEHICLE_QUEUED), 1)

    def test_unsubscribe(self):
        self.bus.subscribe(EventType.VEHICLE_QUEUED, self.recorder)
        self.bus.unsubscribe(EventType.VEHICLE_QUEUED, self.recorder)
        self.bus.unsubscribe(EventType.VEHICLE_QUEUED, self.recorder)
        self.assertEqual(self.bus.subscriber_count(EventType.VEHICLE_QUEUED), 0)

    def test_failing_handler_does_not_stop_others(self):
        failing = Mock(spec=EventHandler)
        failing.can_handle.return_value = True
        failing.handle.side_effect = RuntimeError("boom")

        self.bus.subscribe(EventType.EMERGENCY_RESET, failing)
        self.bus.subscribe(EventType.EMERGENCY_RESET, self.recorder)

        with self.assertLogs("EventBus", level="ERROR"):
            self.bus.publish(DomainEvent(EventType.EMERGENCY_RESET))

        failing.handle.assert_called_once()
        self.assertEqual(len(self.recorder.events), 1)


class TestHandlers(unittest.TestCase):

    def test_recording_handler_bounded(self):
        recorder = RecordingEventHandler(max_events=2)
        for vehicle_id in range(3):
            recorder.handle(DomainEvent(EventType.VEHICLE_PARKED, {"vehicle_id": vehicle_id}))

        self.assertEqual([e.data["vehicle_id"] for e in recorder.events], [1, 2])
        self.assertEqual(recorder.recent(1)[0].data["vehicle_id"], 2)
        self.assertEqual(len(recorder.of_type(EventType.VEHICLE_PARKED)), 2)

        recorder.clear()
        self.assertEqual(recorder.events, [])

    def test_logging_handler(self):
        handler = LoggingEventHandler()
        with self.assertLogs("smartpark.audit", level="INFO") as logs:
            handler.handle(DomainEvent(EventType.VEHICLE_QUEUED, {"vehicle_id": 4, "position": 1}))
        self.assertIn("vehicle_queued", logs.output[0])

    def test_event_serialization(self):
        event = DomainEvent(EventType.VEHICLE_EXITED, {"vehicle_id": 2, "fee": "50"}, source="test")
        data = json.loads(event.to_json())
        self.assertEqual(data["event_type"], "vehicle_exited")
        self.assertEqual(data["data"]["fee"], "50")
        self.assertEqual(data["source"], "test")


if __name__ == '__main__':
    unittest.main()
