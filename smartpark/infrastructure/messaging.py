# File: smartpark/infrastructure/messaging.py
"""
Messaging Infrastructure for the SmartPark Allocation Engine

This module implements in-process event publishing:
1. Event Types - what the service announces after each state change
2. Domain Event messages - immutable payloads with id and timestamp
3. Event Handlers - subscribers reacting to events
4. Event Bus - synchronous publish/subscribe within the process

Handlers run after the service has finished mutating its state. A failing
handler is logged and skipped; it can never undo or abort an operation.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, List, Any
from datetime import datetime
import logging
import json
from dataclasses import dataclass, asdict, field
from enum import Enum
from uuid import UUID, uuid4


# ============================================================================
# MESSAGE TYPES AND ENUMS
# ============================================================================

class EventType(str, Enum):
    """Domain event types"""
    VEHICLE_PARKED = "vehicle_parked"
    VEHICLE_QUEUED = "vehicle_queued"
    VEHICLE_EXITED = "vehicle_exited"
    VEHICLE_PROMOTED = "vehicle_promoted"
    VEHICLE_LEFT_QUEUE = "vehicle_left_queue"
    MONTHLY_PASS_REGISTERED = "monthly_pass_registered"
    EMERGENCY_RESET = "emergency_reset"


# ============================================================================
# MESSAGE BASE CLASSES
# ============================================================================

@dataclass(frozen=True)
class DomainEvent:
    """Domain event message"""
    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=datetime.now)
    message_id: UUID = field(default_factory=uuid4)
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        data = asdict(self)
        data['event_type'] = self.event_type.value
        data['occurred_at'] = self.occurred_at.isoformat()
        data['message_id'] = str(self.message_id)
        return data

    def to_json(self) -> str:
        """Convert event to JSON string"""
        return json.dumps(self.to_dict(), default=str)


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        """Handle a domain event"""
        pass

    def can_handle(self, event: DomainEvent) -> bool:
        """Check if this handler can handle the event"""
        return True


class LoggingEventHandler(EventHandler):
    """Writes every event to the audit logger"""

    def __init__(self, logger_name: str = "smartpark.audit"):
        self._logger = logging.getLogger(logger_name)

    def handle(self, event: DomainEvent) -> None:
        self._logger.info(f"{event.event_type.value}: {json.dumps(event.data, default=str)}")


class RecordingEventHandler(EventHandler):
    """Keeps the most recent events in memory"""

    def __init__(self, max_events: int = 100):
        self.max_events = max_events
        self.events: List[DomainEvent] = []

    def handle(self, event: DomainEvent) -> None:
        self.events.append(event)
        if len(self.events) > self.max_events:
            del self.events[:len(self.events) - self.max_events]

    def of_type(self, event_type: EventType) -> List[DomainEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def recent(self, limit: int = 10) -> List[DomainEvent]:
        """Most recent events, newest first"""
        return list(reversed(self.events[-limit:]))

    def clear(self) -> None:
        self.events.clear()


# ============================================================================
# EVENT BUS (In-memory)
# ============================================================================

class EventBus:
    """
    In-memory event bus for intra-process event publishing

    Implements publish/subscribe pattern within the same process.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to events of a specific type"""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []

        if handler not in self._subscribers[event_type]:
            self._subscribers[event_type].append(handler)
            self._logger.debug(f"Subscribed {handler.__class__.__name__} to {event_type.value}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe a handler to every event type"""
        for event_type in EventType:
            self.subscribe(event_type, handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe handler from events"""
        if event_type in self._subscribers:
            try:
                self._subscribers[event_type].remove(handler)
                self._logger.debug(f"Unsubscribed {handler.__class__.__name__} from {event_type.value}")
            except ValueError:
                pass

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers"""
        self._logger.debug(f"Publishing event: {event.event_type.value} (ID: {event.message_id})")

        for handler in list(self._subscribers.get(event.event_type, [])):
            if handler.can_handle(event):
                try:
                    handler.handle(event)
                except Exception as e:
                    self._logger.error(
                        f"Error handling event {event.event_type.value} with {handler.__class__.__name__}: {e}",
                        exc_info=True
                    )

    def subscriber_count(self, event_type: EventType) -> int:
        return len(self._subscribers.get(event_type, []))

    def clear_subscribers(self) -> None:
        """Clear all subscribers (for testing)"""
        self._subscribers.clear()
