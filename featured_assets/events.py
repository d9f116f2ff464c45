"""
Event System Module

Closed set of ledger notifications and a publish/subscribe dispatcher.
Every successful ledger call produces exactly one EventPayload.
"""

from enum import Enum
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
import logging
from threading import RLock


class LedgerEvent(Enum):
    """Notifications emitted by the ledger"""

    # Asset class lifecycle
    CREATED = "Created"                        # [asset_id, owner]
    FORCE_CREATED = "ForceCreated"             # [asset_id, owner]
    DESTROYED = "Destroyed"                    # [asset_id]
    OWNER_CHANGED = "OwnerChanged"             # [asset_id, owner]
    MAX_ZOMBIES_CHANGED = "MaxZombiesChanged"  # [asset_id, max_zombies]
    METADATA_SET = "MetadataSet"               # [asset_id, name, symbol, decimals]
    ASSET_FROZEN = "AssetFrozen"               # [asset_id]
    ASSET_THAWED = "AssetThawed"               # [asset_id]

    # Balances
    ISSUED = "Issued"                          # [asset_id, owner, amount]
    BURNED = "Burned"                          # [asset_id, owner, amount]
    TRANSFERRED = "Transferred"                # [asset_id, from, to, amount]
    FORCE_TRANSFERRED = "ForceTransferred"     # [asset_id, from, to, amount]

    # Account flags
    FROZEN = "Frozen"                          # [asset_id, who]
    THAWED = "Thawed"                          # [asset_id, who]


@dataclass
class EventPayload:
    """Payload for ledger events"""
    event_type: LedgerEvent
    asset_id: int
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'asset_id': self.asset_id,
            'data': self.data,
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventPayload':
        """Create from dictionary"""
        return cls(
            event_type=LedgerEvent(data['event_type']),
            asset_id=data['asset_id'],
            data=data['data'],
            timestamp=datetime.fromisoformat(data['timestamp']) if isinstance(data['timestamp'], str) else data['timestamp'],
            event_id=data['event_id']
        )


def _handler_name(handler: Callable) -> str:
    return getattr(handler, '__name__', repr(handler))


class EventDispatcher:
    """Central publish/subscribe event dispatcher"""

    def __init__(self):
        self._handlers: Dict[LedgerEvent, List[Callable]] = {}
        self._global_handlers: List[Callable] = []  # catch-all handlers
        self._lock = RLock()
        self.logger = logging.getLogger("featured_assets.events")

    def subscribe(self, event_type: LedgerEvent, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_handler_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_handler_name(handler)}")

    def unsubscribe(self, event_type: LedgerEvent, handler: Callable) -> None:
        """Unsubscribe from a specific event type"""
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
                self.logger.debug(f"Unsubscribed handler {_handler_name(handler)} from {event_type.value}")
            except ValueError:
                self.logger.warning(f"Handler {_handler_name(handler)} was not subscribed to {event_type.value}")

    def unsubscribe_all(self, handler: Callable) -> None:
        """Unsubscribe from all events"""
        with self._lock:
            try:
                self._global_handlers.remove(handler)
                self.logger.debug(f"Unsubscribed global handler {_handler_name(handler)}")
            except ValueError:
                self.logger.warning(f"Global handler {_handler_name(handler)} was not subscribed")

    def publish(self, event: EventPayload) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            self.logger.debug(f"Publishing event {event.event_type.value} for asset:{event.asset_id}")

            for handler in list(self._handlers.get(event.event_type, [])):
                try:
                    handler(event)
                except Exception as e:
                    # Log but don't break the main operation
                    self.logger.error(f"Error in event handler {_handler_name(handler)} for {event.event_type.value}: {e}")

            for handler in list(self._global_handlers):
                try:
                    handler(event)
                except Exception as e:
                    self.logger.error(f"Error in global event handler {_handler_name(handler)} for {event.event_type.value}: {e}")

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
            self.logger.info("All event handlers cleared")

    def get_handler_count(self, event_type: Optional[LedgerEvent] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)


class EventLog:
    """Bounded in-memory record of published events, subscribed as a global handler"""

    def __init__(self, max_events: int = 10000):
        self.max_events = max_events
        self._events: List[EventPayload] = []
        self._lock = RLock()

    def __call__(self, event: EventPayload) -> None:
        with self._lock:
            self._events.append(event)
            if len(self._events) > self.max_events:
                del self._events[:len(self._events) - self.max_events]

    def events(self, asset_id: Optional[int] = None,
               event_type: Optional[LedgerEvent] = None) -> List[EventPayload]:
        """Recorded events, optionally filtered"""
        with self._lock:
            result = list(self._events)
        if asset_id is not None:
            result = [e for e in result if e.asset_id == asset_id]
        if event_type is not None:
            result = [e for e in result if e.event_type == event_type]
        return result

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


def asset_event(event_type: LedgerEvent, asset_id: int, **data: Any) -> EventPayload:
    """Create a ledger event whose data holds the given keyword fields"""
    return EventPayload(event_type=event_type, asset_id=asset_id, data=data)
