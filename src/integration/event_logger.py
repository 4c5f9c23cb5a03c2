"""
Transfer Event Logger

Observer injected into the download and upload pipelines. Each pipeline
stage reports a TransferEvent; callers decide what to do with them
(print, forward to logging, assert on them in tests).

Features:
- Stage events for downloads and uploads
- Failure events carrying the stage and error type
- Callbacks notified synchronously, in registration order
- In-memory history for inspection

Events never carry passphrases or key material.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


# ============================================================================
# Event Types
# ============================================================================

class EventType(Enum):
    """Stages reported by the transfer pipelines."""

    # Download stages
    LOOKUP = "lookup"
    AUTH_CHECK = "auth_check"
    KEYS_RESOLVED = "keys_resolved"
    URL_RESOLVED = "url_resolved"
    FETCH = "fetch"
    DECRYPT = "decrypt"
    DELIVER = "deliver"

    # Upload stages
    POLICY = "policy"
    ENCRYPT = "encrypt"
    REGISTER = "register"
    TRANSMIT = "transmit"
    COMMIT = "commit"

    # Terminal
    DONE = "done"
    FAILED = "failed"


# ============================================================================
# Event Structure
# ============================================================================

@dataclass
class TransferEvent:
    """A single pipeline event."""
    event_type: EventType
    message: str
    timestamp: float
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.event_type.value,
            'message': self.message,
            'time': self.timestamp,
            'details': dict(self.details),
        }

    def __str__(self) -> str:
        dt = datetime.fromtimestamp(self.timestamp)
        return f"[{dt.strftime('%H:%M:%S')}] {self.event_type.value}: {self.message}"


# ============================================================================
# Event Logger
# ============================================================================

class EventLogger:
    """
    Collects transfer events and fans them out to callbacks.

    Example:
        >>> events = EventLogger()
        >>> events.add_callback(print)
        >>> download_file(gateway, "f-1", out, events=events)
    """

    def __init__(self, keep_history: bool = True):
        """
        Args:
            keep_history: Store events for get_all_events()
        """
        self._keep_history = keep_history
        self._events: List[TransferEvent] = []
        self._callbacks: List[Callable[[TransferEvent], None]] = []

    def emit(self, event_type: EventType, message: str, **details: Any) -> TransferEvent:
        """
        Record an event and notify callbacks.

        Args:
            event_type: Pipeline stage
            message: Human-readable description
            **details: Extra structured fields (ids, sizes)

        Returns:
            The recorded event
        """
        event = TransferEvent(
            event_type=event_type,
            message=message,
            timestamp=time.time(),
            details=details,
        )
        if self._keep_history:
            self._events.append(event)
        for callback in list(self._callbacks):
            callback(event)
        return event

    def add_callback(self, callback: Callable[[TransferEvent], None]) -> None:
        """Add a callback to be notified of new events."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[TransferEvent], None]) -> None:
        """Remove a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def get_all_events(self) -> List[TransferEvent]:
        return list(self._events)

    def get_events_by_type(self, event_type: EventType) -> List[TransferEvent]:
        return [e for e in self._events if e.event_type == event_type]

    def clear(self) -> None:
        self._events.clear()


def emit(events: Optional[EventLogger], event_type: EventType,
         message: str, **details: Any) -> None:
    """Emit on an optional logger; no-op when none is injected."""
    if events is not None:
        events.emit(event_type, message, **details)
