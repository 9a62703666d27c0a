"""
Event Logger Module

Records every transform event of a run and reports progress to the user.

Features:
- One TransformEvent per renamed, re-encrypted, skipped or failed entry
- In-memory history that can be filtered by type
- Progress lines on stdout unless quiet
- Callbacks for other consumers (progress bars, tests)
- Compact JSON export for audit

Every event is also sent to the standard logging module at DEBUG level
(WARNING for failures), so a log file captures the run even in quiet mode.
"""

import json
import logging
import sys
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Callable, TextIO


logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

EVENT_VERSION = "1.0"


# ============================================================================
# Event Types
# ============================================================================

class EventType(Enum):
    """Types of transform events."""

    # Name events
    ENCRYPT_NAME = "encrypt_name"
    DECRYPT_NAME = "decrypt_name"

    # Content events
    ENCRYPT_CONTENT = "encrypt_content"
    DECRYPT_CONTENT = "decrypt_content"

    # Skips
    SKIP_TRANSFORMED = "skip_transformed"
    SKIP_PLAIN = "skip_plain"
    UNSUPPORTED = "unsupported"

    # Failures
    FAILED = "failed"


_MESSAGES = {
    EventType.ENCRYPT_NAME: "Encrypted: {name} -> {new_name}",
    EventType.DECRYPT_NAME: "Decrypted: {name} -> {new_name}",
    EventType.ENCRYPT_CONTENT: "File encrypt success: {path}",
    EventType.DECRYPT_CONTENT: "File decrypt success: {path}",
    EventType.SKIP_TRANSFORMED: "Skipping already encrypted name: {name}",
    EventType.SKIP_PLAIN: "Skipping non-encrypted name: {name}",
    EventType.UNSUPPORTED: "Skipping unsupported entry: {path}",
    EventType.FAILED: "Error: {path}: {error}",
}


# ============================================================================
# Event Structure
# ============================================================================

@dataclass
class TransformEvent:
    """
    A single thing that happened to one entry during a run.
    """
    event_type: EventType
    path: str
    timestamp: float
    new_path: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return _basename(self.path)

    @property
    def new_name(self) -> Optional[str]:
        return _basename(self.new_path) if self.new_path else None

    def message(self) -> str:
        """Human-readable progress line."""
        return _MESSAGES[self.event_type].format(
            name=self.name,
            new_name=self.new_name,
            path=self.path,
            error=self.details.get('error', ''),
        )

    def to_json(self) -> str:
        """Serialize event to a compact JSON string."""
        return json.dumps({
            'version': EVENT_VERSION,
            'type': self.event_type.value,
            'path': self.path,
            'new_path': self.new_path,
            'time': self.timestamp,
            'iso_time': datetime.fromtimestamp(self.timestamp).isoformat(),
            'details': self.details,
        }, separators=(',', ':'))

    @classmethod
    def from_json(cls, json_str: str) -> 'TransformEvent':
        """Parse an event from its JSON form."""
        data = json.loads(json_str)
        return cls(
            event_type=EventType(data['type']),
            path=data['path'],
            timestamp=data['time'],
            new_path=data.get('new_path'),
            details=data.get('details', {}),
        )

    def __str__(self) -> str:
        dt = datetime.fromtimestamp(self.timestamp)
        return f"[{dt.strftime('%Y-%m-%d %H:%M:%S')}] {self.event_type.value} | {self.message()}"


def _basename(path: str) -> str:
    return path.rstrip('/\\').replace('\\', '/').rsplit('/', 1)[-1]


# ============================================================================
# Event Logger
# ============================================================================

class EventLogger:
    """
    Thread-safe recorder of transform events.

    Worker threads call the log_* methods concurrently; history, progress
    output and callbacks are serialized by one lock.
    """

    def __init__(self, quiet: bool = False, stream: Optional[TextIO] = None):
        """
        Initialize the event logger.

        Args:
            quiet: Do not print progress lines
            stream: Where progress lines go (default: sys.stdout at print time)
        """
        self._quiet = quiet
        self._stream = stream
        self._events: List[TransformEvent] = []
        self._callbacks: List[Callable[[TransformEvent], None]] = []
        self._lock = threading.Lock()

    @property
    def quiet(self) -> bool:
        return self._quiet

    def _add_event(self, event: TransformEvent) -> TransformEvent:
        """Record, report and dispatch one event."""
        level = logging.WARNING if event.event_type is EventType.FAILED else logging.DEBUG
        logger.log(level, "%s: %s", event.event_type.value, event.message())

        with self._lock:
            self._events.append(event)
            if not self._quiet:
                print(event.message(), file=self._stream or sys.stdout)
            callbacks = list(self._callbacks)

        for callback in callbacks:
            callback(event)
        return event

    def _new_event(self, event_type: EventType, path: str,
                   new_path: Optional[str] = None, **details) -> TransformEvent:
        return self._add_event(TransformEvent(
            event_type=event_type,
            path=str(path),
            timestamp=time.time(),
            new_path=str(new_path) if new_path is not None else None,
            details=details,
        ))

    def add_callback(self, callback: Callable[[TransformEvent], None]) -> None:
        """Add a callback to be notified of new events."""
        with self._lock:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[TransformEvent], None]) -> None:
        """Remove a callback."""
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    # ========================================================================
    # Name Events
    # ========================================================================

    def log_rename(self, path: str, new_path: str, encrypt: bool,
                   is_container: bool) -> TransformEvent:
        """Log a committed name transform."""
        event_type = EventType.ENCRYPT_NAME if encrypt else EventType.DECRYPT_NAME
        kind = 'dir' if is_container else 'file'
        return self._new_event(event_type, path, new_path, kind=kind)

    def log_skip(self, path: str, encrypt: bool) -> TransformEvent:
        """
        Log a name left alone by the suffix check.

        Args:
            path: Entry path
            encrypt: True when encrypting (name already transformed),
                False when decrypting (name not transformed)
        """
        event_type = EventType.SKIP_TRANSFORMED if encrypt else EventType.SKIP_PLAIN
        return self._new_event(event_type, path)

    # ========================================================================
    # Content Events
    # ========================================================================

    def log_content(self, path: str, encrypt: bool,
                    input_size: int = 0, output_size: int = 0) -> TransformEvent:
        """Log a committed content transform."""
        event_type = EventType.ENCRYPT_CONTENT if encrypt else EventType.DECRYPT_CONTENT
        return self._new_event(event_type, path,
                               input_size=input_size, output_size=output_size)

    # ========================================================================
    # Problems
    # ========================================================================

    def log_unsupported(self, path: str) -> TransformEvent:
        """Log an entry that is neither a file nor a directory."""
        return self._new_event(EventType.UNSUPPORTED, path)

    def log_failure(self, path: str, error: Exception) -> TransformEvent:
        """Log a failed entry."""
        return self._new_event(EventType.FAILED, path,
                               error=getattr(error, 'message', str(error)),
                               error_type=type(error).__name__)

    # ========================================================================
    # Retrieval
    # ========================================================================

    def get_all_events(self) -> List[TransformEvent]:
        """All events, in the order they were recorded."""
        with self._lock:
            return list(self._events)

    def get_events_by_type(self, event_type: EventType) -> List[TransformEvent]:
        """Get all events of a specific type."""
        return [e for e in self.get_all_events() if e.event_type == event_type]

    def get_recent_events(self, count: int = 10) -> List[TransformEvent]:
        """Get the most recent events."""
        return self.get_all_events()[-count:]

    def counts(self) -> Dict[EventType, int]:
        """Number of events per type."""
        return dict(Counter(e.event_type for e in self.get_all_events()))

    def export_log(self) -> str:
        """Export all events as a JSON array."""
        return "[" + ",".join(e.to_json() for e in self.get_all_events()) + "]"
