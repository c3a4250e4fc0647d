"""
ColorRouter Engine Events

Typed change notifications and the subscription registry that dispatches
them. The registry is instance-scoped: every engine owns one, so separate
engines never see each other's events.

Handlers run inline during the mutating call. A handler that raises is
logged and the remaining handlers still run.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from colorrouter.errors.aggregator import ErrorReport, KeyFailure

logger = logging.getLogger(__name__)


# =============================================================================
# EVENT TYPES
# =============================================================================

class EngineEventType(str, Enum):
    """Types of engine-level events."""
    CHANGE = "change"
    BATCH_COMPLETE = "batch_complete"
    BATCH_FAILED = "batch_failed"


@dataclass(frozen=True)
class ChangeEvent:
    """One key whose resolved value changed."""
    key: str
    old_value: Any
    new_value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


@dataclass
class BatchReport:
    """
    Outcome of a flush.

    `stage` is "sorting" when the batch could not be ordered (nothing was
    applied) and "resolving" otherwise.
    """
    changes: List[ChangeEvent] = field(default_factory=list)
    errors: List[KeyFailure] = field(default_factory=list)
    processed_keys: List[str] = field(default_factory=list)
    queued_keys: List[str] = field(default_factory=list)
    summary: str = ""
    stage: str = "resolving"
    error: Optional[Exception] = None
    error_report: Optional[ErrorReport] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def changed_keys(self) -> List[str]:
        return [c.key for c in self.changes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changes": [c.to_dict() for c in self.changes],
            "errors": [e.to_dict() for e in self.errors],
            "processed_keys": self.processed_keys,
            "queued_keys": self.queued_keys,
            "summary": self.summary,
            "stage": self.stage,
            "failed": self.failed,
            "error_report": self.error_report.to_dict() if self.error_report else None,
        }


ChangeHandler = Callable[[List[ChangeEvent]], None]
WatchHandler = Callable[[Any, Any], None]
BatchHandler = Callable[[BatchReport], None]


# =============================================================================
# SUBSCRIPTION REGISTRY
# =============================================================================

class SubscriptionRegistry:
    """
    Per-type handler lists plus per-key watchers.

    Usage:
        registry = SubscriptionRegistry()
        registry.subscribe(EngineEventType.CHANGE, handler)
        registry.watch("base.a", lambda new, old: ...)
        registry.emit(EngineEventType.CHANGE, [ChangeEvent(...)])
    """

    def __init__(self, max_history: int = 100):
        self._max_history = max_history
        self._handlers: Dict[EngineEventType, List[Callable[[Any], None]]] = {}
        self._watchers: Dict[str, List[WatchHandler]] = {}
        self._history: List[Tuple[EngineEventType, Any]] = []

    def subscribe(
        self,
        event_type: EngineEventType,
        handler: Callable[[Any], None],
    ) -> Callable[[], bool]:
        """
        Subscribe to events of a type.

        Returns:
            A callable that removes the subscription
        """
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            logger.debug(f"Subscribed handler to {event_type.value}")
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(
        self,
        event_type: EngineEventType,
        handler: Callable[[Any], None],
    ) -> bool:
        try:
            self._handlers.get(event_type, []).remove(handler)
            return True
        except ValueError:
            return False

    def watch(self, key: str, handler: WatchHandler) -> Callable[[], bool]:
        """Call `handler(new_value, old_value)` whenever `key` changes."""
        watchers = self._watchers.setdefault(key, [])
        if handler not in watchers:
            watchers.append(handler)
            logger.debug(f"Watching '{key}'")
        return lambda: self.unwatch(key, handler)

    def unwatch(self, key: str, handler: WatchHandler) -> bool:
        watchers = self._watchers.get(key)
        if not watchers or handler not in watchers:
            return False
        watchers.remove(handler)
        if not watchers:
            del self._watchers[key]
        return True

    def emit(self, event_type: EngineEventType, payload: Any) -> None:
        """Dispatch `payload` to every handler of `event_type`."""
        self._record(event_type, payload)
        logger.debug(f"Emitting {event_type.value}")

        for handler in list(self._handlers.get(event_type, [])):
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Handler failed for {event_type.value}: {e}")

    def emit_key_change(self, change: ChangeEvent) -> None:
        """Notify watchers of a single key."""
        for handler in list(self._watchers.get(change.key, [])):
            try:
                handler(change.new_value, change.old_value)
            except Exception as e:
                logger.error(f"Watcher failed for '{change.key}': {e}")

    def _record(self, event_type: EngineEventType, payload: Any) -> None:
        if self._max_history <= 0:
            return
        self._history.append((event_type, payload))
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

    def get_history(
        self,
        limit: int = 20,
        event_type: Optional[EngineEventType] = None,
    ) -> List[Tuple[EngineEventType, Any]]:
        history = self._history
        if event_type:
            history = [h for h in history if h[0] == event_type]
        return history[-limit:]

    @property
    def handler_count(self) -> int:
        count = sum(len(h) for h in self._handlers.values())
        count += sum(len(w) for w in self._watchers.values())
        return count
