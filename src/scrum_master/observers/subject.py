"""Progress event bus.

``ProgressSubject`` keeps a registry of observers tagged with an explicit
``ObserverKind`` and a bounded history of the events it has broadcast.
Broadcasts run every enabled observer concurrently; a failing observer is
logged and never affects the others or the caller.
"""

import asyncio
import logging
import re
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime

from .events import EventType, ObserverKind, ProgressEvent, ProgressObserver

logger = logging.getLogger(__name__)

MAX_EVENT_HISTORY = 100


@dataclass(frozen=True)
class EventStatistics:
    """Aggregate view over the retained event history."""

    total_events: int = 0
    events_by_type: dict[str, int] = field(default_factory=dict)
    average_progress: float = 0.0
    error_rate: float = 0.0  # percent


@dataclass
class _Registration:
    observer: ProgressObserver
    kind: ObserverKind


class ProgressSubject:
    """Broadcasts progress events to registered observers."""

    def __init__(self, history_size: int = MAX_EVENT_HISTORY) -> None:
        self._registrations: list[_Registration] = []
        self._event_history: deque[ProgressEvent] = deque(maxlen=history_size)

    def add_observer(
        self, observer: ProgressObserver, kind: ObserverKind | None = None
    ) -> None:
        """Register an observer; registering the same instance twice is a no-op.

        Args:
            observer: Observer to register
            kind: Capability tag; defaults to the observer's declared ``kind``
        """
        if any(reg.observer is observer for reg in self._registrations):
            return
        declared = kind or getattr(observer, "kind", ObserverKind.CUSTOM)
        resolved = ObserverKind(declared)
        self._registrations.append(_Registration(observer, resolved))
        logger.info(f"Added observer: {observer.get_name()} ({resolved.value})")

    def remove_observer(self, observer: ProgressObserver) -> None:
        """Unregister an observer; unknown observers are ignored."""
        for index, reg in enumerate(self._registrations):
            if reg.observer is observer:
                del self._registrations[index]
                logger.info(f"Removed observer: {observer.get_name()}")
                return

    async def notify_observers(self, event: ProgressEvent) -> None:
        """Record the event, then deliver it to every enabled observer.

        Returns only after every delivery has finished or failed.
        """
        self._event_history.append(event)

        targets = [reg.observer for reg in self._registrations]
        logger.debug(f"Notifying up to {len(targets)} observers: {event.message}")

        await asyncio.gather(
            *(self._notify_observer(observer, event) for observer in targets)
        )

    async def _notify_observer(
        self, observer: ProgressObserver, event: ProgressEvent
    ) -> None:
        try:
            if not observer.is_enabled():
                return
            await observer.update(event)
        except Exception:
            logger.exception(
                f"Observer {type(observer).__name__} failed to process event "
                f"{event.type.value}"
            )

    def get_event_history(self) -> list[ProgressEvent]:
        """Copy of the retained history, oldest first."""
        return list(self._event_history)

    def get_last_event(self) -> ProgressEvent | None:
        """Most recent event, if any."""
        return self._event_history[-1] if self._event_history else None

    def get_observer_count(self) -> int:
        """Number of registered observers, enabled or not."""
        return len(self._registrations)

    def get_observers_by_kind(self, kind: ObserverKind) -> list[ProgressObserver]:
        """Registered observers carrying the given capability tag."""
        return [reg.observer for reg in self._registrations if reg.kind == kind]

    def get_event_statistics(self) -> EventStatistics:
        """Counts, mean progress and error percentage over the history."""
        total = len(self._event_history)
        if total == 0:
            return EventStatistics()

        by_type = Counter(event.type.value for event in self._event_history)
        average = sum(event.progress for event in self._event_history) / total
        errors = by_type.get(EventType.ERROR.value, 0)
        return EventStatistics(
            total_events=total,
            events_by_type=dict(by_type),
            average_progress=average,
            error_rate=errors / total * 100,
        )

    def get_filtered_events(
        self,
        type: EventType | str | None = None,
        phase: str | None = None,
        min_progress: float | None = None,
        max_progress: float | None = None,
        since: datetime | None = None,
    ) -> list[ProgressEvent]:
        """Events matching every given criterion, in original order."""
        wanted_type = EventType(type) if type is not None else None

        def matches(event: ProgressEvent) -> bool:
            if wanted_type is not None and event.type != wanted_type:
                return False
            if phase is not None and event.phase != phase:
                return False
            if min_progress is not None and event.progress < min_progress:
                return False
            if max_progress is not None and event.progress > max_progress:
                return False
            if since is not None and event.timestamp < since:
                return False
            return True

        return [event for event in self._event_history if matches(event)]

    def set_observers_enabled(
        self, pattern: str | re.Pattern[str], enabled: bool
    ) -> int:
        """Toggle observers whose name matches a substring or compiled regex.

        Observers without a ``set_enabled`` method are left alone.

        Returns:
            Number of observers toggled
        """
        toggled = 0
        for reg in self._registrations:
            name = reg.observer.get_name()
            if isinstance(pattern, re.Pattern):
                matched = pattern.search(name) is not None
            else:
                matched = pattern in name
            setter = getattr(reg.observer, "set_enabled", None)
            if matched and callable(setter):
                setter(enabled)
                toggled += 1
        return toggled
