"""
Unit tests for the progress event bus.

Why: Every workflow step reports through ProgressSubject, so registration,
     history retention, statistics and fault isolation must be reliable.

What: Tests observer registration, broadcast, bounded history, filtering,
      statistics and enable/disable by name.

How: Uses in-memory recording observers; no network or file I/O.
"""

import re
from datetime import UTC, datetime, timedelta

import pytest

from scrum_master.observers import (
    MAX_EVENT_HISTORY,
    EventType,
    ObserverKind,
    ProgressEvent,
    ProgressObserver,
    ProgressSubject,
)


class FailingObserver(ProgressObserver):
    async def update(self, event: ProgressEvent) -> None:
        raise RuntimeError("sink exploded")

    def get_name(self) -> str:
        return "Failing"

    def is_enabled(self) -> bool:
        return True


class BrokenFlagObserver(FailingObserver):
    def is_enabled(self) -> bool:
        raise RuntimeError("bad flag")


class TestObserverRegistration:
    """Tests for add/remove and kind tagging."""

    def test_add_observer_is_idempotent(self, observer_factory) -> None:
        """
        Why: Re-registering the same sink must not duplicate deliveries
        What: Adding the same instance twice keeps one registration
        How: Adds twice and checks the observer count
        """
        subject = ProgressSubject()
        observer = observer_factory()

        subject.add_observer(observer)
        subject.add_observer(observer)

        assert subject.get_observer_count() == 1

    def test_equal_but_distinct_observers_both_register(self, observer_factory) -> None:
        subject = ProgressSubject()
        subject.add_observer(observer_factory("Same"))
        subject.add_observer(observer_factory("Same"))

        assert subject.get_observer_count() == 2

    def test_remove_unknown_observer_is_ignored(self, observer_factory) -> None:
        subject = ProgressSubject()
        subject.add_observer(observer_factory())

        subject.remove_observer(observer_factory())

        assert subject.get_observer_count() == 1

    def test_get_observers_by_kind_uses_explicit_tag(self, observer_factory) -> None:
        """
        Why: Lookups by capability must not depend on observer names
        What: The kind given at registration wins over the declared default
        How: Registers two observers with different tags and queries each tag
        """
        subject = ProgressSubject()
        chat = observer_factory("chat")
        custom = observer_factory("custom")
        subject.add_observer(chat, ObserverKind.CHAT)
        subject.add_observer(custom)

        assert subject.get_observers_by_kind(ObserverKind.CHAT) == [chat]
        assert subject.get_observers_by_kind(ObserverKind.CUSTOM) == [custom]
        assert subject.get_observers_by_kind(ObserverKind.EMAIL) == []


class TestNotification:
    """Tests for broadcast behaviour."""

    async def test_enabled_observers_receive_event(
        self, observer_factory, event_factory
    ) -> None:
        subject = ProgressSubject()
        enabled = observer_factory("on")
        disabled = observer_factory("off", enabled=False)
        subject.add_observer(enabled)
        subject.add_observer(disabled)

        event = event_factory()
        await subject.notify_observers(event)

        assert enabled.events == [event]
        assert disabled.events == []
        assert subject.get_last_event() is event

    async def test_failing_observer_does_not_affect_others(
        self, observer_factory, event_factory
    ) -> None:
        """
        Why: One broken sink must never stop the workflow or other sinks
        What: Exceptions raised by an observer are contained
        How: Registers a raising observer next to a recording one
        """
        subject = ProgressSubject()
        recorder = observer_factory()
        subject.add_observer(FailingObserver())
        subject.add_observer(recorder)

        await subject.notify_observers(event_factory())

        assert len(recorder.events) == 1
        assert len(subject.get_event_history()) == 1

    async def test_raising_enabled_check_does_not_affect_others(
        self, observer_factory, event_factory
    ) -> None:
        """
        Why: A sink can fail before delivery even starts
        What: An is_enabled that raises skips only that observer
        How: Registers it ahead of a recording observer and broadcasts
        """
        subject = ProgressSubject()
        recorder = observer_factory()
        subject.add_observer(BrokenFlagObserver())
        subject.add_observer(recorder)

        await subject.notify_observers(event_factory())

        assert len(recorder.events) == 1
        assert len(subject.get_event_history()) == 1

    async def test_history_keeps_only_most_recent_events(self, event_factory) -> None:
        """
        Why: Long-running engines must not grow history without bound
        What: History is capped at the most recent MAX_EVENT_HISTORY events
        How: Publishes 150 events and checks which survive
        """
        subject = ProgressSubject()
        for i in range(150):
            await subject.notify_observers(event_factory(message=f"event {i}"))

        history = subject.get_event_history()
        assert len(history) == MAX_EVENT_HISTORY
        assert history[0].message == "event 50"
        assert history[-1].message == "event 149"

    async def test_history_is_a_copy(self, event_factory) -> None:
        subject = ProgressSubject()
        await subject.notify_observers(event_factory())

        subject.get_event_history().clear()

        assert len(subject.get_event_history()) == 1


class TestStatisticsAndFiltering:
    """Tests for history queries."""

    async def test_statistics_on_empty_history(self) -> None:
        stats = ProgressSubject().get_event_statistics()

        assert stats.total_events == 0
        assert stats.events_by_type == {}
        assert stats.average_progress == 0
        assert stats.error_rate == 0

    async def test_statistics_counts_and_error_rate(self, event_factory) -> None:
        subject = ProgressSubject()
        await subject.notify_observers(event_factory(EventType.PROGRESS, progress=20))
        await subject.notify_observers(event_factory(EventType.PROGRESS, progress=40))
        await subject.notify_observers(event_factory(EventType.ERROR, progress=0))
        await subject.notify_observers(event_factory(EventType.COMPLETION, progress=100))

        stats = subject.get_event_statistics()

        assert stats.total_events == 4
        assert stats.events_by_type == {"progress": 2, "error": 1, "completion": 1}
        assert stats.average_progress == pytest.approx(40.0)
        assert stats.error_rate == pytest.approx(25.0)

    async def test_filter_by_phase_and_progress(self, event_factory) -> None:
        """
        Why: Callers inspect history by phase and progress windows
        What: All criteria apply together and original order is kept
        How: Publishes phases A/B/A at 25/75/25 and filters
        """
        subject = ProgressSubject()
        await subject.notify_observers(event_factory(phase="A", progress=25, message="1"))
        await subject.notify_observers(event_factory(phase="B", progress=75, message="2"))
        await subject.notify_observers(event_factory(phase="A", progress=25, message="3"))

        phase_a = subject.get_filtered_events(phase="A")
        high = subject.get_filtered_events(min_progress=50)
        low_a = subject.get_filtered_events(phase="A", max_progress=30)

        assert [e.message for e in phase_a] == ["1", "3"]
        assert [e.message for e in high] == ["2"]
        assert [e.message for e in low_a] == ["1", "3"]

    async def test_filter_by_type_and_since(self, event_factory) -> None:
        subject = ProgressSubject()
        await subject.notify_observers(event_factory(EventType.ERROR, message="old"))
        await subject.notify_observers(event_factory(EventType.PROGRESS))

        assert [e.message for e in subject.get_filtered_events(type="error")] == ["old"]
        future = datetime.now(UTC) + timedelta(hours=1)
        assert subject.get_filtered_events(since=future) == []


class TestEnableByName:
    def test_set_observers_enabled_by_substring(self, observer_factory) -> None:
        subject = ProgressSubject()
        first = observer_factory("WebhookNotifier(a)")
        second = observer_factory("WebhookNotifier(b)")
        other = observer_factory("FileLogger")
        for observer in (first, second, other):
            subject.add_observer(observer)

        toggled = subject.set_observers_enabled("Webhook", False)

        assert toggled == 2
        assert not first.is_enabled()
        assert not second.is_enabled()
        assert other.is_enabled()

    def test_set_observers_enabled_by_regex(self, observer_factory) -> None:
        subject = ProgressSubject()
        observer = observer_factory("FileLogger")
        subject.add_observer(observer)

        assert subject.set_observers_enabled(re.compile(r"^File"), False) == 1
        assert not observer.is_enabled()
