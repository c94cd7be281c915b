"""
Unit tests for notification sinks.

Why: Sinks are the only place progress leaves the process; their payloads,
     failure handling and retry timing are what integrators depend on.

What: Tests console/file logging, Slack, dashboard, e-mail and generic
      webhook sinks plus the health monitor and metrics collector.

How: Uses aioresponses for HTTP endpoints and in-memory streams for logs.
"""

import io
import json
from unittest.mock import AsyncMock, patch

import pytest
from aioresponses import aioresponses
from yarl import URL

from scrum_master import __version__
from scrum_master.observers import (
    AlertThresholds,
    DashboardUpdater,
    EmailNotifier,
    EmailSettings,
    EventType,
    HealthMonitor,
    LogFileObserver,
    MetricsCollector,
    SlackNotifier,
    WebhookNotifier,
    format_log_entry,
)

SLACK_URL = "https://hooks.slack.test/services/T000/B000/XXX"
DASHBOARD_URL = "https://dashboard.test"
WEBHOOK_URL = "https://hooks.example.test/scrum"


def sent_payloads(mocked: aioresponses, url: str) -> list[dict]:
    calls = mocked.requests.get(("POST", URL(url)), [])
    return [json.loads(call.kwargs["data"]) for call in calls]


class TestLogFileObserver:
    """Tests for the line-per-event logger."""

    def test_format_log_entry(self, event_factory) -> None:
        event = event_factory(
            EventType.PROJECT_CREATED, "Project Creation", 30, "GitHub project created: X"
        )

        assert (
            format_log_entry(event)
            == "[PROJECT_CREATED] Project Creation - GitHub project created: X (30%)"
        )

    async def test_writes_line_to_stream(self, event_factory) -> None:
        stream = io.StringIO()
        observer = LogFileObserver(stream=stream)

        await observer.update(event_factory(EventType.ERROR, "Error", 0, "boom"))

        assert stream.getvalue() == "[ERROR] Error - boom (0%)\n"

    async def test_appends_timestamped_line_to_file(self, tmp_path, event_factory) -> None:
        """
        Why: The log file is the durable record of a run
        What: Each event appends ``<iso timestamp> <line>``
        How: Writes two events to a temp file and reads it back
        """
        log_file = tmp_path / "logs" / "scrum.log"
        observer = LogFileObserver(log_file, stream=io.StringIO())
        first = event_factory(message="one")

        await observer.update(first)
        await observer.update(event_factory(message="two"))

        lines = log_file.read_text().splitlines()
        assert len(lines) == 2
        assert lines[0] == f"{first.timestamp.isoformat()} {format_log_entry(first)}"
        assert lines[1].endswith("Testing - two (50%)")

    async def test_unwritable_file_does_not_raise(self, tmp_path, event_factory) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        stream = io.StringIO()
        observer = LogFileObserver(blocker / "scrum.log", stream=stream)

        await observer.update(event_factory())

        assert stream.getvalue()


class TestSlackNotifier:
    def test_disabled_without_url(self) -> None:
        assert not SlackNotifier(None).is_enabled()

    def test_format_message(self, event_factory) -> None:
        notifier = SlackNotifier(SLACK_URL)
        message = notifier.format_message(
            event_factory(EventType.PROJECT_CREATED, "Project Creation", 30, "Created X")
        )

        assert message["channel"] == "#scrum-updates"
        assert message["username"] == "Scrum Master Bot"
        assert message["text"] == ":dart: Created X"
        attachment = message["attachments"][0]
        assert attachment["color"] == "good"
        assert attachment["fields"][0] == {
            "title": "Phase",
            "value": "Project Creation",
            "short": True,
        }
        assert attachment["fields"][1]["value"] == "30%"

    def test_unknown_event_uses_default_icon(self, event_factory) -> None:
        message = SlackNotifier(SLACK_URL).format_message(event_factory())

        assert message["text"].startswith(":loudspeaker:")
        assert message["attachments"][0]["color"] == "warning"

    async def test_posts_to_webhook(self, event_factory) -> None:
        notifier = SlackNotifier(SLACK_URL)
        with aioresponses() as mocked:
            mocked.post(SLACK_URL, status=200)
            await notifier.update(event_factory(EventType.COMPLETION, message="Done"))

            payloads = sent_payloads(mocked, SLACK_URL)

        assert payloads[0]["text"] == ":tada: Done"

    async def test_rejected_post_is_swallowed(self, event_factory) -> None:
        notifier = SlackNotifier(SLACK_URL)
        with aioresponses() as mocked:
            mocked.post(SLACK_URL, status=500)
            await notifier.update(event_factory())


class TestDashboardUpdater:
    async def test_posts_event_with_bearer_key(self, event_factory) -> None:
        """
        Why: The dashboard authenticates pushes with the configured API key
        What: Events go to ``/api/events`` with a Bearer header and metadata
        How: Captures the request made through aioresponses
        """
        updater = DashboardUpdater(DASHBOARD_URL + "/", "secret")
        url = f"{DASHBOARD_URL}/api/events"
        with aioresponses() as mocked:
            mocked.post(url, status=201)
            await updater.update(event_factory(EventType.PROJECT_CREATED, message="X"))

            call = mocked.requests[("POST", URL(url))][0]

        assert call.kwargs["headers"]["Authorization"] == "Bearer secret"
        payload = json.loads(call.kwargs["data"])
        assert payload["type"] == "project_created"
        assert payload["metadata"] == {"source": "scrum-master-bot", "version": __version__}
        epoch_ms, _, suffix = payload["id"].partition("-")
        assert epoch_ms.isdigit() and suffix

    def test_disabled_without_key(self) -> None:
        assert not DashboardUpdater(DASHBOARD_URL, None).is_enabled()


class TestEmailNotifier:
    @pytest.fixture
    def notifier(self) -> EmailNotifier:
        return EmailNotifier(
            EmailSettings(
                smtp_host="smtp.example.test",
                from_address="bot@example.test",
                recipients=["a@example.test", "b@example.test"],
            )
        )

    @pytest.mark.parametrize(
        "event_type,expected",
        [
            (EventType.PROJECT_CREATED, True),
            (EventType.ERROR, True),
            (EventType.COMPLETION, True),
            (EventType.PROGRESS, False),
            (EventType.ISSUES_CREATED, False),
        ],
    )
    def test_should_send_whitelist(self, event_factory, event_type, expected) -> None:
        assert EmailNotifier.should_send(event_factory(event_type)) is expected

    async def test_composes_message_for_whitelisted_event(
        self, notifier, event_factory
    ) -> None:
        await notifier.update(event_factory(EventType.COMPLETION, message="All done"))
        await notifier.update(event_factory(EventType.PROGRESS))

        assert len(notifier.sent_messages) == 1
        message = notifier.sent_messages[0]
        assert message["Subject"] == "Scrum Master: All done"
        assert message["To"] == "a@example.test, b@example.test"
        assert message["From"] == "bot@example.test"


class TestWebhookNotifier:
    async def test_default_payload_and_user_agent(self, event_factory) -> None:
        notifier = WebhookNotifier(WEBHOOK_URL, headers={"X-Token": "t"})
        with aioresponses() as mocked:
            mocked.post(WEBHOOK_URL, status=200)
            await notifier.update(event_factory(EventType.ISSUES_CREATED, message="9"))

            call = mocked.requests[("POST", URL(WEBHOOK_URL))][0]

        headers = call.kwargs["headers"]
        assert headers["User-Agent"] == f"Semi-Autonomous-Scrum-Master/{__version__}"
        assert headers["X-Token"] == "t"
        payload = json.loads(call.kwargs["data"])
        assert payload["event"]["type"] == "issues_created"
        assert payload["metadata"]["source"] == "semi-autonomous-scrum-master"
        assert notifier.get_stats()["success_count"] == 1

    async def test_retries_with_exponential_delay(self, event_factory) -> None:
        """
        Why: Transient endpoint failures should be retried with backoff
        What: Three attempts wait base and then 2*base seconds
        How: Two 500s then a 200, with asyncio.sleep patched
        """
        notifier = WebhookNotifier(WEBHOOK_URL, retries=3, retry_base_delay=0.5)
        sleep = AsyncMock()
        with aioresponses() as mocked, patch(
            "scrum_master.observers.sinks.asyncio.sleep", sleep
        ):
            mocked.post(WEBHOOK_URL, status=500)
            mocked.post(WEBHOOK_URL, status=503)
            mocked.post(WEBHOOK_URL, status=200)
            await notifier.update(event_factory())

        assert [call.args[0] for call in sleep.await_args_list] == [0.5, 1.0]
        assert notifier.get_stats() == {
            "success_count": 1,
            "failure_count": 0,
            "success_rate": 100.0,
        }

    async def test_exhausted_retries_count_one_failure(self, event_factory) -> None:
        notifier = WebhookNotifier(WEBHOOK_URL, retries=2, retry_base_delay=0)
        with aioresponses() as mocked:
            mocked.post(WEBHOOK_URL, status=400, repeat=True)
            await notifier.update(event_factory())

            attempts = len(mocked.requests[("POST", URL(WEBHOOK_URL))])

        assert attempts == 2
        assert notifier.get_stats()["failure_count"] == 1
        assert notifier.get_stats()["success_rate"] == 0

    async def test_filter_and_transformer(self, event_factory) -> None:
        notifier = WebhookNotifier(
            WEBHOOK_URL,
            event_filter=lambda e: e.type == EventType.ERROR,
            payload_transformer=lambda e: {"text": e.message},
        )
        with aioresponses() as mocked:
            mocked.post(WEBHOOK_URL, status=200)
            await notifier.update(event_factory(EventType.PROGRESS))
            await notifier.update(event_factory(EventType.ERROR, message="bad"))

            payloads = sent_payloads(mocked, WEBHOOK_URL)

        assert payloads == [{"text": "bad"}]

    async def test_raising_transformer_counts_failure(self, event_factory) -> None:
        def transformer(event):
            raise ValueError("nope")

        notifier = WebhookNotifier(WEBHOOK_URL, payload_transformer=transformer)
        await notifier.update(event_factory())

        assert notifier.get_stats()["failure_count"] == 1

    def test_reset_and_toggle(self) -> None:
        notifier = WebhookNotifier(WEBHOOK_URL)
        notifier.failure_count = 3
        notifier.reset()
        notifier.set_enabled(False)

        assert notifier.get_stats()["failure_count"] == 0
        assert not notifier.is_enabled()
        assert notifier.get_name() == f"WebhookNotifier({WEBHOOK_URL})"


class TestHealthMonitor:
    async def test_error_raises_both_alerts(self, event_factory) -> None:
        monitor = HealthMonitor(AlertThresholds(max_error_rate=10.0))

        await monitor.update(event_factory(EventType.PROGRESS))
        await monitor.update(event_factory(EventType.ERROR, message="boom"))

        metrics = monitor.get_health_metrics()
        assert metrics.total_events == 2
        assert metrics.error_events == 1
        assert metrics.error_rate == pytest.approx(50.0)
        assert [a.alert_type for a in monitor.alerts] == [
            "high_error_rate",
            "error_occurred",
        ]

    async def test_no_alerts_below_threshold(self, event_factory) -> None:
        monitor = HealthMonitor(AlertThresholds(max_error_rate=10.0))
        for _ in range(5):
            await monitor.update(event_factory())

        assert monitor.alerts == []
        assert monitor.get_health_metrics().average_progress == pytest.approx(50.0)

    async def test_metrics_snapshot_is_a_copy(self, event_factory) -> None:
        monitor = HealthMonitor()
        snapshot = monitor.get_health_metrics()
        await monitor.update(event_factory())

        assert snapshot.total_events == 0


class TestMetricsCollector:
    async def test_phase_durations_and_report(self, event_factory) -> None:
        """
        Why: Phase timing drives the performance section of the report
        What: A phase runs from its progress-0 event to progress 100
        How: Uses a fake clock so durations are deterministic
        """
        ticks = iter([0.0, 2.0, 10.0, 11.0])
        collector = MetricsCollector(clock=lambda: next(ticks))

        await collector.update(event_factory(phase="Slow", progress=0))
        await collector.update(event_factory(phase="Fast", progress=0))
        await collector.update(event_factory(phase="Slow", progress=100))
        await collector.update(event_factory(phase="Fast", progress=100))

        assert collector.phase_durations == {"Slow": 10.0, "Fast": 9.0}
        assert collector.fastest_phase == "Fast"
        assert collector.slowest_phase == "Slow"
        assert collector.overall_efficiency == pytest.approx(100.0)

        report = collector.generate_report()
        assert report.startswith("METRICS REPORT")
        assert "Completed Phases: 2" in report

    async def test_errors_reduce_efficiency(self, event_factory) -> None:
        collector = MetricsCollector(clock=lambda: 0.0)
        await collector.update(event_factory(phase="A", progress=0))
        await collector.update(event_factory(EventType.ERROR, phase="A", progress=0))

        assert collector.error_rate == pytest.approx(50.0)
        assert collector.overall_efficiency == 0.0

        collector.reset()
        assert collector.total_events == 0
        assert collector.fastest_phase == ""
