"""Observer implementations that turn progress events into side effects.

Each sink handles its own failures: network errors and rejected requests are
logged and counted, never raised back into the event bus.
"""

import asyncio
import json
import logging
import random
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from email.message import EmailMessage
from pathlib import Path
from typing import Any, TextIO

import aiohttp

from .. import __version__
from ..exceptions import NotificationDeliveryError
from .events import EventType, ObserverKind, ProgressEvent, ProgressObserver, json_default

logger = logging.getLogger(__name__)

PAYLOAD_SOURCE = "semi-autonomous-scrum-master"
DEFAULT_WEBHOOK_TIMEOUT = 10.0

EVENT_ICONS = {
    EventType.PROJECT_CREATED: ":dart:",
    EventType.ISSUE_CREATED: ":clipboard:",
    EventType.SPRINT_SETUP: ":runner:",
    EventType.BOARD_UPDATED: ":bar_chart:",
    EventType.ERROR: ":x:",
    EventType.COMPLETION: ":tada:",
}
EVENT_COLORS = {
    EventType.PROJECT_CREATED: "good",
    EventType.ISSUE_CREATED: "good",
    EventType.SPRINT_SETUP: "good",
    EventType.BOARD_UPDATED: "good",
    EventType.ERROR: "danger",
    EventType.COMPLETION: "good",
}
EMAIL_EVENT_TYPES = frozenset(
    {EventType.PROJECT_CREATED, EventType.ERROR, EventType.COMPLETION}
)


def format_progress(progress: float) -> str:
    """Render a progress value without a trailing ``.0`` for whole numbers."""
    return f"{progress:g}"


def format_log_entry(event: ProgressEvent) -> str:
    """``[TYPE] phase - message (progress%)``."""
    return (
        f"[{event.type.value.upper()}] {event.phase} - {event.message} "
        f"({format_progress(event.progress)}%)"
    )


async def post_json(
    url: str,
    payload: Any,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_WEBHOOK_TIMEOUT,
) -> None:
    """POST a JSON document and fail on any non-2xx status.

    Raises:
        NotificationDeliveryError: If the endpoint answers with an error status
        aiohttp.ClientError: On transport failures
    """
    body = json.dumps(payload, default=json_default)
    request_headers = {"Content-Type": "application/json", **(headers or {})}
    async with aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=timeout)
    ) as session:
        async with session.post(url, data=body, headers=request_headers) as response:
            if response.status >= 400:
                raise NotificationDeliveryError(
                    f"HTTP {response.status}: {response.reason}",
                    {"url": url, "status": response.status},
                )


def _append_line(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(text)


class LogFileObserver(ProgressObserver):
    """Writes one line per event to a display stream and optionally a file.

    The display line is exactly ``format_log_entry(event)``; the file copy is
    prefixed with the event timestamp.
    """

    kind = ObserverKind.LOG

    def __init__(
        self, log_file: str | Path | None = None, stream: TextIO | None = None
    ) -> None:
        self.log_file = Path(log_file) if log_file else None
        self._stream = stream
        self._enabled = True

    async def update(self, event: ProgressEvent) -> None:
        line = format_log_entry(event)
        stream = self._stream or sys.stdout
        stream.write(line + "\n")
        stream.flush()

        if self.log_file is not None:
            try:
                await asyncio.to_thread(
                    _append_line, self.log_file, f"{event.timestamp.isoformat()} {line}\n"
                )
            except OSError as e:
                logger.error(f"Failed to write to log file {self.log_file}: {e}")

    def get_name(self) -> str:
        return "FileLogger"

    def is_enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled


class SlackNotifier(ProgressObserver):
    """Posts events to a Slack incoming webhook."""

    kind = ObserverKind.CHAT

    def __init__(
        self,
        webhook_url: str | None,
        channel: str = "#scrum-updates",
        username: str = "Scrum Master Bot",
        timeout: float = DEFAULT_WEBHOOK_TIMEOUT,
    ) -> None:
        self.webhook_url = webhook_url
        self.channel = channel
        self.username = username
        self.timeout = timeout
        self._enabled = bool(webhook_url)

    async def update(self, event: ProgressEvent) -> None:
        if not self._enabled or not self.webhook_url:
            return

        try:
            await post_json(self.webhook_url, self.format_message(event), timeout=self.timeout)
            logger.info(f"Slack notification sent: {event.message}")
        except (aiohttp.ClientError, TimeoutError, NotificationDeliveryError) as e:
            logger.error(f"Failed to send Slack notification: {e}")

    def format_message(self, event: ProgressEvent) -> dict[str, Any]:
        """Slack payload with an icon-prefixed text and one attachment."""
        icon = EVENT_ICONS.get(event.type, ":loudspeaker:")
        color = EVENT_COLORS.get(event.type, "warning")
        return {
            "channel": self.channel,
            "username": self.username,
            "text": f"{icon} {event.message}",
            "attachments": [
                {
                    "color": color,
                    "fields": [
                        {"title": "Phase", "value": event.phase, "short": True},
                        {
                            "title": "Progress",
                            "value": f"{format_progress(event.progress)}%",
                            "short": True,
                        },
                        {
                            "title": "Time",
                            "value": event.timestamp.strftime("%Y-%m-%d %H:%M:%S %Z"),
                            "short": True,
                        },
                    ],
                }
            ],
        }

    def get_name(self) -> str:
        return "SlackNotifier"

    def is_enabled(self) -> bool:
        return self._enabled


class DashboardUpdater(ProgressObserver):
    """Pushes events to a dashboard's ``/api/events`` endpoint. No retries."""

    kind = ObserverKind.DASHBOARD

    def __init__(
        self,
        dashboard_url: str | None,
        api_key: str | None,
        timeout: float = DEFAULT_WEBHOOK_TIMEOUT,
    ) -> None:
        self.dashboard_url = (dashboard_url or "").rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._enabled = bool(dashboard_url) and bool(api_key)

    async def update(self, event: ProgressEvent) -> None:
        if not self._enabled:
            return

        try:
            await post_json(
                f"{self.dashboard_url}/api/events",
                self.format_event(event),
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            logger.info(f"Dashboard updated: {event.message}")
        except (aiohttp.ClientError, TimeoutError, NotificationDeliveryError) as e:
            logger.error(f"Failed to update dashboard: {e}")

    def format_event(self, event: ProgressEvent) -> dict[str, Any]:
        """Dashboard record with a synthetic ``<epoch-ms>-<random>`` id."""
        return {
            "id": f"{int(time.time() * 1000)}-{random.random()}",  # nosec B311
            "type": event.type.value,
            "phase": event.phase,
            "progress": event.progress,
            "message": event.message,
            "timestamp": event.timestamp.isoformat(),
            "data": event.data,
            "metadata": {"source": "scrum-master-bot", "version": __version__},
        }

    def get_name(self) -> str:
        return "DashboardUpdater"

    def is_enabled(self) -> bool:
        return self._enabled


@dataclass
class EmailSettings:
    """SMTP settings for the e-mail notifier."""

    smtp_host: str
    from_address: str
    recipients: list[str] = field(default_factory=list)
    smtp_port: int = 587
    username: str | None = None
    password: str | None = None


class EmailNotifier(ProgressObserver):
    """Composes e-mails for milestone events.

    Only ``project_created``, ``error`` and ``completion`` produce a message.
    Messages are logged and kept in ``sent_messages``; no SMTP session is
    opened.
    """

    kind = ObserverKind.EMAIL

    def __init__(self, settings: EmailSettings) -> None:
        self.settings = settings
        self.sent_messages: list[EmailMessage] = []
        self._enabled = bool(settings.smtp_host) and bool(settings.from_address)

    @staticmethod
    def should_send(event: ProgressEvent) -> bool:
        """Whether the event type is on the e-mail whitelist."""
        return event.type in EMAIL_EVENT_TYPES

    async def update(self, event: ProgressEvent) -> None:
        if not self._enabled or not self.should_send(event):
            return

        message = self.compose(event)
        self.sent_messages.append(message)
        logger.info(
            f"Email would be sent to {message['To']}: {message['Subject']}"
        )

    def compose(self, event: ProgressEvent) -> EmailMessage:
        """Build the HTML notification for an event."""
        message = EmailMessage()
        message["From"] = self.settings.from_address
        message["To"] = ", ".join(self.settings.recipients)
        message["Subject"] = f"Scrum Master: {event.message}"
        data = json.dumps(event.data, default=json_default, indent=2)
        message.set_content(
            f"Phase: {event.phase}\n"
            f"Progress: {format_progress(event.progress)}%\n"
            f"Message: {event.message}\n"
            f"Time: {event.timestamp.isoformat()}\n"
        )
        message.add_alternative(
            "<h2>Scrum Master Notification</h2>"
            f"<p><strong>Phase:</strong> {event.phase}</p>"
            f"<p><strong>Progress:</strong> {format_progress(event.progress)}%</p>"
            f"<p><strong>Message:</strong> {event.message}</p>"
            f"<p><strong>Time:</strong> {event.timestamp.isoformat()}</p>"
            f"<pre>{data}</pre>",
            subtype="html",
        )
        return message

    def get_name(self) -> str:
        return "EmailNotifier"

    def is_enabled(self) -> bool:
        return self._enabled


class WebhookNotifier(ProgressObserver):
    """Generic webhook sink with filtering, payload shaping and retries.

    A delivery is attempted up to ``retries`` times; the wait before attempt
    ``n + 1`` is ``retry_base_delay * 2 ** (n - 1)`` seconds.
    """

    kind = ObserverKind.WEBHOOK

    def __init__(
        self,
        webhook_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_WEBHOOK_TIMEOUT,
        retries: int = 1,
        retry_base_delay: float = 1.0,
        payload_transformer: Callable[[ProgressEvent], Any] | None = None,
        event_filter: Callable[[ProgressEvent], bool] | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.headers = {"User-Agent": f"Semi-Autonomous-Scrum-Master/{__version__}"}
        self.headers.update(headers or {})
        self.timeout = timeout
        self.retries = max(1, retries)
        self.retry_base_delay = retry_base_delay
        self.payload_transformer = payload_transformer
        self.event_filter = event_filter
        self.success_count = 0
        self.failure_count = 0
        self._enabled = True

    async def update(self, event: ProgressEvent) -> None:
        try:
            if self.event_filter is not None and not self.event_filter(event):
                return
            if self.payload_transformer is not None:
                payload = self.payload_transformer(event)
            else:
                payload = self.default_payload(event)
        except Exception:
            self.failure_count += 1
            logger.exception(f"Webhook payload preparation failed for {self.webhook_url}")
            return

        last_error: Exception | None = None
        for attempt in range(1, self.retries + 1):
            try:
                await post_json(
                    self.webhook_url, payload, headers=self.headers, timeout=self.timeout
                )
            except (aiohttp.ClientError, TimeoutError, NotificationDeliveryError) as e:
                last_error = e
                if attempt < self.retries:
                    await asyncio.sleep(self.retry_base_delay * 2 ** (attempt - 1))
                continue
            self.success_count += 1
            logger.info(
                f"Webhook sent successfully to {self.webhook_url} (attempt {attempt})"
            )
            return

        self.failure_count += 1
        logger.error(f"Webhook failed for {self.webhook_url}: {last_error}")

    @staticmethod
    def default_payload(event: ProgressEvent) -> dict[str, Any]:
        """``{timestamp, event:{...}, metadata:{source, version}}``."""
        return {
            "timestamp": event.timestamp.isoformat(),
            "event": {
                "type": event.type.value,
                "phase": event.phase,
                "progress": event.progress,
                "message": event.message,
                "data": event.data,
            },
            "metadata": {"source": PAYLOAD_SOURCE, "version": __version__},
        }

    def get_stats(self) -> dict[str, float]:
        """Delivery counters and success rate in percent."""
        total = self.success_count + self.failure_count
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "success_rate": (self.success_count / total * 100) if total else 0.0,
        }

    def reset(self) -> None:
        self.success_count = 0
        self.failure_count = 0

    def get_name(self) -> str:
        return f"WebhookNotifier({self.webhook_url})"

    def is_enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled


@dataclass(frozen=True)
class AlertThresholds:
    """When the health monitor raises alerts."""

    max_error_rate: float = 10.0  # percent
    alert_on_error: bool = True
    max_execution_time: int | None = None  # minutes


@dataclass
class HealthMetrics:
    """Running health figures."""

    total_events: int = 0
    error_events: int = 0
    last_error_time: datetime | None = None
    average_progress: float = 0.0
    error_rate: float = 0.0


@dataclass(frozen=True)
class Alert:
    """One alert raised by the health monitor."""

    alert_type: str
    message: str


class HealthMonitor(ProgressObserver):
    """Tracks the error rate and raises alerts when it crosses a threshold."""

    kind = ObserverKind.HEALTH

    def __init__(self, thresholds: AlertThresholds | None = None) -> None:
        self.thresholds = thresholds or AlertThresholds()
        self.metrics = HealthMetrics()
        self.alerts: list[Alert] = []
        self._enabled = True

    async def update(self, event: ProgressEvent) -> None:
        if not self._enabled:
            return
        self._update_metrics(event)
        self._check_alerts(event)

    def _update_metrics(self, event: ProgressEvent) -> None:
        m = self.metrics
        m.total_events += 1
        if event.type == EventType.ERROR:
            m.error_events += 1
            m.last_error_time = event.timestamp
        m.error_rate = m.error_events / m.total_events * 100
        m.average_progress += (event.progress - m.average_progress) / m.total_events

    def _check_alerts(self, event: ProgressEvent) -> None:
        if self.metrics.error_rate > self.thresholds.max_error_rate:
            self._trigger_alert(
                "high_error_rate",
                f"Error rate {self.metrics.error_rate:.2f}% exceeds threshold",
            )
        if event.type == EventType.ERROR and self.thresholds.alert_on_error:
            self._trigger_alert("error_occurred", event.message)

    def _trigger_alert(self, alert_type: str, message: str) -> None:
        self.alerts.append(Alert(alert_type, message))
        logger.warning(f"ALERT [{alert_type}]: {message}")

    def get_health_metrics(self) -> HealthMetrics:
        """Snapshot copy of the running metrics."""
        return HealthMetrics(**vars(self.metrics))

    def get_name(self) -> str:
        return "HealthMonitor"

    def is_enabled(self) -> bool:
        return self._enabled


class MetricsCollector(ProgressObserver):
    """Per-phase timing and progress analytics.

    A phase starts on its first event at progress 0 and completes on an event
    at progress 100 or a ``completion`` event.
    """

    kind = ObserverKind.METRICS

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._enabled = True
        self.reset()

    def reset(self) -> None:
        self.total_events = 0
        self.error_count = 0
        self.completed_phases: set[str] = set()
        self.phase_start_times: dict[str, float] = {}
        self.phase_durations: dict[str, float] = {}
        self.progress_by_phase: dict[str, list[float]] = {}

    async def update(self, event: ProgressEvent) -> None:
        self.total_events += 1
        if event.type == EventType.ERROR:
            self.error_count += 1

        now = self._clock()
        if event.progress == 0 and event.phase not in self.phase_start_times:
            self.phase_start_times[event.phase] = now

        if event.progress == 100 or event.type == EventType.COMPLETION:
            self.completed_phases.add(event.phase)
            started = self.phase_start_times.get(event.phase)
            if started is not None:
                self.phase_durations[event.phase] = now - started

        self.progress_by_phase.setdefault(event.phase, []).append(event.progress)

    @property
    def error_rate(self) -> float:
        return self.error_count / max(1, self.total_events) * 100

    @property
    def fastest_phase(self) -> str:
        if not self.phase_durations:
            return ""
        return min(self.phase_durations, key=self.phase_durations.__getitem__)

    @property
    def slowest_phase(self) -> str:
        if not self.phase_durations:
            return ""
        return max(self.phase_durations, key=self.phase_durations.__getitem__)

    @property
    def overall_efficiency(self) -> float:
        """Completion rate of started phases minus the error rate, floored at 0."""
        completion_rate = (
            len(self.completed_phases) / max(1, len(self.phase_start_times)) * 100
        )
        return max(0.0, completion_rate - self.error_rate)

    def generate_report(self) -> str:
        lines = [
            "METRICS REPORT",
            "==============",
            f"Total Events: {self.total_events}",
            f"Error Count: {self.error_count}",
            f"Error Rate: {self.error_rate:.2f}%",
            f"Completed Phases: {len(self.completed_phases)}",
            f"Overall Efficiency: {self.overall_efficiency:.2f}%",
            "",
            "Performance:",
            f"Fastest Phase: {self.fastest_phase}",
            f"Slowest Phase: {self.slowest_phase}",
            "",
            "Phase Details:",
        ]
        for phase, values in self.progress_by_phase.items():
            average = sum(values) / len(values)
            duration = self.phase_durations.get(phase)
            suffix = f" ({duration * 1000:.0f}ms)" if duration is not None else ""
            lines.append(f"  {phase}: {average:.1f}% avg progress{suffix}")
        return "\n".join(lines)

    def get_name(self) -> str:
        return "MetricsCollector"

    def is_enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
