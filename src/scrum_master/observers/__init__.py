"""Progress event bus and its observers."""

from .events import EventType, ObserverKind, ProgressEvent, ProgressObserver
from .sinks import (
    Alert,
    AlertThresholds,
    DashboardUpdater,
    EmailNotifier,
    EmailSettings,
    HealthMetrics,
    HealthMonitor,
    LogFileObserver,
    MetricsCollector,
    SlackNotifier,
    WebhookNotifier,
    format_log_entry,
)
from .subject import MAX_EVENT_HISTORY, EventStatistics, ProgressSubject

__all__ = [
    "MAX_EVENT_HISTORY",
    "Alert",
    "AlertThresholds",
    "DashboardUpdater",
    "EmailNotifier",
    "EmailSettings",
    "EventStatistics",
    "EventType",
    "HealthMetrics",
    "HealthMonitor",
    "LogFileObserver",
    "MetricsCollector",
    "ObserverKind",
    "ProgressEvent",
    "ProgressObserver",
    "ProgressSubject",
    "SlackNotifier",
    "WebhookNotifier",
    "format_log_entry",
]
