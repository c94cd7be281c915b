"""Build the client, observers and engine from a resolved ``Config``."""

import logging

from ..config import (
    Config,
    NotificationConfig,
    read_app_private_key,
    require_github_token,
)
from ..github import (
    AuthProvider,
    GitHubAppAuth,
    GitHubClient,
    GitHubClientConfig,
    PersonalAccessTokenAuth,
)
from ..observers import (
    AlertThresholds,
    DashboardUpdater,
    EmailNotifier,
    EmailSettings,
    EventType,
    HealthMonitor,
    LogFileObserver,
    MetricsCollector,
    ProgressObserver,
    SlackNotifier,
    WebhookNotifier,
)
from .engine import ScrumMasterEngine

logger = logging.getLogger(__name__)


def create_auth(config: Config) -> AuthProvider:
    """GitHub App installation auth when an app is configured, else the token.

    Raises:
        ConfigurationMissingError: If no credentials are configured
        ConfigurationFileError: If the app private key file cannot be read
    """
    github = config.github
    if github.app_id and github.app_installation_id:
        logger.info(f"Authenticating as GitHub App {github.app_id}")
        return GitHubAppAuth(
            github.app_id,
            read_app_private_key(github),
            github.app_installation_id,
            api_url=github.api_url,
            timeout=github.timeout,
        )
    return PersonalAccessTokenAuth(require_github_token(config))


def create_client(config: Config) -> GitHubClient:
    """GitHub client authenticated with the configured credentials.

    Raises:
        ConfigurationMissingError: If no credentials are configured
    """
    github = config.github
    return GitHubClient(
        create_auth(config),
        GitHubClientConfig(
            base_url=github.api_url,
            timeout=github.timeout,
            max_retries=github.max_retries,
            retry_backoff_factor=github.retry_backoff_factor,
            user_agent=github.user_agent,
        ),
    )


def create_observers(notifications: NotificationConfig) -> list[ProgressObserver]:
    """Observers enabled by the notification settings."""
    observers: list[ProgressObserver] = []

    if notifications.console or notifications.log_file:
        observers.append(LogFileObserver(notifications.log_file))
    if notifications.slack.webhook_url:
        observers.append(
            SlackNotifier(
                notifications.slack.webhook_url,
                channel=notifications.slack.channel,
                username=notifications.slack.username,
            )
        )
    if notifications.dashboard.url and notifications.dashboard.api_key:
        observers.append(
            DashboardUpdater(notifications.dashboard.url, notifications.dashboard.api_key)
        )
    email = notifications.email
    if email.enabled and email.smtp_host and email.from_address:
        observers.append(
            EmailNotifier(
                EmailSettings(
                    smtp_host=email.smtp_host,
                    from_address=email.from_address,
                    recipients=list(email.recipients),
                    smtp_port=email.smtp_port,
                    username=email.username,
                    password=email.password,
                )
            )
        )
    for webhook in notifications.webhooks:
        wanted = {EventType(value) for value in webhook.event_types}
        observers.append(
            WebhookNotifier(
                webhook.url,
                headers=dict(webhook.headers),
                timeout=webhook.timeout,
                retries=webhook.retries,
                retry_base_delay=webhook.retry_base_delay,
                event_filter=(lambda event, w=wanted: event.type in w) if wanted else None,
            )
        )
    if notifications.health.enabled:
        observers.append(
            HealthMonitor(
                AlertThresholds(
                    max_error_rate=notifications.health.max_error_rate,
                    alert_on_error=notifications.health.alert_on_error,
                )
            )
        )
    if notifications.metrics:
        observers.append(MetricsCollector())

    logger.debug(f"Configured {len(observers)} observers")
    return observers


def create_engine(config: Config, client: GitHubClient | None = None) -> ScrumMasterEngine:
    """Engine with every configured observer registered."""
    engine = ScrumMasterEngine(client or create_client(config), settings=config.workflow)
    for observer in create_observers(config.notifications):
        engine.add_observer(observer)
    return engine
