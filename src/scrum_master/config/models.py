"""Pydantic configuration models.

The configuration hierarchy:
- Config: root object handed to the engine and CLI
- GitHubConfig: API endpoint, credentials and client behaviour
- WorkflowConfig: invoker pacing and first-sprint parameters
- NotificationConfig: which observers to attach and how

String values in a configuration file may reference environment variables
as ``${VAR_NAME}`` or ``${VAR_NAME:default}``.
"""

import os
import re
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


class LogLevel(str, Enum):
    """Supported logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def substitute_env_vars(value: Any) -> Any:
    """Recursively expand ``${VAR}`` and ``${VAR:default}`` references.

    Raises:
        ValueError: If a variable without a default is not set
    """
    if isinstance(value, str):

        def replacer(match: re.Match[str]) -> str:
            name, default = match.group(1), match.group(2)
            env_value = os.getenv(name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            raise ValueError(f"Required environment variable '{name}' not found")

        return _ENV_VAR_PATTERN.sub(replacer, value)
    if isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_env_vars(item) for item in value]
    return value


def _validate_http_url(value: str | None) -> str | None:
    if value:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid URL: {value}")
    return value


class BaseConfigModel(BaseModel):
    """Base configuration model with environment variable substitution."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @model_validator(mode="before")
    @classmethod
    def expand_env_vars(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: substitute_env_vars(value) for key, value in values.items()}


class GitHubConfig(BaseConfigModel):
    """GitHub API access."""

    token: str | None = Field(default=None, description="Personal access token")
    api_url: str = Field(
        default="https://api.github.com", description="REST/GraphQL base URL"
    )
    timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")
    max_retries: int = Field(
        default=3, ge=0, le=10, description="Transport retries for 5xx and network errors"
    )
    retry_backoff_factor: float = Field(default=2.0, ge=1.0, le=10.0)
    user_agent: str = Field(default="Scrum-Master-Bot/1.0")
    app_id: str | None = Field(default=None, description="GitHub App ID")
    app_private_key: str | None = Field(default=None, description="PEM private key")
    app_private_key_path: str | None = Field(
        default=None, description="File holding the PEM private key"
    )
    app_installation_id: str | None = Field(
        default=None, description="Installation to request access tokens for"
    )

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        _validate_http_url(v)
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_app_credentials(self) -> "GitHubConfig":
        app_fields = (
            self.app_id,
            self.app_private_key or self.app_private_key_path,
            self.app_installation_id,
        )
        if any(app_fields) and not all(app_fields):
            raise ValueError(
                "GitHub App authentication needs app_id, app_installation_id "
                "and app_private_key or app_private_key_path"
            )
        return self

    @property
    def uses_app_auth(self) -> bool:
        return self.app_id is not None


class WorkflowConfig(BaseConfigModel):
    """Invoker pacing and first-sprint parameters."""

    inter_command_delay: float = Field(
        default=0.5,
        ge=0.0,
        le=60.0,
        description="Seconds to wait after each batch step",
    )
    retry_attempts: int = Field(
        default=3, ge=1, le=10, description="Attempts for the sprint and board steps"
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Seconds before the first retry; doubles per attempt",
    )
    sprint_number: int = Field(default=1, ge=1)
    sprint_name: str = Field(default="Foundation Sprint")
    sprint_duration_weeks: int = Field(default=2, ge=1, le=8)


class SlackConfig(BaseConfigModel):
    """Slack incoming webhook."""

    webhook_url: str | None = None
    channel: str = "#scrum-updates"
    username: str = "Scrum Master Bot"

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, v: str | None) -> str | None:
        return _validate_http_url(v)


class DashboardConfig(BaseConfigModel):
    """Dashboard event endpoint."""

    url: str | None = None
    api_key: str | None = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        return _validate_http_url(v)


class EmailConfig(BaseConfigModel):
    """E-mail notification settings."""

    smtp_host: str | None = None
    smtp_port: int = Field(default=587, ge=1, le=65535)
    from_address: str | None = None
    recipients: list[str] = Field(default_factory=list)
    username: str | None = None
    password: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host and self.from_address and self.recipients)


class WebhookConfig(BaseConfigModel):
    """Generic webhook sink."""

    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: float = Field(default=10.0, gt=0, le=120)
    retries: int = Field(default=1, ge=1, le=10)
    retry_base_delay: float = Field(default=1.0, ge=0.0, le=60.0)
    event_types: list[str] = Field(
        default_factory=list,
        description="Event types to forward; empty forwards everything",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        _validate_http_url(v)
        return v


class HealthConfig(BaseConfigModel):
    """Health monitor thresholds."""

    enabled: bool = True
    max_error_rate: float = Field(default=10.0, ge=0.0, le=100.0)
    alert_on_error: bool = True


class NotificationConfig(BaseConfigModel):
    """Which observers to attach to the engine."""

    console: bool = Field(default=True, description="Print one line per event")
    log_file: str | None = None
    metrics: bool = True
    slack: SlackConfig = Field(default_factory=SlackConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    webhooks: list[WebhookConfig] = Field(default_factory=list)
    health: HealthConfig = Field(default_factory=HealthConfig)


class Config(BaseConfigModel):
    """Root configuration."""

    log_level: LogLevel = LogLevel.INFO
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)


class EnvironmentSettings(BaseSettings):
    """Settings read from the process environment (and ``.env``).

    Environment variables:
    - GITHUB_TOKEN: GitHub personal access token
    - GITHUB_API_URL: GitHub API base URL
    - GITHUB_APP_ID / GITHUB_APP_INSTALLATION_ID: GitHub App installation
    - GITHUB_APP_PRIVATE_KEY or GITHUB_APP_PRIVATE_KEY_PATH: the app's PEM key
    - SLACK_WEBHOOK_URL: Slack incoming webhook
    - DASHBOARD_URL / DASHBOARD_API_KEY: dashboard endpoint and key
    - SMTP_HOST / EMAIL_FROM / EMAIL_TO: e-mail notifier (EMAIL_TO comma-separated)
    - SCRUM_MASTER_LOG_LEVEL: logging level
    """

    github_token: str | None = None
    github_api_url: str | None = None
    github_app_id: str | None = None
    github_app_installation_id: str | None = None
    github_app_private_key: str | None = None
    github_app_private_key_path: str | None = None
    slack_webhook_url: str | None = None
    dashboard_url: str | None = None
    dashboard_api_key: str | None = None
    smtp_host: str | None = None
    email_from: str | None = None
    email_to: str | None = None
    scrum_master_log_level: LogLevel | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def as_overrides(self) -> dict[str, Any]:
        """Nested config fragment containing only the variables that are set."""
        overrides: dict[str, Any] = {}

        def put(path: tuple[str, ...], value: Any) -> None:
            if value is None:
                return
            node = overrides
            for key in path[:-1]:
                node = node.setdefault(key, {})
            node[path[-1]] = value

        put(("github", "token"), self.github_token)
        put(("github", "api_url"), self.github_api_url)
        put(("github", "app_id"), self.github_app_id)
        put(("github", "app_installation_id"), self.github_app_installation_id)
        put(("github", "app_private_key"), self.github_app_private_key)
        put(("github", "app_private_key_path"), self.github_app_private_key_path)
        put(("notifications", "slack", "webhook_url"), self.slack_webhook_url)
        put(("notifications", "dashboard", "url"), self.dashboard_url)
        put(("notifications", "dashboard", "api_key"), self.dashboard_api_key)
        put(("notifications", "email", "smtp_host"), self.smtp_host)
        put(("notifications", "email", "from_address"), self.email_from)
        if self.email_to:
            put(
                ("notifications", "email", "recipients"),
                [addr.strip() for addr in self.email_to.split(",") if addr.strip()],
            )
        if self.scrum_master_log_level is not None:
            put(("log_level",), self.scrum_master_log_level.value)
        return overrides
