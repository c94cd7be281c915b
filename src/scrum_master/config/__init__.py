"""Configuration models and loading."""

from .exceptions import (
    ConfigurationError,
    ConfigurationFileError,
    ConfigurationMissingError,
    ConfigurationValidationError,
)
from .loader import (
    deep_merge,
    find_config_file,
    load_config,
    read_app_private_key,
    read_config_file,
    require_github_token,
)
from .models import (
    Config,
    DashboardConfig,
    EmailConfig,
    EnvironmentSettings,
    GitHubConfig,
    HealthConfig,
    LogLevel,
    NotificationConfig,
    SlackConfig,
    WebhookConfig,
    WorkflowConfig,
    substitute_env_vars,
)

__all__ = [
    "Config",
    "ConfigurationError",
    "ConfigurationFileError",
    "ConfigurationMissingError",
    "ConfigurationValidationError",
    "DashboardConfig",
    "EmailConfig",
    "EnvironmentSettings",
    "GitHubConfig",
    "HealthConfig",
    "LogLevel",
    "NotificationConfig",
    "SlackConfig",
    "WebhookConfig",
    "WorkflowConfig",
    "deep_merge",
    "find_config_file",
    "load_config",
    "read_app_private_key",
    "read_config_file",
    "require_github_token",
    "substitute_env_vars",
]
