"""Configuration loading.

The loading hierarchy is:
1. Default values from the Pydantic models
2. Configuration file (YAML)
3. Environment variables
4. Runtime overrides (CLI flags)

Configuration is resolved once at process entry and passed down explicitly.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import (
    ConfigurationFileError,
    ConfigurationMissingError,
    ConfigurationValidationError,
)
from .models import Config, EnvironmentSettings, GitHubConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "scrum-master.yaml"
CONFIG_PATH_ENV_VAR = "SCRUM_MASTER_CONFIG"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested dicts merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def read_config_file(config_path: str | Path) -> dict[str, Any]:
    """Read a YAML configuration file into a dictionary.

    Raises:
        ConfigurationFileError: If the file is missing, unreadable or not a mapping
    """
    path = Path(config_path)
    if not path.is_file():
        raise ConfigurationFileError(
            f"Configuration file not found: {path}", file_path=str(path)
        )

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationFileError(
            f"Failed to parse YAML configuration: {e}", file_path=str(path)
        ) from e
    except OSError as e:
        raise ConfigurationFileError(
            f"Failed to read configuration file: {e}", file_path=str(path)
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationFileError(
            "Configuration file must contain a mapping", file_path=str(path)
        )
    return data


def find_config_file(filename: str = DEFAULT_CONFIG_FILENAME) -> Path | None:
    """Find a configuration file in the standard locations.

    Search order:
    1. SCRUM_MASTER_CONFIG environment variable
    2. Current working directory
    3. ~/.scrum-master/
    """
    candidates = []
    env_path = os.getenv(CONFIG_PATH_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path))
    candidates.append(Path.cwd() / filename)
    candidates.append(Path.home() / ".scrum-master" / filename)

    for path in candidates:
        if path.is_file():
            return path
    return None


def load_config(
    config_path: str | Path | None = None,
    environment: EnvironmentSettings | None = None,
    overrides: dict[str, Any] | None = None,
) -> Config:
    """Resolve the configuration from file, environment and overrides.

    Args:
        config_path: Explicit YAML file; when omitted the standard locations
            are searched and a missing file is not an error
        environment: Environment settings; read from the process when omitted
        overrides: Nested values applied last

    Raises:
        ConfigurationFileError: If an explicit file cannot be loaded
        ConfigurationValidationError: If the merged values are invalid
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        data = read_config_file(config_path)
    else:
        found = find_config_file()
        if found is not None:
            logger.info(f"Using configuration file {found}")
            data = read_config_file(found)

    env = environment if environment is not None else EnvironmentSettings()
    data = deep_merge(data, env.as_overrides())
    if overrides:
        data = deep_merge(data, overrides)

    try:
        return Config(**data)
    except ValidationError as e:
        raise ConfigurationValidationError(
            f"Configuration validation failed: {e}", validation_errors=e.errors()
        ) from e
    except ValueError as e:
        raise ConfigurationValidationError(
            f"Configuration validation failed: {e}"
        ) from e


def require_github_token(config: Config) -> str:
    """Return the configured GitHub token.

    Raises:
        ConfigurationMissingError: If no token is configured
    """
    if not config.github.token:
        raise ConfigurationMissingError(
            "GITHUB_TOKEN environment variable is required",
            missing_fields=["github.token"],
        )
    return config.github.token


def read_app_private_key(github: GitHubConfig) -> str:
    """PEM key for GitHub App authentication, inline or read from its file.

    Raises:
        ConfigurationMissingError: If neither form is configured
        ConfigurationFileError: If the key file cannot be read
    """
    if github.app_private_key:
        return github.app_private_key
    if not github.app_private_key_path:
        raise ConfigurationMissingError(
            "GitHub App private key is not configured",
            missing_fields=["github.app_private_key"],
        )

    path = Path(github.app_private_key_path).expanduser()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationFileError(
            f"Failed to read GitHub App private key: {e}", file_path=str(path)
        ) from e
