"""Configuration management for deploywatch.

Loads configuration from environment variables and an optional YAML file.
Command-line flags are applied on top by the CLI.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


DEFAULT_DEPLOYMENT_STATUSES = ["Created", "Queued", "InProgress", "Ready"]
STATUS_MODES = {"batch", "instance"}


def split_csv(value: Optional[str]) -> List[str]:
    """Split a comma separated string, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _env_bool(name: str, default: bool = False) -> bool:
    return os.environ.get(name, str(default)).lower() in ("1", "true", "yes")


@dataclass
class FilterConfig:
    """Which deployments to watch."""

    application: Optional[str] = None
    groups: List[str] = field(default_factory=list)
    statuses: List[str] = field(default_factory=lambda: list(DEFAULT_DEPLOYMENT_STATUSES))
    deployment_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "FilterConfig":
        """Load filter configuration from environment variables."""
        return cls(
            application=os.environ.get("DEPLOYWATCH_APPLICATION") or None,
            groups=split_csv(os.environ.get("DEPLOYWATCH_GROUPS")),
            statuses=(
                split_csv(os.environ.get("DEPLOYWATCH_STATUSES"))
                or list(DEFAULT_DEPLOYMENT_STATUSES)
            ),
        )


@dataclass
class DisplayConfig:
    """How the dashboard renders."""

    compact: bool = False
    hide_succeeded: bool = False
    success_statuses: List[str] = field(default_factory=lambda: ["Succeeded"])

    @classmethod
    def from_env(cls) -> "DisplayConfig":
        """Load display configuration from environment variables."""
        return cls(
            compact=_env_bool("DEPLOYWATCH_COMPACT"),
            hide_succeeded=_env_bool("DEPLOYWATCH_HIDE_SUCCEEDED"),
            success_statuses=(
                split_csv(os.environ.get("DEPLOYWATCH_SUCCESS_STATUSES"))
                or ["Succeeded"]
            ),
        )


@dataclass
class PollingConfig:
    """Poll cadences and backoff tuning."""

    discovery_interval_sec: float = 15.0
    status_interval_sec: float = 2.0
    backoff_delta: float = 0.1
    status_mode: str = "batch"
    batch_size: int = 25

    @classmethod
    def from_env(cls) -> "PollingConfig":
        """Load polling configuration from environment variables."""
        return cls(
            discovery_interval_sec=float(os.environ.get("DEPLOYWATCH_DISCOVERY_INTERVAL", "15")),
            status_interval_sec=float(os.environ.get("DEPLOYWATCH_STATUS_INTERVAL", "2")),
            backoff_delta=float(os.environ.get("DEPLOYWATCH_BACKOFF_DELTA", "0.1")),
            status_mode=os.environ.get("DEPLOYWATCH_STATUS_MODE", "batch"),
            batch_size=int(os.environ.get("DEPLOYWATCH_BATCH_SIZE", "25")),
        )


@dataclass
class AwsConfig:
    """AWS session settings."""

    region: Optional[str] = None
    profile: Optional[str] = None

    @classmethod
    def from_env(cls) -> "AwsConfig":
        """Load AWS configuration from the standard AWS variables."""
        return cls(
            region=os.environ.get("AWS_REGION") or None,
            profile=os.environ.get("AWS_PROFILE") or None,
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    file: Optional[str] = "deploywatch.log"

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Load logging configuration from environment variables."""
        return cls(
            level=os.environ.get("DEPLOYWATCH_LOG_LEVEL", "INFO"),
            format=os.environ.get("DEPLOYWATCH_LOG_FORMAT", "json"),
            file=os.environ.get("DEPLOYWATCH_LOG_FILE", "deploywatch.log"),
        )


@dataclass
class Config:
    """Main configuration container."""

    filters: FilterConfig = field(default_factory=FilterConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    aws: AwsConfig = field(default_factory=AwsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Load all configuration from environment variables."""
        return cls(
            filters=FilterConfig.from_env(),
            display=DisplayConfig.from_env(),
            polling=PollingConfig.from_env(),
            aws=AwsConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        """Load env configuration, then override with values from a YAML file."""
        config_path = Path(path)

        if config_path.exists():
            with open(config_path, "r") as f:
                yaml_config = yaml.safe_load(f) or {}
        else:
            yaml_config = {}

        config = cls.from_env()

        sections: Dict[str, Any] = {
            "filters": config.filters,
            "display": config.display,
            "polling": config.polling,
            "aws": config.aws,
            "logging": config.logging,
        }
        for section_name, section in sections.items():
            values = yaml_config.get(section_name) or {}
            for key, value in values.items():
                if hasattr(section, key):
                    # list fields also accept "a,b" strings, like the env variables
                    if isinstance(getattr(section, key), list) and isinstance(value, str):
                        value = split_csv(value)
                    setattr(section, key, value)

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.filters.deployment_ids and not self.filters.application:
            errors.append("No deployment IDs found! Pass deployment ids or an application filter")

        if self.filters.groups and not self.filters.application:
            errors.append("Deployment group filter requires an application filter")

        if self.polling.discovery_interval_sec <= 0:
            errors.append("discovery_interval_sec must be positive")

        if self.polling.status_interval_sec <= 0:
            errors.append("status_interval_sec must be positive")

        if not 0 < self.polling.backoff_delta < 1:
            errors.append("backoff_delta must be between 0 and 1")

        if self.polling.status_mode not in STATUS_MODES:
            errors.append(f"status_mode must be one of: {', '.join(sorted(STATUS_MODES))}")

        if self.polling.batch_size <= 0:
            errors.append("batch_size must be positive")

        return errors
