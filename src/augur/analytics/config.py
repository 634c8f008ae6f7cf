"""Analytics settings.

Values are loaded from environment variables (and a local ``.env``), or
from a YAML file via ``AnalyticsSettings.from_yaml``.

Usage:
    settings = AnalyticsSettings()
    settings = AnalyticsSettings.from_yaml("analytics.yaml", {"enabled": False})
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge override into base dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class AnalyticsSettings(BaseSettings):
    """Configuration for inference analytics."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    enabled: bool = Field(alias="AUGUR_ANALYTICS_ENABLED", default=True)
    event_name: str = Field(alias="AUGUR_EVENT_NAME", default="inference_model_set", min_length=1)
    vendor_key: str = Field(alias="AUGUR_VENDOR_KEY", default="augur.inference", min_length=1)
    # Registration limits for the event kind
    max_events_per_hour: int = Field(alias="AUGUR_MAX_EVENTS_PER_HOUR", default=1000, gt=0)
    max_number_of_elements: int = Field(
        alias="AUGUR_MAX_NUMBER_OF_ELEMENTS", default=1000, gt=0
    )
    # Rewrite placeholder metadata for models produced by the legacy "Script" exporter
    legacy_producer_overrides: bool = Field(
        alias="AUGUR_LEGACY_PRODUCER_OVERRIDES", default=True
    )

    output_file: str | None = Field(alias="AUGUR_ANALYTICS_FILE", default=None)
    console_output: bool = Field(alias="AUGUR_ANALYTICS_CONSOLE", default=False)
    hub_queue_size: int = Field(alias="AUGUR_HUB_QUEUE_SIZE", default=1000, gt=0)

    log_level: str = Field(alias="AUGUR_LOG_LEVEL", default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_yaml(cls, path: Path | str, overrides: dict[str, Any] | None = None) -> AnalyticsSettings:
        """Load settings from a YAML file.

        Keys are field names (``enabled``, ``max_events_per_hour``, ...).
        Explicit values take precedence over the environment.

        Raises:
            ValueError: If the YAML file is empty, malformed, or not a mapping.
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(
                f"Analytics YAML must be a mapping, got {type(data).__name__}: {path}"
            )

        if overrides:
            data = deep_merge(data, overrides)

        return cls(**data)

    def summary(self) -> str:
        """Human-readable summary of the settings."""
        lines = [
            f"AnalyticsSettings ({'enabled' if self.enabled else 'disabled'})",
            f"  Event: {self.event_name} (vendor {self.vendor_key})",
            f"  Limits: {self.max_events_per_hour}/hour, {self.max_number_of_elements} elements",
        ]
        if self.output_file:
            lines.append(f"  File output: {self.output_file}")
        if self.console_output:
            lines.append("  Console output: on")
        return "\n".join(lines)


__all__ = ["AnalyticsSettings", "deep_merge"]
