"""Settings management using Pydantic for type validation and configuration."""

import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "eventcal"


class YamlFileSettingsSource(PydanticBaseSettingsSource):
    """Settings source reading a flat YAML mapping of setting names to values."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_file: Optional[Path]) -> None:
        super().__init__(settings_cls)
        self.yaml_file = yaml_file
        self._data = self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load configuration from YAML file if it exists."""
        if self.yaml_file is None or not self.yaml_file.exists():
            return {}

        try:
            with self.yaml_file.open(encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logger.warning("Could not load YAML config from %s: %s", self.yaml_file, e)
            return {}

        if not isinstance(config_data, dict):
            return {}

        fields = self.settings_cls.model_fields
        data = {k: v for k, v in config_data.items() if k in fields}
        logger.debug("Loaded %d settings from %s", len(data), self.yaml_file)
        return data

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return dict(self._data)


def _resolve_config_file(init_kwargs: dict[str, Any]) -> Path:
    explicit = init_kwargs.get("config_file") or os.environ.get("EVENTCAL_CONFIG_FILE")
    if explicit:
        return Path(explicit)
    config_dir = init_kwargs.get("config_dir") or os.environ.get("EVENTCAL_CONFIG_DIR")
    return Path(config_dir or DEFAULT_CONFIG_DIR) / "config.yaml"


class EventCalSettings(BaseSettings):
    """Application settings with environment variable support.

    Precedence: constructor arguments, then EVENTCAL_* environment variables,
    then the .env file, then ``config.yaml``, then the defaults below.
    """

    # File paths
    config_dir: Path = Field(default=DEFAULT_CONFIG_DIR)
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local" / "share" / "eventcal")
    config_file: Optional[Path] = Field(default=None, description="Explicit YAML config path")
    data_file: Optional[Path] = Field(default=None, description="JSON storage file for events")
    storage_key: str = Field(default="calendar-events", description="Key holding the event array")

    # Recurrence expansion
    max_occurrences: int = Field(default=100, ge=1, description="Occurrence cap per series")
    default_horizon_months: int = Field(
        default=12, ge=1, description="Horizon past the root date when none is given"
    )
    view_horizon_months: int = Field(
        default=6, ge=1, description="Horizon past the visible month for the calendar view"
    )

    # Grid
    week_start: Literal["sunday", "monday"] = Field(default="sunday")
    max_events_per_cell: int = Field(default=3, ge=1, description="Events previewed per day cell")

    # Logging
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="EVENTCAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        init_kwargs = getattr(init_settings, "init_kwargs", {})
        yaml_settings = YamlFileSettingsSource(settings_cls, _resolve_config_file(init_kwargs))
        return (init_settings, env_settings, dotenv_settings, yaml_settings, file_secret_settings)

    @field_validator("week_start", mode="before")
    @classmethod
    def _normalize_week_start(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @property
    def events_file(self) -> Path:
        """Path to the JSON event storage file."""
        return self.data_file or self.data_dir / "events.json"

    @property
    def week_starts_on(self) -> int:
        """Python weekday number (Monday=0) of the first grid column."""
        return 0 if self.week_start == "monday" else 6


_settings_instance: Optional[EventCalSettings] = None


def get_settings() -> EventCalSettings:
    """Get the global settings instance, creating it lazily if needed."""
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = EventCalSettings()
    return globals()["_settings_instance"]


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None
