# src/wipledger/core/config.py
"""Configuration schema and loading for wipledger.

Settings are Pydantic models (validated, frozen) loaded from YAML through
Dynaconf with WIPLEDGER_* environment variable overrides.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from wipledger.contracts.enums import DecodeErrorPolicy


class DatabaseSettings(BaseModel):
    """Database connection configuration."""

    model_config = {"frozen": True}

    # NOTE: str rather than Path; Path mangles URLs like sqlite:///./board.db
    url: str = Field(
        default="sqlite:///./board.db",
        description="Full SQLAlchemy database URL",
    )
    busy_timeout_ms: int = Field(
        default=5000,
        ge=0,
        description="SQLite busy_timeout applied to every connection",
    )


class DefaultsSettings(BaseModel):
    """Values applied to new items when the caller omits them."""

    model_config = {"frozen": True}

    item_color: str = Field(default="#fef08a", min_length=1, description="Color for items created without one")
    item_status: str = Field(default="todo", min_length=1, description="Initial status of new items")


class ReplaySettings(BaseModel):
    """Rewind/replay behaviour."""

    model_config = {"frozen": True}

    batch_size: int = Field(default=500, gt=0, description="Ledger events read and committed per batch")
    on_decode_error: DecodeErrorPolicy = Field(
        default=DecodeErrorPolicy.ABORT,
        description="abort stops replay at an undecodable payload; skip logs and continues",
    )


class NotificationSettings(BaseModel):
    """Post-commit notification delivery."""

    model_config = {"frozen": True}

    enabled: bool = Field(default=True, description="Deliver notifications to hook plugins")
    queue_size: int = Field(default=1000, gt=0, description="Pending notifications before new ones are dropped")
    plugins: tuple[str, ...] = Field(
        default=(),
        description="Hook plugins to load, as 'package.module:attribute' import paths",
    )


class LoggingSettings(BaseModel):
    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_output: bool = False

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: object) -> object:
        if isinstance(v, str):
            return v.upper()
        return v


class BoardSettings(BaseModel):
    """Top-level wipledger configuration.

    All sections have defaults, so an empty settings file is valid.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    defaults: DefaultsSettings = Field(default_factory=DefaultsSettings)
    replay: ReplaySettings = Field(default_factory=ReplaySettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: Path) -> BoardSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (WIPLEDGER_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: WIPLEDGER_DATABASE__URL for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated BoardSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="WIPLEDGER",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,  # The CLI loads .env itself
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; Pydantic fields are lowercase
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    return BoardSettings(**raw_config)


def _lower_keys(value: object) -> object:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value
