"""Settings file loading, validation, and persistence.

Schema on disk (~/.config/aadcred/config.json):

    {
        "graph_url": "https://graph.microsoft.com/v1.0",
        "az_path": "az",
        "timeouts": {"create": 300, "read": 300, "delete": 300},
        "replication_poll_interval": 2,
        "log_level": "INFO"
    }

Every key is optional.  Keys prefixed with "_" are reserved (e.g.
"_comment") and are stripped on load.
"""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from aadcred.constants import (
    APP_NAME,
    DEFAULT_CREATE_TIMEOUT,
    DEFAULT_DELETE_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_READ_TIMEOUT,
    GRAPH_URL,
)

CONFIG_PATH = Path("~/.config/aadcred/config.json").expanduser()

_README_PATH = Path("~/.config/aadcred/README.md").expanduser()

_README_CONTENT = """\
# aadcred configuration

Edit `config.json` in this directory to tune how service principal
credentials are managed.  Every key is optional.

## Schema

```json
{
    "graph_url": "https://graph.microsoft.com/v1.0",
    "az_path": "az",
    "timeouts": {"create": 300, "read": 300, "delete": 300},
    "replication_poll_interval": 2,
    "log_level": "INFO"
}
```

Timeouts and the poll interval are in seconds.  Keys prefixed with `_`
(e.g. `_comment`) are ignored by aadcred.
"""


class Timeouts(BaseModel):
    """Per-operation time budgets in seconds."""

    create: float = Field(default=DEFAULT_CREATE_TIMEOUT, gt=0)
    read: float = Field(default=DEFAULT_READ_TIMEOUT, gt=0)
    delete: float = Field(default=DEFAULT_DELETE_TIMEOUT, gt=0)


class Settings(BaseModel):
    graph_url: str = GRAPH_URL
    az_path: str = "az"
    timeouts: Timeouts = Field(default_factory=Timeouts)
    replication_poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level


class ConfigError(Exception):
    """Raised when config.json exists but cannot be parsed or validated."""


def load_config() -> Settings:
    """Load and validate the settings file.

    Creates the config directory, an empty config.json, and a README on first
    run, returning default settings.  Raises ConfigError if the file exists
    but is malformed.
    """
    if not CONFIG_PATH.exists():
        _bootstrap()
        return Settings()

    try:
        raw: object = json.loads(CONFIG_PATH.read_text() or "{}")
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config.json is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("config.json must be a JSON object at the top level")

    # Strip reserved/comment keys.
    data = {k: v for k, v in raw.items() if not k.startswith("_")}
    if isinstance(data.get("timeouts"), dict):
        data["timeouts"] = {k: v for k, v in data["timeouts"].items() if not k.startswith("_")}

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config: {exc}") from exc


def save_config(settings: Settings) -> None:
    """Persist settings to disk, creating directories as needed."""
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(json.dumps(settings.model_dump(), indent=2))


def configure_logging(level: str) -> logging.Logger:
    """Set the package logger level and return the logger."""
    logger = logging.getLogger(APP_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger


def _bootstrap() -> None:
    """Create the config directory, an empty config.json, and a README."""
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text("{}\n")
    if not _README_PATH.exists():
        _README_PATH.write_text(_README_CONTENT)
