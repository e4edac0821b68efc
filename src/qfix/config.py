"""Runtime configuration, loaded and validated once at startup.

On import, this module loads the project's ``.env`` file (if present) so that
values set there are available via ``os.environ``. Existing environment
variables win over the file.

Recognised variables:

``OPENROUTER_API_KEY``       key for the generation provider
``QFIX_MODEL``               OpenRouter model string
``QFIX_DB_PATH``             SQLite quota database path
``QFIX_DAILY_LIMIT``         reservations per user per UTC day
``QFIX_MAX_ITERATIONS``      fit-seeking attempts per request
``QFIX_RETRY_MAX_ATTEMPTS``  provider calls per generation on rate limits
``QFIX_RETRY_DELAYS``        comma-separated backoff delays in seconds
``QFIX_DB_BUSY_TIMEOUT``     seconds to wait for the database write lock
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from qfix.core.errors import ConfigError
from qfix.core.paths import find_project_root, get_default_db_path

logger = logging.getLogger(__name__)

_env_path = find_project_root() / ".env"
load_dotenv(_env_path, override=False)
logger.debug("Loaded .env from %s (exists=%s)", _env_path, _env_path.exists())

DEFAULT_MODEL = "google/gemini-2.5-flash"

_ENV_FIELDS = {
    "OPENROUTER_API_KEY": "api_key",
    "QFIX_MODEL": "model",
    "QFIX_DB_PATH": "db_path",
    "QFIX_DAILY_LIMIT": "daily_limit",
    "QFIX_MAX_ITERATIONS": "max_iterations",
    "QFIX_RETRY_MAX_ATTEMPTS": "retry_max_attempts",
    "QFIX_RETRY_DELAYS": "retry_delays",
    "QFIX_DB_BUSY_TIMEOUT": "db_busy_timeout",
}


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    model: str = DEFAULT_MODEL
    db_path: Path = Field(default_factory=get_default_db_path)
    daily_limit: int = Field(default=1, ge=1)
    max_iterations: int = Field(default=3, ge=1, le=10)
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_delays: tuple[float, ...] = (2.0, 4.0)
    db_busy_timeout: float = Field(default=5.0, gt=0)

    @field_validator("retry_delays", mode="before")
    @classmethod
    def _split_delays(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return value

    @field_validator("retry_delays")
    @classmethod
    def _non_negative_delays(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if any(d < 0 for d in value):
            raise ValueError("delays must be >= 0")
        return value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build validated ``Settings`` from the environment.

    Raises ``ConfigError`` naming every malformed variable, so a bad deploy
    fails at startup instead of inside the first request.
    """
    env = os.environ if environ is None else environ
    raw = {
        field: env[var]
        for var, field in _ENV_FIELDS.items()
        if env.get(var, "").strip()
    }
    try:
        settings = Settings.model_validate(raw)
    except ValidationError as exc:
        by_field = {field: var for var, field in _ENV_FIELDS.items()}
        problems = [
            f"{by_field.get(str(err['loc'][0]), err['loc'][0])}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ConfigError("Invalid configuration: " + "; ".join(problems)) from exc

    logger.debug(
        "Settings loaded (db=%s, limit=%d, iterations=%d, api_key=%s)",
        settings.db_path,
        settings.daily_limit,
        settings.max_iterations,
        bool(settings.api_key),
    )
    return settings
