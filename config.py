"""
Runtime settings for the CPM service.

Values come from the environment, after an optional `.env` file next to this
module has been loaded:

    CPM_LOG_LEVEL   logging level name (default INFO)
    CPM_DEBUG       run Flask in debug mode (default false)
    CPM_MAX_TASKS   largest task set /api/analyze accepts (default 5000)
"""
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

DOTENV_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env")


def _as_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


class ConfigError(ValueError):
    pass


def _as_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer (got {raw!r})") from None


@dataclass(frozen=True)
class Config:
    log_level: str = "INFO"
    debug: bool = False
    max_tasks: int = 5000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        if environ is None:
            load_dotenv(DOTENV_PATH)
            environ = os.environ
        return cls(
            log_level=environ.get("CPM_LOG_LEVEL", "INFO").upper(),
            debug=_as_bool(environ.get("CPM_DEBUG")),
            max_tasks=_as_int(environ, "CPM_MAX_TASKS", 5000),
        )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
