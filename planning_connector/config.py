"""
planning_connector/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_raw_char_env(name: str, default: str) -> str:
    # Delimiters may legitimately be whitespace (e.g. tab), so no stripping.
    _load_env_once()
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.replace("\\t", "\t")


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for the planning API connector.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0


@dataclass(frozen=True)
class PlanningAPISettings:
    """
    Remote planning model API connection settings.
    """

    base_url: str = "https://api.anaplan.com/2/0"
    auth_url: str = "https://auth.anaplan.com"
    username: str | None = None
    password: str | None = None
    locale_name: str = "en_US"
    upload_chunk_size_bytes: int = 1024 * 1024


@dataclass(frozen=True)
class TaskPollSettings:
    """
    Server task polling behavior.
    """

    poll_interval_seconds: float = 1.0
    timeout_seconds: float = 1800.0


@dataclass(frozen=True)
class ImportDefaults:
    """
    Default delimiters applied when a caller does not supply them.
    """

    column_separator: str = ","
    quote_char: str = '"'


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared connector HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
    )


@lru_cache(maxsize=1)
def get_planning_api_settings() -> PlanningAPISettings:
    """
    Return planning API settings from environment variables.
    """

    return PlanningAPISettings(
        base_url=_get_str_env("PLANNING_API_BASE_URL", "https://api.anaplan.com/2/0"),
        auth_url=_get_str_env("PLANNING_AUTH_URL", "https://auth.anaplan.com"),
        username=_get_optional_str_env("PLANNING_API_USERNAME"),
        password=_get_optional_str_env("PLANNING_API_PASSWORD"),
        locale_name=_get_str_env("PLANNING_LOCALE_NAME", "en_US"),
        upload_chunk_size_bytes=max(1024, _get_int_env("PLANNING_UPLOAD_CHUNK_SIZE_BYTES", 1024 * 1024)),
    )


@lru_cache(maxsize=1)
def get_task_poll_settings() -> TaskPollSettings:
    """
    Return server task polling settings from environment variables.
    """

    return TaskPollSettings(
        poll_interval_seconds=max(0.1, _get_float_env("PLANNING_TASK_POLL_INTERVAL_SECONDS", 1.0)),
        timeout_seconds=max(1.0, _get_float_env("PLANNING_TASK_TIMEOUT_SECONDS", 1800.0)),
    )


@lru_cache(maxsize=1)
def get_import_defaults() -> ImportDefaults:
    """
    Return default import delimiters from environment variables.
    """

    return ImportDefaults(
        column_separator=_get_raw_char_env("IMPORT_DEFAULT_COLUMN_SEPARATOR", ","),
        quote_char=_get_raw_char_env("IMPORT_DEFAULT_QUOTE_CHAR", '"'),
    )
