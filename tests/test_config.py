from __future__ import annotations

from collections.abc import Iterator

import pytest

from planning_connector import config


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    getters = (
        config.get_external_http_settings,
        config.get_planning_api_settings,
        config.get_task_poll_settings,
        config.get_import_defaults,
    )
    for getter in getters:
        getter.cache_clear()
    yield
    for getter in getters:
        getter.cache_clear()


def test_planning_api_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLANNING_API_BASE_URL", "https://api.example.test/2/0")
    monkeypatch.setenv("PLANNING_API_USERNAME", " tester@example.com ")
    monkeypatch.setenv("PLANNING_API_PASSWORD", "secret")
    monkeypatch.setenv("PLANNING_UPLOAD_CHUNK_SIZE_BYTES", "10")

    settings = config.get_planning_api_settings()

    assert settings.base_url == "https://api.example.test/2/0"
    assert settings.username == "tester@example.com"
    assert settings.password == "secret"
    assert settings.upload_chunk_size_bytes == 1024


def test_blank_credentials_are_treated_as_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLANNING_API_USERNAME", "   ")
    monkeypatch.delenv("PLANNING_API_PASSWORD", raising=False)

    settings = config.get_planning_api_settings()

    assert settings.username is None
    assert settings.password is None


def test_task_poll_settings_fall_back_on_invalid_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLANNING_TASK_POLL_INTERVAL_SECONDS", "soon")
    monkeypatch.setenv("PLANNING_TASK_TIMEOUT_SECONDS", "120")

    settings = config.get_task_poll_settings()

    assert settings.poll_interval_seconds == 1.0
    assert settings.timeout_seconds == 120.0


def test_import_defaults_keep_whitespace_separators(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IMPORT_DEFAULT_COLUMN_SEPARATOR", "\\t")
    monkeypatch.delenv("IMPORT_DEFAULT_QUOTE_CHAR", raising=False)

    defaults = config.get_import_defaults()

    assert defaults.column_separator == "\t"
    assert defaults.quote_char == '"'


def test_http_settings_are_clamped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXTERNAL_HTTP_MAX_RETRIES", "-4")
    monkeypatch.setenv("EXTERNAL_HTTP_TIMEOUT_SECONDS", "0")

    settings = config.get_external_http_settings()

    assert settings.max_retries == 0
    assert settings.timeout_seconds == 1.0
