"""
planning_connector/connectors/base.py

Base connector abstraction and shared HTTP mechanics.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from planning_connector.config import ExternalHTTPSettings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# Only reads are replayed; creating tasks or uploading chunks twice is not safe.
IDEMPOTENT_METHODS = {"GET", "HEAD"}


class PlanningAPIError(RuntimeError):
    """
    Raised when a request to the planning API cannot be completed.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BaseConnector:
    """
    Shared request handling for connectors talking to one remote API.
    """

    source: str

    def __init__(
        self,
        *,
        source: str,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.source = source
        self._session = session or requests.Session()
        self._timeout_seconds = http_settings.timeout_seconds
        self._max_retries = http_settings.max_retries
        self._backoff_initial_seconds = http_settings.backoff_initial_seconds
        self._backoff_multiplier = http_settings.backoff_multiplier
        self._min_request_interval_seconds = (
            1.0 / http_settings.rate_limit_per_second if http_settings.rate_limit_per_second > 0 else 0.0
        )
        self._last_request_monotonic: float = 0.0

    def _request_json(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: Any = None,
    ) -> Any:
        """
        Execute an HTTP request and return parsed JSON.
        """

        response = self._request(
            method=method,
            url=url,
            params=params,
            headers=headers,
            json_body=json_body,
        )
        try:
            return response.json()
        except ValueError as exc:
            raise PlanningAPIError(f"{self.source}: response was not valid JSON.") from exc

    def _request_text(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> str:
        """
        Execute an HTTP request and return response text.
        """

        response = self._request(method=method, url=url, params=params, headers=headers)
        return response.text

    def _request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: Any = None,
        data: bytes | None = None,
        auth: tuple[str, str] | None = None,
    ) -> requests.Response:
        """
        Execute an HTTP request with rate limiting.

        Idempotent requests are retried with exponential backoff on
        transport errors and retryable status codes.
        """

        method = method.upper()
        max_retries = self._max_retries if method in IDEMPOTENT_METHODS else 0
        last_error: Exception | None = None
        last_status: int | None = None
        for attempt in range(max_retries + 1):
            self._apply_rate_limit()
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers=headers,
                    json=json_body,
                    data=data,
                    auth=auth,
                    timeout=self._timeout_seconds,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable HTTP status code: {response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except requests.HTTPError as exc:
                last_error = exc
                last_status = exc.response.status_code if exc.response is not None else None
                if last_status not in RETRYABLE_STATUS_CODES:
                    logger.error(
                        "Connector request failed source=%s method=%s status=%s url=%s error=%s",
                        self.source,
                        method,
                        last_status,
                        url,
                        exc,
                    )
                    raise PlanningAPIError(
                        f"{self.source}: non-retryable request failure.",
                        status_code=last_status,
                    ) from exc
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc
                last_status = None
            except requests.RequestException as exc:
                logger.error(
                    "Connector request error source=%s method=%s url=%s error=%s",
                    self.source,
                    method,
                    url,
                    exc,
                )
                raise PlanningAPIError(f"{self.source}: request could not be sent.") from exc

            if attempt >= max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Connector request retry source=%s attempt=%s/%s wait_seconds=%.2f url=%s",
                self.source,
                attempt + 1,
                max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)

        logger.error(
            "Connector request failed source=%s method=%s url=%s error=%s",
            self.source,
            method,
            url,
            last_error,
        )
        raise PlanningAPIError(
            f"{self.source}: request failed after {max_retries + 1} attempt(s).",
            status_code=last_status,
        ) from last_error

    def _apply_rate_limit(self) -> None:
        """
        Enforce minimum interval between outbound requests.
        """

        if self._min_request_interval_seconds <= 0:
            return

        now = time.monotonic()
        elapsed = now - self._last_request_monotonic
        remaining = self._min_request_interval_seconds - elapsed
        if remaining > 0:
            time.sleep(remaining)
        self._last_request_monotonic = time.monotonic()
