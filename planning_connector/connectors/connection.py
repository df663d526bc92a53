"""
planning_connector/connectors/connection.py

Authenticated session management for the planning API.
"""

from __future__ import annotations

import logging

import requests

from planning_connector.config import ExternalHTTPSettings, PlanningAPISettings
from planning_connector.connectors.base import BaseConnector, PlanningAPIError
from planning_connector.connectors.planning_api import PlanningAPIClient
from planning_connector.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class PlanningConnection(BaseConnector):
    """
    One authenticated planning API session.

    Authentication happens lazily on first use of ``client()``. ``close()``
    logs the token out and closes the underlying HTTP session; it is safe
    to call more than once.
    """

    def __init__(
        self,
        *,
        settings: PlanningAPISettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        if not settings.username or not settings.password:
            raise ConfigurationError("Planning API username and password must be configured.")

        super().__init__(source="planning_auth", http_settings=http_settings, session=session)
        self._settings = settings
        self._http_settings = http_settings
        self._auth_url = settings.auth_url.rstrip("/")
        self._token: str | None = None
        self._client: PlanningAPIClient | None = None
        self._closed = False

    @property
    def log_context(self) -> str:
        return f"[{self._settings.username}]"

    @property
    def closed(self) -> bool:
        return self._closed

    def client(self) -> PlanningAPIClient:
        """
        Return the API client bound to this session, authenticating if needed.
        """

        if self._closed:
            raise PlanningAPIError(f"{self.source}: connection is closed.")
        if self._token is None:
            self._authenticate()
        if self._client is None:
            self._client = PlanningAPIClient(
                settings=self._settings,
                http_settings=self._http_settings,
                session=self._session,
            )
        return self._client

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        try:
            if self._token is not None:
                self._request(method="POST", url=f"{self._auth_url}/token/logout")
        except PlanningAPIError as exc:
            logger.warning("Planning API logout failed context=%s error=%s", self.log_context, exc)
        finally:
            self._token = None
            self._session.close()
            logger.info("Planning API connection closed context=%s", self.log_context)

    def __enter__(self) -> PlanningConnection:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _authenticate(self) -> None:
        response = self._request(
            method="POST",
            url=f"{self._auth_url}/token/authenticate",
            auth=(self._settings.username, self._settings.password),
        )
        try:
            token = response.json()["tokenInfo"]["tokenValue"]
        except (ValueError, KeyError, TypeError) as exc:
            raise PlanningAPIError(f"{self.source}: authentication response has no token.") from exc

        self._token = str(token)
        self._session.headers.update({"Authorization": f"AnaplanAuthToken {self._token}"})
        logger.info("Planning API authenticated context=%s", self.log_context)
