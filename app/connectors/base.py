"""
app/connectors/base.py

Microsoft Graph HTTP client with app-only authentication, request timeout
and bounded retries.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

import requests

from app.config import GraphSettings
from ingestion.errors import RemoteReadError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_TOKEN_EXPIRY_MARGIN_SECONDS = 60.0


class GraphRequestError(RemoteReadError):
    """
    Raised when a Graph request cannot be completed after retries.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GraphClient:
    """
    Thin Graph API client shared by drive discovery and workbook reads.

    Access tokens come from the client-credentials flow and are cached
    until shortly before they expire.
    """

    def __init__(
        self,
        *,
        settings: GraphSettings,
        session: requests.Session | None = None,
    ) -> None:
        if not settings.is_configured:
            raise RuntimeError(
                "Graph access is not configured. Set GRAPH_TENANT_ID, GRAPH_CLIENT_ID, "
                "GRAPH_CLIENT_SECRET and GRAPH_DRIVE_USER_ID."
            )
        self._settings = settings
        self._session = session or requests.Session()
        self._timeout_seconds = settings.timeout_seconds
        self._max_retries = settings.max_retries
        self._backoff_initial_seconds = settings.backoff_initial_seconds
        self._backoff_multiplier = settings.backoff_multiplier
        self._token: str | None = None
        self._token_expires_at: float = 0.0
        self._token_lock = threading.Lock()

    @property
    def drive_path(self) -> str:
        return f"/users/{self._settings.drive_user_id}/drive"

    def get_json(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        """
        GET a Graph path (relative to the base URL) or absolute URL and
        return parsed JSON.
        """

        url = path if path.startswith("http") else f"{self._settings.base_url}{path}"
        response = self._request(method="GET", url=url, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise GraphRequestError(f"Graph response was not valid JSON: {url}") from exc

    def list_children(self, item_path: str) -> list[dict[str, Any]]:
        """
        Return every child of a drive item, following ``@odata.nextLink``.
        """

        items: list[dict[str, Any]] = []
        next_url: str | None = f"{self.drive_path}{item_path}/children"
        while next_url:
            payload = self.get_json(next_url)
            items.extend(payload.get("value") or [])
            next_url = payload.get("@odata.nextLink")
        return items

    def _request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> requests.Response:
        """
        Execute an authenticated request with exponential backoff.
        """

        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers={"Authorization": f"Bearer {self._access_token()}"},
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
                status_code = exc.response.status_code if exc.response is not None else None
                if status_code == 401:
                    self._invalidate_token()
                elif status_code not in RETRYABLE_STATUS_CODES:
                    logger.error(
                        "Graph request failed status=%s url=%s error=%s",
                        status_code,
                        url,
                        exc,
                    )
                    raise GraphRequestError(
                        f"Graph request failed with status {status_code}: {url}",
                        status_code=status_code,
                    ) from exc
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc

            if attempt >= self._max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Graph request retry attempt=%s/%s wait_seconds=%.2f url=%s",
                attempt + 1,
                self._max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)

        logger.error("Graph request exhausted retries url=%s error=%s", url, last_error)
        raise GraphRequestError(f"Graph request failed after retries: {url}") from last_error

    def _access_token(self) -> str:
        with self._token_lock:
            now = time.monotonic()
            if self._token is not None and now < self._token_expires_at:
                return self._token

            token_url = (
                f"{self._settings.authority_url}/{self._settings.tenant_id}/oauth2/v2.0/token"
            )
            try:
                response = self._session.post(
                    token_url,
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self._settings.client_id,
                        "client_secret": self._settings.client_secret,
                        "scope": self._settings.scope,
                    },
                    timeout=self._timeout_seconds,
                )
                response.raise_for_status()
                payload = response.json()
            except (requests.RequestException, ValueError) as exc:
                raise GraphRequestError("Failed to acquire Graph access token.") from exc

            token = payload.get("access_token")
            if not token:
                raise GraphRequestError("Token response did not contain an access token.")
            expires_in = float(payload.get("expires_in") or 3600)
            self._token = token
            self._token_expires_at = now + max(0.0, expires_in - _TOKEN_EXPIRY_MARGIN_SECONDS)
            return token

    def _invalidate_token(self) -> None:
        with self._token_lock:
            self._token = None
            self._token_expires_at = 0.0
