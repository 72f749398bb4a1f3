"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_SYNC_SOURCES = {"graph", "local"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


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


@dataclass(frozen=True)
class GraphSettings:
    """
    Microsoft Graph drive access settings.

    Remote range reads use a short timeout and a small bounded retry count.
    """

    tenant_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    drive_user_id: str | None = None
    base_url: str = "https://graph.microsoft.com/v1.0"
    authority_url: str = "https://login.microsoftonline.com"
    scope: str = "https://graph.microsoft.com/.default"
    root_folder: str = "IM"
    timeout_seconds: float = 15.0
    max_retries: int = 2
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0

    @property
    def is_configured(self) -> bool:
        return all((self.tenant_id, self.client_id, self.client_secret, self.drive_user_id))


@dataclass(frozen=True)
class SyncSettings:
    """
    Runtime settings for KPI workbook synchronization.
    """

    source: str = "graph"
    local_root: str | None = None
    max_concurrency: int = 5
    strict_values: bool = False
    cron_hour: int = 2
    cron_minute: int = 0
    scheduler_enabled: bool = True


@lru_cache(maxsize=1)
def get_graph_settings() -> GraphSettings:
    """
    Return Graph drive settings from environment variables.
    """

    return GraphSettings(
        tenant_id=_get_optional_str_env("GRAPH_TENANT_ID"),
        client_id=_get_optional_str_env("GRAPH_CLIENT_ID"),
        client_secret=_get_optional_str_env("GRAPH_CLIENT_SECRET"),
        drive_user_id=_get_optional_str_env("GRAPH_DRIVE_USER_ID"),
        base_url=_get_str_env("GRAPH_BASE_URL", "https://graph.microsoft.com/v1.0").rstrip("/"),
        authority_url=_get_str_env("GRAPH_AUTHORITY_URL", "https://login.microsoftonline.com").rstrip("/"),
        scope=_get_str_env("GRAPH_SCOPE", "https://graph.microsoft.com/.default"),
        root_folder=_get_str_env("GRAPH_ROOT_FOLDER", "IM"),
        timeout_seconds=max(1.0, _get_float_env("GRAPH_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("GRAPH_MAX_RETRIES", 2)),
        backoff_initial_seconds=max(0.1, _get_float_env("GRAPH_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("GRAPH_BACKOFF_MULTIPLIER", 2.0)),
    )


@lru_cache(maxsize=1)
def get_sync_settings() -> SyncSettings:
    """
    Return KPI sync settings from environment variables.

    Raises RuntimeError if KPI_SYNC_SOURCE names an unknown source.
    """

    source = _get_str_env("KPI_SYNC_SOURCE", "graph").lower()
    if source not in _ALLOWED_SYNC_SOURCES:
        raise RuntimeError(
            f"KPI_SYNC_SOURCE '{source}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_SYNC_SOURCES)}."
        )
    return SyncSettings(
        source=source,
        local_root=_get_optional_str_env("KPI_SYNC_LOCAL_ROOT"),
        max_concurrency=max(1, _get_int_env("KPI_SYNC_MAX_CONCURRENCY", 5)),
        strict_values=_get_bool_env("KPI_SYNC_STRICT_VALUES", False),
        cron_hour=min(23, max(0, _get_int_env("KPI_SYNC_CRON_HOUR", 2))),
        cron_minute=min(59, max(0, _get_int_env("KPI_SYNC_CRON_MINUTE", 0))),
        scheduler_enabled=_get_bool_env("KPI_SYNC_SCHEDULER_ENABLED", True),
    )
