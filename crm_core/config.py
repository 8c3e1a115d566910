# =============================================================================
# crm_core/config.py
# Environment-driven settings for the CRM Dashboard
# =============================================================================
"""
Settings are read from environment variables once per process.

    CRM_API_URL                      backend base URL
    FIREBASE_API_KEY                 web API key of the identity provider
    CRM_REQUEST_TIMEOUT              seconds per HTTP request
    CRM_DEDUPE_INTERVAL              seconds identical reads are coalesced
    CRM_SEARCH_DEDUPE_INTERVAL       same, for customer search
    CRM_CUSTOMERS_REFRESH_INTERVAL   polling period of the customer list
    CRM_USER_REFRESH_INTERVAL        polling period of the current user
    CRM_HEALTH_CHECK_INTERVAL        connection monitor period while online
    CRM_LOG_LEVEL                    logging level name
    CRM_LOG_TO_FILE                  "1"/"true" to also log under logs/
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from crm_core.errors import ConfigurationError

DEFAULT_API_URL = "http://localhost:3001"


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration"""
    api_base_url: str = DEFAULT_API_URL
    firebase_api_key: Optional[str] = None
    request_timeout: float = 30.0
    dedupe_interval: float = 2.0
    search_dedupe_interval: float = 5.0
    customers_refresh_interval: float = 30.0
    user_refresh_interval: float = 60.0
    health_check_interval: float = 30.0
    log_level: str = "INFO"
    log_to_file: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            api_base_url=env.get("CRM_API_URL", DEFAULT_API_URL).rstrip("/"),
            firebase_api_key=env.get("FIREBASE_API_KEY") or None,
            request_timeout=_float(env, "CRM_REQUEST_TIMEOUT", 30.0),
            dedupe_interval=_float(env, "CRM_DEDUPE_INTERVAL", 2.0),
            search_dedupe_interval=_float(env, "CRM_SEARCH_DEDUPE_INTERVAL", 5.0),
            customers_refresh_interval=_float(env, "CRM_CUSTOMERS_REFRESH_INTERVAL", 30.0),
            user_refresh_interval=_float(env, "CRM_USER_REFRESH_INTERVAL", 60.0),
            health_check_interval=_float(env, "CRM_HEALTH_CHECK_INTERVAL", 30.0),
            log_level=env.get("CRM_LOG_LEVEL", "INFO"),
            log_to_file=env.get("CRM_LOG_TO_FILE", "").lower() in ("1", "true", "yes"),
        )


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(
            f"{key} must be a number, got {raw!r}",
            config_key=key,
            expected_type="float",
        )
    if value < 0:
        raise ConfigurationError(f"{key} must not be negative", config_key=key)
    return value


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the singleton settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
