from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


class ConfigurationError(RuntimeError):
    """Raised when required connection settings are missing at startup."""


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - TODO_STORE_BACKEND: 'supabase' (default) or 'memory'
    - SUPABASE_URL: hosted store endpoint (falls back to NEXT_PUBLIC_SUPABASE_URL)
    - SUPABASE_ANON_KEY: public API key (falls back to NEXT_PUBLIC_SUPABASE_ANON_KEY)
    - SUPABASE_TIMEOUT: HTTP timeout in seconds for store calls. Default 10
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: logging level name. Default 'INFO'
    """

    store_backend: str
    supabase_url: Optional[str]
    supabase_anon_key: Optional[str]
    supabase_timeout: float
    cors_allow_origins: List[str]
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return None


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_cors_origins() -> List[str]:
    """Return allowed CORS origins; the app needs them before startup checks run."""
    return _parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*"))


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """
    Return application settings loaded from environment variables.

    Raises:
        ConfigurationError: if the supabase backend is selected and either the
            service URL or the public API key is missing.
    """
    backend = _get_env("TODO_STORE_BACKEND", "supabase").strip().lower()
    if backend not in {"supabase", "memory"}:
        raise ConfigurationError(
            f"Unsupported TODO_STORE_BACKEND '{backend}'; expected 'supabase' or 'memory'"
        )

    url = _first_env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
    key = _first_env("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY")
    if backend == "supabase":
        missing = [name for name, value in (("SUPABASE_URL", url), ("SUPABASE_ANON_KEY", key)) if not value]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    return Settings(
        store_backend=backend,
        supabase_url=url,
        supabase_anon_key=key,
        supabase_timeout=_parse_float(_get_env("SUPABASE_TIMEOUT", "10"), 10.0),
        cors_allow_origins=get_cors_origins(),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
