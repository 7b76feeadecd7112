from __future__ import annotations

"""Application-level configuration helpers (env → immutable settings).

Only generic utilities that may be imported *anywhere* in the code-base
should live in this module.  The resulting :class:`Settings` value is built
once at boot by :func:`load_settings` and handed to ``create_app()``; request
handlers read it back from ``app.state`` instead of touching ``os.environ``.
"""

# Standard library
import os
from dataclasses import dataclass, field

__all__ = [
    "ACCESS_TOKEN_COOKIE",
    "DEFAULT_JWT_EXPIRATION",
    "DEFAULT_JWT_REFRESH_EXPIRATION",
    "HEALTH_API_PATH",
    "LOGIN_API_PATH",
    "OAUTH_AUTHORIZE_API_PATH",
    "PUBLIC_KEY_API_PATH",
    "REFRESH_API_PATH",
    "REFRESH_TOKEN_COOKIE",
    "SIGNUP_API_PATH",
    "UNPROTECTED_API_PATHS",
    "Settings",
    "load_settings",
]

DEFAULT_JWT_EXPIRATION = 3600
DEFAULT_JWT_REFRESH_EXPIRATION = 3600 * 24 * 7

HEALTH_API_PATH = "/api/health"
SIGNUP_API_PATH = "/api/auth/signup"
LOGIN_API_PATH = "/api/auth/login"
REFRESH_API_PATH = "/api/auth/refresh"
OAUTH_AUTHORIZE_API_PATH = "/api/auth/oauth2/authorize"
PUBLIC_KEY_API_PATH = "/api/reviews/public_key"

# Exact-match allowlist; nested routes below these paths are still protected.
UNPROTECTED_API_PATHS: frozenset[str] = frozenset(
    {
        HEALTH_API_PATH,
        SIGNUP_API_PATH,
        LOGIN_API_PATH,
        PUBLIC_KEY_API_PATH,
    }
)

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration consumed by the auth and review layers."""

    jwt_secret: str
    jwt_issuer: str
    storage_path: str
    jwt_expiration: int = DEFAULT_JWT_EXPIRATION
    jwt_refresh_expiration: int = DEFAULT_JWT_REFRESH_EXPIRATION
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    unprotected_paths: frozenset[str] = UNPROTECTED_API_PATHS
    refresh_path: str = REFRESH_API_PATH
    oauth_authorize_path: str = OAUTH_AUTHORIZE_API_PATH
    access_token_cookie: str = ACCESS_TOKEN_COOKIE
    refresh_token_cookie: str = REFRESH_TOKEN_COOKIE


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"{name} must be set")
    return value


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def _collect_origins() -> list[str]:
    """Collect allowed CORS origins from ``CORS_ORIGIN`` (comma separated).

    Falls back to the wildcard so native clients and the public-key download
    keep working when no explicit origin is configured.
    """
    raw = os.getenv("CORS_ORIGIN", "")
    origins = [item.strip() for item in raw.split(",") if item.strip()]
    return origins or ["*"]


def load_settings() -> Settings:
    """Build :class:`Settings` from the environment (raises on missing values)."""
    return Settings(
        jwt_secret=_require("JWT_SECRET"),
        jwt_issuer=_require("JWT_ISSUER"),
        storage_path=_require("STORAGE_PATH"),
        jwt_expiration=_int_env("JWT_EXPIRATION", DEFAULT_JWT_EXPIRATION),
        jwt_refresh_expiration=_int_env("JWT_REFRESH_EXPIRATION", DEFAULT_JWT_REFRESH_EXPIRATION),
        allowed_origins=_collect_origins(),
    )
