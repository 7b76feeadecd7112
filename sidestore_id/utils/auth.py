"""Centralized authentication system for the SideStore identity API.

This module provides a single, consistent auth interface that all routes use.
``get_principal`` runs once per request (router-level dependency, cached by
FastAPI) and resolves a :class:`Principal`; ``require_scope`` then gates a
route on the minimum scope it needs.

The request-facing policy (allowlist, header vs. cookie, anonymous OAuth
authorization) lives in :func:`extract_candidate_token` and
:func:`get_principal`. Token verification itself is the pure
:func:`authenticate` over ``(token, expected_type, now)``.
"""

from __future__ import annotations

import time
from typing import Any

from fastapi import Depends, Request

from sidestore_id.models import NIL_USER_ID, Principal
from sidestore_id.models.scopes import Scope, satisfies, strongest_scope
from sidestore_id.settings import Settings
from sidestore_id.utils.errors import (
    InsufficientScope,
    InvalidToken,
    MissingToken,
    TokenExpired,
    TokenNotYetValid,
    Unauthorized,
)
from sidestore_id.utils.logger import current_user_id, logger
from sidestore_id.utils.tokens import TokenClaims, TokenType, verify_token


def expected_token_type(path: str, settings: Settings) -> TokenType:
    """Refresh tokens are only accepted on the refresh path, access tokens everywhere else."""
    return TokenType.refresh if path == settings.refresh_path else TokenType.access


def _bearer_value(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def extract_candidate_token(request: Request, expected_type: TokenType, settings: Settings) -> str | None:
    """Return the bearer header value, else the type-specific cookie, else ``None``."""
    token = _bearer_value(request.headers.get("authorization"))
    if token is not None:
        return token
    cookie_name = (
        settings.refresh_token_cookie if expected_type is TokenType.refresh else settings.access_token_cookie
    )
    return request.cookies.get(cookie_name) or None


def validate_claims(claims: TokenClaims, expected_type: TokenType, now: int) -> Principal:
    """Apply type and temporal checks to decoded claims."""
    if claims.type is not expected_type:
        raise InvalidToken()
    if not now < claims.exp:
        raise TokenExpired()
    if claims.iat > now:
        raise TokenNotYetValid()
    return Principal(user_id=claims.sub, scope=claims.scope)


def authenticate(token: str, expected_type: TokenType, settings: Settings, now: int | None = None) -> Principal:
    """Decode ``token`` and turn it into a :class:`Principal` or raise ``Unauthorized``."""
    claims = verify_token(token, settings)
    return validate_claims(claims, expected_type, int(time.time()) if now is None else now)


def _bind_principal(request: Request, principal: Principal) -> Principal:
    # Ambient context for collaborators that do not receive the Principal.
    request.state.user_id = principal.user_id
    request.state.scope = principal.scope
    current_user_id.set(principal.user_id)
    return principal


async def get_principal(request: Request) -> Principal:
    """Resolve the request's :class:`Principal` (router-level dependency)."""
    settings: Settings = request.app.state.settings
    path = request.url.path

    if path in settings.unprotected_paths:
        return _bind_principal(request, Principal(user_id=NIL_USER_ID, scope=strongest_scope()))

    expected_type = expected_token_type(path, settings)
    token = extract_candidate_token(request, expected_type, settings)
    if token is None:
        if path == settings.oauth_authorize_path:
            # Federated authorization redirect: proceed anonymously with profile scope.
            return _bind_principal(request, Principal(user_id=NIL_USER_ID, scope=Scope.profile))
        raise MissingToken()

    try:
        principal = authenticate(token, expected_type, settings)
    except Unauthorized as exc:
        logger.info("auth.rejected", extra={"extra": {"path": path, "reason": exc.detail}})
        raise
    return _bind_principal(request, principal)


def require_scope(required: Scope) -> Any:
    """
    Dependency factory gating a route on a minimum scope.

    Examples:
        principal: Principal = Depends(require_scope(Scope.full))
        principal: Principal = Depends(require_scope(Scope.profile))
    """

    async def _scope_dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if not satisfies(principal.scope, required):
            raise InsufficientScope()
        return principal

    return _scope_dependency
