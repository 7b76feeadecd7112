"""Bearer token codec – HS256 JWTs carrying type, subject and scope.

Only the signature and structure are checked here. Temporal validity and
token type are the auth guard's job (see ``sidestore_id.utils.auth``).
"""

from __future__ import annotations

import time
from enum import Enum

from jose import JWTError, jwt as jose_jwt
from pydantic import BaseModel, ValidationError

from sidestore_id.models.scopes import Scope
from sidestore_id.settings import Settings
from sidestore_id.utils.errors import InternalError, InvalidToken
from sidestore_id.utils.logger import logger

JWT_ALGORITHM = "HS256"


class TokenType(str, Enum):
    access = "access"
    refresh = "refresh"


class TokenClaims(BaseModel):
    """Decoded claim set. ``type`` and ``scope`` are enums so unknown values fail decoding."""

    type: TokenType
    iss: str
    sub: str
    iat: int
    exp: int
    fresh: bool = False
    scope: Scope


def token_lifetime(token_type: TokenType, settings: Settings) -> int:
    if token_type is TokenType.refresh:
        return settings.jwt_refresh_expiration
    return settings.jwt_expiration


def issue_token(
    subject: str,
    token_type: TokenType,
    scope: Scope,
    settings: Settings,
    *,
    now: int | None = None,
) -> str:
    """Sign a new token for ``subject`` valid from ``now`` for the type's lifetime."""
    iat = int(time.time()) if now is None else now
    claims = TokenClaims(
        type=token_type,
        iss=settings.jwt_issuer,
        sub=subject,
        iat=iat,
        exp=iat + token_lifetime(token_type, settings),
        scope=scope,
    )
    try:
        return jose_jwt.encode(claims.model_dump(mode="json"), settings.jwt_secret, algorithm=JWT_ALGORITHM)
    except JWTError as exc:
        logger.error("token.issue_failed", extra={"extra": {"type": token_type.value, "error": str(exc)}})
        raise InternalError("Error generating jwt token") from exc


def create_auth_tokens(user_id: str, settings: Settings, scope: Scope = Scope.full) -> tuple[str, str]:
    """Return an ``(access_token, refresh_token)`` pair for ``user_id``."""
    access_token = issue_token(user_id, TokenType.access, scope, settings)
    refresh_token = issue_token(user_id, TokenType.refresh, scope, settings)
    return access_token, refresh_token


def verify_token(token: str, settings: Settings) -> TokenClaims:
    """Check signature, issuer and claim structure; raise ``InvalidToken`` otherwise."""
    try:
        raw = jose_jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            issuer=settings.jwt_issuer,
            options={
                "verify_exp": False,
                "verify_iat": False,
                "verify_nbf": False,
                "verify_aud": False,
            },
        )
        return TokenClaims.model_validate(raw)
    except (JWTError, ValidationError) as exc:
        raise InvalidToken() from exc
