"""Service error taxonomy.

Every error is an ``HTTPException`` so FastAPI renders it as ``{"detail": ...}``
with the matching status code and routes can simply ``raise`` them.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class ServiceError(HTTPException):
    """Base class – carries a fixed status code and a default detail."""

    status_code_default: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail_default: str = "Internal Server Error"

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.detail_default,
            headers=headers,
        )


class Unauthorized(ServiceError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    detail_default = "Unauthorized"


class MissingToken(Unauthorized):
    detail_default = "Authorization header not found"


class InvalidToken(Unauthorized):
    detail_default = "Invalid token"


class TokenExpired(Unauthorized):
    detail_default = "Token expired"


class TokenNotYetValid(Unauthorized):
    detail_default = "Token used before issued"


class InsufficientScope(Unauthorized):
    detail_default = "Invalid token scope."


class BadRequest(ServiceError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Bad request"


class NotFound(ServiceError):
    status_code_default = status.HTTP_404_NOT_FOUND
    detail_default = "Not found"


class InternalError(ServiceError):
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail_default = "Internal Server Error"


__all__ = [
    "BadRequest",
    "InsufficientScope",
    "InternalError",
    "InvalidToken",
    "MissingToken",
    "NotFound",
    "ServiceError",
    "TokenExpired",
    "TokenNotYetValid",
    "Unauthorized",
]
