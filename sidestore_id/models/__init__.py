from __future__ import annotations

"""Unified models namespace – contains both API (request/response) and DB models.

All FastAPI route models, enums and helpers live directly in this package so
call-sites can simply::

    from sidestore_id.models import Principal, ReviewSignatureRequest
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

# External enums -------------------------------------------------------------
from sidestore_id.models.scopes import Scope, satisfies

# ---------------------------------------------------------------------------
# Authentication Models
# ---------------------------------------------------------------------------

NIL_USER_ID = "00000000-0000-0000-0000-000000000000"


@dataclass(frozen=True)
class Principal:
    """Authenticated identity resolved from a request by the auth guard.

    Built per request and never persisted. Unprotected paths and the
    anonymous OAuth authorization flow yield the nil user id.
    """
    user_id: str
    scope: Scope

    def has_scope(self, required: Scope) -> bool:
        """Check if the principal's scope is at least ``required``."""
        return satisfies(self.scope, required)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id == NIL_USER_ID

# ---------------------------------------------------------------------------
# Enums – shareable across request / DB models
# ---------------------------------------------------------------------------

class ReviewStatus(str, Enum):
    published = "published"
    deleted = "deleted"

# ---------------------------------------------------------------------------
# API  Pydantic models
# ---------------------------------------------------------------------------

class BaseResponse(BaseModel):
    # Pydantic v2 compatible: enable attribute access on ORM objects
    model_config = {
        "from_attributes": True,
        "json_schema_extra": {"example": {"message": "OK"}},
    }

class MessageResponse(BaseResponse):
    message: str = Field(..., examples=["OK"])

class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)

class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)

class UserProfile(BaseResponse):
    email: str
    username: Optional[str] = None

class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    profile: UserProfile

SignupResponse = LoginResponse

class ReviewSignatureRequest(BaseModel):
    source_identifier: str = Field(..., min_length=1, max_length=255)
    app_bundle_id: str = Field(..., min_length=1, max_length=255)
    version_number: str = Field(..., max_length=255)
    review_rating: int = Field(..., ge=0, le=255)
    review_title: str
    review_body: str

class ReviewDeletionRequest(BaseModel):
    source_identifier: str = Field(..., min_length=1, max_length=255)
    app_bundle_id: str = Field(..., min_length=1, max_length=255)

class ReviewSignatureResponse(BaseModel):
    sequence_number: int
    review_date: int = Field(..., description="Unix seconds of the signed state")
    signature: str = Field(..., description="Base64 Ed25519 signature over the canonical payload")

class ReviewResponse(BaseModel):
    id: str
    status: ReviewStatus
    sequence_number: int
    sidestore_user_id: str
    source_identifier: str
    app_bundle_identifier: str
    version_number: Optional[str] = None
    review_rating: Optional[int] = None
    created_at: int
    date: int = Field(..., description="Unix seconds of the last signed change")
    signature: Optional[str] = None


__all__ = [
    "NIL_USER_ID",
    "BaseResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "Principal",
    "ReviewDeletionRequest",
    "ReviewResponse",
    "ReviewSignatureRequest",
    "ReviewSignatureResponse",
    "ReviewStatus",
    "Scope",
    "SignupRequest",
    "SignupResponse",
    "UserProfile",
]
