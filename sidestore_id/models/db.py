from __future__ import annotations

"""Persistence / Supabase row models."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from sidestore_id.models import ReviewStatus

__all__ = [
    "ReviewRecord",
    "User",
    "utcnow",
]


def utcnow() -> datetime:
    """Current UTC time truncated to whole seconds (signed payloads use unix seconds)."""
    return datetime.now(timezone.utc).replace(microsecond=0)


class User(BaseModel):
    """Row in `users`."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    email: str
    username: Optional[str] = None
    password_hash: str = Field(..., repr=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class ReviewRecord(BaseModel):
    """Row in `app_review_signatures` – one attested review slot.

    ``sequence_number`` is assigned once at creation and never changes; the
    record is never physically removed, deletion flips ``status``.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    status: ReviewStatus = ReviewStatus.published
    sequence_number: int
    source_id: str
    app_bundle_id: str
    app_version: Optional[str] = None
    review_rating: Optional[int] = None
    signature: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def created_ts(self) -> int:
        return int(self.created_at.timestamp())

    @property
    def updated_ts(self) -> int:
        return int(self.updated_at.timestamp())

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
