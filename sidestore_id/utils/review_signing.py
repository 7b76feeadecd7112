"""Canonical review payload and its Ed25519 attestation.

Canonical form (a compatibility contract with third-party verifiers):

* a JSON object with exactly the fields of :class:`ReviewSignatureData`, in
  declaration order;
* no whitespace (``","`` and ``":"`` separators);
* strings emitted as raw UTF-8 (no ``\\uXXXX`` for non-ASCII); only ``"``,
  ``\\`` and control characters below U+0020 are escaped, the latter as
  ``\\n \\r \\t \\b \\f`` or lowercase ``\\u00xx``;
* ``status`` is ``"published"`` / ``"deleted"``, timestamps are integer unix
  seconds, missing values are ``null``.

The signature is the standard-base64 encoding of the raw 64-byte Ed25519
signature over the UTF-8 bytes of that JSON text.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from pydantic import BaseModel

from sidestore_id.models import ReviewStatus
from sidestore_id.models.db import ReviewRecord
from sidestore_id.utils.errors import BadRequest, InternalError
from sidestore_id.utils.logger import logger
from sidestore_id.utils.signing_keys import SigningKeypair


class ReviewSignatureData(BaseModel):
    """Signed state of a review. Field order here *is* the canonical order."""

    sidestore_user_id: str
    status: ReviewStatus
    sequence_number: int
    source_identifier: str
    app_bundle_identifier: str
    version_number: Optional[str] = None
    review_rating: Optional[int] = None
    review_title: Optional[str] = None
    review_body: Optional[str] = None
    created_at: int
    updated_at: int

    @classmethod
    def from_submission(cls, record: ReviewRecord, title: str, body: str) -> "ReviewSignatureData":
        return cls(
            sidestore_user_id=record.user_id,
            status=ReviewStatus.published,
            sequence_number=record.sequence_number,
            source_identifier=record.source_id,
            app_bundle_identifier=record.app_bundle_id,
            version_number=record.app_version,
            review_rating=record.review_rating,
            review_title=title,
            review_body=body,
            created_at=record.created_ts,
            updated_at=record.updated_ts,
        )

    @classmethod
    def from_withdrawal(cls, record: ReviewRecord) -> "ReviewSignatureData":
        return cls(
            sidestore_user_id=record.user_id,
            status=ReviewStatus.deleted,
            sequence_number=record.sequence_number,
            source_identifier=record.source_id,
            app_bundle_identifier=record.app_bundle_id,
            created_at=record.created_ts,
            updated_at=record.updated_ts,
        )


def canonical_payload(data: ReviewSignatureData) -> bytes:
    """Serialize ``data`` to the canonical UTF-8 JSON bytes that get signed."""
    text = json.dumps(
        data.model_dump(mode="json"),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    # Lone surrogates cannot be encoded and surface as an error here.
    return text.encode("utf-8")


def ensure_signable(data: ReviewSignatureData) -> None:
    """Reject client text the canonical form cannot carry, before anything is stored."""
    try:
        canonical_payload(data)
    except (TypeError, ValueError) as exc:
        logger.info(f"Rejected unsignable review text: {type(exc).__name__}")
        raise BadRequest("Review text must be valid Unicode") from exc


def sign_review(data: ReviewSignatureData, keypair: SigningKeypair) -> str:
    """Return the base64 Ed25519 signature over ``canonical_payload(data)``."""
    try:
        payload = canonical_payload(data)
    except (TypeError, ValueError) as exc:
        logger.error(f"Error serializing review data: {exc}")
        raise InternalError("Failed to serialize review data") from exc
    logger.debug(f"Review data: {payload!r}")
    return base64.b64encode(keypair.sign(payload)).decode("ascii")


def verify_review_signature(data: ReviewSignatureData, signature: str, public_key: Ed25519PublicKey) -> bool:
    """Verify a base64 signature the way an independent client would."""
    try:
        raw = base64.b64decode(signature, validate=True)
        public_key.verify(raw, canonical_payload(data))
    except (InvalidSignature, binascii.Error, ValueError):
        return False
    return True
