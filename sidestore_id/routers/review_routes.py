"""Review attestation endpoints – sign, withdraw, list and public key download."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse

# Rate limiter exported by main.py
from sidestore_id.main import limiter

from sidestore_id.models import (
    Principal,
    ReviewDeletionRequest,
    ReviewResponse,
    ReviewSignatureRequest,
    ReviewSignatureResponse,
    Scope,
)
from sidestore_id.models.db import ReviewRecord
from sidestore_id.utils.auth import require_scope
from sidestore_id.utils.dependencies import get_review_engine, get_signing_keypair
from sidestore_id.utils.reviews import ReviewAttestationEngine
from sidestore_id.utils.signing_keys import SigningKeypair

router = APIRouter(prefix="/api/reviews", tags=["reviews"])

PUBLIC_KEY_FILENAME = "public_key.pem"


def _signature_response(record: ReviewRecord) -> ReviewSignatureResponse:
    return ReviewSignatureResponse(
        sequence_number=record.sequence_number,
        review_date=record.updated_ts,
        signature=record.signature,
    )


@router.get("/public_key", response_class=FileResponse)
@limiter.limit("60/minute")
async def get_public_key(
    request: Request,
    keypair: SigningKeypair = Depends(get_signing_keypair),
):
    """Download the review signing public key (PEM, SubjectPublicKeyInfo)."""
    return FileResponse(
        keypair.public_key_path,
        media_type="application/x-pem-file",
        filename=PUBLIC_KEY_FILENAME,
        content_disposition_type="attachment",
    )


@router.post("/sign", response_model=ReviewSignatureResponse)
async def sign(
    payload: ReviewSignatureRequest,
    principal: Principal = Depends(require_scope(Scope.full)),
    engine: ReviewAttestationEngine = Depends(get_review_engine),
):
    """Create or update the caller's review for an app and return its attestation."""
    record = await engine.submit_or_update(
        principal.user_id,
        payload.source_identifier,
        payload.app_bundle_id,
        payload.version_number,
        payload.review_rating,
        payload.review_title,
        payload.review_body,
    )
    return _signature_response(record)


@router.delete("/delete", response_model=ReviewSignatureResponse)
async def delete(
    payload: ReviewDeletionRequest,
    principal: Principal = Depends(require_scope(Scope.full)),
    engine: ReviewAttestationEngine = Depends(get_review_engine),
):
    """Withdraw the caller's review; the slot and its sequence number are kept."""
    record = await engine.withdraw(principal.user_id, payload.source_identifier, payload.app_bundle_id)
    return _signature_response(record)


@router.get("", response_model=list[ReviewResponse])
async def list_reviews(
    principal: Principal = Depends(require_scope(Scope.full)),
    engine: ReviewAttestationEngine = Depends(get_review_engine),
):
    records = await engine.list_reviews(principal.user_id)
    return [
        ReviewResponse(
            id=record.id,
            status=record.status,
            sequence_number=record.sequence_number,
            sidestore_user_id=record.user_id,
            source_identifier=record.source_id,
            app_bundle_identifier=record.app_bundle_id,
            version_number=record.app_version,
            review_rating=record.review_rating,
            created_at=record.created_ts,
            date=record.updated_ts,
            signature=record.signature,
        )
        for record in records
    ]


__all__ = ["router"]
