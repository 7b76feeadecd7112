"""Review attestation engine: sequencing, state transitions and signing.

A review slot is identified by ``(user_id, source_id, app_bundle_id)`` while
published. Sequence numbers are allocated per ``(source_id, app_bundle_id)``
as ``max + 1`` under :class:`SequenceLocks`, so concurrent first submissions
for the same app never share a number while different apps never contend.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sidestore_id.models import ReviewStatus
from sidestore_id.models.db import ReviewRecord, utcnow
from sidestore_id.utils.database import (
    DUPLICATE,
    insert_data,
    query_many,
    query_one,
    safe_call,
    update_data,
)
from sidestore_id.utils.errors import InternalError, NotFound
from sidestore_id.utils.logger import logger
from sidestore_id.utils.review_signing import ReviewSignatureData, ensure_signable, sign_review
from sidestore_id.utils.signing_keys import SigningKeypair

REVIEWS_TABLE = "app_review_signatures"


class ReviewStore:
    """Storage collaborator for ``app_review_signatures`` rows."""

    def __init__(self, supabase):
        self._supabase = supabase

    async def find_one(self, user_id: str, source_id: str, bundle_id: str) -> ReviewRecord | None:
        """Return the user's *published* review for the app, if any."""
        row = await safe_call(
            query_one(
                self._supabase,
                REVIEWS_TABLE,
                match={
                    "user_id": user_id,
                    "source_id": source_id,
                    "app_bundle_id": bundle_id,
                    "status": ReviewStatus.published.value,
                },
            ),
            detail="Failed to find review",
        )
        return ReviewRecord.model_validate(row) if row else None

    async def max_sequence(self, source_id: str, bundle_id: str) -> int:
        row = await safe_call(
            query_one(
                self._supabase,
                REVIEWS_TABLE,
                match={"source_id": source_id, "app_bundle_id": bundle_id},
                order_by=("sequence_number", True),
                select_fields="sequence_number",
            ),
            detail="Failed to find latest sequence number",
        )
        return int(row["sequence_number"]) if row else 0

    async def insert(self, record: ReviewRecord) -> None:
        result = await safe_call(
            insert_data(self._supabase, REVIEWS_TABLE, record.to_row()),
            detail="Failed to insert review",
        )
        if result == DUPLICATE:
            # Unique (source_id, app_bundle_id, sequence_number) tripped by another writer.
            raise InternalError("Review sequence conflict, please resubmit")

    async def update(self, record: ReviewRecord) -> None:
        values = record.to_row()
        values.pop("id")
        await safe_call(
            update_data(self._supabase, REVIEWS_TABLE, update_values=values, filters={"id": record.id}),
            detail="Failed to update review",
        )

    async def list_for_user(self, user_id: str) -> list[ReviewRecord]:
        rows = await safe_call(
            query_many(self._supabase, REVIEWS_TABLE, match={"user_id": user_id}, order_by=("created_at", False)),
            detail="Failed to list reviews",
        )
        return [ReviewRecord.model_validate(row) for row in rows]


class SequenceLocks:
    """Process-wide ``asyncio.Lock`` per ``(source_id, app_bundle_id)``.

    Entries are dropped once nobody holds or waits on them.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._users: dict[tuple[str, str], int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, source_id: str, bundle_id: str) -> AsyncIterator[None]:
        key = (source_id, bundle_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


class ReviewAttestationEngine:
    """Apply review mutations and re-sign the resulting state."""

    def __init__(self, store: ReviewStore, keypair: SigningKeypair, locks: SequenceLocks):
        self._store = store
        self._keypair = keypair
        self._locks = locks

    async def submit_or_update(
        self,
        user_id: str,
        source_id: str,
        bundle_id: str,
        version: str,
        rating: int,
        title: str,
        body: str,
    ) -> ReviewRecord:
        async with self._locks.hold(source_id, bundle_id):
            existing = await self._store.find_one(user_id, source_id, bundle_id)
            if existing is not None:
                logger.debug(f"User already has review {existing.id}. Update it.")
                record = existing.model_copy(
                    update={
                        "status": ReviewStatus.published,
                        "app_version": version,
                        "review_rating": rating,
                        "signature": None,
                        "updated_at": utcnow(),
                    }
                )
            else:
                now = utcnow()
                record = ReviewRecord(
                    user_id=user_id,
                    sequence_number=await self._store.max_sequence(source_id, bundle_id) + 1,
                    source_id=source_id,
                    app_bundle_id=bundle_id,
                    app_version=version,
                    review_rating=rating,
                    created_at=now,
                    updated_at=now,
                )

            # Nothing is written until the new state is known to serialize.
            data = ReviewSignatureData.from_submission(record, title, body)
            ensure_signable(data)

            if existing is not None:
                await self._store.update(record)
            else:
                await self._store.insert(record)
                logger.info(
                    "review.sequence_assigned",
                    extra={
                        "extra": {
                            "source_id": source_id,
                            "app_bundle_id": bundle_id,
                            "sequence_number": record.sequence_number,
                        }
                    },
                )

            return await self._attest(record, data)

    async def withdraw(self, user_id: str, source_id: str, bundle_id: str) -> ReviewRecord:
        async with self._locks.hold(source_id, bundle_id):
            record = await self._store.find_one(user_id, source_id, bundle_id)
            if record is None:
                raise NotFound("You didn't review this app yet.")

            record.status = ReviewStatus.deleted
            record.app_version = None
            record.review_rating = None
            record.signature = None
            record.updated_at = utcnow()
            await self._store.update(record)

            return await self._attest(record, ReviewSignatureData.from_withdrawal(record))

    async def list_reviews(self, user_id: str) -> list[ReviewRecord]:
        return await self._store.list_for_user(user_id)

    async def _attest(self, record: ReviewRecord, data: ReviewSignatureData) -> ReviewRecord:
        record.signature = sign_review(data, self._keypair)
        await self._store.update(record)
        logger.info(
            "review.signed",
            extra={"extra": {"review_id": record.id, "status": record.status.value, "sequence_number": record.sequence_number}},
        )
        return record
