"""FastAPI dependency providers for external clients and boot-time state."""

from __future__ import annotations

from typing import AsyncGenerator
import asyncio

from fastapi import Depends, Request

# Real client factory
from supabase import acreate_client
from supabase import AsyncClient
from sidestore_id import SUPABASE_URL, SUPABASE_KEY
from sidestore_id.settings import Settings
from sidestore_id.utils.reviews import ReviewAttestationEngine, ReviewStore, SequenceLocks
from sidestore_id.utils.signing_keys import SigningKeypair


_cached_client: AsyncClient | None = None
_cached_loop: asyncio.AbstractEventLoop | None = None


async def _get_cached_client() -> AsyncClient:
    """Return a cached Supabase async client tied to the current event loop.

    Re-using an ``AsyncClient`` that was created on a *different* loop will
    raise ``RuntimeError('Event loop is closed')`` when its underlying httpx
    connection attempts I/O, so we cache **per-loop** rather than per-process.
    """

    global _cached_client, _cached_loop

    current_loop = asyncio.get_running_loop()

    if (
        _cached_client is None
        or _cached_loop is None
        or _cached_loop is not current_loop
        or _cached_loop.is_closed()
    ):
        _cached_client = await acreate_client(SUPABASE_URL, SUPABASE_KEY)  # type: ignore[arg-type]
        _cached_loop = current_loop

    return _cached_client


async def get_supabase_async() -> AsyncGenerator[AsyncClient, None]:
    """FastAPI dependency that yields an async Supabase client.

    Tests that set ``SUPABASE_URL`` to a special ``https://test.`` endpoint will
    receive the in-process stub that never touches the network.
    """

    if SUPABASE_URL and SUPABASE_URL.startswith("https://test."):
        from importlib import import_module

        try:
            SupabaseStub = getattr(import_module("tests.supabase_stub"), "SupabaseStub")  # type: ignore[assignment]
        except ModuleNotFoundError as exc:  # pragma: no cover – production safety guard
            raise RuntimeError(
                "Supabase test stub not found – ensure tests package contains supabase_stub.py"
            ) from exc

        client: AsyncClient = SupabaseStub()  # type: ignore[assignment]
        yield client
        return

    # Reuse one shared async client (connection pool) across requests
    client = await _get_cached_client()
    yield client


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_signing_keypair(request: Request) -> SigningKeypair:
    return request.app.state.signing_keypair


def get_sequence_locks(request: Request) -> SequenceLocks:
    return request.app.state.sequence_locks


def get_review_engine(
    supabase=Depends(get_supabase_async),
    keypair: SigningKeypair = Depends(get_signing_keypair),
    locks: SequenceLocks = Depends(get_sequence_locks),
) -> ReviewAttestationEngine:
    """Assemble the attestation engine from the request's storage client and boot-time state."""
    return ReviewAttestationEngine(ReviewStore(supabase), keypair, locks)
