from __future__ import annotations

"""Pytest fixtures for FastAPI integration tests.

Supabase is replaced by the in-process ``SupabaseStub`` (selected by the
``https://test.`` URL) so the request pipeline runs end-to-end without
network or database round-trips. The signing keypair is generated into a
throw-away directory on first boot.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Dict

import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

# ---------------------------------------------------------------------------
# Runtime env for the application
# ---------------------------------------------------------------------------

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test_key")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-do-not-use")
os.environ.setdefault("JWT_ISSUER", "https://id.sidestore.test")
os.environ.setdefault("STORAGE_PATH", tempfile.mkdtemp(prefix="sidestore-id-keys-"))

# Ensure project root on PYTHONPATH so `import sidestore_id` works when pytest is run
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Boot the app once
from sidestore_id.main import create_app, limiter  # noqa: E402, WPS433
from sidestore_id.settings import Settings  # noqa: E402
from sidestore_id.utils.signing_keys import SigningKeypair  # noqa: E402
from tests.supabase_stub import SupabaseStub  # noqa: E402

app: FastAPI = create_app()
client = TestClient(app)

PASSWORD = "correct horse battery staple"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture(autouse=True)
def _reset_storage():
    SupabaseStub.reset()
    yield
    SupabaseStub.reset()


@pytest.fixture()
def api_client() -> TestClient:  # noqa: D401 – simple alias
    client.cookies.clear()
    return client


@pytest.fixture()
def settings() -> Settings:
    return app.state.settings


@pytest.fixture()
def keypair() -> SigningKeypair:
    return app.state.signing_keypair


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def signup(api: TestClient, email: str = "alice@sidestore.test", password: str = PASSWORD) -> dict:
    """Register ``email`` through the API and return the token response body."""
    resp = api.post("/api/auth/signup", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    # Tests pass tokens explicitly; keep the jar empty so cookies never mask a missing header.
    api.cookies.clear()
    return resp.json()
