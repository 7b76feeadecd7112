from dataclasses import replace

from starlette.testclient import TestClient

from tests.conftest import app as default_app
from sidestore_id.main import create_app

# ---------------------------------------------------------------------------
# Test helpers
# ---------------------------------------------------------------------------

LISTED_ORIGIN = "https://sidestore.test"
PRIVATE_PATH = "/api/reviews"
HEALTH_PATH = "/api/health"


def _restricted_client() -> TestClient:
    settings = replace(default_app.state.settings, allowed_origins=[LISTED_ORIGIN])
    return TestClient(create_app(settings))


def _preflight(client: TestClient, path: str, origin: str):
    """Helper to craft a CORS pre-flight OPTIONS request."""
    headers = {
        "Origin": origin,
        "Access-Control-Request-Method": "GET",
    }
    return client.options(path, headers=headers)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_rejects_unlisted_origin():
    """An unlisted Origin must *not* receive CORS headers."""
    resp = _preflight(_restricted_client(), PRIVATE_PATH, "https://evil.example.com")
    assert "access-control-allow-origin" not in resp.headers


def test_allows_listed_origin_with_credentials():
    resp = _preflight(_restricted_client(), PRIVATE_PATH, LISTED_ORIGIN)

    # Header echoes the request Origin
    assert resp.headers.get("access-control-allow-origin") == LISTED_ORIGIN
    assert resp.headers.get("access-control-allow-credentials") == "true"

    allow_methods = resp.headers.get("access-control-allow-methods", "")
    for verb in ("GET", "POST", "DELETE"):
        assert verb in allow_methods


def test_default_is_wildcard_without_credentials(api_client):
    """Without CORS_ORIGIN any site may read public endpoints, but never with cookies."""
    resp = api_client.get(HEALTH_PATH, headers={"Origin": "https://random.site"})
    assert resp.headers.get("access-control-allow-origin") == "*"
    assert "access-control-allow-credentials" not in resp.headers
