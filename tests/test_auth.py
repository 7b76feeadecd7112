import time

import pytest
from fastapi import status
from starlette.requests import Request

from sidestore_id.models import NIL_USER_ID
from sidestore_id.models.scopes import Scope
from sidestore_id.utils.auth import authenticate, expected_token_type, get_principal, validate_claims
from sidestore_id.utils.errors import (
    InvalidToken,
    MissingToken,
    TokenExpired,
    TokenNotYetValid,
)
from sidestore_id.utils.logger import current_user_id
from sidestore_id.utils.tokens import TokenClaims, TokenType, issue_token

from tests.conftest import app, bearer, signup

USER_ID = "0d8c6f0e-7a53-4f55-a6f6-9c1b3f0e1d22"


def _request(path: str, headers: dict | None = None) -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": b"",
            "headers": raw_headers,
            "scheme": "http",
            "server": ("testserver", 80),
            "client": ("testclient", 50000),
            "app": app,
        }
    )


def _claims(**overrides) -> TokenClaims:
    values = {
        "type": TokenType.access,
        "iss": "https://id.sidestore.test",
        "sub": USER_ID,
        "iat": 1_000,
        "exp": 2_000,
        "scope": Scope.full,
    }
    values.update(overrides)
    return TokenClaims(**values)


# ---------------------------------------------------------------------------
# Pure validation
# ---------------------------------------------------------------------------

def test_validate_claims_accepts_window():
    principal = validate_claims(_claims(), TokenType.access, now=1_500)
    assert principal.user_id == USER_ID
    assert principal.scope is Scope.full


def test_validate_claims_accepts_issue_instant():
    assert validate_claims(_claims(), TokenType.access, now=1_000).user_id == USER_ID


def test_validate_claims_rejects_at_expiry_instant():
    with pytest.raises(TokenExpired):
        validate_claims(_claims(), TokenType.access, now=2_000)


def test_validate_claims_rejects_future_iat():
    with pytest.raises(TokenNotYetValid):
        validate_claims(_claims(), TokenType.access, now=999)


def test_validate_claims_checks_type_before_time():
    with pytest.raises(InvalidToken):
        validate_claims(_claims(type=TokenType.refresh), TokenType.access, now=5_000)


def test_validate_claims_checks_expiry_before_iat():
    with pytest.raises(TokenExpired):
        validate_claims(_claims(iat=3_000, exp=2_000), TokenType.access, now=2_500)


def test_authenticate_round_trip(settings):
    now = int(time.time())
    token = issue_token(USER_ID, TokenType.refresh, Scope.profile, settings, now=now)
    principal = authenticate(token, TokenType.refresh, settings, now=now + 1)
    assert principal.user_id == USER_ID
    assert principal.scope is Scope.profile


def test_expected_token_type(settings):
    assert expected_token_type("/api/auth/refresh", settings) is TokenType.refresh
    assert expected_token_type("/api/auth/refresh/", settings) is TokenType.access
    assert expected_token_type("/api/reviews", settings) is TokenType.access


# ---------------------------------------------------------------------------
# Guard (request policy)
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_allowlisted_path_gets_nil_principal_with_strongest_scope():
    request = _request("/api/health")
    principal = await get_principal(request)
    assert principal.user_id == NIL_USER_ID
    assert principal.scope is Scope.full
    assert request.state.user_id == NIL_USER_ID


@pytest.mark.asyncio
async def test_allowlist_is_exact_match():
    with pytest.raises(MissingToken):
        await get_principal(_request("/api/health/nested"))
    with pytest.raises(MissingToken):
        await get_principal(_request("/api/reviews/public_key/"))


@pytest.mark.asyncio
async def test_oauth_authorize_without_token_is_anonymous_profile():
    principal = await get_principal(_request("/api/auth/oauth2/authorize"))
    assert principal.is_anonymous
    assert principal.scope is Scope.profile


@pytest.mark.asyncio
async def test_oauth_authorize_with_bad_token_is_rejected():
    with pytest.raises(InvalidToken):
        await get_principal(_request("/api/auth/oauth2/authorize", bearer("junk")))


@pytest.mark.asyncio
async def test_bearer_header_wins_over_cookie(settings):
    good = issue_token(USER_ID, TokenType.access, Scope.full, settings)
    request = _request("/api/reviews", {**bearer(good), "Cookie": "access_token=junk"})
    principal = await get_principal(request)
    assert principal.user_id == USER_ID
    assert request.state.user_id == USER_ID
    assert current_user_id.get() == USER_ID


@pytest.mark.asyncio
async def test_cookie_fallback_uses_type_specific_cookie(settings):
    refresh = issue_token(USER_ID, TokenType.refresh, Scope.full, settings)
    request = _request("/api/auth/refresh", {"Cookie": f"access_token=junk; refresh_token={refresh}"})
    assert (await get_principal(request)).user_id == USER_ID


@pytest.mark.asyncio
async def test_missing_token_is_rejected():
    with pytest.raises(MissingToken):
        await get_principal(_request("/api/reviews"))


@pytest.mark.asyncio
async def test_non_bearer_scheme_counts_as_missing():
    with pytest.raises(MissingToken):
        await get_principal(_request("/api/reviews", {"Authorization": "Basic Zm9vOmJhcg=="}))


@pytest.mark.asyncio
async def test_refresh_token_rejected_outside_refresh_path(settings):
    refresh = issue_token(USER_ID, TokenType.refresh, Scope.full, settings)
    with pytest.raises(InvalidToken):
        await get_principal(_request("/api/reviews", bearer(refresh)))


@pytest.mark.asyncio
async def test_expired_and_future_tokens(settings):
    now = int(time.time())
    expired = issue_token(USER_ID, TokenType.access, Scope.full, settings, now=now - settings.jwt_expiration - 5)
    future = issue_token(USER_ID, TokenType.access, Scope.full, settings, now=now + 600)
    with pytest.raises(TokenExpired):
        await get_principal(_request("/api/reviews", bearer(expired)))
    with pytest.raises(TokenNotYetValid):
        await get_principal(_request("/api/reviews", bearer(future)))


# ---------------------------------------------------------------------------
# HTTP surface
# ---------------------------------------------------------------------------

def test_protected_route_without_token_is_401(api_client):
    resp = api_client.get("/api/reviews")
    assert resp.status_code == status.HTTP_401_UNAUTHORIZED
    assert resp.json()["detail"] == "Authorization header not found"


def test_profile_scope_cannot_reach_full_scope_routes(api_client, settings):
    token = issue_token(USER_ID, TokenType.access, Scope.profile, settings)

    resp = api_client.get("/api/reviews", headers=bearer(token))
    assert resp.status_code == status.HTTP_401_UNAUTHORIZED
    assert resp.json()["detail"] == "Invalid token scope."


def test_me_accepts_full_scope(api_client):
    tokens = signup(api_client, email="Bob@SideStore.test")
    resp = api_client.get("/api/auth/me", headers=bearer(tokens["access_token"]))
    assert resp.status_code == 200
    assert resp.json()["email"] == "bob@sidestore.test"


def test_refresh_requires_refresh_token(api_client):
    tokens = signup(api_client)

    wrong = api_client.post("/api/auth/refresh", headers=bearer(tokens["access_token"]))
    assert wrong.status_code == status.HTTP_401_UNAUTHORIZED
    assert wrong.json()["detail"] == "Invalid token"

    ok = api_client.post("/api/auth/refresh", headers=bearer(tokens["refresh_token"]))
    assert ok.status_code == 200
    assert set(ok.json()) == {"access_token", "refresh_token", "profile"}


def test_refresh_via_cookie(api_client):
    tokens = signup(api_client)
    resp = api_client.post("/api/auth/refresh", headers={"Cookie": f"refresh_token={tokens['refresh_token']}"})
    assert resp.status_code == 200
