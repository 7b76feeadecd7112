"""Account & token endpoints (signup, login, refresh, logout, me)."""

from fastapi import APIRouter, Depends, Request, Response

# Rate limiter exported by main.py
from sidestore_id.main import limiter

from sidestore_id.models import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    Principal,
    Scope,
    SignupRequest,
    SignupResponse,
    UserProfile,
)
from sidestore_id.models.db import User
from sidestore_id.settings import Settings
from sidestore_id.utils.auth import require_scope
from sidestore_id.utils.database import DUPLICATE, insert_data, query_one, safe_call
from sidestore_id.utils.dependencies import get_settings, get_supabase_async
from sidestore_id.utils.errors import BadRequest, InternalError, Unauthorized
from sidestore_id.utils.security_utils import hash_password, verify_password
from sidestore_id.utils.tokens import create_auth_tokens

# Guarded by the router-level auth dependency (see main.create_app)
router = APIRouter(prefix="/api/auth", tags=["auth"])

USERS_TABLE = "users"


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _set_auth_cookies(response: Response, settings: Settings, access_token: str, refresh_token: str) -> None:
    for name, value in (
        (settings.access_token_cookie, access_token),
        (settings.refresh_token_cookie, refresh_token),
    ):
        response.set_cookie(name, value, path="/", secure=True, httponly=True, samesite="strict")


def _token_response(response: Response, settings: Settings, user: User) -> LoginResponse:
    access_token, refresh_token = create_auth_tokens(user.id, settings, Scope.full)
    _set_auth_cookies(response, settings, access_token, refresh_token)
    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        profile=UserProfile(email=user.email, username=user.username),
    )


async def _find_user(supabase, **match) -> User | None:
    row = await safe_call(query_one(supabase, USERS_TABLE, match=match), detail="Failed to load user")
    return User.model_validate(row) if row else None


@router.post("/signup", response_model=SignupResponse)
@limiter.limit("20/minute")
async def signup(
    request: Request,
    response: Response,
    payload: SignupRequest,
    settings: Settings = Depends(get_settings),
    supabase=Depends(get_supabase_async),
):
    """Register a new user and return a full-scope token pair."""
    email = _normalize_email(payload.email)
    if await _find_user(supabase, email=email) is not None:
        raise BadRequest("Email already exists")

    user = User(email=email, password_hash=hash_password(payload.password))
    result = await safe_call(insert_data(supabase, USERS_TABLE, user.to_row()), detail="User could not be saved")
    if result == DUPLICATE:
        raise BadRequest("Email already exists")

    return _token_response(response, settings, user)


@router.post("/login", response_model=LoginResponse)
@limiter.limit("20/minute")
async def login(
    request: Request,
    response: Response,
    payload: LoginRequest,
    settings: Settings = Depends(get_settings),
    supabase=Depends(get_supabase_async),
):
    """Authenticate with email + password."""
    user = await _find_user(supabase, email=_normalize_email(payload.email))
    if user is None:
        raise Unauthorized("User not found")

    try:
        password_matches = verify_password(payload.password, user.password_hash)
    except ValueError as exc:
        raise InternalError("Error verifying password") from exc
    if not password_matches:
        raise Unauthorized("Password is incorrect")

    return _token_response(response, settings, user)


@router.post("/refresh", response_model=LoginResponse)
async def refresh(
    response: Response,
    principal: Principal = Depends(require_scope(Scope.full)),
    settings: Settings = Depends(get_settings),
    supabase=Depends(get_supabase_async),
):
    """Exchange a refresh token (header or cookie) for a new token pair."""
    user = await _find_user(supabase, id=principal.user_id)
    if user is None:
        raise Unauthorized("User not found")
    return _token_response(response, settings, user)


@router.get("/me", response_model=UserProfile)
async def me(
    principal: Principal = Depends(require_scope(Scope.profile)),
    supabase=Depends(get_supabase_async),
):
    user = await _find_user(supabase, id=principal.user_id)
    if user is None:
        raise Unauthorized("User not found")
    return UserProfile(email=user.email, username=user.username)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response, settings: Settings = Depends(get_settings)):
    # Invalidate the authentication cookies
    for name in (settings.access_token_cookie, settings.refresh_token_cookie):
        response.delete_cookie(name, path="/", secure=True, httponly=True, samesite="strict")
    return MessageResponse(message="Bye")


__all__ = ["router"]
