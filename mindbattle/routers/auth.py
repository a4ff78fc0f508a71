"""Authentication endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.database import get_db
from mindbattle.dependencies import get_current_user
from mindbattle.models.user import User
from mindbattle.schemas.auth import AuthTokenResponse, LoginRequest, RegisterRequest, UserProfile
from mindbattle.services import AuthError, AuthService, UserService, UserServiceError
from mindbattle.services.auth_service import SUSPENDED_MESSAGE
from mindbattle.services.permissions import permissions_for
from mindbattle.services.ranking_service import get_rank, to_player_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


async def build_profile(db: AsyncSession, user: User) -> UserProfile:
    """Profile view with rank, permissions and newest-first contest history."""
    loaded = await UserService(db).get_user_with_history(user.email)
    stats = to_player_stats(loaded)
    return UserProfile(
        name=loaded.name,
        email=loaded.email,
        wallet_balance=loaded.wallet_balance,
        role=loaded.role,
        banned=loaded.banned,
        registration_date=loaded.registration_date,
        total_points=loaded.total_points,
        rank=get_rank(loaded.total_points).value,
        permissions=sorted(permissions_for(loaded.role), key=lambda p: p.value),
        contest_history=stats.contest_history,
    )


async def _issue_token(db: AsyncSession, user: User) -> AuthTokenResponse:
    access_token, expires_in = AuthService(db).create_access_token(user)
    return AuthTokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=expires_in,
        user=await build_profile(db, user),
    )


def _auth_http_error(exc: AuthError) -> HTTPException:
    message = str(exc)
    status_code = 403 if message == SUSPENDED_MESSAGE else 401
    return HTTPException(status_code=status_code, detail=message)


@router.post("/register", response_model=AuthTokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthTokenResponse:
    """Create an account (credited with the sign-up bonus) and sign it in."""
    try:
        user = await UserService(db).register(request.name, request.email, request.password)
    except UserServiceError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return await _issue_token(db, user)


@router.post("/login", response_model=AuthTokenResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthTokenResponse:
    try:
        user = await AuthService(db).authenticate_user(request.email, request.password)
    except AuthError as exc:
        raise _auth_http_error(exc) from exc
    return await _issue_token(db, user)


@router.post("/admin/login", response_model=AuthTokenResponse)
async def admin_login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthTokenResponse:
    try:
        user = await AuthService(db).authenticate_admin(request.email, request.password)
    except AuthError as exc:
        raise _auth_http_error(exc) from exc
    logger.info(f"Admin login: {user.email} ({user.role})")
    return await _issue_token(db, user)


@router.get("/me", response_model=UserProfile)
async def me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserProfile:
    return await build_profile(db, user)
