"""Authentication and JWT issuance."""
from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.config import get_settings
from mindbattle.models.user import User
from mindbattle.services.user_service import UserService
from mindbattle.utils.passwords import verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password."
SUSPENDED_MESSAGE = "Your account has been suspended by an administrator."
INVALID_ADMIN_MESSAGE = "Invalid admin credentials."


class AuthError(RuntimeError):
    """Raised when authentication fails."""


class AuthService:
    """Service responsible for credential checks and JWT access tokens."""

    def __init__(self, db: AsyncSession, *, user_service: UserService | None = None):
        self.db = db
        self.settings = get_settings()
        self.user_service = user_service or UserService(db)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    async def authenticate_user(self, email: str, password: str) -> User:
        user = await self.user_service.get_user(email)
        if not user or not verify_password(password, user.password_hash):
            logger.info(f"Failed login for {email}")
            raise AuthError(INVALID_CREDENTIALS_MESSAGE)
        if user.banned:
            raise AuthError(SUSPENDED_MESSAGE)
        return user

    async def authenticate_admin(self, email: str, password: str) -> User:
        """Like :meth:`authenticate_user` but only accounts holding a role pass."""
        user = await self.user_service.get_user(email)
        if not user or not user.is_admin or not verify_password(password, user.password_hash):
            logger.warning(f"Failed admin login for {email}")
            raise AuthError(INVALID_ADMIN_MESSAGE)
        if user.banned:
            raise AuthError(SUSPENDED_MESSAGE)
        return user

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------
    def create_access_token(self, user: User) -> tuple[str, int]:
        expire = datetime.now(UTC) + timedelta(minutes=self.settings.access_token_exp_minutes)
        payload = {
            "sub": user.email,
            "name": user.name,
            "exp": int(expire.timestamp()),
        }
        token = jwt.encode(payload, self.settings.secret_key, algorithm=self.settings.jwt_algorithm)
        return token, self.settings.access_token_exp_minutes * 60

    def decode_access_token(self, token: str) -> dict[str, str]:
        try:
            return jwt.decode(token, self.settings.secret_key, algorithms=[self.settings.jwt_algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("token_expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthError("invalid_token") from exc
