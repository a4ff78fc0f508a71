"""Authentication and account schemas."""
from typing import Optional

from pydantic import constr

from mindbattle.models.base import AdminPermission, AdminRole
from mindbattle.schemas.base import BaseSchema, EpochMs
from mindbattle.schemas.ranking import ContestHistoryEntry


NameStr = constr(strip_whitespace=True, min_length=1, max_length=100)
PasswordStr = constr(min_length=6, max_length=128)
EmailLike = constr(pattern=r"[^@\s]+@[^@\s]+\.[^@\s]+", min_length=5, max_length=255)


class RegisterRequest(BaseSchema):
    """Payload for creating a new user account."""

    name: NameStr
    email: EmailLike
    password: PasswordStr


class LoginRequest(BaseSchema):
    email: EmailLike
    password: str


class UserProfile(BaseSchema):
    """Account view returned to the signed-in user."""

    name: str
    email: str
    wallet_balance: int
    role: Optional[AdminRole] = None
    banned: bool = False
    registration_date: EpochMs
    total_points: int
    rank: str
    permissions: list[AdminPermission] = []
    contest_history: list[ContestHistoryEntry] = []


class AuthTokenResponse(BaseSchema):
    """Standard response containing JWT credentials."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserProfile
