"""Admin panel schemas."""
from typing import Optional

from mindbattle.models.base import AdminRole, AuditLogAction
from mindbattle.schemas.auth import EmailLike, NameStr, PasswordStr
from mindbattle.schemas.base import BaseSchema, EpochMs


class AdminUserSummary(BaseSchema):
    """Summary information for a user returned in admin listings."""

    name: str
    email: str
    wallet_balance: int
    role: Optional[AdminRole] = None
    banned: bool
    registration_date: EpochMs
    total_points: int
    rank: str


class UpdateUserRequest(BaseSchema):
    banned: bool


class UpdateRoleRequest(BaseSchema):
    """``role`` of null removes admin access."""
    role: Optional[AdminRole] = None


class CreateAdminRequest(BaseSchema):
    name: NameStr
    email: EmailLike
    password: PasswordStr
    role: AdminRole


class WithdrawalDecisionRequest(BaseSchema):
    """Optional note stored as the resolved transaction's description."""
    description: str = ""


class AuditLogEntry(BaseSchema):
    id: str
    timestamp: EpochMs
    admin_email: str
    admin_name: str
    action: AuditLogAction
    details: str
