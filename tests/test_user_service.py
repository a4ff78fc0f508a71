"""
Tests for account registration and admin user management.
"""

import uuid

import pytest
from sqlalchemy import select

from mindbattle.config import get_settings
from mindbattle.models.audit_log import AuditLog
from mindbattle.models.base import AdminRole, AuditLogAction
from mindbattle.services.user_service import (
    DUPLICATE_EMAIL_MESSAGE,
    UserNotFoundError,
    UserService,
    UserServiceError,
)
from mindbattle.utils.passwords import verify_password


def _email(prefix: str = "member") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}@example.com"


@pytest.mark.asyncio
class TestRegistration:
    """Creating player accounts."""

    async def test_register_credits_signup_bonus(self, db_session):
        """Should start new players with the configured bonus."""
        user = await UserService(db_session).register("New Player", _email(), "secret123")

        assert user.wallet_balance == get_settings().signup_bonus
        assert user.role is None
        assert user.total_points == 0
        assert verify_password("secret123", user.password_hash)

    async def test_email_is_normalized(self, db_session):
        """Should store the email lower-cased and trimmed."""
        email = _email("MixedCase")

        user = await UserService(db_session).register("Mixed", f"  {email.upper()}  ", "secret123")

        assert user.email == email.lower()

    async def test_duplicate_email_is_refused(self, db_session):
        """Should refuse a second account for the same email in any case."""
        email = _email()
        service = UserService(db_session)
        await service.register("First", email, "secret123")

        with pytest.raises(UserServiceError, match=DUPLICATE_EMAIL_MESSAGE):
            await service.register("Second", email.upper(), "secret123")


@pytest.mark.asyncio
class TestAdminManagement:
    """Banning users, assigning roles and creating administrators."""

    async def test_ban_and_unban_are_audited(self, db_session, user_factory, admin_factory):
        """Should toggle the ban flag and log both actions."""
        admin = await admin_factory(AdminRole.USER_MANAGER)
        user = await user_factory()
        service = UserService(db_session)

        await service.set_banned(admin, user.email, True)
        assert user.banned is True
        await service.set_banned(admin, user.email, False)
        assert user.banned is False

        actions = (await db_session.execute(
            select(AuditLog.action).where(AuditLog.admin_email == admin.email).order_by(AuditLog.created_at)
        )).scalars().all()
        assert actions == [AuditLogAction.USER_BANNED.value, AuditLogAction.USER_UNBANNED.value]

    async def test_admin_cannot_ban_self(self, db_session, admin_factory):
        """Should refuse to suspend the acting admin."""
        admin = await admin_factory()

        with pytest.raises(UserServiceError):
            await UserService(db_session).set_banned(admin, admin.email, True)

    async def test_unknown_user(self, db_session, admin_factory):
        """Should report a missing account."""
        admin = await admin_factory()

        with pytest.raises(UserNotFoundError):
            await UserService(db_session).set_banned(admin, "ghost@example.com", True)

    async def test_set_and_remove_role(self, db_session, user_factory, admin_factory):
        """Should grant and revoke admin roles."""
        admin = await admin_factory()
        user = await user_factory()
        service = UserService(db_session)

        await service.set_role(admin, user.email, AdminRole.CONTEST_MANAGER)
        assert user.role == AdminRole.CONTEST_MANAGER.value
        assert user.is_admin

        await service.set_role(admin, user.email, None)
        assert user.role is None

        details = (await db_session.execute(
            select(AuditLog.details).where(AuditLog.admin_email == admin.email).order_by(AuditLog.created_at)
        )).scalars().all()
        assert details == [
            f"Set role for {user.name} to Contest Manager",
            f"Set role for {user.name} to None",
        ]

    async def test_create_admin_has_empty_wallet(self, db_session, admin_factory):
        """Should create an admin without the sign-up bonus."""
        admin = await admin_factory()
        email = _email("staff")

        created = await UserService(db_session).create_admin(
            admin, "Staff Member", email, "secret123", AdminRole.FINANCE_MANAGER
        )

        assert created.wallet_balance == 0
        assert created.role == AdminRole.FINANCE_MANAGER.value
        entry = (await db_session.execute(
            select(AuditLog).where(AuditLog.admin_email == admin.email)
        )).scalar_one()
        assert entry.action == AuditLogAction.ADMIN_CREATED.value
        assert entry.details == f"Created new admin: Staff Member ({email}) with role Finance Manager."

    async def test_ensure_super_admin_is_idempotent(self, db_session):
        """Should create the configured Super Admin once."""
        service = UserService(db_session)

        first = await service.ensure_super_admin()
        second = await service.ensure_super_admin()

        assert first.email == second.email == get_settings().admin_email
        assert second.role == AdminRole.SUPER_ADMIN.value
