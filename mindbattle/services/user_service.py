"""User account management."""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mindbattle.config import get_settings
from mindbattle.models.base import AdminRole, AuditLogAction
from mindbattle.models.user import User
from mindbattle.schemas.wallet import WalletAction, WalletActionType
from mindbattle.services.audit_service import AuditService
from mindbattle.services.wallet_service import WalletService
from mindbattle.utils.passwords import hash_password

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "An account with this email already exists."


class UserServiceError(RuntimeError):
    """Raised when a user account operation fails."""


class UserNotFoundError(UserServiceError):
    """Raised when no user has the given email."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """Service for registering users and managing accounts from the admin panel."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()
        self.audit_service = AuditService(db)

    async def get_user(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    async def require_user(self, email: str) -> User:
        user = await self.get_user(email)
        if not user:
            raise UserNotFoundError("User not found.")
        return user

    async def get_user_with_history(self, email: str) -> Optional[User]:
        """User row with transactions and contest history loaded."""
        result = await self.db.execute(
            select(User)
            .where(User.email == normalize_email(email))
            .options(selectinload(User.transactions), selectinload(User.contest_history))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_users(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.registration_date.desc()))
        return list(result.scalars().all())

    async def _create(self, name: str, email: str, password: str, role: Optional[AdminRole]) -> User:
        email = normalize_email(email)
        if await self.get_user(email):
            raise UserServiceError(DUPLICATE_EMAIL_MESSAGE)
        user = User(
            email=email,
            name=name.strip(),
            password_hash=hash_password(password),
            wallet_balance=0,
            role=role.value if role else None,
            banned=False,
            total_points=0,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise UserServiceError(DUPLICATE_EMAIL_MESSAGE) from exc
        return user

    async def register(self, name: str, email: str, password: str) -> User:
        """Create a player account credited with the sign-up bonus."""
        user = await self._create(name, email, password, role=None)
        if self.settings.signup_bonus > 0:
            await WalletService(self.db).apply(
                user.email,
                WalletAction(
                    type=WalletActionType.DEPOSIT,
                    user_id=user.email,
                    amount=self.settings.signup_bonus,
                    description=self.settings.signup_bonus_description,
                ),
                auto_commit=False,
            )
        await self.db.commit()
        logger.info(f"Registered user {user.email} with balance {user.wallet_balance}")
        return user

    async def create_admin(self, admin: User, name: str, email: str, password: str, role: AdminRole) -> User:
        """Administrators start with an empty wallet and no sign-up bonus."""
        new_admin = await self._create(name, email, password, role=role)
        await self.audit_service.record(
            admin,
            AuditLogAction.ADMIN_CREATED,
            f"Created new admin: {new_admin.name} ({new_admin.email}) with role {role.value}.",
        )
        await self.db.commit()
        logger.info(f"Admin {new_admin.email} ({role.value}) created by {admin.email}")
        return new_admin

    async def set_banned(self, admin: User, email: str, banned: bool) -> User:
        user = await self.require_user(email)
        if user.email == admin.email:
            raise UserServiceError("You cannot change the status of your own account.")
        user.banned = banned
        action = AuditLogAction.USER_BANNED if banned else AuditLogAction.USER_UNBANNED
        await self.audit_service.record(admin, action, f"User: {user.name} ({user.email})")
        await self.db.commit()
        logger.info(f"User {user.email} {'banned' if banned else 'unbanned'} by {admin.email}")
        return user

    async def set_role(self, admin: User, email: str, role: Optional[AdminRole]) -> User:
        """Grant a role, or remove admin access with ``role=None``."""
        user = await self.require_user(email)
        if user.email == admin.email:
            raise UserServiceError("You cannot change your own role.")
        user.role = role.value if role else None
        await self.audit_service.record(
            admin,
            AuditLogAction.ROLE_UPDATED,
            f"Set role for {user.name} to {role.value if role else 'None'}",
        )
        await self.db.commit()
        logger.info(f"Role for {user.email} set to {user.role} by {admin.email}")
        return user

    async def ensure_super_admin(self) -> User:
        """Create the configured Super Admin account when it does not exist yet."""
        user = await self.get_user(self.settings.admin_email)
        if user:
            if user.role != AdminRole.SUPER_ADMIN.value:
                logger.warning(f"Configured admin {user.email} had role {user.role}; restoring Super Admin")
                user.role = AdminRole.SUPER_ADMIN.value
                await self.db.commit()
            return user

        user = await self._create(
            self.settings.admin_name,
            self.settings.admin_email,
            self.settings.admin_password,
            role=AdminRole.SUPER_ADMIN,
        )
        await self.db.commit()
        logger.info(f"Bootstrapped Super Admin account {user.email}")
        return user
