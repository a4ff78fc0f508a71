"""Shared enumerations for SQLAlchemy models and schemas."""
from enum import Enum


class TransactionType(str, Enum):
    """Ledger transaction type enumeration for type safety."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    WIN = "win"
    ENTRY_FEE = "entry_fee"
    PENDING_WITHDRAWAL = "pending_withdrawal"
    WITHDRAWAL_DECLINED = "withdrawal_declined"
    REFUND = "refund"
    ADMIN_ADJUSTMENT = "admin_adjustment"


class TransactionStatus(str, Enum):
    """Ledger transaction status enumeration."""
    COMPLETED = "completed"
    PENDING = "pending"
    DECLINED = "declined"


class ContestStatus(str, Enum):
    """Contest lifecycle status enumeration."""
    DRAFT = "Draft"
    PENDING_APPROVAL = "Pending Approval"
    UPCOMING = "Upcoming"
    LIVE = "Live"
    FINISHED = "Finished"
    CANCELLED = "Cancelled"
    REJECTED = "Rejected"


class ContestFormat(str, Enum):
    """Contest format enumeration."""
    KBC = "KBC"
    FASTEST_FINGER = "FastestFinger"


class TimerType(str, Enum):
    """How a contest's clock is applied."""
    PER_QUESTION = "per_question"
    TOTAL_CONTEST = "total_contest"


class Difficulty(str, Enum):
    """Contest difficulty enumeration."""
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"
    DIFFICULT = "Difficult"


class AdminRole(str, Enum):
    """Administrator role enumeration."""
    SUPER_ADMIN = "Super Admin"
    CONTEST_MANAGER = "Contest Manager"
    FINANCE_MANAGER = "Finance Manager"
    USER_MANAGER = "User Manager"


class AdminPermission(str, Enum):
    """Administrator permission enumeration."""
    MANAGE_CONTESTS = "MANAGE_CONTESTS"
    MANAGE_FINANCE = "MANAGE_FINANCE"
    MANAGE_USERS = "MANAGE_USERS"
    MANAGE_SETTINGS = "MANAGE_SETTINGS"
    MANAGE_ADMINS = "MANAGE_ADMINS"
    MANAGE_AUDIT_LOG = "MANAGE_AUDIT_LOG"


class AuditLogAction(str, Enum):
    """Audited administrator action enumeration."""
    SETTINGS_UPDATE = "SETTINGS_UPDATE"
    WITHDRAWAL_APPROVED = "WITHDRAWAL_APPROVED"
    WITHDRAWAL_DECLINED = "WITHDRAWAL_DECLINED"
    CONTEST_CREATED = "CONTEST_CREATED"
    CONTEST_UPDATED = "CONTEST_UPDATED"
    CONTEST_DELETED = "CONTEST_DELETED"
    CONTEST_CANCELLED = "CONTEST_CANCELLED"
    CONTEST_APPROVED = "CONTEST_APPROVED"
    CONTEST_REJECTED = "CONTEST_REJECTED"
    USER_BANNED = "USER_BANNED"
    USER_UNBANNED = "USER_UNBANNED"
    ROLE_UPDATED = "ROLE_UPDATED"
    WALLET_ADJUSTED = "WALLET_ADJUSTED"
    ADMIN_CREATED = "ADMIN_CREATED"
