"""Database models."""
from mindbattle.models.user import User
from mindbattle.models.transaction import Transaction
from mindbattle.models.contest import Contest
from mindbattle.models.contest_history import ContestHistory
from mindbattle.models.audit_log import AuditLog
from mindbattle.models.game_setting import GameSetting

__all__ = [
    "User",
    "Transaction",
    "Contest",
    "ContestHistory",
    "AuditLog",
    "GameSetting",
]
