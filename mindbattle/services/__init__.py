from mindbattle.services.audit_service import AuditService
from mindbattle.services.auth_service import AuthService, AuthError
from mindbattle.services.contest_seeder import load_fallback_contests, seed_fallback_contests
from mindbattle.services.contest_service import ContestService, ContestError, ContestNotFoundError
from mindbattle.services.contest_status_service import (
    ContestStatusService,
    ContestTransitionError,
    ensure_transition_allowed,
    next_status,
    sweep_contest_statuses,
)
from mindbattle.services.permissions import ROLE_PERMISSIONS, has_permission, permissions_for
from mindbattle.services.ranking_service import (
    Rank,
    RankingService,
    calculate_points,
    get_rank,
    update_user_stats_after_contest,
)
from mindbattle.services.settings_service import GameSettingsService
from mindbattle.services.user_service import UserService, UserServiceError, UserNotFoundError
from mindbattle.services.wallet_service import (
    WalletService,
    WalletError,
    WithdrawalNotFoundError,
    apply_wallet_action,
    calculate_balance,
)

__all__ = [
    "AuditService",
    "AuthService",
    "AuthError",
    "load_fallback_contests",
    "seed_fallback_contests",
    "ContestService",
    "ContestError",
    "ContestNotFoundError",
    "ContestStatusService",
    "ContestTransitionError",
    "ensure_transition_allowed",
    "next_status",
    "sweep_contest_statuses",
    "ROLE_PERMISSIONS",
    "has_permission",
    "permissions_for",
    "Rank",
    "RankingService",
    "calculate_points",
    "get_rank",
    "update_user_stats_after_contest",
    "GameSettingsService",
    "UserService",
    "UserServiceError",
    "UserNotFoundError",
    "WalletService",
    "WalletError",
    "WithdrawalNotFoundError",
    "apply_wallet_action",
    "calculate_balance",
]
