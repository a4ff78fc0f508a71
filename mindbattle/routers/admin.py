"""Admin routes for contest, user, finance and settings management."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.database import get_db
from mindbattle.dependencies import get_current_admin, require_permission
from mindbattle.models.base import AdminPermission, ContestStatus
from mindbattle.models.user import User
from mindbattle.routers.contests import contest_http_error
from mindbattle.schemas.admin import (
    AdminUserSummary,
    AuditLogEntry,
    CreateAdminRequest,
    UpdateRoleRequest,
    UpdateUserRequest,
    WithdrawalDecisionRequest,
)
from mindbattle.schemas.base import MessageResponse
from mindbattle.schemas.contest import ContestCreateRequest, ContestSnapshot, ContestUpdateRequest
from mindbattle.schemas.ranking import RankDistributionResponse
from mindbattle.schemas.settings import GameSettingsSchema
from mindbattle.schemas.wallet import FinanceSummary, PendingWithdrawal, WalletAdjustmentRequest
from mindbattle.services import (
    AuditService,
    ContestError,
    ContestService,
    ContestTransitionError,
    GameSettingsService,
    RankingService,
    UserNotFoundError,
    UserService,
    UserServiceError,
    WalletError,
    WalletService,
    WithdrawalNotFoundError,
)
from mindbattle.services.contest_status_service import to_snapshot
from mindbattle.services.ranking_service import get_rank
from mindbattle.utils.exceptions import InsufficientBalanceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

manage_contests = require_permission(AdminPermission.MANAGE_CONTESTS)
manage_finance = require_permission(AdminPermission.MANAGE_FINANCE)
manage_users = require_permission(AdminPermission.MANAGE_USERS)
manage_settings = require_permission(AdminPermission.MANAGE_SETTINGS)
manage_admins = require_permission(AdminPermission.MANAGE_ADMINS)
manage_audit_log = require_permission(AdminPermission.MANAGE_AUDIT_LOG)


def _user_summary(user: User) -> AdminUserSummary:
    return AdminUserSummary(
        name=user.name,
        email=user.email,
        wallet_balance=user.wallet_balance,
        role=user.role,
        banned=user.banned,
        registration_date=user.registration_date,
        total_points=user.total_points,
        rank=get_rank(user.total_points).value,
    )


def _user_http_error(exc: UserServiceError) -> HTTPException:
    if isinstance(exc, UserNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


# ----------------------------------------------------------------------
# Contests
# ----------------------------------------------------------------------
@router.get("/contests", response_model=list[ContestSnapshot])
async def list_all_contests(
    admin: User = Depends(manage_contests),
    db: AsyncSession = Depends(get_db),
) -> list[ContestSnapshot]:
    """Every contest in every status, including question answers."""
    contests = await ContestService(db).list_contests(include_hidden=True)
    return [to_snapshot(contest) for contest in contests]


@router.post("/contests", response_model=ContestSnapshot, status_code=status.HTTP_201_CREATED)
async def create_contest(
    request: ContestCreateRequest,
    admin: User = Depends(manage_contests),
    db: AsyncSession = Depends(get_db),
) -> ContestSnapshot:
    contest = await ContestService(db).create_contest(admin, request)
    return to_snapshot(contest)


@router.put("/contests/{contest_id}", response_model=ContestSnapshot)
async def update_contest(
    contest_id: str,
    request: ContestUpdateRequest,
    admin: User = Depends(manage_contests),
    db: AsyncSession = Depends(get_db),
) -> ContestSnapshot:
    try:
        contest = await ContestService(db).update_contest(admin, contest_id, request)
    except (ContestError, ContestTransitionError) as exc:
        raise contest_http_error(exc) from exc
    return to_snapshot(contest)


async def _set_contest_status(
    db: AsyncSession, admin: User, contest_id: str, target: ContestStatus
) -> ContestSnapshot:
    try:
        contest = await ContestService(db).set_status(admin, contest_id, target)
    except (ContestError, ContestTransitionError) as exc:
        raise contest_http_error(exc) from exc
    return to_snapshot(contest)


@router.post("/contests/{contest_id}/approve", response_model=ContestSnapshot)
async def approve_contest(
    contest_id: str,
    admin: User = Depends(manage_contests),
    db: AsyncSession = Depends(get_db),
) -> ContestSnapshot:
    return await _set_contest_status(db, admin, contest_id, ContestStatus.UPCOMING)


@router.post("/contests/{contest_id}/reject", response_model=ContestSnapshot)
async def reject_contest(
    contest_id: str,
    admin: User = Depends(manage_contests),
    db: AsyncSession = Depends(get_db),
) -> ContestSnapshot:
    return await _set_contest_status(db, admin, contest_id, ContestStatus.REJECTED)


@router.post("/contests/{contest_id}/cancel", response_model=ContestSnapshot)
async def cancel_contest(
    contest_id: str,
    admin: User = Depends(manage_contests),
    db: AsyncSession = Depends(get_db),
) -> ContestSnapshot:
    """Cancel an Upcoming contest, refunding every participant's entry fee."""
    try:
        contest = await ContestService(db).cancel_contest(admin, contest_id)
    except (ContestError, ContestTransitionError) as exc:
        raise contest_http_error(exc) from exc
    return to_snapshot(contest)


@router.delete("/contests/{contest_id}", response_model=MessageResponse)
async def delete_contest(
    contest_id: str,
    admin: User = Depends(manage_contests),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        await ContestService(db).delete_contest(admin, contest_id)
    except ContestError as exc:
        raise contest_http_error(exc) from exc
    return MessageResponse(message=f"Contest {contest_id} deleted.")


# ----------------------------------------------------------------------
# Users and administrators
# ----------------------------------------------------------------------
@router.get("/users", response_model=list[AdminUserSummary])
async def list_users(
    admin: User = Depends(manage_users),
    db: AsyncSession = Depends(get_db),
) -> list[AdminUserSummary]:
    users = await UserService(db).list_users()
    return [_user_summary(user) for user in users]


@router.patch("/users/{email}", response_model=AdminUserSummary)
async def update_user(
    email: str,
    request: UpdateUserRequest,
    admin: User = Depends(manage_users),
    db: AsyncSession = Depends(get_db),
) -> AdminUserSummary:
    """Ban or unban a user."""
    try:
        user = await UserService(db).set_banned(admin, email, request.banned)
    except UserServiceError as exc:
        raise _user_http_error(exc) from exc
    return _user_summary(user)


@router.put("/users/{email}/role", response_model=AdminUserSummary)
async def update_user_role(
    email: str,
    request: UpdateRoleRequest,
    admin: User = Depends(manage_admins),
    db: AsyncSession = Depends(get_db),
) -> AdminUserSummary:
    try:
        user = await UserService(db).set_role(admin, email, request.role)
    except UserServiceError as exc:
        raise _user_http_error(exc) from exc
    return _user_summary(user)


@router.post("/admins", response_model=AdminUserSummary, status_code=status.HTTP_201_CREATED)
async def create_admin(
    request: CreateAdminRequest,
    admin: User = Depends(manage_admins),
    db: AsyncSession = Depends(get_db),
) -> AdminUserSummary:
    try:
        new_admin = await UserService(db).create_admin(
            admin, request.name, request.email, request.password, request.role
        )
    except UserServiceError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _user_summary(new_admin)


# ----------------------------------------------------------------------
# Finance
# ----------------------------------------------------------------------
@router.get("/finance/summary", response_model=FinanceSummary)
async def finance_summary(
    admin: User = Depends(manage_finance),
    db: AsyncSession = Depends(get_db),
) -> FinanceSummary:
    return await WalletService(db).get_finance_summary()


@router.get("/finance/withdrawals", response_model=list[PendingWithdrawal])
async def list_pending_withdrawals(
    admin: User = Depends(manage_finance),
    db: AsyncSession = Depends(get_db),
) -> list[PendingWithdrawal]:
    return await WalletService(db).list_pending_withdrawals()


@router.post("/finance/withdrawals/{transaction_id}/approve", response_model=MessageResponse)
async def approve_withdrawal(
    transaction_id: str,
    request: WithdrawalDecisionRequest,
    admin: User = Depends(manage_finance),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        await WalletService(db).approve_withdrawal(admin, transaction_id, request.description)
    except WithdrawalNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (WalletError, InsufficientBalanceError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return MessageResponse(message="Withdrawal approved.")


@router.post("/finance/withdrawals/{transaction_id}/decline", response_model=MessageResponse)
async def decline_withdrawal(
    transaction_id: str,
    request: WithdrawalDecisionRequest,
    admin: User = Depends(manage_finance),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        await WalletService(db).decline_withdrawal(admin, transaction_id, request.description)
    except WithdrawalNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except WalletError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return MessageResponse(message="Withdrawal declined.")


@router.post("/finance/adjustments", response_model=AdminUserSummary)
async def adjust_wallet(
    request: WalletAdjustmentRequest,
    admin: User = Depends(manage_finance),
    db: AsyncSession = Depends(get_db),
) -> AdminUserSummary:
    """Apply a signed balance correction; the reason is kept as the transaction description."""
    try:
        user = await WalletService(db).adjust_wallet(admin, request.user_email, request.amount, request.reason)
    except WalletError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _user_summary(user)


# ----------------------------------------------------------------------
# Settings, audit log and analytics
# ----------------------------------------------------------------------
@router.get("/settings", response_model=GameSettingsSchema)
async def get_game_settings(
    admin: User = Depends(manage_settings),
    db: AsyncSession = Depends(get_db),
) -> GameSettingsSchema:
    return await GameSettingsService(db).get_game_settings()


@router.put("/settings", response_model=GameSettingsSchema)
async def save_game_settings(
    request: GameSettingsSchema,
    admin: User = Depends(manage_settings),
    db: AsyncSession = Depends(get_db),
) -> GameSettingsSchema:
    return await GameSettingsService(db).save_game_settings(admin, request)


@router.get("/audit-log", response_model=list[AuditLogEntry])
async def get_audit_log(
    limit: int = Query(200, ge=1, le=1000),
    admin: User = Depends(manage_audit_log),
    db: AsyncSession = Depends(get_db),
) -> list[AuditLogEntry]:
    entries = await AuditService(db).list_entries(limit=limit)
    return [
        AuditLogEntry(
            id=entry.log_id,
            timestamp=entry.created_at,
            admin_email=entry.admin_email,
            admin_name=entry.admin_name,
            action=entry.action,
            details=entry.details,
        )
        for entry in entries
    ]


@router.get("/analytics/ranks", response_model=RankDistributionResponse)
async def rank_distribution(
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> RankDistributionResponse:
    distribution = await RankingService(db).get_rank_distribution()
    return RankDistributionResponse(distribution=distribution, total_users=sum(distribution.values()))
