"""Contest management, registration and result submission."""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.models.base import AdminPermission, AuditLogAction, ContestFormat, ContestStatus, TimerType
from mindbattle.models.contest import Contest
from mindbattle.models.user import User
from mindbattle.schemas.contest import (
    ContestCreateRequest,
    ContestResult,
    ContestSnapshot,
    ContestUpdateRequest,
    FastestFingerResults,
    KBCResults,
    LeaderboardEntry,
)
from mindbattle.services.audit_service import AuditService
from mindbattle.services.contest_status_service import ensure_transition_allowed, to_snapshot
from mindbattle.services.permissions import has_permission
from mindbattle.services.ranking_service import ContestOutcome, RankingService, determine_outcome, sort_leaderboard
from mindbattle.services.settings_service import GameSettingsService
from mindbattle.services.wallet_service import WalletService
from mindbattle.utils import generate_id, utc_now
from mindbattle.utils.exceptions import InsufficientBalanceError

logger = logging.getLogger(__name__)

# Contests visible to players; drafts and moderation states stay in the admin panel.
PUBLIC_STATUSES = (
    ContestStatus.UPCOMING,
    ContestStatus.LIVE,
    ContestStatus.FINISHED,
    ContestStatus.CANCELLED,
)


class ContestError(RuntimeError):
    """Raised when a contest operation is not allowed."""


class ContestNotFoundError(ContestError):
    """Raised when a contest id does not exist."""


def _audit_details(contest: Contest) -> str:
    return f"Contest: '{contest.title}' ({contest.contest_id})"


class ContestService:
    """Service for contest lifecycle operations that touch wallets and rankings."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.wallet_service = WalletService(db)
        self.ranking_service = RankingService(db)
        self.audit_service = AuditService(db)

    async def list_contests(self, include_hidden: bool = False) -> list[Contest]:
        stmt = select(Contest).order_by(Contest.contest_start_date)
        if not include_hidden:
            stmt = stmt.where(Contest.status.in_([status.value for status in PUBLIC_STATUSES]))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_contest(self, contest_id: str, for_update: bool = False) -> Contest:
        stmt = select(Contest).where(Contest.contest_id == contest_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        contest = result.scalar_one_or_none()
        if not contest:
            raise ContestNotFoundError("Contest not found.")
        return contest

    # ------------------------------------------------------------------
    # Authoring
    # ------------------------------------------------------------------
    async def create_contest(self, creator: User, payload: ContestCreateRequest) -> Contest:
        """Contest managers choose the initial status (Draft by default); other users submit for approval."""
        is_manager = has_permission(creator.role, AdminPermission.MANAGE_CONTESTS)
        if is_manager:
            status = payload.status or ContestStatus.DRAFT
        else:
            status = ContestStatus.PENDING_APPROVAL

        values = payload.model_dump(exclude={"status"})
        values["questions"] = [q.model_dump() for q in payload.questions]
        for key in ("format", "timer_type", "difficulty"):
            values[key] = values[key].value

        contest = Contest(
            contest_id=generate_id("c"),
            status=status.value,
            participants=[],
            results=[],
            created_by=creator.email,
            **values,
        )
        self.db.add(contest)

        if is_manager:
            await self.audit_service.record(creator, AuditLogAction.CONTEST_CREATED, _audit_details(contest))
        await self.db.commit()
        logger.info(f"Contest {contest.contest_id} ('{contest.title}') created by {creator.email} as {status.value}")
        return contest

    async def update_contest(self, admin: User, contest_id: str, payload: ContestUpdateRequest) -> Contest:
        contest = await self.get_contest(contest_id, for_update=True)
        updates = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True, exclude={"status"}).items()
            if value is not None or key == "total_contest_time"
        }
        for key in ("format", "timer_type", "difficulty"):
            if updates.get(key) is not None:
                updates[key] = updates[key].value

        current = to_snapshot(contest)
        merged = ContestSnapshot.model_validate({**current.model_dump(), **updates})
        if merged.registration_start_date > merged.registration_end_date:
            raise ContestError("Registration must open before it closes.")
        if merged.registration_end_date > merged.contest_start_date:
            raise ContestError("Registration must close before the contest starts.")
        if merged.timer_type == TimerType.TOTAL_CONTEST and not merged.total_contest_time:
            raise ContestError("Total contest time is required for a total-contest timer.")
        # Cancellation refunds contest.entry_fee to every participant.
        if merged.entry_fee != current.entry_fee and current.participants:
            raise ContestError("The entry fee cannot change once players have registered.")

        old_status = ContestStatus(contest.status)
        new_status = payload.status or old_status
        ensure_transition_allowed(old_status, new_status)

        for key, value in updates.items():
            setattr(contest, key, value)
        if new_status == ContestStatus.CANCELLED and old_status != ContestStatus.CANCELLED:
            return await self.cancel_contest(admin, contest_id)
        contest.status = new_status.value
        if new_status == ContestStatus.FINISHED and old_status != ContestStatus.FINISHED:
            await self.ranking_service.settle_fastest_finger(to_snapshot(contest))

        action = AuditLogAction.CONTEST_UPDATED
        if old_status == ContestStatus.PENDING_APPROVAL and new_status == ContestStatus.UPCOMING:
            action = AuditLogAction.CONTEST_APPROVED
        elif old_status == ContestStatus.PENDING_APPROVAL and new_status == ContestStatus.REJECTED:
            action = AuditLogAction.CONTEST_REJECTED
        await self.audit_service.record(admin, action, _audit_details(contest))
        await self.db.commit()
        logger.info(f"Contest {contest_id} updated by {admin.email}: {action.value}")
        return contest

    async def set_status(self, admin: User, contest_id: str, status: ContestStatus) -> Contest:
        return await self.update_contest(admin, contest_id, ContestUpdateRequest(status=status))

    async def delete_contest(self, admin: User, contest_id: str) -> None:
        contest = await self.get_contest(contest_id)
        details = _audit_details(contest)
        await self.db.delete(contest)
        await self.audit_service.record(admin, AuditLogAction.CONTEST_DELETED, details)
        await self.db.commit()
        logger.info(f"Contest {contest_id} deleted by {admin.email}")

    async def cancel_contest(self, admin: User, contest_id: str) -> Contest:
        """Cancel an Upcoming contest and refund every participant's entry fee."""
        contest = await self.get_contest(contest_id, for_update=True)
        ensure_transition_allowed(ContestStatus(contest.status), ContestStatus.CANCELLED)

        participants = list(contest.participants or [])
        if contest.entry_fee > 0:
            for email in participants:
                await self.wallet_service.refund(
                    email,
                    contest.entry_fee,
                    f"Refund for cancelled contest: {contest.title}",
                    auto_commit=False,
                )

        contest.status = ContestStatus.CANCELLED.value
        contest.participants = []
        await self.audit_service.record(admin, AuditLogAction.CONTEST_CANCELLED, _audit_details(contest))
        await self.db.commit()
        logger.info(
            f"Contest {contest_id} cancelled by {admin.email}; refunded {len(participants)} participants"
        )
        return contest

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------
    async def register_for_contest(
        self,
        user: User,
        contest_id: str,
        now: Optional[datetime] = None,
    ) -> Contest:
        """Join a contest, charging the entry fee when there is one."""
        now = now or utc_now()
        contest = await self.get_contest(contest_id, for_update=True)
        snapshot = to_snapshot(contest)

        if user.banned:
            raise ContestError("Your account has been suspended. You cannot register for contests.")
        if snapshot.status != ContestStatus.UPCOMING:
            raise ContestError("This contest is not open for registration.")
        if now < snapshot.registration_start_date or now > snapshot.registration_end_date:
            raise ContestError("Registration for this contest is not currently open.")
        if now >= snapshot.contest_start_date:
            raise ContestError("This contest has already started.")
        if user.email in snapshot.participants:
            raise ContestError("You are already registered for this contest.")
        if len(snapshot.participants) >= snapshot.max_participants:
            raise ContestError("This contest has reached its maximum number of participants.")
        if snapshot.entry_fee > 0:
            try:
                await self.wallet_service.charge_entry_fee(
                    user.email, snapshot.entry_fee, f"Entry for {snapshot.title}", auto_commit=False
                )
            except InsufficientBalanceError as exc:
                raise ContestError(str(exc)) from exc

        contest.participants = [*snapshot.participants, user.email]
        await self.db.commit()
        logger.info(f"User {user.email} registered for contest {contest_id} (fee={snapshot.entry_fee})")
        return contest

    async def submit_results(
        self,
        user: User,
        contest_id: str,
        results: KBCResults | FastestFingerResults,
    ) -> tuple[ContestResult, Optional[ContestOutcome], Optional[int]]:
        """Record a participant's game result, pay out KBC prize money and update ranking.

        Returns the stored result, the win/loss outcome and the points earned.
        Fastest Finger places depend on the final standings, so while the
        contest is Live the outcome and points are ``None`` and are settled
        when it finishes.
        """
        contest = await self.get_contest(contest_id, for_update=True)
        snapshot = to_snapshot(contest)

        if user.email not in snapshot.participants:
            raise ContestError("You are not registered for this contest.")
        if snapshot.status not in (ContestStatus.LIVE, ContestStatus.FINISHED):
            raise ContestError("This contest is not in progress.")
        if results.format != snapshot.format.value:
            raise ContestError(f"Results must be for a {snapshot.format.value} contest.")
        if any(r.user_id == user.email for r in snapshot.results):
            raise ContestError("You have already submitted results for this contest.")

        if isinstance(results, KBCResults):
            prize_amounts = (await GameSettingsService(self.db).get_game_settings()).prize_amounts
            if results.score != 0 and results.score not in prize_amounts:
                raise ContestError("Score must be an amount on the prize ladder.")
            result = ContestResult(user_id=user.email, name=user.name, score=results.score)
        else:
            result = ContestResult(user_id=user.email, name=user.name, score=results.score, time=results.time)

        all_results = [*snapshot.results, result]
        contest.results = [r.model_dump() for r in all_results]

        if snapshot.format == ContestFormat.FASTEST_FINGER:
            outcome, points_earned = None, None
            if snapshot.status == ContestStatus.FINISHED:
                settled = await self.ranking_service.settle_fastest_finger(
                    snapshot.model_copy(update={"results": all_results})
                )
                if user.email in settled:
                    outcome, points_earned = settled[user.email]
            await self.db.commit()
            logger.info(
                f"Results recorded: user={user.email}, contest={contest_id}, score={result.score}, "
                f"time={result.time}, settled={outcome is not None}"
            )
            return result, outcome, points_earned

        if result.score > 0:
            await self.wallet_service.credit_prize(
                user.email, result.score, f"Prize from {snapshot.title}", auto_commit=False
            )

        outcome = determine_outcome(snapshot, user.email, all_results)
        before = user.total_points
        stats = await self.ranking_service.record_contest_result(user, snapshot, outcome, auto_commit=False)
        await self.db.commit()
        points_earned = stats.contest_history[0].points_earned
        logger.info(
            f"Results recorded: user={user.email}, contest={contest_id}, score={result.score}, "
            f"win={outcome.is_win}, points {before} -> {stats.total_points}"
        )
        return result, outcome, points_earned

    async def get_leaderboard(self, contest_id: str) -> list[LeaderboardEntry]:
        contest = await self.get_contest(contest_id)
        ranked = sort_leaderboard(to_snapshot(contest).results)
        return [
            LeaderboardEntry(position=i, user_id=r.user_id, name=r.name, score=r.score, time=r.time)
            for i, r in enumerate(ranked, start=1)
        ]
