"""Time-driven contest lifecycle."""
import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.config import get_settings
from mindbattle.models.base import ContestFormat, ContestStatus, TimerType
from mindbattle.models.contest import Contest
from mindbattle.schemas.contest import ContestSnapshot
from mindbattle.services.ranking_service import RankingService
from mindbattle.utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_LIVE_WINDOW = timedelta(hours=2)

# Admin-driven changes; the sweep only performs Upcoming -> Live -> Finished.
ALLOWED_TRANSITIONS: dict[ContestStatus, frozenset[ContestStatus]] = {
    ContestStatus.DRAFT: frozenset({ContestStatus.PENDING_APPROVAL, ContestStatus.UPCOMING}),
    ContestStatus.PENDING_APPROVAL: frozenset({ContestStatus.UPCOMING, ContestStatus.REJECTED}),
    ContestStatus.UPCOMING: frozenset({ContestStatus.LIVE, ContestStatus.CANCELLED}),
    ContestStatus.LIVE: frozenset({ContestStatus.FINISHED}),
    ContestStatus.FINISHED: frozenset(),
    ContestStatus.CANCELLED: frozenset(),
    ContestStatus.REJECTED: frozenset(),
}


class ContestTransitionError(RuntimeError):
    """Raised when a contest status change breaks the lifecycle order."""


def ensure_transition_allowed(current: ContestStatus, target: ContestStatus) -> None:
    current, target = ContestStatus(current), ContestStatus(target)
    if current == target:
        return
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ContestTransitionError(
            f"Cannot change contest status from {current.value} to {target.value}."
        )


def live_end_boundary(contest: ContestSnapshot, live_window: timedelta = DEFAULT_LIVE_WINDOW) -> datetime:
    """Moment after which a Live contest is over."""
    if (
        contest.format == ContestFormat.FASTEST_FINGER
        and contest.timer_type == TimerType.TOTAL_CONTEST
        and contest.total_contest_time
    ):
        return contest.contest_start_date + timedelta(seconds=contest.total_contest_time)
    return contest.contest_start_date + live_window


def next_status(
    contest: ContestSnapshot,
    now: datetime,
    live_window: timedelta = DEFAULT_LIVE_WINDOW,
) -> ContestStatus:
    """Status after one sweep step; at most one transition is taken."""
    if contest.status == ContestStatus.UPCOMING and now >= contest.contest_start_date:
        return ContestStatus.LIVE
    if contest.status == ContestStatus.LIVE and now > live_end_boundary(contest, live_window):
        return ContestStatus.FINISHED
    return contest.status


def sweep_contest_statuses(
    contests: Sequence[ContestSnapshot],
    now: datetime,
    live_window: timedelta = DEFAULT_LIVE_WINDOW,
) -> tuple[bool, list[ContestSnapshot]]:
    """Re-evaluate every contest against ``now``.

    Returns whether anything changed and the new list. Contests whose status
    holds are passed through as the same objects.
    """
    changed = False
    swept = []
    for contest in contests:
        status = next_status(contest, now, live_window)
        if status != contest.status:
            changed = True
            swept.append(contest.model_copy(update={"status": status}))
        else:
            swept.append(contest)
    return changed, swept


def to_snapshot(contest: Contest) -> ContestSnapshot:
    return ContestSnapshot(
        id=contest.contest_id,
        title=contest.title,
        description=contest.description,
        category=contest.category,
        entry_fee=contest.entry_fee,
        prize_pool=contest.prize_pool,
        status=contest.status,
        registration_start_date=contest.registration_start_date,
        registration_end_date=contest.registration_end_date,
        contest_start_date=contest.contest_start_date,
        max_participants=contest.max_participants,
        rules=contest.rules,
        questions=contest.questions or [],
        participants=contest.participants or [],
        format=contest.format,
        timer_type=contest.timer_type,
        time_per_question=contest.time_per_question,
        total_contest_time=contest.total_contest_time,
        number_of_questions=contest.number_of_questions,
        created_by=contest.created_by,
        results=contest.results or [],
        difficulty=contest.difficulty,
    )


class ContestStatusService:
    """Applies the status sweep to stored contests."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()
        self.ranking_service = RankingService(db)

    async def run_sweep(self, now: Optional[datetime] = None) -> list[str]:
        """Advance due contests one step and return the ids that changed.

        Fastest Finger contests reaching Finished are settled in the same commit.
        """
        now = now or utc_now()
        result = await self.db.execute(
            select(Contest).where(
                Contest.status.in_([ContestStatus.UPCOMING.value, ContestStatus.LIVE.value])
            )
        )
        rows = list(result.scalars().all())
        if not rows:
            return []

        snapshots = [to_snapshot(row) for row in rows]
        changed, swept = sweep_contest_statuses(
            snapshots, now, timedelta(hours=self.settings.live_grace_window_hours)
        )
        if not changed:
            return []

        changed_ids = []
        for row, before, after in zip(rows, snapshots, swept):
            if after is before:
                continue
            logger.info(
                f"Contest {row.contest_id} ('{row.title}') status {before.status.value} -> {after.status.value}"
            )
            row.status = after.status.value
            changed_ids.append(row.contest_id)
            if after.status == ContestStatus.FINISHED:
                await self.ranking_service.settle_fastest_finger(after)

        await self.db.commit()
        return changed_ids
