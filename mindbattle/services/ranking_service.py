"""Ranking points, tiers and contest leaderboards."""
import logging
from datetime import datetime
from enum import Enum
from typing import Iterable, NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.models.base import ContestFormat, Difficulty
from mindbattle.models.contest_history import ContestHistory
from mindbattle.models.user import User
from mindbattle.schemas.contest import ContestResult, ContestSnapshot
from mindbattle.schemas.ranking import ContestHistoryEntry, PlayerStats
from mindbattle.utils import generate_id, utc_now

logger = logging.getLogger(__name__)


class Rank(str, Enum):
    BRONZE_BEGINNER = "Bronze Beginner"
    SILVER_LEARNER = "Silver Learner"
    GOLD_CHALLENGER = "Gold Challenger"
    PLATINUM_GENIUS = "Platinum Genius"
    TITANIUM_GENIUS = "Titanium Genius"


class PointsRule(NamedTuple):
    base: int
    win: int
    loss: int


# base + loss is never positive and base + win never negative.
SCORING_POINTS: dict[Difficulty, PointsRule] = {
    Difficulty.EASY: PointsRule(base=10, win=10, loss=-15),
    Difficulty.MEDIUM: PointsRule(base=20, win=20, loss=-25),
    Difficulty.HARD: PointsRule(base=30, win=30, loss=-35),
    Difficulty.DIFFICULT: PointsRule(base=50, win=50, loss=-55),
}

RANK_THRESHOLDS: dict[Rank, int] = {
    Rank.BRONZE_BEGINNER: 0,
    Rank.SILVER_LEARNER: 100,
    Rank.GOLD_CHALLENGER: 500,
    Rank.PLATINUM_GENIUS: 1500,
    Rank.TITANIUM_GENIUS: 5000,
}

# Highest tier first; the first threshold met wins.
RANK_ORDER: list[Rank] = sorted(RANK_THRESHOLDS, key=RANK_THRESHOLDS.get, reverse=True)

FASTEST_FINGER_WINNING_PLACES = 3


def get_rank(points: int) -> Rank:
    for rank in RANK_ORDER:
        if points >= RANK_THRESHOLDS[rank]:
            return rank
    return Rank.BRONZE_BEGINNER


def calculate_points(difficulty: Difficulty, is_win: bool) -> int:
    """Point delta for finishing a contest of ``difficulty``."""
    rule = SCORING_POINTS[Difficulty(difficulty)]
    return rule.base + (rule.win if is_win else rule.loss)


def sort_leaderboard(results: Iterable[ContestResult]) -> list[ContestResult]:
    """Score descending, then time ascending. Missing times sort last."""
    return sorted(
        results,
        key=lambda r: (-r.score, r.time if r.time is not None else float("inf")),
    )


class ContestOutcome(NamedTuple):
    is_win: bool
    result: int


class SettledResult(NamedTuple):
    outcome: ContestOutcome
    points_earned: int


def determine_outcome(
    contest: ContestSnapshot,
    user_id: str,
    results: Iterable[ContestResult],
) -> ContestOutcome:
    """Win/loss for ``user_id`` given every result recorded for the contest.

    KBC is a win when any prize money was reached. Fastest Finger is a win
    for a top-three finish on the leaderboard, so ``results`` must be the
    final standings.
    """
    results = list(results)
    own = next((r for r in results if r.user_id == user_id), None)
    if own is None:
        return ContestOutcome(is_win=False, result=0)

    if contest.format == ContestFormat.FASTEST_FINGER:
        leaderboard = sort_leaderboard(results)
        place = next(i for i, r in enumerate(leaderboard, start=1) if r.user_id == user_id)
        return ContestOutcome(is_win=place <= FASTEST_FINGER_WINNING_PLACES, result=own.score)

    return ContestOutcome(is_win=own.score > 0, result=own.score)


def update_user_stats_after_contest(
    stats: PlayerStats,
    contest: ContestSnapshot,
    outcome: ContestOutcome,
    now: Optional[datetime] = None,
) -> PlayerStats:
    """Return new stats with the contest's points applied and a history entry prepended."""
    points_earned = calculate_points(contest.difficulty, outcome.is_win)
    entry = ContestHistoryEntry(
        contest_id=contest.id,
        contest_title=contest.title,
        difficulty=contest.difficulty,
        category=contest.category,
        result=outcome.result,
        points_earned=points_earned,
        timestamp=now or utc_now(),
    )
    return stats.model_copy(update={
        "total_points": max(0, stats.total_points + points_earned),
        "contest_history": [entry, *stats.contest_history],
    })


def rank_distribution(points: Iterable[int]) -> dict[str, int]:
    """Count of users per rank tier, lowest tier first."""
    distribution = {rank.value: 0 for rank in reversed(RANK_ORDER)}
    for total in points:
        distribution[get_rank(total).value] += 1
    return distribution


def to_player_stats(user: User) -> PlayerStats:
    """Stats view of a user row. ``contest_history`` must be loaded."""
    return PlayerStats(
        email=user.email,
        total_points=user.total_points,
        contest_history=[
            ContestHistoryEntry(
                contest_id=row.contest_id,
                contest_title=row.contest_title,
                difficulty=row.difficulty,
                category=row.category,
                result=row.result,
                points_earned=row.points_earned,
                timestamp=row.created_at,
            )
            for row in user.contest_history
        ],
    )


class RankingService:
    """Persists ranking updates and serves rank analytics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_contest_result(
        self,
        user: User,
        contest: ContestSnapshot,
        outcome: ContestOutcome,
        auto_commit: bool = True,
    ) -> PlayerStats:
        before = PlayerStats(email=user.email, total_points=user.total_points)
        updated = update_user_stats_after_contest(before, contest, outcome)
        entry = updated.contest_history[0]

        self.db.add(ContestHistory(
            history_id=generate_id("hist"),
            user_email=user.email,
            contest_id=entry.contest_id,
            contest_title=entry.contest_title,
            difficulty=entry.difficulty.value,
            category=entry.category,
            result=entry.result,
            points_earned=entry.points_earned,
            created_at=entry.timestamp,
        ))
        user.total_points = updated.total_points

        if auto_commit:
            await self.db.commit()

        logger.info(
            f"Ranking updated: user={user.email}, contest={contest.id}, win={outcome.is_win}, "
            f"points {before.total_points} -> {updated.total_points} ({entry.points_earned:+d})"
        )
        return updated

    async def settle_fastest_finger(self, contest: ContestSnapshot) -> dict[str, SettledResult]:
        """Apply win/loss points to every Fastest Finger submitter not yet settled.

        Run once the contest is Finished. Users who already have a history row
        for the contest are skipped, so repeated calls only settle late
        submissions. The caller commits.
        """
        if contest.format != ContestFormat.FASTEST_FINGER or not contest.results:
            return {}

        await self.db.flush()
        result = await self.db.execute(
            select(ContestHistory.user_email).where(ContestHistory.contest_id == contest.id)
        )
        already_settled = set(result.scalars().all())
        pending = [r.user_id for r in sort_leaderboard(contest.results) if r.user_id not in already_settled]
        if not pending:
            return {}

        result = await self.db.execute(select(User).where(User.email.in_(pending)).with_for_update())
        users = {user.email: user for user in result.scalars().all()}

        settled = {}
        for email in pending:
            user = users.get(email)
            if user is None:
                logger.warning(f"Skipping settlement for missing user {email} in contest {contest.id}")
                continue
            outcome = determine_outcome(contest, email, contest.results)
            stats = await self.record_contest_result(user, contest, outcome, auto_commit=False)
            settled[email] = SettledResult(outcome, stats.contest_history[0].points_earned)

        logger.info(f"Fastest Finger contest {contest.id} settled for {len(settled)} players")
        return settled

    async def get_rank_distribution(self) -> dict[str, int]:
        """Rank counts over player accounts (administrators excluded)."""
        result = await self.db.execute(select(User.total_points).where(User.role.is_(None)))
        return rank_distribution(result.scalars().all())
