"""Contest endpoints for players."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.database import get_db
from mindbattle.dependencies import get_current_user
from mindbattle.models.user import User
from mindbattle.schemas.contest import (
    ContestCreateRequest,
    GameResults,
    LeaderboardEntry,
    PublicContest,
    RegisterForContestResponse,
    SubmitResultsResponse,
)
from mindbattle.services import ContestError, ContestNotFoundError, ContestService, ContestTransitionError
from mindbattle.services.contest_status_service import to_snapshot
from mindbattle.services.ranking_service import get_rank

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contests", tags=["contests"])


def contest_http_error(exc: ContestError | ContestTransitionError) -> HTTPException:
    if isinstance(exc, ContestNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ContestTransitionError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@router.get("", response_model=list[PublicContest])
async def list_contests(db: AsyncSession = Depends(get_db)) -> list[PublicContest]:
    """Contests open to players, soonest first. Answers are never included."""
    contests = await ContestService(db).list_contests()
    return [PublicContest.from_snapshot(to_snapshot(contest)) for contest in contests]


@router.get("/{contest_id}", response_model=PublicContest)
async def get_contest(contest_id: str, db: AsyncSession = Depends(get_db)) -> PublicContest:
    try:
        contest = await ContestService(db).get_contest(contest_id)
    except ContestError as exc:
        raise contest_http_error(exc) from exc
    return PublicContest.from_snapshot(to_snapshot(contest))


@router.post("", response_model=PublicContest, status_code=status.HTTP_201_CREATED)
async def submit_contest(
    request: ContestCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PublicContest:
    """Propose a contest; it waits in Pending Approval until a contest manager reviews it."""
    contest = await ContestService(db).create_contest(user, request)
    return PublicContest.from_snapshot(to_snapshot(contest))


@router.post("/{contest_id}/register", response_model=RegisterForContestResponse)
async def register_for_contest(
    contest_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RegisterForContestResponse:
    try:
        contest = await ContestService(db).register_for_contest(user, contest_id)
    except ContestError as exc:
        raise contest_http_error(exc) from exc
    return RegisterForContestResponse(
        contest=PublicContest.from_snapshot(to_snapshot(contest)),
        wallet_balance=user.wallet_balance,
    )


@router.post("/{contest_id}/results", response_model=SubmitResultsResponse)
async def submit_results(
    contest_id: str,
    request: GameResults,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SubmitResultsResponse:
    """Record the caller's game result, paying out KBC prize money.

    Fastest Finger results are settled once the contest finishes.
    """
    try:
        result, outcome, points_earned = await ContestService(db).submit_results(user, contest_id, request)
    except ContestError as exc:
        raise contest_http_error(exc) from exc
    return SubmitResultsResponse(
        result=result,
        settled=outcome is not None,
        is_win=outcome.is_win if outcome else None,
        points_earned=points_earned,
        total_points=user.total_points,
        rank=get_rank(user.total_points).value,
        wallet_balance=user.wallet_balance,
    )


@router.get("/{contest_id}/leaderboard", response_model=list[LeaderboardEntry])
async def get_leaderboard(contest_id: str, db: AsyncSession = Depends(get_db)) -> list[LeaderboardEntry]:
    try:
        return await ContestService(db).get_leaderboard(contest_id)
    except ContestError as exc:
        raise contest_http_error(exc) from exc
