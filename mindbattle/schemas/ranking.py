"""Ranking and contest history schemas."""
from pydantic import Field

from mindbattle.models.base import Difficulty
from mindbattle.schemas.base import BaseSchema, EpochMs, FrozenSchema


class ContestHistoryEntry(FrozenSchema):
    contest_id: str
    contest_title: str
    difficulty: Difficulty
    category: str
    result: int
    points_earned: int
    timestamp: EpochMs


class PlayerStats(FrozenSchema):
    """Points total and newest-first contest history for one user."""
    email: str
    total_points: int = 0
    contest_history: list[ContestHistoryEntry] = Field(default_factory=list)


class RankDistributionResponse(BaseSchema):
    distribution: dict[str, int]
    total_users: int
