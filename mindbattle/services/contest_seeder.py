"""Seed the bundled starter contests into an empty database."""
import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.models.contest import Contest
from mindbattle.utils import utc_now

logger = logging.getLogger(__name__)

FALLBACK_CONTESTS_PATH = Path(__file__).parent.parent / "data" / "fallback_contests.json"


def load_fallback_contests(now: Optional[datetime] = None) -> list[Contest]:
    """Build contest rows from the bundled JSON, scheduling them relative to ``now``."""
    now = now or utc_now()
    with open(FALLBACK_CONTESTS_PATH, "r", encoding="utf-8") as file:
        entries = json.load(file)

    contests = []
    for entry in entries:
        contests.append(Contest(
            contest_id=entry["id"],
            title=entry["title"],
            description=entry["description"],
            category=entry["category"],
            entry_fee=entry["entry_fee"],
            prize_pool=entry["prize_pool"],
            status=entry["status"],
            registration_start_date=now + timedelta(hours=entry["registration_opens_in_hours"]),
            registration_end_date=now + timedelta(hours=entry["registration_closes_in_hours"]),
            contest_start_date=now + timedelta(hours=entry["starts_in_hours"]),
            max_participants=entry["max_participants"],
            rules=entry["rules"],
            questions=[],
            participants=[],
            results=[],
            format=entry["format"],
            timer_type=entry["timer_type"],
            time_per_question=entry["time_per_question"],
            number_of_questions=entry["number_of_questions"],
            difficulty=entry["difficulty"],
        ))
    return contests


async def seed_fallback_contests(db: AsyncSession) -> int:
    """Insert the starter contests when no contest exists. Returns the number added."""
    count = await db.scalar(select(func.count()).select_from(Contest))
    if count:
        logger.debug(f"Skipping contest seeding, {count} contests already stored")
        return 0

    contests = load_fallback_contests()
    db.add_all(contests)
    await db.commit()
    logger.info(f"Seeded {len(contests)} starter contests")
    return len(contests)
