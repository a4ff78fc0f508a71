"""Contest model."""
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from mindbattle.database import Base


class Contest(Base):
    """Trivia contest with its lifecycle status, roster and results.

    ``questions``, ``participants`` and ``results`` are JSON documents.
    Callers always assign new lists instead of mutating them in place so the
    change is picked up on flush.
    """

    __tablename__ = "contests"

    contest_id = Column(String(64), primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False)
    entry_fee = Column(Integer, nullable=False, default=0)
    prize_pool = Column(Integer, nullable=False, default=0)
    status = Column(String(30), nullable=False, default="Draft", index=True)
    registration_start_date = Column(DateTime(timezone=True), nullable=False)
    registration_end_date = Column(DateTime(timezone=True), nullable=False)
    contest_start_date = Column(DateTime(timezone=True), nullable=False, index=True)
    max_participants = Column(Integer, nullable=False, default=100)
    rules = Column(Text, nullable=False, default="")
    questions = Column(JSON, nullable=False, default=list)
    participants = Column(JSON, nullable=False, default=list)  # user emails
    format = Column(String(20), nullable=False, default="KBC")
    timer_type = Column(String(20), nullable=False, default="per_question")
    time_per_question = Column(Integer, nullable=False, default=30)
    total_contest_time = Column(Integer, nullable=True)  # seconds, for total_contest timers
    number_of_questions = Column(Integer, nullable=False, default=15)
    created_by = Column(String(255), nullable=True)
    results = Column(JSON, nullable=False, default=list)
    difficulty = Column(String(20), nullable=False, default="Medium")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self):
        return f"<Contest(contest_id={self.contest_id}, title={self.title}, status={self.status})>"
