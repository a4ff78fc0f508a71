"""Per-user contest history model."""
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from mindbattle.database import Base


class ContestHistory(Base):
    """One completed contest in a user's history, with the points it earned."""

    __tablename__ = "contest_history"

    history_id = Column(String(64), primary_key=True)
    user_email = Column(String(255), ForeignKey("users.email", ondelete="CASCADE"), nullable=False)
    contest_id = Column(String(64), nullable=False, index=True)  # No FK: contests may be deleted
    contest_title = Column(String(200), nullable=False)
    difficulty = Column(String(20), nullable=False)
    category = Column(String(100), nullable=False)
    result = Column(Integer, nullable=False, default=0)
    points_earned = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    user = relationship("User", back_populates="contest_history")

    __table_args__ = (
        Index('ix_contest_history_user_created', 'user_email', 'created_at'),
    )

    def __repr__(self):
        return (f"<ContestHistory(user={self.user_email}, contest={self.contest_id}, "
                f"points_earned={self.points_earned})>")
