"""Runtime game settings stored as key/value rows."""
from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from mindbattle.database import Base
from mindbattle.utils import utc_now


class GameSetting(Base):
    """Admin-editable game setting overriding the environment default."""

    __tablename__ = "game_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)  # JSON-encoded
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now)
    updated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)  # admin email

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(key={self.key}, value={self.value})>"
