"""Administrator audit log model."""
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String, Text

from mindbattle.database import Base


class AuditLog(Base):
    """Append-only record of an administrator action."""

    __tablename__ = "audit_logs"

    log_id = Column(String(64), primary_key=True)
    admin_email = Column(String(255), nullable=False, index=True)
    admin_name = Column(String(100), nullable=False)
    action = Column(String(50), nullable=False, index=True)
    details = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(log_id={self.log_id}, action={self.action}, admin={self.admin_email})>"
