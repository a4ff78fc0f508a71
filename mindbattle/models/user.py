"""User account model."""
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from mindbattle.database import Base


class User(Base):
    """Wallet-bearing user account, keyed by email.

    Administrators are users with a non-null ``role``.
    """

    __tablename__ = "users"

    email = Column(String(255), primary_key=True)
    name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    wallet_balance = Column(Integer, default=0, nullable=False)
    role = Column(String(30), nullable=True)
    banned = Column(Boolean, default=False, nullable=False)
    registration_date = Column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    total_points = Column(Integer, default=0, nullable=False)

    # Relationships
    transactions = relationship(
        "Transaction",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Transaction.created_at.desc()",
    )
    contest_history = relationship(
        "ContestHistory",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="ContestHistory.created_at.desc()",
    )

    @property
    def is_admin(self) -> bool:
        return self.role is not None

    def __repr__(self):
        return f"<User(email={self.email}, wallet_balance={self.wallet_balance}, role={self.role})>"
