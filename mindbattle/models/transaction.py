"""Transaction ledger model."""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import relationship
from datetime import datetime, UTC
from mindbattle.database import Base


class Transaction(Base):
    """Transaction ledger model."""
    __tablename__ = "transactions"

    transaction_id = Column(String(64), primary_key=True)
    user_email = Column(String(255), ForeignKey("users.email", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Negative for charges, positive for credits
    type = Column(String(50), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="completed", index=True)
    updated_by = Column(String(255), nullable=True)  # Admin email for approvals and adjustments
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="transactions")

    # Indexes
    __table_args__ = (
        Index('ix_transactions_user_created', 'user_email', 'created_at'),
    )

    def __repr__(self):
        return (f"<Transaction(transaction_id={self.transaction_id}, amount={self.amount}, "
                f"type={self.type}, status={self.status})>")
