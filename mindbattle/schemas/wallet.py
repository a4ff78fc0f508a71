"""Wallet ledger schemas."""
from enum import Enum
from typing import Optional

from pydantic import Field, conint, constr, field_validator

from mindbattle.models.base import TransactionStatus, TransactionType
from mindbattle.schemas.base import BaseSchema, EpochMs, FrozenSchema


class WalletActionType(str, Enum):
    """Typed request to mutate a user's wallet and transaction history."""
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL_REQUEST = "WITHDRAWAL_REQUEST"
    WITHDRAWAL_APPROVE = "WITHDRAWAL_APPROVE"
    WITHDRAWAL_DECLINE = "WITHDRAWAL_DECLINE"
    CONTEST_ENTRY = "CONTEST_ENTRY"
    CONTEST_WIN = "CONTEST_WIN"
    CONTEST_REFUND = "CONTEST_REFUND"
    ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"


class LedgerTransaction(FrozenSchema):
    """One entry in a user's transaction history."""
    id: str
    type: TransactionType
    amount: int  # Signed: negative for debits
    description: str = ""
    timestamp: EpochMs
    status: Optional[TransactionStatus] = TransactionStatus.COMPLETED
    updated_by: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    @property
    def is_settled(self) -> bool:
        """Settled transactions are the ones reflected in the wallet balance."""
        return self.status is None or self.status == TransactionStatus.COMPLETED


class WalletUser(FrozenSchema):
    """Wallet-bearing view of a user: balance plus newest-first history."""
    email: str
    wallet_balance: int = 0
    transactions: list[LedgerTransaction] = Field(default_factory=list)


class WalletAction(FrozenSchema):
    """Ledger action; ``transaction_id`` targets approve/decline."""
    type: WalletActionType
    user_id: str
    amount: int = 0
    description: str = ""
    transaction_id: Optional[str] = None
    updated_by: Optional[str] = None


class DepositRequest(BaseSchema):
    amount: conint(gt=0)


class WithdrawalRequest(BaseSchema):
    amount: conint(gt=0)


class WalletResponse(BaseSchema):
    """Current wallet state for the authenticated user."""
    email: str
    wallet_balance: int
    available_balance: int  # Balance minus pending withdrawals
    transactions: list[LedgerTransaction]


class WalletAdjustmentRequest(BaseSchema):
    """Admin balance correction; ``reason`` becomes the transaction description."""
    user_email: str
    amount: int
    reason: constr(min_length=1, max_length=500)

    @field_validator("amount")
    @classmethod
    def amount_not_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("Adjustment amount must be non-zero")
        return value


class PendingWithdrawal(BaseSchema):
    transaction_id: str
    user_email: str
    user_name: str
    amount: int
    description: str
    timestamp: EpochMs


class FinanceSummary(BaseSchema):
    """Platform-wide totals for the finance dashboard."""
    total_user_funds: int
    total_prizes: int
    total_entry_fees: int
    total_pending_withdrawals: int
    pending_withdrawals: list[PendingWithdrawal]
