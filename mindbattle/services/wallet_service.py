"""Wallet ledger: pure transition function plus persistence service."""
import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mindbattle.models.base import AuditLogAction, TransactionStatus, TransactionType
from mindbattle.models.transaction import Transaction
from mindbattle.models.user import User
from mindbattle.schemas.wallet import (
    FinanceSummary,
    LedgerTransaction,
    PendingWithdrawal,
    WalletAction,
    WalletActionType,
    WalletUser,
)
from mindbattle.services.audit_service import AuditService
from mindbattle.utils import generate_id, utc_now
from mindbattle.utils.exceptions import InsufficientBalanceError

logger = logging.getLogger(__name__)

APPROVED_DESCRIPTION = "Withdrawal approved by admin"
DECLINED_DESCRIPTION = "Withdrawal declined by admin"

_CREDIT_TYPES = {
    WalletActionType.DEPOSIT: TransactionType.DEPOSIT,
    WalletActionType.CONTEST_WIN: TransactionType.WIN,
    WalletActionType.CONTEST_REFUND: TransactionType.REFUND,
}


class WalletError(RuntimeError):
    """Raised when a wallet operation cannot be performed."""


class WithdrawalNotFoundError(WalletError):
    """Raised when no pending withdrawal matches the given id."""


def calculate_balance(transactions: Iterable[LedgerTransaction]) -> int:
    """Sum of all settled transactions. Pending and declined entries are excluded."""
    return sum(tx.amount for tx in transactions if tx.is_settled)


def _append(user: WalletUser, tx: LedgerTransaction, balance_delta: int) -> WalletUser:
    return user.model_copy(update={
        "wallet_balance": user.wallet_balance + balance_delta,
        "transactions": [tx, *user.transactions],
    })


def _resolve_withdrawal(user: WalletUser, action: WalletAction, approve: bool) -> WalletUser:
    index = next(
        (
            i for i, tx in enumerate(user.transactions)
            if tx.id == action.transaction_id
            and tx.is_pending
            and tx.type == TransactionType.PENDING_WITHDRAWAL
        ),
        None,
    )
    if index is None:
        logger.warning(
            f"No pending withdrawal {action.transaction_id} for {user.email}; {action.type.value} ignored"
        )
        return user

    pending = user.transactions[index]
    if approve:
        resolved = pending.model_copy(update={
            "type": TransactionType.WITHDRAWAL,
            "status": TransactionStatus.COMPLETED,
            "description": action.description or APPROVED_DESCRIPTION,
            "updated_by": action.updated_by,
        })
        balance = user.wallet_balance + pending.amount
    else:
        resolved = pending.model_copy(update={
            "type": TransactionType.WITHDRAWAL_DECLINED,
            "status": TransactionStatus.DECLINED,
            "description": action.description or DECLINED_DESCRIPTION,
            "updated_by": action.updated_by,
        })
        balance = user.wallet_balance

    transactions = list(user.transactions)
    transactions[index] = resolved
    return user.model_copy(update={"wallet_balance": balance, "transactions": transactions})


def apply_wallet_action(
    user: WalletUser,
    action: WalletAction,
    now: Optional[datetime] = None,
) -> WalletUser:
    """Return a new user value with ``action`` applied to balance and history.

    The input is never modified. Credits and debits take the magnitude of
    ``action.amount``; only admin adjustments keep its sign. A withdrawal
    request is recorded as pending and leaves the balance alone until an
    admin approves (debit) or declines (no balance change) it.
    """
    now = now or utc_now()
    amount = abs(action.amount)

    if action.type in _CREDIT_TYPES:
        tx = LedgerTransaction(
            id=generate_id("txn"),
            type=_CREDIT_TYPES[action.type],
            amount=amount,
            description=action.description,
            timestamp=now,
        )
        return _append(user, tx, amount)

    if action.type == WalletActionType.CONTEST_ENTRY:
        tx = LedgerTransaction(
            id=generate_id("txn"),
            type=TransactionType.ENTRY_FEE,
            amount=-amount,
            description=action.description,
            timestamp=now,
        )
        return _append(user, tx, -amount)

    if action.type == WalletActionType.ADMIN_ADJUSTMENT:
        tx = LedgerTransaction(
            id=generate_id("txn"),
            type=TransactionType.ADMIN_ADJUSTMENT,
            amount=action.amount,
            description=action.description,
            timestamp=now,
            updated_by=action.updated_by,
        )
        return _append(user, tx, action.amount)

    if action.type == WalletActionType.WITHDRAWAL_REQUEST:
        tx = LedgerTransaction(
            id=generate_id("txn"),
            type=TransactionType.PENDING_WITHDRAWAL,
            amount=-amount,
            description=action.description,
            timestamp=now,
            status=TransactionStatus.PENDING,
        )
        return _append(user, tx, 0)

    if action.type == WalletActionType.WITHDRAWAL_APPROVE:
        return _resolve_withdrawal(user, action, approve=True)

    if action.type == WalletActionType.WITHDRAWAL_DECLINE:
        return _resolve_withdrawal(user, action, approve=False)

    logger.warning(f"Unknown wallet action type: {action.type}")
    return user


def available_balance(user: WalletUser) -> int:
    """Balance left after every pending withdrawal is paid out."""
    return user.wallet_balance + sum(tx.amount for tx in user.transactions if tx.is_pending)


def to_wallet_user(user: User) -> WalletUser:
    """Build the ledger view of a user row. ``transactions`` must be loaded."""
    return WalletUser(
        email=user.email,
        wallet_balance=user.wallet_balance,
        transactions=[
            LedgerTransaction(
                id=row.transaction_id,
                type=row.type,
                amount=row.amount,
                description=row.description,
                timestamp=row.created_at,
                status=row.status,
                updated_by=row.updated_by,
            )
            for row in user.transactions
        ],
    )


class WalletService:
    """Applies ledger actions to persisted users.

    Each operation loads the user row (locked where the dialect supports it)
    with its transactions, runs :func:`apply_wallet_action` and writes back
    the balance plus any new or resolved transactions.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit_service = AuditService(db)

    async def _load_user(self, email: str) -> User:
        # Rows are reloaded from the database, so pending changes must be written first.
        await self.db.flush()
        result = await self.db.execute(
            select(User)
            .where(User.email == email)
            .options(selectinload(User.transactions))
            .execution_options(populate_existing=True)
            .with_for_update()
        )
        user = result.scalar_one_or_none()
        if not user:
            raise WalletError(f"User not found: {email}")
        return user

    async def _persist(self, row: User, updated: WalletUser) -> None:
        existing = {tx.transaction_id: tx for tx in row.transactions}
        new_rows = []
        for tx in updated.transactions:
            stored = existing.get(tx.id)
            status = (tx.status or TransactionStatus.COMPLETED).value
            if stored is None:
                new_rows.append(Transaction(
                    transaction_id=tx.id,
                    user_email=row.email,
                    amount=tx.amount,
                    type=tx.type.value,
                    description=tx.description,
                    status=status,
                    updated_by=tx.updated_by,
                    created_at=tx.timestamp,
                ))
            elif stored.type != tx.type.value or stored.status != status:
                stored.type = tx.type.value
                stored.status = status
                stored.description = tx.description
                stored.updated_by = tx.updated_by
        # Newest first, matching the relationship ordering.
        for tx_row in reversed(new_rows):
            row.transactions.insert(0, tx_row)
        row.wallet_balance = updated.wallet_balance

    async def apply(
        self,
        email: str,
        action: WalletAction,
        auto_commit: bool = True,
    ) -> User:
        """Apply one ledger action to the stored user and return the row."""
        row = await self._load_user(email)
        before = to_wallet_user(row)
        updated = apply_wallet_action(before, action)
        await self._persist(row, updated)

        if auto_commit:
            await self.db.commit()

        logger.info(
            f"Wallet action {action.type.value} applied: user={email}, amount={action.amount}, "
            f"balance {before.wallet_balance} -> {updated.wallet_balance}, auto_commit={auto_commit}"
        )
        return row

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------
    async def get_wallet(self, email: str) -> WalletUser:
        row = await self._load_user(email)
        return to_wallet_user(row)

    async def deposit(self, email: str, amount: int, description: str = "User deposit via gateway") -> User:
        if amount <= 0:
            raise WalletError("Deposit amount must be positive.")
        return await self.apply(email, WalletAction(
            type=WalletActionType.DEPOSIT, user_id=email, amount=amount, description=description,
        ))

    async def request_withdrawal(
        self, email: str, amount: int, description: str = "Withdrawal request"
    ) -> User:
        """Record a pending withdrawal; funds already promised to pending requests are not available."""
        if amount <= 0:
            raise WalletError("Withdrawal amount must be positive.")
        row = await self._load_user(email)
        available = available_balance(to_wallet_user(row))
        if amount > available:
            raise InsufficientBalanceError(
                f"Insufficient funds. Your available balance is ${available}."
            )
        return await self.apply(email, WalletAction(
            type=WalletActionType.WITHDRAWAL_REQUEST, user_id=email, amount=amount, description=description,
        ))

    # ------------------------------------------------------------------
    # Contest money movements (commit is left to the contest service)
    # ------------------------------------------------------------------
    async def charge_entry_fee(self, email: str, amount: int, description: str, auto_commit: bool = True) -> User:
        """Debit an entry fee from funds not already reserved by pending withdrawals."""
        row = await self._load_user(email)
        if available_balance(to_wallet_user(row)) < amount:
            raise InsufficientBalanceError(f"Insufficient funds. You need ${amount} to enter.")
        return await self.apply(email, WalletAction(
            type=WalletActionType.CONTEST_ENTRY, user_id=email, amount=amount, description=description,
        ), auto_commit=auto_commit)

    async def credit_prize(self, email: str, amount: int, description: str, auto_commit: bool = True) -> User:
        return await self.apply(email, WalletAction(
            type=WalletActionType.CONTEST_WIN, user_id=email, amount=amount, description=description,
        ), auto_commit=auto_commit)

    async def refund(self, email: str, amount: int, description: str, auto_commit: bool = True) -> User:
        return await self.apply(email, WalletAction(
            type=WalletActionType.CONTEST_REFUND, user_id=email, amount=amount, description=description,
        ), auto_commit=auto_commit)

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------
    async def _find_pending_withdrawal(self, transaction_id: str) -> Transaction:
        result = await self.db.execute(
            select(Transaction).where(
                Transaction.transaction_id == transaction_id,
                Transaction.type == TransactionType.PENDING_WITHDRAWAL.value,
                Transaction.status == TransactionStatus.PENDING.value,
            )
        )
        tx = result.scalar_one_or_none()
        if not tx:
            raise WithdrawalNotFoundError(f"Pending withdrawal not found: {transaction_id}")
        return tx

    async def approve_withdrawal(self, admin: User, transaction_id: str, description: str = "") -> User:
        pending = await self._find_pending_withdrawal(transaction_id)
        user_email = pending.user_email
        row = await self._load_user(user_email)
        if row.wallet_balance + pending.amount < 0:
            raise InsufficientBalanceError(
                f"User balance ${row.wallet_balance} cannot cover withdrawal of ${abs(pending.amount)}."
            )
        row = await self.apply(user_email, WalletAction(
            type=WalletActionType.WITHDRAWAL_APPROVE,
            user_id=user_email,
            transaction_id=transaction_id,
            description=description,
            updated_by=admin.email,
        ), auto_commit=False)
        await self.audit_service.record(
            admin, AuditLogAction.WITHDRAWAL_APPROVED, f"Withdrawal for {user_email} (Tx: {transaction_id})"
        )
        await self.db.commit()
        return row

    async def decline_withdrawal(self, admin: User, transaction_id: str, description: str = "") -> User:
        pending = await self._find_pending_withdrawal(transaction_id)
        user_email = pending.user_email
        row = await self.apply(user_email, WalletAction(
            type=WalletActionType.WITHDRAWAL_DECLINE,
            user_id=user_email,
            transaction_id=transaction_id,
            description=description,
            updated_by=admin.email,
        ), auto_commit=False)
        await self.audit_service.record(
            admin, AuditLogAction.WITHDRAWAL_DECLINED, f"Withdrawal for {user_email} (Tx: {transaction_id})"
        )
        await self.db.commit()
        return row

    async def adjust_wallet(self, admin: User, email: str, amount: int, reason: str) -> User:
        if amount == 0:
            raise WalletError("Adjustment amount must be non-zero.")
        row = await self.apply(email, WalletAction(
            type=WalletActionType.ADMIN_ADJUSTMENT,
            user_id=email,
            amount=amount,
            description=reason,
            updated_by=admin.email,
        ), auto_commit=False)
        await self.audit_service.record(
            admin, AuditLogAction.WALLET_ADJUSTED,
            f"Adjusted wallet for {email} by ${amount}. Reason: {reason}",
        )
        await self.db.commit()
        return row

    async def list_pending_withdrawals(self) -> list[PendingWithdrawal]:
        result = await self.db.execute(
            select(Transaction, User.name)
            .join(User, User.email == Transaction.user_email)
            .where(Transaction.status == TransactionStatus.PENDING.value)
            .order_by(Transaction.created_at.desc())
        )
        return [
            PendingWithdrawal(
                transaction_id=tx.transaction_id,
                user_email=tx.user_email,
                user_name=name,
                amount=abs(tx.amount),
                description=tx.description,
                timestamp=tx.created_at,
            )
            for tx, name in result.all()
        ]

    async def get_finance_summary(self) -> FinanceSummary:
        """Totals across every user for the finance dashboard."""
        total_funds = await self.db.scalar(select(func.coalesce(func.sum(User.wallet_balance), 0)))
        totals = await self.db.execute(
            select(Transaction.type, func.coalesce(func.sum(Transaction.amount), 0))
            .where(Transaction.type.in_([TransactionType.WIN.value, TransactionType.ENTRY_FEE.value]))
            .group_by(Transaction.type)
        )
        by_type = {tx_type: int(total) for tx_type, total in totals.all()}
        pending = await self.list_pending_withdrawals()

        return FinanceSummary(
            total_user_funds=int(total_funds or 0),
            total_prizes=by_type.get(TransactionType.WIN.value, 0),
            total_entry_fees=abs(by_type.get(TransactionType.ENTRY_FEE.value, 0)),
            total_pending_withdrawals=sum(item.amount for item in pending),
            pending_withdrawals=pending,
        )
