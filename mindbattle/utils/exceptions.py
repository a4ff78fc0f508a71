"""Shared exception types."""


class InsufficientBalanceError(RuntimeError):
    """Raised when a wallet does not hold enough funds for a debit."""
