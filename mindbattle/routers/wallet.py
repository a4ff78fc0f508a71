"""Wallet endpoints for the signed-in user."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.database import get_db
from mindbattle.dependencies import get_current_user
from mindbattle.models.user import User
from mindbattle.schemas.wallet import DepositRequest, WalletResponse, WithdrawalRequest
from mindbattle.services import WalletError, WalletService
from mindbattle.services.wallet_service import available_balance
from mindbattle.utils.exceptions import InsufficientBalanceError

router = APIRouter(prefix="/api/wallet", tags=["wallet"])


async def _wallet_response(service: WalletService, email: str) -> WalletResponse:
    wallet = await service.get_wallet(email)
    return WalletResponse(
        email=wallet.email,
        wallet_balance=wallet.wallet_balance,
        available_balance=available_balance(wallet),
        transactions=wallet.transactions,
    )


@router.get("", response_model=WalletResponse)
async def get_wallet(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> WalletResponse:
    return await _wallet_response(WalletService(db), user.email)


@router.post("/deposit", response_model=WalletResponse)
async def deposit(
    request: DepositRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> WalletResponse:
    """Credit funds returned by the payment gateway."""
    service = WalletService(db)
    try:
        await service.deposit(user.email, request.amount)
    except WalletError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return await _wallet_response(service, user.email)


@router.post("/withdraw", response_model=WalletResponse)
async def request_withdrawal(
    request: WithdrawalRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> WalletResponse:
    """Queue a withdrawal for admin review; the balance changes only on approval."""
    service = WalletService(db)
    try:
        await service.request_withdrawal(user.email, request.amount)
    except (WalletError, InsufficientBalanceError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return await _wallet_response(service, user.email)
