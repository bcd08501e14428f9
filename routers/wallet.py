# routers/wallet.py
"""
Wallet API routes: balance and transaction history of the signed-in payer.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_session
from dependencies import verify_token
from schemas.envelope import Envelope
from schemas.wallet import BalanceResponse, HistoryResponse
from services.wallet_service import WalletService

router = APIRouter(prefix="/api/v1/wallet", tags=["wallet"])


@router.get("/balance", response_model=Envelope[BalanceResponse], summary="Get wallet balance")
def get_balance(
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token),
):
     return Envelope(data=WalletService.get_balance(db, token["user_id"]))


@router.get("/history", response_model=Envelope[HistoryResponse], summary="Get transaction history")
def get_history(
     page: int = Query(1, ge=1, description="Page number"),
     limit: int = Query(20, ge=1, le=100, description="Items per page"),
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token),
):
     return Envelope(data=WalletService.get_history(db, token["user_id"], page=page, limit=limit))
