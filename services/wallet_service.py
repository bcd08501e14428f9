# services/wallet_service.py
"""
Wallet Service - read-only balance and history queries for the payer.
"""
import math

from sqlalchemy.orm import Session

from errors import UserNotFound
from models import Account, Transaction
from models.base import utcnow
from schemas.wallet import BalanceResponse, HistoryResponse, Pagination, TransactionHistoryItem


class WalletService:
     """Service class for wallet queries."""

     @staticmethod
     def get_balance(db: Session, user_id: str) -> BalanceResponse:
          """
          Current balance of the user's wallet.

          Raises:
               UserNotFound: If the account doesn't exist
          """
          account = db.get(Account, user_id)
          if account is None:
               raise UserNotFound()

          return BalanceResponse(
               balance=account.balance,
               currency=account.currency or "KES",
               user_name=account.full_name,
               last_updated=utcnow(),
          )

     @staticmethod
     def get_history(db: Session, user_id: str, page: int = 1, limit: int = 20) -> HistoryResponse:
          """
          Page through the user's transactions, newest first.

          Args:
               db: SQLAlchemy database session
               user_id: Payer whose history is listed
               page: 1-based page number
               limit: Page size (1-100, validated by the router)
          """
          query = db.query(Transaction).filter(Transaction.user_id == user_id)
          total = query.count()

          rows = (
               query.order_by(Transaction.created_at.desc())
               .offset((page - 1) * limit)
               .limit(limit)
               .all()
          )

          items = []
          for txn in rows:
               item = TransactionHistoryItem(
                    transaction_id=txn.transaction_id,
                    type=txn.transaction_type,
                    amount=txn.amount,
                    currency=txn.currency,
                    status=txn.status.value,
                    timestamp=txn.created_at,
                    reference=txn.reference_code,
               )
               if txn.merchant is not None:
                    item.merchant_name = txn.merchant.business_name
                    item.matatu_plate = txn.merchant.matatu_plate
               if txn.route is not None:
                    item.route = f"{txn.route.route_number} - {txn.route.route_name}"
                    item.origin = txn.origin_stop
                    item.destination = txn.destination_stop
               items.append(item)

          pages = math.ceil(total / limit) if total else 0
          return HistoryResponse(
               transactions=items,
               pagination=Pagination(
                    page=page,
                    limit=limit,
                    total=total,
                    pages=pages,
                    has_next=page < pages,
                    has_prev=page > 1,
               ),
          )
