"""
Pydantic schemas for wallet balance and transaction history.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class BalanceResponse(BaseModel):
     """Response data for GET /api/v1/wallet/balance."""

     balance: Decimal
     currency: str
     user_name: str
     last_updated: datetime


class TransactionHistoryItem(BaseModel):
     """One row of the payer's history. Route fields only for transport payments."""

     transaction_id: str
     type: str
     amount: Decimal
     currency: str
     status: str
     timestamp: datetime
     reference: str
     merchant_name: Optional[str] = None
     matatu_plate: Optional[str] = None
     route: Optional[str] = None
     origin: Optional[str] = None
     destination: Optional[str] = None


class Pagination(BaseModel):
     page: int
     limit: int
     total: int
     pages: int
     has_next: bool
     has_prev: bool


class HistoryResponse(BaseModel):
     """Response data for GET /api/v1/wallet/history."""

     transactions: List[TransactionHistoryItem]
     pagination: Pagination

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "transactions": [],
                    "pagination": {
                         "page": 1,
                         "limit": 20,
                         "total": 0,
                         "pages": 0,
                         "has_next": False,
                         "has_prev": False,
                    },
               }
          }
     )
