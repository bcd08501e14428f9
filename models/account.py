import enum
import uuid

from sqlalchemy import Column, String, Numeric, DateTime, Enum, CheckConstraint, func
from sqlalchemy.orm import relationship
from .base import Base


class AccountStatus(str, enum.Enum):
     """Lifecycle of a payer account. Accounts are never deleted."""
     ACTIVE = "active"
     SUSPENDED = "suspended"
     CLOSED = "closed"


class Account(Base):
     """
     Account model - a payer's prepaid wallet.
     Maps to the existing 'users' table in the database.

     The balance is mutated only by the ledger service, through a
     compare-and-set update, and never goes negative.
     """
     __tablename__ = "users"
     __table_args__ = (
          CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
     )

     user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
     phone_number = Column(String(20), unique=True, nullable=False, index=True)
     first_name = Column(String(100), nullable=False)
     last_name = Column(String(100), nullable=False)

     # Wallet
     balance = Column(Numeric(12, 2), nullable=False, default=0)
     currency = Column(String(3), nullable=False, default="KES")
     pin_hash = Column(String(255), nullable=False)
     status = Column(
          Enum(AccountStatus, name="account_status", create_constraint=True,
               values_callable=lambda e: [m.value for m in e]),
          default=AccountStatus.ACTIVE,
          nullable=False,
     )

     # Timestamps
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     # Relationships
     transactions = relationship("Transaction", back_populates="account", lazy="select")

     def __repr__(self):
          return f"<Account(user_id='{self.user_id}', balance={self.balance}, status='{self.status.value}')>"

     @property
     def full_name(self) -> str:
          return f"{self.first_name} {self.last_name}"

     @property
     def is_active(self) -> bool:
          return self.status == AccountStatus.ACTIVE
