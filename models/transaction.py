"""
Transaction model - immutable record of one payment attempt.

Exactly one row may exist per reference_code (the client's idempotency key);
the unique constraint is what makes concurrent retries of the same payment
collapse onto a single debit. Rows are never updated or deleted.
"""
import enum
import uuid

from sqlalchemy import (
     Column, String, Numeric, Float, Integer, Boolean, DateTime, ForeignKey, Enum,
     UniqueConstraint,
)
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class TransactionStatus(str, enum.Enum):
     SUCCESS = "success"
     FAILED = "failed"


class OriginSource(str, enum.Enum):
     """How the payer's origin stop was chosen."""
     GPS_AUTO = "gps_auto"
     USER_SELECTED = "user_selected"


class Transaction(Base):
     __tablename__ = "transactions"
     __table_args__ = (
          UniqueConstraint("reference_code", name="uq_transactions_reference_code"),
     )

     transaction_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

     # Foreign keys
     user_id = Column(
          String(36),
          ForeignKey("users.user_id", ondelete="RESTRICT"),
          nullable=False,
          index=True
     )
     merchant_id = Column(
          String(36),
          ForeignKey("merchants.merchant_id", ondelete="RESTRICT"),
          nullable=False,
          index=True
     )
     device_id = Column(String(36), ForeignKey("devices.device_id"), nullable=False)
     route_id = Column(String(36), ForeignKey("routes.route_id"), nullable=True)

     # Payment details
     transaction_type = Column(String(20), nullable=False, default="payment")
     amount = Column(Numeric(12, 2), nullable=False)
     currency = Column(String(3), nullable=False, default="KES")
     merchant_commission = Column(Numeric(12, 2), nullable=False)
     net_amount = Column(Numeric(12, 2), nullable=False)
     status = Column(
          Enum(TransactionStatus, name="transaction_status", create_constraint=True,
               values_callable=lambda e: [m.value for m in e]),
          nullable=False,
     )
     reference_code = Column(String(100), nullable=False)

     # Journey
     origin_stop = Column(String(50), nullable=True)
     destination_stop = Column(String(50), nullable=True)
     gps_boarding_latitude = Column(Float, nullable=True)
     gps_boarding_longitude = Column(Float, nullable=True)
     auto_detected_origin = Column(Boolean, nullable=False, default=False)
     nearest_stop_distance_meters = Column(Integer, nullable=True)

     # Balance snapshot
     user_balance_before = Column(Numeric(12, 2), nullable=False)
     user_balance_after = Column(Numeric(12, 2), nullable=False)

     created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

     # Relationships
     account = relationship("Account", back_populates="transactions")
     merchant = relationship("Merchant", lazy="joined")
     route = relationship("Route", lazy="joined")

     def __repr__(self):
          return (
               f"<Transaction(id='{self.transaction_id}', amount={self.amount}, "
               f"status='{self.status.value}', ref='{self.reference_code}')>"
          )
