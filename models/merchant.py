import enum
import uuid

from sqlalchemy import Column, String, Numeric, DateTime, Enum, CheckConstraint, func
from sqlalchemy.orm import relationship
from .base import Base


class MerchantType(str, enum.Enum):
     TRANSPORT = "transport"
     SHOP = "shop"


class MerchantStatus(str, enum.Enum):
     ACTIVE = "active"
     SUSPENDED = "suspended"


class Merchant(Base):
     """
     Merchant model - a matatu (transport) operator or a shop.

     commission_rate is the platform's share of each payment, in [0, 1).
     """
     __tablename__ = "merchants"
     __table_args__ = (
          CheckConstraint(
               "commission_rate >= 0 AND commission_rate < 1",
               name="ck_merchants_commission_rate_range",
          ),
     )

     merchant_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
     merchant_type = Column(
          Enum(MerchantType, name="merchant_type", create_constraint=True,
               values_callable=lambda e: [m.value for m in e]),
          nullable=False,
     )
     business_name = Column(String(255), nullable=False)
     matatu_plate = Column(String(20), nullable=True)
     sacco_name = Column(String(255), nullable=True)
     commission_rate = Column(Numeric(5, 4), nullable=False, default=0)
     status = Column(
          Enum(MerchantStatus, name="merchant_status", create_constraint=True,
               values_callable=lambda e: [m.value for m in e]),
          default=MerchantStatus.ACTIVE,
          nullable=False,
     )

     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     # Relationships
     devices = relationship("MerchantDevice", back_populates="merchant")

     def __repr__(self):
          return f"<Merchant(merchant_id='{self.merchant_id}', name='{self.business_name}')>"

     @property
     def is_transport(self) -> bool:
          return self.merchant_type == MerchantType.TRANSPORT
