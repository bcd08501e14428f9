import enum
import uuid

from sqlalchemy import Column, String, Float, Boolean, DateTime, ForeignKey, Enum, func
from sqlalchemy.orm import relationship
from .base import Base


class DeviceStatus(str, enum.Enum):
     ACTIVE = "active"
     REVOKED = "revoked"


class MerchantDevice(Base):
     """
     MerchantDevice model - the QR-bearing device installed in a vehicle or shop.

     device_token is the opaque capability printed in the QR code.
     The last_gps_* columns are written by the vehicle's location reporter and
     only read here.
     """
     __tablename__ = "devices"

     device_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
     device_token = Column(String(255), unique=True, nullable=False, index=True)
     device_name = Column(String(100), nullable=True)

     # Foreign keys
     merchant_id = Column(
          String(36),
          ForeignKey("merchants.merchant_id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     route_id = Column(
          String(36),
          ForeignKey("routes.route_id", ondelete="SET NULL"),
          nullable=True
     )

     status = Column(
          Enum(DeviceStatus, name="device_status", create_constraint=True,
               values_callable=lambda e: [m.value for m in e]),
          default=DeviceStatus.ACTIVE,
          nullable=False,
     )

     # Last known vehicle location
     last_gps_latitude = Column(Float, nullable=True)
     last_gps_longitude = Column(Float, nullable=True)
     last_gps_updated_at = Column(DateTime, nullable=True)
     gps_enabled = Column(Boolean, default=False, nullable=False)

     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     # Relationships
     merchant = relationship("Merchant", back_populates="devices", lazy="joined")
     route = relationship("Route", lazy="joined")

     def __repr__(self):
          return f"<MerchantDevice(device_id='{self.device_id}', status='{self.status.value}')>"
