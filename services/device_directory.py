# services/device_directory.py
"""
Device directory - resolves a scanned QR token (or a device id) to the
merchant, route and last known vehicle location behind it.

Read-only. GPS freshness is deliberately not judged here: how stale a fix may
be depends on whether the caller is detecting an origin or validating a claim.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from errors import InvalidDevice, MerchantInactive
from models import MerchantDevice, Merchant, Route
from models.device import DeviceStatus
from models.merchant import MerchantStatus, MerchantType


@dataclass(frozen=True)
class GpsFix:
     latitude: float
     longitude: float
     updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class DeviceRecord:
     device_id: str
     merchant_id: str
     merchant_type: MerchantType
     business_name: str
     matatu_plate: Optional[str]
     sacco_name: Optional[str]
     commission_rate: Decimal
     route_id: Optional[str]
     gps_enabled: bool
     last_gps: Optional[GpsFix]

     @property
     def has_gps_fix(self) -> bool:
          return self.gps_enabled and self.last_gps is not None

     def gps_age_seconds(self, now: datetime) -> Optional[float]:
          """Seconds since the vehicle last reported, or None without a timestamped fix."""
          if self.last_gps is None or self.last_gps.updated_at is None:
               return None
          return (now - self.last_gps.updated_at).total_seconds()

     def gps_is_fresh(self, now: datetime, max_age_seconds: int) -> bool:
          age = self.gps_age_seconds(now)
          return self.has_gps_fix and age is not None and age <= max_age_seconds


class DeviceDirectory:
     """Lookup of active merchant devices."""

     def __init__(self, db: Session):
          self.db = db

     def resolve(self, device_token: str) -> DeviceRecord:
          """
          Resolve a QR device token.

          Raises:
               InvalidDevice: No active device carries the token.
               MerchantInactive: The owning merchant is not active.
          """
          device = (
               self.db.query(MerchantDevice)
               .filter(MerchantDevice.device_token == device_token)
               .first()
          )
          return self._to_record(device)

     def resolve_by_id(self, device_id: str) -> DeviceRecord:
          """Same contract as resolve(), keyed by device id."""
          device = self.db.get(MerchantDevice, device_id)
          return self._to_record(device)

     def load_route(self, route_id: str) -> Optional[Route]:
          return self.db.get(Route, route_id)

     @staticmethod
     def _to_record(device: Optional[MerchantDevice]) -> DeviceRecord:
          if device is None:
               raise InvalidDevice()
          if device.status != DeviceStatus.ACTIVE:
               raise InvalidDevice("QR code has been revoked or expired")

          merchant: Merchant = device.merchant
          if merchant is None or merchant.status != MerchantStatus.ACTIVE:
               raise MerchantInactive()

          last_gps = None
          if device.last_gps_latitude is not None and device.last_gps_longitude is not None:
               last_gps = GpsFix(
                    latitude=device.last_gps_latitude,
                    longitude=device.last_gps_longitude,
                    updated_at=device.last_gps_updated_at,
               )

          return DeviceRecord(
               device_id=device.device_id,
               merchant_id=merchant.merchant_id,
               merchant_type=merchant.merchant_type,
               business_name=merchant.business_name,
               matatu_plate=merchant.matatu_plate,
               sacco_name=merchant.sacco_name,
               commission_rate=Decimal(str(merchant.commission_rate)),
               route_id=device.route_id,
               gps_enabled=bool(device.gps_enabled),
               last_gps=last_gps,
          )
