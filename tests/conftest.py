# tests/conftest.py

import os
from datetime import timedelta

# Must be set before config / database are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

import math
import uuid
from dataclasses import replace
from decimal import Decimal

import pytest
from jose import jwt

from config import get_settings
from database import SessionLocal, engine
from models import (
     Account,
     AccountStatus,
     Base,
     FareRule,
     Merchant,
     MerchantDevice,
     MerchantType,
     Route,
)
from models.base import utcnow
from services.auth import hash_pin
from services.geo import EARTH_RADIUS_METERS

PIN = "1234"
PIN_HASH = hash_pin(PIN)  # bcrypt is slow; hash once per session

NAIROBI_STOPS = [
     {"id": "cbd", "name": "CBD", "latitude": -1.2864, "longitude": 36.8172},
     {"id": "ngara", "name": "Ngara", "latitude": -1.2741, "longitude": 36.8250},
     {"id": "pangani", "name": "Pangani", "latitude": -1.2680, "longitude": 36.8370},
     {"id": "roysambu", "name": "Roysambu"},
     {"id": "githurai", "name": "Githurai", "latitude": -1.2000, "longitude": 36.9100},
]


def meters_north(latitude: float, meters: float) -> float:
     """Latitude `meters` due north of `latitude` on the haversine sphere."""
     return latitude + meters / (EARTH_RADIUS_METERS * math.pi / 180)


@pytest.fixture
def settings():
     return get_settings()


@pytest.fixture
def settings_with():
     """Build settings with overrides, e.g. settings_with(gps_max_distance_meters=300)."""
     def _build(**overrides):
          return replace(get_settings(), **overrides)
     return _build


@pytest.fixture
def db():
     """Fresh in-memory schema per test."""
     Base.metadata.create_all(bind=engine)
     session = SessionLocal()
     try:
          yield session
     finally:
          session.close()
          Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_account(db):
     def _make(balance="1000.00", status=AccountStatus.ACTIVE, pin_hash=PIN_HASH, phone=None):
          account = Account(
               user_id=str(uuid.uuid4()),
               phone_number=phone or f"+2547{uuid.uuid4().int % 10**8:08d}",
               first_name="Wanjiku",
               last_name="Kamau",
               balance=Decimal(balance),
               currency="KES",
               pin_hash=pin_hash,
               status=status,
          )
          db.add(account)
          db.commit()
          return account
     return _make


@pytest.fixture
def route(db):
     r = Route(route_number="44", route_name="CBD - Githurai", stops=NAIROBI_STOPS)
     db.add(r)
     db.commit()
     return r


@pytest.fixture
def make_merchant(db):
     def _make(merchant_type=MerchantType.TRANSPORT, commission_rate="0.05", **fields):
          merchant = Merchant(
               merchant_type=merchant_type,
               business_name=fields.pop("business_name", "Super Metro KCA 123X"),
               matatu_plate=fields.pop("matatu_plate", "KCA 123X" if merchant_type == MerchantType.TRANSPORT else None),
               sacco_name=fields.pop("sacco_name", "Super Metro Sacco" if merchant_type == MerchantType.TRANSPORT else None),
               commission_rate=Decimal(commission_rate),
               **fields,
          )
          db.add(merchant)
          db.commit()
          return merchant
     return _make


@pytest.fixture
def make_device(db):
     def _make(merchant, route=None, gps=None, gps_age=timedelta(minutes=1), gps_enabled=True, **fields):
          device = MerchantDevice(
               device_token=fields.pop("device_token", f"qr-{uuid.uuid4().hex}"),
               merchant_id=merchant.merchant_id,
               route_id=route.route_id if route else None,
               gps_enabled=gps_enabled,
               **fields,
          )
          if gps is not None:
               device.last_gps_latitude, device.last_gps_longitude = gps
               device.last_gps_updated_at = utcnow() - gps_age if gps_age is not None else None
          db.add(device)
          db.commit()
          return device
     return _make


@pytest.fixture
def make_fare(db):
     def _make(route, origin, destination, amount, **fields):
          rule = FareRule(
               route_id=route.route_id,
               origin_stop_id=origin,
               destination_stop_id=destination,
               fare_amount=Decimal(amount),
               effective_from=fields.pop("effective_from", utcnow() - timedelta(days=30)),
               **fields,
          )
          db.add(rule)
          db.commit()
          return rule
     return _make


@pytest.fixture
def token_for():
     def _token(user_id, expires_in=timedelta(hours=2), secret="test-secret"):
          claims = {"user_id": user_id, "phone_number": "+254712345678", "exp": utcnow() + expires_in}
          return jwt.encode(claims, secret, algorithm="HS256")
     return _token
