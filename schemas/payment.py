"""
Pydantic schemas for QR scan and payment API.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models import OriginSource


class QRScanRequest(BaseModel):
     """Request body for POST /api/v1/qr/scan."""

     device_token: str = Field(..., min_length=1, max_length=255, description="Token encoded in the QR code")
     user_gps_latitude: Optional[float] = Field(None, ge=-90, le=90)
     user_gps_longitude: Optional[float] = Field(None, ge=-180, le=180)


class RouteInfo(BaseModel):
     route_id: str
     route_number: str
     route_name: str


class StopInfo(BaseModel):
     id: str
     name: str
     latitude: Optional[float] = None
     longitude: Optional[float] = None


class DestinationOption(BaseModel):
     id: str
     name: str
     fare: Optional[Decimal] = Field(None, description="Active fare from the detected origin; null if unpriced")


class GpsPoint(BaseModel):
     latitude: float
     longitude: float


class GpsDetected(BaseModel):
     """Origin detected from the vehicle's GPS."""
     status: Literal["detected"] = "detected"
     detected_origin: str
     detected_origin_name: str
     confidence: Literal["high", "medium", "low"]
     distance_meters: int
     matatu_gps: GpsPoint


class GpsUnavailable(BaseModel):
     """No usable vehicle GPS; the payer picks the boarding stop."""
     status: Literal["unavailable"] = "unavailable"
     message: str = "GPS unavailable. Please select boarding point manually."
     all_stops: List[StopInfo] = Field(default_factory=list)


class ScanResult(BaseModel):
     """Merchant details behind a scanned QR code."""

     device_id: str
     merchant_id: str
     merchant_type: Literal["transport", "shop"]
     business_name: str
     matatu_plate: Optional[str] = None

     # transport merchants
     sacco_name: Optional[str] = None
     route: Optional[RouteInfo] = None
     gps_detection: Optional[Union[GpsDetected, GpsUnavailable]] = None
     available_destinations: Optional[List[DestinationOption]] = None

     # shop merchants
     requires_amount_input: bool = False
     commission_rate: Optional[Decimal] = None


class PaymentRequest(BaseModel):
     """Request body for POST /api/v1/payments/process."""

     device_id: str = Field(..., min_length=1, max_length=36)
     amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Amount in the wallet currency")
     pin: str = Field(..., pattern=r"^\d{4,6}$", description="4-6 digit wallet PIN")
     idempotency_key: str = Field(
          ...,
          min_length=1,
          max_length=100,
          description="Client-generated once per payment intent and reused unchanged on retry",
     )
     route_id: Optional[str] = Field(
          None, max_length=36, description="Must match the route of the scanned vehicle when sent"
     )
     origin_stop: Optional[str] = Field(None, max_length=50)
     destination_stop: Optional[str] = Field(None, max_length=50)
     origin_source: Optional[OriginSource] = Field(
          None, description="How origin_stop was chosen; required when origin_stop is sent"
     )
     gps_latitude: Optional[float] = Field(None, ge=-90, le=90)
     gps_longitude: Optional[float] = Field(None, ge=-180, le=180)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "device_id": "9b2f6d0e-5c1a-4e0b-8d1f-3a7c2e9b4f10",
                    "amount": 50.00,
                    "pin": "1234",
                    "idempotency_key": "pay-7f3e2a10",
                    "route_id": "2d8c5b7a-1e4f-4c3a-9b6d-0f1e2a3b4c5d",
                    "origin_stop": "ngara",
                    "destination_stop": "githurai",
                    "origin_source": "gps_auto",
                    "gps_latitude": -1.2741,
                    "gps_longitude": 36.8250,
               }
          }
     )

     @model_validator(mode="after")
     def _check_origin(self):
          if self.origin_stop and self.origin_source is None:
               raise ValueError("origin_source is required when origin_stop is given")
          if (self.gps_latitude is None) != (self.gps_longitude is None):
               raise ValueError("gps_latitude and gps_longitude must be sent together")
          return self


class FraudCheck(BaseModel):
     """Outcome of the origin check for an authorized payment."""
     state: Literal["no_claim", "accepted", "unknowable"]
     fix_source: Optional[Literal["vehicle", "payer"]] = None
     distance_meters: Optional[int] = None
     confidence: Optional[Literal["high", "medium", "low"]] = None


class PaymentResult(BaseModel):
     """Response data for POST /api/v1/payments/process."""

     transaction_id: str
     status: str
     amount: Decimal
     currency: str
     merchant_name: str
     merchant_plate: Optional[str] = None
     origin: Optional[str] = None
     destination: Optional[str] = None
     balance_before: Decimal
     balance_after: Decimal
     timestamp: datetime
     reference: str
     replayed: bool = False
     fraud_check: Optional[FraudCheck] = None
