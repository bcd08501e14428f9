# services/fraud_gate.py
"""
GPS fraud gate - checks a payer's claimed boarding stop against where the
vehicle (or the payer's phone) actually is.

Decision per payment attempt, nothing persisted between attempts:
- no origin claimed, or no fix to compare with   -> pass through (no_claim)
- claimed stop not among the route's stops       -> InvalidInput
- origin claimed as GPS-detected, vehicle fix stale -> GPSUnavailable
- claimed stop has no coordinates                 -> accepted (unknowable), logged
- distance <= max distance                        -> accepted
- distance >  max distance                        -> FraudAlert written, OriginMismatch

The vehicle's fix is preferred over the payer's when it is fresh; a payer can
move their own phone's reported location far more easily than the vehicle's.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import Settings
from errors import GPSUnavailable, InvalidCoordinate, InvalidInput, OriginMismatch
from models import FraudAlert, OriginSource
from services.device_directory import DeviceRecord
from services.geo import confidence_level, distance_meters, is_valid_coordinates
from services.stop_resolver import Stop, find_stop

logger = logging.getLogger(__name__)

SUSPICIOUS_ORIGIN = "suspicious_origin"
SUSPICIOUS_ORIGIN_RISK_SCORE = 75
SUSPICIOUS_ORIGIN_LEVEL = "high"


class FraudState(str, enum.Enum):
     NO_CLAIM = "no_claim"
     ACCEPTED = "accepted"
     UNKNOWABLE = "unknowable"


@dataclass(frozen=True)
class OriginClaim:
     route_id: Optional[str]
     origin_stop_id: Optional[str]
     source: Optional[OriginSource] = None
     payer_latitude: Optional[float] = None
     payer_longitude: Optional[float] = None

     @property
     def is_claimed(self) -> bool:
          return bool(self.origin_stop_id)

     @property
     def has_payer_fix(self) -> bool:
          return self.payer_latitude is not None and self.payer_longitude is not None


@dataclass(frozen=True)
class FraudDecision:
     state: FraudState
     fix_source: Optional[str] = None  # "vehicle" or "payer"
     fix_latitude: Optional[float] = None
     fix_longitude: Optional[float] = None
     nearest_stop_distance_meters: Optional[int] = None
     confidence: Optional[str] = None


class FraudGate:
     """
     Transient decision function over one payment attempt.

     Alerts are written through their own session so they are committed even
     though the payment that triggered them is aborted.
     """

     def __init__(self, settings: Settings, session_factory: Callable[[], Session]):
          self.settings = settings
          self.session_factory = session_factory

     def evaluate(
          self,
          user_id: str,
          claim: Optional[OriginClaim],
          device: DeviceRecord,
          stops: Sequence[Stop],
          now: datetime,
     ) -> FraudDecision:
          if claim is None or not claim.is_claimed:
               return FraudDecision(state=FraudState.NO_CLAIM)

          if claim.has_payer_fix and not is_valid_coordinates(claim.payer_latitude, claim.payer_longitude):
               raise InvalidCoordinate()

          stop = find_stop(stops, claim.origin_stop_id)
          if stop is None:
               raise InvalidInput(f"Origin stop {claim.origin_stop_id} is not on this route")

          vehicle_fresh = device.gps_is_fresh(now, self.settings.gps_max_freshness_seconds)
          if claim.source == OriginSource.GPS_AUTO and not vehicle_fresh:
               raise GPSUnavailable()

          if vehicle_fresh:
               fix_source = "vehicle"
               fix_lat, fix_lon = device.last_gps.latitude, device.last_gps.longitude
          elif claim.has_payer_fix:
               fix_source = "payer"
               fix_lat, fix_lon = claim.payer_latitude, claim.payer_longitude
          else:
               return FraudDecision(state=FraudState.NO_CLAIM)

          if not stop.has_coordinates:
               logger.warning(
                    "Origin check skipped: stop %s on route %s has no coordinates",
                    stop.id, claim.route_id,
               )
               return FraudDecision(
                    state=FraudState.UNKNOWABLE,
                    fix_source=fix_source,
                    fix_latitude=fix_lat,
                    fix_longitude=fix_lon,
               )

          distance = distance_meters(fix_lat, fix_lon, stop.latitude, stop.longitude)

          if distance > self.settings.gps_max_distance_meters:
               self._record_alert(user_id, claim, fix_source, fix_lat, fix_lon, distance)
               raise OriginMismatch()

          return FraudDecision(
               state=FraudState.ACCEPTED,
               fix_source=fix_source,
               fix_latitude=fix_lat,
               fix_longitude=fix_lon,
               nearest_stop_distance_meters=distance,
               confidence=confidence_level(distance, self.settings.gps_confidence_threshold_meters),
          )

     def _record_alert(
          self,
          user_id: str,
          claim: OriginClaim,
          fix_source: str,
          fix_lat: float,
          fix_lon: float,
          distance: int,
     ) -> None:
          """Append a suspicious-origin alert. A failed write is logged, never raised."""
          alert = FraudAlert(
               user_id=user_id,
               transaction_id=None,
               alert_type=SUSPICIOUS_ORIGIN,
               risk_score=SUSPICIOUS_ORIGIN_RISK_SCORE,
               alert_level=SUSPICIOUS_ORIGIN_LEVEL,
               details={
                    "route_id": claim.route_id,
                    "selected_origin": claim.origin_stop_id,
                    "origin_source": claim.source.value if claim.source else None,
                    "fix_source": fix_source,
                    "gps_latitude": fix_lat,
                    "gps_longitude": fix_lon,
                    "distance_meters": distance,
                    "max_distance_meters": self.settings.gps_max_distance_meters,
               },
          )
          try:
               with self.session_factory() as alert_db:
                    alert_db.add(alert)
                    alert_db.commit()
          except SQLAlchemyError:
               logger.exception(
                    "Failed to record %s fraud alert for user %s", SUSPICIOUS_ORIGIN, user_id
               )
               return

          logger.info(
               "Origin mismatch for user %s: stop %s is %dm from %s fix (max %dm)",
               user_id, claim.origin_stop_id, distance, fix_source,
               self.settings.gps_max_distance_meters,
          )
