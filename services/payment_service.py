# services/payment_service.py
"""
Payment Service - the QR scan and payment use cases.

process_payment: device -> route stops -> fraud gate -> ledger -> result.
scan: device -> route -> GPS origin detection -> priced destinations.

Any component failure propagates unchanged; this layer only sequences calls
and shapes the response.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from config import Settings
from errors import GPSUnavailable, InvalidInput
from models import Merchant
from models.base import utcnow
from models.merchant import MerchantType
from schemas.payment import (
     DestinationOption,
     FraudCheck,
     GpsDetected,
     GpsPoint,
     GpsUnavailable,
     PaymentRequest,
     PaymentResult,
     RouteInfo,
     ScanResult,
     StopInfo,
)
from services.device_directory import DeviceDirectory
from services.fraud_gate import FraudDecision, FraudGate, OriginClaim
from services.geo import confidence_level
from services.ledger_service import LedgerTransactor, OriginMeta, TransactionResult
from services.notifications import DatabaseNotificationSink
from services.stop_resolver import (
     active_fares,
     attach_fares,
     downstream_destinations,
     nearest_stop,
     parse_stops,
)

logger = logging.getLogger(__name__)


class PaymentService:
     """Composes the device directory, fraud gate and ledger for one request."""

     def __init__(
          self,
          db: Session,
          settings: Settings,
          session_factory: Callable[[], Session],
          notifier: Optional[DatabaseNotificationSink] = None,
          clock: Callable[[], datetime] = utcnow,
     ):
          self.db = db
          self.settings = settings
          self.clock = clock
          self.directory = DeviceDirectory(db)
          self.fraud_gate = FraudGate(settings, session_factory)
          self.ledger = LedgerTransactor(db, settings, notifier=notifier)

     # ------------------------------------------------------------------
     # POST /payments/process
     # ------------------------------------------------------------------

     def process_payment(self, user_id: str, request: PaymentRequest) -> PaymentResult:
          # A retry of a committed payment is answered before any re-validation
          existing = self.ledger.find_by_reference(request.idempotency_key)
          if existing is not None:
               result = self.ledger.charge(
                    user_id, existing.merchant_id, existing.device_id,
                    request.amount, request.pin, request.idempotency_key,
               )
               merchant = self.db.get(Merchant, result.merchant_id)
               return self._payment_result(result, merchant.business_name, merchant.matatu_plate, None)

          now = self.clock()
          device = self.directory.resolve_by_id(request.device_id)

          # The vehicle's own route is authoritative; the client may only echo it
          route_id = device.route_id
          if request.route_id and request.route_id != route_id:
               raise InvalidInput("Route does not match this vehicle")
          if request.origin_stop and route_id is None:
               raise InvalidInput("Origin stop given for a merchant without a route")

          stops = []
          if request.origin_stop:
               route = self.directory.load_route(route_id)
               if route is None:
                    raise InvalidInput(f"Unknown route {route_id}")
               stops = parse_stops(route.stops)

          claim = OriginClaim(
               route_id=route_id,
               origin_stop_id=request.origin_stop,
               source=request.origin_source,
               payer_latitude=request.gps_latitude,
               payer_longitude=request.gps_longitude,
          )
          decision = self.fraud_gate.evaluate(user_id, claim, device, stops, now)

          origin = OriginMeta(
               route_id=route_id,
               origin_stop=request.origin_stop,
               destination_stop=request.destination_stop,
               source=request.origin_source if request.origin_stop else None,
               gps_latitude=request.gps_latitude,
               gps_longitude=request.gps_longitude,
               nearest_stop_distance_meters=decision.nearest_stop_distance_meters,
          )
          result = self.ledger.charge(
               user_id,
               device.merchant_id,
               device.device_id,
               request.amount,
               request.pin,
               request.idempotency_key,
               origin,
          )
          return self._payment_result(result, device.business_name, device.matatu_plate, decision)

     @staticmethod
     def _payment_result(
          result: TransactionResult,
          merchant_name: str,
          merchant_plate: Optional[str],
          decision: Optional[FraudDecision],
     ) -> PaymentResult:
          fraud_check = None
          if decision is not None and not result.replayed:
               fraud_check = FraudCheck(
                    state=decision.state.value,
                    fix_source=decision.fix_source,
                    distance_meters=decision.nearest_stop_distance_meters,
                    confidence=decision.confidence,
               )
          return PaymentResult(
               transaction_id=result.transaction_id,
               status=result.status,
               amount=result.amount,
               currency=result.currency,
               merchant_name=merchant_name,
               merchant_plate=merchant_plate,
               origin=result.origin_stop,
               destination=result.destination_stop,
               balance_before=result.balance_before,
               balance_after=result.balance_after,
               timestamp=result.created_at,
               reference=result.reference_code,
               replayed=result.replayed,
               fraud_check=fraud_check,
          )

     # ------------------------------------------------------------------
     # POST /qr/scan
     # ------------------------------------------------------------------

     def scan(self, device_token: str) -> ScanResult:
          """
          Describe the merchant behind a QR code.

          Transport merchants with a route get GPS origin detection from the
          vehicle's last fix plus the stops reachable from it, priced. Without a
          vehicle fix the full stop list is returned for manual selection.

          Raises:
               InvalidDevice, MerchantInactive, GPSUnavailable (vehicle fix is stale)
          """
          now = self.clock()
          device = self.directory.resolve(device_token)

          result = ScanResult(
               device_id=device.device_id,
               merchant_id=device.merchant_id,
               merchant_type=device.merchant_type.value,
               business_name=device.business_name,
               matatu_plate=device.matatu_plate,
          )

          if device.merchant_type == MerchantType.SHOP:
               result.requires_amount_input = True
               result.commission_rate = device.commission_rate
               return result

          route = self.directory.load_route(device.route_id) if device.route_id else None
          if route is None:
               return result

          stops = parse_stops(route.stops)
          result.sacco_name = device.sacco_name
          result.route = RouteInfo(
               route_id=route.route_id,
               route_number=route.route_number,
               route_name=route.route_name,
          )

          if not device.has_gps_fix:
               result.gps_detection = GpsUnavailable(all_stops=[
                    StopInfo(id=s.id, name=s.name, latitude=s.latitude, longitude=s.longitude)
                    for s in stops
               ])
               return result

          if not device.gps_is_fresh(now, self.settings.gps_max_freshness_seconds):
               logger.info(
                    "Stale GPS for device %s (age %ss)", device.device_id, device.gps_age_seconds(now)
               )
               raise GPSUnavailable()

          fix = device.last_gps
          nearest = nearest_stop(fix.latitude, fix.longitude, stops)
          if nearest is None:
               return result

          result.gps_detection = GpsDetected(
               detected_origin=nearest.stop.id,
               detected_origin_name=nearest.stop.name,
               confidence=confidence_level(
                    nearest.distance_meters, self.settings.gps_confidence_threshold_meters
               ),
               distance_meters=nearest.distance_meters,
               matatu_gps=GpsPoint(latitude=fix.latitude, longitude=fix.longitude),
          )

          destinations = downstream_destinations(stops, nearest.stop.id)
          if destinations:
               fares = active_fares(self.db, route.route_id, nearest.stop.id, now)
               result.available_destinations = self._destination_options(attach_fares(destinations, fares))
          return result

     @staticmethod
     def _destination_options(destinations) -> List[DestinationOption]:
          return [DestinationOption(id=d.id, name=d.name, fare=d.fare) for d in destinations]
