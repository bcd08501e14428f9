from .geo import distance_meters, confidence_level, is_valid_coordinates
from .stop_resolver import (
     Stop,
     NearestStop,
     Destination,
     parse_stops,
     nearest_stop,
     downstream_destinations,
     attach_fares,
     active_fares,
)
from .device_directory import DeviceDirectory, DeviceRecord, GpsFix
from .fraud_gate import FraudGate, FraudDecision, FraudState, OriginClaim
from .ledger_service import LedgerTransactor, OriginMeta, TransactionResult, split_commission
from .notifications import DatabaseNotificationSink, OutboundNotification

__all__ = [
     "distance_meters",
     "confidence_level",
     "is_valid_coordinates",
     "Stop",
     "NearestStop",
     "Destination",
     "parse_stops",
     "nearest_stop",
     "downstream_destinations",
     "attach_fares",
     "active_fares",
     "DeviceDirectory",
     "DeviceRecord",
     "GpsFix",
     "FraudGate",
     "FraudDecision",
     "FraudState",
     "OriginClaim",
     "LedgerTransactor",
     "OriginMeta",
     "TransactionResult",
     "split_commission",
     "DatabaseNotificationSink",
     "OutboundNotification",
]
