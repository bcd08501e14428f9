# services/stop_resolver.py
"""
Route stop resolution.

Given a route's ordered stop list and a GPS fix: find the nearest stop, list
the stops reachable after a given origin, and price them from the route's
active fare rules.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models import FareRule
from services.geo import distance_meters


@dataclass(frozen=True)
class Stop:
     id: str
     name: str
     latitude: Optional[float] = None
     longitude: Optional[float] = None

     @property
     def has_coordinates(self) -> bool:
          return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class NearestStop:
     stop: Stop
     distance_meters: int


@dataclass(frozen=True)
class Destination:
     id: str
     name: str
     fare: Optional[Decimal] = None


def parse_stops(raw_stops: Optional[Iterable[dict]]) -> List[Stop]:
     """
     Convert a route's JSON stop list into Stop values, preserving order.

     Coordinates are optional; a stop with only one of latitude/longitude is
     treated as having none.
     """
     stops = []
     for raw in raw_stops or []:
          latitude = raw.get("latitude")
          longitude = raw.get("longitude")
          if latitude is None or longitude is None:
               latitude = longitude = None
          stops.append(Stop(
               id=str(raw["id"]),
               name=raw.get("name", str(raw["id"])),
               latitude=float(latitude) if latitude is not None else None,
               longitude=float(longitude) if longitude is not None else None,
          ))
     return stops


def find_stop(stops: Sequence[Stop], stop_id: str) -> Optional[Stop]:
     return next((s for s in stops if s.id == stop_id), None)


def nearest_stop(latitude: float, longitude: float, stops: Sequence[Stop]) -> Optional[NearestStop]:
     """
     Stop closest to the fix. Stops without coordinates are skipped; ties keep
     the earliest stop in route order. None when no stop has coordinates.
     """
     nearest = None
     for stop in stops:
          if not stop.has_coordinates:
               continue
          distance = distance_meters(latitude, longitude, stop.latitude, stop.longitude)
          if nearest is None or distance < nearest.distance_meters:
               nearest = NearestStop(stop=stop, distance_meters=distance)
     return nearest


def downstream_destinations(stops: Sequence[Stop], origin_stop_id: str) -> List[Stop]:
     """Stops strictly after the origin. Unknown origin -> no destinations."""
     for index, stop in enumerate(stops):
          if stop.id == origin_stop_id:
               return list(stops[index + 1:])
     return []


def attach_fares(destinations: Sequence[Stop], fare_rules: Iterable[FareRule]) -> List[Destination]:
     """
     Price each destination from the origin's active fare rules.

     Destinations without a rule carry fare=None; the client must then let the
     payer pick a priced leg or enter the amount.
     """
     fares: Dict[str, Decimal] = {}
     for rule in fare_rules:
          fares.setdefault(rule.destination_stop_id, Decimal(str(rule.fare_amount)))
     return [
          Destination(id=stop.id, name=stop.name, fare=fares.get(stop.id))
          for stop in destinations
     ]


def active_fares(db: Session, route_id: str, origin_stop_id: str, now: datetime) -> List[FareRule]:
     """Fare rules for one origin that are in effect at `now`, newest first."""
     return (
          db.query(FareRule)
          .filter(
               FareRule.route_id == route_id,
               FareRule.origin_stop_id == origin_stop_id,
               FareRule.effective_from <= now,
               or_(FareRule.effective_until.is_(None), FareRule.effective_until > now),
          )
          .order_by(FareRule.effective_from.desc())
          .all()
     )
