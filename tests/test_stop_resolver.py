from datetime import timedelta
from decimal import Decimal

from models.base import utcnow
from services.stop_resolver import (
     Stop,
     active_fares,
     attach_fares,
     downstream_destinations,
     find_stop,
     nearest_stop,
     parse_stops,
)
from tests.conftest import NAIROBI_STOPS, meters_north


STOPS = parse_stops(NAIROBI_STOPS)


def test_parse_stops_keeps_route_order():
     assert [s.id for s in STOPS] == ["cbd", "ngara", "pangani", "roysambu", "githurai"]
     roysambu = find_stop(STOPS, "roysambu")
     assert roysambu.name == "Roysambu"
     assert not roysambu.has_coordinates


def test_parse_stops_drops_half_coordinates():
     stops = parse_stops([{"id": "x", "name": "X", "latitude": -1.2}])
     assert stops[0].latitude is None
     assert stops[0].longitude is None


def test_parse_stops_empty():
     assert parse_stops(None) == []
     assert parse_stops([]) == []


def test_nearest_stop_picks_closest():
     nearest = nearest_stop(meters_north(-1.2741, 40), 36.8250, STOPS)
     assert nearest.stop.id == "ngara"
     assert nearest.distance_meters == 40


def test_nearest_stop_skips_stops_without_coordinates():
     stops = [Stop("a", "A"), Stop("b", "B", -1.2680, 36.8370)]
     nearest = nearest_stop(-1.2864, 36.8172, stops)
     assert nearest.stop.id == "b"


def test_nearest_stop_none_without_coordinates():
     assert nearest_stop(-1.2864, 36.8172, [Stop("a", "A"), Stop("b", "B")]) is None
     assert nearest_stop(-1.2864, 36.8172, []) is None


def test_nearest_stop_tie_keeps_route_order():
     stops = [
          Stop("first", "First", -1.2864, 36.8172),
          Stop("second", "Second", -1.2864, 36.8172),
     ]
     assert nearest_stop(-1.2800, 36.8172, stops).stop.id == "first"


def test_downstream_destinations():
     assert [s.id for s in downstream_destinations(STOPS, "ngara")] == ["pangani", "roysambu", "githurai"]


def test_downstream_destinations_last_and_unknown_stop():
     assert downstream_destinations(STOPS, "githurai") == []
     assert downstream_destinations(STOPS, "westlands") == []


class _Rule:
     def __init__(self, destination_stop_id, fare_amount):
          self.destination_stop_id = destination_stop_id
          self.fare_amount = fare_amount


def test_attach_fares_leaves_unpriced_destinations_null():
     destinations = downstream_destinations(STOPS, "ngara")
     priced = attach_fares(destinations, [_Rule("githurai", 80.0), _Rule("pangani", Decimal("30.00"))])

     fares = {d.id: d.fare for d in priced}
     assert fares == {"pangani": Decimal("30.00"), "roysambu": None, "githurai": Decimal("80.0")}


def test_attach_fares_first_rule_wins():
     priced = attach_fares([Stop("githurai", "Githurai")], [_Rule("githurai", "90"), _Rule("githurai", "80")])
     assert priced[0].fare == Decimal("90")


def test_active_fares_respects_effective_window(db, route, make_fare):
     now = utcnow()
     make_fare(route, "ngara", "pangani", "30", effective_from=now - timedelta(days=10))
     make_fare(route, "ngara", "githurai", "70",
               effective_from=now - timedelta(days=60), effective_until=now - timedelta(days=1))
     make_fare(route, "ngara", "githurai", "80", effective_from=now - timedelta(days=1))
     make_fare(route, "ngara", "roysambu", "50", effective_from=now + timedelta(days=1))
     make_fare(route, "cbd", "githurai", "100")

     rules = active_fares(db, route.route_id, "ngara", now)

     assert sorted((r.destination_stop_id, Decimal(str(r.fare_amount))) for r in rules) == [
          ("githurai", Decimal("80")),
          ("pangani", Decimal("30")),
     ]


def test_active_fares_newest_rule_priced_first(db, route, make_fare):
     now = utcnow()
     make_fare(route, "ngara", "githurai", "70", effective_from=now - timedelta(days=30))
     make_fare(route, "ngara", "githurai", "80", effective_from=now - timedelta(days=2))

     priced = attach_fares([Stop("githurai", "Githurai")], active_fares(db, route.route_id, "ngara", now))
     assert priced[0].fare == Decimal("80")
