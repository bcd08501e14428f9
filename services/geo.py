# services/geo.py
"""
GPS and geolocation helpers for fraud prevention.

Pure functions, no state and no I/O. Distances are great-circle distances on a
sphere (haversine), rounded to whole metres.
"""
import math

from errors import InvalidCoordinate

# Earth's radius in meters
EARTH_RADIUS_METERS = 6_371_000


def _require_finite(*values: float) -> None:
     for value in values:
          if value is None or isinstance(value, bool) or not math.isfinite(value):
               raise InvalidCoordinate(f"Invalid coordinate value: {value!r}")


def distance_meters(lat_a: float, lon_a: float, lat_b: float, lon_b: float) -> int:
     """
     Distance between two GPS coordinates using the haversine formula.

     Raises:
          InvalidCoordinate: If any input is NaN, infinite or missing.
     """
     _require_finite(lat_a, lon_a, lat_b, lon_b)

     phi_a = math.radians(lat_a)
     phi_b = math.radians(lat_b)
     d_phi = math.radians(lat_b - lat_a)
     d_lambda = math.radians(lon_b - lon_a)

     a = (
          math.sin(d_phi / 2) ** 2
          + math.cos(phi_a) * math.cos(phi_b) * math.sin(d_lambda / 2) ** 2
     )
     # Rounding can push a just past 1 for near-antipodal points
     a = min(1.0, max(0.0, a))
     c =2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

     # Half-metre rounds up
     return int(math.floor(EARTH_RADIUS_METERS * c + 0.5))


def confidence_level(distance: float, threshold_meters: int = 100) -> str:
     """'high' within threshold, 'medium' within twice the threshold, else 'low'."""
     if distance < threshold_meters:
          return "high"
     elif distance < threshold_meters * 2:
          return "medium"
     return "low"


def is_valid_coordinates(latitude, longitude) -> bool:
     """Latitude in [-90, 90] and longitude in [-180, 180]."""
     if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (latitude, longitude)):
          return False
     return -90 <= latitude <= 90 and -180 <= longitude <= 180
