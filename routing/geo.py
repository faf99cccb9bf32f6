"""
Purpose: Great-circle geometry helpers (no routing engine, no state).
What it does:

- distance_km: haversine distance on a 6371 km sphere, rounded to 2 decimals
- bearing_degrees: initial compass bearing in [0, 360)
- destination_point: project a point at a distance/bearing from an origin
- bounding_box / is_point_in_bounds: coarse lon/lat pre-filter for radius search
- is_valid_coordinate / validate_coordinate: range checks only
- route_distance: sum of consecutive legs along an ordered sequence

Coordinates are (longitude, latitude), the same order the ride documents use.

Rule: Pure functions only. Anything that needs a road network does not belong here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

EARTH_RADIUS_KM = 6371.0

# fixed average vehicle speed for duration estimates, not a traffic model
AVERAGE_SPEED_KMH = 40

# km per degree of latitude, used for the bounding-box approximation
KM_PER_DEGREE = 111.32


class InvalidCoordinate(ValueError):
    """Raised when a longitude/latitude pair is out of range."""
    pass


@dataclass(frozen=True)
class Coordinate:
    """
    Immutable (longitude, latitude) pair in decimal degrees.
    """
    lon: float
    lat: float

    def as_tuple(self) -> tuple:
        return (self.lon, self.lat)


@dataclass(frozen=True)
class BoundingBox:
    min_lon: float
    max_lon: float
    min_lat: float
    max_lat: float


def _lon_lat(point: Any) -> tuple:
    if isinstance(point, Coordinate):
        return point.lon, point.lat
    lon, lat = point
    return lon, lat


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """
    Haversine distance between two coordinates in kilometers (2 decimals).
    """
    lon1, lat1 = _lon_lat(a)
    lon2, lat2 = _lon_lat(b)

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    # clamp: float noise can push h a hair outside [0, 1] for antipodal points
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return round(EARTH_RADIUS_KM * c, 2)


def bearing_degrees(a: Coordinate, b: Coordinate) -> float:
    """
    Initial compass bearing from a to b, normalized to [0, 360).
    """
    lon1, lat1 = _lon_lat(a)
    lon2, lat2 = _lon_lat(b)

    d_lon = math.radians(lon2 - lon1)
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)

    y = math.sin(d_lon) * math.cos(lat2_rad)
    x = (
        math.cos(lat1_rad) * math.sin(lat2_rad)
        - math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(d_lon)
    )

    bearing = (math.degrees(math.atan2(y, x)) + 360) % 360
    # (-0.0 + 360) % 360 can round to 360.0
    return 0.0 if bearing >= 360 else bearing


def destination_point(origin: Coordinate, distance: float, bearing: float) -> Coordinate:
    """
    Point reached by travelling `distance` km from origin on the given initial bearing.
    """
    lon, lat = _lon_lat(origin)
    angular = distance / EARTH_RADIUS_KM
    bearing_rad = math.radians(bearing)
    lat_rad = math.radians(lat)

    lat2_rad = math.asin(
        math.sin(lat_rad) * math.cos(angular)
        + math.cos(lat_rad) * math.sin(angular) * math.cos(bearing_rad)
    )
    lon2_rad = math.radians(lon) + math.atan2(
        math.sin(bearing_rad) * math.sin(angular) * math.cos(lat_rad),
        math.cos(angular) - math.sin(lat_rad) * math.sin(lat2_rad),
    )

    return Coordinate(lon=math.degrees(lon2_rad), lat=math.degrees(lat2_rad))


def bounding_box(center: Coordinate, radius_km: float) -> BoundingBox:
    """
    Axis-aligned lon/lat box around a circle. Coarse: callers still check exact distance.
    """
    lon, lat = _lon_lat(center)
    lat_delta = radius_km / KM_PER_DEGREE
    cos_lat = math.cos(math.radians(lat))
    # near the poles every longitude is within reach
    lon_delta = 180.0 if cos_lat < 1e-9 else radius_km / (KM_PER_DEGREE * cos_lat)

    return BoundingBox(
        min_lon=lon - lon_delta,
        max_lon=lon + lon_delta,
        min_lat=lat - lat_delta,
        max_lat=lat + lat_delta,
    )


def is_point_in_bounds(point: Coordinate, box: BoundingBox) -> bool:
    lon, lat = _lon_lat(point)
    return box.min_lon <= lon <= box.max_lon and box.min_lat <= lat <= box.max_lat


def is_valid_coordinate(point: Any) -> bool:
    """
    Range check only: lon in [-180, 180], lat in [-90, 90].
    Accepts a Coordinate or any (lon, lat) pair.
    """
    try:
        lon, lat = _lon_lat(point)
    except (TypeError, ValueError):
        return False

    if isinstance(lon, bool) or isinstance(lat, bool):
        return False
    if not isinstance(lon, (int, float)) or not isinstance(lat, (int, float)):
        return False
    if math.isnan(lon) or math.isnan(lat):
        return False

    return -180 <= lon <= 180 and -90 <= lat <= 90


def validate_coordinate(point: Any) -> Coordinate:
    """
    Returns the point as a Coordinate or raises InvalidCoordinate.
    """
    if not is_valid_coordinate(point):
        raise InvalidCoordinate(f"Invalid coordinates {point!r}. Format: (longitude, latitude)")
    lon, lat = _lon_lat(point)
    return point if isinstance(point, Coordinate) else Coordinate(lon=float(lon), lat=float(lat))


def route_distance(waypoints: Sequence[Coordinate]) -> float:
    """
    Sum of consecutive leg distances; 0 for fewer than two points.
    """
    if not waypoints or len(waypoints) < 2:
        return 0.0

    total = 0.0
    for a, b in zip(waypoints[:-1], waypoints[1:]):
        total += distance_km(a, b)

    return round(total, 2)


def find_center_point(coordinates: Sequence[Coordinate]) -> Coordinate:
    """
    Arithmetic mean of the given coordinates. (0, 0) when empty.
    """
    if not coordinates:
        return Coordinate(lon=0.0, lat=0.0)

    if len(coordinates) == 1:
        lon, lat = _lon_lat(coordinates[0])
        return Coordinate(lon=lon, lat=lat)

    sum_lon = 0.0
    sum_lat = 0.0
    for point in coordinates:
        lon, lat = _lon_lat(point)
        sum_lon += lon
        sum_lat += lat

    return Coordinate(lon=sum_lon / len(coordinates), lat=sum_lat / len(coordinates))
