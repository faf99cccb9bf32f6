#Marks routing as a package.
#Re-exports the great-circle helpers so other modules import from routing
#without knowing internal file names.
#The route optimizer depends on pools, so import it as routing.route_optimizer.

from .geo import (
    AVERAGE_SPEED_KMH,
    BoundingBox,
    Coordinate,
    InvalidCoordinate,
    bearing_degrees,
    bounding_box,
    destination_point,
    distance_km,
    find_center_point,
    is_point_in_bounds,
    is_valid_coordinate,
    route_distance,
    validate_coordinate,
)

__all__ = [
    "Coordinate",
    "BoundingBox",
    "InvalidCoordinate",
    "distance_km",
    "bearing_degrees",
    "destination_point",
    "bounding_box",
    "is_point_in_bounds",
    "is_valid_coordinate",
    "validate_coordinate",
    "route_distance",
    "find_center_point",
    "AVERAGE_SPEED_KMH",
]
