"""
Purpose: Order a pool's pickup/dropoff waypoints into a single route.
What it does:

- Builds 2 waypoints per ride: PICKUP then DROPOFF
- Greedy nearest-neighbour from the first ride's pickup, with a precedence rule:
  a DROPOFF is only eligible once its ride's PICKUP has been placed
- Totals great-circle distance and duration at a fixed 40 km/h
- Stamps each waypoint with its sequence number and an estimated time
  (now + cumulative duration to reach it)

Notes:
- Greedy is not optimal (small TSP with precedence), only deterministic:
  same member order in, same route out; ties go to the first waypoint found.
- Member order comes from pool.ride_ids, so re-running on an unchanged pool
  yields the same route and totals.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Set

from pools.models import OptimizedRoute, PoolGroup, Waypoint, WaypointType
from .geo import AVERAGE_SPEED_KMH, distance_km

if TYPE_CHECKING:
    from rides.models import RideRequest

logger = logging.getLogger(__name__)


def build_waypoints(rides: Sequence[RideRequest]) -> List[Waypoint]:
    waypoints: List[Waypoint] = []
    for ride in rides:
        waypoints.append(Waypoint(
            ride_id=ride.id,
            waypoint_type=WaypointType.PICKUP,
            coordinate=ride.pickup.coordinate,
            address=ride.pickup.address,
        ))
        waypoints.append(Waypoint(
            ride_id=ride.id,
            waypoint_type=WaypointType.DROPOFF,
            coordinate=ride.dropoff.coordinate,
            address=ride.dropoff.address,
        ))
    return waypoints


def order_waypoints(waypoints: Sequence[Waypoint]) -> List[Waypoint]:
    """
    Nearest-neighbour ordering under pickup-before-dropoff precedence.
    Two waypoints or fewer (one ride) are returned as given.
    """
    if len(waypoints) <= 2:
        return list(waypoints)

    remaining = list(waypoints)
    first_pickup = next(
        (wp for wp in remaining if wp.waypoint_type == WaypointType.PICKUP),
        remaining[0],
    )
    ordered = [first_pickup]
    remaining.remove(first_pickup)

    picked_up: Set[str] = set()
    if first_pickup.waypoint_type == WaypointType.PICKUP:
        picked_up.add(first_pickup.ride_id)

    while remaining:
        current = ordered[-1]
        nearest: Optional[Waypoint] = None
        min_distance = float("inf")

        for wp in remaining:
            if wp.waypoint_type == WaypointType.DROPOFF and wp.ride_id not in picked_up:
                continue

            d = distance_km(current.coordinate, wp.coordinate)
            # strict < so the first waypoint found wins ties
            if d < min_distance:
                min_distance = d
                nearest = wp

        if nearest is None:
            # cannot happen while every dropoff has its pickup in the list;
            # keeps the loop finite for malformed input
            nearest = remaining[0]

        ordered.append(nearest)
        remaining.remove(nearest)
        if nearest.waypoint_type == WaypointType.PICKUP:
            picked_up.add(nearest.ride_id)

    return ordered


def respects_precedence(waypoints: Sequence[Waypoint]) -> bool:
    """
    True when no ride's DROPOFF comes before its PICKUP.
    """
    seen_pickups: Set[str] = set()
    for wp in waypoints:
        if wp.waypoint_type == WaypointType.PICKUP:
            seen_pickups.add(wp.ride_id)
        elif wp.ride_id not in seen_pickups:
            return False
    return True


def optimize_route(
    pool: PoolGroup,
    rides: Sequence[RideRequest],
    *,
    now: Optional[datetime] = None,
    average_speed_kmh: float = AVERAGE_SPEED_KMH,
) -> OptimizedRoute:
    """
    Compute the pool's route from its current members.

    Only rides listed in pool.ride_ids are routed, in pool.ride_ids order.
    """
    now = now or datetime.now()

    by_id: Dict[str, RideRequest] = {ride.id: ride for ride in rides}
    missing = [ride_id for ride_id in pool.ride_ids if ride_id not in by_id]
    if missing:
        raise ValueError(f"Pool {pool.id} members not supplied for routing: {missing}")

    members = [by_id[ride_id] for ride_id in pool.ride_ids]
    ordered = order_waypoints(build_waypoints(members))

    stamped: List[Waypoint] = []
    cumulative_km = 0.0
    for index, wp in enumerate(ordered):
        if index > 0:
            cumulative_km += distance_km(ordered[index - 1].coordinate, wp.coordinate)
        minutes = cumulative_km / average_speed_kmh * 60
        stamped.append(Waypoint(
            ride_id=wp.ride_id,
            waypoint_type=wp.waypoint_type,
            coordinate=wp.coordinate,
            address=wp.address,
            sequence=index + 1,
            estimated_time=now + timedelta(minutes=minutes),
        ))

    total_distance = round(cumulative_km, 2)
    total_duration = round(total_distance / average_speed_kmh * 60, 2)

    logger.info(
        "Optimized route for pool %s: %d waypoints, %.2f km, %.2f min",
        pool.id, len(stamped), total_distance, total_duration,
    )

    return OptimizedRoute(
        waypoints=stamped,
        total_distance_km=total_distance,
        total_duration_min=total_duration,
    )
