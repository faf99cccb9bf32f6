# rides/matching/compatibility.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from routing.geo import bearing_degrees, distance_km
from ..models import RideRequest, RideStatus
from .policy import MatchingPolicy


@dataclass(frozen=True)
class CompatibilityCheck:
    """
    Output of the hard-gate evaluation for one (request, candidate) pair.
    """
    is_compatible: bool
    pickup_distance_km: float = 0.0
    dropoff_distance_km: float = 0.0
    shared_route_distance_km: float = 0.0
    request_detour_km: float = 0.0
    candidate_detour_km: float = 0.0

    # Diagnostics
    reason: Optional[str] = None


def effective_max_detour_km(ride: RideRequest, policy: MatchingPolicy) -> float:
    """
    Ride-level tolerance (already resolved against the rider default at submission),
    else the system default.
    """
    tolerance = ride.preferences.max_detour_tolerance_km
    if tolerance is None:
        return policy.default_max_detour_km
    return tolerance


def shared_route_distance(first: RideRequest, second: RideRequest) -> float:
    """
    Fixed-shape proxy route used for the detour test:
      pickup1 -> pickup2 + pickup1 -> dropoff1 + dropoff1 -> dropoff2
    It is not the optimized route.
    """
    d1 = distance_km(first.pickup.coordinate, second.pickup.coordinate)
    d2 = distance_km(first.pickup.coordinate, first.dropoff.coordinate)
    d3 = distance_km(first.dropoff.coordinate, second.dropoff.coordinate)
    return d1 + d2 + d3


def direction_similarity(first: RideRequest, second: RideRequest) -> float:
    """
    1.0 for identical trip bearings, 0.0 for opposite ones.
    """
    bearing1 = bearing_degrees(first.pickup.coordinate, first.dropoff.coordinate)
    bearing2 = bearing_degrees(second.pickup.coordinate, second.dropoff.coordinate)

    diff = abs(bearing1 - bearing2)
    normalized = min(diff, 360 - diff)

    return 1 - normalized / 180


def evaluate_compatibility(
    request: RideRequest,
    candidate: RideRequest,
    policy: MatchingPolicy,
) -> CompatibilityCheck:
    """
    Hard gates, all of which must hold:
      - candidate is pending and allows sharing
      - pickups within max_pickup_distance_km
      - dropoffs within max_dropoff_distance_km
      - each ride's detour over the proxy shared route within its own tolerance
    """
    if candidate.status != RideStatus.PENDING:
        return CompatibilityCheck(False, reason="candidate not pending")
    if not candidate.allows_sharing:
        return CompatibilityCheck(False, reason="candidate does not allow sharing")

    pickup_distance = distance_km(request.pickup.coordinate, candidate.pickup.coordinate)
    if pickup_distance > policy.max_pickup_distance_km:
        return CompatibilityCheck(False, pickup_distance_km=pickup_distance, reason="pickups too far apart")

    dropoff_distance = distance_km(request.dropoff.coordinate, candidate.dropoff.coordinate)
    if dropoff_distance > policy.max_dropoff_distance_km:
        return CompatibilityCheck(
            False,
            pickup_distance_km=pickup_distance,
            dropoff_distance_km=dropoff_distance,
            reason="dropoffs too far apart",
        )

    shared = shared_route_distance(request, candidate)
    request_detour = shared - distance_km(request.pickup.coordinate, request.dropoff.coordinate)
    candidate_detour = shared - distance_km(candidate.pickup.coordinate, candidate.dropoff.coordinate)

    within = (
        request_detour <= effective_max_detour_km(request, policy)
        and candidate_detour <= effective_max_detour_km(candidate, policy)
    )

    return CompatibilityCheck(
        is_compatible=within,
        pickup_distance_km=pickup_distance,
        dropoff_distance_km=dropoff_distance,
        shared_route_distance_km=shared,
        request_detour_km=request_detour,
        candidate_detour_km=candidate_detour,
        reason=None if within else "detour exceeds tolerance",
    )
