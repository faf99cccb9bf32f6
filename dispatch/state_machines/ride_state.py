from datetime import datetime
from typing import Dict, FrozenSet, Optional

from rides.models import RideRequest, RideStatus


class RideStateException(Exception):
    """Raised when an invalid ride transition is attempted."""
    pass


# current status -> statuses it may move to
RIDE_TRANSITIONS: Dict[RideStatus, FrozenSet[RideStatus]] = {
    RideStatus.PENDING: frozenset({RideStatus.MATCHED, RideStatus.CANCELLED, RideStatus.EXPIRED}),
    RideStatus.MATCHED: frozenset({RideStatus.PENDING, RideStatus.ASSIGNED, RideStatus.CANCELLED}),
    RideStatus.ASSIGNED: frozenset({RideStatus.COMPLETED, RideStatus.CANCELLED}),
    RideStatus.CANCELLED: frozenset(),
    RideStatus.COMPLETED: frozenset(),
    RideStatus.EXPIRED: frozenset(),
}


def can_transition(ride: RideRequest, target: RideStatus) -> bool:
    return target == ride.status or target in RIDE_TRANSITIONS[ride.status]


def _transition(ride: RideRequest, target: RideStatus) -> RideRequest:
    if not can_transition(ride, target):
        raise RideStateException(f"Cannot move ride {ride.id} from {ride.status.value} to {target.value}")
    ride.status = target
    return ride


def transition_ride_to_matched(ride: RideRequest, pool_id: str) -> RideRequest:
    """
    Called by the pool assembler when the ride joins a pool.
    Sets both the status and the pool reference.
    """
    _transition(ride, RideStatus.MATCHED)
    ride.pool_group_id = pool_id
    return ride


def revert_ride_to_pending(ride: RideRequest) -> RideRequest:
    """
    The ride's pool dissolved around it: back to the matching queue, unpooled.
    """
    _transition(ride, RideStatus.PENDING)
    ride.pool_group_id = None
    ride.final_price = None
    return ride


def transition_ride_to_assigned(ride: RideRequest) -> RideRequest:
    """
    Once the pool's trip starts, every member is locked to ASSIGNED.
    """
    if ride.status != RideStatus.MATCHED:
        raise RideStateException(f"Ride {ride.id} is not MATCHED. Current: {ride.status.value}")
    return _transition(ride, RideStatus.ASSIGNED)


def transition_ride_to_completed(ride: RideRequest) -> RideRequest:
    if ride.status != RideStatus.ASSIGNED:
        raise RideStateException(f"Ride {ride.id} is not ASSIGNED. Current: {ride.status.value}")
    return _transition(ride, RideStatus.COMPLETED)


def cancel_ride(ride: RideRequest, reason: Optional[str] = None, now: Optional[datetime] = None) -> RideRequest:
    """
    Terminal. The pool reference is cleared by whoever detaches the ride from its pool.
    """
    if ride.is_terminal:
        raise RideStateException(f"Cannot cancel ride {ride.id} with status: {ride.status.value}")
    _transition(ride, RideStatus.CANCELLED)
    ride.cancellation_reason = reason
    ride.cancelled_at = now or datetime.now()
    return ride


def expire_ride(ride: RideRequest) -> RideRequest:
    return _transition(ride, RideStatus.EXPIRED)
