"""
Purpose: Pool Assembler (membership changes + the recompute that follows them).
What it does:

- assemble: put a new request and its best candidate into one pool, either
  by reusing a forming pool one of them already sits in, or by creating a
  fresh pool seeded with both
- detach: take a ride out of its pool and run the cascade
    0 left  -> pool cancelled
    1 left  -> lone ride back to pending (unpooled), pool cancelled
    2+ left -> route and pricing recomputed
- every membership change re-runs Route Optimizer -> Pricing Engine

Notes:
- Work happens on copies handed out by the stores; nothing is saved until the
  route and pricing recompute succeeded, so a failed recompute leaves the
  stored pool and rides as they were.
- Callers serialize access per pool (dispatch.locks).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from dispatch.state_machines.pool_state import (
    ACTIVE_POOL_STATUSES,
    PoolStateException,
    dissolve_pool,
    transition_pool_to_ready,
)
from dispatch.state_machines.ride_state import revert_ride_to_pending, transition_ride_to_matched
from pricing.engine import pool_pricing
from pricing.policy import PricingPolicy, default_pricing_policy
from rides.models import RideRequest, RideStatus
from routing.route_optimizer import optimize_route
from stores.base import PoolGroupStore, RideRequestStore
from .models import MAX_POOL_LUGGAGE, MAX_POOL_PASSENGERS, CapacityExceeded, PoolGroup, PoolStatus

logger = logging.getLogger(__name__)


def recompute_route_and_pricing(
    pool: PoolGroup,
    members: Sequence[RideRequest],
    *,
    pricing_policy: Optional[PricingPolicy] = None,
    now: Optional[datetime] = None,
) -> PoolGroup:
    """
    Route first, then pricing from the new route total. Each member's
    final_price is set to its share.
    """
    pricing_policy = pricing_policy or default_pricing_policy()

    pool.route = optimize_route(pool, members, now=now)
    pool.pricing = pool_pricing(pool, members, pricing_policy)

    for ride in members:
        item = pool.pricing.price_for(ride.id)
        if item is not None:
            ride.final_price = item.price

    return pool


class PoolAssembler:
    """
    Owns every change to pool membership and keeps both sides of the
    ride <-> pool reference in step.
    """

    def __init__(
        self,
        ride_store: RideRequestStore,
        pool_store: PoolGroupStore,
        pricing_policy: Optional[PricingPolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
        max_passengers: int = MAX_POOL_PASSENGERS,
        max_luggage: int = MAX_POOL_LUGGAGE,
    ):
        self.ride_store = ride_store
        self.pool_store = pool_store
        self.pricing_policy = pricing_policy or default_pricing_policy()
        self.clock = clock
        self.max_passengers = max_passengers
        self.max_luggage = max_luggage

    def assemble(self, new_request: RideRequest, candidate: RideRequest) -> PoolGroup:
        """
        Raises CapacityExceeded when the fresh pool cannot hold both rides.
        """
        pool, joining = self._reusable_pool(new_request, candidate)

        if pool is not None:
            for ride in joining:
                pool.add_ride(ride.id, ride.passengers, ride.luggage)
            logger.info("Reusing pool %s for ride(s) %s", pool.id, [ride.id for ride in joining])
        else:
            joining = [new_request, candidate]
            pooled = [ride for ride in joining if ride.pool_group_id]
            if pooled:
                logger.warning(
                    "Ride %s is already in pool %s with no room for its partner",
                    pooled[0].id, pooled[0].pool_group_id,
                )
                raise CapacityExceeded(
                    f"Ride {pooled[0].id} already belongs to pool {pooled[0].pool_group_id}"
                )
            try:
                pool = PoolGroup.new(joining, self.max_passengers, self.max_luggage)
            except CapacityExceeded:
                logger.warning(
                    "Rides %s and %s do not fit in one vehicle", new_request.id, candidate.id,
                )
                raise
            logger.info("Created pool %s for rides %s and %s", pool.id, new_request.id, candidate.id)

        for ride in joining:
            transition_ride_to_matched(ride, pool.id)

        if pool.is_full and pool.status == PoolStatus.FORMING:
            transition_pool_to_ready(pool)

        members = self._members(pool, overrides=[new_request, candidate])
        self._commit(pool, members)
        return pool

    def detach(self, pool: PoolGroup, ride: RideRequest) -> PoolGroup:
        """
        Remove `ride` from `pool` and run the cascade. The ride's own status is
        the caller's business; its pool reference is cleared here.
        """
        if pool.status not in ACTIVE_POOL_STATUSES:
            raise PoolStateException(f"Cannot change membership of pool {pool.id} with status: {pool.status.value}")

        pool.remove_ride(ride.id, ride.passengers, ride.luggage)
        ride.pool_group_id = None
        ride.final_price = None

        remaining = self._members(pool)

        if len(remaining) == 0:
            dissolve_pool(pool)
            self.pool_store.save(pool)
            logger.info("Pool %s cancelled: no rides left", pool.id)
            return pool

        if len(remaining) == 1:
            lone = remaining[0]
            # validates the transition before anything is written
            revert_ride_to_pending(lone)
            dissolve_pool(pool)
            self.pool_store.save(pool)
            self.ride_store.update_many(
                [lone.id],
                {"status": RideStatus.PENDING, "pool_group_id": None, "final_price": None},
            )
            logger.info("Pool %s dissolved: ride %s is back to pending", pool.id, lone.id)
            return pool

        self._commit(pool, remaining)
        logger.info("Pool %s recomputed after ride %s left (%d rides)", pool.id, ride.id, pool.ride_count)
        return pool

    def _reusable_pool(
        self,
        new_request: RideRequest,
        candidate: RideRequest,
    ) -> Tuple[Optional[PoolGroup], List[RideRequest]]:
        for member, other in ((candidate, new_request), (new_request, candidate)):
            if not member.pool_group_id:
                continue
            pool = self.pool_store.get(member.pool_group_id)
            if pool is None or pool.status != PoolStatus.FORMING:
                continue
            if pool.has_ride(other.id):
                return pool, []
            if pool.can_accommodate(other.passengers, other.luggage):
                return pool, [other]
        return None, []

    def _members(self, pool: PoolGroup, overrides: Sequence[RideRequest] = ()) -> List[RideRequest]:
        """
        Current member rides in pool.ride_ids order, preferring the in-flight
        copies in `overrides` over what the store holds.
        """
        known: Dict[str, RideRequest] = {ride.id: ride for ride in overrides}
        members: List[RideRequest] = []
        for ride_id in pool.ride_ids:
            ride = known.get(ride_id) or self.ride_store.get(ride_id)
            if ride is None:
                raise LookupError(f"Pool {pool.id} references unknown ride {ride_id}")
            members.append(ride)
        return members

    def _commit(self, pool: PoolGroup, members: Sequence[RideRequest]) -> None:
        recompute_route_and_pricing(pool, members, pricing_policy=self.pricing_policy, now=self.clock())

        self.pool_store.save(pool)
        for ride in members:
            self.ride_store.save(ride)
