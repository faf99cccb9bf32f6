"""
Purpose: Orchestrator / decision pipeline (the "glue") for ride pooling.
What it does:
Accepts a submitted RideRequest, persists it, looks for the best pending
ride to share with, hands both to the Pool Assembler and reports the pool
and price back. Also the entry point for leaving a pool, quoting a price and
moving a pool through its trip.

Public entry points (called by the HTTP layer, which lives elsewhere):
- create_and_match(ride, rider_defaults=None) -> MatchResult
- cancel_membership(ride_id, reason=None) -> Optional[PoolGroup]
- estimate_price(pickup, dropoff, passengers, allow_sharing, pickup_time=None) -> PriceEstimate
- mark_pool_ready / start_pool / complete_pool
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional

from pools.assembler import PoolAssembler
from pools.models import MAX_POOL_LUGGAGE, MAX_POOL_PASSENGERS, PoolGroup
from pricing.engine import (
    Savings,
    calculate_savings,
    minimum_single_ride_price,
    ride_request_price,
    single_ride_price,
    surge_factor,
    validate_price,
)
from pricing.policy import PricingPolicy, default_pricing_policy
from rides.matching.engine import find_compatible, search_candidates
from rides.matching.policy import MatchingPolicy, default_matching_policy
from rides.models import RideRequest, RideStatus, SharingPreferences, resolve_sharing_preferences
from routing.geo import AVERAGE_SPEED_KMH, Coordinate, distance_km, validate_coordinate
from stores.base import PoolGroupStore, RideRequestStore
from .locks import PoolLockManager
from .state_machines.pool_state import (
    transition_pool_to_completed,
    transition_pool_to_in_progress,
    transition_pool_to_ready,
)
from .state_machines.ride_state import (
    RideStateException,
    cancel_ride,
    transition_ride_to_assigned,
    transition_ride_to_completed,
)

logger = logging.getLogger(__name__)


class RideNotFound(LookupError):
    pass


class PoolNotFound(LookupError):
    pass


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of create_and_match. pool_group is None when the ride stays unpooled;
    match_error is set when matching failed and was recovered.
    """
    ride_request: RideRequest
    pool_group: Optional[PoolGroup] = None
    savings: Optional[Savings] = None
    match_error: Optional[str] = None

    @property
    def is_pooled(self) -> bool:
        return self.pool_group is not None


@dataclass(frozen=True)
class PriceEstimate:
    distance_km: float
    price: Decimal
    is_shared: bool = False
    surge: Decimal = Decimal("1")


class PoolingService:
    """
    Coordinates matching, pool assembly, routing and pricing for ride requests.
    """
    def __init__(
        self,
        ride_store: RideRequestStore,
        pool_store: PoolGroupStore,
        matching_policy: Optional[MatchingPolicy] = None,
        pricing_policy: Optional[PricingPolicy] = None,
        lock_manager: Optional[PoolLockManager] = None,
        rate_limiter=None,
        clock: Callable[[], datetime] = datetime.now,
        max_passengers: int = MAX_POOL_PASSENGERS,
        max_luggage: int = MAX_POOL_LUGGAGE,
    ):
        self.ride_store = ride_store
        self.pool_store = pool_store
        self.matching_policy = matching_policy or default_matching_policy()
        self.pricing_policy = pricing_policy or default_pricing_policy()
        self.lock_manager = lock_manager or PoolLockManager()
        self.rate_limiter = rate_limiter
        self.clock = clock

        self.matching_policy.validate()
        self.pricing_policy.validate()

        self.assembler = PoolAssembler(
            ride_store,
            pool_store,
            pricing_policy=self.pricing_policy,
            clock=clock,
            max_passengers=max_passengers,
            max_luggage=max_luggage,
        )

    # ------------------------------------------------------------------ #
    # createAndMatch
    # ------------------------------------------------------------------ #

    def create_and_match(
        self,
        ride: RideRequest,
        rider_defaults: Optional[SharingPreferences] = None,
    ) -> MatchResult:
        """
        Persist the request, then try to pool it.

        Validation and rate limiting fail loudly before anything is saved.
        Once the request is saved, a failing match never undoes it: the ride
        stays pending and the error is reported on the result.
        """
        if self.rate_limiter is not None:
            self.rate_limiter.check(ride.rider_id)

        validate_coordinate(ride.pickup.coordinate)
        validate_coordinate(ride.dropoff.coordinate)
        if ride.status != RideStatus.PENDING:
            raise RideStateException(f"New ride {ride.id} must be pending, got {ride.status.value}")

        ride.preferences = resolve_sharing_preferences(
            ride.preferences,
            rider_defaults,
            default_max_detour_km=self.matching_policy.default_max_detour_km,
        )
        ride.distance_km = distance_km(ride.pickup.coordinate, ride.dropoff.coordinate)
        ride.estimated_duration_min = round(ride.distance_km / AVERAGE_SPEED_KMH * 60, 2)
        ride.estimated_price = validate_price(
            ride_request_price(ride, self.pricing_policy),
            minimum=minimum_single_ride_price(ride.allows_sharing, self.pricing_policy),
            policy=self.pricing_policy,
        )

        self.ride_store.save(ride)
        logger.info("Ride %s created for rider %s (%.2f km)", ride.id, ride.rider_id, ride.distance_km)

        if not ride.allows_sharing:
            return MatchResult(ride_request=ride)

        try:
            pool = self._match(ride)
        except Exception as exc:
            logger.exception("Matching failed for ride %s; it stays unpooled", ride.id)
            stored = self.ride_store.get(ride.id) or ride
            return MatchResult(ride_request=stored, match_error=str(exc))

        stored = self.ride_store.get(ride.id) or ride
        if pool is None:
            return MatchResult(ride_request=stored)

        savings = None
        if stored.final_price is not None:
            savings = calculate_savings(stored.estimated_price, stored.final_price)

        return MatchResult(ride_request=stored, pool_group=pool, savings=savings)

    def _match(self, ride: RideRequest) -> Optional[PoolGroup]:
        candidates = search_candidates(ride, self.ride_store, policy=self.matching_policy, now=self.clock())
        ranked = find_compatible(ride, candidates, policy=self.matching_policy)
        if not ranked:
            logger.info("No compatible ride for %s among %d candidates", ride.id, len(candidates))
            return None

        best = ranked[0]

        with self.lock_manager.lock_many(f"ride_{ride.id}", f"ride_{best.ride.id}"):
            # both rides may have moved since the read-only search
            current = self.ride_store.get(ride.id)
            candidate = self.ride_store.get(best.ride.id)

            if current is None:
                raise RideNotFound(ride.id)
            if current.status != RideStatus.PENDING:
                return self.pool_store.get(current.pool_group_id) if current.pool_group_id else None
            if candidate is None or candidate.status != RideStatus.PENDING:
                logger.info("Candidate %s for ride %s was taken in the meantime", best.ride.id, ride.id)
                return None

            pool_keys = [f"pool_{r.pool_group_id}" for r in (current, candidate) if r.pool_group_id]
            with self.lock_manager.lock_many(*pool_keys):
                pool = self.assembler.assemble(current, candidate)

        logger.info(
            "Ride %s pooled with %s in pool %s (score %.2f)",
            ride.id, candidate.id, pool.id, best.score,
        )
        return pool

    # ------------------------------------------------------------------ #
    # cancelMembership
    # ------------------------------------------------------------------ #

    def cancel_membership(self, ride_id: str, reason: Optional[str] = None) -> Optional[PoolGroup]:
        """
        Cancel a ride and take it out of its pool. Returns the updated pool,
        or None when the ride was not pooled.
        """
        ride = self.ride_store.get(ride_id)
        if ride is None:
            raise RideNotFound(ride_id)

        if ride.pool_group_id is None:
            cancel_ride(ride, reason, self.clock())
            self.ride_store.save(ride)
            logger.info("Ride %s cancelled (not pooled)", ride_id)
            return None

        pool_id = ride.pool_group_id
        with self.lock_manager.lock(f"pool_{pool_id}"):
            pool = self.pool_store.get(pool_id)
            if pool is None:
                raise PoolNotFound(pool_id)

            # membership may have changed before the lock was taken
            ride = self.ride_store.get(ride_id)
            if ride is None:
                raise RideNotFound(ride_id)
            moved = ride.pool_group_id != pool_id

            if not moved:
                cancel_ride(ride, reason, self.clock())
                pool = self.assembler.detach(pool, ride)
                self.ride_store.save(ride)

        if moved:
            logger.info("Ride %s left pool %s before cancellation, retrying", ride_id, pool_id)
            return self.cancel_membership(ride_id, reason)

        logger.info("Ride %s cancelled and removed from pool %s (%s)", ride_id, pool.id, pool.status.value)
        return pool

    # ------------------------------------------------------------------ #
    # estimatePrice
    # ------------------------------------------------------------------ #

    def estimate_price(
        self,
        pickup: Coordinate,
        dropoff: Coordinate,
        passengers: int = 1,
        allow_sharing: bool = True,
        pickup_time: Optional[datetime] = None,
    ) -> PriceEstimate:
        """
        Quote only, nothing is persisted. Surge applies only when a pickup time is given.
        """
        pickup = validate_coordinate(pickup)
        dropoff = validate_coordinate(dropoff)

        distance = distance_km(pickup, dropoff)
        surge = surge_factor(pickup_time, self.pricing_policy) if pickup_time else Decimal("1")

        price = single_ride_price(distance, passengers, allow_sharing, surge, policy=self.pricing_policy)
        validate_price(
            price,
            minimum=minimum_single_ride_price(allow_sharing, self.pricing_policy),
            policy=self.pricing_policy,
        )

        return PriceEstimate(distance_km=distance, price=price, is_shared=allow_sharing, surge=surge)

    # ------------------------------------------------------------------ #
    # Pool lifecycle
    # ------------------------------------------------------------------ #

    def get_pool(self, pool_id: str) -> PoolGroup:
        pool = self.pool_store.get(pool_id)
        if pool is None:
            raise PoolNotFound(pool_id)
        return pool

    def mark_pool_ready(self, pool_id: str) -> PoolGroup:
        with self.lock_manager.lock(f"pool_{pool_id}"):
            pool = transition_pool_to_ready(self.get_pool(pool_id))
            self.pool_store.save(pool)
        logger.info("Pool %s marked ready", pool_id)
        return pool

    def start_pool(self, pool_id: str) -> PoolGroup:
        """
        Trip begins: pool goes in-progress, every member is ASSIGNED.
        """
        with self.lock_manager.lock(f"pool_{pool_id}"):
            pool = self.get_pool(pool_id)
            members = self._pool_members(pool)

            transition_pool_to_in_progress(pool, self.clock())
            for ride in members:
                transition_ride_to_assigned(ride)

            self.pool_store.save(pool)
            for ride in members:
                self.ride_store.save(ride)

        logger.info("Pool %s started with %d rides", pool_id, len(members))
        return pool

    def complete_pool(self, pool_id: str) -> PoolGroup:
        """
        Trip finished: members COMPLETED, each final price settled from the pool pricing.
        """
        with self.lock_manager.lock(f"pool_{pool_id}"):
            pool = self.get_pool(pool_id)
            members = self._pool_members(pool)

            transition_pool_to_completed(pool, self.clock())
            for ride in members:
                transition_ride_to_completed(ride)
                item = pool.pricing.price_for(ride.id)
                if item is not None:
                    ride.final_price = item.price

            self.pool_store.save(pool)
            for ride in members:
                self.ride_store.save(ride)

        logger.info("Pool %s completed, total %s", pool_id, pool.pricing.total_price)
        return pool

    def _pool_members(self, pool: PoolGroup) -> List[RideRequest]:
        members = []
        for ride_id in pool.ride_ids:
            ride = self.ride_store.get(ride_id)
            if ride is None:
                raise RideNotFound(ride_id)
            members.append(ride)
        return members
