from datetime import datetime
from typing import Dict, FrozenSet, Optional

from pools.models import OptimizedRoute, PoolGroup, PoolPricing, PoolStatus


class PoolStateException(Exception):
    """Raised when an invalid pool transition is attempted."""
    pass


POOL_TRANSITIONS: Dict[PoolStatus, FrozenSet[PoolStatus]] = {
    PoolStatus.FORMING: frozenset({PoolStatus.READY, PoolStatus.IN_PROGRESS, PoolStatus.CANCELLED}),
    PoolStatus.READY: frozenset({PoolStatus.IN_PROGRESS, PoolStatus.CANCELLED}),
    PoolStatus.IN_PROGRESS: frozenset({PoolStatus.COMPLETED}),
    PoolStatus.COMPLETED: frozenset(),
    PoolStatus.CANCELLED: frozenset(),
}

ACTIVE_POOL_STATUSES = frozenset({PoolStatus.FORMING, PoolStatus.READY})


def _transition(pool: PoolGroup, target: PoolStatus) -> PoolGroup:
    if target != pool.status and target not in POOL_TRANSITIONS[pool.status]:
        raise PoolStateException(f"Cannot move pool {pool.id} from {pool.status.value} to {target.value}")
    pool.status = target
    return pool


def transition_pool_to_ready(pool: PoolGroup) -> PoolGroup:
    """
    No more riders will be added: seats are full, or an operator closed it.
    """
    return _transition(pool, PoolStatus.READY)


def transition_pool_to_in_progress(pool: PoolGroup, now: Optional[datetime] = None) -> PoolGroup:
    if pool.ride_count < 2:
        raise PoolStateException(f"Pool {pool.id} cannot start with {pool.ride_count} ride(s)")
    _transition(pool, PoolStatus.IN_PROGRESS)
    pool.started_at = now or datetime.now()
    return pool


def transition_pool_to_completed(pool: PoolGroup, now: Optional[datetime] = None) -> PoolGroup:
    _transition(pool, PoolStatus.COMPLETED)
    pool.completed_at = now or datetime.now()
    return pool


def dissolve_pool(pool: PoolGroup) -> PoolGroup:
    """
    A pool of one is not a pool: cancel it and clear whatever membership,
    route and pricing it still carries.
    """
    if pool.status not in ACTIVE_POOL_STATUSES:
        raise PoolStateException(f"Cannot dissolve pool {pool.id} with status: {pool.status.value}")
    _transition(pool, PoolStatus.CANCELLED)
    pool.ride_ids = []
    pool.capacity.passengers.current = 0
    pool.capacity.luggage.current = 0
    pool.route = OptimizedRoute()
    pool.pricing = PoolPricing()
    return pool
