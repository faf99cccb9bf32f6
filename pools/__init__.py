"""
Pools domain package.

Public API:
- Domain models: PoolGroup, PoolStatus, Waypoint, WaypointType, OptimizedRoute, PoolPricing
- Assembly: see pools.assembler (imported directly, it depends on routing and pricing)
"""
from .models import (
    MAX_POOL_LUGGAGE,
    MAX_POOL_PASSENGERS,
    CapacityExceeded,
    OptimizedRoute,
    PoolGroup,
    PoolPricing,
    PoolStatus,
    RidePrice,
    Waypoint,
    WaypointType,
)

__all__ = [
    "PoolGroup",
    "PoolStatus",
    "Waypoint",
    "WaypointType",
    "OptimizedRoute",
    "PoolPricing",
    "RidePrice",
    "CapacityExceeded",
    "MAX_POOL_PASSENGERS",
    "MAX_POOL_LUGGAGE",
]
