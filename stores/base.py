"""
Purpose: Store contracts the pooling core depends on.
What it does:
- RideRequestStore: nearby pending search, get, save, update_many
- PoolGroupStore: get, save, find_forming

Persistence itself lives outside this repository; anything with these methods
(a document store adapter, the in-memory stores in memory.py) can be injected.
Implementations must make each save atomic per record.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Protocol

from pools.models import PoolGroup
from rides.models import RideRequest
from routing.geo import Coordinate


class RideRequestStore(Protocol):

    def find_nearby_pending(
        self,
        coordinate: Coordinate,
        radius_km: float,
        exclude_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[RideRequest]:
        """Pending, sharing-enabled requests whose pickup is within radius_km, nearest first."""
        ...

    def get(self, ride_id: str) -> Optional[RideRequest]:
        ...

    def save(self, ride: RideRequest) -> RideRequest:
        ...

    def update_many(self, ride_ids: Iterable[str], patch: Dict[str, Any]) -> int:
        """Set the given attributes on every listed ride. Returns how many were updated."""
        ...


class PoolGroupStore(Protocol):

    def get(self, pool_id: str) -> Optional[PoolGroup]:
        ...

    def save(self, pool: PoolGroup) -> PoolGroup:
        ...

    def find_forming(self) -> List[PoolGroup]:
        """Forming pools that still have at least one free seat."""
        ...
