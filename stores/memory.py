"""
Purpose: In-memory stores (tests, simulation, reference behaviour).
What it does:
- Keeps records by id in dicts guarded by a lock
- Hands out copies so callers never mutate stored state without save()
- Nearby search: bounding-box pre-filter, then exact great-circle distance

Rule: Storage only. No matching or pricing decisions here.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pools.models import PoolGroup, PoolStatus
from rides.models import RideRequest, RideStatus
from routing.geo import Coordinate, bounding_box, distance_km, is_point_in_bounds


@dataclass
class InMemoryRideRequestStore:
    _rides: Dict[str, RideRequest] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def find_nearby_pending(
        self,
        coordinate: Coordinate,
        radius_km: float,
        exclude_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[RideRequest]:
        box = bounding_box(coordinate, radius_km)

        with self._lock:
            snapshot = list(self._rides.values())

        nearby = []
        for ride in snapshot:
            if ride.id == exclude_id:
                continue
            if ride.status != RideStatus.PENDING or not ride.allows_sharing:
                continue
            if not is_point_in_bounds(ride.pickup.coordinate, box):
                continue

            d = distance_km(coordinate, ride.pickup.coordinate)
            if d <= radius_km:
                nearby.append((d, ride))

        # sort is stable: equal distances keep insertion order
        nearby.sort(key=lambda item: item[0])
        rides = [copy.deepcopy(ride) for _, ride in nearby]

        if limit is not None:
            rides = rides[:limit]
        return rides

    def get(self, ride_id: str) -> Optional[RideRequest]:
        with self._lock:
            ride = self._rides.get(ride_id)
            return copy.deepcopy(ride) if ride else None

    def save(self, ride: RideRequest) -> RideRequest:
        ride.updated_at = datetime.now()
        with self._lock:
            self._rides[ride.id] = copy.deepcopy(ride)
        return ride

    def update_many(self, ride_ids: Iterable[str], patch: Dict[str, Any]) -> int:
        for key in patch:
            if key not in RideRequest.__dataclass_fields__:
                raise AttributeError(f"RideRequest has no field {key!r}")

        updated = 0
        now = datetime.now()
        with self._lock:
            for ride_id in ride_ids:
                ride = self._rides.get(ride_id)
                if ride is None:
                    continue
                for key, value in patch.items():
                    setattr(ride, key, value)
                ride.updated_at = now
                updated += 1
        return updated

    def all(self) -> List[RideRequest]:
        with self._lock:
            return [copy.deepcopy(ride) for ride in self._rides.values()]


@dataclass
class InMemoryPoolGroupStore:
    _pools: Dict[str, PoolGroup] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get(self, pool_id: str) -> Optional[PoolGroup]:
        with self._lock:
            pool = self._pools.get(pool_id)
            return copy.deepcopy(pool) if pool else None

    def save(self, pool: PoolGroup) -> PoolGroup:
        pool.updated_at = datetime.now()
        with self._lock:
            self._pools[pool.id] = copy.deepcopy(pool)
        return pool

    def find_forming(self) -> List[PoolGroup]:
        with self._lock:
            return [
                copy.deepcopy(pool)
                for pool in self._pools.values()
                if pool.status == PoolStatus.FORMING and not pool.is_full
            ]

    def all(self) -> List[PoolGroup]:
        with self._lock:
            return [copy.deepcopy(pool) for pool in self._pools.values()]
