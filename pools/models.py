"""
Purpose: Domain models for the pool-group capability.
What it does:
- Defines core data structures:
- PoolGroup (member ride ids, status, capacity counters, optimized route, pricing)
- Waypoint (type PICKUP/DROPOFF, ride_id, coordinate, sequence, ETA)
- OptimizedRoute, RidePrice, PoolPricing (embedded values, no identity of their own)

Defines enums/constants:
- PoolStatus = forming | ready | in-progress | completed | cancelled
- WaypointType = pickup | dropoff
- MAX_POOL_PASSENGERS = 4, MAX_POOL_LUGGAGE = 8

Rule: No routing or pricing logic. Membership + capacity bookkeeping only.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from routing.geo import Coordinate

MAX_POOL_PASSENGERS = 4
MAX_POOL_LUGGAGE = 8


class CapacityExceeded(Exception):
    """Raised when attaching a ride would overflow a pool's seats or luggage space."""
    pass


class PoolStatus(str, Enum):
    FORMING = "forming"
    READY = "ready"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WaypointType(str, Enum):
    PICKUP = "pickup"
    DROPOFF = "dropoff"


@dataclass(frozen=True)
class Waypoint:
    """
    A stop in a pool route. For precedence constraints:
    each ride has a PICKUP waypoint that must occur before its DROPOFF waypoint.
    """
    ride_id: str
    waypoint_type: WaypointType
    coordinate: Coordinate
    address: Optional[str] = None

    # filled in once the sequence is fixed
    sequence: Optional[int] = None
    estimated_time: Optional[datetime] = None

    @property
    def priority(self) -> int:
        return 1 if self.waypoint_type == WaypointType.PICKUP else 2


@dataclass(frozen=True)
class OptimizedRoute:
    waypoints: List[Waypoint] = field(default_factory=list)
    total_distance_km: float = 0.0
    total_duration_min: float = 0.0


@dataclass(frozen=True)
class RidePrice:
    ride_id: str
    price: Decimal
    discount: Decimal


@dataclass(frozen=True)
class PoolPricing:
    base_price: Decimal = Decimal("0.00")
    total_price: Decimal = Decimal("0.00")
    price_per_ride: List[RidePrice] = field(default_factory=list)

    def price_for(self, ride_id: str) -> Optional[RidePrice]:
        for item in self.price_per_ride:
            if item.ride_id == ride_id:
                return item
        return None


@dataclass
class CapacityCounter:
    current: int = 0
    max: int = 0

    @property
    def available(self) -> int:
        return self.max - self.current


@dataclass
class PoolCapacity:
    passengers: CapacityCounter = field(default_factory=lambda: CapacityCounter(0, MAX_POOL_PASSENGERS))
    luggage: CapacityCounter = field(default_factory=lambda: CapacityCounter(0, MAX_POOL_LUGGAGE))


@dataclass
class PoolGroup:
    """
    A set of ride requests sharing one vehicle.
    """
    id: str
    ride_ids: List[str] = field(default_factory=list)
    status: PoolStatus = PoolStatus.FORMING
    capacity: PoolCapacity = field(default_factory=PoolCapacity)

    route: OptimizedRoute = field(default_factory=OptimizedRoute)
    pricing: PoolPricing = field(default_factory=PoolPricing)

    created_at: datetime = field(default_factory=datetime.now)
    updated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def ride_count(self) -> int:
        return len(self.ride_ids)

    @property
    def is_full(self) -> bool:
        return self.capacity.passengers.available <= 0

    def has_ride(self, ride_id: str) -> bool:
        return ride_id in self.ride_ids

    def can_accommodate(self, passengers: int, luggage: int) -> bool:
        return (
            passengers <= self.capacity.passengers.available
            and luggage <= self.capacity.luggage.available
        )

    def add_ride(self, ride_id: str, passengers: int, luggage: int) -> PoolGroup:
        if self.has_ride(ride_id):
            return self
        if not self.can_accommodate(passengers, luggage):
            raise CapacityExceeded(
                f"Pool {self.id} cannot take ride {ride_id}: "
                f"needs {passengers} seats/{luggage} bags, "
                f"has {self.capacity.passengers.available}/{self.capacity.luggage.available}"
            )

        self.ride_ids.append(ride_id)
        self.capacity.passengers.current += passengers
        self.capacity.luggage.current += luggage
        return self

    def remove_ride(self, ride_id: str, passengers: int, luggage: int) -> PoolGroup:
        """
        Drop a member and give back its seats/luggage. Unknown ids are a no-op.
        Raises ValueError if the counters would go negative: they no longer
        match the members.
        """
        if not self.has_ride(ride_id):
            return self

        if passengers > self.capacity.passengers.current or luggage > self.capacity.luggage.current:
            raise ValueError(
                f"Pool {self.id} counters out of step: removing ride {ride_id} "
                f"({passengers} seats/{luggage} bags) from "
                f"{self.capacity.passengers.current}/{self.capacity.luggage.current}"
            )

        self.ride_ids = [member_id for member_id in self.ride_ids if member_id != ride_id]
        self.capacity.passengers.current -= passengers
        self.capacity.luggage.current -= luggage
        return self

    @staticmethod # Factory method to create a forming pool seeded with the given rides
    def new(rides: Sequence, max_passengers: int = MAX_POOL_PASSENGERS, max_luggage: int = MAX_POOL_LUGGAGE) -> PoolGroup:
        pool = PoolGroup(
            id=str(uuid.uuid4()),
            capacity=PoolCapacity(
                passengers=CapacityCounter(0, max_passengers),
                luggage=CapacityCounter(0, max_luggage),
            ),
        )
        for ride in rides:
            pool.add_ride(ride.id, ride.passengers, ride.luggage)
        return pool
