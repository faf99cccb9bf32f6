"""
Purpose: Domain models for the ride-request capability.
What it does:
- Defines core data structures:
- Location (coordinate + address + optional city/airport/terminal tags)
- SharingPreferences (max detour tolerance, allow sharing)
- RideRequest (rider, pickup/dropoff, passengers, luggage, status, pool reference, prices)

Defines enums/constants:
- RideStatus = pending | matched | assigned | cancelled | completed | expired

Rule: No matching, routing or pricing logic. Models only.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

from routing.geo import AVERAGE_SPEED_KMH, Coordinate, distance_km

MAX_PASSENGERS_PER_REQUEST = 4
MAX_LUGGAGE_PER_REQUEST = 8


class RideStatus(str, Enum):
    PENDING = "pending"
    MATCHED = "matched"
    ASSIGNED = "assigned"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    EXPIRED = "expired"


TERMINAL_RIDE_STATUSES = frozenset({RideStatus.CANCELLED, RideStatus.COMPLETED, RideStatus.EXPIRED})


@dataclass(frozen=True)
class Location:
    """
    Embedded value: where a rider is picked up or dropped off.
    """
    coordinate: Coordinate
    address: str
    city: Optional[str] = None
    airport: Optional[str] = None
    terminal: Optional[str] = None


@dataclass(frozen=True)
class SharingPreferences:
    """
    None on max_detour_tolerance_km means "not set here, fall back".
    """
    max_detour_tolerance_km: Optional[float] = None
    allow_sharing: Optional[bool] = None


def resolve_sharing_preferences(
    requested: Optional[SharingPreferences],
    rider_defaults: Optional[SharingPreferences],
    *,
    default_max_detour_km: float,
) -> SharingPreferences:
    """
    Request value, else rider account default, else system default.
    """
    requested = requested or SharingPreferences()
    rider_defaults = rider_defaults or SharingPreferences()

    detour = requested.max_detour_tolerance_km
    if detour is None:
        detour = rider_defaults.max_detour_tolerance_km
    if detour is None:
        detour = default_max_detour_km

    allow = requested.allow_sharing
    if allow is None:
        allow = rider_defaults.allow_sharing
    if allow is None:
        allow = True

    return SharingPreferences(max_detour_tolerance_km=detour, allow_sharing=allow)


@dataclass
class RideRequest:
    """
    A rider's request to be driven from pickup to dropoff, possibly in a shared pool.
    """
    id: str
    rider_id: str
    pickup: Location
    dropoff: Location
    passengers: int = 1
    luggage: int = 0
    preferences: SharingPreferences = field(default_factory=SharingPreferences)

    status: RideStatus = RideStatus.PENDING
    pool_group_id: Optional[str] = None

    estimated_price: Decimal = Decimal("0.00")
    final_price: Optional[Decimal] = None

    # great-circle pickup -> dropoff, km
    distance_km: float = 0.0
    estimated_duration_min: float = 0.0

    requested_at: datetime = field(default_factory=datetime.now)
    scheduled_for: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    def __post_init__(self):
        if not 1 <= self.passengers <= MAX_PASSENGERS_PER_REQUEST:
            raise ValueError(f"passengers must be between 1 and {MAX_PASSENGERS_PER_REQUEST}")
        if not 0 <= self.luggage <= MAX_LUGGAGE_PER_REQUEST:
            raise ValueError(f"luggage must be between 0 and {MAX_LUGGAGE_PER_REQUEST}")

    @property
    def allows_sharing(self) -> bool:
        return self.preferences.allow_sharing is not False

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RIDE_STATUSES

    @property
    def pickup_time(self) -> datetime:
        return self.scheduled_for or self.requested_at

    def is_stale(self, now: datetime, ttl: timedelta) -> bool:
        """
        A non-terminal request older than ttl is no longer worth matching against.
        """
        if self.is_terminal:
            return False
        return now >= self.requested_at + ttl

    @classmethod
    def new(
        cls,
        rider_id: str,
        pickup: Location,
        dropoff: Location,
        passengers: int = 1,
        luggage: int = 0,
        preferences: Optional[SharingPreferences] = None,
        requested_at: Optional[datetime] = None,
        scheduled_for: Optional[datetime] = None,
        ride_id: Optional[str] = None,
    ) -> RideRequest:
        # factory: fills identity and the derived direct distance
        direct = distance_km(pickup.coordinate, dropoff.coordinate)
        return cls(
            id=ride_id or str(uuid.uuid4()),
            rider_id=rider_id,
            pickup=pickup,
            dropoff=dropoff,
            passengers=passengers,
            luggage=luggage,
            preferences=preferences or SharingPreferences(),
            distance_km=direct,
            estimated_duration_min=round(direct / AVERAGE_SPEED_KMH * 60, 2),
            requested_at=requested_at or datetime.now(),
            scheduled_for=scheduled_for,
        )
