import pytest
from datetime import datetime

from rides.models import Location, RideRequest, RideStatus, SharingPreferences
from routing.geo import Coordinate
from stores.memory import InMemoryPoolGroupStore, InMemoryRideRequestStore

# Monday noon: outside both surge windows
NOW = datetime(2026, 3, 2, 12, 0)


def make_ride(
    ride_id,
    pickup=(31.0, -17.90),
    dropoff=(31.0, -17.80),
    passengers=1,
    luggage=0,
    allow_sharing=None,
    max_detour_km=None,
    requested_at=NOW,
    status=RideStatus.PENDING,
    distance_km=None,
):
    ride = RideRequest.new(
        rider_id=f"rider_{ride_id}",
        pickup=Location(coordinate=Coordinate(*pickup), address=f"{ride_id} pickup", airport="HRE"),
        dropoff=Location(coordinate=Coordinate(*dropoff), address=f"{ride_id} dropoff", city="Harare"),
        passengers=passengers,
        luggage=luggage,
        preferences=SharingPreferences(max_detour_tolerance_km=max_detour_km, allow_sharing=allow_sharing),
        requested_at=requested_at,
        ride_id=ride_id,
    )
    ride.status = status
    if distance_km is not None:
        ride.distance_km = distance_km
    return ride


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def ride_factory():
    return make_ride


@pytest.fixture
def ride_store():
    return InMemoryRideRequestStore()


@pytest.fixture
def pool_store():
    return InMemoryPoolGroupStore()
