import pytest
from datetime import timedelta

from pools.models import CapacityExceeded, PoolGroup, PoolStatus
from rides.models import RideStatus


def test_ride_request_new_fills_derived_fields(ride_factory, now):
    ride = ride_factory("a", pickup=(31.0, -17.90), dropoff=(31.0, -17.80))

    assert ride.distance_km == pytest.approx(11.12)
    assert ride.estimated_duration_min == pytest.approx(16.68)
    assert ride.pickup_time == now
    assert ride.status == RideStatus.PENDING
    assert ride.allows_sharing


@pytest.mark.parametrize("passengers, luggage", [(0, 0), (5, 0), (1, -1), (1, 9)])
def test_ride_request_rejects_out_of_range_counts(passengers, luggage, ride_factory):
    with pytest.raises(ValueError):
        ride_factory("a", passengers=passengers, luggage=luggage)


def test_is_stale(ride_factory, now):
    ttl = timedelta(minutes=30)
    ride = ride_factory("a", requested_at=now - timedelta(minutes=30))

    assert ride.is_stale(now, ttl)
    assert not ride.is_stale(now - timedelta(minutes=1), ttl)

    ride.status = RideStatus.COMPLETED
    assert not ride.is_stale(now, ttl)


def test_capacity_tracks_members(ride_factory):
    a = ride_factory("a", passengers=2, luggage=3)
    b = ride_factory("b", passengers=1, luggage=4)
    pool = PoolGroup.new([a, b])

    assert pool.status == PoolStatus.FORMING
    assert pool.capacity.passengers.current == 3
    assert pool.capacity.luggage.current == 7
    assert pool.can_accommodate(1, 1)
    assert not pool.can_accommodate(1, 2)

    # adding a member twice changes nothing
    pool.add_ride("a", 2, 3)
    assert pool.ride_ids == ["a", "b"]
    assert pool.capacity.passengers.current == 3

    pool.remove_ride("a", 2, 3)
    assert pool.ride_ids == ["b"]
    assert pool.capacity.passengers.current == 1
    assert pool.capacity.luggage.current == 4

    pool.remove_ride("unknown", 4, 8)
    assert pool.capacity.passengers.current == 1


def test_add_ride_over_capacity_raises(ride_factory):
    pool = PoolGroup.new([ride_factory("a", passengers=4)])

    assert pool.is_full
    with pytest.raises(CapacityExceeded):
        pool.add_ride("b", 1, 0)
    assert pool.ride_ids == ["a"]


def test_remove_ride_refuses_counters_out_of_step(ride_factory):
    pool = PoolGroup.new([ride_factory("a", passengers=1, luggage=1), ride_factory("b")])

    with pytest.raises(ValueError):
        pool.remove_ride("a", 3, 0)
    with pytest.raises(ValueError):
        pool.remove_ride("a", 1, 2)

    assert pool.ride_ids == ["a", "b"]
    assert pool.capacity.passengers.current == 2
    assert pool.capacity.luggage.current == 1
