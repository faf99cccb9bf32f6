import pytest

from dispatch.state_machines.pool_state import PoolStateException
from pools.assembler import PoolAssembler
from pools.models import CapacityExceeded, PoolStatus
from rides.models import RideStatus
from routing.route_optimizer import respects_precedence


@pytest.fixture
def assembler(ride_store, pool_store, now):
    return PoolAssembler(ride_store, pool_store, clock=lambda: now)


def _assert_consistent(pool, ride_store):
    members = [ride_store.get(ride_id) for ride_id in pool.ride_ids]

    assert pool.capacity.passengers.current == sum(ride.passengers for ride in members)
    assert pool.capacity.luggage.current == sum(ride.luggage for ride in members)
    assert all(ride.pool_group_id == pool.id for ride in members)

    assert {wp.ride_id for wp in pool.route.waypoints} == set(pool.ride_ids)
    assert respects_precedence(pool.route.waypoints)
    assert sum(item.price for item in pool.pricing.price_per_ride) == pool.pricing.total_price
    for ride in members:
        assert ride.final_price == pool.pricing.price_for(ride.id).price


def test_assemble_creates_a_forming_pool(assembler, ride_factory, ride_store, pool_store):
    candidate = ride_store.save(ride_factory("old", passengers=1, luggage=2))
    request = ride_store.save(ride_factory("new", pickup=(31.001, -17.901), passengers=2, luggage=1))

    pool = assembler.assemble(request, candidate)

    assert pool.status == PoolStatus.FORMING
    assert pool.ride_ids == ["new", "old"]
    assert pool.capacity.passengers.current == 3
    assert pool.capacity.luggage.current == 3
    assert len(pool.route.waypoints) == 4

    stored = pool_store.get(pool.id)
    assert stored.ride_ids == pool.ride_ids
    for ride_id in ("new", "old"):
        assert ride_store.get(ride_id).status == RideStatus.MATCHED
    _assert_consistent(stored, ride_store)


def test_full_pool_becomes_ready(assembler, ride_factory, ride_store):
    candidate = ride_store.save(ride_factory("old", passengers=2))
    request = ride_store.save(ride_factory("new", passengers=2))

    pool = assembler.assemble(request, candidate)

    assert pool.is_full
    assert pool.status == PoolStatus.READY


def test_capacity_overflow_leaves_stores_untouched(assembler, ride_factory, ride_store, pool_store):
    candidate = ride_store.save(ride_factory("old", passengers=3))
    request = ride_store.save(ride_factory("new", passengers=3))

    with pytest.raises(CapacityExceeded):
        assembler.assemble(request, candidate)

    assert pool_store.all() == []
    assert ride_store.get("old").status == RideStatus.PENDING
    assert ride_store.get("new").pool_group_id is None


def test_reuses_forming_pool_with_spare_capacity(assembler, ride_factory, ride_store, pool_store):
    first = ride_store.save(ride_factory("first"))
    second = ride_store.save(ride_factory("second"))
    pool = assembler.assemble(second, first)

    third = ride_store.save(ride_factory("third", passengers=2))
    reused = assembler.assemble(third, ride_store.get("first"))

    assert reused.id == pool.id
    assert reused.ride_ids == ["second", "first", "third"]
    assert reused.is_full and reused.status == PoolStatus.READY
    assert len(pool_store.all()) == 1
    _assert_consistent(pool_store.get(pool.id), ride_store)


def test_no_reuse_when_existing_pool_lacks_room(assembler, ride_factory, ride_store, pool_store):
    first = ride_store.save(ride_factory("first", passengers=2))
    second = ride_store.save(ride_factory("second", passengers=1))
    pool = assembler.assemble(second, first)

    third = ride_store.save(ride_factory("third", passengers=2))
    # one seat left in the candidate's pool, and the candidate cannot be in two pools
    with pytest.raises(CapacityExceeded):
        assembler.assemble(third, ride_store.get("first"))

    assert pool_store.get(pool.id).ride_ids == ["second", "first"]


def test_detach_with_two_left_recomputes(assembler, ride_factory, ride_store, pool_store):
    a = ride_store.save(ride_factory("a"))
    b = ride_store.save(ride_factory("b", pickup=(31.001, -17.901)))
    pool = assembler.assemble(b, a)
    c = ride_store.save(ride_factory("c", pickup=(31.002, -17.899), luggage=2))
    pool = assembler.assemble(c, ride_store.get("a"))
    assert pool.ride_count == 3

    leaving = ride_store.get("c")
    updated = assembler.detach(pool_store.get(pool.id), leaving)

    assert updated.ride_ids == ["b", "a"]
    assert updated.status == PoolStatus.FORMING
    assert updated.capacity.luggage.current == 0
    assert leaving.pool_group_id is None
    _assert_consistent(pool_store.get(pool.id), ride_store)


def test_detach_second_to_last_dissolves_pool(assembler, ride_factory, ride_store, pool_store):
    a = ride_store.save(ride_factory("a"))
    b = ride_store.save(ride_factory("b"))
    pool = assembler.assemble(b, a)

    updated = assembler.detach(pool_store.get(pool.id), ride_store.get("b"))

    assert updated.status == PoolStatus.CANCELLED
    assert updated.ride_ids == []
    assert updated.capacity.passengers.current == 0
    assert updated.route.waypoints == []

    lone = ride_store.get("a")
    assert lone.status == RideStatus.PENDING
    assert lone.pool_group_id is None
    assert lone.final_price is None
    assert pool_store.get(pool.id).status == PoolStatus.CANCELLED


def test_detach_refuses_pools_already_on_the_road(assembler, ride_factory, ride_store, pool_store):
    a = ride_store.save(ride_factory("a"))
    b = ride_store.save(ride_factory("b"))
    pool = assembler.assemble(b, a)
    pool.status = PoolStatus.IN_PROGRESS

    with pytest.raises(PoolStateException):
        assembler.detach(pool, ride_store.get("a"))


def test_failed_recompute_does_not_commit(assembler, ride_factory, ride_store, pool_store):
    a = ride_store.save(ride_factory("a"))
    b = ride_store.save(ride_factory("b"))
    pool = assembler.assemble(b, a)

    stale = pool_store.get(pool.id)
    stale.ride_ids.append("ghost")
    stale.capacity.passengers.current += 1
    pool_store.save(stale)

    c = ride_store.save(ride_factory("c"))
    with pytest.raises(LookupError):
        assembler.assemble(c, ride_store.get("a"))

    assert ride_store.get("c").status == RideStatus.PENDING
    assert pool_store.get(pool.id).ride_ids == ["b", "a", "ghost"]


def test_third_rider_on_the_same_trip_is_priced(assembler, ride_factory, ride_store, pool_store):
    a = ride_store.save(ride_factory("a"))
    b = ride_store.save(ride_factory("b"))
    assembler.assemble(b, a)
    c = ride_store.save(ride_factory("c"))

    pool = assembler.assemble(c, ride_store.get("a"))

    assert pool.ride_ids == ["b", "a", "c"]
    shares = [item.price for item in pool.pricing.price_per_ride]
    assert shares[0] < 0
    assert sum(shares) == pool.pricing.total_price
    _assert_consistent(pool_store.get(pool.id), ride_store)
