import pytest
from datetime import timedelta

from rides.matching import (
    MatchingPolicy,
    NoCompatibleRide,
    best_candidate,
    compatibility_score,
    default_matching_policy,
    evaluate_compatibility,
    find_compatible,
    search_candidates,
)
from rides.matching.compatibility import direction_similarity, effective_max_detour_km, shared_route_distance
from rides.models import RideStatus, SharingPreferences, resolve_sharing_preferences


@pytest.fixture
def policy():
    return default_matching_policy()


def test_identical_requests_score_near_max(ride_factory, policy):
    """
    Same pickup, same dropoff, same time: no distance penalty, full time bonus,
    identical direction.
    """
    request = ride_factory("new")
    candidate = ride_factory("old")

    check = evaluate_compatibility(request, candidate, policy)
    assert check.is_compatible
    assert check.request_detour_km == pytest.approx(0)

    assert compatibility_score(request, candidate, policy) == pytest.approx(150)


def test_time_gap_reduces_bonus(ride_factory, policy, now):
    request = ride_factory("new", requested_at=now)
    candidate = ride_factory("old", requested_at=now - timedelta(minutes=5))
    assert compatibility_score(request, candidate, policy) == pytest.approx(145)

    stale_ish = ride_factory("older", requested_at=now - timedelta(minutes=45))
    assert compatibility_score(request, stale_ish, policy) == pytest.approx(130)


def test_score_is_floored_at_zero(ride_factory):
    harsh = MatchingPolicy(pickup_distance_weight=1000)
    request = ride_factory("new", pickup=(31.0, -17.90))
    candidate = ride_factory("old", pickup=(31.0, -17.91))
    assert compatibility_score(request, candidate, harsh) == 0


def test_pickups_too_far_apart(ride_factory, policy):
    # 0.03 degrees of latitude is ~3.3 km
    request = ride_factory("new", pickup=(31.0, -17.90))
    candidate = ride_factory("old", pickup=(31.0, -17.93))

    check = evaluate_compatibility(request, candidate, policy)
    assert not check.is_compatible
    assert check.reason == "pickups too far apart"
    assert check.pickup_distance_km > policy.max_pickup_distance_km


def test_dropoffs_too_far_apart(ride_factory, policy):
    request = ride_factory("new", dropoff=(31.0, -17.80))
    candidate = ride_factory("old", dropoff=(31.0, -17.76))

    check = evaluate_compatibility(request, candidate, policy)
    assert not check.is_compatible
    assert check.reason == "dropoffs too far apart"


def test_candidate_must_be_pending_and_sharing(ride_factory, policy):
    request = ride_factory("new")

    matched = ride_factory("matched", status=RideStatus.MATCHED)
    assert evaluate_compatibility(request, matched, policy).reason == "candidate not pending"

    solo = ride_factory("solo", allow_sharing=False)
    assert evaluate_compatibility(request, solo, policy).reason == "candidate does not allow sharing"


def test_each_ride_is_held_to_its_own_detour_tolerance(ride_factory, policy):
    """
    The new request starts 1.11 km north of the candidate and both end at the
    same place, so the proxy route costs the request ~1.11 km and the candidate nothing.
    """
    candidate = ride_factory("old", pickup=(31.0, -17.91), dropoff=(31.0, -17.80), max_detour_km=0.5)

    fussy_request = ride_factory("fussy", pickup=(31.0, -17.90), dropoff=(31.0, -17.80), max_detour_km=0.5)
    check = evaluate_compatibility(fussy_request, candidate, policy)
    assert not check.is_compatible
    assert check.reason == "detour exceeds tolerance"
    assert check.request_detour_km == pytest.approx(1.11, abs=0.02)
    assert check.candidate_detour_km == pytest.approx(0, abs=0.02)

    relaxed_request = ride_factory("relaxed", pickup=(31.0, -17.90), dropoff=(31.0, -17.80), max_detour_km=2)
    assert evaluate_compatibility(relaxed_request, candidate, policy).is_compatible


def test_shared_route_distance_is_the_fixed_proxy(ride_factory):
    first = ride_factory("a", pickup=(31.0, -17.90), dropoff=(31.0, -17.80))
    second = ride_factory("b", pickup=(31.0, -17.91), dropoff=(31.0, -17.81))
    # 1.11 + 11.12 + 1.11
    assert shared_route_distance(first, second) == pytest.approx(13.34, abs=0.01)


def test_effective_detour_falls_back_to_policy(ride_factory, policy):
    assert effective_max_detour_km(ride_factory("a"), policy) == policy.default_max_detour_km
    assert effective_max_detour_km(ride_factory("b", max_detour_km=1.5), policy) == 1.5


def test_direction_similarity(ride_factory):
    north = ride_factory("north", pickup=(31.0, -17.90), dropoff=(31.0, -17.80))
    south = ride_factory("south", pickup=(31.0, -17.80), dropoff=(31.0, -17.90))

    assert direction_similarity(north, north) == pytest.approx(1)
    assert direction_similarity(north, south) == pytest.approx(0, abs=1e-6)


def test_find_compatible_ranks_best_first(ride_factory, policy):
    request = ride_factory("new")
    near = ride_factory("near", pickup=(31.0, -17.901))
    far = ride_factory("far", pickup=(31.0, -17.915))
    incompatible = ride_factory("incompatible", pickup=(31.0, -17.95))

    ranked = find_compatible(request, [far, incompatible, near], policy=policy)

    assert [c.ride.id for c in ranked] == ["near", "far"]
    assert ranked[0].score > ranked[1].score


def test_ties_keep_discovery_order(ride_factory, policy):
    request = ride_factory("new")
    twins = [ride_factory("twin_1"), ride_factory("twin_2"), ride_factory("twin_3")]

    ranked = find_compatible(request, twins, policy=policy)
    assert [c.ride.id for c in ranked] == ["twin_1", "twin_2", "twin_3"]


def test_request_never_matches_itself(ride_factory, policy):
    request = ride_factory("new")
    assert find_compatible(request, [request], policy=policy) == []


def test_request_that_does_not_share_gets_nothing(ride_factory, policy):
    request = ride_factory("new", allow_sharing=False)
    assert find_compatible(request, [ride_factory("old")], policy=policy) == []


def test_candidate_cap_applies_before_scoring(ride_factory):
    capped = MatchingPolicy(max_candidates=1)
    request = ride_factory("new")
    okay = ride_factory("okay", pickup=(31.0, -17.91))
    perfect = ride_factory("perfect")

    ranked = find_compatible(request, [okay, perfect], policy=capped)
    assert [c.ride.id for c in ranked] == ["okay"]


def test_best_candidate(ride_factory, policy):
    request = ride_factory("new")
    assert best_candidate(request, [ride_factory("old")], policy=policy).ride.id == "old"

    with pytest.raises(NoCompatibleRide):
        best_candidate(request, [], policy=policy)


def test_search_candidates_skips_stale_requests(ride_factory, ride_store, policy, now):
    ride_store.save(ride_factory("fresh", requested_at=now - timedelta(minutes=10)))
    ride_store.save(ride_factory("stale", requested_at=now - timedelta(minutes=31)))
    request = ride_factory("new", requested_at=now)
    ride_store.save(request)

    found = search_candidates(request, ride_store, policy=policy, now=now)
    assert [ride.id for ride in found] == ["fresh"]


def test_policy_validation():
    with pytest.raises(ValueError):
        MatchingPolicy(matching_radius_km=0).validate()
    with pytest.raises(ValueError):
        MatchingPolicy(max_candidates=0).validate()


def test_resolve_sharing_preferences():
    resolved = resolve_sharing_preferences(
        SharingPreferences(max_detour_tolerance_km=None, allow_sharing=None),
        SharingPreferences(max_detour_tolerance_km=3.0, allow_sharing=None),
        default_max_detour_km=5.0,
    )
    assert resolved == SharingPreferences(max_detour_tolerance_km=3.0, allow_sharing=True)

    resolved = resolve_sharing_preferences(
        SharingPreferences(max_detour_tolerance_km=1.0, allow_sharing=False),
        SharingPreferences(max_detour_tolerance_km=3.0, allow_sharing=True),
        default_max_detour_km=5.0,
    )
    assert resolved == SharingPreferences(max_detour_tolerance_km=1.0, allow_sharing=False)

    assert resolve_sharing_preferences(None, None, default_max_detour_km=5.0).max_detour_tolerance_km == 5.0
