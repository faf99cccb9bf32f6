"""
Purpose: The matching entry point (single call site for the pipeline).
What it does:

- asks the ride store for nearby pending requests (radius + candidate cap from policy)
- skips stale requests
- filters and ranks them (compatibility.py + scoring.py)
- returns candidates best first

Typical public function signature:

- find_compatible(request, candidate_pool, policy=...) -> List[ScoredCandidate]
- search_candidates(request, ride_store, policy=...) -> List[RideRequest]

Rule: Engine is the only file other modules should call directly for matching.
It never mutates rides or pools.
"""

# rides/matching/engine.py

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from ..models import RideRequest
from .policy import MatchingPolicy, default_matching_policy
from .scoring import ScoredCandidate, rank_candidates


class NoCompatibleRide(Exception):
    """
    Not a failure: the request simply proceeds unpooled.
    """
    pass


def search_candidates(
    request: RideRequest,
    ride_store,
    *,
    policy: Optional[MatchingPolicy] = None,
    now: Optional[datetime] = None,
) -> List[RideRequest]:
    """
    Pending requests near the new request's pickup, nearest first, capped
    at policy.max_candidates. Stale requests are left out.
    """
    policy = policy or default_matching_policy()
    now = now or datetime.now()
    ttl = timedelta(minutes=policy.request_ttl_minutes)

    nearby = ride_store.find_nearby_pending(
        request.pickup.coordinate,
        policy.matching_radius_km,
        exclude_id=request.id,
        limit=policy.max_candidates,
    )
    return [ride for ride in nearby if not ride.is_stale(now, ttl)]


def find_compatible(
    request: RideRequest,
    candidate_pool: Sequence[RideRequest],
    *,
    policy: Optional[MatchingPolicy] = None,
) -> List[ScoredCandidate]:
    """
    Main matching entry point (pure algorithm).

    Parameters
    ----------
    request:
        The newly submitted ride request.
    candidate_pool:
        Requests to consider, in discovery order (usually nearest first).
    policy:
        MatchingPolicy controlling the gates and score weights.

    Returns
    -------
    Compatible candidates, best first. Empty when the request itself does
    not allow sharing.
    """
    policy = policy or default_matching_policy()
    policy.validate()

    if not request.allows_sharing or not candidate_pool:
        return []

    # cap applies even if the caller passed a larger pool
    return rank_candidates(request, list(candidate_pool)[: policy.max_candidates], policy)


def best_candidate(
    request: RideRequest,
    candidate_pool: Sequence[RideRequest],
    *,
    policy: Optional[MatchingPolicy] = None,
) -> ScoredCandidate:
    """
    Top-ranked candidate only; pools are formed with a single partner at a time.
    Raises NoCompatibleRide when there is none.
    """
    ranked = find_compatible(request, candidate_pool, policy=policy)
    if not ranked:
        raise NoCompatibleRide(f"No compatible ride for request {request.id}")
    return ranked[0]
