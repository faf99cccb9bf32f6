"""
Purpose: Rank compatible candidates for a new ride request.
What it does:

Computes for each candidate that passed the hard gates:

score = 100

  - 5 x pickup distance (km)

  - 3 x dropoff distance (km)

  + max(0, 20 - minutes between request times)

  + 30 x direction similarity

floored at 0.

Sorts best first. Ties keep discovery order (stable sort), so the nearest
candidate returned by the store wins a tie.

Rule: Scoring orders candidates; it does not decide compatibility or touch pools.
"""

# rides/matching/scoring.py

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..models import RideRequest
from .compatibility import CompatibilityCheck, direction_similarity, evaluate_compatibility
from .policy import MatchingPolicy


@dataclass(frozen=True)
class ScoredCandidate:
    """
    A compatible candidate with its score and the metrics that produced it.
    """
    ride: RideRequest
    score: float
    check: CompatibilityCheck


def minutes_between(first: RideRequest, second: RideRequest) -> float:
    return abs((first.requested_at - second.requested_at).total_seconds()) / 60


def compatibility_score(
    request: RideRequest,
    candidate: RideRequest,
    policy: MatchingPolicy,
    *,
    check: Optional[CompatibilityCheck] = None,
) -> float:
    """
    Higher is better. `check` lets callers reuse distances already computed by the gates.
    """
    if check is None:
        check = evaluate_compatibility(request, candidate, policy)

    score = policy.base_score
    score -= check.pickup_distance_km * policy.pickup_distance_weight
    score -= check.dropoff_distance_km * policy.dropoff_distance_weight
    score += max(0.0, policy.time_bonus_minutes - minutes_between(request, candidate))
    score += direction_similarity(request, candidate) * policy.direction_weight

    return max(0.0, score)


def rank_candidates(
    request: RideRequest,
    candidates: Sequence[RideRequest],
    policy: MatchingPolicy,
) -> List[ScoredCandidate]:
    """
    Drop incompatible candidates, score the rest, best first.
    """
    scored: List[ScoredCandidate] = []

    for candidate in candidates:
        if candidate.id == request.id:
            continue

        check = evaluate_compatibility(request, candidate, policy)
        if not check.is_compatible:
            continue

        scored.append(
            ScoredCandidate(
                ride=candidate,
                score=compatibility_score(request, candidate, policy, check=check),
                check=check,
            )
        )

    # list.sort is stable: equal scores keep discovery order
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored
