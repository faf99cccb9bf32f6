"""
Matching subpackage for the Rides domain.

Public API:
- find_compatible
- best_candidate
- search_candidates
- ScoredCandidate
- MatchingPolicy
"""

from .compatibility import CompatibilityCheck, evaluate_compatibility
from .engine import NoCompatibleRide, best_candidate, find_compatible, search_candidates
from .policy import MatchingPolicy, default_matching_policy
from .scoring import ScoredCandidate, compatibility_score, rank_candidates

__all__ = [
    "find_compatible",
    "best_candidate",
    "search_candidates",
    "NoCompatibleRide",
    "ScoredCandidate",
    "CompatibilityCheck",
    "evaluate_compatibility",
    "compatibility_score",
    "rank_candidates",
    "MatchingPolicy",
    "default_matching_policy",
]
