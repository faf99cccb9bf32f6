"""
Purpose: Central configuration for ride matching (single source of truth).
What it does:

Stores all tunable thresholds/caps:

MAX_PICKUP_DISTANCE_KM = 2

MAX_DROPOFF_DISTANCE_KM = 3

DEFAULT_MAX_DETOUR_KM = 5

MATCHING_RADIUS_KM = 10

MAX_CANDIDATES = 20

plus the weights of the compatibility score.

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MatchingPolicy:
    """
    Central configuration for finding a shareable ride.

    Notes:
    - The proximity caps and the detour test are hard gates; a candidate
      failing any of them is never scored.
    - The score weights only order candidates that passed the gates.
    """

    # --- Hard gates ---
    max_pickup_distance_km: float = 2.0
    max_dropoff_distance_km: float = 3.0

    # Used when neither the request nor the rider sets a tolerance.
    default_max_detour_km: float = 5.0

    # --- Candidate search (performance / scalability) ---
    matching_radius_km: float = 10.0
    max_candidates: int = 20

    # Pending requests older than this are skipped as expired.
    request_ttl_minutes: int = 30

    # --- Score weights ---
    # score = base - w_pickup*pickup_km - w_dropoff*dropoff_km
    #         + max(0, time_bonus - minutes_apart) + w_direction*similarity
    base_score: float = 100.0
    pickup_distance_weight: float = 5.0
    dropoff_distance_weight: float = 3.0
    time_bonus_minutes: float = 20.0
    direction_weight: float = 30.0

    def validate(self) -> None:
        """
        Basic sanity checks. Call once at startup if you want.
        """
        if self.max_pickup_distance_km < 0:
            raise ValueError("max_pickup_distance_km must be >= 0")

        if self.max_dropoff_distance_km < 0:
            raise ValueError("max_dropoff_distance_km must be >= 0")

        if self.default_max_detour_km < 0:
            raise ValueError("default_max_detour_km must be >= 0")

        if self.matching_radius_km <= 0:
            raise ValueError("matching_radius_km must be > 0")

        if self.max_candidates <= 0:
            raise ValueError("max_candidates must be > 0")

        if self.request_ttl_minutes <= 0:
            raise ValueError("request_ttl_minutes must be > 0")

        if self.time_bonus_minutes < 0:
            raise ValueError("time_bonus_minutes must be >= 0")


def default_matching_policy() -> MatchingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = MatchingPolicy()
    p.validate()
    return p
