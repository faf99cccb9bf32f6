#Purpose: Environment-driven configuration.
#Reads a .env file (if present) and builds the policies the pooling core uses.
#Example .env:
#BASE_PRICE=10
#PRICE_PER_KM=2
#MATCHING_RADIUS_KM=10
#LOG_LEVEL=INFO
#Unset variables fall back to the defaults below.

from dotenv import load_dotenv
import os
from decimal import Decimal
from typing import Tuple

from dispatch.rate_limiter import SlidingWindowRateLimiter
from pricing.policy import PricingPolicy
from rides.matching.policy import MatchingPolicy

load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


def _env_decimal(name: str, default: str) -> Decimal:
    value = os.getenv(name)
    return Decimal(value if value not in (None, "") else default)


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def matching_policy_from_env() -> MatchingPolicy:
    policy = MatchingPolicy(
        default_max_detour_km=_env_float("MAX_DETOUR_TOLERANCE_KM", 5.0),
        matching_radius_km=_env_float("MATCHING_RADIUS_KM", 10.0),
        max_candidates=_env_int("MAX_MATCH_CANDIDATES", 20),
        request_ttl_minutes=_env_int("REQUEST_TTL_MINUTES", 30),
    )
    policy.validate()
    return policy


def pricing_policy_from_env() -> PricingPolicy:
    policy = PricingPolicy(
        base_price=_env_decimal("BASE_PRICE", "10"),
        price_per_km=_env_decimal("PRICE_PER_KM", "2"),
        shared_ride_discount=_env_decimal("SHARED_RIDE_DISCOUNT", "0.3"),
        surge_multiplier=_env_decimal("SURGE_MULTIPLIER", "1.5"),
        max_price=_env_decimal("MAX_PRICE", "10000"),
    )
    policy.validate()
    return policy


def pool_capacity_from_env() -> Tuple[int, int]:
    """
    (max passengers, max luggage) per vehicle.
    """
    return _env_int("MAX_PASSENGERS_PER_CAB", 4), _env_int("MAX_LUGGAGE_PER_CAB", 8)


def rate_limiter_from_env() -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(
        max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", 100),
        window_seconds=_env_float("RATE_LIMIT_WINDOW_SECONDS", 60),
    )
