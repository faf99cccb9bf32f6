"""
Pricing package.

Public API:
- single_ride_price, ride_request_price, surge_factor
- pool_pricing
- apply_discount_code, calculate_savings, validate_price
- PricingPolicy
"""

from .engine import (
    DiscountResult,
    InvalidPrice,
    Savings,
    apply_discount_code,
    calculate_savings,
    minimum_single_ride_price,
    pool_pricing,
    ride_request_price,
    single_ride_price,
    surge_factor,
    to_money,
    validate_price,
)
from .policy import PricingPolicy, default_pricing_policy

__all__ = [
    "single_ride_price",
    "ride_request_price",
    "minimum_single_ride_price",
    "surge_factor",
    "pool_pricing",
    "apply_discount_code",
    "calculate_savings",
    "validate_price",
    "to_money",
    "InvalidPrice",
    "DiscountResult",
    "Savings",
    "PricingPolicy",
    "default_pricing_policy",
]
