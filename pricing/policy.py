"""
Purpose: Central configuration for fares (single source of truth).
What it does:

Stores all tunable fare parameters:

BASE_PRICE = 10.00 (also the per-rider minimum fare in a pool)

PRICE_PER_KM = 2.00

SHARED_RIDE_DISCOUNT = 0.30

SURGE_MULTIPLIER = 1.5 during the morning and evening peaks

MAX_PRICE = 10000 (sanity ceiling; prices above it are config errors)

Promotional discount codes.

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Tuple

DEFAULT_DISCOUNT_CODES: Dict[str, Decimal] = {
    "FIRST10": Decimal("0.10"),
    "POOL20": Decimal("0.20"),
    "AIRPORT15": Decimal("0.15"),
}


@dataclass(frozen=True)
class PricingPolicy:
    """
    Central configuration for ride and pool pricing.

    Notes:
    - Money is Decimal; every published amount is quantized to the cent.
    - Surge windows are local hours of the day, both ends inclusive.
    """

    base_price: Decimal = Decimal("10")
    price_per_km: Decimal = Decimal("2")
    shared_ride_discount: Decimal = Decimal("0.3")

    # --- Surge ---
    surge_multiplier: Decimal = Decimal("1.5")
    surge_windows: Tuple[Tuple[int, int], ...] = ((7, 9), (17, 20))

    # --- Sanity ceiling ---
    max_price: Decimal = Decimal("10000")

    discount_codes: Dict[str, Decimal] = field(default_factory=lambda: dict(DEFAULT_DISCOUNT_CODES))

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.base_price < 0:
            raise ValueError("base_price must be >= 0")

        if self.price_per_km < 0:
            raise ValueError("price_per_km must be >= 0")

        if not Decimal("0") <= self.shared_ride_discount < Decimal("1"):
            raise ValueError("shared_ride_discount must be in [0, 1)")

        if self.surge_multiplier < 1:
            raise ValueError("surge_multiplier must be >= 1")

        for start, end in self.surge_windows:
            if not (0 <= start <= 23 and 0 <= end <= 23 and start <= end):
                raise ValueError(f"invalid surge window ({start}, {end})")

        if self.max_price <= self.base_price:
            raise ValueError("max_price must be > base_price")

        for code, rate in self.discount_codes.items():
            if not Decimal("0") <= rate <= Decimal("1"):
                raise ValueError(f"discount rate for {code} must be in [0, 1]")


def default_pricing_policy() -> PricingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = PricingPolicy()
    p.validate()
    return p
