"""
Purpose: Fare computation for single rides and pooled groups.
What it does:

- single_ride_price: (base + km x per_km) x surge, shared discount on top
- surge_factor: peak-hour multiplier from the pickup time (location independent)
- ride_request_price: estimated price of a submitted ride
- pool_pricing: split a pool's fare by direct-distance share, discount each
  share, floor at one base fare, then push the cent remainder onto the first
  member so the shares add up to the pool total exactly
- apply_discount_code / calculate_savings / validate_price

Typical public function signature:

- pool_pricing(pool, rides, policy) -> PoolPricing

Rule: Pricing reads the route totals; it never recomputes the route.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence

from pools.models import PoolGroup, PoolPricing, RidePrice
from rides.models import RideRequest
from .policy import PricingPolicy, default_pricing_policy

CENT = Decimal("0.01")


class InvalidPrice(ValueError):
    """Raised when a computed price falls outside the configured fare bounds."""
    pass


@dataclass(frozen=True)
class DiscountResult:
    original_price: Decimal
    discount_amount: Decimal
    final_price: Decimal
    discount_code: Optional[str]


@dataclass(frozen=True)
class Savings:
    amount: Decimal
    percentage: Decimal


def to_money(value) -> Decimal:
    """
    Quantize to the cent, rounding half up. Floats go through str() so
    2.675 stays 2.675 instead of its binary approximation.
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def surge_factor(pickup_time: datetime, policy: Optional[PricingPolicy] = None) -> Decimal:
    """
    policy.surge_multiplier when the pickup hour falls inside a surge window, else 1.
    """
    policy = policy or default_pricing_policy()
    hour = pickup_time.hour

    for start, end in policy.surge_windows:
        if start <= hour <= end:
            return policy.surge_multiplier

    return Decimal("1")


def single_ride_price(
    distance_km: float,
    passengers: int = 1,
    is_shared: bool = False,
    surge: Decimal = Decimal("1"),
    *,
    policy: Optional[PricingPolicy] = None,
) -> Decimal:
    """
    Vehicle fare for one trip. `passengers` does not change the fare; it is kept
    so every quote goes through the same signature.
    """
    policy = policy or default_pricing_policy()

    price = policy.base_price + Decimal(str(distance_km)) * policy.price_per_km
    price *= Decimal(str(surge))

    if is_shared:
        price *= Decimal("1") - policy.shared_ride_discount

    return to_money(price)


def minimum_single_ride_price(is_shared: bool, policy: Optional[PricingPolicy] = None) -> Decimal:
    """
    Cheapest fare a correctly configured system can quote: zero distance, no surge.
    """
    policy = policy or default_pricing_policy()
    return single_ride_price(0, is_shared=is_shared, policy=policy)


def ride_request_price(ride: RideRequest, policy: Optional[PricingPolicy] = None) -> Decimal:
    """
    Estimated price of a submitted ride, surge taken at its pickup time.
    """
    policy = policy or default_pricing_policy()
    return single_ride_price(
        ride.distance_km,
        ride.passengers,
        ride.allows_sharing,
        surge_factor(ride.pickup_time, policy),
        policy=policy,
    )


def validate_price(
    price: Decimal,
    *,
    minimum: Optional[Decimal] = None,
    policy: Optional[PricingPolicy] = None,
) -> Decimal:
    """
    Surface out-of-bounds prices instead of clamping them.
    `minimum` defaults to one base fare.
    """
    policy = policy or default_pricing_policy()
    minimum = policy.base_price if minimum is None else minimum

    if not isinstance(price, Decimal) or price.is_nan():
        raise InvalidPrice(f"Invalid price {price!r}: must be a number")

    if price < minimum:
        raise InvalidPrice(f"Price {price} cannot be less than {minimum}")

    if price > policy.max_price:
        raise InvalidPrice(f"Price {price} exceeds maximum allowed: {policy.max_price}")

    return price


def pool_pricing(
    pool: PoolGroup,
    rides: Sequence[RideRequest],
    policy: Optional[PricingPolicy] = None,
) -> PoolPricing:
    """
    Per-rider allocation of a pool's fare.

    total = base_price x members + route_km x price_per_km
    share_i = max(total x ratio_i x (1 - discount), base_price)
      ratio_i = direct_km_i / route_km  (1 / members when route_km is 0)

    After rounding, total - sum(shares) is added to the first member (in
    pool.ride_ids order), so sum(shares) == total to the cent. The shares are
    published as reconciled: when the direct-distance ratios add up to more
    than 1 (riders on overlapping trips) the first share can fall below the
    base fare, or below zero. Only the pool total is bounds-checked.
    """
    policy = policy or default_pricing_policy()

    by_id: Dict[str, RideRequest] = {ride.id: ride for ride in rides}
    members = [by_id[ride_id] for ride_id in pool.ride_ids if ride_id in by_id]
    if len(members) != pool.ride_count:
        missing = [ride_id for ride_id in pool.ride_ids if ride_id not in by_id]
        raise ValueError(f"Pool {pool.id} members not supplied for pricing: {missing}")

    if not members:
        return PoolPricing()

    count = Decimal(len(members))
    route_km = Decimal(str(pool.route.total_distance_km or 0))

    base_price = policy.base_price * count
    distance_price = route_km * policy.price_per_km
    total_price = to_money(base_price + distance_price)

    shares: List[Decimal] = []
    discounts: List[Decimal] = []
    for ride in members:
        if route_km > 0:
            ratio = Decimal(str(ride.distance_km)) / route_km
        else:
            ratio = Decimal("1") / count

        raw_share = total_price * ratio
        discount = raw_share * policy.shared_ride_discount
        share = max(raw_share - discount, policy.base_price)

        shares.append(to_money(share))
        discounts.append(to_money(discount))

    # reconciliation: whatever the rounded shares miss (or overshoot) lands on the first rider
    shares[0] += total_price - sum(shares)

    price_per_ride = [
        RidePrice(ride_id=ride.id, price=share, discount=discount)
        for ride, share, discount in zip(members, shares, discounts)
    ]

    validate_price(total_price, policy=policy)

    return PoolPricing(
        base_price=to_money(base_price),
        total_price=total_price,
        price_per_ride=price_per_ride,
    )


def apply_discount_code(
    price: Decimal,
    code: Optional[str],
    policy: Optional[PricingPolicy] = None,
) -> DiscountResult:
    """
    Unknown (or missing) codes apply 0%: no error, the price passes through.
    """
    policy = policy or default_pricing_policy()
    price = Decimal(str(price))

    rate = policy.discount_codes.get(code, Decimal("0")) if code else Decimal("0")
    discount_amount = price * rate

    return DiscountResult(
        original_price=to_money(price),
        discount_amount=to_money(discount_amount),
        final_price=to_money(price - discount_amount),
        discount_code=code,
    )


def calculate_savings(original_price: Decimal, pooled_price: Decimal) -> Savings:
    original_price = Decimal(str(original_price))
    pooled_price = Decimal(str(pooled_price))

    amount = original_price - pooled_price
    if original_price == 0:
        return Savings(amount=to_money(amount), percentage=Decimal("0.00"))

    return Savings(
        amount=to_money(amount),
        percentage=to_money(amount / original_price * 100),
    )
