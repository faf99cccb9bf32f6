import logging
import os
import random
from typing import List

import pandas as pd

from config import log_level, matching_policy_from_env, pool_capacity_from_env, pricing_policy_from_env
from dispatch.pooling_service import PoolingService
from pools.models import PoolStatus
from rides.models import Location, RideRequest, SharingPreferences
from routing.geo import Coordinate
from stores.memory import InMemoryPoolGroupStore, InMemoryRideRequestStore

logger = logging.getLogger(__name__)


def load_requests(filepath="sampledata/ride_requests.csv", limit=100) -> List[RideRequest]:
    # Resolve the correct path depending on where the user runs the script from.
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    df = pd.read_csv(os.path.join(base_dir, filepath), parse_dates=["requested_at"]).head(limit)

    rides = []
    for row in df.itertuples(index=False):
        max_detour = None if pd.isna(row.max_detour_km) else float(row.max_detour_km)
        rides.append(
            RideRequest.new(
                rider_id=row.rider_id,
                pickup=Location(
                    coordinate=Coordinate(lon=float(row.pickup_lon), lat=float(row.pickup_lat)),
                    address=row.pickup_address,
                    airport=row.airport,
                    terminal=row.terminal,
                ),
                dropoff=Location(
                    coordinate=Coordinate(lon=float(row.dropoff_lon), lat=float(row.dropoff_lat)),
                    address=row.dropoff_address,
                    city=row.city,
                ),
                passengers=int(row.passengers),
                luggage=int(row.luggage),
                preferences=SharingPreferences(
                    max_detour_tolerance_km=max_detour,
                    allow_sharing=bool(row.allow_sharing),
                ),
                requested_at=row.requested_at.to_pydatetime(),
                ride_id=row.ride_id,
            )
        )
    return rides


def run_simulation(limit=100, cancellations=5):
    logging.basicConfig(
        level=log_level(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    print("=== STARTING AIRPORT POOLING SIMULATION ===")

    # 1. Load Data
    rides = load_requests(limit=limit)
    print(f"Loaded {len(rides)} ride requests.\n")

    # 2. Configure System
    ride_store = InMemoryRideRequestStore()
    pool_store = InMemoryPoolGroupStore()
    max_passengers, max_luggage = pool_capacity_from_env()

    # Replay the requests on their own timeline so TTL and time bonuses behave as live
    sim_clock = {"now": rides[0].requested_at if rides else None}
    service = PoolingService(
        ride_store,
        pool_store,
        matching_policy=matching_policy_from_env(),
        pricing_policy=pricing_policy_from_env(),
        clock=lambda: sim_clock["now"],
        max_passengers=max_passengers,
        max_luggage=max_luggage,
    )

    # 3. Submit every request through createAndMatch
    pooled = 0
    failures = 0
    for ride in sorted(rides, key=lambda r: r.requested_at):
        sim_clock["now"] = ride.requested_at
        result = service.create_and_match(ride)
        if result.match_error:
            failures += 1
        if result.is_pooled:
            pooled += 1
            print(
                f"[POOLED] {ride.id} -> pool {result.pool_group.id[:8]} "
                f"({result.pool_group.ride_count} rides) "
                f"saves {result.savings.amount if result.savings else 'N/A'}"
            )

    # 4. Cancel a few pooled riders to exercise the removal cascade
    pooled_rides = [r for r in ride_store.all() if r.pool_group_id]
    for ride in random.sample(pooled_rides, min(cancellations, len(pooled_rides))):
        pool = service.cancel_membership(ride.id, reason="simulated cancellation")
        if pool is None:
            # an earlier cancellation already dissolved its pool
            print(f"[CANCELLED] {ride.id} (no longer pooled)")
            continue
        print(f"[CANCELLED] {ride.id} -> pool {pool.id[:8]} now {pool.status.value} with {pool.ride_count} rides")

    # 5. Summary
    pools = pool_store.all()
    live = [p for p in pools if p.status in (PoolStatus.FORMING, PoolStatus.READY)]

    print("\n--- Pools Summary ---")
    for pool in live:
        print(
            f"Pool {pool.id[:8]} [{pool.status.value}] rides={pool.ride_ids} "
            f"route={pool.route.total_distance_km}km/{pool.route.total_duration_min}min "
            f"total={pool.pricing.total_price}"
        )

    print("\n=== SIMULATION COMPLETE ===")
    print(f"Requests pooled on submission: {pooled} / {len(rides)}")
    print(f"Recovered match failures: {failures}")
    print(f"Live pools: {len(live)} / {len(pools)} created")


if __name__ == "__main__":
    run_simulation()
