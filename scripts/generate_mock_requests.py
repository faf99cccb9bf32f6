import os
import pandas as pd
import numpy as np
import uuid
from datetime import datetime, timedelta

# Robert Gabriel Mugabe International Airport, Harare
AIRPORT_CODE = "HRE"
AIRPORT_LAT = -17.931806
AIRPORT_LON = 31.092847

TERMINALS = ["International", "Domestic"]

# Popular drop-off neighbourhoods (lat, lon)
NEIGHBOURHOODS = {
    "CBD": (-17.829220, 31.053961),
    "Avondale": (-17.795000, 31.038000),
    "Borrowdale": (-17.753000, 31.095000),
    "Belgravia": (-17.808000, 31.046000),
    "Highlands": (-17.797000, 31.095000),
    "Msasa": (-17.839000, 31.121000),
    "Hatfield": (-17.874000, 31.082000),
    "Mount Pleasant": (-17.769000, 31.049000),
}


def generate_mock_requests(num_requests=200, output_file="sampledata/ride_requests.csv", seed=None):
    """
    Generates airport -> city ride requests designed to exercise pooling.
    Pickups sit at the terminal kerbs, drop-offs are scattered (~1.5km) around a handful
    of neighbourhoods, and request times are bunched around flight arrival waves so
    that several riders land close together in space and time.
    """
    rng = np.random.default_rng(seed)
    neighbourhood_names = list(NEIGHBOURHOODS.keys())

    # 1. Flight arrival waves over the next 3 hours
    now = datetime.now().replace(second=0, microsecond=0)
    waves = [now + timedelta(minutes=int(m)) for m in sorted(rng.integers(0, 180, size=8))]

    data = []
    for request_index in range(num_requests):
        terminal = rng.choice(TERMINALS, p=[0.7, 0.3])
        # kerbside pickups, within ~200m of the airport point
        pickup_lat = AIRPORT_LAT + rng.uniform(-0.002, 0.002)
        pickup_lon = AIRPORT_LON + rng.uniform(-0.002, 0.002)

        area = rng.choice(neighbourhood_names)
        area_lat, area_lon = NEIGHBOURHOODS[area]
        dropoff_lat = area_lat + rng.normal(0, 0.01)
        dropoff_lon = area_lon + rng.normal(0, 0.01)

        # 2. Riders trickle out of arrivals in the 25 minutes after a wave lands
        wave = waves[rng.integers(0, len(waves))]
        requested_at = wave + timedelta(minutes=int(rng.integers(0, 25)))

        passengers = int(rng.choice([1, 2, 3], p=[0.65, 0.25, 0.10]))

        data.append({
            "ride_id": f"r_{str(request_index+1).zfill(6)}",
            "rider_id": f"u_{str(uuid.uuid4())[:8]}",
            "requested_at": requested_at.isoformat(),
            "airport": AIRPORT_CODE,
            "terminal": terminal,
            "pickup_lat": np.round(pickup_lat, 6),
            "pickup_lon": np.round(pickup_lon, 6),
            "pickup_address": f"{AIRPORT_CODE} {terminal} Arrivals",
            "dropoff_lat": np.round(dropoff_lat, 6),
            "dropoff_lon": np.round(dropoff_lon, 6),
            "dropoff_address": area,
            "city": "Harare",
            "passengers": passengers,
            "luggage": int(min(8, passengers * rng.integers(0, 3))),
            "allow_sharing": bool(rng.random() < 0.85),
            "max_detour_km": rng.choice([np.nan, 3.0, 5.0, 8.0], p=[0.6, 0.1, 0.2, 0.1]),
        })

    # 3. Save to CSV
    os.makedirs(os.path.dirname(output_file) or ".", exist_ok=True)
    df = pd.DataFrame(data).sort_values("requested_at", kind="stable")
    df.to_csv(output_file, index=False)
    print(f"Generated {num_requests} ride requests and saved to '{output_file}'")

    # Print a quick preview of pooling density
    print("\nTop 5 Destinations (Pooling Potential):")
    counts = df["dropoff_address"].value_counts().head(5)
    for name, count in counts.items():
        print(f"  {name}: {count} requests")

    return df


if __name__ == "__main__":
    generate_mock_requests(num_requests=200)
