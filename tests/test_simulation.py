from rides.models import RideStatus
from scripts.generate_mock_requests import generate_mock_requests
from scripts.run_pooling_simulation import load_requests


def test_generated_requests_load_as_rides(tmp_path):
    output = tmp_path / "ride_requests.csv"
    df = generate_mock_requests(num_requests=25, output_file=str(output), seed=7)

    assert output.exists()
    assert len(df) == 25
    assert df["passengers"].between(1, 4).all()
    assert df["luggage"].between(0, 8).all()

    rides = load_requests(str(output), limit=10)

    assert len(rides) == 10
    for ride in rides:
        assert ride.status == RideStatus.PENDING
        assert ride.pickup.airport == "HRE"
        assert ride.distance_km > 0
