import logging
import sys

from flight_delay.config import LOG_LEVEL, PipelineConfig
from flight_delay.pipeline import load_flights, run_pipeline

# hand-specified flight scored by every trained model
EXAMPLE_FLIGHT = {
    "carrier": "AA",
    "origin": "JFK",
    "destination": "LAX",
    "taxi_in": 8.0,
    "taxi_out": 21.0,
    "air_time": 330.0,
    "distance": 2475.0,
    "is_weekend": False,
    "season": "other",
    "departure_occasion": "Late Morning",
    "arrival_occasion": "Early Afternoon",
}

if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(levelname)s - %(message)s')
    config = PipelineConfig.from_env(sys.argv[1] if len(sys.argv) > 1 else None)

    result = run_pipeline(load_flights(config.data_path), config, unseen=[EXAMPLE_FLIGHT])

    print(result.comparison.to_string(index=False))
    for name, error in result.training.failures.items():
        print(f"{name}: FAILED ({error})")
