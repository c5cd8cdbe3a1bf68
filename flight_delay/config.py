# config.py
# ---------------------------------------------
# Column names, fixed constants and run settings
# ---------------------------------------------

from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

# ---------- Raw flat file ----------
# BTS on-time performance header -> snake_case names used everywhere else
RAW_RENAME_MAP = {
    "YEAR": "year",
    "MONTH": "month",
    "DAY": "day",
    "FL_DATE": "flight_date",
    "AIRLINE": "carrier",
    "OP_UNIQUE_CARRIER": "carrier",
    "ORIGIN_AIRPORT": "origin",
    "ORIGIN": "origin",
    "DESTINATION_AIRPORT": "destination",
    "DEST": "destination",
    "SCHEDULED_DEPARTURE": "scheduled_departure",
    "DEPARTURE_TIME": "departure_time",
    "SCHEDULED_ARRIVAL": "scheduled_arrival",
    "ARRIVAL_TIME": "arrival_time",
    "TAXI_IN": "taxi_in",
    "TAXI_OUT": "taxi_out",
    "AIR_TIME": "air_time",
    "DISTANCE": "distance",
    "ARRIVAL_DELAY": "arrival_delay",
    "CANCELLED": "cancelled",
    "DIVERTED": "diverted",
}

DEPARTURE_TIME_COLUMN = "departure_time"
ARRIVAL_TIME_COLUMN = "arrival_time"
DATE_COLUMN = "flight_date"
DELAY_COLUMN = "arrival_delay"

# ---------- Engineered features ----------
OCCASIONS = [
    "Early Morning",
    "Late Morning",
    "Early Afternoon",
    "Late Afternoon",
    "Evening",
    "Night",
]
SEASONS = ["christmas_new_year", "summer_holidays", "other"]

# ---------- Training table ----------
CATEGORICAL_FEATURES = [
    "carrier",
    "origin",
    "destination",
    "season",
    "departure_occasion",
    "arrival_occasion",
]
FEATURE_COLUMNS = [
    "carrier",
    "origin",
    "destination",
    "taxi_in",
    "taxi_out",
    "air_time",
    "distance",
    "is_weekend",
    "season",
    "departure_occasion",
    "arrival_occasion",
]
NUM_FEATURES = [c for c in FEATURE_COLUMNS if c not in CATEGORICAL_FEATURES]
LABEL_COLUMN = "is_delayed"
MODEL_COLUMNS = FEATURE_COLUMNS + [LABEL_COLUMN]

OUTLIER_COLUMNS = ["distance", "taxi_in", "taxi_out", "air_time"]
OUTLIER_SIGMAS = 6.0

# ---------- Experiment ----------
TRAIN_FRACTION = 0.7
CV_FOLDS = int(os.getenv("FLIGHT_DELAY_CV_FOLDS", "10"))
TREE_SUBSAMPLE_ROWS = 10_000
FOREST_TREES = int(os.getenv("FLIGHT_DELAY_FOREST_TREES", "500"))
SEED = int(os.getenv("FLIGHT_DELAY_SEED", "42"))
N_JOBS = int(os.getenv("FLIGHT_DELAY_N_JOBS", "1"))
LOG_LEVEL = os.getenv("FLIGHT_DELAY_LOG_LEVEL", "INFO")

STAGES = ("split", "cv", "linear", "forest", "boosted")


def stage_seeds(seed: int) -> Dict[str, int]:
    """One independent integer seed per random stage, derived from `seed`."""
    children = np.random.SeedSequence(seed).spawn(len(STAGES))
    return {name: int(child.generate_state(1)[0]) for name, child in zip(STAGES, children)}


@dataclass
class PipelineConfig:
    data_path: Optional[str] = None
    seed: int = SEED
    train_fraction: float = TRAIN_FRACTION
    cv_folds: int = CV_FOLDS
    tree_rows: int = TREE_SUBSAMPLE_ROWS
    forest_trees: int = FOREST_TREES
    n_jobs: int = N_JOBS
    parallel_trainers: bool = False

    @classmethod
    def from_env(cls, data_path: Optional[str] = None) -> "PipelineConfig":
        return cls(
            data_path=data_path or os.getenv("FLIGHT_DELAY_DATA", "flights.csv"),
            parallel_trainers=os.getenv("FLIGHT_DELAY_PARALLEL", "0") == "1",
        )

    @property
    def seeds(self) -> Dict[str, int]:
        return stage_seeds(self.seed)
