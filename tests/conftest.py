import numpy as np
import pandas as pd
import pytest

from flight_delay.config import MODEL_COLUMNS, OCCASIONS, SEASONS

CARRIERS = ["AA", "DL", "UA", "WN"]
AIRPORTS = ["ATL", "JFK", "LAX", "ORD", "SFO"]


def _hhmm(minutes):
    minutes = np.asarray(minutes) % 1440
    return (minutes // 60) * 100 + minutes % 60


def make_raw_flights(n=600, seed=0):
    """BTS-style flat file rows; delay driven mostly by taxi-out time."""
    rng = np.random.default_rng(seed)
    dates = pd.Timestamp("2015-01-01") + pd.to_timedelta(rng.integers(0, 365, n), unit="D")
    dep_minutes = rng.integers(0, 1440, n)
    taxi_out = rng.normal(16, 5, n).clip(3).round()
    taxi_in = rng.normal(7, 2, n).clip(1).round()
    air_time = rng.normal(150, 40, n).clip(30).round()
    arrival_delay = (taxi_out - 16) * 3 + rng.normal(0, 8, n)

    raw = pd.DataFrame({
        "YEAR": dates.year,
        "MONTH": dates.month,
        "DAY": dates.day,
        "AIRLINE": rng.choice(CARRIERS, n),
        "ORIGIN_AIRPORT": rng.choice(AIRPORTS, n),
        "DESTINATION_AIRPORT": rng.choice(AIRPORTS, n),
        "DEPARTURE_TIME": _hhmm(dep_minutes).astype(float),
        "ARRIVAL_TIME": _hhmm(dep_minutes + taxi_out + air_time + taxi_in).astype(float),
        "TAXI_IN": taxi_in,
        "TAXI_OUT": taxi_out,
        "AIR_TIME": air_time,
        "DISTANCE": (air_time * 7.5).round(),
        "ARRIVAL_DELAY": arrival_delay.round(),
        "CANCELLED": 0,
        "DIVERTED": 0,
    })

    cancelled = raw.index[:5]
    raw.loc[cancelled, "CANCELLED"] = 1
    raw.loc[cancelled, ["DEPARTURE_TIME", "ARRIVAL_TIME", "ARRIVAL_DELAY", "AIR_TIME"]] = np.nan
    raw.loc[5:7, "DIVERTED"] = 1
    raw.loc[5:7, "ARRIVAL_DELAY"] = np.nan
    return raw


def make_training_table(n=200, seed=0):
    rng = np.random.default_rng(seed)
    taxi_out = rng.normal(16, 5, n).round()
    table = pd.DataFrame({
        "carrier": rng.choice(CARRIERS, n),
        "origin": rng.choice(AIRPORTS, n),
        "destination": rng.choice(AIRPORTS, n),
        "taxi_in": rng.normal(7, 2, n).round(),
        "taxi_out": taxi_out,
        "air_time": rng.normal(150, 40, n).round(),
        "distance": rng.normal(1100, 300, n).round(),
        "is_weekend": rng.random(n) < 2 / 7,
        "season": rng.choice(SEASONS, n),
        "departure_occasion": rng.choice(OCCASIONS, n),
        "arrival_occasion": rng.choice(OCCASIONS, n),
        "is_delayed": taxi_out + rng.normal(0, 3, n) > 16,
    })
    return table[MODEL_COLUMNS]


@pytest.fixture
def raw_flights():
    return make_raw_flights()


@pytest.fixture
def training_table():
    return make_training_table()


@pytest.fixture
def separable_xy():
    rng = np.random.default_rng(3)
    X = pd.DataFrame(rng.normal(size=(300, 6)), columns=[f"f{i}" for i in range(6)])
    y = pd.Series((X["f0"] + 0.5 * X["f1"] + rng.normal(0, 0.3, 300) > 0).astype(int))
    return X, y
