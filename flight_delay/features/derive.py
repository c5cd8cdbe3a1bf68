# derive.py
# ---------------------------------------------
# Raw flight records -> engineered features
# ---------------------------------------------

from __future__ import annotations
import logging

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype

from flight_delay.config import (
    ARRIVAL_TIME_COLUMN,
    DATE_COLUMN,
    DELAY_COLUMN,
    DEPARTURE_TIME_COLUMN,
    LABEL_COLUMN,
    OCCASIONS,
    RAW_RENAME_MAP,
    SEASONS,
)

logger = logging.getLogger(__name__)

NUMERIC_RAW = ["taxi_in", "taxi_out", "air_time", "distance", DELAY_COLUMN]
FLAG_COLUMNS = ["cancelled", "diverted"]

# [start, end) hour ranges; anything else is Night
OCCASION_BOUNDS = [(5, 8), (8, 12), (12, 15), (15, 18), (18, 21)]


# ---------- Raw columns ----------
def _as_flag(values: pd.Series) -> pd.Series:
    if not is_numeric_dtype(values):
        values = values.astype(str).str.strip().str.lower().replace({"true": "1", "false": "0"})
    return pd.to_numeric(values, errors="coerce").fillna(0).astype(bool)


def normalize_columns(raw: pd.DataFrame) -> pd.DataFrame:
    data = raw.copy()
    data.columns = [str(c).strip() for c in data.columns]
    data = data.rename(columns={k: v for k, v in RAW_RENAME_MAP.items() if k in data.columns})
    data.columns = [c.lower() for c in data.columns]
    data = data.loc[:, ~data.columns.duplicated()]
    data = data.replace({"null": np.nan, "NULL": np.nan, "Null": np.nan})

    if DATE_COLUMN in data.columns:
        data[DATE_COLUMN] = pd.to_datetime(data[DATE_COLUMN], errors="coerce")
    elif {"year", "month", "day"} <= set(data.columns):
        data[DATE_COLUMN] = pd.to_datetime(data[["year", "month", "day"]], errors="coerce")

    for c in NUMERIC_RAW:
        if c in data.columns:
            data[c] = pd.to_numeric(data[c], errors="coerce")
    for c in FLAG_COLUMNS:
        if c in data.columns:
            data[c] = _as_flag(data[c])
    return data


# ---------- Feature functions ----------
def to_hour(raw_time) -> pd.Series:
    """HHMM clock values -> hour of day in [0, 23], NaN where unparseable.

    Accepts ints, floats (NaN-bearing columns) or zero-padded strings.
    2400 is the BTS spelling of midnight and maps to hour 0.
    """
    raw = pd.Series(raw_time)
    if not is_numeric_dtype(raw):
        raw = raw.astype(str).str.strip()
    values = pd.to_numeric(raw, errors="coerce")

    valid = (
        values.notna()
        & (values == np.floor(values))
        & (values >= 0)
        & (values <= 2400)
        & (values % 100 <= 59)
    )
    hours = (values // 100).where(valid) % 24
    return hours.rename("hour")


def occasion(hour) -> pd.Series:
    hour = pd.to_numeric(pd.Series(hour), errors="coerce")
    conditions = [(hour >= lo) & (hour < hi) for lo, hi in OCCASION_BOUNDS]
    labels = np.select(conditions, OCCASIONS[:-1], default=OCCASIONS[-1])
    return pd.Series(labels, index=hour.index, dtype=object).where(hour.notna())


def is_weekend(dates) -> pd.Series:
    d = pd.to_datetime(pd.Series(dates), errors="coerce")
    return (d.dt.dayofweek >= 5).astype(bool)


def season(dates) -> pd.Series:
    d = pd.to_datetime(pd.Series(dates), errors="coerce")
    month, day = d.dt.month, d.dt.day
    christmas = ((month == 12) & (day >= 20)) | ((month == 1) & (day <= 5))
    summer = month.isin([6, 7, 8])
    labels = np.select([christmas, summer], SEASONS[:2], default=SEASONS[2])
    return pd.Series(labels, index=d.index, dtype=object).where(d.notna())


def is_delayed(arrival_delay) -> pd.Series:
    # missing delay stays <NA>; rows are dropped upstream, never labelled False
    delay = pd.to_numeric(pd.Series(arrival_delay), errors="coerce")
    return (delay > 0).astype("boolean").mask(delay.isna())


# ---------- Table level ----------
def derive_features(flights: pd.DataFrame) -> pd.DataFrame:
    data = flights.copy()
    missing = [c for c in (DEPARTURE_TIME_COLUMN, ARRIVAL_TIME_COLUMN, DATE_COLUMN, DELAY_COLUMN) if c not in data.columns]
    if missing:
        raise KeyError(f"flight records lack required columns: {missing}")

    data["departure_occasion"] = occasion(to_hour(data[DEPARTURE_TIME_COLUMN]))
    data["arrival_occasion"] = occasion(to_hour(data[ARRIVAL_TIME_COLUMN]))
    data["is_weekend"] = is_weekend(data[DATE_COLUMN])
    data["season"] = season(data[DATE_COLUMN])
    data[LABEL_COLUMN] = is_delayed(data[DELAY_COLUMN])

    logger.info(
        "Derived features for %d flights (%d without a label)",
        len(data), int(data[LABEL_COLUMN].isna().sum()),
    )
    return data
