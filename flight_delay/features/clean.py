# 2026.10.14  16.00
import logging
from typing import Iterable, Tuple

import pandas as pd

from flight_delay.config import (
    FEATURE_COLUMNS,
    LABEL_COLUMN,
    MODEL_COLUMNS,
    OUTLIER_COLUMNS,
    OUTLIER_SIGMAS,
)

logger = logging.getLogger(__name__)


# ---- Row eligibility ----
def exclude_unusable_flights(df: pd.DataFrame) -> pd.DataFrame:
    """Drop cancelled and diverted flights and flights without a label."""
    keep = pd.Series(True, index=df.index)
    for flag in ("cancelled", "diverted"):
        if flag in df.columns:
            flagged = df[flag].fillna(False).astype(bool)
            logger.info("Excluding %d %s flights", int((flagged & keep).sum()), flag)
            keep &= ~flagged

    unlabeled = df[LABEL_COLUMN].isna() & keep
    logger.info("Excluding %d flights without an arrival delay", int(unlabeled.sum()))
    keep &= ~unlabeled
    return df.loc[keep]


# ---- Projection ----
def select_columns(df: pd.DataFrame) -> pd.DataFrame:
    missing = [c for c in MODEL_COLUMNS if c not in df.columns]
    if missing:
        raise KeyError(f"cannot build training table, missing columns: {missing}")
    return df[MODEL_COLUMNS].copy()


def missingness_report(df: pd.DataFrame) -> pd.DataFrame:
    counts = df.isna().sum()
    report = pd.DataFrame({
        "column": counts.index,
        "missing": counts.values.astype(int),
        "percent": (counts.values / max(len(df), 1) * 100).round(2),
    })
    return report.sort_values("missing", ascending=False, kind="stable").reset_index(drop=True)


# ---- Outliers ----
def six_sigma_outlier_mask(column: pd.Series, n_sigma: float = OUTLIER_SIGMAS) -> pd.Series:
    """True where a value lies more than `n_sigma` standard deviations from the mean.

    Mean and std are taken over non-missing values; missing values are never outliers.
    """
    values = pd.to_numeric(column, errors="coerce")
    mu, sigma = values.mean(), values.std()
    if pd.isna(sigma):
        return pd.Series(False, index=column.index)
    return ((values - mu).abs() > n_sigma * sigma).fillna(False).astype(bool)


def remove_outliers(
    df: pd.DataFrame,
    columns: Iterable[str] = OUTLIER_COLUMNS,
    n_sigma: float = OUTLIER_SIGMAS,
) -> pd.DataFrame:
    # every mask is computed on the same table before any row goes
    masks = {c: six_sigma_outlier_mask(df[c], n_sigma) for c in columns}
    keep = pd.Series(True, index=df.index)
    for c, mask in masks.items():
        logger.info("Six-sigma check on %s flags %d rows", c, int(mask.sum()))
        keep &= ~mask
    logger.info("Removing %d outlier rows", int((~keep).sum()))
    return df.loc[keep]


# ---- Training table ----
def label_distribution(table: pd.DataFrame) -> pd.DataFrame:
    counts = table[LABEL_COLUMN].astype(bool).value_counts().reindex([True, False], fill_value=0)
    return pd.DataFrame({
        LABEL_COLUMN: counts.index,
        "count": counts.values.astype(int),
        "share": (counts.values / max(len(table), 1)).round(4),
    })


def build_training_table(flights: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Engineered flights -> (training table, missingness report)."""
    report = missingness_report(select_columns(flights))
    for row in report[report["missing"] > 0].itertuples(index=False):
        logger.info("Missing %s: %d (%.2f%%)", row.column, row.missing, row.percent)

    table = select_columns(exclude_unusable_flights(flights))
    complete = table.dropna(subset=FEATURE_COLUMNS)
    logger.info("Dropped %d rows with missing features", len(table) - len(complete))

    table = remove_outliers(complete).reset_index(drop=True)
    table[LABEL_COLUMN] = table[LABEL_COLUMN].astype(bool)
    table["is_weekend"] = table["is_weekend"].astype(bool)

    balance = label_distribution(table)
    logger.info("Training table: %d rows, %s", len(table),
                dict(zip(balance[LABEL_COLUMN], balance["count"])))
    return table, report
