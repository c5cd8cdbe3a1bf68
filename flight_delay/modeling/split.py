# 2026.10.14  18.00
import logging
from typing import Tuple

import numpy as np
import pandas as pd

from flight_delay.config import TRAIN_FRACTION

logger = logging.getLogger(__name__)


def split_indices(n_rows: int, train_fraction: float = TRAIN_FRACTION, seed: int = 0) -> Tuple[np.ndarray, np.ndarray]:
    """Draw round(train_fraction * n_rows) train positions without replacement.

    The test set is the sorted remainder. Same n_rows and seed, same partition.
    """
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")

    rng = np.random.default_rng(seed)
    n_train = int(round(train_fraction * n_rows))
    train = rng.choice(n_rows, size=n_train, replace=False)
    test = np.setdiff1d(np.arange(n_rows), train)
    return train, test


def split_table(table: pd.DataFrame, train_fraction: float = TRAIN_FRACTION, seed: int = 0) -> Tuple[pd.DataFrame, pd.DataFrame]:
    train, test = split_indices(len(table), train_fraction, seed)
    logger.info("Split %d rows into %d train / %d test", len(table), len(train), len(test))
    return table.iloc[train], table.iloc[test]
