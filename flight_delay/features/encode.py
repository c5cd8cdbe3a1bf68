# encode.py
# ---------------------------------------------
# Categorical value <-> integer code mapping, fit once
# ---------------------------------------------

from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from flight_delay.config import CATEGORICAL_FEATURES, FEATURE_COLUMNS, LABEL_COLUMN, NUM_FEATURES


class UnseenCategoryError(ValueError):
    """A categorical value outside the domain seen when the encoding was fit."""

    def __init__(self, column: str, value):
        self.column = column
        self.value = value
        super().__init__(f"unseen category {value!r} in column {column!r}")


@dataclass(frozen=True)
class EncodingMap:
    codes: Mapping[str, Mapping[str, int]]

    def __post_init__(self):
        frozen = MappingProxyType({c: MappingProxyType(dict(m)) for c, m in self.codes.items()})
        object.__setattr__(self, "codes", frozen)

    def domain(self, column: str) -> List[str]:
        return list(self.codes[column])

    def code(self, column: str, value) -> int:
        if pd.isna(value) or str(value) not in self.codes[column]:
            raise UnseenCategoryError(column, value)
        return self.codes[column][str(value)]

    def transform(self, table: pd.DataFrame) -> pd.DataFrame:
        data = table.copy()
        for column, mapping in self.codes.items():
            if column not in data.columns:
                raise KeyError(f"column {column!r} missing from table to encode")
            coded = data[column].astype("string").map(dict(mapping))
            unseen = coded.isna()
            if unseen.any():
                raise UnseenCategoryError(column, data.loc[unseen, column].iloc[0])
            data[column] = coded.astype("int64")
        return data

    def inverse_transform(self, table: pd.DataFrame) -> pd.DataFrame:
        data = table.copy()
        for column, mapping in self.codes.items():
            if column not in data.columns:
                continue
            inverse = {code: value for value, code in mapping.items()}
            decoded = data[column].map(inverse)
            if decoded.isna().any():
                bad = data.loc[decoded.isna(), column].iloc[0]
                raise ValueError(f"code {bad!r} is not assigned in column {column!r}")
            data[column] = decoded.astype(object)
        return data


def fit_encoding(table: pd.DataFrame, columns: Iterable[str] = CATEGORICAL_FEATURES) -> EncodingMap:
    # codes 1..n follow ascending string order of the distinct values
    codes = {}
    for column in columns:
        values = sorted({str(v) for v in table[column].dropna().unique()})
        codes[column] = {value: i for i, value in enumerate(values, start=1)}
    return EncodingMap(codes)


def model_matrix(table: pd.DataFrame, encoding: EncodingMap) -> Tuple[pd.DataFrame, Optional[pd.Series]]:
    """Training table (or unseen rows) -> numeric feature matrix and 0/1 label."""
    X = encoding.transform(table[FEATURE_COLUMNS])
    X["is_weekend"] = X["is_weekend"].astype(int)
    for c in NUM_FEATURES:
        X[c] = pd.to_numeric(X[c]).astype(float)

    y = None
    if LABEL_COLUMN in table.columns:
        y = table[LABEL_COLUMN].astype(bool).astype(int).rename(LABEL_COLUMN)
    return X, y
