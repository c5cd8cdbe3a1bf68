from dataclasses import FrozenInstanceError

import numpy as np
import pandas as pd
import pytest

from flight_delay.config import CATEGORICAL_FEATURES, FEATURE_COLUMNS
from flight_delay.features.encode import UnseenCategoryError, fit_encoding, model_matrix


def test_codes_follow_sorted_order_from_one():
    table = pd.DataFrame({"carrier": ["UA", "AA", "DL", "AA"]})
    encoding = fit_encoding(table, ["carrier"])
    assert dict(encoding.codes["carrier"]) == {"AA": 1, "DL": 2, "UA": 3}
    assert encoding.domain("carrier") == ["AA", "DL", "UA"]


def test_round_trip_recovers_original_values(training_table):
    encoding = fit_encoding(training_table)
    encoded = encoding.transform(training_table)
    for c in CATEGORICAL_FEATURES:
        assert encoded[c].dtype == np.int64
        assert encoded[c].min() >= 1
    decoded = encoding.inverse_transform(encoded)
    pd.testing.assert_frame_equal(
        decoded[CATEGORICAL_FEATURES].astype(str), training_table[CATEGORICAL_FEATURES].astype(str)
    )


def test_same_map_encodes_test_rows_consistently(training_table):
    encoding = fit_encoding(training_table)
    head, tail = training_table.iloc[:100], training_table.iloc[100:]
    full = encoding.transform(training_table)
    assert encoding.transform(tail)["carrier"].equals(full["carrier"].iloc[100:])
    assert encoding.transform(head)["origin"].equals(full["origin"].iloc[:100])


def test_unseen_value_fails_with_column_and_value(training_table):
    encoding = fit_encoding(training_table)
    bad = training_table.iloc[:3].copy()
    bad.loc[bad.index[1], "origin"] = "XYZ"
    with pytest.raises(UnseenCategoryError) as info:
        encoding.transform(bad)
    assert info.value.column == "origin"
    assert info.value.value == "XYZ"


def test_missing_value_is_not_silently_coded(training_table):
    encoding = fit_encoding(training_table)
    bad = training_table.iloc[:2].copy()
    bad["season"] = [None, "other"]
    with pytest.raises(UnseenCategoryError):
        encoding.transform(bad)


def test_code_lookup(training_table):
    encoding = fit_encoding(training_table)
    assert encoding.code("season", "christmas_new_year") == 1
    with pytest.raises(UnseenCategoryError):
        encoding.code("carrier", "ZZ")


def test_encoding_map_is_read_only(training_table):
    encoding = fit_encoding(training_table)
    with pytest.raises(TypeError):
        encoding.codes["carrier"]["ZZ"] = 99
    with pytest.raises(FrozenInstanceError):
        encoding.codes = {}


def test_model_matrix(training_table):
    encoding = fit_encoding(training_table)
    X, y = model_matrix(training_table, encoding)
    assert list(X.columns) == FEATURE_COLUMNS
    assert all(np.issubdtype(dtype, np.number) for dtype in X.dtypes)
    assert set(y.unique()) <= {0, 1}
    assert y.sum() == training_table["is_delayed"].sum()

    X_only, y_none = model_matrix(training_table.drop(columns=["is_delayed"]), encoding)
    assert y_none is None
    assert X_only.equals(X)
