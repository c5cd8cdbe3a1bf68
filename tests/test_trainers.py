import warnings

import numpy as np
import pytest

from flight_delay.features.encode import fit_encoding, model_matrix
from flight_delay.modeling.search import ConvergenceFailure, NoViableHyperparametersError
from flight_delay.modeling.trainers import (
    BOOSTED,
    FOREST,
    LINEAR,
    ModelFamily,
    build_linear,
    check_linear,
    train,
    train_all,
)

SMALL_GRIDS = {
    "linear": [{"alpha": 0.0, "lambda": 0.01}, {"alpha": 1.0, "lambda": 0.01}],
    "forest": [{"max_features": 2, "split_rule": "gini", "min_samples_leaf": 5},
               {"max_features": 3, "split_rule": "extratrees", "min_samples_leaf": 1}],
    "boosted": [{"n_estimators": 50, "max_depth": 3, "learning_rate": 0.1, "gamma": 0,
                 "colsample_bytree": 0.7, "min_child_weight": 1, "subsample": 0.7}],
}


def _broken_builder(params, n_rows, seed, **_):
    raise ValueError("cannot build")


BROKEN = ModelFamily("broken", ({"x": 1},), _broken_builder)


@pytest.fixture
def xy(training_table):
    encoding = fit_encoding(training_table)
    return model_matrix(training_table, encoding)


def test_linear_trains_on_all_rows(xy):
    X, y = xy
    model = train(LINEAR, X, y, grid=SMALL_GRIDS["linear"], folds=3, seed=1, cv_seed=2)
    assert model.name == "linear"
    assert model.params in SMALL_GRIDS["linear"]
    assert model.train_rows == len(X)
    assert 0.0 <= model.cv_score <= 1.0
    assert len(model.cv_results) == 2
    assert model.feature_names == tuple(X.columns)


def test_forest_uses_leading_rows_only(xy):
    X, y = xy
    model = train(FOREST, X, y, grid=SMALL_GRIDS["forest"], folds=3, max_rows=120, forest_trees=15)
    assert model.train_rows == 120
    assert model.estimator.n_estimators == 15
    proba = model.estimator.predict_proba(X)[:, 1]
    assert ((proba >= 0) & (proba <= 1)).all()


def test_forest_split_rule_selects_estimator():
    from sklearn.ensemble import ExtraTreesClassifier, RandomForestClassifier

    gini = FOREST.builder({"max_features": 2, "split_rule": "gini", "min_samples_leaf": 1}, n_rows=10, seed=0)
    extra = FOREST.builder({"max_features": 2, "split_rule": "extratrees", "min_samples_leaf": 1}, n_rows=10, seed=0)
    assert isinstance(gini, RandomForestClassifier)
    assert isinstance(extra, ExtraTreesClassifier)


def test_boosted_trains(xy):
    X, y = xy
    model = train(BOOSTED, X, y, grid=SMALL_GRIDS["boosted"], folds=3)
    assert model.params == SMALL_GRIDS["boosted"][0]
    assert model.estimator.get_params()["max_depth"] == 3


def test_linear_non_convergence_is_a_failure(xy):
    X, y = xy
    model = build_linear({"alpha": 1.0, "lambda": 0.001}, n_rows=len(X), seed=0)
    model.set_params(model__max_iter=1)
    with pytest.warns(Warning):
        model.fit(X, y)
    with pytest.raises(ConvergenceFailure):
        check_linear(model)


def test_training_is_reproducible(xy):
    X, y = xy
    a = train(FOREST, X, y, grid=SMALL_GRIDS["forest"], folds=3, seed=4, cv_seed=4, forest_trees=10)
    b = train(FOREST, X, y, grid=SMALL_GRIDS["forest"], folds=3, seed=4, cv_seed=4, forest_trees=10)
    assert a.params == b.params
    assert np.allclose(a.estimator.predict_proba(X), b.estimator.predict_proba(X))


def test_broken_family_exhausts_its_grid(xy):
    X, y = xy
    with pytest.raises(NoViableHyperparametersError):
        train(BROKEN, X, y, folds=3)


@pytest.mark.parametrize("parallel", [False, True])
def test_one_failing_trainer_does_not_stop_the_others(xy, parallel):
    X, y = xy
    report = train_all(
        X, y,
        families=(LINEAR, BROKEN, BOOSTED),
        grids=SMALL_GRIDS,
        seeds={"linear": 1, "boosted": 2, "cv": 3},
        parallel=parallel,
        folds=3,
    )
    assert set(report.models) == {"linear", "boosted"}
    assert set(report.failures) == {"broken"}
    assert isinstance(report.failures["broken"], NoViableHyperparametersError)


def test_linear_builder_avoids_deprecated_penalty_argument(xy):
    X, y = xy
    model = build_linear({"alpha": 1.0, "lambda": 0.01}, n_rows=len(X), seed=0)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        model.fit(X, y)
    assert not [w for w in caught if "penalty" in str(w.message)]
    assert model.named_steps["model"].l1_ratio == 1.0
