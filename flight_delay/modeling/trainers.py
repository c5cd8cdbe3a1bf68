# trainers.py
# ---------------------------------------------
# Elastic-net logistic regression, bagged trees, boosted trees
# ---------------------------------------------

from __future__ import annotations
import asyncio
import logging
import re
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import sklearn
from sklearn.ensemble import ExtraTreesClassifier, RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from xgboost import XGBClassifier

from flight_delay.config import CV_FOLDS, FEATURE_COLUMNS, FOREST_TREES, TREE_SUBSAMPLE_ROWS
from flight_delay.modeling.grid import BOOSTED_GRID, FOREST_GRID, LINEAR_GRID
from flight_delay.modeling.search import ConvergenceFailure, grid_search

logger = logging.getLogger(__name__)

LINEAR_MAX_ITER = 1000


# ---------- Estimator builders ----------
def _sklearn_version() -> Tuple[int, int]:
    major, minor = re.match(r"(\d+)\.(\d+)", sklearn.__version__).groups()
    return int(major), int(minor)


def _make_logistic(l1_ratio: float, C: float, seed: int) -> LogisticRegression:
    kwargs = dict(solver="saga", l1_ratio=l1_ratio, C=C, max_iter=LINEAR_MAX_ITER, random_state=seed)
    # from 1.8 the penalty follows l1_ratio and passing penalty= is deprecated
    if _sklearn_version() < (1, 8):
        kwargs["penalty"] = "elasticnet"
    return LogisticRegression(**kwargs)


def build_linear(params: dict, n_rows: int, seed: int, **_) -> Pipeline:
    # glmnet-style lambda on the mean loss -> sklearn C on the summed loss
    C = 1.0 / (params["lambda"] * max(n_rows, 1))
    return Pipeline([
        ("scale", StandardScaler()),
        ("model", _make_logistic(params["alpha"], C, seed)),
    ])


def check_linear(model: Pipeline) -> None:
    lr = model.named_steps["model"]
    if np.max(lr.n_iter_) >= lr.max_iter:
        raise ConvergenceFailure(f"saga did not converge within {lr.max_iter} iterations")


def build_forest(params: dict, n_rows: int, seed: int, forest_trees: int = FOREST_TREES, **_):
    cls = ExtraTreesClassifier if params["split_rule"] == "extratrees" else RandomForestClassifier
    return cls(
        n_estimators=forest_trees,
        criterion="gini",
        max_features=params["max_features"],
        min_samples_leaf=params["min_samples_leaf"],
        bootstrap=True,
        random_state=seed,
    )


def build_boosted(params: dict, n_rows: int, seed: int, **_) -> XGBClassifier:
    return XGBClassifier(
        n_estimators=params["n_estimators"],
        max_depth=params["max_depth"],
        learning_rate=params["learning_rate"],
        gamma=params["gamma"],
        colsample_bytree=params["colsample_bytree"],
        min_child_weight=params["min_child_weight"],
        subsample=params["subsample"],
        objective="binary:logistic",
        eval_metric="auc",
        tree_method="hist",
        n_jobs=1,
        random_state=seed,
    )


# ---------- Families ----------
@dataclass(frozen=True)
class ModelFamily:
    name: str
    grid: Tuple[dict, ...]
    builder: Callable[..., object]
    subsample: bool = False
    check: Optional[Callable[[object], None]] = None

    def fit(self, params: dict, X: pd.DataFrame, y: pd.Series, seed: int = 0, **options):
        model = self.builder(params, n_rows=len(X), seed=seed, **options)
        model.fit(X, y)
        if self.check is not None:
            self.check(model)
        return model


LINEAR = ModelFamily("linear", tuple(LINEAR_GRID), build_linear, subsample=False, check=check_linear)
FOREST = ModelFamily("forest", tuple(FOREST_GRID), build_forest, subsample=True)
BOOSTED = ModelFamily("boosted", tuple(BOOSTED_GRID), build_boosted, subsample=True)
FAMILIES = (LINEAR, FOREST, BOOSTED)


@dataclass(frozen=True)
class FittedModel:
    name: str
    estimator: object
    params: dict = field(default_factory=dict)
    cv_score: float = float("nan")
    cv_results: Optional[pd.DataFrame] = None
    feature_names: Tuple[str, ...] = tuple(FEATURE_COLUMNS)
    train_rows: int = 0


@dataclass
class TrainingReport:
    models: Dict[str, FittedModel] = field(default_factory=dict)
    failures: Dict[str, Exception] = field(default_factory=dict)


# ---------- Training ----------
def train(
    family: ModelFamily,
    X: pd.DataFrame,
    y: pd.Series,
    grid: Optional[Sequence[dict]] = None,
    folds: int = CV_FOLDS,
    seed: int = 0,
    cv_seed: int = 0,
    n_jobs: int = 1,
    max_rows: int = TREE_SUBSAMPLE_ROWS,
    **options,
) -> FittedModel:
    if family.subsample:
        # first rows of the (already shuffled) training partition
        X, y = X.iloc[:max_rows], y.iloc[:max_rows]

    fit = partial(family.fit, seed=seed, **options)
    result = grid_search(fit, list(grid or family.grid), X, y,
                         folds=folds, seed=cv_seed, n_jobs=n_jobs, name=family.name)

    estimator = fit(result.best_params, X, y)
    logger.info("%s: refit on %d rows", family.name, len(X))
    return FittedModel(
        name=family.name,
        estimator=estimator,
        params=result.best_params,
        cv_score=result.best_score,
        cv_results=result.cv_results,
        feature_names=tuple(X.columns),
        train_rows=len(X),
    )


async def _train_concurrently(jobs: Mapping[str, Callable[[], FittedModel]]) -> Dict[str, object]:
    tasks = [asyncio.to_thread(job) for job in jobs.values()]
    results = await asyncio.gather(*tasks, return_exceptions=True)
    return dict(zip(jobs, results))


def train_all(
    X: pd.DataFrame,
    y: pd.Series,
    families: Iterable[ModelFamily] = FAMILIES,
    grids: Optional[Mapping[str, Sequence[dict]]] = None,
    seeds: Optional[Mapping[str, int]] = None,
    parallel: bool = False,
    **kwargs,
) -> TrainingReport:
    """Train every family; one family failing leaves the others' results intact."""
    grids = grids or {}
    seeds = seeds or {}
    jobs = {
        f.name: partial(train, f, X, y, grid=grids.get(f.name),
                        seed=seeds.get(f.name, 0), cv_seed=seeds.get("cv", 0), **kwargs)
        for f in families
    }

    if parallel:
        outcomes = asyncio.run(_train_concurrently(jobs))
    else:
        outcomes = {}
        for name, job in jobs.items():
            try:
                outcomes[name] = job()
            except Exception as exc:
                outcomes[name] = exc

    report = TrainingReport()
    for name, outcome in outcomes.items():
        if isinstance(outcome, Exception):
            logger.error("%s: training failed - %s: %s", name, type(outcome).__name__, outcome)
            report.failures[name] = outcome
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            report.models[name] = outcome
    return report
