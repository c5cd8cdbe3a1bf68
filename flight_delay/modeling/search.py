# search.py
# ---------------------------------------------
# Stratified k-fold grid search scored by ROC AUC
# ---------------------------------------------

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.metrics import confusion_matrix, roc_auc_score
from sklearn.model_selection import StratifiedKFold

from flight_delay.config import CV_FOLDS

logger = logging.getLogger(__name__)

FitFn = Callable[[dict, pd.DataFrame, pd.Series], object]
Splits = List[Tuple[np.ndarray, np.ndarray]]


class DegenerateFoldError(ValueError):
    pass


class ConvergenceFailure(RuntimeError):
    pass


class NoViableHyperparametersError(RuntimeError):
    pass


@dataclass
class SearchResult:
    best_params: dict
    best_score: float
    cv_results: pd.DataFrame


# ---------- One grid point ----------
def fold_metrics(y_true: pd.Series, proba: np.ndarray, threshold: float = 0.5) -> Dict[str, float]:
    pred = (proba >= threshold).astype(int)
    tn, fp, fn, tp = confusion_matrix(y_true, pred, labels=[0, 1]).ravel()
    return {
        "roc": float(roc_auc_score(y_true, proba)),
        "sens": tp / (tp + fn) if tp + fn else np.nan,
        "spec": tn / (tn + fp) if tn + fp else np.nan,
    }


def cross_validate(fit: FitFn, params: dict, X: pd.DataFrame, y: pd.Series, splits: Splits) -> pd.DataFrame:
    rows = []
    for fold, (train_idx, val_idx) in enumerate(splits, start=1):
        y_tr, y_val = y.iloc[train_idx], y.iloc[val_idx]
        if y_tr.nunique() < 2 or y_val.nunique() < 2:
            raise DegenerateFoldError(f"fold {fold} holds a single class")

        model = fit(params, X.iloc[train_idx], y_tr)
        proba = model.predict_proba(X.iloc[val_idx])[:, 1]
        rows.append(fold_metrics(y_val, proba))
    return pd.DataFrame(rows)


def _evaluate_point(fit: FitFn, params: dict, X: pd.DataFrame, y: pd.Series, splits: Splits) -> dict:
    record = dict(params)
    try:
        folds = cross_validate(fit, params, X, y, splits)
    except (ValueError, ArithmeticError, RuntimeError) as exc:
        # DegenerateFoldError, ConvergenceFailure, estimator fit errors
        record.update(roc=np.nan, roc_sd=np.nan, sens=np.nan, spec=np.nan,
                      status="failed", reason=f"{type(exc).__name__}: {exc}")
        return record

    record.update(
        roc=folds["roc"].mean(),
        roc_sd=folds["roc"].std(),
        sens=folds["sens"].mean(),
        spec=folds["spec"].mean(),
        status="ok",
        reason="",
    )
    return record


# ---------- Whole grid ----------
def grid_search(
    fit: FitFn,
    grid: Sequence[dict],
    X: pd.DataFrame,
    y: pd.Series,
    folds: int = CV_FOLDS,
    seed: int = 0,
    n_jobs: int = 1,
    name: str = "model",
) -> SearchResult:
    """Score every grid point on the same stratified folds; keep the best mean ROC.

    Failed grid points are skipped; if none survives NoViableHyperparametersError is raised.
    """
    X = X.reset_index(drop=True)
    y = y.reset_index(drop=True)
    try:
        splits = list(StratifiedKFold(n_splits=folds, shuffle=True, random_state=seed).split(X, y))
    except ValueError as exc:
        raise NoViableHyperparametersError(f"{name}: cannot build {folds} folds: {exc}") from exc

    logger.info("%s: %d grid points x %d folds on %d rows", name, len(grid), folds, len(X))
    records = Parallel(n_jobs=n_jobs)(
        delayed(_evaluate_point)(fit, params, X, y, splits) for params in grid
    )
    results = pd.DataFrame(records)

    failed = results[results["status"] == "failed"]
    for row in failed.itertuples():
        logger.warning("%s: skipping grid point %s (%s)", name, grid[row.Index], row.reason)

    viable = results[results["status"] == "ok"]
    if viable.empty:
        raise NoViableHyperparametersError(f"{name}: all {len(grid)} grid points failed")

    best = viable["roc"].idxmax()
    best_params = dict(grid[best])
    logger.info("%s: best ROC %.4f with %s", name, viable.loc[best, "roc"], best_params)
    return SearchResult(best_params=best_params, best_score=float(viable.loc[best, "roc"]), cv_results=results)
