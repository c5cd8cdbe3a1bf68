# evaluate.py
# ---------------------------------------------
# Held-out evaluation: confusion counts, ROC, AUC, importances
# ---------------------------------------------

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Mapping

import numpy as np
import pandas as pd
from sklearn.metrics import auc, confusion_matrix, roc_curve
from sklearn.pipeline import Pipeline

from flight_delay.modeling.trainers import FittedModel

logger = logging.getLogger(__name__)


class UnknownLabelError(ValueError):
    pass


@dataclass(frozen=True)
class ConfusionCounts:
    tp: int
    tn: int
    fp: int
    fn: int

    @property
    def sensitivity(self) -> float:
        return self.tp / (self.tp + self.fn) if self.tp + self.fn else float("nan")

    @property
    def specificity(self) -> float:
        return self.tn / (self.tn + self.fp) if self.tn + self.fp else float("nan")

    @property
    def accuracy(self) -> float:
        total = self.tp + self.tn + self.fp + self.fn
        return (self.tp + self.tn) / total if total else float("nan")

    def as_frame(self) -> pd.DataFrame:
        """Rows are predictions, columns the actual labels."""
        return pd.DataFrame(
            [[self.tp, self.fp], [self.fn, self.tn]],
            index=pd.Index([True, False], name="predicted"),
            columns=pd.Index([True, False], name="actual"),
        )


@dataclass(frozen=True)
class EvaluationResult:
    name: str
    predictions: np.ndarray
    probabilities: np.ndarray
    confusion: ConfusionCounts
    roc: pd.DataFrame
    auc: float


# ---------- Labels ----------
def _as_labels(values) -> np.ndarray:
    arr = np.asarray(values)
    unknown = set(pd.unique(arr.ravel()).tolist()) - {0, 1}
    if unknown:
        raise UnknownLabelError(f"labels outside {{delayed, not delayed}}: {sorted(map(str, unknown))}")
    return arr.astype(bool)


def _positive_column(model: FittedModel) -> int:
    classes = list(np.asarray(model.estimator.classes_).tolist())
    if 1 not in classes:
        raise UnknownLabelError(f"{model.name} was fit without the delayed class")
    return classes.index(1)


# ---------- Predictions ----------
def predict(model: FittedModel, X: pd.DataFrame) -> np.ndarray:
    return _as_labels(model.estimator.predict(X[list(model.feature_names)]))


def predict_proba(model: FittedModel, X: pd.DataFrame) -> np.ndarray:
    proba = model.estimator.predict_proba(X[list(model.feature_names)])
    return proba[:, _positive_column(model)]


# ---------- Metrics ----------
def confusion_counts(predicted, actual) -> ConfusionCounts:
    tn, fp, fn, tp = confusion_matrix(_as_labels(actual), _as_labels(predicted), labels=[False, True]).ravel()
    return ConfusionCounts(tp=int(tp), tn=int(tn), fp=int(fp), fn=int(fn))


def roc_points(actual, probabilities) -> pd.DataFrame:
    fpr, tpr, thresholds = roc_curve(_as_labels(actual), np.asarray(probabilities), drop_intermediate=False)
    return pd.DataFrame({
        "threshold": np.clip(thresholds, 0.0, 1.0),
        "fpr": fpr,
        "tpr": tpr,
    })


def area_under_curve(points: pd.DataFrame) -> float:
    return float(auc(points["fpr"], points["tpr"]))


def evaluate(model: FittedModel, X: pd.DataFrame, y) -> EvaluationResult:
    actual = _as_labels(y)
    known = set(np.asarray(model.estimator.classes_).astype(int).tolist())
    absent = set(np.unique(actual.astype(int)).tolist()) - known
    if absent:
        raise UnknownLabelError(f"{model.name} never saw labels {sorted(absent)}")

    predictions = predict(model, X)
    probabilities = predict_proba(model, X)
    counts = confusion_counts(predictions, actual)
    roc = roc_points(actual, probabilities)
    result = EvaluationResult(model.name, predictions, probabilities, counts, roc, area_under_curve(roc))

    logger.info(
        "%s: AUC %.4f, sensitivity %.3f, specificity %.3f on %d rows",
        model.name, result.auc, counts.sensitivity, counts.specificity, len(actual),
    )
    return result


# ---------- Reporting ----------
def importance_ranking(model: FittedModel) -> pd.Series:
    """Feature -> relative importance scaled to 0..100, highest first."""
    est = model.estimator
    if isinstance(est, Pipeline):
        est = est[-1]
    if hasattr(est, "feature_importances_"):
        raw = np.asarray(est.feature_importances_, dtype=float)
    elif hasattr(est, "coef_"):
        # coefficients on standardised inputs
        raw = np.abs(np.asarray(est.coef_, dtype=float)).ravel()
    else:
        raise TypeError(f"{model.name}: estimator exposes no importances")

    scores = pd.Series(raw, index=list(model.feature_names), name="importance")
    if scores.max() > 0:
        scores = scores / scores.max() * 100
    return scores.sort_values(ascending=False)


def compare_models(evaluations: Mapping[str, EvaluationResult]) -> pd.DataFrame:
    rows = [
        {
            "model": name,
            "auc": res.auc,
            "accuracy": res.confusion.accuracy,
            "sensitivity": res.confusion.sensitivity,
            "specificity": res.confusion.specificity,
        }
        for name, res in evaluations.items()
    ]
    return pd.DataFrame(rows, columns=["model", "auc", "accuracy", "sensitivity", "specificity"]) \
        .sort_values("auc", ascending=False).reset_index(drop=True)
