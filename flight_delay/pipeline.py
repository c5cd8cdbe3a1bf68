# pipeline.py
# ---------------------------------------------
# load -> derive -> clean -> encode -> split -> train -> evaluate -> infer
# ---------------------------------------------

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pydantic import ValidationError

from flight_delay.config import PipelineConfig
from flight_delay.features.clean import build_training_table
from flight_delay.features.derive import derive_features, normalize_columns
from flight_delay.features.encode import EncodingMap, UnseenCategoryError, fit_encoding, model_matrix
from flight_delay.modeling.evaluate import EvaluationResult, compare_models, evaluate, importance_ranking
from flight_delay.modeling.predict import predict_unseen
from flight_delay.modeling.split import split_table
from flight_delay.modeling.trainers import FAMILIES, ModelFamily, TrainingReport, train_all

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    training_table: pd.DataFrame
    missingness: pd.DataFrame
    encoding: EncodingMap
    train_index: np.ndarray
    test_index: np.ndarray
    training: TrainingReport
    evaluations: Dict[str, EvaluationResult] = field(default_factory=dict)
    importances: Dict[str, pd.Series] = field(default_factory=dict)
    comparison: Optional[pd.DataFrame] = None
    unseen: List[dict] = field(default_factory=list)


def load_flights(path: str) -> pd.DataFrame:
    logger.info("Loading flights from %s", path)
    return pd.read_csv(path, low_memory=False)


def prepare_training_table(raw: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
    return build_training_table(derive_features(normalize_columns(raw)))


def run_pipeline(
    flights: pd.DataFrame,
    config: Optional[PipelineConfig] = None,
    unseen: Iterable[Mapping[str, object]] = (),
    families: Sequence[ModelFamily] = FAMILIES,
    grids: Optional[Mapping[str, Sequence[dict]]] = None,
) -> PipelineResult:
    config = config or PipelineConfig()
    seeds = config.seeds

    table, missingness = prepare_training_table(flights)
    encoding = fit_encoding(table)
    train_rows, test_rows = split_table(table, config.train_fraction, seeds["split"])
    X_train, y_train = model_matrix(train_rows, encoding)
    X_test, y_test = model_matrix(test_rows, encoding)
    # table carries a RangeIndex, so labels are positions
    train_idx, test_idx = train_rows.index.to_numpy(), test_rows.index.to_numpy()

    training = train_all(
        X_train, y_train,
        families=families,
        grids=grids,
        seeds=seeds,
        parallel=config.parallel_trainers,
        folds=config.cv_folds,
        n_jobs=config.n_jobs,
        max_rows=config.tree_rows,
        forest_trees=config.forest_trees,
    )

    result = PipelineResult(table, missingness, encoding, train_idx, test_idx, training)
    for name, model in training.models.items():
        result.evaluations[name] = evaluate(model, X_test, y_test)
        result.importances[name] = importance_ranking(model)
    result.comparison = compare_models(result.evaluations)

    for i, record in enumerate(unseen):
        for name, model in training.models.items():
            try:
                p = predict_unseen(record, encoding, model)
            except (UnseenCategoryError, ValidationError) as exc:
                logger.error("Unseen record %d: %s", i, exc)
                result.unseen.append({"record": i, "model": name, "probability": None, "error": str(exc)})
                continue
            logger.info("Unseen record %d: %s P(delayed) = %.3f", i, name, p)
            result.unseen.append({"record": i, "model": name, "probability": p, "error": ""})
    return result
