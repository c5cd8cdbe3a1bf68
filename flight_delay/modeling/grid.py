# grid.py
# ---------------------------------------------
# Fixed hyperparameter grids, one record per grid point
# ---------------------------------------------

from typing import Dict, List

from sklearn.model_selection import ParameterGrid

HyperParams = Dict[str, object]


def expand_grid(axes: Dict[str, list]) -> List[HyperParams]:
    """Cartesian product of the axes as a list of named records."""
    return [dict(point) for point in ParameterGrid(axes)]


# elastic-net mixing: 0 = pure L2, 1 = pure L1
LINEAR_GRID = expand_grid({
    "alpha": [0.0, 1.0],
    "lambda": [round(0.001 * i, 3) for i in range(1, 101)],
})

FOREST_GRID = expand_grid({
    "max_features": [2, 3, 4, 5],
    "split_rule": ["gini", "extratrees"],
    "min_samples_leaf": [1, 5, 10],
})

BOOSTED_GRID = expand_grid({
    "n_estimators": [50],
    "max_depth": [3, 5],
    "learning_rate": [0.01, 0.1],
    "gamma": [0, 1],
    "colsample_bytree": [0.5, 0.7],
    "min_child_weight": [1, 3],
    "subsample": [0.7],
})
