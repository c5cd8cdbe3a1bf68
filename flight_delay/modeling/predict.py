# 2026.10.15  11.00
from typing import Mapping, Union

import pandas as pd
from pydantic import BaseModel

from flight_delay.config import FEATURE_COLUMNS
from flight_delay.features.encode import EncodingMap, model_matrix
from flight_delay.modeling.evaluate import predict_proba
from flight_delay.modeling.trainers import FittedModel


class UnseenFlight(BaseModel):
    carrier: str
    origin: str
    destination: str
    taxi_in: float
    taxi_out: float
    air_time: float
    distance: float
    is_weekend: bool
    # domain checked against the fitted encoding, not here
    season: str
    departure_occasion: str
    arrival_occasion: str


def predict_unseen(
    record: Union[UnseenFlight, Mapping[str, object]],
    encoding: EncodingMap,
    model: FittedModel,
) -> float:
    """P(delayed) for one hand-specified flight.

    Categorical fields go through the encoding fit at training time, so a value
    outside that domain raises UnseenCategoryError instead of yielding a score.
    """
    flight = record if isinstance(record, UnseenFlight) else UnseenFlight.model_validate(dict(record))
    row = pd.DataFrame([flight.model_dump()], columns=FEATURE_COLUMNS)
    X, _ = model_matrix(row, encoding)
    return float(predict_proba(model, X)[0])
