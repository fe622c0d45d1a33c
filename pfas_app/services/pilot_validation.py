import logging
import math
from typing import List, Sequence

import numpy as np

from pfas_app.models.schemas import BreakthroughResult, ObservedBreakthroughPoint, ValidationMetrics
from pfas_app.services.errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

FIT_THRESHOLDS = {"excellent": 0.9, "good": 0.7}


def validate_breakthrough_prediction(predicted: Sequence[float], observed: Sequence[float]) -> ValidationMetrics:
    """Goodness of fit between predicted and observed effluent concentrations (ng/L).

    Pairs with a non-finite value are skipped. R-squared is clamped to
    [0, 1]; MAPE only counts non-zero observations.
    """
    if len(predicted) == 0 or len(observed) == 0:
        raise InvalidConfigurationError("Predicted and observed series must not be empty", field="observed")
    if len(predicted) != len(observed):
        raise InvalidConfigurationError(
            f"Series length mismatch: predicted has {len(predicted)} points, observed has {len(observed)}",
            field="observed",
        )

    pred = np.asarray(predicted, dtype=float)
    obs = np.asarray(observed, dtype=float)
    finite = np.isfinite(pred) & np.isfinite(obs)
    skipped = int((~finite).sum())
    if skipped:
        logger.warning("Pilot validation: skipping %d non-finite point(s)", skipped)
    pred, obs = pred[finite], obs[finite]
    if pred.size == 0:
        raise InvalidConfigurationError("No finite prediction/observation pairs to compare", field="observed")

    errors = pred - obs
    ss_res = float(np.sum(errors ** 2))
    ss_tot = float(np.sum((obs - obs.mean()) ** 2))
    if ss_tot > 0:
        r_squared = 1 - ss_res / ss_tot
    else:
        r_squared = 1.0 if ss_res == 0 else 0.0

    nonzero = obs != 0
    mape = float(np.mean(np.abs(errors[nonzero] / obs[nonzero])) * 100) if nonzero.any() else 0.0

    return ValidationMetrics(
        n_points=int(pred.size),
        rmse=math.sqrt(ss_res / pred.size),
        mae=float(np.mean(np.abs(errors))),
        mape=mape,
        max_error=float(np.max(np.abs(errors))),
        bias=float(np.mean(errors)),
        r_squared=max(0.0, min(1.0, r_squared)),
    )


def predicted_at_observation_times(
    breakthrough: BreakthroughResult, observations: List[ObservedBreakthroughPoint]
) -> List[float]:
    times = [point.time_days for point in breakthrough.curve]
    concentrations = [point.effluent_concentration for point in breakthrough.curve]
    return [float(c) for c in np.interp([obs.time_days for obs in observations], times, concentrations)]


def rate_model_fit(r_squared: float) -> str:
    if r_squared > FIT_THRESHOLDS["excellent"]:
        return "excellent"
    if r_squared > FIT_THRESHOLDS["good"]:
        return "good"
    return "poor"
