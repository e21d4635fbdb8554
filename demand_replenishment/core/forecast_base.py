# demand_replenishment/core/forecast_base.py
"""Validation, error metrics and result assembly shared by every forecasting algorithm.

Metrics are an in-sample backtest: each algorithm reports the one-step-ahead
value it would have predicted for every observed point, and the trailing
``min(horizon, len(series) // 4)`` of those fitted values are compared with
the actual history.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import numpy as np

from demand_replenishment.exceptions import (
    InsufficientDataError, InvalidValueError, InvalidParameterError, ComputationError
)
from demand_replenishment.logging_setup import get_logger
from demand_replenishment.utils.math_utils import mean, relative_change, all_finite

logger = get_logger(__name__)

# Prediction quality bands over MAPE (percent)
QUALITY_EXCELLENT = 'EXCELLENT'
QUALITY_GOOD = 'GOOD'
QUALITY_ACCEPTABLE = 'ACCEPTABLE'
QUALITY_POOR = 'POOR'

# Relative change (percent) between history and forecast means that counts as a shift
DEMAND_SHIFT_THRESHOLD = 20.0


@dataclass
class ForecastMetrics:
    mae: float = 0.0
    mape: float = 0.0
    rmse: float = 0.0
    points: int = 0
    mape_reliable: bool = True


@dataclass
class ForecastResult:
    """Outcome of one forecasting run."""

    algorithm: str
    label: str
    predictions: List[float]
    total_demand: float
    metrics: ForecastMetrics
    quality: str
    advisories: List[str] = field(default_factory=list)
    has_trend: bool = False
    has_seasonality: bool = False
    seasonal_period: Optional[int] = None
    parameters: Dict[str, float] = field(default_factory=dict)
    history_length: int = 0
    selection_reason: str = ''
    generated_at: datetime = field(default_factory=datetime.now)
    record_id: Optional[int] = None

    @property
    def horizon(self) -> int:
        return len(self.predictions)

    @property
    def mae(self) -> float:
        return self.metrics.mae

    @property
    def mape(self) -> float:
        return self.metrics.mape

    @property
    def rmse(self) -> float:
        return self.metrics.rmse

    def to_dict(self) -> Dict:
        return {
            'algorithm': self.algorithm,
            'label': self.label,
            'horizon': self.horizon,
            'predictions': list(self.predictions),
            'total_demand': self.total_demand,
            'mae': self.metrics.mae,
            'mape': self.metrics.mape,
            'rmse': self.metrics.rmse,
            'mape_reliable': self.metrics.mape_reliable,
            'quality': self.quality,
            'advisories': list(self.advisories),
            'has_trend': self.has_trend,
            'has_seasonality': self.has_seasonality,
            'seasonal_period': self.seasonal_period,
            'parameters': dict(self.parameters),
            'history_length': self.history_length,
            'selection_reason': self.selection_reason,
            'generated_at': self.generated_at.isoformat(),
            'record_id': self.record_id
        }


def validate_series(series: Sequence[float], minimum: int, algorithm: str) -> List[float]:
    """Validate a demand series for an algorithm.

    Args:
        series: Demand values in chronological order
        minimum: Minimum number of points the algorithm needs
        algorithm: Algorithm code, used in error details

    Returns:
        The series as a list of floats

    Raises:
        InsufficientDataError: If the series is shorter than `minimum`
        InvalidValueError: If any value is None, NaN or negative
    """
    available = len(series) if series is not None else 0
    if available < minimum:
        message = (
            f"{algorithm} requires at least {minimum} historical points, "
            f"{available} available"
        )
        logger.error(message)
        raise InsufficientDataError(message, required=minimum, available=available, algorithm=algorithm)

    values = []
    for index, value in enumerate(series):
        if value is None or (isinstance(value, float) and math.isnan(value)) or value < 0:
            message = (
                f"Invalid demand value at position {index}: {value}. "
                f"Values must be greater than or equal to zero"
            )
            logger.error(message)
            raise InvalidValueError(message, index=index, value=value)
        values.append(float(value))

    logger.debug(f"Series validation passed for {algorithm}: {available} points")
    return values


def validate_horizon(horizon: int) -> int:
    """Check that a forecast horizon is a positive integer."""
    if horizon is None or int(horizon) < 1:
        raise InvalidParameterError(
            f"Horizon must be at least 1, got {horizon}", parameter='horizon', value=horizon
        )
    return int(horizon)


def clamp_non_negative(values: Sequence[float]) -> List[float]:
    """Clamp every value to zero or above; demand cannot be negative."""
    return [max(0.0, float(value)) for value in values]


def backtest_size(horizon: int, history_length: int) -> int:
    """Number of trailing history points used for the in-sample backtest."""
    return max(0, min(horizon, history_length // 4))


def calculate_mae(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """Calculate Mean Absolute Error."""
    if len(actual) == 0:
        return 0.0
    errors = np.asarray(actual, dtype=float) - np.asarray(predicted, dtype=float)
    return float(np.mean(np.abs(errors)))


def calculate_mape(actual: Sequence[float], predicted: Sequence[float]):
    """Calculate Mean Absolute Percentage Error over non-zero actuals.

    Returns:
        Tuple with MAPE as a percentage and whether it is reliable (at least one
        non-zero actual contributed)
    """
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    nonzero = actual != 0
    if not nonzero.any():
        return 0.0, False
    errors = np.abs(actual[nonzero] - predicted[nonzero]) / actual[nonzero]
    return float(np.mean(errors)) * 100.0, True


def calculate_rmse(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """Calculate Root Mean Squared Error."""
    if len(actual) == 0:
        return 0.0
    errors = np.asarray(actual, dtype=float) - np.asarray(predicted, dtype=float)
    return float(np.sqrt(np.mean(errors ** 2)))


def calculate_metrics(actual: Sequence[float], predicted: Sequence[float]) -> ForecastMetrics:
    """Calculate MAE, MAPE and RMSE between two aligned sequences.

    Raises:
        ValueError: If the sequences have different lengths
    """
    if len(actual) != len(predicted):
        raise ValueError("Actual and predicted sequences must have the same length")

    mape, reliable = calculate_mape(actual, predicted)
    return ForecastMetrics(
        mae=calculate_mae(actual, predicted),
        mape=mape,
        rmse=calculate_rmse(actual, predicted),
        points=len(actual),
        mape_reliable=reliable
    )


def backtest_metrics(history: Sequence[float], fitted: Sequence[float], horizon: int) -> ForecastMetrics:
    """Compare the trailing slice of history with the model's fitted values.

    Args:
        history: Observed values
        fitted: One-step-ahead fitted values aligned with history
        horizon: Forecast horizon

    Returns:
        ForecastMetrics for the trailing slice
    """
    size = backtest_size(horizon, len(history))
    if size == 0:
        return ForecastMetrics(mape_reliable=False)

    return calculate_metrics(list(history[-size:]), list(fitted[-size:]))


def quality_label(mape: float) -> str:
    """Map a MAPE percentage to a quality label."""
    if mape < 10.0:
        return QUALITY_EXCELLENT
    elif mape < 20.0:
        return QUALITY_GOOD
    elif mape < 50.0:
        return QUALITY_ACCEPTABLE
    return QUALITY_POOR


def demand_shift_advisory(history: Sequence[float], predictions: Sequence[float]) -> str:
    """Describe the expected change between historical and forecast demand."""
    change = relative_change(mean(history), mean(predictions))

    if change > DEMAND_SHIFT_THRESHOLD:
        return (
            f"Demand expected to increase by {change:.1f}%. "
            f"Consider raising safety stock"
        )
    elif change < -DEMAND_SHIFT_THRESHOLD:
        return (
            f"Demand expected to decrease by {abs(change):.1f}%. "
            f"Review reorder policies"
        )
    return "Demand stable. Keep current inventory policies"


def ensure_finite(values: Sequence[float], algorithm: str, product_id=None) -> None:
    """Raise ComputationError if any value is NaN or infinite."""
    if not all_finite(list(values)):
        raise ComputationError(
            f"{algorithm} produced non-finite values",
            product_id=product_id,
            algorithm=algorithm
        )


def build_result(
    algorithm: str,
    label: str,
    history: Sequence[float],
    fitted: Sequence[float],
    predictions: Sequence[float],
    horizon: int,
    parameters: Dict[str, float],
    advisories: List[str] = None,
    product_id=None
) -> ForecastResult:
    """Assemble a ForecastResult with backtest metrics and the demand shift advisory.

    Args:
        algorithm: Algorithm code
        label: Human readable algorithm name
        history: Observed values
        fitted: One-step-ahead fitted values aligned with history
        predictions: Future predictions (already clamped)
        horizon: Forecast horizon
        parameters: Effective parameters after clamping
        advisories: Algorithm-specific advisories collected so far
        product_id: Optional product identifier for error diagnosis

    Returns:
        ForecastResult
    """
    ensure_finite(predictions, algorithm, product_id)
    ensure_finite(fitted, algorithm, product_id)

    metrics = backtest_metrics(history, fitted, horizon)
    ensure_finite([metrics.mae, metrics.mape, metrics.rmse], algorithm, product_id)

    quality = quality_label(metrics.mape)
    total_demand = float(sum(predictions))

    messages = list(advisories or [])
    if not metrics.mape_reliable:
        messages.append(
            "MAPE could not be measured: no non-zero actual demand in the backtest window"
        )
    messages.append(demand_shift_advisory(history, predictions))

    logger.info(
        f"Forecast completed: algorithm={algorithm}, total_demand={total_demand:.2f}, "
        f"MAPE={metrics.mape:.2f}%, quality={quality}"
    )

    return ForecastResult(
        algorithm=algorithm,
        label=label,
        predictions=list(predictions),
        total_demand=total_demand,
        metrics=metrics,
        quality=quality,
        advisories=messages,
        parameters=dict(parameters),
        history_length=len(history)
    )
