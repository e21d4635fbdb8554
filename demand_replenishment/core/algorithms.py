# demand_replenishment/core/algorithms.py
"""The forecasting algorithm family.

The set of algorithms is closed: `ForecastAlgorithm` enumerates it and
`run_forecast` dispatches to the matching function. Each algorithm has a
parameter value object with documented defaults; `resolve` clamps values
that are slightly out of range and records the adjustment as an advisory.
"""
import enum
import math
from dataclasses import dataclass, replace, asdict
from typing import Dict, List, Optional, Sequence, Union

from demand_replenishment.config import config
from demand_replenishment.core.forecast_base import (
    ForecastResult, validate_series, validate_horizon, clamp_non_negative, build_result
)
from demand_replenishment.exceptions import InvalidParameterError
from demand_replenishment.logging_setup import get_logger
from demand_replenishment.utils.math_utils import mean, coefficient_of_variation, population_variance

logger = get_logger(__name__)

AUTO = 'AUTO'

# Smoothing factor bounds applied when a value falls outside (0, 1)
MIN_SMOOTHING = 0.01
MAX_SMOOTHING = 0.99

MIN_MA_WINDOW = 3
LIMITED_HISTORY_MA = 30
LIMITED_HISTORY_SES = 15
HIGH_VARIABILITY_MA = 0.30
HIGH_VARIABILITY_SES = 0.40
LOW_VARIABILITY_SES = 0.15
LEVEL_SHIFT_TREND_THRESHOLD = 0.15
LOW_VARIANCE_THRESHOLD = 0.1
STABLE_TREND_THRESHOLD = 0.1
STRONG_SEASONAL_AMPLITUDE = 5.0

class ForecastAlgorithm(enum.Enum):
    """Supported forecasting algorithms, in simplicity order."""
    MOVING_AVERAGE = 'SMA'
    SINGLE_EXPONENTIAL = 'SES'
    TRIPLE_EXPONENTIAL = 'HOLT_WINTERS'

    def __str__(self):
        return self.value

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def min_points(self) -> int:
        """Minimum number of history points the algorithm accepts."""
        return _MIN_POINTS[self]

    @property
    def simplicity_rank(self) -> int:
        """Lower is simpler; used to break ties between equally accurate algorithms."""
        return list(ForecastAlgorithm).index(self)

    @classmethod
    def from_string(cls, value: str) -> 'ForecastAlgorithm':
        """Create a ForecastAlgorithm from its code or name.

        Raises:
            InvalidParameterError if the value names no algorithm
        """
        key = value.strip().upper()
        for algorithm in cls:
            if key in (algorithm.value, algorithm.name):
                return algorithm
        valid = ', '.join(a.value for a in cls)
        raise InvalidParameterError(
            f"Unknown algorithm: {value}. Valid values are: {valid}, {AUTO}",
            parameter='algorithm',
            value=value
        )

_LABELS = {
    ForecastAlgorithm.MOVING_AVERAGE: 'Simple Moving Average',
    ForecastAlgorithm.SINGLE_EXPONENTIAL: 'Single Exponential Smoothing',
    ForecastAlgorithm.TRIPLE_EXPONENTIAL: 'Holt-Winters Triple Exponential Smoothing',
}

_MIN_POINTS = {
    ForecastAlgorithm.MOVING_AVERAGE: 7,
    ForecastAlgorithm.SINGLE_EXPONENTIAL: 5,
    ForecastAlgorithm.TRIPLE_EXPONENTIAL: 14,
}

def _clamp_smoothing(name: str, value: float, advisories: List[str]) -> float:
    if value is None or not math.isfinite(value):
        raise InvalidParameterError(
            f"Smoothing factor {name} must be a finite number, got {value}",
            parameter=name,
            value=value
        )

    clamped = min(MAX_SMOOTHING, max(MIN_SMOOTHING, float(value)))
    if clamped != value:
        message = f"Parameter {name}={value} out of range, adjusted to {clamped}"
        logger.warning(message)
        advisories.append(message)
    return clamped

@dataclass(frozen=True)
class MovingAverageParams:
    """Moving average parameters.

    Attributes:
        window: Number of trailing values averaged per step. Clamped to
            [3, len(series)]; values below 1 are rejected.
    """
    window: int = 14

    def resolve(self, history_length: int, advisories: List[str]) -> 'MovingAverageParams':
        window = int(self.window)
        if window < 1:
            raise InvalidParameterError(
                f"Window must be positive, got {self.window}", parameter='window', value=self.window
            )

        adjusted = max(MIN_MA_WINDOW, min(window, history_length))
        if adjusted != window:
            message = f"Window adjusted from {window} to {adjusted} for {history_length} data points"
            logger.warning(message)
            advisories.append(message)
        return replace(self, window=adjusted)

@dataclass(frozen=True)
class SingleSmoothingParams:
    """Single exponential smoothing parameters.

    Attributes:
        alpha: Smoothing factor, clamped to [0.01, 0.99]
    """
    alpha: float = 0.3

    def resolve(self, history_length: int, advisories: List[str]) -> 'SingleSmoothingParams':
        return replace(self, alpha=_clamp_smoothing('alpha', self.alpha, advisories))

@dataclass(frozen=True)
class TripleSmoothingParams:
    """Additive Holt-Winters parameters.

    Attributes:
        alpha: Level smoothing factor
        beta: Trend smoothing factor
        gamma: Seasonal smoothing factor
        period: Seasonal cycle length, at least 2. Shortened to
            max(7, len(series) // 2) when fewer than two cycles are available.
    """
    alpha: float = 0.4
    beta: float = 0.2
    gamma: float = 0.3
    period: int = 7

    def resolve(self, history_length: int, advisories: List[str]) -> 'TripleSmoothingParams':
        if self.period is None or int(self.period) < 2:
            raise InvalidParameterError(
                f"Seasonal period must be at least 2, got {self.period}",
                parameter='period',
                value=self.period
            )

        period = int(self.period)
        if history_length < period * 2:
            adjusted = max(7, history_length // 2)
            message = (
                f"Seasonal period adjusted from {period} to {adjusted}: "
                f"{history_length} points cover fewer than 2 cycles"
            )
            logger.warning(message)
            advisories.append(message)
            period = adjusted

        return TripleSmoothingParams(
            alpha=_clamp_smoothing('alpha', self.alpha, advisories),
            beta=_clamp_smoothing('beta', self.beta, advisories),
            gamma=_clamp_smoothing('gamma', self.gamma, advisories),
            period=period
        )

AlgorithmParams = Union[MovingAverageParams, SingleSmoothingParams, TripleSmoothingParams]

_PARAM_TYPES = {
    ForecastAlgorithm.MOVING_AVERAGE: MovingAverageParams,
    ForecastAlgorithm.SINGLE_EXPONENTIAL: SingleSmoothingParams,
    ForecastAlgorithm.TRIPLE_EXPONENTIAL: TripleSmoothingParams,
}

def default_params(algorithm: ForecastAlgorithm) -> AlgorithmParams:
    """Get the configured default parameters for an algorithm."""
    settings = config.forecast_config
    if algorithm is ForecastAlgorithm.MOVING_AVERAGE:
        return MovingAverageParams(window=settings['ma_window'])
    elif algorithm is ForecastAlgorithm.SINGLE_EXPONENTIAL:
        return SingleSmoothingParams(alpha=settings['ses_alpha'])
    return TripleSmoothingParams(
        alpha=settings['hw_alpha'],
        beta=settings['hw_beta'],
        gamma=settings['hw_gamma'],
        period=settings['hw_period']
    )

def params_from_mapping(algorithm: ForecastAlgorithm, values: Optional[Dict]) -> AlgorithmParams:
    """Build a parameter object from a name/value mapping over the configured defaults.

    Raises:
        InvalidParameterError: If the mapping names a parameter the algorithm does not take
    """
    base = default_params(algorithm)
    if not values:
        return base

    allowed = set(asdict(base))
    unknown = set(values) - allowed
    if unknown:
        raise InvalidParameterError(
            f"Unknown parameters for {algorithm.value}: {', '.join(sorted(unknown))}",
            parameter=sorted(unknown)[0],
            value=values[sorted(unknown)[0]]
        )
    return replace(base, **values)

def moving_average(
    series: Sequence[float],
    horizon: int,
    params: MovingAverageParams = None,
    product_id=None
) -> ForecastResult:
    """Rolling moving average forecast.

    Each step predicts the mean of the last `window` known-or-predicted values
    and appends the prediction to the working series before the next step.

    Args:
        series: Daily demand history
        horizon: Number of future days to predict
        params: Moving average parameters
        product_id: Optional product ID for error diagnosis

    Returns:
        ForecastResult
    """
    algorithm = ForecastAlgorithm.MOVING_AVERAGE
    history = validate_series(series, algorithm.min_points, algorithm.value)
    horizon = validate_horizon(horizon)

    advisories = []
    params = (params or MovingAverageParams()).resolve(len(history), advisories)
    window = params.window

    fitted = [history[0]] + [mean(history[max(0, t - window):t]) for t in range(1, len(history))]

    working = list(history)
    predictions = []
    for _ in range(horizon):
        value = max(0.0, mean(working[-window:]))
        predictions.append(value)
        working.append(value)

    if len(history) < LIMITED_HISTORY_MA:
        advisories.append(
            f"Limited history ({len(history)} points). At least {LIMITED_HISTORY_MA} "
            f"points recommended for a reliable moving average"
        )

    if mean(history) > 0:
        cv = coefficient_of_variation(history)
        if cv > HIGH_VARIABILITY_MA:
            advisories.append(
                f"High demand variability (CV {cv * 100:.1f}%). "
                f"Consider exponential smoothing"
            )

    shift = detect_level_shift(history)
    has_trend = abs(shift) > LEVEL_SHIFT_TREND_THRESHOLD
    if has_trend:
        direction = 'upward' if shift > 0 else 'downward'
        advisories.append(
            f"Trend detected ({direction}). A moving average lags behind a trend; "
            f"consider Holt-Winters"
        )

    logger.debug(f"Moving average window={window}, predictions={len(predictions)}")

    result = build_result(
        algorithm.value, algorithm.label, history, fitted, predictions, horizon,
        asdict(params), advisories, product_id
    )
    result.has_trend = has_trend
    return result

def detect_level_shift(history: Sequence[float]) -> float:
    """Relative difference between the means of the second and first halves.

    Returns:
        Relative change as a ratio; infinity when the first half is all zero
        and the second half is not
    """
    half = len(history) // 2
    first = mean(history[:half])
    second = mean(history[half:])
    if first == 0:
        return math.inf if second > 0 else 0.0
    return (second - first) / first

def single_exponential(
    series: Sequence[float],
    horizon: int,
    params: SingleSmoothingParams = None,
    product_id=None
) -> ForecastResult:
    """Single exponential smoothing with a flat forecast at the final level.

    Args:
        series: Daily demand history
        horizon: Number of future days to predict
        params: Smoothing parameters
        product_id: Optional product ID for error diagnosis

    Returns:
        ForecastResult
    """
    algorithm = ForecastAlgorithm.SINGLE_EXPONENTIAL
    history = validate_series(series, algorithm.min_points, algorithm.value)
    horizon = validate_horizon(horizon)

    advisories = []
    params = (params or SingleSmoothingParams()).resolve(len(history), advisories)
    alpha = params.alpha

    initial = min(3, len(history))
    level = mean(history[:initial])
    fitted = [level] * initial
    for observation in history[initial:]:
        fitted.append(level)
        level = alpha * observation + (1 - alpha) * level

    predictions = clamp_non_negative([level] * horizon)

    if len(history) < LIMITED_HISTORY_SES:
        advisories.append(
            f"Limited history ({len(history)} points). At least {LIMITED_HISTORY_SES} "
            f"points recommended for exponential smoothing"
        )

    shift = detect_level_shift(history)
    has_trend = abs(shift) > LEVEL_SHIFT_TREND_THRESHOLD
    if has_trend:
        direction = 'upward' if shift > 0 else 'downward'
        advisories.append(
            f"Trend detected ({direction}). Single smoothing has no trend component; "
            f"consider Holt-Winters"
        )

    if mean(history) > 0:
        cv = coefficient_of_variation(history)
        if cv > HIGH_VARIABILITY_SES and alpha < 0.5:
            advisories.append(
                f"High demand variability (CV {cv * 100:.1f}%). A higher alpha reacts faster"
            )
        elif cv < LOW_VARIABILITY_SES and alpha > 0.3:
            advisories.append(
                f"Low demand variability (CV {cv * 100:.1f}%). A lower alpha gives a smoother forecast"
            )

    if alpha >= 0.7:
        advisories.append(f"Alpha {alpha} weights recent demand heavily")
    elif alpha <= 0.2:
        advisories.append(f"Alpha {alpha} produces a strongly smoothed forecast")

    logger.debug(f"Single smoothing alpha={alpha}, final level={level:.4f}")

    result = build_result(
        algorithm.value, algorithm.label, history, fitted, predictions, horizon,
        asdict(params), advisories, product_id
    )
    result.has_trend = has_trend
    return result

def _seasonal_advisories(history, period, final_trend, seasonal) -> List[str]:
    advisories = []

    cycles = len(history) // period
    if cycles < 3:
        advisories.append(
            f"Only {cycles} complete seasonal cycles. At least 3 recommended for stable seasonal factors"
        )

    if population_variance(history) < LOW_VARIANCE_THRESHOLD:
        advisories.append("Very low demand variance. A simpler algorithm such as moving average is adequate")

    if abs(final_trend) < STABLE_TREND_THRESHOLD:
        advisories.append("Trend stable")
    elif final_trend > 0:
        advisories.append(f"Increasing trend of {final_trend:.2f} units per period")
    else:
        advisories.append(f"Decreasing trend of {abs(final_trend):.2f} units per period")

    # Latest factor for each position of the cycle
    n = len(history)
    factors = [0.0] * period
    for t in range(n - period, n):
        factors[t % period] = seasonal[t]

    amplitude = max(factors) - min(factors)
    peak = factors.index(max(factors)) + 1
    trough = factors.index(min(factors)) + 1
    strength = 'Strong' if amplitude > STRONG_SEASONAL_AMPLITUDE else 'Moderate'
    advisories.append(
        f"{strength} seasonal pattern: amplitude {amplitude:.2f}, "
        f"peak at position {peak}, trough at position {trough} of {period}"
    )
    return advisories

def triple_exponential(
    series: Sequence[float],
    horizon: int,
    params: TripleSmoothingParams = None,
    product_id=None
) -> ForecastResult:
    """Additive Holt-Winters forecast.

    Args:
        series: Daily demand history
        horizon: Number of future days to predict
        params: Holt-Winters parameters
        product_id: Optional product ID for error diagnosis

    Returns:
        ForecastResult
    """
    algorithm = ForecastAlgorithm.TRIPLE_EXPONENTIAL
    history = validate_series(series, algorithm.min_points, algorithm.value)
    horizon = validate_horizon(horizon)

    advisories = []
    params = (params or TripleSmoothingParams()).resolve(len(history), advisories)
    alpha, beta, gamma, period = params.alpha, params.beta, params.gamma, params.period
    n = len(history)

    initial_level = mean(history[:period])
    initial_trend = (mean(history[period:period * 2]) - initial_level) / period

    cycles = min(n // period, 4)
    initial_seasonal = [
        mean([history[cycle * period + position] - initial_level for cycle in range(cycles)])
        for position in range(period)
    ]

    level = [initial_level] * period
    trend = [initial_trend] * period
    seasonal = list(initial_seasonal)
    fitted = [initial_level + initial_seasonal[t] for t in range(period)]

    for t in range(period, n):
        observation = history[t]
        fitted.append(level[t - 1] + trend[t - 1] + seasonal[t - period])

        new_level = alpha * (observation - seasonal[t - period]) + (1 - alpha) * (level[t - 1] + trend[t - 1])
        new_trend = beta * (new_level - level[t - 1]) + (1 - beta) * trend[t - 1]
        new_seasonal = gamma * (observation - new_level) + (1 - gamma) * seasonal[t - period]

        level.append(new_level)
        trend.append(new_trend)
        seasonal.append(new_seasonal)

    final_level = level[-1]
    final_trend = trend[-1]
    predictions = []
    for h in range(1, horizon + 1):
        factor = seasonal[len(seasonal) - period + ((h - 1) % period)]
        predictions.append(max(0.0, final_level + h * final_trend + factor))

    fitted = clamp_non_negative(fitted)
    advisories.extend(_seasonal_advisories(history, period, final_trend, seasonal))

    logger.debug(
        f"Holt-Winters period={period}, level={final_level:.4f}, trend={final_trend:.4f}"
    )

    result = build_result(
        algorithm.value, algorithm.label, history, fitted, predictions, horizon,
        asdict(params), advisories, product_id
    )
    result.has_trend = abs(final_trend) >= STABLE_TREND_THRESHOLD
    result.has_seasonality = True
    result.seasonal_period = period
    return result

_DISPATCH = {
    ForecastAlgorithm.MOVING_AVERAGE: moving_average,
    ForecastAlgorithm.SINGLE_EXPONENTIAL: single_exponential,
    ForecastAlgorithm.TRIPLE_EXPONENTIAL: triple_exponential,
}

def run_forecast(
    algorithm: Union[ForecastAlgorithm, str],
    series: Sequence[float],
    horizon: int,
    params: Union[AlgorithmParams, Dict, None] = None,
    product_id=None
) -> ForecastResult:
    """Run one algorithm of the family.

    Args:
        algorithm: ForecastAlgorithm or its code
        series: Daily demand history
        horizon: Number of future days to predict
        params: Parameter object, a name/value mapping, or None for the configured defaults
        product_id: Optional product ID for error diagnosis

    Returns:
        ForecastResult

    Raises:
        InvalidParameterError: If the parameters do not belong to the algorithm
    """
    if isinstance(algorithm, str):
        algorithm = ForecastAlgorithm.from_string(algorithm)

    if params is None or isinstance(params, dict):
        params = params_from_mapping(algorithm, params)
    elif not isinstance(params, _PARAM_TYPES[algorithm]):
        raise InvalidParameterError(
            f"{type(params).__name__} cannot configure {algorithm.value}",
            parameter='params',
            value=type(params).__name__
        )

    return _DISPATCH[algorithm](series, horizon, params, product_id)
