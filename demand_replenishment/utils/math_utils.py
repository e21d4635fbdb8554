# demand_replenishment/utils/math_utils.py
import math
from typing import List, Sequence

import numpy as np
from scipy import stats

def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))

def sample_std(values: Sequence[float]) -> float:
    """Sample standard deviation (n - 1), 0.0 below two values."""
    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))

def population_variance(values: Sequence[float]) -> float:
    """Population variance, 0.0 below two values."""
    if len(values) < 2:
        return 0.0
    return float(np.var(values))

def coefficient_of_variation(values: Sequence[float]) -> float:
    """Coefficient of variation as a ratio (std / mean).
    
    Returns:
        CV, or infinity when the mean is zero
    """
    avg = mean(values)
    if avg == 0:
        return math.inf
    return sample_std(values) / avg

def relative_change(baseline: float, value: float) -> float:
    """Relative change from baseline to value as a percentage.
    
    Returns:
        Percentage change, 0.0 when the baseline is zero
    """
    if baseline == 0:
        return 0.0
    return (value - baseline) / baseline * 100.0

def autocorrelation(values: Sequence[float], lag: int) -> float:
    """Autocorrelation of a series at a given lag.
    
    Args:
        values: Series values
        lag: Lag in periods
        
    Returns:
        Autocorrelation coefficient, 0.0 if undefined
    """
    series = np.asarray(values, dtype=float)
    if lag < 1 or len(series) <= lag:
        return 0.0
    
    centered = series - series.mean()
    denominator = float(np.sum(centered ** 2))
    if denominator == 0:
        return 0.0
    
    numerator = float(np.sum(centered[:-lag] * centered[lag:]))
    return numerator / denominator

def linear_trend(values: Sequence[float]):
    """Least squares linear trend over the series index.
    
    Args:
        values: Series values
        
    Returns:
        Tuple with slope and R squared
    """
    if len(values) < 3:
        return 0.0, 0.0
    
    series = np.asarray(values, dtype=float)
    if np.all(series == series[0]):
        return 0.0, 0.0
    
    result = stats.linregress(np.arange(len(series)), series)
    return float(result.slope), float(result.rvalue ** 2)

def all_finite(values: List[float]) -> bool:
    """Check that no value is NaN or infinite."""
    return bool(np.all(np.isfinite(np.asarray(values, dtype=float))))
