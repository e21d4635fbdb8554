# demand_replenishment/core/seasonality.py
"""Monthly seasonal coefficients and seasonality intensity."""
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

import numpy as np

from demand_replenishment.logging_setup import get_logger

logger = get_logger(__name__)

MONTHS = range(1, 13)
DEFAULT_INTENSITY_THRESHOLD = 0.15
DEFAULT_MIN_POINTS = 12

MONTH_NAMES = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December'
]

@dataclass
class SeasonalAnalysis:
    """Result of analyzing one product's monthly demand.

    Attributes:
        coefficients: Month (1-12) to ratio of monthly average over annual average
        intensity: Mean absolute deviation of the coefficients from 1.0
        has_seasonality: Whether intensity exceeds the threshold
        peak_month: Month with the highest coefficient
        trough_month: Month with the lowest coefficient
        data_points: Number of monthly totals the analysis used
    """
    product_id: Optional[int]
    coefficients: Dict[int, float]
    intensity: float
    has_seasonality: bool
    peak_month: int
    trough_month: int
    data_points: int
    monthly_averages: Dict[int, float] = field(default_factory=dict)
    annual_average: float = 0.0

def describe_seasonality(profile) -> str:
    """One-line summary for forecast advisories.

    Args:
        profile: SeasonalAnalysis or stored SeasonalProfile

    Returns:
        Summary naming the intensity and, when seasonal, the peak and trough months
    """
    if not profile.has_seasonality:
        return f"No significant monthly seasonality (intensity {profile.intensity:.2f})"
    return (
        f"Monthly seasonality (intensity {profile.intensity:.2f}): peak in "
        f"{MONTH_NAMES[profile.peak_month - 1]}, trough in {MONTH_NAMES[profile.trough_month - 1]}"
    )

def _month_of(period: str) -> int:
    return int(period.split('-')[1])

def monthly_averages(monthly_totals: Dict[str, float], periods: Iterable[str] = None) -> Dict[int, float]:
    """Average demand per calendar month across years.

    Args:
        monthly_totals: 'YYYY-MM' period label to total demand
        periods: Every period of the analysis window; periods without a total
            count as zero demand. Defaults to the keys of monthly_totals.

    Returns:
        Month (1-12) to average demand; months never observed average 0
    """
    periods = list(periods) if periods is not None else list(monthly_totals)

    by_month = {month: [] for month in MONTHS}
    for period in periods:
        by_month[_month_of(period)].append(monthly_totals.get(period, 0.0))

    return {
        month: float(np.mean(values)) if values else 0.0
        for month, values in by_month.items()
    }

def analyze_monthly_demand(
    monthly_totals: Dict[str, float],
    product_id: int = None,
    periods: Iterable[str] = None,
    intensity_threshold: float = DEFAULT_INTENSITY_THRESHOLD,
    min_points: int = DEFAULT_MIN_POINTS
) -> Optional[SeasonalAnalysis]:
    """Compute seasonal coefficients from monthly demand totals.

    Args:
        monthly_totals: 'YYYY-MM' period label to total demand
        product_id: Product the totals belong to
        periods: Every period of the analysis window (see monthly_averages)
        intensity_threshold: Intensity above which a product is seasonal
        min_points: Minimum number of monthly totals required

    Returns:
        SeasonalAnalysis, or None when there are fewer than min_points totals
    """
    data_points = sum(1 for value in monthly_totals.values() if value is not None)
    if data_points < min_points:
        logger.info(
            f"Insufficient data for seasonality of product {product_id}: "
            f"{data_points} monthly points, {min_points} required"
        )
        return None

    averages = monthly_averages(monthly_totals, periods)
    annual_average = sum(averages.values()) / 12.0

    if annual_average > 0:
        coefficients = {month: averages[month] / annual_average for month in MONTHS}
    else:
        coefficients = {month: 1.0 for month in MONTHS}

    values = np.array([coefficients[month] for month in MONTHS])
    intensity = float(np.mean(np.abs(values - 1.0)))

    analysis = SeasonalAnalysis(
        product_id=product_id,
        coefficients=coefficients,
        intensity=intensity,
        has_seasonality=intensity > intensity_threshold,
        peak_month=int(np.argmax(values)) + 1,
        trough_month=int(np.argmin(values)) + 1,
        data_points=data_points,
        monthly_averages=averages,
        annual_average=annual_average
    )

    logger.debug(
        f"Seasonality for product {product_id}: intensity={intensity:.4f}, "
        f"peak={analysis.peak_month}, trough={analysis.trough_month}"
    )
    return analysis
