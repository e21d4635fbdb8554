# demand_replenishment/core/horizon.py
import math
from typing import Sequence

from demand_replenishment.logging_setup import get_logger
from demand_replenishment.utils.math_utils import mean, coefficient_of_variation

logger = get_logger(__name__)

LEAD_TIME_MULTIPLIER = 3
MAX_VARIABILITY_BOOST = 0.5
MAX_SEASONALITY_BOOST = 0.5

def calculate_horizon(
    lead_time_days: int,
    daily_series: Sequence[float] = None,
    seasonality_intensity: float = 0.0,
    min_horizon: int = 7,
    max_horizon: int = 90,
    default_lead_time: int = 7
) -> int:
    """Derive a forecast horizon from lead time, variability and seasonality.

    The base horizon covers three lead times. Demand variability (coefficient
    of variation, capped at 1) and seasonality intensity (capped at 1) each
    lengthen it by up to 50%.

    Args:
        lead_time_days: Supplier lead time; values below 1 fall back to default_lead_time
        daily_series: Daily demand history
        seasonality_intensity: Intensity from the active seasonal profile
        min_horizon: Lower bound
        max_horizon: Upper bound
        default_lead_time: Lead time used when none is known

    Returns:
        Horizon in days within [min_horizon, max_horizon]
    """
    if lead_time_days is None or lead_time_days < 1:
        logger.warning(f"Invalid lead time {lead_time_days}, using default of {default_lead_time} days")
        lead_time_days = default_lead_time

    base = LEAD_TIME_MULTIPLIER * lead_time_days

    variability = 0.0
    if daily_series and mean(daily_series) > 0:
        variability = min(coefficient_of_variation(daily_series), 1.0)

    intensity = min(max(seasonality_intensity or 0.0, 0.0), 1.0)

    raw = base * (1 + MAX_VARIABILITY_BOOST * variability + MAX_SEASONALITY_BOOST * intensity)
    # Round away float noise before taking the ceiling
    horizon = max(min_horizon, min(max_horizon, math.ceil(round(raw, 9))))

    logger.debug(
        f"Horizon: lead_time={lead_time_days}, cv={variability:.3f}, "
        f"intensity={intensity:.3f}, raw={raw:.2f}, horizon={horizon}"
    )
    return horizon
