from .series import DemandPoint, DemandSeries, build_series, aggregate_daily_demand
from .forecast_base import ForecastResult, ForecastMetrics, quality_label
from .algorithms import (
    AUTO, ForecastAlgorithm, MovingAverageParams, SingleSmoothingParams, TripleSmoothingParams,
    run_forecast
)
from .seasonality import SeasonalAnalysis, analyze_monthly_demand
from .horizon import calculate_horizon
from .replenishment import SAFETY_BUFFER, OrderRecommendation, calculate_order_quantity

__all__ = [
    'DemandPoint',
    'DemandSeries',
    'build_series',
    'aggregate_daily_demand',
    'ForecastResult',
    'ForecastMetrics',
    'quality_label',
    'AUTO',
    'ForecastAlgorithm',
    'MovingAverageParams',
    'SingleSmoothingParams',
    'TripleSmoothingParams',
    'run_forecast',
    'SeasonalAnalysis',
    'analyze_monthly_demand',
    'calculate_horizon',
    'SAFETY_BUFFER',
    'OrderRecommendation',
    'calculate_order_quantity'
]
