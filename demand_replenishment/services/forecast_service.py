# demand_replenishment/services/forecast_service.py
import json
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, List, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from demand_replenishment.config import config
from demand_replenishment.models import ForecastRecord
from demand_replenishment.core.algorithms import (
    AUTO, ForecastAlgorithm, run_forecast, default_params
)
from demand_replenishment.core.forecast_base import ForecastResult, validate_horizon
from demand_replenishment.core.horizon import calculate_horizon
from demand_replenishment.core.seasonality import describe_seasonality
from demand_replenishment.services.collaborators import ProductReader
from demand_replenishment.services.demand_series_service import DemandSeriesService
from demand_replenishment.services.seasonality_service import SeasonalityService
from demand_replenishment.exceptions import DatabaseError, InsufficientDataError
from demand_replenishment.utils.math_utils import autocorrelation, linear_trend, coefficient_of_variation, mean
from demand_replenishment.logging_setup import get_logger

logger = get_logger(__name__)

# Autocorrelation above which a lag is treated as a seasonal cycle
SEASONAL_ACF_THRESHOLD = 0.3
# R squared above which a linear trend is treated as real
TREND_R_SQUARED_THRESHOLD = 0.5

@dataclass
class PatternDiagnostics:
    """Demand pattern indicators used to choose and explain an algorithm."""
    points: int
    acf_weekly: float
    acf_monthly: float
    seasonal_period: int
    has_seasonal_pattern: bool
    trend_slope: float
    trend_r_squared: float
    has_trend: bool
    cv: float

    def describe(self) -> str:
        parts = [f"{self.points} points"]
        if self.has_seasonal_pattern:
            parts.append(f"seasonal period {self.seasonal_period}")
        if self.has_trend:
            parts.append(f"trend slope {self.trend_slope:.2f} (R2 {self.trend_r_squared:.2f})")
        parts.append(f"CV {self.cv * 100:.1f}%")
        return ', '.join(parts)

def analyze_patterns(history: Sequence[float]) -> PatternDiagnostics:
    """Measure weekly/monthly autocorrelation, linear trend and variability.

    Args:
        history: Daily demand history

    Returns:
        PatternDiagnostics
    """
    acf_weekly = autocorrelation(history, 7)
    acf_monthly = autocorrelation(history, 30)

    if acf_monthly > SEASONAL_ACF_THRESHOLD and acf_monthly > acf_weekly and len(history) >= 60:
        seasonal_period = 30
    else:
        seasonal_period = 7

    slope, r_squared = linear_trend(history)
    cv = coefficient_of_variation(history) if mean(history) > 0 else 0.0

    return PatternDiagnostics(
        points=len(history),
        acf_weekly=acf_weekly,
        acf_monthly=acf_monthly,
        seasonal_period=seasonal_period,
        has_seasonal_pattern=max(acf_weekly, acf_monthly) > SEASONAL_ACF_THRESHOLD,
        trend_slope=slope,
        trend_r_squared=r_squared,
        has_trend=r_squared > TREND_R_SQUARED_THRESHOLD and slope != 0,
        cv=cv
    )

def select_forecast(
    history: Sequence[float],
    horizon: int,
    product_id: int = None
) -> ForecastResult:
    """Run every eligible algorithm and keep the one with the lowest backtest MAPE.

    Ties go to the simpler algorithm. Holt-Winters takes part only with at
    least 14 points and is given the detected seasonal period.

    Args:
        history: Daily demand history
        horizon: Number of future days to predict
        product_id: Optional product ID for error diagnosis

    Returns:
        The winning ForecastResult with its selection reason

    Raises:
        InsufficientDataError: If no algorithm has enough history
    """
    candidates = [
        algorithm for algorithm in ForecastAlgorithm
        if len(history) >= algorithm.min_points
    ]
    if not candidates:
        minimum = min(algorithm.min_points for algorithm in ForecastAlgorithm)
        raise InsufficientDataError(
            f"Automatic selection requires at least {minimum} historical points, {len(history)} available",
            required=minimum,
            available=len(history),
            algorithm=AUTO
        )

    diagnostics = analyze_patterns(history)

    results = []
    for algorithm in candidates:
        params = default_params(algorithm)
        if algorithm is ForecastAlgorithm.TRIPLE_EXPONENTIAL:
            params = replace(params, period=diagnostics.seasonal_period)
        results.append(run_forecast(algorithm, history, horizon, params, product_id))

    best = min(
        results,
        key=lambda result: (round(result.mape, 9), ForecastAlgorithm(result.algorithm).simplicity_rank)
    )

    comparison = ', '.join(f"{result.algorithm} {result.mape:.2f}%" for result in results)
    best.selection_reason = (
        f"AUTO selected {best.label}: lowest backtest MAPE ({comparison}); {diagnostics.describe()}"
    )
    if diagnostics.has_trend and not best.has_trend:
        best.has_trend = True

    logger.info(f"Product {product_id}: {best.selection_reason}")
    return best

class ForecastService:
    """Service that selects, runs and records demand forecasts."""

    def __init__(
        self,
        session: Session,
        demand_service: DemandSeriesService = None,
        seasonality_service: SeasonalityService = None,
        products: ProductReader = None
    ):
        """Initialize the forecast service.

        Args:
            session: Database session
            demand_service: Source of stored daily demand
            seasonality_service: Source of active seasonal profiles
            products: Product reader
        """
        self.session = session
        self.products = products or ProductReader(session)
        self.demand_service = demand_service or DemandSeriesService(session, products=self.products)
        self.seasonality_service = seasonality_service or SeasonalityService(session, products=self.products)
        self._settings = config.forecast_config

    def calculate_horizon(self, product, history: Sequence[float], profile=None) -> int:
        """Derive a horizon from the product's lead time, demand variability and seasonality."""
        return calculate_horizon(
            product.lead_time_days,
            history,
            profile.intensity if profile else 0.0,
            min_horizon=self._settings['min_horizon'],
            max_horizon=self._settings['max_horizon'],
            default_lead_time=self._settings['default_lead_time_days']
        )

    def forecast(
        self,
        product_id: int,
        horizon: Optional[int] = None,
        algorithm: Union[ForecastAlgorithm, str] = AUTO,
        params: Union[Dict, object, None] = None,
        persist: bool = True,
        history_days: int = None,
        as_of: date = None
    ) -> ForecastResult:
        """Forecast demand for a product.

        Args:
            product_id: Product ID
            horizon: Days to forecast; None derives it from lead time,
                variability and seasonality
            algorithm: ForecastAlgorithm, its code, or 'AUTO'
            params: Parameters for an explicit algorithm (object or mapping)
            persist: Store the result as a ForecastRecord
            history_days: Days of stored demand to use (defaults to configuration)
            as_of: Last day of history (defaults to today)

        Returns:
            ForecastResult

        Raises:
            ProductNotFoundError: If the product does not exist
            InsufficientDataError: If the requested algorithm lacks history
        """
        product = self.products.get_product(product_id)
        history = self.demand_service.get_daily_demand(
            product_id, history_days or self._settings['history_days'], as_of=as_of
        )
        profile = self.seasonality_service.get_active_profile(product_id)

        if horizon is None:
            horizon = self.calculate_horizon(product, history, profile)
        else:
            horizon = validate_horizon(horizon)

        if isinstance(algorithm, str) and algorithm.strip().upper() == AUTO:
            result = select_forecast(history, horizon, product_id)
        else:
            if isinstance(algorithm, str):
                algorithm = ForecastAlgorithm.from_string(algorithm)
            result = run_forecast(algorithm, history, horizon, params, product_id)
            result.selection_reason = f"{algorithm.label} requested explicitly"

        if profile:
            result.advisories.append(describe_seasonality(profile))

        if persist:
            record = self.save_forecast(product_id, result)
            result.record_id = record.id

        return result

    def save_forecast(self, product_id: int, result: ForecastResult) -> ForecastRecord:
        """Store a forecast result.

        Raises:
            DatabaseError: If the record cannot be written
        """
        try:
            record = ForecastRecord(
                product_id=product_id,
                algorithm=result.algorithm,
                label=result.label,
                horizon=result.horizon,
                total_demand=result.total_demand,
                predicted_values=json.dumps(result.predictions),
                mae=result.mae,
                mape=result.mape,
                rmse=result.rmse,
                quality=result.quality,
                mape_reliable=result.metrics.mape_reliable,
                advisories=json.dumps(result.advisories),
                parameters=json.dumps(result.parameters),
                has_trend=result.has_trend,
                has_seasonality=result.has_seasonality,
                seasonal_period=result.seasonal_period,
                selection_reason=result.selection_reason
            )
            self.session.add(record)
            self.session.commit()

        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to save forecast for product {product_id}: {str(e)}")

        logger.debug(f"Saved forecast {record.id} for product {product_id}")
        return record

    def get_latest_forecast(self, product_id: int) -> Optional[ForecastRecord]:
        return self.session.query(ForecastRecord).filter(
            ForecastRecord.product_id == product_id
        ).order_by(ForecastRecord.id.desc()).first()

    def get_forecast_history(self, product_id: int, limit: int = 10) -> List[ForecastRecord]:
        return self.session.query(ForecastRecord).filter(
            ForecastRecord.product_id == product_id
        ).order_by(ForecastRecord.id.desc()).limit(limit).all()
