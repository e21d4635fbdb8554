# demand_replenishment/batch/nightly_job.py
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from demand_replenishment.config import config
from demand_replenishment.db import session_scope
from demand_replenishment.core.algorithms import AUTO
from demand_replenishment.services.collaborators import ProductReader
from demand_replenishment.services.demand_series_service import DemandSeriesService
from demand_replenishment.services.seasonality_service import SeasonalityService
from demand_replenishment.services.forecast_service import ForecastService
from demand_replenishment.services.replenishment_service import ReplenishmentService
from demand_replenishment.exceptions import BatchProcessError, InsufficientDataError, ReplenishmentError
from demand_replenishment.logging_setup import get_logger, log_exception, logger as log_manager

logger = get_logger('nightly_job')

STEP_BUILD_SERIES = 'build_series'
STEP_SEASONALITY = 'seasonality'
STEP_FORECAST = 'forecast'

ALL_STEPS = (STEP_BUILD_SERIES, STEP_SEASONALITY, STEP_FORECAST)

def build_demand_series(lookback_days: Optional[int] = None, as_of: Optional[date] = None) -> Dict:
    """Rebuild the stored demand series for all products.

    Args:
        lookback_days: Window length in days (defaults to configuration)
        as_of: Last day of the window (defaults to today)

    Returns:
        Dictionary with rebuild results
    """
    logger.info(f"Rebuilding demand series, lookback_days={lookback_days}")

    with session_scope() as session:
        service = DemandSeriesService(session)
        results = service.build_all_demand_series(lookback_days=lookback_days, as_of=as_of)

    return results

def analyze_seasonality(as_of: Optional[date] = None) -> Dict:
    """Recompute the seasonal profile of every active product.

    Returns:
        Dictionary with analysis results
    """
    logger.info("Analyzing seasonality for all products")

    with session_scope() as session:
        service = SeasonalityService(session)
        results = service.analyze_all(as_of=as_of)

    return results

def _active_product_ids() -> List[int]:
    with session_scope() as session:
        return ProductReader(session).get_active_product_ids()

def forecast_and_recommend(
    batch_size: Optional[int] = None,
    persist_orders: bool = True,
    as_of: Optional[date] = None
) -> Dict:
    """Forecast every active product and record replenishment orders.

    Products are processed in chunks, each in its own session. A product
    without enough history is counted and skipped; any other failure is
    rolled back, counted and logged.

    Args:
        batch_size: Products per chunk (defaults to configuration)
        persist_orders: Store recommendations that require an order
        as_of: Last day of history (defaults to today)

    Returns:
        Dictionary with forecast and order counts
    """
    batch_config = config.batch_config
    batch_size = batch_size or batch_config['batch_size']
    max_errors = batch_config['max_error_samples']

    product_ids = _active_product_ids()
    logger.info(f"Forecasting {len(product_ids)} products in chunks of {batch_size}")

    results = {
        'total_products': len(product_ids),
        'forecasts': 0,
        'orders_recommended': 0,
        'insufficient_data': 0,
        'error_count': 0,
        'errors': []
    }

    for chunk_start in range(0, len(product_ids), batch_size):
        chunk = product_ids[chunk_start:chunk_start + batch_size]

        with session_scope() as session:
            forecast_service = ForecastService(session)
            replenishment_service = ReplenishmentService(session)

            for product_id in chunk:
                try:
                    forecast = forecast_service.forecast(product_id, algorithm=AUTO, as_of=as_of)
                    results['forecasts'] += 1

                    recommendation = replenishment_service.recommend_order(product_id, forecast)
                    if recommendation.order_required:
                        results['orders_recommended'] += 1
                        if persist_orders:
                            replenishment_service.persist_recommendation(recommendation)

                except InsufficientDataError as e:
                    results['insufficient_data'] += 1
                    logger.debug(f"Skipping product {product_id}: {str(e)}")

                except (ReplenishmentError, SQLAlchemyError) as e:
                    session.rollback()
                    results['error_count'] += 1
                    message = f"Error forecasting product {product_id}: {str(e)}"
                    logger.error(message)
                    if len(results['errors']) < max_errors:
                        results['errors'].append(message)

            session.expunge_all()

    logger.info(
        f"Forecasts: {results['forecasts']}, orders recommended: {results['orders_recommended']}, "
        f"insufficient data: {results['insufficient_data']}, errors: {results['error_count']}"
    )
    return results

def run_nightly_job(steps: Optional[List[str]] = None, as_of: Optional[date] = None) -> Dict:
    """Run the nightly job.

    Args:
        steps: Steps to run, in order (defaults to all steps)
        as_of: Business date to run for (defaults to today)

    Returns:
        Dictionary with job results
    """
    steps = list(steps) if steps else list(ALL_STEPS)
    unknown = [step for step in steps if step not in ALL_STEPS]
    if unknown:
        raise BatchProcessError(
            f"Unknown nightly job steps: {', '.join(unknown)}",
            details={'steps': unknown}
        )

    log_info = log_manager.batch_start_log('nightly_job', {'steps': steps, 'as_of': as_of})
    start_time = log_info['start_time']

    results = {
        'start_time': start_time,
        'end_time': None,
        'duration': None,
        'processes': {}
    }

    step_functions = {
        STEP_BUILD_SERIES: lambda: build_demand_series(as_of=as_of),
        STEP_SEASONALITY: lambda: analyze_seasonality(as_of=as_of),
        STEP_FORECAST: lambda: forecast_and_recommend(as_of=as_of),
    }

    try:
        for number, step in enumerate(steps, 1):
            logger.info(f"# Step {number}: {step}")
            results['processes'][step] = step_functions[step]()

        results['success'] = True

    except (ReplenishmentError, SQLAlchemyError) as e:
        log_exception('nightly_job', e, "Error during nightly job")
        results['success'] = False
        results['error'] = str(e)

    results['end_time'] = datetime.now()
    results['duration'] = results['end_time'] - start_time

    log_manager.batch_end_log(
        log_info,
        success=results['success'],
        result_info={step: _summary(outcome) for step, outcome in results['processes'].items()}
    )
    return results

def _summary(outcome: Dict) -> Dict:
    return {key: value for key, value in outcome.items() if key != 'errors'}

if __name__ == "__main__":
    run_nightly_job()
