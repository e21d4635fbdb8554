import argparse
import sys

from tabulate import tabulate

from demand_replenishment.config import config
from demand_replenishment.db import db, session_scope
from demand_replenishment.logging_setup import logger, get_logger
from demand_replenishment.core.algorithms import AUTO, ForecastAlgorithm
from demand_replenishment.core.seasonality import MONTH_NAMES, describe_seasonality
from demand_replenishment.exceptions import ReplenishmentError

log = get_logger('cli')

def init_application(database_url=None):
    """Initialize application components."""
    db.initialize(database_url)

    app_log = logger.app_logger
    app_log.info("Demand Replenishment System initialized")
    app_log.info(f"Using database engine: {db.engine.url.get_backend_name()}")

    return True

def init_database(args):
    """Create the schema, optionally dropping existing tables first."""
    if args.drop:
        log.warning("Dropping all tables")
        db.drop_all_tables()
    db.create_all_tables()
    print("Database schema created")
    return 0

def build_series(args):
    """Rebuild demand series for one product or for all products."""
    from demand_replenishment.services.demand_series_service import DemandSeriesService

    lookback_days = args.lookback_days or config.batch_config['default_lookback_days']

    with session_scope() as session:
        service = DemandSeriesService(session)

        if args.product_id:
            series = service.build_demand_series(args.product_id, lookback_days)
            print(f"Product {args.product_id}: {len(series)} days with demand, "
                  f"total {series.total_demand:.2f} over {lookback_days} days")
            return 0

        results = service.build_all_demand_series(lookback_days, args.batch_size)

    print(tabulate(
        [[results['new_count'], results['updated_count'], results['skipped_count'],
          results['error_count'], results['batches']]],
        headers=['New', 'Updated', 'Skipped', 'Errors', 'Batches']
    ))
    for message in results['errors']:
        print(f"  {message}")
    return 0 if results['error_count'] == 0 else 1

def print_forecast(result, verbose=False):
    print(f"\n{result.label} ({result.algorithm})")
    print(result.selection_reason)
    print(tabulate(
        [[result.horizon, f"{result.total_demand:.2f}", f"{result.mae:.2f}", f"{result.mape:.2f}%",
          f"{result.rmse:.2f}", result.quality]],
        headers=['Horizon', 'Total Demand', 'MAE', 'MAPE', 'RMSE', 'Quality']
    ))

    if verbose:
        print("\nPredictions:")
        print(tabulate(
            [[day, f"{value:.2f}"] for day, value in enumerate(result.predictions, 1)],
            headers=['Day', 'Demand']
        ))

    if result.advisories:
        print("\nAdvisories:")
        for advisory in result.advisories:
            print(f"  - {advisory}")

def forecast(args):
    """Forecast demand for a product."""
    from demand_replenishment.services.forecast_service import ForecastService

    with session_scope() as session:
        service = ForecastService(session)
        result = service.forecast(
            args.product_id,
            horizon=args.horizon,
            algorithm=args.algorithm,
            persist=not args.no_persist
        )
        print_forecast(result, args.verbose)
    return 0

def seasonality(args):
    """Analyze seasonality for one product or for all products."""
    from demand_replenishment.services.seasonality_service import SeasonalityService

    with session_scope() as session:
        service = SeasonalityService(session)

        if not args.product_id:
            results = service.analyze_all(lookback_months=args.months)
            print(tabulate(
                [[results['total_products'], results['analyzed'], results['seasonal_found'],
                  results['insufficient_data'], results['error_count']]],
                headers=['Products', 'Analyzed', 'Seasonal', 'Insufficient Data', 'Errors']
            ))
            return 0 if results['error_count'] == 0 else 1

        profile = service.analyze_seasonality(args.product_id, lookback_months=args.months)
        if profile is None:
            print(f"Product {args.product_id}: insufficient data for seasonality analysis")
            return 0

        print(f"Product {args.product_id}: {describe_seasonality(profile)}")
        print(tabulate(
            [[MONTH_NAMES[index.month - 1], f"{index.coefficient:.4f}"] for index in profile.indices],
            headers=['Month', 'Coefficient']
        ))
    return 0

def recommend(args):
    """Forecast a product and recommend an order."""
    from demand_replenishment.services.forecast_service import ForecastService
    from demand_replenishment.services.replenishment_service import ReplenishmentService

    with session_scope() as session:
        forecast_result = ForecastService(session).forecast(
            args.product_id, horizon=args.horizon, algorithm=args.algorithm
        )
        service = ReplenishmentService(session)
        recommendation = service.recommend_order(args.product_id, forecast_result)

        print(tabulate(
            [[recommendation.product_id, recommendation.order_required, recommendation.quantity,
              f"{recommendation.predicted_demand:.2f}", recommendation.current_stock,
              recommendation.reorder_point, recommendation.estimated_cost]],
            headers=['Product', 'Order', 'Quantity', 'Predicted', 'Stock', 'Reorder Point', 'Cost']
        ))
        print(recommendation.justification)

        if args.persist:
            order = service.persist_recommendation(recommendation)
            print(f"Saved replenishment order {order.id}")
    return 0

def nightly(args):
    """Run the nightly batch job."""
    from demand_replenishment.batch.nightly_job import run_nightly_job

    results = run_nightly_job(args.steps)

    rows = []
    for step, outcome in results['processes'].items():
        errors = outcome.get('error_count', 0)
        rows.append([step, errors, len(outcome.get('errors', []))])
    print(tabulate(rows, headers=['Step', 'Errors', 'Sampled Messages']))
    print(f"Duration: {results['duration']}")
    return 0 if results['success'] else 1

def build_parser():
    parser = argparse.ArgumentParser(description='Demand Replenishment System')
    parser.add_argument('--database-url', type=str, help='SQLAlchemy URL overriding the configuration')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    init_parser = subparsers.add_parser('init-db', help='Create the database schema')
    init_parser.add_argument('--drop', action='store_true', help='Drop existing tables first')
    init_parser.set_defaults(handler=init_database)

    series_parser = subparsers.add_parser('build-series', help='Rebuild daily demand series')
    series_parser.add_argument('--product-id', type=int, help='Rebuild a single product')
    series_parser.add_argument('--lookback-days', type=int, help='Window length in days')
    series_parser.add_argument('--batch-size', type=int, help='Product-date groups per batch')
    series_parser.set_defaults(handler=build_series)

    algorithms = [AUTO] + [algorithm.value for algorithm in ForecastAlgorithm]

    forecast_parser = subparsers.add_parser('forecast', help='Forecast demand for a product')
    forecast_parser.add_argument('--product-id', type=int, required=True)
    forecast_parser.add_argument('--horizon', type=int, help='Days to forecast (derived when omitted)')
    forecast_parser.add_argument('--algorithm', choices=algorithms, default=config.forecast_config['default_algorithm'])
    forecast_parser.add_argument('--no-persist', action='store_true', help='Do not store the forecast')
    forecast_parser.add_argument('--verbose', '-v', action='store_true', help='Show every prediction')
    forecast_parser.set_defaults(handler=forecast)

    seasonality_parser = subparsers.add_parser('seasonality', help='Analyze monthly seasonality')
    seasonality_parser.add_argument('--product-id', type=int, help='Analyze a single product')
    seasonality_parser.add_argument('--months', type=int, help='Months of history')
    seasonality_parser.set_defaults(handler=seasonality)

    recommend_parser = subparsers.add_parser('recommend', help='Recommend an order for a product')
    recommend_parser.add_argument('--product-id', type=int, required=True)
    recommend_parser.add_argument('--horizon', type=int)
    recommend_parser.add_argument('--algorithm', choices=algorithms, default=AUTO)
    recommend_parser.add_argument('--persist', action='store_true', help='Store the recommendation')
    recommend_parser.set_defaults(handler=recommend)

    nightly_parser = subparsers.add_parser('nightly', help='Run the nightly batch job')
    nightly_parser.add_argument('--steps', nargs='+', choices=['build_series', 'seasonality', 'forecast'])
    nightly_parser.set_defaults(handler=nightly)

    return parser

def main(argv=None):
    """Main application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    init_application(args.database_url)

    try:
        return args.handler(args)
    except ReplenishmentError as e:
        log.error(f"{args.command} failed: {str(e)}")
        print(f"Error: {str(e)}", file=sys.stderr)
        return 1

if __name__ == "__main__":
    sys.exit(main())
