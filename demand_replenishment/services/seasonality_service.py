# demand_replenishment/services/seasonality_service.py
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from demand_replenishment.config import config
from demand_replenishment.models import SeasonalProfile, SeasonalProfileIndex
from demand_replenishment.core.series import aggregate_daily_demand, demand_movement_types, monthly_totals
from demand_replenishment.core.seasonality import SeasonalAnalysis, analyze_monthly_demand
from demand_replenishment.services.collaborators import LedgerReader, ProductReader
from demand_replenishment.exceptions import DatabaseError, InvalidParameterError, ReplenishmentError
from demand_replenishment.utils.date_utils import (
    last_complete_month_end, month_periods, period_label, subtract_months
)
from demand_replenishment.logging_setup import get_logger

logger = get_logger(__name__)

class SeasonalityService:
    """Service for detecting monthly seasonality and keeping one active profile per product."""

    def __init__(self, session: Session, ledger: LedgerReader = None, products: ProductReader = None):
        """Initialize the seasonality service.

        Args:
            session: Database session
            ledger: Ledger reader (defaults to the database ledger)
            products: Product reader (defaults to the database catalogue)
        """
        self.session = session
        self.ledger = ledger or LedgerReader(session)
        self.products = products or ProductReader(session)
        self._settings = config.seasonality_config

    def compute_seasonality(
        self,
        product_id: int,
        lookback_months: int = None,
        as_of: date = None,
        include_consumption: bool = False
    ) -> Optional[SeasonalAnalysis]:
        """Analyze monthly ledger demand without storing anything.

        Args:
            product_id: Product ID
            lookback_months: Months of history (defaults to configuration)
            as_of: Business date; history ends with the last month complete by then (defaults to today)
            include_consumption: Count internal consumption as demand

        Returns:
            SeasonalAnalysis, or None when fewer than the minimum monthly points exist
        """
        lookback_months = lookback_months or config.batch_config['seasonality_lookback_months']
        if lookback_months < 1:
            raise InvalidParameterError(
                f"Lookback must be at least 1 month, got {lookback_months}",
                parameter='lookback_months',
                value=lookback_months
            )

        self.products.get_product(product_id)

        # Only whole calendar months are observations
        last_day = last_complete_month_end(as_of or date.today())
        first_month = subtract_months(last_day, lookback_months - 1).replace(day=1)
        start = datetime.combine(first_month, datetime.min.time())
        end = datetime.combine(last_day, datetime.max.time())

        entries = self.ledger.get_ledger_entries(product_id, start, end)
        daily = aggregate_daily_demand(entries, demand_movement_types(include_consumption))

        periods = []
        if daily:
            first_sale = min(daily)
            first_period = period_label(first_sale)
            # Months before the first sale are not observations, nor is a month it starts part way through
            periods = [
                period for period in month_periods(first_month, last_day)
                if period > first_period or (period == first_period and first_sale.day == 1)
            ]

        totals = {
            period: total for period, total in monthly_totals(daily).items()
            if period in periods
        }

        return analyze_monthly_demand(
            totals,
            product_id=product_id,
            periods=periods,
            intensity_threshold=self._settings['intensity_threshold'],
            min_points=self._settings['min_points']
        )

    def analyze_seasonality(
        self,
        product_id: int,
        lookback_months: int = None,
        as_of: date = None,
        include_consumption: bool = False
    ) -> Optional[SeasonalProfile]:
        """Analyze a product and replace its active seasonal profile.

        Args:
            product_id: Product ID
            lookback_months: Months of history (defaults to configuration)
            as_of: Business date (defaults to today)
            include_consumption: Count internal consumption as demand

        Returns:
            The new active SeasonalProfile, or None when data is insufficient
        """
        analysis = self.compute_seasonality(product_id, lookback_months, as_of, include_consumption)
        if analysis is None:
            return None

        return self._save_profile(analysis)

    def _save_profile(self, analysis: SeasonalAnalysis) -> SeasonalProfile:
        try:
            superseded = self.session.query(SeasonalProfile).filter(
                SeasonalProfile.product_id == analysis.product_id,
                SeasonalProfile.is_active == True
            ).update({'is_active': False}, synchronize_session='fetch')

            profile = SeasonalProfile(
                product_id=analysis.product_id,
                intensity=analysis.intensity,
                has_seasonality=analysis.has_seasonality,
                peak_month=analysis.peak_month,
                trough_month=analysis.trough_month,
                data_points=analysis.data_points,
                analysis_date=datetime.now(),
                is_active=True
            )
            for month, coefficient in analysis.coefficients.items():
                profile.indices.append(SeasonalProfileIndex(month=month, coefficient=coefficient))

            self.session.add(profile)
            self.session.commit()

        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(
                f"Failed to save seasonal profile for product {analysis.product_id}: {str(e)}"
            )

        logger.info(
            f"Seasonal profile for product {analysis.product_id}: intensity={analysis.intensity:.4f}, "
            f"seasonal={analysis.has_seasonality}, superseded {superseded} profile(s)"
        )
        return profile

    def get_active_profile(self, product_id: int) -> Optional[SeasonalProfile]:
        """Get the active seasonal profile of a product, if any."""
        return self.session.query(SeasonalProfile).filter(
            SeasonalProfile.product_id == product_id,
            SeasonalProfile.is_active == True
        ).order_by(SeasonalProfile.id.desc()).first()

    def get_profile_history(self, product_id: int) -> List[SeasonalProfile]:
        """Get every profile of a product, newest first, superseded ones included."""
        return self.session.query(SeasonalProfile).filter(
            SeasonalProfile.product_id == product_id
        ).order_by(SeasonalProfile.id.desc()).all()

    def analyze_all(
        self,
        product_ids: List[int] = None,
        lookback_months: int = None,
        batch_size: int = None,
        as_of: date = None
    ) -> Dict:
        """Analyze every active product.

        A failure for one product is rolled back, counted and logged; the
        remaining products are still analyzed.

        Args:
            product_ids: Products to analyze (defaults to all active products)
            lookback_months: Months of history (defaults to configuration)
            batch_size: Products per batch before the session is cleared
            as_of: Business date (defaults to today)

        Returns:
            Dictionary with analysis results
        """
        batch_config = config.batch_config
        batch_size = batch_size or batch_config['batch_size']
        max_errors = batch_config['max_error_samples']

        if product_ids is None:
            product_ids = self.products.get_active_product_ids()

        results = {
            'total_products': len(product_ids),
            'analyzed': 0,
            'seasonal_found': 0,
            'insufficient_data': 0,
            'error_count': 0,
            'errors': []
        }

        for batch_start in range(0, len(product_ids), batch_size):
            for product_id in product_ids[batch_start:batch_start + batch_size]:
                try:
                    profile = self.analyze_seasonality(product_id, lookback_months, as_of)
                    if profile is None:
                        results['insufficient_data'] += 1
                        continue

                    results['analyzed'] += 1
                    if profile.has_seasonality:
                        results['seasonal_found'] += 1

                except (ReplenishmentError, SQLAlchemyError) as e:
                    self.session.rollback()
                    results['error_count'] += 1
                    message = f"Error analyzing seasonality for product {product_id}: {str(e)}"
                    logger.error(message)
                    if len(results['errors']) < max_errors:
                        results['errors'].append(message)

            self.session.expunge_all()

        logger.info(
            f"Seasonality analysis: {results['analyzed']}/{results['total_products']} analyzed, "
            f"{results['seasonal_found']} seasonal, {results['insufficient_data']} insufficient data, "
            f"{results['error_count']} errors"
        )
        return results
