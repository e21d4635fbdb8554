# demand_replenishment/services/demand_series_service.py
from datetime import date, datetime
from typing import Dict, List, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from demand_replenishment.config import config
from demand_replenishment.models import DemandRecord, LedgerEntry, Product
from demand_replenishment.core.series import (
    DemandPoint, DemandSeries, build_series, demand_movement_types
)
from demand_replenishment.services.collaborators import LedgerReader, ProductReader
from demand_replenishment.exceptions import DatabaseError, InvalidParameterError
from demand_replenishment.utils.date_utils import lookback_window, date_range, to_date
from demand_replenishment.logging_setup import get_logger, log_exception

logger = get_logger(__name__)

class DemandSeriesService:
    """Service that maintains the stored daily demand series.

    Only days with demand are stored. Readers that need a continuous series
    use get_daily_demand, which fills the gaps with zeros.
    """

    def __init__(self, session: Session, ledger: LedgerReader = None, products: ProductReader = None):
        """Initialize the demand series service.

        Args:
            session: Database session
            ledger: Ledger reader (defaults to the database ledger)
            products: Product reader (defaults to the database catalogue)
        """
        self.session = session
        self.ledger = ledger or LedgerReader(session)
        self.products = products or ProductReader(session)

    @staticmethod
    def _check_lookback(lookback_days: int) -> None:
        if lookback_days is None or lookback_days < 1:
            raise InvalidParameterError(
                f"Lookback window must be at least 1 day, got {lookback_days}",
                parameter='lookback_days',
                value=lookback_days
            )

    def build_demand_series(
        self,
        product_id: int,
        lookback_days: int,
        as_of: date = None,
        include_consumption: bool = False
    ) -> DemandSeries:
        """Rebuild and store the demand series of one product.

        Days in the window are recomputed and overwritten; days that no longer
        have demand are removed. Running twice on the same ledger gives the
        same stored values.

        Args:
            product_id: Product ID
            lookback_days: Window length in days (>= 1)
            as_of: Last day of the window (defaults to today)
            include_consumption: Count internal consumption as demand

        Returns:
            DemandSeries for the window
        """
        self._check_lookback(lookback_days)
        self.products.get_product(product_id)

        start, end = lookback_window(lookback_days, as_of)
        entries = self.ledger.get_ledger_entries(product_id, start, end)
        series = build_series(
            product_id, entries, start.date(), end.date(),
            demand_movement_types(include_consumption)
        )

        try:
            new_count, updated_count, removed_count = self._store_series(series)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to store demand series for product {product_id}: {str(e)}")

        logger.info(
            f"Demand series for product {product_id}: {len(series)} days with demand "
            f"({new_count} new, {updated_count} updated, {removed_count} removed)"
        )
        return series

    def _store_series(self, series: DemandSeries) -> Tuple[int, int, int]:
        existing = {
            record.demand_date: record
            for record in self.session.query(DemandRecord).filter(
                DemandRecord.product_id == series.product_id,
                DemandRecord.demand_date >= series.start_date,
                DemandRecord.demand_date <= series.end_date
            )
        }

        new_count, updated_count = self._upsert_points(series.points, existing)

        # Remaining records are days that no longer have demand
        for record in existing.values():
            self.session.delete(record)

        self.session.flush()
        return new_count, updated_count, len(existing)

    def _upsert_points(self, points: List[DemandPoint], existing: Dict, key=None) -> Tuple[int, int]:
        """Insert or overwrite demand records.

        Args:
            points: Demand points to store
            existing: Existing records by key; matched records are removed
                from the dictionary
            key: Function giving a point's key in `existing` (defaults to its date)

        Returns:
            Tuple with new and updated counts
        """
        new_count = 0
        updated_count = 0

        for point in points:
            record = existing.pop(key(point) if key else point.demand_date, None)

            if record:
                record.quantity = point.quantity
                record.period_label = point.period_label
                record.updated_at = datetime.now()
                updated_count += 1
            else:
                self.session.add(DemandRecord(
                    product_id=point.product_id,
                    demand_date=point.demand_date,
                    quantity=point.quantity,
                    period_label=point.period_label
                ))
                new_count += 1

        return new_count, updated_count

    def get_demand_series(self, product_id: int, days: int, as_of: date = None) -> DemandSeries:
        """Read the stored demand series for a window.

        Args:
            product_id: Product ID
            days: Window length in days
            as_of: Last day of the window (defaults to today)

        Returns:
            DemandSeries with the stored points
        """
        self._check_lookback(days)
        start, end = lookback_window(days, as_of)

        records = self.session.query(DemandRecord).filter(
            DemandRecord.product_id == product_id,
            DemandRecord.demand_date >= start.date(),
            DemandRecord.demand_date <= end.date()
        ).order_by(DemandRecord.demand_date).all()

        points = [
            DemandPoint(record.product_id, record.demand_date, record.quantity, record.period_label)
            for record in records
        ]
        return DemandSeries(product_id, points, start.date(), end.date())

    def get_daily_demand(
        self,
        product_id: int,
        days: int,
        fill_missing: bool = True,
        as_of: date = None
    ) -> List[float]:
        """Get daily demand values for forecasting.

        Args:
            product_id: Product ID
            days: Window length in days
            fill_missing: Fill days without a stored point with zero
            as_of: Last day of the window (defaults to today)

        Returns:
            List of daily demand values. When filling, the list runs from the
            first day with demand in the window to the end of the window.
        """
        series = self.get_demand_series(product_id, days, as_of)
        if not fill_missing:
            return series.values

        if not series.points:
            return []

        first_day = series.points[0].demand_date
        by_date = {point.demand_date: point.quantity for point in series.points}
        return [by_date.get(day, 0.0) for day in date_range(first_day, series.end_date)]

    def clear_demand(self, product_id: int) -> int:
        """Delete the stored series of a product before a full rebuild.

        Returns:
            Number of deleted records
        """
        try:
            deleted = self.session.query(DemandRecord).filter(
                DemandRecord.product_id == product_id
            ).delete(synchronize_session=False)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to clear demand for product {product_id}: {str(e)}")

        logger.info(f"Cleared {deleted} demand records for product {product_id}")
        return deleted

    def count_points(self, product_id: int) -> int:
        return self.session.query(func.count(DemandRecord.id)).filter(
            DemandRecord.product_id == product_id
        ).scalar()

    def has_sufficient_data(self, product_id: int, minimum: int = 12) -> bool:
        """Check whether a product has at least `minimum` stored demand days."""
        return self.count_points(product_id) >= minimum

    def _demand_groups_query(self, start: datetime, end: datetime, include_consumption: bool):
        day = func.date(LedgerEntry.movement_date)
        return self.session.query(
            LedgerEntry.product_id,
            day.label('demand_day'),
            func.sum(func.abs(LedgerEntry.quantity)).label('quantity')
        ).filter(
            LedgerEntry.movement_type.in_(list(demand_movement_types(include_consumption))),
            or_(LedgerEntry.is_voided == False, LedgerEntry.is_voided.is_(None)),
            LedgerEntry.movement_date >= start,
            LedgerEntry.movement_date <= end
        ).group_by(
            LedgerEntry.product_id, day
        ).order_by(
            LedgerEntry.product_id, day
        )

    @staticmethod
    def _group_date(value) -> date:
        # func.date returns text on SQLite and a date on PostgreSQL
        if isinstance(value, str):
            return date.fromisoformat(value[:10])
        return to_date(value)

    def build_all_demand_series(
        self,
        lookback_days: int = None,
        batch_size: int = None,
        as_of: date = None,
        include_consumption: bool = False
    ) -> Dict:
        """Rebuild stored demand for every product in bounded batches.

        Ledger demand is grouped by (product, date) in the database and walked
        one page of `batch_size` groups at a time. Each page is upserted and
        committed on its own, then the session is cleared before the next page.
        A failed page is rolled back, counted and skipped; pages already
        committed stay committed if the run stops part way.

        Args:
            lookback_days: Window length in days (defaults to configuration)
            batch_size: Groups per batch (defaults to configuration)
            as_of: Last day of the window (defaults to today)
            include_consumption: Count internal consumption as demand

        Returns:
            Dictionary with new/updated/error/skipped counts, batch count and a
            sample of error messages
        """
        batch_config = config.batch_config
        lookback_days = lookback_days or batch_config['default_lookback_days']
        batch_size = batch_size or batch_config['batch_size']
        max_errors = batch_config['max_error_samples']
        self._check_lookback(lookback_days)
        if batch_size < 1:
            raise InvalidParameterError(
                f"Batch size must be positive, got {batch_size}", parameter='batch_size', value=batch_size
            )

        start, end = lookback_window(lookback_days, as_of)
        query = self._demand_groups_query(start, end, include_consumption)

        results = {
            'new_count': 0,
            'updated_count': 0,
            'error_count': 0,
            'skipped_count': 0,
            'batches': 0,
            'errors': []
        }

        def record_error(message, error=None):
            if error is None:
                logger.error(message)
            else:
                log_exception(__name__, error, message)
                message = f"{message}: {str(error)}"
            if len(results['errors']) < max_errors:
                results['errors'].append(message)

        offset = 0
        while True:
            groups = query.offset(offset).limit(batch_size).all()
            if not groups:
                break

            offset += len(groups)
            results['batches'] += 1

            try:
                new_count, updated_count, skipped, skipped_groups = self._store_groups(groups)
                self.session.commit()
                results['new_count'] += new_count
                results['updated_count'] += updated_count
                results['skipped_count'] += skipped_groups
                for product_id in skipped:
                    record_error(f"Product {product_id} not found, demand skipped")
            except SQLAlchemyError as e:
                self.session.rollback()
                results['error_count'] += len(groups)
                record_error(f"Batch {results['batches']} failed", e)
            finally:
                self.session.expunge_all()

            logger.debug(f"Demand batch {results['batches']} done, {offset} groups processed")

        logger.info(
            f"Demand series rebuild: {results['new_count']} new, {results['updated_count']} updated, "
            f"{results['error_count']} errors, {results['skipped_count']} skipped "
            f"in {results['batches']} batches"
        )
        return results

    def _store_groups(self, groups) -> Tuple[int, int, List[int], int]:
        product_ids = {group.product_id for group in groups}
        known = {
            row[0] for row in self.session.query(Product.id).filter(Product.id.in_(sorted(product_ids)))
        }
        skipped = sorted(product_ids - known)

        points = [
            DemandPoint.create(group.product_id, self._group_date(group.demand_day), float(group.quantity))
            for group in groups
            if group.product_id in known
        ]
        if not points:
            return 0, 0, skipped, len(groups)

        dates = {point.demand_date for point in points}
        existing = {
            (record.product_id, record.demand_date): record
            for record in self.session.query(DemandRecord).filter(
                DemandRecord.product_id.in_(sorted(known)),
                DemandRecord.demand_date.in_(sorted(dates))
            )
        }

        new_count, updated_count = self._upsert_points(
            points, existing, key=lambda point: (point.product_id, point.demand_date)
        )
        self.session.flush()
        return new_count, updated_count, skipped, len(groups) - len(points)
