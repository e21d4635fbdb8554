"""
Tests for storing and reading daily demand series.
"""
import unittest
from datetime import date, datetime
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from demand_replenishment.models import DemandRecord, LedgerEntry, MovementType
from demand_replenishment.services.demand_series_service import DemandSeriesService
from demand_replenishment.exceptions import ProductNotFoundError, InvalidParameterError
from demand_replenishment.tests.base import DatabaseTestCase

AS_OF = date(2024, 6, 5)

class TestDemandSeriesService(DatabaseTestCase):
    """Test cases for DemandSeriesService on a single product."""

    def setUp(self):
        super().setUp()
        self.product_id = self.add_product('A').id
        self.add_entry(self.product_id, date(2024, 6, 1), 5, hour=9)
        self.add_entry(self.product_id, date(2024, 6, 1), 3, hour=15)
        self.add_entry(self.product_id, date(2024, 6, 2), 50, MovementType.PURCHASE_RECEIPT)
        self.add_entry(self.product_id, date(2024, 6, 2), 2, MovementType.CONSUMPTION)
        self.add_entry(self.product_id, date(2024, 6, 3), 4)
        self.add_entry(self.product_id, date(2024, 6, 3), 100, is_voided=True)
        self.service = DemandSeriesService(self.session)

    def stored(self):
        records = self.session.query(DemandRecord).filter(
            DemandRecord.product_id == self.product_id
        ).order_by(DemandRecord.demand_date).all()
        return {record.demand_date: record.quantity for record in records}

    def test_build_aggregates_sales(self):
        """Test that sales are summed per day and other movements ignored."""
        series = self.service.build_demand_series(self.product_id, 30, as_of=AS_OF)

        self.assertEqual(len(series), 2)
        self.assertEqual(self.stored(), {date(2024, 6, 1): 8.0, date(2024, 6, 3): 4.0})

    def test_build_is_idempotent(self):
        """Test that a second build leaves the same stored values."""
        self.service.build_demand_series(self.product_id, 30, as_of=AS_OF)
        first = self.stored()

        self.service.build_demand_series(self.product_id, 30, as_of=AS_OF)

        self.assertEqual(self.stored(), first)
        self.assertEqual(self.service.count_points(self.product_id), 2)

    def test_consumption_and_pruning(self):
        """Test that consumption counts on request and stale days are removed."""
        self.service.build_demand_series(self.product_id, 30, as_of=AS_OF, include_consumption=True)
        self.assertEqual(self.stored()[date(2024, 6, 2)], 2.0)

        self.service.build_demand_series(self.product_id, 30, as_of=AS_OF)
        self.assertNotIn(date(2024, 6, 2), self.stored())

    def test_window_excludes_older_entries(self):
        """Test that a short lookback only covers its own days."""
        series = self.service.build_demand_series(self.product_id, 3, as_of=AS_OF)

        self.assertEqual([point.demand_date for point in series.points], [date(2024, 6, 3)])
        self.assertEqual(series.start_date, date(2024, 6, 3))

    def test_unknown_product(self):
        """Test that an unknown product is reported."""
        with self.assertRaises(ProductNotFoundError):
            self.service.build_demand_series(9999, 30, as_of=AS_OF)

    def test_invalid_lookback(self):
        """Test that a lookback below one day is rejected."""
        with self.assertRaises(InvalidParameterError):
            self.service.build_demand_series(self.product_id, 0, as_of=AS_OF)

    def test_daily_demand_zero_filled(self):
        """Test that readers get zeros from the first demand day to the window end."""
        self.service.build_demand_series(self.product_id, 30, as_of=AS_OF)

        self.assertEqual(
            self.service.get_daily_demand(self.product_id, 30, as_of=AS_OF),
            [8.0, 0.0, 4.0, 0.0, 0.0]
        )
        self.assertEqual(
            self.service.get_daily_demand(self.product_id, 30, fill_missing=False, as_of=AS_OF),
            [8.0, 4.0]
        )

    def test_daily_demand_without_points(self):
        """Test that a product without stored demand has an empty series."""
        self.assertEqual(self.service.get_daily_demand(self.product_id, 30, as_of=AS_OF), [])

    def test_clear_and_sufficiency(self):
        """Test point counting and clearing."""
        self.service.build_demand_series(self.product_id, 30, as_of=AS_OF)

        self.assertTrue(self.service.has_sufficient_data(self.product_id, minimum=2))
        self.assertFalse(self.service.has_sufficient_data(self.product_id))

        self.assertEqual(self.service.clear_demand(self.product_id), 2)
        self.assertEqual(self.service.count_points(self.product_id), 0)

class TestBuildAllDemandSeries(DatabaseTestCase):
    """Test cases for the batched rebuild over all products."""

    def setUp(self):
        super().setUp()
        self.first_id = self.add_product('A').id
        self.second_id = self.add_product('B').id
        for day in (1, 3):
            self.add_entry(self.first_id, date(2024, 6, day), 5)
        for day in (1, 2, 4):
            self.add_entry(self.second_id, date(2024, 6, day), 2)
        self.add_entry(self.second_id, date(2024, 6, 4), 1, hour=18)
        self.service = DemandSeriesService(self.session)

    def test_batches(self):
        """Test that groups are processed in pages of batch_size."""
        results = self.service.build_all_demand_series(lookback_days=30, batch_size=2, as_of=AS_OF)

        self.assertEqual(results['new_count'], 5)
        self.assertEqual(results['updated_count'], 0)
        self.assertEqual(results['batches'], 3)
        self.assertEqual(results['error_count'], 0)

        record = self.session.query(DemandRecord).filter(
            DemandRecord.product_id == self.second_id,
            DemandRecord.demand_date == date(2024, 6, 4)
        ).one()
        self.assertEqual(record.quantity, 3.0)
        self.assertEqual(record.period_label, '2024-06')

    def test_rerun_updates(self):
        """Test that a second run updates instead of duplicating."""
        self.service.build_all_demand_series(lookback_days=30, batch_size=2, as_of=AS_OF)
        results = self.service.build_all_demand_series(lookback_days=30, batch_size=2, as_of=AS_OF)

        self.assertEqual(results['new_count'], 0)
        self.assertEqual(results['updated_count'], 5)
        self.assertEqual(self.session.query(DemandRecord).count(), 5)

    def test_unknown_product_skipped(self):
        """Test that demand for a missing product is skipped and reported."""
        self.session.add(LedgerEntry(
            product_id=999,
            movement_date=datetime(2024, 6, 2, 10),
            movement_type=MovementType.SALE,
            quantity=4
        ))
        self.session.commit()

        results = self.service.build_all_demand_series(lookback_days=30, batch_size=10, as_of=AS_OF)

        self.assertEqual(results['new_count'], 5)
        self.assertEqual(results['skipped_count'], 1)
        self.assertIn('Product 999 not found, demand skipped', results['errors'])

    def test_failed_batch_rolled_back(self):
        """Test that a failed page is rolled back and counted while later pages commit."""
        store_groups = self.service._store_groups
        pages = []

        def fail_second_page(groups):
            pages.append(len(groups))
            stored = store_groups(groups)
            if len(pages) == 2:
                raise SQLAlchemyError("disk I/O error")
            return stored

        with patch('demand_replenishment.services.demand_series_service.log_exception') as mock_log_exception:
            with patch.object(self.service, '_store_groups', side_effect=fail_second_page):
                results = self.service.build_all_demand_series(lookback_days=30, batch_size=2, as_of=AS_OF)

        # Pages: A 6/1, A 6/3 | B 6/1, B 6/2 | B 6/4
        self.assertEqual(pages, [2, 2, 1])
        self.assertEqual(results['batches'], 3)
        self.assertEqual(results['new_count'], 3)
        self.assertEqual(results['error_count'], 2)
        self.assertEqual(results['errors'], ['Batch 2 failed: disk I/O error'])
        mock_log_exception.assert_called_once()

        stored = self.session.query(DemandRecord.product_id, DemandRecord.demand_date).order_by(
            DemandRecord.product_id, DemandRecord.demand_date
        ).all()
        self.assertEqual(
            [tuple(row) for row in stored],
            [(self.first_id, date(2024, 6, 1)), (self.first_id, date(2024, 6, 3)), (self.second_id, date(2024, 6, 4))]
        )

    def test_invalid_batch_size(self):
        """Test that a negative batch size is rejected."""
        with self.assertRaises(InvalidParameterError):
            self.service.build_all_demand_series(lookback_days=30, batch_size=-1, as_of=AS_OF)

if __name__ == '__main__':
    unittest.main()
