"""
Unit tests for ledger aggregation into daily demand.
"""
import unittest
from datetime import date, datetime
from types import SimpleNamespace

from demand_replenishment.core.series import (
    aggregate_daily_demand, build_series, demand_movement_types, monthly_totals
)
from demand_replenishment.models import MovementType

def entry(day, quantity, movement_type=MovementType.SALE, is_voided=False, hour=9):
    return SimpleNamespace(
        movement_date=datetime(day.year, day.month, day.day, hour),
        movement_type=movement_type,
        quantity=quantity,
        is_voided=is_voided
    )

class TestAggregation(unittest.TestCase):
    """Test cases for daily aggregation."""

    def test_sums_sales_per_day(self):
        """Test that several sales on one day are summed."""
        entries = [
            entry(date(2024, 3, 1), 5, hour=9),
            entry(date(2024, 3, 1), 3, hour=17),
            entry(date(2024, 3, 2), 4)
        ]

        totals = aggregate_daily_demand(entries)

        self.assertEqual(totals, {date(2024, 3, 1): 8.0, date(2024, 3, 2): 4.0})

    def test_excludes_non_demand_movements(self):
        """Test that receipts, adjustments, transfers and voided sales are ignored."""
        day = date(2024, 3, 1)
        entries = [
            entry(day, 10),
            entry(day, 50, MovementType.PURCHASE_RECEIPT),
            entry(day, 7, MovementType.ADJUSTMENT_OUT),
            entry(day, 6, MovementType.TRANSFER_OUT),
            entry(day, 4, MovementType.CONSUMPTION),
            entry(day, 20, is_voided=True)
        ]

        self.assertEqual(aggregate_daily_demand(entries), {day: 10.0})

    def test_consumption_optional(self):
        """Test that consumption counts when requested."""
        day = date(2024, 3, 1)
        entries = [entry(day, 10), entry(day, 4, MovementType.CONSUMPTION)]

        totals = aggregate_daily_demand(entries, demand_movement_types(include_consumption=True))

        self.assertEqual(totals, {day: 14.0})

    def test_signed_quantities_use_absolute_value(self):
        """Test that negative outflow quantities still count as demand."""
        day = date(2024, 3, 1)
        self.assertEqual(aggregate_daily_demand([entry(day, -6)]), {day: 6.0})

    def test_sorted_by_date(self):
        """Test that totals come back in date order."""
        entries = [entry(date(2024, 3, 5), 1), entry(date(2024, 3, 1), 1)]
        self.assertEqual(list(aggregate_daily_demand(entries)), [date(2024, 3, 1), date(2024, 3, 5)])

    def test_monthly_totals(self):
        """Test aggregation per YYYY-MM period."""
        entries = [
            entry(date(2024, 1, 3), 2),
            entry(date(2024, 1, 30), 3),
            entry(date(2024, 2, 1), 7)
        ]

        self.assertEqual(monthly_totals(aggregate_daily_demand(entries)), {'2024-01': 5.0, '2024-02': 7.0})

class TestDemandSeries(unittest.TestCase):
    """Test cases for DemandSeries."""

    def test_points_only_for_days_with_demand(self):
        """Test that the series stores demand days and densifies with zeros."""
        entries = [entry(date(2024, 3, 2), 4), entry(date(2024, 3, 4), 6)]

        series = build_series(1, entries, date(2024, 3, 1), date(2024, 3, 5))

        self.assertEqual(len(series), 2)
        self.assertEqual(series.points[0].period_label, '2024-03')
        self.assertEqual(series.total_demand, 10.0)
        self.assertEqual(series.to_dense(), [0.0, 4.0, 0.0, 6.0, 0.0])

    def test_empty_series(self):
        """Test that a window without demand densifies to zeros."""
        series = build_series(1, [], date(2024, 3, 1), date(2024, 3, 3))

        self.assertEqual(len(series), 0)
        self.assertEqual(series.to_dense(), [0.0, 0.0, 0.0])

if __name__ == '__main__':
    unittest.main()
