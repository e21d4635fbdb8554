"""
Unit tests for calendar helpers.
"""
import unittest
from datetime import date, datetime

from demand_replenishment.utils.date_utils import last_complete_month_end, month_periods, subtract_months

class TestDateUtils(unittest.TestCase):
    """Test cases for month arithmetic."""

    def test_last_complete_month_end(self):
        """Test that a mid-month date falls back to the previous month end."""
        self.assertEqual(last_complete_month_end(date(2024, 6, 15)), date(2024, 5, 31))
        self.assertEqual(last_complete_month_end(date(2024, 3, 1)), date(2024, 2, 29))
        self.assertEqual(last_complete_month_end(date(2024, 1, 10)), date(2023, 12, 31))

    def test_last_complete_month_end_on_month_end(self):
        """Test that a month end counts as a complete month."""
        self.assertEqual(last_complete_month_end(date(2024, 6, 30)), date(2024, 6, 30))
        self.assertEqual(last_complete_month_end(datetime(2023, 2, 28, 23, 0)), date(2023, 2, 28))

    def test_subtract_months_clamps_day(self):
        self.assertEqual(subtract_months(date(2024, 5, 31), 3), date(2024, 2, 29))
        self.assertEqual(subtract_months(date(2024, 1, 15), 1), date(2023, 12, 15))

    def test_month_periods_cross_year(self):
        self.assertEqual(
            month_periods(date(2023, 11, 20), date(2024, 2, 1)),
            ['2023-11', '2023-12', '2024-01', '2024-02']
        )

if __name__ == '__main__':
    unittest.main()
