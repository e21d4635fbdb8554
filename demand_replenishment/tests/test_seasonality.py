"""
Unit tests for monthly seasonal coefficients.
"""
import unittest
from datetime import date

from demand_replenishment.core.seasonality import analyze_monthly_demand, describe_seasonality, monthly_averages
from demand_replenishment.utils.date_utils import month_periods

def two_years(december_factor=1.0, base=100.0):
    totals = {}
    for year in (2023, 2024):
        for month in range(1, 13):
            factor = december_factor if month == 12 else 1.0
            totals[f"{year}-{month:02d}"] = base * factor
    return totals

class TestSeasonality(unittest.TestCase):
    """Test cases for analyze_monthly_demand."""

    def test_flat_history(self):
        """Test that identical months yield unit coefficients and zero intensity."""
        analysis = analyze_monthly_demand(two_years(), product_id=1)

        for coefficient in analysis.coefficients.values():
            self.assertAlmostEqual(coefficient, 1.0)
        self.assertAlmostEqual(analysis.intensity, 0.0)
        self.assertFalse(analysis.has_seasonality)
        self.assertEqual(analysis.data_points, 24)
        self.assertEqual(describe_seasonality(analysis), 'No significant monthly seasonality (intensity 0.00)')

    def test_december_peak(self):
        """Test that a strong December peak is detected."""
        analysis = analyze_monthly_demand(two_years(december_factor=3.0), product_id=1)

        # 11 months at 100 / (1400 / 12) and December at 300 / (1400 / 12)
        self.assertAlmostEqual(analysis.coefficients[1], 100 / (1400 / 12))
        self.assertAlmostEqual(analysis.coefficients[12], 300 / (1400 / 12))
        self.assertAlmostEqual(analysis.intensity, (22 / 7) / 12)
        self.assertTrue(analysis.has_seasonality)
        self.assertEqual(analysis.peak_month, 12)
        self.assertEqual(
            describe_seasonality(analysis),
            'Monthly seasonality (intensity 0.26): peak in December, trough in January'
        )

    def test_december_at_twice_annual_average(self):
        """Test that December at twice the annual average is seasonal."""
        # 11 months at 100 and December at 220: annual average 110
        analysis = analyze_monthly_demand(two_years(december_factor=2.2))

        self.assertAlmostEqual(analysis.coefficients[12], 2.0)
        self.assertAlmostEqual(analysis.intensity, 2 / 12)
        self.assertTrue(analysis.has_seasonality)
        self.assertEqual(analysis.peak_month, 12)

    def test_moderate_peak_below_threshold(self):
        """Test that December at twice the other months stays under the default threshold."""
        analysis = analyze_monthly_demand(two_years(december_factor=2.0))

        self.assertAlmostEqual(analysis.intensity, (22 / 13) / 12)
        self.assertEqual(analysis.peak_month, 12)
        self.assertFalse(analysis.has_seasonality)

        lowered = analyze_monthly_demand(two_years(december_factor=2.0), intensity_threshold=0.14)
        self.assertTrue(lowered.has_seasonality)

    def test_coefficients_average_to_one(self):
        """Test that the twelve coefficients have mean 1."""
        analysis = analyze_monthly_demand(two_years(december_factor=2.5))
        self.assertAlmostEqual(sum(analysis.coefficients.values()) / 12, 1.0)

    def test_insufficient_points(self):
        """Test that fewer than 12 monthly totals give no analysis."""
        totals = {f"2024-{month:02d}": 10.0 for month in range(1, 12)}
        self.assertIsNone(analyze_monthly_demand(totals))

    def test_zero_annual_average(self):
        """Test that zero demand everywhere yields unit coefficients."""
        totals = {f"2024-{month:02d}": 0.0 for month in range(1, 13)}
        analysis = analyze_monthly_demand(totals)

        self.assertEqual(list(analysis.coefficients.values()), [1.0] * 12)
        self.assertFalse(analysis.has_seasonality)

    def test_missing_periods_count_as_zero(self):
        """Test that periods without demand lower the monthly average."""
        periods = month_periods(date(2023, 1, 1), date(2024, 12, 31))
        totals = {'2023-03': 40.0, '2024-03': 20.0}

        averages = monthly_averages(totals, periods)

        self.assertAlmostEqual(averages[3], 30.0)
        self.assertEqual(averages[4], 0.0)

if __name__ == '__main__':
    unittest.main()
