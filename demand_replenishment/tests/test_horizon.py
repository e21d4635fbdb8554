"""
Unit tests for forecast horizon derivation.
"""
import unittest

from demand_replenishment.core.horizon import calculate_horizon

class TestHorizon(unittest.TestCase):
    """Test cases for calculate_horizon."""

    def test_three_lead_times_for_flat_demand(self):
        """Test that a flat series and no seasonality give 3 x lead time."""
        self.assertEqual(calculate_horizon(7, [10.0] * 30), 21)

    def test_no_history(self):
        """Test that missing history adds no variability."""
        self.assertEqual(calculate_horizon(5), 15)

    def test_invalid_lead_time_uses_default(self):
        """Test that a lead time below 1 falls back to the default."""
        self.assertEqual(calculate_horizon(0, [10.0] * 30), 21)
        self.assertEqual(calculate_horizon(None, default_lead_time=4), 12)

    def test_variability_capped(self):
        """Test that variability lengthens the horizon by at most 50%."""
        # CV of [0, 0, 0, 10] is 2, capped at 1: ceil(21 x 1.5)
        self.assertEqual(calculate_horizon(7, [0.0, 0.0, 0.0, 10.0]), 32)

    def test_seasonality_lengthens_horizon(self):
        """Test that intensity adds up to another 50%."""
        self.assertEqual(calculate_horizon(7, [0.0, 0.0, 0.0, 10.0], seasonality_intensity=1.0), 42)
        self.assertEqual(calculate_horizon(7, [10.0] * 30, seasonality_intensity=0.2), 24)

    def test_bounds(self):
        """Test clamping to the configured minimum and maximum."""
        self.assertEqual(calculate_horizon(60, [10.0] * 30), 90)
        self.assertEqual(calculate_horizon(1, [10.0] * 30), 7)
        self.assertEqual(calculate_horizon(10, min_horizon=7, max_horizon=20), 20)

if __name__ == '__main__':
    unittest.main()
