"""
Unit tests for the order quantity decision.
"""
import unittest

from demand_replenishment.core.replenishment import (
    FORMULA_NAME, recommend, calculate_order_quantity, buffered_demand
)
from demand_replenishment.exceptions import InvalidParameterError

class TestOrderQuantity(unittest.TestCase):
    """Test cases for the order quantity formula."""

    def test_buffered_demand_rounds_up(self):
        """Test that buffered demand is the ceiling of demand x buffer."""
        self.assertEqual(buffered_demand(100.0), 120)
        self.assertEqual(buffered_demand(10.1), 13)

    def test_order_quantity(self):
        """Test ceil(100 x 1.2) - 40 + 50."""
        self.assertEqual(calculate_order_quantity(100.0, 40, 50), 130)

    def test_order_quantity_never_negative(self):
        """Test that zero demand with large stock orders nothing."""
        self.assertEqual(calculate_order_quantity(0.0, 100, 50), 0)

class TestRecommend(unittest.TestCase):
    """Test cases for recommend."""

    def test_no_order_above_reorder_point(self):
        """Test that stock above the reorder point needs no order."""
        recommendation = recommend(1, 100.0, current_stock=100, reorder_point=50)

        self.assertFalse(recommendation.order_required)
        self.assertEqual(recommendation.quantity, 0)
        self.assertTrue(recommendation.justification.startswith('No order needed'))
        self.assertIsNone(recommendation.estimated_cost)

    def test_order_at_or_below_reorder_point(self):
        """Test the order quantity and its justification."""
        recommendation = recommend(1, 100.0, current_stock=40, reorder_point=50)

        self.assertTrue(recommendation.order_required)
        self.assertEqual(recommendation.quantity, 130)
        self.assertEqual(recommendation.buffered_demand, 120)
        self.assertIn('predicted demand 100.00', recommendation.justification)
        self.assertIn('current stock 40', recommendation.justification)
        self.assertIn('reorder point 50', recommendation.justification)
        self.assertIn(FORMULA_NAME, recommendation.justification)
        self.assertIn('= 120 - 40 + 50', recommendation.justification)

    def test_stock_equal_to_reorder_point_orders(self):
        """Test that stock exactly at the reorder point triggers an order."""
        recommendation = recommend(1, 10.0, current_stock=50, reorder_point=50)

        self.assertTrue(recommendation.order_required)
        self.assertEqual(recommendation.quantity, 12)

    def test_estimated_cost(self):
        """Test valuation of the order at unit cost."""
        recommendation = recommend(1, 100.0, 40, 50, unit_cost=2.5)
        self.assertAlmostEqual(recommendation.estimated_cost, 325.0)

        no_order = recommend(1, 100.0, 100, 50, unit_cost=2.5)
        self.assertEqual(no_order.estimated_cost, 0.0)

    def test_custom_buffer(self):
        """Test a larger safety buffer."""
        recommendation = recommend(1, 100.0, 0, 0, safety_buffer=1.5)
        self.assertEqual(recommendation.quantity, 150)

    def test_invalid_inputs(self):
        """Test that negative demand and a buffer below 1 are rejected."""
        with self.assertRaises(InvalidParameterError):
            recommend(1, -5.0, 10, 5)

        with self.assertRaises(InvalidParameterError):
            recommend(1, 5.0, 10, 5, safety_buffer=0.9)

    def test_to_dict(self):
        """Test the dictionary form of a recommendation."""
        data = recommend(7, 100.0, 40, 50).to_dict()

        self.assertEqual(data['product_id'], 7)
        self.assertEqual(data['quantity'], 130)

if __name__ == '__main__':
    unittest.main()
