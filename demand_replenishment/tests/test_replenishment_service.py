"""
Tests for turning forecasts into stored replenishment orders.
"""
import unittest
from unittest.mock import MagicMock

from demand_replenishment.models import OrderStatus
from demand_replenishment.services.replenishment_service import ReplenishmentService
from demand_replenishment.exceptions import ProductNotFoundError
from demand_replenishment.tests.base import DatabaseTestCase

class TestReplenishmentService(DatabaseTestCase):
    """Test cases for ReplenishmentService."""

    def setUp(self):
        super().setUp()
        self.service = ReplenishmentService(self.session)
        self.forecast = MagicMock(total_demand=100.0, record_id=None)

    def test_order_recommended(self):
        """Test an order below the reorder point, valued at unit cost."""
        product_id = self.add_product('A', unit_cost=2.0, current_stock=40, reorder_point=50).id

        recommendation = self.service.recommend_order(product_id, self.forecast)

        self.assertTrue(recommendation.order_required)
        self.assertEqual(recommendation.quantity, 130)
        self.assertAlmostEqual(recommendation.estimated_cost, 260.0)
        self.assertIsNone(recommendation.forecast_id)

        order = self.service.persist_recommendation(recommendation)

        self.assertEqual(order.status, OrderStatus.PROPOSED)
        self.assertEqual(order.quantity, 130)
        self.assertEqual([o.id for o in self.service.get_open_orders(product_id)], [order.id])

    def test_no_order_required(self):
        """Test that stock above the reorder point is stored as not required."""
        product_id = self.add_product('A', current_stock=100, reorder_point=50).id

        recommendation = self.service.recommend_order(product_id, self.forecast)
        order = self.service.persist_recommendation(recommendation)

        self.assertFalse(recommendation.order_required)
        self.assertEqual(order.status, OrderStatus.NOT_REQUIRED)
        self.assertIn('No order needed', order.justification)
        self.assertEqual(self.service.get_open_orders(), [])

    def test_forecast_reference(self):
        """Test that the stored forecast ID is carried to the recommendation."""
        product_id = self.add_product('A').id
        forecast = MagicMock(total_demand=10.0, record_id=17)

        recommendation = self.service.recommend_order(product_id, forecast)

        self.assertEqual(recommendation.forecast_id, 17)
        self.assertEqual(recommendation.quantity, 12)

    def test_unknown_product(self):
        """Test that an unknown product is reported."""
        with self.assertRaises(ProductNotFoundError):
            self.service.recommend_order(9999, self.forecast)

if __name__ == '__main__':
    unittest.main()
