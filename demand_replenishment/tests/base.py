"""
Shared fixtures for database-backed tests.
"""
import unittest
from datetime import datetime, timedelta

from demand_replenishment.db import db
from demand_replenishment.models import Product, LedgerEntry, DemandRecord, MovementType
from demand_replenishment.utils.date_utils import period_label

class DatabaseTestCase(unittest.TestCase):
    """Test case running against a fresh in-memory SQLite database."""

    def setUp(self):
        db.initialize('sqlite://')
        db.create_all_tables()
        self.session = db.session()

    def tearDown(self):
        self.session.rollback()
        self.session.close()
        db.drop_all_tables()

    def add_product(self, sku, lead_time_days=7, unit_cost=None, current_stock=0, reorder_point=0, is_active=True):
        product = Product(
            sku=sku,
            name=f"Product {sku}",
            lead_time_days=lead_time_days,
            unit_cost=unit_cost,
            current_stock=current_stock,
            reorder_point=reorder_point,
            is_active=is_active
        )
        self.session.add(product)
        self.session.commit()
        return product

    def add_entry(self, product_id, day, quantity, movement_type=MovementType.SALE, is_voided=False, hour=10):
        entry = LedgerEntry(
            product_id=product_id,
            movement_date=datetime.combine(day, datetime.min.time()) + timedelta(hours=hour),
            movement_type=movement_type,
            quantity=quantity,
            is_voided=is_voided
        )
        self.session.add(entry)
        self.session.commit()
        return entry

    def add_demand(self, product_id, values, end_date):
        """Store a daily demand series ending on end_date, skipping zero days."""
        start = end_date - timedelta(days=len(values) - 1)
        for offset, value in enumerate(values):
            day = start + timedelta(days=offset)
            if value > 0:
                self.session.add(DemandRecord(
                    product_id=product_id,
                    demand_date=day,
                    quantity=value,
                    period_label=period_label(day)
                ))
        self.session.commit()
