# demand_replenishment/services/collaborators.py
"""Read access to data owned outside the forecasting pipeline.

The ledger, the product catalogue and stock levels belong to other parts of
the business. These readers are the only way the services reach them, so a
different backing store only needs replacements with the same methods.
"""
from datetime import datetime
from typing import List, Tuple

from sqlalchemy.orm import Session

from demand_replenishment.models import LedgerEntry, Product
from demand_replenishment.exceptions import ProductNotFoundError

class LedgerReader:
    """Reads ledger movements for a product."""

    def __init__(self, session: Session):
        self.session = session

    def get_ledger_entries(self, product_id: int, from_date: datetime, to_date: datetime) -> List[LedgerEntry]:
        """Get ledger entries for a product within a date range, oldest first.

        Args:
            product_id: Product ID
            from_date: Start of the range (inclusive)
            to_date: End of the range (inclusive)

        Returns:
            List of ledger entries
        """
        return self.session.query(LedgerEntry).filter(
            LedgerEntry.product_id == product_id,
            LedgerEntry.movement_date >= from_date,
            LedgerEntry.movement_date <= to_date
        ).order_by(LedgerEntry.movement_date, LedgerEntry.id).all()

class ProductReader:
    """Resolves product references."""

    def __init__(self, session: Session):
        self.session = session

    def get_product(self, product_id: int) -> Product:
        """Get a product by ID.

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        product = self.session.get(Product, product_id)
        if not product:
            raise ProductNotFoundError(product_id)
        return product

    def get_active_product_ids(self) -> List[int]:
        rows = self.session.query(Product.id).filter(
            Product.is_active == True
        ).order_by(Product.id).all()
        return [row[0] for row in rows]

class StockReader:
    """Reads current stock position."""

    def __init__(self, session: Session):
        self.session = session

    def get_current_stock_and_reorder_point(self, product_id: int) -> Tuple[int, int]:
        """Get current available stock and reorder point for a product.

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        product = self.session.get(Product, product_id)
        if not product:
            raise ProductNotFoundError(product_id)
        return int(product.current_stock or 0), int(product.reorder_point or 0)
