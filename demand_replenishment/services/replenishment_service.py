# demand_replenishment/services/replenishment_service.py
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from demand_replenishment.config import config
from demand_replenishment.models import ReplenishmentOrder, OrderStatus
from demand_replenishment.core.forecast_base import ForecastResult
from demand_replenishment.core.replenishment import OrderRecommendation, recommend
from demand_replenishment.services.collaborators import ProductReader, StockReader
from demand_replenishment.exceptions import DatabaseError
from demand_replenishment.logging_setup import get_logger

logger = get_logger(__name__)

class ReplenishmentService:
    """Service that turns forecasts into order recommendations."""

    def __init__(self, session: Session, products: ProductReader = None, stock: StockReader = None):
        """Initialize the replenishment service.

        Args:
            session: Database session
            products: Product reader
            stock: Stock position reader
        """
        self.session = session
        self.products = products or ProductReader(session)
        self.stock = stock or StockReader(session)
        self.safety_buffer = config.replenishment_config['safety_buffer']

    def recommend_order(self, product_id: int, forecast_result: ForecastResult) -> OrderRecommendation:
        """Recommend an order for a product from a forecast.

        A product above its reorder point gets a recommendation with
        order_required False and a justification, not an error.

        Args:
            product_id: Product ID
            forecast_result: Forecast whose total demand sizes the order

        Returns:
            OrderRecommendation

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        product = self.products.get_product(product_id)
        current_stock, reorder_point = self.stock.get_current_stock_and_reorder_point(product_id)

        recommendation = recommend(
            product_id,
            forecast_result.total_demand,
            current_stock,
            reorder_point,
            safety_buffer=self.safety_buffer,
            unit_cost=product.unit_cost
        )
        recommendation.forecast_id = getattr(forecast_result, 'record_id', None)
        return recommendation

    def persist_recommendation(self, recommendation: OrderRecommendation) -> ReplenishmentOrder:
        """Store a recommendation as a replenishment order.

        Raises:
            DatabaseError: If the order cannot be written
        """
        status = OrderStatus.PROPOSED if recommendation.order_required else OrderStatus.NOT_REQUIRED

        try:
            order = ReplenishmentOrder(
                product_id=recommendation.product_id,
                forecast_id=recommendation.forecast_id,
                quantity=recommendation.quantity,
                order_required=recommendation.order_required,
                predicted_demand=recommendation.predicted_demand,
                buffered_demand=recommendation.buffered_demand,
                current_stock=recommendation.current_stock,
                reorder_point=recommendation.reorder_point,
                estimated_cost=recommendation.estimated_cost,
                justification=recommendation.justification,
                status=status
            )
            self.session.add(order)
            self.session.commit()

        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(
                f"Failed to save replenishment order for product {recommendation.product_id}: {str(e)}"
            )

        logger.info(
            f"Saved replenishment order {order.id} for product {recommendation.product_id}: "
            f"{recommendation.quantity} units ({status.value})"
        )
        return order

    def get_open_orders(self, product_id: Optional[int] = None) -> List[ReplenishmentOrder]:
        """Get proposed orders, optionally for one product."""
        query = self.session.query(ReplenishmentOrder).filter(
            ReplenishmentOrder.status == OrderStatus.PROPOSED
        )
        if product_id is not None:
            query = query.filter(ReplenishmentOrder.product_id == product_id)
        return query.order_by(ReplenishmentOrder.id).all()
