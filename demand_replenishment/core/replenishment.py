# demand_replenishment/core/replenishment.py
"""Order quantity decision from a forecast, current stock and reorder point."""
import math
from dataclasses import dataclass, asdict
from typing import Optional

from demand_replenishment.exceptions import InvalidParameterError
from demand_replenishment.logging_setup import get_logger

logger = get_logger(__name__)

# Multiplicative margin applied to predicted demand before sizing an order
SAFETY_BUFFER = 1.2

FORMULA_NAME = 'ceil(predicted_demand x safety_buffer) - current_stock + reorder_point'

@dataclass
class OrderRecommendation:
    product_id: int
    quantity: int
    order_required: bool
    predicted_demand: float
    buffered_demand: int
    current_stock: int
    reorder_point: int
    safety_buffer: float
    justification: str
    estimated_cost: Optional[float] = None
    forecast_id: Optional[int] = None

    def to_dict(self):
        return asdict(self)

def buffered_demand(predicted_demand: float, safety_buffer: float = SAFETY_BUFFER) -> int:
    """Predicted demand scaled by the safety buffer and rounded up."""
    # Round away float noise before taking the ceiling
    return int(math.ceil(round(predicted_demand * safety_buffer, 9)))

def calculate_order_quantity(
    predicted_demand: float,
    current_stock: int,
    reorder_point: int,
    safety_buffer: float = SAFETY_BUFFER
) -> int:
    """Calculate the order quantity, never negative.

    Args:
        predicted_demand: Total predicted demand over the horizon
        current_stock: Available stock
        reorder_point: Minimum stock threshold
        safety_buffer: Demand multiplier

    Returns:
        Order quantity
    """
    return max(0, buffered_demand(predicted_demand, safety_buffer) - current_stock + reorder_point)

def recommend(
    product_id: int,
    predicted_demand: float,
    current_stock: int,
    reorder_point: int,
    safety_buffer: float = SAFETY_BUFFER,
    unit_cost: float = None
) -> OrderRecommendation:
    """Decide whether to order and how much.

    An order is warranted only when current stock is at or below the reorder
    point. Otherwise the recommendation explains why no order is needed.

    Args:
        product_id: Product ID
        predicted_demand: Total predicted demand over the horizon
        current_stock: Available stock
        reorder_point: Minimum stock threshold
        safety_buffer: Demand multiplier
        unit_cost: Optional unit cost used to value the order

    Returns:
        OrderRecommendation

    Raises:
        InvalidParameterError: If predicted demand is negative or the buffer is below 1
    """
    if predicted_demand is None or predicted_demand < 0:
        raise InvalidParameterError(
            f"Predicted demand must be non-negative, got {predicted_demand}",
            parameter='predicted_demand',
            value=predicted_demand
        )
    if safety_buffer < 1:
        raise InvalidParameterError(
            f"Safety buffer must be at least 1, got {safety_buffer}",
            parameter='safety_buffer',
            value=safety_buffer
        )

    buffered = buffered_demand(predicted_demand, safety_buffer)
    inputs = (
        f"predicted demand {predicted_demand:.2f}, buffered demand {buffered} "
        f"(x{safety_buffer}), current stock {current_stock}, reorder point {reorder_point}"
    )

    if current_stock > reorder_point:
        justification = (
            f"No order needed: current stock {current_stock} is above reorder point "
            f"{reorder_point}. Inputs: {inputs}. Formula: {FORMULA_NAME}"
        )
        logger.info(f"Product {product_id}: {justification}")
        return OrderRecommendation(
            product_id=product_id,
            quantity=0,
            order_required=False,
            predicted_demand=predicted_demand,
            buffered_demand=buffered,
            current_stock=current_stock,
            reorder_point=reorder_point,
            safety_buffer=safety_buffer,
            justification=justification,
            estimated_cost=0.0 if unit_cost is not None else None
        )

    quantity = calculate_order_quantity(predicted_demand, current_stock, reorder_point, safety_buffer)
    justification = (
        f"Order {quantity} units: current stock {current_stock} is at or below reorder point "
        f"{reorder_point}. Inputs: {inputs}. Formula: {FORMULA_NAME} = "
        f"{buffered} - {current_stock} + {reorder_point}"
    )
    estimated_cost = quantity * unit_cost if unit_cost is not None else None

    logger.info(f"Product {product_id}: recommended order of {quantity} units")

    return OrderRecommendation(
        product_id=product_id,
        quantity=quantity,
        order_required=quantity > 0,
        predicted_demand=predicted_demand,
        buffered_demand=buffered,
        current_stock=current_stock,
        reorder_point=reorder_point,
        safety_buffer=safety_buffer,
        justification=justification,
        estimated_cost=estimated_cost
    )
