# demand_replenishment/core/series.py
"""Turn raw ledger movements into a per-product daily demand series.

Only demand-consuming movements count: sale outflows (and consumption when
asked for), never voided entries, adjustments, transfers or receipts. The
stored series omits days without demand; `to_dense` is where missing days
become explicit zeros.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from demand_replenishment.models import DEMAND_MOVEMENT_TYPES, MovementType
from demand_replenishment.utils.date_utils import to_date, period_label, date_range

def demand_movement_types(include_consumption: bool = False) -> frozenset:
    """Get the movement kinds that count as demand."""
    if include_consumption:
        return DEMAND_MOVEMENT_TYPES | {MovementType.CONSUMPTION}
    return DEMAND_MOVEMENT_TYPES

def is_demand_entry(entry, movement_types: frozenset = DEMAND_MOVEMENT_TYPES) -> bool:
    """Check whether a ledger entry consumes demand.

    Args:
        entry: Object with movement_type and is_voided attributes
        movement_types: Movement kinds counted as demand

    Returns:
        True if the entry should be aggregated
    """
    if getattr(entry, 'is_voided', False):
        return False
    return entry.movement_type in movement_types

def aggregate_daily_demand(
    entries: Iterable,
    movement_types: frozenset = DEMAND_MOVEMENT_TYPES
) -> Dict[date, float]:
    """Sum the absolute outflow quantity per calendar date.

    Args:
        entries: Ledger entries (movement_date, movement_type, quantity, is_voided)
        movement_types: Movement kinds counted as demand

    Returns:
        Dictionary mapping date to total demand, sorted by date
    """
    totals = {}
    for entry in entries:
        if not is_demand_entry(entry, movement_types):
            continue

        day = to_date(entry.movement_date)
        totals[day] = totals.get(day, 0.0) + abs(float(entry.quantity))

    return dict(sorted(totals.items()))

@dataclass(frozen=True)
class DemandPoint:
    product_id: int
    demand_date: date
    quantity: float
    period_label: str

    @classmethod
    def create(cls, product_id: int, demand_date: date, quantity: float) -> 'DemandPoint':
        return cls(product_id, demand_date, quantity, period_label(demand_date))

@dataclass
class DemandSeries:
    """Chronological demand points for one product.

    Points are only stored for days with demand. `start_date` and `end_date`
    describe the window the series was built for, so gaps inside the window
    are known to be zero-demand days.
    """
    product_id: int
    points: List[DemandPoint] = field(default_factory=list)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def __len__(self):
        return len(self.points)

    @property
    def values(self) -> List[float]:
        """Quantities of the stored points only."""
        return [point.quantity for point in self.points]

    @property
    def total_demand(self) -> float:
        return sum(self.values)

    def to_dense(self) -> List[float]:
        """Daily quantities over the whole window with missing days as zero."""
        if not self.points and (self.start_date is None or self.end_date is None):
            return []

        start = self.start_date or self.points[0].demand_date
        end = self.end_date or self.points[-1].demand_date
        by_date = {point.demand_date: point.quantity for point in self.points}
        return [by_date.get(day, 0.0) for day in date_range(start, end)]

def build_series(
    product_id: int,
    entries: Iterable,
    start_date: date = None,
    end_date: date = None,
    movement_types: frozenset = DEMAND_MOVEMENT_TYPES
) -> DemandSeries:
    """Build a DemandSeries from ledger entries.

    Args:
        product_id: Product ID
        entries: Ledger entries for the product
        start_date: First day of the window
        end_date: Last day of the window
        movement_types: Movement kinds counted as demand

    Returns:
        DemandSeries with one point per day that has demand
    """
    totals = aggregate_daily_demand(entries, movement_types)
    points = [
        DemandPoint.create(product_id, day, quantity)
        for day, quantity in totals.items()
        if quantity > 0
    ]
    return DemandSeries(product_id, points, to_date(start_date) if start_date else None,
                        to_date(end_date) if end_date else None)

def monthly_totals(daily_totals: Dict[date, float]) -> Dict[str, float]:
    """Sum daily demand per YYYY-MM period, for seasonality analysis."""
    totals = {}
    for day, quantity in daily_totals.items():
        label = period_label(day)
        totals[label] = totals.get(label, 0.0) + quantity
    return totals
