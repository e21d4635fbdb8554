from .collaborators import LedgerReader, ProductReader, StockReader
from .demand_series_service import DemandSeriesService
from .seasonality_service import SeasonalityService
from .forecast_service import ForecastService
from .replenishment_service import ReplenishmentService
