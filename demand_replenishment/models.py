# demand_replenishment/models.py
from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey, Text, Enum,
    Index, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum
import json

Base = declarative_base()

class MovementType(enum.Enum):
    """Inventory ledger movement kinds.
    
    Inbound kinds add stock, outbound kinds remove it. Only sale-type outflows
    count as demand; adjustments, transfers, shrinkage and returns to the
    supplier do not.
    """
    PURCHASE_RECEIPT = 'PURCHASE_RECEIPT'
    CUSTOMER_RETURN = 'CUSTOMER_RETURN'
    ADJUSTMENT_IN = 'ADJUSTMENT_IN'
    TRANSFER_IN = 'TRANSFER_IN'
    PRODUCTION_IN = 'PRODUCTION_IN'
    OPENING_BALANCE = 'OPENING_BALANCE'
    SALE = 'SALE'
    SUPPLIER_RETURN = 'SUPPLIER_RETURN'
    ADJUSTMENT_OUT = 'ADJUSTMENT_OUT'
    TRANSFER_OUT = 'TRANSFER_OUT'
    SHRINKAGE = 'SHRINKAGE'
    EXPIRY = 'EXPIRY'
    CONSUMPTION = 'CONSUMPTION'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

DEMAND_MOVEMENT_TYPES = frozenset({MovementType.SALE})

class OrderStatus(enum.Enum):
    PROPOSED = 'PROPOSED'
    NOT_REQUIRED = 'NOT_REQUIRED'
    APPROVED = 'APPROVED'
    CANCELLED = 'CANCELLED'

class Product(Base):
    __tablename__ = 'product'
    
    id = Column(Integer, primary_key=True)
    sku = Column(String(50), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    
    # Supplier and valuation
    lead_time_days = Column(Integer, default=7)
    unit_cost = Column(Float)
    
    # Stock position
    current_stock = Column(Integer, default=0)
    reorder_point = Column(Integer, default=0)
    
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())
    
    ledger_entries = relationship("LedgerEntry", back_populates="product")
    demand_records = relationship("DemandRecord", back_populates="product")
    seasonal_profiles = relationship("SeasonalProfile", back_populates="product")
    forecasts = relationship("ForecastRecord", back_populates="product")

    def __repr__(self):
        return f"<Product(id={self.id}, sku={self.sku})>"

class LedgerEntry(Base):
    """One inventory movement. Written by the ledger owner, read-only here."""
    __tablename__ = 'ledger_entry'
    
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    movement_date = Column(DateTime, nullable=False)
    movement_type = Column(Enum(MovementType), nullable=False)
    quantity = Column(Float, nullable=False)  # always positive; direction comes from movement_type
    is_voided = Column(Boolean, default=False)
    reference = Column(String(100))
    
    product = relationship("Product", back_populates="ledger_entries")

    __table_args__ = (
        Index('ix_ledger_product_date', 'product_id', 'movement_date'),
    )

class DemandRecord(Base):
    """Aggregated demand for one product on one calendar date."""
    __tablename__ = 'demand_record'
    
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    demand_date = Column(Date, nullable=False)
    quantity = Column(Float, nullable=False, default=0.0)
    period_label = Column(String(7), nullable=False)  # YYYY-MM
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
    
    product = relationship("Product", back_populates="demand_records")

    __table_args__ = (
        UniqueConstraint('product_id', 'demand_date', name='uq_demand_product_date'),
    )

class SeasonalProfile(Base):
    __tablename__ = 'seasonal_profile'
    
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    intensity = Column(Float, default=0.0)
    has_seasonality = Column(Boolean, default=False)
    peak_month = Column(Integer)
    trough_month = Column(Integer)
    data_points = Column(Integer, default=0)
    analysis_date = Column(DateTime, default=func.now())
    is_active = Column(Boolean, default=True)
    
    product = relationship("Product", back_populates="seasonal_profiles")
    indices = relationship(
        "SeasonalProfileIndex",
        back_populates="profile",
        order_by="SeasonalProfileIndex.month",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index('ix_seasonal_profile_active', 'product_id', 'is_active'),
    )

    @property
    def coefficients(self):
        return [index.coefficient for index in self.indices]

class SeasonalProfileIndex(Base):
    __tablename__ = 'seasonal_profile_index'
    
    id = Column(Integer, primary_key=True)
    profile_id = Column(Integer, ForeignKey('seasonal_profile.id'), nullable=False)
    month = Column(Integer, nullable=False)  # 1-12
    coefficient = Column(Float, nullable=False, default=1.0)
    
    profile = relationship("SeasonalProfile", back_populates="indices")

class ForecastRecord(Base):
    __tablename__ = 'forecast_record'
    
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    algorithm = Column(String(20), nullable=False)
    label = Column(String(100))
    horizon = Column(Integer, nullable=False)
    total_demand = Column(Float, default=0.0)
    predicted_values = Column(Text)  # JSON list
    
    # Backtest metrics
    mae = Column(Float)
    mape = Column(Float)
    rmse = Column(Float)
    quality = Column(String(20))
    mape_reliable = Column(Boolean, default=True)
    
    advisories = Column(Text)  # JSON list
    parameters = Column(Text)  # JSON dict
    has_trend = Column(Boolean, default=False)
    has_seasonality = Column(Boolean, default=False)
    seasonal_period = Column(Integer)
    selection_reason = Column(Text)
    created_at = Column(DateTime, default=func.now())
    
    product = relationship("Product", back_populates="forecasts")

    @property
    def predictions(self):
        return json.loads(self.predicted_values) if self.predicted_values else []

    @property
    def advisory_list(self):
        return json.loads(self.advisories) if self.advisories else []

class ReplenishmentOrder(Base):
    __tablename__ = 'replenishment_order'
    
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    forecast_id = Column(Integer, ForeignKey('forecast_record.id'))
    
    quantity = Column(Integer, default=0)
    order_required = Column(Boolean, default=False)
    predicted_demand = Column(Float)
    buffered_demand = Column(Float)
    current_stock = Column(Integer)
    reorder_point = Column(Integer)
    estimated_cost = Column(Float)
    justification = Column(Text)
    
    status = Column(Enum(OrderStatus), default=OrderStatus.PROPOSED)
    created_at = Column(DateTime, default=func.now())
    
    product = relationship("Product")
    forecast = relationship("ForecastRecord")
