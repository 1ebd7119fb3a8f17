from sqlalchemy import Column, Integer, String, Float, DateTime, Text, Boolean, JSON
from datetime import datetime
from .database import Base
import enum


# --- Enums ---

class StairPartType(str, enum.Enum):
    TREAD = "tread"
    RISER = "riser"
    LANDING = "landing"


class CuttingCode(str, enum.Enum):
    LONG = "LONG"
    CROSS = "CROSS"
    VERTICAL = "VERTICAL"


class SessionStatus(str, enum.Enum):
    ACTIVE = "active"
    DISCARDED = "discarded"


# --- Catalog tables ---

class StoneProduct(Base):
    """Stone catalog entry. Widths and thickness in cm, length in meters."""
    __tablename__ = "stone_products"

    id = Column(String, primary_key=True)
    code = Column(String, unique=True, nullable=False)
    name_persian = Column(String, nullable=False)
    name = Column(String, nullable=True)
    width_value = Column(Float, nullable=True)
    thickness_value = Column(Float, nullable=True)
    length_value = Column(Float, nullable=True)  # Standard length, optional
    base_price = Column(Float, default=0.0)  # Per square meter
    cutting_cost_per_meter = Column(Float, nullable=True)  # Overrides LONG rate
    cross_cutting_cost_per_meter = Column(Float, nullable=True)  # Overrides CROSS rate
    contract_type = Column(String, default="stair")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class CuttingType(Base):
    """Per-meter cutting rates, looked up by code (LONG, CROSS, VERTICAL)."""
    __tablename__ = "cutting_types"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    name_persian = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    price_per_meter = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SubService(Base):
    """Edge tools (polish, bevel, groove...) charged per meter of treated edge."""
    __tablename__ = "sub_services"

    id = Column(String, primary_key=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    name_persian = Column(String, nullable=True)
    price_per_meter = Column(Float, default=0.0)
    is_active = Column(Boolean, default=True)


class StoneFinishing(Base):
    """Surface finishing charged per pricing square meter."""
    __tablename__ = "stone_finishings"

    id = Column(String, primary_key=True)
    name_persian = Column(String, nullable=False)
    name = Column(String, nullable=True)
    price_per_square_meter = Column(Float, default=0.0)
    is_active = Column(Boolean, default=True)


class LayerType(Base):
    """Layer profile, priced per meter of layer edge."""
    __tablename__ = "layer_types"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price_per_layer = Column(Float, default=0.0)
    is_active = Column(Boolean, default=True)


# --- Session state ---

class StairSession(Base):
    """One stair system under construction — line items stored as JSON."""
    __tablename__ = "stair_sessions"

    id = Column(String, primary_key=True)  # UUID
    contract_ref = Column(String, nullable=True)
    status = Column(String, default=SessionStatus.ACTIVE.value)
    items_json = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
