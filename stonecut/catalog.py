"""
Catalog — stone products, cutting rates, edge tools, finishings, layer types.

Default rows are seeded on startup when missing; prices are edited through
the API afterwards. Lookups used during a calculation never raise: a failed
query is logged and treated as "no result".
"""
import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .config import settings

logger = logging.getLogger(__name__)

# Per-meter cutting rates (toman). LONG runs along the stone, CROSS across it.
DEFAULT_CUTTING_TYPES = {
    models.CuttingCode.LONG: {"name": "Longitudinal cut", "name_persian": "برش طولی", "price_per_meter": 150000.0},
    models.CuttingCode.CROSS: {"name": "Cross cut", "name_persian": "برش عرضی", "price_per_meter": 120000.0},
    models.CuttingCode.VERTICAL: {"name": "Vertical cut", "name_persian": "برش عمودی", "price_per_meter": 180000.0},
}

DEFAULT_TOOLS = [
    {"id": "tool_polish_edge", "code": "POLISH", "name": "Edge polish", "name_persian": "پولیش لبه", "price_per_meter": 90000.0},
    {"id": "tool_bevel", "code": "BEVEL", "name": "Bevel", "name_persian": "پخ", "price_per_meter": 110000.0},
    {"id": "tool_bullnose", "code": "BULLNOSE", "name": "Bullnose", "name_persian": "گرد کردن لبه", "price_per_meter": 160000.0},
    {"id": "tool_antislip", "code": "ANTISLIP", "name": "Anti-slip groove", "name_persian": "شیار ضد لغزش", "price_per_meter": 130000.0},
]

DEFAULT_FINISHINGS = [
    {"id": "finish_polish", "name": "Polished", "name_persian": "صیقلی", "price_per_square_meter": 250000.0},
    {"id": "finish_honed", "name": "Honed", "name_persian": "مات", "price_per_square_meter": 200000.0},
    {"id": "finish_bush", "name": "Bush hammered", "name_persian": "تیشه‌ای", "price_per_square_meter": 320000.0},
]

DEFAULT_LAYER_TYPES = [
    {"id": "layer_simple", "name": "Simple", "description": "Flat glued layer", "price_per_layer": 80000.0},
    {"id": "layer_miter", "name": "Mitered", "description": "45° joint on the visible edge", "price_per_layer": 140000.0},
]

DEFAULT_PRODUCTS = [
    {"id": "stone_travertine_60", "code": "TRV-60", "name_persian": "تراورتن سفید", "name": "White travertine",
     "width_value": 60.0, "thickness_value": 2.0, "length_value": None, "base_price": 2800000.0},
    {"id": "stone_granite_40", "code": "GRN-40", "name_persian": "گرانیت نطنز", "name": "Natanz granite",
     "width_value": 40.0, "thickness_value": 3.0, "length_value": 1.2, "base_price": 3500000.0},
    {"id": "stone_marble_50", "code": "MRB-50", "name_persian": "مرمریت", "name": "Marble",
     "width_value": 50.0, "thickness_value": 2.0, "length_value": None, "base_price": 4200000.0},
]


# --- Seeding ---

def seed_catalog(db: Session) -> dict:
    """Insert default catalog rows that do not exist yet. Returns counts added."""
    added = {"cutting_types": 0, "tools": 0, "finishings": 0, "layer_types": 0, "products": 0}

    for code, data in DEFAULT_CUTTING_TYPES.items():
        existing = db.query(models.CuttingType).filter(models.CuttingType.code == code.value).first()
        if not existing:
            db.add(models.CuttingType(code=code.value, **data))
            added["cutting_types"] += 1

    for model, rows, key in (
        (models.SubService, DEFAULT_TOOLS, "tools"),
        (models.StoneFinishing, DEFAULT_FINISHINGS, "finishings"),
        (models.LayerType, DEFAULT_LAYER_TYPES, "layer_types"),
        (models.StoneProduct, DEFAULT_PRODUCTS, "products"),
    ):
        for row in rows:
            if not db.query(model).filter(model.id == row["id"]).first():
                db.add(model(**row))
                added[key] += 1

    db.commit()
    logger.info("Catalog seeded: %s", added)
    return added


# --- Rate lookup ---

class CatalogLookup:
    """Cutting rates for one calculation, read once from the database."""

    def __init__(self, db: Session):
        self._rates = {}
        try:
            rows = db.query(models.CuttingType).filter(models.CuttingType.is_active.is_(True)).all()
            for row in rows:
                self._rates[row.code] = row.price_per_meter
        except SQLAlchemyError as e:
            logger.warning("Cutting rate lookup failed: %s", e)

    def get_cutting_type_price_per_meter(self, code: str) -> Optional[float]:
        return self._rates.get(code)

    __call__ = get_cutting_type_price_per_meter


# --- Searches ---

def _limit(limit: Optional[int]) -> int:
    if not limit or limit <= 0:
        return settings.CATALOG_SEARCH_LIMIT
    return min(limit, settings.CATALOG_SEARCH_LIMIT * 5)


def search_products(db: Session, search: str = "", limit: Optional[int] = None,
                    contract_type: Optional[str] = None) -> list:
    try:
        query = db.query(models.StoneProduct).filter(models.StoneProduct.is_active.is_(True))
        if contract_type:
            query = query.filter(models.StoneProduct.contract_type == contract_type)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                models.StoneProduct.code.ilike(pattern),
                models.StoneProduct.name.ilike(pattern),
                models.StoneProduct.name_persian.ilike(pattern),
            ))
        return query.order_by(models.StoneProduct.code).limit(_limit(limit)).all()
    except SQLAlchemyError as e:
        logger.warning("Product search failed for %r: %s", search, e)
        return []


def get_product(db: Session, product_id: str) -> Optional[models.StoneProduct]:
    try:
        return db.query(models.StoneProduct).filter(models.StoneProduct.id == product_id).first()
    except SQLAlchemyError as e:
        logger.warning("Product lookup failed for %s: %s", product_id, e)
        return None


def search_tools(db: Session, search: str = "", limit: Optional[int] = None) -> list:
    try:
        query = db.query(models.SubService).filter(models.SubService.is_active.is_(True))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                models.SubService.name.ilike(pattern),
                models.SubService.name_persian.ilike(pattern),
                models.SubService.code.ilike(pattern),
            ))
        return [normalize_tool_record(row) for row in query.limit(_limit(limit)).all()]
    except SQLAlchemyError as e:
        logger.warning("Tool search failed for %r: %s", search, e)
        return []


def normalize_tool_record(record) -> dict:
    """
    Tool record as {id, name, price_per_meter}.

    Accepts ORM rows or dicts from other price lists, where the rate may be
    called price_per_meter, price or cost_per_meter.
    """
    if not isinstance(record, dict):
        record = {
            "id": record.id,
            "name": record.name,
            "name_persian": record.name_persian,
            "price_per_meter": record.price_per_meter,
        }
    price = record.get("price_per_meter")
    if price is None:
        price = record.get("price")
    if price is None:
        price = record.get("cost_per_meter")
    return {
        "id": str(record.get("id")),
        "name": record.get("name_persian") or record.get("name") or "",
        "price_per_meter": float(price or 0),
    }


def list_finishings(db: Session) -> list:
    try:
        return db.query(models.StoneFinishing).filter(models.StoneFinishing.is_active.is_(True)).all()
    except SQLAlchemyError as e:
        logger.warning("Finishing list failed: %s", e)
        return []


def list_layer_types(db: Session) -> list:
    try:
        return db.query(models.LayerType).filter(models.LayerType.is_active.is_(True)).all()
    except SQLAlchemyError as e:
        logger.warning("Layer type list failed: %s", e)
        return []


def get_layer_type(db: Session, layer_type_id: str) -> Optional[models.LayerType]:
    try:
        return db.query(models.LayerType).filter(models.LayerType.id == layer_type_id).first()
    except SQLAlchemyError as e:
        logger.warning("Layer type lookup failed for %s: %s", layer_type_id, e)
        return None


def get_finishing(db: Session, finishing_id: str) -> Optional[models.StoneFinishing]:
    try:
        return db.query(models.StoneFinishing).filter(models.StoneFinishing.id == finishing_id).first()
    except SQLAlchemyError as e:
        logger.warning("Finishing lookup failed for %s: %s", finishing_id, e)
        return None


def list_cutting_types(db: Session) -> list:
    try:
        return db.query(models.CuttingType).order_by(models.CuttingType.id).all()
    except SQLAlchemyError as e:
        logger.warning("Cutting type list failed: %s", e)
        return []


def product_ref_dict(product: models.StoneProduct) -> dict:
    """The fields of a catalog product carried on a draft."""
    return {
        "id": product.id,
        "code": product.code,
        "name_persian": product.name_persian,
        "name": product.name,
        "width_value": product.width_value or 0,
        "thickness_value": product.thickness_value,
        "base_price": product.base_price or 0,
        "length_value": product.length_value,
        "cutting_cost_per_meter": product.cutting_cost_per_meter,
        "cross_cutting_cost_per_meter": product.cross_cutting_cost_per_meter,
    }
