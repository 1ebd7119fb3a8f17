"""
Stair Session API — build the stair system of a contract part by part.

POST   /api/stair-sessions                      — Start an empty stair system
POST   /api/stair-sessions/preview              — Totals + layer allocation for a draft, nothing saved
GET    /api/stair-sessions/{id}                 — Line items and totals
POST   /api/stair-sessions/{id}/parts           — Validate a draft and add it as line items
GET    /api/stair-sessions/{id}/remaining-stones — Leftover stone still usable
POST   /api/stair-sessions/{id}/remaining-stones/{stone_id}/partitions — Cut partitions from a leftover
DELETE /api/stair-sessions/{id}/items/{item_id} — Remove a line item, reallocating layers
DELETE /api/stair-sessions/{id}                 — Discard the whole stair system
"""

import logging
import uuid
from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from .. import catalog, models, schemas
from ..calculators.records import StairPartDraft
from ..calculators.remaining_stones import calculate_cut_remaining_stones
from ..calculators.totals import compute_part_totals, normalize_layer_alt_stone_settings
from ..database import get_db
from ..stair_session import StairSystemSession, StockValidationError, price_layer
from ..validation import validate_draft

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stair-sessions", tags=["stair-sessions"])


# --- Helpers ---

def _get_row(db: Session, session_id: str) -> models.StairSession:
    row = db.query(models.StairSession).filter(models.StairSession.id == session_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Stair session not found")
    return row


def _load(row: models.StairSession) -> StairSystemSession:
    return StairSystemSession.from_dict({
        "stair_system_id": row.id,
        "status": row.status,
        "items": row.items_json or [],
    })


def _save(db: Session, row: models.StairSession, stair_system: StairSystemSession):
    """Write the whole item list back in one transaction."""
    try:
        row.items_json = stair_system.to_dict()["items"]
        row.status = stair_system.status
        row.updated_at = datetime.utcnow()
        flag_modified(row, "items_json")
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Saving stair session %s failed: %s", row.id, e)
        raise HTTPException(status_code=500, detail="Could not save stair session")


def _session_out(row: models.StairSession, stair_system: StairSystemSession) -> dict:
    return {
        "id": row.id,
        "contract_ref": row.contract_ref,
        "status": stair_system.status,
        "items": [item.to_dict() for item in stair_system.items],
        "totals": stair_system.totals(),
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }


def _resolve_draft(db: Session, draft_in: schemas.StairPartDraft) -> StairPartDraft:
    """Fill catalog data the client left out: products, prices, thickness, standard length."""
    data = draft_in.model_dump()

    if data.get("stone_id") and not data.get("stone_product"):
        product = catalog.get_product(db, data["stone_id"])
        if product:
            data["stone_product"] = catalog.product_ref_dict(product)
    if data.get("stone_product"):
        product = data["stone_product"]
        if data.get("price_per_square_meter") is None:
            data["price_per_square_meter"] = product.get("base_price")
        if data.get("thickness_cm") is None:
            data["thickness_cm"] = product.get("thickness_value")
        if data.get("standard_length_value") is None and product.get("length_value"):
            data["standard_length_value"] = product["length_value"]
            data["standard_length_unit"] = "m"

    if data.get("layer_stone_product_id") and not data.get("layer_stone_product"):
        layer_product = catalog.get_product(db, data["layer_stone_product_id"])
        if layer_product:
            data["layer_stone_product"] = catalog.product_ref_dict(layer_product)
            if data.get("layer_price_per_square_meter") is None:
                data["layer_price_per_square_meter"] = layer_product.base_price

    if data.get("layer_type_id") and data.get("layer_type_price") is None:
        layer_type = catalog.get_layer_type(db, data["layer_type_id"])
        if layer_type:
            data["layer_type_name"] = data.get("layer_type_name") or layer_type.name
            data["layer_type_price"] = layer_type.price_per_layer

    if data.get("finishing_id") and data.get("finishing_price_per_square_meter") is None:
        finishing = catalog.get_finishing(db, data["finishing_id"])
        if finishing:
            data["finishing_name"] = data.get("finishing_name") or finishing.name_persian
            data["finishing_price_per_square_meter"] = finishing.price_per_square_meter

    return normalize_layer_alt_stone_settings(StairPartDraft.from_dict(data))


def _validated_draft(db: Session, part: str, draft_in: schemas.StairPartDraft) -> StairPartDraft:
    draft = _resolve_draft(db, draft_in)
    errors = validate_draft(part, draft, layer_types_available=bool(catalog.list_layer_types(db)))
    if errors:
        raise HTTPException(status_code=422, detail=errors)
    draft.quantity = int(draft.quantity)
    return draft


# --- Endpoints ---

@router.post("", response_model=schemas.StairSessionOut)
def create_session(request: schemas.StairSessionCreate, db: Session = Depends(get_db)):
    row = models.StairSession(
        id=str(uuid.uuid4()),
        contract_ref=request.contract_ref,
        status=models.SessionStatus.ACTIVE.value,
        items_json=[],
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return _session_out(row, _load(row))


@router.post("/preview")
def preview_part(request: schemas.PreviewRequest, db: Session = Depends(get_db)):
    """
    Price a draft without saving anything.

    The layer preview draws from the draft's own leftovers, plus those of
    the given session when session_id is set.
    """
    part = request.part.value
    draft = _validated_draft(db, part, request.draft)
    totals = compute_part_totals(part, draft, catalog.CatalogLookup(db))

    own_leftovers = calculate_cut_remaining_stones(
        source_cut_id="preview",
        original_width_cm=totals.original_width_cm,
        user_width_cm=draft.width_cm,
        quantity=draft.quantity,
        actual_length_m=totals.actual_length_m,
        pricing_length_m=totals.pricing_length_m,
    )
    available = list(own_leftovers)
    if request.session_id:
        available = _load(_get_row(db, request.session_id)).collect_available_remaining_stones(
            extra=own_leftovers,
        )

    layers = None
    if draft.has_layers():
        layers = price_layer(part, draft, available).to_dict()

    return {
        "part": part,
        "totals": asdict(totals),
        "line_total": totals.part_total + totals.finishing_cost,
        "remaining_stones": [s.to_dict() for s in own_leftovers],
        "layers": layers,
    }


@router.get("/{session_id}", response_model=schemas.StairSessionOut)
def get_session(session_id: str, db: Session = Depends(get_db)):
    row = _get_row(db, session_id)
    return _session_out(row, _load(row))


@router.post("/{session_id}/parts")
def add_part(session_id: str, request: schemas.AddPartRequest, db: Session = Depends(get_db)):
    row = _get_row(db, session_id)
    stair_system = _load(row)
    if stair_system.is_discarded:
        raise HTTPException(status_code=400, detail="Stair session is discarded, not active")

    part = request.part.value
    draft = _validated_draft(db, part, request.draft)
    part_item, layer_item = stair_system.add_part(part, draft, catalog.CatalogLookup(db))
    _save(db, row, stair_system)

    result = _session_out(row, stair_system)
    result["added"] = {
        "part_item_id": part_item.id,
        "layer_item_id": layer_item.id if layer_item else None,
    }
    return result


@router.get("/{session_id}/remaining-stones")
def list_remaining_stones(session_id: str, db: Session = Depends(get_db)):
    stair_system = _load(_get_row(db, session_id))
    return [s.to_dict() for s in stair_system.collect_available_remaining_stones()]


@router.post("/{session_id}/remaining-stones/{stone_id}/partitions")
def cut_partitions(session_id: str, stone_id: str, request: schemas.PartitionRequest,
                   db: Session = Depends(get_db)):
    """Cut partitions out of a leftover stone; 422 with per-partition errors when they do not fit."""
    row = _get_row(db, session_id)
    stair_system = _load(row)
    if stair_system.is_discarded:
        raise HTTPException(status_code=400, detail="Stair session is discarded, not active")

    try:
        items = stair_system.add_from_remaining_stone(
            stone_id, [p.model_dump() for p in request.partitions], catalog.CatalogLookup(db),
        )
    except KeyError:
        raise HTTPException(status_code=404, detail="Leftover stone not found")
    except StockValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors)
    _save(db, row, stair_system)

    result = _session_out(row, stair_system)
    result["added"] = {"item_ids": [item.id for item in items]}
    return result


@router.delete("/{session_id}/items/{item_id}")
def remove_item(session_id: str, item_id: str, db: Session = Depends(get_db)):
    row = _get_row(db, session_id)
    stair_system = _load(row)
    try:
        removed = stair_system.remove_item(item_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Line item not found")
    _save(db, row, stair_system)

    result = _session_out(row, stair_system)
    result["removed"] = removed
    return result


@router.delete("/{session_id}", response_model=schemas.StairSessionOut)
def discard_session(session_id: str, db: Session = Depends(get_db)):
    row = _get_row(db, session_id)
    stair_system = _load(row)
    stair_system.discard()
    _save(db, row, stair_system)
    return _session_out(row, stair_system)
