"""
Stair part draft validation.

Returns {field: message}; an empty dict means the draft can be materialized.
Messages are written for the sales agent filling in the form.
"""
from typing import Optional

from .calculators.records import StairPartDraft
from .calculators.totals import MANDATORY_BY_DEFAULT
from .calculators.units import get_standard_length_meters, to_meters
from .config import settings

MAX_LENGTH_M = 10.0
MAX_QUANTITY = 10000
MAX_PRICE_PER_SQUARE_METER = 100_000_000
THICKNESS_TOLERANCE_CM = 0.01

PART_LABELS = {"tread": "tread", "riser": "riser", "landing": "landing"}


def _fmt(value) -> str:
    return f"{value:g}"


def validate_field(part: str, draft: StairPartDraft, field: str, value) -> Optional[str]:
    """Message for one field, or None when valid."""
    label = PART_LABELS.get(part, part)
    product = draft.stone_product
    if product is None:
        return None

    original_width = product.width_value or 0
    original_thickness = product.thickness_value or 0

    if field == "length":
        if value is None or value <= 0:
            if get_standard_length_meters(draft) > 0:
                return None
            return f"Enter the {label} length"
        if to_meters(value, draft.length_unit or "m") > MAX_LENGTH_M:
            limit = _fmt(MAX_LENGTH_M) if (draft.length_unit or "m") == "m" else _fmt(MAX_LENGTH_M * 100)
            return f"Length cannot exceed {limit} {draft.length_unit or 'm'}"
        return None

    if field == "width":
        if value is None:
            return f"Enter the {label} width"
        if value <= 0:
            return "Width must be greater than zero"
        if original_width > 0 and value > original_width:
            return (f"Width ({_fmt(value)}cm) cannot exceed the stone width "
                    f"({_fmt(original_width)}cm)")
        if value < 1:
            return "Width must be at least 1 cm"
        return None

    if field == "quantity":
        if value is None:
            return f"Enter the number of {label}s"
        if value <= 0:
            return "Quantity must be greater than zero"
        if int(value) != value:
            return "Quantity must be a whole number"
        if value > MAX_QUANTITY:
            return f"Quantity cannot exceed {MAX_QUANTITY:,}"
        return None

    if field in ("price_per_square_meter", "layer_stone_price"):
        subject = "Layer stone price" if field == "layer_stone_price" else "Price per square meter"
        if value is None:
            return f"Enter the {subject.lower()}"
        if value <= 0:
            return f"{subject} must be greater than zero"
        if value > MAX_PRICE_PER_SQUARE_METER:
            return f"{subject} cannot exceed {MAX_PRICE_PER_SQUARE_METER:,} {settings.CURRENCY}"
        return None

    if field in ("mandatory_percentage", "layer_mandatory_percentage"):
        if value is None:
            return "Enter the mandatory percentage"
        if value < 0:
            return "Mandatory percentage cannot be below 0"
        if value > 100:
            return "Mandatory percentage cannot exceed 100"
        return None

    if field == "thickness":
        if original_thickness > 0:
            current = draft.thickness_cm or 0
            if abs(current - original_thickness) > THICKNESS_TOLERANCE_CM:
                return f"Thickness must match the stone thickness ({_fmt(original_thickness)}cm)"
        return None

    return None


def validate_draft(part: str, draft: StairPartDraft, layer_types_available: bool = False) -> dict:
    """All field errors for a draft about to be added to a stair system."""
    errors = {}
    label = PART_LABELS.get(part, part)

    if part not in PART_LABELS:
        errors["part"] = f"Unknown stair part: {part}"
        return errors

    if not draft.stone_id or draft.stone_product is None:
        errors["stone"] = f"Select a stone for the {label}"
        return errors

    for field, value in (
        ("length", draft.length_value),
        ("width", draft.width_cm),
        ("quantity", draft.quantity),
        ("price_per_square_meter", draft.price_per_square_meter),
        ("thickness", draft.thickness_cm),
    ):
        message = validate_field(part, draft, field, value)
        if message:
            errors[field] = message

    mandatory_enabled = draft.use_mandatory
    if mandatory_enabled is None:
        mandatory_enabled = part in MANDATORY_BY_DEFAULT
    if mandatory_enabled:
        percentage = draft.mandatory_percentage
        if percentage is None:
            percentage = settings.DEFAULT_MANDATORY_PERCENTAGE
        message = validate_field(part, draft, "mandatory_percentage", percentage)
        if message:
            errors["mandatory_percentage"] = message

    if draft.layers_per_stair > 0:
        if layer_types_available and not draft.layer_type_id:
            errors["layer_type"] = "Select a layer type"
        if not draft.layer_width_cm or draft.layer_width_cm <= 0:
            errors["layer_width"] = "Layer width must be greater than zero"
        if draft.layer_edges is None or not draft.layer_edges.any_selected():
            errors["layer_edges"] = "Select at least one layer edge"

        if draft.layer_use_different_stone:
            if draft.layer_stone_product is None or not draft.layer_stone_product_id:
                errors["layer_stone"] = "Select the stone for the layers"
            message = validate_field(part, draft, "layer_stone_price",
                                     draft.layer_price_per_square_meter)
            if message:
                errors["layer_stone_price"] = message
            if draft.layer_use_mandatory is not False:
                message = validate_field(part, draft, "layer_mandatory_percentage",
                                         draft.layer_mandatory_percentage)
                if message:
                    errors["layer_mandatory_percentage"] = message

    return errors
