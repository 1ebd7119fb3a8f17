"""
Stair part totals — material, mandatory markup, edge tools, cutting, finishing.

Display m² uses the entered width. Pricing m² uses the catalog stone width
times the number of whole stones consumed, so billing follows stone usage
rather than the visible cut area. Risers are priced on their actual length.

part_total = material + mandatory markup + tools + billable cutting.
Finishing is computed here but charged separately on the line item.
"""
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from ..config import settings
from .cutting_cost import calculate_cutting_cost, resolve_cutting_rates
from .stone_usage import calculate_stair_stone_usage
from .units import get_actual_length_meters, get_pricing_length_meters

MANDATORY_BY_DEFAULT = ("riser", "landing")

CuttingRateLookup = Callable[[str], Optional[float]]


@dataclass
class PartTotals:
    sqm: float = 0.0
    pricing_square_meters: float = 0.0
    actual_length_m: float = 0.0
    pricing_length_m: float = 0.0
    original_width_cm: float = 0.0
    base_stone_quantity: int = 0
    pieces_per_stone: int = 1
    leftover_width_cm: float = 0.0
    base_material_price: float = 0.0
    is_mandatory: bool = False
    mandatory_percentage: float = 0.0
    mandatory_amount: float = 0.0
    material_price_with_mandatory: float = 0.0
    tools_total: float = 0.0
    tool_breakdown: list = field(default_factory=list)
    cutting_cost: float = 0.0
    cutting_cost_per_meter: float = 0.0
    cutting_cost_longitudinal: float = 0.0
    cutting_cost_per_meter_longitudinal: float = 0.0
    cutting_cost_cross: float = 0.0
    cutting_cost_per_meter_cross: float = 0.0
    should_charge_cutting_cost: bool = True
    billable_cutting_cost: float = 0.0
    billable_cutting_cost_longitudinal: float = 0.0
    billable_cutting_cost_cross: float = 0.0
    cutting_breakdown: list = field(default_factory=list)
    finishing_cost: float = 0.0
    part_total: float = 0.0


# --- Area & tools ---

def compute_display_square_meters(draft) -> float:
    length_m = get_actual_length_meters(draft)
    width_m = (draft.width_cm or 0) / 100
    return length_m * width_m * (draft.quantity or 0)


def compute_tool_meters(part: str, draft, tool) -> float:
    """Treated edge meters for one tool across all pieces."""
    length_m = get_actual_length_meters(draft)
    width_m = (draft.width_cm or 0) / 100
    meters = 0.0

    if part == "landing":
        if tool.perimeter:
            meters += 2 * (length_m + width_m)
        else:
            if tool.front:
                meters += width_m
            if tool.back:
                meters += width_m
            if tool.left:
                meters += length_m
            if tool.right:
                meters += length_m
    else:
        if tool.front:
            meters += width_m
        if tool.left:
            meters += length_m
        if tool.right:
            meters += length_m

    return meters * (draft.quantity or 0)


def compute_tools_meters(part: str, draft) -> float:
    return sum(compute_tool_meters(part, draft, tool) for tool in draft.tools or [])


def compute_finishing_cost(draft, pricing_square_meters: float) -> float:
    if not draft.finishing_enabled or not draft.finishing_id:
        return 0.0
    if not draft.finishing_price_per_square_meter or pricing_square_meters <= 0:
        return 0.0
    return pricing_square_meters * draft.finishing_price_per_square_meter


def resolve_mandatory(part: str, draft) -> tuple:
    """(enabled, percentage) with per-part defaults applied."""
    enabled = draft.use_mandatory
    if enabled is None:
        enabled = part in MANDATORY_BY_DEFAULT
    percentage = draft.mandatory_percentage
    if percentage is None:
        percentage = settings.DEFAULT_MANDATORY_PERCENTAGE
    return bool(enabled), float(percentage)


# --- Main calculation ---

def compute_part_totals(part: str, draft, get_cutting_rate: CuttingRateLookup) -> PartTotals:
    """
    Price one stair part.

    `get_cutting_rate(code)` returns the catalog per-meter rate for LONG,
    CROSS or VERTICAL, or None.
    """
    totals = PartTotals()
    totals.sqm = compute_display_square_meters(draft)

    for tool in draft.tools or []:
        meters = compute_tool_meters(part, draft, tool)
        price = meters * (tool.price_per_meter or 0)
        totals.tools_total += price
        totals.tool_breakdown.append(replace(tool, computed_meters=meters, total_price=price))

    usage = calculate_stair_stone_usage(draft)
    totals.original_width_cm = usage.original_width_cm
    totals.base_stone_quantity = usage.base_stone_quantity
    totals.pieces_per_stone = usage.pieces_per_stone
    totals.leftover_width_cm = usage.leftover_width_cm

    totals.actual_length_m = get_actual_length_meters(draft)
    totals.pricing_length_m = (
        totals.actual_length_m if part == "riser" else get_pricing_length_meters(draft)
    )

    totals.pricing_square_meters = totals.sqm
    if (usage.original_width_cm > 0 and usage.user_width_cm > 0
            and totals.pricing_length_m > 0 and usage.base_stone_quantity > 0):
        totals.pricing_square_meters = (
            totals.pricing_length_m * (usage.original_width_cm / 100) * usage.base_stone_quantity
        )

    totals.base_material_price = totals.pricing_square_meters * (draft.price_per_square_meter or 0)
    totals.is_mandatory, totals.mandatory_percentage = resolve_mandatory(part, draft)
    if totals.is_mandatory and totals.mandatory_percentage > 0:
        totals.mandatory_amount = totals.base_material_price * (totals.mandatory_percentage / 100)
    totals.material_price_with_mandatory = totals.base_material_price + totals.mandatory_amount

    longitudinal_rate, cross_rate = resolve_cutting_rates(get_cutting_rate, draft.stone_product)
    cutting = calculate_cutting_cost(
        actual_length_m=totals.actual_length_m,
        pricing_length_m=totals.pricing_length_m,
        user_width_cm=usage.user_width_cm,
        original_width_cm=usage.original_width_cm,
        base_stone_quantity=usage.base_stone_quantity,
        longitudinal_rate=longitudinal_rate,
        cross_rate=cross_rate,
        mandatory_enabled=totals.is_mandatory,
        mandatory_percentage=totals.mandatory_percentage,
    )
    totals.cutting_cost = cutting.cutting_cost
    totals.cutting_cost_per_meter = cutting.cutting_cost_per_meter
    totals.cutting_cost_longitudinal = cutting.cutting_cost_longitudinal
    totals.cutting_cost_per_meter_longitudinal = cutting.cutting_cost_per_meter_longitudinal
    totals.cutting_cost_cross = cutting.cutting_cost_cross
    totals.cutting_cost_per_meter_cross = cutting.cutting_cost_per_meter_cross
    totals.should_charge_cutting_cost = cutting.should_charge_cutting_cost
    totals.billable_cutting_cost = cutting.billable_cutting_cost
    totals.billable_cutting_cost_longitudinal = cutting.billable_cutting_cost_longitudinal
    totals.billable_cutting_cost_cross = cutting.billable_cutting_cost_cross
    totals.cutting_breakdown = cutting.breakdown

    totals.finishing_cost = compute_finishing_cost(draft, totals.pricing_square_meters)
    totals.part_total = (
        totals.material_price_with_mandatory + totals.tools_total + totals.billable_cutting_cost
    )
    return totals


# --- Layer pricing ---

def layer_stone_product(draft):
    """The stone layers are cut from: the alternate stone when set, else the main stone."""
    if draft.layer_use_different_stone and draft.layer_stone_product is not None:
        return draft.layer_stone_product
    return draft.stone_product


def layer_base_price_per_square_meter(draft) -> float:
    if draft.layer_use_different_stone:
        return float(draft.layer_price_per_square_meter or 0)
    return float(draft.price_per_square_meter or 0)


def layer_effective_price_per_square_meter(draft) -> float:
    """Base layer price, with the layer mandatory markup when an alternate stone is used."""
    base = layer_base_price_per_square_meter(draft)
    percentage = draft.layer_mandatory_percentage or 0
    if draft.layer_use_different_stone and draft.layer_use_mandatory and percentage > 0:
        return base * (1 + percentage / 100)
    return base


def normalize_layer_alt_stone_settings(draft):
    """Return a copy with alternate-stone layer defaults filled in."""
    if not draft.layer_use_different_stone:
        price = draft.layer_price_per_square_meter
        if price is None:
            price = draft.price_per_square_meter
        return replace(
            draft,
            layer_price_per_square_meter=price,
            layer_use_mandatory=None,
            layer_mandatory_percentage=None,
        )

    price = draft.layer_price_per_square_meter
    if not price or price <= 0:
        price = draft.price_per_square_meter or 0
    use_mandatory = draft.layer_use_mandatory
    if use_mandatory is None:
        use_mandatory = True
    percentage = draft.layer_mandatory_percentage
    if percentage is None:
        percentage = settings.DEFAULT_LAYER_MANDATORY_PERCENTAGE
    return replace(
        draft,
        layer_price_per_square_meter=price,
        layer_use_mandatory=use_mandatory,
        layer_mandatory_percentage=percentage,
    )
