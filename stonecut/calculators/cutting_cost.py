"""
Cutting cost — longitudinal and cross cuts of a stair part.

Longitudinal: requested width narrower than the catalog stone. Billed along
the actual length, once per base stone.
Cross: the stone is priced on a standard length longer than the actual
length, so each piece is cut across its width.

When the mandatory markup is active the cutting cost is absorbed into that
markup: the gross figures stay on the result for display, the billable
figures drop to zero.
"""
from dataclasses import dataclass, field

from .records import CuttingBreakdownEntry

LENGTH_CUT_EPSILON = 0.0001


@dataclass
class CuttingCost:
    needs_width_cut: bool = False
    needs_length_cut: bool = False
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
    breakdown: list = field(default_factory=list)


def should_charge_cutting_cost(mandatory_enabled: bool, mandatory_percentage) -> bool:
    # TODO: confirm with sales owners that cutting is never billed on top of the mandatory markup
    return not (bool(mandatory_enabled) and (mandatory_percentage or 0) > 0)


def resolve_cutting_rates(get_cutting_rate, product=None) -> tuple:
    """
    (longitudinal_rate, cross_rate) per meter.

    A product's own per-meter rate wins over the catalog. CROSS falls back
    to LONG when the catalog has no cross rate.
    """
    longitudinal = product.cutting_cost_per_meter if product is not None else None
    if longitudinal is None:
        longitudinal = get_cutting_rate("LONG")

    cross = product.cross_cutting_cost_per_meter if product is not None else None
    if cross is None:
        cross = get_cutting_rate("CROSS")
    if cross is None:
        cross = get_cutting_rate("LONG")

    return float(longitudinal or 0), float(cross or 0)


def calculate_cutting_cost(actual_length_m: float, pricing_length_m: float,
                           user_width_cm: float, original_width_cm: float,
                           base_stone_quantity: int,
                           longitudinal_rate: float, cross_rate: float,
                           mandatory_enabled: bool = False,
                           mandatory_percentage: float = 0.0) -> CuttingCost:
    actual = actual_length_m or 0
    pricing = pricing_length_m or 0
    user_width = user_width_cm or 0
    original_width = original_width_cm or 0
    stones = base_stone_quantity or 0

    result = CuttingCost()
    result.needs_width_cut = (
        original_width > 0 and 0 < user_width < original_width and actual > 0
    )
    result.needs_length_cut = (
        pricing > 0 and actual > 0 and pricing - actual > LENGTH_CUT_EPSILON and user_width > 0
    )

    if result.needs_width_cut and stones > 0:
        result.cutting_cost_per_meter_longitudinal = longitudinal_rate or 0
        if result.cutting_cost_per_meter_longitudinal > 0:
            meters = actual * stones
            result.cutting_cost_longitudinal = result.cutting_cost_per_meter_longitudinal * meters
            result.breakdown.append(CuttingBreakdownEntry(
                type="longitudinal",
                meters=meters,
                rate=result.cutting_cost_per_meter_longitudinal,
                cost=result.cutting_cost_longitudinal,
            ))

    if result.needs_length_cut and stones > 0:
        result.cutting_cost_per_meter_cross = cross_rate or 0
        if result.cutting_cost_per_meter_cross > 0:
            meters = (user_width / 100) * stones
            result.cutting_cost_cross = result.cutting_cost_per_meter_cross * meters
            result.breakdown.append(CuttingBreakdownEntry(
                type="cross",
                meters=meters,
                rate=result.cutting_cost_per_meter_cross,
                cost=result.cutting_cost_cross,
            ))

    result.cutting_cost = result.cutting_cost_longitudinal + result.cutting_cost_cross
    if result.cutting_cost_longitudinal > 0:
        result.cutting_cost_per_meter = result.cutting_cost_per_meter_longitudinal
    elif result.cutting_cost_cross > 0:
        result.cutting_cost_per_meter = result.cutting_cost_per_meter_cross

    result.should_charge_cutting_cost = should_charge_cutting_cost(
        mandatory_enabled, mandatory_percentage,
    )
    if result.should_charge_cutting_cost:
        result.billable_cutting_cost_longitudinal = result.cutting_cost_longitudinal
        result.billable_cutting_cost_cross = result.cutting_cost_cross
    result.billable_cutting_cost = (
        result.billable_cutting_cost_longitudinal + result.billable_cutting_cost_cross
    )
    return result
