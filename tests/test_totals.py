"""
Stair part totals tests.

Tests:
1-4.  Area and material (display vs pricing m², standard length, riser pricing length)
5-7.  Mandatory markup defaults per part and its effect on cutting
8-10. Edge tools
11-12. Finishing
13-16. Layer pricing helpers
"""

import pytest

from stonecut.calculators.records import LayerEdges
from stonecut.calculators.totals import (
    compute_finishing_cost,
    compute_part_totals,
    compute_tool_meters,
    layer_base_price_per_square_meter,
    layer_effective_price_per_square_meter,
    normalize_layer_alt_stone_settings,
)

from builders import make_draft, make_stone, make_tool, no_rates, rates


# ============================================================
# Area & material
# ============================================================

def test_tread_pricing_uses_whole_stones():
    totals = compute_part_totals("tread", make_draft(), rates())
    assert totals.sqm == pytest.approx(1.2 * 0.25 * 10)
    assert totals.base_stone_quantity == 5
    assert totals.pricing_square_meters == pytest.approx(1.2 * 0.6 * 5)
    assert totals.base_material_price == pytest.approx(3600000)
    assert totals.is_mandatory is False
    assert totals.cutting_cost_longitudinal == pytest.approx(900000)
    assert totals.billable_cutting_cost == pytest.approx(900000)
    assert totals.part_total == pytest.approx(3600000 + 900000)


def test_standard_length_adds_cross_cut():
    draft = make_draft(standard_length_value=1.5, standard_length_unit="m")
    totals = compute_part_totals("tread", draft, rates())
    assert totals.pricing_length_m == pytest.approx(1.5)
    assert totals.pricing_square_meters == pytest.approx(1.5 * 0.6 * 5)
    assert totals.cutting_cost_cross == pytest.approx(120000 * 0.25 * 5)
    assert totals.cutting_cost == pytest.approx(900000 + 150000)


def test_riser_priced_on_actual_length():
    draft = make_draft(standard_length_value=1.5, standard_length_unit="m", use_mandatory=False)
    totals = compute_part_totals("riser", draft, rates())
    assert totals.pricing_length_m == pytest.approx(1.2)
    assert totals.pricing_square_meters == pytest.approx(3.6)
    assert totals.cutting_cost_cross == 0


def test_missing_stone_width_falls_back_to_display_area():
    draft = make_draft(stone=make_stone(width=0))
    totals = compute_part_totals("tread", draft, no_rates)
    assert totals.pricing_square_meters == pytest.approx(totals.sqm)
    assert totals.cutting_cost == 0


# ============================================================
# Mandatory markup
# ============================================================

@pytest.mark.parametrize("part,expected", [("tread", False), ("riser", True), ("landing", True)])
def test_mandatory_default_per_part(part, expected):
    totals = compute_part_totals(part, make_draft(), rates())
    assert totals.is_mandatory is expected
    assert totals.mandatory_percentage == 20


def test_riser_markup_absorbs_cutting():
    totals = compute_part_totals("riser", make_draft(), rates())
    assert totals.mandatory_amount == pytest.approx(3600000 * 0.2)
    assert totals.cutting_cost == pytest.approx(900000)
    assert totals.billable_cutting_cost == 0
    assert totals.part_total == pytest.approx(3600000 * 1.2)


def test_explicit_mandatory_off_bills_cutting():
    totals = compute_part_totals("riser", make_draft(use_mandatory=False), rates())
    assert totals.mandatory_amount == 0
    assert totals.part_total == pytest.approx(3600000 + 900000)


# ============================================================
# Tools
# ============================================================

def test_tread_tool_meters():
    draft = make_draft()
    tool = make_tool(front=True, left=True)
    assert compute_tool_meters("tread", draft, tool) == pytest.approx((0.25 + 1.2) * 10)


def test_landing_perimeter_tool():
    draft = make_draft(length_value=2, width_cm=150, quantity=2)
    tool = make_tool(perimeter=True, front=True)
    assert compute_tool_meters("landing", draft, tool) == pytest.approx(2 * (2 + 1.5) * 2)
    assert compute_tool_meters("tread", draft, tool) == pytest.approx(1.5 * 2)


def test_tools_priced_into_total():
    draft = make_draft(tools=[make_tool(price=100000, front=True, left=True)])
    totals = compute_part_totals("tread", draft, no_rates)
    assert totals.tools_total == pytest.approx(14.5 * 100000)
    assert totals.tool_breakdown[0].computed_meters == pytest.approx(14.5)
    assert totals.tool_breakdown[0].total_price == pytest.approx(1450000)
    assert totals.part_total == pytest.approx(3600000 + 1450000)


# ============================================================
# Finishing
# ============================================================

def test_finishing_on_pricing_area_kept_out_of_part_total():
    draft = make_draft(finishing_enabled=True, finishing_id="finish_polish",
                       finishing_price_per_square_meter=200000)
    totals = compute_part_totals("tread", draft, no_rates)
    assert totals.finishing_cost == pytest.approx(3.6 * 200000)
    assert totals.part_total == pytest.approx(3600000)


@pytest.mark.parametrize("overrides", [
    {"finishing_enabled": False, "finishing_id": "f", "finishing_price_per_square_meter": 1000},
    {"finishing_enabled": True, "finishing_id": None, "finishing_price_per_square_meter": 1000},
    {"finishing_enabled": True, "finishing_id": "f", "finishing_price_per_square_meter": 0},
])
def test_finishing_requires_selection(overrides):
    assert compute_finishing_cost(make_draft(**overrides), 3.6) == 0


# ============================================================
# Layer pricing
# ============================================================

def test_layer_price_same_stone():
    draft = normalize_layer_alt_stone_settings(make_draft(layer_edges=LayerEdges(front=True)))
    assert draft.layer_price_per_square_meter == 1000000
    assert draft.layer_use_mandatory is None
    assert layer_effective_price_per_square_meter(draft) == pytest.approx(1000000)


def test_alt_stone_defaults():
    draft = normalize_layer_alt_stone_settings(make_draft(layer_use_different_stone=True))
    assert draft.layer_price_per_square_meter == 1000000
    assert draft.layer_use_mandatory is True
    assert draft.layer_mandatory_percentage == 20
    assert layer_effective_price_per_square_meter(draft) == pytest.approx(1200000)


def test_alt_stone_own_price_without_markup():
    draft = normalize_layer_alt_stone_settings(make_draft(
        layer_use_different_stone=True, layer_price_per_square_meter=500000,
        layer_use_mandatory=False,
    ))
    assert layer_base_price_per_square_meter(draft) == 500000
    assert layer_effective_price_per_square_meter(draft) == 500000


def test_markup_ignored_without_alt_stone():
    draft = make_draft(layer_use_mandatory=True, layer_mandatory_percentage=50)
    assert layer_effective_price_per_square_meter(draft) == 1000000
