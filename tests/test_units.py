"""
Unit conversion tests.

Tests:
1-4.  cm/m conversion, including bad input
5-7.  Area helper
8-12. Draft length helpers (actual, standard, pricing)

No database — pure math.
"""

import pytest

from stonecut.calculators.units import (
    calculate_square_meters,
    convert_length,
    convert_meters_to_unit,
    convert_width,
    get_actual_length_meters,
    get_pricing_length_meters,
    get_standard_length_meters,
    to_meters,
)

from builders import make_draft


# ============================================================
# Conversion
# ============================================================

def test_convert_length_between_units():
    assert convert_length(120, "cm", "m") == pytest.approx(1.2)
    assert convert_length(1.2, "m", "cm") == pytest.approx(120)
    assert convert_width(35, "cm", "cm") == 35


@pytest.mark.parametrize("value", [0.37, 1.0, 2.85, 12.5])
def test_cm_m_round_trip(value):
    assert convert_length(convert_length(value, "m", "cm"), "cm", "m") == pytest.approx(value)
    assert convert_length(convert_length(value, "cm", "m"), "m", "cm") == pytest.approx(value)


def test_bad_input_yields_zero():
    assert convert_length(None, "cm", "m") == 0
    assert convert_length("abc", "m", "cm") == 0
    assert to_meters(None, "cm") == 0
    assert to_meters(-5, "m") == 0
    assert convert_meters_to_unit(0, "cm") == 0


def test_unknown_unit_passes_through():
    assert convert_length(42, "in", "m") == 42


# ============================================================
# Area
# ============================================================

def test_square_meters_mixed_units():
    assert calculate_square_meters(1.2, 25, "m", "cm") == pytest.approx(0.3)


def test_square_meters_with_quantity():
    assert calculate_square_meters(120, 25, "cm", "cm", quantity=10) == pytest.approx(3.0)


def test_square_meters_bad_quantity():
    assert calculate_square_meters(1, 100, "m", "cm", quantity=None) == 0


# ============================================================
# Draft lengths
# ============================================================

def test_actual_length_uses_entered_value():
    draft = make_draft(length_value=135, length_unit="cm")
    assert get_actual_length_meters(draft) == pytest.approx(1.35)


def test_actual_length_falls_back_to_standard():
    draft = make_draft(length_value=None, standard_length_value=3, standard_length_unit="m")
    assert get_actual_length_meters(draft) == pytest.approx(3.0)


def test_no_length_at_all_is_zero():
    draft = make_draft(length_value=None)
    assert get_actual_length_meters(draft) == 0
    assert get_pricing_length_meters(draft) == 0


def test_pricing_length_prefers_standard():
    draft = make_draft(length_value=1.1, standard_length_value=120, standard_length_unit="cm")
    assert get_standard_length_meters(draft) == pytest.approx(1.2)
    assert get_pricing_length_meters(draft) == pytest.approx(1.2)


def test_pricing_length_equal_to_actual():
    draft = make_draft(length_value=1.2, standard_length_value=1.2, standard_length_unit="m")
    assert get_pricing_length_meters(draft) == pytest.approx(1.2)
