"""
Offcut tests — width strips and cross-cut end pieces of a main cut, the
usable-stone check, and partitions cut from a leftover.
"""

import pytest

from stonecut.calculators.records import RemainingStone, StonePartition
from stonecut.calculators.remaining_stones import (
    calculate_cut_remaining_stones,
    calculate_longitudinal_remaining_stones,
    calculate_partition_offcuts,
    is_usable_remaining_stone,
    normalize_partitions,
    validate_partitions_against_stock,
)


def test_width_strip_per_base_stone():
    stones = calculate_cut_remaining_stones("item1", 60, 25, 10, 1.2)
    assert len(stones) == 1
    strip = stones[0]
    assert strip.id == "remaining_item1_w0"
    assert strip.width == pytest.approx(10)
    assert strip.length == pytest.approx(1.2)
    assert strip.quantity == 5
    assert strip.square_meters == pytest.approx(0.1 * 1.2 * 5)
    assert strip.source_cut_id == "item1"
    assert strip.is_available


def test_partly_used_last_stone_leaves_wider_strip():
    stones = calculate_cut_remaining_stones("item1", 60, 25, 9, 1.2)
    assert [(s.width, s.quantity) for s in stones] == [(pytest.approx(10), 4), (pytest.approx(35), 1)]


def test_exact_split_leaves_nothing():
    assert calculate_cut_remaining_stones("item1", 60, 30, 4, 1.2) == []
    assert calculate_cut_remaining_stones("item1", 60, 60, 4, 1.2) == []


def test_cross_cut_end_pieces():
    stones = calculate_cut_remaining_stones("item1", 60, 60, 10, 1.2, pricing_length_m=1.5)
    assert len(stones) == 1
    end = stones[0]
    assert end.id == "remaining_item1_l0"
    assert end.width == 60
    assert end.length == pytest.approx(0.3)
    assert end.quantity == 10


def test_both_directions():
    stones = calculate_cut_remaining_stones("item1", 60, 25, 10, 1.2, pricing_length_m=1.5)
    assert [s.id for s in stones] == ["remaining_item1_w0", "remaining_item1_l0"]


@pytest.mark.parametrize("args", [
    (0, 25, 10, 1.2),
    (60, 0, 10, 1.2),
    (60, 25, 0, 1.2),
    (60, 25, 10, 0),
])
def test_degenerate_cut(args):
    assert calculate_cut_remaining_stones("item1", *args) == []


def test_longitudinal_single_strip():
    stones = calculate_longitudinal_remaining_stones("item2", 60, 25, 1.2, 3)
    assert len(stones) == 1
    assert stones[0].width == pytest.approx(35)
    assert stones[0].quantity == 3
    assert stones[0].square_meters == pytest.approx(0.35 * 1.2 * 3)


def test_longitudinal_no_cut():
    assert calculate_longitudinal_remaining_stones("item2", 60, 60, 1.2, 3) == []


# ============================================================
# Usable stones
# ============================================================

def _leftover(width=10.0, length=1.2, quantity=5, **overrides):
    values = {"id": "rs1", "width": width, "length": length,
              "square_meters": (width / 100) * length * quantity, "quantity": quantity}
    values.update(overrides)
    return RemainingStone(**values)


def test_usable_stone():
    assert is_usable_remaining_stone(_leftover())


@pytest.mark.parametrize("stone", [
    _leftover(width=0),
    _leftover(length=0),
    _leftover(length=-1),
    _leftover(width=0.00001, length=0.00001),
    _leftover(quantity=0),
    _leftover(is_available=False),
    _leftover(quantity=2, consumed_quantity=2),
    None,
])
def test_unusable_stones(stone):
    assert not is_usable_remaining_stone(stone)


def test_consume_and_release():
    stone = _leftover(quantity=2)
    stone.consume(1)
    assert stone.available_quantity == 1 and stone.is_available
    stone.consume(1)
    assert stone.available_quantity == 0 and not stone.is_available
    stone.release()
    assert stone.consumed_quantity == 0 and stone.is_available


# ============================================================
# Partitions
# ============================================================

def test_normalize_drops_empty_and_rounds_quantity():
    partitions = normalize_partitions([
        {"width_cm": 5, "length_m": 1.0, "quantity": 2.7},
        {"width_cm": 0, "length_m": 1.0},
        StonePartition(width_cm=5, length_m=-1),
        StonePartition(width_cm=3, length_m=0.5, quantity=0, id="keep"),
    ])
    assert [(p.id, p.quantity) for p in partitions] == [("0", 2), ("keep", 1)]


def test_partitions_within_stock():
    partitions = normalize_partitions([StonePartition(8, 1.0, 2), StonePartition(10, 1.2, 3)])
    assert validate_partitions_against_stock(_leftover(), partitions) == {}


def test_partition_size_errors():
    partitions = normalize_partitions([
        StonePartition(12, 1.0, 1, id="wide"),
        StonePartition(5, 1.5, 1, id="long"),
        StonePartition(12, 1.5, 1, id="both"),
    ])
    errors = validate_partitions_against_stock(_leftover(), partitions)
    assert errors["wide"].startswith("Width")
    assert errors["long"].startswith("Length")
    # Width is reported first
    assert errors["both"].startswith("Width")


def test_partition_count_error_on_every_row_without_one():
    partitions = normalize_partitions([StonePartition(12, 1.0, 3, id="a"), StonePartition(5, 1.0, 3, id="b")])
    errors = validate_partitions_against_stock(_leftover(), partitions)
    assert errors["a"].startswith("Width")
    assert "requested: 6, in stock: 5" in errors["b"]


def test_partition_area_error():
    # Two pieces asked for and two left, but the oversized row needs more area than they hold
    stone = _leftover(quantity=3, consumed_quantity=1)
    partitions = normalize_partitions([StonePartition(20, 1.0, 1, id="a"), StonePartition(5, 1.0, 1, id="b")])
    errors = validate_partitions_against_stock(stone, partitions)
    assert errors["a"].startswith("Width")
    assert "m²" in errors["b"]


def test_partitions_on_used_up_stone():
    stone = _leftover(quantity=1, consumed_quantity=1)
    partitions = normalize_partitions([StonePartition(5, 1.0, 1)])
    assert set(validate_partitions_against_stock(stone, partitions)) == {"0"}


def test_no_partitions():
    assert set(validate_partitions_against_stock(_leftover(), [])) == {"partitions"}


def test_partition_offcuts_both_directions():
    offcuts = calculate_partition_offcuts("cut1", StonePartition(8, 1.0, 2), 10, 1.2)
    assert [s.id for s in offcuts] == ["remaining_cut1_end", "remaining_cut1_side"]
    end, side = offcuts
    assert (end.width, end.length, end.quantity) == (pytest.approx(8), pytest.approx(0.2), 2)
    assert (side.width, side.length, side.quantity) == (pytest.approx(2), pytest.approx(1.2), 2)
    assert side.square_meters == pytest.approx(0.02 * 1.2 * 2)
    assert all(s.source_cut_id == "cut1" and s.is_available for s in offcuts)


def test_full_size_partition_leaves_nothing():
    assert calculate_partition_offcuts("cut1", StonePartition(10, 1.2), 10, 1.2) == []
