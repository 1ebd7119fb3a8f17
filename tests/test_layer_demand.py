"""
Layer edge demand tests — which edges need strips and how long they are.
"""

import pytest

from stonecut.calculators.layer_demand import (
    compute_layer_square_meters,
    get_layer_edge_demands,
    max_layer_length_m,
    resolve_layer_edge_demands,
    total_layer_length_per_stair_m,
)
from stonecut.calculators.records import LayerEdges

from builders import make_layered_draft


def _landing(edges, layers=1, quantity=4, layer_width_cm=15):
    return make_layered_draft(
        edges=edges, layers_per_stair=layers, layer_width_cm=layer_width_cm,
        length_value=2, width_cm=150, quantity=quantity,
    )


def _by_edge(demands):
    return {d.edge: d for d in demands}


# ============================================================
# Landing
# ============================================================

def test_landing_front_and_left_share_a_corner():
    demands = _by_edge(get_layer_edge_demands("landing", _landing(LayerEdges(front=True, left=True))))
    assert set(demands) == {"front", "left"}
    assert demands["front"].length_m == pytest.approx(1.35)
    assert demands["left"].length_m == pytest.approx(1.85)
    assert demands["front"].layers_needed == 4
    assert demands["left"].layers_needed == 4


def test_landing_perimeter_excludes_single_edges():
    edges = LayerEdges(front=True, back=True, left=True, perimeter=True)
    demands = get_layer_edge_demands("landing", _landing(edges, layers=2))
    assert len(demands) == 1
    assert demands[0].edge == "perimeter"
    assert demands[0].length_m == pytest.approx(2 * (2 + 1.5))
    assert demands[0].layers_needed == 8


def test_landing_parallel_edges_keep_full_length():
    demands = _by_edge(get_layer_edge_demands("landing", _landing(LayerEdges(front=True, back=True))))
    assert demands["front"].length_m == pytest.approx(1.5)
    assert demands["back"].length_m == pytest.approx(1.5)


def test_landing_all_four_edges():
    edges = LayerEdges(front=True, back=True, left=True, right=True)
    demands = _by_edge(get_layer_edge_demands("landing", _landing(edges)))
    assert [demands[e].length_m for e in ("front", "back")] == pytest.approx([1.35, 1.35])
    assert [demands[e].length_m for e in ("left", "right")] == pytest.approx([1.85, 1.85])


# ============================================================
# Tread / riser
# ============================================================

def test_tread_front_and_sides():
    draft = make_layered_draft(edges=LayerEdges(front=True, left=True, right=True),
                               layer_width_cm=5, length_value=1.2, width_cm=30, quantity=10)
    demands = _by_edge(get_layer_edge_demands("tread", draft))
    assert demands["front"].length_m == pytest.approx(1.2)
    assert demands["left"].length_m == pytest.approx(0.25)
    assert demands["right"].length_m == pytest.approx(0.25)
    assert all(d.layers_needed == 10 for d in demands.values())


def test_tread_side_without_front_uses_full_width():
    draft = make_layered_draft(edges=LayerEdges(left=True), layer_width_cm=5, width_cm=30)
    demands = get_layer_edge_demands("tread", draft)
    assert demands[0].length_m == pytest.approx(0.30)


def test_riser_ignores_back_and_perimeter():
    draft = make_layered_draft(edges=LayerEdges(back=True, perimeter=True), width_cm=30)
    assert get_layer_edge_demands("riser", draft) == []


# ============================================================
# Degenerate input
# ============================================================

@pytest.mark.parametrize("layers,quantity,layer_width", [(0, 4, 15), (1, 0, 15), (1, 4, 0), (None, 4, 15)])
def test_missing_inputs_give_no_demand(layers, quantity, layer_width):
    assert resolve_layer_edge_demands("landing", LayerEdges(front=True), layers, quantity,
                                      layer_width, 2.0, 1.5) == []


def test_no_edges_object():
    assert resolve_layer_edge_demands("tread", None, 1, 4, 5, 1.2, 0.3) == []


def test_layer_wider_than_part_drops_side():
    draft = make_layered_draft(edges=LayerEdges(front=True, left=True),
                               layer_width_cm=30, width_cm=30)
    demands = get_layer_edge_demands("tread", draft)
    assert [d.edge for d in demands] == ["front"]


# ============================================================
# Helpers
# ============================================================

def test_length_per_stair_and_area():
    draft = make_layered_draft(edges=LayerEdges(front=True, left=True, right=True),
                               layers_per_stair=2, layer_width_cm=5,
                               length_value=1.2, width_cm=30, quantity=10)
    assert total_layer_length_per_stair_m("tread", draft) == pytest.approx(1.7)
    assert max_layer_length_m("tread", draft) == pytest.approx(1.2)
    assert compute_layer_square_meters("tread", draft) == pytest.approx(20 * 1.7 * 0.05)


def test_landing_perimeter_max_length():
    draft = _landing(LayerEdges(perimeter=True))
    assert max_layer_length_m("landing", draft) == pytest.approx(2.0)
    assert total_layer_length_per_stair_m("landing", draft) == pytest.approx(7.0)
