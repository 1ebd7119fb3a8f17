"""
Layer edge demand — which edges of a stair part need layer strips, and how long.

Landing: "perimeter" runs all the way round and excludes the single edges.
Front/back run along the landing width, left/right along its length; when
perpendicular edges are both selected the shared corner is taken off one of
them (the layer width), so the corner is not counted twice.

Tread/riser: front runs the full stair length; left/right run the stair
width, minus the layer width when the front is also layered. Back and
perimeter do not apply.
"""
from .records import LayerEdgeDemand
from .units import get_actual_length_meters

PART_TYPES = ("tread", "riser", "landing")


def resolve_layer_edge_demands(part: str, edges, layers_per_stair, quantity,
                               layer_width_cm, length_m: float,
                               width_m: float) -> list:
    """One LayerEdgeDemand per selected edge, each needing quantity × layers strips."""
    if edges is None or not layers_per_stair or not quantity or not layer_width_cm:
        return []
    if layers_per_stair <= 0 or quantity <= 0 or layer_width_cm <= 0:
        return []

    layer_width_m = layer_width_cm / 100
    if length_m <= 0 or width_m <= 0 or layer_width_m <= 0:
        return []

    base_layers_per_edge = int(quantity) * int(layers_per_stair)
    demands = []

    if part == "landing":
        if edges.perimeter:
            perimeter_length = 2 * (length_m + width_m)
            if perimeter_length > 0:
                demands.append(LayerEdgeDemand("perimeter", base_layers_per_edge, perimeter_length))
            return demands

        has_front_or_back = edges.front or edges.back
        has_left_or_right = edges.left or edges.right
        front_back_length = max(0.0, width_m - layer_width_m) if has_left_or_right else width_m
        left_right_length = max(0.0, length_m - layer_width_m) if has_front_or_back else length_m

        for edge, selected, edge_length in (
            ("front", edges.front, front_back_length),
            ("back", edges.back, front_back_length),
            ("left", edges.left, left_right_length),
            ("right", edges.right, left_right_length),
        ):
            if selected and edge_length > 0:
                demands.append(LayerEdgeDemand(edge, base_layers_per_edge, edge_length))
        return demands

    if edges.front and length_m > 0:
        demands.append(LayerEdgeDemand("front", base_layers_per_edge, length_m))
    side_length = max(0.0, width_m - layer_width_m) if edges.front else width_m
    if edges.left and side_length > 0:
        demands.append(LayerEdgeDemand("left", base_layers_per_edge, side_length))
    if edges.right and side_length > 0:
        demands.append(LayerEdgeDemand("right", base_layers_per_edge, side_length))
    return demands


def get_layer_edge_demands(part: str, draft) -> list:
    return resolve_layer_edge_demands(
        part,
        draft.layer_edges,
        draft.number_of_layers_per_stair,
        draft.quantity,
        draft.layer_width_cm,
        get_actual_length_meters(draft),
        (draft.width_cm or 0) / 100,
    )


def _per_stair_demands(part: str, draft) -> list:
    return resolve_layer_edge_demands(
        part,
        draft.layer_edges,
        1,
        1,
        draft.layer_width_cm,
        get_actual_length_meters(draft),
        (draft.width_cm or 0) / 100,
    )


def total_layer_length_per_stair_m(part: str, draft) -> float:
    """Sum of the layered edge lengths of one stair (layer-type pricing base)."""
    return sum(d.length_m for d in _per_stair_demands(part, draft))


def max_layer_length_m(part: str, draft) -> float:
    """Longest single strip a stair needs — used as fallback strip length."""
    demands = _per_stair_demands(part, draft)
    if not demands:
        return 0.0
    if part == "landing" and draft.layer_edges.perimeter:
        return max(get_actual_length_meters(draft), (draft.width_cm or 0) / 100)
    return max(d.length_m for d in demands)


def compute_layer_square_meters(part: str, draft) -> float:
    """Total layer strip area for all stairs and all layers."""
    layer_width_m = (draft.layer_width_cm or 0) / 100
    return sum(d.layers_needed * d.length_m * layer_width_m
               for d in get_layer_edge_demands(part, draft))
