"""
Layer allocator — fill layer strip demand from leftover stone before new stone.

Each usable leftover stone is split into columns one layer-width wide running
its full length (one set of columns per identical piece still available).
Demands are served in edge priority order (front, back, left, right,
perimeter); only front, back and perimeter strips may come from leftovers,
side strips always come from new stone. Within a demand, columns are walked
first-fit: a column yields floor(remaining length / strip length) strips.

Greedy, not optimal. Totals downstream depend on this exact order, so keep it.

Pieces are consumed whole. A piece any strip was cut from counts as used;
its unused column lengths and its width residue come back as new leftover
pieces. Untouched pieces of the same stone stay where they are.

Outputs:
- strip counts and m² split between leftover and new stone
- usage entries for the leftover stones that were drawn from
- pieces consumed per leftover stone id
- new leftover pieces cut from the consumed pieces
- unfulfilled demands, used by the caller to size new stone
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from .records import LayerEdgeDemand, RemainingStone, UnfulfilledDemand
from .remaining_stones import is_usable_remaining_stone

logger = logging.getLogger(__name__)

EDGE_PRIORITY = {"front": 0, "back": 1, "left": 2, "right": 3, "perimeter": 4}
LEFTOVER_ELIGIBLE_EDGES = ("front", "back", "perimeter")
LENGTH_EPSILON = 1e-6


@dataclass
class LayerMetrics:
    layers_from_remaining_stones: int = 0
    layers_from_new_stones: int = 0
    total_layer_cutting_cost: float = 0.0
    used_remaining_stones_for_layers: list = field(default_factory=list)
    layer_remaining_pieces: list = field(default_factory=list)
    square_meters_from_remaining: float = 0.0
    square_meters_from_new: float = 0.0
    total_layer_demand: int = 0
    unfulfilled_demands: list = field(default_factory=list)
    consumed_pieces: dict = field(default_factory=dict)  # stone id -> pieces cut into


@dataclass
class _Column:
    id: str
    source: RemainingStone
    piece: int
    length_remaining: float
    original_length: float


def can_use_remaining_for_edge(edge: str) -> bool:
    return edge in LEFTOVER_ELIGIBLE_EDGES


def _build_columns(stones: list, layer_width_cm: float) -> list:
    columns = []
    for stone in stones:
        columns_per_stone = math.floor(stone.width / layer_width_cm)
        if columns_per_stone <= 0:
            continue
        first = int(stone.consumed_quantity or 0)
        for q in range(first, first + stone.available_quantity):
            for col in range(columns_per_stone):
                columns.append(_Column(
                    id=f"{stone.id}_col_{q}_{col}",
                    source=stone,
                    piece=q,
                    length_remaining=stone.length,
                    original_length=stone.length,
                ))
    return columns


def _touched_pieces(columns: list) -> dict:
    """stone id -> (stone, sorted piece indexes) for pieces a strip was cut from."""
    touched = {}
    for column in columns:
        if column.length_remaining < column.original_length - LENGTH_EPSILON:
            stone, pieces = touched.setdefault(column.source.id, (column.source, set()))
            pieces.add(column.piece)
    return {stone_id: (stone, sorted(pieces)) for stone_id, (stone, pieces) in touched.items()}


def _leftover_pieces(columns: list, touched: dict, layer_width_cm: float) -> list:
    pieces = []
    for column in columns:
        entry = touched.get(column.source.id)
        if entry is None or column.piece not in entry[1]:
            continue
        if column.length_remaining > LENGTH_EPSILON:
            pieces.append(RemainingStone(
                id=f"layer_remaining_{column.id}",
                width=layer_width_cm,
                length=column.length_remaining,
                square_meters=(layer_width_cm / 100) * column.length_remaining,
                is_available=True,
                source_cut_id=column.source.source_cut_id or column.source.id,
                quantity=1,
                source_stone_id=column.source.id,
            ))

    for stone_id, (stone, piece_indexes) in touched.items():
        leftover_width = stone.width - math.floor(stone.width / layer_width_cm) * layer_width_cm
        if leftover_width <= LENGTH_EPSILON:
            continue
        for q in piece_indexes:
            pieces.append(RemainingStone(
                id=f"layer_width_leftover_{stone_id}_{q}",
                width=leftover_width,
                length=stone.length,
                square_meters=(leftover_width / 100) * stone.length,
                is_available=True,
                source_cut_id=stone.source_cut_id or stone_id,
                quantity=1,
                source_stone_id=stone_id,
            ))
    return pieces


def calculate_layer_metrics(total_layers: int, layer_width_cm: float,
                            layer_length_m: float,
                            available_remaining_stones: list,
                            cutting_cost_per_meter: float = 0.0,
                            edge_demands: Optional[list] = None) -> LayerMetrics:
    """
    Allocate layer strips to leftover columns, then to new stone.

    Stones that are unavailable, used up, or have no width, length or area
    are ignored. `cutting_cost_per_meter` is accepted for interface
    completeness; strip cutting is not charged and `total_layer_cutting_cost`
    is always 0.
    """
    total_layers = max(int(total_layers or 0), 0)
    stones = [s for s in (available_remaining_stones or []) if is_usable_remaining_stone(s)]

    if (layer_width_cm or 0) <= 0:
        return LayerMetrics(layers_from_new_stones=total_layers, total_layer_demand=total_layers)

    width_m = layer_width_cm / 100
    fallback_length = layer_length_m if (layer_length_m or 0) > 0 else (
        stones[0].length if stones else 0
    )

    if edge_demands:
        demands = list(edge_demands)
    else:
        demands = [LayerEdgeDemand("front", total_layers, fallback_length)]
    demands = [d for d in demands if (d.length_m or 0) > 0 and d.layers_needed > 0]

    if not demands:
        return LayerMetrics(layers_from_new_stones=total_layers, total_layer_demand=total_layers)

    # Stable sort: equal-priority demands keep their input order
    sorted_demands = sorted(demands, key=lambda d: EDGE_PRIORITY.get(d.edge, len(EDGE_PRIORITY)))

    columns = _build_columns(stones, layer_width_cm)

    metrics = LayerMetrics()
    usage_entries = []

    for demand in sorted_demands:
        needed = demand.layers_needed
        metrics.total_layer_demand += demand.layers_needed

        if columns and can_use_remaining_for_edge(demand.edge):
            for column in columns:
                if needed <= 0:
                    break
                if column.length_remaining + LENGTH_EPSILON < demand.length_m:
                    continue
                strips_possible = math.floor((column.length_remaining + LENGTH_EPSILON) / demand.length_m)
                if strips_possible <= 0:
                    continue

                used = min(needed, strips_possible)
                column.length_remaining = max(0.0, column.length_remaining - used * demand.length_m)
                needed -= used
                metrics.layers_from_remaining_stones += used
                metrics.square_meters_from_remaining += used * demand.length_m * width_m
                usage_entries.append((column.source, demand.length_m, used))

        if needed > 0:
            metrics.square_meters_from_new += needed * demand.length_m * width_m
            metrics.unfulfilled_demands.append(UnfulfilledDemand(
                edge=demand.edge, length_m=demand.length_m, quantity=needed,
            ))

    metrics.layers_from_new_stones = max(
        0, metrics.total_layer_demand - metrics.layers_from_remaining_stones,
    )

    metrics.used_remaining_stones_for_layers = [
        RemainingStone(
            id=f"used_layer_{source.id}_{index}",
            width=layer_width_cm,
            length=length_m,
            square_meters=(layer_width_cm / 100) * length_m * quantity,
            is_available=False,
            source_cut_id=source.source_cut_id or source.id,
            quantity=quantity,
            source_stone_id=source.id,
        )
        for index, (source, length_m, quantity) in enumerate(usage_entries)
    ]

    touched = _touched_pieces(columns)
    metrics.consumed_pieces = {stone_id: len(pieces) for stone_id, (_, pieces) in touched.items()}
    metrics.layer_remaining_pieces = _leftover_pieces(columns, touched, layer_width_cm)

    logger.debug(
        "Layer allocation: %d strips from leftovers, %d from new stone (%d columns, %d pieces cut)",
        metrics.layers_from_remaining_stones, metrics.layers_from_new_stones, len(columns),
        sum(metrics.consumed_pieces.values()),
    )
    return metrics
