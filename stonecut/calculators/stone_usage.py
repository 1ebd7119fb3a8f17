"""
Stone usage — how many finished pieces come out of one catalog stone.

A stair part narrower than the catalog stone is cut lengthwise; every stone
yields floor(original / requested) pieces and the rest of its width is left over.
"""
import math
from dataclasses import dataclass


@dataclass
class StonePieceUsage:
    original_width_cm: float
    user_width_cm: float
    quantity: int
    pieces_per_stone: int
    leftover_width_cm: float
    base_stone_quantity: int


def calculate_stone_usage(original_width_cm, user_width_cm, quantity) -> StonePieceUsage:
    original = float(original_width_cm or 0)
    user = float(user_width_cm or 0)
    qty = int(quantity or 0)

    pieces_per_stone = 1
    leftover_width_cm = 0.0
    if original > 0 and user > 0:
        pieces_per_stone = max(1, math.floor(original / user))
        leftover_width_cm = max(0.0, original - pieces_per_stone * user)

    base_stone_quantity = math.ceil(qty / pieces_per_stone) if qty > 0 else 0

    return StonePieceUsage(
        original_width_cm=original,
        user_width_cm=user,
        quantity=qty,
        pieces_per_stone=pieces_per_stone,
        leftover_width_cm=leftover_width_cm,
        base_stone_quantity=base_stone_quantity,
    )


def calculate_stair_stone_usage(draft) -> StonePieceUsage:
    original = draft.stone_product.width_value if draft.stone_product else 0
    return calculate_stone_usage(original, draft.width_cm, draft.quantity)
