"""
Remaining stones — reusable offcuts left by the main cut of a stair part.

Two directions:
- width: a catalog stone wider than the requested pieces leaves a strip
  along its full cut length. Stones that carry fewer pieces (the last,
  partly used stone) leave a wider strip.
- length: when billing runs on a standard length longer than the actual
  length, each finished piece is cross cut and leaves a short end piece.

Ids derive from the source cut id so the same cut always yields the same ids.

Leftovers can also be carved by hand into partitions; those are checked
against the stone's stock and leave their own offcuts.
"""
from .records import RemainingStone, StonePartition
from .stone_usage import calculate_stone_usage

MIN_OFFCUT = 0.0001
STOCK_EPSILON = 0.000001
AREA_TOLERANCE = 0.0001


def _positive(value) -> float:
    try:
        value = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return value if value > 0 else 0.0


def is_usable_remaining_stone(stone) -> bool:
    """Available, with real width, length and area, and at least one whole piece left."""
    if stone is None or stone.is_available is False:
        return False
    width = _positive(stone.width)
    length = _positive(stone.length)
    return (
        width > STOCK_EPSILON
        and length > STOCK_EPSILON
        and (width / 100) * length > STOCK_EPSILON
        and stone.available_quantity >= 1
    )


def _width_offcuts(source_cut_id: str, original_width_cm: float, user_width_cm: float,
                   quantity: int, length_m: float) -> list:
    usage = calculate_stone_usage(original_width_cm, user_width_cm, quantity)
    if usage.quantity <= 0 or original_width_cm <= 0 or user_width_cm <= 0:
        return []
    if user_width_cm >= original_width_cm:
        return []

    full_stones, extra_pieces = divmod(usage.quantity, usage.pieces_per_stone)
    groups = []
    if full_stones > 0 and usage.leftover_width_cm > MIN_OFFCUT:
        groups.append((usage.leftover_width_cm, full_stones))
    if extra_pieces > 0:
        groups.append((original_width_cm - extra_pieces * user_width_cm, 1))

    offcuts = []
    for index, (width_cm, count) in enumerate(groups):
        offcuts.append(RemainingStone(
            id=f"remaining_{source_cut_id}_w{index}",
            width=width_cm,
            length=length_m,
            square_meters=(width_cm / 100) * length_m * count,
            is_available=True,
            source_cut_id=source_cut_id,
            quantity=count,
        ))
    return offcuts


def _length_offcuts(source_cut_id: str, user_width_cm: float, quantity: int,
                    actual_length_m: float, pricing_length_m: float) -> list:
    offcut_length = pricing_length_m - actual_length_m
    if quantity <= 0 or user_width_cm <= 0 or actual_length_m <= 0:
        return []
    if offcut_length <= MIN_OFFCUT:
        return []
    return [RemainingStone(
        id=f"remaining_{source_cut_id}_l0",
        width=user_width_cm,
        length=offcut_length,
        square_meters=(user_width_cm / 100) * offcut_length * quantity,
        is_available=True,
        source_cut_id=source_cut_id,
        quantity=quantity,
    )]


def calculate_cut_remaining_stones(source_cut_id: str, original_width_cm, user_width_cm,
                                   quantity, actual_length_m, pricing_length_m=None) -> list:
    """All offcuts of one stair part cut. `pricing_length_m` defaults to the actual length."""
    original = float(original_width_cm or 0)
    user = float(user_width_cm or 0)
    qty = int(quantity or 0)
    actual = float(actual_length_m or 0)
    pricing = float(pricing_length_m or 0) or actual

    if actual <= 0:
        return []
    return (
        _width_offcuts(source_cut_id, original, user, qty, actual)
        + _length_offcuts(source_cut_id, user, qty, actual, pricing)
    )


def calculate_longitudinal_remaining_stones(source_cut_id: str, original_width_cm,
                                            entered_width_cm, entered_length_m,
                                            quantity) -> list:
    """
    Single strip per finished piece: original width minus entered width.

    Used for long-stone items cut one piece per stone, where no
    pieces-per-stone split applies.
    """
    original = float(original_width_cm or 0)
    entered = float(entered_width_cm or 0)
    length_m = float(entered_length_m or 0)
    qty = int(quantity or 0)
    remaining_width = original - entered

    if original <= 0 or entered <= 0 or length_m <= 0 or qty <= 0 or remaining_width <= 0:
        return []
    return [RemainingStone(
        id=f"remaining_{source_cut_id}_0",
        width=remaining_width,
        length=length_m,
        square_meters=(remaining_width / 100) * length_m * qty,
        is_available=True,
        source_cut_id=source_cut_id,
        quantity=qty,
    )]


# --- Partitions carved from a leftover ---

def normalize_partitions(partitions: list) -> list:
    """Partitions with a width and a length, quantity at least one whole piece."""
    normalized = []
    for index, partition in enumerate(partitions or []):
        if isinstance(partition, dict):
            partition = StonePartition.from_dict(partition)
        width = _positive(partition.width_cm)
        length = _positive(partition.length_m)
        if width <= 0 or length <= 0:
            continue
        normalized.append(StonePartition(
            width_cm=width,
            length_m=length,
            quantity=max(1, int(partition.quantity or 1)),
            id=partition.id or str(index),
        ))
    return normalized


def validate_partitions_against_stock(stone: RemainingStone, partitions: list) -> dict:
    """
    {partition id: message} for partitions that do not fit the stone.

    Each partition must fit the piece's width and length; together they may
    not take more pieces than are left, nor more area than the pieces hold.
    """
    if not partitions:
        return {"partitions": "Define at least one partition with a width and a length"}

    if not is_usable_remaining_stone(stone):
        return {p.id: "This leftover stone is not usable or is used up" for p in partitions}

    errors = {}
    for p in partitions:
        if p.width_cm > stone.width:
            errors[p.id] = f"Width ({p.width_cm:g}cm) exceeds the leftover width ({stone.width:g}cm)"
        elif p.length_m > stone.length:
            errors[p.id] = f"Length ({p.length_m:g}m) exceeds the leftover length ({stone.length:g}m)"

    in_stock = stone.available_quantity
    requested = sum(p.quantity for p in partitions)
    if requested > in_stock:
        for p in partitions:
            errors.setdefault(
                p.id, f"Requested pieces exceed the leftover stock (requested: {requested}, in stock: {in_stock})",
            )

    stock_area = (stone.width / 100) * stone.length * in_stock
    requested_area = sum(p.square_meters for p in partitions)
    if requested_area > stock_area + AREA_TOLERANCE:
        for p in partitions:
            errors.setdefault(
                p.id, f"Partitions need {requested_area:.3f} m² but the leftover holds {stock_area:.3f} m²",
            )
    return errors


def calculate_partition_offcuts(source_cut_id: str, partition: StonePartition,
                                stock_width_cm: float, stock_length_m: float) -> list:
    """
    Offcuts of cutting one partition out of each leftover piece.

    The partition sits in a corner: the rest of its width band past its
    length leaves an end piece, the width beside it leaves a full-length strip.
    """
    offcuts = []
    end_length = stock_length_m - partition.length_m
    if end_length > MIN_OFFCUT:
        offcuts.append((f"remaining_{source_cut_id}_end", partition.width_cm, end_length))
    side_width = stock_width_cm - partition.width_cm
    if side_width > MIN_OFFCUT:
        offcuts.append((f"remaining_{source_cut_id}_side", side_width, stock_length_m))

    return [
        RemainingStone(
            id=stone_id,
            width=width_cm,
            length=length_m,
            square_meters=(width_cm / 100) * length_m * partition.quantity,
            is_available=True,
            source_cut_id=source_cut_id,
            quantity=partition.quantity,
        )
        for stone_id, width_cm, length_m in offcuts
    ]
