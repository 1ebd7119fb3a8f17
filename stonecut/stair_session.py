"""
Stair system session — turns confirmed stair part drafts into contract line items.

One session per stair system. Each confirmed part becomes a part line item;
a part with layers also contributes to a layer line item. Parts whose layers
share a LayerSignature feed the same layer item, which keeps one
contribution per parent part and sums them.

Leftover stone is tracked on the items that produced it: part items own
their cut offcuts, layer items the pieces left after cutting strips. Layer
allocation draws from the usable leftovers of the items added so far (the
new part's own included). Pieces are taken whole, so a stone with several
pieces stays available until every piece has been cut into. Leftovers can
also be cut into partitions by hand; each partition becomes its own item.

Items link by generated id, never by position. The whole session round-trips
through to_dict/from_dict so it can live in a JSON column.
"""
import logging
import math
import uuid
from dataclasses import asdict, dataclass, field
from typing import Callable, Optional

from .calculators.cutting_cost import resolve_cutting_rates
from .calculators.layer_allocator import calculate_layer_metrics
from .calculators.layer_demand import (
    compute_layer_square_meters,
    get_layer_edge_demands,
    max_layer_length_m,
    total_layer_length_per_stair_m,
)
from .calculators.records import (
    CuttingBreakdownEntry,
    RemainingStone,
    StairPartDraft,
    StonePartition,
    StoneProductRef,
    ToolSelection,
    UnfulfilledDemand,
    known_fields,
)
from .calculators.remaining_stones import (
    STOCK_EPSILON,
    calculate_cut_remaining_stones,
    calculate_partition_offcuts,
    is_usable_remaining_stone,
    normalize_partitions,
    validate_partitions_against_stock,
)
from .calculators.totals import (
    compute_part_totals,
    layer_base_price_per_square_meter,
    layer_effective_price_per_square_meter,
    layer_stone_product,
    normalize_layer_alt_stone_settings,
)
from .calculators.units import convert_meters_to_unit, get_actual_length_meters
from .models import SessionStatus

logger = logging.getLogger(__name__)

CuttingRateLookup = Callable[[str], Optional[float]]

CUTTING_TOOL_NAMES = {
    "longitudinal": ("cut_longitudinal", "Longitudinal cut"),
    "cross": ("cut_cross", "Cross cut"),
}


def _new_id() -> str:
    return uuid.uuid4().hex


class StockValidationError(ValueError):
    """Partitions that do not fit a leftover stone. `errors` maps partition id to message."""

    def __init__(self, errors: dict):
        super().__init__("Partitions do not fit the leftover stone")
        self.errors = errors


# --- Layer identity ---

@dataclass(frozen=True)
class LayerSignature:
    """
    Everything that makes two layer configurations the same line item.

    The layer count per stair is not part of it: parts that differ only in
    how many layers they stack merge, and the item sums their strips.

    Width and length are compared after rounding to 0.01cm and 0.001m. Two
    values just either side of a rounding boundary (1.0004999m and
    1.0005001m, say) land in different buckets and make separate items even
    though they differ by far less than the rounding step.
    """
    parent_part: str
    edges: tuple
    layer_width_cm: float
    length_m: float
    layer_type_id: Optional[str]
    use_different_stone: bool
    alt_stone_id: Optional[str]
    base_price_per_square_meter: float
    use_mandatory: bool
    mandatory_percentage: float

    @classmethod
    def from_draft(cls, part: str, draft: StairPartDraft) -> Optional["LayerSignature"]:
        """Signature of a normalized draft, or None when it has no layers."""
        if not draft.has_layers():
            return None

        alt = bool(draft.layer_use_different_stone)
        alt_stone_id = None
        if alt:
            alt_stone_id = draft.layer_stone_product_id or (
                draft.layer_stone_product.id if draft.layer_stone_product else None
            )
        # Layer markup only applies to an alternate stone
        use_mandatory = alt and bool(draft.layer_use_mandatory)
        percentage = float(draft.layer_mandatory_percentage or 0) if use_mandatory else 0.0

        return cls(
            parent_part=part,
            edges=draft.layer_edges.as_tuple(),
            layer_width_cm=round(float(draft.layer_width_cm), 2),
            length_m=round(get_actual_length_meters(draft), 3),
            layer_type_id=draft.layer_type_id or None,
            use_different_stone=alt,
            alt_stone_id=alt_stone_id,
            base_price_per_square_meter=round(layer_base_price_per_square_meter(draft), 4),
            use_mandatory=use_mandatory,
            mandatory_percentage=round(percentage, 4),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["edges"] = list(self.edges)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "LayerSignature":
        values = known_fields(cls, data)
        values["edges"] = tuple(values.get("edges") or ())
        return cls(**values)


# --- Line items ---

@dataclass
class LayerContribution:
    """One parent part's share of a layer line item."""
    parent_id: str
    parent_quantity: int = 0
    total_layers: int = 0
    layers_from_remaining_stones: int = 0
    layers_from_new_stones: int = 0
    square_meters: float = 0.0
    square_meters_from_remaining: float = 0.0
    stone_area_used_sqm: float = 0.0
    material_price: float = 0.0
    layer_type_cost: float = 0.0
    total_layer_length_per_stair_m: float = 0.0
    used_remaining_stones: list = field(default_factory=list)
    remaining_pieces: list = field(default_factory=list)
    unfulfilled_demands: list = field(default_factory=list)
    consumed_pieces: dict = field(default_factory=dict)  # Leftover stone id -> whole pieces cut into

    @property
    def total_price(self) -> float:
        return self.material_price + self.layer_type_cost

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "LayerContribution":
        values = known_fields(cls, data)
        values["used_remaining_stones"] = [
            RemainingStone.from_dict(s) for s in values.get("used_remaining_stones") or []
        ]
        values["remaining_pieces"] = [
            RemainingStone.from_dict(s) for s in values.get("remaining_pieces") or []
        ]
        values["unfulfilled_demands"] = [
            UnfulfilledDemand(**d) for d in values.get("unfulfilled_demands") or []
        ]
        return cls(**values)


@dataclass
class LayerInfo:
    signature: LayerSignature
    layer_type_name: Optional[str] = None
    layer_type_price: float = 0.0
    alt_stone_name: Optional[str] = None
    contributions: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "signature": self.signature.to_dict(),
            "layer_type_name": self.layer_type_name,
            "layer_type_price": self.layer_type_price,
            "alt_stone_name": self.alt_stone_name,
            "contributions": [c.to_dict() for c in self.contributions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LayerInfo":
        return cls(
            signature=LayerSignature.from_dict(data["signature"]),
            layer_type_name=data.get("layer_type_name"),
            layer_type_price=data.get("layer_type_price") or 0.0,
            alt_stone_name=data.get("alt_stone_name"),
            contributions=[LayerContribution.from_dict(c) for c in data.get("contributions") or []],
        )


@dataclass
class ContractLineItem:
    id: str
    stair_system_id: str
    part_type: str
    is_layer: bool = False
    product_id: Optional[str] = None
    stone_code: str = ""
    stone_name: str = ""
    description: str = ""
    thickness_cm: float = 0.0
    length: float = 0.0
    length_unit: str = "m"
    width_cm: float = 0.0
    original_width_cm: float = 0.0
    quantity: int = 0
    square_meters: float = 0.0
    pricing_square_meters: float = 0.0
    price_per_square_meter: float = 0.0
    base_material_price: float = 0.0
    is_mandatory: bool = False
    mandatory_percentage: float = 0.0
    mandatory_amount: float = 0.0
    tools: list = field(default_factory=list)
    tools_total: float = 0.0
    cutting_cost: float = 0.0
    billable_cutting_cost: float = 0.0
    cutting_breakdown: list = field(default_factory=list)
    finishing_id: Optional[str] = None
    finishing_name: Optional[str] = None
    finishing_cost: float = 0.0
    line_total: float = 0.0
    remaining_stones: list = field(default_factory=list)
    used_remaining_stones: list = field(default_factory=list)
    parent_ids: list = field(default_factory=list)
    layer_info: Optional[LayerInfo] = None
    draft: Optional[dict] = None  # Part items: the draft they were built from
    source_stone_id: Optional[str] = None  # Items cut from a leftover: the leftover

    def to_dict(self) -> dict:
        data = asdict(self)
        data["layer_info"] = self.layer_info.to_dict() if self.layer_info else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ContractLineItem":
        values = known_fields(cls, data)
        values["tools"] = [ToolSelection.from_dict(t) for t in values.get("tools") or []]
        values["cutting_breakdown"] = [
            CuttingBreakdownEntry.from_dict(e) for e in values.get("cutting_breakdown") or []
        ]
        values["remaining_stones"] = [
            RemainingStone.from_dict(s) for s in values.get("remaining_stones") or []
        ]
        values["used_remaining_stones"] = [
            RemainingStone.from_dict(s) for s in values.get("used_remaining_stones") or []
        ]
        values["parent_ids"] = list(values.get("parent_ids") or [])
        if values.get("layer_info"):
            values["layer_info"] = LayerInfo.from_dict(values["layer_info"])
        return cls(**values)


# --- Layer pricing ---

def layer_stone_area_sqm(draft: StairPartDraft, unfulfilled_demands: list) -> float:
    """
    Area of whole new stones bought to cut the unfulfilled layer strips.

    Each stone gives floor(stone width / layer width) columns, and each
    column as many strips as fit its length. Stones without a catalog length
    are taken as long as the stair part, or as the strip when that is longer.
    """
    product = layer_stone_product(draft)
    layer_width_cm = draft.layer_width_cm or 0
    stone_width_cm = (product.width_value or 0) if product else 0
    if not unfulfilled_demands or layer_width_cm <= 0 or stone_width_cm < layer_width_cm:
        return 0.0

    columns_per_stone = math.floor(stone_width_cm / layer_width_cm)
    catalog_length_m = (product.length_value or 0) or get_actual_length_meters(draft)

    area = 0.0
    for demand in unfulfilled_demands:
        if demand.length_m <= 0 or demand.quantity <= 0:
            continue
        stone_length_m = max(catalog_length_m, demand.length_m)
        strips_per_column = max(1, math.floor(stone_length_m / demand.length_m + 1e-9))
        stones = math.ceil(demand.quantity / (columns_per_stone * strips_per_column))
        area += stones * stone_length_m * (stone_width_cm / 100)
    return area


def price_layer(part: str, draft: StairPartDraft, available_remaining_stones: list,
                parent_id: str = "") -> LayerContribution:
    """Allocate and price the layers of one part. Pure: stones are not modified."""
    demands = get_layer_edge_demands(part, draft)
    total_layers = sum(d.layers_needed for d in demands)

    metrics = calculate_layer_metrics(
        total_layers=total_layers,
        layer_width_cm=draft.layer_width_cm or 0,
        layer_length_m=max_layer_length_m(part, draft),
        available_remaining_stones=available_remaining_stones,
        cutting_cost_per_meter=0.0,
        edge_demands=demands,
    )

    stone_area = layer_stone_area_sqm(draft, metrics.unfulfilled_demands)
    pricing_area = stone_area if stone_area > 0 else metrics.square_meters_from_new
    length_per_stair = total_layer_length_per_stair_m(part, draft)
    quantity = int(draft.quantity or 0)

    return LayerContribution(
        parent_id=parent_id,
        parent_quantity=quantity,
        total_layers=metrics.total_layer_demand,
        layers_from_remaining_stones=metrics.layers_from_remaining_stones,
        layers_from_new_stones=metrics.layers_from_new_stones,
        square_meters=compute_layer_square_meters(part, draft),
        square_meters_from_remaining=metrics.square_meters_from_remaining,
        stone_area_used_sqm=stone_area,
        material_price=pricing_area * layer_effective_price_per_square_meter(draft),
        layer_type_cost=length_per_stair * quantity * (draft.layer_type_price or 0),
        total_layer_length_per_stair_m=length_per_stair,
        used_remaining_stones=metrics.used_remaining_stones_for_layers,
        remaining_pieces=metrics.layer_remaining_pieces,
        unfulfilled_demands=metrics.unfulfilled_demands,
        consumed_pieces=dict(metrics.consumed_pieces),
    )


# --- Session ---

class StairSystemSession:
    """Line items of one stair system and the leftover stone they share."""

    def __init__(self, stair_system_id: Optional[str] = None, items: Optional[list] = None,
                 status: str = SessionStatus.ACTIVE.value):
        self.stair_system_id = stair_system_id or _new_id()
        self.items = list(items or [])
        self.status = status

    @property
    def is_discarded(self) -> bool:
        return self.status == SessionStatus.DISCARDED.value

    def get_item(self, item_id: str) -> ContractLineItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise KeyError(item_id)

    def part_items(self) -> list:
        return [item for item in self.items if not item.is_layer]

    def layer_items(self) -> list:
        return [item for item in self.items if item.is_layer]

    # --- Materialization ---

    def add_part(self, part: str, draft: StairPartDraft,
                 get_cutting_rate: CuttingRateLookup) -> tuple:
        """
        Materialize a confirmed draft.

        Returns (part_item, layer_item); layer_item is None when the draft
        has no layers.
        """
        if self.is_discarded:
            raise ValueError("Stair system has been discarded")

        draft = normalize_layer_alt_stone_settings(draft)
        part_item = self._build_part_item(part, draft, get_cutting_rate)
        self.items.append(part_item)

        layer_item = None
        if draft.has_layers():
            layer_item = self._attach_layers(part_item, part, draft)

        logger.info(
            "Stair system %s: added %s x%s (total %.0f)%s",
            self.stair_system_id, part, draft.quantity, part_item.line_total,
            f", layer item {layer_item.id}" if layer_item else "",
        )
        return part_item, layer_item

    def _build_part_item(self, part: str, draft: StairPartDraft,
                         get_cutting_rate: CuttingRateLookup) -> ContractLineItem:
        totals = compute_part_totals(part, draft, get_cutting_rate)
        item_id = _new_id()
        product = draft.stone_product

        cutting_tools = []
        for entry in totals.cutting_breakdown:
            tool_id, name = CUTTING_TOOL_NAMES[entry.type]
            billable = entry.cost if totals.should_charge_cutting_cost else 0.0
            cutting_tools.append(ToolSelection(
                tool_id=tool_id,
                name=name,
                price_per_meter=entry.rate,
                computed_meters=entry.meters,
                total_price=billable,
            ))

        remaining = calculate_cut_remaining_stones(
            source_cut_id=item_id,
            original_width_cm=totals.original_width_cm,
            user_width_cm=draft.width_cm,
            quantity=draft.quantity,
            actual_length_m=totals.actual_length_m,
            pricing_length_m=totals.pricing_length_m,
        )

        stone_name = draft.stone_label or (product.display_name if product else "")
        length_unit = draft.length_unit or "m"
        return ContractLineItem(
            id=item_id,
            stair_system_id=self.stair_system_id,
            part_type=part,
            product_id=draft.stone_id or (product.id if product else None),
            stone_code=product.code if product else "",
            stone_name=stone_name,
            description=f"{part.capitalize()} - {stone_name}",
            thickness_cm=draft.thickness_cm or (product.thickness_value if product else 0) or 0,
            length=convert_meters_to_unit(totals.actual_length_m, length_unit),
            length_unit=length_unit,
            width_cm=draft.width_cm or 0,
            original_width_cm=totals.original_width_cm,
            quantity=int(draft.quantity or 0),
            square_meters=totals.sqm,
            pricing_square_meters=totals.pricing_square_meters,
            price_per_square_meter=draft.price_per_square_meter or 0,
            base_material_price=totals.base_material_price,
            is_mandatory=totals.is_mandatory,
            mandatory_percentage=totals.mandatory_percentage if totals.is_mandatory else 0.0,
            mandatory_amount=totals.mandatory_amount,
            tools=totals.tool_breakdown + cutting_tools,
            tools_total=totals.tools_total,
            cutting_cost=totals.cutting_cost,
            billable_cutting_cost=totals.billable_cutting_cost,
            cutting_breakdown=totals.cutting_breakdown,
            finishing_id=draft.finishing_id if totals.finishing_cost > 0 else None,
            finishing_name=draft.finishing_name if totals.finishing_cost > 0 else None,
            finishing_cost=totals.finishing_cost,
            line_total=totals.part_total + totals.finishing_cost,
            remaining_stones=remaining,
            draft=draft.to_dict(),
        )

    def collect_available_remaining_stones(self, extra: Optional[list] = None,
                                           upto_item_id: Optional[str] = None) -> list:
        """
        Usable leftovers in item order, followed by `extra`.

        Part items offer their cut offcuts, layer items the pieces left over
        from cutting strips. With `upto_item_id`, part items after that one
        are skipped; layer items only ever hold pieces of parts already
        allocated, so they always count.
        """
        available = []
        reached = False
        for item in self.items:
            if item.is_layer:
                stones = [p for c in item.layer_info.contributions for p in c.remaining_pieces]
            elif reached:
                continue
            else:
                stones = item.remaining_stones
            available.extend(stone for stone in stones if is_usable_remaining_stone(stone))
            if upto_item_id is not None and item.id == upto_item_id:
                reached = True
        return available + list(extra or [])

    def find_layer_item(self, signature: LayerSignature) -> Optional[ContractLineItem]:
        for item in self.items:
            if item.is_layer and item.layer_info and item.layer_info.signature == signature:
                return item
        return None

    def _attach_layers(self, part_item: ContractLineItem, part: str,
                       draft: StairPartDraft) -> ContractLineItem:
        signature = LayerSignature.from_draft(part, draft)
        available = self.collect_available_remaining_stones(upto_item_id=part_item.id)
        contribution = price_layer(part, draft, available, parent_id=part_item.id)
        self._consume_stones(part_item, contribution)

        layer_item = self.find_layer_item(signature)
        if layer_item is None:
            layer_item = self._new_layer_item(part, draft, signature)
            self.items.append(layer_item)
        else:
            logger.info("Merging %s layers into layer item %s", part, layer_item.id)

        layer_item.layer_info.contributions.append(contribution)
        if draft.layer_type_id:
            layer_item.layer_info.layer_type_name = draft.layer_type_name
            layer_item.layer_info.layer_type_price = draft.layer_type_price or 0.0
        self._refresh_layer_item(layer_item)
        return layer_item

    def _new_layer_item(self, part: str, draft: StairPartDraft,
                        signature: LayerSignature) -> ContractLineItem:
        product = layer_stone_product(draft)
        if draft.layer_use_different_stone:
            stone_name = draft.layer_stone_label or (product.display_name if product else "")
            product_id = draft.layer_stone_product_id or (product.id if product else None)
        else:
            stone_name = draft.stone_label or (product.display_name if product else "")
            product_id = draft.stone_id or (product.id if product else None)

        description = f"{part.capitalize()} layer"
        if draft.layer_type_name:
            description += f" | {draft.layer_type_name}"

        length_unit = draft.length_unit or "m"
        return ContractLineItem(
            id=_new_id(),
            stair_system_id=self.stair_system_id,
            part_type=part,
            is_layer=True,
            product_id=product_id,
            stone_code=product.code if product else "",
            stone_name=stone_name,
            description=description,
            thickness_cm=draft.thickness_cm or (product.thickness_value if product else 0) or 0,
            length=convert_meters_to_unit(get_actual_length_meters(draft), length_unit),
            length_unit=length_unit,
            width_cm=draft.layer_width_cm or 0,
            original_width_cm=(product.width_value or 0) if product else 0,
            price_per_square_meter=layer_effective_price_per_square_meter(draft),
            layer_info=LayerInfo(
                signature=signature,
                layer_type_name=draft.layer_type_name,
                layer_type_price=draft.layer_type_price or 0.0,
                alt_stone_name=stone_name if draft.layer_use_different_stone else None,
            ),
        )

    @staticmethod
    def _refresh_layer_item(layer_item: ContractLineItem) -> None:
        """Recompute a layer item's totals from its contributions."""
        contributions = layer_item.layer_info.contributions
        layer_item.quantity = sum(c.total_layers for c in contributions)
        layer_item.square_meters = sum(c.square_meters for c in contributions)
        layer_item.pricing_square_meters = sum(c.stone_area_used_sqm for c in contributions)
        layer_item.base_material_price = sum(c.material_price for c in contributions)
        layer_item.tools_total = sum(c.layer_type_cost for c in contributions)
        layer_item.line_total = sum(c.total_price for c in contributions)
        layer_item.used_remaining_stones = [
            s for c in contributions for s in c.used_remaining_stones
        ]
        layer_item.remaining_stones = [s for c in contributions for s in c.remaining_pieces]
        layer_item.parent_ids = [c.parent_id for c in contributions]

    # --- Leftover bookkeeping ---

    def _stone_owners(self) -> dict:
        owners = {}
        for item in self.items:
            if item.is_layer:
                stones = [p for c in item.layer_info.contributions for p in c.remaining_pieces]
            else:
                stones = item.remaining_stones
            for stone in stones:
                owners[stone.id] = (item, stone)
        return owners

    def _consume_stones(self, part_item: ContractLineItem, contribution: LayerContribution) -> None:
        """Take the pieces strips were cut from out of stock and record usage on part owners."""
        if not contribution.consumed_pieces:
            return
        owners = self._stone_owners()
        for stone_id, pieces in contribution.consumed_pieces.items():
            owner = owners.get(stone_id)
            if owner is None:
                logger.warning("Part %s cut layers from unknown stone %s", part_item.id, stone_id)
                continue
            owner[1].consume(pieces)
        for entry in contribution.used_remaining_stones:
            owner = owners.get(entry.source_stone_id)
            if owner is not None and not owner[0].is_layer:
                owner[0].used_remaining_stones.append(entry)
        logger.info(
            "Part %s cut layers from %d leftover pieces",
            part_item.id, sum(contribution.consumed_pieces.values()),
        )

    # --- Cutting leftovers by hand ---

    def add_from_remaining_stone(self, stone_id: str, partitions: list,
                                 get_cutting_rate: CuttingRateLookup) -> list:
        """
        Cut partitions out of a leftover stone, one line item per partition.

        Each partition takes `quantity` whole pieces of the stone. The items
        carry no material price, only the cutting needed to bring a piece
        down to size, and they own the offcuts of that cutting.

        Raises KeyError for an unknown stone and StockValidationError when
        the partitions do not fit what is left of it.
        """
        if self.is_discarded:
            raise ValueError("Stair system has been discarded")

        owner = self._stone_owners().get(stone_id)
        if owner is None:
            raise KeyError(stone_id)
        owner_item, stone = owner

        partitions = normalize_partitions(partitions)
        errors = validate_partitions_against_stock(stone, partitions)
        if errors:
            raise StockValidationError(errors)

        product = None
        if owner_item.draft and owner_item.draft.get("stone_product"):
            product = StoneProductRef.from_dict(owner_item.draft["stone_product"])
        rate, _ = resolve_cutting_rates(get_cutting_rate, product)

        items = []
        for partition in partitions:
            item = self._build_partition_item(owner_item, stone, partition, rate)
            self.items.append(item)
            self._consume_partition(item)
            items.append(item)

        logger.info(
            "Stair system %s: cut %d partitions from leftover %s",
            self.stair_system_id, len(items), stone_id,
        )
        return items

    def _build_partition_item(self, owner_item: ContractLineItem, stone: RemainingStone,
                              partition: StonePartition, rate: float) -> ContractLineItem:
        item_id = _new_id()
        width_cut = partition.width_cm < stone.width - STOCK_EPSILON
        length_cut = partition.length_m < stone.length - STOCK_EPSILON

        breakdown = []
        if width_cut and rate > 0:
            meters = partition.length_m * partition.quantity
            breakdown.append(CuttingBreakdownEntry("longitudinal", meters, rate, meters * rate))
        if length_cut and rate > 0:
            meters = (partition.width_cm / 100) * partition.quantity
            breakdown.append(CuttingBreakdownEntry("cross", meters, rate, meters * rate))
        cutting_cost = sum(e.cost for e in breakdown)

        tools = []
        for entry in breakdown:
            tool_id, name = CUTTING_TOOL_NAMES[entry.type]
            tools.append(ToolSelection(
                tool_id=tool_id, name=name, price_per_meter=entry.rate,
                computed_meters=entry.meters, total_price=entry.cost,
            ))

        description = f"{owner_item.stone_name} - from leftover {stone.width:g}cm x {stone.length:g}m"
        if length_cut or width_cut:
            description += " (cross cut)" if length_cut else " (longitudinal cut)"

        return ContractLineItem(
            id=item_id,
            stair_system_id=self.stair_system_id,
            part_type=owner_item.part_type,
            product_id=owner_item.product_id,
            stone_code=owner_item.stone_code,
            stone_name=owner_item.stone_name,
            description=description,
            thickness_cm=owner_item.thickness_cm,
            length=partition.length_m,
            length_unit="m",
            width_cm=partition.width_cm,
            original_width_cm=stone.width,
            quantity=partition.quantity,
            square_meters=partition.square_meters,
            pricing_square_meters=partition.square_meters,
            tools=tools,
            cutting_cost=cutting_cost,
            billable_cutting_cost=cutting_cost,
            cutting_breakdown=breakdown,
            line_total=cutting_cost,
            remaining_stones=calculate_partition_offcuts(item_id, partition, stone.width, stone.length),
            source_stone_id=stone.id,
        )

    def _consume_partition(self, item: ContractLineItem) -> bool:
        """Take an item's pieces from its source stone. False when the stone cannot supply them."""
        owner = self._stone_owners().get(item.source_stone_id)
        if owner is None or owner[1].available_quantity < item.quantity:
            return False
        owner_item, stone = owner
        stone.consume(item.quantity)
        if not owner_item.is_layer:
            owner_item.used_remaining_stones.append(RemainingStone(
                id=f"used_{item.id}",
                width=item.width_cm,
                length=item.length,
                square_meters=item.square_meters,
                is_available=False,
                source_cut_id=stone.source_cut_id or stone.id,
                quantity=item.quantity,
                source_stone_id=stone.id,
            ))
        return True

    # --- Editing ---

    def remove_item(self, item_id: str) -> list:
        """
        Remove a line item. Returns the ids removed.

        Removing a part drops its layer contribution; a layer item left
        without parents goes too. Layers are then reallocated so leftovers
        the removed items held or used are accounted for again.
        """
        item = self.get_item(item_id)
        removed = [item.id]

        if item.is_layer:
            self.items = [i for i in self.items if i.id != item.id]
            # Parents keep their drafts; stop re-creating this layer on resync
            for parent_id in item.parent_ids:
                parent = next((i for i in self.items if i.id == parent_id), None)
                if parent is not None and parent.draft:
                    parent.draft = {**parent.draft, "number_of_layers_per_stair": 0}
        else:
            self.items = [i for i in self.items if i.id != item.id]
            for layer_item in self.layer_items():
                layer_item.layer_info.contributions = [
                    c for c in layer_item.layer_info.contributions if c.parent_id != item.id
                ]
                if not layer_item.layer_info.contributions:
                    removed.append(layer_item.id)
            self.items = [i for i in self.items if i.id not in removed]

        removed.extend(i for i in self.resync_layers() if i not in removed)
        logger.info("Stair system %s: removed items %s", self.stair_system_id, removed)
        return removed

    def resync_layers(self, drafts: Optional[dict] = None) -> list:
        """
        Recompute every layer contribution from the parent drafts.

        `drafts` maps part item id to an updated StairPartDraft; parts not
        listed use the draft they were added with. Allocation and cuts from
        leftovers are replayed in item order, so unchanged drafts reproduce
        the same layers. Part items keep their own totals; to reprice a part,
        remove it and add it again.

        Returns the ids of items dropped: layer items left without parents
        and items cut from leftovers that no longer exist or are used up.
        """
        drafts = drafts or {}
        for item in self.part_items():
            item.used_remaining_stones = []
            for stone in item.remaining_stones:
                stone.release()

        for layer in self.layer_items():
            layer.layer_info.contributions = []

        dropped = []
        for part_item in self.part_items():
            if part_item.source_stone_id:
                if not self._consume_partition(part_item):
                    logger.warning(
                        "Leftover %s can no longer supply item %s, dropping it",
                        part_item.source_stone_id, part_item.id,
                    )
                    self.items = [i for i in self.items if i.id != part_item.id]
                    dropped.append(part_item.id)
                continue

            draft = drafts.get(part_item.id)
            if draft is not None:
                draft = normalize_layer_alt_stone_settings(draft)
                part_item.draft = draft.to_dict()
            elif part_item.draft:
                draft = StairPartDraft.from_dict(part_item.draft)
            else:
                continue
            if draft.has_layers():
                self._attach_layers(part_item, part_item.part_type, draft)

        for item in self.layer_items():
            if not item.layer_info.contributions:
                dropped.append(item.id)
        self.items = [item for item in self.items if item.id not in dropped]
        return dropped

    def discard(self) -> None:
        self.items = []
        self.status = SessionStatus.DISCARDED.value
        logger.info("Stair system %s discarded", self.stair_system_id)

    # --- Reporting ---

    def totals(self) -> dict:
        parts = self.part_items()
        layers = self.layer_items()
        return {
            "item_count": len(self.items),
            "parts_total": sum(i.line_total for i in parts),
            "layers_total": sum(i.line_total for i in layers),
            "finishing_total": sum(i.finishing_cost for i in parts),
            "billable_cutting_total": sum(i.billable_cutting_cost for i in parts),
            "from_leftovers_total": sum(i.line_total for i in parts if i.source_stone_id),
            "grand_total": sum(i.line_total for i in self.items),
        }

    def to_dict(self) -> dict:
        return {
            "stair_system_id": self.stair_system_id,
            "status": self.status,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StairSystemSession":
        session = cls(
            stair_system_id=data.get("stair_system_id"),
            items=[ContractLineItem.from_dict(i) for i in data.get("items") or []],
            status=data.get("status") or SessionStatus.ACTIVE.value,
        )
        # Layer items list their contributions' pieces, not copies of them
        for layer_item in session.layer_items():
            session._refresh_layer_item(layer_item)
        return session
