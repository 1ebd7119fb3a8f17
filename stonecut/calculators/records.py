"""
Shared records for the stone calculation engine.

Lengths are meters and widths/thickness are centimeters unless a unit tag
says otherwise. Every record round-trips through plain dicts so session
state can be stored in a JSON column.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Optional

EDGE_NAMES = ("front", "back", "left", "right", "perimeter")


def known_fields(cls, data: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (data or {}).items() if k in names}


@dataclass
class LayerEdges:
    front: bool = False
    back: bool = False
    left: bool = False
    right: bool = False
    perimeter: bool = False

    def any_selected(self) -> bool:
        return any(getattr(self, name) for name in EDGE_NAMES)

    def as_tuple(self) -> tuple:
        return tuple(bool(getattr(self, name)) for name in EDGE_NAMES)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["LayerEdges"]:
        if data is None:
            return None
        return cls(**{k: bool(v) for k, v in known_fields(cls, data).items()})


@dataclass
class ToolSelection:
    """An edge tool picked for a stair part, flagged for the edges it runs along."""
    tool_id: str
    name: str = ""
    price_per_meter: float = 0.0
    front: bool = False
    back: bool = False
    left: bool = False
    right: bool = False
    perimeter: bool = False
    computed_meters: float = 0.0
    total_price: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "ToolSelection":
        return cls(**known_fields(cls, data))


@dataclass
class StoneProductRef:
    """The catalog fields of a stone product the calculators care about."""
    id: str
    code: str = ""
    name_persian: str = ""
    name: Optional[str] = None
    width_value: float = 0.0
    thickness_value: Optional[float] = None
    base_price: float = 0.0
    length_value: Optional[float] = None
    cutting_cost_per_meter: Optional[float] = None
    cross_cutting_cost_per_meter: Optional[float] = None

    @property
    def display_name(self) -> str:
        return self.name_persian or self.name or self.code

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["StoneProductRef"]:
        if not data:
            return None
        return cls(**known_fields(cls, data))


@dataclass
class RemainingStone:
    """
    A reusable offcut. Width in cm, length in m; quantity identical pieces.

    Pieces are taken whole: `consumed_quantity` counts the pieces already cut
    into, the rest stay available.
    """
    id: str
    width: float
    length: float
    square_meters: float
    is_available: bool = True
    source_cut_id: str = ""
    quantity: int = 1
    source_stone_id: Optional[str] = None  # Leftover this piece was drawn from, if any
    consumed_quantity: int = 0

    @property
    def available_quantity(self) -> int:
        return max(0, int(self.quantity or 0) - int(self.consumed_quantity or 0))

    def consume(self, pieces: int) -> None:
        self.consumed_quantity = int(self.consumed_quantity or 0) + pieces
        self.is_available = self.available_quantity > 0

    def release(self) -> None:
        self.consumed_quantity = 0
        self.is_available = True

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "RemainingStone":
        return cls(**known_fields(cls, data))


@dataclass
class StonePartition:
    """A piece carved out of a leftover stone: width in cm, length in m."""
    width_cm: float
    length_m: float
    quantity: int = 1
    id: Optional[str] = None

    @property
    def square_meters(self) -> float:
        return (self.width_cm / 100) * self.length_m * self.quantity

    @classmethod
    def from_dict(cls, data: dict) -> "StonePartition":
        return cls(**known_fields(cls, data))


@dataclass
class LayerEdgeDemand:
    edge: str
    layers_needed: int
    length_m: float


@dataclass
class UnfulfilledDemand:
    edge: str
    length_m: float
    quantity: int


@dataclass
class CuttingBreakdownEntry:
    type: str  # "longitudinal" | "cross"
    meters: float
    rate: float
    cost: float

    @classmethod
    def from_dict(cls, data: dict) -> "CuttingBreakdownEntry":
        return cls(**known_fields(cls, data))


@dataclass
class StairPartDraft:
    """In-progress configuration of one stair part (tread, riser or landing)."""
    stone_id: Optional[str] = None
    stone_label: Optional[str] = None
    stone_product: Optional[StoneProductRef] = None
    price_per_square_meter: Optional[float] = None
    use_mandatory: Optional[bool] = None  # None → part default
    mandatory_percentage: Optional[float] = None  # None → 20
    thickness_cm: Optional[float] = None
    length_value: Optional[float] = None
    length_unit: str = "m"
    standard_length_value: Optional[float] = None
    standard_length_unit: Optional[str] = None
    width_cm: Optional[float] = None
    quantity: Optional[int] = None
    tools: list = field(default_factory=list)

    # Layers
    number_of_layers_per_stair: Optional[int] = None
    layer_width_cm: Optional[float] = None
    layer_edges: Optional[LayerEdges] = None
    layer_type_id: Optional[str] = None
    layer_type_name: Optional[str] = None
    layer_type_price: Optional[float] = None
    layer_use_different_stone: bool = False
    layer_stone_product_id: Optional[str] = None
    layer_stone_product: Optional[StoneProductRef] = None
    layer_stone_label: Optional[str] = None
    layer_price_per_square_meter: Optional[float] = None
    layer_use_mandatory: Optional[bool] = None
    layer_mandatory_percentage: Optional[float] = None

    # Finishing
    finishing_enabled: bool = False
    finishing_id: Optional[str] = None
    finishing_name: Optional[str] = None
    finishing_price_per_square_meter: Optional[float] = None

    @property
    def layers_per_stair(self) -> int:
        return int(self.number_of_layers_per_stair or 0)

    def has_layers(self) -> bool:
        return bool(
            self.layer_edges is not None
            and self.layer_edges.any_selected()
            and self.layers_per_stair > 0
            and (self.layer_width_cm or 0) > 0
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "StairPartDraft":
        values = known_fields(cls, data)
        values["stone_product"] = StoneProductRef.from_dict(values.get("stone_product"))
        values["layer_stone_product"] = StoneProductRef.from_dict(values.get("layer_stone_product"))
        values["layer_edges"] = LayerEdges.from_dict(values.get("layer_edges"))
        values["tools"] = [
            t if isinstance(t, ToolSelection) else ToolSelection.from_dict(t)
            for t in values.get("tools") or []
        ]
        return cls(**values)
