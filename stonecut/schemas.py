from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from .models import StairPartType


# --- Catalog ---

class StoneProduct(BaseModel):
    id: str
    code: str
    name_persian: str
    name: Optional[str] = None
    width_value: Optional[float] = None
    thickness_value: Optional[float] = None
    base_price: float = 0.0
    length_value: Optional[float] = None
    class Config:
        from_attributes = True

class CuttingType(BaseModel):
    id: int
    code: str
    name: str
    name_persian: Optional[str] = None
    description: Optional[str] = None
    price_per_meter: Optional[float] = None
    is_active: bool = True
    class Config:
        from_attributes = True

class CuttingTypeUpdate(BaseModel):
    name: Optional[str] = None
    name_persian: Optional[str] = None
    description: Optional[str] = None
    price_per_meter: Optional[float] = None
    is_active: Optional[bool] = None

class Tool(BaseModel):
    id: str
    name: str
    price_per_meter: float = 0.0

class StoneFinishing(BaseModel):
    id: str
    name_persian: str
    name: Optional[str] = None
    price_per_square_meter: float = 0.0
    class Config:
        from_attributes = True

class LayerType(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price_per_layer: float = 0.0
    class Config:
        from_attributes = True


# --- Stair part drafts ---

class StoneProductRef(BaseModel):
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

class LayerEdges(BaseModel):
    front: bool = False
    back: bool = False
    left: bool = False
    right: bool = False
    perimeter: bool = False

class ToolSelection(BaseModel):
    tool_id: str
    name: str = ""
    price_per_meter: float = 0.0
    front: bool = False
    back: bool = False
    left: bool = False
    right: bool = False
    perimeter: bool = False

class StairPartDraft(BaseModel):
    stone_id: Optional[str] = None
    stone_label: Optional[str] = None
    stone_product: Optional[StoneProductRef] = None  # Loaded from the catalog when omitted
    price_per_square_meter: Optional[float] = None
    use_mandatory: Optional[bool] = None
    mandatory_percentage: Optional[float] = None
    thickness_cm: Optional[float] = None
    length_value: Optional[float] = None
    length_unit: str = "m"
    standard_length_value: Optional[float] = None
    standard_length_unit: Optional[str] = None
    width_cm: Optional[float] = None
    quantity: Optional[float] = None
    tools: List[ToolSelection] = []

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

    finishing_enabled: bool = False
    finishing_id: Optional[str] = None
    finishing_name: Optional[str] = None
    finishing_price_per_square_meter: Optional[float] = None

class AddPartRequest(BaseModel):
    part: StairPartType
    draft: StairPartDraft

class PreviewRequest(AddPartRequest):
    session_id: Optional[str] = None  # Use this session's leftovers for the layer preview


# --- Leftover partitions ---

class StonePartition(BaseModel):
    width_cm: float
    length_m: float
    quantity: float = 1
    id: Optional[str] = None

class PartitionRequest(BaseModel):
    partitions: List[StonePartition]


# --- Stair sessions ---

class StairSessionCreate(BaseModel):
    contract_ref: Optional[str] = None

class StairSessionOut(BaseModel):
    id: str
    contract_ref: Optional[str] = None
    status: str
    items: list = []
    totals: dict = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
