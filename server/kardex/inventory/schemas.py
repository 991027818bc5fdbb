from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal

from kardex.inventory.bulk import BulkOperation


QtyValue = condecimal(max_digits=14, decimal_places=3)
CostValue = condecimal(max_digits=14, decimal_places=4)
InventoryUnit = Literal["g", "ml", "u"]


class InventoryItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    unit: InventoryUnit = "u"
    cost_per_unit: CostValue = Field(0, ge=0)
    category: Optional[str] = None
    min_stock: Optional[QtyValue] = Field(None, ge=0)
    initial_stock: QtyValue = Field(0, ge=0)


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    unit: Optional[InventoryUnit] = None
    cost_per_unit: Optional[CostValue] = Field(None, ge=0)
    category: Optional[str] = None
    min_stock: Optional[QtyValue] = Field(None, ge=0)


class InventoryItemResponse(BaseModel):
    id: int
    name: str
    unit: str
    stock: QtyValue
    cost_per_unit: CostValue
    category: str
    min_stock: Optional[QtyValue] = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StockMovementResponse(BaseModel):
    id: int
    item_id: int
    item_name: Optional[str] = None
    unit: Optional[str] = None
    type: Literal["in", "out"]
    qty: QtyValue
    reason: str
    order_id: Optional[int] = None
    purchase_id: Optional[int] = None
    actor_id: Optional[str] = None
    date_key: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StockMoveCreate(BaseModel):
    direction: Literal["in", "out"]
    qty: QtyValue = Field(..., gt=0)
    reason: Optional[str] = None


class StockAdjustCreate(BaseModel):
    target_stock: QtyValue = Field(..., ge=0)


class StockAdjustResponse(BaseModel):
    item: InventoryItemResponse
    movement: Optional[StockMovementResponse] = None


class BulkOperationRequest(BaseModel):
    operation: BulkOperation
    category: Optional[str] = None


class BulkOperationResponse(BaseModel):
    updated_or_deleted: int
    movements_emitted: int
    errors: int


class LedgerDiscrepancyResponse(BaseModel):
    item_id: int
    item_name: str
    stock: QtyValue
    replayed_stock: QtyValue
    difference: QtyValue


class LedgerAuditResponse(BaseModel):
    consistent: bool
    discrepancies: List[LedgerDiscrepancyResponse]


class LowStockItemResponse(BaseModel):
    item_id: int
    item_name: str
    unit: str
    stock: QtyValue
    min_stock: QtyValue
    suggested_qty: QtyValue
    unit_cost: CostValue
