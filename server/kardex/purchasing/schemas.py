from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal, model_validator


DecimalValue = condecimal(max_digits=14, decimal_places=2)
QtyValue = condecimal(max_digits=14, decimal_places=3)
CostValue = condecimal(max_digits=14, decimal_places=4)


class PurchaseLineCreate(BaseModel):
    item_id: int
    qty: QtyValue = Field(..., gt=0)
    unit_cost: Optional[CostValue] = Field(None, ge=0)


class PurchaseLineResponse(BaseModel):
    id: int
    item_id: int
    item_name: Optional[str] = None
    qty: QtyValue
    unit_cost: CostValue
    line_total: Decimal

    model_config = ConfigDict(from_attributes=True)


class PurchaseCreate(BaseModel):
    supplier: Optional[str] = None
    notes: Optional[str] = None
    lines: List[PurchaseLineCreate]

    @model_validator(mode="after")
    def validate_lines(self):
        if not self.lines:
            raise ValueError("Add at least one line item.")
        return self


class ReorderRequest(BaseModel):
    category: Optional[str] = None
    supplier: Optional[str] = None


class PurchaseResponse(BaseModel):
    id: int
    supplier: Optional[str] = None
    notes: Optional[str] = None
    status: Literal["draft", "ordered", "received", "canceled"]
    total: DecimalValue
    created_at: datetime
    ordered_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    lines: List[PurchaseLineResponse]

    model_config = ConfigDict(from_attributes=True)
