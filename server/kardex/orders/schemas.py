from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal, field_validator, model_validator

from kardex.orders.calculations import LineItemInput


DecimalValue = condecimal(max_digits=14, decimal_places=2)
QtyValue = condecimal(max_digits=14, decimal_places=3)
OrderStatusValue = Literal["pending", "delivered", "canceled"]


class CartLine(BaseModel):
    product_id: str
    name: str
    price: DecimalValue
    qty: QtyValue = Field(..., gt=0)
    recipe: Dict[int, QtyValue] = Field(default_factory=dict)

    @field_validator("recipe")
    @classmethod
    def validate_recipe(cls, value: Dict[int, Decimal]):
        if any(qty < 0 for qty in value.values()):
            raise ValueError("Recipe quantities cannot be negative.")
        return value

    def to_input(self) -> LineItemInput:
        return LineItemInput(
            product_id=self.product_id,
            name=self.name,
            price=self.price,
            qty=self.qty,
            recipe=dict(self.recipe),
        )


class OrderCreate(BaseModel):
    items: List[CartLine]
    pay_method: str = "cash"
    customer_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_items(self):
        if not self.items:
            raise ValueError("Add at least one item to the cart.")
        return self

    def cart(self) -> list[LineItemInput]:
        return [line.to_input() for line in self.items]


class OrderQuoteRequest(BaseModel):
    items: List[CartLine]
    iva_rate: Optional[Decimal] = Field(None, ge=0)
    round_step: Optional[Decimal] = Field(None, ge=0)


class OrderQuoteResponse(BaseModel):
    subtotal: Decimal
    discount: Decimal
    net: Decimal
    tax: Decimal
    total: Decimal
    rounded_total: Decimal
    round_delta: Decimal


class OrderLineResponse(BaseModel):
    id: int
    product_id: str
    name: str
    price: DecimalValue
    qty: QtyValue
    recipe: Dict[str, str]
    line_total: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    id: int
    status: OrderStatusValue
    pay_method: str
    subtotal: DecimalValue
    discount: DecimalValue
    tax: DecimalValue
    round_delta: DecimalValue
    total: DecimalValue
    cogs: DecimalValue
    consumption: Optional[Dict[str, str]] = None
    actor_id: Optional[str] = None
    customer_id: Optional[str] = None
    date_key: str
    created_at: datetime
    delivered_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    lines: List[OrderLineResponse]

    model_config = ConfigDict(from_attributes=True)
