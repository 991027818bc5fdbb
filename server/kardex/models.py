from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship, validates

from .db import Base


class MovementReason(str, PyEnum):
    SALE = "sale"
    CANCEL = "cancel"
    DELETE = "delete"
    PURCHASE = "purchase"
    MANUAL = "manual"
    NONE = "none"


class OrderStatus(str, PyEnum):
    PENDING = "pending"
    DELIVERED = "delivered"
    CANCELED = "canceled"


PAY_METHODS = ("cash", "qr", "card", "other")
INVENTORY_UNITS = ("g", "ml", "u")
DEFAULT_CATEGORY = "otros"


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True)
    org_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    unit = Column(Enum(*INVENTORY_UNITS, name="inventory_unit"), nullable=False, default="u")
    stock = Column(Numeric(14, 3), nullable=False, default=0)
    cost_per_unit = Column(Numeric(14, 4), nullable=False, default=0)
    category = Column(String(100), nullable=False, default=DEFAULT_CATEGORY, index=True)
    min_stock = Column(Numeric(14, 3), nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_inventory_items_stock_non_negative"),
    )
    # Optimistic concurrency: a stale version makes the UPDATE match zero rows.
    __mapper_args__ = {"version_id_col": version}

    @property
    def stock_value(self):
        return Decimal(self.stock or 0) * Decimal(self.cost_per_unit or 0)


class StockMovement(Base):
    """Kardex entry. Rows are only ever inserted."""

    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True)
    org_id = Column(String(64), nullable=False, index=True)
    # No foreign keys: history outlives deleted items and orders.
    item_id = Column(Integer, nullable=False, index=True)
    item_name = Column(String(200), nullable=True)
    unit = Column(String(10), nullable=True)
    type = Column(Enum("in", "out", name="stock_movement_type"), nullable=False)
    qty = Column(Numeric(14, 3), nullable=False)
    reason = Column(String(20), nullable=False, default=MovementReason.NONE.value)
    order_id = Column(Integer, nullable=True, index=True)
    purchase_id = Column(Integer, nullable=True, index=True)
    actor_id = Column(String(64), nullable=True)
    date_key = Column(String(10), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("qty >= 0", name="ck_stock_movements_qty_non_negative"),
    )

    @property
    def signed_qty(self) -> Decimal:
        qty = Decimal(self.qty or 0)
        return qty if self.type == "in" else -qty


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    org_id = Column(String(64), nullable=False, index=True)
    status = Column(
        Enum(*(status.value for status in OrderStatus), name="order_status"),
        nullable=False,
        default=OrderStatus.PENDING.value,
    )
    pay_method = Column(Enum(*PAY_METHODS, name="pay_method"), nullable=False, default="cash")
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    discount = Column(Numeric(14, 2), nullable=False, default=0)
    tax = Column(Numeric(14, 2), nullable=False, default=0)
    round_delta = Column(Numeric(14, 2), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=False, default=0)
    cogs = Column(Numeric(14, 2), nullable=False, default=0)
    # {"<item_id>": "<qty>"} captured at checkout; NULL on legacy orders.
    consumption = Column(JSON, nullable=True)
    actor_id = Column(String(64), nullable=True)
    customer_id = Column(String(64), nullable=True)
    date_key = Column(String(10), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    delivered_at = Column(DateTime, nullable=True)
    canceled_at = Column(DateTime, nullable=True)

    lines = relationship("OrderLine", back_populates="order", cascade="all, delete-orphan", order_by="OrderLine.id")

    @validates("consumption")
    def _freeze_consumption(self, key, value):
        if self.consumption is not None:
            raise ValueError("Order consumption snapshot is immutable once written.")
        return value

    @property
    def net_total(self) -> Decimal:
        return Decimal(self.total or 0) - Decimal(self.round_delta or 0)


class OrderLine(Base):
    __tablename__ = "order_lines"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(String(100), nullable=False)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(14, 2), nullable=False)
    qty = Column(Numeric(14, 3), nullable=False)
    # Per-unit recipe at the time of sale: {"<item_id>": "<qty>"}.
    recipe = Column(JSON, nullable=False, default=dict)

    order = relationship("Order", back_populates="lines")

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.price or 0) * Decimal(self.qty or 0)


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True)
    org_id = Column(String(64), nullable=False, index=True)
    supplier = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(
        Enum("draft", "ordered", "received", "canceled", name="purchase_status"),
        nullable=False,
        default="draft",
    )
    total = Column(Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    ordered_at = Column(DateTime, nullable=True)
    received_at = Column(DateTime, nullable=True)
    canceled_at = Column(DateTime, nullable=True)

    lines = relationship("PurchaseLine", back_populates="purchase", cascade="all, delete-orphan", order_by="PurchaseLine.id")


class PurchaseLine(Base):
    __tablename__ = "purchase_lines"

    id = Column(Integer, primary_key=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Integer, nullable=False)
    item_name = Column(String(200), nullable=True)
    qty = Column(Numeric(14, 3), nullable=False)
    unit_cost = Column(Numeric(14, 4), nullable=False, default=0)

    purchase = relationship("Purchase", back_populates="lines")

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.qty or 0) * Decimal(self.unit_cost or 0)
