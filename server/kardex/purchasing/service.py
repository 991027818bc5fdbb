from datetime import datetime
from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from kardex.errors import ItemNotFoundError, PurchaseNotFoundError
from kardex.inventory.service import apply_movement, find_low_stock, get_item
from kardex.models import MovementReason, Purchase, PurchaseLine
from kardex.utils import quantize_money, to_date_key, to_decimal


logger = logging.getLogger(__name__)


def purchase_total(purchase: Purchase) -> Decimal:
    return sum((line.line_total for line in purchase.lines), Decimal("0"))


def get_purchase(db: Session, *, org_id: str, purchase_id: int) -> Purchase:
    purchase = (
        db.query(Purchase)
        .options(selectinload(Purchase.lines))
        .filter(Purchase.id == purchase_id, Purchase.org_id == org_id)
        .first()
    )
    if not purchase:
        raise PurchaseNotFoundError(purchase_id)
    return purchase


def _build_purchase_line(db: Session, org_id: str, payload: dict) -> PurchaseLine:
    item = get_item(db, org_id=org_id, item_id=payload["item_id"])
    qty = to_decimal(payload.get("qty"))
    if qty <= 0:
        raise ValueError("All purchase quantities must be greater than zero.")
    unit_cost = payload.get("unit_cost")
    unit_cost = to_decimal(item.cost_per_unit) if unit_cost is None else to_decimal(unit_cost)
    if unit_cost < 0:
        raise ValueError("Unit cost cannot be negative.")
    return PurchaseLine(item_id=item.id, item_name=item.name, qty=qty, unit_cost=unit_cost)


def create_purchase(
    db: Session,
    *,
    org_id: str,
    lines: list[dict],
    supplier: Optional[str] = None,
    notes: Optional[str] = None,
) -> Purchase:
    if not lines:
        raise ValueError("Purchase must include at least one line item.")
    purchase = Purchase(org_id=org_id, supplier=supplier, notes=notes, status="draft")
    purchase.lines = [_build_purchase_line(db, org_id, line) for line in lines]
    purchase.total = quantize_money(purchase_total(purchase))
    db.add(purchase)
    db.flush()
    return purchase


def create_reorder_purchase(
    db: Session,
    *,
    org_id: str,
    category: Optional[str] = None,
    supplier: Optional[str] = None,
) -> Optional[Purchase]:
    """Draft a purchase covering every low-stock item; None when nothing is short."""
    suggestions = find_low_stock(db, org_id=org_id, category=category)
    if not suggestions:
        logger.info("No low-stock items to reorder: org_id=%s category=%s", org_id, category)
        return None
    purchase = create_purchase(
        db,
        org_id=org_id,
        lines=[
            {"item_id": row["item_id"], "qty": row["suggested_qty"], "unit_cost": row["unit_cost"]}
            for row in suggestions
        ],
        supplier=supplier,
        notes=f"Reorder draft {to_date_key()}",
    )
    logger.info("Reorder draft created: org_id=%s purchase_id=%s lines=%s", org_id, purchase.id, len(suggestions))
    return purchase


def mark_purchase_ordered(db: Session, *, org_id: str, purchase_id: int) -> Purchase:
    purchase = get_purchase(db, org_id=org_id, purchase_id=purchase_id)
    if purchase.status == "ordered":
        return purchase
    if purchase.status != "draft":
        raise ValueError(f"Only draft purchases can be ordered (status is {purchase.status}).")
    purchase.status = "ordered"
    purchase.ordered_at = datetime.utcnow()
    return purchase


def cancel_purchase(db: Session, *, org_id: str, purchase_id: int) -> Purchase:
    purchase = get_purchase(db, org_id=org_id, purchase_id=purchase_id)
    if purchase.status == "canceled":
        return purchase
    if purchase.status == "received":
        raise ValueError("A received purchase cannot be canceled.")
    purchase.status = "canceled"
    purchase.canceled_at = datetime.utcnow()
    return purchase


def receive_purchase(db: Session, *, org_id: str, purchase_id: int, actor_id: Optional[str] = None) -> Purchase:
    """Credit every purchased quantity to stock and take the received unit cost."""
    purchase = get_purchase(db, org_id=org_id, purchase_id=purchase_id)
    if purchase.status == "received":
        return purchase
    if purchase.status == "canceled":
        raise ValueError("A canceled purchase cannot be received.")

    for line in purchase.lines:
        try:
            item = get_item(db, org_id=org_id, item_id=line.item_id)
        except ItemNotFoundError:
            raise ValueError(f"Purchased item no longer exists: {line.item_name or line.item_id}.")
        apply_movement(
            db,
            org_id=org_id,
            item_id=item.id,
            delta=Decimal(line.qty),
            reason=MovementReason.PURCHASE,
            purchase_id=purchase.id,
            actor_id=actor_id,
        )
        item.cost_per_unit = Decimal(line.unit_cost or 0)

    purchase.total = quantize_money(purchase_total(purchase))
    purchase.status = "received"
    purchase.received_at = datetime.utcnow()
    db.flush()
    logger.info("Purchase received: org_id=%s purchase_id=%s lines=%s total=%s", org_id, purchase.id, len(purchase.lines), purchase.total)
    return purchase
