from datetime import datetime
from decimal import Decimal
import logging
from typing import Callable, Optional, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from kardex.config import settings
from kardex.errors import InsufficientStockError, ItemNotFoundError, TransactionConflictError
from kardex.models import DEFAULT_CATEGORY, INVENTORY_UNITS, InventoryItem, MovementReason, StockMovement
from kardex.utils import quantize_qty, to_date_key, to_decimal


logger = logging.getLogger(__name__)

T = TypeVar("T")

MOVE_DIRECTIONS = ("in", "out")


def normalize_reason(value: MovementReason | str | None) -> MovementReason:
    """Map free-form reasons onto the closed set; unknown values become NONE."""
    if isinstance(value, MovementReason):
        return value
    try:
        return MovementReason((value or "").strip().lower())
    except ValueError:
        return MovementReason.NONE


def get_item(db: Session, *, org_id: str, item_id: int) -> InventoryItem:
    item = (
        db.query(InventoryItem)
        .filter(InventoryItem.id == item_id, InventoryItem.org_id == org_id)
        .first()
    )
    if not item:
        raise ItemNotFoundError(item_id)
    return item


def get_items_map(db: Session, *, org_id: str, item_ids) -> dict[int, InventoryItem]:
    item_ids = list(item_ids)
    if not item_ids:
        return {}
    rows = (
        db.query(InventoryItem)
        .filter(InventoryItem.id.in_(item_ids), InventoryItem.org_id == org_id)
        .all()
    )
    return {row.id: row for row in rows}


def apply_movement(
    db: Session,
    *,
    org_id: str,
    item_id: int,
    delta: Decimal,
    reason: MovementReason | str | None,
    order_id: Optional[int] = None,
    purchase_id: Optional[int] = None,
    actor_id: Optional[str] = None,
) -> StockMovement:
    """The only write path for ``InventoryItem.stock``.

    Updates the stock and appends the matching kardex row in the caller's
    transaction. Nothing is written when the movement would leave the stock
    negative. A concurrent update of the same item surfaces as
    TransactionConflictError; the caller rolls back and retries.
    """
    delta = quantize_qty(delta)
    if delta == 0:
        raise ValueError("Movement quantity must be non-zero.")

    item = get_item(db, org_id=org_id, item_id=item_id)
    current = quantize_qty(item.stock)
    next_stock = current + delta
    if next_stock < 0:
        raise InsufficientStockError(
            item_id=item.id,
            item_name=item.name,
            unit=item.unit,
            have=current,
            need=-delta,
        )

    item.stock = next_stock
    item.updated_at = datetime.utcnow()
    movement = StockMovement(
        org_id=org_id,
        item_id=item.id,
        item_name=item.name,
        unit=item.unit,
        type="in" if delta > 0 else "out",
        qty=abs(delta),
        reason=normalize_reason(reason).value,
        order_id=order_id,
        purchase_id=purchase_id,
        actor_id=actor_id,
        date_key=to_date_key(),
        created_at=datetime.utcnow(),
    )
    db.add(movement)
    try:
        db.flush()
    except StaleDataError as exc:
        raise TransactionConflictError(item_id) from exc

    logger.debug(
        "Stock movement applied: org_id=%s item_id=%s delta=%s stock=%s->%s reason=%s order_id=%s",
        org_id,
        item.id,
        delta,
        current,
        next_stock,
        movement.reason,
        order_id,
    )
    return movement


def move_stock(
    db: Session,
    *,
    org_id: str,
    item_id: int,
    direction: str,
    qty: Decimal,
    reason: MovementReason | str | None = None,
    actor_id: Optional[str] = None,
) -> StockMovement:
    if direction not in MOVE_DIRECTIONS:
        raise ValueError("Direction must be 'in' or 'out'.")
    qty = to_decimal(qty)
    if qty <= 0:
        raise ValueError("Quantity must be greater than zero.")
    delta = qty if direction == "in" else -qty
    return apply_movement(
        db,
        org_id=org_id,
        item_id=item_id,
        delta=delta,
        reason=MovementReason.MANUAL if reason is None else normalize_reason(reason),
        actor_id=actor_id,
    )


def adjust_stock_to(
    db: Session,
    *,
    org_id: str,
    item_id: int,
    target: Decimal,
    actor_id: Optional[str] = None,
) -> Optional[StockMovement]:
    """Bring an item to a counted stock level; returns None when nothing changes."""
    target = to_decimal(target)
    if target < 0:
        raise ValueError("Target stock cannot be negative.")
    item = get_item(db, org_id=org_id, item_id=item_id)
    diff = target - Decimal(item.stock or 0)
    if diff == 0:
        return None
    return apply_movement(
        db,
        org_id=org_id,
        item_id=item_id,
        delta=diff,
        reason=MovementReason.MANUAL,
        actor_id=actor_id,
    )


def create_inventory_item(
    db: Session,
    *,
    org_id: str,
    name: str,
    unit: str = "u",
    cost_per_unit: Decimal = Decimal("0"),
    category: Optional[str] = None,
    min_stock: Optional[Decimal] = None,
    initial_stock: Decimal = Decimal("0"),
    actor_id: Optional[str] = None,
) -> InventoryItem:
    name = (name or "").strip()
    if not name:
        raise ValueError("Item name is required.")
    if unit not in INVENTORY_UNITS:
        raise ValueError(f"Unit must be one of: {', '.join(INVENTORY_UNITS)}.")
    initial_stock = to_decimal(initial_stock)
    if initial_stock < 0:
        raise ValueError("Initial stock cannot be negative.")

    item = InventoryItem(
        org_id=org_id,
        name=name,
        unit=unit,
        stock=Decimal("0"),
        cost_per_unit=to_decimal(cost_per_unit),
        category=(category or "").strip() or DEFAULT_CATEGORY,
        min_stock=min_stock,
    )
    db.add(item)
    db.flush()
    if initial_stock > 0:
        apply_movement(
            db,
            org_id=org_id,
            item_id=item.id,
            delta=initial_stock,
            reason=MovementReason.MANUAL,
            actor_id=actor_id,
        )
    return item


ITEM_EDITABLE_FIELDS = ("name", "unit", "cost_per_unit", "category", "min_stock")


def update_inventory_item(db: Session, *, org_id: str, item_id: int, payload: dict) -> InventoryItem:
    if "stock" in payload:
        raise ValueError("Stock can only change through stock movements.")
    item = get_item(db, org_id=org_id, item_id=item_id)
    for key in ITEM_EDITABLE_FIELDS:
        if key in payload and payload[key] is not None:
            setattr(item, key, payload[key])
    item.updated_at = datetime.utcnow()
    return item


def list_items(db: Session, *, org_id: str, category: Optional[str] = None) -> list[InventoryItem]:
    query = db.query(InventoryItem).filter(InventoryItem.org_id == org_id)
    if category:
        query = query.filter(InventoryItem.category == category)
    return query.order_by(InventoryItem.name.asc(), InventoryItem.id.asc()).all()


def list_movements(
    db: Session,
    *,
    org_id: str,
    item_id: Optional[int] = None,
    order_id: Optional[int] = None,
    limit: int = 200,
) -> list[StockMovement]:
    query = db.query(StockMovement).filter(StockMovement.org_id == org_id)
    if item_id is not None:
        query = query.filter(StockMovement.item_id == item_id)
    if order_id is not None:
        query = query.filter(StockMovement.order_id == order_id)
    return query.order_by(StockMovement.id.desc()).limit(limit).all()


def replay_stock(db: Session, *, org_id: str, item_id: int) -> Decimal:
    """Stock implied by the full kardex of an item."""
    rows = (
        db.query(StockMovement.type, StockMovement.qty)
        .filter(StockMovement.org_id == org_id, StockMovement.item_id == item_id)
        .all()
    )
    total = Decimal("0")
    for movement_type, qty in rows:
        qty = Decimal(qty or 0)
        total += qty if movement_type == "in" else -qty
    return total


def find_ledger_discrepancies(db: Session, *, org_id: str) -> list[dict]:
    discrepancies: list[dict] = []
    for item in list_items(db, org_id=org_id):
        replayed = replay_stock(db, org_id=org_id, item_id=item.id)
        stock = Decimal(item.stock or 0)
        if replayed != stock:
            discrepancies.append(
                {
                    "item_id": item.id,
                    "item_name": item.name,
                    "stock": stock,
                    "replayed_stock": replayed,
                    "difference": stock - replayed,
                }
            )
    if discrepancies:
        logger.warning("Kardex replay mismatch: org_id=%s items=%s", org_id, [row["item_id"] for row in discrepancies])
    return discrepancies


def find_low_stock(db: Session, *, org_id: str, category: Optional[str] = None) -> list[dict]:
    """Items below their minimum, with the quantity that refills them to twice that minimum."""
    suggestions: list[dict] = []
    for item in list_items(db, org_id=org_id, category=category):
        if item.min_stock is None:
            continue
        minimum = quantize_qty(item.min_stock)
        stock = quantize_qty(item.stock)
        if minimum <= 0 or stock >= minimum:
            continue
        suggestions.append(
            {
                "item_id": item.id,
                "item_name": item.name,
                "unit": item.unit,
                "stock": stock,
                "min_stock": minimum,
                "suggested_qty": minimum * 2 - stock,
                "unit_cost": to_decimal(item.cost_per_unit),
            }
        )
    return suggestions


def run_with_conflict_retry(db: Session, operation: Callable[[], T], *, attempts: Optional[int] = None) -> T:
    """Run ``operation`` and commit, retrying on optimistic-concurrency conflicts."""
    attempts = attempts or settings.conflict_retry_attempts
    for attempt in range(1, attempts + 1):
        try:
            result = operation()
            db.commit()
            return result
        except (TransactionConflictError, StaleDataError) as exc:
            db.rollback()
            if attempt >= attempts:
                logger.warning("Giving up after %s conflicting attempts: %s", attempt, exc)
                if isinstance(exc, TransactionConflictError):
                    raise
                raise TransactionConflictError() from exc
            logger.warning("Transaction conflict on attempt %s/%s, retrying: %s", attempt, attempts, exc)
        except Exception:
            db.rollback()
            raise
    raise TransactionConflictError()
