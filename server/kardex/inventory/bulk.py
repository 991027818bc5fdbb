from dataclasses import asdict, dataclass
from decimal import Decimal
from enum import Enum
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kardex.errors import KardexError
from kardex.inventory.service import apply_movement, get_item
from kardex.models import InventoryItem, MovementReason


logger = logging.getLogger(__name__)


class BulkOperation(str, Enum):
    ZERO_STOCK = "zero_stock"
    DELETE_ITEM = "delete_item"


@dataclass
class BulkResult:
    updated_or_deleted: int = 0
    movements_emitted: int = 0
    errors: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def zero_stock(db: Session, *, org_id: str, item_id: int, actor_id: Optional[str] = None) -> int:
    item = get_item(db, org_id=org_id, item_id=item_id)
    stock = Decimal(item.stock or 0)
    if stock <= 0:
        return 0
    apply_movement(
        db,
        org_id=org_id,
        item_id=item.id,
        delta=-stock,
        reason=MovementReason.MANUAL,
        actor_id=actor_id,
    )
    return 1


def delete_item(db: Session, *, org_id: str, item_id: int, actor_id: Optional[str] = None) -> int:
    item = get_item(db, org_id=org_id, item_id=item_id)
    stock = Decimal(item.stock or 0)
    emitted = 0
    if stock > 0:
        apply_movement(
            db,
            org_id=org_id,
            item_id=item.id,
            delta=-stock,
            reason=MovementReason.DELETE,
            actor_id=actor_id,
        )
        emitted = 1
    db.delete(item)
    db.flush()
    return emitted


OPERATIONS = {
    BulkOperation.ZERO_STOCK: zero_stock,
    BulkOperation.DELETE_ITEM: delete_item,
}


def _scoped_item_ids(db: Session, *, org_id: str, category: Optional[str]) -> list[int]:
    query = db.query(InventoryItem.id).filter(InventoryItem.org_id == org_id)
    if category:
        query = query.filter(InventoryItem.category == category)
    return [item_id for (item_id,) in query.order_by(InventoryItem.id.asc()).all()]


def run_bulk_operation(
    db: Session,
    *,
    org_id: str,
    operation: BulkOperation | str,
    category: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> BulkResult:
    """Apply ``operation`` to every item in scope, committing item by item.

    A failing item is rolled back, counted and skipped; items processed before
    or after it keep their changes.
    """
    operation = BulkOperation(operation)
    handler = OPERATIONS[operation]
    result = BulkResult()

    for item_id in _scoped_item_ids(db, org_id=org_id, category=category):
        try:
            emitted = handler(db, org_id=org_id, item_id=item_id, actor_id=actor_id)
            db.commit()
        except (KardexError, SQLAlchemyError, ValueError):
            db.rollback()
            result.errors += 1
            logger.exception("Bulk %s failed for item_id=%s org_id=%s", operation.value, item_id, org_id)
            continue
        result.updated_or_deleted += 1
        result.movements_emitted += emitted

    logger.info(
        "Bulk %s finished: org_id=%s category=%s result=%s",
        operation.value,
        org_id,
        category,
        result.as_dict(),
    )
    return result
