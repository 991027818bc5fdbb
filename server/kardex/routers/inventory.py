from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from kardex.auth import Actor, get_current_actor
from kardex.db import get_db
from kardex.errors import KardexError
from kardex.inventory import schemas
from kardex.inventory.bulk import run_bulk_operation
from kardex.inventory.service import (
    adjust_stock_to,
    create_inventory_item,
    find_ledger_discrepancies,
    find_low_stock,
    get_item,
    list_items,
    list_movements,
    move_stock,
    run_with_conflict_retry,
    update_inventory_item,
)
from kardex.routers.errors import to_http_exception


router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("/items", response_model=List[schemas.InventoryItemResponse])
def list_inventory_items(
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return list_items(db, org_id=actor.org_id, category=category)


@router.post("/items", response_model=schemas.InventoryItemResponse, status_code=status.HTTP_201_CREATED)
def create_item(
    payload: schemas.InventoryItemCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        item = run_with_conflict_retry(
            db,
            lambda: create_inventory_item(db, org_id=actor.org_id, actor_id=actor.actor_id, **payload.model_dump()),
        )
    except (KardexError, ValueError) as exc:
        raise to_http_exception(exc)
    db.refresh(item)
    return item


@router.patch("/items/{item_id}", response_model=schemas.InventoryItemResponse)
def update_item(
    item_id: int,
    payload: schemas.InventoryItemUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        item = run_with_conflict_retry(
            db,
            lambda: update_inventory_item(
                db,
                org_id=actor.org_id,
                item_id=item_id,
                payload=payload.model_dump(exclude_unset=True),
            ),
        )
    except (KardexError, ValueError) as exc:
        raise to_http_exception(exc)
    db.refresh(item)
    return item


@router.get("/items/{item_id}/movements", response_model=List[schemas.StockMovementResponse])
def list_item_movements(
    item_id: int,
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        get_item(db, org_id=actor.org_id, item_id=item_id)
    except KardexError as exc:
        raise to_http_exception(exc)
    return list_movements(db, org_id=actor.org_id, item_id=item_id, limit=limit)


@router.post("/items/{item_id}/moves", response_model=schemas.StockMovementResponse, status_code=status.HTTP_201_CREATED)
def create_stock_move(
    item_id: int,
    payload: schemas.StockMoveCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        movement = run_with_conflict_retry(
            db,
            lambda: move_stock(
                db,
                org_id=actor.org_id,
                item_id=item_id,
                direction=payload.direction,
                qty=payload.qty,
                reason=payload.reason,
                actor_id=actor.actor_id,
            ),
        )
    except (KardexError, ValueError) as exc:
        raise to_http_exception(exc)
    db.refresh(movement)
    return movement


@router.post("/items/{item_id}/adjust", response_model=schemas.StockAdjustResponse)
def adjust_item_stock(
    item_id: int,
    payload: schemas.StockAdjustCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        movement = run_with_conflict_retry(
            db,
            lambda: adjust_stock_to(
                db,
                org_id=actor.org_id,
                item_id=item_id,
                target=payload.target_stock,
                actor_id=actor.actor_id,
            ),
        )
        item = get_item(db, org_id=actor.org_id, item_id=item_id)
    except (KardexError, ValueError) as exc:
        raise to_http_exception(exc)
    return schemas.StockAdjustResponse(
        item=schemas.InventoryItemResponse.model_validate(item),
        movement=schemas.StockMovementResponse.model_validate(movement) if movement else None,
    )


@router.post("/bulk", response_model=schemas.BulkOperationResponse)
def bulk_operation(
    payload: schemas.BulkOperationRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    result = run_bulk_operation(
        db,
        org_id=actor.org_id,
        operation=payload.operation,
        category=payload.category,
        actor_id=actor.actor_id,
    )
    return schemas.BulkOperationResponse(**result.as_dict())


@router.get("/audit", response_model=schemas.LedgerAuditResponse)
def audit_ledger(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    discrepancies = find_ledger_discrepancies(db, org_id=actor.org_id)
    return schemas.LedgerAuditResponse(
        consistent=not discrepancies,
        discrepancies=[schemas.LedgerDiscrepancyResponse(**row) for row in discrepancies],
    )


@router.get("/low-stock", response_model=List[schemas.LowStockItemResponse])
def low_stock_items(
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return [schemas.LowStockItemResponse(**row) for row in find_low_stock(db, org_id=actor.org_id, category=category)]
