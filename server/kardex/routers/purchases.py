from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from kardex.auth import Actor, get_current_actor
from kardex.db import get_db
from kardex.errors import KardexError
from kardex.inventory.service import run_with_conflict_retry
from kardex.purchasing import schemas
from kardex.purchasing.service import (
    cancel_purchase,
    create_purchase,
    create_reorder_purchase,
    get_purchase,
    mark_purchase_ordered,
    receive_purchase,
)
from kardex.routers.errors import to_http_exception


router = APIRouter(prefix="/api/purchases", tags=["purchases"])


@router.post("", response_model=schemas.PurchaseResponse, status_code=status.HTTP_201_CREATED)
def create(
    payload: schemas.PurchaseCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        purchase = run_with_conflict_retry(
            db,
            lambda: create_purchase(
                db,
                org_id=actor.org_id,
                lines=[line.model_dump() for line in payload.lines],
                supplier=payload.supplier,
                notes=payload.notes,
            ),
        )
    except (KardexError, ValueError) as exc:
        raise to_http_exception(exc)
    db.refresh(purchase)
    return purchase


@router.post("/reorder", response_model=schemas.PurchaseResponse, status_code=status.HTTP_201_CREATED)
def create_reorder(
    payload: schemas.ReorderRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        purchase = run_with_conflict_retry(
            db,
            lambda: create_reorder_purchase(db, org_id=actor.org_id, category=payload.category, supplier=payload.supplier),
        )
    except (KardexError, ValueError) as exc:
        raise to_http_exception(exc)
    if purchase is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    db.refresh(purchase)
    return purchase


@router.get("/{purchase_id}", response_model=schemas.PurchaseResponse)
def get_detail(purchase_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    try:
        return get_purchase(db, org_id=actor.org_id, purchase_id=purchase_id)
    except KardexError as exc:
        raise to_http_exception(exc)


@router.post("/{purchase_id}/order", response_model=schemas.PurchaseResponse)
def mark_ordered(purchase_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    try:
        purchase = run_with_conflict_retry(
            db,
            lambda: mark_purchase_ordered(db, org_id=actor.org_id, purchase_id=purchase_id),
        )
    except (KardexError, ValueError) as exc:
        raise to_http_exception(exc)
    db.refresh(purchase)
    return purchase


@router.post("/{purchase_id}/receive", response_model=schemas.PurchaseResponse)
def receive(purchase_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    try:
        purchase = run_with_conflict_retry(
            db,
            lambda: receive_purchase(db, org_id=actor.org_id, purchase_id=purchase_id, actor_id=actor.actor_id),
        )
    except (KardexError, ValueError) as exc:
        raise to_http_exception(exc)
    db.refresh(purchase)
    return purchase


@router.post("/{purchase_id}/cancel", response_model=schemas.PurchaseResponse)
def cancel(purchase_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    try:
        purchase = run_with_conflict_retry(
            db,
            lambda: cancel_purchase(db, org_id=actor.org_id, purchase_id=purchase_id),
        )
    except (KardexError, ValueError) as exc:
        raise to_http_exception(exc)
    db.refresh(purchase)
    return purchase
