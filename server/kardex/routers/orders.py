from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from kardex.auth import Actor, get_current_actor
from kardex.db import get_db
from kardex.errors import KardexError
from kardex.inventory.service import run_with_conflict_retry
from kardex.orders import schemas
from kardex.orders.service import (
    cancel_order,
    create_order,
    delete_order,
    deliver_order,
    get_order,
    list_orders,
    quote_cart,
)
from kardex.routers.errors import to_http_exception


router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("/quote", response_model=schemas.OrderQuoteResponse)
def quote_order(payload: schemas.OrderQuoteRequest, actor: Actor = Depends(get_current_actor)):
    totals = quote_cart(
        [line.to_input() for line in payload.items],
        iva_rate=payload.iva_rate,
        round_step=payload.round_step,
    )
    return schemas.OrderQuoteResponse(**asdict(totals))


@router.post("", response_model=schemas.OrderResponse, status_code=status.HTTP_201_CREATED)
def place_order(
    payload: schemas.OrderCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        order = run_with_conflict_retry(
            db,
            lambda: create_order(
                db,
                org_id=actor.org_id,
                cart=payload.cart(),
                actor_id=actor.actor_id,
                pay_method=payload.pay_method,
                customer_id=payload.customer_id,
            ),
        )
    except (KardexError, ValueError) as exc:
        raise to_http_exception(exc)
    db.refresh(order)
    return order


@router.get("", response_model=List[schemas.OrderResponse])
def list_org_orders(
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(pending|delivered|canceled)$"),
    date_key: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return list_orders(db, org_id=actor.org_id, status=status_filter, date_key=date_key)


@router.get("/{order_id}", response_model=schemas.OrderResponse)
def get_order_detail(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    try:
        return get_order(db, org_id=actor.org_id, order_id=order_id)
    except KardexError as exc:
        raise to_http_exception(exc)


@router.post("/{order_id}/deliver", response_model=schemas.OrderResponse)
def deliver(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    try:
        order = run_with_conflict_retry(db, lambda: deliver_order(db, org_id=actor.org_id, order_id=order_id))
    except KardexError as exc:
        raise to_http_exception(exc)
    db.refresh(order)
    return order


@router.post("/{order_id}/cancel", response_model=schemas.OrderResponse)
def cancel(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    try:
        order = run_with_conflict_retry(
            db,
            lambda: cancel_order(db, org_id=actor.org_id, order_id=order_id, actor_id=actor.actor_id),
        )
    except KardexError as exc:
        raise to_http_exception(exc)
    db.refresh(order)
    return order


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_order(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    try:
        run_with_conflict_retry(
            db,
            lambda: delete_order(db, org_id=actor.org_id, order_id=order_id, actor_id=actor.actor_id),
        )
    except KardexError as exc:
        raise to_http_exception(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
