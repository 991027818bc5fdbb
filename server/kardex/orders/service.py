from datetime import datetime
from decimal import Decimal
import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session, selectinload

from kardex.config import settings
from kardex.errors import (
    EmptyCartError,
    InsufficientStockError,
    InvalidTransitionError,
    ItemNotFoundError,
    OrderNotFoundError,
)
from kardex.inventory.service import apply_movement, get_items_map
from kardex.models import PAY_METHODS, MovementReason, Order, OrderLine, OrderStatus, StockMovement
from kardex.orders.calculations import LineItemInput, OrderTotals, calc_totals, compute_cogs
from kardex.orders.consumption import aggregate_need, consumption_for_reversal, encode_consumption, normalize_recipe
from kardex.utils import quantize_money, to_date_key, to_decimal


logger = logging.getLogger(__name__)


def clean_pay_method(value: Optional[str]) -> str:
    value = (value or "").strip().lower()
    return value if value in PAY_METHODS else "other"


def _clean_cart(cart: Iterable[LineItemInput]) -> list[LineItemInput]:
    lines: list[LineItemInput] = []
    for line in cart or []:
        qty = to_decimal(line.qty)
        if qty <= 0:
            continue
        lines.append(
            LineItemInput(
                product_id=str(line.product_id or ""),
                name=str(line.name or ""),
                price=to_decimal(line.price),
                qty=qty,
                recipe=normalize_recipe(line.recipe),
            )
        )
    return lines


def get_order(db: Session, *, org_id: str, order_id: int) -> Order:
    order = (
        db.query(Order)
        .options(selectinload(Order.lines))
        .filter(Order.id == order_id, Order.org_id == org_id)
        .first()
    )
    if not order:
        raise OrderNotFoundError(order_id)
    return order


def list_orders(
    db: Session,
    *,
    org_id: str,
    status: Optional[str] = None,
    date_key: Optional[str] = None,
) -> list[Order]:
    query = db.query(Order).options(selectinload(Order.lines)).filter(Order.org_id == org_id)
    if status:
        query = query.filter(Order.status == status)
    if date_key:
        query = query.filter(Order.date_key == date_key)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def quote_cart(
    cart: Iterable[LineItemInput],
    iva_rate: Optional[Decimal] = None,
    round_step: Optional[Decimal] = None,
) -> OrderTotals:
    return calc_totals(
        _clean_cart(cart),
        settings.iva_rate if iva_rate is None else iva_rate,
        settings.round_step if round_step is None else round_step,
    )


def create_order(
    db: Session,
    *,
    org_id: str,
    cart: Iterable[LineItemInput],
    actor_id: Optional[str] = None,
    pay_method: Optional[str] = "cash",
    customer_id: Optional[str] = None,
    iva_rate: Optional[Decimal] = None,
    round_step: Optional[Decimal] = None,
) -> Order:
    """Checkout: consume every ingredient of the cart and record a pending order.

    Stock for all ingredients is validated before anything is written, so a
    shortage leaves no trace. The caller commits the session.
    """
    lines = _clean_cart(cart)
    if not lines:
        raise EmptyCartError()

    need = aggregate_need(lines)
    items = get_items_map(db, org_id=org_id, item_ids=need.keys())
    for item_id, qty in need.items():
        item = items.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        have = Decimal(item.stock or 0)
        if have < qty:
            raise InsufficientStockError(item_id=item.id, item_name=item.name, unit=item.unit, have=have, need=qty)

    totals = quote_cart(lines, iva_rate=iva_rate, round_step=round_step)
    order = Order(
        org_id=org_id,
        status=OrderStatus.PENDING.value,
        pay_method=clean_pay_method(pay_method),
        subtotal=quantize_money(totals.subtotal),
        discount=quantize_money(totals.discount),
        tax=quantize_money(totals.tax),
        round_delta=quantize_money(totals.round_delta),
        total=quantize_money(totals.rounded_total),
        cogs=compute_cogs(need, {item_id: item.cost_per_unit for item_id, item in items.items()}),
        consumption=encode_consumption(need),
        actor_id=actor_id,
        customer_id=customer_id,
        date_key=to_date_key(),
        created_at=datetime.utcnow(),
    )
    order.lines = [
        OrderLine(
            product_id=line.product_id,
            name=line.name,
            price=line.price,
            qty=line.qty,
            recipe={str(item_id): str(per_unit) for item_id, per_unit in line.recipe.items()},
        )
        for line in lines
    ]
    db.add(order)
    db.flush()

    for item_id, qty in need.items():
        apply_movement(
            db,
            org_id=org_id,
            item_id=item_id,
            delta=-qty,
            reason=MovementReason.SALE,
            order_id=order.id,
            actor_id=actor_id,
        )

    logger.info(
        "Order created: org_id=%s order_id=%s total=%s ingredients=%s",
        org_id,
        order.id,
        order.total,
        len(need),
    )
    return order


def deliver_order(db: Session, *, org_id: str, order_id: int) -> Order:
    order = get_order(db, org_id=org_id, order_id=order_id)
    if order.status == OrderStatus.CANCELED.value:
        raise InvalidTransitionError(order.status, OrderStatus.DELIVERED.value)
    if order.status == OrderStatus.DELIVERED.value:
        return order

    order.status = OrderStatus.DELIVERED.value
    order.delivered_at = datetime.utcnow()
    db.flush()
    logger.info("Order delivered: org_id=%s order_id=%s", org_id, order.id)
    return order


def _reverse_consumption(
    db: Session,
    *,
    org_id: str,
    order: Order,
    reason: MovementReason,
    actor_id: Optional[str],
) -> list[StockMovement]:
    need = consumption_for_reversal(order)
    existing = get_items_map(db, org_id=org_id, item_ids=need.keys())
    movements: list[StockMovement] = []
    for item_id, qty in need.items():
        if qty <= 0:
            continue
        if item_id not in existing:
            logger.warning(
                "Skipping %s reversal for missing item: org_id=%s order_id=%s item_id=%s qty=%s",
                reason.value,
                org_id,
                order.id,
                item_id,
                qty,
            )
            continue
        movements.append(
            apply_movement(
                db,
                org_id=org_id,
                item_id=item_id,
                delta=qty,
                reason=reason,
                order_id=order.id,
                actor_id=actor_id,
            )
        )
    return movements


def cancel_order(db: Session, *, org_id: str, order_id: int, actor_id: Optional[str] = None) -> Order:
    order = get_order(db, org_id=org_id, order_id=order_id)
    # Status is checked before any credit so a repeated cancel never re-credits stock.
    if order.status == OrderStatus.CANCELED.value:
        return order
    if order.status == OrderStatus.DELIVERED.value:
        raise InvalidTransitionError(order.status, OrderStatus.CANCELED.value)

    movements = _reverse_consumption(db, org_id=org_id, order=order, reason=MovementReason.CANCEL, actor_id=actor_id)
    order.status = OrderStatus.CANCELED.value
    order.canceled_at = datetime.utcnow()
    db.flush()
    logger.info("Order canceled: org_id=%s order_id=%s reversals=%s", org_id, order.id, len(movements))
    return order


def delete_order(db: Session, *, org_id: str, order_id: int, actor_id: Optional[str] = None) -> list[StockMovement]:
    """Remove an order, returning its stock unless it was already canceled.

    Deleting an order that no longer exists is a no-op.
    """
    try:
        order = get_order(db, org_id=org_id, order_id=order_id)
    except OrderNotFoundError:
        logger.info("Order already deleted: org_id=%s order_id=%s", org_id, order_id)
        return []
    movements: list[StockMovement] = []
    if order.status != OrderStatus.CANCELED.value:
        movements = _reverse_consumption(db, org_id=org_id, order=order, reason=MovementReason.DELETE, actor_id=actor_id)

    db.delete(order)
    db.flush()
    logger.info("Order deleted: org_id=%s order_id=%s reversals=%s", org_id, order_id, len(movements))
    return movements
