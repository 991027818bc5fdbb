from __future__ import annotations

from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from kardex.models import PAY_METHODS, Order, OrderStatus
from kardex.utils import to_date_key


def _status_totals(db: Session, org_id: str, date_key: str) -> Dict[str, dict]:
    rows = (
        db.query(
            Order.status,
            func.count(Order.id),
            func.coalesce(func.sum(Order.total), 0),
            func.coalesce(func.sum(Order.cogs), 0),
            func.coalesce(func.sum(Order.round_delta), 0),
        )
        .filter(Order.org_id == org_id, Order.date_key == date_key)
        .group_by(Order.status)
        .all()
    )
    return {
        status: {
            "count": int(count or 0),
            "total": Decimal(str(total or 0)),
            "cogs": Decimal(str(cogs or 0)),
            "round_delta": Decimal(str(round_delta or 0)),
        }
        for status, count, total, cogs, round_delta in rows
    }


def _delivered_by_pay_method(db: Session, org_id: str, date_key: str) -> Dict[str, Decimal]:
    rows = (
        db.query(Order.pay_method, func.coalesce(func.sum(Order.total), 0))
        .filter(
            Order.org_id == org_id,
            Order.date_key == date_key,
            Order.status == OrderStatus.DELIVERED.value,
        )
        .group_by(Order.pay_method)
        .all()
    )
    lookup = {method: Decimal(str(total or 0)) for method, total in rows}
    return {method: lookup.get(method, Decimal("0.00")) for method in PAY_METHODS}


def summarize_day(db: Session, *, org_id: str, date_key: Optional[str] = None) -> dict:
    """Order totals of one business day, as read by the cash drawer reconciliation."""
    date_key = date_key or to_date_key()
    by_status = _status_totals(db, org_id, date_key)
    empty = {"count": 0, "total": Decimal("0.00"), "cogs": Decimal("0.00"), "round_delta": Decimal("0.00")}
    delivered = by_status.get(OrderStatus.DELIVERED.value, empty)
    canceled = by_status.get(OrderStatus.CANCELED.value, empty)
    pending = by_status.get(OrderStatus.PENDING.value, empty)

    return {
        "date_key": date_key,
        "delivered_count": delivered["count"],
        "delivered_total": delivered["total"],
        "delivered_by_pay_method": _delivered_by_pay_method(db, org_id, date_key),
        "cogs_total": delivered["cogs"],
        "gross_margin": delivered["total"] - delivered["cogs"],
        "round_delta_total": delivered["round_delta"],
        "canceled_count": canceled["count"],
        "canceled_total": canceled["total"],
        "pending_count": pending["count"],
        "pending_total": pending["total"],
    }
