from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from kardex.utils import quantize_qty, to_decimal


def _field(line: Any, name: str, default=None):
    if isinstance(line, Mapping):
        return line.get(name, default)
    return getattr(line, name, default)


def normalize_recipe(recipe: Mapping | None) -> dict[int, Decimal]:
    """Recipe keys arrive as ints from carts and as strings from JSON columns."""
    normalized: dict[int, Decimal] = {}
    for item_id, per_unit in (recipe or {}).items():
        normalized[int(item_id)] = to_decimal(per_unit)
    return normalized


def aggregate_need(line_items: Iterable[Any]) -> dict[int, Decimal]:
    """Total ingredient quantity required by a cart or by persisted order lines.

    Each line contributes ``per_unit_qty * line_qty`` for every ingredient of its
    recipe snapshot. Non-positive contributions are ignored, so lines without a
    recipe (promotions, credits) consume nothing. Per-ingredient totals are
    rounded to the stock scale so the frozen snapshot matches what is debited.
    """
    need: dict[int, Decimal] = {}
    for line in line_items:
        units = to_decimal(_field(line, "qty"))
        for item_id, per_unit in normalize_recipe(_field(line, "recipe")).items():
            total = per_unit * units
            if total > 0:
                need[item_id] = need.get(item_id, Decimal("0")) + total
    rounded = {item_id: quantize_qty(total) for item_id, total in need.items()}
    return {item_id: total for item_id, total in rounded.items() if total > 0}


def encode_consumption(need: Mapping[int, Decimal]) -> dict[str, str]:
    return {str(item_id): str(qty) for item_id, qty in need.items()}


def decode_consumption(snapshot: Mapping | None) -> dict[int, Decimal]:
    return {int(item_id): to_decimal(qty) for item_id, qty in (snapshot or {}).items()}


def consumption_for_reversal(order) -> dict[int, Decimal]:
    """Frozen snapshot when present, otherwise recomputed from the order's own lines."""
    if order.consumption is not None:
        return decode_consumption(order.consumption)
    return aggregate_need(order.lines)
