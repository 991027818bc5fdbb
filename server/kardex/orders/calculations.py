from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping

from kardex.utils import quantize_money, round_to_step, to_decimal


@dataclass(frozen=True)
class LineItemInput:
    product_id: str
    name: str
    price: Decimal
    qty: Decimal
    recipe: Mapping[int, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount: Decimal
    net: Decimal
    tax: Decimal
    total: Decimal
    rounded_total: Decimal
    round_delta: Decimal


def calc_totals(
    line_items: Iterable[LineItemInput],
    iva_rate: Decimal | int | str = 0,
    round_step: Decimal | int | str = 0,
) -> OrderTotals:
    """Cart totals. Negative-priced lines are discounts; prices already include IVA."""
    iva_rate = to_decimal(iva_rate)
    round_step = to_decimal(round_step)

    subtotal = Decimal("0")
    negative_sum = Decimal("0")
    for line in line_items:
        price = to_decimal(line.price)
        amount = price * to_decimal(line.qty)
        if price > 0:
            subtotal += amount
        elif price < 0:
            negative_sum += amount
    discount = abs(negative_sum)

    net = max(Decimal("0"), subtotal - discount)
    tax = Decimal("0")
    if iva_rate > 0:
        tax = quantize_money(net - net / (Decimal("1") + iva_rate))
    total = net
    rounded_total = round_to_step(total, round_step)
    return OrderTotals(
        subtotal=subtotal,
        discount=discount,
        net=net,
        tax=tax,
        total=total,
        rounded_total=rounded_total,
        round_delta=rounded_total - total,
    )


def compute_cogs(need: Mapping[int, Decimal], cost_per_unit: Mapping[int, Decimal]) -> Decimal:
    cogs = sum(
        (max(Decimal("0"), to_decimal(qty)) * max(Decimal("0"), to_decimal(cost_per_unit.get(item_id))) for item_id, qty in need.items()),
        Decimal("0"),
    )
    return quantize_money(cogs)
