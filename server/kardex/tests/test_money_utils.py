from decimal import Decimal

from kardex.utils import quantize_money, quantize_qty, round_to_step, to_decimal


def test_quantize_money_rounds_half_up():
    assert quantize_money(Decimal("137.423")) == Decimal("137.42")
    assert quantize_money(Decimal("137.425")) == Decimal("137.43")


def test_quantize_money_accepts_common_types_and_none():
    assert quantize_money(12) == Decimal("12.00")
    assert quantize_money(12.3) == Decimal("12.30")
    assert quantize_money("12.345") == Decimal("12.35")
    assert quantize_money(None) is None


def test_round_to_step_rounds_half_up_to_multiple():
    assert round_to_step(Decimal("17025"), Decimal("50")) == Decimal("17050")
    assert round_to_step(Decimal("17024"), Decimal("50")) == Decimal("17000")
    assert round_to_step(Decimal("17000"), Decimal("50")) == Decimal("17000")


def test_round_to_step_without_step_keeps_value():
    assert round_to_step(Decimal("123.45"), Decimal("0")) == Decimal("123.45")


def test_to_decimal_defaults_blank_values():
    assert to_decimal(None) == Decimal("0")
    assert to_decimal("") == Decimal("0")
    assert to_decimal(2.5) == Decimal("2.5")


def test_quantize_qty_rounds_half_up_to_stock_scale():
    assert quantize_qty(Decimal("0.0015")) == Decimal("0.002")
    assert quantize_qty(Decimal("0.00025")) == Decimal("0.000")
    assert quantize_qty("12") == Decimal("12.000")
