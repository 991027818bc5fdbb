from decimal import Decimal, ROUND_HALF_UP


def to_decimal(value: Decimal | float | int | str | None, default: Decimal = Decimal("0")) -> Decimal:
    if value is None or value == "":
        return default
    return Decimal(str(value))


def quantize_money(value: Decimal | float | int | str | None) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def round_to_step(value: Decimal, step: Decimal) -> Decimal:
    """Round to the nearest multiple of ``step`` (half-up); a zero step leaves the value unchanged."""
    if step <= 0:
        return value
    return (value / step).quantize(Decimal("1"), rounding=ROUND_HALF_UP) * step


def quantize_qty(value: Decimal | float | int | str | None) -> Decimal:
    """Stock quantities are stored with three decimals; round half-up to that scale."""
    return to_decimal(value).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
