from .dates import to_date_key
from .money import quantize_money, quantize_qty, round_to_step, to_decimal

__all__ = ["quantize_money", "quantize_qty", "round_to_step", "to_date_key", "to_decimal"]
