from decimal import Decimal
from typing import Dict

from pydantic import BaseModel


class DailySummaryResponse(BaseModel):
    date_key: str
    delivered_count: int
    delivered_total: Decimal
    delivered_by_pay_method: Dict[str, Decimal]
    cogs_total: Decimal
    gross_margin: Decimal
    round_delta_total: Decimal
    canceled_count: int
    canceled_total: Decimal
    pending_count: int
    pending_total: Decimal
