from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kardex.auth import Actor, get_current_actor
from kardex.dashboard.schemas import DailySummaryResponse
from kardex.dashboard.service import summarize_day
from kardex.db import get_db

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/daily-summary", response_model=DailySummaryResponse)
def daily_summary(
    date_key: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return summarize_day(db, org_id=actor.org_id, date_key=date_key)
