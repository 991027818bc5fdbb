from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from kardex.config import settings


def business_tz() -> tzinfo:
    if settings.business_timezone.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(settings.business_timezone)


def to_date_key(value: datetime | None = None) -> str:
    """YYYY-MM-DD of the business day ``value`` (default: now) falls in."""
    moment = value or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(business_tz()).strftime("%Y-%m-%d")
