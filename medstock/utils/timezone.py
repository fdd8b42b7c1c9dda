# medstock/utils/timezone.py
from __future__ import annotations

from datetime import datetime, date
from zoneinfo import ZoneInfo

from medstock.core.config import settings


def app_zone() -> ZoneInfo:
    return ZoneInfo(settings.APP_TIMEZONE)


def now_local() -> datetime:
    """
    Returns a *naive* datetime in the configured app timezone.
    DateTime columns are naive, so tzinfo is dropped before storing.
    """
    return datetime.now(app_zone()).replace(tzinfo=None)


def today_local() -> date:
    return now_local().date()
