"""
Calendar helpers for marketplace timestamps.

Mercado Libre stamps and bills orders in a fixed UTC-4 offset no matter
whether local time is on summer or winter time. The tax authority (SII) uses
the same fixed-offset day, so that is the default day boundary for reporting.
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone as dt_timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from marketsync.services.exceptions import ValidationError


class DateMode(models.TextChoices):
    SII = "sii", "SII (UTC-4)"
    MERCADO_LIBRE = "mercado_libre", "Mercado Libre (local time)"


def ml_timezone() -> tzinfo:
    hours = getattr(settings, "MERCADOLIBRE_TIMEZONE_OFFSET_HOURS", -4)
    return dt_timezone(timedelta(hours=hours))


def local_timezone() -> tzinfo:
    return ZoneInfo(getattr(settings, "LOCAL_TIMEZONE", "America/Santiago"))


def parse_ml_date(value: Any) -> Optional[datetime]:
    """Parses an upstream timestamp. Values without an offset are taken as UTC-4."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = parse_datetime(str(value))
        except ValueError:
            parsed = None
        if parsed is None:
            day = parse_date(str(value)[:10])
            if day is None:
                return None
            parsed = datetime.combine(day, time.min)
    if timezone.is_naive(parsed):
        parsed = parsed.replace(tzinfo=ml_timezone())
    return parsed


def parse_day(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD")
    return parsed


def parse_year_month(value: str) -> tuple[int, int]:
    try:
        year_str, month_str = str(value).split("-")
        year, month = int(year_str), int(month_str)
    except ValueError:
        raise ValidationError(f"Invalid month '{value}'. Use YYYY-MM")
    if not 1 <= month <= 12 or len(year_str) != 4:
        raise ValidationError(f"Invalid month '{value}'. Use YYYY-MM")
    return year, month


def year_month_of(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = value.astimezone(ml_timezone()).date()
    return f"{value.year:04d}-{value.month:02d}"


def day_bounds(day: date, date_mode: str = DateMode.SII) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` interval covering one reporting day."""
    tz = local_timezone() if date_mode == DateMode.MERCADO_LIBRE else ml_timezone()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def range_bounds(from_day: date, to_day: date, date_mode: str = DateMode.SII) -> tuple[datetime, datetime]:
    start, _ = day_bounds(from_day, date_mode)
    _, end = day_bounds(to_day, date_mode)
    return start, end


def month_bounds(year_month: str) -> tuple[datetime, datetime]:
    year, month = parse_year_month(year_month)
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    return range_bounds(first, last)


def days_between(from_day: date, to_day: date) -> list[date]:
    if to_day < from_day:
        raise ValidationError(f"Range end {to_day} is before its start {from_day}")
    return [from_day + timedelta(days=offset) for offset in range((to_day - from_day).days + 1)]


def days_of_month(year_month: str) -> list[date]:
    year, month = parse_year_month(year_month)
    return days_between(date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1]))


def format_ml_timestamp(value: datetime) -> str:
    """Formats a timestamp the way the orders search endpoint expects it (``...T23:59:59.999-04:00``)."""
    value = value.astimezone(ml_timezone())
    offset = value.strftime("%z")
    return f"{value.strftime('%Y-%m-%dT%H:%M:%S')}.{value.microsecond // 1000:03d}{offset[:3]}:{offset[3:]}"


def search_window(day: date) -> tuple[str, str]:
    """
    Creation-date window used to search one day of orders: the UTC-4 day,
    opened one hour early so orders stamped in local summer time just before
    midnight are not missed.
    """
    tz = ml_timezone()
    start = datetime.combine(day - timedelta(days=1), time(23, 0), tzinfo=tz)
    end = datetime.combine(day, time(23, 59, 59, 999000), tzinfo=tz)
    return format_ml_timestamp(start), format_ml_timestamp(end)
