"""Resolve a reporting period from free-text intent."""
import calendar
from datetime import date, timedelta
from typing import Callable, Optional, Tuple

from dateutil.relativedelta import relativedelta

from .models import Period

DEFAULT_WINDOW_DAYS = 30


def _today(today: date) -> Period:
    return Period(today, today, "Today")


def _yesterday(today: date) -> Period:
    yesterday = today - timedelta(days=1)
    return Period(yesterday, yesterday, "Yesterday")


def _last_7_days(today: date) -> Period:
    return Period(today - timedelta(days=6), today, "Last 7 days")


def _last_week(today: date) -> Period:
    return Period(today - timedelta(days=13), today - timedelta(days=7), "Last week")


def _month_bounds(day: date) -> Tuple[date, date]:
    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)


def _this_month(today: date) -> Period:
    start, end = _month_bounds(today)
    return Period(start, end, "This month")


def _last_month(today: date) -> Period:
    start, end = _month_bounds(today - relativedelta(months=1))
    return Period(start, end, "Last month")


def _this_year(today: date) -> Period:
    return Period(date(today.year, 1, 1), today, "This year")


def _last_3_months(today: date) -> Period:
    return Period(today - relativedelta(months=3), today, "Last 3 months")


def _last_6_months(today: date) -> Period:
    return Period(today - relativedelta(months=6), today, "Last 6 months")


# Checked in order; the first rule with a matching keyword wins.
PERIOD_RULES: Tuple[Tuple[Tuple[str, ...], Callable[[date], Period]], ...] = (
    (("today",), _today),
    (("yesterday",), _yesterday),
    (("this week", "last 7 days", "past week"), _last_7_days),
    (("last week",), _last_week),
    (("this month",), _this_month),
    (("last month",), _last_month),
    (("this year", "year to date", "ytd"), _this_year),
    (("last 3 months", "past 3 months"), _last_3_months),
    (("last 6 months", "past 6 months"), _last_6_months),
)


def resolve_period(query: str, today: Optional[date] = None) -> Period:
    """
    Map a free-text question to a concrete reporting period.

    Args:
        query: User question (may be empty)
        today: Reference date, defaults to date.today()

    Returns:
        Period; the last 30 days when no keyword matches
    """
    today = today or date.today()
    lowered = (query or "").lower()

    for keywords, build in PERIOD_RULES:
        if any(keyword in lowered for keyword in keywords):
            return build(today)

    return Period(today - timedelta(days=DEFAULT_WINDOW_DAYS - 1), today, "Last 30 days")


def previous_period(period: Period) -> Period:
    """The window of equal length that ends the day before period.start."""
    end = period.start - timedelta(days=1)
    start = period.start - timedelta(days=period.days)
    return Period(start, end, f"Previous {period.days} days")
