# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
Mapping between calendar dates and budget period labels.

A period is named by a (month, year) label. With the default pay day of 1 the
label is the calendar month. With a later pay day ``p`` the period labelled
``M`` runs from day ``p`` of the month before ``M`` up to the day before day
``p`` of ``M``. So a pay day of 25 puts 25 January into the February period.

A pay day beyond the length of a month falls on that month's last day.
"""

from __future__ import annotations

import calendar
import math
from datetime import date, timedelta
from typing import Protocol

from budget_envelopes.types import PeriodLabel, PeriodWindow

PAY_DAY_MIN = 1
PAY_DAY_MAX = 31
DEFAULT_PAY_DAY = 1


class _Labelled(Protocol):
    month: int
    year: int


# ─── Pay day ──────────────────────────────────────────────────────────────────


def normalize_pay_day(value: object) -> int:
    """
    Coerce a configured pay day into the range 1–31.

    Missing or non-numeric input (None, bools, unparsable strings, NaN) falls
    back to the default of 1. Numbers are floored and clamped, so 50 behaves
    like 31 and 0 like 1.
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_PAY_DAY

    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return DEFAULT_PAY_DAY
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        return DEFAULT_PAY_DAY

    if math.isnan(number):
        return DEFAULT_PAY_DAY
    if math.isinf(number):
        return PAY_DAY_MAX if number > 0 else PAY_DAY_MIN

    return max(PAY_DAY_MIN, min(PAY_DAY_MAX, math.floor(number)))


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _pay_date(year: int, month: int, pay_day: int) -> date:
    """Day ``pay_day`` of the given month, clamped to the month's length."""
    return date(year, month, min(pay_day, days_in_month(year, month)))


# ─── Label arithmetic ─────────────────────────────────────────────────────────


def previous_label(month: int, year: int) -> PeriodLabel:
    if month == 1:
        return PeriodLabel(month=12, year=year - 1)
    return PeriodLabel(month=month - 1, year=year)


def next_label(month: int, year: int) -> PeriodLabel:
    if month == 12:
        return PeriodLabel(month=1, year=year + 1)
    return PeriodLabel(month=month + 1, year=year)


def period_sort_key(period: _Labelled) -> tuple[int, int]:
    """Chronological sort key for anything carrying a month/year label."""
    return (period.year, period.month)


def compare_periods(a: _Labelled, b: _Labelled) -> int:
    """Return -1, 0 or 1 as ``a`` sorts before, with or after ``b``."""
    key_a, key_b = period_sort_key(a), period_sort_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


# ─── Resolution ───────────────────────────────────────────────────────────────


def resolve_period(day: date, pay_day_of_month: object = DEFAULT_PAY_DAY) -> PeriodLabel:
    """
    Return the label of the period containing ``day``.

    Once ``day`` reaches the pay day of its month, it belongs to the period
    named after the following month.
    """
    pay_day = normalize_pay_day(pay_day_of_month)

    if pay_day == 1:
        return PeriodLabel(month=day.month, year=day.year)

    if day >= _pay_date(day.year, day.month, pay_day):
        return next_label(day.month, day.year)
    return PeriodLabel(month=day.month, year=day.year)


def period_window(month: int, year: int, pay_day_of_month: object = DEFAULT_PAY_DAY) -> PeriodWindow:
    """
    Return the inclusive date window of the period labelled ``month``/``year``.

    The window ends the day before the next period's window starts, so
    consecutive windows tile the calendar without gaps or overlap.
    """
    pay_day = normalize_pay_day(pay_day_of_month)

    if pay_day == 1:
        return PeriodWindow(
            start_date=date(year, month, 1),
            end_date=date(year, month, days_in_month(year, month)),
        )

    previous = previous_label(month, year)
    start_date = _pay_date(previous.year, previous.month, pay_day)
    end_date = _pay_date(year, month, pay_day) - timedelta(days=1)
    return PeriodWindow(start_date=start_date, end_date=end_date)


def is_in_current_period(
    day: date,
    pay_day_of_month: object = DEFAULT_PAY_DAY,
    today: date | None = None,
) -> bool:
    """Whether ``day`` falls in the same period as ``today``."""
    if today is None:
        today = date.today()
    return resolve_period(day, pay_day_of_month) == resolve_period(today, pay_day_of_month)


def is_past_period(
    label: _Labelled,
    pay_day_of_month: object = DEFAULT_PAY_DAY,
    today: date | None = None,
) -> bool:
    """Whether ``label`` sorts before the period containing ``today``."""
    if today is None:
        today = date.today()
    return compare_periods(label, resolve_period(today, pay_day_of_month)) < 0


def format_period(month: int, year: int, pay_day_of_month: object = DEFAULT_PAY_DAY) -> str:
    """Human-readable window, e.g. ``"25 Jan - 24 Feb"``."""
    window = period_window(month, year, pay_day_of_month)
    start, end = window.start_date, window.end_date
    return f"{start.day} {start.strftime('%b')} - {end.day} {end.strftime('%b')}"
