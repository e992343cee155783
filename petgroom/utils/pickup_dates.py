"""Pickup date arithmetic.

Days of the week follow the convention stored on subscriptions: 0 is Sunday
and 6 is Saturday. Dates are naive local datetimes normalized to midnight.
"""
import math
from datetime import datetime

from dateutil.relativedelta import relativedelta, SU, MO, TU, WE, TH, FR, SA

# Indexed by the stored day number, Sunday first
_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)


def js_weekday(value):
    """Weekday of ``value`` with Sunday = 0."""
    return (value.weekday() + 1) % 7


def midnight(value):
    return datetime(value.year, value.month, value.day)


def cadence_weeks(recurrence_days):
    """Whole weeks between two occurrences of a recurrence tier."""
    return max(1, math.ceil(recurrence_days / 7))


def cadence(recurrence_days):
    return relativedelta(weeks=cadence_weeks(recurrence_days))


def next_weekday_after(reference, pickup_day_of_week):
    """First date strictly after ``reference`` falling on ``pickup_day_of_week``."""
    return midnight(reference + relativedelta(days=+1, weekday=_WEEKDAYS[pickup_day_of_week](+1)))


def calculate_next_pickup_date(start_date, recurrence_days, pickup_day_of_week, now=None):
    now = now or datetime.now()
    reference = max(start_date, now)

    candidate = next_weekday_after(reference, pickup_day_of_week)

    if recurrence_days > 7:
        step = cadence_weeks(recurrence_days)
        elapsed_weeks = (candidate.date() - start_date.date()).days // 7
        remainder = elapsed_weeks % step
        if remainder:
            candidate += relativedelta(weeks=step - remainder)

    return candidate


def pickup_dates(anchor, recurrence_days, until, include_anchor=True):
    """Yield occurrences from ``anchor`` spaced by the recurrence cadence, up to ``until``.

    With ``include_anchor`` the anchor is yielded even when it lies past
    ``until``; it is always the first value produced.
    """
    current = midnight(anchor)
    step = cadence(recurrence_days)
    if include_anchor:
        yield current
        current += step
    while current <= until:
        yield current
        current += step
