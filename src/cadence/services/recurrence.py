"""
Recurrence Calculator

Pure computation of the next occurrence of a recurring event.

Month and year arithmetic uses dateutil's relativedelta, which clamps a
missing target day to the last day of the month (Jan 31 + 1 month ->
Feb 28/29, Feb 29 + 1 year -> Feb 28). When the pattern names a
day_of_month it is re-applied on every step, so a 31st-of-the-month
series returns to the 31st after a short month instead of drifting.
"""
from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from ..models.scheduled_event import RecurrenceFrequency, RecurrencePattern, ScheduledEvent


def advance(start: datetime, pattern: RecurrencePattern) -> datetime:
    """Shift `start` forward by one step of the pattern"""
    interval = pattern.interval

    if pattern.frequency == RecurrenceFrequency.DAILY:
        return start + timedelta(days=interval)
    if pattern.frequency == RecurrenceFrequency.WEEKLY:
        # days_of_week is informational; always whole weeks
        return start + timedelta(weeks=interval)
    if pattern.frequency == RecurrenceFrequency.MONTHLY:
        if pattern.day_of_month:
            return start + relativedelta(months=interval, day=pattern.day_of_month)
        return start + relativedelta(months=interval)
    if pattern.frequency == RecurrenceFrequency.YEARLY:
        return start + relativedelta(years=interval)

    raise ValueError(f"Unsupported recurrence frequency: {pattern.frequency}")


def next_occurrence(event: ScheduledEvent) -> Optional[datetime]:
    """
    Start time of the occurrence following `event`, or None.

    None when the event is not recurring, the next start would fall after
    the pattern's end_date, or the series already reached max_occurrences.
    """
    pattern = event.recurrence_pattern
    if not event.is_recurring or pattern is None:
        return None

    if pattern.max_occurrences is not None and event.occurrence_number >= pattern.max_occurrences:
        return None

    next_start = advance(event.start_time, pattern)

    if pattern.end_date is not None and next_start > pattern.end_date:
        return None

    return next_start
