"""Cycle date arithmetic for tontines and recurring charges."""
import calendar
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta


def add_cycles(start: date, frequency: str, cycles: int) -> date:
    """
    Return `start` shifted by `cycles` periods.

    Monthly cycles clamp to the last day of the target month
    (Jan 31 + 1 cycle -> Feb 28/29). Weekly cycles are 7 days.
    """
    frequency = getattr(frequency, "value", frequency)
    if frequency == "monthly":
        return start + relativedelta(months=cycles)
    if frequency == "weekly":
        return start + timedelta(days=7 * cycles)
    raise ValueError(f"Unknown cycle frequency: {frequency}")


def payout_date(start: date, frequency: str, position: int) -> date:
    """Payout date of the member at 1-indexed `position`."""
    return add_cycles(start, frequency, position - 1)


def day_in_month(year: int, month: int, day: int) -> date:
    """Date for `day` in the given month, clamped to the month's last day."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))
