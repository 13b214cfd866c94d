"""Date manipulation utilities"""

import calendar
from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(start: date, months: int, anchor_day: Optional[int] = None) -> date:
    """
    Add calendar months, clamping to the end of shorter months.

    Jan 31 + 1 month → Feb 28 (Feb 29 in leap years). When `anchor_day` is
    given the result is moved back to that day where the target month allows
    it, so a schedule anchored on the 31st returns to the 31st after February.
    """
    shifted = start + relativedelta(months=months)
    if anchor_day is not None:
        shifted = shifted.replace(day=min(anchor_day, last_day_of_month(shifted.year, shifted.month)))
    return shifted
