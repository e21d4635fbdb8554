# demand_replenishment/utils/date_utils.py
from datetime import date, datetime, timedelta
from typing import Tuple, List, Union

def to_date(value: Union[date, datetime]) -> date:
    """Normalize a date or datetime to a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value

def period_label(target_date: Union[date, datetime]) -> str:
    """Get the YYYY-MM period label for a date.
    
    Args:
        target_date: Date or datetime
        
    Returns:
        Period label such as '2024-03'
    """
    target_date = to_date(target_date)
    return f"{target_date.year:04d}-{target_date.month:02d}"

def lookback_window(days: int, as_of: date = None) -> Tuple[datetime, datetime]:
    """Get the datetime range covering the last `days` calendar days.
    
    The range starts at midnight `days - 1` days before `as_of` and ends at the
    last instant of `as_of`, so a one-day window covers exactly `as_of`.
    
    Args:
        days: Window length in days (>= 1)
        as_of: Last day of the window (defaults to today)
        
    Returns:
        Tuple with start and end datetimes
    """
    as_of = to_date(as_of) if as_of else date.today()
    start = datetime.combine(as_of - timedelta(days=days - 1), datetime.min.time())
    end = datetime.combine(as_of, datetime.max.time())
    return start, end

def subtract_months(target_date: date, months: int) -> date:
    """Go back a number of calendar months, clamping the day to the month length."""
    month_index = target_date.year * 12 + (target_date.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(target_date.day, get_days_in_month(year, month))
    return date(year, month, day)

def get_days_in_month(year: int, month: int) -> int:
    """Get number of days in a month."""
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days

def date_range(start_date: date, end_date: date) -> List[date]:
    """Get every calendar date from start_date to end_date inclusive."""
    days = (end_date - start_date).days
    return [start_date + timedelta(days=offset) for offset in range(days + 1)]

def last_complete_month_end(as_of: date) -> date:
    """Get the last day of the latest calendar month that has fully elapsed by as_of.

    A month counts as elapsed on its last day, so a month-end as_of is returned
    unchanged; any other day gives the last day of the previous month.
    """
    as_of = to_date(as_of)
    if as_of.day == get_days_in_month(as_of.year, as_of.month):
        return as_of
    return as_of.replace(day=1) - timedelta(days=1)

def month_periods(start_date: date, end_date: date) -> List[str]:
    """Get every YYYY-MM period label from start_date's month to end_date's month."""
    start_index = start_date.year * 12 + start_date.month - 1
    end_index = end_date.year * 12 + end_date.month - 1
    return [
        f"{index // 12:04d}-{index % 12 + 1:02d}"
        for index in range(start_index, end_index + 1)
    ]
