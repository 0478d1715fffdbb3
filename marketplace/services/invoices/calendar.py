from datetime import date, datetime, time, timedelta
from typing import Tuple, Union
from uuid import UUID

FRIDAY = 4


def monday_of(day: Union[date, datetime]) -> date:
    if isinstance(day, datetime):
        day = day.date()
    return day - timedelta(days=day.weekday())


def sunday_of(day: Union[date, datetime]) -> date:
    return monday_of(day) + timedelta(days=6)


def start_of_day(day: Union[date, datetime]) -> datetime:
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.min)


def end_of_day(day: Union[date, datetime]) -> datetime:
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.max)


def previous_week_window(now: datetime) -> Tuple[datetime, datetime]:
    """Monday 00:00 to Sunday 23:59:59.999999 of the week before ``now``."""
    week_start = monday_of(now) - timedelta(days=7)
    return start_of_day(week_start), end_of_day(week_start + timedelta(days=6))


def iso_week(day: Union[date, datetime]) -> int:
    return day.isocalendar()[1]


def calculate_due_date(invoice_date: Union[date, datetime], lag_days: int) -> date:
    """``invoice_date + lag_days`` rolled forward to the next Friday."""
    if isinstance(invoice_date, datetime):
        invoice_date = invoice_date.date()
    due = invoice_date + timedelta(days=lag_days)
    while due.weekday() != FRIDAY:
        due += timedelta(days=1)
    return due


def base_invoice_number(invoice_date: Union[date, datetime], week_start: Union[date, datetime], seller_id: UUID) -> str:
    return f"INV-{invoice_date.year}-{iso_week(week_start):02d}-{str(seller_id)[:8]}"
