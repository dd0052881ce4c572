from __future__ import annotations
from datetime import date, timedelta
from typing import Iterable, Optional

from .hours import PeriodSummary, RateBucket
from .models import PayPeriod, ProjectionRecord, Shift
from .overtime import Prediction


def format_cents(cents: Optional[int]) -> str:
    if cents is None:
        return "-"
    return f"${cents / 100:,.2f}"


def format_preview(records: Iterable[ProjectionRecord]) -> str:
    rows = ["Preview", "Date        Day  Start  End    Title"]
    count = 0
    for record in records:
        count += 1
        rows.append(
            f"{record.day.isoformat()}  {record.day:%a}  {record.start:%H:%M}  {record.end:%H:%M}  {record.title}"
        )
    rows.append(f"Total shifts: {count}")
    return "\n".join(rows)


def format_shifts(shifts: Iterable[Shift]) -> str:
    rows = ["Start             End               Paid   Rate   Status       Id"]
    total = 0
    for shift in sorted(shifts, key=lambda s: s.scheduled_start):
        total += shift.paid_minutes
        rows.append(
            f"{shift.scheduled_start:%Y-%m-%d %H:%M}  {shift.scheduled_end:%Y-%m-%d %H:%M}  "
            f"{shift.paid_hours:>5.2f}  {shift.rate_multiplier:>4.1f}x  {shift.status.value:<11}  {shift.id}"
        )
    rows.append(f"Total paid hours: {total / 60:.2f}")
    return "\n".join(rows)


def format_period(period: PayPeriod) -> str:
    return "\n".join(
        [
            f"Pay period {period.start.isoformat()} - {period.end.isoformat()} ({period.length_days} days)",
            f"Paid hours: {period.paid_hours:.2f}",
            f"Premium hours: {period.premium_hours:.2f}",
            f"Regular hours: {period.regular_hours:.2f}",
            f"Estimated pay: {format_cents(period.estimated_pay_cents)}",
        ]
    )


def format_summary(summary: PeriodSummary) -> str:
    return "\n".join(
        [
            f"Total hours: {summary.total_hours:.2f}",
            f"Regular hours: {summary.regular_hours:.2f}",
            f"Premium hours: {summary.premium_hours:.2f}",
            f"Estimated pay: {format_cents(summary.estimated_pay_cents)}",
        ]
    )


def format_breakdown(buckets: Iterable[RateBucket]) -> str:
    rows = ["Rate   Label                 Hours   Share   Pay"]
    for bucket in buckets:
        rows.append(
            f"{bucket.multiplier:>4.1f}x  {bucket.label:<20}  {bucket.hours:>6.2f}  {bucket.percentage_of_total:>5.1f}%  "
            f"{format_cents(bucket.estimated_sub_pay_cents)}"
        )
    return "\n".join(rows)


def format_prediction(prediction: Prediction) -> str:
    rows = [
        f"Status: {prediction.warning_level.display_name}",
        prediction.message,
        f"Current hours: {prediction.current_hours:.2f} of {prediction.target_hours:g}",
    ]
    if not prediction.is_complete:
        rows.append(f"Projected hours: {prediction.projected_hours:.2f}")
        rows.append(f"Days remaining: {prediction.days_remaining}")
        if prediction.recommended_daily_hours is not None:
            rows.append(f"Recommended per day: {prediction.recommended_daily_hours:.2f}")
    return "\n".join(rows)


def format_calendar(shifts: Iterable[Shift], year: int, month: int) -> str:
    rows = [f"Calendar {year}-{month:02d}", "Date        Hours"]
    hours_by_day: dict = {}
    for shift in shifts:
        day = shift.scheduled_start.date()
        if day.year == year and day.month == month:
            hours_by_day[day] = hours_by_day.get(day, 0.0) + shift.paid_hours
    current = date(year, month, 1)
    while current.month == month:
        rows.append(f"{current.isoformat()}  {hours_by_day.get(current, 0):>5.2f}")
        current += timedelta(days=1)
    return "\n".join(rows)
