from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from .models import PayPeriod, Shift, ShiftStatus

STANDARD_RATE_LABELS: Dict[float, str] = {
    1.0: "Regular",
    1.3: "Overtime (Bracket)",
    1.5: "Extra",
    2.0: "Bank Holiday",
}


def round_cents(value: float) -> int:
    """Round half away from zero so .5 cents always goes up."""
    return int(Decimal(repr(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def rate_label_for(multiplier: float, label: Optional[str] = None) -> str:
    if label:
        return label
    return STANDARD_RATE_LABELS.get(multiplier, f"{multiplier:.1f}x")


@dataclass(frozen=True)
class PeriodSummary:
    total_paid_minutes: int
    premium_minutes: int
    regular_minutes: int
    estimated_pay_cents: Optional[int] = None

    @property
    def total_hours(self) -> float:
        return self.total_paid_minutes / 60.0

    @property
    def premium_hours(self) -> float:
        return self.premium_minutes / 60.0

    @property
    def regular_hours(self) -> float:
        return self.regular_minutes / 60.0


@dataclass(frozen=True)
class RateBucket:
    multiplier: float
    label: str
    minutes: int
    percentage_of_total: float
    estimated_sub_pay_cents: Optional[int] = None

    @property
    def hours(self) -> float:
        return self.minutes / 60.0


@dataclass(frozen=True)
class DailyTotal:
    day: date
    minutes: int

    @property
    def hours(self) -> float:
        return self.minutes / 60.0


class HoursCalculator:
    def update_calculated_fields(self, shift: Shift) -> None:
        paid = max(0, shift.effective_duration_minutes - max(0, shift.break_minutes))
        shift.paid_minutes = paid
        shift.premium_minutes = paid if shift.rate_multiplier > 1.0 else 0

    @staticmethod
    def shift_pay_cents(shift: Shift, base_rate_cents: int) -> float:
        return base_rate_cents * (shift.paid_minutes / 60.0) * shift.rate_multiplier

    def calculate_summary(self, shifts: Iterable[Shift], base_rate_cents: Optional[int] = None) -> PeriodSummary:
        shift_list = list(shifts)
        paid = sum(s.paid_minutes for s in shift_list)
        premium = sum(s.premium_minutes for s in shift_list)

        estimated: Optional[int] = None
        if base_rate_cents is not None:
            # Multipliers vary per shift, so pay is rounded shift by shift.
            estimated = sum(round_cents(self.shift_pay_cents(s, base_rate_cents)) for s in shift_list)

        return PeriodSummary(
            total_paid_minutes=paid,
            premium_minutes=premium,
            regular_minutes=paid - premium,
            estimated_pay_cents=estimated,
        )

    def rate_breakdown(self, shifts: Iterable[Shift], base_rate_cents: Optional[int] = None) -> List[RateBucket]:
        grouped: Dict[Tuple[float, str], List[Shift]] = defaultdict(list)
        for shift in shifts:
            key = (shift.rate_multiplier, rate_label_for(shift.rate_multiplier, shift.rate_label))
            grouped[key].append(shift)

        total = sum(s.paid_minutes for bucket in grouped.values() for s in bucket)
        buckets: List[RateBucket] = []
        for (multiplier, label), bucket_shifts in grouped.items():
            minutes = sum(s.paid_minutes for s in bucket_shifts)
            sub_pay = None
            if base_rate_cents is not None:
                sub_pay = sum(round_cents(self.shift_pay_cents(s, base_rate_cents)) for s in bucket_shifts)
            buckets.append(
                RateBucket(
                    multiplier=multiplier,
                    label=label,
                    minutes=minutes,
                    percentage_of_total=(minutes / total * 100.0) if total else 0.0,
                    estimated_sub_pay_cents=sub_pay,
                )
            )
        return sorted(buckets, key=lambda b: (b.multiplier, b.label))

    def daily_totals(self, shifts: Iterable[Shift], start: date, end: date) -> List[DailyTotal]:
        minutes_by_day: Dict[date, int] = defaultdict(int)
        for shift in shifts:
            minutes_by_day[shift.scheduled_start.date()] += shift.paid_minutes

        results: List[DailyTotal] = []
        current = start
        while current <= end:
            results.append(DailyTotal(day=current, minutes=minutes_by_day.get(current, 0)))
            current += timedelta(days=1)
        return results

    def update_pay_period(self, period: PayPeriod, shifts: Iterable[Shift], base_rate_cents: Optional[int]) -> PeriodSummary:
        # Cancelled shifts stay linked to their period but are never paid.
        active = [s for s in shifts if not s.is_deleted and s.status != ShiftStatus.CANCELLED]
        summary = self.calculate_summary(active, base_rate_cents)
        period.paid_minutes = summary.total_paid_minutes
        period.premium_minutes = summary.premium_minutes
        period.estimated_pay_cents = summary.estimated_pay_cents
        return summary
