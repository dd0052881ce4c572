from __future__ import annotations
import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, Iterable, Optional

from .calendar_math import days_between
from .models import PayPeriod, Shift, ShiftStatus

APPROACHING_RATIO = 0.80


class WarningLevel(str, Enum):
    NONE = "none"
    APPROACHING = "approaching"
    WARNING = "warning"
    CRITICAL = "critical"
    EXCEEDED = "exceeded"

    @property
    def display_name(self) -> str:
        return {
            WarningLevel.NONE: "On Track",
            WarningLevel.APPROACHING: "Approaching Limit",
            WarningLevel.WARNING: "Warning",
            WarningLevel.CRITICAL: "Critical",
            WarningLevel.EXCEEDED: "Exceeded",
        }[self]


@dataclass(frozen=True)
class OvertimeThreshold:
    warning_hours: float = 35.0
    critical_hours: float = 40.0

    def classify(self, current: float, projected: float, target: float) -> WarningLevel:
        if current >= target:
            return WarningLevel.EXCEEDED
        if current >= self.critical_hours or projected >= target:
            return WarningLevel.CRITICAL
        if current >= self.warning_hours or projected >= self.critical_hours:
            return WarningLevel.WARNING
        if current / self.warning_hours >= APPROACHING_RATIO:
            return WarningLevel.APPROACHING
        return WarningLevel.NONE


@dataclass
class Prediction:
    current_hours: float
    projected_hours: float
    target_hours: float
    warning_level: WarningLevel
    message: str
    days_remaining: int
    average_hours_per_day: float
    recommended_daily_hours: Optional[float] = None
    is_complete: bool = False


@dataclass
class ShiftSuggestion:
    shifts_needed: int
    hours_needed: float
    message: str


@dataclass
class ScheduledOvertime:
    will_exceed: bool
    excess_hours: float
    completed_hours: float
    upcoming_hours: float


def _message(level: WarningLevel, current: float, projected: float, target: float) -> str:
    excess = projected - target
    if level == WarningLevel.NONE:
        return f"You're on track. Projected: {projected:.1f} hours."
    if level == WarningLevel.APPROACHING:
        return f"Approaching target. {target - current:.1f} hours remaining."
    if level == WarningLevel.WARNING:
        return f"Warning: Projected to work {excess:.1f} hours over target."
    if level == WarningLevel.CRITICAL:
        return f"Critical: On pace to exceed target by {excess:.1f} hours."
    return f"Target exceeded by {current - target:.1f} hours."


class OvertimeProjector:
    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self.clock = clock

    def predict(
        self,
        period: PayPeriod,
        target_hours: float = 80,
        thresholds: OvertimeThreshold = OvertimeThreshold(),
        today: Optional[date] = None,
    ) -> Prediction:
        today = today or self.clock().date()
        current = period.paid_hours

        if not period.is_current(today):
            return Prediction(
                current_hours=current,
                projected_hours=current,
                target_hours=target_hours,
                warning_level=WarningLevel.NONE,
                message="Period complete",
                days_remaining=0,
                average_hours_per_day=0.0,
                is_complete=True,
            )

        days_elapsed = max(1, days_between(period.start, today))
        days_remaining = max(0, period.length_days - days_elapsed)
        average = current / days_elapsed
        projected = current + average * days_remaining

        level = thresholds.classify(current, projected, target_hours)
        recommended = None
        if days_remaining > 0:
            recommended = max(0.0, target_hours - current) / days_remaining

        return Prediction(
            current_hours=current,
            projected_hours=projected,
            target_hours=target_hours,
            warning_level=level,
            message=_message(level, current, projected, target_hours),
            days_remaining=days_remaining,
            average_hours_per_day=average,
            recommended_daily_hours=recommended,
        )

    def suggest_shifts(self, period: PayPeriod, target_hours: float, typical_shift_hours: float = 8.0) -> ShiftSuggestion:
        current = period.paid_hours
        hours_needed = max(0.0, target_hours - current)
        shifts_needed = math.ceil(hours_needed / typical_shift_hours)

        if hours_needed <= 0:
            message = f"You've already met your target. Current excess: {current - target_hours:.1f} hours."
        elif shifts_needed == 1:
            message = f"Schedule 1 more {typical_shift_hours:g}-hour shift to reach your target."
        else:
            message = f"Schedule {shifts_needed} more shifts (approx. {hours_needed:.1f} hours) to reach your target."
        return ShiftSuggestion(shifts_needed=shifts_needed, hours_needed=hours_needed, message=message)

    def check_scheduled_overtime(
        self,
        shifts: Iterable[Shift],
        target_hours: float,
        now: Optional[datetime] = None,
    ) -> ScheduledOvertime:
        now = now or self.clock()
        completed = 0.0
        upcoming = 0.0
        for shift in shifts:
            if shift.is_deleted:
                continue
            if shift.status == ShiftStatus.COMPLETED:
                completed += shift.paid_hours
            elif shift.status == ShiftStatus.SCHEDULED and shift.scheduled_start > now:
                upcoming += shift.paid_hours

        projected = completed + upcoming
        return ScheduledOvertime(
            will_exceed=projected > target_hours,
            excess_hours=max(0.0, projected - target_hours),
            completed_hours=completed,
            upcoming_hours=upcoming,
        )
