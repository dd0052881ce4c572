from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional

from .errors import ValidationCode, ValidationError
from .models import SchedulePattern, Shift, ShiftStatus


class ShiftValidator:
    def __init__(self, max_duration_hours: int = 24, max_rate_multiplier: float = 2.0) -> None:
        self.max_duration_hours = max_duration_hours
        self.max_rate_multiplier = max_rate_multiplier

    def validate_shift(self, shift: Shift, others: Iterable[Shift] = ()) -> None:
        self.validate_duration(shift)
        self.validate_break(shift)
        self.validate_rate(shift)
        self.validate_no_overlap(shift, others)

    def validate_duration(self, shift: Shift) -> None:
        minutes = shift.scheduled_duration_minutes
        if minutes <= 0 or minutes > self.max_duration_hours * 60:
            raise ValidationError(ValidationCode.INVALID_DURATION)

    def validate_break(self, shift: Shift) -> None:
        if shift.break_minutes < 0 or shift.break_minutes >= shift.scheduled_duration_minutes:
            raise ValidationError(ValidationCode.INVALID_BREAK)

    def validate_rate(self, shift: Shift) -> None:
        if not 1.0 <= shift.rate_multiplier <= self.max_rate_multiplier:
            raise ValidationError(ValidationCode.INVALID_RATE_MULTIPLIER)

    def validate_no_overlap(self, shift: Shift, others: Iterable[Shift]) -> None:
        for other in others:
            if other.id == shift.id or other.is_deleted or other.status == ShiftStatus.CANCELLED:
                continue
            if other.owner_id != shift.owner_id:
                continue
            # Half-open intervals: back-to-back shifts are fine.
            if shift.scheduled_start < other.scheduled_end and other.scheduled_start < shift.scheduled_end:
                raise ValidationError(
                    ValidationCode.OVERLAPPING_SHIFT,
                    f"This shift overlaps with the shift starting {other.scheduled_start:%Y-%m-%d %H:%M}.",
                )

    @staticmethod
    def validate_pattern_usable(pattern: SchedulePattern) -> None:
        if not pattern.is_active or pattern.is_deleted:
            raise ValidationError(ValidationCode.INACTIVE_PATTERN)

    @staticmethod
    def validate_clock_times(shift: Shift, clock_in: Optional[datetime], clock_out: Optional[datetime] = None) -> None:
        start = clock_in or shift.actual_start
        if start is not None and clock_out is not None and clock_out <= start:
            raise ValidationError(ValidationCode.INVALID_DURATION, "Clock-out must be after clock-in.")
