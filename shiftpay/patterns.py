from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Iterator, List, Optional, Sequence, Set

from .calendar_math import at_minute, date_range, days_between, floor_mod, weekday_of
from .core.logging import get_logger
from .errors import ValidationCode, ValidationError
from .hours import HoursCalculator
from .models import (
    PatternDefinition,
    PatternKind,
    ProjectionRecord,
    RotationDay,
    SchedulePattern,
    Shift,
    new_id,
)

MINUTES_PER_DAY = 24 * 60

logger = get_logger(__name__)


def rotation_index(anchor: date, day: date, cycle_length: int) -> int:
    return floor_mod(days_between(anchor, day), cycle_length)


@dataclass
class _Occurrence:
    day: date
    title: str
    start: datetime
    end: datetime
    rotation_day: Optional[RotationDay] = None


def _occurrences(
    kind: PatternKind,
    name: str,
    start_minute: int,
    duration_minutes: int,
    weekdays: Set[int],
    rotation: Sequence[RotationDay],
    anchor: date,
    from_date: date,
    to_date: date,
) -> Iterator[_Occurrence]:
    if kind == PatternKind.WEEKLY:
        if not weekdays:
            return
        for day in date_range(from_date, to_date):
            if weekday_of(day) not in weekdays:
                continue
            start = at_minute(day, start_minute)
            yield _Occurrence(day, name, start, start + timedelta(minutes=duration_minutes))
        return

    if not rotation:
        return
    for day in date_range(from_date, to_date):
        rotation_day = rotation[rotation_index(anchor, day, len(rotation))]
        if not rotation_day.is_work_day:
            continue
        start = at_minute(day, rotation_day.effective_start_minute(start_minute))
        end = start + timedelta(minutes=rotation_day.effective_duration(duration_minutes))
        yield _Occurrence(day, rotation_day.name or name, start, end, rotation_day)


class PatternPreview:
    """Re-iterable view over the projected shifts of an unsaved definition."""

    def __init__(self, definition: PatternDefinition, from_date: date, to_date: date) -> None:
        self.definition = definition
        self.from_date = from_date
        self.to_date = to_date

    def __iter__(self) -> Iterator[ProjectionRecord]:
        definition = self.definition
        occurrences = _occurrences(
            definition.kind,
            definition.name,
            definition.start_minute,
            definition.duration_minutes,
            set(definition.weekdays),
            sorted(definition.rotation_days, key=lambda d: d.index),
            definition.anchor_date or self.from_date,
            self.from_date,
            self.to_date,
        )
        for occurrence in occurrences:
            yield ProjectionRecord(
                day=occurrence.day,
                title=occurrence.title,
                start=occurrence.start,
                end=occurrence.end,
                is_work_day=True,
            )


class PatternEngine:
    def __init__(
        self,
        calculator: HoursCalculator | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.calculator = calculator or HoursCalculator()
        self.clock = clock

    def validate(self, definition: PatternDefinition) -> List[ValidationError]:
        errors: List[ValidationError] = []

        if definition.duration_minutes <= 0 or definition.duration_minutes > MINUTES_PER_DAY:
            errors.append(ValidationError(ValidationCode.INVALID_DURATION, "Shift duration must be between 1 minute and 24 hours."))

        if not 0 <= definition.start_minute < MINUTES_PER_DAY:
            errors.append(ValidationError(ValidationCode.INVALID_START_MINUTE))

        if definition.break_minutes < 0 or (
            definition.duration_minutes > 0 and definition.break_minutes >= definition.duration_minutes
        ):
            errors.append(ValidationError(ValidationCode.INVALID_BREAK))

        if definition.kind == PatternKind.WEEKLY and not definition.weekdays:
            errors.append(ValidationError(ValidationCode.EMPTY_WEEKDAY_SET))

        if definition.kind == PatternKind.ROTATING:
            if not definition.rotation_days:
                errors.append(ValidationError(ValidationCode.EMPTY_ROTATION_CYCLE))
            else:
                indices = sorted(day.index for day in definition.rotation_days)
                if indices != list(range(len(indices))):
                    errors.append(ValidationError(ValidationCode.INVALID_ROTATION_INDEX))
                for day in definition.rotation_days:
                    if day.duration_minutes is not None and not 0 < day.duration_minutes <= MINUTES_PER_DAY:
                        errors.append(
                            ValidationError(ValidationCode.INVALID_DURATION, f"Rotation day {day.index} has an invalid duration.")
                        )
                    if day.start_minute is not None and not 0 <= day.start_minute < MINUTES_PER_DAY:
                        errors.append(
                            ValidationError(ValidationCode.INVALID_START_MINUTE, f"Rotation day {day.index} starts outside the day.")
                        )

        return errors

    def ensure_valid(self, definition: PatternDefinition) -> None:
        errors = self.validate(definition)
        if errors:
            raise errors[0]

    def build_pattern(self, definition: PatternDefinition, owner_id: str) -> SchedulePattern:
        pattern = SchedulePattern(
            id=new_id(),
            owner_id=owner_id,
            name=definition.name,
            kind=definition.kind,
            start_minute=definition.start_minute,
            duration_minutes=definition.duration_minutes,
            break_minutes=definition.break_minutes,
            weekdays=set(definition.weekdays) if definition.kind == PatternKind.WEEKLY else set(),
            anchor_date=definition.anchor_date or self.clock().date(),
            notes=definition.notes,
        )
        if definition.kind == PatternKind.ROTATING:
            pattern.rotation_days = [
                RotationDay(
                    index=day.index,
                    is_work_day=day.is_work_day,
                    name=day.name,
                    start_minute=day.start_minute,
                    duration_minutes=day.duration_minutes,
                )
                for day in sorted(definition.rotation_days, key=lambda d: d.index)
            ]
        return pattern

    def generate_shifts(self, pattern: SchedulePattern, from_date: date, to_date: date, owner_id: str | None = None) -> List[Shift]:
        if not pattern.is_active or pattern.is_deleted:
            return []

        owner = owner_id or pattern.owner_id
        shifts: List[Shift] = []
        occurrences = _occurrences(
            pattern.kind,
            pattern.name,
            pattern.start_minute,
            pattern.duration_minutes,
            set(pattern.weekdays),
            pattern.sorted_rotation_days,
            pattern.anchor_date or from_date,
            from_date,
            to_date,
        )
        for occurrence in occurrences:
            shift = Shift(
                id=new_id(),
                owner_id=owner,
                scheduled_start=occurrence.start,
                scheduled_end=occurrence.end,
                break_minutes=pattern.break_minutes,
                notes=occurrence.rotation_day.name if occurrence.rotation_day else None,
                pattern_id=pattern.id,
            )
            self.calculator.update_calculated_fields(shift)
            shifts.append(shift)

        logger.debug("shifts_generated", pattern_id=pattern.id, count=len(shifts), start=str(from_date), end=str(to_date))
        return shifts

    def rotation_index(self, pattern: SchedulePattern, day: date) -> Optional[int]:
        if pattern.kind != PatternKind.ROTATING or not pattern.rotation_days:
            return None
        return rotation_index(pattern.anchor_date or day, day, pattern.cycle_length)

    def preview(self, definition: PatternDefinition, from_date: date, to_date: date) -> PatternPreview:
        return PatternPreview(definition, from_date, to_date)
