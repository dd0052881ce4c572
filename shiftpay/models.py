from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum, IntEnum
from typing import List, Optional, Set
from uuid import uuid4

from .errors import ValidationCode, ValidationError


def new_id() -> str:
    return str(uuid4())


class Weekday(IntEnum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def short_name(self) -> str:
        return self.name[:3].title()

    @classmethod
    def parse(cls, value: str) -> "Weekday":
        key = value.strip().lower()[:3]
        for weekday in cls:
            if weekday.name.lower().startswith(key):
                return weekday
        raise ValueError(f"Unknown weekday: {value}")


class PatternKind(str, Enum):
    WEEKLY = "weekly"
    ROTATING = "rotating"


class Cadence(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class ShiftStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class Profile:
    id: str
    cadence: Cadence = Cadence.BIWEEKLY
    reference_date: Optional[date] = None
    base_rate_cents: Optional[int] = None
    regular_hours_per_period: int = 80
    name: Optional[str] = None


@dataclass
class RotationDay:
    index: int
    is_work_day: bool
    name: Optional[str] = None
    start_minute: Optional[int] = None
    duration_minutes: Optional[int] = None

    def effective_start_minute(self, fallback: int) -> int:
        return self.start_minute if self.start_minute is not None else fallback

    def effective_duration(self, fallback: int) -> int:
        return self.duration_minutes if self.duration_minutes is not None else fallback


@dataclass
class PatternDefinition:
    """Unsaved schedule input, as collected before a pattern is built."""

    name: str
    kind: PatternKind
    start_minute: int
    duration_minutes: int
    break_minutes: int = 0
    weekdays: Set[Weekday] = field(default_factory=set)
    rotation_days: List[RotationDay] = field(default_factory=list)
    anchor_date: Optional[date] = None
    notes: Optional[str] = None


@dataclass
class SchedulePattern:
    id: str
    owner_id: str
    name: str
    kind: PatternKind
    start_minute: int
    duration_minutes: int
    break_minutes: int = 0
    weekdays: Set[Weekday] = field(default_factory=set)
    anchor_date: Optional[date] = None
    rotation_days: List[RotationDay] = field(default_factory=list)
    is_active: bool = True
    notes: Optional[str] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def cycle_length(self) -> int:
        return len(self.rotation_days)

    @property
    def sorted_rotation_days(self) -> List[RotationDay]:
        return sorted(self.rotation_days, key=lambda d: d.index)

    @property
    def end_minute(self) -> int:
        return (self.start_minute + self.duration_minutes) % (24 * 60)

    @property
    def is_overnight(self) -> bool:
        return self.start_minute + self.duration_minutes > 24 * 60

    def includes_weekday(self, weekday: int) -> bool:
        return weekday in self.weekdays

    def soft_delete(self, at: datetime) -> None:
        self.deleted_at = at
        self.is_active = False


@dataclass
class ProjectionRecord:
    day: date
    title: str
    start: datetime
    end: datetime
    is_work_day: bool = True


@dataclass
class Shift:
    id: str
    owner_id: str
    scheduled_start: datetime
    scheduled_end: datetime
    break_minutes: int = 0
    rate_multiplier: float = 1.0
    rate_label: Optional[str] = None
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    paid_minutes: int = 0
    premium_minutes: int = 0
    status: ShiftStatus = ShiftStatus.SCHEDULED
    notes: Optional[str] = None
    pattern_id: Optional[str] = None
    pay_period_id: Optional[str] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def scheduled_duration_minutes(self) -> int:
        return int((self.scheduled_end - self.scheduled_start).total_seconds() // 60)

    @property
    def actual_duration_minutes(self) -> Optional[int]:
        if self.actual_start is None or self.actual_end is None:
            return None
        return int((self.actual_end - self.actual_start).total_seconds() // 60)

    @property
    def effective_duration_minutes(self) -> int:
        actual = self.actual_duration_minutes
        return actual if actual is not None else self.scheduled_duration_minutes

    @property
    def paid_hours(self) -> float:
        return self.paid_minutes / 60.0

    @property
    def premium_hours(self) -> float:
        return self.premium_minutes / 60.0

    @property
    def has_premium_pay(self) -> bool:
        return self.rate_multiplier > 1.0

    def _transition(self, allowed: Set[ShiftStatus], target: ShiftStatus) -> None:
        if self.status not in allowed:
            raise ValidationError(
                ValidationCode.INVALID_TRANSITION,
                f"Cannot move shift from {self.status.value} to {target.value}.",
            )
        self.status = target

    def clock_in(self, at: datetime) -> None:
        self._transition({ShiftStatus.SCHEDULED}, ShiftStatus.IN_PROGRESS)
        self.actual_start = at

    def clock_out(self, at: datetime) -> None:
        self._transition({ShiftStatus.IN_PROGRESS}, ShiftStatus.COMPLETED)
        self.actual_end = at

    def cancel(self) -> None:
        self._transition({ShiftStatus.SCHEDULED, ShiftStatus.IN_PROGRESS}, ShiftStatus.CANCELLED)

    def set_rate(self, multiplier: float, label: Optional[str] = None) -> None:
        self.rate_multiplier = multiplier
        self.rate_label = label

    def soft_delete(self, at: datetime) -> None:
        self.deleted_at = at

    def restore(self) -> None:
        self.deleted_at = None


@dataclass
class PayPeriod:
    id: str
    owner_id: str
    start: date
    end: date
    paid_minutes: int = 0
    premium_minutes: int = 0
    estimated_pay_cents: Optional[int] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def length_days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def paid_hours(self) -> float:
        return self.paid_minutes / 60.0

    @property
    def premium_hours(self) -> float:
        return self.premium_minutes / 60.0

    @property
    def regular_hours(self) -> float:
        return max(0, self.paid_minutes - self.premium_minutes) / 60.0

    def contains(self, day: date | datetime) -> bool:
        if isinstance(day, datetime):
            day = day.date()
        return self.start <= day <= self.end

    def is_current(self, today: date) -> bool:
        return self.contains(today)

    def next_start(self) -> date:
        return self.end + timedelta(days=1)
