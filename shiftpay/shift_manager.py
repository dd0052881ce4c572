from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional

from .core.logging import get_logger
from .errors import NotFoundError, ValidationError
from .hours import HoursCalculator, PeriodSummary, RateBucket
from .models import PatternDefinition, PayPeriod, SchedulePattern, Shift, ShiftStatus, new_id
from .patterns import PatternEngine
from .pay_periods import OwnerSerializer, PayPeriodEngine
from .storage import DataStore
from .validation import ShiftValidator

logger = get_logger(__name__)

_UNSET = object()


@dataclass
class GenerationResult:
    created: List[Shift] = field(default_factory=list)
    skipped: List[Shift] = field(default_factory=list)


class ShiftManager:
    """Applies validation, hour calculation and period assignment for every shift change.

    All writes for one owner run under that owner's lock from the shared
    ``OwnerSerializer``.
    """

    def __init__(
        self,
        store: DataStore,
        *,
        validator: ShiftValidator | None = None,
        calculator: HoursCalculator | None = None,
        serializer: OwnerSerializer | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.clock = clock
        self.validator = validator or ShiftValidator()
        self.calculator = calculator or HoursCalculator()
        self.serializer = serializer or OwnerSerializer()
        self.patterns = PatternEngine(self.calculator, clock)
        self.periods = PayPeriodEngine(store, self.calculator, clock)

    def _validate(self, shift: Shift) -> None:
        others = self.store.shifts_between(shift.owner_id, shift.scheduled_start, shift.scheduled_end)
        self.validator.validate_shift(shift, others)

    # -- patterns ---------------------------------------------------------

    def save_pattern(self, definition: PatternDefinition, owner_id: str) -> SchedulePattern:
        self.patterns.ensure_valid(definition)
        self.store.require_profile(owner_id)
        pattern = self.patterns.build_pattern(definition, owner_id)
        self.store.save(pattern)
        logger.info("pattern_saved", pattern_id=pattern.id, owner_id=owner_id, kind=pattern.kind.value)
        return pattern

    def require_pattern(self, pattern_id: str) -> SchedulePattern:
        pattern = self.store.get_pattern(pattern_id)
        if pattern is None:
            raise NotFoundError("Pattern", pattern_id)
        return pattern

    def commit_generated(self, pattern: SchedulePattern, from_date: date, to_date: date) -> GenerationResult:
        self.validator.validate_pattern_usable(pattern)
        result = GenerationResult()
        with self.serializer.hold(pattern.owner_id):
            for draft in self.patterns.generate_shifts(pattern, from_date, to_date):
                try:
                    self._validate(draft)
                except ValidationError as exc:
                    logger.warning("shift_skipped_overlap", pattern_id=pattern.id, start=draft.scheduled_start.isoformat(), reason=exc.code.value)
                    result.skipped.append(draft)
                    continue
                self.periods.assign_to_period(draft)
                result.created.append(draft)
        logger.info("shifts_generated", pattern_id=pattern.id, created=len(result.created), skipped=len(result.skipped))
        return result

    def create_shift_from_pattern(self, pattern: SchedulePattern, day: date) -> Shift:
        self.validator.validate_pattern_usable(pattern)
        drafts = self.patterns.generate_shifts(pattern, day, day + timedelta(days=1))
        if drafts:
            draft = drafts[0]
        else:
            # Off day for this pattern: fall back to the pattern's default hours.
            start = datetime.combine(day, time()) + timedelta(minutes=pattern.start_minute)
            draft = Shift(
                id=new_id(),
                owner_id=pattern.owner_id,
                scheduled_start=start,
                scheduled_end=start + timedelta(minutes=pattern.duration_minutes),
                break_minutes=pattern.break_minutes,
                pattern_id=pattern.id,
            )
        with self.serializer.hold(pattern.owner_id):
            self._validate(draft)
            self.periods.assign_to_period(draft)
        return draft

    # -- shifts -----------------------------------------------------------

    def create_shift(
        self,
        owner_id: str,
        scheduled_start: datetime,
        scheduled_end: datetime,
        *,
        break_minutes: int = 0,
        rate_multiplier: float = 1.0,
        rate_label: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Shift:
        shift = Shift(
            id=new_id(),
            owner_id=owner_id,
            scheduled_start=scheduled_start,
            scheduled_end=scheduled_end,
            break_minutes=break_minutes,
            rate_multiplier=rate_multiplier,
            rate_label=rate_label,
            notes=notes,
        )
        with self.serializer.hold(owner_id):
            self.store.require_profile(owner_id)
            self._validate(shift)
            self.periods.assign_to_period(shift)
        return shift

    def update_shift(
        self,
        shift_id: str,
        *,
        scheduled_start: Optional[datetime] = None,
        scheduled_end: Optional[datetime] = None,
        break_minutes: Optional[int] = None,
        rate_multiplier: Optional[float] = None,
        rate_label=_UNSET,
        notes=_UNSET,
    ) -> Shift:
        shift = self.store.require_shift(shift_id)
        with self.serializer.hold(shift.owner_id):
            if scheduled_start is not None:
                shift.scheduled_start = scheduled_start
            if scheduled_end is not None:
                shift.scheduled_end = scheduled_end
            if break_minutes is not None:
                shift.break_minutes = break_minutes
            if rate_multiplier is not None:
                shift.rate_multiplier = rate_multiplier
            if rate_label is not _UNSET:
                shift.rate_label = rate_label
            if notes is not _UNSET:
                shift.notes = notes
            self._validate(shift)
            # Reassigning also moves the shift when its start left the old window.
            self.periods.assign_to_period(shift)
        return shift

    def delete_shift(self, shift_id: str) -> Shift:
        shift = self.store.require_shift(shift_id)
        with self.serializer.hold(shift.owner_id):
            shift.soft_delete(self.clock())
            touched: list = [shift]
            period = self.store.get_period(shift.pay_period_id) if shift.pay_period_id else None
            if period is not None:
                profile = self.store.require_profile(shift.owner_id)
                remaining = [s for s in self.store.shifts_for_period(period.id) if s.id != shift.id]
                self.calculator.update_pay_period(period, remaining, profile.base_rate_cents)
                touched.append(period)
            self.store.save(*touched)
        logger.info("shift_deleted", shift_id=shift.id)
        return shift

    def clock_in(self, shift_id: str, at: Optional[datetime] = None) -> Shift:
        shift = self.store.require_shift(shift_id)
        at = at or self.clock()
        with self.serializer.hold(shift.owner_id):
            self.validator.validate_clock_times(shift, at)
            shift.clock_in(at)
            self.store.save(shift)
        logger.info("shift_clocked_in", shift_id=shift.id, at=at.isoformat())
        return shift

    def clock_out(self, shift_id: str, at: Optional[datetime] = None) -> Shift:
        shift = self.store.require_shift(shift_id)
        at = at or self.clock()
        with self.serializer.hold(shift.owner_id):
            self.validator.validate_clock_times(shift, None, at)
            shift.clock_out(at)
            self.periods.assign_to_period(shift)
        logger.info("shift_clocked_out", shift_id=shift.id, at=at.isoformat(), paid_minutes=shift.paid_minutes)
        return shift

    def cancel_shift(self, shift_id: str) -> Shift:
        shift = self.store.require_shift(shift_id)
        with self.serializer.hold(shift.owner_id):
            shift.cancel()
            self.periods.assign_to_period(shift)
        return shift

    # -- queries ----------------------------------------------------------

    def hours_summary(self, owner_id: str, start: date, end: date, completed_only: bool = True) -> PeriodSummary:
        profile = self.store.require_profile(owner_id)
        window_start = datetime.combine(start, time())
        window_end = datetime.combine(end + timedelta(days=1), time())
        shifts = [
            s
            for s in self.store.shifts_between(owner_id, window_start, window_end)
            if window_start <= s.scheduled_start < window_end
        ]
        if completed_only:
            shifts = [s for s in shifts if s.status == ShiftStatus.COMPLETED]
        else:
            shifts = [s for s in shifts if s.status != ShiftStatus.CANCELLED]
        return self.calculator.calculate_summary(shifts, profile.base_rate_cents)

    def period_breakdown(self, period: PayPeriod) -> List[RateBucket]:
        profile = self.store.require_profile(period.owner_id)
        shifts = [s for s in self.store.shifts_for_period(period.id) if s.status != ShiftStatus.CANCELLED]
        return self.calculator.rate_breakdown(shifts, profile.base_rate_cents)

    def current_pay_period(self, owner_id: str) -> PayPeriod:
        with self.serializer.hold(owner_id):
            return self.periods.current_period(owner_id)

    def recalculate_pay_periods(self, owner_id: str) -> List[PayPeriod]:
        profile = self.store.require_profile(owner_id)
        with self.serializer.hold(owner_id):
            return self.periods.recalculate_all(owner_id, profile.base_rate_cents)
