from __future__ import annotations
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .calendar_math import days_between, end_of_month, floor_div, start_of_month, start_of_week
from .core.logging import bind_owner, get_logger
from .errors import PersistenceError
from .hours import HoursCalculator
from .models import Cadence, PayPeriod, Profile, Shift, new_id
from .storage import DataStore

logger = get_logger(__name__)

BIWEEKLY_DAYS = 14


@dataclass(frozen=True)
class PeriodBounds:
    start: date
    end: date

    @property
    def length_days(self) -> int:
        return (self.end - self.start).days + 1


def period_bounds(day: date, cadence: Cadence, reference_date: Optional[date] = None) -> PeriodBounds:
    if isinstance(day, datetime):
        day = day.date()
    if cadence == Cadence.WEEKLY:
        start = start_of_week(day)
        return PeriodBounds(start, start + timedelta(days=6))
    if cadence == Cadence.BIWEEKLY:
        reference = reference_date or day
        # Floor division keeps dates before the reference on the right window.
        index = floor_div(days_between(reference, day), BIWEEKLY_DAYS)
        start = reference + timedelta(days=index * BIWEEKLY_DAYS)
        return PeriodBounds(start, start + timedelta(days=BIWEEKLY_DAYS - 1))
    return PeriodBounds(start_of_month(day), end_of_month(day))


class OwnerSerializer:
    """Hands out one re-entrant lock per owner.

    Find-or-create is check-then-act, so two writers for the same owner must
    not interleave. Callers hold ``serializer.hold(owner_id)`` around any
    sequence that may create or relink pay periods.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def lock_for(self, owner_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(owner_id)
            if lock is None:
                lock = self._locks[owner_id] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, owner_id: str) -> Iterator[None]:
        with self.lock_for(owner_id), bind_owner(owner_id):
            yield


class PayPeriodEngine:
    def __init__(
        self,
        store: DataStore,
        calculator: HoursCalculator | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.calculator = calculator or HoursCalculator()
        self.clock = clock

    def _resolve_period(self, day: date, profile: Profile, cadence: Optional[Cadence]) -> Tuple[PayPeriod, bool]:
        existing = self.store.find_period_containing(profile.id, day)
        if existing is not None:
            return existing, False
        bounds = period_bounds(day, cadence or profile.cadence, profile.reference_date)
        period = PayPeriod(id=new_id(), owner_id=profile.id, start=bounds.start, end=bounds.end)
        return period, True

    def find_or_create_period(self, day: date, owner_id: str, cadence: Optional[Cadence] = None) -> PayPeriod:
        if isinstance(day, datetime):
            day = day.date()
        profile = self.store.require_profile(owner_id)
        period, created = self._resolve_period(day, profile, cadence)
        if created:
            self.store.save(period)
            logger.info("pay_period_created", owner_id=owner_id, start=str(period.start), end=str(period.end))
        return period

    def _linked_shifts(self, period: PayPeriod, replacing: Shift) -> List[Shift]:
        shifts = [s for s in self.store.shifts_for_period(period.id) if s.id != replacing.id]
        if replacing.pay_period_id == period.id and not replacing.is_deleted:
            shifts.append(replacing)
        return shifts

    def assign_to_period(self, shift: Shift, cadence: Optional[Cadence] = None) -> PayPeriod:
        """Link a shift to the window covering its scheduled start and refresh totals.

        The shift, the target period and any period it left are written in one
        save. If that save fails the shift's link and calculated fields are put
        back, so a retry starts from what is actually stored.
        """
        profile = self.store.require_profile(shift.owner_id)
        snapshot = (shift.pay_period_id, shift.paid_minutes, shift.premium_minutes)

        # The stored row is the authority on which period still counts this shift.
        stored = self.store.get_shift(shift.id)
        linked_id = stored.pay_period_id if stored is not None else shift.pay_period_id

        self.calculator.update_calculated_fields(shift)
        period, created = self._resolve_period(shift.scheduled_start.date(), profile, cadence)
        touched: list = [shift, period]

        previous: Optional[PayPeriod] = None
        if linked_id and linked_id != period.id:
            previous = self.store.get_period(linked_id)

        shift.pay_period_id = period.id
        self.calculator.update_pay_period(period, self._linked_shifts(period, shift), profile.base_rate_cents)

        if previous is not None:
            self.calculator.update_pay_period(previous, self._linked_shifts(previous, shift), profile.base_rate_cents)
            touched.append(previous)

        try:
            self.store.save(*touched)
        except PersistenceError:
            shift.pay_period_id, shift.paid_minutes, shift.premium_minutes = snapshot
            raise
        if created:
            logger.info("pay_period_created", owner_id=profile.id, start=str(period.start), end=str(period.end))
        logger.info(
            "shift_assigned",
            shift_id=shift.id,
            period_id=period.id,
            previous_period_id=previous.id if previous else None,
            paid_minutes=period.paid_minutes,
        )
        return period

    def recalculate_period(self, period: PayPeriod, base_rate_cents: Optional[int]) -> PayPeriod:
        shifts = self.store.shifts_for_period(period.id)
        self.calculator.update_pay_period(period, shifts, base_rate_cents)
        self.store.save(period)
        return period

    def recalculate_all(self, owner_id: str, base_rate_cents: Optional[int] = None) -> List[PayPeriod]:
        periods = self.store.periods_for_owner(owner_id)
        touched: list = []
        for period in periods:
            shifts = self.store.shifts_for_period(period.id)
            for shift in shifts:
                self.calculator.update_calculated_fields(shift)
            self.calculator.update_pay_period(period, shifts, base_rate_cents)
            touched.extend(shifts)
            touched.append(period)
        self.store.save(*touched)
        logger.info("pay_periods_recalculated", owner_id=owner_id, periods=len(periods))
        return periods

    def current_period(self, owner_id: str, cadence: Optional[Cadence] = None) -> PayPeriod:
        return self.find_or_create_period(self.clock().date(), owner_id, cadence)

    def recent_periods(self, owner_id: str, count: int = 6) -> List[PayPeriod]:
        periods = self.store.periods_for_owner(owner_id)
        return list(reversed(periods))[:count]
