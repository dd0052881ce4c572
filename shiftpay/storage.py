from __future__ import annotations
from datetime import date, datetime
from typing import Callable, List, Optional, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from .db.session import create_session_factory, session_scope
from .db.tables import PayPeriodRow, ProfileRow, RotationDayRow, SchedulePatternRow, ShiftRow
from .errors import NotFoundError
from .models import (
    Cadence,
    PatternKind,
    PayPeriod,
    Profile,
    RotationDay,
    SchedulePattern,
    Shift,
    ShiftStatus,
    Weekday,
)

T = TypeVar("T")

# Parents before children so foreign keys resolve within one flush.
SAVE_ORDER = {Profile: 0, SchedulePattern: 1, PayPeriod: 2, Shift: 3}


class DataStore:
    """Relational store for profiles, patterns, shifts and pay periods.

    Every read hides soft-deleted rows. ``save`` writes all the entities it is
    given in a single transaction, so a failure leaves nothing half-written.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "DataStore":
        return cls(create_session_factory(database_url))

    # -- writes -----------------------------------------------------------

    def save(self, *entities) -> None:
        ordered = sorted(entities, key=lambda e: SAVE_ORDER.get(type(e), len(SAVE_ORDER)))
        with session_scope(self.session_factory, "save to") as session:
            for entity in ordered:
                self._upsert(session, entity)
                session.flush()

    def _upsert(self, session: Session, entity) -> None:
        if isinstance(entity, Profile):
            row = session.get(ProfileRow, entity.id) or ProfileRow(id=entity.id)
            self._apply_profile(row, entity)
        elif isinstance(entity, SchedulePattern):
            row = session.get(SchedulePatternRow, entity.id) or SchedulePatternRow(id=entity.id)
            self._apply_pattern(session, row, entity)
        elif isinstance(entity, PayPeriod):
            row = session.get(PayPeriodRow, entity.id) or PayPeriodRow(id=entity.id)
            self._apply_period(row, entity)
        elif isinstance(entity, Shift):
            row = session.get(ShiftRow, entity.id) or ShiftRow(id=entity.id)
            self._apply_shift(row, entity)
        else:
            raise TypeError(f"Type {type(entity)} cannot be stored")
        session.add(row)

    # -- reads ------------------------------------------------------------

    def _read(self, query: Callable[[Session], T]) -> T:
        with session_scope(self.session_factory) as session:
            return query(session)

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        def query(session: Session) -> Optional[Profile]:
            row = session.get(ProfileRow, profile_id)
            return self._deserialize_profile(row) if row else None

        return self._read(query)

    def require_profile(self, profile_id: str) -> Profile:
        profile = self.get_profile(profile_id)
        if profile is None:
            raise NotFoundError("Profile", profile_id)
        return profile

    def list_profiles(self) -> List[Profile]:
        return self._read(
            lambda session: [self._deserialize_profile(r) for r in session.query(ProfileRow).order_by(ProfileRow.id)]
        )

    def get_pattern(self, pattern_id: str) -> Optional[SchedulePattern]:
        def query(session: Session) -> Optional[SchedulePattern]:
            row = session.get(SchedulePatternRow, pattern_id)
            if row is None or row.deleted_at is not None:
                return None
            return self._deserialize_pattern(row)

        return self._read(query)

    def patterns_for_owner(self, owner_id: str) -> List[SchedulePattern]:
        def query(session: Session) -> List[SchedulePattern]:
            rows = (
                session.query(SchedulePatternRow)
                .filter(SchedulePatternRow.owner_id == owner_id, SchedulePatternRow.deleted_at.is_(None))
                .order_by(SchedulePatternRow.name)
            )
            return [self._deserialize_pattern(r) for r in rows]

        return self._read(query)

    def get_shift(self, shift_id: str) -> Optional[Shift]:
        def query(session: Session) -> Optional[Shift]:
            row = session.get(ShiftRow, shift_id)
            if row is None or row.deleted_at is not None:
                return None
            return self._deserialize_shift(row)

        return self._read(query)

    def require_shift(self, shift_id: str) -> Shift:
        shift = self.get_shift(shift_id)
        if shift is None:
            raise NotFoundError("Shift", shift_id)
        return shift

    def shifts_for_period(self, period_id: str) -> List[Shift]:
        def query(session: Session) -> List[Shift]:
            rows = (
                session.query(ShiftRow)
                .filter(ShiftRow.pay_period_id == period_id, ShiftRow.deleted_at.is_(None))
                .order_by(ShiftRow.scheduled_start, ShiftRow.id)
            )
            return [self._deserialize_shift(r) for r in rows]

        return self._read(query)

    def shifts_between(self, owner_id: str, start: datetime, end: datetime) -> List[Shift]:
        """Shifts whose scheduled interval intersects [start, end)."""

        def query(session: Session) -> List[Shift]:
            rows = (
                session.query(ShiftRow)
                .filter(
                    ShiftRow.owner_id == owner_id,
                    ShiftRow.deleted_at.is_(None),
                    ShiftRow.scheduled_start < end,
                    ShiftRow.scheduled_end > start,
                )
                .order_by(ShiftRow.scheduled_start, ShiftRow.id)
            )
            return [self._deserialize_shift(r) for r in rows]

        return self._read(query)

    def get_period(self, period_id: str) -> Optional[PayPeriod]:
        def query(session: Session) -> Optional[PayPeriod]:
            row = session.get(PayPeriodRow, period_id)
            if row is None or row.deleted_at is not None:
                return None
            return self._deserialize_period(row)

        return self._read(query)

    def find_period_containing(self, owner_id: str, day: date) -> Optional[PayPeriod]:
        def query(session: Session) -> Optional[PayPeriod]:
            row = (
                session.query(PayPeriodRow)
                .filter(
                    PayPeriodRow.owner_id == owner_id,
                    PayPeriodRow.deleted_at.is_(None),
                    PayPeriodRow.start_date <= day,
                    PayPeriodRow.end_date >= day,
                )
                .order_by(PayPeriodRow.start_date)
                .first()
            )
            return self._deserialize_period(row) if row else None

        return self._read(query)

    def periods_for_owner(self, owner_id: str) -> List[PayPeriod]:
        def query(session: Session) -> List[PayPeriod]:
            rows = (
                session.query(PayPeriodRow)
                .filter(PayPeriodRow.owner_id == owner_id, PayPeriodRow.deleted_at.is_(None))
                .order_by(PayPeriodRow.start_date)
            )
            return [self._deserialize_period(r) for r in rows]

        return self._read(query)

    # -- row mapping ------------------------------------------------------

    @staticmethod
    def _weekday_mask(weekdays) -> int:
        mask = 0
        for weekday in weekdays:
            mask |= 1 << int(weekday)
        return mask

    @staticmethod
    def _weekdays_from_mask(mask: int) -> set:
        return {weekday for weekday in Weekday if mask & (1 << int(weekday))}

    @staticmethod
    def _apply_profile(row: ProfileRow, profile: Profile) -> None:
        row.name = profile.name
        row.cadence = profile.cadence.value
        row.reference_date = profile.reference_date
        row.base_rate_cents = profile.base_rate_cents
        row.regular_hours_per_period = profile.regular_hours_per_period

    @staticmethod
    def _deserialize_profile(row: ProfileRow) -> Profile:
        return Profile(
            id=row.id,
            name=row.name,
            cadence=Cadence(row.cadence),
            reference_date=row.reference_date,
            base_rate_cents=row.base_rate_cents,
            regular_hours_per_period=row.regular_hours_per_period,
        )

    def _apply_pattern(self, session: Session, row: SchedulePatternRow, pattern: SchedulePattern) -> None:
        row.owner_id = pattern.owner_id
        row.name = pattern.name
        row.kind = pattern.kind.value
        row.start_minute = pattern.start_minute
        row.duration_minutes = pattern.duration_minutes
        row.break_minutes = pattern.break_minutes
        row.weekday_mask = self._weekday_mask(pattern.weekdays)
        row.anchor_date = pattern.anchor_date
        row.is_active = pattern.is_active
        row.notes = pattern.notes
        row.deleted_at = pattern.deleted_at
        # Rotation days are owned by the pattern and replaced wholesale.
        row.rotation_days = []
        session.flush()
        row.rotation_days = [
            RotationDayRow(
                position=day.index,
                is_work_day=day.is_work_day,
                name=day.name,
                start_minute=day.start_minute,
                duration_minutes=day.duration_minutes,
            )
            for day in pattern.sorted_rotation_days
        ]

    def _deserialize_pattern(self, row: SchedulePatternRow) -> SchedulePattern:
        return SchedulePattern(
            id=row.id,
            owner_id=row.owner_id,
            name=row.name,
            kind=PatternKind(row.kind),
            start_minute=row.start_minute,
            duration_minutes=row.duration_minutes,
            break_minutes=row.break_minutes,
            weekdays=self._weekdays_from_mask(row.weekday_mask),
            anchor_date=row.anchor_date,
            rotation_days=[
                RotationDay(
                    index=day.position,
                    is_work_day=day.is_work_day,
                    name=day.name,
                    start_minute=day.start_minute,
                    duration_minutes=day.duration_minutes,
                )
                for day in row.rotation_days
            ],
            is_active=row.is_active,
            notes=row.notes,
            deleted_at=row.deleted_at,
        )

    @staticmethod
    def _apply_period(row: PayPeriodRow, period: PayPeriod) -> None:
        row.owner_id = period.owner_id
        row.start_date = period.start
        row.end_date = period.end
        row.paid_minutes = period.paid_minutes
        row.premium_minutes = period.premium_minutes
        row.estimated_pay_cents = period.estimated_pay_cents
        row.deleted_at = period.deleted_at

    @staticmethod
    def _deserialize_period(row: PayPeriodRow) -> PayPeriod:
        return PayPeriod(
            id=row.id,
            owner_id=row.owner_id,
            start=row.start_date,
            end=row.end_date,
            paid_minutes=row.paid_minutes,
            premium_minutes=row.premium_minutes,
            estimated_pay_cents=row.estimated_pay_cents,
            deleted_at=row.deleted_at,
        )

    @staticmethod
    def _apply_shift(row: ShiftRow, shift: Shift) -> None:
        row.owner_id = shift.owner_id
        row.pattern_id = shift.pattern_id
        row.pay_period_id = shift.pay_period_id
        row.scheduled_start = shift.scheduled_start
        row.scheduled_end = shift.scheduled_end
        row.actual_start = shift.actual_start
        row.actual_end = shift.actual_end
        row.break_minutes = shift.break_minutes
        row.rate_multiplier = shift.rate_multiplier
        row.rate_label = shift.rate_label
        row.paid_minutes = shift.paid_minutes
        row.premium_minutes = shift.premium_minutes
        row.status = shift.status.value
        row.notes = shift.notes
        row.deleted_at = shift.deleted_at

    @staticmethod
    def _deserialize_shift(row: ShiftRow) -> Shift:
        return Shift(
            id=row.id,
            owner_id=row.owner_id,
            scheduled_start=row.scheduled_start,
            scheduled_end=row.scheduled_end,
            break_minutes=row.break_minutes,
            rate_multiplier=row.rate_multiplier,
            rate_label=row.rate_label,
            actual_start=row.actual_start,
            actual_end=row.actual_end,
            paid_minutes=row.paid_minutes,
            premium_minutes=row.premium_minutes,
            status=ShiftStatus(row.status),
            notes=row.notes,
            pattern_id=row.pattern_id,
            pay_period_id=row.pay_period_id,
            deleted_at=row.deleted_at,
        )
