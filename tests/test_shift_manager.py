from datetime import date, datetime

import pytest

from shiftpay.errors import NotFoundError, ValidationCode, ValidationError
from shiftpay.models import PatternDefinition, PatternKind, ShiftStatus, Weekday
from shiftpay.templates import parse_rotation

OFFICE = PatternDefinition(
    name="Office",
    kind=PatternKind.WEEKLY,
    start_minute=9 * 60,
    duration_minutes=480,
    break_minutes=30,
    weekdays={Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY},
    anchor_date=date(2024, 1, 1),
)


def test_create_shift_links_period(manager, store):
    shift = manager.create_shift("owner-1", datetime(2024, 1, 2, 8, 0), datetime(2024, 1, 2, 16, 30), break_minutes=30)

    stored = store.get_shift(shift.id)
    period = store.get_period(stored.pay_period_id)
    assert stored.paid_minutes == 480
    assert (period.start, period.end) == (date(2024, 1, 1), date(2024, 1, 14))
    assert period.paid_minutes == 480
    assert period.estimated_pay_cents == 16000


def test_create_shift_for_unknown_owner(manager):
    with pytest.raises(NotFoundError):
        manager.create_shift("nobody", datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 16))


def test_overlapping_shift_is_rejected(manager, store):
    manager.create_shift("owner-1", datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 16))

    with pytest.raises(ValidationError) as excinfo:
        manager.create_shift("owner-1", datetime(2024, 1, 2, 15), datetime(2024, 1, 2, 20))

    assert excinfo.value.code == ValidationCode.OVERLAPPING_SHIFT
    assert len(store.shifts_between("owner-1", datetime(2024, 1, 1), datetime(2024, 1, 3))) == 1


def test_clock_in_and_out_uses_actual_times(manager, store):
    shift = manager.create_shift("owner-1", datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 16), break_minutes=30)

    manager.clock_in(shift.id, datetime(2024, 1, 2, 8, 5))
    done = manager.clock_out(shift.id, datetime(2024, 1, 2, 16, 5))

    assert done.status == ShiftStatus.COMPLETED
    assert done.paid_minutes == 450
    assert store.get_period(done.pay_period_id).paid_minutes == 450


def test_clock_out_before_clock_in_time_is_rejected(manager):
    shift = manager.create_shift("owner-1", datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 16))
    manager.clock_in(shift.id, datetime(2024, 1, 2, 8, 0))

    with pytest.raises(ValidationError) as excinfo:
        manager.clock_out(shift.id, datetime(2024, 1, 2, 7, 0))

    assert excinfo.value.code == ValidationCode.INVALID_DURATION


def test_clock_in_defaults_to_clock(manager):
    shift = manager.create_shift("owner-1", datetime(2024, 1, 10, 8), datetime(2024, 1, 10, 16))

    started = manager.clock_in(shift.id)

    assert started.actual_start == datetime(2024, 1, 10, 12, 0)
    assert started.status == ShiftStatus.IN_PROGRESS


def test_clock_out_without_clock_in_is_invalid(manager):
    shift = manager.create_shift("owner-1", datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 16))

    with pytest.raises(ValidationError) as excinfo:
        manager.clock_out(shift.id, datetime(2024, 1, 2, 16))

    assert excinfo.value.code == ValidationCode.INVALID_TRANSITION


def test_cancel_persists_status(manager, store):
    shift = manager.create_shift("owner-1", datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 16))

    manager.cancel_shift(shift.id)

    assert store.get_shift(shift.id).status == ShiftStatus.CANCELLED


def test_cancel_removes_shift_from_period_totals(manager, store):
    shift = manager.create_shift("owner-1", datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 16))
    assert store.get_period(shift.pay_period_id).paid_minutes == 480

    manager.cancel_shift(shift.id)

    period = store.get_period(shift.pay_period_id)
    assert period.paid_minutes == 0
    assert period.premium_minutes == 0
    assert period.estimated_pay_cents == 0
    assert manager.period_breakdown(period) == []


def test_recalculate_keeps_cancelled_shifts_out(manager, store):
    kept = manager.create_shift("owner-1", datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 16))
    cancelled = manager.create_shift("owner-1", datetime(2024, 1, 3, 8), datetime(2024, 1, 3, 16))
    manager.cancel_shift(cancelled.id)

    [period] = manager.recalculate_pay_periods("owner-1")

    assert period.id == kept.pay_period_id
    assert period.paid_minutes == 480
    assert period.estimated_pay_cents == 16000
    assert manager.hours_summary("owner-1", date(2024, 1, 1), date(2024, 1, 14), completed_only=False).total_paid_minutes == 480


def test_delete_hides_shift_and_updates_period(manager, store):
    shift = manager.create_shift("owner-1", datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 16))

    manager.delete_shift(shift.id)

    assert store.get_shift(shift.id) is None
    assert store.get_period(shift.pay_period_id).paid_minutes == 0
    with pytest.raises(NotFoundError):
        manager.delete_shift(shift.id)


def test_update_shift_moves_between_periods(manager, store):
    shift = manager.create_shift("owner-1", datetime(2024, 1, 12, 8), datetime(2024, 1, 12, 16))
    old_period_id = shift.pay_period_id

    moved = manager.update_shift(
        shift.id,
        scheduled_start=datetime(2024, 1, 16, 8),
        scheduled_end=datetime(2024, 1, 16, 18),
        rate_multiplier=1.5,
        notes="Covering",
    )

    assert moved.pay_period_id != old_period_id
    assert store.get_period(old_period_id).paid_minutes == 0
    new_period = store.get_period(moved.pay_period_id)
    assert new_period.start == date(2024, 1, 15)
    assert new_period.premium_minutes == 600
    assert store.get_shift(shift.id).notes == "Covering"


def test_commit_generated_skips_overlaps(manager, store):
    manager.create_shift("owner-1", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11))
    pattern = manager.save_pattern(OFFICE, "owner-1")

    result = manager.commit_generated(pattern, date(2024, 1, 1), date(2024, 1, 8))

    assert len(result.created) == 4
    assert len(result.skipped) == 1
    assert result.skipped[0].scheduled_start == datetime(2024, 1, 1, 9, 0)
    period = store.find_period_containing("owner-1", date(2024, 1, 3))
    assert period.paid_minutes == 4 * 450 + 60


def test_commit_generated_twice_does_not_duplicate(manager, store):
    pattern = manager.save_pattern(OFFICE, "owner-1")

    manager.commit_generated(pattern, date(2024, 1, 1), date(2024, 1, 8))
    again = manager.commit_generated(pattern, date(2024, 1, 1), date(2024, 1, 8))

    assert again.created == []
    assert len(again.skipped) == 5


def test_inactive_pattern_cannot_generate(manager, store):
    pattern = manager.save_pattern(OFFICE, "owner-1")
    pattern.is_active = False
    store.save(pattern)

    with pytest.raises(ValidationError) as excinfo:
        manager.commit_generated(manager.require_pattern(pattern.id), date(2024, 1, 1), date(2024, 1, 8))

    assert excinfo.value.code == ValidationCode.INACTIVE_PATTERN


def test_saved_rotating_pattern_round_trips(manager):
    definition = PatternDefinition(
        name="Plant",
        kind=PatternKind.ROTATING,
        start_minute=7 * 60,
        duration_minutes=720,
        rotation_days=parse_rotation("11110000"),
        anchor_date=date(2024, 1, 1),
    )

    pattern = manager.save_pattern(definition, "owner-1")
    loaded = manager.require_pattern(pattern.id)

    assert loaded.cycle_length == 8
    assert [d.is_work_day for d in loaded.rotation_days] == [True] * 4 + [False] * 4
    assert manager.patterns.rotation_index(loaded, date(2024, 1, 11)) == 2


def test_create_shift_from_pattern_on_off_day_uses_defaults(manager):
    pattern = manager.save_pattern(OFFICE, "owner-1")

    shift = manager.create_shift_from_pattern(pattern, date(2024, 1, 6))

    assert shift.scheduled_start == datetime(2024, 1, 6, 9, 0)
    assert shift.paid_minutes == 450
    assert shift.pattern_id == pattern.id


def test_hours_summary_counts_completed_by_default(manager):
    first = manager.create_shift("owner-1", datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 16))
    manager.create_shift("owner-1", datetime(2024, 1, 3, 8), datetime(2024, 1, 3, 16))
    manager.clock_in(first.id, datetime(2024, 1, 2, 8))
    manager.clock_out(first.id, datetime(2024, 1, 2, 16))

    completed = manager.hours_summary("owner-1", date(2024, 1, 1), date(2024, 1, 7))
    everything = manager.hours_summary("owner-1", date(2024, 1, 1), date(2024, 1, 7), completed_only=False)

    assert completed.total_paid_minutes == 480
    assert everything.total_paid_minutes == 960
    assert everything.estimated_pay_cents == 32000


def test_period_breakdown_and_recalculate(manager):
    manager.create_shift("owner-1", datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 16))
    manager.create_shift("owner-1", datetime(2024, 1, 6, 8), datetime(2024, 1, 6, 12), rate_multiplier=2.0)

    period = manager.current_pay_period("owner-1")
    buckets = manager.period_breakdown(period)
    [recalculated] = manager.recalculate_pay_periods("owner-1")

    assert [(b.label, b.minutes) for b in buckets] == [("Regular", 480), ("Bank Holiday", 240)]
    assert recalculated.paid_minutes == 720
    assert recalculated.estimated_pay_cents == 16000 + 16000
