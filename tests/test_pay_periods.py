import threading
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from shiftpay.errors import PersistenceError
from shiftpay.models import Cadence, Profile, Shift
from shiftpay.pay_periods import OwnerSerializer, PayPeriodEngine, PeriodBounds, period_bounds

from conftest import fixed_clock


def scenario_shift(day: date = date(2024, 1, 16)) -> Shift:
    start = datetime.combine(day, datetime.min.time()) + timedelta(hours=8)
    return Shift(
        id="shift-1",
        owner_id="owner-1",
        scheduled_start=start,
        scheduled_end=start + timedelta(hours=8, minutes=30),
        break_minutes=30,
        rate_multiplier=1.5,
    )


def test_biweekly_bounds_from_reference_date():
    bounds = period_bounds(date(2024, 1, 20), Cadence.BIWEEKLY, date(2024, 1, 1))

    assert bounds == PeriodBounds(date(2024, 1, 15), date(2024, 1, 28))
    assert bounds.length_days == 14


def test_biweekly_bounds_before_reference_date():
    bounds = period_bounds(date(2023, 12, 31), Cadence.BIWEEKLY, date(2024, 1, 1))

    assert bounds == PeriodBounds(date(2023, 12, 18), date(2023, 12, 31))


def test_weekly_and_monthly_bounds():
    assert period_bounds(date(2024, 1, 20), Cadence.WEEKLY) == PeriodBounds(date(2024, 1, 15), date(2024, 1, 21))
    assert period_bounds(datetime(2024, 2, 10, 9, 0), Cadence.MONTHLY) == PeriodBounds(date(2024, 2, 1), date(2024, 2, 29))


@pytest.mark.parametrize("cadence", list(Cadence))
def test_periods_tile_the_calendar(cadence):
    reference = date(2024, 1, 3)
    previous = None
    day = date(2023, 11, 1)
    while day < date(2024, 4, 1):
        bounds = period_bounds(day, cadence, reference)
        assert bounds.start <= day <= bounds.end
        if previous is not None and bounds != previous:
            assert bounds.start == previous.end + timedelta(days=1)
        previous = bounds
        day += timedelta(days=1)


def test_find_or_create_reuses_existing_period(store, profile):
    engine = PayPeriodEngine(store, clock=fixed_clock)

    first = engine.find_or_create_period(date(2024, 1, 3), profile.id)
    second = engine.find_or_create_period(datetime(2024, 1, 14, 23, 0), profile.id)

    assert first.id == second.id
    assert (first.start, first.end) == (date(2024, 1, 1), date(2024, 1, 14))
    assert len(store.periods_for_owner(profile.id)) == 1


def test_cadence_override_only_applies_to_new_periods(store, profile):
    engine = PayPeriodEngine(store, clock=fixed_clock)

    period = engine.find_or_create_period(date(2024, 2, 10), profile.id, Cadence.MONTHLY)

    assert (period.start, period.end) == (date(2024, 2, 1), date(2024, 2, 29))


def test_assign_to_period_is_idempotent(store, profile):
    engine = PayPeriodEngine(store, clock=fixed_clock)
    shift = scenario_shift()

    first = engine.assign_to_period(shift)
    second = engine.assign_to_period(shift)

    assert first.id == second.id
    assert (first.paid_minutes, first.premium_minutes, first.estimated_pay_cents) == (480, 480, 24000)
    assert (second.paid_minutes, second.premium_minutes, second.estimated_pay_cents) == (480, 480, 24000)
    assert store.get_shift(shift.id).pay_period_id == first.id
    assert len(store.periods_for_owner(profile.id)) == 1


def test_moving_shift_updates_both_periods(store, profile):
    engine = PayPeriodEngine(store, clock=fixed_clock)
    shift = scenario_shift()
    old = engine.assign_to_period(shift)

    shift.scheduled_start += timedelta(days=14)
    shift.scheduled_end += timedelta(days=14)
    new = engine.assign_to_period(shift)

    assert new.id != old.id
    assert new.start == date(2024, 1, 29)
    assert new.paid_minutes == 480
    assert store.get_period(old.id).paid_minutes == 0
    assert store.shifts_for_period(old.id) == []


def test_recalculate_all_repairs_stale_totals(store, profile):
    engine = PayPeriodEngine(store, clock=fixed_clock)
    period = engine.assign_to_period(scenario_shift())
    period.paid_minutes = 9999
    period.estimated_pay_cents = 1
    store.save(period)

    [recalculated] = engine.recalculate_all(profile.id, profile.base_rate_cents)

    assert recalculated.paid_minutes == 480
    assert store.get_period(period.id).estimated_pay_cents == 24000


def test_recent_periods_newest_first(store, profile):
    engine = PayPeriodEngine(store, clock=fixed_clock)
    for day in (date(2024, 1, 2), date(2024, 1, 20), date(2024, 2, 5)):
        engine.find_or_create_period(day, profile.id)

    starts = [p.start for p in engine.recent_periods(profile.id, count=2)]

    assert starts == [date(2024, 1, 29), date(2024, 1, 15)]


def test_current_period_uses_clock(store, profile):
    period = PayPeriodEngine(store, clock=fixed_clock).current_period(profile.id)

    assert period.is_current(date(2024, 1, 10))
    assert period.start == date(2024, 1, 1)


def test_biweekly_without_reference_starts_on_query_date(store):
    store.save(Profile(id="owner-2", cadence=Cadence.BIWEEKLY))

    period = PayPeriodEngine(store).find_or_create_period(date(2024, 3, 6), "owner-2")

    assert (period.start, period.end) == (date(2024, 3, 6), date(2024, 3, 19))


def test_serializer_hands_out_one_lock_per_owner():
    serializer = OwnerSerializer()

    assert serializer.lock_for("a") is serializer.lock_for("a")
    assert serializer.lock_for("a") is not serializer.lock_for("b")


def test_concurrent_find_or_create_creates_one_period(store, profile):
    engine = PayPeriodEngine(store, clock=fixed_clock)
    serializer = OwnerSerializer()
    ids = []

    def worker():
        with serializer.hold(profile.id):
            ids.append(engine.find_or_create_period(date(2024, 1, 5), profile.id).id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(set(ids)) == 1
    assert len(store.periods_for_owner(profile.id)) == 1


def test_storage_failures_surface_as_persistence_error(store, profile, monkeypatch):
    def broken_session():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(store, "session_factory", broken_session)

    with pytest.raises(PersistenceError) as excinfo:
        PayPeriodEngine(store).find_or_create_period(date(2024, 1, 5), profile.id)

    assert isinstance(excinfo.value.__cause__, OperationalError)


def test_failed_move_keeps_stored_link_and_retry_clears_old_period(store, profile, monkeypatch):
    engine = PayPeriodEngine(store, clock=fixed_clock)
    shift = scenario_shift()
    old = engine.assign_to_period(shift)
    save = store.save
    calls = []

    def save_fails_once(*entities):
        calls.append(entities)
        if len(calls) == 1:
            raise PersistenceError("Could not save to the shift store")
        return save(*entities)

    monkeypatch.setattr(store, "save", save_fails_once)
    shift.scheduled_start += timedelta(days=14)
    shift.scheduled_end += timedelta(days=14)

    with pytest.raises(PersistenceError):
        engine.assign_to_period(shift)

    assert shift.pay_period_id == old.id
    assert shift.paid_minutes == 480
    assert store.get_shift(shift.id).pay_period_id == old.id

    new = engine.assign_to_period(shift)

    assert new.start == date(2024, 1, 29)
    assert new.paid_minutes == 480
    assert store.get_period(old.id).paid_minutes == 0
    assert store.get_period(old.id).estimated_pay_cents == 0
