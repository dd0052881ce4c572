from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from shiftpay.errors import ValidationCode, ValidationError
from shiftpay.models import PatternKind, SchedulePattern, Shift, ShiftStatus
from shiftpay.validation import ShiftValidator


def shift_at(start_hour: int, hours: int, **kwargs) -> Shift:
    start = datetime(2024, 1, 2, start_hour, 0)
    return Shift(
        id=kwargs.pop("id", f"s{start_hour}"),
        owner_id=kwargs.pop("owner_id", "owner-1"),
        scheduled_start=start,
        scheduled_end=start + timedelta(hours=hours),
        **kwargs,
    )


def codes_for(shift: Shift, others=(), validator: ShiftValidator | None = None):
    with pytest.raises(ValidationError) as excinfo:
        (validator or ShiftValidator()).validate_shift(shift, others)
    return excinfo.value.code


def test_valid_shift_passes():
    ShiftValidator().validate_shift(shift_at(9, 8, break_minutes=30, rate_multiplier=1.5))


def test_duration_limits():
    assert codes_for(shift_at(9, 0)) == ValidationCode.INVALID_DURATION
    assert codes_for(shift_at(9, 25)) == ValidationCode.INVALID_DURATION
    assert codes_for(shift_at(9, 13), validator=ShiftValidator(max_duration_hours=12)) == ValidationCode.INVALID_DURATION


def test_break_limits():
    assert codes_for(shift_at(9, 1, break_minutes=60)) == ValidationCode.INVALID_BREAK
    assert codes_for(shift_at(9, 1, break_minutes=-1)) == ValidationCode.INVALID_BREAK


def test_rate_limits():
    assert codes_for(shift_at(9, 8, rate_multiplier=0.5)) == ValidationCode.INVALID_RATE_MULTIPLIER
    assert codes_for(shift_at(9, 8, rate_multiplier=2.5)) == ValidationCode.INVALID_RATE_MULTIPLIER
    ShiftValidator(max_rate_multiplier=3.0).validate_shift(shift_at(9, 8, rate_multiplier=2.5))


def test_overlap_is_rejected_with_other_start_in_message():
    existing = shift_at(9, 8, id="existing")

    with pytest.raises(ValidationError) as excinfo:
        ShiftValidator().validate_shift(shift_at(16, 4), [existing])

    assert excinfo.value.code == ValidationCode.OVERLAPPING_SHIFT
    assert "2024-01-02 09:00" in excinfo.value.message


def test_back_to_back_and_ignored_shifts_do_not_overlap():
    validator = ShiftValidator()
    candidate = shift_at(9, 8, id="candidate")
    cancelled = shift_at(10, 2, id="cancelled", status=ShiftStatus.CANCELLED)
    deleted = shift_at(10, 2, id="deleted", deleted_at=datetime(2024, 1, 1))
    other_owner = shift_at(10, 2, id="other", owner_id="owner-2")

    validator.validate_shift(candidate, [shift_at(17, 2, id="after"), shift_at(5, 4, id="before")])
    validator.validate_shift(candidate, [cancelled, deleted, other_owner, candidate])


def test_inactive_pattern_is_not_usable():
    pattern = SchedulePattern(
        id="p", owner_id="owner-1", name="Old", kind=PatternKind.WEEKLY, start_minute=0, duration_minutes=60, is_active=False
    )

    with pytest.raises(ValidationError) as excinfo:
        ShiftValidator.validate_pattern_usable(pattern)

    assert excinfo.value.code == ValidationCode.INACTIVE_PATTERN


def test_clock_out_must_follow_clock_in():
    shift = shift_at(9, 8)
    shift.actual_start = datetime(2024, 1, 2, 9, 0)

    with pytest.raises(ValidationError):
        ShiftValidator.validate_clock_times(shift, None, datetime(2024, 1, 2, 8, 59))

    ShiftValidator.validate_clock_times(shift, None, datetime(2024, 1, 2, 17, 0))


def test_validation_errors_compare_by_code_and_message():
    assert ValidationError(ValidationCode.INVALID_BREAK) == ValidationError(ValidationCode.INVALID_BREAK)
    assert ValidationError(ValidationCode.INVALID_BREAK) != ValidationError(ValidationCode.INVALID_BREAK, "other")
    assert ValidationError(ValidationCode.INVALID_BREAK).message == "Break duration is invalid."
