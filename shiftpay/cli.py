from __future__ import annotations
import argparse
import sys
from datetime import date, datetime, timedelta
from typing import List, Set

from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .errors import NotFoundError, PersistenceError, ValidationError
from .models import Cadence, PatternDefinition, PatternKind, Profile, RotationDay, Weekday
from .overtime import OvertimeProjector, OvertimeThreshold
from .pay_periods import period_bounds
from .shift_manager import ShiftManager
from .storage import DataStore
from .templates import TEMPLATES, get_template, parse_rotation
from .validation import ShiftValidator
from .views import (
    format_breakdown,
    format_calendar,
    format_cents,
    format_period,
    format_prediction,
    format_preview,
    format_shifts,
    format_summary,
)


def store_from_args(args: argparse.Namespace) -> DataStore:
    return DataStore.from_url(args.database_url or args.settings.database_url)


def manager_from_args(args: argparse.Namespace) -> ShiftManager:
    settings: Settings = args.settings
    validator = ShiftValidator(
        max_duration_hours=settings.max_shift_hours,
        max_rate_multiplier=settings.max_rate_multiplier,
    )
    return ShiftManager(store_from_args(args), validator=validator)


# Argument types: argparse turns ArgumentTypeError into a usage error (exit 2).

def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a date (YYYY-MM-DD): {value!r}") from None


def parse_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a date and time (YYYY-MM-DDTHH:MM): {value!r}") from None


def parse_minute_of_day(value: str) -> int:
    hours, _, minutes = value.partition(":")
    try:
        return int(hours) * 60 + int(minutes or 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a time of day (HH:MM): {value!r}") from None


def parse_weekdays(value: str) -> Set[Weekday]:
    try:
        return {Weekday.parse(day) for day in value.split(",") if day.strip()}
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def parse_cycle(value: str) -> List[RotationDay]:
    try:
        return parse_rotation(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def cmd_init_profile(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    rate_cents = round(args.rate * 100) if args.rate is not None else None
    profile = Profile(
        id=args.owner,
        name=args.name,
        cadence=Cadence(args.cadence),
        reference_date=args.reference,
        base_rate_cents=rate_cents,
        regular_hours_per_period=args.hours_per_period,
    )
    store.save(profile)
    print(f"Saved profile {profile.id} ({profile.cadence.value}, rate {format_cents(profile.base_rate_cents)}/h)")


def definition_from_args(args: argparse.Namespace) -> PatternDefinition:
    if args.template:
        definition = get_template(args.template)
        if args.name:
            definition.name = args.name
        if args.anchor:
            definition.anchor_date = args.anchor
        return definition
    return PatternDefinition(
        name=args.name or "Custom pattern",
        kind=PatternKind(args.kind),
        start_minute=args.start,
        duration_minutes=args.duration,
        break_minutes=args.break_minutes,
        weekdays=args.weekdays or set(),
        rotation_days=args.rotation or [],
        anchor_date=args.anchor,
    )


def cmd_add_pattern(args: argparse.Namespace) -> None:
    manager = manager_from_args(args)
    pattern = manager.save_pattern(definition_from_args(args), args.owner)
    print(f"Added pattern {pattern.id} ({pattern.name})")


def cmd_templates(args: argparse.Namespace) -> None:
    for key, definition in sorted(TEMPLATES.items()):
        cycle = f"{len(definition.rotation_days)}-day cycle" if definition.rotation_days else "weekly"
        print(f"{key:<18} {definition.name} ({cycle})")


def cmd_preview(args: argparse.Namespace) -> None:
    manager = manager_from_args(args)
    definition = definition_from_args(args)
    manager.patterns.ensure_valid(definition)
    print(format_preview(manager.patterns.preview(definition, args.start_date, args.end_date)))


def cmd_generate(args: argparse.Namespace) -> None:
    manager = manager_from_args(args)
    pattern = manager.require_pattern(args.pattern)
    result = manager.commit_generated(pattern, args.start_date, args.end_date)
    print(f"Generated {len(result.created)} shifts, skipped {len(result.skipped)} overlapping")


def cmd_add_shift(args: argparse.Namespace) -> None:
    manager = manager_from_args(args)
    break_minutes = args.break_minutes if args.break_minutes is not None else args.settings.default_break_minutes
    shift = manager.create_shift(
        args.owner,
        args.start,
        args.end,
        break_minutes=break_minutes,
        rate_multiplier=args.rate,
        rate_label=args.label,
        notes=args.notes,
    )
    print(f"Created shift {shift.id} for {shift.paid_hours:.2f} paid hours")


def cmd_shifts(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    start = datetime.combine(args.start_date, datetime.min.time())
    end = datetime.combine(args.end_date + timedelta(days=1), datetime.min.time())
    print(format_shifts(store.shifts_between(args.owner, start, end)))


def cmd_clock_in(args: argparse.Namespace) -> None:
    shift = manager_from_args(args).clock_in(args.id, args.at)
    print(f"Clocked in {shift.id} at {shift.actual_start:%Y-%m-%d %H:%M}")


def cmd_clock_out(args: argparse.Namespace) -> None:
    shift = manager_from_args(args).clock_out(args.id, args.at)
    print(f"Clocked out {shift.id}: {shift.paid_hours:.2f} paid hours")


def cmd_cancel(args: argparse.Namespace) -> None:
    shift = manager_from_args(args).cancel_shift(args.id)
    print(f"Cancelled shift {shift.id}")


def cmd_delete_shift(args: argparse.Namespace) -> None:
    shift = manager_from_args(args).delete_shift(args.id)
    print(f"Deleted shift {shift.id}")


def cmd_period(args: argparse.Namespace) -> None:
    manager = manager_from_args(args)
    if args.bounds_only:
        profile = manager.store.require_profile(args.owner)
        bounds = period_bounds(args.date, profile.cadence, profile.reference_date)
        print(f"{bounds.start.isoformat()} - {bounds.end.isoformat()}")
        return
    if args.date:
        with manager.serializer.hold(args.owner):
            period = manager.periods.find_or_create_period(args.date, args.owner)
    else:
        period = manager.current_pay_period(args.owner)
    print(format_period(period))


def cmd_summary(args: argparse.Namespace) -> None:
    manager = manager_from_args(args)
    summary = manager.hours_summary(args.owner, args.start_date, args.end_date, completed_only=not args.all)
    print(format_summary(summary))


def cmd_breakdown(args: argparse.Namespace) -> None:
    manager = manager_from_args(args)
    with manager.serializer.hold(args.owner):
        period = manager.periods.find_or_create_period(args.date or manager.clock().date(), args.owner)
    print(format_breakdown(manager.period_breakdown(period)))


def cmd_predict(args: argparse.Namespace) -> None:
    settings: Settings = args.settings
    manager = manager_from_args(args)
    profile = manager.store.require_profile(args.owner)
    today = args.date or manager.clock().date()
    with manager.serializer.hold(args.owner):
        period = manager.periods.find_or_create_period(today, args.owner)
    thresholds = OvertimeThreshold(warning_hours=settings.warning_hours, critical_hours=settings.critical_hours)
    target = args.target or profile.regular_hours_per_period or settings.target_hours
    prediction = OvertimeProjector().predict(period, target_hours=target, thresholds=thresholds, today=today)
    print(format_prediction(prediction))


def cmd_recalculate(args: argparse.Namespace) -> None:
    periods = manager_from_args(args).recalculate_pay_periods(args.owner)
    print(f"Recalculated {len(periods)} pay periods")


def cmd_calendar(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    start = datetime(args.year, args.month, 1)
    end = (start + timedelta(days=32)).replace(day=1)
    print(format_calendar(store.shifts_between(args.owner, start, end), args.year, args.month))


def add_pattern_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--template", choices=sorted(TEMPLATES), help="Start from a built-in pattern")
    parser.add_argument("--name")
    parser.add_argument("--kind", choices=[k.value for k in PatternKind], default=PatternKind.WEEKLY.value)
    parser.add_argument("--start", type=parse_minute_of_day, default="09:00", help="Start time of day, HH:MM")
    parser.add_argument("--duration", type=int, default=480, help="Shift length in minutes")
    parser.add_argument("--break", dest="break_minutes", type=int, default=0, help="Unpaid break in minutes")
    parser.add_argument("--weekdays", type=parse_weekdays, help="Comma separated, e.g. mon,tue,wed")
    parser.add_argument("--rotation", type=parse_cycle, help="Work/off cycle as 1s and 0s, e.g. 11110000")
    parser.add_argument("--anchor", type=parse_date, help="Date the rotation cycle starts on")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Shift schedule and pay period CLI")
    parser.add_argument("--database-url", help="Overrides SHIFTPAY_DATABASE_URL")
    parser.add_argument("--owner", default="default", help="Profile id")
    sub = parser.add_subparsers(dest="command", required=True)

    profile = sub.add_parser("init-profile", help="Create or update the pay profile")
    profile.add_argument("--name")
    profile.add_argument("--cadence", choices=[c.value for c in Cadence], default=Cadence.BIWEEKLY.value)
    profile.add_argument("--reference", type=parse_date, help="Anchor date for biweekly periods")
    profile.add_argument("--rate", type=float, help="Base hourly rate, e.g. 25.50")
    profile.add_argument("--hours-per-period", type=int, default=80)
    profile.set_defaults(func=cmd_init_profile)

    add_pattern = sub.add_parser("add-pattern", help="Save a recurring schedule")
    add_pattern_arguments(add_pattern)
    add_pattern.set_defaults(func=cmd_add_pattern)

    templates = sub.add_parser("templates", help="List built-in patterns")
    templates.set_defaults(func=cmd_templates)

    preview = sub.add_parser("preview", help="Show the shifts a pattern would produce")
    preview.add_argument("start_date", type=parse_date)
    preview.add_argument("end_date", type=parse_date, help="Exclusive")
    add_pattern_arguments(preview)
    preview.set_defaults(func=cmd_preview)

    generate = sub.add_parser("generate", help="Create shifts from a saved pattern")
    generate.add_argument("pattern")
    generate.add_argument("start_date", type=parse_date)
    generate.add_argument("end_date", type=parse_date, help="Exclusive")
    generate.set_defaults(func=cmd_generate)

    add_shift = sub.add_parser("add-shift", help="Create a one-off shift")
    add_shift.add_argument("start", type=parse_datetime, help="ISO datetime")
    add_shift.add_argument("end", type=parse_datetime, help="ISO datetime")
    add_shift.add_argument("--break", dest="break_minutes", type=int)
    add_shift.add_argument("--rate", type=float, default=1.0)
    add_shift.add_argument("--label")
    add_shift.add_argument("--notes")
    add_shift.set_defaults(func=cmd_add_shift)

    shifts = sub.add_parser("shifts", help="List shifts in a date range")
    shifts.add_argument("start_date", type=parse_date)
    shifts.add_argument("end_date", type=parse_date, help="Inclusive")
    shifts.set_defaults(func=cmd_shifts)

    clock_in = sub.add_parser("clock-in", help="Start a shift")
    clock_in.add_argument("id")
    clock_in.add_argument("--at", type=parse_datetime)
    clock_in.set_defaults(func=cmd_clock_in)

    clock_out = sub.add_parser("clock-out", help="Finish a shift")
    clock_out.add_argument("id")
    clock_out.add_argument("--at", type=parse_datetime)
    clock_out.set_defaults(func=cmd_clock_out)

    cancel = sub.add_parser("cancel", help="Cancel a shift")
    cancel.add_argument("id")
    cancel.set_defaults(func=cmd_cancel)

    delete = sub.add_parser("delete-shift", help="Delete a shift")
    delete.add_argument("id")
    delete.set_defaults(func=cmd_delete_shift)

    period = sub.add_parser("period", help="Show the pay period covering a date")
    period.add_argument("date", nargs="?", type=parse_date)
    period.add_argument("--bounds-only", action="store_true", help="Print bounds without touching the store")
    period.set_defaults(func=cmd_period)

    summary = sub.add_parser("summary", help="Hours and pay between two dates")
    summary.add_argument("start_date", type=parse_date)
    summary.add_argument("end_date", type=parse_date, help="Inclusive")
    summary.add_argument("--all", action="store_true", help="Include shifts that are not completed")
    summary.set_defaults(func=cmd_summary)

    breakdown = sub.add_parser("breakdown", help="Hours by rate for a pay period")
    breakdown.add_argument("date", nargs="?", type=parse_date)
    breakdown.set_defaults(func=cmd_breakdown)

    predict = sub.add_parser("predict", help="Project overtime for the current period")
    predict.add_argument("--target", type=float)
    predict.add_argument("--date", type=parse_date, help="Treat this date as today")
    predict.set_defaults(func=cmd_predict)

    recalculate = sub.add_parser("recalculate", help="Rebuild every pay period total")
    recalculate.set_defaults(func=cmd_recalculate)

    calendar = sub.add_parser("calendar", help="Render calendar view")
    calendar.add_argument("year", type=int)
    calendar.add_argument("month", type=int, choices=range(1, 13), metavar="MONTH")
    calendar.set_defaults(func=cmd_calendar)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "period" and args.bounds_only and not args.date:
        parser.error("period --bounds-only needs a date")
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    args.settings = settings
    try:
        args.func(args)
    except ValidationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        raise SystemExit(2) from exc
    except NotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    except PersistenceError as exc:
        print("Error: could not reach the shift store, please try again.", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
