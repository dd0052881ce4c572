from __future__ import annotations
from copy import deepcopy
from typing import Dict, List, Sequence

from .models import PatternDefinition, PatternKind, RotationDay, Weekday


def rotation_pattern(work_days: Sequence[bool]) -> List[RotationDay]:
    return [
        RotationDay(index=index, is_work_day=is_work, name="Work" if is_work else "Off")
        for index, is_work in enumerate(work_days)
    ]


def parse_rotation(cycle: str) -> List[RotationDay]:
    """Build rotation days from a string like "11110000" (1 = work, 0 = off)."""
    days = []
    for char in cycle.strip():
        if char not in "01":
            raise ValueError(f"Rotation must contain only 0 and 1, got {cycle!r}")
        days.append(char == "1")
    return rotation_pattern(days)


WEEKDAYS_NINE_TO_FIVE = PatternDefinition(
    name="Weekdays 9-5",
    kind=PatternKind.WEEKLY,
    start_minute=9 * 60,
    duration_minutes=8 * 60,
    weekdays={Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY},
    notes="Standard weekday schedule.",
)

FOUR_ON_FOUR_OFF = PatternDefinition(
    name="4-on / 4-off",
    kind=PatternKind.ROTATING,
    start_minute=7 * 60,
    duration_minutes=12 * 60,
    rotation_days=parse_rotation("11110000"),
    notes="Common 8-day rotation with 12-hour shifts.",
)

PITMAN = PatternDefinition(
    name="Pitman",
    kind=PatternKind.ROTATING,
    start_minute=6 * 60,
    duration_minutes=12 * 60,
    rotation_days=parse_rotation("11001110011000"),
    notes="14-day Pitman rotation.",
)

CONTINENTAL = PatternDefinition(
    name="2-2-3 Continental",
    kind=PatternKind.ROTATING,
    start_minute=7 * 60,
    duration_minutes=12 * 60,
    rotation_days=parse_rotation("11001110011000"),
    notes="2-2-3 schedule with a 14-day cycle.",
)

DUPONT = PatternDefinition(
    name="DuPont",
    kind=PatternKind.ROTATING,
    start_minute=6 * 60,
    duration_minutes=12 * 60,
    rotation_days=parse_rotation("1111000011100001100001110000"),
    notes="4-week DuPont rotation (simplified).",
)

TEMPLATES: Dict[str, PatternDefinition] = {
    "weekdays": WEEKDAYS_NINE_TO_FIVE,
    "four-on-four-off": FOUR_ON_FOUR_OFF,
    "pitman": PITMAN,
    "continental": CONTINENTAL,
    "dupont": DUPONT,
}


def get_template(key: str) -> PatternDefinition:
    try:
        return deepcopy(TEMPLATES[key])
    except KeyError:
        raise KeyError(f"Unknown template {key!r}; choose from {', '.join(sorted(TEMPLATES))}") from None
