from __future__ import annotations
from enum import Enum


class ValidationCode(str, Enum):
    INVALID_DURATION = "invalid_duration"
    INVALID_BREAK = "invalid_break"
    INVALID_RATE_MULTIPLIER = "invalid_rate_multiplier"
    INVALID_START_MINUTE = "invalid_start_minute"
    EMPTY_WEEKDAY_SET = "empty_weekday_set"
    EMPTY_ROTATION_CYCLE = "empty_rotation_cycle"
    INVALID_ROTATION_INDEX = "invalid_rotation_index"
    INACTIVE_PATTERN = "inactive_pattern"
    OVERLAPPING_SHIFT = "overlapping_shift"
    INVALID_TRANSITION = "invalid_transition"


DEFAULT_MESSAGES = {
    ValidationCode.INVALID_DURATION: "Shift duration is invalid.",
    ValidationCode.INVALID_BREAK: "Break duration is invalid.",
    ValidationCode.INVALID_RATE_MULTIPLIER: "Rate multiplier is invalid.",
    ValidationCode.INVALID_START_MINUTE: "Start time must fall within the day.",
    ValidationCode.EMPTY_WEEKDAY_SET: "Weekly patterns must include at least one weekday.",
    ValidationCode.EMPTY_ROTATION_CYCLE: "Rotating patterns must define cycle days.",
    ValidationCode.INVALID_ROTATION_INDEX: "Rotation days must be numbered 0 to N-1 without gaps.",
    ValidationCode.INACTIVE_PATTERN: "This pattern is inactive or deleted.",
    ValidationCode.OVERLAPPING_SHIFT: "This shift overlaps with an existing shift.",
    ValidationCode.INVALID_TRANSITION: "The shift cannot move to that status.",
}


class ShiftPayError(Exception):
    """Base class for errors raised by the engine."""


class ValidationError(ShiftPayError):
    def __init__(self, code: ValidationCode, message: str | None = None) -> None:
        self.code = code
        self.message = message or DEFAULT_MESSAGES[code]
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"ValidationError({self.code.value!r}, {self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return self.code == other.code and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.code, self.message))


class PersistenceError(ShiftPayError):
    """Storage failure. The underlying exception is kept as __cause__."""


class NotFoundError(PersistenceError):
    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")
