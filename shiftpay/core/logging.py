import logging
import sys
from contextlib import contextmanager
from typing import Iterator

import structlog
from structlog.typing import EventDict, WrappedLogger


def add_hours(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Pair every ``*_minutes`` field with its value in hours."""
    for key in [k for k in event_dict if k.endswith("_minutes")]:
        value = event_dict[key]
        if isinstance(value, int) and not isinstance(value, bool):
            event_dict[key[: -len("_minutes")] + "_hours"] = round(value / 60, 2)
    return event_dict


def _stderr_logger(*args) -> structlog.PrintLogger:
    # Looked up per logger so redirected stderr (tests, pipes) is honoured.
    return structlog.PrintLogger(sys.stderr)


def configure_logging(level: str = "WARNING", json_output: bool = True) -> None:
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            add_hours,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        logger_factory=_stderr_logger,
    )

    logging.basicConfig(level=level)


@contextmanager
def bind_owner(owner_id: str) -> Iterator[None]:
    """Tag every event logged inside the block with the profile it concerns."""
    with structlog.contextvars.bound_contextvars(owner_id=owner_id):
        yield


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
