"""Point-in-time test notifications handed to the telemetry reporter."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class TestEventType(StrEnum):
    """Kind of test event."""

    __test__ = False

    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, kw_only=True)
class TestEvent:
    """A single test lifecycle notification."""

    __test__ = False

    test_name: str
    event_type: TestEventType
    timestamp: datetime
    duration: float | None = None
    error_message: str | None = None
    stack_trace: str | None = None
    next_scheduled_run: datetime | None = None
