"""Models for test case and test run results."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

type RunMode = Literal["batch", "individual"]


@dataclass(frozen=True, kw_only=True)
class TestCaseResult:
    """Outcome of a single executed test case.

    A skipped case is never successful, but it is not counted as failed either.
    """

    __test__ = False

    name: str
    success: bool
    duration: float
    skipped: bool = False
    error_message: str | None = None
    error_type: str | None = None
    stack_trace: str | None = None

    @property
    def failed(self) -> bool:
        """Whether this result counts towards the failed total."""
        return not self.success and not self.skipped


@dataclass(frozen=True, kw_only=True)
class RunSummary:
    """Aggregate of every test case result produced by one run."""

    run_id: str
    mode: RunMode
    start_time: datetime
    end_time: datetime
    total: int
    passed: int
    failed: int
    skipped: int
    failed_tests: Sequence[str]
    success: bool
    next_scheduled_run: datetime | None = None
    cancelled: bool = False
    results: Sequence[TestCaseResult] = field(default_factory=tuple, repr=False)

    @property
    def duration(self) -> float:
        """Wall-clock duration of the run in seconds."""
        return (self.end_time - self.start_time).total_seconds()

    @classmethod
    def from_results(
        cls,
        results: Sequence[TestCaseResult],
        *,
        run_id: str,
        mode: RunMode,
        start_time: datetime,
        end_time: datetime,
        next_scheduled_run: datetime | None = None,
        cancelled: bool = False,
    ) -> "RunSummary":
        """Aggregate case results into a summary."""
        failed_tests = tuple(r.name for r in results if r.failed)
        return cls(
            run_id=run_id,
            mode=mode,
            start_time=start_time,
            end_time=end_time,
            total=len(results),
            passed=sum(1 for r in results if r.success),
            failed=len(failed_tests),
            skipped=sum(1 for r in results if r.skipped),
            failed_tests=failed_tests,
            success=not failed_tests,
            next_scheduled_run=next_scheduled_run,
            cancelled=cancelled,
            results=tuple(results),
        )
