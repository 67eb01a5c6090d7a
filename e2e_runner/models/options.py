"""Scheduling options for continuous test runs."""

from collections.abc import Sequence

from pydantic import Field

from e2e_runner.models.base import Model


class SchedulerOptions(Model):
    """How often, how many times and in which mode the test catalog runs.

    All durations are expressed in seconds.
    """

    interval: float = Field(default=300.0, gt=0, description="Time between runs")
    max_runs: int | None = Field(
        default=None, ge=0, description="Maximum number of runs (None = unlimited)"
    )
    run_on_startup: bool = Field(
        default=True, description="Run the catalog as soon as services are healthy"
    )
    run_individually: bool = Field(
        default=False, description="Pace test cases one at a time instead of a batch"
    )
    individual_test_cadence: float = Field(
        default=30.0, ge=0, description="Delay between cases in individual mode"
    )
    initial_delay: float = Field(
        default=0.0, ge=0, description="Delay before the first case of every run"
    )
    test_filters: Sequence[str] = Field(
        default=(), description="Substrings selecting test cases (empty means all)"
    )
    batch_concurrency: int = Field(
        default=1, ge=1, description="Concurrent cases in batch mode"
    )
    strict_lifecycle: bool = Field(
        default=False,
        description="Fail a test case when its initialize/dispose hook raises",
    )

    def budget_exhausted(self, runs: int) -> bool:
        """Whether ``runs`` already reached the configured maximum."""
        return self.max_runs is not None and runs >= self.max_runs
