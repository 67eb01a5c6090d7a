"""Tests for scheduler options."""

import pytest
from pydantic import ValidationError

from e2e_runner.models.options import SchedulerOptions


def test_defaults() -> None:
    """Defaults run a batch every five minutes, forever, starting immediately."""
    options = SchedulerOptions()

    assert options.interval == 300.0
    assert options.max_runs is None
    assert options.run_on_startup is True
    assert options.run_individually is False
    assert options.individual_test_cadence == 30.0
    assert options.batch_concurrency == 1
    assert options.strict_lifecycle is False


@pytest.mark.parametrize(
    ("max_runs", "runs", "expected"),
    [
        (None, 1000, False),
        (2, 1, False),
        (2, 2, True),
        (0, 0, True),
    ],
)
def test_budget_exhausted(max_runs: int | None, runs: int, expected: bool) -> None:
    """The budget is exhausted once the run count reaches max_runs."""
    assert SchedulerOptions(max_runs=max_runs).budget_exhausted(runs) is expected


def test_rejects_non_positive_interval() -> None:
    """Interval must be positive."""
    with pytest.raises(ValidationError):
        SchedulerOptions(interval=0)


def test_is_immutable() -> None:
    """Options are read-only once built."""
    options = SchedulerOptions()

    with pytest.raises(ValidationError):
        options.interval = 10  # type: ignore[misc]
