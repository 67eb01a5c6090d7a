"""Test factories for generating result and summary records."""

from polyfactory.factories import DataclassFactory

from e2e_runner.models.events import TestEvent
from e2e_runner.models.result import RunSummary, TestCaseResult


class TestCaseResultFactory(DataclassFactory[TestCaseResult]):
    """Factory for passing TestCaseResult records."""

    __test__ = False
    __model__ = TestCaseResult

    success = True
    skipped = False
    error_message = None
    error_type = None
    stack_trace = None


class FailedTestCaseResultFactory(TestCaseResultFactory):
    """Factory for failed TestCaseResult records."""

    success = False
    error_message = "boom"
    error_type = "AssertionError"
    stack_trace = "Traceback (most recent call last):\nAssertionError: boom\n"


class RunSummaryFactory(DataclassFactory[RunSummary]):
    """Factory for RunSummary records with consistent counts."""

    __model__ = RunSummary

    mode = "batch"
    total = 3
    passed = 3
    failed = 0
    skipped = 0
    failed_tests = ()
    success = True
    next_scheduled_run = None
    cancelled = False
    results = ()


class TestEventFactory(DataclassFactory[TestEvent]):
    """Factory for TestEvent records."""

    __test__ = False
    __model__ = TestEvent

    duration = None
    error_message = None
    stack_trace = None
    next_scheduled_run = None
