"""Execution of a single discovered test case."""

import asyncio
import inspect
import logging
import time
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from e2e_runner.discovery import TestCase
from e2e_runner.fixtures import FixtureResolver
from e2e_runner.models.events import TestEvent, TestEventType
from e2e_runner.models.result import TestCaseResult
from e2e_runner.telemetry import TelemetryReporter, record_test_result

log = logging.getLogger(__name__)

INITIALIZE_HOOK = "initialize"
DISPOSE_HOOK = "dispose"


class TestCancelledError(Exception):
    """Raised when the stop signal interrupts a running test body."""

    __test__ = False


def unwrap_error(error: BaseException) -> BaseException:
    """Return the original error hidden behind single-error groups."""
    while isinstance(error, BaseExceptionGroup) and len(error.exceptions) == 1:
        error = error.exceptions[0]
    return error


def describe_error(error: BaseException) -> str:
    """Return the error message, or the error type when it has none."""
    return str(error) or type(error).__name__


async def call_maybe_async(func: Any, *args: Any) -> None:
    """Call ``func`` and await the result if it is awaitable."""
    result = func(*args)
    if inspect.isawaitable(result):
        await result


@dataclass(frozen=True, kw_only=True)
class TestCaseExecutor:
    """Runs one test case through its fixture lifecycle."""

    __test__ = False

    resolver: FixtureResolver
    telemetry: TelemetryReporter
    strict_lifecycle: bool = False

    async def execute(
        self,
        case: TestCase,
        *,
        run_id: str,
        stop: asyncio.Event,
        next_scheduled_run: datetime | None = None,
    ) -> TestCaseResult:
        """Execute ``case`` and return exactly one result.

        Args:
            case: The test case to run
            run_id: Identifier of the enclosing run, used for span tagging
            stop: Shared stop signal; setting it cancels the running body
            next_scheduled_run: Hint attached to the started event

        Returns:
            The test case result; failures are recorded, never raised

        """
        if case.skip_reason is not None:
            return self._skip(case, run_id)

        with self.telemetry.start_test_span(
            case.display_name,
            case.fixture_cls.__name__,
            case.method_name,
            run_id,
        ) as span:
            span.add_event("test_started")
            self.telemetry.report_test_event(
                TestEvent(
                    test_name=case.display_name,
                    event_type=TestEventType.STARTED,
                    timestamp=datetime.now(timezone.utc),
                    next_scheduled_run=next_scheduled_run,
                )
            )

            start = time.perf_counter()
            error: BaseException | None = None
            try:
                fixture = self.resolver.resolve(case.fixture_cls)
            except Exception as e:
                log.error(
                    "❌ Error constructing fixture for %s: %s", case.display_name, e
                )
                error = e
            else:
                error = await self._run_with_lifecycle(fixture, case, stop)
            duration = time.perf_counter() - start

            result = self._build_result(case, duration, error)
            record_test_result(span, result, error)
            self._report_outcome(result)
            return result

    async def _run_with_lifecycle(
        self, fixture: object, case: TestCase, stop: asyncio.Event
    ) -> BaseException | None:
        """Run initialize, body and dispose; return the error to record."""
        error: BaseException | None = None
        try:
            init_error = await self._invoke_hook(fixture, INITIALIZE_HOOK)
            if init_error is not None and self.strict_lifecycle:
                return init_error

            try:
                await self._invoke_body(fixture, case, stop)
            except Exception as e:
                error = unwrap_error(e)
        finally:
            dispose_error = await self._invoke_hook(fixture, DISPOSE_HOOK)

        if error is None and dispose_error is not None and self.strict_lifecycle:
            return dispose_error
        return error

    async def _invoke_body(
        self, fixture: object, case: TestCase, stop: asyncio.Event
    ) -> None:
        """Run the test body, cancelling it if the stop signal fires first."""
        method = getattr(fixture, case.method_name)
        args = case.arguments or ()
        log.debug("▶️ Running: %s", case.display_name)

        body = asyncio.ensure_future(call_maybe_async(method, *args))
        stopped = asyncio.ensure_future(stop.wait())
        try:
            await asyncio.wait({body, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopped.cancel()
            if not body.done():
                body.cancel()
                await asyncio.wait({body})

        if body.cancelled():
            raise TestCancelledError(f"Cancelled while running {case.display_name}")
        body.result()

    async def _invoke_hook(self, fixture: object, name: str) -> Exception | None:
        """Invoke an optional lifecycle hook, logging and returning its error."""
        hook = getattr(fixture, name, None)
        if hook is None or not callable(hook):
            return None
        try:
            await call_maybe_async(hook)
        except Exception as e:
            log.warning(
                "⚠️ Error invoking %s on %s: %s",
                name,
                type(fixture).__name__,
                e,
                exc_info=e,
            )
            return e
        return None

    def _build_result(
        self, case: TestCase, duration: float, error: BaseException | None
    ) -> TestCaseResult:
        if error is None:
            return TestCaseResult(
                name=case.display_name, success=True, duration=duration
            )
        return TestCaseResult(
            name=case.display_name,
            success=False,
            duration=duration,
            error_message=describe_error(error),
            error_type=type(error).__name__,
            stack_trace="".join(traceback.format_exception(error)),
        )

    def _report_outcome(self, result: TestCaseResult) -> None:
        self.telemetry.report_test_event(
            TestEvent(
                test_name=result.name,
                event_type=(
                    TestEventType.COMPLETED if result.success else TestEventType.FAILED
                ),
                timestamp=datetime.now(timezone.utc),
                duration=result.duration,
                error_message=result.error_message,
                stack_trace=result.stack_trace,
            )
        )

    def _skip(self, case: TestCase, run_id: str) -> TestCaseResult:
        result = TestCaseResult(
            name=case.display_name,
            success=False,
            skipped=True,
            duration=0.0,
            error_message=case.skip_reason,
        )
        with self.telemetry.start_test_span(
            case.display_name,
            case.fixture_cls.__name__,
            case.method_name,
            run_id,
        ) as span:
            span.set_attribute("test.skip_reason", case.skip_reason or "")
            record_test_result(span, result)

        self.telemetry.report_test_event(
            TestEvent(
                test_name=case.display_name,
                event_type=TestEventType.SKIPPED,
                timestamp=datetime.now(timezone.utc),
                error_message=case.skip_reason,
            )
        )
        return result
