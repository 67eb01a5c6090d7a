"""CLI entry point for the continuous end-to-end test runner."""

import asyncio
import functools
import logging
import os
import socket
import sys
from collections.abc import Mapping, Sequence

from e2e_runner.cancellation import install_signal_handlers
from e2e_runner.clients import ServiceClients
from e2e_runner.config import RunnerConfig, load_config
from e2e_runner.executor import TestCaseExecutor
from e2e_runner.fixtures import FixtureResolver
from e2e_runner.health import HealthGate, HealthMonitor, build_targets
from e2e_runner.models.options import SchedulerOptions
from e2e_runner.orchestrator import RunOrchestrator
from e2e_runner.scheduler import ControllerReport, ScheduleController
from e2e_runner.suites.loading import load_suite_modules
from e2e_runner.telemetry import TelemetryReporter, configure_tracing

log = logging.getLogger("e2e_runner")


def log_configuration(config: RunnerConfig) -> None:
    """Log the effective scheduling configuration."""
    options = config.scheduler
    log.info("=" * 80)
    log.info("🚀 MedicineTrack E2E test runner")
    log.info("=" * 80)
    log.info("⚙️ Mode: %s", "individual" if options.run_individually else "batch")
    log.info("⚙️ Interval: %.0fs", options.interval)
    max_runs = options.max_runs if options.max_runs is not None else "unlimited"
    log.info("⚙️ Max runs: %s", max_runs)
    log.info("⚙️ Run on startup: %s", options.run_on_startup)
    if options.run_individually:
        log.info("⚙️ Test cadence: %.1fs", options.individual_test_cadence)
    if options.initial_delay:
        log.info("⚙️ Initial delay: %.1fs", options.initial_delay)
    if options.test_filters:
        log.info("⚙️ Filters: %s", ", ".join(options.test_filters))


async def run(
    config: RunnerConfig, stop: asyncio.Event | None = None
) -> ControllerReport:
    """Wire the runner components and drive them until stopped."""
    if stop is None:
        stop = asyncio.Event()
    telemetry = TelemetryReporter()
    options = config.scheduler

    async with ServiceClients.from_config(config.services) as clients:
        resolver = FixtureResolver(
            services={
                ServiceClients: clients,
                TelemetryReporter: telemetry,
                SchedulerOptions: options,
            }
        )
        executor = TestCaseExecutor(
            resolver=resolver,
            telemetry=telemetry,
            strict_lifecycle=options.strict_lifecycle,
        )
        load_modules = (
            functools.partial(load_suite_modules, config.suite_modules)
            if config.suite_modules
            else load_suite_modules
        )
        orchestrator = RunOrchestrator(
            executor=executor,
            telemetry=telemetry,
            options=options,
            load_modules=load_modules,
        )
        gate = HealthGate(
            targets=build_targets(clients, config.gated_services),
            timeout=config.health_timeout,
            poll_interval=config.health_poll_interval,
        )
        monitor = HealthMonitor(targets=build_targets(clients), telemetry=telemetry)
        controller = ScheduleController(
            orchestrator=orchestrator,
            gate=gate,
            monitor=monitor,
            options=options,
            telemetry=telemetry,
            tick_interval=config.health_ping_interval,
        )

        install_signal_handlers(stop)
        return await controller.run(stop)


def main(
    argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None
) -> None:
    """CLI entry point."""
    environ = os.environ if environ is None else environ

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    config = load_config(sys.argv[1:] if argv is None else argv, environ)
    logging.getLogger().setLevel(config.log_level)
    provider = configure_tracing(
        otlp_endpoint=config.otlp_endpoint, instance_id=socket.gethostname()
    )
    log_configuration(config)

    try:
        report = asyncio.run(run(config))
    finally:
        provider.shutdown()

    log.info("Runner exited cleanly. Total test runs: %d", report.runs)
    sys.exit(0)


if __name__ == "__main__":  # pragma: no cover
    main()
