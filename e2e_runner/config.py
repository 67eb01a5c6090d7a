"""Runner configuration assembled once from process arguments and environment."""

import argparse
import logging
from collections.abc import Mapping, Sequence

from pydantic import Field

from e2e_runner.models.base import Model
from e2e_runner.models.options import SchedulerOptions

log = logging.getLogger(__name__)

API_SERVICE = "medicine-track-api"
CONFIG_SERVICE = "medicine-track-config"
GATEWAY_SERVICE = "medicine-track-gateway"

DEFAULT_SERVICE_URLS: Mapping[str, str] = {
    API_SERVICE: "http://localhost:5001",
    CONFIG_SERVICE: "http://localhost:5002",
    GATEWAY_SERVICE: "http://localhost:5000",
}

# Services whose health gates the first run; the gateway is only pinged.
GATED_SERVICES: tuple[str, ...] = (API_SERVICE, CONFIG_SERVICE)

TRUE_VALUES = frozenset(["1", "true", "yes", "on"])


class ServiceEndpoint(Model):
    """Where a dependent service is reached."""

    base_url: str = Field(..., description="Scheme, host and port of the service")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout")


class RunnerConfig(Model):
    """Complete, read-only configuration of one runner process."""

    scheduler: SchedulerOptions = Field(default_factory=SchedulerOptions)
    services: Mapping[str, ServiceEndpoint] = Field(default_factory=dict)
    gated_services: Sequence[str] = Field(default=GATED_SERVICES)
    health_timeout: float = Field(default=120.0, gt=0)
    health_poll_interval: float = Field(default=2.0, gt=0)
    health_ping_interval: float = Field(default=5.0, gt=0)
    suite_modules: Sequence[str] = Field(default=())
    log_level: str = "INFO"
    otlp_endpoint: str | None = None


def env_var_name(service: str) -> str:
    """Explicit override variable for a service URL, e.g. ``E2E_API_URL``."""
    short = service.removeprefix("medicine-track-")
    return f"E2E_{short.upper().replace('-', '_')}_URL"


def resolve_service_url(service: str, environ: Mapping[str, str]) -> str:
    """Resolve a service base URL.

    Aspire service discovery variables win, then the explicit ``E2E_*_URL``
    override, then the localhost default.
    """
    for scheme in ("https", "http"):
        if url := environ.get(f"services__{service}__{scheme}__0"):
            return url
    if url := environ.get(env_var_name(service)):
        return url
    return DEFAULT_SERVICE_URLS[service]


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser; numeric values are validated later."""
    parser = argparse.ArgumentParser(
        description="Continuously run MedicineTrack end-to-end tests",
        allow_abbrev=False,
        exit_on_error=False,
    )
    parser.add_argument("--runs", help="Maximum number of runs (default: unlimited)")
    parser.add_argument("--interval", help="Minutes between runs (default: 5)")
    parser.add_argument(
        "--no-startup",
        action="store_true",
        help="Do not run the tests immediately once services are healthy",
    )
    parser.add_argument(
        "--individual",
        action="store_true",
        help="Run test cases one at a time, paced by --cadence",
    )
    parser.add_argument(
        "--cadence", help="Seconds between test cases in individual mode"
    )
    parser.add_argument("--initial-delay", help="Seconds to wait before every run")
    parser.add_argument(
        "--filter",
        action="append",
        default=[],
        dest="filters",
        help="Only run test cases whose name contains this text (repeatable)",
    )
    parser.add_argument(
        "--suite",
        action="append",
        default=[],
        dest="suites",
        help="Dotted path of a suite module to load instead of the registered ones",
    )
    return parser


def _parse_number[N: (int, float)](
    raw: str | None, kind: type[N], option: str
) -> N | None:
    if raw is None:
        return None
    try:
        return kind(raw)
    except ValueError:
        log.warning("Ignoring invalid value for %s: %r", option, raw)
        return None


def _env_flag(environ: Mapping[str, str], name: str) -> bool | None:
    raw = environ.get(name)
    if raw is None:
        return None
    return raw.strip().lower() in TRUE_VALUES


def parse_arguments(argv: Sequence[str]) -> tuple[argparse.Namespace, list[str]]:
    """Parse known flags, dropping a value flag that is missing its value."""
    parser = build_parser()
    remaining = list(argv)
    while True:
        try:
            return parser.parse_known_args(remaining)
        except argparse.ArgumentError as e:
            log.warning("Ignoring argument: %s", e)
            index = _missing_value_index(remaining, e.argument_name)
            if index is None:
                return parser.parse_known_args([])
            del remaining[index]


def _missing_value_index(argv: Sequence[str], flag: str | None) -> int | None:
    for index, arg in enumerate(argv):
        if arg != flag:
            continue
        following = argv[index + 1] if index + 1 < len(argv) else None
        if following is None or following.startswith("--"):
            return index
    return None


def load_config(argv: Sequence[str], environ: Mapping[str, str]) -> RunnerConfig:
    """Build the runner configuration; unknown flags are ignored.

    Args:
        argv: Command line arguments without the program name
        environ: Process environment

    Returns:
        The immutable runner configuration

    """
    args, unknown = parse_arguments(argv)
    if unknown:
        log.warning("Ignoring unknown arguments: %s", " ".join(unknown))

    scheduler: dict[str, object] = {}

    if (runs := _parse_number(args.runs, int, "--runs")) is not None:
        scheduler["max_runs"] = max(runs, 0)
    if (minutes := _parse_number(args.interval, int, "--interval")) is not None:
        if minutes > 0:
            scheduler["interval"] = minutes * 60.0
        else:
            log.warning("Ignoring non-positive --interval: %d", minutes)
    if args.no_startup:
        scheduler["run_on_startup"] = False

    individual = args.individual or _env_flag(environ, "E2E_RUN_INDIVIDUALLY")
    if individual:
        scheduler["run_individually"] = True

    cadence = _parse_number(args.cadence, float, "--cadence")
    if cadence is None:
        cadence = _parse_number(
            environ.get("E2E_TEST_CADENCE_SECONDS"), float, "E2E_TEST_CADENCE_SECONDS"
        )
    if cadence is not None and cadence >= 0:
        scheduler["individual_test_cadence"] = cadence

    delay = _parse_number(args.initial_delay, float, "--initial-delay")
    if delay is None:
        delay = _parse_number(
            environ.get("E2E_INITIAL_DELAY_SECONDS"), float, "E2E_INITIAL_DELAY_SECONDS"
        )
    if delay is not None and delay >= 0:
        scheduler["initial_delay"] = delay

    if args.filters:
        scheduler["test_filters"] = tuple(args.filters)
    if _env_flag(environ, "E2E_STRICT_LIFECYCLE"):
        scheduler["strict_lifecycle"] = True

    config: dict[str, object] = {
        "scheduler": SchedulerOptions.model_validate(scheduler),
        "services": {
            name: ServiceEndpoint(base_url=resolve_service_url(name, environ))
            for name in DEFAULT_SERVICE_URLS
        },
        "suite_modules": tuple(args.suites),
        "log_level": environ.get("E2E_LOG_LEVEL", "INFO").upper(),
        "otlp_endpoint": environ.get("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
    }

    health_timeout = _parse_number(
        environ.get("E2E_HEALTH_TIMEOUT_SECONDS"), float, "E2E_HEALTH_TIMEOUT_SECONDS"
    )
    if health_timeout is not None and health_timeout > 0:
        config["health_timeout"] = health_timeout

    ping_interval = _parse_number(
        environ.get("E2E_HEALTH_PING_SECONDS"), float, "E2E_HEALTH_PING_SECONDS"
    )
    if ping_interval is not None and ping_interval > 0:
        config["health_ping_interval"] = ping_interval

    return RunnerConfig.model_validate(config)
