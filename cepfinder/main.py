"""Command-line entry point for cepfinder."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, TextIO, Tuple

from cepfinder.adapters.exceptions import AdapterConfigurationError
from cepfinder.adapters.factory import build_adapters
from cepfinder.config.duration import (
    DurationParseError,
    format_duration,
    parse_duration,
    validate_duration_range,
)
from cepfinder.config.environment import EnvironmentConfig
from cepfinder.config.exceptions import ConfigurationError
from cepfinder.config.loader import load_config
from cepfinder.config.models import AppConfig
from cepfinder.config.validators import check_for_warnings, emit_warnings
from cepfinder.logging import get_logger
from cepfinder.logging.config import configure_logging
from cepfinder.race import (
    AllProvidersFailed,
    RaceResult,
    RaceTimedOut,
    WinningAddress,
    run_race,
)

logger = get_logger(__name__, component="cli")

DEFAULT_POSTAL_CODE = "01001000"

EXIT_OK = 0
EXIT_ALL_FAILED = 1
EXIT_TIMED_OUT = 2
EXIT_CONFIG_ERROR = 3
EXIT_FATAL = 4


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cepfinder",
        description="Resolve a Brazilian postal code (CEP) by racing BrasilAPI and ViaCEP",
    )
    parser.add_argument(
        "postal_code",
        nargs="?",
        default=DEFAULT_POSTAL_CODE,
        help=f"Postal code to look up (default: {DEFAULT_POSTAL_CODE})",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: cepfinder.yaml if present)",
    )
    parser.add_argument(
        "--deadline",
        default=None,
        help="Global race deadline, e.g. 1s or 750ms (overrides config and environment)",
    )
    parser.add_argument(
        "--timeout",
        default=None,
        help="Per-request timeout for each provider, e.g. 1s",
    )
    parser.add_argument(
        "--provider",
        action="append",
        dest="providers",
        metavar="NAME",
        help="Race only this provider (repeatable)",
    )
    parser.add_argument(
        "--cancel-losers",
        action="store_true",
        help="Stop losing providers as soon as the race is decided",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def load_runtime_config(
    args: argparse.Namespace,
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and apply command-line overrides.

    Priority: CLI > environment > config file > defaults.

    Raises:
        ConfigurationError: If configuration or an override is invalid
    """
    app_config, env_config = load_config(args.config, warn=False)

    errors = []
    if args.deadline:
        try:
            app_config.race.deadline = _parse_cli_duration(args.deadline)
        except DurationParseError as e:
            errors.append(f"--deadline: {e}")
    if args.timeout:
        try:
            app_config.http.request_timeout = _parse_cli_duration(args.timeout)
        except DurationParseError as e:
            errors.append(f"--timeout: {e}")
    if args.providers:
        try:
            app_config.select_providers(args.providers)
        except ValueError as e:
            errors.append(f"--provider: {e}")
    if errors:
        raise ConfigurationError(
            "Invalid command-line options",
            errors=errors,
            suggestions=[
                "Durations look like '1s', '750ms' or 'PT1.5S'",
                "Provider names are BrasilAPI and ViaCEP",
            ],
        )

    if args.cancel_losers:
        app_config.race.propagate_cancellation = True
    if args.log_level:
        app_config.logging.level = args.log_level

    emit_warnings(check_for_warnings(app_config))

    return app_config, env_config


def _parse_cli_duration(value: str) -> float:
    seconds = parse_duration(value)
    validate_duration_range(seconds)
    return seconds


def render_result(result: RaceResult, as_json: bool = False) -> str:
    """Render a race result for the terminal."""
    if as_json:
        return json.dumps(result_to_dict(result), ensure_ascii=False, indent=2)

    if isinstance(result, WinningAddress):
        address = result.address
        lines = [
            f"{result.provider} answered first ({format_duration(result.elapsed_seconds)})",
            f"  postal code:  {address.postal_code}",
            f"  street:       {address.street}",
            f"  neighborhood: {address.neighborhood}",
            f"  city:         {address.city}",
            f"  region:       {address.region}",
        ]
        return "\n".join(lines)

    if isinstance(result, AllProvidersFailed):
        lines = ["All providers failed:"]
        lines.extend(f"  - {failure}" for failure in result.failures)
        return "\n".join(lines)

    message = f"Timeout: no provider answered within {format_duration(result.deadline_seconds)}"
    if result.pending_providers:
        message += f" (still waiting on {', '.join(result.pending_providers)})"
    return message


def result_to_dict(result: RaceResult) -> dict:
    if isinstance(result, WinningAddress):
        return {
            "status": "found",
            "provider": result.provider,
            "elapsed_seconds": round(result.elapsed_seconds, 4),
            "address": result.address.model_dump(mode="json"),
        }
    if isinstance(result, AllProvidersFailed):
        return {
            "status": "all_failed",
            "failures": [
                {"provider": f.provider, "reason": f.reason.value, "message": f.message}
                for f in result.failures
            ],
        }
    return {
        "status": "timed_out",
        "deadline_seconds": result.deadline_seconds,
        "pending_providers": result.pending_providers,
    }


def exit_code_for(result: RaceResult) -> int:
    if isinstance(result, WinningAddress):
        return EXIT_OK
    if isinstance(result, RaceTimedOut):
        return EXIT_TIMED_OUT
    return EXIT_ALL_FAILED


def main(argv: Optional[List[str]] = None, stdout: Optional[TextIO] = None) -> int:
    """
    Main entry point for cepfinder.

    Returns:
        Exit code: 0 winner, 1 all providers failed, 2 race timed out,
        3 configuration error, 4 unexpected error.
    """
    args = build_parser().parse_args(argv)
    out = stdout or sys.stdout

    try:
        app_config, env_config = load_runtime_config(args)

        configure_logging(
            level=app_config.logging.level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "cepfinder starting",
            extra={
                "event": "service.starting",
                "postal_code": args.postal_code,
                "config_path": str(args.config) if args.config else None,
            },
        )
        logger.debug(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "providers": [p.name for p in app_config.get_enabled_providers()],
                "deadline_seconds": app_config.race.deadline,
                "request_timeout_seconds": app_config.http.request_timeout,
                "check_status": app_config.http.check_status,
            },
        )

        adapters = build_adapters(app_config)
        try:
            result = run_race(
                args.postal_code,
                adapters,
                deadline_seconds=app_config.race.deadline,
                propagate_cancellation=app_config.race.propagate_cancellation,
            )
        finally:
            for adapter in adapters:
                adapter.close()

        print(render_result(result, as_json=args.json), file=out)
        return exit_code_for(result)

    except (ConfigurationError, AdapterConfigurationError) as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": type(e).__name__},
        )
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return EXIT_FATAL
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
