"""netwatch-web: retry a GET until the expected status (and text) shows up."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
import tomllib
from pathlib import Path
from typing import TextIO

import httpx

from .config import WebConfig, load_config, load_env
from .display import StatusLine
from .poller import Poller, PollStats
from .runtime import (
    ShutdownHook,
    _setup_logging,
    install_stop_handlers,
    package_version,
    sleep_or_stop,
)

logger = logging.getLogger(__name__)

_EPILOG = """\
Behavior:
  - Follows redirects
  - Accepts untrusted/invalid TLS certificates
  - On failure, prints the last HTTP status and retries after the configured delay
  - Intermediate failures update on a single line (TTY); non-TTY prints one line per attempt
  - Exits 0 on success; non-zero on failure if max attempts is reached
  - Prints final statistics (attempts, retries, total runtime)
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netwatch-web",
        description="Poll a URL until it returns the expected status and text.",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-u", "--url", required=True, help="Target URL to query (required)")
    parser.add_argument("-s", "--status", type=int, dest="expected_status",
                        help="Expected HTTP status code (default: 200)")
    parser.add_argument("-t", "--text", dest="required_text",
                        help="Optional text that must appear in the response body")
    parser.add_argument("-d", "--delay", type=float,
                        help="Delay between retries in seconds (default: 5)")
    parser.add_argument("-m", "--max-attempts", type=int,
                        help="Maximum number of attempts before giving up (default: 0 = infinite)")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds (default: 10)")
    parser.add_argument("--max-redirects", type=int, help="Redirects to follow (default: 20)")
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("-V", "--version", action="version",
                        version=f"%(prog)s {package_version()}")
    return parser


def resolve_settings(
    args: argparse.Namespace,
    defaults: WebConfig,
    parser: argparse.ArgumentParser,
) -> WebConfig:
    """Overlay command-line flags on config values and validate the result."""
    overrides = {
        f.name: getattr(args, f.name)
        for f in dataclasses.fields(WebConfig)
        if getattr(args, f.name, None) is not None
    }
    settings = dataclasses.replace(defaults, **overrides)

    if not 100 <= settings.expected_status <= 599:
        parser.error("expected status must be a 3-digit code (100-599).")
    if settings.delay < 0:
        parser.error("retry delay must be a non-negative number of seconds.")
    if settings.max_attempts < 0:
        parser.error("max attempts must be an integer (0 for infinite).")
    if settings.timeout <= 0:
        parser.error("timeout must be greater than zero.")
    if settings.max_redirects < 0:
        parser.error("max redirects must be >= 0.")
    return settings


def _finish(stats: PollStats, line: StatusLine, stdout: TextIO) -> None:
    line.finish()
    print(stats.format(), file=stdout)
    stdout.flush()


async def _async_main(
    url: str,
    settings: WebConfig,
    stats: PollStats,
    line: StatusLine,
    stdout: TextIO | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    stop_event: asyncio.Event | None = None,
) -> int:
    stdout = stdout or sys.stdout
    if stop_event is None:
        stop_event = asyncio.Event()
        install_stop_handlers(stop_event)

    poller = Poller(
        url,
        expected_status=settings.expected_status,
        required_text=settings.required_text,
        timeout=settings.timeout,
        max_redirects=settings.max_redirects,
        transport=transport,
    )
    logger.info("Polling %s for HTTP %d", url, settings.expected_status)

    try:
        while True:
            result = await poller.check()
            stats.record()

            if result.ok:
                line.clear()
                msg = f"Success: received expected status {settings.expected_status}"
                if settings.required_text:
                    msg += " and found required text"
                print(msg, file=stdout)
                return 0

            line.update(result.failure_message(
                stats.attempts,
                settings.expected_status,
                settings.delay,
                bool(settings.required_text),
            ))

            if settings.max_attempts and stats.attempts >= settings.max_attempts:
                line.clear()
                line.stream.write(
                    f"Giving up after {stats.attempts} attempts. "
                    f"Last HTTP status: {result.status_label}\n"
                )
                line.stream.flush()
                return 1

            if await sleep_or_stop(stop_event, settings.delay):
                logger.info("Interrupted after %d attempt(s)", stats.attempts)
                return 1
    finally:
        await poller.close()


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_env()
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        parser.error(str(e))
    except (tomllib.TOMLDecodeError, ValueError) as e:
        parser.error(f"invalid config file: {e}")

    settings = resolve_settings(args, config.web, parser)
    _setup_logging("DEBUG" if args.debug else config.log_level)

    stats = PollStats()
    line = StatusLine(sys.stderr)
    hook = ShutdownHook(lambda: _finish(stats, line, sys.stdout)).register()

    code = 1
    try:
        code = asyncio.run(_async_main(args.url, settings, stats, line))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        hook()
        hook.unregister()
    sys.exit(code)


if __name__ == "__main__":
    main()
