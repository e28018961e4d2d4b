"""netwatch-host: ping a host on an interval and report up/down transitions."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
import tomllib
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, TextIO

from .config import HostConfig, load_config, load_env
from .display import StatusLine
from .health import HealthState, HostHealth, RttStats, Transition
from .probe import PingUnavailable, ProbeResult, ResolveError, Target, ping, ping_command, resolve
from .runtime import (
    ShutdownHook,
    _setup_logging,
    install_stop_handlers,
    package_version,
    sleep_or_stop,
)

logger = logging.getLogger(__name__)

Probe = Callable[[Target, float], Awaitable[ProbeResult]]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netwatch-host",
        description="Ping a host repeatedly and log when it goes up or down.",
    )
    parser.add_argument("target", help="Hostname or IP address to monitor")
    family = parser.add_mutually_exclusive_group()
    family.add_argument("-4", "--ipv4", action="store_const", const=True,
                        help="Use IPv4 only")
    family.add_argument("-6", "--ipv6", action="store_const", const=True,
                        help="Prefer IPv6, fall back to IPv4 if the host has no IPv6 address")
    parser.add_argument("-t", "--timeout", type=float,
                        help="Probe timeout in seconds (default: 1)")
    parser.add_argument("-i", "--interval", type=float,
                        help="Seconds between probes (default: 1)")
    parser.add_argument("-f", "--fuzzy", type=int,
                        help="Consecutive failures tolerated before the host is down (default: 0)")
    parser.add_argument("-c", "--count", type=int,
                        help="Stop after this many probes (default: 0 = until interrupted)")
    parser.add_argument("-S", "--stats-every", type=int,
                        help="Print an RTT summary every N probes (default: 60, 0 = never)")
    parser.add_argument("-s", "--static", action="store_const", const=True,
                        help="No live single-line updates; one line per probe")
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("-V", "--version", action="version",
                        version=f"%(prog)s {package_version()}")
    return parser


def resolve_settings(
    args: argparse.Namespace,
    defaults: HostConfig,
    parser: argparse.ArgumentParser,
) -> HostConfig:
    """Overlay command-line flags on config values and validate the result."""
    overrides = {
        f.name: getattr(args, f.name)
        for f in dataclasses.fields(HostConfig)
        if getattr(args, f.name, None) is not None
    }
    # an explicit family flag replaces whatever the config file chose
    if args.ipv4:
        overrides["ipv6"] = False
    elif args.ipv6:
        overrides["ipv4"] = False
    settings = dataclasses.replace(defaults, **overrides)

    if settings.timeout <= 0:
        parser.error("timeout must be greater than zero.")
    if settings.interval < 0:
        parser.error("interval must be a non-negative number of seconds.")
    if settings.fuzzy < 0:
        parser.error("fuzzy threshold must be >= 0.")
    if settings.count < 0:
        parser.error("count must be >= 0 (0 for unlimited).")
    if settings.stats_every < 0:
        parser.error("stats interval must be >= 0.")
    return settings


def _clock() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _duration(seconds: float) -> str:
    seconds = int(round(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes:02d}m{secs:02d}s"
    if minutes:
        return f"{minutes}m{secs:02d}s"
    return f"{secs}s"


def describe_transition(
    target: Target,
    transition: Transition,
    health: HostHealth,
    line: StatusLine,
) -> str:
    prefix = f"[{_clock()}] {target}"
    if transition.current is HealthState.ALIVE:
        text = f"{prefix} is {line.up('UP')}"
    else:
        missed = health.consecutive_failures
        text = f"{prefix} is {line.down('DOWN')} after {missed} missed probe(s)"
    if transition.previous is not HealthState.STARTUP:
        text += f" (was {transition.previous.value} for {_duration(transition.previous_duration)}, flap #{health.flaps})"
    return text


def describe_probe(target: Target, result: ProbeResult, health: HostHealth, line: StatusLine) -> str:
    prefix = f"[{_clock()}] {target} #{health.probes}"
    if result.ok:
        return f"{prefix} {line.up('alive')} rtt={result.rtt_ms:.3f}ms"
    state = health.state.value
    if health.state is HealthState.DEAD:
        state = line.down(state)
    miss = f"miss {health.consecutive_failures}"
    if health.fuzzy:
        miss += f"/{health.fuzzy}"
    return f"{prefix} {state} ({result.error or 'no reply'}, {miss})"


def describe_rtt(stats: RttStats) -> str:
    return f"[{_clock()}] rtt over last {stats.count} replies: {stats.format()}"


def format_stats(target: Target, health: HostHealth, now: float | None = None) -> str:
    return "\n".join([
        "=== Statistics ===",
        f"Target   : {target}",
        f"Probes   : {health.probes} (ok {health.successes}, failed {health.failures})",
        f"Uptime   : {health.uptime:.1f}s",
        f"Downtime : {health.downtime:.1f}s",
        f"Startup  : {health.startup_time:.1f}s",
        f"Flaps    : {health.flaps}",
        f"RTT      : {health.rtt_total.format()}",
        f"Runtime  : {health.elapsed(now):.1f}s",
    ])


def _finish(target: Target, health: HostHealth, line: StatusLine, stdout: TextIO) -> None:
    health.close()
    line.finish()
    print(format_stats(target, health), file=stdout)
    stdout.flush()


async def _async_main(
    target: Target,
    settings: HostConfig,
    health: HostHealth,
    line: StatusLine,
    probe: Probe | None = None,
    stop_event: asyncio.Event | None = None,
) -> int:
    probe = probe or ping
    if stop_event is None:
        stop_event = asyncio.Event()
        install_stop_handlers(stop_event)

    logger.info(
        "Monitoring %s every %ss (timeout %ss, fuzzy %d)",
        target, settings.interval, settings.timeout, settings.fuzzy,
    )

    while True:
        result = await probe(target, settings.timeout)
        if stop_event.is_set():
            # drop the result of a ping cut short by the interrupt
            logger.info("Interrupted after %d probe(s)", health.probes)
            break
        if result.ok:
            transition = health.record_success(result.rtt_ms or 0.0)
        else:
            transition = health.record_failure()

        if transition:
            logger.debug("Transition %s -> %s", transition.previous.value, transition.current.value)
            line.emit(describe_transition(target, transition, health, line))
        line.update(describe_probe(target, result, health, line))

        if settings.stats_every and health.probes % settings.stats_every == 0:
            stats = health.rtt_summary()
            if stats:
                line.emit(describe_rtt(stats))

        if settings.count and health.probes >= settings.count:
            break
        if await sleep_or_stop(stop_event, settings.interval):
            logger.info("Interrupted after %d probe(s)", health.probes)
            break

    return 0 if health.is_alive else 1


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

    settings = resolve_settings(args, config.host, parser)
    _setup_logging("DEBUG" if args.debug else config.log_level)

    try:
        target = resolve(args.target, ipv4_only=settings.ipv4, prefer_ipv6=settings.ipv6)
        ping_command(target, settings.timeout)
    except (ResolveError, PingUnavailable) as e:
        logger.error("%s", e)
        print(f"netwatch-host: {e}", file=sys.stderr)
        sys.exit(1)

    health = HostHealth(fuzzy=settings.fuzzy)
    line = StatusLine(sys.stderr, live=not settings.static)
    hook = ShutdownHook(lambda: _finish(target, health, line, sys.stdout)).register()

    code = 1
    try:
        code = asyncio.run(_async_main(target, settings, health, line))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        code = 0 if health.is_alive else 1
    finally:
        hook()
        hook.unregister()
    sys.exit(code)


if __name__ == "__main__":
    main()
