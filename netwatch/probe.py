"""Address resolution and single-shot ping probes via the system ping binary."""

from __future__ import annotations

import asyncio
import logging
import platform
import re
import shutil
import socket
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_RTT_RE = re.compile(r"time[=<]\s*([\d.]+)\s*ms", re.IGNORECASE)


class ResolveError(Exception):
    """Raised when the target name has no usable address."""


class PingUnavailable(Exception):
    """Raised when no ping binary is on PATH."""


@dataclass
class Target:
    host: str
    address: str
    family: int

    @property
    def is_ipv6(self) -> bool:
        return self.family == socket.AF_INET6

    def __str__(self) -> str:
        if self.host == self.address:
            return self.host
        return f"{self.host} ({self.address})"


@dataclass
class ProbeResult:
    ok: bool
    rtt_ms: float | None = None
    error: str = ""


def _lookup(host: str, family: int) -> tuple[int, str]:
    infos = socket.getaddrinfo(host, None, family, socket.SOCK_DGRAM)
    if not infos:
        raise socket.gaierror(f"no address for {host}")
    fam, _, _, _, sockaddr = infos[0]
    return fam, sockaddr[0]


def resolve(host: str, ipv4_only: bool = False, prefer_ipv6: bool = False) -> Target:
    """Resolve *host* to a single address.

    With ``prefer_ipv6`` an IPv6 address is tried first and IPv4 is the
    fallback family. ``ipv4_only`` wins over ``prefer_ipv6``.
    """
    if ipv4_only:
        families = [socket.AF_INET]
    elif prefer_ipv6:
        families = [socket.AF_INET6, socket.AF_INET]
    else:
        families = [socket.AF_UNSPEC]

    last_error: Exception | None = None
    for family in families:
        try:
            fam, address = _lookup(host, family)
        except (socket.gaierror, UnicodeError) as e:
            logger.debug("Lookup of %s (family %s) failed: %s", host, family, e)
            last_error = e
            continue
        logger.debug("Resolved %s to %s", host, address)
        return Target(host=host, address=address, family=fam)

    raise ResolveError(f"cannot resolve {host}: {last_error}")


def ping_command(target: Target, timeout: float) -> list[str]:
    """Build a one-packet ping invocation for the current platform."""
    binary = shutil.which("ping")
    if not binary:
        raise PingUnavailable("ping not found on PATH")

    system = platform.system().lower()
    if system.startswith("win"):
        cmd = [binary, "-n", "1", "-w", str(max(int(timeout * 1000), 1))]
    elif system == "darwin":
        # macOS ping6 is separate and -W takes milliseconds
        if target.is_ipv6:
            binary = shutil.which("ping6") or binary
        cmd = [binary, "-c", "1", "-W", str(max(int(timeout * 1000), 1))]
    else:
        cmd = [binary, "-c", "1", "-W", str(max(int(round(timeout)), 1))]
        if target.is_ipv6:
            cmd.append("-6")
    cmd.append(target.address)
    return cmd


def parse_rtt(output: str) -> float | None:
    match = _RTT_RE.search(output)
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


async def ping(target: Target, timeout: float) -> ProbeResult:
    """Send one echo request. Per-probe failures are returned, never raised."""
    cmd = ping_command(target, timeout)
    started = time.perf_counter()
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            # own session: a terminal Ctrl+C must not reach ping
            start_new_session=True,
        )
    except OSError as e:
        logger.debug("Ping spawn failed for %s: %s", target, e)
        return ProbeResult(ok=False, error=str(e))

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout + 1)
    except asyncio.TimeoutError:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        logger.debug("Ping timeout: %s", target)
        return ProbeResult(ok=False, error="timeout")

    elapsed_ms = (time.perf_counter() - started) * 1000.0
    output = stdout.decode(errors="replace") if stdout else ""

    if proc.returncode != 0:
        logger.debug("Ping failed: %s (exit %s)", target, proc.returncode)
        return ProbeResult(ok=False, error=f"exit status {proc.returncode}")

    rtt = parse_rtt(output)
    if rtt is None:
        rtt = elapsed_ms
    logger.debug("Ping successful: %s rtt=%.3fms", target, rtt)
    return ProbeResult(ok=True, rtt_ms=rtt)
