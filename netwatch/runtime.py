"""Process plumbing shared by both tools."""

from __future__ import annotations

import asyncio
import atexit
import logging
import signal
from importlib.metadata import PackageNotFoundError, version
from typing import Callable

logger = logging.getLogger(__name__)


def _setup_logging(level: str = "WARNING") -> None:
    log_level = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        level=log_level,
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def package_version() -> str:
    try:
        return version("netwatch")
    except PackageNotFoundError:
        return "0.0.0+local"


class ShutdownHook:
    """Runs a finalize callback at most once, from whichever exit path wins."""

    def __init__(self, callback: Callable[[], None]):
        self._callback = callback
        self.finalized = False

    def register(self) -> ShutdownHook:
        atexit.register(self)
        return self

    def unregister(self) -> None:
        atexit.unregister(self)

    def __call__(self) -> None:
        if self.finalized:
            return
        self.finalized = True
        self._callback()


def install_stop_handlers(stop_event: asyncio.Event) -> None:
    """Route SIGINT/SIGTERM to *stop_event* on the running loop."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows: KeyboardInterrupt reaches main() instead
            logger.debug("Signal handlers unavailable for %s", sig)


async def sleep_or_stop(stop_event: asyncio.Event, seconds: float) -> bool:
    """Sleep for *seconds*. Returns True if the stop event fired first."""
    if stop_event.is_set():
        return True
    if seconds <= 0:
        return False
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True
