"""One-shot HTTP checks against an expected status code and body text."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import httpx

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    status: int | None
    status_ok: bool
    text_ok: bool
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status_ok and self.text_ok

    @property
    def status_label(self) -> str:
        """Status as curl reports it, 000 when no response arrived."""
        return "000" if self.status is None else str(self.status)

    def failure_message(self, attempt: int, expected: int, delay: float, text_required: bool) -> str:
        wait = f"retrying in {delay:g}s..."
        if not self.status_ok and not self.text_ok and text_required:
            return (
                f"[attempt {attempt}] HTTP {self.status_label} (expected {expected}) "
                f"and missing required text — {wait}"
            )
        if not self.status_ok:
            return f"[attempt {attempt}] HTTP {self.status_label} (expected {expected}) — {wait}"
        return f"[attempt {attempt}] Required text not found — {wait}"


@dataclass
class PollStats:
    attempts: int = 0
    _start_time: float = field(default_factory=time.monotonic, repr=False)

    @property
    def retries(self) -> int:
        return max(self.attempts - 1, 0)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._start_time

    def record(self) -> None:
        self.attempts += 1

    def format(self) -> str:
        return "\n".join([
            "=== Statistics ===",
            f"Attempts : {self.attempts}",
            f"Retries  : {self.retries}",
            f"Runtime  : {int(self.elapsed)}s",
        ])


class Poller:
    """Issues GET requests with redirects followed and TLS verification off."""

    def __init__(
        self,
        url: str,
        expected_status: int = 200,
        required_text: str = "",
        timeout: float = 10.0,
        max_redirects: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.expected_status = expected_status
        self.required_text = required_text
        self._client = httpx.AsyncClient(
            verify=False,
            follow_redirects=True,
            max_redirects=max_redirects,
            timeout=timeout,
            transport=transport,
        )

    async def check(self) -> CheckResult:
        """Issue one GET. Network errors yield a result with no status."""
        try:
            response = await self._client.get(self.url)
        except httpx.HTTPError as e:
            logger.debug("GET %s failed: %s", self.url, e)
            return CheckResult(
                status=None,
                status_ok=False,
                text_ok=not self.required_text,
                error=str(e) or e.__class__.__name__,
            )

        logger.debug("GET %s -> %d (%d bytes)", response.url, response.status_code, len(response.content))
        status_ok = response.status_code == self.expected_status
        text_ok = True
        if self.required_text:
            # byte-level literal match, independent of the declared charset
            text_ok = self.required_text.encode() in response.content
        return CheckResult(status=response.status_code, status_ok=status_ok, text_ok=text_ok)

    async def close(self) -> None:
        await self._client.aclose()
