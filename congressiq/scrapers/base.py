"""Base HTTP client with the shared rate-limit policy.

Every upstream call goes through ``BaseClient._request_with_retry``:
- Configurable User-Agent header
- HTTP 429 is retried with exponential backoff (base delay doubling per
  attempt) up to ``max_retries`` retries, then ``RateLimitExceeded``
- Every other non-2xx response raises ``UpstreamError`` immediately; those
  are bad requests, missing bills, or auth failures, none of which a retry fixes
- Transport failures (connection reset, timeout) raise ``UpstreamError``
  with status 0
- A 2xx JSON body that does not decode raises ``UpstreamError`` with the
  response status; text bodies decode with replacement characters
- Config-driven retry/backoff parameters from the "resilience" section
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import aiohttp

from congressiq.errors import RateLimitExceeded, UpstreamError


logger = logging.getLogger(__name__)

USER_AGENT = "CongressIQ/1.0"
MAX_RETRIES = 5
BACKOFF_BASE = 1.0  # seconds
BACKOFF_MAX = 60.0
REQUEST_TIMEOUT = 30


class BaseClient:
    """Shared request plumbing for upstream API clients.

    Args:
        source_name: Identifier used in log lines (e.g., "congress_gov").
        config: Optional app config dict. Reads the "resilience" section for
                retry/backoff/timeout parameters; missing keys fall back to
                the module-level defaults.
        sleep: Awaitable sleep function. Defaults to asyncio.sleep. Inject a
               mock for deterministic tests.
    """

    def __init__(
        self,
        source_name: str,
        config: dict | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.source_name = source_name
        self._headers = {"User-Agent": USER_AGENT}
        self._sleep = sleep or asyncio.sleep

        resilience = (config or {}).get("resilience", {})
        self.max_retries = resilience.get("max_retries", MAX_RETRIES)
        self.backoff_base = resilience.get("backoff_base", BACKOFF_BASE)
        self.backoff_max = resilience.get("backoff_max", BACKOFF_MAX)
        self.request_timeout = aiohttp.ClientTimeout(
            total=resilience.get("request_timeout", REQUEST_TIMEOUT)
        )

    def create_session(self) -> aiohttp.ClientSession:
        """Create an aiohttp session carrying this client's headers."""
        return aiohttp.ClientSession(headers=self._headers, timeout=self.request_timeout)

    def backoff_delay(self, attempt: int, retry_after: str | None = None) -> float:
        """Seconds to wait before retry number ``attempt`` (0-based).

        ``backoff_base * 2**attempt``, raised to a numeric Retry-After header
        when the server asks for longer, never above ``backoff_max``.
        """
        delay = self.backoff_base * (2 ** attempt)
        if retry_after:
            try:
                delay = max(delay, float(retry_after))
            except ValueError:
                pass
        return min(delay, self.backoff_max)

    async def _request_with_retry(
        self, session: aiohttp.ClientSession, method: str, url: str,
        as_text: bool = False, **kwargs,
    ):
        """Issue a request, retrying only on HTTP 429.

        Returns the decoded JSON body, or the raw body text when ``as_text``.

        Raises:
            RateLimitExceeded: 429 was returned max_retries + 1 times in a row.
            UpstreamError: Any other non-2xx status or a transport failure.
        """
        method_lower = method.lower()
        if not hasattr(session, method_lower):
            raise ValueError(f"Unsupported HTTP method: {method}")
        request_fn = getattr(session, method_lower)

        rate_limit_hits = 0
        while True:
            retry_after = None
            try:
                async with request_fn(url, **kwargs) as resp:
                    if resp.status == 429:
                        retry_after = resp.headers.get("Retry-After") or ""
                    elif not 200 <= resp.status < 300:
                        logger.warning(
                            "%s: HTTP %d for %s", self.source_name, resp.status, url,
                        )
                        raise UpstreamError(resp.status, resp.reason or "")
                    elif as_text:
                        # text bodies may be PDF or another non-UTF-8 format
                        return await resp.text(errors="replace")
                    else:
                        try:
                            return await resp.json()
                        except ValueError as e:
                            logger.warning(
                                "%s: undecodable body for %s: %s", self.source_name, url, e,
                            )
                            raise UpstreamError(
                                resp.status, f"invalid response body: {e}",
                            ) from e
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning("%s: request failed for %s: %r", self.source_name, url, e)
                raise UpstreamError(0, str(e) or type(e).__name__) from e

            if rate_limit_hits >= self.max_retries:
                logger.error(
                    "%s: too many 429 responses (%d), giving up",
                    self.source_name, rate_limit_hits + 1,
                )
                raise RateLimitExceeded(rate_limit_hits + 1, url)

            delay = self.backoff_delay(rate_limit_hits, retry_after)
            rate_limit_hits += 1
            logger.warning(
                "%s: 429 rate limited, retry %d/%d in %.1fs",
                self.source_name, rate_limit_hits, self.max_retries, delay,
            )
            await self._sleep(delay)
