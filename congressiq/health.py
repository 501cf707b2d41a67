"""Dependency health check for CongressIQ.

Probes the Congress.gov listing endpoint and the Elasticsearch cluster and
reports UP / DOWN per dependency. Used by the --health-check CLI command.
"""

import asyncio
import logging
import time

import aiohttp
from elasticsearch import ApiError, TransportError

from congressiq.config import Settings
from congressiq.indexing.bulk_indexer import create_es_client
from congressiq.scrapers.base import USER_AGENT

logger = logging.getLogger(__name__)

_PROBE_TIMEOUT = aiohttp.ClientTimeout(total=10)


class HealthChecker:
    """Probe the upstream API and the search index.

    Args:
        settings: Endpoints and credentials.
        es: Optional Elasticsearch client; one is created (and closed) per check otherwise.
    """

    def __init__(self, settings: Settings, es=None):
        self._settings = settings
        self._es = es

    async def check_all(self) -> dict[str, dict]:
        """Return {"congress_gov": {...}, "elasticsearch": {...}}.

        Each value is {"status": "UP"|"DOWN", "latency_ms": int, "detail": str}.
        """
        return {
            "congress_gov": await self._probe_congress(),
            "elasticsearch": await self._probe_elasticsearch(),
        }

    async def _probe_congress(self) -> dict:
        url = f"{self._settings.congress_api_base_url}/bill?limit=1&format=json"
        headers = {"User-Agent": USER_AGENT, "X-Api-Key": self._settings.congress_api_key}
        start = time.monotonic()
        try:
            async with aiohttp.ClientSession(headers=headers, timeout=_PROBE_TIMEOUT) as session:
                async with session.get(url) as resp:
                    latency_ms = int((time.monotonic() - start) * 1000)
                    if 200 <= resp.status < 300:
                        return {"status": "UP", "latency_ms": latency_ms, "detail": "OK"}
                    return {"status": "DOWN", "latency_ms": latency_ms, "detail": f"HTTP {resp.status}"}
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            return {"status": "DOWN", "latency_ms": 0, "detail": str(e) or type(e).__name__}

    async def _probe_elasticsearch(self) -> dict:
        es = self._es or create_es_client(self._settings)
        start = time.monotonic()
        try:
            reachable = await es.ping()
        except (ApiError, TransportError, OSError) as e:
            logger.debug("Elasticsearch ping raised", exc_info=True)
            return {"status": "DOWN", "latency_ms": 0, "detail": str(e) or type(e).__name__}
        finally:
            if self._es is None:
                await es.close()
        latency_ms = int((time.monotonic() - start) * 1000)
        if reachable:
            return {"status": "UP", "latency_ms": latency_ms, "detail": "OK"}
        return {"status": "DOWN", "latency_ms": latency_ms, "detail": "ping failed"}


def format_report(results: dict[str, dict]) -> str:
    """Format health check results as an aligned text table."""
    lines = [
        "Dependency Health Check",
        "-" * 60,
    ]
    max_name = max(len(name) for name in results) if results else 0
    for name, info in results.items():
        status = info["status"]
        if status == "UP":
            detail = f"({info['latency_ms']}ms)"
        else:
            detail = f"({info['detail']})"
        lines.append(f"  {name + ':':<{max_name + 2}} {status:<10} {detail}")
    return "\n".join(lines)
