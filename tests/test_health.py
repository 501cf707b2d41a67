"""Tests for the dependency health checker and its report formatting."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp

from congressiq.config import Settings
from congressiq.health import HealthChecker, format_report


def _settings() -> Settings:
    return Settings(
        congress_api_base_url="https://api.congress.gov/v3",
        congress_api_key="congress-key",
        elasticsearch_url="http://localhost:9200",
        elasticsearch_api_key="es-key",
    )


class TestElasticsearchProbe:
    def test_ping_ok_is_up(self):
        es = MagicMock()
        es.ping = AsyncMock(return_value=True)
        result = asyncio.run(HealthChecker(_settings(), es=es)._probe_elasticsearch())
        assert result["status"] == "UP"
        # an injected client is left open
        es.close.assert_not_called()

    def test_ping_false_is_down(self):
        es = MagicMock()
        es.ping = AsyncMock(return_value=False)
        result = asyncio.run(HealthChecker(_settings(), es=es)._probe_elasticsearch())
        assert result["status"] == "DOWN"
        assert result["detail"] == "ping failed"

    def test_ping_error_is_down(self):
        es = MagicMock()
        es.ping = AsyncMock(side_effect=ConnectionError("refused"))
        result = asyncio.run(HealthChecker(_settings(), es=es)._probe_elasticsearch())
        assert result["status"] == "DOWN"
        assert result["detail"] == "refused"

    def test_created_client_is_closed(self):
        es = MagicMock()
        es.ping = AsyncMock(return_value=True)
        es.close = AsyncMock()
        with patch("congressiq.health.create_es_client", return_value=es):
            asyncio.run(HealthChecker(_settings())._probe_elasticsearch())
        es.close.assert_awaited_once()


class TestCongressProbe:
    def test_connection_error_is_down(self):
        session = MagicMock()
        session.__aenter__ = AsyncMock(return_value=session)
        session.__aexit__ = AsyncMock(return_value=False)
        session.get.side_effect = aiohttp.ClientConnectionError("no route to host")
        with patch("congressiq.health.aiohttp.ClientSession", return_value=session):
            result = asyncio.run(HealthChecker(_settings())._probe_congress())
        assert result["status"] == "DOWN"
        assert "no route to host" in result["detail"]

    def test_check_all_reports_both(self):
        checker = HealthChecker(_settings())
        checker._probe_congress = AsyncMock(return_value={"status": "UP", "latency_ms": 5, "detail": "OK"})
        checker._probe_elasticsearch = AsyncMock(return_value={"status": "DOWN", "latency_ms": 0, "detail": "x"})
        results = asyncio.run(checker.check_all())
        assert set(results) == {"congress_gov", "elasticsearch"}


class TestFormatReport:
    def test_table(self):
        report = format_report({
            "congress_gov": {"status": "UP", "latency_ms": 120, "detail": "OK"},
            "elasticsearch": {"status": "DOWN", "latency_ms": 0, "detail": "ping failed"},
        })
        lines = report.splitlines()
        assert lines[0] == "Dependency Health Check"
        assert "congress_gov:" in lines[2]
        assert "(120ms)" in lines[2]
        assert "DOWN" in lines[3]
        assert "(ping failed)" in lines[3]

    def test_empty(self):
        assert format_report({}).startswith("Dependency Health Check")
