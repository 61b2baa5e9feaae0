"""
ProxyManager: carga do pool, rotação, falhas e estatísticas.

O provider de proxies é simulado com httpx.MockTransport.
"""

import asyncio

import httpx
import pytest

from crowd_scraper.core.exceptions import ProxyProviderError
from crowd_scraper.services.proxy_manager import (
    ProxyConfig,
    ProxyDetails,
    ProxyManager,
    ProxyProviderConfig,
)

PROVIDER = ProxyProviderConfig(api_key="secret-key", base_url="https://proxies.test/api/")

PROXY_LIST = [
    {"ip": "10.0.0.1", "port": 8080, "country": "US", "city": "New York"},
    {"ip": "10.0.0.2", "port": 8080, "country": "US"},
]


class ProviderStub:
    """Simula o endpoint GET /proxies do provider."""

    def __init__(self, payload=None, status_code=200):
        self.payload = PROXY_LIST if payload is None else payload
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def make_manager(stub: ProviderStub, provider: ProxyProviderConfig = PROVIDER, **overrides) -> ProxyManager:
    options = dict(
        rotation_threshold=3,
        max_fail_count=3,
        refresh_interval=3600,
        rate_limit_delay=0,
    )
    options.update(overrides)
    return ProxyManager(provider=provider, client=stub.client(), **options)


# ---------------------------------------------------------------------------
# Descritores
# ---------------------------------------------------------------------------


class TestProxyDescriptors:
    def test_details_to_config_with_credentials(self):
        config = ProxyDetails(server="1.2.3.4", port=8080, username="u", password="p").to_config()

        assert config.server == "http://1.2.3.4:8080"
        assert config.url == "http://u:p@1.2.3.4:8080"
        assert config.key == "1.2.3.4:8080"

    def test_config_without_credentials(self):
        config = ProxyConfig(server="http://1.2.3.4:3128")

        assert config.url == "http://1.2.3.4:3128"

    def test_provider_configured_requires_key_and_url(self):
        assert PROVIDER.configured
        assert not ProxyProviderConfig(api_key="k").configured
        assert not ProxyProviderConfig(base_url="https://x").configured


# ---------------------------------------------------------------------------
# Inicialização / refresh
# ---------------------------------------------------------------------------


class TestInitialize:
    def test_loads_pool_with_bearer_auth(self):
        stub = ProviderStub()
        manager = make_manager(stub)

        asyncio.run(manager.initialize())

        assert manager.get_pool_size() == 2
        assert manager.get_active_proxy_count() == 2
        request = stub.requests[0]
        assert str(request.url) == "https://proxies.test/api/proxies"
        assert request.headers["Authorization"] == "Bearer secret-key"

    def test_provider_credentials_override_record_credentials(self):
        stub = ProviderStub(payload=[{"ip": "10.0.0.9", "port": 3128, "username": "rec", "password": "rec"}])
        provider = ProxyProviderConfig(
            api_key="k", base_url="https://proxies.test", username="acct", password="pw"
        )
        manager = make_manager(stub, provider=provider)

        asyncio.run(manager.initialize())

        details = manager.get_all_proxies()[0]
        assert details.username == "acct"
        assert details.password == "pw"

    def test_unconfigured_provider_uses_direct_connections(self):
        stub = ProviderStub()
        manager = make_manager(stub, provider=ProxyProviderConfig())

        async def scenario():
            await manager.initialize()
            return await manager.get_proxy()

        assert asyncio.run(scenario()) is None
        assert stub.requests == []

    def test_provider_error_status_raises(self):
        manager = make_manager(ProviderStub(status_code=503))

        with pytest.raises(ProxyProviderError, match="initialization failed"):
            asyncio.run(manager.initialize())

    def test_non_array_payload_raises(self):
        manager = make_manager(ProviderStub(payload={"proxies": []}))

        with pytest.raises(ProxyProviderError, match="not an array"):
            asyncio.run(manager.initialize())

    def test_refresh_merges_without_duplicates(self):
        stub = ProviderStub()
        manager = make_manager(stub)

        async def scenario():
            await manager.initialize()
            stub.payload = PROXY_LIST + [{"ip": "10.0.0.3", "port": 9090}]
            await manager._refresh_proxy_pool()

        asyncio.run(scenario())

        keys = sorted(p.key for p in manager.get_all_proxies())
        assert keys == ["10.0.0.1:8080", "10.0.0.2:8080", "10.0.0.3:9090"]

    def test_refresh_failure_during_get_proxy_keeps_current_pool(self):
        stub = ProviderStub()
        manager = make_manager(stub, refresh_interval=-1)

        async def scenario():
            await manager.initialize()
            stub.status_code = 500
            return await manager.get_proxy()

        proxy = asyncio.run(scenario())

        assert proxy is not None
        assert len(stub.requests) == 2

    def test_records_with_invalid_port_are_skipped(self):
        stub = ProviderStub(payload=[
            {"ip": "1.2.3.4", "port": "abc"},
            {"ip": "1.2.3.5", "port": [8080]},
            {"ip": "10.0.0.1", "port": "8080"},
        ])
        manager = make_manager(stub)

        async def scenario():
            await manager.initialize()
            return await manager.get_proxy()

        proxy = asyncio.run(scenario())

        assert [p.key for p in manager.get_all_proxies()] == ["10.0.0.1:8080"]
        assert proxy.key == "10.0.0.1:8080"


# ---------------------------------------------------------------------------
# Rotação e falhas
# ---------------------------------------------------------------------------


class TestRotation:
    @pytest.mark.parametrize("usage, expected", [(2, False), (3, True), (4, True), (0, False)])
    def test_should_rotate_boundary(self, usage, expected):
        manager = make_manager(ProviderStub())

        assert manager.should_rotate_proxy(usage) is expected

    def test_round_robin_over_active_proxies(self):
        manager = make_manager(ProviderStub())

        async def scenario():
            await manager.initialize()
            return [await manager.get_proxy() for _ in range(3)]

        proxies = asyncio.run(scenario())

        assert [p.key for p in proxies] == ["10.0.0.1:8080", "10.0.0.2:8080", "10.0.0.1:8080"]
        assert manager.get_stats().total_requests == 3

    def test_proxy_deactivated_after_max_failures(self):
        manager = make_manager(ProviderStub())

        async def scenario():
            await manager.initialize()
            failing = await manager.get_proxy()
            for _ in range(manager.max_fail_count):
                manager.report_proxy_failure(failing, RuntimeError("timeout"))
            handed_out = [await manager.get_proxy() for _ in range(4)]
            return failing, handed_out

        failing, handed_out = asyncio.run(scenario())

        assert manager.get_active_proxy_count() == 1
        assert all(p.key != failing.key for p in handed_out)
        assert manager.get_stats().failed_requests == 3

    def test_success_resets_fail_count_and_tracks_latency(self):
        manager = make_manager(ProviderStub())

        async def scenario():
            await manager.initialize()
            proxy = await manager.get_proxy()
            manager.report_proxy_failure(proxy)
            manager.report_proxy_success(proxy, 100.0)
            manager.report_proxy_success(proxy, 300.0)
            return proxy

        proxy = asyncio.run(scenario())

        details = next(p for p in manager.get_all_proxies() if p.key == proxy.key)
        assert details.fail_count == 0
        assert details.success_count == 2
        stats = manager.get_stats()
        assert stats.successful_requests == 2
        assert stats.average_response_time == pytest.approx(200.0)

    def test_zero_latency_sample_counts_toward_average(self):
        manager = make_manager(ProviderStub())

        async def scenario():
            await manager.initialize()
            proxy = await manager.get_proxy()
            manager.report_proxy_success(proxy, 100.0)
            manager.report_proxy_success(proxy, 0.0)

        asyncio.run(scenario())

        assert manager.get_stats().average_response_time == pytest.approx(50.0)

    def test_reports_for_unknown_proxy_are_ignored(self):
        manager = make_manager(ProviderStub())

        manager.report_proxy_failure(ProxyConfig(server="http://9.9.9.9:1"))
        manager.report_proxy_success(None)

        assert manager.get_stats().failed_requests == 0
        assert manager.get_stats().successful_requests == 0

    def test_get_stats_returns_copy(self):
        manager = make_manager(ProviderStub())

        stats = manager.get_stats()
        stats.total_requests = 99

        assert manager.get_stats().total_requests == 0


def test_apply_rate_limit_sleeps_for_configured_delay(monkeypatch):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    manager = make_manager(ProviderStub(), rate_limit_delay=2)
    monkeypatch.setattr(asyncio, "sleep", fake_sleep)

    asyncio.run(manager.apply_rate_limit())

    assert delays == [2]


def test_status_reports_pool_and_config():
    manager = make_manager(ProviderStub())
    asyncio.run(manager.initialize())

    status = manager.get_status()

    assert status["pool_size"] == 2
    assert status["active_proxies"] == 2
    assert status["success_rate"] == "N/A"
    assert status["config"]["rotation_threshold"] == 3
