"""
Endpoint Proxies v2 - Estatísticas do pool de proxies.
"""
from dataclasses import asdict

from fastapi import APIRouter, Depends

from crowd_scraper.api.v2.deps import get_services
from crowd_scraper.schemas.v2.proxies import ProxyStatsResponse
from crowd_scraper.services.container import ServiceContainer

router = APIRouter()


@router.get("/proxies/stats", response_model=ProxyStatsResponse)
async def get_proxy_stats(services: ServiceContainer = Depends(get_services)) -> ProxyStatsResponse:
    manager = services.proxy_manager
    if manager is None:
        return ProxyStatsResponse(enabled=False)

    return ProxyStatsResponse(
        enabled=True,
        pool_size=manager.get_pool_size(),
        active_proxies=manager.get_active_proxy_count(),
        **asdict(manager.get_stats()),
    )
