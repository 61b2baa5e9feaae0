"""
ServiceContainer - Instâncias compartilhadas dos serviços do processo.

Criado uma vez no lifespan da aplicação e exposto em app.state.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from crowd_scraper.core.config import settings
from crowd_scraper.core.exceptions import ProxyProviderError
from crowd_scraper.services.crowd_data import InMemoryCrowdDataRepository
from crowd_scraper.services.proxy_manager import ProxyManager
from crowd_scraper.services.scheduler import ScrapingScheduler
from crowd_scraper.services.scraper import ScraperService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    scraper: ScraperService
    scheduler: ScrapingScheduler
    repository: InMemoryCrowdDataRepository
    proxy_manager: Optional[ProxyManager] = None

    async def startup(self) -> None:
        """Inicializa o pool de proxies, o scheduler e a limpeza do cache."""
        if self.proxy_manager is not None:
            try:
                await self.proxy_manager.initialize()
            except ProxyProviderError as e:
                logger.error(f"[Services] ❌ {e}; seguindo sem proxies iniciais")

        await self.scheduler.start()
        self.repository.start_cleanup()
        logger.info("[Services] ✅ Serviços iniciados")

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        await self.repository.stop_cleanup()
        await self.scraper.close()
        if self.proxy_manager is not None:
            await self.proxy_manager.close()
        logger.info("[Services] Serviços finalizados")


def build_services(use_proxies: Optional[bool] = None) -> ServiceContainer:
    """
    Monta os serviços a partir das configurações.

    Args:
        use_proxies: Força o uso (ou não) do pool de proxies
            (default: PROXY_ENABLED e provider configurado)
    """
    if use_proxies is None:
        use_proxies = settings.PROXY_ENABLED and settings.proxy_provider_configured

    proxy_manager = ProxyManager() if use_proxies else None
    repository = InMemoryCrowdDataRepository()
    scraper = ScraperService(proxy_manager=proxy_manager)
    scheduler = ScrapingScheduler(scraper, repository=repository)

    return ServiceContainer(
        scraper=scraper,
        scheduler=scheduler,
        repository=repository,
        proxy_manager=proxy_manager,
    )
