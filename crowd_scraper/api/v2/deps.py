"""
Dependências FastAPI: serviços do ServiceContainer em app.state.
"""
from fastapi import HTTPException, Request

from crowd_scraper.services.container import ServiceContainer
from crowd_scraper.services.crowd_data import InMemoryCrowdDataRepository
from crowd_scraper.services.scheduler import ScrapingScheduler
from crowd_scraper.services.scraper import ScraperService


def get_services(request: Request) -> ServiceContainer:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Serviços não inicializados.")
    return services


def get_scraper(request: Request) -> ScraperService:
    return get_services(request).scraper


def get_scheduler(request: Request) -> ScrapingScheduler:
    return get_services(request).scheduler


def get_repository(request: Request) -> InMemoryCrowdDataRepository:
    return get_services(request).repository
