"""
Endpoint Crowd v2 - Scraping imediato e leitura do cache de crowd level.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from crowd_scraper.api.v2.deps import get_repository, get_scraper
from crowd_scraper.schemas.v2.crowd import (
    CrowdDataRecordResponse,
    CrowdScrapeRequest,
    ScrapingResultResponse,
)
from crowd_scraper.services.crowd_data import InMemoryCrowdDataRepository
from crowd_scraper.services.scraper import ScraperService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/crowd/scrape", response_model=ScrapingResultResponse)
async def scrape_crowd_level(
    request: CrowdScrapeRequest,
    scraper: ScraperService = Depends(get_scraper),
    repository: InMemoryCrowdDataRepository = Depends(get_repository),
) -> ScrapingResultResponse:
    """
    Executa o scraping agora e armazena a leitura no cache.

    Falhas do provider retornam 200 com success=False e a mensagem de erro.
    """
    result = await scraper.extract_crowd_level_data(request.restaurant_name, request.location)

    if result.success and result.data is not None:
        await repository.store_crowd_data(result.data)
    elif not result.success:
        logger.warning(f"[API] Scraping falhou para {request.restaurant_name}: {result.error}")

    return ScrapingResultResponse.model_validate(result)


@router.get("/crowd/{restaurant_id}", response_model=CrowdDataRecordResponse)
async def get_latest_crowd_data(
    restaurant_id: str,
    repository: InMemoryCrowdDataRepository = Depends(get_repository),
) -> CrowdDataRecordResponse:
    """Última leitura armazenada para o restaurante."""
    record = await repository.get_latest_crowd_data(restaurant_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Sem dados para {restaurant_id}.")
    return CrowdDataRecordResponse.model_validate(record)
