"""
Schemas Pydantic para endpoints de crowd level v2.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from crowd_scraper.services.scraper.models import CrowdLevel


class CrowdScrapeRequest(BaseModel):
    """
    Request schema para scraping imediato.

    Campos:
        restaurant_name: Nome do restaurante - obrigatório
        location: Cidade/endereço agregado à busca - opcional
    """
    restaurant_name: str = Field(..., min_length=1, description="Nome do restaurante")
    location: Optional[str] = Field(None, description="Cidade ou endereço")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "restaurant_name": "Joe's Pizza",
                "location": "New York, NY",
            }
        }
    )


class PeakHourSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: str
    hour: int
    level: CrowdLevel


class CrowdLevelDataSchema(BaseModel):
    """Leitura de crowd level."""
    model_config = ConfigDict(from_attributes=True)

    restaurant_name: Optional[str] = None
    crowd_level: CrowdLevel
    crowd_percentage: Optional[int] = None
    peak_hours: Optional[List[PeakHourSchema]] = None
    average_time_spent: str
    last_updated: datetime
    source: str = "google"


class ScrapingResultResponse(BaseModel):
    """
    Response schema do scraping.

    Campos:
        success: Se o scraping terminou sem erro
        data: Leitura (None quando a página não tem "Popular times")
        error: Mensagem de erro quando success=False
        retry_count: Tentativas extras consumidas
    """
    model_config = ConfigDict(from_attributes=True)

    success: bool
    data: Optional[CrowdLevelDataSchema] = None
    error: Optional[str] = None
    retry_count: int = 0


class CrowdDataRecordResponse(BaseModel):
    """Registro armazenado no cache de crowd level."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    restaurant_id: str
    restaurant_name: str
    crowd_level: CrowdLevel
    crowd_percentage: Optional[int] = None
    peak_hours: Optional[List[PeakHourSchema]] = None
    average_time_spent: str
    last_updated: datetime
    expires_at: datetime
    source: str
    created_at: datetime
