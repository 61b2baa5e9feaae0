"""
Schemas Pydantic para endpoints de jobs do scheduler v2.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from crowd_scraper.services.scheduler.models import JobStatus, ScrapingPriority

from .crowd import ScrapingResultResponse


class ScrapingTargetSchema(BaseModel):
    """
    Restaurante alvo.

    Campos:
        id: Identificador estável do restaurante
        name: Nome usado na busca
        location: Cidade/endereço - opcional
        popularity: 0-100, define a prioridade nas atualizações recorrentes
    """
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    location: Optional[str] = None
    last_scraped: Optional[datetime] = None
    popularity: Optional[float] = Field(None, ge=0, le=100)


class JobCreateRequest(BaseModel):
    target: ScrapingTargetSchema
    priority: ScrapingPriority = ScrapingPriority.MEDIUM
    scheduled_for: Optional[datetime] = Field(None, description="Horário mínimo de execução (UTC)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "target": {"id": "joes-pizza", "name": "Joe's Pizza", "location": "New York, NY"},
                "priority": "high",
            }
        }
    )


class JobBatchRequest(BaseModel):
    targets: List[ScrapingTargetSchema] = Field(..., min_length=1)
    priority: ScrapingPriority = ScrapingPriority.MEDIUM


class ScrapingJobResponse(BaseModel):
    """Estado de um job."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    target: ScrapingTargetSchema
    priority: ScrapingPriority
    status: JobStatus
    created_at: datetime
    scheduled_for: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Optional[ScrapingResultResponse] = None
    retry_count: int
    max_retries: int
    last_error: Optional[str] = None


class CancelJobResponse(BaseModel):
    job_id: str
    cancelled: bool
