"""
Endpoint Jobs v2 - Agendamento e consulta de jobs de scraping.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from crowd_scraper.api.v2.deps import get_scheduler
from crowd_scraper.schemas.v2.jobs import (
    CancelJobResponse,
    JobBatchRequest,
    JobCreateRequest,
    ScrapingJobResponse,
    ScrapingTargetSchema,
)
from crowd_scraper.services.scheduler import ScrapingScheduler, ScrapingTarget

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_target(schema: ScrapingTargetSchema) -> ScrapingTarget:
    return ScrapingTarget(**schema.model_dump())


def _to_response(jobs) -> List[ScrapingJobResponse]:
    return [ScrapingJobResponse.model_validate(job) for job in jobs]


@router.post("/jobs", response_model=ScrapingJobResponse, status_code=201)
async def create_job(
    request: JobCreateRequest,
    scheduler: ScrapingScheduler = Depends(get_scheduler),
) -> ScrapingJobResponse:
    job = scheduler.schedule_job(_to_target(request.target), request.priority, request.scheduled_for)
    return ScrapingJobResponse.model_validate(job)


@router.post("/jobs/batch", response_model=List[ScrapingJobResponse], status_code=201)
async def create_job_batch(
    request: JobBatchRequest,
    scheduler: ScrapingScheduler = Depends(get_scheduler),
) -> List[ScrapingJobResponse]:
    jobs = scheduler.schedule_batch([_to_target(t) for t in request.targets], request.priority)
    return _to_response(jobs)


@router.get("/jobs/pending", response_model=List[ScrapingJobResponse])
async def list_pending_jobs(scheduler: ScrapingScheduler = Depends(get_scheduler)):
    return _to_response(scheduler.get_pending_jobs())


@router.get("/jobs/active", response_model=List[ScrapingJobResponse])
async def list_active_jobs(scheduler: ScrapingScheduler = Depends(get_scheduler)):
    return _to_response(scheduler.get_active_jobs())


@router.get("/jobs/history", response_model=List[ScrapingJobResponse])
async def list_job_history(
    limit: int = Query(100, ge=1, le=1000),
    scheduler: ScrapingScheduler = Depends(get_scheduler),
):
    """Jobs finalizados, mais recente primeiro."""
    return _to_response(scheduler.get_job_history(limit))


@router.get("/jobs/{job_id}", response_model=ScrapingJobResponse)
async def get_job(job_id: str, scheduler: ScrapingScheduler = Depends(get_scheduler)):
    job = scheduler.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} não encontrado.")
    return ScrapingJobResponse.model_validate(job)


@router.delete("/jobs/{job_id}", response_model=CancelJobResponse)
async def cancel_job(job_id: str, scheduler: ScrapingScheduler = Depends(get_scheduler)):
    """Cancela um job pendente ou em andamento."""
    if scheduler.get_job(job_id) is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} não encontrado.")
    cancelled = scheduler.cancel_job(job_id)
    logger.info(f"[API] Cancelamento do job {job_id}: {cancelled}")
    return CancelJobResponse(job_id=job_id, cancelled=cancelled)
