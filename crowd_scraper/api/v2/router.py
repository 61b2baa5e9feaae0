"""
Router principal para API v2.
Agrupa todos os endpoints v2 em um único router.
"""
from fastapi import APIRouter

from crowd_scraper.api.v2 import crowd, jobs, proxies

router = APIRouter()


@router.get("/")
async def v2_root():
    """Endpoint raiz da API v2 - lista endpoints disponíveis"""
    return {
        "version": "v2",
        "status": "ok",
        "endpoints": {
            "crowd_scrape": "POST /v2/crowd/scrape",
            "crowd_latest": "GET /v2/crowd/{restaurant_id}",
            "jobs_create": "POST /v2/jobs",
            "jobs_batch": "POST /v2/jobs/batch",
            "jobs_pending": "GET /v2/jobs/pending",
            "jobs_active": "GET /v2/jobs/active",
            "jobs_history": "GET /v2/jobs/history",
            "job_get": "GET /v2/jobs/{job_id}",
            "job_cancel": "DELETE /v2/jobs/{job_id}",
            "proxies_stats": "GET /v2/proxies/stats",
        },
        "docs": "/docs",
    }


router.include_router(crowd.router, tags=["v2-crowd"])
router.include_router(jobs.router, tags=["v2-jobs"])
router.include_router(proxies.router, tags=["v2-proxies"])

__all__ = ["router"]
