import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from crowd_scraper.api.v2.router import router as v2_router
from crowd_scraper.core.logging_utils import setup_logging
from crowd_scraper.services.container import build_services

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cria os serviços no startup e libera no shutdown."""
    services = build_services()
    app.state.services = services
    await services.startup()
    logger.info("🚀 Aplicação inicializada com sucesso")
    try:
        yield
    finally:
        await services.shutdown()
        app.state.services = None


app = FastAPI(title="Crowd Level Scraper", lifespan=lifespan)

# --- Global Exception Handlers ---

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global Error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error", "error": str(exc)}
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail}
    )


app.include_router(v2_router, prefix="/v2")


@app.get("/")
async def root():
    return {"status": "ok", "service": "Crowd Level Scraper"}


@app.get("/health")
async def health(request: Request):
    """Status dos serviços (scheduler, scraper, proxies, cache)."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        return {"status": "starting"}
    return {
        "status": "ok",
        "scheduler": services.scheduler.get_status(),
        "scraper": services.scraper.get_status(),
        "proxies": services.proxy_manager.get_status() if services.proxy_manager else None,
        "crowd_data": await services.repository.get_statistics(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("crowd_scraper.main:app", host="0.0.0.0", port=8000)
