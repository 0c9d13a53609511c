"""
FastAPI application entry point.
"""
import asyncio
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from api.router import api_router
from config import settings
from core.errors import LifecycleError, QuotaExceeded
from core.rate_limit import limiter
from db.database import create_tables
from workers.analysis_worker import sweep_timeouts

# Logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Document lifecycle, quota and insights API",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# ── Rate limiting ──
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ── CORS ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    body = {"error": exc.kind, "detail": exc.detail}
    if isinstance(exc, QuotaExceeded) and exc.quota:
        body["quota"] = exc.quota
    return JSONResponse(status_code=exc.status_code, content=body)


app.include_router(api_router)


@app.get("/health")
async def health():
    return {"status": "ok", "version": settings.APP_VERSION}


async def _timeout_sweep_loop() -> None:
    """Fail documents stuck in processing, every TIMEOUT_SWEEP_INTERVAL_SECONDS."""
    while True:
        try:
            await asyncio.sleep(settings.TIMEOUT_SWEEP_INTERVAL_SECONDS)
            expired = await asyncio.to_thread(sweep_timeouts)
            if expired:
                logger.info(f"timeout_sweep: failed {len(expired)} document(s)")
        except asyncio.CancelledError:
            break
        except Exception:
            logger.exception("_timeout_sweep_loop crashed")
            await asyncio.sleep(60)


@app.on_event("startup")
async def startup_event():
    if settings.AUTO_CREATE_TABLES:
        create_tables()
    app.state.timeout_sweep_task = asyncio.create_task(_timeout_sweep_loop())
    logger.info(f"{settings.APP_NAME} started")


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "timeout_sweep_task", None)
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    logger.info(f"{settings.APP_NAME} shutdown")


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
