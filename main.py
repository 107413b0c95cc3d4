# main.py
import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workorders.core.config import (
    AUTO_ARCHIVE_ENABLED,
    AUTO_ARCHIVE_INTERVAL_MINUTES,
    LOG_LEVEL,
)
from workorders.core.container import get_lifecycle_engine
from workorders.core.db import init_models
from workorders.core.exceptions import WorkOrderError
from workorders.middleware.activity_logger import RequestLoggerMiddleware
from workorders.routers import router as api_router
from workorders.services.work_order_services.auto_archive import auto_archive_loop

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Work Order Lifecycle API",
    description="FastAPI backend for work order lifecycle, audit trail and auto-archival",
    version="0.1.0"
)
# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # adjust for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggerMiddleware)


@app.exception_handler(WorkOrderError)
async def work_order_error_handler(request: Request, exc: WorkOrderError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


# Health check endpoint
@app.get("/", tags=["Health"])
async def health_check():
    return {"status": "ok", "message": "Backend is running"}

# Register routers
app.include_router(api_router)


@app.on_event("startup")
async def on_startup():
    await init_models()
    if AUTO_ARCHIVE_ENABLED:
        app.state.auto_archive_task = asyncio.create_task(
            auto_archive_loop(get_lifecycle_engine(), AUTO_ARCHIVE_INTERVAL_MINUTES * 60)
        )
        logger.info("Auto-archive sweep scheduled every %s minutes", AUTO_ARCHIVE_INTERVAL_MINUTES)


@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "auto_archive_task", None)
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
