from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Optional
import uvicorn
import logging
import sys
import os

from medreminder.core.config import Settings, get_settings
from medreminder.reminders.dispatcher import ReminderDispatcher
from medreminder.reminders.push import WebPushSender
from medreminder.reminders.scheduler import ReminderScheduler
from medreminder.reminders.service import ReminderService
from medreminder.reminders.store import build_store

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    settings: Settings = app.state.settings
    logger.info(f"Starting up {settings.PROJECT_NAME} backend ({settings.STORAGE_BACKEND} storage)...")

    os.makedirs(settings.UPLOADS_LOCAL_DIR, exist_ok=True)
    store = build_store(settings)

    sender = WebPushSender(settings.VAPID_PUBLIC_KEY, settings.VAPID_PRIVATE_KEY, settings.VAPID_EMAIL)
    if not sender.is_configured():
        logger.warning(
            "⚠️ [Push] VAPID keys not provided. Web Push notifications will be disabled "
            "until you set VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY."
        )
    dispatcher = ReminderDispatcher(store, sender)
    scheduler = ReminderScheduler(dispatcher.fire)
    service = ReminderService(
        store,
        scheduler,
        default_tone=settings.DEFAULT_TONE,
        default_type=settings.DEFAULT_REMINDER_TYPE,
    )

    app.state.store = store
    app.state.dispatcher = dispatcher
    app.state.scheduler = scheduler
    app.state.reminder_service = service

    service.restore_timers()
    logger.info(f"✅ {settings.PROJECT_NAME} backend ready")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.PROJECT_NAME} backend...")
    await scheduler.shutdown()
    store.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Medicine reminders with Web Push, prescription parsing and mock report analysis",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    from medreminder.api.v1.api import api_router
    app.include_router(api_router, prefix=settings.API_PREFIX)

    # Uploaded tone files; the directory is created during startup
    app.mount("/uploads", StaticFiles(directory=settings.UPLOADS_LOCAL_DIR, check_dir=False), name="uploads")

    if settings.METRICS_ENABLED:
        from prometheus_fastapi_instrumentator import Instrumentator
        Instrumentator().instrument(app).expose(app, endpoint="/metrics")

    @app.get("/health", tags=["Health Check"])
    async def health_check(request: Request):
        """Health check endpoint"""
        dispatcher = getattr(request.app.state, "dispatcher", None)
        scheduler = getattr(request.app.state, "scheduler", None)
        store = getattr(request.app.state, "store", None)
        return {
            "status": "healthy" if store is not None else "starting",
            "service": "reminders",
            "storage": store.backend_name if store is not None else None,
            "scheduled": len(scheduler) if scheduler is not None else 0,
            "push_enabled": bool(dispatcher and dispatcher.push_enabled),
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": exc.detail,
                "status_code": exc.status_code
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
        return JSONResponse(
            status_code=400,
            content={
                "error": True,
                "message": message,
                "status_code": 400
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled exceptions"""
        logger.error(f"Unhandled exception: {exc!r} - {request.url}")
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "message": "Internal server error",
                "status_code": 500
            }
        )

    return app


configure_logging(get_settings().LOG_LEVEL)

# Create the FastAPI app instance
app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "medreminder.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_level="info"
    )


if __name__ == "__main__":
    run()
