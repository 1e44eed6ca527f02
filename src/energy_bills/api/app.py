"""FastAPI application factory."""
from __future__ import annotations
import time
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog
from ..config import Settings
from ..dashboard import DashboardService
from ..extraction import BillExtractor, build_extractor
from ..pipeline import IngestionPipeline
from ..storage.database import build_engine, build_session_factory, close_db, create_schema
from ..storage.files import LocalFileStorage
from ..storage.store import BillStore
from ..utils.logging import setup_logging
from .errors import register_exception_handlers
from .middleware import RequestLoggingMiddleware
from .routes import bills, dashboard, health

API_VERSION = "1.0.0"

logger = structlog.get_logger(__name__)


def create_app(settings: Settings | None = None, *, extractor: BillExtractor | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``extractor`` replaces the OpenAI-backed extractor, mainly for tests.
    """
    if settings is None:
        settings = Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        setup_logging(settings.log_level)
        engine = build_engine(settings.database_url.get_secret_value())
        if settings.auto_create_schema:
            await create_schema(engine)

        Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
        store = BillStore(build_session_factory(engine))
        file_storage = LocalFileStorage(settings.upload_dir)

        app.state.engine = engine
        app.state.store = store
        app.state.file_storage = file_storage
        app.state.pipeline = IngestionPipeline(
            store,
            extractor or build_extractor(settings),
            file_storage,
            max_file_size=settings.max_file_size,
        )
        app.state.dashboard = DashboardService(store)
        app.state.started_at = time.monotonic()
        logger.info("api_started", upload_dir=settings.upload_dir, model=settings.extraction_model)
        yield
        # Shutdown
        await close_db(engine)
        logger.info("api_stopped")

    app = FastAPI(
        title="Energy Bills API",
        description="Electricity bill PDF ingestion, extraction and dashboard API",
        version=API_VERSION,
        docs_url="/api-docs",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    # Store settings in app state
    app.state.settings = settings

    # Register routes
    app.include_router(health.router, tags=["health"])
    app.include_router(bills.router, prefix="/bills", tags=["bills"])
    app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])

    return app
