from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pattern_categorizer.api.routes import categorize, config, imports, patterns
from pattern_categorizer.core import settings
from pattern_categorizer.core.errors import RecategorizationError, RecategorizationInProgressError
from pattern_categorizer.engine import CategorizationEngine
from pattern_categorizer.logger import get_logger, setup_logging
from pattern_categorizer.services.recategorization import RecategorizationManager

logger = get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        engine = CategorizationEngine.from_settings()
        app.state.engine = engine
        app.state.recategorization_manager = RecategorizationManager(
            engine=engine,
            chunk_size=settings.get_recategorize_chunk_size(),
        )

        logger.info("Services initialized (tie-break: %s).", engine.tie_break)
        yield
        logger.info("Service shutting down.")

    app = FastAPI(title="Pattern Categorizer", lifespan=lifespan)

    @app.exception_handler(RecategorizationError)
    async def recategorization_error_handler(request: Request, exc: RecategorizationError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc), "processed": exc.processed})

    @app.exception_handler(RecategorizationInProgressError)
    async def in_progress_handler(request: Request, exc: RecategorizationInProgressError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    app.include_router(categorize.router)
    app.include_router(patterns.router)
    app.include_router(imports.router)
    app.include_router(config.router)

    return app


app = create_app()
