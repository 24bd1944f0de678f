"""
Main FastAPI application entry point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pairmatch.api.routes import catalog, health, matches, participants
from pairmatch.core.config import get_settings
from pairmatch.core.database import Base, get_engine, get_session_local
from pairmatch.core.exceptions import (CatalogEmptyError, ForbiddenError,
                                       NotFoundError, PairMatchError,
                                       PreconditionFailedError)
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.core.middleware import LoggingContextMiddleware
from pairmatch.core.middleware_metrics import MetricsMiddleware
from pairmatch.services.catalog_service import CatalogService

# Configure logging first
LoggingConfig.configure()

logger = LoggingConfig.get_logger(__name__)


def init_database():
    """Create missing tables and seed the catalog"""
    settings = get_settings()
    import pairmatch.models  # noqa: F401  registers all tables on Base.metadata

    Base.metadata.create_all(bind=get_engine())

    if settings.seed_catalog_on_startup:
        db = get_session_local()()
        try:
            CatalogService(db).seed_defaults()
        finally:
            db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for FastAPI app"""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode...")
    init_database()
    if not settings.groq_api_key:
        logger.warning("Generation API key is not set, matches will receive fallback assignments")

    yield

    logger.info(f"Shutting down {settings.app_name}...")


_settings = get_settings()
app = FastAPI(
    title=_settings.app_name,
    description="FIFO pairing of frontend and backend developers with generated assignments",
    version="0.1.0",
    lifespan=lifespan,
)

# Add logging context middleware (before CORS to capture all requests)
app.add_middleware(LoggingContextMiddleware)
app.add_middleware(MetricsMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, exc: PairMatchError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "type": type(exc).__name__},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error_response(404, exc)


@app.exception_handler(PreconditionFailedError)
async def precondition_failed_handler(request: Request, exc: PreconditionFailedError):
    logger.info(
        f"Precondition failed: {exc.message}",
        extra={"error_type": type(exc).__name__, "path": request.url.path},
    )
    return _error_response(409, exc)


@app.exception_handler(ForbiddenError)
async def forbidden_handler(request: Request, exc: ForbiddenError):
    logger.warning(
        f"Forbidden: {exc.message}",
        extra={"path": request.url.path, "method": request.method},
    )
    return _error_response(403, exc)


@app.exception_handler(CatalogEmptyError)
async def catalog_empty_handler(request: Request, exc: CatalogEmptyError):
    logger.error(f"Catalog misconfigured: {exc.message}")
    return _error_response(503, exc)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "type": "ValueError"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to log all unhandled errors"""
    logger.error(
        "Unhandled exception",
        exc_info=True,
        extra={
            "error": str(exc),
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        }
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__},
    )


app.include_router(health.router)
app.include_router(participants.router)
app.include_router(matches.router)
app.include_router(catalog.router)


@app.get("/api")
async def root():
    """Root API endpoint"""
    settings = get_settings()
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "status": "running",
        "environment": settings.app_env,
    }


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_env == "development",
    )
