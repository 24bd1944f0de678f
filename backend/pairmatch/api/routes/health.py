"""
Operational endpoints: health check and Prometheus scrape
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from pairmatch.core.config import get_settings
from pairmatch.core.database import get_db
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.core.metrics import get_metrics, get_metrics_content_type

logger = LoggingConfig.get_logger(__name__)
router = APIRouter(tags=["operations"])


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """
    Health status including database connectivity.

    Generation is reported as `fallback_only` when no API key is set, since
    matches then always receive the fallback assignment.
    """
    settings = get_settings()
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.app_name,
        "components": {
            "generation": {"status": "configured" if settings.groq_api_key else "fallback_only"},
        },
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["components"]["database"] = {"status": "healthy"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        health_status["status"] = "unhealthy"
        health_status["components"]["database"] = {"status": "unhealthy", "error": type(e).__name__}
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@router.get("/metrics")
async def metrics():
    """Metrics in Prometheus text format"""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())
