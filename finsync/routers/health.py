"""
Health Check Router
Service liveness, plus backend bank health and sync status
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from finsync.core.errors import GatewayError
from finsync.routers.deps import get_gateway, get_orchestrator, get_scheduler, get_settings

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(settings=Depends(get_settings)):
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/status")
async def backend_status(
    gateway=Depends(get_gateway),
    orchestrator=Depends(get_orchestrator),
    scheduler=Depends(get_scheduler),
):
    """
    Check the aggregation backend:
    - connected banks health (healthy / unhealthy with errors)
    - sync state as seen by the orchestrator
    - scheduled jobs
    """
    status = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "banks": {"connected": False, "healthy": [], "unhealthy": [], "error": None},
    }

    try:
        report = await gateway.health_check()
        status["banks"].update(report.model_dump())
        status["banks"]["connected"] = True
    except GatewayError as e:
        status["banks"]["error"] = str(e)
        logger.error(f"Bank health check failed: {e}")

    status["sync"] = orchestrator.context.to_dict()
    status["scheduler"] = scheduler.get_status()

    healthy = status["banks"]["connected"] and not status["banks"]["unhealthy"]
    status["overall_status"] = "healthy" if healthy else "degraded"
    return status
