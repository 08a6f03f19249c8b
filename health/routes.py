"""
Health check endpoints for load balancers and orchestrators.

- /health: 200 while the service accepts requests
- /health/live: 200 while the process runs, dependencies unchecked
- /health/ready: 200 when Elasticsearch answers, 503 with reasons otherwise
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from health.service import HealthCheckService

router = APIRouter(prefix="/health", tags=["health"])

SERVICE_NAME = "Driver Location Service"
SERVICE_VERSION = "1.0.0"


def _health_service(request: Request) -> HealthCheckService:
    return request.app.state.health_check_service


@router.get("")
async def health_basic(request: Request):
    result = await _health_service(request).check_health()
    return {
        "status": result["status"],
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "timestamp": result["timestamp"]
    }


@router.get("/ready")
async def health_ready(request: Request):
    """
    Readiness check with a ping of the document store.

    Returns:
        200 when the store is reachable, 503 with failure reasons otherwise
    """
    health_status = await _health_service(request).check_readiness()
    response_data = {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        **health_status.to_dict(),
    }

    if health_status.status == "unhealthy":
        response_data["failure_reasons"] = [
            {"dependency": dep.name, "error": dep.error}
            for dep in health_status.dependencies
            if not dep.healthy
        ]
        return JSONResponse(status_code=503, content=response_data)

    return response_data


@router.get("/live")
async def health_live(request: Request):
    result = await _health_service(request).check_liveness()
    return {
        "status": result["status"],
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "timestamp": result["timestamp"]
    }
