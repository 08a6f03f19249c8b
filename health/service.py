"""
Health check service for the Driver Location Service.

Liveness only says the process is running. Readiness pings the document
store with a timeout and reports how long the ping took.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Any

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class DependencyHealth:
    """
    Health status of a single dependency.

    Attributes:
        name: The name of the dependency
        healthy: Whether the dependency is healthy and responding
        response_time_ms: The time taken to check the dependency in milliseconds
        error: Optional error message if the dependency check failed
    """
    name: str
    healthy: bool
    response_time_ms: float
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "name": self.name,
            "healthy": self.healthy,
            "response_time_ms": round(self.response_time_ms, 2),
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class HealthStatus:
    """
    Overall health status of the service.

    Attributes:
        status: "healthy" or "unhealthy"
        timestamp: When the health check was performed (ISO 8601, UTC)
        dependencies: Individual dependency health statuses
    """
    status: str
    timestamp: str
    dependencies: list[DependencyHealth] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "dependencies": [dep.to_dict() for dep in self.dependencies],
        }


class HealthCheckService:
    """
    Service for checking the health of the document store.

    Attributes:
        store: The driver location store to ping
        check_timeout: Timeout in seconds for the store check
    """

    STORE_DEPENDENCY = "elasticsearch"

    def __init__(self, store: Any, check_timeout: float = 5.0):
        self.store = store
        self.check_timeout = check_timeout

    async def check_readiness(self) -> HealthStatus:
        """
        Check the document store for readiness.

        Returns:
            HealthStatus: "unhealthy" when the store does not answer in time
        """
        store_health = await self._check_store()
        status = "healthy" if store_health.healthy else "unhealthy"
        return HealthStatus(
            status=status,
            timestamp=_utc_timestamp(),
            dependencies=[store_health]
        )

    async def check_liveness(self) -> dict[str, Any]:
        """Simple liveness check; does not touch dependencies."""
        return {
            "status": "alive",
            "timestamp": _utc_timestamp()
        }

    async def check_health(self) -> dict[str, Any]:
        """Basic health check; the service is accepting requests."""
        return {
            "status": "ok",
            "timestamp": _utc_timestamp()
        }

    async def _check_store(self) -> DependencyHealth:
        start_time = time.perf_counter()

        try:
            result = await asyncio.wait_for(self.store.ping(), timeout=self.check_timeout)
            elapsed_ms = (time.perf_counter() - start_time) * 1000

            if result:
                logger.debug(f"Store health check passed in {elapsed_ms:.2f}ms")
                return DependencyHealth(
                    name=self.STORE_DEPENDENCY,
                    healthy=True,
                    response_time_ms=elapsed_ms
                )

            logger.warning(f"Store ping returned False after {elapsed_ms:.2f}ms")
            return DependencyHealth(
                name=self.STORE_DEPENDENCY,
                healthy=False,
                response_time_ms=elapsed_ms,
                error="Elasticsearch ping returned False"
            )

        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            error_msg = f"Elasticsearch health check timed out after {self.check_timeout} seconds"
            logger.warning(error_msg)
            return DependencyHealth(
                name=self.STORE_DEPENDENCY,
                healthy=False,
                response_time_ms=elapsed_ms,
                error=error_msg
            )

        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            error_msg = f"Elasticsearch health check failed: {e}"
            logger.error(error_msg)
            return DependencyHealth(
                name=self.STORE_DEPENDENCY,
                healthy=False,
                response_time_ms=elapsed_ms,
                error=error_msg
            )
