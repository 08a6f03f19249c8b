"""
Health check module for the Driver Location Service.
"""

from health.service import (
    HealthCheckService,
    HealthStatus,
    DependencyHealth,
)
from health.routes import router

__all__ = [
    "HealthCheckService",
    "HealthStatus",
    "DependencyHealth",
    "router",
]
