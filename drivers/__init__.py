"""
Driver location tracking.

Validation, query construction, the Elasticsearch gateway and the HTTP
endpoints for driver position and status updates.
"""

from drivers.models import (
    DriverStatus,
    DriverLocationUpdate,
    DriverStatusUpdate,
    DriverPosition,
    MessageResponse,
    validate_location_update,
    validate_status_update,
)
from drivers.queries import DriverQuery, build_location_upsert, build_status_update
from drivers.store import DriverLocationStore
from drivers.service import DriverLocationService
from drivers.routes import router

__all__ = [
    "DriverStatus",
    "DriverLocationUpdate",
    "DriverStatusUpdate",
    "DriverPosition",
    "MessageResponse",
    "validate_location_update",
    "validate_status_update",
    "DriverQuery",
    "build_location_upsert",
    "build_status_update",
    "DriverLocationStore",
    "DriverLocationService",
    "router",
]
