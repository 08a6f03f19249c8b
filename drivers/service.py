"""
Driver location service.

Runs each driver operation end to end: validate the raw parameters,
build the query, execute it against the store and shape the result.
"""

import logging
import time
from typing import Optional

from drivers.models import (
    DriverPosition,
    validate_location_update,
    validate_status_update,
)
from drivers.queries import build_location_upsert, build_status_update
from drivers.store import DriverLocationStore
from errors.codes import ErrorCode
from errors.exceptions import AppException, driver_not_found
from telemetry.service import TelemetryService, get_telemetry_service

logger = logging.getLogger(__name__)


class DriverLocationService:
    """
    Service for recording and reading driver positions.

    Attributes:
        store: Gateway to the driver location index
        telemetry: Telemetry service for operation logging and metrics
    """

    def __init__(
        self,
        store: DriverLocationStore,
        telemetry: Optional[TelemetryService] = None
    ):
        self.store = store
        self.telemetry = telemetry or get_telemetry_service()

    def _record(
        self,
        operation: str,
        user_id: Optional[str],
        start_time: float,
        error: Optional[Exception] = None
    ) -> None:
        if self.telemetry is None:
            return
        level = None
        # Validation failures are 400s and log at WARNING
        if isinstance(error, AppException) and error.error_code == ErrorCode.VALIDATION_ERROR:
            level = logging.WARNING
        self.telemetry.log_driver_operation(
            operation=operation,
            user_id=user_id or "",
            duration_ms=(time.perf_counter() - start_time) * 1000,
            success=error is None,
            error=str(error) if error is not None else None,
            level=level,
        )

    async def update_location(
        self,
        user_id: Optional[str],
        lat: Optional[str],
        lon: Optional[str],
        status: Optional[str],
    ) -> str:
        """
        Record a driver's position and status, creating the record if needed.

        Returns:
            The store's result string ("created", "updated" or "noop")

        Raises:
            AppException: VALIDATION_ERROR for bad parameters,
                STORE_UNAVAILABLE if the write fails
        """
        start_time = time.perf_counter()
        try:
            update = validate_location_update(user_id, lat, lon, status)
            result = await self.store.upsert_location(build_location_upsert(update))
        except Exception as e:
            self._record("update_location", user_id, start_time, e)
            raise

        self._record("update_location", user_id, start_time)
        return result

    async def update_status(self, user_id: Optional[str], status: Optional[str]) -> int:
        """
        Change a driver's status without touching the stored location.

        No existence check is made; an unknown driver matches nothing.

        Returns:
            Number of records updated (0 or 1)
        """
        start_time = time.perf_counter()
        try:
            update = validate_status_update(user_id, status)
            updated = await self.store.update_status(
                build_status_update(update.user_id, update.status)
            )
        except Exception as e:
            self._record("update_status", user_id, start_time, e)
            raise

        if updated == 0:
            logger.info(
                "Status update matched no driver",
                extra={"extra_data": {"user_id": user_id}}
            )
        self._record("update_status", user_id, start_time)
        return updated

    async def get_location(self, user_id: Optional[str]) -> DriverPosition:
        """
        Read a driver's latest known position.

        Raises:
            AppException: DRIVER_NOT_FOUND if the driver has no record
        """
        start_time = time.perf_counter()
        try:
            document = await self.store.find_driver(user_id) if user_id else None
            if not document:
                raise driver_not_found(details={"userid": user_id})
            position = DriverPosition.from_document(document)
        except Exception as e:
            self._record("get_location", user_id, start_time, e)
            raise

        self._record("get_location", user_id, start_time)
        return position
