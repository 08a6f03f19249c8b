"""
HTTP endpoints for driver location tracking.

Parameters are read from the query string and validated by the service,
not by FastAPI, so that a missing or malformed parameter yields the same
400 as an out-of-range one. Apart from validation failures on location
updates, every failure becomes a 500 with a fixed message per endpoint.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from drivers.models import DriverPosition, MessageResponse
from drivers.service import DriverLocationService
from errors.codes import ErrorCode
from errors.exceptions import AppException, operation_failed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["drivers"])

UPDATE_DONE = "Update Done"
LOCATION_UPDATE_FAILED = "Update Failed"
DRIVER_NOT_FOUND_MESSAGE = "Driver couldn't be found"
STATUS_UPDATE_FAILED = "Driver couldn't be updated"


def get_driver_service(request: Request) -> DriverLocationService:
    """Dependency returning the service built by the application factory."""
    return request.app.state.driver_service


@router.put("/updateDriverLoc", response_model=MessageResponse)
async def update_driver_location(
    userid: Optional[str] = None,
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    status: Optional[str] = None,
    service: DriverLocationService = Depends(get_driver_service),
):
    """
    Record a driver's position and status.

    Example: ``PUT /updateDriverLoc?userid=d42&lat=12.97&lon=77.59&status=F``

    Returns:
        200 ``{"message": "Update Done"}``; 400 for invalid parameters;
        500 ``{"message": "Update Failed"}`` for any other failure
    """
    try:
        await service.update_location(userid, lat, lon, status)
    except AppException as e:
        if e.error_code == ErrorCode.VALIDATION_ERROR:
            raise
        raise operation_failed(LOCATION_UPDATE_FAILED, e) from e
    except Exception as e:
        logger.error(f"Location update error: {e}", exc_info=True)
        raise operation_failed(LOCATION_UPDATE_FAILED, e) from e

    return MessageResponse(message=UPDATE_DONE)


@router.get("/getDriverLoc", response_model=DriverPosition)
async def get_driver_location(
    userid: Optional[str] = None,
    service: DriverLocationService = Depends(get_driver_service),
):
    """
    Return a driver's latest known coordinates.

    Returns:
        200 ``{"latitude": ..., "longitude": ...}``;
        500 ``{"message": "Driver couldn't be found"}`` when the driver has
        no record or the lookup fails
    """
    try:
        return await service.get_location(userid)
    except Exception as e:
        raise operation_failed(DRIVER_NOT_FOUND_MESSAGE, e) from e


@router.put("/updateDriverStatus", response_model=MessageResponse)
async def update_driver_status(
    userid: Optional[str] = None,
    status: Optional[str] = None,
    service: DriverLocationService = Depends(get_driver_service),
):
    """
    Change a driver's status, leaving the stored location as is.

    Updating an unknown driver is not an error and changes nothing.

    Returns:
        200 ``{"message": "Update Done"}``;
        500 ``{"message": "Driver couldn't be updated"}`` on any failure
    """
    try:
        await service.update_status(userid, status)
    except Exception as e:
        raise operation_failed(STATUS_UPDATE_FAILED, e) from e

    return MessageResponse(message=UPDATE_DONE)
