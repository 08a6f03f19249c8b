"""
Request and response models for driver location tracking.

Query parameters arrive as raw strings. The models here parse and range
check them, and the ``validate_*`` helpers turn pydantic failures into
400-class AppExceptions that name each offending parameter.
"""

import math
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors.exceptions import validation_error

INVALID_FIELDS_MESSAGE = "Wrong fields, Update Failed"


class DriverStatus(str, Enum):
    """Availability codes a driver can report."""
    BUSY = "B"
    FREE = "F"
    OFFLINE = "O"


class DriverLocationUpdate(BaseModel):
    """
    A validated position and status report from a driver.

    Field aliases match the query parameter names so validation errors
    point at what the client actually sent.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_id: str = Field(..., alias="userid")
    latitude: float = Field(..., alias="lat")
    longitude: float = Field(..., alias="lon")
    status: DriverStatus

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        if not v:
            raise ValueError("userid cannot be empty")
        return v

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, v: float) -> float:
        """
        Validate latitude is a number within [-90, 90].

        NaN parses as a float but compares false against both bounds,
        so it is rejected explicitly.
        """
        if math.isnan(v):
            raise ValueError("Latitude must be a number")
        if not -90 <= v <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        return v

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, v: float) -> float:
        """Validate longitude is a number within [-180, 180]."""
        if math.isnan(v):
            raise ValueError("Longitude must be a number")
        if not -180 <= v <= 180:
            raise ValueError("Longitude must be between -180 and 180")
        return v


class DriverStatusUpdate(BaseModel):
    """A status-only report; the stored location is left untouched."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_id: str = Field(..., alias="userid")
    status: DriverStatus

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        if not v:
            raise ValueError("userid cannot be empty")
        return v


class DriverPosition(BaseModel):
    """Latest known coordinates of a driver."""

    latitude: float
    longitude: float

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "DriverPosition":
        """
        Build a position from a stored record.

        Stored coordinates follow GeoJSON order: ``[longitude, latitude]``.
        """
        coordinates = document["location"]["coordinates"]
        return cls(latitude=coordinates[1], longitude=coordinates[0])


class MessageResponse(BaseModel):
    """Plain acknowledgement body."""

    message: str


def _validation_details(exc: ValidationError) -> dict[str, Any]:
    return {
        "validation_errors": [
            {
                "field": ".".join(str(loc) for loc in error.get("loc", [])),
                "error": error.get("msg", ""),
            }
            for error in exc.errors()
        ]
    }


def validate_location_update(
    user_id: Optional[str],
    lat: Optional[str],
    lon: Optional[str],
    status: Optional[str],
) -> DriverLocationUpdate:
    """
    Parse and check the parameters of a location update.

    Raises:
        AppException: VALIDATION_ERROR listing every invalid parameter
    """
    try:
        return DriverLocationUpdate.model_validate(
            {"userid": user_id, "lat": lat, "lon": lon, "status": status}
        )
    except ValidationError as e:
        raise validation_error(INVALID_FIELDS_MESSAGE, details=_validation_details(e)) from e


def validate_status_update(
    user_id: Optional[str],
    status: Optional[str],
) -> DriverStatusUpdate:
    """
    Parse and check the parameters of a status-only update.

    Raises:
        AppException: VALIDATION_ERROR listing every invalid parameter
    """
    try:
        return DriverStatusUpdate.model_validate({"userid": user_id, "status": status})
    except ValidationError as e:
        raise validation_error(INVALID_FIELDS_MESSAGE, details=_validation_details(e)) from e

