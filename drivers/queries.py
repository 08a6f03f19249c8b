"""
Query construction for driver location records.

Each builder returns a ``DriverQuery``: a (filter, update, options) triple
in document-store update notation. ``$set`` fields are written on every
match, ``$setOnInsert`` fields only when the update creates the record.
Dotted keys address nested fields.
"""

from typing import Any, Dict, NamedTuple

from drivers.models import DriverLocationUpdate, DriverStatus

USER_ID_FIELD = "userID"
STATUS_FIELD = "status"
COORDINATES_FIELD = "location.coordinates"
GEOMETRY_TYPE_FIELD = "location.type"

POINT_GEOMETRY = "Point"


class DriverQuery(NamedTuple):
    """Filter, update document and options for a single-record update."""
    filter: Dict[str, Any]
    update: Dict[str, Any]
    options: Dict[str, Any]

    @property
    def upsert(self) -> bool:
        return bool(self.options.get("upsert", False))


def build_location_upsert(update: DriverLocationUpdate) -> DriverQuery:
    """
    Build the upsert that records a driver's position and status.

    Coordinates are stored in GeoJSON order, longitude first.
    """
    return DriverQuery(
        filter={USER_ID_FIELD: update.user_id},
        update={
            "$set": {
                STATUS_FIELD: update.status.value,
                COORDINATES_FIELD: [update.longitude, update.latitude],
            },
            "$setOnInsert": {
                GEOMETRY_TYPE_FIELD: POINT_GEOMETRY,
            },
        },
        options={"upsert": True},
    )


def build_status_update(user_id: str, status: DriverStatus) -> DriverQuery:
    """Build the update that changes only a driver's status. Never inserts."""
    return DriverQuery(
        filter={USER_ID_FIELD: user_id},
        update={"$set": {STATUS_FIELD: status.value}},
        options={},
    )
