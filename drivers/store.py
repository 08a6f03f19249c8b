"""
Elasticsearch gateway for driver location records.

One client, and with it one connection pool, is shared by all requests.
Driver records live in a single index. Each record's document id is
derived from the driver identifier, so an update keyed by identifier can
never produce a second record for the same driver.

The elasticsearch client is synchronous; every call is pushed onto the
default executor so request handlers do not block the event loop.
"""

import asyncio
import functools
import hashlib
import logging
from typing import Any, Callable, Dict, Optional

from elasticsearch import BadRequestError, Elasticsearch, NotFoundError

from config.settings import Settings
from drivers.queries import DriverQuery, USER_ID_FIELD
from errors.exceptions import AppException, store_unavailable

logger = logging.getLogger(__name__)


DRIVER_LOCATION_MAPPING: Dict[str, Any] = {
    "properties": {
        "userID": {"type": "keyword"},
        "status": {"type": "keyword"},
        "location": {
            "properties": {
                "type": {"type": "keyword"},
                # Stored for retrieval only, no geospatial index
                "coordinates": {"type": "double", "index": False},
            }
        },
    }
}


def expand_dotted_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn ``{"a.b": 1, "a.c": 2}`` into ``{"a": {"b": 1, "c": 2}}``.

    Elasticsearch merges partial documents object by object, so nested
    objects leave their unmentioned siblings intact on update.
    """
    expanded: Dict[str, Any] = {}
    for dotted_key, value in fields.items():
        *parents, leaf = dotted_key.split(".")
        target = expanded
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = value
    return expanded


def document_id(user_id: str) -> str:
    """
    Document id of a driver's record.

    Elasticsearch caps ids at 512 bytes while driver identifiers are
    unbounded, so the id is the SHA-256 hex digest of the identifier.
    The identifier itself is stored in the ``userID`` field.
    """
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()


def _filter_to_query(filter_fields: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "bool": {
            "filter": [{"term": {field: value}} for field, value in filter_fields.items()]
        }
    }


def _set_script(set_fields: Dict[str, Any]) -> Dict[str, Any]:
    source = "; ".join(
        f"ctx._source.{field} = params['{field}']" for field in set_fields
    )
    return {"source": source, "lang": "painless", "params": dict(set_fields)}


class DriverLocationStore:
    """
    Gateway that executes driver queries against Elasticsearch.

    Store failures of any kind surface as ``STORE_UNAVAILABLE`` AppExceptions.
    If the store was unreachable at startup, the next operation retries the
    connection before running.

    Attributes:
        settings: Application settings with connection and pool configuration
        index_name: Index holding the driver location records
        client: The Elasticsearch client, created on connect unless injected
    """

    def __init__(self, settings: Settings, client: Optional[Elasticsearch] = None):
        self.settings = settings
        self.index_name = settings.index_name
        self.client = client
        self._ready = False

    def _create_client(self) -> Elasticsearch:
        logger.info(
            "Creating Elasticsearch client",
            extra={"extra_data": {
                "index": self.index_name,
                "min_pool_size": self.settings.min_pool_size,
                "max_pool_size": self.settings.max_pool_size,
            }}
        )
        return Elasticsearch(
            self.settings.elastic_endpoint,
            api_key=self.settings.elastic_api_key,
            request_timeout=self.settings.request_timeout,
            connections_per_node=self.settings.max_pool_size,
        )

    async def _run(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(func, *args))
        except AppException:
            raise
        except Exception as e:
            self._handle_store_error(operation, e)

    def _handle_store_error(self, operation: str, error: Exception) -> None:
        """
        Raise a STORE_UNAVAILABLE AppException for a failed store operation.

        Raises:
            AppException: Always
        """
        logger.error(
            f"Elasticsearch {operation} failed: {error}",
            extra={"extra_data": {"operation": operation, "index": self.index_name}}
        )
        raise store_unavailable(
            message=f"Database operation failed: {operation}",
            details={"operation": operation, "error": str(error)}
        ) from error

    def _connect_sync(self) -> None:
        if self.client is None:
            self.client = self._create_client()

        if not self.client.ping():
            raise ConnectionError("Failed to ping Elasticsearch")

        self._ensure_index()
        self._ready = True
        logger.info("Connected to Elasticsearch", extra={"extra_data": {"index": self.index_name}})

    def _ensure_ready(self) -> None:
        if not self._ready:
            self._connect_sync()

    def _ensure_index(self) -> None:
        """Create the driver location index with its mapping if it is missing."""
        if self.client.indices.exists(index=self.index_name):
            logger.debug(f"Index already exists: {self.index_name}")
            return

        try:
            self.client.indices.create(index=self.index_name, mappings=DRIVER_LOCATION_MAPPING)
            logger.info(f"Created index: {self.index_name}")
        except BadRequestError as e:
            # Another instance created it between the exists check and create
            if e.error != "resource_already_exists_exception":
                raise

    async def connect(self) -> None:
        """
        Create the client, verify connectivity and prepare the index.

        Raises:
            AppException: STORE_UNAVAILABLE if Elasticsearch cannot be reached
        """
        await self._run("connect", self._connect_sync)

    async def close(self) -> None:
        """Release the connection pool."""
        if self.client is None:
            return
        client, self.client = self.client, None
        self._ready = False
        await self._run("close", client.close)
        logger.info("Elasticsearch client closed")

    async def ping(self) -> bool:
        """Return True if Elasticsearch answers a ping."""
        if self.client is None:
            return False
        return bool(await self._run("ping", self.client.ping))

    def _upsert_sync(self, query: DriverQuery) -> str:
        self._ensure_ready()

        set_fields = query.update.get("$set", {})
        insert_fields = {
            **query.filter,
            **set_fields,
            **query.update.get("$setOnInsert", {}),
        }

        response = self.client.update(
            index=self.index_name,
            id=document_id(query.filter[USER_ID_FIELD]),
            doc=expand_dotted_fields(set_fields),
            upsert=expand_dotted_fields(insert_fields),
            refresh=True,
        )
        logger.debug(
            "Upsert result",
            extra={"extra_data": {"user_id": query.filter[USER_ID_FIELD], "result": response["result"]}}
        )
        return response["result"]

    async def upsert_location(self, query: DriverQuery) -> str:
        """
        Apply an upsert query to the driver's record.

        ``$set`` fields are merged into an existing record. A missing record
        is created from the filter, ``$set`` and ``$setOnInsert`` fields.

        Returns:
            The store's result string: "created", "updated" or "noop"
        """
        if not query.upsert:
            raise ValueError("upsert_location requires an upsert query")
        return await self._run("upsert_location", self._upsert_sync, query)

    def _update_sync(self, query: DriverQuery) -> int:
        self._ensure_ready()

        response = self.client.update_by_query(
            index=self.index_name,
            query=_filter_to_query(query.filter),
            script=_set_script(query.update.get("$set", {})),
            conflicts="proceed",
            refresh=True,
        )
        logger.debug(
            "Update result",
            extra={"extra_data": {"filter": query.filter, "updated": response["updated"]}}
        )
        return response["updated"]

    async def update_status(self, query: DriverQuery) -> int:
        """
        Apply ``$set`` fields to every record matching the filter, without upsert.

        Returns:
            Number of records updated; 0 when no record matches
        """
        return await self._run("update_status", self._update_sync, query)

    def _find_sync(self, user_id: str) -> Optional[Dict[str, Any]]:
        self._ensure_ready()
        try:
            response = self.client.get(index=self.index_name, id=document_id(user_id))
        except NotFoundError:
            return None
        return response["_source"]

    async def find_driver(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a driver's record.

        Returns:
            The stored document, or None if the driver has no record
        """
        return await self._run("find_driver", self._find_sync, user_id)
