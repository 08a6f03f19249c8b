"""
Shared pytest fixtures and configuration for all tests.
"""
import copy
import os
from typing import Any, Dict, Optional

import pytest
from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig
from elasticsearch import BadRequestError, NotFoundError
from fastapi.testclient import TestClient

# Hypothesis configuration for property-based testing
from hypothesis import settings as hypothesis_settings, Verbosity, Phase

from application import create_app
from config.settings import Settings
from drivers.store import DriverLocationStore

hypothesis_settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
    print_blob=True,
)

hypothesis_settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    derandomize=True,
)

hypothesis_settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    phases=[Phase.explicit, Phase.reuse, Phase.generate],
)

hypothesis_settings.register_profile(
    "fast",
    max_examples=20,
    verbosity=Verbosity.normal,
    deadline=None,
)

hypothesis_settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


MAX_ID_BYTES = 512


def _response_meta(status: int) -> ApiResponseMeta:
    return ApiResponseMeta(
        status=status,
        http_version="1.1",
        headers=HttpHeaders(),
        duration=0.0,
        node=NodeConfig("http", "localhost", 9200),
    )


def make_not_found_error(message: str = "document_missing_exception") -> NotFoundError:
    """Build the NotFoundError the real client raises for a missing document."""
    return NotFoundError(message, _response_meta(404), {"found": False})


def make_bad_request_error(reason: str) -> BadRequestError:
    """Build the BadRequestError the real client raises for a rejected request."""
    body = {"error": {"type": "action_request_validation_exception", "reason": reason}}
    return BadRequestError("action_request_validation_exception", _response_meta(400), body)


def _deep_merge(target: Dict[str, Any], partial: Dict[str, Any]) -> None:
    for key, value in partial.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


def _set_path(document: Dict[str, Any], dotted_key: str, value: Any) -> None:
    *parents, leaf = dotted_key.split(".")
    for part in parents:
        document = document.setdefault(part, {})
    document[leaf] = copy.deepcopy(value)


class FakeIndices:
    """The subset of ``client.indices`` the store uses."""

    def __init__(self, owner: "FakeElasticsearch"):
        self._owner = owner

    def exists(self, index: str) -> bool:
        return index in self._owner.mappings

    def create(self, index: str, mappings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self._owner.mappings[index] = mappings or {}
        self._owner.documents.setdefault(index, {})
        return {"acknowledged": True, "index": index}


class FakeElasticsearch:
    """
    In-memory stand-in for the Elasticsearch client calls made by the store.

    Follows the real semantics that matter here: ``update`` merges ``doc``
    into an existing document or stores ``upsert`` as a new one, ``get``
    raises NotFoundError for missing ids, and ``update_by_query`` applies
    the script params to term-matched documents. Ids longer than 512 bytes
    are rejected with BadRequestError, as the cluster does.
    """

    def __init__(self):
        self.documents: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.mappings: Dict[str, Dict[str, Any]] = {}
        self.indices = FakeIndices(self)
        self.available = True
        self.closed = False
        self.calls: list[str] = []

    def _check_available(self) -> None:
        if not self.available:
            raise ConnectionError("Connection refused")

    @staticmethod
    def _check_id(id: str) -> None:
        if len(id.encode("utf-8")) > MAX_ID_BYTES:
            raise make_bad_request_error(
                f"id [{id}] is too long, must be no longer than 512 bytes"
            )

    def ping(self) -> bool:
        self.calls.append("ping")
        return self.available

    def close(self) -> None:
        self.closed = True

    def update(self, index: str, id: str, doc: Dict[str, Any],
               upsert: Optional[Dict[str, Any]] = None, refresh: bool = False) -> Dict[str, Any]:
        self.calls.append("update")
        self._check_available()
        self._check_id(id)
        docs = self.documents.setdefault(index, {})
        if id in docs:
            _deep_merge(docs[id], doc)
            return {"_index": index, "_id": id, "result": "updated"}
        if upsert is None:
            raise make_not_found_error()
        docs[id] = copy.deepcopy(upsert)
        return {"_index": index, "_id": id, "result": "created"}

    def update_by_query(self, index: str, query: Dict[str, Any], script: Dict[str, Any],
                        conflicts: Optional[str] = None, refresh: bool = False) -> Dict[str, Any]:
        self.calls.append("update_by_query")
        self._check_available()
        terms = [clause["term"] for clause in query["bool"]["filter"]]
        updated = 0
        for source in self.documents.get(index, {}).values():
            if all(source.get(field) == value for term in terms for field, value in term.items()):
                for key, value in script["params"].items():
                    _set_path(source, key, value)
                updated += 1
        return {"updated": updated, "total": updated, "failures": []}

    def get(self, index: str, id: str) -> Dict[str, Any]:
        self.calls.append("get")
        self._check_available()
        self._check_id(id)
        docs = self.documents.get(index, {})
        if id not in docs:
            raise make_not_found_error()
        return {"_index": index, "_id": id, "found": True, "_source": copy.deepcopy(docs[id])}


def make_settings(**overrides: Any) -> Settings:
    """Settings that ignore the process environment and any .env file."""
    values = {"elastic_endpoint": "http://localhost:9200", **overrides}
    return Settings(_env_file=None, **values)


@pytest.fixture
def app_settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_es() -> FakeElasticsearch:
    return FakeElasticsearch()


@pytest.fixture
def store(app_settings: Settings, fake_es: FakeElasticsearch) -> DriverLocationStore:
    return DriverLocationStore(app_settings, client=fake_es)


@pytest.fixture
def client(app_settings: Settings, store: DriverLocationStore):
    """Test client for an app backed by the in-memory Elasticsearch fake."""
    app = create_app(app_settings, store=store)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def sample_location_update() -> dict:
    """Query parameters of a valid location update."""
    return {
        "userid": "driver-001",
        "lat": "12.9716",
        "lon": "77.5946",
        "status": "F",
    }
