"""
Integration tests for API endpoints.

These tests drive the full application stack over HTTP: middleware,
routes, service, store and exception handlers, with the in-memory
Elasticsearch fake standing in for the cluster.
"""
import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from drivers.store import document_id
from middleware.request_id import REQUEST_ID_HEADER


# Mark all tests in this module as integration tests
pytestmark = pytest.mark.integration


def _documents(fake_es, app_settings):
    return fake_es.documents.get(app_settings.index_name, {})


class TestUpdateDriverLocation:
    """Integration tests for PUT /updateDriverLoc."""

    def test_valid_update_returns_update_done(self, client, sample_location_update):
        response = client.put("/updateDriverLoc", params=sample_location_update)

        assert response.status_code == 200
        assert response.json() == {"message": "Update Done"}

    def test_creates_geojson_record(self, client, fake_es, app_settings, sample_location_update):
        client.put("/updateDriverLoc", params=sample_location_update)

        assert _documents(fake_es, app_settings)[document_id("driver-001")] == {
            "userID": "driver-001",
            "status": "F",
            "location": {"type": "Point", "coordinates": [77.5946, 12.9716]},
        }

    def test_repeated_updates_keep_one_record(self, client, fake_es, app_settings):
        for lat, lon, status in [("1", "2", "F"), ("3", "4", "B"), ("5", "6", "O")]:
            response = client.put(
                "/updateDriverLoc",
                params={"userid": "driver-9", "lat": lat, "lon": lon, "status": status},
            )
            assert response.status_code == 200

        docs = _documents(fake_es, app_settings)
        assert list(docs) == [document_id("driver-9")]
        assert docs[document_id("driver-9")]["status"] == "O"
        assert docs[document_id("driver-9")]["location"]["coordinates"] == [6.0, 5.0]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"lat": "90.5"},
            {"lat": "-91"},
            {"lon": "180.01"},
            {"lon": "-200"},
            {"lat": "north"},
            {"lat": "NaN"},
            {"status": "X"},
            {"userid": ""},
        ],
    )
    def test_invalid_parameters_return_400(self, client, fake_es, app_settings,
                                           sample_location_update, overrides):
        response = client.put("/updateDriverLoc", params={**sample_location_update, **overrides})

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Wrong fields, Update Failed"
        assert body["error_code"] == "VALIDATION_ERROR"
        assert _documents(fake_es, app_settings) == {}

    @pytest.mark.parametrize("missing", ["userid", "lat", "lon", "status"])
    def test_missing_parameter_returns_400(self, client, sample_location_update, missing):
        params = {k: v for k, v in sample_location_update.items() if k != missing}

        response = client.put("/updateDriverLoc", params=params)

        assert response.status_code == 400
        fields = [e["field"] for e in response.json()["details"]["validation_errors"]]
        assert fields == [missing]

    def test_store_failure_returns_500(self, client, fake_es, sample_location_update):
        fake_es.available = False

        response = client.put("/updateDriverLoc", params=sample_location_update)

        assert response.status_code == 500
        assert response.json()["message"] == "Update Failed"
        assert response.json()["error_code"] == "STORE_UNAVAILABLE"


class TestGetDriverLocation:
    """Integration tests for GET /getDriverLoc."""

    def test_returns_last_reported_position(self, client, sample_location_update):
        client.put("/updateDriverLoc", params=sample_location_update)

        response = client.get("/getDriverLoc", params={"userid": "driver-001"})

        assert response.status_code == 200
        assert response.json() == {"latitude": 12.9716, "longitude": 77.5946}

    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture], max_examples=25)
    @given(
        lat=st.floats(min_value=-90, max_value=90, allow_nan=False),
        lon=st.floats(min_value=-180, max_value=180, allow_nan=False),
        status=st.sampled_from(["B", "F", "O"]),
    )
    def test_update_then_read_round_trips(self, client, lat, lon, status):
        params = {"userid": "round-trip", "lat": repr(lat), "lon": repr(lon), "status": status}

        assert client.put("/updateDriverLoc", params=params).status_code == 200
        response = client.get("/getDriverLoc", params={"userid": "round-trip"})

        assert response.json() == {"latitude": lat, "longitude": lon}

    def test_long_userid_round_trips(self, client, fake_es, app_settings):
        long_id = "d" * 600
        params = {"userid": long_id, "lat": "-33.8688", "lon": "151.2093", "status": "B"}

        update = client.put("/updateDriverLoc", params=params)
        status = client.put("/updateDriverStatus", params={"userid": long_id, "status": "O"})
        response = client.get("/getDriverLoc", params={"userid": long_id})

        assert update.status_code == 200
        assert status.status_code == 200
        assert response.status_code == 200
        assert response.json() == {"latitude": -33.8688, "longitude": 151.2093}
        assert _documents(fake_es, app_settings)[document_id(long_id)]["status"] == "O"

    def test_unknown_driver_returns_500(self, client):
        response = client.get("/getDriverLoc", params={"userid": "nobody"})

        assert response.status_code == 500
        assert response.json()["message"] == "Driver couldn't be found"
        assert response.json()["error_code"] == "DRIVER_NOT_FOUND"

    def test_missing_userid_returns_500(self, client):
        response = client.get("/getDriverLoc")

        assert response.status_code == 500
        assert response.json()["message"] == "Driver couldn't be found"

    def test_store_failure_returns_500(self, client, fake_es, sample_location_update):
        client.put("/updateDriverLoc", params=sample_location_update)
        fake_es.available = False

        response = client.get("/getDriverLoc", params={"userid": "driver-001"})

        assert response.status_code == 500
        assert response.json()["message"] == "Driver couldn't be found"


class TestUpdateDriverStatus:
    """Integration tests for PUT /updateDriverStatus."""

    def test_changes_status_and_keeps_location(self, client, fake_es, app_settings,
                                               sample_location_update):
        client.put("/updateDriverLoc", params=sample_location_update)

        response = client.put("/updateDriverStatus", params={"userid": "driver-001", "status": "B"})

        assert response.status_code == 200
        assert response.json() == {"message": "Update Done"}
        document = _documents(fake_es, app_settings)[document_id("driver-001")]
        assert document["status"] == "B"
        assert client.get("/getDriverLoc", params={"userid": "driver-001"}).json() == {
            "latitude": 12.9716,
            "longitude": 77.5946,
        }

    def test_unknown_driver_returns_200_and_creates_nothing(self, client, fake_es, app_settings):
        response = client.put("/updateDriverStatus", params={"userid": "nobody", "status": "O"})

        assert response.status_code == 200
        assert response.json() == {"message": "Update Done"}
        assert _documents(fake_es, app_settings) == {}

    @pytest.mark.parametrize("params", [{"userid": "driver-001", "status": "Z"}, {"status": "F"}])
    def test_invalid_parameters_return_500(self, client, params):
        response = client.put("/updateDriverStatus", params=params)

        assert response.status_code == 500
        assert response.json()["message"] == "Driver couldn't be updated"

    def test_store_failure_returns_500(self, client, fake_es):
        fake_es.available = False

        response = client.put("/updateDriverStatus", params={"userid": "driver-001", "status": "F"})

        assert response.status_code == 500
        assert response.json()["message"] == "Driver couldn't be updated"


class TestHealthEndpoints:
    """Integration tests for health check endpoints."""

    def test_health_endpoint_returns_ok(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["service"] == "Driver Location Service"

    def test_liveness(self, client):
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_readiness_when_store_is_up(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readiness_returns_503_when_store_is_down(self, client, fake_es):
        fake_es.available = False

        response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["failure_reasons"][0]["dependency"] == "elasticsearch"


class TestRequestCorrelation:
    """Every response, including errors, carries the request ID."""

    def test_request_id_echoed_on_success(self, client, sample_location_update):
        response = client.put(
            "/updateDriverLoc",
            params=sample_location_update,
            headers={REQUEST_ID_HEADER: "req-abc"},
        )

        assert response.headers[REQUEST_ID_HEADER] == "req-abc"

    def test_request_id_in_error_body(self, client):
        response = client.get(
            "/getDriverLoc",
            params={"userid": "nobody"},
            headers={REQUEST_ID_HEADER: "req-def"},
        )

        assert response.headers[REQUEST_ID_HEADER] == "req-def"
        assert response.json()["request_id"] == "req-def"


class TestStartupWithStoreDown:
    """The service starts even when Elasticsearch is unreachable."""

    def test_requests_fail_until_store_returns(self, app_settings, fake_es, sample_location_update):
        from fastapi.testclient import TestClient

        from application import create_app
        from drivers.store import DriverLocationStore

        fake_es.available = False
        app = create_app(app_settings, store=DriverLocationStore(app_settings, client=fake_es))

        with TestClient(app, raise_server_exceptions=False) as test_client:
            failed = test_client.put("/updateDriverLoc", params=sample_location_update)
            fake_es.available = True
            recovered = test_client.put("/updateDriverLoc", params=sample_location_update)

        assert failed.status_code == 500
        assert recovered.status_code == 200


class TestCors:
    """Cross-origin access follows CORS_ORIGINS."""

    def _client(self, fake_es, cors_origins):
        from fastapi.testclient import TestClient

        from application import create_app
        from config.settings import Settings
        from drivers.store import DriverLocationStore

        settings = Settings(
            _env_file=None,
            elastic_endpoint="http://localhost:9200",
            cors_origins=cors_origins,
        )
        app = create_app(settings, store=DriverLocationStore(settings, client=fake_es))
        return TestClient(app)

    def test_any_origin_when_configured_with_wildcard(self, fake_es):
        with self._client(fake_es, ["*"]) as test_client:
            response = test_client.get(
                "/health",
                headers={"Origin": "https://driver-app.example.org"},
            )

        assert response.headers["access-control-allow-origin"] == "*"
        assert "access-control-allow-credentials" not in response.headers

    def test_preflight_for_update_allowed_with_wildcard(self, fake_es):
        with self._client(fake_es, ["*"]) as test_client:
            response = test_client.options(
                "/updateDriverLoc",
                headers={
                    "Origin": "https://driver-app.example.org",
                    "Access-Control-Request-Method": "PUT",
                },
            )

        assert response.status_code == 200
        assert "PUT" in response.headers["access-control-allow-methods"]

    def test_unlisted_origin_gets_no_cors_headers(self, fake_es):
        with self._client(fake_es, ["https://dispatch.example.com"]) as test_client:
            response = test_client.get(
                "/health",
                headers={"Origin": "https://driver-app.example.org"},
            )

        assert "access-control-allow-origin" not in response.headers
