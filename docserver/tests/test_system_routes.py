"""Health and diagnostics endpoints."""

from fastapi.testclient import TestClient

from docserver.api import create_app
from docserver.dependencies import get_environment, get_pipeline


def _client(pipeline, profile):
    app = create_app()
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_environment] = lambda: profile
    return TestClient(app)


def test_health(pipeline, local_profile):
    response = _client(pipeline, local_profile).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_status_is_empty(pipeline, local_profile):
    response = _client(pipeline, local_profile).get("/system/status")

    assert response.status_code == 204


def test_environment_report_local(pipeline, local_profile, tmp_path):
    response = _client(pipeline, local_profile).get("/system/environment")

    assert response.status_code == 200
    body = response.json()
    assert body["profile"]["runtime"] == "interactive-local"
    assert body["profile"]["readOnly"] is False
    assert body["browser"]["strategy"] == "local"
    assert body["browser"]["status"] in {"ok", "error"}
    assert body["sinks"]["local"] == f"local:{(tmp_path / 'pdfs').resolve()}"
    assert body["sinks"]["remote"] is None
    assert body["rendering"]["baseUrl"] == "http://preview.test"
    assert body["rendering"]["graceDelayMs"] == 0


def test_environment_report_serverless(pipeline, serverless_profile):
    response = _client(pipeline, serverless_profile).get("/system/environment")

    body = response.json()
    assert body["profile"]["readOnly"] is True
    assert body["browser"]["strategy"] == "serverless"
    assert "packUrl" in body["browser"]
    assert body["sinks"]["local"] is None
    assert "uploadUrl is required" in body["sinks"]["detail"]
