from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from core.settings import Settings

from conftest import SAMPLE_HTML, RecordingTransport, build_service


def build_api(missing_config: Path, transport: httpx.MockTransport) -> TestClient:
    settings = Settings(config_path=missing_config, api_token="t", enable_local_api=True)
    app = create_app(settings, service=build_service(transport))
    return TestClient(app)


def test_api_disabled_by_default(missing_config: Path) -> None:
    with pytest.raises(RuntimeError, match="disabled"):
        create_app(Settings(config_path=missing_config, api_token="t", enable_local_api=False))


def test_health(missing_config, transport) -> None:
    response = build_api(missing_config, transport).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_connection(missing_config, transport) -> None:
    response = build_api(missing_config, transport).get("/connection")
    assert response.json()["status"] == "connected"


def test_convert_endpoint(missing_config, transport) -> None:
    client = build_api(missing_config, transport)
    response = client.post(
        "/convert",
        json={"html": SAMPLE_HTML, "name": "Spring", "options": {"minify": True, "merge_tag_format": "mustache"}},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Spring"
    assert body["subject"] == "Spring Sale"
    assert body["document"]["provenance"]["source"] == "html_import"
    sent_options = transport.bodies()[0]["options"]
    assert sent_options["minify"] is True
    assert sent_options["merge_tag_format"] == "mustache"


def test_convert_validation_error(missing_config, transport) -> None:
    response = build_api(missing_config, transport).post("/convert", json={"html": "<p>hi</p>"})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "validation_error"
    assert transport.requests == []


def test_convert_rate_limited(missing_config) -> None:
    transport = RecordingTransport(lambda request: httpx.Response(429, headers={"Retry-After": "30"}))
    response = build_api(missing_config, transport).post("/convert", json={"html": SAMPLE_HTML})
    assert response.status_code == 429
    assert response.headers["Retry-After"] == "30"
    assert response.json()["detail"]["code"] == "rate_limit"


def test_convert_remote_server_error(missing_config) -> None:
    transport = RecordingTransport(lambda request: httpx.Response(500))
    response = build_api(missing_config, transport).post("/convert", json={"html": SAMPLE_HTML})
    assert response.status_code == 502
    assert response.json()["detail"]["code"] == "server_error"


def test_batch_endpoint(missing_config, transport) -> None:
    response = build_api(missing_config, transport).post(
        "/batch",
        json={"items": [{"html": SAMPLE_HTML, "name": "a"}, {"html": "", "name": "b"}], "parallelism": 2},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["success_rate"] == 50.0
    assert body["successes"][0]["template"]["name"] == "a"
    assert body["failures"] == [
        {"index": 1, "name": "b", "error": "HTML to Bee conversion failed: HTML content cannot be empty"}
    ]
