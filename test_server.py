"""Tests for the FastAPI session endpoints."""

import base64

import pytest
from fastapi.testclient import TestClient

from conftest import PNG_BYTES, FakeGateway, make_report
from rapid_claims.models.evidence import Evidence
from rapid_claims.orchestration.handshake import HandshakeProtocol
from rapid_claims.orchestration.pacing import NoPacing
from rapid_claims.orchestration.workflow import WorkflowController
from rapid_claims.utils.errors import USER_FACING_ANALYSIS_MESSAGE, AnalysisError
from server import app, controller_dependency


def _client_for(gateway):
    controller = WorkflowController(gateway=gateway, protocol=HandshakeProtocol(pacing=NoPacing()))
    app.dependency_overrides[controller_dependency] = lambda: controller
    return TestClient(app), controller


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


def _upload(client, filename="porch.png", content_type="image/png", data=PNG_BYTES):
    return client.post("/api/session/evidence", files={"file": (filename, data, content_type)})


def test_session_starts_idle():
    client, _ = _client_for(FakeGateway())

    response = client.get("/api/session")

    assert response.status_code == 200
    assert response.json()["step"] == "IDLE"
    assert response.json()["transcript"] == []


def test_upload_runs_session_to_completion():
    client, controller = _client_for(FakeGateway(report=make_report(cost=3200)))

    response = _upload(client)

    assert response.status_code == 202
    assert response.json()["accepted"] is True

    session = client.get("/api/session").json()
    assert session["step"] == "COMPLETED"
    assert session["evidence"]["filename"] == "porch.png"
    assert session["report"]["estimatedCost"] == 3200
    assert session["result"]["status"] == "APPROVED"
    assert len(session["transcript"]) == 3
    assert session["transcript"][2]["payload"]["method"] == "INITIATE_PAYMENT"


def test_transcript_endpoint_numbers_entries():
    client, _ = _client_for(FakeGateway(report=make_report(cost=7000)))
    _upload(client)

    transcript = client.get("/api/session/transcript").json()

    assert transcript["total_entries"] == 2
    assert [row["sequence"] for row in transcript["entries"]] == [1, 2]
    assert transcript["entries"][1]["payload"]["result"] == "REQUIRE_MANUAL_REVIEW"


def test_failed_analysis_returns_to_idle_with_message():
    client, _ = _client_for(FakeGateway(error=AnalysisError.unsuitable_content("too dark")))

    response = _upload(client)
    assert response.json()["accepted"] is True

    session = client.get("/api/session").json()
    assert session["step"] == "IDLE"
    assert session["error"] == USER_FACING_ANALYSIS_MESSAGE
    assert session["report"] is None


def test_non_media_upload_is_ignored():
    gateway = FakeGateway()
    client, _ = _client_for(gateway)

    response = _upload(client, filename="notes.txt", content_type="text/plain", data=b"hello")

    assert response.status_code == 202
    assert response.json()["accepted"] is False
    assert response.json()["session"]["step"] == "IDLE"
    assert gateway.calls == []


def test_second_upload_is_ignored_until_reset():
    gateway = FakeGateway()
    client, _ = _client_for(gateway)
    _upload(client)

    assert _upload(client).json()["accepted"] is False
    assert len(gateway.calls) == 1

    reset = client.post("/api/session/reset").json()
    assert reset["step"] == "IDLE"
    assert reset["result"] is None

    assert _upload(client).json()["accepted"] is True
    assert len(gateway.calls) == 2


def test_healthcheck():
    client, _ = _client_for(FakeGateway())
    assert client.get("/healthz").json() == {"status": "ok"}


def test_accepted_upload_already_holds_the_session():
    client, _ = _client_for(FakeGateway())

    response = _upload(client)

    assert response.json()["accepted"] is True
    assert response.json()["session"]["step"] == "UPLOADING"


def test_upload_is_refused_once_a_session_is_open():
    gateway = FakeGateway()
    client, controller = _client_for(gateway)
    controller.open_session(Evidence(filename="first.png", media_type="image/png", data=PNG_BYTES))

    response = _upload(client)

    assert response.json()["accepted"] is False
    assert response.json()["session"]["evidence"]["filename"] == "first.png"
    assert gateway.calls == []


def test_evidence_preview_follows_the_session():
    client, _ = _client_for(FakeGateway())
    assert client.get("/api/session/evidence/preview").status_code == 404

    _upload(client)
    preview = client.get("/api/session/evidence/preview").json()

    assert preview["filename"] == "porch.png"
    assert preview["size"] == len(PNG_BYTES)
    assert base64.b64decode(preview["preview_url"].split(",", 1)[1]) == PNG_BYTES
    assert preview["preview_url"].startswith("data:image/png;base64,")

    client.post("/api/session/reset")
    assert client.get("/api/session/evidence/preview").status_code == 404
