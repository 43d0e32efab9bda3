"""Tests for the REST and WebSocket API."""

import pytest
from fastapi.testclient import TestClient

from core.config.config_loader import ConfigLoader
from core.interfaces.persistence import ANALYSIS_RESULTS, TEAM_MEMBERS
from core.models.upload import AnalysisStatus
from cropai.orchestrator import CropAIOrchestrator
from modules.analysis.mock_analyzer import MOCK_CROP, MOCK_DISEASE
from modules.web.app import create_app
from modules.web.state import AppState

API = "/api/v1"


@pytest.fixture
def make_orchestrator(tmp_path):
    orchestrators = []

    def _make(**camera_options):
        config = ConfigLoader(use_env=False).load_defaults()
        config["camera"].update({
            "provider": "synthetic",
            "preferred_width": 640,
            "preferred_height": 480,
            "acquisition_timeout_seconds": 2.0,
            "config": camera_options,
        })
        config["persistence"]["base_path"] = str(tmp_path / f"data{len(orchestrators)}")
        config["analysis"]["delay_seconds"] = 0
        config["chat"]["reply_delay_seconds"] = 0

        orchestrator = CropAIOrchestrator(config=config)
        assert orchestrator.start()
        orchestrators.append(orchestrator)
        return orchestrator

    yield _make
    for orchestrator in orchestrators:
        orchestrator.stop()


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()


@pytest.fixture
def client(orchestrator):
    app = create_app(AppState(orchestrator))
    with TestClient(app) as test_client:
        yield test_client


def upload(client, png_bytes, name="leaf.png"):
    return client.post(f"{API}/images", files={"file": (name, png_bytes, "image/png")})


class TestSystem:

    def test_health(self, client):
        response = client.get(f"{API}/system/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_status(self, client):
        data = client.get(f"{API}/system/status").json()

        assert data["persistence"] == "sqlite"
        assert data["camera"] == "synthetic"
        assert data["camera_status"] == "idle"


class TestCameraApi:

    def test_capture_before_start_conflicts(self, client):
        response = client.post(f"{API}/camera/capture")

        assert response.status_code == 409

    def test_start_goes_live(self, client):
        data = client.post(f"{API}/camera/start").json()

        assert data["status"] == "live"
        assert data["ready"] is True
        assert data["tier"] == 1
        assert (data["width"], data["height"]) == (640, 480)
        assert data["fallback"] is None

    def test_capture_returns_jpeg(self, client):
        client.post(f"{API}/camera/start")

        response = client.post(f"{API}/camera/capture", params={"analyze": False})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["x-image-width"] == "640"
        assert response.content[:2] == b"\xff\xd8"
        assert client.get(f"{API}/camera/status").json()["status"] == "stopped"

    def test_capture_and_analyze(self, client):
        client.post(f"{API}/camera/start")

        data = client.post(f"{API}/camera/capture").json()

        assert data["image"]["analysis_status"] == "completed"
        assert data["image"]["mime_type"] == "image/jpeg"
        assert data["results"]["crop_type"] == MOCK_CROP
        assert data["results"]["disease_name"] == MOCK_DISEASE

    def test_stop(self, client):
        client.post(f"{API}/camera/start")

        data = client.post(f"{API}/camera/stop").json()

        assert data["status"] == "stopped"
        assert data["ready"] is False

    def test_failed_start_offers_file_selection(self, make_orchestrator):
        orchestrator = make_orchestrator(reject_tiers=["rear", "preferred-resolution", "any"])
        with TestClient(create_app(AppState(orchestrator))) as client:
            data = client.post(f"{API}/camera/start").json()

        assert data["status"] == "failed"
        assert data["fallback"] == "file_select"
        assert "No camera accepted" in data["last_error"]

    def test_failed_capture_is_server_error(self, make_orchestrator):
        orchestrator = make_orchestrator(unrenderable=True)
        with TestClient(create_app(AppState(orchestrator))) as client:
            client.post(f"{API}/camera/start")
            response = client.post(f"{API}/camera/capture")

        assert response.status_code == 500


class TestImagesApi:

    def test_upload_creates_pending_record(self, client, png_bytes):
        response = upload(client, png_bytes)

        assert response.status_code == 201
        data = response.json()
        assert data["analysis_status"] == "pending"
        assert data["file_name"] == "leaf.png"
        assert data["file_size"] == len(png_bytes)

    def test_upload_empty_file_rejected(self, client):
        response = client.post(f"{API}/images", files={"file": ("empty.png", b"", "image/png")})

        assert response.status_code == 400

    def test_get_image(self, client, png_bytes):
        image_id = upload(client, png_bytes).json()["id"]

        assert client.get(f"{API}/images/{image_id}").json()["id"] == image_id
        assert client.get(f"{API}/images/missing").status_code == 404

    def test_analyze_uploaded_image_once(self, client, png_bytes):
        image_id = upload(client, png_bytes).json()["id"]

        first = client.post(f"{API}/images/{image_id}/analyze")
        second = client.post(f"{API}/images/{image_id}/analyze")

        assert first.status_code == 200
        assert first.json()["image"]["analysis_status"] == "completed"
        assert second.status_code == 409

    def test_analyze_image_already_processing_conflicts(self, client, orchestrator, png_bytes):
        image_id = upload(client, png_bytes).json()["id"]
        orchestrator.uploads.update_status(image_id, AnalysisStatus.PROCESSING)

        response = client.post(f"{API}/images/{image_id}/analyze")

        assert response.status_code == 409
        assert orchestrator.gateway.select(ANALYSIS_RESULTS) == []

    def test_upload_and_analyze(self, client, png_bytes):
        response = client.post(
            f"{API}/images/analyze",
            files={"file": ("leaf.png", png_bytes, "image/png")},
        )

        data = response.json()
        assert data["image"]["confidence_score"] == 87.0
        assert data["results"]["severity_level"] == "medium"


class TestTeamAndContactApi:

    def test_team_lists_active_members(self, client, orchestrator):
        orchestrator.gateway.insert(TEAM_MEMBERS, {"name": "B", "display_order": 2, "is_active": True})
        orchestrator.gateway.insert(TEAM_MEMBERS, {"name": "A", "display_order": 1, "is_active": True})
        orchestrator.gateway.insert(TEAM_MEMBERS, {"name": "Gone", "display_order": 0, "is_active": False})

        data = client.get(f"{API}/team").json()

        assert [m["name"] for m in data["members"]] == ["A", "B"]
        assert data["error"] is None

    def test_team_websocket_pushes_changes(self, client, orchestrator):
        with client.websocket_connect("/ws/team") as ws:
            initial = ws.receive_json()
            assert initial == {"type": "team_members", "members": []}

            orchestrator.gateway.insert(TEAM_MEMBERS, {"name": "Live", "display_order": 1, "is_active": True})

            update = ws.receive_json()
            assert [m["name"] for m in update["members"]] == ["Live"]

    def test_contact(self, client):
        response = client.post(f"{API}/contact", json={
            "name": "Ada", "email": "ada@example.com", "message": "Hello",
        })

        assert response.status_code == 201
        assert response.json()["success"] is True

    def test_contact_validation(self, client):
        response = client.post(f"{API}/contact", json={
            "name": "Ada", "email": "nope", "message": "Hello",
        })

        assert response.status_code == 422
        assert response.json()["detail"] == "A valid email address is required"


class TestChatApi:

    def test_conversation_flow(self, client):
        first = client.post(f"{API}/chat", json={"text": "who made this?"}).json()
        conversation_id = first["conversation_id"]

        assert [m["is_bot"] for m in first["messages"]] == [True, False, True]

        second = client.post(f"{API}/chat", json={
            "text": "thanks", "conversation_id": conversation_id,
        }).json()
        assert [m["id"] for m in second["messages"]] == [1, 2, 3, 4, 5]

        fetched = client.get(f"{API}/chat/{conversation_id}").json()
        assert fetched["messages"] == second["messages"]

    def test_unknown_conversation(self, client):
        response = client.post(f"{API}/chat", json={"text": "hi", "conversation_id": "nope"})

        assert response.status_code == 404
        assert client.get(f"{API}/chat/nope").status_code == 404

    def test_oldest_conversation_is_dropped(self, orchestrator):
        app = create_app(AppState(orchestrator, max_conversations=2))
        with TestClient(app) as client:
            ids = [client.post(f"{API}/chat", json={"text": "hi"}).json()["conversation_id"] for _ in range(2)]
            # Touching the first one makes the second the least recently used
            assert client.get(f"{API}/chat/{ids[0]}").status_code == 200
            newest = client.post(f"{API}/chat", json={"text": "hi"}).json()["conversation_id"]

            assert client.get(f"{API}/chat/{ids[1]}").status_code == 404
            assert client.get(f"{API}/chat/{ids[0]}").status_code == 200
            assert client.get(f"{API}/chat/{newest}").status_code == 200
            assert client.get(f"{API}/system/status").json()["conversations"] == 2
