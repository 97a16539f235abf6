"""Tests for the live draft WebSocket."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from live_draft.config import Settings
from live_draft.main import app
from live_draft.repositories.live_draft_repository import LiveDraftRepository
from live_draft.services.event_hub import EventHub
from live_draft.services.live_draft_service import LiveDraftService


@pytest.fixture
def service():
    """Services set directly on app.state (lifespan is not run)."""
    repository = LiveDraftRepository(":memory:")
    hub = EventHub()
    service = LiveDraftService(repository, hub, Settings(draft_diagnostics=False))
    app.state.repository = repository
    app.state.event_hub = hub
    app.state.live_draft_service = service
    yield service
    for attr in ["repository", "event_hub", "live_draft_service"]:
        if hasattr(app.state, attr):
            delattr(app.state, attr)
    repository.close()


@pytest.fixture
def client(service):
    return TestClient(app)


class TestLiveDraftSocket:
    def test_snapshot_then_ping(self, service, client):
        session = service.create_session("Scrim")
        with client.websocket_connect(f"/ws/live-draft/{session.id}") as ws:
            snapshot = ws.receive_json()
            assert snapshot["type"] == "snapshot"
            assert snapshot["session"]["id"] == session.id

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_chat_is_broadcast(self, service, client):
        session = service.create_session("Scrim")
        with client.websocket_connect(f"/ws/live-draft/{session.id}") as ws:
            ws.receive_json()
            ws.send_json({"type": "chat_message", "displayName": "Alice", "content": "gl hf"})
            event = ws.receive_json()
            assert event["type"] == "chat_message"
            assert event["displayName"] == "Alice"
            assert event["content"] == "gl hf"

        assert [m.content for m in service.list_messages(session.id)] == ["gl hf"]

    def test_rejected_chat_reports_error(self, service, client):
        session = service.create_session("Scrim")
        with client.websocket_connect(f"/ws/live-draft/{session.id}") as ws:
            ws.receive_json()
            ws.send_json({"type": "chat_message", "displayName": "Alice", "content": ""})
            assert ws.receive_json()["type"] == "error"

    def test_presence_tracks_socket(self, service, client):
        session = service.create_session("Scrim")
        participant = service.join_as_spectator(session.id, display_name="Viewer")
        service.update_connection(participant.id, False)
        with client.websocket_connect(
            f"/ws/live-draft/{session.id}?participant_id={participant.id}"
        ) as ws:
            ws.receive_json()
            assert service.repository.get_participant(participant.id).is_connected

    def test_unknown_session_closed(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/live-draft/nope") as ws:
                ws.receive_json()
