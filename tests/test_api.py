"""
Tests for the HTTP API (envelope format) and the MCP tool wrappers.

Each test gets a fresh app runtime: entering ``TestClient`` runs the lifespan,
which builds a new ephemeral session.

Run with: pytest tests/test_api.py -v
"""

import json
import uuid

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from vibecut.ai.agent import ModelReply, ToolCall
from vibecut.api import agent as agent_api
from vibecut.api.deps import create_runtime
from vibecut.exceptions import StorageError
from vibecut.main import app
from vibecut.mcp import server as mcp_server
from vibecut.schemas.project import LocalFile
from vibecut.services.file_storage import MemoryFileStorage


class ScriptedModel:
    def __init__(self, replies: list[ModelReply]):
        self.replies = list(replies)

    async def complete(self, messages, tools) -> ModelReply:
        return self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]


class FailingStorage(MemoryFileStorage):
    """Memory storage that refuses to store one file id."""

    def __init__(self, bad_id: str):
        super().__init__()
        self.bad_id = bad_id

    async def store_file(self, file: LocalFile) -> None:
        if file.id == self.bad_id:
            raise StorageError(f"Failed to store file {file.name}: disk full")
        await super().store_file(file)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def client():
    """FastAPI test client with the lifespan running."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


def _command(client: TestClient, text: str, confirm: bool = False) -> dict:
    response = client.post("/api/commands", json={"input": text, "confirm": confirm})
    assert response.status_code == 200, response.text
    return response.json()


def _pages(client: TestClient) -> list[dict]:
    return client.get("/api/project").json()["data"]["composition"]["pages"]


# =============================================================================
# Envelope format
# =============================================================================


class TestEnvelopeFormat:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_success_envelope(self, client):
        response = client.get("/api/project")

        assert response.status_code == 200
        body = response.json()
        uuid.UUID(body["request_id"])
        assert body["meta"]["api_version"] == "1.0"
        assert "processing_time_ms" in body["meta"]
        assert "files" not in body["data"]
        assert len(body["data"]["composition"]["pages"]) == 1

    def test_error_envelope(self, client):
        response = client.post("/api/project/undo")

        assert response.status_code == 409
        body = response.json()
        assert "data" not in body
        assert body["error"]["code"] == "NOTHING_TO_UNDO"
        assert body["meta"]["timestamp"]

    def test_runtime_not_started(self):
        response = TestClient(app, raise_server_exceptions=False).get("/api/project")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "NO_PROJECT"

    def test_request_validation(self, client):
        response = client.post("/api/commands", json={"input": ""})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# =============================================================================
# Commands
# =============================================================================


class TestCommandsApi:
    def test_list_commands(self, client):
        data = client.get("/api/commands").json()["data"]
        names = [row["name"] for row in data]
        assert "new-page" in names
        assert all(row["usage"].startswith("/") for row in data)

    def test_run_command(self, client):
        body = _command(client, "/new-page -n 2")

        assert body["data"]["success"] is True
        assert len(_pages(client)) == 3

    def test_command_failure_is_not_an_http_error(self, client):
        body = _command(client, "/del-page -y")

        assert body["data"]["success"] is False
        assert body["data"]["error"]["code"] == "LAST_PAGE"

    def test_plain_text_is_rejected(self, client):
        response = client.post("/api/commands", json={"input": "make it pop"})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_confirmation_flag(self, client):
        _command(client, "/new-page")

        declined = _command(client, "/del-page")
        assert declined["data"]["outcome"] == "cancelled"
        assert declined["meta"]["warnings"][0].startswith("Confirmation required: Delete 1 page(s)?")
        assert len(_pages(client)) == 2

        confirmed = _command(client, "/del-page", confirm=True)
        assert confirmed["data"]["success"] is True
        assert len(_pages(client)) == 1

    def test_commands_are_logged_to_chat(self, client):
        _command(client, "/zoom-tl 150")

        messages = client.get("/api/agent/chat").json()["data"]
        assert [m["role"] for m in messages[-2:]] == ["user", "assistant"]
        assert messages[-2]["content"] == "/zoom-tl 150"


# =============================================================================
# Project
# =============================================================================


class TestProjectApi:
    def test_undo_redo(self, client):
        _command(client, "/new-page")

        undone = client.post("/api/project/undo")
        assert undone.status_code == 200
        assert len(undone.json()["data"]["composition"]["pages"]) == 1

        redone = client.post("/api/project/redo")
        assert len(redone.json()["data"]["composition"]["pages"]) == 2
        assert client.post("/api/project/redo").json()["error"]["code"] == "NOTHING_TO_REDO"

    def test_select(self, client):
        _command(client, "/new-text --text Hi")
        page = _pages(client)[0]
        element_id = page["elements"][0]["id"]

        response = client.post("/api/project/select", json={"pageId": page["id"], "elementId": None})
        assert response.json()["data"] == {"selectedPageId": page["id"], "selectedElementId": None}

        response = client.post("/api/project/select", json={"elementId": element_id})
        assert response.json()["data"]["selectedElementId"] == element_id

    def test_select_unknown_page(self, client):
        response = client.post("/api/project/select", json={"pageId": "nope"})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PAGE_NOT_FOUND"

    def test_put_composition_normalizes(self, client):
        payload = {"pages": [{"name": "One"}, {"name": "Two", "duration": 1500.4}], "fps": 24}

        response = client.put("/api/project/composition", json=payload)

        assert response.status_code == 200
        pages = response.json()["data"]["pages"]
        assert [p["duration"] for p in pages] == [5000, 1500]
        assert all(p["id"] for p in pages)
        assert client.post("/api/project/undo").status_code == 200

    def test_put_composition_rejects_bad_structure(self, client):
        response = client.put("/api/project/composition", json={"pages": 5})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_COMPOSITION"

    def test_export_import(self, client):
        _command(client, "/set-comp --title Demo")
        exported = client.get("/api/project/export").json()["data"]
        assert exported["name"] == "Demo"
        assert exported["files"] == []

        payload = {"name": "Imported", "composition": {"pages": [{"id": "a", "name": "A"}]}}
        imported = client.post("/api/project/import", json=payload).json()["data"]

        assert imported["name"] == "Imported"
        assert imported["appState"]["selectedPageId"] == "a"
        assert client.post("/api/project/undo").status_code == 409

    def test_import_storage_failure_keeps_project(self, client):
        client.app.state.runtime.storage = FailingStorage(bad_id="f9")
        file = {
            "id": "f9",
            "name": "bg.png",
            "type": "image/png",
            "size": 4,
            "dataUrl": "data:image/png;base64,AAAA",
            "createdAt": "2024-01-01T00:00:00Z",
            "updatedAt": "2024-01-01T00:00:00Z",
        }
        payload = {"name": "Imported", "composition": {"pages": [{"id": "a"}]}, "files": [file]}

        response = client.post("/api/project/import", json=payload)

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "STORAGE_ERROR"
        project = client.get("/api/project").json()["data"]
        assert project["name"] != "Imported"
        assert [p["id"] for p in project["composition"]["pages"]] != ["a"]


# =============================================================================
# Timeline
# =============================================================================


class TestTimelineApi:
    @pytest.fixture(autouse=True)
    def two_pages(self, client):
        payload = {"pages": [{"id": "a"}, {"id": "b", "duration": 1500}], "fps": 24}
        client.put("/api/project/composition", json=payload)

    def test_layout(self, client):
        data = client.get("/api/timeline").json()["data"]
        assert data["totalFrames"] == 156
        assert [(p["id"], p["startFrame"], p["frames"]) for p in data["pages"]] == [("a", 0, 120), ("b", 120, 36)]

    @pytest.mark.parametrize("frame,expected", [(0, ("a", 0)), (119, ("a", 119)), (130, ("b", 10)), (999, ("b", 0))])
    def test_locate(self, client, frame, expected):
        data = client.get("/api/timeline/locate", params={"frame": frame}).json()["data"]
        assert (data["pageId"], data["frameOffset"]) == expected

    def test_page_start(self, client):
        data = client.get("/api/timeline/page-start", params={"pageIndex": 1}).json()["data"]
        assert data == {"pageIndex": 1, "frame": 120}

    def test_page_start_out_of_range(self, client):
        response = client.get("/api/timeline/page-start", params={"pageIndex": 2})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "OUT_OF_BOUNDS"

        response = client.get("/api/timeline/page-start", params={"pageIndex": -1})
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# =============================================================================
# Agent
# =============================================================================


class TestAgentApi:
    def test_run_agent(self, client, monkeypatch):
        replies = [
            ModelReply("Adding a page", [ToolCall(id="c1", name="run_command", arguments={"command": "/new-page"})]),
            ModelReply("GOAL COMPLETE"),
        ]
        monkeypatch.setattr(agent_api, "OpenAIChatModel", lambda: ScriptedModel(replies))

        response = client.post("/api/agent", json={"goal": "Add a page", "max_steps": 4})

        assert response.status_code == 200, response.text
        data = response.json()["data"]
        assert data["stopReason"] == "goal_complete"
        assert data["completed"] is True
        assert data["steps"][0]["action"] == "run_command"
        assert data["message"] == "GOAL COMPLETE"
        assert len(_pages(client)) == 2

    def test_goal_required(self, client):
        response = client.post("/api/agent", json={"goal": ""})
        assert response.status_code == 422


# =============================================================================
# MCP tools
# =============================================================================


class TestMcpTools:
    @pytest_asyncio.fixture(autouse=True)
    async def fresh_runtime(self, monkeypatch):
        monkeypatch.setattr(mcp_server, "_runtime", await create_runtime())

    @pytest.mark.asyncio
    async def test_read_and_edit(self):
        added = json.loads(await mcp_server.edit_project("addPage", data={"name": "Second"}))
        assert added["success"] is True

        project = json.loads(await mcp_server.read_project())
        assert [p["name"] for p in project["composition"]["pages"]][-1] == "Second"

    @pytest.mark.asyncio
    async def test_errors_are_returned_as_json(self):
        result = json.loads(await mcp_server.read_composition(element_id="nope"))
        assert result["code"] == "ELEMENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_run_command(self):
        result = json.loads(await mcp_server.run_command("/new-page -n 2"))
        assert result["success"] is True
        analysis = json.loads(await mcp_server.analyze_project())
        assert analysis["projectStats"]["pages"] == 3
