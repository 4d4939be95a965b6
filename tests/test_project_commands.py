"""
Tests for whole-project commands (export, import, share, reset, ls-files)
and the chat/help commands.

Run with: pytest tests/test_project_commands.py -v
"""

import json
from datetime import datetime, timezone

import httpx
import pytest

from vibecut.commands.base import CommandContext
from vibecut.exceptions import StorageError
from vibecut.schemas.project import LocalFile
from vibecut.services.file_storage import MemoryFileStorage
from vibecut.services.share_service import ShareService


def _file(file_id: str, name: str, size: int = 1536) -> LocalFile:
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return LocalFile(
        id=file_id,
        name=name,
        type="image/png",
        size=size,
        data_url="data:image/png;base64,AAAA",
        created_at=now,
        updated_at=now,
        width=640,
        height=480,
    )


class ExportSink:
    """Collects ``save_export`` calls."""

    def __init__(self):
        self.saved: list[tuple[str, str]] = []

    async def __call__(self, filename: str, content: str) -> None:
        self.saved.append((filename, content))


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
# export
# =============================================================================


class TestExport:
    """JSON export and video render hand-off."""

    @pytest.mark.asyncio
    async def test_json_export_inlines_stored_files(self, sample_context, registry, storage):
        await storage.store_file(_file("f1", "logo.png"))
        sink = ExportSink()
        sample_context.save_export = sink

        result = await registry.execute("/export --yes", sample_context)

        assert result.success, result.message
        assert result.data == {"format": "json", "filename": "Sample.json"}
        filename, content = sink.saved[0]
        exported = json.loads(content)
        assert filename == "Sample.json"
        assert [f["name"] for f in exported["files"]] == ["logo.png"]
        assert exported["appState"]["selectedElementId"] is None
        assert exported["composition"]["pages"][0]["id"] == "intro"

    @pytest.mark.asyncio
    async def test_without_yes_opens_dialog(self, sample_context, registry):
        opened = []

        async def open_dialog(fmt: str) -> None:
            opened.append(fmt)

        sample_context.open_export_dialog = open_dialog
        result = await registry.execute("/export -f webm", sample_context)

        assert result.success
        assert opened == ["webm"]

    @pytest.mark.asyncio
    async def test_without_yes_or_dialog(self, sample_context, registry):
        result = await registry.execute("/export", sample_context)
        assert result.error.code == "COLLABORATOR_ERROR"

    @pytest.mark.asyncio
    async def test_invalid_format(self, sample_context, registry):
        result = await registry.execute("/export --format gif -y", sample_context)
        assert result.error.code == "INVALID_FIELD_VALUE"

    @pytest.mark.asyncio
    async def test_video_needs_renderer(self, sample_context, registry):
        result = await registry.execute("/export --format mp4 --yes", sample_context)
        assert result.error.code == "RENDERER_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_video_render(self, sample_context, registry):
        rendered = []

        async def render(project, fmt: str) -> str:
            rendered.append((project.id, fmt))
            return "/tmp/out.mp4"

        sample_context.render_video = render
        result = await registry.execute("/export -f MP4 -y", sample_context)

        assert result.success, result.message
        assert rendered == [("project-sample", "mp4")]
        assert result.data == {"format": "mp4", "location": "/tmp/out.mp4"}

    @pytest.mark.asyncio
    async def test_render_failure(self, sample_context, registry):
        async def render(project, fmt: str) -> str:
            raise RuntimeError("encoder crashed")

        sample_context.render_video = render
        result = await registry.execute("/export -f webm -y", sample_context)

        assert result.error.code == "RENDERER_ERROR"
        assert "encoder crashed" in result.message


# =============================================================================
# import
# =============================================================================


class TestImport:
    """Importing replaces the project, its files and the chat."""

    def _write_project(self, tmp_path, **overrides) -> str:
        payload = {
            "id": "imported",
            "name": "Imported",
            "composition": {
                "pages": [{"id": "a", "name": "A", "duration": 1000}, {"name": "B"}],
                "fps": 25,
            },
            "files": [json.loads(_file("f9", "bg.png").model_dump_json(by_alias=True))],
            **overrides,
        }
        path = tmp_path / "project.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return str(path)

    @pytest.mark.asyncio
    async def test_import_file(self, sample_context, registry, storage, confirmer, tmp_path):
        await storage.store_file(_file("old", "old.png"))
        sample_context.session.chat.add("user", "hello")
        path = self._write_project(tmp_path)

        result = await registry.execute(f"/import --file {path}", sample_context)

        assert result.success, result.message
        assert len(confirmer.prompts) == 1
        project = sample_context.project
        assert (project.id, project.name, project.composition.fps) == ("imported", "Imported", 25)
        assert [p.name for p in project.composition.pages] == ["A", "B"]
        assert project.app_state.selected_page_id == "a"
        assert [f.id for f in await storage.get_all_files()] == ["f9"]
        assert not sample_context.session.history.can_undo
        messages = sample_context.session.chat.messages
        assert len(messages) == 2
        assert "Project Imported" in messages[-1].content

    @pytest.mark.asyncio
    async def test_storage_failure_keeps_old_project_and_files(self, sample_session, registry, confirmer, tmp_path):
        storage = FailingStorage(bad_id="f9")
        await storage.store_file(_file("f1", "logo.png"))
        context = CommandContext(session=sample_session, storage=storage, confirm=confirmer, registry=registry)
        path = self._write_project(tmp_path)

        result = await registry.execute(f"/import --file {path} --yes", context)

        assert result.error.code == "STORAGE_ERROR"
        assert context.project.id == "project-sample"
        assert [p.id for p in context.project.composition.pages] == ["intro", "outro"]
        assert [f.id for f in await storage.get_all_files()] == ["f1"]

    @pytest.mark.asyncio
    async def test_declined(self, sample_session, registry, declining_confirmer, tmp_path):
        context = CommandContext(session=sample_session, confirm=declining_confirmer, registry=registry)
        path = self._write_project(tmp_path)

        result = await registry.execute(f"/import {path}", context)

        assert result.outcome == "cancelled"
        assert context.project.id == "project-sample"

    @pytest.mark.asyncio
    async def test_unreadable_file(self, sample_context, registry, tmp_path):
        result = await registry.execute(f"/import -f {tmp_path / 'missing.json'} -y", sample_context)
        assert result.error.code == "INVALID_FIELD_VALUE"

    @pytest.mark.asyncio
    async def test_malformed_file(self, sample_context, registry, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        result = await registry.execute(f"/import -f {path} -y", sample_context)

        assert result.error.code == "INVALID_COMPOSITION"
        assert sample_context.project.id == "project-sample"

    @pytest.mark.asyncio
    async def test_without_file_opens_dialog(self, sample_context, registry, confirmer):
        opened = []

        async def open_dialog() -> None:
            opened.append(True)

        sample_context.open_import_dialog = open_dialog
        result = await registry.execute("/import", sample_context)

        assert result.success
        assert opened == [True]
        assert confirmer.prompts == []


# =============================================================================
# share / reset / ls-files
# =============================================================================


class TestShare:
    """Sharing encrypts locally and uploads through the share API."""

    @pytest.mark.asyncio
    async def test_share(self, sample_context, registry):
        uploads = []

        def handler(request: httpx.Request) -> httpx.Response:
            uploads.append(json.loads(request.content))
            return httpx.Response(200, json={"shareId": "abc123"})

        sample_context.share_service = ShareService(
            api_url="http://share.test",
            base_url="http://app.test",
            transport=httpx.MockTransport(handler),
        )

        result = await registry.execute("/share -y", sample_context)

        assert result.success, result.message
        assert result.data["shareId"] == "abc123"
        assert result.data["url"].startswith("http://app.test/shared/abc123#key=")
        assert uploads[0]["projectName"] == "Sample"
        assert "Sample" not in uploads[0]["encryptedData"]

    @pytest.mark.asyncio
    async def test_not_configured(self, sample_context, registry):
        result = await registry.execute("/share -y", sample_context)
        assert result.error.code == "COLLABORATOR_ERROR"

    @pytest.mark.asyncio
    async def test_upload_failure(self, sample_context, registry):
        sample_context.share_service = ShareService(
            api_url="http://share.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )
        result = await registry.execute("/share -y", sample_context)
        assert result.error.code == "SHARE_UPLOAD_FAILED"


class TestReset:
    @pytest.mark.asyncio
    async def test_reset_keeps_project_id(self, sample_context, registry, storage, confirmer):
        await storage.store_file(_file("f1", "logo.png"))

        result = await registry.execute("/reset", sample_context)

        assert result.success
        assert len(confirmer.prompts) == 1
        project = sample_context.project
        assert project.id == "project-sample"
        assert project.name == "Untitled Project"
        assert len(project.composition.pages) == 1
        assert project.composition.audios == []
        assert await storage.get_all_files() == []

    @pytest.mark.asyncio
    async def test_reset_always_asks(self, sample_session, registry, declining_confirmer):
        context = CommandContext(session=sample_session, confirm=declining_confirmer, registry=registry)
        result = await registry.execute("/reset", context)
        assert result.outcome == "cancelled"
        assert len(context.project.composition.pages) == 2


class TestListFiles:
    @pytest.mark.asyncio
    async def test_empty(self, context, registry):
        result = await registry.execute("/ls-files", context)
        assert result.data == []
        assert "No files stored" in result.message

    @pytest.mark.asyncio
    async def test_listing(self, context, registry, storage):
        await storage.store_files([_file("f2", "b.png", size=2048), _file("f1", "A.png")])

        result = await registry.execute("/ls-files", context)

        assert [row["name"] for row in result.data] == ["A.png", "b.png"]
        assert "(2, 3.5 KB)" in result.message
        assert "640×480" in result.message


# =============================================================================
# Chat and help
# =============================================================================


class TestChatCommands:
    @pytest.mark.asyncio
    async def test_new_chat(self, context, registry):
        context.session.chat.add("user", "hi")
        result = await registry.execute("/new-chat", context)
        assert result.success
        assert len(context.session.chat.messages) == 1

    @pytest.mark.asyncio
    async def test_del_chat(self, context, registry, confirmer):
        context.session.chat.add("user", "hi")
        result = await registry.execute("/del-chat", context)
        assert result.data == {"deleted": 2}
        assert confirmer.prompts == ["Delete all 2 chat message(s)?"]
        assert context.session.chat.messages == []

    @pytest.mark.asyncio
    async def test_help_lists_commands(self, context, registry):
        result = await registry.execute("/help", context)
        assert "new-page" in result.data
        assert "`/zoom-tl <percentage>`" in result.message

    @pytest.mark.asyncio
    async def test_help_for_one_command(self, context, registry):
        result = await registry.execute("/help /set-page", context)
        assert result.message.startswith("`/set-page")
        assert "`--duration|-d` 1500, 1.5s, 2m" in result.message
