"""Per-app editor runtime and the FastAPI dependencies that expose it."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

from fastapi import Depends, Request

from vibecut.ai.tools import ToolRegistry, build_default_tools
from vibecut.commands import CommandContext, CommandRegistry, build_default_registry
from vibecut.commands.base import ConfirmFn
from vibecut.config import Settings, get_settings
from vibecut.exceptions import NoProjectError
from vibecut.schemas.project import Project
from vibecut.services.autosave import AutoSaver
from vibecut.services.file_storage import FileStorage, create_file_storage
from vibecut.services.project_io import export_project_json, import_project
from vibecut.services.session import EditorSession
from vibecut.services.share_service import ShareService

logger = logging.getLogger(__name__)


@dataclass
class EditorRuntime:
    session: EditorSession
    registry: CommandRegistry
    tools: ToolRegistry
    storage: FileStorage
    share_service: ShareService
    autosaver: AutoSaver | None = None

    def command_context(self, confirm: ConfirmFn | None = None) -> CommandContext:
        return CommandContext(
            session=self.session,
            storage=self.storage,
            share_service=self.share_service,
            confirm=confirm,
            registry=self.registry,
        )


def _load_saved_project(path: Path, session: EditorSession) -> Project | None:
    if not path.exists():
        return None
    return import_project(path.read_text(encoding="utf-8"), session.ids)


async def create_runtime(settings: Settings | None = None) -> EditorRuntime:
    """Build the session and collaborators; durable mode resumes the saved project."""
    settings = settings or get_settings()
    storage = create_file_storage(settings.storage_mode)
    await storage.init()
    session = EditorSession(history_limit=settings.history_limit)
    runtime = EditorRuntime(
        session=session,
        registry=build_default_registry(),
        tools=build_default_tools(),
        storage=storage,
        share_service=ShareService(),
    )
    if settings.storage_mode != "durable":
        return runtime

    path = Path(settings.project_file_path)
    saved = _load_saved_project(path, session)
    if saved is not None:
        session.replace_project(saved)

    async def save(project: Project) -> None:
        content = await export_project_json(project)
        await asyncio.to_thread(path.write_text, content, encoding="utf-8")

    runtime.autosaver = AutoSaver(session, save, settings.autosave_delay_seconds)
    return runtime


def get_runtime(request: Request) -> EditorRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise NoProjectError("Editor runtime is not running")
    return runtime


Runtime = Annotated[EditorRuntime, Depends(get_runtime)]