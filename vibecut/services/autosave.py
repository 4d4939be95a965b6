"""Debounced save-if-dirty persistence.

Every commit marks the session dirty and restarts a timer; once the editor has
been idle for ``delay_seconds`` the current project is handed to ``save``. A
failed save is logged and the project stays dirty, so the next commit retries.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from vibecut.config import get_settings
from vibecut.schemas.project import Project
from vibecut.services.session import EditorSession

logger = logging.getLogger(__name__)

SaveFn = Callable[[Project], Awaitable[None]]


class AutoSaver:
    def __init__(self, session: EditorSession, save: SaveFn, delay_seconds: float | None = None):
        self.session = session
        self.save = save
        self.delay_seconds = (
            delay_seconds if delay_seconds is not None else get_settings().autosave_delay_seconds
        )
        self.dirty = False
        self.failures = 0
        self._task: asyncio.Task | None = None
        self._unsubscribe = session.subscribe(self._on_commit)

    def _on_commit(self, project: Project) -> None:
        self.dirty = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (sync caller); flush() will pick the change up
            return
        self._task = loop.create_task(self._save_later())

    async def _save_later(self) -> None:
        await asyncio.sleep(self.delay_seconds)
        await self.flush()

    async def flush(self) -> bool:
        """Save now if there are unsaved changes. Returns True when saved."""
        if not self.dirty:
            return False
        project = self.session.project
        try:
            await self.save(project)
        except Exception as e:
            self.failures += 1
            logger.warning(f"Auto-save of project {project.id} failed (attempt {self.failures}): {e}")
            return False
        self.failures = 0
        if self.session.project is project:
            self.dirty = False
        logger.info(f"Auto-saved project {project.id}")
        return True

    async def close(self) -> None:
        """Stop listening and persist any pending change."""
        self._unsubscribe()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        await self.flush()
