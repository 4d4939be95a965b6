"""The editor session: the one place a project changes.

Every entry point (slash commands, AI tools, the JSON editor route, undo/redo,
import and reset) produces a candidate project and hands it to
``EditorSession.commit``, which normalizes it, clamps audio to the timeline,
records the previous composition in history, reconciles the selection and
notifies listeners.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from vibecut.schemas.composition import CompositionData
from vibecut.schemas.project import Project
from vibecut.services.audio_clamp import clamp_audios
from vibecut.services.chat_log import ChatLog
from vibecut.services.history import HistoryEngine
from vibecut.services.ids import IdGenerator, UuidIdGenerator, utcnow
from vibecut.services.normalizer import normalize_composition, reconcile_selection
from vibecut.services.project_factory import create_default_project

logger = logging.getLogger(__name__)

Listener = Callable[[Project], Any]


class EditorSession:
    def __init__(
        self,
        project: Project | None = None,
        *,
        ids: IdGenerator | None = None,
        history_limit: int | None = None,
    ):
        self.ids = ids or UuidIdGenerator()
        project = project or create_default_project(self.ids)
        self.history = HistoryEngine(project.app_state.history, limit=history_limit)
        self.chat = ChatLog(self.ids)
        # Commands hold this while they run so overlapping calls queue up
        self.lock = asyncio.Lock()
        self._listeners: list[Listener] = []
        self._project = self._finalize(project)

    @property
    def project(self) -> Project:
        return self._project

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def commit(self, project: Project, *, record_history: bool = True) -> Project:
        """Normalize ``project`` and make it the current state.

        The previous composition goes onto the undo stack only when the
        composition actually changed; selection, zoom and other app-state
        edits are not versioned.
        """
        candidate = self._finalize(project)
        previous = self._project
        if record_history and candidate.composition.model_dump() != previous.composition.model_dump():
            self.history.push(previous.composition, previous.app_state.selected_element_id)
            candidate = self._with_history(candidate)
        candidate = candidate.model_copy(update={"updated_at": utcnow()})
        self._set(candidate)
        return candidate

    def replace_composition(self, data: CompositionData | dict[str, Any]) -> Project:
        """Commit a raw composition payload from the JSON editor."""
        composition = normalize_composition(data, self.ids)
        return self.commit(self._project.model_copy(update={"composition": composition}))

    def replace_project(self, project: Project) -> Project:
        """Swap in a whole new project (import, reset); history starts over."""
        self.history.clear()
        candidate = self._finalize(project)
        self._set(candidate)
        logger.info(f"Loaded project {candidate.id} ({len(candidate.composition.pages)} pages)")
        return candidate

    def undo(self) -> Project | None:
        entry = self.history.undo(self._project.composition, self._project.app_state.selected_element_id)
        if entry is None:
            return None
        return self._restore(entry.composition, entry.selected_element_id)

    def redo(self) -> Project | None:
        entry = self.history.redo(self._project.composition, self._project.app_state.selected_element_id)
        if entry is None:
            return None
        return self._restore(entry.composition, entry.selected_element_id)

    def select_page(self, page_id: str | None) -> Project:
        app_state = self._project.app_state.model_copy(update={"selected_page_id": page_id})
        return self.commit(self._project.model_copy(update={"app_state": app_state}), record_history=False)

    def select_element(self, element_id: str | None) -> Project:
        app_state = self._project.app_state.model_copy(update={"selected_element_id": element_id})
        return self.commit(self._project.model_copy(update={"app_state": app_state}), record_history=False)

    def _restore(self, composition: CompositionData, selected_element_id: str | None) -> Project:
        app_state = self._project.app_state.model_copy(update={"selected_element_id": selected_element_id})
        candidate = self._finalize(
            self._project.model_copy(update={"composition": composition, "app_state": app_state})
        )
        candidate = candidate.model_copy(update={"updated_at": utcnow()})
        self._set(candidate)
        return candidate

    def _finalize(self, project: Project) -> Project:
        composition = clamp_audios(normalize_composition(project.composition, self.ids))
        app_state = reconcile_selection(project.app_state, composition)
        return self._with_history(project.model_copy(update={"composition": composition, "app_state": app_state}))

    def _with_history(self, project: Project) -> Project:
        app_state = project.app_state.model_copy(update={"history": self.history.state()})
        return project.model_copy(update={"app_state": app_state})

    def _set(self, project: Project) -> None:
        self._project = project
        for listener in list(self._listeners):
            listener(project)
