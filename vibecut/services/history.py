"""Undo/redo over full composition snapshots.

``past`` holds the states before each committed edit, newest last; ``future``
holds undone states, next redo first. Every snapshot is a deep copy, so later
edits to the live composition never leak into history.
"""

import logging

from vibecut.config import get_settings
from vibecut.schemas.composition import CompositionData, iter_composition_elements
from vibecut.schemas.project import History, HistoryEntry

logger = logging.getLogger(__name__)


def _snapshot(composition: CompositionData, selected_element_id: str | None) -> HistoryEntry:
    return HistoryEntry(
        composition=composition.model_copy(deep=True),
        selected_element_id=selected_element_id,
    )


def _resolve(entry: HistoryEntry) -> HistoryEntry:
    element_ids = {element.id for _, element in iter_composition_elements(entry.composition)}
    selected = entry.selected_element_id if entry.selected_element_id in element_ids else None
    return HistoryEntry(composition=entry.composition.model_copy(deep=True), selected_element_id=selected)


class HistoryEngine:
    def __init__(self, history: History | None = None, limit: int | None = None):
        history = history or History()
        self._past = [entry.model_copy(deep=True) for entry in history.past]
        self._future = [entry.model_copy(deep=True) for entry in history.future]
        self.limit = limit if limit is not None else get_settings().history_limit

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def state(self) -> History:
        """Deep copy of both stacks, for mirroring into ``AppState.history``."""
        return History(
            past=[entry.model_copy(deep=True) for entry in self._past],
            future=[entry.model_copy(deep=True) for entry in self._future],
        )

    def push(self, composition: CompositionData, selected_element_id: str | None) -> None:
        """Record the state before an edit. Invalidates every pending redo."""
        self._past.append(_snapshot(composition, selected_element_id))
        self._future.clear()
        if self.limit > 0 and len(self._past) > self.limit:
            del self._past[: len(self._past) - self.limit]

    def undo(
        self, current: CompositionData, selected_element_id: str | None
    ) -> HistoryEntry | None:
        """Step back one edit; returns the state to restore, or None if there is none."""
        if not self._past:
            return None
        entry = self._past.pop()
        self._future.insert(0, _snapshot(current, selected_element_id))
        logger.debug(f"Undo: {len(self._past)} past / {len(self._future)} future")
        return _resolve(entry)

    def redo(
        self, current: CompositionData, selected_element_id: str | None
    ) -> HistoryEntry | None:
        """Re-apply the most recently undone edit, or None if there is none."""
        if not self._future:
            return None
        entry = self._future.pop(0)
        self._past.append(_snapshot(current, selected_element_id))
        logger.debug(f"Redo: {len(self._past)} past / {len(self._future)} future")
        return _resolve(entry)

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()
