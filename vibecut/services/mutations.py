"""Structural edits on a project.

Every function takes a project, returns a new one and leaves its argument
untouched. Nothing here commits, records history or normalizes; the caller
does that through ``EditorSession.commit``. Invalid references raise the
matching domain error before anything is changed.
"""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from vibecut.exceptions import (
    AudioNotFoundError,
    DuplicateIdError,
    ElementNotFoundError,
    InvalidFieldValueError,
    LastPageError,
    NoPageSelectedError,
    NoteNotFoundError,
    PageNotFoundError,
    WrongElementTypeError,
)
from vibecut.schemas.composition import (
    Audio,
    CompositionData,
    Element,
    GroupElement,
    Page,
    iter_composition_elements,
    iter_elements,
)
from vibecut.schemas.project import Note, Project
from vibecut.services.ids import IdGenerator, utcnow
from vibecut.services.normalizer import collect_ids
from vibecut.services.project_factory import create_default_page

logger = logging.getLogger(__name__)

MAX_NEW_PAGES = 20
MAX_DELETE_PAGES = 50


def clone(project: Project) -> Project:
    return project.model_copy(deep=True)


# =============================================================================
# Lookups
# =============================================================================


def find_page(composition: CompositionData, page_id: str) -> tuple[int, Page]:
    for index, page in enumerate(composition.pages):
        if page.id == page_id:
            return index, page
    raise PageNotFoundError(page_id)


def find_element(composition: CompositionData, element_id: str) -> tuple[Page, Any]:
    """Find an element anywhere in the composition, including inside groups."""
    for page, element in iter_composition_elements(composition):
        if element.id == element_id:
            return page, element
    raise ElementNotFoundError(element_id)


def find_audio(composition: CompositionData, audio_id: str) -> tuple[int, Audio]:
    for index, audio in enumerate(composition.audios):
        if audio.id == audio_id:
            return index, audio
    raise AudioNotFoundError(audio_id)


def selected_page_index(project: Project) -> int | None:
    selected = project.app_state.selected_page_id
    if not selected:
        return None
    for index, page in enumerate(project.composition.pages):
        if page.id == selected:
            return index
    return None


def require_selected_page(project: Project) -> Page:
    index = selected_page_index(project)
    if index is None:
        raise NoPageSelectedError()
    return project.composition.pages[index]


# =============================================================================
# Pages
# =============================================================================


def add_pages(
    project: Project,
    ids: IdGenerator,
    count: int = 1,
    copy_from: str | None = None,
) -> tuple[Project, list[Page]]:
    """Insert ``count`` pages after the selected page and select the first one.

    Without a selection the pages go to position 1 (or 0 in an empty
    composition). Blank pages are named ``Page {N}`` counting from the page
    total before insertion; copies are named ``{source} Copy {n}`` and get
    fresh ids for every element.
    """
    result = clone(project)
    pages = result.composition.pages
    total_before = len(pages)

    index = selected_page_index(result)
    insert_at = index + 1 if index is not None else (1 if pages else 0)

    source = find_page(result.composition, copy_from)[1] if copy_from else None
    taken = collect_ids(result.composition)

    def fresh(prefix: str) -> str:
        new = ids.new_id(prefix)
        while new in taken:
            new = ids.new_id(prefix)
        taken.add(new)
        return new

    created: list[Page] = []
    for i in range(count):
        if source is not None:
            page = source.model_copy(deep=True)
            page.id = fresh("page")
            page.name = f"{source.name} Copy {i + 1}"
            for element in iter_elements(page.elements):
                element.id = fresh("element")
        else:
            page = create_default_page(ids, name=f"Page {total_before + i + 1}", page_id=fresh("page"))
        created.append(page)

    pages[insert_at:insert_at] = created
    result.app_state.selected_page_id = created[0].id
    logger.info(f"Added {count} page(s) at index {insert_at}")
    return result, created


def delete_pages(project: Project, page_id: str | None = None, count: int = 1) -> tuple[Project, list[Page]]:
    """Delete a page and up to ``count - 1`` following pages.

    The target is ``page_id``, else the selected page, else the first page.
    ``count`` is capped at the pages remaining from the target. Deleting every
    page is rejected.
    """
    pages = project.composition.pages
    if page_id:
        index, _ = find_page(project.composition, page_id)
    else:
        selected = selected_page_index(project)
        index = selected if selected is not None else 0

    count = min(count, len(pages) - index)
    if count >= len(pages):
        raise LastPageError()

    result = clone(project)
    deleted = result.composition.pages[index : index + count]
    del result.composition.pages[index : index + count]

    remaining = result.composition.pages
    result.app_state.selected_page_id = remaining[min(index, len(remaining) - 1)].id
    deleted_elements = {e.id for page in deleted for e in iter_elements(page.elements)}
    if result.app_state.selected_element_id in deleted_elements:
        result.app_state.selected_element_id = None
    logger.info(f"Deleted {len(deleted)} page(s) from index {index}")
    return result, deleted


def update_page(
    project: Project,
    page_id: str,
    *,
    new_id: str | None = None,
    name: str | None = None,
    duration: int | None = None,
    background_color: str | None = None,
) -> Project:
    """Apply only the given page fields."""
    if new_id is not None and new_id != page_id and new_id in collect_ids(project.composition):
        raise DuplicateIdError(new_id)

    result = clone(project)
    _, page = find_page(result.composition, page_id)
    if name is not None:
        page.name = name
    if duration is not None:
        page.duration = duration
    if background_color is not None:
        page.background_color = background_color
    if new_id is not None and new_id != page_id:
        page.id = new_id
        if result.app_state.selected_page_id == page_id:
            result.app_state.selected_page_id = new_id
    return result


def move_page(project: Project, page_id: str, to_index: int) -> Project:
    """Move a page so that it ends up at ``to_index`` (clamped to the list)."""
    result = clone(project)
    pages = result.composition.pages
    from_index, page = find_page(result.composition, page_id)
    to_index = max(0, min(to_index, len(pages) - 1))
    if to_index == from_index:
        return result
    pages.pop(from_index)
    pages.insert(to_index, page)
    return result


# =============================================================================
# Elements
# =============================================================================


def add_element(project: Project, page_id: str, element: Element, *, select: bool = True) -> Project:
    if element.id in collect_ids(project.composition):
        raise DuplicateIdError(element.id, kind="element")
    result = clone(project)
    _, page = find_page(result.composition, page_id)
    page.elements.append(element)
    if select:
        result.app_state.selected_element_id = element.id
    return result


def update_element(
    project: Project,
    element_id: str,
    updates: dict[str, Any],
    *,
    expected_type: str | None = None,
) -> Project:
    """Merge ``updates`` (snake_case field names) into one element.

    Fields not named in ``updates`` keep their values. A type mismatch against
    ``expected_type`` raises ``WrongElementTypeError``.
    """
    _, current = find_element(project.composition, element_id)
    if expected_type and current.type != expected_type:
        raise WrongElementTypeError(element_id, expected_type, current.type)

    if "id" in updates and updates["id"] != element_id and updates["id"] in collect_ids(project.composition):
        raise DuplicateIdError(updates["id"], kind="element")

    merged = current.model_dump()
    merged.update(updates)
    merged["type"] = current.type
    try:
        replacement = type(current).model_validate(merged)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise InvalidFieldValueError(field, first.get("input"), first["msg"]) from e

    result = clone(project)
    for page in result.composition.pages:
        if _replace_element(page.elements, element_id, replacement):
            break
    if result.app_state.selected_element_id == element_id and replacement.id != element_id:
        result.app_state.selected_element_id = replacement.id
    return result


def delete_element(project: Project, element_id: str) -> tuple[Project, Any]:
    """Remove an element from whichever page (or group) holds it."""
    _, element = find_element(project.composition, element_id)
    result = clone(project)
    for page in result.composition.pages:
        if _remove_element(page.elements, element_id):
            break
    removed = {e.id for e in iter_elements([element])}
    if result.app_state.selected_element_id in removed:
        result.app_state.selected_element_id = None
    return result, element


def _replace_element(elements: list[Any], element_id: str, replacement: Any) -> bool:
    for index, element in enumerate(elements):
        if element.id == element_id:
            elements[index] = replacement
            return True
        if isinstance(element, GroupElement) and _replace_element(element.elements, element_id, replacement):
            return True
    return False


def _remove_element(elements: list[Any], element_id: str) -> bool:
    for index, element in enumerate(elements):
        if element.id == element_id:
            del elements[index]
            return True
        if isinstance(element, GroupElement) and _remove_element(element.elements, element_id):
            return True
    return False


# =============================================================================
# Audio
# =============================================================================


def add_audio(project: Project, audio: Audio) -> Project:
    if any(existing.id == audio.id for existing in project.composition.audios):
        raise DuplicateIdError(audio.id, kind="audio")
    result = clone(project)
    result.composition.audios.append(audio)
    return result


def update_audio(project: Project, audio_id: str, updates: dict[str, Any]) -> Project:
    index, current = find_audio(project.composition, audio_id)
    merged = current.model_dump()
    merged.update(updates)
    try:
        replacement = Audio.model_validate(merged)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise InvalidFieldValueError(field, first.get("input"), first["msg"]) from e
    result = clone(project)
    result.composition.audios[index] = replacement
    return result


def delete_audio(project: Project, audio_id: str) -> tuple[Project, Audio]:
    index, audio = find_audio(project.composition, audio_id)
    result = clone(project)
    del result.composition.audios[index]
    return result, audio


# =============================================================================
# Composition settings
# =============================================================================


def update_composition_settings(
    project: Project,
    *,
    title: str | None = None,
    fps: int | None = None,
    width: int | None = None,
    height: int | None = None,
) -> Project:
    result = clone(project)
    if title is not None:
        result.name = title
    if fps is not None:
        result.composition.fps = fps
    if width is not None:
        result.composition.width = width
    if height is not None:
        result.composition.height = height
    return result


def replace_composition(project: Project, composition: CompositionData) -> Project:
    result = clone(project)
    result.composition = composition.model_copy(deep=True)
    return result


# =============================================================================
# Notes
# =============================================================================


def list_notes(project: Project) -> list[Note]:
    return sorted(project.notes, key=lambda note: note.time)


def _store_notes(project: Project, notes: list[Note]) -> Project:
    result = clone(project)
    result.notes = [note.model_copy(deep=True) for note in notes]
    return result


def add_note(project: Project, ids: IdGenerator, time_ms: int, text: str) -> tuple[Project, Note]:
    now = utcnow()
    note = Note(id=ids.new_id("note"), time=time_ms, text=text, created_at=now, updated_at=now)
    return _store_notes(project, [*list_notes(project), note]), note


def update_note(
    project: Project,
    note_id: str,
    *,
    time_ms: int | None = None,
    text: str | None = None,
) -> tuple[Project, Note]:
    notes = list_notes(project)
    for index, note in enumerate(notes):
        if note.id == note_id:
            updates: dict[str, Any] = {"updated_at": utcnow()}
            if time_ms is not None:
                updates["time"] = time_ms
            if text is not None:
                updates["text"] = text
            notes[index] = note.model_copy(update=updates)
            return _store_notes(project, notes), notes[index]
    raise NoteNotFoundError(note_id)


def delete_note(project: Project, note_id: str) -> tuple[Project, Note]:
    notes = list_notes(project)
    for index, note in enumerate(notes):
        if note.id == note_id:
            removed = notes.pop(index)
            return _store_notes(project, notes), removed
    raise NoteNotFoundError(note_id)
