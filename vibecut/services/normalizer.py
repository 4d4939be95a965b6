"""Invariant enforcement for composition data.

``normalize_composition`` runs after every external load (import, JSON editor,
AI tool output) and on every commit. It only fills gaps:

- a page or element without an id (or whose id is already taken) gets a
  generated one: ``page-{time}-{pageIndex}`` /
  ``element-{time}-{pageIndex}-{elementIndex}``
- a page without a duration gets the default duration
- an audio track without an id gets ``audio-{time}-{index}``
- an empty page list gets one blank page

Existing data is never removed or reordered, and a second pass over normalized
data changes nothing.
"""

import copy
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from vibecut.config import get_settings
from vibecut.exceptions import InvalidCompositionError
from vibecut.schemas.composition import CompositionData, iter_composition_elements
from vibecut.schemas.project import AppState
from vibecut.services.ids import IdGenerator, UuidIdGenerator

logger = logging.getLogger(__name__)


def normalize_composition(
    data: CompositionData | Mapping[str, Any] | Any,
    ids: IdGenerator | None = None,
) -> CompositionData:
    """Return a well-formed copy of ``data``.

    Raises:
        InvalidCompositionError: ``data`` is not an object, or its structure
            cannot be parsed as a composition.
    """
    ids = ids or UuidIdGenerator()

    if isinstance(data, CompositionData):
        raw = data.model_dump(by_alias=True, exclude_none=True)
    elif isinstance(data, Mapping):
        raw = copy.deepcopy(dict(data))
    else:
        raise InvalidCompositionError(f"expected an object, got {type(data).__name__}")

    pages = raw.get("pages")
    if pages is None:
        pages = []
    if not isinstance(pages, list):
        raise InvalidCompositionError("'pages' must be an array")
    if not pages:
        pages = [{"name": "Page 1"}]
    raw["pages"] = pages

    audios = raw.get("audios")
    if audios is None:
        audios = []
    if not isinstance(audios, list):
        raise InvalidCompositionError("'audios' must be an array")
    raw["audios"] = audios

    settings = get_settings()
    stamp = ids.timestamp_ms()
    reserved = _collect_explicit_ids(pages)
    seen: set[str] = set()

    def claim(existing: Any, candidate: str, prefix: str) -> str:
        if isinstance(existing, str) and existing and existing not in seen:
            seen.add(existing)
            return existing
        while candidate in seen or candidate in reserved:
            candidate = ids.new_id(prefix)
        if existing:
            logger.info(f"Regenerated duplicate {prefix} id {existing!r} as {candidate!r}")
        seen.add(candidate)
        return candidate

    def fill_elements(elements: Any, page_index: int, path: str) -> list[Any]:
        if elements is None:
            return []
        if not isinstance(elements, list):
            raise InvalidCompositionError(f"'elements' of page {page_index} must be an array")
        for element_index, element in enumerate(elements):
            if not isinstance(element, Mapping):
                raise InvalidCompositionError(
                    f"element {element_index} of page {page_index} must be an object"
                )
            suffix = f"{path}-{element_index}"
            element["id"] = claim(element.get("id"), f"element-{stamp}-{suffix}", "element")
            if element.get("type") == "group":
                element["elements"] = fill_elements(element.get("elements"), page_index, suffix)
        return elements

    for page_index, page in enumerate(pages):
        if not isinstance(page, Mapping):
            raise InvalidCompositionError(f"page {page_index} must be an object")
        page["id"] = claim(page.get("id"), f"page-{stamp}-{page_index}", "page")
        page.setdefault("name", f"Page {page_index + 1}")
        page["duration"] = _coerce_duration(page.get("duration"), settings.default_page_duration_ms)
        page["elements"] = fill_elements(page.get("elements"), page_index, str(page_index))

    audio_ids: set[str] = set()
    for audio_index, audio in enumerate(audios):
        if not isinstance(audio, Mapping):
            raise InvalidCompositionError(f"audio {audio_index} must be an object")
        audio_id = audio.get("id")
        if not isinstance(audio_id, str) or not audio_id or audio_id in audio_ids:
            audio_id = f"audio-{stamp}-{audio_index}"
            while audio_id in audio_ids:
                audio_id = ids.new_id("audio")
            audio["id"] = audio_id
        audio_ids.add(audio_id)

    try:
        return CompositionData.model_validate(raw)
    except PydanticValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        raise InvalidCompositionError(f"{where}: {first['msg']}") from e


def _collect_explicit_ids(pages: list[Any]) -> set[str]:
    found: set[str] = set()

    def walk(elements: Any) -> None:
        if not isinstance(elements, list):
            return
        for element in elements:
            if isinstance(element, Mapping):
                if isinstance(element.get("id"), str):
                    found.add(element["id"])
                walk(element.get("elements"))

    for page in pages:
        if isinstance(page, Mapping):
            if isinstance(page.get("id"), str):
                found.add(page["id"])
            walk(page.get("elements"))
    return found


def _coerce_duration(value: Any, default: int) -> Any:
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidCompositionError("page duration must be a number")
    if isinstance(value, (int, float)):
        return max(0, int(round(value)))
    # Leave anything else to model validation so it is reported with its location
    return value


def collect_ids(composition: CompositionData) -> set[str]:
    """All page and element ids (recursively) in ``composition``."""
    found = {page.id for page in composition.pages}
    found.update(element.id for _, element in iter_composition_elements(composition))
    return found


def reconcile_selection(app_state: AppState, composition: CompositionData) -> AppState:
    """Drop selections that point at entities no longer in ``composition``."""
    updates: dict[str, Any] = {}
    element_ids = {element.id for _, element in iter_composition_elements(composition)}
    if app_state.selected_element_id and app_state.selected_element_id not in element_ids:
        updates["selected_element_id"] = None

    page_ids = [page.id for page in composition.pages]
    if app_state.selected_page_id and app_state.selected_page_id not in page_ids:
        updates["selected_page_id"] = page_ids[0] if page_ids else None

    if not updates:
        return app_state
    return app_state.model_copy(update=updates)

