"""Project JSON import and export.

The file format is the ``Project`` shape with media files inlined as data
URIs. Export always writes every required field; import accepts partial
files and fills the gaps the same way the default-project constructor does.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from vibecut.config import get_settings
from vibecut.exceptions import InvalidCompositionError
from vibecut.schemas.project import AppState, LocalFile, Note, Project
from vibecut.services.file_storage import FileStorage
from vibecut.services.ids import IdGenerator, utcnow
from vibecut.services.normalizer import normalize_composition, reconcile_selection

logger = logging.getLogger(__name__)

# AppState keys written even when their value is null
_NULLABLE_APP_STATE_KEYS = ("selectedElementId", "selectedPageId", "error")


async def export_project(project: Project, storage: FileStorage | None = None) -> dict[str, Any]:
    """Serialize ``project`` to a JSON-ready dict, inlining stored files."""
    files = await storage.get_all_files() if storage is not None else project.files
    data = project.model_copy(update={"files": files}).model_dump(
        mode="json", by_alias=True, exclude_none=True
    )
    app_state = data.setdefault("appState", {})
    for key in _NULLABLE_APP_STATE_KEYS:
        app_state.setdefault(key, None)
    data["composition"].setdefault("audios", [])
    data.setdefault("metadata", {})
    return data


async def export_project_json(project: Project, storage: FileStorage | None = None) -> str:
    return json.dumps(await export_project(project, storage), ensure_ascii=False, indent=2)


def import_project(payload: str | bytes | Mapping[str, Any], ids: IdGenerator) -> Project:
    """Build a normalized project from exported JSON.

    The first page is selected, the element selection is cleared and history
    starts empty.

    Raises:
        InvalidCompositionError: the payload is not a JSON object or its
            composition cannot be parsed.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise InvalidCompositionError(f"not valid JSON ({e.msg} at line {e.lineno})") from e
    if not isinstance(payload, Mapping):
        raise InvalidCompositionError("project file must contain a JSON object")

    settings = get_settings()
    composition = normalize_composition(payload.get("composition") or {}, ids)

    raw_state = payload.get("appState") or {}
    if not isinstance(raw_state, Mapping):
        raise InvalidCompositionError("'appState' must be an object")
    now = utcnow()
    try:
        files = [LocalFile.model_validate(f) for f in payload.get("files") or []]
        notes = [Note.model_validate(n) for n in payload.get("notes") or []]
        app_state = AppState.model_validate({**raw_state, "history": {"past": [], "future": []}})
        app_state = app_state.model_copy(
            update={"selected_page_id": composition.pages[0].id, "selected_element_id": None}
        )
        project = Project(
            id=payload.get("id") or ids.new_id("project"),
            name=payload.get("name") or settings.default_project_name,
            created_at=payload.get("createdAt") or now,
            updated_at=payload.get("updatedAt") or now,
            properties_enabled=payload.get("propertiesEnabled", True),
            composition=composition,
            app_state=reconcile_selection(app_state, composition),
            files=files,
            notes=notes,
            metadata=dict(payload.get("metadata") or {}),
        )
    except PydanticValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        raise InvalidCompositionError(f"{where}: {first['msg']}") from e
    logger.info(f"Imported project {project.id} with {len(composition.pages)} pages and {len(files)} files")
    return project
