import logging
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from vibecut.api.deps import Runtime
from vibecut.api.responses import envelope_success
from vibecut.exceptions import NothingToRedoError, NothingToUndoError
from vibecut.middleware.request_context import create_request_context
from vibecut.schemas.envelope import EnvelopeResponse
from vibecut.services import mutations
from vibecut.services.file_storage import replace_files
from vibecut.services.project_io import export_project, import_project

router = APIRouter()
logger = logging.getLogger(__name__)


class SelectionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page_id: str | None = None
    element_id: str | None = None


def _project_data(runtime: Runtime) -> dict[str, Any]:
    data = runtime.session.project.model_dump(mode="json", by_alias=True, exclude_none=True)
    data.pop("files", None)
    return data


@router.get("", response_model=EnvelopeResponse)
async def get_project(runtime: Runtime) -> EnvelopeResponse:
    """Current project without inlined file data."""
    context = create_request_context()
    return envelope_success(context, _project_data(runtime))


@router.put("/composition", response_model=EnvelopeResponse)
async def put_composition(body: dict[str, Any], runtime: Runtime) -> EnvelopeResponse:
    """JSON editor commit: the body replaces the composition after normalization."""
    context = create_request_context()
    session = runtime.session
    async with session.lock:
        project = session.replace_composition(body)
    logger.info(f"Composition replaced via JSON editor ({len(project.composition.pages)} pages)")
    return envelope_success(context, project.composition.model_dump(mode="json", by_alias=True, exclude_none=True))


@router.post("/undo", response_model=EnvelopeResponse)
async def undo(runtime: Runtime) -> EnvelopeResponse:
    context = create_request_context()
    async with runtime.session.lock:
        if runtime.session.undo() is None:
            raise NothingToUndoError()
    return envelope_success(context, _project_data(runtime))


@router.post("/redo", response_model=EnvelopeResponse)
async def redo(runtime: Runtime) -> EnvelopeResponse:
    context = create_request_context()
    async with runtime.session.lock:
        if runtime.session.redo() is None:
            raise NothingToRedoError()
    return envelope_success(context, _project_data(runtime))


@router.post("/select", response_model=EnvelopeResponse)
async def select(body: SelectionRequest, runtime: Runtime) -> EnvelopeResponse:
    context = create_request_context()
    session = runtime.session
    async with session.lock:
        if body.page_id is not None:
            mutations.find_page(session.project.composition, body.page_id)
            session.select_page(body.page_id)
        if "element_id" in body.model_fields_set:
            if body.element_id is not None:
                mutations.find_element(session.project.composition, body.element_id)
            session.select_element(body.element_id)
    app_state = session.project.app_state
    return envelope_success(
        context,
        {"selectedPageId": app_state.selected_page_id, "selectedElementId": app_state.selected_element_id},
    )


@router.get("/export", response_model=EnvelopeResponse)
async def export(runtime: Runtime) -> EnvelopeResponse:
    """Full project file, stored media included."""
    context = create_request_context()
    return envelope_success(context, await export_project(runtime.session.project, runtime.storage))


@router.post("/import", response_model=EnvelopeResponse)
async def import_(body: dict[str, Any], runtime: Runtime) -> EnvelopeResponse:
    context = create_request_context()
    session = runtime.session
    project = import_project(body, session.ids)
    async with session.lock:
        await replace_files(runtime.storage, project.files)
        session.replace_project(project)
        session.chat.reset()
    return envelope_success(context, _project_data(runtime))
