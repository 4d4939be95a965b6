from fastapi import APIRouter, Query

from vibecut.api.deps import Runtime
from vibecut.api.responses import envelope_success
from vibecut.exceptions import OutOfBoundsError
from vibecut.middleware.request_context import create_request_context
from vibecut.schemas.envelope import EnvelopeResponse
from vibecut.services.time_mapping import frame_of_page_start, locate, page_frame_counts

router = APIRouter()


@router.get("", response_model=EnvelopeResponse)
async def get_timeline(runtime: Runtime) -> EnvelopeResponse:
    """Frame layout of every page."""
    context = create_request_context()
    composition = runtime.session.project.composition
    counts = page_frame_counts(composition.pages, composition.fps)
    pages = []
    start = 0
    for page, frames in zip(composition.pages, counts):
        pages.append({"id": page.id, "name": page.name, "startFrame": start, "frames": frames})
        start += frames
    return envelope_success(context, {"fps": composition.fps, "totalFrames": start, "pages": pages})


@router.get("/locate", response_model=EnvelopeResponse)
async def locate_frame(runtime: Runtime, frame: int = Query(..., description="Global frame number")) -> EnvelopeResponse:
    context = create_request_context()
    composition = runtime.session.project.composition
    position = locate(frame, composition.pages, composition.fps)
    page = composition.pages[position.page_index]
    return envelope_success(
        context,
        {"pageIndex": position.page_index, "pageId": page.id, "frameOffset": position.frame_offset},
    )


@router.get("/page-start", response_model=EnvelopeResponse)
async def page_start(
    runtime: Runtime, page_index: int = Query(..., alias="pageIndex", ge=0)
) -> EnvelopeResponse:
    context = create_request_context()
    composition = runtime.session.project.composition
    if page_index >= len(composition.pages):
        raise OutOfBoundsError("pageIndex", page_index, 0, len(composition.pages) - 1)
    return envelope_success(
        context, {"pageIndex": page_index, "frame": frame_of_page_start(page_index, composition.pages, composition.fps)}
    )
