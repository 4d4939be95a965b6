from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from vibecut.exceptions import VibecutError
from vibecut.middleware.request_context import RequestContext, build_meta
from vibecut.schemas.envelope import EnvelopeResponse


def envelope_success(context: RequestContext, data: object) -> EnvelopeResponse:
    return EnvelopeResponse(
        request_id=context.request_id,
        data=data,
        meta=build_meta(context),
    )


def envelope_error_from_exception(context: RequestContext, exc: VibecutError) -> JSONResponse:
    """Convert a VibecutError to an envelope error response."""
    envelope = EnvelopeResponse(
        request_id=context.request_id,
        error=exc.to_error_info(),
        meta=build_meta(context),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(envelope.model_dump(exclude_none=True)),
    )
