import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vibecut.api import agent, commands, project, timeline
from vibecut.api.deps import create_runtime
from vibecut.api.responses import envelope_error_from_exception
from vibecut.config import get_settings
from vibecut.constants.error_codes import get_error_spec, is_retryable
from vibecut.exceptions import VibecutError
from vibecut.middleware.request_context import build_meta, create_request_context
from vibecut.schemas.envelope import EnvelopeResponse, ErrorInfo

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    app.state.runtime = await create_runtime(settings)
    yield
    # Shutdown
    autosaver = app.state.runtime.autosaver
    if autosaver is not None:
        await autosaver.close()
    app.state.runtime = None


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _http_error_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        409: "PRECONDITION_FAILED",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_ERROR",
    }
    return mapping.get(status_code, "HTTP_ERROR")


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    context = create_request_context()
    spec = get_error_spec(code)
    error = ErrorInfo(
        code=code,
        message=message,
        retryable=is_retryable(code),
        suggested_fix=spec.get("suggested_fix"),
    )
    envelope = EnvelopeResponse(
        request_id=context.request_id,
        error=error,
        meta=build_meta(context),
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope.model_dump(exclude_none=True)),
    )


@app.exception_handler(VibecutError)
async def vibecut_exception_handler(request: Request, exc: VibecutError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return envelope_error_from_exception(create_request_context(), exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI request validation errors (422) with envelope format."""
    errors = exc.errors()
    if errors:
        first_error = errors[0]
        loc = " -> ".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", "Validation error")
        message = f"{loc}: {msg}" if loc else msg
    else:
        message = "Request validation failed"
    return _error_response(422, "VALIDATION_ERROR", message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(exc.status_code, _http_error_code(exc.status_code), str(exc.detail))


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    return _error_response(500, "INTERNAL_ERROR", "Internal server error")


# Routers
app.include_router(project.router, prefix="/api/project", tags=["project"])
app.include_router(commands.router, prefix="/api/commands", tags=["commands"])
app.include_router(timeline.router, prefix="/api/timeline", tags=["timeline"])
app.include_router(agent.router, prefix="/api/agent", tags=["agent"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": settings.app_version}
