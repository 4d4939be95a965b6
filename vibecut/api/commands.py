import logging

from fastapi import APIRouter
from pydantic import BaseModel, Field

from vibecut.api.deps import Runtime
from vibecut.api.responses import envelope_success
from vibecut.exceptions import ValidationError
from vibecut.middleware.request_context import create_request_context
from vibecut.schemas.envelope import EnvelopeResponse

router = APIRouter()
logger = logging.getLogger(__name__)


class CommandRequest(BaseModel):
    input: str = Field(..., min_length=1, description="Slash command, e.g. /new-page -n 2")
    confirm: bool = Field(
        default=False, description="Answer to the confirmation prompt of destructive commands"
    )


@router.get("", response_model=EnvelopeResponse)
async def list_commands(runtime: Runtime) -> EnvelopeResponse:
    context = create_request_context()
    registry = runtime.registry
    data = [
        {"name": name, "usage": registry.get(name).usage, "description": registry.get(name).description}
        for name in registry.names()
    ]
    return envelope_success(context, data)


@router.post("", response_model=EnvelopeResponse)
async def run_command(body: CommandRequest, runtime: Runtime) -> EnvelopeResponse:
    """Run one slash command.

    Command failures are part of the result (``success: false``), not HTTP
    errors; only input that is not a slash command is rejected.
    """
    context = create_request_context()

    async def confirm(prompt: str) -> bool:
        return body.confirm or context.decline(prompt)

    result = await runtime.registry.execute(body.input, runtime.command_context(confirm))
    if result is None:
        raise ValidationError("Input is not a slash command; commands start with '/'")
    runtime.session.chat.add("user", body.input)
    runtime.session.chat.add("assistant", result.message)
    return envelope_success(context, result.model_dump(mode="json", exclude_none=True))
