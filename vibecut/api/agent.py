import logging

from fastapi import APIRouter
from pydantic import BaseModel, Field

from vibecut.ai.agent import OpenAIChatModel, run_agent
from vibecut.api.deps import Runtime
from vibecut.api.responses import envelope_success
from vibecut.middleware.request_context import create_request_context
from vibecut.schemas.envelope import EnvelopeResponse

router = APIRouter()
logger = logging.getLogger(__name__)


class AgentRequest(BaseModel):
    goal: str = Field(..., min_length=1)
    max_steps: int | None = Field(default=None, ge=1, le=20)


@router.post("", response_model=EnvelopeResponse)
async def run(body: AgentRequest, runtime: Runtime) -> EnvelopeResponse:
    context = create_request_context()
    logger.info(f"agent.run goal={body.goal[:80]!r}")
    result = await run_agent(
        OpenAIChatModel(),
        runtime.session,
        runtime.tools,
        body.goal,
        max_steps=body.max_steps,
        registry=runtime.registry,
        command_context=runtime.command_context(),
    )
    return envelope_success(
        context,
        {
            "stopReason": result.stop_reason,
            "completed": result.completed,
            "steps": [step.summary() for step in result.steps],
            "message": runtime.session.chat.messages[-1].content,
        },
    )


@router.get("/chat", response_model=EnvelopeResponse)
async def chat_log(runtime: Runtime) -> EnvelopeResponse:
    context = create_request_context()
    messages = [m.model_dump(mode="json", by_alias=True) for m in runtime.session.chat.messages]
    return envelope_success(context, messages)
