"""Multi-step editing agent.

``run_agent`` asks the chat model what to do next, runs the tool calls it
returns, and repeats until the model says the goal is done, stops calling
tools, the caller cancels, or ``max_steps`` is reached.
"""

import asyncio
import inspect
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

import httpx

from vibecut.ai.tools import ToolContext, ToolRegistry, safe_project
from vibecut.commands.base import CommandContext
from vibecut.commands.registry import CommandRegistry
from vibecut.config import get_settings
from vibecut.exceptions import AIProviderError, VibecutError
from vibecut.services.session import EditorSession

logger = logging.getLogger(__name__)

GOAL_MARKERS = ("goal complete", "goal achieved", "task complete", "no further changes needed")

SYSTEM_PROMPT = """You are a Video Editing Agent that executes multi-step workflows to achieve user goals.

A project is a list of timed pages; each page holds text, image, video and group elements
positioned on the canvas, and audio tracks play across the whole timeline.

Each step:
1. Look at the current project state and the steps completed so far
2. Use tools to make progress (read_project, read_composition, edit_project, analyze_project, run_command)
3. Decide whether the goal is complete

When the user's goal is fully achieved, clearly state "GOAL COMPLETE" in your response."""

StopReason = Literal["goal_complete", "no_tool_calls", "max_steps", "cancelled"]
ContentCallback = Callable[[str], Any]


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class ModelReply:
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)


class ChatModel(Protocol):
    async def complete(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]) -> ModelReply: ...


@dataclass
class ToolOutcome:
    call: ToolCall
    result: Any = None
    error: str | None = None


@dataclass
class AgentStep:
    number: int
    content: str
    tools: list[ToolOutcome] = field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        return {
            "step": self.number,
            "action": self.tools[0].call.name if self.tools else "analysis",
            "description": self.content.split("\n")[0] if self.content else f"Step {self.number} completed",
            "toolResults": [
                {"name": t.call.name, "result": t.result, "error": t.error} for t in self.tools
            ],
        }


@dataclass
class AgentRun:
    goal: str
    steps: list[AgentStep] = field(default_factory=list)
    stop_reason: StopReason = "max_steps"

    @property
    def completed(self) -> bool:
        return self.stop_reason in ("goal_complete", "no_tool_calls")


def goal_reached(content: str) -> bool:
    lowered = content.lower()
    return any(marker in lowered for marker in GOAL_MARKERS)


class OpenAIChatModel:
    """Chat Completions client with tool calling."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_model
        self.api_url = (api_url or settings.openai_api_url).rstrip("/")
        self.timeout = timeout or settings.ai_timeout_seconds
        self._transport = transport

    async def complete(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]) -> ModelReply:
        if not self.api_key:
            raise AIProviderError("OpenAI API key is not configured (set VIBECUT_OPENAI_API_KEY)")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.api_url}/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "messages": messages,
                        "tools": tools,
                        "tool_choice": "auto",
                    },
                )
        except httpx.TimeoutException as e:
            logger.error("OpenAI API timeout")
            raise AIProviderError("OpenAI API request timed out") from e
        except httpx.HTTPError as e:
            raise AIProviderError(f"OpenAI API request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"OpenAI API error: {response.status_code} - {response.text}")
            raise AIProviderError(f"OpenAI API error (HTTP {response.status_code})")

        message = response.json()["choices"][0]["message"]
        calls = []
        for raw in message.get("tool_calls") or []:
            function = raw.get("function", {})
            try:
                arguments = json.loads(function.get("arguments") or "{}")
            except json.JSONDecodeError as e:
                raise AIProviderError(f"Tool call {function.get('name')} has malformed arguments") from e
            calls.append(ToolCall(id=raw.get("id", ""), name=function.get("name", ""), arguments=arguments))
        return ModelReply(content=message.get("content") or "", tool_calls=calls)


def _step_prompt(session: EditorSession, goal: str, steps: list[AgentStep], number: int, max_steps: int) -> str:
    return (
        f"Current project state: {json.dumps(safe_project(session), indent=2)}\n\n"
        f"Original goal: {goal}\n\n"
        f"Steps completed so far: {json.dumps([s.summary() for s in steps], default=str)}\n\n"
        f"Current step: {number}/{max_steps}\n\n"
        "What should I do next to achieve the goal? Use tools to make progress "
        "or indicate if the goal is complete."
    )


async def _emit(callback: ContentCallback | None, content: str) -> None:
    if callback is None:
        return
    result = callback(content)
    if inspect.isawaitable(result):
        await result


async def run_agent(
    model: ChatModel,
    session: EditorSession,
    tools: ToolRegistry,
    goal: str,
    *,
    max_steps: int | None = None,
    cancel_event: asyncio.Event | None = None,
    on_content: ContentCallback | None = None,
    registry: CommandRegistry | None = None,
    command_context: CommandContext | None = None,
) -> AgentRun:
    """Work towards ``goal`` with at most ``max_steps`` model round trips.

    Tool failures are reported back to the model on the next step instead of
    ending the run. Errors from the model itself propagate.
    """
    max_steps = max_steps or get_settings().agent_max_steps
    context = ToolContext(session=session, registry=registry, command_context=command_context)
    run = AgentRun(goal=goal)
    session.chat.add("user", goal)

    for number in range(1, max_steps + 1):
        if cancel_event is not None and cancel_event.is_set():
            run.stop_reason = "cancelled"
            break

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": _step_prompt(session, goal, run.steps, number, max_steps)},
        ]
        reply = await model.complete(messages, tools.openai_schemas())
        step = AgentStep(number=number, content=reply.content)
        run.steps.append(step)
        await _emit(on_content, f"## Step {number}/{max_steps}\n\n{reply.content}")

        for call in reply.tool_calls:
            if cancel_event is not None and cancel_event.is_set():
                break
            try:
                outcome = ToolOutcome(call, result=await tools.execute(call.name, call.arguments, context))
                await _emit(on_content, f"✅ **Completed**: {call.name}")
            except VibecutError as e:
                logger.info(f"Tool {call.name} failed: {e.code}: {e.message}")
                outcome = ToolOutcome(call, error=e.message)
                await _emit(on_content, f"❌ **Failed**: {call.name}: {e.message}")
            step.tools.append(outcome)

        if cancel_event is not None and cancel_event.is_set():
            run.stop_reason = "cancelled"
            break
        if goal_reached(reply.content):
            run.stop_reason = "goal_complete"
            break
        if not reply.tool_calls:
            run.stop_reason = "no_tool_calls"
            break

    logger.info(f"Agent stopped after {len(run.steps)} step(s): {run.stop_reason}")
    final = run.steps[-1].content if run.steps else ""
    if run.stop_reason == "max_steps":
        final = (
            f"{final}\n\nMade progress towards your goal, but reached the step limit ({max_steps} steps)."
        ).strip()
    elif run.stop_reason == "cancelled":
        final = "Stopped before the goal was reached."
    session.chat.add("assistant", final)
    return run
