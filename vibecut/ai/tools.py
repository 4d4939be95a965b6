"""Tools the AI agent (and the MCP server) can call against an editor session.

Each tool declares its arguments as a pydantic model; the JSON schema sent to
the model is generated from it. Tools that change the project build a
candidate with ``services.mutations`` and hand it to ``EditorSession.commit``
so AI edits are normalized, clamped and undoable like any other edit.
"""

import logging
from collections import Counter
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel, to_snake

from vibecut.commands.base import CommandContext
from vibecut.commands.composition import FPS_RANGE, HEIGHT_RANGE, WIDTH_RANGE
from vibecut.commands.registry import CommandRegistry
from vibecut.commands.values import parse_int
from vibecut.exceptions import (
    DuplicateIdError,
    InvalidFieldValueError,
    MissingRequiredFieldError,
    NoUpdatesSpecifiedError,
    ToolNotFoundError,
    ValidationError,
)
from vibecut.schemas.composition import Element, Page
from vibecut.services import mutations
from vibecut.services.normalizer import collect_ids
from vibecut.services.session import EditorSession

logger = logging.getLogger(__name__)

_element_adapter = TypeAdapter(Element)


@dataclass
class ToolContext:
    session: EditorSession
    registry: CommandRegistry | None = None
    command_context: CommandContext | None = None


# =============================================================================
# Parameter models
# =============================================================================


class ToolParams(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReadProjectParams(ToolParams):
    include_files: bool = Field(False, description="Whether to include file information in the response")


class ReadCompositionParams(ToolParams):
    page_id: str | None = Field(None, description="Specific page ID to read (optional)")
    element_id: str | None = Field(None, description="Specific element ID to read (optional)")


class EditTarget(ToolParams):
    id: str | None = Field(None, description="Element or page id")
    page_id: str | None = Field(None, description="Page to add an element to")
    data: dict[str, Any] | None = Field(None, description="Fields to set, camelCase")


EditAction = Literal[
    "updateElement",
    "addElement",
    "deleteElement",
    "updatePage",
    "addPage",
    "deletePage",
    "updateComposition",
]


class EditProjectParams(ToolParams):
    action: EditAction = Field(description="The type of edit action to perform")
    target: EditTarget = Field(description="Target object (element, page, or composition data)")


class AnalyzeProjectParams(ToolParams):
    include_recommendations: bool = Field(False, description="Whether to include improvement recommendations")


class RunCommandParams(ToolParams):
    command: str = Field(description="Slash command to run, e.g. /new-page -n 2")


# =============================================================================
# Tool and registry
# =============================================================================

Handler = Callable[[Any, ToolContext], Awaitable[Any]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    params_model: type[ToolParams]
    handler: Handler

    @property
    def json_schema(self) -> dict[str, Any]:
        return self.params_model.model_json_schema(by_alias=True)

    async def execute(self, arguments: Mapping[str, Any], context: ToolContext) -> Any:
        try:
            params = self.params_model.model_validate(dict(arguments))
        except PydanticValidationError as e:
            first = e.errors()[0]
            where = ".".join(str(part) for part in first["loc"]) or self.name
            raise InvalidFieldValueError(where, first.get("input"), first["msg"]) from e
        return await self.handler(params, context)


class ToolRegistry:
    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def names(self) -> list[str]:
        return list(self._tools)

    def openai_schemas(self) -> list[dict[str, Any]]:
        """Tool declarations in the OpenAI ``tools`` request format."""
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.json_schema,
                },
            }
            for tool in self._tools.values()
        ]

    async def execute(self, name: str, arguments: Mapping[str, Any], context: ToolContext) -> Any:
        tool = self.get(name)
        logger.info(f"Executing tool {name}")
        return await tool.execute(arguments, context)


# =============================================================================
# Helpers
# =============================================================================


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def safe_project(session: EditorSession) -> dict[str, Any]:
    """Project JSON without inlined file data or undo history."""
    data = _dump(session.project)
    data.pop("files", None)
    data.get("appState", {}).pop("history", None)
    return data


def _field_names(model_cls: type[BaseModel], data: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase keys onto the model's field names; unknown keys pass through."""
    result = {}
    for key, value in data.items():
        snake = to_snake(key)
        result[snake if snake in model_cls.model_fields else key] = value
    return result


def _require(value: Any, field: str, action: str) -> Any:
    if value is None:
        raise MissingRequiredFieldError(field, f"{field} is required for {action}")
    return value


def _validate_page(data: dict[str, Any]) -> Page:
    try:
        return Page.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        raise InvalidFieldValueError(
            ".".join(str(p) for p in first["loc"]), first.get("input"), first["msg"]
        ) from e


_COMPOSITION_BOUNDS = {"fps": FPS_RANGE, "width": WIDTH_RANGE, "height": HEIGHT_RANGE}


def _composition_settings(data: Mapping[str, Any]) -> dict[str, Any]:
    """Check an updateComposition payload the way /set-comp checks its options.

    Only the title, frame rate and canvas size can change here; pages and
    audio tracks go through their own actions.
    """
    settings: dict[str, Any] = {}
    for key, value in data.items():
        field = f"target.data.{key}"
        if key in ("title", "name"):
            if not isinstance(value, str):
                raise InvalidFieldValueError(field, value, "expected a string")
            settings["title"] = value
        elif key in _COMPOSITION_BOUNDS:
            if isinstance(value, bool) or not isinstance(value, (int, str)):
                raise InvalidFieldValueError(field, value, "expected a whole number")
            settings[key] = parse_int(field, str(value), *_COMPOSITION_BOUNDS[key])
        else:
            raise InvalidFieldValueError(field, value, "updateComposition accepts title, fps, width and height")
    if not settings:
        raise NoUpdatesSpecifiedError()
    return settings


def _new_unique_id(session: EditorSession, prefix: str) -> str:
    taken = collect_ids(session.project.composition)
    new_id = session.ids.new_id(prefix)
    while new_id in taken:
        new_id = session.ids.new_id(prefix)
    return new_id


def generate_recommendations(session: EditorSession) -> list[str]:
    composition = session.project.composition
    recommendations = []
    if any(len(page.elements) > 10 for page in composition.pages):
        recommendations.append("Consider breaking down pages with many elements for better performance")
    if any(page.duration < 1000 for page in composition.pages):
        recommendations.append(
            "Some pages have very short durations - consider extending for better readability"
        )
    if composition.width < 1920 or composition.height < 1080:
        recommendations.append("Consider using higher resolution (1920x1080 or above) for better quality")
    return recommendations


# =============================================================================
# Tool handlers
# =============================================================================


async def read_project(params: ReadProjectParams, context: ToolContext) -> dict[str, Any]:
    project = context.session.project
    data = safe_project(context.session)
    if not params.include_files:
        return data
    composition = project.composition
    return {
        "projectSummary": {
            "name": project.name,
            "id": project.id,
            "pages": len(composition.pages),
            "totalElements": sum(len(page.elements) for page in composition.pages),
            "resolution": f"{composition.width}x{composition.height}",
            "fps": composition.fps,
        },
        "composition": data,
        "files": [{"id": f.id, "name": f.name, "type": f.type, "size": f.size} for f in project.files],
    }


async def read_composition(params: ReadCompositionParams, context: ToolContext) -> dict[str, Any]:
    composition = context.session.project.composition
    if params.element_id:
        page, element = mutations.find_element(composition, params.element_id)
        return {"element": _dump(element), "pageId": page.id}
    if params.page_id:
        _, page = mutations.find_page(composition, params.page_id)
        return {"page": _dump(page)}
    return {"composition": _dump(composition)}


async def edit_project(params: EditProjectParams, context: ToolContext) -> dict[str, Any]:
    session = context.session
    target = params.target
    action = params.action

    async with session.lock:
        project = session.project
        composition = project.composition
        result: dict[str, Any] = {"success": True}

        if action == "updateElement":
            element_id = _require(target.id, "target.id", action)
            data = _require(target.data, "target.data", action)
            _, current = mutations.find_element(composition, element_id)
            updated = mutations.update_element(project, element_id, _field_names(type(current), data))
            result["message"] = f"Updated element {element_id}"

        elif action == "addElement":
            page_id = _require(target.page_id, "target.pageId", action)
            data = _require(target.data, "target.data", action)
            if "type" not in data:
                raise MissingRequiredFieldError("target.data.type", "text, image, video or group")
            raw = {"id": _new_unique_id(session, "element"), **data}
            try:
                element = _element_adapter.validate_python(raw)
            except PydanticValidationError as e:
                first = e.errors()[0]
                raise InvalidFieldValueError(
                    ".".join(str(p) for p in first["loc"]), first.get("input"), first["msg"]
                ) from e
            updated = mutations.add_element(project, page_id, element, select=False)
            result.update(message=f"Added element to page {page_id}", elementId=element.id)

        elif action == "deleteElement":
            element_id = _require(target.id, "target.id", action)
            updated, _ = mutations.delete_element(project, element_id)
            result["message"] = f"Deleted element {element_id}"

        elif action == "updatePage":
            page_id = _require(target.id, "target.id", action)
            data = _require(target.data, "target.data", action)
            index, page = mutations.find_page(composition, page_id)
            merged = {**page.model_dump(), **_field_names(Page, data)}
            if merged["id"] != page_id and merged["id"] in collect_ids(composition):
                raise DuplicateIdError(merged["id"])
            updated = mutations.clone(project)
            updated.composition.pages[index] = _validate_page(merged)
            if updated.app_state.selected_page_id == page_id:
                updated.app_state.selected_page_id = merged["id"]
            result["message"] = f"Updated page {page_id}"

        elif action == "addPage":
            data = _require(target.data, "target.data", action)
            raw = {
                "id": _new_unique_id(session, "page"),
                "duration": 5000,
                "background_color": "white",
                "elements": [],
                **_field_names(Page, data),
            }
            raw["name"] = raw.get("name") or f"Page {len(composition.pages) + 1}"
            page = _validate_page(raw)
            updated = mutations.clone(project)
            updated.composition.pages.append(page)
            result.update(message=f"Added new page: {page.name}", pageId=page.id)

        elif action == "deletePage":
            page_id = _require(target.id, "target.id", action)
            updated, _ = mutations.delete_pages(project, page_id, 1)
            result["message"] = f"Deleted page {page_id}"

        else:  # updateComposition
            data = _require(target.data, "target.data", action)
            updated = mutations.update_composition_settings(project, **_composition_settings(data))
            result["message"] = "Updated composition settings"

        session.commit(updated)
    return result


async def analyze_project(params: AnalyzeProjectParams, context: ToolContext) -> dict[str, Any]:
    project = context.session.project
    composition = project.composition
    total_elements = sum(len(page.elements) for page in composition.pages)
    total_duration = composition.total_duration_ms
    analysis: dict[str, Any] = {
        "projectStats": {
            "name": project.name,
            "pages": len(composition.pages),
            "totalElements": total_elements,
            "resolution": f"{composition.width}x{composition.height}",
            "fps": composition.fps,
            "totalDuration": total_duration,
        },
        "elementBreakdown": [
            {
                "pageId": page.id,
                "name": page.name,
                "duration": page.duration,
                "elementCount": len(page.elements),
                "elementTypes": dict(Counter(element.type for element in page.elements)),
            }
            for page in composition.pages
        ],
        "insights": [
            f"Project contains {len(composition.pages)} page(s)",
            f"Total of {total_elements} elements",
            f"Video resolution: {composition.width}x{composition.height} at {composition.fps}fps",
            f"Total duration: {total_duration / 1000:.1f}s",
        ],
    }
    if params.include_recommendations:
        analysis["recommendations"] = generate_recommendations(context.session)
    return analysis


async def run_command(params: RunCommandParams, context: ToolContext) -> dict[str, Any]:
    if context.registry is None:
        raise ValidationError("Slash commands are not available in this session")
    command_context = context.command_context or CommandContext(session=context.session)
    text = params.command.strip()
    if not text.startswith("/"):
        text = f"/{text}"
    result = await context.registry.execute(text, command_context)
    return result.model_dump(mode="json", exclude_none=True)


def build_default_tools() -> ToolRegistry:
    return ToolRegistry(
        [
            Tool(
                "read_project",
                "Get the current project structure including all pages, elements, and metadata",
                ReadProjectParams,
                read_project,
            ),
            Tool(
                "read_composition",
                "Read specific composition data like pages or elements",
                ReadCompositionParams,
                read_composition,
            ),
            Tool(
                "edit_project",
                "Modify project elements, pages, or composition settings",
                EditProjectParams,
                edit_project,
            ),
            Tool(
                "analyze_project",
                "Analyze project structure and provide insights",
                AnalyzeProjectParams,
                analyze_project,
            ),
            Tool(
                "run_command",
                "Run an editor slash command such as /new-page or /set-text",
                RunCommandParams,
                run_command,
            ),
        ]
    )
