"""vibecut MCP server: the AI editing tools over the Model Context Protocol.

The server owns one in-process editor runtime, created on first use, so an
MCP client edits the same session the agent tools operate on.
"""

import json
import logging
from typing import Any, Literal

from mcp.server.fastmcp import FastMCP

from vibecut.ai.tools import ToolContext
from vibecut.api.deps import EditorRuntime, create_runtime
from vibecut.exceptions import VibecutError

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "vibecut",
    instructions="Read and edit a page-based video composition: pages, elements, audio and timeline notes",
)

_runtime: EditorRuntime | None = None


async def get_runtime() -> EditorRuntime:
    global _runtime
    if _runtime is None:
        _runtime = await create_runtime()
    return _runtime


async def _call(name: str, arguments: dict[str, Any]) -> str:
    runtime = await get_runtime()
    context = ToolContext(
        session=runtime.session,
        registry=runtime.registry,
        command_context=runtime.command_context(),
    )
    try:
        result = await runtime.tools.execute(name, arguments, context)
    except VibecutError as e:
        logger.info(f"MCP tool {name} failed: {e.code}: {e.message}")
        return json.dumps({"error": e.message, "code": e.code}, ensure_ascii=False)
    return json.dumps(result, ensure_ascii=False, indent=2, default=str)


async def read_project(include_files: bool = False) -> str:
    """Get the current project structure including all pages, elements, and metadata.

    Args:
        include_files: Whether to include file information in the response
    """
    return await _call("read_project", {"includeFiles": include_files})


async def read_composition(page_id: str | None = None, element_id: str | None = None) -> str:
    """Read one page, one element, or the whole composition.

    Args:
        page_id: Specific page ID to read
        element_id: Specific element ID to read (searched across all pages)
    """
    return await _call("read_composition", {"pageId": page_id, "elementId": element_id})


async def edit_project(
    action: Literal[
        "updateElement",
        "addElement",
        "deleteElement",
        "updatePage",
        "addPage",
        "deletePage",
        "updateComposition",
    ],
    target_id: str | None = None,
    page_id: str | None = None,
    data: dict[str, Any] | None = None,
) -> str:
    """Modify project elements, pages, or composition settings.

    Args:
        action: The type of edit action to perform
        target_id: Element or page id (update/delete actions)
        page_id: Page to add an element to (addElement)
        data: Fields to set, camelCase (e.g. {"text": "Hi", "fontSize": 48});
            updateComposition takes only title, fps, width and height
    """
    target = {"id": target_id, "pageId": page_id, "data": data}
    return await _call("edit_project", {"action": action, "target": target})


async def analyze_project(include_recommendations: bool = False) -> str:
    """Analyze project structure and provide insights.

    Args:
        include_recommendations: Whether to include improvement recommendations
    """
    return await _call("analyze_project", {"includeRecommendations": include_recommendations})


async def run_command(command: str) -> str:
    """Run an editor slash command, e.g. "/new-page -n 2" or "/set-text --text Hello".

    Destructive commands need "--yes" since there is nobody to confirm.

    Args:
        command: The slash command line
    """
    return await _call("run_command", {"command": command})


mcp.tool()(read_project)
mcp.tool()(read_composition)
mcp.tool()(edit_project)
mcp.tool()(analyze_project)
mcp.tool()(run_command)


if __name__ == "__main__":
    mcp.run()
