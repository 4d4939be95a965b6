"""MCP server exposing the editor's AI tools.

Run with ``python -m vibecut.mcp.server`` (stdio transport).
"""
