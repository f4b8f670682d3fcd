"""MCP server exposing File Search tools to agents."""

from filesearch.mcp.server import FileSearchTools, build_server, enabled_tool_names, run_server

__all__ = ["FileSearchTools", "build_server", "enabled_tool_names", "run_server"]
