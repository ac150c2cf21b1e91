"""MCP server for VecDB."""

from vecdb.server.mcp_server import create_mcp_server

__all__ = ["create_mcp_server"]
