"""MCP tool registrations. Importing this package registers every tool."""

from tusa_mcp.tools import arrivals_tools, disruption_tools, favorite_tools, stop_tools

__all__ = ["arrivals_tools", "disruption_tools", "favorite_tools", "stop_tools"]
