"""Tests for the MCP server and health tool."""

from tusa_mcp import __version__
from tusa_mcp.server import health


def test_health_returns_ok_status():
    """Health check should return status ok."""
    response = health()
    assert response.status == "ok"


def test_health_returns_version():
    """Health check should return the current version."""
    response = health()
    assert response.version == __version__


def test_health_returns_timestamp():
    """Health check should return a valid ISO timestamp."""
    response = health()
    assert response.timestamp is not None
    # Should be parseable as ISO format
    assert "T" in response.timestamp


async def test_all_tools_registered():
    import tusa_mcp.tools  # noqa: F401
    from tusa_mcp.server import mcp

    names = {tool.name for tool in await mcp.list_tools()}
    assert {
        "health",
        "search_stops",
        "find_nearest_stop",
        "get_stop_detail",
        "get_arrivals",
        "get_service_disruptions",
        "list_favorite_stops",
        "toggle_favorite_stop",
    } <= names
