from tusa_mcp.models.responses import GetDisruptionsResponse
from tusa_mcp.server import mcp
from tusa_mcp.services.disruptions_service import get_disruptions as _get_disruptions


@mcp.tool()
async def get_service_disruptions(include_old: bool = False) -> GetDisruptionsResponse:
    """Get bus service disruptions affecting Badalona, newest first.

    By default only disruptions from the last 30 days are returned;
    old_count says how many older ones exist.

    When api_available is False the disruptions feed is unreachable.

    Args:
        include_old: Also return disruptions older than 30 days.

    Returns:
        GetDisruptionsResponse with disruptions and their affected lines.
    """
    return await _get_disruptions(include_old=include_old)
