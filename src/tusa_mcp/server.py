import argparse
import asyncio
import logging
from datetime import UTC, datetime

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel

# Initialize the MCP server
mcp = FastMCP(
    "TUSA Transit",
    instructions="Badalona bus stops, live arrival countdowns and service disruptions (TUSA and TMB)",
)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


@mcp.tool()
def health() -> HealthResponse:
    """Check if the TUSA MCP server is running and healthy.

    Returns the server status, version, and current timestamp.
    """
    from tusa_mcp import __version__

    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
    )


async def run_watch(stop_id: str, duration: float | None) -> None:
    """Keep arrivals for one stop refreshed and print every update."""
    from tusa_mcp.services.aggregation import format_offset
    from tusa_mcp.services.refresh_scheduler import RefreshScheduler

    def on_update(groups) -> None:
        print(f"\nStop {stop_id}:")
        for group in groups:
            times = ", ".join(format_offset(offset).text for offset in group.offsets)
            print(f"  {group.line_code:>4}  {group.destination:<30} {times}")

    def on_error(error) -> None:
        print(f"\n{error}")

    async with RefreshScheduler(on_update=on_update, on_error=on_error) as scheduler:
        scheduler.select(stop_id)
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="tusa-mcp",
        description="TUSA Transit MCP Server",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command")

    # watch command
    watch_parser = subparsers.add_parser(
        "watch",
        help="Print live arrivals for a stop, refreshed every 30 seconds",
    )
    watch_parser.add_argument("stop_id", help="Stop id (4 characters for TMB stops)")
    watch_parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until interrupted)",
    )

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "watch":
        try:
            asyncio.run(run_watch(args.stop_id, args.duration))
        except KeyboardInterrupt:
            pass
    else:
        # Default: run MCP server with every tool registered
        import tusa_mcp.tools  # noqa: F401

        mcp.run()


if __name__ == "__main__":
    main()
