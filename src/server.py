"""MCP server exposing Graphviz layout tools."""

import asyncio
import json
import logging

from mcp import Tool
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.types import TextContent

from .tools.layout_tools import LayoutTools
from .utils.response import error_response

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class GraphvizLayoutMCPServer:
    """MCP server that lays out client graphs with Graphviz."""

    def __init__(self, layout_tools: LayoutTools = None):
        """Initialize the MCP server and its tool handlers."""
        self.layout_tools = layout_tools or LayoutTools()

        # Create MCP server instance
        self.server = Server("graphviz-layout")

        # Register handlers
        self._register_handlers()

    def _register_handlers(self):
        """Register all MCP handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> list[Tool]:
            """List all available tools."""
            return self.layout_tools.get_tools()

        @self.server.call_tool()
        async def handle_call_tool(name: str, arguments: dict) -> list[TextContent]:
            """Route tool calls to the layout tools."""
            if name.startswith("layout_"):
                result = await self.layout_tools.handle_tool(name, arguments or {})
            else:
                result = error_response(f"Unknown tool: {name}", code="UNKNOWN_TOOL")
            return [TextContent(type="text", text=json.dumps(result, indent=2))]

    async def run(self):
        """Run the MCP server over stdio."""
        from mcp.server.stdio import stdio_server

        logger.info(f"Starting graphviz-layout MCP server (binary: {self.layout_tools.engine.config.binary})")
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name="graphviz-layout",
                    server_version="0.1.0",
                    capabilities=self.server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                ),
            )


def main():
    """Main entry point."""
    server = GraphvizLayoutMCPServer()
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
