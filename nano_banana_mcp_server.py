"""
nano_banana_mcp_server.py

This file implements the Nano Banana MCP server: Gemini image generation and editing
exposed as MCP tools. It runs over stdio by default, or over SSE (Server-Sent Events)
for clients that connect through HTTP.

The server uses:
- `FastMCP` from `mcp.server.fastmcp` to define the tools
- `Starlette` and `SseServerTransport` for the SSE transport
- `uvicorn` as the ASGI server
"""


#   [ MCP Client / Agent ]
#            |
#     (stdio, or SSE over HTTP -> Uvicorn -> Starlette)
#            |
#     [ FastMCP Server ]
#            |
#     @mcp.tool() like `generate_image`, `edit_image`, `continue_editing`, etc.
#            |
#     [ ToolDispatcher ] -> [ ImageGenerator ] -> model fallback
#            |
#     [ Gemini generateContent API ]

import argparse
from typing import Any, Dict, List, Optional

import uvicorn
from dotenv import load_dotenv
from mcp.server import Server  # Underlying server abstraction used by FastMCP
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.routing import Mount, Route

from nanobanana_utils.errors import NanoBananaError
from nanobanana_utils.loggingConfig import configureLogging, getLogger, getVerbosityFromEnv
from nanobanana_utils.toolDispatcher import TOOL_DEFINITIONS, ToolDispatcher, createDispatcher

load_dotenv()

logger = getLogger("server")

SERVER_NAME = "nano-banana-mcp"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8081
SSE_PATH = "/sse"
MESSAGES_PATH = "/messages/"

TOOL_DESCRIPTIONS = {tool["name"]: tool["description"] for tool in TOOL_DEFINITIONS}


async def runTool(dispatcher: ToolDispatcher, name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
    """
    Run one dispatcher call for a FastMCP tool.

    Typed failures are re-raised as ToolError prefixed with their kind, e.g.
    "PreconditionFailed: ...", so MCP clients can tell error kinds apart in the
    isError result text.
    """
    try:
        return await dispatcher.call(name, arguments)
    except NanoBananaError as e:
        raise ToolError(f"{e.kind}: {e}") from e


def createServer(dispatcher: ToolDispatcher) -> FastMCP:
    """
    Register the six Nano Banana tools on a new FastMCP server.

    Every tool forwards its arguments to the dispatcher, which owns the API key
    and the session's last image.
    """
    mcp = FastMCP(SERVER_NAME)

    @mcp.tool(description=TOOL_DESCRIPTIONS["configure_credential"])
    async def configure_credential(apiKey: str) -> str:
        return await runTool(dispatcher, "configure_credential", {"apiKey": apiKey})

    @mcp.tool(description=TOOL_DESCRIPTIONS["generate_image"])
    async def generate_image(prompt: str) -> str:
        return await runTool(dispatcher, "generate_image", {"prompt": prompt})

    @mcp.tool(description=TOOL_DESCRIPTIONS["edit_image"])
    async def edit_image(imagePath: str, prompt: str, referenceImages: Optional[List[str]] = None) -> str:
        return await runTool(
            dispatcher,
            "edit_image",
            {"imagePath": imagePath, "prompt": prompt, "referenceImages": referenceImages},
        )

    @mcp.tool(description=TOOL_DESCRIPTIONS["continue_editing"])
    async def continue_editing(prompt: str, referenceImages: Optional[List[str]] = None) -> str:
        return await runTool(dispatcher, "continue_editing", {"prompt": prompt, "referenceImages": referenceImages})

    @mcp.tool(description=TOOL_DESCRIPTIONS["get_last_image_info"])
    async def get_last_image_info() -> str:
        return await runTool(dispatcher, "get_last_image_info")

    @mcp.tool(description=TOOL_DESCRIPTIONS["get_configuration_status"])
    async def get_configuration_status() -> str:
        return await runTool(dispatcher, "get_configuration_status")

    return mcp


def createSseApp(mcpServer: Server, *, debug: bool = False, messagesPath: str = MESSAGES_PATH) -> Starlette:
    """
    Serve an MCP server over SSE.

    Clients open a stream at /sse and post their JSON-RPC messages to
    messagesPath. Each /sse connection gets its own server run, but all of
    them share the dispatcher behind mcpServer and so one last image.
    """
    transport = SseServerTransport(messagesPath)

    async def connectClient(request: Request) -> None:
        logger.info("SSE client connected from %s", request.client.host if request.client else "unknown")
        async with transport.connect_sse(request.scope, request.receive, request._send) as (readStream, writeStream):
            await mcpServer.run(readStream, writeStream, mcpServer.create_initialization_options())

    return Starlette(
        debug=debug,
        routes=[
            Route(SSE_PATH, endpoint=connectClient),
            Mount(messagesPath, app=transport.handle_post_message),
        ],
    )


def createApp(debug: bool = False) -> Starlette:
    """Build the SSE app with a dispatcher loaded from the environment."""
    mcp = createServer(createDispatcher())
    return createSseApp(mcp._mcp_server, debug=debug)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run the Nano Banana MCP server")
    parser.add_argument("--transport", choices=("stdio", "sse"), default="stdio", help="MCP transport to serve")
    parser.add_argument("--host", default=DEFAULT_HOST, help="Host to bind to (sse only)")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Port to listen on (sse only)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    args = parser.parse_args(argv)

    configureLogging(args.verbose or getVerbosityFromEnv(), quiet=args.quiet)

    if args.transport == "sse":
        logger.info("Starting %s on http://%s:%s/sse", SERVER_NAME, args.host, args.port)
        uvicorn.run(createApp(debug=args.verbose > 1), host=args.host, port=args.port)
        return

    mcp = createServer(createDispatcher())
    logger.info("Starting %s on stdio", SERVER_NAME)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
