# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
MCP Server setup for npm package operations.

This module contains the MCP server configuration, resources and tools
for the npm package server.
"""

import logging
from typing import Any

from mcp.server import Server
from mcp.shared.exceptions import McpError
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    ErrorData,
    Resource,
    TextContent,
    Tool,
)

from . import __version__
from .packages import (
    get_npm_package_code,
    get_package_info,
    list_package_files,
    search_npm_packages,
)
from .popular import POPULAR_PACKAGES_URI, get_popular_packages
from .tool_metadata import TOOL_METADATA
from .utils import InvalidParamsError, PackageServerError

# Configure logging
logger = logging.getLogger(__name__)

# Initialize MCP server
server = Server("npm-package-server", version=__version__)


# ============================================================================
# RESOURCES
# ============================================================================

@server.list_resources()
async def list_resources() -> list[Resource]:
    """
    List available resources.

    Returns:
        List of Resource objects
    """
    return [
        Resource(
            uri=POPULAR_PACKAGES_URI,
            name="Popular NPM Packages",
            mimeType="text/plain",
            description="List of the 50 most popular npm packages with details (refreshed every 24 hours)",
        ),
    ]


@server.read_resource()
async def read_resource(uri: str) -> str:
    """
    Read a resource by URI.

    Supported URIs:
    - npm://popular-packages - Markdown digest of popular packages

    Args:
        uri: Resource URI (can be string or AnyUrl object)

    Returns:
        Resource content as string

    Raises:
        ValueError: If the URI is not a known resource
        McpError: If the digest cannot be built
    """
    # Convert to string if it's a Pydantic AnyUrl object
    uri_str = str(uri).rstrip("/")
    logger.info(f"Reading resource: {uri_str}")

    if uri_str == POPULAR_PACKAGES_URI:
        try:
            return await get_popular_packages()
        except PackageServerError as e:
            raise _to_mcp_error(e)

    raise ValueError(f"Unsupported resource URI: {uri_str}")


# ============================================================================
# TOOLS
# ============================================================================

@server.list_tools()
async def list_tools() -> list[Tool]:
    """
    List available tools for npm package operations.

    Returns:
        List of Tool objects describing available operations
    """
    return [
        Tool(
            name=meta.name,
            title=meta.title,
            description=meta.description,
            inputSchema=meta.input_schema,
        )
        for meta in TOOL_METADATA.values()
    ]


def _to_mcp_error(error: Exception) -> McpError:
    """Map a failure onto the protocol's invalid-params/internal-error codes."""
    if isinstance(error, InvalidParamsError):
        return McpError(ErrorData(code=INVALID_PARAMS, message=error.message))
    message = error.message if isinstance(error, PackageServerError) else str(error)
    return McpError(ErrorData(code=INTERNAL_ERROR, message=message))


async def _dispatch(name: str, arguments: dict[str, Any]) -> str:
    if name == "get_npm_package_code":
        return await get_npm_package_code(
            arguments.get("packageName"),
            arguments.get("version"),
            arguments.get("filePath"),
        )

    elif name == "list_package_files":
        return await list_package_files(
            arguments.get("packageName"),
            arguments.get("version"),
        )

    elif name == "get_package_info":
        return await get_package_info(
            arguments.get("packageName"),
            arguments.get("version"),
        )

    elif name == "search_npm_packages":
        return await search_npm_packages(
            arguments.get("query"),
            arguments.get("size", 20),
            arguments.get("from", 0),
        )

    else:
        raise InvalidParamsError(f"Unknown tool: {name}")


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """
    Execute a tool by name with the provided arguments.

    Args:
        name: Tool name
        arguments: Tool arguments

    Returns:
        List with a single text content object

    Raises:
        McpError: INVALID_PARAMS for bad input, INTERNAL_ERROR otherwise
    """
    logger.info(f"Calling tool: {name} with args: {arguments}")

    try:
        text = await _dispatch(name, arguments or {})
    except Exception as e:
        logger.error(f"Tool {name} failed: {e}")
        raise _to_mcp_error(e)

    return [TextContent(type="text", text=text)]
