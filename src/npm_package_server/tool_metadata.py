# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
Tool metadata and relationship definitions.

Single source for tool names, descriptions and input schemas, plus the
relationships between tools used to guide agents through a workflow.
"""

from typing import Any, Dict, List, Literal
from dataclasses import dataclass, field

Category = Literal["discovery", "source"]


@dataclass
class ToolMetadata:
    """Metadata for a single tool."""
    name: str
    title: str
    description: str
    category: Category
    input_schema: Dict[str, Any]
    related_tools: List[str] = field(default_factory=list)


PACKAGE_NAME_PROPERTY = {
    "type": "string",
    "description": 'The name of the npm package (e.g., "lodash" or "@babel/core")',
}

VERSION_PROPERTY = {
    "type": "string",
    "description": "Specific version to fetch (optional, defaults to latest)",
}


TOOL_METADATA = {
    "get_npm_package_code": ToolMetadata(
        name="get_npm_package_code",
        title="Get NPM Package Code",
        description=(
            "Fetch source code from an npm package. Returns one file when filePath is given, "
            "otherwise up to 20 code files (.js, .ts, .jsx, .tsx, .mjs, .cjs, .json)."
        ),
        category="source",
        input_schema={
            "type": "object",
            "properties": {
                "packageName": PACKAGE_NAME_PROPERTY,
                "version": VERSION_PROPERTY,
                "filePath": {
                    "type": "string",
                    "description": "Specific file path within the package (optional, returns all files if not specified)",
                },
            },
            "required": ["packageName"],
        },
        related_tools=["list_package_files", "get_package_info"],
    ),
    "list_package_files": ToolMetadata(
        name="list_package_files",
        title="List Package Files",
        description="List all files in an npm package",
        category="source",
        input_schema={
            "type": "object",
            "properties": {
                "packageName": PACKAGE_NAME_PROPERTY,
                "version": VERSION_PROPERTY,
            },
            "required": ["packageName"],
        },
        related_tools=["get_npm_package_code"],
    ),
    "get_package_info": ToolMetadata(
        name="get_package_info",
        title="Get Package Info",
        description="Get package metadata and information",
        category="discovery",
        input_schema={
            "type": "object",
            "properties": {
                "packageName": PACKAGE_NAME_PROPERTY,
                "version": VERSION_PROPERTY,
            },
            "required": ["packageName"],
        },
        related_tools=["search_npm_packages", "get_npm_package_code"],
    ),
    "search_npm_packages": ToolMetadata(
        name="search_npm_packages",
        title="Search NPM Packages",
        description="Search for npm packages by keyword, name, or description",
        category="discovery",
        input_schema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query (keywords, package name, description, etc.)",
                },
                "size": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 250,
                    "description": "Number of results to return (default: 20, max: 250)",
                },
                "from": {
                    "type": "integer",
                    "minimum": 0,
                    "description": "Starting offset for pagination (default: 0)",
                },
            },
            "required": ["query"],
        },
        related_tools=["get_package_info"],
    ),
}


def get_tools_by_category(category: Category) -> List[str]:
    """Get all tool names in a category."""
    return [name for name, meta in TOOL_METADATA.items() if meta.category == category]


def get_related_tools(tool_name: str) -> List[str]:
    """Get tools related to the given tool."""
    meta = TOOL_METADATA.get(tool_name)
    return meta.related_tools if meta else []
