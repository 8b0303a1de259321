"""
NPM Package MCP Server

A Model Context Protocol server that lets AI assistants fetch, list and
search source code and metadata of packages published on the npm registry.
"""

__version__ = "1.0.0"

from .packages import (
    get_npm_package_code,
    list_package_files,
    get_package_info,
    search_npm_packages,
)
from .popular import get_popular_packages, PopularPackagesCache
from .registry import fetch_package_info, search_registry, download_and_extract
from .utils import (
    PackageServerError,
    InvalidParamsError,
    InternalFailureError,
    validate_package_name,
)

__all__ = [
    # Tools
    "get_npm_package_code",
    "list_package_files",
    "get_package_info",
    "search_npm_packages",
    # Resources
    "get_popular_packages",
    "PopularPackagesCache",
    # Registry
    "fetch_package_info",
    "search_registry",
    "download_and_extract",
    # Utils
    "PackageServerError",
    "InvalidParamsError",
    "InternalFailureError",
    "validate_package_name",
]
