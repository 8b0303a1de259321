# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
Package tool operations.

Each operation validates its arguments, talks to the registry, and renders
a plain-text answer for the calling agent. Any failure aborts the whole
call: invalid input raises InvalidParamsError, everything else is reported
as InternalFailureError.
"""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .files import (
    MAX_CODE_FILES,
    CodeFile,
    find_code_files,
    list_all_files,
    read_package_file,
    validate_and_resolve_path,
)
from .registry import (
    download_and_extract,
    extraction_path,
    fetch_package_info,
    search_registry,
)
from .utils import (
    InternalFailureError,
    InvalidParamsError,
    PackageServerError,
    validate_package_name,
    validate_version,
)

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_SIZE = 20
MAX_SEARCH_SIZE = 250


def _failure(prefix: str, error: Exception) -> PackageServerError:
    """Keep tagged errors as they are, wrap anything else as internal."""
    if isinstance(error, PackageServerError):
        if isinstance(error, InternalFailureError):
            return InternalFailureError(f"{prefix}: {error.message}", error.details)
        return error
    return InternalFailureError(f"{prefix}: {error}")


def author_name(author: Any) -> Optional[str]:
    """Return the author's name from either the string or object form."""
    if isinstance(author, str):
        return author or None
    if isinstance(author, dict):
        return author.get("name")
    return None


def format_date(value: Optional[str]) -> str:
    """Render an ISO timestamp as M/D/YYYY, falling back to the raw value."""
    if not value:
        return "Unknown"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def _percent(value: Any) -> str:
    try:
        return f"{float(value) * 100:.1f}%"
    except (TypeError, ValueError):
        return "0.0%"


# ============================================================================
# CODE
# ============================================================================

async def get_npm_package_code(
    package_name: Any,
    version: Optional[str] = None,
    file_path: Optional[str] = None,
) -> str:
    """
    Fetch source code from an npm package.

    Args:
        package_name: Package name (e.g. "lodash" or "@babel/core")
        version: Optional version, defaults to latest
        file_path: Optional path inside the package; when omitted a bundle
            of up to MAX_CODE_FILES code files is returned

    Returns:
        Formatted text
    """
    package_name = validate_package_name(package_name)
    version = validate_version(version)

    # An empty filePath means the whole bundle
    if file_path == "":
        file_path = None

    if file_path is not None:
        # Reject traversal before any download or disk access
        validate_and_resolve_path(extraction_path(package_name), file_path)

    try:
        package_info = await fetch_package_info(package_name, version)
        extracted = await download_and_extract(package_info["dist"]["tarball"], package_name)

        if file_path is not None:
            content = await asyncio.to_thread(read_package_file, extracted, file_path)
            return f"File: {file_path}\n\n{content}"

        code_files = await asyncio.to_thread(find_code_files, extracted)
        return format_code_bundle(extracted, package_info, code_files)

    except Exception as e:
        logger.error(f"Failed to fetch package code for {package_name}: {e}")
        raise _failure("Failed to fetch package code", e)


def format_code_bundle(
    extracted: Path,
    package_info: Dict[str, Any],
    code_files: List[CodeFile],
    max_files: int = MAX_CODE_FILES,
) -> str:
    """Render at most max_files code files with a remainder notice."""
    lines = [
        f"Package: {package_info.get('name')}@{package_info.get('version')}",
        f"Description: {package_info.get('description') or 'No description'}",
        f"Code files found: {len(code_files)}",
        "",
        "",
    ]
    text = "\n".join(lines)

    for code_file in code_files[:max_files]:
        relative = Path(code_file.path).relative_to(extracted).as_posix()
        text += f"=== {relative} ===\n{code_file.content}\n\n"

    remaining = len(code_files) - max_files
    if remaining > 0:
        text += f"... and {remaining} more files\n"
        text += "Use 'list_package_files' tool to see all files, then fetch specific files as needed.\n"

    return text


# ============================================================================
# FILE LISTING
# ============================================================================

async def list_package_files(package_name: Any, version: Optional[str] = None) -> str:
    """
    List every file in a published package.

    Args:
        package_name: Package name
        version: Optional version, defaults to latest

    Returns:
        Formatted file listing
    """
    package_name = validate_package_name(package_name)
    version = validate_version(version)

    try:
        package_info = await fetch_package_info(package_name, version)
        extracted = await download_and_extract(package_info["dist"]["tarball"], package_name)
        file_list = await asyncio.to_thread(list_all_files, extracted)
        return (
            f"Package: {package_name}@{package_info.get('version')}\n"
            f"Total files: {len(file_list)}\n\n"
            f"Files:\n" + "\n".join(file_list)
        )
    except Exception as e:
        logger.error(f"Failed to list package files for {package_name}: {e}")
        raise _failure("Failed to list package files", e)


# ============================================================================
# INFO
# ============================================================================

def _format_package_info(pkg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalise a version manifest to the fields shown to callers.

    Args:
        pkg: Raw manifest from the registry

    Returns:
        Summary dict
    """
    dist = pkg.get("dist") or {}
    repository = pkg.get("repository")
    if isinstance(repository, dict):
        repository = repository.get("url")

    return {
        "name": pkg.get("name"),
        "version": pkg.get("version"),
        "description": pkg.get("description") or "No description available",
        "main": pkg.get("main") or "Not specified",
        "types": pkg.get("types") or pkg.get("typings") or "Not specified",
        "keywords": pkg.get("keywords") or [],
        "author": pkg.get("author") or "Not specified",
        "license": pkg.get("license") or "Not specified",
        "homepage": pkg.get("homepage") or "Not specified",
        "repository": repository or "Not specified",
        "tarball": dist.get("tarball"),
        "shasum": dist.get("shasum"),
        "dependencies": len(pkg.get("dependencies") or {}),
        "devDependencies": len(pkg.get("devDependencies") or {}),
    }


async def get_package_info(package_name: Any, version: Optional[str] = None) -> str:
    """
    Get package metadata and information.

    Args:
        package_name: Package name
        version: Optional version, defaults to latest

    Returns:
        "Package Information:" followed by indented JSON
    """
    package_name = validate_package_name(package_name)
    version = validate_version(version)

    try:
        package_info = await fetch_package_info(package_name, version)
        info = _format_package_info(package_info)
        return f"Package Information:\n{json.dumps(info, indent=2)}"
    except Exception as e:
        logger.error(f"Failed to get package info for {package_name}: {e}")
        raise _failure("Failed to get package info", e)


# ============================================================================
# SEARCH
# ============================================================================

def _validate_search_args(query: Any, size: Any, from_: Any):
    if not isinstance(query, str) or not query.strip():
        raise InvalidParamsError("query is required and must be a non-empty string")

    # bool is an int subclass; reject it explicitly
    if isinstance(size, bool) or not isinstance(size, int):
        raise InvalidParamsError("size must be an integer")
    if size > MAX_SEARCH_SIZE:
        raise InvalidParamsError(f"size cannot exceed {MAX_SEARCH_SIZE}")
    if size < 1:
        raise InvalidParamsError("size must be at least 1")

    if isinstance(from_, bool) or not isinstance(from_, int):
        raise InvalidParamsError("from must be an integer")
    if from_ < 0:
        raise InvalidParamsError("from must be greater than or equal to 0")

    return query.strip(), size, from_


def format_search_results(query: str, results: Dict[str, Any], from_: int) -> str:
    """Render a registry search response as text."""
    objects = results.get("objects") or []
    text = f'Search Results for "{query}"\n'
    text += f"Total packages found: {results.get('total', len(objects))}\n"
    text += f"Showing {len(objects)} results (from {from_})\n\n"

    for result in objects:
        pkg = result.get("package") or {}
        score = result.get("score") or {}
        detail = score.get("detail") or {}
        links = pkg.get("links") or {}

        text += f"📦 **{pkg.get('name')}** v{pkg.get('version')}\n"
        text += f"   {pkg.get('description') or 'No description available'}\n"

        if pkg.get("keywords"):
            text += f"   Keywords: {', '.join(pkg['keywords'])}\n"

        author = author_name(pkg.get("author"))
        if author:
            text += f"   Author: {author}\n"

        text += (
            f"   Score: {_percent(score.get('final'))} "
            f"(Quality: {_percent(detail.get('quality'))}, "
            f"Popularity: {_percent(detail.get('popularity'))}, "
            f"Maintenance: {_percent(detail.get('maintenance'))})\n"
        )
        if links.get("npm"):
            text += f"   NPM: {links['npm']}\n"
        if links.get("homepage"):
            text += f"   Homepage: {links['homepage']}\n"
        if links.get("repository"):
            text += f"   Repository: {links['repository']}\n"

        text += f"   Last updated: {format_date(pkg.get('date'))}\n\n"

    if not objects:
        text += "No packages found for this search query.\n"
        text += "Try using different keywords or checking spelling.\n"

    return text


async def search_npm_packages(
    query: Any,
    size: Any = DEFAULT_SEARCH_SIZE,
    from_: Any = 0,
) -> str:
    """
    Search for npm packages by keyword, name, or description.

    Args:
        query: Search query
        size: Number of results (1-250, default 20)
        from_: Pagination offset (default 0)

    Returns:
        Formatted ranked results
    """
    query, size, from_ = _validate_search_args(query, size, from_)

    try:
        results = await search_registry(query, size, from_)
        return format_search_results(query, results, from_)
    except Exception as e:
        logger.error(f"Failed to search packages for '{query}': {e}")
        raise _failure("Failed to search packages", e)
