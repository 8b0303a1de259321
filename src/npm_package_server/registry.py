# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
npm registry interface module.
Fetches package metadata, runs registry searches and downloads tarballs.
"""

import asyncio
import logging
import os
import shutil
import tarfile
import tempfile
import zlib
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO, Dict, Optional
from urllib.parse import quote

import httpx

from .config import get_config
from .utils import InternalFailureError, sanitize_package_dir_name

logger = logging.getLogger(__name__)

# HTTP client settings
METADATA_TIMEOUT = 10.0
SEARCH_TIMEOUT = 15.0
DOWNLOAD_TIMEOUT = 30.0

# Tarball download limits
MAX_TARBALL_SIZE = 200 * 1024 * 1024
SPOOL_SIZE = 8 * 1024 * 1024

# Fixed ranking weights passed to the search endpoint
SEARCH_WEIGHTS = {
    "quality": 0.65,
    "popularity": 0.98,
    "maintenance": 0.5,
}


def _registry_url() -> str:
    return get_config().registry_url


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise InternalFailureError(f"Invalid JSON response: {e}")


async def fetch_package_info(package_name: str, version: Optional[str] = None) -> Dict[str, Any]:
    """
    Fetch the manifest of one published version.

    Args:
        package_name: Validated package name
        version: Version or dist-tag (defaults to "latest")

    Returns:
        Version manifest dict (name, version, dist, ...)

    Raises:
        InternalFailureError: On network failure, bad status, bad JSON
            or a manifest without a tarball URL
    """
    url = f"{_registry_url()}/{quote(package_name, safe='')}/{quote(version or 'latest', safe='')}"
    logger.info(f"Fetching package info: {package_name}@{version or 'latest'}")

    try:
        async with httpx.AsyncClient(timeout=METADATA_TIMEOUT, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            package_info = _decode_json(response)

    except httpx.TimeoutException:
        logger.error(f"Package info fetch timed out for: {package_name}")
        raise InternalFailureError("Request timeout")
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        logger.error(f"Package info HTTP error for {package_name}: {status}")
        if status == 404:
            raise InternalFailureError(
                f"Package '{package_name}'{f' version {version}' if version else ''} not found in registry"
            )
        raise InternalFailureError(f"HTTP {status}: registry request failed")
    except httpx.HTTPError as e:
        logger.error(f"Package info request failed for {package_name}: {e}")
        raise InternalFailureError(f"HTTP request failed: {e}")

    dist = package_info.get("dist") if isinstance(package_info, dict) else None
    if not isinstance(dist, dict) or not dist.get("tarball"):
        raise InternalFailureError("Invalid package info: missing tarball URL")

    return package_info


async def search_registry(query: str, size: int = 20, from_: int = 0) -> Dict[str, Any]:
    """
    Query the registry search endpoint.

    Args:
        query: Free-text search query
        size: Number of results
        from_: Pagination offset

    Returns:
        Raw search response ({"objects": [...], "total": N, "time": ...})
    """
    params = {"text": query, "size": size, "from": from_, **SEARCH_WEIGHTS}
    logger.info(f"Searching registry for '{query}' (size={size}, from={from_})")

    try:
        async with httpx.AsyncClient(timeout=SEARCH_TIMEOUT, follow_redirects=True) as client:
            response = await client.get(f"{_registry_url()}/-/v1/search", params=params)
            response.raise_for_status()
            results = _decode_json(response)

    except httpx.TimeoutException:
        logger.error(f"Registry search timed out for: {query}")
        raise InternalFailureError("Search request timeout")
    except httpx.HTTPStatusError as e:
        logger.error(f"Registry search HTTP error: {e}")
        raise InternalFailureError(f"HTTP {e.response.status_code}: search request failed")
    except httpx.HTTPError as e:
        logger.error(f"Registry search failed: {e}")
        raise InternalFailureError(f"HTTP request failed: {e}")

    if not isinstance(results, dict):
        raise InternalFailureError("Invalid search response: expected a JSON object")

    objects = results.get("objects")
    if objects is None:
        objects = results["objects"] = []
    if not isinstance(objects, list):
        raise InternalFailureError("Invalid search response: objects must be a list")

    results.setdefault("total", len(objects))
    return results


def extraction_path(package_name: str, temp_dir: Optional[Path] = None) -> Path:
    """Directory a package's tarball is extracted into."""
    base = Path(temp_dir) if temp_dir is not None else get_config().temp_dir
    return base / sanitize_package_dir_name(package_name)


def _strip_leading_component(name: str) -> Optional[PurePosixPath]:
    parts = PurePosixPath(name.replace("\\", "/")).parts
    if len(parts) < 2:
        return None
    return PurePosixPath(*parts[1:])


def _extract_tarball(fileobj: BinaryIO, extract_path: Path) -> int:
    """
    Extract a gzipped tarball, dropping the wrapping top-level directory.

    Only regular files and directories are written; members that would land
    outside extract_path are skipped.

    Returns:
        Number of files written
    """
    root = os.path.abspath(extract_path)
    written = 0

    with tarfile.open(fileobj=fileobj, mode="r:gz") as tar:
        for member in tar:
            relative = _strip_leading_component(member.name)
            if relative is None:
                continue

            target = os.path.normpath(os.path.join(root, *relative.parts))
            if os.path.commonpath([root, target]) != root or target == root:
                logger.warning(f"Skipping unsafe archive member: {member.name}")
                continue

            if member.isdir():
                os.makedirs(target, exist_ok=True)
            elif member.isfile():
                source = tar.extractfile(member)
                if source is None:
                    continue
                os.makedirs(os.path.dirname(target), exist_ok=True)
                with source, open(target, "wb") as out:
                    shutil.copyfileobj(source, out)
                written += 1
            else:
                logger.debug(f"Skipping non-regular archive member: {member.name}")

    return written


def _replace_extraction(fileobj: BinaryIO, extract_path: Path) -> int:
    """Remove any previous extraction and unpack fileobj in its place."""
    if extract_path.exists():
        shutil.rmtree(extract_path)
    extract_path.mkdir(parents=True, exist_ok=True)

    fileobj.seek(0)
    return _extract_tarball(fileobj, extract_path)


async def _download_tarball(tarball_url: str, fileobj: BinaryIO) -> int:
    """
    Stream a tarball into fileobj.

    Returns:
        Number of bytes written

    Raises:
        InternalFailureError: On a non-200 status or a body over MAX_TARBALL_SIZE
    """
    size = 0
    async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT, follow_redirects=True) as client:
        async with client.stream("GET", tarball_url) as response:
            if response.status_code != 200:
                raise InternalFailureError(f"HTTP {response.status_code}: Failed to download tarball")

            async for chunk in response.aiter_bytes():
                size += len(chunk)
                if size > MAX_TARBALL_SIZE:
                    raise InternalFailureError(f"Tarball exceeds maximum size of {MAX_TARBALL_SIZE} bytes")
                fileobj.write(chunk)

    return size


async def download_and_extract(
    tarball_url: str,
    package_name: str,
    temp_dir: Optional[Path] = None,
) -> Path:
    """
    Download a package tarball and extract it to transient storage.

    The body is streamed into a spooled temporary file. Any previous
    extraction for the same package is removed before unpacking.

    Args:
        tarball_url: dist.tarball URL from the package manifest
        package_name: Validated package name
        temp_dir: Extraction root (defaults to configured TEMP_DIR)

    Returns:
        Path to the extracted package directory

    Raises:
        InternalFailureError: On download, decompression or extraction failure
    """
    extract_path = extraction_path(package_name, temp_dir)
    logger.info(f"Downloading tarball for {package_name}: {tarball_url}")

    with tempfile.SpooledTemporaryFile(max_size=SPOOL_SIZE) as spool:
        try:
            size = await _download_tarball(tarball_url, spool)
        except httpx.TimeoutException:
            logger.error(f"Tarball download timed out: {tarball_url}")
            raise InternalFailureError("Download timeout")
        except httpx.HTTPError as e:
            logger.error(f"Tarball download failed: {e}")
            raise InternalFailureError(f"Download failed: {e}")

        logger.debug(f"Downloaded {size} bytes for {package_name}")

        try:
            count = await asyncio.to_thread(_replace_extraction, spool, extract_path)
        except (tarfile.TarError, zlib.error, EOFError, OSError) as e:
            logger.error(f"Extraction failed for {package_name}: {e}")
            raise InternalFailureError(f"Extraction failed: {e}")

    logger.info(f"Extracted {count} files for {package_name} into {extract_path}")
    return extract_path
