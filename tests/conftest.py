# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
Pytest configuration and shared fixtures for npm-package-server tests.
"""

import io
import tarfile
from pathlib import Path
from typing import Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from npm_package_server.config import ServerConfig, set_config
from npm_package_server.popular import popular_packages_cache


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path):
    """Point extraction at a per-test temp directory."""
    config = ServerConfig(temp_dir=tmp_path / "extract")
    set_config(config)
    popular_packages_cache.clear()
    yield config
    set_config(None)
    popular_packages_cache.clear()


@pytest.fixture
def mock_httpx_response():
    """Create a mock HTTP response factory."""
    def _create_response(
        status_code: int = 200,
        json_data=None,
        text_data: str = None,
        content: bytes = None,
        headers: dict = None
    ) -> MagicMock:
        """Create a mock HTTP response with specified attributes."""
        response = MagicMock()
        response.status_code = status_code
        response.headers = headers or {}

        if json_data is not None:
            response.json = MagicMock(return_value=json_data)

        if text_data is not None:
            response.text = text_data

        if content is not None:
            response.content = content

        response.raise_for_status = MagicMock()
        if status_code >= 400:
            response.raise_for_status.side_effect = httpx.HTTPStatusError(
                f"HTTP {status_code}",
                request=MagicMock(),
                response=response
            )

        return response

    return _create_response


@pytest.fixture
def mock_stream_response():
    """Create a factory for client.stream() context managers yielding chunked bodies."""
    def _create_stream(status_code: int = 200, content: bytes = b"", chunk_size: int = 1024) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code

        async def _aiter_bytes():
            for start in range(0, len(content), chunk_size):
                yield content[start:start + chunk_size]

        response.aiter_bytes = _aiter_bytes

        stream = MagicMock()
        stream.__aenter__ = AsyncMock(return_value=response)
        stream.__aexit__ = AsyncMock(return_value=False)
        return stream

    return _create_stream


@pytest.fixture
def make_tarball():
    """Build an npm-style .tgz (everything under package/) in memory."""
    def _make(files: Dict[str, str], extra_members: Optional[list] = None) -> bytes:
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
            for name, content in files.items():
                data = content.encode("utf-8")
                info = tarfile.TarInfo(name=f"package/{name}")
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
            for member in extra_members or []:
                tar.addfile(member)
        return buffer.getvalue()

    return _make


@pytest.fixture
def sample_package_files():
    """File tree of a small published package."""
    return {
        "package.json": '{"name": "left-pad", "version": "1.3.0"}',
        "index.js": "module.exports = leftPad;",
        "index.d.ts": "export default function leftPad(): string;",
        "lib/util.mjs": "export const pad = ' ';",
        "README.md": "# left-pad",
        "LICENSE": "WTFPL",
        "node_modules/dep/index.js": "module.exports = {};",
    }


@pytest.fixture
def sample_manifest():
    """Sample version manifest as returned by the registry."""
    return {
        "name": "left-pad",
        "version": "1.3.0",
        "description": "String left pad",
        "main": "index.js",
        "types": "index.d.ts",
        "keywords": ["leftpad", "left", "pad"],
        "author": {"name": "azer", "email": "azer@example.com"},
        "license": "WTFPL",
        "homepage": "https://github.com/stevemao/left-pad#readme",
        "repository": {"type": "git", "url": "git+https://github.com/stevemao/left-pad.git"},
        "dependencies": {},
        "devDependencies": {"benchmark": "^2.1.0", "tape": "*"},
        "dist": {
            "tarball": "https://registry.npmjs.org/left-pad/-/left-pad-1.3.0.tgz",
            "shasum": "5b8a3a7765dfe001261dde915589e782f8c94d1e",
        },
    }


@pytest.fixture
def sample_search_response():
    """Sample /-/v1/search response."""
    return {
        "objects": [
            {
                "package": {
                    "name": "express",
                    "version": "4.19.2",
                    "description": "Fast, unopinionated, minimalist web framework",
                    "keywords": ["express", "framework", "web"],
                    "author": {"name": "TJ Holowaychuk"},
                    "date": "2024-03-25T14:00:00.000Z",
                    "links": {
                        "npm": "https://www.npmjs.com/package/express",
                        "homepage": "http://expressjs.com/",
                        "repository": "https://github.com/expressjs/express",
                    },
                    "publisher": {"username": "wesleytodd"},
                    "maintainers": [{"username": "wesleytodd"}],
                },
                "score": {
                    "final": 0.9,
                    "detail": {"quality": 0.95, "popularity": 0.88, "maintenance": 0.75},
                },
            },
            {
                "package": {
                    "name": "koa",
                    "version": "2.15.3",
                    "author": "koajs",
                    "date": "2024-04-01T09:30:00.000Z",
                    "links": {"npm": "https://www.npmjs.com/package/koa"},
                },
                "score": {
                    "final": 0.5,
                    "detail": {"quality": 0.5, "popularity": 0.5, "maintenance": 0.5},
                },
            },
        ],
        "total": 2,
        "time": "Mon Apr 01 2024 10:00:00 GMT+0000 (UTC)",
    }
