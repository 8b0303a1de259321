# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
Extracted package tree helpers.
Walks extracted tarballs, filters source files and guards file path access.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

from .utils import InternalFailureError, InvalidParamsError

logger = logging.getLogger(__name__)

CODE_EXTENSIONS = (".js", ".ts", ".jsx", ".tsx", ".mjs", ".cjs", ".json")
SKIP_DIRECTORIES = (".git", ".svn", ".hg", "node_modules", ".DS_Store", "__pycache__")

# Upper bound on files returned in one code bundle
MAX_CODE_FILES = 20


@dataclass
class CodeFile:
    """A source file read from an extracted package."""
    path: Path
    content: str


def is_code_file(file_name: str) -> bool:
    return os.path.splitext(file_name)[1].lower() in CODE_EXTENSIONS


def should_skip_directory(dir_name: str) -> bool:
    return dir_name.startswith(".") or dir_name in SKIP_DIRECTORIES


def find_code_files(root: Union[str, Path]) -> List[CodeFile]:
    """
    Collect recognised source/text files below root.

    Directories in SKIP_DIRECTORIES (and dot-directories) are not entered.
    Entries that cannot be read are logged and skipped.

    Args:
        root: Extracted package directory

    Returns:
        CodeFile list in walk order (directory entries sorted by name)
    """
    files: List[CodeFile] = []

    def _on_error(error: OSError) -> None:
        logger.warning(f"Skipping unreadable directory: {error.filename}")

    for current_dir, dir_names, file_names in os.walk(root, onerror=_on_error):
        dir_names[:] = sorted(d for d in dir_names if not should_skip_directory(d))
        for file_name in sorted(file_names):
            if not is_code_file(file_name):
                continue
            full_path = Path(current_dir) / file_name
            if not full_path.is_file():
                continue
            try:
                content = full_path.read_text(encoding="utf-8", errors="replace")
            except OSError:
                logger.warning(f"Skipping unreadable file: {full_path}")
                continue
            files.append(CodeFile(path=full_path, content=content))

    return files


def list_all_files(root: Union[str, Path]) -> List[str]:
    """
    List every regular file below root as sorted POSIX relative paths.

    Only dot-prefixed directories are skipped here.
    """
    root_path = Path(root)
    files = []

    for current_dir, dir_names, file_names in os.walk(root_path):
        dir_names[:] = [d for d in dir_names if not d.startswith(".")]
        for file_name in file_names:
            full_path = Path(current_dir) / file_name
            if full_path.is_file():
                files.append(full_path.relative_to(root_path).as_posix())

    return sorted(files)


def validate_and_resolve_path(base_path: Union[str, Path], user_path: str) -> Path:
    """
    Resolve a caller-supplied path inside base_path.

    The check is lexical only, so it runs before anything touches the
    filesystem. A leading "/" means the package root.

    Args:
        base_path: Extraction root
        user_path: Relative path requested by the caller

    Returns:
        Absolute, normalised path inside base_path

    Raises:
        InvalidParamsError: If the path is empty, contains NUL or escapes base_path
    """
    if not isinstance(user_path, str) or not user_path.strip():
        raise InvalidParamsError("Invalid file path: filePath must be a non-empty string")
    if "\0" in user_path:
        raise InvalidParamsError("Invalid file path: contains prohibited characters")

    base = os.path.normpath(os.path.abspath(base_path))
    relative = user_path.replace("\\", "/").lstrip("/")
    resolved = os.path.normpath(os.path.join(base, relative))

    if os.path.commonpath([base, resolved]) != base:
        logger.warning(f"Path traversal attempt blocked: {user_path!r}")
        raise InvalidParamsError("Invalid file path: Access denied: Path traversal attempt detected")

    return Path(resolved)


def read_package_file(base_path: Union[str, Path], user_path: str) -> str:
    """
    Read one file from an extracted package.

    Raises:
        InvalidParamsError: If user_path escapes base_path
        InternalFailureError: If the file is missing, not a file or unreadable
    """
    full_path = validate_and_resolve_path(base_path, user_path)

    if not full_path.exists():
        raise InternalFailureError(f"File not found: {user_path}")
    if not full_path.is_file():
        raise InternalFailureError(f"Path is not a file: {user_path}")

    try:
        return full_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise InternalFailureError(f"Failed to read file {user_path}: {e}")
