# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
Shared helpers: error types, error payloads and input validation.
"""

import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Scoped (@scope/name) or unscoped npm package names
PACKAGE_NAME_PATTERN = re.compile(
    r"(@[a-z0-9-~][a-z0-9-._~]*/)?[a-z0-9-~][a-z0-9-._~]*",
    re.IGNORECASE,
)

PROHIBITED_NAME_SEQUENCES = ("..", "\0", "\n")


class PackageServerError(Exception):
    """Base error for failures surfaced to the calling agent."""

    error_type = "InternalError"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> Dict[str, Any]:
        return create_error_response(self.error_type, self.message, self.details)


class InvalidParamsError(PackageServerError):
    """Caller supplied invalid input."""

    error_type = "InvalidParams"


class InternalFailureError(PackageServerError):
    """Upstream, network, extraction or filesystem failure."""

    error_type = "InternalError"


def create_error_response(
    error_type: str,
    message: str,
    details: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a structured error payload.

    Args:
        error_type: Error category ("InvalidParams" or "InternalError")
        message: Human-readable message
        details: Optional extra detail

    Returns:
        Error dict
    """
    response = {
        "error": True,
        "type": error_type,
        "message": message,
    }
    if details:
        response["details"] = details
    return response


def validate_package_name(package_name: Any) -> str:
    """
    Validate an npm package name.

    Args:
        package_name: Name as received from the caller

    Returns:
        The validated name

    Raises:
        InvalidParamsError: If the name is missing or malformed
    """
    if not package_name or not isinstance(package_name, str):
        raise InvalidParamsError("packageName is required and must be a string")

    if not PACKAGE_NAME_PATTERN.fullmatch(package_name):
        logger.warning(f"Rejected package name: {package_name!r}")
        raise InvalidParamsError(
            "Invalid package name format. Package names must follow npm naming conventions."
        )

    if any(seq in package_name for seq in PROHIBITED_NAME_SEQUENCES):
        logger.warning(f"Rejected package name: {package_name!r}")
        raise InvalidParamsError("Invalid package name: contains prohibited characters")

    return package_name


def validate_version(version: Any) -> Optional[str]:
    """Return the optional version argument, rejecting non-strings."""
    if version is None:
        return None
    if not isinstance(version, str) or not version.strip():
        raise InvalidParamsError("version must be a non-empty string")
    if "\0" in version or "\n" in version:
        raise InvalidParamsError("Invalid version: contains prohibited characters")
    return version.strip()


def sanitize_package_dir_name(package_name: str) -> str:
    """Map a package name to a flat directory name (@scope/pkg -> _scope_pkg)."""
    return re.sub(r"[@/]", "_", package_name)
