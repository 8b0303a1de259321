# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
Server configuration loaded from environment variables.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"
DEFAULT_PORT = 3000
TRANSPORT_MODES = ("stdio", "http")


@dataclass
class ServerConfig:
    """Runtime settings for the npm package server."""
    transport_mode: str = "stdio"
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    auth_token: Optional[str] = None
    registry_url: str = DEFAULT_REGISTRY_URL
    temp_dir: Path = Path(tempfile.gettempdir()) / "npm-package-server"
    log_level: str = "INFO"


def load_config(environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """
    Build a ServerConfig from the environment.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        ServerConfig instance

    Raises:
        ValueError: If PORT or TRANSPORT_MODE is invalid
    """
    env = os.environ if environ is None else environ

    transport_mode = env.get("TRANSPORT_MODE", "stdio").strip().lower()
    if transport_mode not in TRANSPORT_MODES:
        raise ValueError(
            f"Unsupported TRANSPORT_MODE '{transport_mode}' (expected one of: {', '.join(TRANSPORT_MODES)})"
        )

    raw_port = env.get("PORT", str(DEFAULT_PORT))
    try:
        port = int(raw_port)
    except ValueError:
        raise ValueError(f"PORT must be an integer, got '{raw_port}'")
    if not 0 < port < 65536:
        raise ValueError(f"PORT out of range: {port}")

    config = ServerConfig(
        transport_mode=transport_mode,
        host=env.get("HOST", "0.0.0.0"),
        port=port,
        # Empty AUTH_TOKEN disables authentication
        auth_token=env.get("AUTH_TOKEN") or None,
        registry_url=env.get("NPM_REGISTRY_URL", DEFAULT_REGISTRY_URL).rstrip("/"),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )
    if env.get("TEMP_DIR"):
        config.temp_dir = Path(env["TEMP_DIR"])

    logger.debug(f"Loaded configuration: transport={config.transport_mode}, port={config.port}")
    return config


_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[ServerConfig]) -> None:
    """Replace the process-wide configuration (None forces a reload)."""
    global _config
    _config = config
