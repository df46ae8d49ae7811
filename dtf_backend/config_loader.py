"""
Configuration loading for the DTF quote backend.
Reads config/config.yaml and applies environment overrides for deployment settings.
"""

import logging
import os
from typing import Any, Dict

import yaml

DEFAULT_CONFIG_PATH = "config/config.yaml"
DEFAULT_PORT = 3000
DEFAULT_ALLOWED_ORIGINS = ["http://localhost:3000"]
DEFAULT_REFRESH_INTERVAL_SECONDS = 3600

logger = logging.getLogger(__name__)


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Configuration dictionary ({} for an empty file)

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the file is not valid YAML
    """
    with open(config_path, "r") as f:
        config = yaml.safe_load(f)
    return config or {}


def load_config_or_default(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration, tolerating a missing file.

    Deployments that pass everything through environment variables have no
    config file at all.
    """
    try:
        return load_config(config_path)
    except FileNotFoundError:
        logger.warning(f"Configuration file not found: {config_path}; using environment and defaults")
        return {}


def get_server_settings(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Resolve host, port and CORS origins.

    ``PORT`` and ``ALLOWED_ORIGINS`` (comma-separated) override the config file.
    """
    server_config = config.get("server") or {}

    port = os.environ.get("PORT") or server_config.get("port", DEFAULT_PORT)

    origins_env = os.environ.get("ALLOWED_ORIGINS")
    if origins_env:
        allowed_origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    else:
        allowed_origins = server_config.get("allowed_origins") or list(DEFAULT_ALLOWED_ORIGINS)

    return {
        "host": server_config.get("host", "0.0.0.0"),
        "port": int(port),
        "allowed_origins": allowed_origins,
    }


def get_refresh_interval(config: Dict[str, Any]) -> int:
    scheduler_config = config.get("scheduler") or {}
    return int(scheduler_config.get("refresh_interval_seconds", DEFAULT_REFRESH_INTERVAL_SECONDS))
