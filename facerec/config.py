"""
Configuration Management Module

Settings live in config.yaml at the project root. Values from the file are
layered over DEFAULT_CONFIG, so a config file only has to list what it
changes. The merged result is cached; every component reading the config
sees the same dict.

Set FACEREC_CONFIG to point at a different YAML file (tests, deployments).

Usage:
    from facerec.config import get_config, get_section
    threshold = get_section("recognition")["threshold"]
"""

import copy
import logging
import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FACEREC_CONFIG"
CONFIG_FILENAME = "config.yaml"

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "recognition": {
        "threshold": 0.6,
        "metric": "cosine",
        "unknown_label": "unknown",
        "max_distance": 1.0,
    },
    "detection": {
        "model": "buffalo_l",
        "device": "cpu",
        "det_size": [640, 640],
        "score_threshold": 0.3,
    },
    "storage": {
        "backend": "sqlite",
        "path": "storage/faces.sqlite",
        "namespace_key": "enrolledFaces",
    },
    "upload": {
        "max_file_size_mb": 10,
    },
    "camera": {
        "device_id": 0,
        "width": 640,
        "height": 480,
        "fps": 30,
        "max_devices": 5,
    },
    "api": {
        "base_url": "http://localhost:8000",
    },
}

# Merged configuration, filled on first get_config()
_config_instance: Optional[Dict[str, Any]] = None


def get_project_root() -> Path:
    """
    Locate the directory holding config.yaml, searching upward from this package.

    Raises:
        FileNotFoundError: If no parent directory contains config.yaml.
    """
    for directory in Path(__file__).resolve().parents:
        if (directory / CONFIG_FILENAME).exists():
            return directory

    raise FileNotFoundError(
        f"Could not find {CONFIG_FILENAME} in any parent directory. "
        "Make sure you're running from within the project directory."
    )


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay override onto a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Read a YAML config file as-is (no defaults applied).

    Args:
        config_path: File to read. Falls back to $FACEREC_CONFIG, then to
                     config.yaml in the project root.

    Returns:
        The parsed mapping; an empty file gives {}.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV_VAR)

    path = Path(config_path) if config_path is not None else get_project_root() / CONFIG_FILENAME
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    logger.debug(f"Loaded configuration from {path}")
    return data or {}


def get_config(reload: bool = False) -> Dict[str, Any]:
    """
    Return the cached configuration, file values merged over DEFAULT_CONFIG.

    Args:
        reload: Re-read the file even if a cached copy exists.
    """
    global _config_instance

    if _config_instance is None or reload:
        _config_instance = _merge(DEFAULT_CONFIG, load_config())

    return _config_instance


def get_section(section_name: str, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Return one top-level section.

    Args:
        section_name: e.g. "recognition", "storage", "camera".
        config: Mapping to read instead of get_config(). A section missing
                from it falls back to its built-in default.

    Raises:
        KeyError: If the section is neither configured nor a known default.
    """
    if config is None:
        config = get_config()

    if section_name in config:
        return config[section_name]
    if section_name in DEFAULT_CONFIG:
        return copy.deepcopy(DEFAULT_CONFIG[section_name])

    raise KeyError(
        f"Configuration section '{section_name}' not found. "
        f"Available sections: {sorted(set(config) | set(DEFAULT_CONFIG))}"
    )


def get_recognition_config() -> Dict[str, Any]:
    return get_section("recognition")


def get_detection_config() -> Dict[str, Any]:
    return get_section("detection")


def get_storage_config() -> Dict[str, Any]:
    return get_section("storage")


def get_upload_config() -> Dict[str, Any]:
    return get_section("upload")


def get_camera_config() -> Dict[str, Any]:
    return get_section("camera")


def get_api_config() -> Dict[str, Any]:
    return get_section("api")


def get_server_config() -> Dict[str, Any]:
    """
    Host and port for uvicorn, derived from api.base_url.

    A localhost base URL binds to all interfaces (0.0.0.0).
    """
    parsed = urlparse(get_api_config().get("base_url", "http://localhost:8000"))

    host = parsed.hostname or "0.0.0.0"
    if host == "localhost":
        host = "0.0.0.0"

    try:
        port = parsed.port or 8000
    except ValueError:
        logger.warning("Invalid port in api.base_url, using 8000")
        port = 8000

    return {"host": host, "port": port}


def resolve_storage_path(path: str) -> Path:
    """Anchor a relative storage path at the project root (or the cwd without one)."""
    p = Path(path)
    if p.is_absolute():
        return p
    try:
        return get_project_root() / p
    except FileNotFoundError:
        return Path.cwd() / p
