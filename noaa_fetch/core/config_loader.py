# ABOUTME: Configuration loading for the NOAA data clients
# ABOUTME: Merges defaults, an optional JSON file, environment variables and session options

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_CACHE_ROOT = Path.home() / ".noaa_fetch"
DEFAULT_ERDDAP_URL = "https://upwell.pfeg.noaa.gov/erddap/"

# Environment variable -> settings key
ENV_SETTINGS = {
    "NOAA_KEY": "noaa_key",
    "NOAA_FETCH_CACHE_DIR": "cache_dir",
    "ERDDAP_URL": "erddap_url",
}

CONFIG_ENV_VAR = "NOAA_FETCH_CONFIG"

# Values set at runtime with set_option(); they win over everything else
_session_options: Dict[str, Any] = {}


def load_config(config_path):
    """
    Load configuration from JSON file.

    Args:
        config_path (str or Path): Path to the JSON configuration file

    Returns:
        dict or None: Configuration dictionary, or None if loading failed
    """
    try:
        with open(config_path, "r") as f:
            return json.load(f)
    except Exception as e:
        logging.error(f"Error loading configuration from {config_path}: {e}")
        return None


def set_option(key: str, value: Any):
    """Set a session option, e.g. ``set_option("noaa_key", "abc")``."""
    _session_options[key] = value


def reset_options():
    """Forget all session options."""
    _session_options.clear()


def get_settings() -> Dict[str, Any]:
    """
    Resolve the effective settings.

    Precedence, lowest first: built-in defaults, the JSON file named by
    NOAA_FETCH_CONFIG, environment variables, session options.

    Returns:
        dict: Settings with at least ``cache_dir``, ``erddap_url`` and ``noaa_key``
    """
    settings = {
        "cache_dir": str(DEFAULT_CACHE_ROOT),
        "erddap_url": DEFAULT_ERDDAP_URL,
        "noaa_key": None,
    }

    config_path = os.environ.get(CONFIG_ENV_VAR)
    if config_path:
        file_settings = load_config(config_path)
        if file_settings is None:
            logging.warning(f"Ignoring unreadable config file {config_path}. Using defaults.")
        else:
            settings.update(file_settings)

    for env_var, key in ENV_SETTINGS.items():
        value = os.environ.get(env_var)
        if value:
            settings[key] = value

    settings.update(_session_options)
    return settings


def get_cache_dir(service: str, path: Optional[str] = None) -> Path:
    """
    Directory for a service's cached files.

    Args:
        service: Sub-directory name (e.g. "erddap", "ghcnd")
        path: Explicit directory; overrides the configured cache root

    Returns:
        Path: Expanded directory path (not created)
    """
    if path is not None:
        return Path(path).expanduser()
    return Path(get_settings()["cache_dir"]).expanduser() / service


def get_erddap_url() -> str:
    """ERDDAP base URL, always ending in a slash."""
    url = get_settings()["erddap_url"]
    return url if url.endswith("/") else url + "/"
