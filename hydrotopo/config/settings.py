"""
Editor Settings

Runtime settings for the topology editor core. Values are read from
environment variables once at import time so deployments can tune them
without code changes.

Usage:
    from hydrotopo.config.settings import get_setting

    store = TopologyStore(history_limit=get_setting('history_limit'))

Environment Variables:
    HYDROTOPO_HISTORY_LIMIT=50               - Undo/redo stack depth
    HYDROTOPO_PROJECT_NAME="Untitled Network" - Name for new projects
    HYDROTOPO_LAYOUT_ENGINE=layered          - Default diagram layout engine
"""

import os
from typing import Any, Dict


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


SETTINGS: Dict[str, Any] = {
    'history_limit': _int_env('HYDROTOPO_HISTORY_LIMIT', 50),
    'default_project_name': os.getenv('HYDROTOPO_PROJECT_NAME', 'Untitled Network'),
    'layout_engine': os.getenv('HYDROTOPO_LAYOUT_ENGINE', 'layered').lower(),
}


def get_setting(name: str) -> Any:
    """
    Look up a setting.

    Args:
        name: Setting name (e.g., 'history_limit')

    Returns:
        Current value

    Raises:
        KeyError: If setting name is not recognized

    Example:
        >>> get_setting('history_limit')
        50
    """
    if name not in SETTINGS:
        available = ', '.join(SETTINGS.keys())
        raise KeyError(
            f"Unknown setting: '{name}'. "
            f"Available settings: {available}"
        )

    return SETTINGS[name]


def get_all_settings() -> Dict[str, Any]:
    """Get a copy of all settings."""
    return SETTINGS.copy()


def set_setting(name: str, value: Any) -> None:
    """
    Programmatically override a setting (for testing only).

    Warning:
        This is for testing only. In production, use environment variables.
    """
    if name not in SETTINGS:
        available = ', '.join(SETTINGS.keys())
        raise KeyError(
            f"Unknown setting: '{name}'. "
            f"Available settings: {available}"
        )

    SETTINGS[name] = value
