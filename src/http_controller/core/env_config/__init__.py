"""
Environment configuration for RequestController.

Example:
    >>> from http_controller.core.env_config import load_from_env
    >>> config = load_from_env()
    >>> config = load_from_env(env_file=".env.production", base_url="https://custom.api.com/")
"""

from .loader import load_from_env, load_settings, config_summary
from .validator import ControllerSettings

__all__ = [
    "load_from_env",
    "load_settings",
    "config_summary",
    "ControllerSettings",
]
