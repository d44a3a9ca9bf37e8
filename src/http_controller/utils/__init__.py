"""Utility modules for http_controller."""

from .sanitizer import (
    mask_sensitive_data,
    mask_string,
    mask_url,
    mask_headers,
    mask_body,
    add_sensitive_keys,
    remove_sensitive_keys,
    get_sensitive_keys,
)
from .user_agent import set_user_agent, get_user_agent, clear_user_agent

__all__ = [
    'mask_sensitive_data',
    'mask_string',
    'mask_url',
    'mask_headers',
    'mask_body',
    'add_sensitive_keys',
    'remove_sensitive_keys',
    'get_sensitive_keys',
    'set_user_agent',
    'get_user_agent',
    'clear_user_agent',
]
