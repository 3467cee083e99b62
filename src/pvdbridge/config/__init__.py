"""Configuration management for pvdbridge.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides, including the daemon's
historical PVDID_PORT variable.
"""

from pvdbridge.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
