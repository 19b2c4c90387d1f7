"""Configuration management for ledctrl.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides (``LEDCTRL_`` prefix).
"""

from ledctrl.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
