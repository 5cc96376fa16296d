"""Core: config, constants, and client session bootstrap.

Single place for settings and shared constants.
"""

from ems.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
