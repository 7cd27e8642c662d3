"""Core: config, request context, and application bootstrap.

Single place for settings.
"""

from talentmail.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
