"""Core: settings and shared constants."""

from rbac_engine.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
