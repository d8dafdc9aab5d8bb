"""
Application configuration entry point.

Modules import `settings` from here; the definition lives in app.core.settings.
"""
from app.core.settings import Settings, get_settings

settings = get_settings()

__all__ = ["Settings", "get_settings", "settings"]
