"""Configuration helpers for the binarization service.

Expose `get_settings` as the canonical accessor for environment-driven
configuration. Modules should avoid loading `.env` directly and instead
import from this package to retrieve typed snapshots.
"""

from .settings import OtsuSettings, ProcessingSettings, ServerSettings, get_settings


__all__ = ["OtsuSettings", "ProcessingSettings", "ServerSettings", "get_settings"]
