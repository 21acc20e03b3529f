"""Service layer helpers (settings persistence)."""

from .settings import DEPTH_CHOICES, SYNTAX_CHOICES, Settings, SettingsStore

__all__ = ["DEPTH_CHOICES", "SYNTAX_CHOICES", "Settings", "SettingsStore"]
