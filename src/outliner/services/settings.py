"""Settings dataclass and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..outline.parser import SYNTAX_CHOICES

__all__ = ["Settings", "SettingsStore", "DEPTH_CHOICES", "SYNTAX_CHOICES"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".outliner"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "OUTLINER_DEFAULT_DEPTH": "default_jump_depth",
    "OUTLINER_HEADING_SYNTAX": "heading_syntax",
    "OUTLINER_CLONE_NAME_FORMAT": "clone_name_format",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "OUTLINER_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "OUTLINER_REFRESH_INTERVAL": "refresh_interval",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "OUTLINER_UPCOMING_DAYS": "upcoming_days",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
DEPTH_CHOICES: tuple[str, ...] = ("none", "children", "branches", "entries")


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    default_jump_depth: str = "children"
    heading_syntax: str = "auto"
    clone_name_format: str = "{title}::{source}"
    tree_name_format: str = "<tree>{source}"
    refresh_interval: float = 0.0
    upcoming_days: int = 7
    todo_keywords: list[str] = field(default_factory=lambda: ["TODO", "NEXT", "WAITING"])
    done_keywords: list[str] = field(default_factory=lambda: ["DONE", "CANCELLED"])
    debug_logging: bool = False


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            unknown = sorted(set(payload) - _allowed_fields() - {"version"})
            if unknown:
                LOGGER.warning("Ignoring unknown settings in %s: %s", self._path, unknown)
            try:
                settings = Settings(**_filter_fields(payload))
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            settings = _normalize(settings)
            if payload.get("version") != _SETTINGS_VERSION:
                try:
                    self.save(settings)
                except OSError as exc:
                    LOGGER.warning("Failed to migrate settings payload: %s", exc)
        LOGGER.debug("Settings loaded from %s", self._path)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")

        settings = self._apply_env_overrides(settings)
        return _normalize(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = self._serialize(settings)
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _serialize(self, settings: Settings) -> Dict[str, Any]:
        data = asdict(settings)
        data["version"] = _SETTINGS_VERSION
        return data

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain a JSON object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = _allowed_fields()
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            filtered[key] = value
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning(
                    "Environment override %s=%s is not a valid integer",
                    env_name,
                    value,
                )
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning(
                    "Environment override %s=%s is not a valid float", env_name, value
                )
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _allowed_fields() -> set[str]:
    return {item.name for item in fields(Settings)}


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = _allowed_fields()
    return {key: value for key, value in payload.items() if key in allowed}


def _normalize(settings: Settings) -> Settings:
    """Replace out-of-range values with their defaults."""

    defaults = Settings()
    changes: Dict[str, Any] = {}
    depth = str(settings.default_jump_depth or "").strip().lower()
    if depth not in DEPTH_CHOICES:
        LOGGER.warning("Unknown default_jump_depth %r; using %s", settings.default_jump_depth, defaults.default_jump_depth)
        depth = defaults.default_jump_depth
    if depth != settings.default_jump_depth:
        changes["default_jump_depth"] = depth
    syntax = str(settings.heading_syntax or "").strip().lower()
    if syntax not in SYNTAX_CHOICES:
        LOGGER.warning("Unknown heading_syntax %r; using %s", settings.heading_syntax, defaults.heading_syntax)
        syntax = defaults.heading_syntax
    if syntax != settings.heading_syntax:
        changes["heading_syntax"] = syntax
    try:
        interval = max(0.0, float(settings.refresh_interval))
    except (TypeError, ValueError):
        interval = defaults.refresh_interval
    if interval != settings.refresh_interval:
        changes["refresh_interval"] = interval
    try:
        days = max(0, int(settings.upcoming_days))
    except (TypeError, ValueError):
        days = defaults.upcoming_days
    if days != settings.upcoming_days:
        changes["upcoming_days"] = days
    for name in ("todo_keywords", "done_keywords"):
        value = getattr(settings, name)
        if isinstance(value, str):
            changes[name] = [item for item in value.replace(",", " ").split() if item]
        elif not isinstance(value, list):
            changes[name] = list(getattr(defaults, name))
    for name in ("clone_name_format", "tree_name_format"):
        value = getattr(settings, name)
        try:
            str(value).format(title="", source="")
        except (KeyError, IndexError, ValueError) as exc:
            default = getattr(defaults, name)
            LOGGER.warning("Invalid %s %r (%s); using %r", name, value, exc, default)
            changes[name] = default
    return replace(settings, **changes) if changes else settings
