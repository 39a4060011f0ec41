"""Configuration loader for editor settings.

Loads settings from YAML files with priority resolution:
1. Explicit overrides passed to :class:`ScribeConfig` (highest priority)
2. User config: ~/.config/{app_name}/settings.yaml
3. Project config: .{app_name}/settings.yaml in current directory
4. Package defaults: shipped with scribe (fallback)
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Lazy import yaml to avoid startup cost
_yaml = None

_SETTINGS_FILE = "settings.yaml"


def _get_yaml():
    """Lazy-load PyYAML."""
    global _yaml
    if _yaml is None:
        import yaml

        _yaml = yaml
    return _yaml


def _get_package_defaults_path():
    """Get path to package default settings using importlib.resources."""
    try:
        from importlib.resources import files

        return files("sibylline_scribe.config_data") / "_defaults"
    except (ImportError, TypeError):
        # Fallback for editable installs
        return Path(__file__).parent / "config_data" / "_defaults"


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge *override* into a copy of *base*; nested dicts merge, scalars replace."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ScribeConfig:
    """Load settings from config files with priority resolution.

    Config locations are merged from lowest to highest priority:
    1. Package defaults - Shipped with scribe
    2. .{app_name}/settings.yaml - Project-specific settings
    3. ~/.config/{app_name}/settings.yaml - User overrides
    4. ``overrides`` - Explicit values from the caller

    Higher-priority files only need to contain the keys they change.
    """

    SECTIONS = ("analysis", "scheduler", "session", "storage", "decorations")

    def __init__(self, overrides: dict | None = None, app_name: str = "scribe"):
        """Initialize and load all settings.

        Args:
            overrides: Nested dict of settings that win over every file.
            app_name: Application name for config directory resolution.
                     Controls where user overrides are loaded from
                     (e.g., ~/.config/{app_name}/settings.yaml).
        """
        self._app_name = app_name
        # Ordered lowest priority first
        self._config_locations = [
            Path.cwd() / f".{app_name}",  # Project config
            Path.home() / ".config" / app_name,  # User overrides
        ]
        self._settings: dict[str, Any] = {}
        self._load_all()
        if overrides:
            self._settings = _deep_merge(self._settings, overrides)

    def _load_all(self) -> None:
        defaults_file = _get_package_defaults_path() / _SETTINGS_FILE
        self._merge_file(defaults_file)

        for config_dir in self._config_locations:
            config_file = config_dir / _SETTINGS_FILE
            if config_file.exists():
                self._merge_file(config_file)

    def _merge_file(self, config_file) -> None:
        """Parse one YAML file and merge it over the current settings."""
        yaml = _get_yaml()

        try:
            content = config_file.read_text(encoding="utf-8")
        except (FileNotFoundError, OSError):
            return

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError:
            logger.warning("Skipping malformed settings file %s", config_file)
            return

        if not isinstance(data, dict):
            return

        self._settings = _deep_merge(self._settings, data)

    def section(self, name: str) -> dict[str, Any]:
        """Return a copy of one settings section (empty dict if missing)."""
        return copy.deepcopy(self._settings.get(name, {}))

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Look up a single setting."""
        return self._settings.get(section, {}).get(key, default)

    @property
    def analysis(self) -> dict[str, Any]:
        return self.section("analysis")

    @property
    def scheduler(self) -> dict[str, Any]:
        return self.section("scheduler")

    @property
    def session(self) -> dict[str, Any]:
        return self.section("session")

    @property
    def storage(self) -> dict[str, Any]:
        return self.section("storage")

    @property
    def decorations(self) -> dict[str, dict[str, str]]:
        return self.section("decorations")

    def as_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._settings)
