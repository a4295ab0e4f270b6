"""YAML settings for the compass pipeline, overridable from the environment."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from compasshud.core.logging import get_logger

ENV_PREFIX = "COMPASSHUD"
DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "config"

logger = get_logger("config")

_TRUE_WORDS = ("true", "1", "yes", "on")


def _coerce(current: Any, raw: str) -> Any:
    """Convert an env string to the type of the value it replaces; keep `current` if it does not parse."""
    if isinstance(current, bool):
        return raw.strip().lower() in _TRUE_WORDS
    if isinstance(current, (int, float)):
        try:
            return type(current)(raw)
        except ValueError:
            logger.warning("env_override_ignored | value=%r expected=%s", raw, type(current).__name__)
            return current
    if isinstance(current, (dict, list)):
        try:
            parsed = yaml.safe_load(raw)
        except yaml.YAMLError:
            parsed = None
        return parsed if isinstance(parsed, type(current)) else current
    return raw


class Config:
    """Reads compass.yml, poi.yml, icons.yml and slots.yml from one directory.

    Every key already present in a file can be replaced from the environment:
    COMPASSHUD_POI_MAX_DISPLAY_DISTANCE=250 sets `max_display_distance` in poi.yml,
    COMPASSHUD_SLOTS_BELOW_COUNT=2 sets `below.count` in slots.yml.
    """

    def __init__(self, config_dir: Optional[str | Path] = None):
        if config_dir is None:
            config_dir = os.environ.get(f"{ENV_PREFIX}_CONFIG_DIR") or DEFAULT_CONFIG_DIR
        self.config_dir = Path(config_dir)
        self._cache: Dict[str, Dict[str, Any]] = {}

    def load_compass(self) -> Dict[str, Any]:
        return self._load("compass.yml")

    def load_poi(self) -> Dict[str, Any]:
        return self._load("poi.yml")

    def load_icons(self) -> Dict[str, Any]:
        return self._load("icons.yml")

    def load_slots(self) -> Dict[str, Any]:
        return self._load("slots.yml")

    def load_scene(self, scene_path: str | Path) -> Dict[str, Any]:
        """Load a scripted scene (POIs + player frames). Relative paths also resolve against the config dir."""
        path = Path(scene_path)
        if not path.is_absolute() and not path.exists():
            path = self.config_dir / path
        if not path.is_file():
            raise FileNotFoundError(f"Scene file not found: {scene_path}")
        with path.open("r", encoding="utf-8") as fh:
            return yaml.safe_load(fh) or {}

    def _load(self, name: str) -> Dict[str, Any]:
        path = self.config_dir / name
        key = str(path)
        cached = self._cache.get(key)
        if cached is not None:
            return cached.copy()

        data = self._read(path)
        data = self._with_env_overrides(data, f"{ENV_PREFIX}_{Path(name).stem.upper()}_")
        self._cache[key] = data.copy()
        return data

    def _read(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as fh:
                loaded = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            logger.warning("config_invalid | path=%s error=%s", path, exc)
            return {}
        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            logger.warning("config_ignored | path=%s reason=not a mapping", path)
            return {}
        return loaded

    def _with_env_overrides(self, data: Dict[str, Any], prefix: str) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in data.items():
            env_key = f"{prefix}{str(key).upper()}"
            raw = os.environ.get(env_key)
            if raw is not None:
                result[key] = _coerce(value, raw)
                logger.debug("env_override | key=%s", env_key)
            elif isinstance(value, dict):
                result[key] = self._with_env_overrides(value, f"{env_key}_")
            else:
                result[key] = value
        return result

    def clear_cache(self) -> None:
        self._cache.clear()


_config: Optional[Config] = None


def get_config() -> Config:
    """Shared Config rooted at the default directory."""
    global _config
    if _config is None:
        _config = Config()
    return _config
