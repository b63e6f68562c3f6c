"""Configuration loading helpers for hn-cli."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import Settings

CONFIG_FILENAME = "config.yaml"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def _default_home() -> Path:
    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    base = Path(xdg_cache).expanduser() if xdg_cache else Path.home() / ".cache"
    return base / "hn-cli"


@dataclass(slots=True)
class ConfigLocator:
    """Resolve the home, cache and log directories."""

    home: Path | None = None
    cache_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_home = os.environ.get("HN_CLI_HOME")
        if self.home is not None:
            root = Path(self.home).expanduser()
        elif env_home:
            root = Path(env_home).expanduser()
        else:
            root = _default_home()
        self.home = root.resolve()
        self.cache_dir = self.home / "cache"
        self.logs_dir = self.home / "logs"
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.home, self.cache_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.home / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating settings IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: Settings | None = None

    def load(self) -> Settings:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            settings = Settings.model_validate(_read_file(path))
        else:
            settings = Settings()
            self.save(settings)
        self._cache = settings
        return settings

    def save(self, settings: Settings) -> None:
        _write_file(self.locator.config_path(), settings.model_dump(mode="json"))
        self._cache = settings


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_FILENAME"]
