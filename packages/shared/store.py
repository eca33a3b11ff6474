from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from packages.shared.config import AppConfig
from packages.shared.paths import config_path, ensure_app_dirs

log = logging.getLogger(__name__)


class ConfigStore:
    def __init__(self, path: Optional[Path] = None) -> None:
        if path is None:
            ensure_app_dirs()
            path = config_path()
        self._path = Path(path)
        self._listeners: list[Callable[[AppConfig], None]] = []

    def on_change(self, cb: Callable[[AppConfig], None]) -> None:
        self._listeners.append(cb)

    def load(self) -> AppConfig:
        if not self._path.exists():
            cfg = AppConfig()
            self._write(cfg)
            return cfg

        try:
            raw = self._path.read_text(encoding="utf-8")
            data: Any = json.loads(raw)
            return AppConfig.model_validate(data)
        except (OSError, ValueError) as e:
            # ValueError covers both bad JSON and pydantic validation errors
            log.warning(f"Config at {self._path} unreadable ({e}); resetting to defaults")
            cfg = AppConfig()
            self._write(cfg)
            return cfg

    def save(self, cfg: AppConfig) -> None:
        self._write(cfg)
        for cb in list(self._listeners):
            cb(cfg)

    def _write(self, cfg: AppConfig) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(cfg.model_dump_json(indent=2), encoding="utf-8")

    def path(self) -> str:
        return str(self._path)
