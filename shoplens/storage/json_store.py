from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List

from .base import PersistenceError

logger = logging.getLogger(__name__)


class JSONFileStore:
    """
    Keeps every list and setting in one JSON document. Writes go through a
    temporary file and an atomic rename so a failed write never leaves a
    half-written store behind.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"lists": {}, "settings": {}}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"cannot read {self.path}: {exc!r}") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"{self.path}: unexpected document type {type(data).__name__}")
        data.setdefault("lists", {})
        data.setdefault("settings", {})
        return data

    def _save(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as exc:
            raise PersistenceError(f"cannot write {self.path}: {exc!r}") from exc

    def get_list(self, key: str) -> List[Dict[str, Any]]:
        items = self._load()["lists"].get(key) or []
        return [item for item in items if isinstance(item, dict)]

    def set_list(self, key: str, items: List[Dict[str, Any]]) -> bool:
        data = self._load()
        data["lists"][key] = list(items)
        self._save(data)
        return True

    def get_setting(self, key: str, default: Any = None) -> Any:
        return self._load()["settings"].get(key, default)

    def set_setting(self, key: str, value: Any) -> bool:
        data = self._load()
        data["settings"][key] = value
        self._save(data)
        return True


class MemoryStore:
    """Process-local persistence; used by tests and the API's ephemeral mode."""

    def __init__(self) -> None:
        self._lists: Dict[str, List[Dict[str, Any]]] = {}
        self._settings: Dict[str, Any] = {}

    def get_list(self, key: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._lists.get(key, []))

    def set_list(self, key: str, items: List[Dict[str, Any]]) -> bool:
        self._lists[key] = copy.deepcopy(list(items))
        return True

    def get_setting(self, key: str, default: Any = None) -> Any:
        return self._settings.get(key, default)

    def set_setting(self, key: str, value: Any) -> bool:
        self._settings[key] = value
        return True
