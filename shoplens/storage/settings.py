from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict

from .base import Persistence, PersistenceError

logger = logging.getLogger(__name__)

SUPPORTED_CURRENCIES = ("TRY", "USD", "EUR", "GBP")

_KEYS = {
    "currency": "currency",
    "dark_mode": "darkMode",
    "enable_notifications": "enableNotifications",
    "last_retailer_index": "lastRetailerIndex",
}


@dataclass
class Settings:
    currency: str = "TRY"
    dark_mode: bool = False
    enable_notifications: bool = True
    last_retailer_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def load(cls, persistence: Persistence) -> "Settings":
        settings = cls()
        try:
            for f in fields(cls):
                value = persistence.get_setting(_KEYS[f.name], getattr(settings, f.name))
                setattr(settings, f.name, value)
        except PersistenceError as exc:
            logger.warning("settings: load failed, using defaults: %r", exc)
            return cls()
        if settings.currency not in SUPPORTED_CURRENCIES:
            settings.currency = "TRY"
        return settings

    def save(self, persistence: Persistence) -> bool:
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"unsupported currency {self.currency!r}")
        try:
            results = [persistence.set_setting(_KEYS[f.name], getattr(self, f.name)) for f in fields(self)]
        except PersistenceError as exc:
            logger.warning("settings: save failed: %r", exc)
            return False
        if not all(results):
            failed = [_KEYS[f.name] for f, ok in zip(fields(self), results) if not ok]
            logger.warning("settings: not persisted: %s", ", ".join(failed))
            return False
        return True
