from __future__ import annotations

from typing import Any, Dict, List, Protocol


class PersistenceError(OSError):
    """Raised by persistence backends when a durable write or read fails."""


class Persistence(Protocol):
    """
    Durable map used by the stores: ordered lists of product dicts under a key,
    plus simple key/value settings. Storage format is the backend's business.
    """

    def get_list(self, key: str) -> List[Dict[str, Any]]:
        ...

    def set_list(self, key: str, items: List[Dict[str, Any]]) -> bool:
        """Persist the full list; return False (or raise PersistenceError) on failure."""
        ...

    def get_setting(self, key: str, default: Any = None) -> Any:
        ...

    def set_setting(self, key: str, value: Any) -> bool:
        ...
