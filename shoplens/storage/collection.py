from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..adapters.base import ProductInfo
from ..identity import IdentityKey, identity_key
from .base import Persistence, PersistenceError

logger = logging.getLogger(__name__)

CART_KEY = "shopping_cart"
FAVORITES_KEY = "favorites_list"


class CollectionStore:
    """
    Ordered product collection (cart or favorites) with at most one entry per
    identity key. Not safe for concurrent writers; callers serialize access.
    """

    def __init__(self, persistence: Persistence, key: str) -> None:
        self.persistence = persistence
        self.key = key

    def _entries(self) -> List[Tuple[IdentityKey, ProductInfo]]:
        entries: List[Tuple[IdentityKey, ProductInfo]] = []
        for i, raw in enumerate(self.persistence.get_list(self.key)):
            try:
                product = ProductInfo.from_dict(raw)
            except (TypeError, ValueError) as exc:
                logger.warning("%s: dropping unreadable entry %s: %r", self.key, i, exc)
                continue
            entries.append((identity_key(product), product))
        return entries

    def _write(self, entries: List[Tuple[IdentityKey, ProductInfo]]) -> bool:
        payload: List[Dict[str, Any]] = [product.to_dict() for _, product in entries]
        return bool(self.persistence.set_list(self.key, payload))

    def _find(self, entries: List[Tuple[IdentityKey, ProductInfo]], key: IdentityKey) -> Optional[int]:
        return next((i for i, (k, _) in enumerate(entries) if k == key), None)

    def add(self, product: ProductInfo) -> bool:
        """
        Insert the snapshot, replacing any entry with the same identity.
        Returns write success; records that are not a complete product are refused.
        """
        if not product.is_product:
            logger.warning("%s: refusing incomplete product record for %s", self.key, product.url)
            return False
        key = identity_key(product)
        try:
            entries = self._entries()
            index = self._find(entries, key)
            if index is not None:
                del entries[index]
            entries.append((key, product))
            ok = self._write(entries)
        except PersistenceError as exc:
            logger.warning("%s: add failed for %s: %r", self.key, product.url, exc)
            return False
        if not ok:
            logger.warning("%s: add not persisted for %s", self.key, product.url)
        return ok

    def remove(self, product: ProductInfo) -> bool:
        """Remove by identity. Returns True only if an entry was removed and persisted."""
        key = identity_key(product)
        try:
            entries = self._entries()
            index = self._find(entries, key)
            if index is None:
                return False
            del entries[index]
            ok = self._write(entries)
        except PersistenceError as exc:
            logger.warning("%s: remove failed for %s: %r", self.key, product.url, exc)
            return False
        if not ok:
            logger.warning("%s: remove not persisted for %s", self.key, product.url)
        return ok

    def contains(self, product: ProductInfo) -> bool:
        try:
            return self._find(self._entries(), identity_key(product)) is not None
        except PersistenceError as exc:
            logger.warning("%s: lookup failed: %r", self.key, exc)
            return False

    def list(self) -> List[ProductInfo]:
        try:
            return [product for _, product in self._entries()]
        except PersistenceError as exc:
            logger.warning("%s: load failed: %r", self.key, exc)
            return []

    def count(self) -> int:
        return len(self.list())

    def clear(self) -> bool:
        try:
            return bool(self.persistence.set_list(self.key, []))
        except PersistenceError as exc:
            logger.warning("%s: clear failed: %r", self.key, exc)
            return False


def cart_store(persistence: Persistence) -> CollectionStore:
    return CollectionStore(persistence, CART_KEY)


def favorites_store(persistence: Persistence) -> CollectionStore:
    return CollectionStore(persistence, FAVORITES_KEY)
