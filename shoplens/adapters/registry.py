from __future__ import annotations

import logging
from importlib import metadata
from typing import Dict, List, Optional

from .base import SiteAdapter
from .generic import SchemaOrgAdapter
from .inditex import BershkaAdapter, MassimoDuttiAdapter, StradivariusAdapter, ZaraAdapter
from .louisvuitton import LouisVuittonAdapter
from .mango import MangoAdapter
from .shopify import ShopifyAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Registry of extraction adapters keyed by retailer name.
    Supports built-ins, config-defined dotted classes, and entry-point plugins.
    Retailers without a bespoke adapter get the schema.org fallback.
    """
    def __init__(self) -> None:
        self._generic: SiteAdapter = SchemaOrgAdapter()
        self._by_retailer: Dict[str, SiteAdapter] = {}
        for adapter in (
            ZaraAdapter(),
            BershkaAdapter(),
            StradivariusAdapter(),
            MassimoDuttiAdapter(),
            MangoAdapter(),
            ShopifyAdapter(),
            LouisVuittonAdapter(),
        ):
            self.register(adapter)

    # ---- Introspection / Management ----

    def register(self, adapter: SiteAdapter) -> None:
        """Register an adapter for each retailer it serves; later registrations win."""
        for retailer in adapter.retailers:
            previous = self._by_retailer.get(retailer.casefold())
            if previous is not None and previous is not adapter:
                logger.info("Adapter %s replaces %s for %s", adapter.name, previous.name, retailer)
            self._by_retailer[retailer.casefold()] = adapter

    @property
    def adapters(self) -> List[SiteAdapter]:
        unique: List[SiteAdapter] = [self._generic]
        for adapter in self._by_retailer.values():
            if adapter not in unique:
                unique.append(adapter)
        return unique

    @property
    def generic(self) -> SiteAdapter:
        return self._generic

    def for_retailer(self, retailer_name: Optional[str]) -> SiteAdapter:
        if retailer_name:
            adapter = self._by_retailer.get(retailer_name.casefold())
            if adapter is not None:
                return adapter
        return self._generic

    # ---- Discovery ----

    def discover_entry_points(self, group: str = "shoplens.adapters") -> int:
        """
        Discover third-party adapters installed as entry points.
        Returns count of newly registered adapters.
        """
        added = 0
        for ep in metadata.entry_points().select(group=group):
            try:
                adapter_cls = ep.load()
                self.register(adapter_cls())
            except Exception as exc:
                # plugins are optional; a broken one must not take the registry down
                logger.warning("Failed to load adapter entry point %s: %r", ep.name, exc)
                continue
            added += 1
        return added
