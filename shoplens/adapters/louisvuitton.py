from __future__ import annotations

import re
from typing import Any, Dict
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from .base import PageSnapshot, ProductInfo
from .generic import SchemaOrgAdapter

_PRODUCT_PATH = re.compile(r"/products/|nvprod\d+", re.IGNORECASE)


class LouisVuittonAdapter(SchemaOrgAdapter):
    """schema.org extraction plus storefront fixups (brand, USD on the US site)."""

    name = "louisvuitton"
    retailers = ["Louis Vuitton"]
    brand = "Louis Vuitton"
    extraction_method = "louisvuitton-structured"

    def looks_like_product_url(self, path: str) -> bool:
        return bool(_PRODUCT_PATH.search(path))

    def build(self, snapshot: PageSnapshot, soup: BeautifulSoup, fields: Dict[str, Any], method: str) -> ProductInfo:
        parsed = urlparse(snapshot.url)
        if parsed.netloc.lower().startswith("us.") or "/eng-us" in parsed.path.lower():
            fields = dict(fields, currency="USD")
        return super().build(snapshot, soup, fields, self.extraction_method)
