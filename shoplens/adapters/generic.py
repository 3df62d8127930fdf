from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .base import PageSnapshot, ProductInfo, VariantOption
from .colors import color_to_rgb
from ..utils.parsing import (
    find_jsonld_products,
    first,
    fix_protocol_relative,
    is_product_like,
    iter_jsonld,
    make_soup,
    parse_price,
    text_or_none,
)

logger = logging.getLogger(__name__)


class SchemaOrgAdapter:
    """
    A generic, retailer-agnostic adapter that reads schema.org Product markup
    (JSON-LD first, then microdata). Acts as the fallback for every registered
    retailer without a bespoke adapter.
    """
    name = "schema.org"
    retailers: List[str] = []  # serves any retailer
    brand: Optional[str] = None
    extraction_method = "structured_data"

    def looks_like_product_url(self, path: str) -> bool:
        return is_product_like(path)

    def extract(self, snapshot: PageSnapshot) -> ProductInfo:
        soup = make_soup(snapshot.html)
        fields = self._from_jsonld(soup, snapshot.url)
        method = self.extraction_method
        if fields is None:
            fields = self._from_microdata(soup, snapshot.url)
            method = "microdata"
        if fields is None:
            # No markup: only the URL shape can still call it a product page.
            return ProductInfo.not_product(
                snapshot.url,
                is_product_page=self.looks_like_product_url(snapshot.path),
                brand=self.brand,
                extraction_method=self.extraction_method,
            )
        return self.build(snapshot, soup, fields, method)

    # ---- Hooks --------------------------------------------------------------

    def build(self, snapshot: PageSnapshot, soup: BeautifulSoup, fields: Dict[str, Any], method: str) -> ProductInfo:
        """Turn collected fields into the canonical record; subclasses adjust fields first."""
        price: Optional[Decimal] = fields.get("price")
        original = fields.get("original_price")
        if original is not None and (price is None or original <= price):
            original = None
        title = fields.get("title")
        return ProductInfo(
            url=snapshot.url,
            is_product_page=True,
            success=bool(title) and price is not None,
            title=title,
            price=price,
            original_price=original,
            currency=fields.get("currency"),
            image_url=fields.get("image_url"),
            description=fields.get("description"),
            sku=fields.get("sku"),
            availability=fields.get("availability"),
            brand=fields.get("brand") or self.brand,
            extraction_method=method,
            variants=fields.get("variants"),
        )

    # ---- JSON-LD ------------------------------------------------------------

    def _from_jsonld(self, soup: BeautifulSoup, base_url: str) -> Optional[Dict[str, Any]]:
        best: Optional[Dict[str, Any]] = None
        for data in iter_jsonld(soup):
            for node in find_jsonld_products(data):
                fields = self._fields_from_jsonld(node, base_url)
                if fields.get("title") and fields.get("price") is not None:
                    return fields
                best = best or fields
        return best

    def _fields_from_jsonld(self, item: Dict[str, Any], base_url: str) -> Dict[str, Any]:
        offers = item.get("offers")
        if isinstance(offers, list):
            offers = offers[0] if offers else None
        if not isinstance(offers, dict):
            offers = {}

        price = parse_price(first(offers.get("price")))
        if price is None:
            price = parse_price(offers.get("lowPrice"))
        high = parse_price(offers.get("highPrice"))

        brand = item.get("brand")
        if isinstance(brand, list):
            brand = first(brand)
        if isinstance(brand, dict):
            brand = brand.get("name")

        image = first(item.get("image"))
        if isinstance(image, dict):
            image = image.get("url") or image.get("contentUrl")

        sku = item.get("sku") or item.get("mpn")

        fields: Dict[str, Any] = {
            "title": _clean(item.get("name")),
            "description": _clean(item.get("description")),
            "sku": str(sku) if sku is not None else None,
            "brand": _clean(brand),
            "image_url": _absolute(image, base_url),
            "price": price,
            "original_price": high,
            "currency": _clean(offers.get("priceCurrency")),
            "availability": _clean(offers.get("availability")),
        }

        variants: Dict[str, List[VariantOption]] = {}
        color = _clean(item.get("color"))
        if color:
            variants["colors"] = [VariantOption(text=color, selected=True, value=color_to_rgb(color))]
        size = _clean(item.get("size"))
        if size:
            variants["sizes"] = [VariantOption(text=size, selected=True)]
        if variants:
            fields["variants"] = variants
        return fields

    # ---- Microdata ----------------------------------------------------------

    def _from_microdata(self, soup: BeautifulSoup, base_url: str) -> Optional[Dict[str, Any]]:
        scope = soup.find(attrs={"itemtype": lambda v: bool(v) and "schema.org/Product" in v})
        if scope is None:
            return None

        brand_node = scope.find(attrs={"itemprop": "brand"})
        brand = None
        if brand_node is not None:
            brand = _itemprop(brand_node, "name") or _node_value(brand_node)

        return {
            "title": _itemprop(scope, "name"),
            "description": _itemprop(scope, "description"),
            "sku": _itemprop(scope, "sku") or _itemprop(scope, "mpn"),
            "brand": brand,
            "image_url": _absolute(_itemprop(scope, "image"), base_url),
            "price": parse_price(_itemprop(scope, "price") or _itemprop(scope, "lowPrice")),
            "original_price": parse_price(_itemprop(scope, "highPrice")),
            "currency": _itemprop(scope, "priceCurrency"),
            "availability": _itemprop(scope, "availability"),
        }


# ---- Helpers ----------------------------------------------------------------

def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _absolute(url: Any, base_url: str) -> Optional[str]:
    url = _clean(url)
    if not url:
        return None
    url = fix_protocol_relative(url)
    return urljoin(base_url, url)


def _node_value(node) -> Optional[str]:
    for attr in ("content", "href", "src"):
        value = node.get(attr)
        if value:
            return value.strip()
    return text_or_none(node)


def _itemprop(scope, prop: str) -> Optional[str]:
    for node in scope.find_all(attrs={"itemprop": prop}):
        # skip properties of nested items (brand name, seller, ...) but keep offers
        owner = node.find_parent(attrs={"itemscope": True})
        if owner is None or owner is scope or _is_offer(owner):
            return _node_value(node)
    return None


def _is_offer(node) -> bool:
    itemtype = node.get("itemtype") or ""
    return "schema.org/Offer" in itemtype or "schema.org/AggregateOffer" in itemtype
