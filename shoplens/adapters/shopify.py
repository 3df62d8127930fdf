from __future__ import annotations

import json
import logging
import re
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from .base import PageSnapshot, ProductInfo, VariantOption
from .colors import color_to_rgb
from .generic import SchemaOrgAdapter
from ..utils.parsing import fix_protocol_relative, iter_json_scripts, make_soup

logger = logging.getLogger(__name__)

_PRODUCT_PATH = re.compile(r"/products/[^/]+")
_COLOR_OPTION_NAMES = {"color", "colour", "renk"}
_SIZE_OPTION_NAMES = {"size", "beden", "numara"}


class ShopifyAdapter(SchemaOrgAdapter):
    """
    Shopify storefronts. The theme embeds the product object as JSON
    (``data-product-json`` / ``ProductJson-*``); prices there are minor units
    and every variant carries its own ``available`` flag.
    """
    name = "shopify"
    retailers = ["Manc", "Deep Atelier"]
    extraction_method = "shopify-json"
    default_currency = "TRY"

    def looks_like_product_url(self, path: str) -> bool:
        return bool(_PRODUCT_PATH.search(path))

    def extract(self, snapshot: PageSnapshot) -> ProductInfo:
        soup = make_soup(snapshot.html)
        product = self._product_json(soup)
        if product is None:
            # theme without embedded JSON: schema.org markup is all we have
            return super().extract(snapshot)

        variants_data = [v for v in product.get("variants") or [] if isinstance(v, dict)]
        current = self._current_variant(snapshot.url, variants_data)

        price = _minor_units(current.get("price") if current else product.get("price"))
        original = _minor_units(current.get("compare_at_price") if current else product.get("compare_at_price"))
        image = product.get("featured_image")
        if current and isinstance(current.get("featured_image"), dict):
            image = current["featured_image"].get("src") or image

        jsonld = self._from_jsonld(soup, snapshot.url) or {}
        available = current.get("available") if current else product.get("available")
        fields: Dict[str, Any] = {
            "title": product.get("title") or jsonld.get("title"),
            "description": jsonld.get("description") or _strip_tags(product.get("description")),
            "sku": (current or {}).get("sku") or jsonld.get("sku"),
            "brand": product.get("vendor") or jsonld.get("brand"),
            "image_url": fix_protocol_relative(image) if isinstance(image, str) else jsonld.get("image_url"),
            "price": price,
            "original_price": original,
            "currency": jsonld.get("currency") or self.default_currency,
            "availability": jsonld.get("availability")
            or (None if available is None else ("http://schema.org/InStock" if available else "http://schema.org/OutOfStock")),
        }
        variants = self._variants(product, variants_data, current)
        if variants:
            fields["variants"] = variants
        return self.build(snapshot, soup, fields, self.extraction_method)

    def _product_json(self, soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
        for script in soup.find_all("script", attrs={"type": "application/json"}):
            if not (script.has_attr("data-product-json") or (script.get("id") or "").startswith("ProductJson")):
                continue
            try:
                data = json.loads(script.string or "")
            except json.JSONDecodeError as exc:
                logger.debug("shopify: unreadable product json: %r", exc)
                continue
            if isinstance(data, dict):
                return data.get("product") if isinstance(data.get("product"), dict) else data
        for data in iter_json_scripts(soup, marker='"variants"'):
            if isinstance(data, dict) and isinstance(data.get("variants"), list) and data.get("title"):
                return data
        return None

    def _current_variant(self, url: str, variants: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        wanted = parse_qs(urlparse(url).query).get("variant", [None])[0]
        if wanted:
            for variant in variants:
                if str(variant.get("id")) == wanted:
                    return variant
        return next((v for v in variants if v.get("available")), variants[0] if variants else None)

    def _variants(
        self,
        product: Dict[str, Any],
        variants: List[Dict[str, Any]],
        current: Optional[Dict[str, Any]],
    ) -> Dict[str, List[VariantOption]]:
        option_names = []
        for option in product.get("options") or []:
            option_names.append(option.get("name") if isinstance(option, dict) else option)

        groups: Dict[str, List[VariantOption]] = {}
        for position, option_name in enumerate(option_names, start=1):
            if not isinstance(option_name, str):
                continue
            key = f"option{position}"
            lowered = option_name.strip().lower()
            if lowered in _COLOR_OPTION_NAMES:
                group = "colors"
            elif lowered in _SIZE_OPTION_NAMES:
                group = "sizes"
            else:
                group = lowered.replace(" ", "_")

            options: List[VariantOption] = []
            seen = set()
            for variant in variants:
                text = variant.get(key)
                if not text or text in seen:
                    continue
                seen.add(text)
                # an option value is in stock when any variant using it is available
                in_stock = any(v.get("available") for v in variants if v.get(key) == text)
                selected = current is not None and current.get(key) == text
                if group == "colors":
                    value = color_to_rgb(text)
                    if value is None:
                        image = variant.get("featured_image")
                        value = json.dumps({
                            "inStock": in_stock,
                            "imageUrl": fix_protocol_relative(image.get("src")) if isinstance(image, dict) else None,
                            "href": f"?variant={variant.get('id')}",
                        })
                else:
                    value = json.dumps({
                        "inStock": in_stock,
                        "sizeValue": text,
                        "href": f"?variant={variant.get('id')}",
                    })
                options.append(VariantOption(text=str(text), selected=selected, value=value))
            if options:
                groups[group] = options
        return groups


def _minor_units(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return Decimal(value) / 100
    if isinstance(value, str) and value.isdigit():
        return Decimal(int(value)) / 100
    return None


def _strip_tags(html: Any) -> Optional[str]:
    if not isinstance(html, str) or not html.strip():
        return None
    return make_soup(html).get_text(" ", strip=True) or None
