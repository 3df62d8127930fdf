from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from .base import PageSnapshot, ProductInfo, VariantOption
from .generic import SchemaOrgAdapter, _absolute
from ..utils.parsing import detect_currency, fix_protocol_relative, make_soup, parse_price, text_or_none

logger = logging.getLogger(__name__)

_PRODUCT_PATH = re.compile(r"/p/")
_CATEGORY_PATH = re.compile(r"/h/")
_SIZE_PROMPTS = ("select", "seçin", "secin")
_UNAVAILABLE_MARKERS = ("SizeItemContent_notAvailable__", "SizeItemContent_notifyMe__")


class MangoAdapter(SchemaOrgAdapter):
    """
    Mango storefront (shop.mango.com).

    Mango renders with hashed CSS-module class names; selectors match on the
    stable prefix. Colour swatches are images (value = swatch URL), sizes carry
    ``{"sizeValue", "inStock", "delayedDelivery", "deliveryInfo"}`` JSON.
    """
    name = "mango"
    retailers = ["Mango"]
    brand = "Mango"
    extraction_method = "mango-specific"
    default_currency = "TRY"

    def looks_like_product_url(self, path: str) -> bool:
        # /h/ routes are category landing pages
        return bool(_PRODUCT_PATH.search(path)) and not _CATEGORY_PATH.search(path)

    def extract(self, snapshot: PageSnapshot) -> ProductInfo:
        if not self.looks_like_product_url(snapshot.path):
            return ProductInfo.not_product(snapshot.url, brand=self.brand, extraction_method=self.extraction_method)

        soup = make_soup(snapshot.html)
        fields: Dict[str, Any] = self._from_jsonld(soup, snapshot.url) or {}

        if not fields.get("title"):
            fields["title"] = _text(soup, ['[class^="ProductDetail_title"]', "h1.texts_titleL", ".product-name h1", "h1"])
        if fields.get("price") is None:
            price_text = _text(
                soup,
                ['[class*="SinglePrice_center"]', '[class*="Price_wrapper"] [itemprop="price"]', ".price__current", ".product-price"],
            )
            fields["price"] = parse_price(price_text)
            fields["currency"] = fields.get("currency") or detect_currency(price_text)
        if fields.get("price") is not None and not fields.get("currency"):
            fields["currency"] = self.default_currency
        if fields.get("original_price") is None:
            fields["original_price"] = parse_price(
                _text(soup, [".price__amount--crossed", ".was-price", ".original-price", ".old-price"])
            )
        if not fields.get("image_url"):
            fields["image_url"] = self._image(soup, snapshot.url)
        if not fields.get("description"):
            fields["description"] = _text(soup, [".description", ".product-description", ".description-content"])

        variants: Dict[str, List[VariantOption]] = {}
        colors = self._colors(soup, snapshot.url)
        if colors:
            variants["colors"] = colors
        sizes = self._sizes(soup) or self._sizes_from_scripts(soup)
        if sizes:
            variants["sizes"] = sizes
        else:
            logger.debug("mango: no size information on %s", snapshot.url)
        if variants:
            fields["variants"] = variants

        return self.build(snapshot, soup, fields, self.extraction_method)

    def _image(self, soup: BeautifulSoup, base_url: str) -> Optional[str]:
        for selector in ('img[class*="SlideshowWrapper_image"]', ".product-images img", ".product-photo img", ".image-gallery img"):
            img = soup.select_one(selector)
            if img is None:
                continue
            srcset = img.get("srcset")
            if srcset:
                # last candidate is the largest rendition
                return _absolute(srcset.split(",")[-1].strip().split(" ")[0], base_url)
            if img.get("src"):
                return _absolute(img.get("src"), base_url)
        return None

    def _colors(self, soup: BeautifulSoup, base_url: str) -> List[VariantOption]:
        options: List[VariantOption] = []
        container = soup.select_one('[class*="ColorsSelector_colorsSelector"]')
        if container is not None:
            selected_name = text_or_none(container.select_one('[class*="ColorsSelector_label"]'))
            for item in soup.select('[class*="ColorList_color__"]'):
                is_selected = item.select_one('[class*="ColorSelectorPicker_selected"]') is not None
                img = item.select_one("img")
                name = ""
                value = None
                if img is not None:
                    alt = img.get("alt") or ""
                    if "color" in alt:
                        name = alt.split("color", 1)[1].strip()
                    value = fix_protocol_relative(img.get("src") or img.get("srcset"))
                if not name and is_selected and selected_name:
                    name = selected_name
                if not name:
                    continue
                options.append(VariantOption(text=name, selected=is_selected, value=value or name))
            return options

        for button in soup.select('button[aria-label*="color"], div[role="radiogroup"] button'):
            name = button.get("aria-label") or text_or_none(button)
            if not name:
                continue
            is_selected = (
                button.get("aria-pressed") == "true"
                or button.has_attr("aria-current")
                or "selected" in (button.get("class") or [])
            )
            img = button.select_one("img")
            value = _absolute(img.get("src"), base_url) if img is not None and img.get("src") else None
            options.append(VariantOption(text=name.strip(), selected=is_selected, value=value or name.strip()))
        return options

    def _sizes(self, soup: BeautifulSoup) -> List[VariantOption]:
        container = None
        for selector in ('[class*="SizesList_sizesList"]', '[class*="SizeSelector_sizes"]', ".size-selector"):
            container = soup.select_one(selector)
            if container is not None:
                break
        if container is None:
            return []

        options: List[VariantOption] = []
        for item in container.select('li button, button[class*="SizeItem_sizeItem"]') or container.select("li"):
            label = text_or_none(item.select_one('[class*="texts_bodyMRegular"], .size-text')) or text_or_none(item)
            if not label or any(p in label.lower() for p in _SIZE_PROMPTS):
                continue
            classes = " ".join(item.get("class") or [])
            markup = str(item)
            delayed = item.select_one('[class*="SizeDelayedLabel_sizeDelayedLabel"]')
            value = {
                "sizeValue": label,
                "inStock": not any(marker in markup for marker in _UNAVAILABLE_MARKERS),
                "delayedDelivery": delayed is not None,
                "deliveryInfo": text_or_none(delayed),
            }
            is_selected = (
                "selected" in classes
                or "SizeItem_selected" in classes
                or item.get("aria-pressed") == "true"
                or item.get("aria-selected") == "true"
            )
            options.append(VariantOption(text=label, selected=is_selected, value=json.dumps(value)))
        return options

    def _sizes_from_scripts(self, soup: BeautifulSoup) -> List[VariantOption]:
        for script in soup.find_all("script"):
            if script.get("src"):
                continue
            content = script.string or ""
            if '"sizes"' not in content:
                continue
            for data in _json_objects(content):
                sizes = data.get("sizes")
                if not isinstance(sizes, list):
                    continue
                options = []
                for size in sizes:
                    if not isinstance(size, dict):
                        continue
                    label = size.get("name") or size.get("text")
                    if not label:
                        continue
                    value = {"sizeValue": label, "inStock": size.get("inStock") is not False, "delayedDelivery": False}
                    options.append(VariantOption(text=str(label), selected=bool(size.get("selected")), value=json.dumps(value)))
                if options:
                    return options
        return []


def _text(soup: BeautifulSoup, selectors: List[str]) -> Optional[str]:
    for selector in selectors:
        text = text_or_none(soup.select_one(selector))
        if text:
            return text
    return None


def _json_objects(content: str):
    """Yield JSON objects embedded in an inline script, in document order."""
    decoder = json.JSONDecoder()
    index = content.find("{")
    while index != -1:
        try:
            obj, end = decoder.raw_decode(content, index)
        except json.JSONDecodeError:
            index = content.find("{", index + 1)
            continue
        if isinstance(obj, dict):
            yield obj
        index = content.find("{", end)
