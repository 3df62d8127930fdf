from __future__ import annotations

import json
import logging
import re
from decimal import Decimal
from typing import Any, Dict, List, Optional, Pattern
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from .base import PageSnapshot, ProductInfo, VariantOption
from .colors import color_to_rgb
from .generic import SchemaOrgAdapter, _absolute
from .variants import parse_rgb
from ..utils.parsing import detect_currency, is_product_like, make_soup, parse_price, text_or_none

logger = logging.getLogger(__name__)

_IN_STOCK_STATES = {"in_stock", "low_on_stock", "instock", "available"}


class InditexAdapter(SchemaOrgAdapter):
    """
    Shared extraction for Inditex storefronts (Zara, Bershka, Stradivarius,
    Massimo Dutti).

    Base fields come from schema.org markup when present. Variants come from
    the embedded ``viewPayload`` state object, or from the colour/size
    selectors of the rendered page when the state object is missing.
    Sizes from the state object carry ``{"inStock": ...}`` JSON; sizes read
    from the DOM carry the storefront's free-text status ("Out of stock").
    """
    name = "inditex"
    retailers: List[str] = []
    brand: Optional[str] = None
    default_currency = "TRY"
    product_path: Pattern[str] = re.compile(r"-p\d{5,}\.html$")

    title_selectors = ["h1.product-detail-info__header-name", "h1"]
    price_selectors = [".price-current__amount", ".money-amount__main", ".current-price-elem"]
    old_price_selectors = [".price-old__amount", ".price__amount--old"]
    image_selectors = ["img.media-image__image", ".product-detail-images img", "picture img"]
    color_item_selector = "li.product-detail-color-selector__color"
    color_area_selector = ".product-detail-color-selector__color-area"
    color_selected_class = "product-detail-color-selector__color--is-selected"
    size_item_selector = "li.size-selector-list__item"
    size_label_selector = ".product-size-info__main-label"
    size_status_selector = ".product-size-info__second-line"
    size_disabled_classes = ("size-selector-list__item--is-disabled", "size-selector-list__item--out-of-stock")

    @property
    def extraction_method(self) -> str:  # type: ignore[override]
        return f"{self.name}-specific"

    def looks_like_product_url(self, path: str) -> bool:
        return bool(self.product_path.search(path)) or is_product_like(path)

    def extract(self, snapshot: PageSnapshot) -> ProductInfo:
        soup = make_soup(snapshot.html)
        fields = self._from_jsonld(soup, snapshot.url) or self._from_microdata(soup, snapshot.url)
        has_markup = fields is not None
        fields = fields or {}

        payload = self._view_payload(soup)
        variants = self._variants_from_payload(payload, snapshot.url, fields) if payload else None
        if not variants:
            variants = self._variants_from_dom(soup, snapshot.url)
        if variants:
            fields["variants"] = variants

        if not (has_markup or variants or self.looks_like_product_url(snapshot.path)):
            # category, search and landing pages
            return ProductInfo.not_product(snapshot.url, brand=self.brand, extraction_method=self.extraction_method)
        self._fill_from_dom(soup, snapshot.url, fields)
        fields.setdefault("currency", None)
        if not fields["currency"] and fields.get("price") is not None:
            fields["currency"] = self.default_currency
        return self.build(snapshot, soup, fields, self.extraction_method)

    # ---- DOM ----------------------------------------------------------------

    def _fill_from_dom(self, soup: BeautifulSoup, base_url: str, fields: Dict[str, Any]) -> None:
        if not fields.get("title"):
            fields["title"] = _first_text(soup, self.title_selectors)
        if fields.get("price") is None:
            price_text = _first_text(soup, self.price_selectors)
            if price_text:
                fields["price"] = parse_price(price_text)
                fields["currency"] = fields.get("currency") or detect_currency(price_text)
        if fields.get("original_price") is None:
            fields["original_price"] = parse_price(_first_text(soup, self.old_price_selectors))
        if not fields.get("image_url"):
            for selector in self.image_selectors:
                img = soup.select_one(selector)
                if img is not None and (img.get("src") or img.get("data-src")):
                    fields["image_url"] = _absolute(img.get("src") or img.get("data-src"), base_url)
                    break

    def _variants_from_dom(self, soup: BeautifulSoup, base_url: str) -> Dict[str, List[VariantOption]]:
        variants: Dict[str, List[VariantOption]] = {}

        colors: List[VariantOption] = []
        for item in soup.select(self.color_item_selector):
            label = item.get("aria-label") or text_or_none(item.select_one(".screen-reader-text")) or text_or_none(item)
            if not label:
                continue
            value = None
            area = item.select_one(self.color_area_selector)
            style = (area.get("style") if area is not None else None) or item.get("style") or ""
            rgb = parse_rgb(style)
            if rgb is not None:
                value = rgb.css
            else:
                img = item.select_one("img")
                if img is not None and img.get("src"):
                    value = _absolute(img.get("src"), base_url)
                else:
                    value = color_to_rgb(label)
            selected = self.color_selected_class in (item.get("class") or []) or item.get("aria-current") == "true"
            colors.append(VariantOption(text=label.strip(), selected=selected, value=value))
        if colors:
            variants["colors"] = colors

        sizes: List[VariantOption] = []
        for item in soup.select(self.size_item_selector):
            label = text_or_none(item.select_one(self.size_label_selector)) or text_or_none(item)
            if not label:
                continue
            status = text_or_none(item.select_one(self.size_status_selector))
            classes = item.get("class") or []
            if not status and any(c in classes for c in self.size_disabled_classes):
                status = "disabled"
            selected = "size-selector-list__item--selected" in classes or item.get("aria-selected") == "true"
            sizes.append(VariantOption(text=label, selected=selected, value=status))
        if sizes:
            variants["sizes"] = sizes
        return variants

    # ---- Embedded state -------------------------------------------------------

    def _view_payload(self, soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
        for script in soup.find_all("script"):
            text = script.string or ""
            if "viewPayload" not in text:
                continue
            _, _, rhs = text.partition("=")
            rhs = rhs.strip().rstrip(";").strip()
            try:
                data = json.loads(rhs)
            except json.JSONDecodeError as exc:
                logger.debug("%s: unreadable viewPayload: %r", self.name, exc)
                continue
            if isinstance(data, dict):
                return data
        return None

    def _variants_from_payload(
        self, payload: Dict[str, Any], url: str, fields: Dict[str, Any]
    ) -> Dict[str, List[VariantOption]]:
        product = payload.get("product") or {}
        detail = product.get("detail") or {}
        colors_data = [c for c in detail.get("colors") or [] if isinstance(c, dict)]
        if not colors_data:
            return {}

        if not fields.get("title") and product.get("name"):
            fields["title"] = str(product["name"]).strip()
        if not fields.get("sku") and detail.get("displayReference"):
            fields["sku"] = str(detail["displayReference"])

        selected_id = _selected_color_id(url) or detail.get("selectedColorId")
        selected_color = next((c for c in colors_data if str(c.get("id")) == str(selected_id)), colors_data[0])

        colors: List[VariantOption] = []
        for color in colors_data:
            name = str(color.get("name") or "").strip()
            if not name:
                continue
            colors.append(
                VariantOption(
                    text=name,
                    selected=color is selected_color,
                    value=_payload_color_value(color, name),
                )
            )

        # Prices in the state object are minor units.
        if fields.get("price") is None and isinstance(selected_color.get("price"), (int, float)):
            fields["price"] = Decimal(int(selected_color["price"])) / 100
        if fields.get("original_price") is None and isinstance(selected_color.get("oldPrice"), (int, float)):
            fields["original_price"] = Decimal(int(selected_color["oldPrice"])) / 100

        sizes: List[VariantOption] = []
        for size in selected_color.get("sizes") or []:
            if not isinstance(size, dict) or not size.get("name"):
                continue
            state = str(size.get("availability") or "").lower()
            value = {
                "inStock": state in _IN_STOCK_STATES if state else True,
                "sizeValue": str(size["name"]),
                "sizeAttr": state or None,
            }
            sizes.append(VariantOption(text=str(size["name"]), value=json.dumps(value)))

        variants: Dict[str, List[VariantOption]] = {}
        if colors:
            variants["colors"] = colors
        if sizes:
            variants["sizes"] = sizes
        return variants


def _first_text(soup: BeautifulSoup, selectors: List[str]) -> Optional[str]:
    for selector in selectors:
        text = text_or_none(soup.select_one(selector))
        if text:
            return text
    return None


def _selected_color_id(url: str) -> Optional[str]:
    query = parse_qs(urlparse(url).query)
    for key in ("v1", "colorId"):
        if query.get(key):
            return query[key][0]
    return None


def _payload_color_value(color: Dict[str, Any], name: str) -> Optional[str]:
    hex_code = str(color.get("hexCode") or "").lstrip("#")
    if re.fullmatch(r"[0-9a-fA-F]{6}", hex_code):
        r, g, b = (int(hex_code[i:i + 2], 16) for i in (0, 2, 4))
        return f"rgb({r}, {g}, {b})"
    rgb = color_to_rgb(name)
    if rgb:
        return rgb
    for media in color.get("xmedia") or []:
        if isinstance(media, dict) and media.get("url"):
            return str(media["url"])
    return None


class ZaraAdapter(InditexAdapter):
    name = "zara"
    retailers = ["Zara"]
    brand = "Zara"


class BershkaAdapter(InditexAdapter):
    name = "bershka"
    retailers = ["Bershka"]
    brand = "Bershka"
    product_path = re.compile(r"-c\d+p\d+\.html$")
    title_selectors = ["h1.product-detail-info-layout__title", "h1"]
    price_selectors = [".current-price-elem", ".price-elem"]
    old_price_selectors = [".old-price-elem"]
    color_item_selector = "ul.round-color-picker li"
    color_area_selector = ".round-color-picker__color"
    color_selected_class = "is-selected"
    size_item_selector = "ul.ui--size-dot-list li"
    size_label_selector = ".text__label"
    size_status_selector = ".size-stock-info"
    size_disabled_classes = ("is-disabled",)


class StradivariusAdapter(InditexAdapter):
    name = "stradivarius"
    retailers = ["Stradivarius"]
    brand = "Stradivarius"
    product_path = re.compile(r"-l\d{6,}|-c\d+p\d+\.html$")


class MassimoDuttiAdapter(InditexAdapter):
    name = "massimodutti"
    retailers = ["Massimo Dutti"]
    brand = "Massimo Dutti"
    product_path = re.compile(r"-l\d{6,}")
