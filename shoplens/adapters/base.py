from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple
from urllib.parse import urlparse

from ..utils.parsing import parse_price
from .variants import (
    ImageRef,
    RgbColor,
    StructuredValue,
    VariantValue,
    in_stock,
    parse_variant_value,
)

logger = logging.getLogger(__name__)

_PLAIN_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _wire_price(value: Any) -> Optional[Decimal]:
    # our own payloads carry str(Decimal); "2.499" there means 2.499, not 2499
    if isinstance(value, str) and _PLAIN_NUMBER_RE.fullmatch(value.strip()):
        return Decimal(value.strip())
    return parse_price(value)


@dataclass(frozen=True)
class PageSnapshot:
    """Serialized page context handed to adapters: the loaded URL and its DOM."""

    url: str
    html: str

    @property
    def path(self) -> str:
        return urlparse(self.url).path


@dataclass(frozen=True)
class VariantOption:
    """One choice inside a variant group (a colour, a size, ...)."""

    text: str
    selected: bool = False
    value: Optional[str] = None
    parsed: Optional[VariantValue] = field(default=None, init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parsed", parse_variant_value(self.value))

    @property
    def in_stock(self) -> bool:
        return in_stock(self.parsed, self.value)

    @property
    def rgb_value(self) -> Optional[str]:
        if isinstance(self.parsed, RgbColor):
            return self.parsed.css
        return None

    @property
    def image_url(self) -> Optional[str]:
        if isinstance(self.parsed, ImageRef):
            return self.parsed.url
        if isinstance(self.parsed, StructuredValue):
            return self.parsed.image_url
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "selected": self.selected, "value": self.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VariantOption":
        value = data.get("value")
        if value is not None and not isinstance(value, str):
            value = json.dumps(value)
        if value is None and ("inStock" in data or "imageUrl" in data):
            # older payloads carry stock/image next to the option instead of in value
            value = json.dumps({k: data[k] for k in ("inStock", "imageUrl") if k in data})
        return cls(
            text=str(data.get("text") or ""),
            selected=bool(data.get("selected", False)),
            value=value,
        )


def normalize_group(options: Iterable[VariantOption]) -> Tuple[VariantOption, ...]:
    """
    Normalise a variant group: unique ``text`` (first occurrence kept) and at
    most one selected option (the last selected one wins).
    """
    by_text: Dict[str, VariantOption] = {}
    last_selected: Optional[str] = None
    for option in options:
        if not option.text:
            continue
        if option.selected:
            last_selected = option.text
        if option.text not in by_text:
            by_text[option.text] = option

    out: List[VariantOption] = []
    for text, option in by_text.items():
        should_select = text == last_selected
        if option.selected != should_select:
            option = VariantOption(text=option.text, selected=should_select, value=option.value)
        out.append(option)
    return tuple(out)


@dataclass(frozen=True)
class ProductInfo:
    """
    Canonical product record for one page load.

    Consumers must check ``is_product`` (``success`` and ``is_product_page``),
    not merely the presence of an instance.
    """

    url: str
    is_product_page: bool = False
    success: bool = False
    title: Optional[str] = None
    price: Optional[Decimal] = None
    original_price: Optional[Decimal] = None
    currency: Optional[str] = None
    image_url: Optional[str] = None
    description: Optional[str] = None
    sku: Optional[str] = None
    availability: Optional[str] = None
    brand: Optional[str] = None
    extraction_method: Optional[str] = None
    variants: Optional[Dict[str, Tuple[VariantOption, ...]]] = None

    def __post_init__(self) -> None:
        if self.variants is not None:
            object.__setattr__(
                self,
                "variants",
                {group: normalize_group(options) for group, options in self.variants.items()},
            )

    @property
    def is_product(self) -> bool:
        return self.success and self.is_product_page

    @property
    def has_discount(self) -> bool:
        # a missing original price means "no discount shown"
        return (
            self.price is not None
            and self.original_price is not None
            and self.original_price > self.price
        )

    def variant_group(self, name: str) -> Tuple[VariantOption, ...]:
        return (self.variants or {}).get(name, ())

    def selected_variant(self, name: str) -> Optional[VariantOption]:
        return next((o for o in self.variant_group(name) if o.selected), None)

    @classmethod
    def not_product(cls, url: str, **kwargs: Any) -> "ProductInfo":
        return cls(url=url, is_product_page=False, success=False, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "isProductPage": self.is_product_page,
            "success": self.success,
            "title": self.title,
            "price": str(self.price) if self.price is not None else None,
            "originalPrice": str(self.original_price) if self.original_price is not None else None,
            "currency": self.currency,
            "imageUrl": self.image_url,
            "description": self.description,
            "sku": self.sku,
            "availability": self.availability,
            "brand": self.brand,
            "extractionMethod": self.extraction_method,
        }
        # Drop unset keys for a cleaner payload.
        clean = {k: v for k, v in data.items() if v is not None}
        if self.variants is not None:
            clean["variants"] = {
                group: [o.to_dict() for o in options] for group, options in self.variants.items()
            }
        return clean

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProductInfo":
        variants: Optional[Dict[str, Tuple[VariantOption, ...]]] = None
        raw_variants = data.get("variants")
        if isinstance(raw_variants, Mapping):
            variants = {}
            for group, options in raw_variants.items():
                if not isinstance(group, str) or not isinstance(options, list):
                    continue
                parsed: List[VariantOption] = []
                for i, option in enumerate(options):
                    if isinstance(option, Mapping) and "text" in option:
                        parsed.append(VariantOption.from_dict(option))
                    else:
                        logger.debug("Skipping malformed %s option at index %s: %r", group, i, option)
                variants[group] = tuple(parsed)

        def _str(key: str) -> Optional[str]:
            value = data.get(key)
            return str(value) if value is not None else None

        return cls(
            url=str(data.get("url") or ""),
            is_product_page=bool(data.get("isProductPage", False)),
            success=bool(data.get("success", False)),
            title=_str("title"),
            price=_wire_price(data.get("price")),
            original_price=_wire_price(data.get("originalPrice")),
            currency=_str("currency"),
            image_url=_str("imageUrl"),
            description=_str("description"),
            sku=_str("sku"),
            availability=_str("availability"),
            brand=_str("brand"),
            extraction_method=_str("extractionMethod"),
            variants=variants,
        )


class SiteAdapter(Protocol):
    """
    Interface for retailer-specific extraction logic.
    Keep this small and stable so adapters rarely break across site redesigns.
    """

    name: str
    retailers: List[str]  # retailer names served, e.g. ["Zara"]

    def looks_like_product_url(self, path: str) -> bool:
        """Cheap URL-shape check; never touches the page."""
        ...

    def extract(self, snapshot: PageSnapshot) -> ProductInfo:
        """
        Map a loaded page to the canonical record.
        Return ``success=False`` rather than guessing when required fields are missing.
        """
        ...
