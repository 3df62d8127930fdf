"""
Parsed forms of ``VariantOption.value``.

Retailers encode variant values in different grammars: an ``rgb(r, g, b)``
literal, a swatch image URL (possibly protocol-relative), a JSON object with
stock/size metadata, or just a label. ``parse_variant_value`` reads the raw
string once, in that fixed precedence, so consumers never re-parse it.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from ..utils.parsing import fix_protocol_relative

_RGB_RE = re.compile(r"rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*[\d.]+\s*)?\)")

OUT_OF_STOCK_MARKERS = ("unavailable", "out of stock", "out-of-stock", "sold out", "disabled")


@dataclass(frozen=True)
class RgbColor:
    r: int
    g: int
    b: int

    @property
    def css(self) -> str:
        return f"rgb({self.r}, {self.g}, {self.b})"

    @property
    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


@dataclass(frozen=True)
class ImageRef:
    url: str


@dataclass(frozen=True)
class StructuredValue:
    in_stock: Optional[bool] = None
    size_value: Optional[str] = None
    size_attr: Optional[str] = None
    color_class: Optional[str] = None
    image_url: Optional[str] = None
    href: Optional[str] = None
    # keys we do not model (delayedDelivery, deliveryInfo, ...)
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class PlainText:
    text: str


VariantValue = Union[RgbColor, ImageRef, StructuredValue, PlainText]

_STRUCTURED_KEYS = {
    "inStock": "in_stock",
    "sizeValue": "size_value",
    "size": "size_value",
    "sizeAttr": "size_attr",
    "colorClass": "color_class",
    "imageUrl": "image_url",
    "href": "href",
}


def parse_rgb(raw: str) -> Optional[RgbColor]:
    match = _RGB_RE.search(raw)
    if not match:
        return None
    r, g, b = (min(int(c), 255) for c in match.groups())
    return RgbColor(r, g, b)


def _coerce_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
    if isinstance(value, (int, float)):
        return bool(value)
    return None


def _structured_from_dict(data: Dict[str, Any]) -> StructuredValue:
    kwargs: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}
    for key, value in data.items():
        attr = _STRUCTURED_KEYS.get(key)
        if attr is None:
            extra[key] = value
        elif attr == "in_stock":
            kwargs[attr] = _coerce_bool(value)
        elif attr not in kwargs and value is not None:
            kwargs[attr] = value if attr != "image_url" else fix_protocol_relative(str(value))
    return StructuredValue(extra=extra, **kwargs)


def parse_variant_value(raw: Optional[str]) -> Optional[VariantValue]:
    """Interpret a raw variant value: JSON object -> RGB literal -> image URL -> plain label."""
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None

    if text.startswith("{"):
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            return _structured_from_dict(data)

    rgb = parse_rgb(text)
    if rgb is not None:
        return rgb

    if text.startswith(("http://", "https://", "//")):
        return ImageRef(fix_protocol_relative(text))

    return PlainText(text)


def in_stock(parsed: Optional[VariantValue], *texts: Optional[str]) -> bool:
    """
    Stock state of a variant option.

    An explicit ``inStock`` flag wins over any free text. Otherwise the value
    and label are scanned for out-of-stock wording; unknown encodings count as
    in stock.
    """
    if isinstance(parsed, StructuredValue) and parsed.in_stock is not None:
        return parsed.in_stock

    haystack = [t for t in texts if t]
    if isinstance(parsed, PlainText):
        haystack.append(parsed.text)
    for text in haystack:
        lowered = text.lower()
        if any(marker in lowered for marker in OUT_OF_STOCK_MARKERS):
            return False
    return True
