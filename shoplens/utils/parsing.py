from __future__ import annotations

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Iterator, List, Optional
from urllib.parse import urlparse, urlunparse

from bs4 import BeautifulSoup


def normalize_url(url: str) -> str:
    """
    Normalize URL by removing fragments.
    """
    parts = list(urlparse(url))
    parts[5] = ""  # strip fragment
    return urlunparse(parts)


def fix_protocol_relative(url: Optional[str], scheme: str = "https") -> Optional[str]:
    """Turn ``//cdn.example.com/a.jpg`` into an absolute URL."""
    if url and url.startswith("//"):
        return f"{scheme}:{url}"
    return url


_PRODUCT_PATTERNS = [
    re.compile(p)
    for p in (
        r"/p/",
        r"/product/",
        r"/products/",
        r"/item/",
        r"/items/",
        r"/pd/",
        r"/urun/",
        r"/detay/",
        r"/product-detail/",
        r"/ProductDetails",
        r"/productdetail",
        r"/goods/",
        r"/shop/products/",
        r"/product-p",
    )
]


def is_product_like(path: str) -> bool:
    """
    A simple, extensible heuristic to detect product routes from a URL path.
    Upgrade by adding regexes; keep it free of page access.
    """
    if not path.endswith("/"):
        # "/p/12345" and "/p" style routes both count
        path = path + "/"
    return any(p.search(path) for p in _PRODUCT_PATTERNS)


# ---- Prices ---------------------------------------------------------------

_CURRENCY_HINTS = (
    ("TL", "TRY"),
    ("₺", "TRY"),
    ("TRY", "TRY"),
    ("US$", "USD"),
    ("USD", "USD"),
    ("$", "USD"),
    ("EUR", "EUR"),
    ("€", "EUR"),
    ("GBP", "GBP"),
    ("£", "GBP"),
)

_NUMBER_RE = re.compile(r"\d[\d.,\s]*")


def detect_currency(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    for hint, code in _CURRENCY_HINTS:
        if hint in text:
            return code
    return None


def parse_price(value: Any) -> Optional[Decimal]:
    """
    Parse a localized price string into a Decimal.

    Handles ``1.234,56 TL`` (Turkish/European), ``$1,299.00`` (US) and bare
    numbers. Returns None when no number can be found.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None

    match = _NUMBER_RE.search(str(value))
    if not match:
        return None
    number = re.sub(r"\s", "", match.group(0)).rstrip(".,")

    if "," in number and "." in number:
        # whichever separator comes last is the decimal separator
        if number.rfind(",") > number.rfind("."):
            number = number.replace(".", "").replace(",", ".")
        else:
            number = number.replace(",", "")
    elif "," in number:
        head, _, tail = number.rpartition(",")
        if len(tail) == 3 and head:
            number = number.replace(",", "")
        else:
            number = head.replace(",", "") + "." + tail
    elif number.count(".") > 1 or (
        "." in number and len(number.rpartition(".")[2]) == 3
    ):
        # 2.499 / 1.234.567 are thousand separators
        number = number.replace(".", "")

    try:
        return Decimal(number)
    except InvalidOperation:
        return None


# ---- HTML / JSON-LD -------------------------------------------------------

def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def text_or_none(node) -> Optional[str]:
    if not node:
        return None
    text = node.get_text(" ", strip=True)
    return text or None


def iter_jsonld(soup: BeautifulSoup) -> Iterator[Any]:
    """Yield every decoded JSON-LD payload on the page, skipping broken ones."""
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        payload = script.string or script.get_text() or ""
        try:
            yield json.loads(payload)
        except json.JSONDecodeError:
            continue


def _is_product_type(type_field: Any) -> bool:
    if isinstance(type_field, list):
        return any(isinstance(t, str) and t.lower() == "product" for t in type_field)
    return isinstance(type_field, str) and type_field.lower() == "product"


def find_jsonld_products(data: Any) -> List[dict]:
    """Find schema.org Product nodes regardless of nesting (@graph, lists, wrappers)."""
    found: List[dict] = []

    def _walk(node: Any) -> None:
        if isinstance(node, list):
            for item in node:
                _walk(item)
        elif isinstance(node, dict):
            if _is_product_type(node.get("@type")):
                found.append(node)
                return
            for value in node.values():
                if isinstance(value, (dict, list)):
                    _walk(value)

    _walk(data)
    return found


def first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def iter_json_scripts(soup: BeautifulSoup, *, marker: Optional[str] = None) -> Iterable[Any]:
    """Yield decoded ``application/json`` script payloads (optionally only those mentioning marker)."""
    for script in soup.find_all("script", attrs={"type": "application/json"}):
        payload = script.string or script.get_text() or ""
        if marker and marker not in payload:
            continue
        try:
            yield json.loads(payload)
        except json.JSONDecodeError:
            continue
