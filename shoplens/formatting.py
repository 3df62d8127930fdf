from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

_SCHEMA_PREFIXES = ("http://schema.org/", "https://schema.org/")

_AVAILABILITY_LABELS = {
    "InStock": "In Stock",
    "OutOfStock": "Out of Stock",
    "LimitedAvailability": "Limited Availability",
    "PreOrder": "Pre-Order",
}


def format_availability(availability: Optional[str]) -> str:
    """Human label for a raw availability token (schema.org URL or storefront text)."""
    if availability is None:
        return "Unknown"
    for prefix in _SCHEMA_PREFIXES:
        if availability.startswith(prefix):
            label = _AVAILABILITY_LABELS.get(availability[len(prefix):])
            if label:
                return label
    lowered = availability.lower()
    if "in stock" in lowered:
        return "In Stock"
    if "out of stock" in lowered:
        return "Out of Stock"
    if availability == "Select" or "select" in availability:
        return "Check Store Availability"
    return availability


def _group(amount: Decimal, thousands: str, decimal: str) -> str:
    quantized = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{quantized:,.2f}"  # 1,234.56
    return text.replace(",", "\0").replace(".", decimal).replace("\0", thousands)


def format_price(price: Optional[Decimal], currency: Optional[str]) -> str:
    """
    Render a price the way each currency's home market writes it.
    Unknown currencies fall back to Turkish lira formatting.
    """
    if price is None:
        return ""
    if currency == "USD":
        return "$" + _group(price, ",", ".")
    if currency == "EUR":
        return _group(price, ".", ",") + "€"
    if currency == "GBP":
        return "£" + _group(price, ",", ".")
    return _group(price, ".", ",") + " ₺"
