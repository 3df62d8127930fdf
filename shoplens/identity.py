from __future__ import annotations

from typing import NamedTuple, Optional

from .adapters.base import ProductInfo
from .utils.parsing import normalize_url


class IdentityKey(NamedTuple):
    """Fields that decide whether two records are the same cart/favorite line."""

    url: str
    brand: Optional[str]
    sku_or_title: Optional[str]


def _norm(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = " ".join(value.split())
    return value or None


def identity_key(product: ProductInfo) -> IdentityKey:
    # variant selection is deliberately not part of the key
    brand = _norm(product.brand)
    return IdentityKey(
        url=normalize_url(product.url.strip()),
        brand=brand.casefold() if brand else None,
        sku_or_title=_norm(product.sku) or _norm(product.title),
    )


def same_identity(a: ProductInfo, b: ProductInfo) -> bool:
    return identity_key(a) == identity_key(b)
