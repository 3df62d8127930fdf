from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from .adapters.base import SiteAdapter
from .adapters.registry import AdapterRegistry
from .config import AppConfig
from .retailers import RetailerDefinition, RetailerRegistry
from .utils.loader import load_symbol

logger = logging.getLogger(__name__)

MSG_EMPTY = "Please enter a product URL"
MSG_MALFORMED = "Invalid URL format"
MSG_UNSUPPORTED_PRODUCT = "This looks like a product page, but the retailer is not supported yet."
MSG_NOT_SHOPPING = "This link is not recognized as a supported shopping site."

_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*)://")
_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_TLD_RE = re.compile(r"^(?:[a-z]{2,24}|xn--[a-z0-9-]{2,59})$")
_UNSUPPORTED_PRODUCT_HINTS = ("/product/", "/p/", "/item/")


@dataclass(frozen=True)
class UrlResolution:
    is_valid: bool
    normalized_url: Optional[str] = None
    retailer_index: Optional[int] = None
    retailer_name: Optional[str] = None
    is_product_page: bool = False
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _valid_host(host: str) -> bool:
    labels = host.split(".")
    if len(labels) < 2:
        return False
    if not all(_LABEL_RE.match(label) for label in labels):
        return False
    return bool(_TLD_RE.match(labels[-1]))


class UrlRouter:
    """
    Turns user-supplied text into a validated, normalized retailer URL.
    Pure function of the retailer table and the adapters' URL predicates.
    """
    def __init__(self, retailers: RetailerRegistry | None = None, adapters: AdapterRegistry | None = None) -> None:
        self.retailers = retailers if retailers is not None else RetailerRegistry.default()
        self.adapters = adapters or AdapterRegistry()

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "UrlRouter":
        retailers = RetailerRegistry.from_file(cfg.retailers_path) if cfg.retailers_path else RetailerRegistry.default()
        adapters = AdapterRegistry()
        adapters.discover_entry_points()
        # Allow runtime registration of additional adapters
        for dotted in cfg.extra_adapters:
            try:
                adapter_cls = load_symbol(dotted)
                adapters.register(adapter_cls())
            except Exception as exc:
                logger.warning("Failed to load adapter %s: %r", dotted, exc)
        return cls(retailers, adapters)

    def process_url(self, raw: Optional[str]) -> UrlResolution:
        text = (raw or "").strip()
        if not text:
            return UrlResolution(is_valid=False, error_message=MSG_EMPTY)

        if text.startswith("//"):
            normalized = "https:" + text
        elif "://" in text:
            match = _SCHEME_RE.match(text)
            if not match or match.group(1).lower() not in ("http", "https"):
                return UrlResolution(is_valid=False, normalized_url=text, error_message=MSG_MALFORMED)
            normalized = text
        else:
            normalized = "https://" + text

        parsed = urlparse(normalized)
        try:
            host = parsed.hostname or ""
            parsed.port  # raises on a garbage port
        except ValueError:
            host = ""
        if any(c.isspace() for c in normalized) or not _valid_host(host):
            return UrlResolution(is_valid=False, normalized_url=normalized, error_message=MSG_MALFORMED)

        definition = self.retailers.lookup_by_domain(host)
        if definition is None:
            path = parsed.path.lower()
            looks_like_product = any(hint in path + "/" for hint in _UNSUPPORTED_PRODUCT_HINTS)
            logger.debug("No retailer for host %s (product-like=%s)", host, looks_like_product)
            return UrlResolution(
                is_valid=False,
                normalized_url=normalized,
                is_product_page=looks_like_product,
                error_message=MSG_UNSUPPORTED_PRODUCT if looks_like_product else MSG_NOT_SHOPPING,
            )

        adapter = self.adapters.for_retailer(definition.name)
        return UrlResolution(
            is_valid=True,
            normalized_url=normalized,
            retailer_index=self.retailers.index_of(definition),
            retailer_name=definition.name,
            is_product_page=adapter.looks_like_product_url(parsed.path),
        )

    def resolve_adapter(self, url: str) -> Tuple[Optional[RetailerDefinition], Optional[SiteAdapter]]:
        """Pick the extraction adapter for an already-loaded page URL."""
        try:
            host = urlparse(url).hostname or ""
        except ValueError:
            return None, None
        definition = self.retailers.lookup_by_domain(host)
        if definition is None:
            return None, None
        return definition, self.adapters.for_retailer(definition.name)
