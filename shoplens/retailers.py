from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple
from urllib.parse import quote

logger = logging.getLogger(__name__)

# Suffixes under which a retailer's regional storefronts live (gucci.com / gucci.com.tr).
KNOWN_SUFFIXES: FrozenSet[str] = frozenset({
    "com", "net", "org", "co", "eu", "us", "uk", "co.uk", "de", "fr", "es", "it", "nl",
    "tr", "com.tr", "ae", "com.au", "ca", "jp", "cn",
})


def bare_host(host: str) -> str:
    host = host.strip().lower().rstrip(".")
    if ":" in host:
        host = host.split(":", 1)[0]
    return host[4:] if host.startswith("www.") else host


def split_suffix(host: str) -> Tuple[str, str]:
    """Split ``shop.gucci.com.tr`` into (``shop.gucci``, ``com.tr``) using KNOWN_SUFFIXES."""
    labels = host.split(".")
    if len(labels) >= 3 and ".".join(labels[-2:]) in KNOWN_SUFFIXES:
        return ".".join(labels[:-2]), ".".join(labels[-2:])
    if len(labels) >= 2:
        return ".".join(labels[:-1]), labels[-1]
    return host, ""


@dataclass(frozen=True)
class RetailerDefinition:
    """
    A supported retailer. ``domains`` lists the hosts it is reachable under;
    ``search_template`` contains a ``{query}`` placeholder.
    """
    name: str
    domains: FrozenSet[str]
    default_url: str
    search_template: str

    def search_url(self, query: str) -> str:
        return self.search_template.replace("{query}", quote(query, safe=""))

    def matches_host(self, host: str) -> bool:
        candidate = bare_host(host)
        if "." not in candidate or candidate in KNOWN_SUFFIXES:
            return False
        for domain in self.domains:
            domain = bare_host(domain)
            if candidate == domain:
                return True
            # subdomains in either direction (shop.mango.com vs mango.com)
            if candidate.endswith("." + domain) or domain.endswith("." + candidate):
                return True
            # regional storefronts sharing the brand label, on known suffixes only
            host_stem, host_suffix = split_suffix(candidate)
            dom_stem, dom_suffix = split_suffix(domain)
            if (
                host_suffix in KNOWN_SUFFIXES
                and dom_suffix in KNOWN_SUFFIXES
                and host_stem.split(".")[-1] == dom_stem.split(".")[-1]
            ):
                return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "domains": sorted(self.domains),
            "default_url": self.default_url,
            "search_template": self.search_template,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetailerDefinition":
        return cls(
            name=data["name"],
            domains=frozenset(data["domains"]),
            default_url=data["default_url"],
            search_template=data["search_template"],
        )


def _retailer(name: str, domains: Iterable[str], default_url: str, search: str) -> RetailerDefinition:
    return RetailerDefinition(name=name, domains=frozenset(domains), default_url=default_url, search_template=search)


DEFAULT_RETAILERS: Tuple[RetailerDefinition, ...] = (
    _retailer("Gucci", ["gucci.com"], "https://www.gucci.com/tr/en_gb/",
              "https://www.gucci.com/tr/en_gb/search?query={query}"),
    _retailer("Louis Vuitton", ["louisvuitton.com", "us.louisvuitton.com"], "https://us.louisvuitton.com/eng-us/homepage",
              "https://us.louisvuitton.com/eng-us/search/{query}"),
    _retailer("Zara", ["zara.com"], "https://www.zara.com/tr/en/",
              "https://www.zara.com/tr/en/search?searchTerm={query}"),
    _retailer("Stradivarius", ["stradivarius.com"], "https://www.stradivarius.com/tr/en/",
              "https://www.stradivarius.com/tr/en/search?term={query}"),
    _retailer("Cartier", ["cartier.com"], "https://www.cartier.com/en-tr/home",
              "https://www.cartier.com/en-tr/search?q={query}"),
    _retailer("Swarovski", ["swarovski.com"], "https://www.swarovski.com/en-TR/",
              "https://www.swarovski.com/en-TR/search/?q={query}"),
    _retailer("Guess", ["guess.eu"], "https://www.guess.eu/en-tr/home",
              "https://www.guess.eu/en-tr/search?q={query}"),
    _retailer("Mango", ["shop.mango.com", "mango.com"], "https://shop.mango.com/tr/tr/h/kadin",
              "https://shop.mango.com/tr/tr/search?kw={query}"),
    _retailer("Bershka", ["bershka.com"], "https://www.bershka.com/tr/en/",
              "https://www.bershka.com/tr/en/search?q={query}"),
    _retailer("Massimo Dutti", ["massimodutti.com"], "https://www.massimodutti.com/tr/",
              "https://www.massimodutti.com/tr/search?term={query}"),
    _retailer("Deep Atelier", ["deepatelier.co"], "https://www.deepatelier.co/",
              "https://www.deepatelier.co/search?q={query}"),
    _retailer("Pandora", ["tr.pandora.net"], "https://tr.pandora.net/",
              "https://tr.pandora.net/search?q={query}"),
    _retailer("Miu Miu", ["miumiu.com"], "https://www.miumiu.com/tr/tr.html",
              "https://www.miumiu.com/tr/tr/search?q={query}"),
    _retailer("Victoria's Secret", ["victoriassecret.com.tr"], "https://www.victoriassecret.com.tr/",
              "https://www.victoriassecret.com.tr/search?q={query}"),
    _retailer("Nocturne", ["nocturne.com.tr"], "https://www.nocturne.com.tr/",
              "https://www.nocturne.com.tr/arama?q={query}"),
    _retailer("Beymen", ["beymen.com"], "https://www.beymen.com/tr/kadin-10006",
              "https://www.beymen.com/tr/search?q={query}"),
    _retailer("Lacoste", ["lacoste.com.tr"], "https://www.lacoste.com.tr/",
              "https://www.lacoste.com.tr/arama?search={query}"),
    _retailer("Manc", ["tr.mancofficial.com"], "https://tr.mancofficial.com/",
              "https://tr.mancofficial.com/search?type=product&q={query}"),
    _retailer("Ipekyol", ["ipekyol.com.tr"], "https://www.ipekyol.com.tr/",
              "https://www.ipekyol.com.tr/arama?q={query}"),
    _retailer("Sandro", ["sandro.com.tr"], "https://www.sandro.com.tr/",
              "https://www.sandro.com.tr/search?q={query}"),
)


class RetailerRegistry:
    """
    Ordered, immutable table of supported retailers. Pure lookups, no I/O
    after construction; unknown hosts return None.
    """
    def __init__(self, definitions: Iterable[RetailerDefinition] = DEFAULT_RETAILERS) -> None:
        self._definitions: Tuple[RetailerDefinition, ...] = tuple(definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self):
        return iter(self._definitions)

    def all(self) -> List[RetailerDefinition]:
        return list(self._definitions)

    def get(self, index: int) -> Optional[RetailerDefinition]:
        if 0 <= index < len(self._definitions):
            return self._definitions[index]
        return None

    def index_of(self, definition: RetailerDefinition) -> int:
        return self._definitions.index(definition)

    def lookup_by_domain(self, host: str) -> Optional[RetailerDefinition]:
        if not host:
            return None
        # exact (www-insensitive) matches take precedence over subdomain/regional ones
        candidate = bare_host(host)
        for definition in self._definitions:
            if any(bare_host(d) == candidate for d in definition.domains):
                return definition
        for definition in self._definitions:
            if definition.matches_host(host):
                return definition
        return None

    def search_url(self, index: int, query: str) -> str:
        definition = self.get(index)
        if definition is None:
            logger.debug("search_url: no retailer at index %s", index)
            return ""
        return definition.search_url(query)

    # ---- Loaders ----

    @classmethod
    def default(cls) -> "RetailerRegistry":
        return cls(DEFAULT_RETAILERS)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "RetailerRegistry":
        """Load a retailer table from a JSON list of definitions."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list) or not data:
            raise ValueError(f"{path}: expected a non-empty list of retailer definitions")
        return cls(RetailerDefinition.from_dict(item) for item in data)
