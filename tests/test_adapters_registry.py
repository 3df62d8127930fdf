from decimal import Decimal

from conftest import jsonld_page

from shoplens.adapters.base import PageSnapshot, ProductInfo
from shoplens.adapters.generic import SchemaOrgAdapter
from shoplens.adapters.inditex import ZaraAdapter
from shoplens.adapters.louisvuitton import LouisVuittonAdapter
from shoplens.adapters.registry import AdapterRegistry
from shoplens.config import AppConfig
from shoplens.router import UrlRouter


class GucciAdapter(SchemaOrgAdapter):
    name = "gucci"
    retailers = ["Gucci"]
    brand = "Gucci"
    extraction_method = "gucci-specific"


def test_for_retailer_is_case_insensitive():
    registry = AdapterRegistry()
    assert isinstance(registry.for_retailer("zara"), ZaraAdapter)
    assert isinstance(registry.for_retailer("Louis Vuitton"), LouisVuittonAdapter)


def test_unknown_retailer_gets_generic():
    registry = AdapterRegistry()
    assert registry.for_retailer("Gucci") is registry.generic
    assert registry.for_retailer(None) is registry.generic


def test_register_replaces_adapter():
    registry = AdapterRegistry()
    registry.register(GucciAdapter())
    assert isinstance(registry.for_retailer("gucci"), GucciAdapter)
    assert any(a.name == "gucci" for a in registry.adapters)


def test_entry_point_discovery_without_plugins():
    assert AdapterRegistry().discover_entry_points("shoplens.test-no-such-group") == 0


def test_extra_adapters_from_config():
    cfg = AppConfig(extra_adapters=["test_adapters_registry:GucciAdapter", "nope.module:Missing"])
    router = UrlRouter.from_config(cfg)
    _, adapter = router.resolve_adapter("https://www.gucci.com/tr/en_gb/pr/bag-p-1")
    assert adapter.name == "gucci"


def test_louis_vuitton_us_store_uses_usd():
    url = "https://us.louisvuitton.com/eng-us/products/speedy-bandouliere-25-monogram-nvprod2420036v/M46234"
    product = LouisVuittonAdapter().extract(PageSnapshot(url=url, html=jsonld_page("Speedy 25", "2,190.00", "TRY")))
    assert product.is_product
    assert product.currency == "USD"
    assert product.price == Decimal("2190.00")
    assert product.brand == "Louis Vuitton"
    assert product.extraction_method == "louisvuitton-structured"


def test_louis_vuitton_other_store_keeps_currency():
    url = "https://tr.louisvuitton.com/tur-tr/products/speedy-25-nvprod2420036v"
    product = LouisVuittonAdapter().extract(PageSnapshot(url=url, html=jsonld_page("Speedy 25", "98000", "TRY")))
    assert product.currency == "TRY"
    assert LouisVuittonAdapter().looks_like_product_url("/tur-tr/products/speedy-25-nvprod2420036v")
    assert isinstance(product, ProductInfo)
