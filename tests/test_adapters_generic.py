from decimal import Decimal

from conftest import load_fixture

from shoplens.adapters.base import PageSnapshot
from shoplens.adapters.generic import SchemaOrgAdapter


def test_jsonld_inside_graph():
    adapter = SchemaOrgAdapter()
    url = "https://www.gucci.com/tr/en_gb/pr/women/gg-marmont-small-shoulder-bag-p-443497DTDIT1000"
    product = adapter.extract(PageSnapshot(url=url, html=load_fixture("gucci_jsonld.html")))

    assert product.is_product
    assert product.extraction_method == "structured_data"
    assert product.title == "GG Marmont small shoulder bag"
    assert product.description == "Matelassé chevron leather with heart on back."
    assert product.price == Decimal("98500.00")
    assert product.currency == "TRY"
    assert product.brand == "Gucci"
    assert product.sku == "443497 DTDIT 1000"
    assert product.image_url == "https://media.gucci.com/style/443497_DTDIT_1000_001.jpg"
    assert product.availability == "https://schema.org/InStock"
    color = product.selected_variant("colors")
    assert color.text == "Black" and color.rgb_value == "rgb(0, 0, 0)"


def test_microdata_fallback():
    url = "https://www.swarovski.com/en-TR/p-5614922/Millenia-necklace/"
    product = SchemaOrgAdapter().extract(PageSnapshot(url=url, html=load_fixture("microdata_product.html")))

    assert product.is_product
    assert product.extraction_method == "microdata"
    assert product.title == "Millenia necklace"
    assert product.brand == "Swarovski"
    assert product.price == Decimal("12450")
    assert product.currency == "TRY"
    assert product.sku == "5614922"
    assert product.image_url == "https://www.swarovski.com/images/millenia.jpg"
    assert product.availability == "http://schema.org/OutOfStock"


def test_markup_without_price_is_unsuccessful():
    html = (
        '<script type="application/ld+json">'
        '{"@type": "Product", "name": "Mystery item", "offers": {"@type": "Offer"}}'
        "</script>"
    )
    product = SchemaOrgAdapter().extract(PageSnapshot(url="https://www.cartier.com/en-tr/x", html=html))
    assert product.is_product_page
    assert not product.success
    assert product.title == "Mystery item"


def test_page_without_markup():
    adapter = SchemaOrgAdapter()
    landing = adapter.extract(PageSnapshot(url="https://www.beymen.com/tr/kadin-10006", html="<h1>Kadın</h1>"))
    assert not landing.is_product_page and not landing.success

    product_route = adapter.extract(PageSnapshot(url="https://www.beymen.com/p/elbise-123", html="<h1>Elbise</h1>"))
    assert product_route.is_product_page
    assert not product_route.success


def test_original_price_kept_only_when_higher():
    html = (
        '<script type="application/ld+json">'
        '{"@type": "Product", "name": "Ring", "offers": {"@type": "AggregateOffer",'
        ' "lowPrice": "100", "highPrice": "150", "priceCurrency": "EUR"}}'
        "</script>"
    )
    product = SchemaOrgAdapter().extract(PageSnapshot(url="https://www.cartier.com/en-tr/ring", html=html))
    assert product.price == Decimal("100")
    assert product.original_price == Decimal("150")
    assert product.has_discount
