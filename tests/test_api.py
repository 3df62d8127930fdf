import pytest
from fastapi.testclient import TestClient

from conftest import jsonld_page, load_fixture

from shoplens.apis.app import app, get_config, get_persistence, get_router
from shoplens.config import AppConfig
from shoplens.router import UrlRouter
from shoplens.storage.json_store import MemoryStore

ZARA_URL = "https://www.zara.com/tr/en/textured-linen-shirt-p04786123.html"


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def client(store, tmp_path):
    app.dependency_overrides[get_config] = lambda: AppConfig(storage_path=str(tmp_path / "store.json"))
    app.dependency_overrides[get_router] = lambda: UrlRouter()
    app.dependency_overrides[get_persistence] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["version"]


def test_retailers_carry_their_index(client):
    retailers = client.get("/retailers").json()
    assert retailers[0]["name"] == "Gucci"
    assert retailers[2] == {
        "name": "Zara",
        "domains": ["zara.com"],
        "default_url": "https://www.zara.com/tr/en/",
        "search_template": "https://www.zara.com/tr/en/search?searchTerm={query}",
        "index": 2,
    }


def test_resolve(client):
    body = client.post("/resolve", json={"url": "zara.com/tr/en/shirt-p04786123.html"}).json()
    assert body["is_valid"] is True
    assert body["normalized_url"] == "https://zara.com/tr/en/shirt-p04786123.html"
    assert body["retailer_name"] == "Zara"
    assert body["is_product_page"] is True


def test_resolve_rejects_unknown_site(client):
    body = client.post("/resolve", json={"url": "https://example.com/"}).json()
    assert body["is_valid"] is False
    assert body["error_message"]


def test_search_url(client):
    resp = client.get("/search-url", params={"retailer": 2, "q": "linen shirt"})
    assert resp.status_code == 200
    assert resp.json()["url"] == "https://www.zara.com/tr/en/search?searchTerm=linen%20shirt"


def test_search_url_out_of_range(client):
    assert client.get("/search-url", params={"retailer": 999, "q": "x"}).status_code == 404


def test_extract_from_posted_html(client):
    resp = client.post("/extract", json={"url": ZARA_URL, "html": load_fixture("zara_product.html")})
    body = resp.json()
    assert body["isProductPage"] is True
    assert body["product"]["title"] == "TEXTURED LINEN SHIRT"
    assert body["product"]["extractionMethod"] == "zara-specific"


def test_extract_generic_retailer(client):
    html = jsonld_page("Love Bracelet", "250000", brand="Cartier")
    body = client.post("/extract", json={"url": "https://www.cartier.com/en-tr/love-bracelet", "html": html}).json()
    assert body["isProductPage"] is True
    assert body["product"]["price"] == "250000"


def test_extract_non_product(client):
    body = client.post("/extract", json={"url": ZARA_URL.replace("textured-linen-shirt-p04786123", "man-l737"),
                                         "html": "<html></html>"}).json()
    assert body == {"isProductPage": False, "product": None}


def test_extract_invalid_url(client):
    assert client.post("/extract", json={"url": "not a url", "html": ""}).status_code == 422


def test_cart_lifecycle(client, product):
    payload = {"product": product.to_dict()}
    assert client.post("/cart", json=payload).json() == {"added": True, "count": 1}
    # same identity replaces
    assert client.post("/cart", json=payload).json() == {"added": True, "count": 1}

    listed = client.get("/cart").json()
    assert listed == [product.to_dict()]
    assert client.post("/cart/contains", json=payload).json() == {"contains": True}
    assert client.get("/favorites").json() == []

    assert client.post("/cart/remove", json=payload).json() == {"removed": True, "count": 0}
    assert client.post("/cart/remove", json=payload).json() == {"removed": False, "count": 0}


def test_collection_add_requires_url(client):
    resp = client.post("/favorites", json={"product": {"title": "No url"}})
    assert resp.status_code == 422


def test_clear_favorites(client, product):
    client.post("/favorites", json={"product": product.to_dict()})
    assert client.delete("/favorites").json() == {"cleared": True}
    assert client.get("/favorites").json() == []


def test_settings_defaults_and_update(client, store):
    assert client.get("/settings").json() == {
        "currency": "TRY",
        "dark_mode": False,
        "enable_notifications": True,
        "last_retailer_index": 0,
    }
    body = client.put("/settings", json={"currency": "EUR", "dark_mode": True}).json()
    assert body["currency"] == "EUR" and body["dark_mode"] is True
    assert store.get_setting("darkMode", None) is True
    assert client.get("/settings").json()["currency"] == "EUR"


def test_settings_reject_unknown_currency(client):
    assert client.put("/settings", json={"currency": "JPY"}).status_code == 422
    assert client.get("/settings").json()["currency"] == "TRY"


def test_collection_add_rejects_failed_extraction(client, product):
    payload = dict(product.to_dict(), success=False)
    resp = client.post("/cart", json={"product": payload})
    assert resp.status_code == 422
    assert client.get("/cart").json() == []
