import json

import pytest

from shoplens.retailers import DEFAULT_RETAILERS, RetailerDefinition, RetailerRegistry, split_suffix


@pytest.fixture
def registry():
    return RetailerRegistry.default()


def test_default_table_has_all_retailers(registry):
    names = [d.name for d in registry.all()]
    assert len(registry) == 20
    assert names[:3] == ["Gucci", "Louis Vuitton", "Zara"]
    assert "Victoria's Secret" in names and "Sandro" in names


@pytest.mark.parametrize(
    "host,expected",
    [
        ("www.zara.com", "Zara"),
        ("ZARA.COM", "Zara"),
        ("shop.mango.com", "Mango"),
        ("gucci.com.tr", "Gucci"),
        ("us.louisvuitton.com", "Louis Vuitton"),
        ("tr.pandora.net", "Pandora"),
        ("www.victoriassecret.com.tr", "Victoria's Secret"),
        ("tr.mancofficial.com", "Manc"),
        ("www.guess.eu", "Guess"),
    ],
)
def test_lookup_by_domain(registry, host, expected):
    definition = registry.lookup_by_domain(host)
    assert definition is not None
    assert definition.name == expected


@pytest.mark.parametrize("host", ["example.com", "notzara.com", "zara", "com.tr", "", "net"])
def test_lookup_unknown_host_returns_none(registry, host):
    assert registry.lookup_by_domain(host) is None


def test_search_url_encodes_query(registry):
    assert registry.search_url(2, "red dress") == "https://www.zara.com/tr/en/search?searchTerm=red%20dress"
    assert registry.search_url(7, "çanta & kemer") == (
        "https://shop.mango.com/tr/tr/search?kw=%C3%A7anta%20%26%20kemer"
    )


@pytest.mark.parametrize("index", [-1, 20, 99])
def test_search_url_out_of_range_is_empty(registry, index):
    assert registry.search_url(index, "shoes") == ""


def test_every_default_url_maps_back_to_its_retailer(registry):
    from urllib.parse import urlparse

    for definition in DEFAULT_RETAILERS:
        host = urlparse(definition.default_url).hostname
        assert registry.lookup_by_domain(host) is definition


def test_split_suffix():
    assert split_suffix("shop.gucci.com.tr") == ("shop.gucci", "com.tr")
    assert split_suffix("zara.com") == ("zara", "com")


def test_from_file(tmp_path):
    path = tmp_path / "retailers.json"
    path.write_text(json.dumps([
        {
            "name": "Example",
            "domains": ["example.com"],
            "default_url": "https://example.com/",
            "search_template": "https://example.com/s?q={query}",
        }
    ]))
    registry = RetailerRegistry.from_file(path)
    assert len(registry) == 1
    assert registry.lookup_by_domain("www.example.com").name == "Example"
    assert registry.search_url(0, "a b") == "https://example.com/s?q=a%20b"


def test_from_file_rejects_empty_list(tmp_path):
    path = tmp_path / "retailers.json"
    path.write_text("[]")
    with pytest.raises(ValueError):
        RetailerRegistry.from_file(path)


def test_definition_round_trips_through_dict():
    definition = DEFAULT_RETAILERS[0]
    assert RetailerDefinition.from_dict(definition.to_dict()) == definition
