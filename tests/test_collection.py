import json
from dataclasses import replace
from decimal import Decimal

import pytest

from shoplens.adapters.base import VariantOption
from shoplens.identity import identity_key, same_identity
from shoplens.storage.base import PersistenceError
from shoplens.storage.collection import CART_KEY, FAVORITES_KEY, cart_store, favorites_store
from shoplens.storage.json_store import JSONFileStore, MemoryStore


class FailingStore(MemoryStore):
    def __init__(self, raise_error: bool = False) -> None:
        super().__init__()
        self.raise_error = raise_error
        self.fail_writes = False

    def set_list(self, key, items):
        if not self.fail_writes:
            return super().set_list(key, items)
        if self.raise_error:
            raise PersistenceError("disk full")
        return False


def test_identity_ignores_variants_and_fragment(product):
    other = replace(
        product,
        url=product.url + "#details",
        brand="  ZARA ",
        variants={"sizes": [VariantOption(text="M", selected=True)]},
    )
    assert same_identity(product, other)
    assert identity_key(product).brand == "zara"


def test_identity_falls_back_to_title(product):
    a = replace(product, sku=None, title="Linen  Shirt")
    b = replace(product, sku=None, title="Linen Shirt")
    assert identity_key(a).sku_or_title == "Linen Shirt"
    assert same_identity(a, b)
    assert not same_identity(a, replace(b, title="Cotton Shirt"))


def test_add_is_idempotent(memory_store, product):
    cart = cart_store(memory_store)
    assert cart.add(product)
    assert cart.add(product)
    assert cart.list() == [product]
    assert cart.count() == 1


def test_add_replaces_same_identity(memory_store, product):
    cart = cart_store(memory_store)
    first = replace(product, variants={"sizes": [VariantOption(text="S", selected=True)]})
    second = replace(product, variants={"sizes": [VariantOption(text="L", selected=True)]})
    cart.add(first)
    cart.add(second)
    entries = cart.list()
    assert len(entries) == 1
    assert entries[0] == second
    assert entries[0].selected_variant("sizes").text == "L"


def test_replaced_entry_moves_to_the_end(memory_store, product):
    favorites = favorites_store(memory_store)
    other = replace(product, url="https://www.zara.com/tr/en/other-p01111111.html", sku="1111")
    favorites.add(product)
    favorites.add(other)
    favorites.add(replace(product, price=Decimal("999.90")))
    assert [p.sku for p in favorites.list()] == ["1111", "4786/123"]


def test_remove_missing_returns_false_and_keeps_list(memory_store, product):
    favorites = favorites_store(memory_store)
    other = replace(product, sku="other")
    favorites.add(other)
    assert favorites.remove(product) is False
    assert favorites.list() == [other]


def test_remove_and_contains(memory_store, product):
    cart = cart_store(memory_store)
    cart.add(product)
    assert cart.contains(product)
    assert cart.remove(replace(product, variants={"sizes": [VariantOption(text="XL")]}))
    assert not cart.contains(product)
    assert cart.list() == []


def test_cart_and_favorites_are_independent(memory_store, product):
    cart_store(memory_store).add(product)
    assert favorites_store(memory_store).list() == []
    assert memory_store.get_list(CART_KEY)[0]["title"] == "Linen Shirt"
    assert memory_store.get_list(FAVORITES_KEY) == []


def test_clear(memory_store, product):
    cart = cart_store(memory_store)
    cart.add(product)
    assert cart.clear()
    assert cart.count() == 0


@pytest.mark.parametrize("raise_error", [False, True])
def test_write_failure_is_reported(product, raise_error):
    store = FailingStore(raise_error=raise_error)
    cart = cart_store(store)
    assert cart.add(product)
    store.fail_writes = True
    assert cart.add(replace(product, price=Decimal("1.00"))) is False
    assert cart.remove(product) is False
    assert cart.clear() is False
    # nothing partial was written
    assert cart.list() == [product]


def test_json_file_store_persists_across_instances(tmp_path, product):
    path = tmp_path / "nested" / "store.json"
    cart_store(JSONFileStore(path)).add(product)

    reopened = cart_store(JSONFileStore(path))
    assert reopened.list() == [product]
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["lists"][CART_KEY][0]["url"] == product.url


def test_json_file_store_unreadable_file(tmp_path, product):
    path = tmp_path / "store.json"
    path.write_text("{ not json", encoding="utf-8")
    cart = cart_store(JSONFileStore(path))
    assert cart.list() == []
    assert cart.add(product) is False
    assert path.read_text(encoding="utf-8") == "{ not json"


def test_non_object_entries_are_skipped(tmp_path, product):
    path = tmp_path / "store.json"
    path.write_text(json.dumps({"lists": {CART_KEY: [product.to_dict(), "junk", 3]}, "settings": {}}))
    assert cart_store(JSONFileStore(path)).list() == [product]


@pytest.mark.parametrize("changes", [{"success": False}, {"is_product_page": False}])
def test_incomplete_record_is_refused(memory_store, product, changes):
    cart = cart_store(memory_store)
    assert cart.add(replace(product, **changes)) is False
    assert cart.list() == []
    assert memory_store.get_list(CART_KEY) == []
