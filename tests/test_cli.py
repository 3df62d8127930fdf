import json

from conftest import FIXTURES

from shoplens.storage.collection import cart_store
from shoplens.storage.json_store import JSONFileStore
from shoplens.ui.cli import run_cli


def test_resolve_prints_resolution(capsys, tmp_path):
    code = run_cli(["--storage", str(tmp_path / "s.json"), "resolve", "www.zara.com/tr/en/"])
    out = json.loads(capsys.readouterr().out)
    assert code == 0
    assert out["retailer_name"] == "Zara"
    assert out["is_product_page"] is False


def test_resolve_invalid_exits_nonzero(capsys, tmp_path):
    assert run_cli(["--storage", str(tmp_path / "s.json"), "resolve", "ftp://zara.com"]) == 1
    assert json.loads(capsys.readouterr().out)["error_message"] == "Invalid URL format"


def test_search_by_name_or_index(capsys, tmp_path):
    storage = str(tmp_path / "s.json")
    assert run_cli(["--storage", storage, "search", "mango", "yaz elbise"]) == 0
    assert capsys.readouterr().out.strip() == "https://shop.mango.com/tr/tr/search?kw=yaz%20elbise"
    assert run_cli(["--storage", storage, "search", "0", "bag"]) == 0
    assert capsys.readouterr().out.strip() == "https://www.gucci.com/tr/en_gb/search?query=bag"
    assert run_cli(["--storage", storage, "search", "nowhere", "bag"]) == 1


def test_extract_from_saved_html(capsys, tmp_path):
    code = run_cli([
        "--storage", str(tmp_path / "s.json"),
        "extract", "https://www.zara.com/tr/en/textured-linen-shirt-p04786123.html",
        "--html", str(FIXTURES / "zara_product.html"),
    ])
    assert code == 0
    assert json.loads(capsys.readouterr().out)["title"] == "TEXTURED LINEN SHIRT"


def test_cart_commands(capsys, tmp_path, product):
    storage = tmp_path / "s.json"
    product_file = tmp_path / "product.json"
    product_file.write_text(json.dumps(product.to_dict()))

    assert run_cli(["--storage", str(storage), "cart", "add", "--json", str(product_file)]) == 0
    assert "Added: Zara | Linen Shirt" in capsys.readouterr().out
    assert cart_store(JSONFileStore(storage)).list() == [product]

    assert run_cli(["--storage", str(storage), "cart", "list"]) == 0
    assert product.url in capsys.readouterr().out

    assert run_cli(["--storage", str(storage), "cart", "remove", "2"]) == 1
    assert run_cli(["--storage", str(storage), "cart", "remove", "1"]) == 0
    assert cart_store(JSONFileStore(storage)).count() == 0


def test_invalid_config_file(tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"load_timeout": 0}))
    assert run_cli(["--config", str(config), "retailers"]) == 2
