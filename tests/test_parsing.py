from decimal import Decimal

import pytest

from shoplens.utils.parsing import detect_currency, is_product_like, normalize_url, parse_price


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1.234,56 TL", Decimal("1234.56")),
        ("$1,299.00", Decimal("1299.00")),
        ("₺ 2.499", Decimal("2499")),
        ("1.299,90 ₺", Decimal("1299.90")),
        ("49,95 €", Decimal("49.95")),
        ("£1,250", Decimal("1250")),
        (1299, Decimal("1299")),
        (12.5, Decimal("12.5")),
        ("Free", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_price(raw, expected):
    assert parse_price(raw) == expected


@pytest.mark.parametrize(
    "text,code",
    [("1.234,56 TL", "TRY"), ("₺ 99", "TRY"), ("$10", "USD"), ("10 €", "EUR"), ("£5", "GBP"), ("10", None)],
)
def test_detect_currency(text, code):
    assert detect_currency(text) == code


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/p/12345", True),
        ("/tr/urun/ceket", True),
        ("/products/linen-shirt", True),
        ("/product-p123", True),
        ("/tr/en/woman-new-l1180.html", False),
        ("/", False),
    ],
)
def test_is_product_like(path, expected):
    assert is_product_like(path) is expected


def test_normalize_url_drops_fragment():
    assert normalize_url("https://zara.com/a?x=1#reviews") == "https://zara.com/a?x=1"
