from decimal import Decimal

import pytest

from catalog_crawler.errors import InvalidNumber, MalformedField
from catalog_crawler.utils.parsing import (
    absolute_url,
    clean_description,
    extract_links,
    normalize_url,
    parse_price,
    split_code,
    with_query_param,
)


class TestParsePrice:
    """Price text -> Decimal"""

    def test_euro_suffix(self):
        assert parse_price("12,50 €") == Decimal("12.50")

    def test_suffix_without_space(self):
        assert parse_price("45,00€") == Decimal("45.00")

    def test_plain_decimal(self):
        assert parse_price("7.99") == Decimal("7.99")

    def test_idempotent_on_its_own_output(self):
        first = parse_price("12,50 €")
        assert parse_price(str(first)) == first

    def test_thousands_separator_is_rejected(self):
        with pytest.raises(InvalidNumber) as info:
            parse_price("1.234,00 €")
        assert info.value.field == "price"

    @pytest.mark.parametrize("raw", ["", "€", "free", "-3,00 €", None, "NaN"])
    def test_rejects_non_prices(self, raw):
        with pytest.raises(InvalidNumber):
            parse_price(raw)


class TestSplitCode:
    def test_takes_text_after_hash(self):
        assert split_code("SKU#AB123") == "AB123"

    def test_strips_whitespace(self):
        assert split_code("Item code: # XY9 ") == "XY9"

    def test_keeps_later_hashes(self):
        assert split_code("SKU#AB#1") == "AB#1"

    @pytest.mark.parametrize("raw", [None, "AB123", "SKU#", "SKU#   "])
    def test_malformed(self, raw):
        with pytest.raises(MalformedField) as info:
            split_code(raw)
        assert info.value.field == "code"


def test_clean_description():
    assert clean_description("  nice dress \n") == "nice dress"
    assert clean_description(None) == ""


class TestUrls:
    def test_with_query_param_appends(self):
        assert with_query_param("https://shop.test/x-Dress-y", "country_code", "IE") == \
            "https://shop.test/x-Dress-y?country_code=IE"

    def test_with_query_param_replaces_existing_value(self):
        url = "https://shop.test/x?a=1&country_code=US"
        assert with_query_param(url, "country_code", "IE") == "https://shop.test/x?a=1&country_code=IE"

    def test_absolute_url_resolves_and_drops_fragment(self):
        assert absolute_url("/p#top", "https://shop.test/list/") == "https://shop.test/p"

    def test_normalize_url_canonical_root_and_host(self):
        assert normalize_url("https://Shop.TEST") == "https://shop.test/"
        assert normalize_url("https://shop.test?a=1#x") == "https://shop.test/?a=1"
        assert normalize_url("https://shop.test/A-Dress") == "https://shop.test/A-Dress"

    def test_extract_links_keeps_document_order(self):
        html = '<a href="/b">b</a><a>no href</a><a href=" /a ">a</a><a href="">empty</a>'
        assert extract_links(html) == ["/b", "/a"]
