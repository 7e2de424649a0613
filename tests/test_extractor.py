from decimal import Decimal

import pytest

from catalog_crawler.adapters.base import Product
from catalog_crawler.adapters.catalog import CatalogDetailAdapter, CatalogSelectors
from catalog_crawler.adapters.registry import AdapterRegistry
from catalog_crawler.errors import ExtractionError, InvalidNumber, MalformedField, MissingField

from conftest import detail_page

URL = "https://shop.test/x-Dress-y?country_code=IE"


class TestCatalogDetailAdapter:
    """Detail page -> Product"""

    def setup_method(self):
        self.adapter = CatalogDetailAdapter()

    def test_well_formed_page(self):
        product = self.adapter.extract(URL, detail_page())
        assert product == Product(name="Red Gown", code="AB123", description="nice dress", price=Decimal("45.00"))
        assert product.to_dict() == {"Name": "Red Gown", "Code": "AB123", "Description": "nice dress", "Price": 45.0}

    @pytest.mark.parametrize("description", [None, "", "   "])
    def test_description_is_optional(self, description):
        product = self.adapter.extract(URL, detail_page(description=description))
        assert product.description == ""

    def test_missing_code_is_malformed(self):
        with pytest.raises(MalformedField) as info:
            self.adapter.extract(URL, detail_page(code=None))
        assert info.value.field == "code"
        assert info.value.url == URL

    def test_code_without_separator_is_malformed(self):
        with pytest.raises(MalformedField):
            self.adapter.extract(URL, detail_page(code="AB123"))

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_missing_name(self, name):
        with pytest.raises(MissingField) as info:
            self.adapter.extract(URL, detail_page(name=name))
        assert info.value.field == "name"

    def test_name_checked_before_code(self):
        with pytest.raises(MissingField):
            self.adapter.extract(URL, detail_page(name=None, code=None))

    def test_bad_price_rejects_record(self):
        with pytest.raises(InvalidNumber) as info:
            self.adapter.extract(URL, detail_page(price="1.234,00 €"))
        assert info.value.field == "price"
        assert URL in str(info.value)

    def test_missing_price_rejects_record(self):
        with pytest.raises(InvalidNumber):
            self.adapter.extract(URL, detail_page(price=None))

    def test_all_failures_share_a_base_class(self):
        with pytest.raises(ExtractionError):
            self.adapter.extract(URL, "<html></html>")

    def test_product_is_immutable(self):
        product = self.adapter.extract(URL, detail_page())
        with pytest.raises(AttributeError):
            product.price = Decimal("0")

    def test_custom_selectors(self):
        adapter = CatalogDetailAdapter(CatalogSelectors(name="h2.title", code="#sku", price=".p", description=".d"))
        html = '<h2 class="title">Hat</h2><i id="sku">REF#H1</i><b class="p">9,90 €</b>'
        assert adapter.extract(URL, html) == Product("Hat", "H1", "", Decimal("9.90"))


class _ShoeAdapter:
    name = "shoes"
    domains = ["shoes.test"]

    def matches(self, url):
        return "shoes.test" in url

    def extract(self, url, html):
        return Product("Shoe", "S1", "", Decimal("1"))


class TestAdapterRegistry:
    def test_falls_back_to_catalog_adapter(self):
        registry = AdapterRegistry()
        assert isinstance(registry.match(URL), CatalogDetailAdapter)

    def test_specific_adapter_wins(self):
        registry = AdapterRegistry()
        shoes = _ShoeAdapter()
        registry.register(shoes)
        assert registry.match("https://shoes.test/x-Dress-1") is shoes
        assert isinstance(registry.match(URL), CatalogDetailAdapter)
        assert len(registry.adapters) == 2

    def test_entry_point_discovery_without_plugins(self):
        assert AdapterRegistry().discover_entry_points(group="catalog_crawler.tests.none") == 0
