import csv
import io
import json
from decimal import Decimal

import pytest

from catalog_crawler.adapters.base import Product
from catalog_crawler.export.aggregator import ResultAggregator
from catalog_crawler.export.csv_exporter import CSVExporter
from catalog_crawler.export.json_exporter import JSONExporter


def _product(code, name="Gown", price="10.00", description=""):
    return Product(name=name, code=code, description=description, price=Decimal(price))


class TestResultAggregator:
    def test_preserves_insertion_order_without_dedup(self):
        agg = ResultAggregator()
        for code in ("B", "A", "B"):
            agg.append(_product(code))
        assert [r["Code"] for r in agg.finalize()] == ["B", "A", "B"]

    def test_finalize_only_once(self):
        agg = ResultAggregator()
        agg.append(_product("A"))
        agg.finalize()
        assert agg.finalized
        with pytest.raises(RuntimeError):
            agg.finalize()
        with pytest.raises(RuntimeError):
            agg.append(_product("B"))

    def test_empty_document(self):
        assert ResultAggregator().finalize() == []


class TestJSONExporter:
    def test_stdout_document(self, capsys):
        doc = [_product("AB123", name="Robe d'été", price="45.00", description="nice").to_dict()]
        JSONExporter().export(doc, "-")
        out = capsys.readouterr().out

        assert json.loads(out) == [{"Name": "Robe d'été", "Code": "AB123", "Description": "nice", "Price": 45.0}]
        assert '\n  {\n    "Name": "Robe d\'été",' in out
        assert out.endswith("]\n")

    def test_file_output(self, tmp_path):
        path = tmp_path / "out" / "products.json"
        JSONExporter().export([_product("A").to_dict()], str(path))
        assert json.loads(path.read_text(encoding="utf-8"))[0]["Code"] == "A"


class TestCSVExporter:
    def test_file_output(self, tmp_path):
        path = tmp_path / "products.csv"
        CSVExporter().export([_product("A", description="long, flowing").to_dict()], str(path))
        rows = list(csv.reader(io.StringIO(path.read_text(encoding="utf-8"))))
        assert rows == [["Name", "Code", "Description", "Price"], ["Gown", "A", "long, flowing", "10.0"]]
