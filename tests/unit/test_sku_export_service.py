"""
Unit tests for SkuExportService.

Run: pytest tests/unit/test_sku_export_service.py -v
"""

import csv
from datetime import date
from io import StringIO

from services.sku_export_service import (
    SkuExportService,
    get_sku_export_service,
    export_filename,
    CSV_HEADER,
)
from services.sku_import_service import SkuImportService

from tests.factories import MappingFactory, VariationFactory


def read_csv(text: str) -> list[list[str]]:
    return list(csv.reader(StringIO(text)))


def catalog_tuples(mock_supabase) -> set[tuple]:
    mappings = {m["id"]: m for m in mock_supabase.rows("sku_mappings")}
    return {
        (
            mappings[v["mapping_id"]]["standard_sku"],
            mappings[v["mapping_id"]]["standard_description"],
            v["variation_sku"],
            v["source"],
            v["customer_id"],
        )
        for v in mock_supabase.rows("sku_variations")
    }


class TestExportCsv:
    """Tests for export_csv()"""

    def test_header_row(self, toner_catalog):
        service = SkuExportService()

        text = service.export_csv()

        assert text.splitlines()[0] == (
            "StandardSKU,StandardDescription,VariationSKU,VariationSource,CustomerName,CustomerID"
        )
        assert read_csv(text)[0][:5] == CSV_HEADER[:5]

    def test_one_row_per_variation(self, toner_catalog):
        # Arrange
        service = SkuExportService()

        # Act
        rows = read_csv(service.export_csv())[1:]

        # Assert
        assert rows == [
            ["CF226X", "HP 26X High Yield Black Toner", "HP26X", "Tech Solutions Inc", "Tech Solutions Inc", "1"],
            ["CE285A", "HP 85A Black Toner", "HP85A", "Customer Provided", "Tech Solutions Inc", "1"],
            ["CE285A", "HP 85A Black Toner", "85A-BLK", "Email Import", "Office Depot Co", "2"],
        ]

    def test_mapping_without_variations_is_omitted(self, toner_catalog):
        service = SkuExportService()

        text = service.export_csv()

        assert "Q2612A" not in text

    def test_fields_quoted_only_when_needed(self, mock_db, mock_supabase, customers):
        # Arrange
        mock_supabase.set_table_data("sku_mappings", [
            MappingFactory.create(id=1, standard_sku="CF226X", standard_description='HP 26X, "XL" box'),
        ])
        mock_supabase.set_table_data("sku_variations", [
            VariationFactory.create(id=1, mapping_id=1, customer_id=1, variation_sku="HP26X", source="Email"),
        ])
        service = SkuExportService()

        # Act
        line = service.export_csv().splitlines()[1]

        # Assert
        assert line == 'CF226X,"HP 26X, ""XL"" box",HP26X,Email,Tech Solutions Inc,1'

    def test_round_trip_into_empty_store(self, toner_catalog):
        # Arrange
        before = catalog_tuples(toner_catalog)
        text = SkuExportService().export_csv()
        toner_catalog.set_table_data("sku_mappings", [])
        toner_catalog.set_table_data("sku_variations", [])

        # Act
        result = SkuImportService().import_file("sku_mappings.csv", text.encode("utf-8"))

        # Assert
        assert result.errors == 0
        assert result.mappings_created == 2
        assert catalog_tuples(toner_catalog) == before


class TestExportJson:
    """Tests for export_json()"""

    def test_nested_structure(self, toner_catalog):
        service = SkuExportService()

        mappings = service.export_json()

        assert [m.standard_sku for m in mappings] == ["CF226X", "CE285A", "Q2612A"]
        assert len(mappings[1].variations) == 2

    def test_search_filters_export(self, toner_catalog):
        service = SkuExportService()

        mappings = service.export_json(search="85A")

        assert [m.standard_sku for m in mappings] == ["CE285A"]


class TestExportFilename:
    """Tests for export_filename()"""

    def test_iso_date(self):
        assert export_filename(date(2024, 5, 1)) == "sku_mappings_2024-05-01.csv"

    def test_defaults_to_today(self):
        assert export_filename() == f"sku_mappings_{date.today().isoformat()}.csv"


def test_singleton(mock_db):
    assert get_sku_export_service() is get_sku_export_service()
