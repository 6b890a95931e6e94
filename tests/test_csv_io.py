from decimal import Decimal

import pytest

from storefront.services import csv_io

HEADER = "name,slug,basePrice,salePrice,stock,tags,isActive\n"


def test_parse_import_reports_bad_lines_and_keeps_going():
    text = HEADER + "Linen Shirt,linen-shirt,1299,999,15,\"summer, linen\",true\n" + ",no-name,10,,,,\n" + "\n"
    text += "Belt,belt,abc,,,,\n"
    result = csv_io.parse_import("\ufeff" + text)

    assert [r.slug for r in result.rows] == ["linen-shirt"]
    row = result.rows[0]
    assert row.base_price == Decimal("1299")
    assert row.sale_price == Decimal("999")
    assert row.tags == ["summer", "linen"]
    assert row.is_active is True
    assert result.errors == ["Line 3: name is required", "Line 5: invalid basePrice 'abc'"]


@pytest.mark.parametrize(
    "record, message",
    [
        ({"name": "A", "slug": "a", "basePrice": "-1"}, "basePrice must not be negative"),
        ({"name": "A", "slug": "a", "basePrice": "1", "stock": "-2"}, "stock must not be negative"),
        ({"name": "A", "slug": "a", "basePrice": "1", "categoryId": "shoes"}, "invalid categoryId 'shoes'"),
    ],
)
def test_parse_row_rejects(record, message):
    with pytest.raises(ValueError, match=message):
        csv_io.parse_row(record)


def test_empty_file():
    assert csv_io.parse_import("").errors == ["CSV file is empty"]


def test_to_csv_formats_cells():
    text = csv_io.to_csv([{"a": True, "b": None, "c": ["x", "y"], "extra": 1}], ["a", "b", "c"])
    assert text == 'a,b,c\ntrue,,"x, y"\n'


def test_template_round_trips():
    result = csv_io.parse_import(csv_io.template_csv())
    assert result.errors == []
    assert result.rows[0].slug == "sample-product"
    assert result.rows[0].stock == 100
