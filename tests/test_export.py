"""
Tests for the CSV allergen report.
"""

import csv
import io

import pytest
from conftest import ingredient, make_dish, step

from menuguard.services.export import (
    BOM,
    CSV_HEADERS,
    EmptyMenuError,
    render_menu_csv,
    report_filename,
)


def _rows(content):
    assert content.startswith(BOM)
    return list(csv.reader(io.StringIO(content[len(BOM):])))


class TestRenderMenuCsv:
    def test_empty_menu_raises(self):
        with pytest.raises(EmptyMenuError):
            render_menu_csv([])

    def test_layout(self):
        dishes = [
            make_dish(dish_id="1", name="Lava Cake", category="Desserts", price=8.0,
                      ingredients=[ingredient("Egg", ["Eggs"])]),
            make_dish(
                dish_id="2", name="Shrimp Pasta", category="Mains", price=18.5,
                description="Garlic shrimp, linguine",
                ingredients=[
                    ingredient("Shrimp", ["Shellfish"]),
                    ingredient("Parmesan", ["Milk"], substitutes=[("Nutritional Yeast", [])]),
                    ingredient("Chili Flakes", [], removable=True),
                ],
                steps=[step(1, ["Fish"])],
                calories=640.0,
                protein_g=32.5,
            ),
        ]
        rows = _rows(render_menu_csv(dishes))
        assert rows[0] == CSV_HEADERS
        assert rows[1] == ["Desserts"] + [""] * 9
        assert rows[2][:5] == ["", "Lava Cake", "", "$8.00", "Eggs"]
        assert rows[3] == [""] * 10
        assert rows[4][0] == "Mains"
        assert rows[5] == [
            "",
            "Shrimp Pasta",
            "Garlic shrimp, linguine",
            "$18.50",
            "Milk, Shellfish",
            "Fish",
            "Chili Flakes",
            "Parmesan -> Nutritional Yeast",
            "640",
            "32.5",
        ]
        assert rows[6] == [""] * 10
        assert len(rows) == 7

    def test_every_field_is_quoted(self):
        content = render_menu_csv([make_dish(name="Soup", category="Starters")])
        header = content[len(BOM):].split("\n")[0]
        assert header.startswith('"Category","Dish Name"')

    def test_no_trailing_newline(self):
        assert not render_menu_csv([make_dish()]).endswith("\n")


def test_report_filename_replaces_spaces():
    assert report_filename("The Golden  Fork") == "The-Golden-Fork-allergen-report.csv"
