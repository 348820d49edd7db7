"""
Tests for BOM import
"""

import io
import json
import os
import tempfile
import unittest
from decimal import Decimal

import pandas as pd

from bom_engine import BomEngine
from bom_config import EngineSettings
from bom_errors import BomFormatError, InvalidNumber
from bom_loader import (
    cell_text,
    decimal_text,
    find_column,
    parse_flat_bom,
    parse_indented_bom,
    parse_json_bom,
    read_bom_file,
)


INDENTED_ROWS = [
    # Level, Component number, Object description, Comp. Qty (BUn), Component unit, Material Type, Cost
    ["1", "FG100", "Pump", "1", "EA", "FERT", "20"],
    ["2", "ASM-1", "Housing", "2", "EA", "HALB", "5"],
    ["3", "RM-A", "Bolt", "3", "EA", "ROH", "1.5"],
    ["3", "RM-B", "Sealant", "0,5", "L", "ROH", "4"],
    ["2", "RM-A", "Bolt", "1", "EA", "ROH", "1.5"],
    ["2", "ASM-1", "Housing", "1", "EA", "HALB", "5"],
    ["3", "RM-A", "Bolt", "3", "EA", "ROH", "1.5"],
    ["3", "RM-B", "Sealant", "0,5", "L", "ROH", "4"],
]
INDENTED_COLUMNS = [
    "Level", "Component number", "Object description", "Comp. Qty (BUn)",
    "Component unit", "Material Type", "Cost",
]


def new_engine():
    return BomEngine(EngineSettings())


class TestHelpers(unittest.TestCase):

    def test_cell_text(self):
        self.assertEqual(cell_text(None), "")
        self.assertEqual(cell_text(float("nan")), "")
        self.assertEqual(cell_text(2.0), "2")
        self.assertEqual(cell_text(" 0,5 "), "0,5")

    def test_decimal_text(self):
        self.assertEqual(decimal_text(" 0,5 "), "0.5")
        self.assertEqual(decimal_text("12,25"), "12.25")
        self.assertEqual(decimal_text("3"), "3")
        # thousands separators are left for the engine to reject
        self.assertEqual(decimal_text("1,000"), "1,000")
        self.assertEqual(decimal_text("1,000.5"), "1,000.5")

    def test_find_column_prefers_exact_header(self):
        df = pd.DataFrame(columns=["Comp. Qty (BUn)", "Component unit", "Component number"])
        self.assertEqual(find_column(df, ["component number", "component"]), "Component number")
        self.assertEqual(find_column(df, ["unit", "uom", "bun"], exclude=["qty"]), "Component unit")
        self.assertIsNone(find_column(df, ["level"]))


class TestIndentedBom(unittest.TestCase):

    def setUp(self):
        self.df = pd.DataFrame(INDENTED_ROWS, columns=INDENTED_COLUMNS)

    def test_components_and_root(self):
        data = parse_indented_bom(self.df)
        self.assertEqual(data.root_id, "FG100")
        self.assertEqual([c["id"] for c in data.components], ["FG100", "ASM-1", "RM-A", "RM-B"])
        self.assertEqual(data.components[0]["name"], "Pump")
        self.assertEqual(data.components[3]["uom"], "L")
        self.assertEqual(data.components[1]["component_type"], "HALB")

    def test_repeated_assembly_children_counted_once(self):
        data = parse_indented_bom(self.df)
        self.assertEqual(
            [(i["parent_id"], i["child_id"], i["quantity"]) for i in data.items],
            [
                ("FG100", "ASM-1", "2"),
                ("ASM-1", "RM-A", "3"),
                ("ASM-1", "RM-B", "0.5"),
                ("FG100", "RM-A", "1"),
                ("FG100", "ASM-1", "1"),
            ],
        )

    def test_loaded_engine(self):
        engine = parse_indented_bom(self.df).load_into(new_engine())
        self.assertEqual(engine.explode("FG100"), {"ASM-1": "3", "RM-A": "10", "RM-B": "1.5"})
        # 20 + 3 * (5 + 3*1.5 + 0.5*4) + 1.5
        self.assertEqual(engine.total_cost("FG100"), "56")

    def test_additional_level_one_rows_belong_to_root(self):
        df = pd.DataFrame(
            [["1", "TOP", "1"], ["2", "X", "2"], ["1", "Y", "4"]],
            columns=["Level", "Component number", "Quantity"],
        )
        data = parse_indented_bom(df)
        self.assertEqual(
            [(i["parent_id"], i["child_id"]) for i in data.items],
            [("TOP", "X"), ("TOP", "Y")],
        )

    def test_missing_quantity_defaults_to_one(self):
        df = pd.DataFrame([["1", "TOP"], ["2", "X"]], columns=["Level", "Component number"])
        self.assertEqual(parse_indented_bom(df).items[0]["quantity"], "1")

    def test_bad_quantity_fails_on_load(self):
        df = pd.DataFrame(
            [["1", "TOP", "1"], ["2", "X", "lots"]],
            columns=["Level", "Component number", "Quantity"],
        )
        with self.assertRaises(InvalidNumber):
            parse_indented_bom(df).load_into(new_engine())

    def test_missing_columns(self):
        with self.assertRaises(BomFormatError):
            parse_indented_bom(pd.DataFrame({"Foo": ["1"]}))

    def test_bad_level(self):
        df = pd.DataFrame([["one", "TOP"]], columns=["Level", "Component number"])
        with self.assertRaises(BomFormatError):
            parse_indented_bom(df)


class TestFlatBom(unittest.TestCase):

    def test_parent_child_rows(self):
        df = pd.DataFrame(
            [["A", "B", "2", "2"], ["A", "C", "1", "3"]],
            columns=["parent", "child", "quantity", "cost"],
        )
        engine = parse_flat_bom(df).load_into(new_engine())
        self.assertEqual(engine.explode("A"), {"B": "2", "C": "1"})
        self.assertEqual(engine.total_cost("A"), "7")

    def test_missing_columns(self):
        with self.assertRaises(BomFormatError):
            parse_flat_bom(pd.DataFrame({"from": ["A"], "to": ["B"]}))


class TestJsonBom(unittest.TestCase):

    DOCUMENT = {
        "components": [
            {"id": "A", "description": "Assembly", "standard_cost": 1.1},
            {"id": "B", "description": "Part", "standard_cost": "0.3"},
        ],
        "bom_items": [
            {"parent_id": "A", "child_id": "B", "quantity": 2.5, "sequence": 20},
        ],
    }

    def test_numbers_stay_exact(self):
        data = parse_json_bom(json.dumps(self.DOCUMENT))
        self.assertEqual(data.components[0]["standard_cost"], Decimal("1.1"))
        self.assertEqual(data.items[0]["sequence"], 20)
        engine = data.load_into(new_engine())
        # 1.1 + 2.5 * 0.3
        self.assertEqual(engine.total_cost("A"), "1.85")

    def test_rejects_malformed_documents(self):
        for text in ["{", "[]", json.dumps({"components": [], "bom_items": [{"parent_id": "A"}]})]:
            with self.subTest(text=text):
                with self.assertRaises(BomFormatError):
                    parse_json_bom(text)


class TestReadBomFile(unittest.TestCase):

    def test_json_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "bom.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump(TestJsonBom.DOCUMENT, f)
            data = read_bom_file(path)
        self.assertEqual(len(data.items), 1)

    def test_missing_json_path(self):
        with self.assertRaises(BomFormatError):
            read_bom_file("/nonexistent/bom.json")

    def test_csv_buffer_dispatch(self):
        indented = io.StringIO(pd.DataFrame(INDENTED_ROWS, columns=INDENTED_COLUMNS).to_csv(index=False))
        self.assertEqual(read_bom_file(indented, name="export.csv").root_id, "FG100")

        flat = io.StringIO("parent,child,quantity\nA,B,0.25\n")
        data = read_bom_file(flat, name="flat.csv")
        self.assertEqual(data.items[0]["quantity"], "0.25")

    def test_empty_table(self):
        with self.assertRaises(BomFormatError):
            read_bom_file(io.StringIO("parent,child,quantity\n"), name="empty.csv")

    def test_missing_table_path(self):
        with self.assertRaises(BomFormatError):
            read_bom_file("/nonexistent/bom.csv")

    def test_blank_file(self):
        with self.assertRaises(BomFormatError):
            read_bom_file(io.StringIO(""), name="blank.csv")

    def test_thousands_separator_fails_on_load(self):
        data = read_bom_file(io.StringIO("parent,child,quantity\nA,B,\"1,000\"\n"), name="flat.csv")
        with self.assertRaises(InvalidNumber):
            data.load_into(new_engine())


if __name__ == "__main__":
    unittest.main()
