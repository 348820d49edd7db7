"""
Tests for the engine facade and its settings
"""

import threading
import unittest
from decimal import Decimal

from bom_config import EngineSettings, MERGE, REJECT, load_settings
from bom_engine import BomEngine, component_from_record, create_engine
from bom_errors import (
    ComponentNotFound,
    CycleDetected,
    DuplicateEdgePolicyViolation,
    InvalidComponent,
    InvalidNumber,
)


class TestEngineContract(unittest.TestCase):
    """The text-in/text-out contract used by outer layers"""

    def setUp(self):
        self.engine = create_engine(EngineSettings())
        self.engine.add_component({"id": "A", "direct_cost": "0"})
        self.engine.add_component({"id": "B", "direct_cost": "2"})
        self.engine.add_component({"id": "C", "direct_cost": "3"})
        self.engine.add_item("A", "B", "2")
        self.engine.add_item("A", "C", "1")

    def test_example_graph(self):
        self.assertEqual(self.engine.explode("A", "1"), {"B": "2", "C": "1"})
        self.assertEqual(self.engine.total_cost("A", "1"), "7")
        self.assertEqual(self.engine.where_used("B"), ["A"])

    def test_total_cost_defaults_to_one_unit(self):
        self.assertEqual(self.engine.total_cost("A"), "7")
        self.assertEqual(self.engine.total_cost("A", "2.5"), "17.5")

    def test_leaf_explodes_to_empty_mapping(self):
        self.assertEqual(self.engine.explode("B", "4"), {})
        self.assertEqual(self.engine.total_cost("B", "4"), "8")

    def test_unknown_id_fails_everywhere(self):
        for call in (
            lambda: self.engine.explode("Z", "1"),
            lambda: self.engine.total_cost("Z", "1"),
            lambda: self.engine.where_used("Z"),
        ):
            with self.assertRaises(ComponentNotFound):
                call()

    def test_unparseable_quantity(self):
        with self.assertRaises(InvalidNumber):
            self.engine.explode("A", "ten")
        with self.assertRaises(InvalidNumber):
            self.engine.add_item("A", "B", "1..0")

    def test_thousands_separator_is_not_a_number(self):
        for call in (
            lambda: self.engine.explode("A", "1,000"),
            lambda: self.engine.total_cost("A", "1,000"),
        ):
            with self.assertRaises(InvalidNumber):
                call()

    def test_cycle_rejected_without_partial_result(self):
        self.engine.add_item("C", "A", "1")
        with self.assertRaises(CycleDetected):
            self.engine.explode("A", "1")
        with self.assertRaises(CycleDetected):
            self.engine.total_cost("A", "1")
        # B is outside the cycle and still computes
        self.assertEqual(self.engine.total_cost("B"), "2")

    def test_idempotent(self):
        self.assertEqual(self.engine.explode("A", "3"), self.engine.explode("A", "3"))
        self.assertEqual(self.engine.total_cost("A", "3"), self.engine.total_cost("A", "3"))

    def test_validate(self):
        self.engine.validate()
        self.engine.add_item("C", "GHOST", "1")
        with self.assertRaises(ComponentNotFound):
            self.engine.validate()
        self.engine.add_component({"id": "GHOST"})
        self.engine.add_item("GHOST", "A", "1")
        with self.assertRaises(CycleDetected) as ctx:
            self.engine.validate()
        self.assertEqual(ctx.exception.code, "CYCLE_DETECTED")

    def test_stats(self):
        self.assertEqual(
            self.engine.stats(),
            {"components": 3, "items": 2, "roots": 1, "leaves": 2},
        )

    def test_concurrent_adds_and_queries(self):
        errors = []

        def writer(n):
            try:
                for i in range(50):
                    cid = f"W{n}-{i}"
                    self.engine.add_component({"id": cid, "direct_cost": "1"})
                    self.engine.add_item("C", cid, "1")
            except Exception as exc:  # collected for the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for _ in range(20):
            self.engine.explode("A", "1")
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(len(self.engine.explode("A", "1")), 2 + 200)
        # A = 2*2 + 1*(3 + 200)
        self.assertEqual(self.engine.total_cost("A"), "207")


class TestComponentRecords(unittest.TestCase):

    def test_alias_fields_and_metadata(self):
        component = component_from_record({
            "id": "RM1",
            "description": "Steel",
            "standard_cost": "12.5",
            "organization": "PLANT1",
        }, default_uom="KG")
        self.assertEqual(component.name, "Steel")
        self.assertEqual(component.direct_cost, Decimal("12.5"))
        self.assertEqual(component.uom, "KG")
        self.assertEqual(component.metadata, {"organization": "PLANT1"})

    def test_missing_cost_is_zero(self):
        self.assertEqual(component_from_record({"id": "X", "cost": None}).direct_cost, Decimal(0))

    def test_missing_id(self):
        with self.assertRaises(InvalidComponent):
            component_from_record({"name": "no id"})
        with self.assertRaises(InvalidComponent):
            component_from_record(["X"])

    def test_load(self):
        engine = BomEngine(EngineSettings())
        engine.load(
            [{"id": "P", "cost": "1"}, {"id": "Q", "cost": "2"}],
            [{"parent_id": "P", "child_id": "Q", "quantity": "3", "scrap_factor": "0.1"}],
        )
        self.assertEqual(engine.explode("P"), {"Q": "3.3"})
        self.assertEqual(engine.total_cost("P"), "7.6")

    def test_load_sequences(self):
        engine = BomEngine(EngineSettings())
        engine.load(
            [{"id": "P"}, {"id": "Q"}, {"id": "R"}],
            [
                {"parent_id": "P", "child_id": "Q", "quantity": "1", "sequence": " 30 "},
                {"parent_id": "P", "child_id": "R", "quantity": "1", "sequence": Decimal(40)},
            ],
        )
        self.assertEqual([item.sequence for item in engine.repository.items()], [30, 40])

    def test_bad_sequence_rejected_before_loading(self):
        for bad in ["x", "1.5", Decimal("1.5"), True]:
            with self.subTest(sequence=bad):
                engine = BomEngine(EngineSettings())
                with self.assertRaises(InvalidComponent) as ctx:
                    engine.load(
                        [{"id": "A"}, {"id": "B"}],
                        [{"parent_id": "A", "child_id": "B", "quantity": "1", "sequence": bad}],
                    )
                self.assertEqual(ctx.exception.details.get("field"), "sequence")
                self.assertEqual(engine.repository.component_count, 0)


class TestSettings(unittest.TestCase):

    def test_defaults(self):
        settings = load_settings({})
        self.assertEqual(settings.duplicate_edge_policy, MERGE)
        self.assertEqual(settings.log_level, "WARNING")
        self.assertEqual(settings.default_uom, "EA")

    def test_environment_values(self):
        settings = load_settings({
            "BOM_DUPLICATE_EDGE_POLICY": "Reject",
            "BOM_LOG_LEVEL": "debug",
            "BOM_DEFAULT_UOM": "PC",
        })
        self.assertEqual(settings.duplicate_edge_policy, REJECT)
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.default_uom, "PC")

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            load_settings({"BOM_DUPLICATE_EDGE_POLICY": "replace"})
        with self.assertRaises(ValueError):
            load_settings({"BOM_LOG_LEVEL": "LOUD"})

    def test_engine_honours_policy(self):
        merge = BomEngine(EngineSettings(duplicate_edge_policy=MERGE))
        merge.add_component({"id": "A"})
        merge.add_component({"id": "B"})
        merge.add_item("A", "B", "1")
        merge.add_item("A", "B", "1.5")
        self.assertEqual(merge.explode("A"), {"B": "2.5"})

        reject = BomEngine(EngineSettings(duplicate_edge_policy=REJECT))
        reject.add_item("A", "B", "1")
        with self.assertRaises(DuplicateEdgePolicyViolation):
            reject.add_item("A", "B", "1.5")


if __name__ == "__main__":
    unittest.main()
