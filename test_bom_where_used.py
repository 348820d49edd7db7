"""
Tests for where-used queries
"""

import unittest
from decimal import Decimal

from bom_errors import ComponentNotFound, CycleDetected
from bom_explosion import create_sample_bom_data
from bom_where_used import WhereUsedAnalyzer
from test_bom_explosion import build_repository


class TestWhereUsed(unittest.TestCase):

    def setUp(self):
        self.repository = create_sample_bom_data()
        self.analyzer = WhereUsedAnalyzer(self.repository)

    def test_direct_parents(self):
        self.assertEqual(self.analyzer.where_used("RM001"), ["FG001", "COMP001", "COMP002"])
        self.assertEqual(self.analyzer.where_used("COMP001"), ["FG001", "FG002"])

    def test_matches_every_edge(self):
        for component in self.repository.components():
            expected = {p for p, c, _ in self.repository.edges() if c == component.id}
            self.assertEqual(set(self.analyzer.where_used(component.id)), expected)

    def test_top_level_has_no_parents(self):
        self.assertEqual(self.analyzer.where_used("FG001"), [])

    def test_unknown_component(self):
        with self.assertRaises(ComponentNotFound):
            self.analyzer.where_used("NOPE")

    def test_referenced_but_never_added(self):
        self.repository.add_item("FG001", "GHOST", "1")
        with self.assertRaises(ComponentNotFound):
            self.analyzer.where_used("GHOST")

    def test_detail_includes_quantity(self):
        detail = self.analyzer.where_used_detail("RM002")
        self.assertEqual(
            [(d.parent_id, d.quantity) for d in detail],
            [("FG002", Decimal("0.5")), ("COMP003", Decimal("0.2"))],
        )

    def test_transitive_ancestors(self):
        self.assertEqual(
            self.analyzer.where_used_all("RM001"),
            {"FG001": 1, "COMP001": 1, "COMP002": 1, "FG002": 2},
        )
        self.assertEqual(self.analyzer.find_root_assemblies("RM001"), ["FG001", "FG002"])

    def test_transitive_walk_survives_cycles(self):
        repo = build_repository(
            {"A": "1", "B": "1", "C": "1"},
            [("A", "B", "1"), ("B", "C", "1"), ("C", "A", "1")],
        )
        analyzer = WhereUsedAnalyzer(repo)
        self.assertEqual(analyzer.where_used("A"), ["C"])
        self.assertEqual(analyzer.where_used_all("A"), {"C": 1, "B": 2})
        self.assertEqual(analyzer.find_root_assemblies("A"), [])
        impact = analyzer.analyze_change_impact("A")
        self.assertEqual(impact.affected_components, ["C", "B"])
        self.assertEqual(impact.affected_roots, [])

    def test_unused_component_is_its_own_root(self):
        self.assertEqual(self.analyzer.find_root_assemblies("FG001"), ["FG001"])

    def test_change_impact(self):
        impact = self.analyzer.analyze_change_impact("RM001")
        self.assertEqual(impact.affected_components, ["FG001", "COMP001", "COMP002", "FG002"])
        self.assertEqual(impact.affected_roots, ["FG001", "FG002"])
        top = self.analyzer.analyze_change_impact("FG001")
        self.assertEqual((top.affected_components, top.affected_roots), ([], []))
        with self.assertRaises(ComponentNotFound):
            self.analyzer.analyze_change_impact("NOPE")

    def test_shared_components(self):
        shared = self.analyzer.find_shared_components(["FG001", "FG002"])
        self.assertEqual(
            [s.component_id for s in shared],
            ["COMP001", "RM003", "RM004", "RM001"],
        )
        self.assertEqual(shared[0].used_in, ["FG001", "FG002"])

    def test_shared_components_propagates_cycles(self):
        self.repository.add_item("RM003", "FG001", "1")
        with self.assertRaises(CycleDetected):
            self.analyzer.find_shared_components(["FG001", "FG002"])


if __name__ == "__main__":
    unittest.main()
