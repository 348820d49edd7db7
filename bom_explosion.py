"""
BOM (Bill of Materials) Explosion

Expands a component into every descendant it needs, multiplying
quantity-per-unit down each path and consolidating components reached
through several parents.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterator, List, Tuple

from bom_quantity import ONE, QuantityLike, add, format_quantity, multiply, positive_quantity
from bom_repository import Component, ComponentRepository
from bom_traversal import AncestorPath


logger = logging.getLogger(__name__)

FINISHED_GOOD = "Finished Good"
COMPOUND = "Compound"
RAW_MATERIAL = "Raw Material"


# ---------- Result Models ----------

@dataclass
class TopologyLine:
    """One visit of a component along one path from the root."""
    level: int
    component_id: str
    quantity: Decimal
    item_type: str
    path: Tuple[str, ...]


@dataclass
class ExplosionItem:
    """A descendant component with its quantity summed across all paths."""
    component_id: str
    total_quantity: Decimal
    level: int
    paths: List[Tuple[str, ...]] = field(default_factory=list)


@dataclass
class ExplosionResult:
    """
    Consolidated explosion of ``root_id``.

    ``items`` is ordered by first discovery in a depth-first walk that visits
    children in the order their items were added.
    """
    root_id: str
    quantity: Decimal
    items: Dict[str, ExplosionItem] = field(default_factory=dict)

    def quantities(self) -> Dict[str, Decimal]:
        return {cid: item.total_quantity for cid, item in self.items.items()}

    @property
    def unique_component_count(self) -> int:
        return len(self.items)

    @property
    def max_depth(self) -> int:
        return max((item.level for item in self.items.values()), default=0)

    def __getitem__(self, component_id: str) -> ExplosionItem:
        return self.items[component_id]

    def __contains__(self, component_id: str) -> bool:
        return component_id in self.items

    def __iter__(self) -> Iterator[str]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


# ---------- Explosion Engine ----------

class BOMExplosion:
    """
    Explosion queries over a ``ComponentRepository``.

    Every query is read-only; callers that mutate the repository concurrently
    must hold ``repository.locked()`` around the call.
    """

    def __init__(self, repository: ComponentRepository):
        self.repository = repository

    def walk(self, sku: str, quantity: QuantityLike = ONE) -> List[TopologyLine]:
        """
        Recursively visit a SKU and all its components, path by path.

        A component shared by two parents is visited once per path. The walk
        is completed before anything is returned, so a cycle or a missing
        component yields an exception and never a partial list.

        Args:
            sku: The component to explode
            quantity: The quantity of this component needed

        Returns:
            List of TopologyLine, root first, in depth-first order

        Raises:
            ComponentNotFound: the root or any referenced child is unknown
            CycleDetected: a component is reached again below itself
        """
        quantity = positive_quantity(quantity, "quantity")
        lines: List[TopologyLine] = []
        self._walk(sku, quantity, 0, AncestorPath(), lines)
        return lines

    def _walk(self, sku: str, quantity: Decimal, level: int,
              ancestors: AncestorPath, lines: List[TopologyLine]) -> None:
        with ancestors.visiting(sku):
            self.repository.get_component(sku)
            children = self.repository.children_of(sku)
            lines.append(TopologyLine(
                level=level,
                component_id=sku,
                quantity=quantity,
                item_type=self._item_type(level, bool(children)),
                path=tuple(ancestors.nodes),
            ))
            for child_sku, per_unit in children:
                self._walk(child_sku, multiply(quantity, per_unit), level + 1, ancestors, lines)

    @staticmethod
    def _item_type(level: int, has_children: bool) -> str:
        if not has_children:
            return RAW_MATERIAL
        if level == 0:
            return FINISHED_GOOD
        return COMPOUND

    def explode(self, sku: str, quantity: QuantityLike = ONE) -> ExplosionResult:
        """
        Total quantity of every distinct descendant needed for ``quantity`` of ``sku``.

        The root itself is not part of the result. A component reached via
        several paths gets the sum of every path's contribution; its level is
        the deepest of those paths.
        """
        lines = self.walk(sku, quantity)
        result = ExplosionResult(root_id=sku, quantity=lines[0].quantity)

        for line in lines[1:]:
            item = result.items.get(line.component_id)
            if item is None:
                result.items[line.component_id] = ExplosionItem(
                    component_id=line.component_id,
                    total_quantity=line.quantity,
                    level=line.level,
                    paths=[line.path],
                )
            else:
                item.total_quantity = add(item.total_quantity, line.quantity)
                item.level = max(item.level, line.level)
                item.paths.append(line.path)

        logger.debug(
            "Exploded %s x%s: %d path visits, %d distinct components",
            sku, format_quantity(result.quantity), len(lines) - 1, len(result.items),
        )
        return result

    def explode_single_level(self, sku: str, quantity: QuantityLike = ONE) -> List[ExplosionItem]:
        """Direct children only, each scaled by ``quantity``."""
        quantity = positive_quantity(quantity, "quantity")
        self.repository.get_component(sku)

        items = []
        for child_sku, per_unit in self.repository.children_of(sku):
            self.repository.get_component(child_sku)
            items.append(ExplosionItem(
                component_id=child_sku,
                total_quantity=multiply(quantity, per_unit),
                level=1,
                paths=[(sku, child_sku)],
            ))
        return items

    def flatten(self, sku: str) -> Dict[str, Decimal]:
        """Per-unit multi-level requirements of ``sku``."""
        return self.explode(sku, ONE).quantities()

    def get_summary(self, sku: str, quantity: QuantityLike = ONE) -> Dict[str, Decimal]:
        """
        Get a summary of all raw materials needed for a SKU.

        Args:
            sku: The SKU to summarize
            quantity: The quantity of this SKU

        Returns:
            Dictionary mapping raw material SKU to total quantity needed
        """
        result = self.explode(sku, quantity)
        return {
            cid: item.total_quantity
            for cid, item in result.items.items()
            if not self.repository.children_of(cid)
        }

    def display_topology(self, sku: str, quantity: QuantityLike = ONE) -> str:
        """
        Display the topology of a SKU in a tree-like format.

        Args:
            sku: The SKU to display
            quantity: The quantity of this SKU

        Returns:
            String representation of the BOM topology
        """
        explosion = self.walk(sku, quantity)

        lines = []
        lines.append("=" * 80)
        lines.append(f"BOM EXPLOSION FOR: {sku} (Quantity: {format_quantity(explosion[0].quantity)})")
        lines.append("=" * 80)
        lines.append("")

        for line in explosion:
            component = self.repository.get_component(line.component_id)
            indent = "  " * line.level
            prefix = "└─ " if line.level > 0 else ""
            lines.append(
                f"{indent}{prefix}{line.component_id} "
                f"(Qty: {format_quantity(line.quantity)} {component.uom}) [{line.item_type}]"
            )

        lines.append("")
        lines.append("=" * 80)

        return "\n".join(lines)


# ---------- Sample Data ----------

def create_sample_bom_data() -> ComponentRepository:
    """
    Create a sample repository for demonstration.

    Returns:
        Repository holding two finished goods, three compounds and eight raw materials
    """
    repository = ComponentRepository()

    components = [
        # Finished Goods
        Component("FG001", "Widget A", Decimal("10.00"), component_type="FERT"),
        Component("FG002", "Widget B", Decimal("8.00"), component_type="FERT"),
        # Compounds
        Component("COMP001", "Frame Assembly", Decimal("3.00"), component_type="HALB"),
        Component("COMP002", "Motor Assembly", Decimal("4.50"), component_type="HALB"),
        Component("COMP003", "Gear Assembly", Decimal("2.00"), component_type="HALB"),
        # Raw Materials
        Component("RM001", "Screws", Decimal("0.05"), component_type="ROH"),
        Component("RM002", "Lubricant", Decimal("3.20"), uom="L", component_type="ROH"),
        Component("RM003", "Steel Sheet", Decimal("12.50"), component_type="ROH"),
        Component("RM004", "Paint", Decimal("4.75"), uom="L", component_type="ROH"),
        Component("RM005", "Motor", Decimal("38.00"), component_type="ROH"),
        Component("RM006", "Wiring", Decimal("2.10"), uom="M", component_type="ROH"),
        Component("RM007", "Gear", Decimal("6.40"), component_type="ROH"),
        Component("RM008", "Shaft", Decimal("5.25"), component_type="ROH"),
    ]
    for component in components:
        repository.add_component(component)

    items = [
        ("FG001", "COMP001", "2"),
        ("FG001", "COMP002", "1"),
        ("FG001", "RM001", "4"),
        ("FG002", "COMP001", "1"),
        ("FG002", "COMP003", "2"),
        ("FG002", "RM002", "0.5"),
        ("COMP001", "RM003", "2"),
        ("COMP001", "RM004", "1"),
        ("COMP001", "RM001", "8"),
        ("COMP002", "RM005", "1"),
        ("COMP002", "RM006", "1"),
        ("COMP002", "RM001", "4"),
        ("COMP003", "RM007", "2"),
        ("COMP003", "RM008", "1"),
        ("COMP003", "RM002", "0.2"),
    ]
    for parent, child, qty in items:
        repository.add_item(parent, child, qty)

    return repository


def main():
    """
    Main function to demonstrate BOM explosion tool.
    """
    bom_tool = BOMExplosion(create_sample_bom_data())

    for sku in ("FG001", "FG002"):
        print(bom_tool.display_topology(sku, 1))

        print(f"\nRAW MATERIALS SUMMARY FOR {sku}:")
        print("-" * 40)
        summary = bom_tool.get_summary(sku, 1)
        for material, qty in sorted(summary.items()):
            print(f"{material}: {format_quantity(qty)}")

        print("\n" + "=" * 80 + "\n")


if __name__ == "__main__":
    main()
