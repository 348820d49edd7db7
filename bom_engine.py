"""
bom_engine.py

Facade around the core calculations, so the CLI, the Streamlit app (or any
foreign caller) can work with plain values: IDs as text, quantities and costs
as canonical decimal text.

Each public method holds the repository guard for its whole duration, so a
query sees one consistent snapshot and a failed add leaves nothing behind.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Union

from bom_config import EngineSettings, load_settings
from bom_costing import CostBreakdown, CostCalculator, CostDriver
from bom_errors import ComponentNotFound, CycleDetected, InvalidComponent
from bom_explosion import BOMExplosion, ExplosionResult
from bom_quantity import ONE, ZERO, QuantityLike, format_quantity
from bom_repository import BomItem, Component, ComponentRepository
from bom_traversal import find_cycle
from bom_where_used import ChangeImpact, WhereUsedAnalyzer


logger = logging.getLogger(__name__)

ComponentRecord = Union[Component, Mapping[str, Any]]

_RECORD_FIELDS = {
    "id", "name", "description", "direct_cost", "standard_cost", "cost",
    "uom", "component_type", "metadata",
}


def component_from_record(record: ComponentRecord, default_uom: str = "EA") -> Component:
    """
    Build a ``Component`` from a mapping.

    Accepts ``name`` or ``description`` for the display name and
    ``direct_cost``, ``standard_cost`` or ``cost`` for the direct cost. Keys the
    engine does not know are kept as metadata.
    """
    if isinstance(record, Component):
        return record
    if not isinstance(record, Mapping):
        raise InvalidComponent(f"Component record must be a mapping, got {type(record).__name__}")

    cost = record.get("direct_cost", record.get("standard_cost", record.get("cost")))
    metadata = dict(record.get("metadata") or {})
    metadata.update({k: v for k, v in record.items() if k not in _RECORD_FIELDS})

    return Component(
        id=record.get("id"),
        name=record.get("name") or record.get("description") or "",
        direct_cost=ZERO if cost is None or cost == "" else cost,
        uom=record.get("uom") or default_uom,
        component_type=record.get("component_type") or "",
        metadata=metadata,
    )


def item_sequence(value: Any, default: int = 10) -> int:
    """Sequence number of an item record; blank means ``default``."""
    if isinstance(value, str):
        value = value.strip()
    if value is None or value == "":
        return default
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        return int(value)
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise InvalidComponent(f"sequence must be a whole number, got {value!r}", "sequence")


class BomEngine:
    """One repository plus the explosion, cost and where-used queries over it."""

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or load_settings()
        self.repository = ComponentRepository(self.settings.duplicate_edge_policy)
        self._explosion = BOMExplosion(self.repository)
        self._costing = CostCalculator(self.repository)
        self._where_used = WhereUsedAnalyzer(self.repository)

    # --- Population ---

    def add_component(self, record: ComponentRecord) -> Component:
        component = component_from_record(record, self.settings.default_uom)
        with self.repository.locked():
            self.repository.add_component(component)
        return component

    def add_item(
        self,
        parent_id: str,
        child_id: str,
        quantity: QuantityLike,
        scrap_factor: QuantityLike = ZERO,
        sequence: int = 10,
        notes: str = "",
    ) -> BomItem:
        with self.repository.locked():
            return self.repository.add_item(parent_id, child_id, quantity, scrap_factor, sequence, notes)

    def load(self, components, items) -> None:
        """
        Bulk add ``components`` (records) and ``items`` (mappings with
        ``parent_id``, ``child_id``, ``quantity`` and optional ``scrap_factor``,
        ``sequence``, ``notes``).
        """
        items = list(items)
        sequences = [item_sequence(item.get("sequence")) for item in items]
        with self.repository.locked():
            for record in components:
                self.add_component(record)
            for item, sequence in zip(items, sequences):
                self.add_item(
                    item["parent_id"],
                    item["child_id"],
                    item["quantity"],
                    item.get("scrap_factor") or ZERO,
                    sequence,
                    item.get("notes") or "",
                )
        logger.info(
            "Loaded BOM: %d components, %d items",
            self.repository.component_count, self.repository.item_count,
        )

    # --- Text contract ---

    def explode(self, component_id: str, quantity: QuantityLike = "1") -> Dict[str, str]:
        """Descendant ID -> total quantity text, in first-discovered order."""
        result = self.explode_result(component_id, quantity)
        return {cid: format_quantity(qty) for cid, qty in result.quantities().items()}

    def total_cost(self, component_id: str, quantity: QuantityLike = "1") -> str:
        with self.repository.locked():
            return format_quantity(self._costing.total_cost(component_id, quantity))

    def where_used(self, component_id: str) -> List[str]:
        with self.repository.locked():
            return self._where_used.where_used(component_id)

    def where_used_all(self, component_id: str) -> Dict[str, int]:
        with self.repository.locked():
            return self._where_used.where_used_all(component_id)

    # --- Structured results ---

    def explode_result(self, component_id: str, quantity: QuantityLike = ONE) -> ExplosionResult:
        with self.repository.locked():
            return self._explosion.explode(component_id, quantity)

    def raw_materials(self, component_id: str, quantity: QuantityLike = ONE) -> Dict[str, Decimal]:
        with self.repository.locked():
            return self._explosion.get_summary(component_id, quantity)

    def topology(self, component_id: str, quantity: QuantityLike = ONE) -> str:
        with self.repository.locked():
            return self._explosion.display_topology(component_id, quantity)

    def cost_breakdown(self, component_id: str, quantity: QuantityLike = ONE) -> CostBreakdown:
        with self.repository.locked():
            return self._costing.cost_breakdown(component_id, quantity)

    def cost_drivers(self, component_id: str, quantity: QuantityLike = ONE) -> List[CostDriver]:
        with self.repository.locked():
            return self._costing.cost_drivers(component_id, quantity)

    def find_root_assemblies(self, component_id: str) -> List[str]:
        with self.repository.locked():
            return self._where_used.find_root_assemblies(component_id)

    def analyze_change_impact(self, component_id: str) -> ChangeImpact:
        with self.repository.locked():
            return self._where_used.analyze_change_impact(component_id)

    def find_shared_components(self, assembly_ids):
        with self.repository.locked():
            return self._where_used.find_shared_components(assembly_ids)

    # --- Whole-graph checks ---

    def validate(self) -> None:
        """
        Raises:
            ComponentNotFound: an item references a component never added
            CycleDetected: the usage graph contains a cycle
        """
        with self.repository.locked():
            dangling = self.repository.dangling_references()
            if dangling:
                raise ComponentNotFound(dangling[0])
            cycle = find_cycle(self.repository.to_networkx())
            if cycle:
                raise CycleDetected(cycle)

    def stats(self) -> Dict[str, int]:
        with self.repository.locked():
            graph = self.repository.to_networkx()
            return {
                "components": self.repository.component_count,
                "items": self.repository.item_count,
                "roots": sum(1 for node in graph if graph.in_degree(node) == 0),
                "leaves": sum(1 for node in graph if graph.out_degree(node) == 0),
            }


def create_engine(settings: Optional[EngineSettings] = None) -> BomEngine:
    """Create an empty engine; it lives (with all its data) until dropped."""
    return BomEngine(settings)
