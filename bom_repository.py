"""
bom_repository.py

Component repository for the BOM engine.

Components are kept in a dict keyed by ID; usage edges live in a
``networkx.DiGraph`` whose successor map is the forward index (children of X)
and whose predecessor map is the reverse index (parents of X). networkx
shares one attribute dict between both maps, so the two indices can never
disagree about an edge.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Tuple

import networkx as nx

from bom_config import MERGE, DUPLICATE_EDGE_POLICIES
from bom_errors import (
    ComponentNotFound,
    DuplicateEdgePolicyViolation,
    InvalidComponent,
    SelfReference,
)
from bom_quantity import (
    ONE,
    ZERO,
    QuantityLike,
    add,
    multiply,
    non_negative_quantity,
    positive_quantity,
)


logger = logging.getLogger(__name__)


# ---------- Data Models ----------

@dataclass(frozen=True)
class Component:
    """A part, assembly or material identified by a caller-assigned ID."""
    id: str
    name: str = ""
    direct_cost: Decimal = ZERO
    uom: str = "EA"
    component_type: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise InvalidComponent(f"Component ID must be non-empty text, got {self.id!r}", "id")
        object.__setattr__(self, "direct_cost", non_negative_quantity(self.direct_cost, "direct_cost"))
        if not self.name:
            object.__setattr__(self, "name", self.id)


@dataclass(frozen=True)
class BomItem:
    """One usage line: ``quantity`` units of child per unit of parent."""
    parent_id: str
    child_id: str
    quantity: Decimal = ONE
    scrap_factor: Decimal = ZERO
    sequence: int = 10
    notes: str = ""

    def __post_init__(self):
        for name in ("parent_id", "child_id"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidComponent(f"{name} must be non-empty text, got {value!r}", name)
        if not isinstance(self.sequence, int) or isinstance(self.sequence, bool):
            raise InvalidComponent(f"sequence must be a whole number, got {self.sequence!r}", "sequence")
        if self.parent_id == self.child_id:
            raise SelfReference(self.parent_id)
        object.__setattr__(self, "quantity", positive_quantity(self.quantity, "quantity_per_unit"))
        object.__setattr__(self, "scrap_factor", non_negative_quantity(self.scrap_factor, "scrap_factor"))

    @property
    def effective_quantity(self) -> Decimal:
        """Quantity including scrap: ``quantity * (1 + scrap_factor)``."""
        return multiply(self.quantity, add(ONE, self.scrap_factor))


# ---------- Repository ----------

class ComponentRepository:
    """
    Owns every component and usage edge of one engine instance.

    All mutation goes through ``add_component`` and ``add_item``. Callers that
    need a consistent snapshot across several reads hold ``locked()``.
    """

    def __init__(self, duplicate_edge_policy: str = MERGE):
        if duplicate_edge_policy not in DUPLICATE_EDGE_POLICIES:
            raise ValueError(f"Unknown duplicate edge policy: {duplicate_edge_policy!r}")
        self.duplicate_edge_policy = duplicate_edge_policy
        self._components: Dict[str, Component] = {}
        self._graph = nx.DiGraph()
        self._lock = threading.RLock()

    @contextmanager
    def locked(self) -> Iterator["ComponentRepository"]:
        """Exclusive access for the duration of one engine call."""
        with self._lock:
            yield self

    # --- Mutation ---

    def add_component(self, component: Component) -> None:
        """Insert a component, replacing any earlier record with the same ID."""
        if not isinstance(component, Component):
            raise InvalidComponent(f"Expected a Component, got {type(component).__name__}")
        with self._lock:
            replaced = component.id in self._components
            self._components[component.id] = component
            self._graph.add_node(component.id)
        logger.debug("%s component %s", "Replaced" if replaced else "Added", component.id)

    def add_item(
        self,
        parent_id: str,
        child_id: str,
        quantity_per_unit: QuantityLike,
        scrap_factor: QuantityLike = ZERO,
        sequence: int = 10,
        notes: str = "",
    ) -> BomItem:
        """
        Add a usage edge ``parent_id -> child_id``.

        Components on either end may be added later; queries that reach a
        missing one fail with ``ComponentNotFound``. A repeated pair is merged
        (quantities summed) or rejected depending on the repository's policy.

        Raises:
            SelfReference: parent and child are the same component.
            InvalidQuantity: quantity is not positive, or scrap is negative.
            DuplicateEdgePolicyViolation: pair exists under the reject policy.
        """
        item = BomItem(
            parent_id=parent_id,
            child_id=child_id,
            quantity=quantity_per_unit,
            scrap_factor=scrap_factor,
            sequence=sequence,
            notes=notes,
        )
        with self._lock:
            if self._graph.has_edge(parent_id, child_id):
                if self.duplicate_edge_policy != MERGE:
                    raise DuplicateEdgePolicyViolation(parent_id, child_id)
                data = self._graph.edges[parent_id, child_id]
                merged = add(data["quantity"], item.effective_quantity)
                data["quantity"] = merged
                data["items"].append(item)
                logger.debug("Merged item %s -> %s, quantity now %s", parent_id, child_id, merged)
            else:
                self._graph.add_edge(
                    parent_id, child_id, quantity=item.effective_quantity, items=[item]
                )
                logger.debug("Added item %s -> %s (%s)", parent_id, child_id, item.effective_quantity)
        return item

    # --- Lookup ---

    def get_component(self, component_id: str) -> Component:
        try:
            return self._components[component_id]
        except KeyError:
            raise ComponentNotFound(component_id) from None

    def has_component(self, component_id: str) -> bool:
        return component_id in self._components

    def children_of(self, component_id: str) -> List[Tuple[str, Decimal]]:
        """Direct children as (child_id, quantity_per_unit), in insertion order."""
        if component_id not in self._graph:
            return []
        return [(child, data["quantity"]) for child, data in self._graph.succ[component_id].items()]

    def parents_of(self, component_id: str) -> List[str]:
        """Direct parent IDs, in insertion order."""
        if component_id not in self._graph:
            return []
        return list(self._graph.pred[component_id])

    def edge_quantity(self, parent_id: str, child_id: str) -> Optional[Decimal]:
        """Merged quantity-per-unit of one edge, or None when there is no such edge."""
        if not self._graph.has_edge(parent_id, child_id):
            return None
        return self._graph.edges[parent_id, child_id]["quantity"]

    def components(self) -> List[Component]:
        return list(self._components.values())

    def items(self) -> List[BomItem]:
        """Every item record, including those merged into a shared edge."""
        return [item for _, _, items in self._graph.edges(data="items") for item in items]

    def edges(self) -> List[Tuple[str, str, Decimal]]:
        return [(p, c, q) for p, c, q in self._graph.edges(data="quantity")]

    def dangling_references(self) -> List[str]:
        """IDs referenced by an edge but never added as components."""
        return [node for node in self._graph.nodes if node not in self._components]

    @property
    def component_count(self) -> int:
        return len(self._components)

    @property
    def item_count(self) -> int:
        return self._graph.number_of_edges()

    def __contains__(self, component_id: str) -> bool:
        return component_id in self._components

    def __len__(self) -> int:
        return len(self._components)

    def to_networkx(self) -> nx.DiGraph:
        """
        Copy of the usage graph with each node carrying its ``component``
        (None for dangling references) and each edge its ``quantity``.
        """
        with self._lock:
            graph = self._graph.copy()
            for node in graph.nodes:
                graph.nodes[node]["component"] = self._components.get(node)
            for _, _, data in graph.edges(data=True):
                data["items"] = list(data["items"])
        return graph
