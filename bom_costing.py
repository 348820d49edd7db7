"""
bom_costing.py

Cost rollup: the cost of one unit of a component is its own direct cost plus,
for every child, the child's unit cost times the quantity-per-unit.

Unit costs are memoized per top-level call only. The cache is created on
entry and dropped on return because the repository may change between calls.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List

from bom_explosion import BOMExplosion
from bom_quantity import ONE, QuantityLike, add, multiply, positive_quantity, total
from bom_repository import ComponentRepository
from bom_traversal import AncestorPath


logger = logging.getLogger(__name__)


@dataclass
class ChildCost:
    component_id: str
    quantity: Decimal
    unit_cost: Decimal
    cost: Decimal


@dataclass
class CostBreakdown:
    """Cost of ``quantity`` units split into own cost and children's cost."""
    component_id: str
    quantity: Decimal
    own_cost: Decimal
    children_cost: Decimal
    total_cost: Decimal
    children: List[ChildCost] = field(default_factory=list)


@dataclass
class CostDriver:
    """A component's own direct cost as consumed by a whole explosion."""
    component_id: str
    quantity: Decimal
    direct_cost: Decimal
    cost: Decimal


class CostCalculator:

    def __init__(self, repository: ComponentRepository):
        self.repository = repository

    def _unit_cost(self, component_id: str, memo: Dict[str, Decimal], ancestors: AncestorPath) -> Decimal:
        with ancestors.visiting(component_id):
            cached = memo.get(component_id)
            if cached is not None:
                return cached

            component = self.repository.get_component(component_id)
            cost = component.direct_cost
            for child_id, per_unit in self.repository.children_of(component_id):
                child_cost = self._unit_cost(child_id, memo, ancestors)
                cost = add(cost, multiply(child_cost, per_unit))

            memo[component_id] = cost
            return cost

    def unit_cost(self, component_id: str) -> Decimal:
        """Rolled-up cost of one unit of ``component_id``."""
        memo: Dict[str, Decimal] = {}
        cost = self._unit_cost(component_id, memo, AncestorPath())
        logger.debug("Unit cost of %s computed with %d memoized components", component_id, len(memo))
        return cost

    def total_cost(self, component_id: str, quantity: QuantityLike = ONE) -> Decimal:
        """
        Cost of building ``quantity`` units.

        Raises:
            InvalidQuantity: quantity is not positive
            ComponentNotFound: the component or any descendant is unknown
            CycleDetected: the component's structure contains a cycle
        """
        quantity = positive_quantity(quantity, "quantity")
        return multiply(quantity, self.unit_cost(component_id))

    def cost_breakdown(self, component_id: str, quantity: QuantityLike = ONE) -> CostBreakdown:
        """Own cost and each direct child's rolled-up contribution for ``quantity`` units."""
        quantity = positive_quantity(quantity, "quantity")
        memo: Dict[str, Decimal] = {}
        ancestors = AncestorPath()
        component = self.repository.get_component(component_id)

        children = []
        with ancestors.visiting(component_id):
            for child_id, per_unit in self.repository.children_of(component_id):
                child_unit = self._unit_cost(child_id, memo, ancestors)
                child_qty = multiply(quantity, per_unit)
                children.append(ChildCost(
                    component_id=child_id,
                    quantity=child_qty,
                    unit_cost=child_unit,
                    cost=multiply(child_qty, child_unit),
                ))

        own_cost = multiply(quantity, component.direct_cost)
        children_cost = total(child.cost for child in children)
        return CostBreakdown(
            component_id=component_id,
            quantity=quantity,
            own_cost=own_cost,
            children_cost=children_cost,
            total_cost=add(own_cost, children_cost),
            children=children,
        )

    def cost_drivers(self, component_id: str, quantity: QuantityLike = ONE) -> List[CostDriver]:
        """
        Direct cost of every descendant across the full explosion, largest first.

        Together with the root's own cost these sum to ``total_cost``.
        Components without direct cost are omitted.
        """
        explosion = BOMExplosion(self.repository).explode(component_id, quantity)
        drivers = []
        for cid, qty in explosion.quantities().items():
            direct_cost = self.repository.get_component(cid).direct_cost
            if direct_cost == 0:
                continue
            drivers.append(CostDriver(
                component_id=cid,
                quantity=qty,
                direct_cost=direct_cost,
                cost=multiply(qty, direct_cost),
            ))
        drivers.sort(key=lambda driver: (-driver.cost, driver.component_id))
        return drivers

    def calculate_all_costs(self) -> Dict[str, Decimal]:
        """Unit cost of every component, sharing one memo across the call."""
        memo: Dict[str, Decimal] = {}
        for component in self.repository.components():
            self._unit_cost(component.id, memo, AncestorPath())
        return {component.id: memo[component.id] for component in self.repository.components()}
