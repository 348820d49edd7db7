"""
bom_where_used.py

Reverse lookups: which assemblies consume a component.

``where_used`` is one hop up the reverse index. The transitive walk is a
separate query (``where_used_all``) so the direct contract never changes.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List

from bom_explosion import BOMExplosion
from bom_repository import ComponentRepository
from bom_traversal import ancestors_by_level


logger = logging.getLogger(__name__)


@dataclass
class WhereUsedItem:
    parent_id: str
    quantity: Decimal


@dataclass
class SharedComponent:
    component_id: str
    used_in: List[str]


@dataclass
class ChangeImpact:
    """Assemblies touched by a change to ``component_id``."""
    component_id: str
    affected_components: List[str]
    affected_roots: List[str]


class WhereUsedAnalyzer:

    def __init__(self, repository: ComponentRepository):
        self.repository = repository

    def where_used(self, component_id: str) -> List[str]:
        """
        Direct parents of ``component_id``; empty when nothing consumes it.

        Raises:
            ComponentNotFound: the component was never added
        """
        self.repository.get_component(component_id)
        return self.repository.parents_of(component_id)

    def where_used_detail(self, component_id: str) -> List[WhereUsedItem]:
        """Direct parents with the quantity-per-unit each one consumes."""
        return [
            WhereUsedItem(parent_id=parent, quantity=self.repository.edge_quantity(parent, component_id))
            for parent in self.where_used(component_id)
        ]

    def where_used_all(self, component_id: str) -> Dict[str, int]:
        """
        Every ancestor of ``component_id`` mapped to its shortest distance above it
        (1 = direct parent). Cyclic structures are walked without error.
        """
        self.repository.get_component(component_id)
        levels = ancestors_by_level(self.repository.parents_of, component_id)
        return {
            parent: depth
            for depth, parents in enumerate(levels, start=1)
            for parent in parents
        }

    def find_root_assemblies(self, component_id: str) -> List[str]:
        """
        Top-level assemblies that use ``component_id``, in walk order. A
        component nothing uses is its own root.
        """
        ancestors = self.where_used_all(component_id)
        if not ancestors:
            return [component_id]
        return [ancestor for ancestor in ancestors if not self.repository.parents_of(ancestor)]

    def analyze_change_impact(self, component_id: str) -> ChangeImpact:
        """Every assembly that would see a change to ``component_id``, and its roots among them."""
        ancestors = self.where_used_all(component_id)
        impact = ChangeImpact(
            component_id=component_id,
            affected_components=list(ancestors),
            affected_roots=[a for a in ancestors if not self.repository.parents_of(a)],
        )
        logger.debug(
            "Change to %s affects %d assemblies (%d roots)",
            component_id, len(impact.affected_components), len(impact.affected_roots),
        )
        return impact

    def find_shared_components(self, assembly_ids: Iterable[str]) -> List[SharedComponent]:
        """
        Components required by two or more of the given assemblies.

        Each assembly is exploded in full, so unknown IDs and cycles fail the
        same way ``explode`` does.
        """
        explosion = BOMExplosion(self.repository)
        used_in: Dict[str, List[str]] = {}
        assemblies = list(dict.fromkeys(assembly_ids))
        for assembly_id in assemblies:
            for cid in explosion.explode(assembly_id):
                used_in.setdefault(cid, []).append(assembly_id)

        shared = [
            SharedComponent(component_id=cid, used_in=users)
            for cid, users in used_in.items()
            if len(users) > 1
        ]
        logger.debug("%d components shared across %d assemblies", len(shared), len(assemblies))
        return shared
