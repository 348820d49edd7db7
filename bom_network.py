"""
bom_network.py

Turns a repository into a styled networkx graph and renders it with pyvis.
"""

from typing import Dict, Optional

import networkx as nx
import numpy as np
from pyvis.network import Network

from bom_explosion import BOMExplosion
from bom_quantity import format_quantity
from bom_repository import ComponentRepository


# --- STRICT PASTEL COLOR PALETTE ---
# Exact Hex codes used for both Legend and Graph
STYLE_MAP = {
    "FG":       {"color": "#93C5FD", "shape": "box",      "label": "Finished Good", "desc": "CURT, FERT"}, # Blue
    "ASSM":     {"color": "#5EEAD4", "shape": "diamond",  "label": "Assembly",      "desc": "ASSM, HALB"}, # Teal
    "CMPD":     {"color": "#C084FC", "shape": "hexagon",  "label": "Compound",      "desc": "CMPD"},       # Purple
    "RAW":      {"color": "#86EFAC", "shape": "dot",      "label": "Raw Material",  "desc": "RAW, ROH, LRAW"}, # Green
    "GUM":      {"color": "#F9A8D4", "shape": "star",     "label": "Rubber/Gum",    "desc": "GUM"},        # Pink
    "PACK":     {"color": "#FCD34D", "shape": "square",   "label": "Packaging",     "desc": "VERP"},       # Yellow
    "DEFAULT":  {"color": "#E5E7EB", "shape": "ellipse",  "label": "Other",         "desc": "Unknown"}     # Grey
}

HIGHLIGHT_COLOR = "#F59E0B"
MISSING_COLOR = "#FCA5A5"

NETWORK_OPTIONS = """
{
  "nodes": {
    "borderWidth": 1,
    "borderWidthSelected": 2,
    "color": {
      "highlight": { "border": "#D97706", "background": "#F59E0B" },
      "hover": { "border": "#D97706", "background": "#F59E0B" }
    },
    "font": { "size": 14, "face": "Segoe UI" }
  },
  "edges": {
    "color": { "color": "#CBD5E1", "highlight": "#F59E0B", "hover": "#F59E0B" },
    "smooth": { "type": "cubicBezier", "forceDirection": "horizontal", "roundness": 0.4 }
  },
  "interaction": { "hover": true, "tooltipDelay": 50, "hideEdgesOnDrag": false },
  "layout": {
    "hierarchical": {
      "enabled": true,
      "direction": "LR",
      "sortMethod": "directed",
      "levelSeparation": 250,
      "nodeSpacing": 150
    }
  },
  "physics": {
    "hierarchicalRepulsion": { "nodeDistance": 160 },
    "solver": "hierarchicalRepulsion"
  }
}
"""


def normalize_material_type(raw_type) -> str:
    """
    Strict mapping logic.
    Checks RAW before others to prevent misclassification.
    """
    t = str(raw_type).upper().strip()

    # Priority 1: Raw Materials (Force Green)
    if any(x in t for x in ["RAW", "ROH", "LRAW", "ZROH"]): return "RAW"

    # Priority 2: Compounds (Force Purple)
    if "CMPD" in t: return "CMPD"
    if "GUM" in t: return "GUM"

    # Priority 3: Assemblies/FG
    if any(x in t for x in ["ASSM", "HALB", "SEMI"]): return "ASSM"
    if any(x in t for x in ["CURT", "FERT", "FRIP"]): return "FG"
    if "VERP" in t or "PACK" in t: return "PACK"

    return "DEFAULT"


def _node_levels(repository: ComponentRepository, graph: nx.DiGraph, root: Optional[str]) -> Dict[str, int]:
    if root is not None:
        levels = {root: 1}
        for cid, item in BOMExplosion(repository).explode(root).items.items():
            levels[cid] = item.level + 1
        return levels
    if not nx.is_directed_acyclic_graph(graph):
        return {}
    return {
        node: depth + 1
        for depth, generation in enumerate(nx.topological_generations(graph))
        for node in generation
    }


def build_network(repository: ComponentRepository, root: Optional[str] = None,
                  search: str = "") -> nx.DiGraph:
    """
    Styled graph of the whole repository, or of ``root`` and its descendants.

    Node attributes follow pyvis: label, title (HTML tooltip), color, shape,
    size, level. Components matching ``search`` are highlighted.
    """
    source = repository.to_networkx()
    levels = _node_levels(repository, source, root)
    nodes = list(levels) if root is not None else list(source.nodes)

    G = nx.DiGraph()
    for node in nodes:
        component = source.nodes[node]["component"]
        level = levels.get(node)
        if component is None:
            G.add_node(node, label=node, title=f"{node} (missing)", color=MISSING_COLOR,
                       shape="ellipse", size=18)
        else:
            style = STYLE_MAP[normalize_material_type(component.component_type)]
            tooltip_html = (
                f"<div style='background-color: white; padding: 8px; border-radius: 4px; border: 1px solid #ccc; font-family: Arial;'>"
                f"<b style='font-size: 14px; color: #333;'>{component.id}</b><br>"
                f"<i style='color: #666;'>{component.name}</i><br><br>"
                f"Type: <b>{component.component_type or 'Unknown'}</b><br>"
                f"Direct cost: {format_quantity(component.direct_cost)}<br>"
                f"Unit: {component.uom}"
                f"</div>"
            )
            G.add_node(
                node,
                label=node,
                title=tooltip_html,
                color=style["color"],
                shape=style["shape"],
                size=25 if level == 1 else 18,
            )
        if level is not None:
            G.nodes[node]["level"] = level

        if search and search.lower() in node.lower():
            G.nodes[node]["color"] = HIGHLIGHT_COLOR
            G.nodes[node]["size"] = 30
            G.nodes[node]["borderWidth"] = 3

    for parent, child, qty in source.edges(data="quantity"):
        if parent in G and child in G:
            w = 1 + float(np.log1p(float(qty)))
            G.add_edge(parent, child, width=w, color="#CBD5E1", title=f"Qty: {format_quantity(qty)}")

    return G


def render_html(G: nx.DiGraph, height: str = "750px") -> str:
    """pyvis HTML page for a graph built by ``build_network``."""
    net = Network(height=height, width="100%", bgcolor="#ffffff", font_color="#333", directed=True)
    net.from_nx(G)
    net.set_options(NETWORK_OPTIONS)
    return net.generate_html()
