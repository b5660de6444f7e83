"""Layered layout engine for hydraulic networks.

Columns are breadth-first tiers from the reservoirs, flowing left to right.
Nodes in a column are centred vertically on a fixed-height canvas in input
order, so the result depends only on the graph and its ordering.
"""

import logging
from collections import deque
from typing import Any, Dict, List, Optional, Sequence

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field

from hydrotopo.layout.engines.base import LayoutEngine
from hydrotopo.models.layout_metadata import DiagramLayout, NodePlacement
from hydrotopo.models.network import Edge, Node, NodeType

logger = logging.getLogger(__name__)


class LayeredLayoutOptions(BaseModel):
    """Spacing and canvas settings (pixels)."""

    model_config = ConfigDict(frozen=True)

    margin: float = Field(default=80, description="Left margin before level 0")
    horizontalSpacing: float = Field(default=180, description="Distance between levels")
    verticalSpacing: float = Field(default=140, description="Distance between rows")
    canvasHeight: float = Field(default=750, description="Fixed canvas height")
    minWidth: float = Field(default=1300, description="Minimum canvas width")


def _build_graph(edges: Sequence[Edge]) -> nx.MultiDiGraph:
    graph = nx.MultiDiGraph()
    for edge in edges:
        graph.add_edge(edge.source, edge.target, key=edge.id)
    return graph


def compute_levels(nodes: Sequence[Node], edges: Sequence[Edge]) -> Dict[str, int]:
    """Assign every node its level.

    Reservoirs sit at level 0 and stay there, even when another node feeds
    them. Propagation is a multi-source breadth-first pass where a
    successor takes ``max(current, level(u) + 1)`` and is re-queued
    whenever its level rises, so a node reachable along several paths ends
    at the longest one. Levels are capped at the longest possible simple
    path (vertex count - 1), which stops cycles from climbing forever.
    Nodes no reservoir reaches get level 0.

    Returns:
        Node id -> level for every input node, in input order
    """
    graph = _build_graph(edges)
    roots = [n.id for n in nodes if n.data.type == NodeType.RESERVOIR.value]
    root_set = set(roots)
    ceiling = max(len(set(graph.nodes) | {n.id for n in nodes}) - 1, 0)

    levels: Dict[str, int] = {root: 0 for root in roots}
    queue = deque(roots)

    while queue:
        current = queue.popleft()
        if current not in graph:
            continue
        candidate = levels[current] + 1
        if candidate > ceiling:
            continue
        for successor in graph.successors(current):
            if successor in root_set:
                continue
            if successor not in levels or levels[successor] < candidate:
                levels[successor] = candidate
                queue.append(successor)

    return {n.id: levels.get(n.id, 0) for n in nodes}


class LayeredLayoutEngine(LayoutEngine):
    """Breadth-first layered layout rooted at reservoirs.

    Example:
        engine = LayeredLayoutEngine()
        layout = engine.layout(store.nodes, store.edges)
        layout.placements["1"].x   # 80.0 for a reservoir
    """

    def __init__(self, options: Optional[LayeredLayoutOptions] = None):
        self._options = options or LayeredLayoutOptions()

    @property
    def name(self) -> str:
        return "layered"

    @property
    def options(self) -> LayeredLayoutOptions:
        return self._options

    def layout(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        options: Optional[Dict[str, Any]] = None,
    ) -> DiagramLayout:
        opts = self._options.model_copy(update=options) if options else self._options

        levels = compute_levels(nodes, edges)

        buckets: Dict[int, List[str]] = {}
        for node in nodes:
            buckets.setdefault(levels[node.id], []).append(node.id)

        placements: Dict[str, NodePlacement] = {}
        for level, node_ids in buckets.items():
            start_y = (opts.canvasHeight - (len(node_ids) - 1) * opts.verticalSpacing) / 2
            x = opts.margin + level * opts.horizontalSpacing
            for index, node_id in enumerate(node_ids):
                placements[node_id] = NodePlacement(
                    level=level,
                    x=x,
                    y=start_y + index * opts.verticalSpacing,
                )

        width = max(opts.minWidth, (len(buckets) + 1) * opts.horizontalSpacing)

        logger.debug(
            f"Layered layout: {len(placements)} nodes in {len(buckets)} levels, "
            f"canvas {width}x{opts.canvasHeight}"
        )

        return DiagramLayout(
            algorithm=self.name,
            placements={n.id: placements[n.id] for n in nodes},
            width=width,
            height=opts.canvasHeight,
            levelCount=len(buckets),
        )
