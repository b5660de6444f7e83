"""Tests for the layout system.

Tests cover:
- Layout schema (DiagramLayout, NodePlacement)
- Level assignment (reservoir roots, longest path, cycles, unreachable nodes)
- Layered layout engine coordinates and canvas size
- Engine registry
"""

from typing import List

import pytest
from pydantic import ValidationError

from hydrotopo.layout.engines import (
    ENGINES,
    LayeredLayoutEngine,
    LayeredLayoutOptions,
    LayoutEngine,
    compute_levels,
    get_engine,
)
from hydrotopo.models.layout_metadata import DiagramLayout, NodePlacement
from hydrotopo.models.network import Edge, Node


def make_node(node_id: str, node_type: str = "junction") -> Node:
    return Node(id=node_id, data={"type": node_type, "label": node_id})


def make_edge(edge_id: str, source: str, target: str) -> Edge:
    return Edge(id=edge_id, source=source, target=target)


@pytest.fixture
def engine():
    return LayeredLayoutEngine()


@pytest.fixture
def chain():
    """R1 -> J1 -> S1."""
    nodes = [
        make_node("R1", "reservoir"),
        make_node("J1", "junction"),
        make_node("S1", "surgeTank"),
    ]
    edges = [make_edge("e1", "R1", "J1"), make_edge("e2", "J1", "S1")]
    return nodes, edges


@pytest.fixture
def branching():
    """Two reservoirs feeding a small tree with a shortcut."""
    nodes = [
        make_node("R1", "reservoir"),
        make_node("R2", "reservoir"),
        make_node("A"),
        make_node("B"),
        make_node("C", "surgeTank"),
        make_node("D", "flowBoundary"),
    ]
    edges = [
        make_edge("e1", "R1", "A"),
        make_edge("e2", "R2", "A"),
        make_edge("e3", "A", "B"),
        make_edge("e4", "B", "C"),
        make_edge("e5", "A", "C"),
        make_edge("e6", "B", "D"),
    ]
    return nodes, edges


# =============================================================================
# Schema Tests
# =============================================================================


class TestDiagramLayoutSchema:
    """Test DiagramLayout schema validation."""

    def test_etag_auto_computed(self):
        """Etag is filled in from the content."""
        layout = DiagramLayout(
            algorithm="layered",
            placements={"1": NodePlacement(level=0, x=80, y=375)},
            width=1300,
            height=750,
        )
        assert len(layout.etag) == 64

    def test_etag_changes_with_content(self):
        """Different placements give a different etag."""
        a = DiagramLayout(algorithm="layered", placements={"1": NodePlacement(level=0, x=80, y=375)},
                          width=1300, height=750)
        b = DiagramLayout(algorithm="layered", placements={"1": NodePlacement(level=0, x=80, y=300)},
                          width=1300, height=750)
        assert a.etag != b.etag

    def test_negative_level_rejected(self):
        """Levels cannot be negative."""
        with pytest.raises(ValidationError):
            NodePlacement(level=-1, x=0, y=0)


# =============================================================================
# Level Assignment
# =============================================================================


class TestComputeLevels:
    """Test breadth-first level assignment."""

    def test_chain_levels(self, chain):
        """Reservoir -> junction -> surge tank gives levels 0, 1, 2."""
        nodes, edges = chain
        assert compute_levels(nodes, edges) == {"R1": 0, "J1": 1, "S1": 2}

    def test_longest_path_wins(self, branching):
        """A node reachable along several paths takes the longest."""
        nodes, edges = branching
        levels = compute_levels(nodes, edges)

        assert levels["A"] == 1
        assert levels["B"] == 2
        assert levels["C"] == 3
        assert levels["D"] == 3

    def test_successor_below_predecessor(self, branching):
        """Every edge between reached nodes climbs at least one level."""
        nodes, edges = branching
        levels = compute_levels(nodes, edges)
        for edge in edges:
            assert levels[edge.target] >= levels[edge.source] + 1

    def test_reservoirs_stay_at_zero(self):
        """A reservoir fed by another node is still a root."""
        nodes = [make_node("R1", "reservoir"), make_node("J"), make_node("R2", "reservoir")]
        edges = [make_edge("e1", "R1", "J"), make_edge("e2", "J", "R2")]
        levels = compute_levels(nodes, edges)

        assert levels["R1"] == 0
        assert levels["R2"] == 0
        assert levels["J"] == 1

    def test_unreachable_nodes_default_to_zero(self):
        """Nodes no reservoir reaches share level 0."""
        nodes = [make_node("R1", "reservoir"), make_node("U1"), make_node("U2")]
        edges = [make_edge("e1", "U1", "U2")]
        assert compute_levels(nodes, edges) == {"R1": 0, "U1": 0, "U2": 0}

    def test_no_reservoirs(self):
        """Without reservoirs every node is at level 0."""
        nodes = [make_node("A"), make_node("B")]
        edges = [make_edge("e1", "A", "B")]
        assert compute_levels(nodes, edges) == {"A": 0, "B": 0}

    def test_cycle_terminates(self):
        """A loop reachable from a reservoir still finishes."""
        nodes = [make_node("R1", "reservoir"), make_node("A"), make_node("B")]
        edges = [
            make_edge("e1", "R1", "A"),
            make_edge("e2", "A", "B"),
            make_edge("e3", "B", "A"),
        ]
        levels = compute_levels(nodes, edges)

        assert levels["R1"] == 0
        assert all(level <= len(nodes) - 1 for level in levels.values())
        assert levels["B"] > levels["R1"]

    def test_self_loop_terminates(self):
        """Self-loops loaded from files do not hang the layout."""
        nodes = [make_node("R1", "reservoir"), make_node("A")]
        edges = [make_edge("e1", "R1", "A"), make_edge("e2", "A", "A")]
        levels = compute_levels(nodes, edges)
        assert levels["A"] == 1

    def test_dangling_edges_ignored(self):
        """Edges to unknown ids do not add entries."""
        nodes = [make_node("R1", "reservoir")]
        edges = [make_edge("e1", "R1", "ghost")]
        assert compute_levels(nodes, edges) == {"R1": 0}

    def test_empty_graph(self):
        assert compute_levels([], []) == {}


# =============================================================================
# Layered Engine
# =============================================================================


class TestLayeredLayoutEngine:
    """Test coordinates produced by the layered engine."""

    def test_is_layout_engine(self, engine):
        assert isinstance(engine, LayoutEngine)
        assert engine.name == "layered"

    def test_chain_columns(self, engine, chain):
        """Columns increase strictly along the chain."""
        nodes, edges = chain
        layout = engine.layout(nodes, edges)
        xs = [layout.placements[n].x for n in ("R1", "J1", "S1")]

        assert xs == [80, 260, 440]
        assert xs[0] < xs[1] < xs[2]
        assert layout.levels == {"R1": 0, "J1": 1, "S1": 2}
        assert layout.algorithm == "layered"

    def test_single_node_centred(self, engine, chain):
        """A lone node in a level sits at half the canvas height."""
        nodes, edges = chain
        layout = engine.layout(nodes, edges)
        assert all(p.y == 375 for p in layout.placements.values())

    def test_level_bucket_spacing(self, engine):
        """Nodes in one level are centred and spaced in input order."""
        nodes = [make_node("R1", "reservoir"), make_node("U"), make_node("R2", "reservoir")]
        layout = engine.layout(nodes, [])

        assert [layout.placements[n].y for n in ("R1", "U", "R2")] == [235, 375, 515]
        assert all(layout.placements[n].x == 80 for n in ("R1", "U", "R2"))

    def test_minimum_width(self, engine, chain):
        """Small graphs use the minimum canvas width."""
        nodes, edges = chain
        layout = engine.layout(nodes, edges)

        assert layout.width == 1300
        assert layout.height == 750
        assert layout.levelCount == 3

    def test_width_grows_with_levels(self, engine):
        """Width is (levels + 1) * horizontal spacing once past the minimum."""
        nodes = [make_node("R", "reservoir")] + [make_node(f"N{i}") for i in range(7)]
        ids = [n.id for n in nodes]
        edges = [make_edge(f"e{i}", a, b) for i, (a, b) in enumerate(zip(ids, ids[1:]))]
        layout = engine.layout(nodes, edges)

        assert layout.levelCount == 8
        assert layout.width == 9 * 180

    def test_deterministic(self, engine, branching):
        """The same input gives the same layout."""
        nodes, edges = branching
        first = engine.layout(nodes, edges)
        second = LayeredLayoutEngine().layout(nodes, edges)

        assert first.placements == second.placements
        assert first.etag == second.etag

    def test_order_matters_within_level(self, engine):
        """Reordering nodes in a level swaps their rows."""
        nodes = [make_node("R1", "reservoir"), make_node("R2", "reservoir")]
        forward = engine.layout(nodes, [])
        backward = engine.layout(list(reversed(nodes)), [])

        assert forward.placements["R1"].y == backward.placements["R2"].y

    def test_inputs_not_modified(self, engine, chain):
        """Layout leaves nodes and edges untouched."""
        nodes, edges = chain
        before_nodes: List[Node] = list(nodes)
        before_edges: List[Edge] = list(edges)
        engine.layout(nodes, edges)

        assert nodes == before_nodes
        assert edges == before_edges

    def test_per_call_options(self, engine, chain):
        """Options passed to layout override the engine's for that call."""
        nodes, edges = chain
        layout = engine.layout(nodes, edges, {"margin": 0, "horizontalSpacing": 100})

        assert [layout.placements[n].x for n in ("R1", "J1", "S1")] == [0, 100, 200]
        assert engine.options.margin == 80

    def test_engine_options(self, chain):
        """Engine-wide options apply to every call."""
        nodes, edges = chain
        engine = LayeredLayoutEngine(LayeredLayoutOptions(canvasHeight=400, minWidth=500))
        layout = engine.layout(nodes, edges)

        assert layout.height == 400
        assert layout.width == 720
        assert layout.placements["R1"].y == 200

    def test_empty_graph(self, engine):
        """An empty graph lays out to an empty minimum canvas."""
        layout = engine.layout([], [])
        assert layout.placements == {}
        assert layout.width == 1300
        assert layout.levelCount == 0


# =============================================================================
# Registry
# =============================================================================


class TestEngineRegistry:
    """Test engine lookup."""

    def test_get_layered(self):
        assert get_engine("layered") is LayeredLayoutEngine
        assert "layered" in ENGINES

    def test_unknown_engine(self):
        """Unknown engines are rejected with the available names."""
        with pytest.raises(ValueError, match="Unknown layout engine"):
            get_engine("force")
