"""Pydantic models for network topology and layout results."""

from .network import (
    ComputationalParameters,
    ConduitData,
    DummyData,
    Edge,
    EdgeType,
    FlowBoundaryData,
    HistorySnapshot,
    JunctionData,
    NetworkSnapshot,
    Node,
    NodePosition,
    NodeType,
    OutputRequest,
    ReservoirData,
    SimpleNodeData,
    SurgeTankData,
)
from .layout_metadata import DiagramLayout, NodePlacement

__all__ = [
    "ComputationalParameters",
    "ConduitData",
    "DummyData",
    "Edge",
    "EdgeType",
    "FlowBoundaryData",
    "HistorySnapshot",
    "JunctionData",
    "NetworkSnapshot",
    "Node",
    "NodePosition",
    "NodeType",
    "OutputRequest",
    "ReservoirData",
    "SimpleNodeData",
    "SurgeTankData",
    "DiagramLayout",
    "NodePlacement",
]
