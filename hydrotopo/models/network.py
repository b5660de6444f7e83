"""Network topology schemas for the hydraulic network editor.

This module provides Pydantic schemas for the editable topology:
- Nodes (reservoirs, simple nodes, junctions, surge tanks, flow boundaries)
- Edges (conduits and dummy links)
- Computational parameters and output requests
- History snapshots and the project export shape

Node and edge attributes are tagged unions discriminated by ``type``. Each
variant declares its optional fields explicitly but keeps unknown keys, so a
shallow merge never loses information a file or the caller put there.

Field names keep the editor's JSON spelling (``topElevation``,
``numSegments``) so project files round-trip without renaming.

All models are frozen. Stores and snapshots share instances instead of
copying them.
"""

import logging
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, computed_field, field_validator, model_validator

logger = logging.getLogger(__name__)


class NodeType(str, Enum):
    """Hydraulic node types."""
    RESERVOIR = "reservoir"
    SIMPLE_NODE = "simpleNode"
    JUNCTION = "junction"
    SURGE_TANK = "surgeTank"
    FLOW_BOUNDARY = "flowBoundary"

    @classmethod
    def _missing_(cls, value):
        # Files written by the browser editor use "node" for simple nodes
        if value == "node":
            return cls.SIMPLE_NODE
        return None


class EdgeType(str, Enum):
    """Link types between nodes."""
    CONDUIT = "conduit"
    DUMMY = "dummy"


ElementType = Literal["node", "edge"]
RequestType = Literal["HISTORY", "PLOT", "SPREADSHEET"]


class NodePosition(BaseModel):
    """Editor-assigned position of a node (independent of computed layout).

    Attributes:
        x: Horizontal coordinate
        y: Vertical coordinate
    """

    model_config = ConfigDict(frozen=True)

    x: float = Field(default=0.0, description="Horizontal coordinate")
    y: float = Field(default=0.0, description="Vertical coordinate")

    @classmethod
    def from_list(cls, pos: List[float]) -> "NodePosition":
        """Create NodePosition from [x, y] list.

        Raises:
            ValueError: If pos doesn't have exactly 2 elements
        """
        if len(pos) != 2:
            raise ValueError(f"Position must be [x, y], got {len(pos)} elements")
        return cls(x=pos[0], y=pos[1])


# =============================================================================
# Node data variants
# =============================================================================


class _ElementData(BaseModel):
    """Common base for node and edge attribute bags."""

    model_config = ConfigDict(frozen=True, extra="allow")

    label: str = Field(default="", description="Display label")
    comment: Optional[str] = Field(default=None, description="Free-text comment")

    def defined_attributes(self) -> Dict[str, Any]:
        """Attributes that carry a value, declared fields first then extras."""
        data = self.model_dump(exclude_none=True)
        data.pop("type", None)
        return data


class ReservoirData(_ElementData):
    """Fixed-head source node."""
    type: Literal["reservoir"] = "reservoir"
    nodeNumber: Optional[int] = None
    elevation: Optional[float] = None


class SimpleNodeData(_ElementData):
    """Plain connection node."""
    type: Literal["simpleNode"] = "simpleNode"
    nodeNumber: Optional[int] = None
    elevation: Optional[float] = None


class JunctionData(_ElementData):
    """Zero-volume junction."""
    type: Literal["junction"] = "junction"
    nodeNumber: Optional[int] = None
    elevation: Optional[float] = None


class SurgeTankData(_ElementData):
    """Standpipe surge tank."""
    type: Literal["surgeTank"] = "surgeTank"
    nodeNumber: Optional[int] = None
    topElevation: Optional[float] = None
    bottomElevation: Optional[float] = None
    diameter: Optional[float] = None
    celerity: Optional[float] = None
    friction: Optional[float] = None


class FlowBoundaryData(_ElementData):
    """Node with a prescribed flow schedule."""
    type: Literal["flowBoundary"] = "flowBoundary"
    nodeNumber: Optional[int] = None
    scheduleNumber: Optional[int] = None


NodeData = Annotated[
    Union[ReservoirData, SimpleNodeData, JunctionData, SurgeTankData, FlowBoundaryData],
    Field(discriminator="type"),
]


# =============================================================================
# Edge data variants
# =============================================================================


class ConduitData(_ElementData):
    """Pressurized pipe."""
    type: Literal["conduit"] = "conduit"
    length: Optional[float] = None
    diameter: Optional[float] = None
    celerity: Optional[float] = None
    friction: Optional[float] = None
    numSegments: Optional[int] = None
    cplus: Optional[float] = None
    cminus: Optional[float] = None
    variable: Optional[bool] = None
    distance: Optional[float] = None
    area: Optional[float] = None
    d: Optional[float] = None
    a: Optional[float] = None


class DummyData(_ElementData):
    """Connector with no physical effect, used for routing only."""
    type: Literal["dummy"] = "dummy"
    diameter: Optional[float] = None


EdgeData = Annotated[Union[ConduitData, DummyData], Field(discriminator="type")]

_node_data_adapter = TypeAdapter(NodeData)
_edge_data_adapter = TypeAdapter(EdgeData)


def _normalize_node_type(value: Any) -> Any:
    try:
        return NodeType(value).value
    except ValueError:
        return value


def validate_node_data(data: Dict[str, Any]):
    """Validate a raw attribute dict into the matching node data variant."""
    data = dict(data)
    if "type" in data:
        data["type"] = _normalize_node_type(data["type"])
    return _node_data_adapter.validate_python(data)


def validate_edge_data(data: Dict[str, Any]):
    """Validate a raw attribute dict into the matching edge data variant."""
    data = dict(data)
    data["type"] = EdgeType(data.get("type") or EdgeType.CONDUIT.value).value
    return _edge_data_adapter.validate_python(data)


# =============================================================================
# Elements
# =============================================================================


class Node(BaseModel):
    """A node in the hydraulic network.

    ``type`` is derived from the data variant. A top-level ``type`` on input
    (the editor's file format carries it twice) is folded into ``data``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable node identifier")
    position: NodePosition = Field(default_factory=NodePosition)
    data: NodeData

    @model_validator(mode="before")
    @classmethod
    def fold_type_into_data(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        values = dict(values)
        if values.get("id") is not None:
            values["id"] = str(values["id"])
        node_type = values.pop("type", None)
        data = values.get("data")
        if isinstance(data, BaseModel):
            return values
        data = dict(data or {})
        if node_type is not None:
            data.setdefault("type", node_type)
        if "type" in data:
            data["type"] = _normalize_node_type(data["type"])
        values["data"] = data
        return values

    @computed_field
    @property
    def type(self) -> str:
        return self.data.type

    @property
    def node_type(self) -> NodeType:
        return NodeType(self.data.type)


class EdgeStyle(BaseModel):
    """Stroke hints reassigned from the edge type."""

    model_config = ConfigDict(frozen=True)

    stroke: str = "#64748b"
    strokeWidth: float = 2
    strokeDasharray: Optional[str] = None


class EdgeMarker(BaseModel):
    """Arrowhead marker hint."""

    model_config = ConfigDict(frozen=True)

    type: str = "arrowclosed"
    color: str = "#64748b"


class Edge(BaseModel):
    """A directed link between two nodes.

    ``source``/``target`` may reference ids that no longer exist; consumers
    filter such edges instead of rejecting them.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable edge identifier")
    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    data: EdgeData = Field(default_factory=ConduitData)
    style: EdgeStyle = Field(default_factory=EdgeStyle)
    markerEnd: EdgeMarker = Field(default_factory=EdgeMarker)

    @model_validator(mode="before")
    @classmethod
    def default_conduit(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        values = dict(values)
        # "type" at the top level is the canvas edge kind, not the link type
        values.pop("type", None)
        for key in ("id", "source", "target"):
            if key in values and values[key] is not None:
                values[key] = str(values[key])
        data = values.get("data")
        if data is None or isinstance(data, BaseModel):
            return values
        data = dict(data)
        edge_type = data.get("type") or EdgeType.CONDUIT.value
        data["type"] = EdgeType(edge_type).value
        values["data"] = data
        return values

    @property
    def type(self) -> str:
        return self.data.type

    @property
    def edge_type(self) -> EdgeType:
        return EdgeType(self.data.type)


# =============================================================================
# Project-level settings
# =============================================================================


class ComputationalParameters(BaseModel):
    """Simulation time controls handed to the analysis engine.

    Attributes:
        dtcomp: Computational time step [s]
        dtout: Output time step [s]
        tmax: Simulated duration [s]
    """

    model_config = ConfigDict(frozen=True)

    dtcomp: float = Field(default=0.01, description="Computational time step [s]")
    dtout: float = Field(default=0.1, description="Output time step [s]")
    tmax: float = Field(default=500.0, description="Simulated duration [s]")


class OutputRequest(BaseModel):
    """Request for engine output on a node or edge."""

    model_config = ConfigDict(frozen=True)

    id: str
    elementId: str
    elementType: ElementType
    requestType: RequestType
    variables: Tuple[str, ...] = ()

    @field_validator("variables", mode="before")
    @classmethod
    def unique_variables(cls, v: Any) -> Any:
        """Drop repeated variables, keeping first-seen order."""
        if v is None:
            return ()
        return tuple(dict.fromkeys(v))


class HistorySnapshot(BaseModel):
    """Undoable part of the editor state.

    Selection, lock state and project name are deliberately excluded.
    """

    model_config = ConfigDict(frozen=True)

    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()
    computationalParams: ComputationalParameters = Field(default_factory=ComputationalParameters)
    outputRequests: Tuple[OutputRequest, ...] = ()


class NetworkSnapshot(HistorySnapshot):
    """Full project export: the undoable state plus the project name."""

    projectName: str = "Untitled Network"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the editor's project-file layout."""
        return self.model_dump(mode="json", exclude_none=True)
