"""
Topology Store Module - Editable Network State with Undo/Redo

This module owns the hydraulic network being edited:
- Atomic mutations (add, connect, update, delete, load, clear)
- Bounded linear undo/redo history of whole-state snapshots
- Change hooks for derived data (rendered diagram caches, etc.)

The store is an ordinary object owned by the editing session and handed to
whatever needs it; there is no module-level instance. It has a single
writer, so no locking is done.

Usage:
    from hydrotopo.core.topology_store import TopologyStore
    from hydrotopo.models.network import NodeType

    store = TopologyStore()
    hw = store.add_node(NodeType.RESERVOIR, {"x": 0, "y": 0})
    j1 = store.add_node(NodeType.JUNCTION, {"x": 200, "y": 0})
    pipe = store.connect(hw.id, j1.id)      # labelled "C1"

    store.update_edge_data(pipe.id, {"length": 2500})
    store.undo()                            # length back to 1000
"""

import logging
import re
import uuid
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from hydrotopo.config.settings import get_setting
from hydrotopo.models.network import (
    ComputationalParameters,
    Edge,
    EdgeMarker,
    EdgeStyle,
    EdgeType,
    ElementType,
    HistorySnapshot,
    NetworkSnapshot,
    Node,
    NodePosition,
    NodeType,
    OutputRequest,
    ConduitData,
    validate_edge_data,
    validate_node_data,
)

logger = logging.getLogger(__name__)

PositionLike = Union[NodePosition, Mapping[str, float], Tuple[float, float]]


# ============================================================================
# Defaults
# ============================================================================

# Label templates accept {number} (numeric id) and {id}
NODE_DEFAULTS: Dict[NodeType, Dict[str, Any]] = {
    NodeType.RESERVOIR: {"label": "HW", "elevation": 100},
    NodeType.SIMPLE_NODE: {"label": "Node {number}", "elevation": 50},
    NodeType.JUNCTION: {"label": "Node {number}", "elevation": 50},
    NodeType.SURGE_TANK: {
        "label": "ST",
        "topElevation": 120,
        "bottomElevation": 80,
        "diameter": 5,
        "celerity": 1000,
        "friction": 0.01,
    },
    NodeType.FLOW_BOUNDARY: {"label": "FB{id}", "scheduleNumber": 1},
}

CONDUIT_DEFAULTS: Dict[str, Any] = {
    "length": 1000,
    "diameter": 0.5,
    "celerity": 1000,
    "friction": 0.02,
    "numSegments": 1,
}

EDGE_LABEL_PREFIX: Dict[str, str] = {
    EdgeType.CONDUIT.value: "C",
    EdgeType.DUMMY.value: "D",
}

NEW_CONNECTION_COLOR = "#64748b"

EDGE_STYLES: Dict[str, Tuple[EdgeStyle, EdgeMarker]] = {
    EdgeType.CONDUIT.value: (
        EdgeStyle(stroke="#3b82f6", strokeWidth=2),
        EdgeMarker(color="#3b82f6"),
    ),
    EdgeType.DUMMY.value: (
        EdgeStyle(stroke="#94a3b8", strokeWidth=2, strokeDasharray="5,5"),
        EdgeMarker(color="#94a3b8"),
    ),
}

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def numeric_id(element_id: Any) -> int:
    """Integer value of an id's leading digits, 0 when there are none."""
    match = _LEADING_INT.match(str(element_id))
    return int(match.group(1)) if match else 0


def _as_position(position: Optional[PositionLike]) -> NodePosition:
    if position is None:
        return NodePosition()
    if isinstance(position, NodePosition):
        return position
    if isinstance(position, Mapping):
        return NodePosition(**position)
    return NodePosition.from_list(list(position))


def _flatten_variable_data(raw_edge: Dict[str, Any]) -> Dict[str, Any]:
    """Lift a nested ``variableData`` bag into the edge's top-level data."""
    data = raw_edge.get("data")
    if not data or data.get("variableData") is None:
        return raw_edge
    data = dict(data)
    variable_data = data.pop("variableData")
    return {**raw_edge, "data": {**data, **variable_data, "variable": True}}


# ============================================================================
# Change Hooks
# ============================================================================

class TopologyHook:
    """Base class for store change handlers.

    Subclass and override ``on_changed`` to react to any state change, tracked
    or not (selection, lock, rename, undo and redo included).

    Example:
        class LoggingHook(TopologyHook):
            def on_changed(self, store, action):
                logger.info(f"{action}: {len(store.nodes)} nodes")
    """

    def on_changed(self, store: "TopologyStore", action: str) -> None:
        """Called after the store state changed."""
        pass


class DiagramCacheHook(TopologyHook):
    """Hook that caches rendered diagrams until the next change.

    Example:
        cache = DiagramCacheHook()
        store.add_hook(cache)

        svg = cache.get(key)
        if svg is None:
            svg = render_system_diagram(store.nodes, store.edges)
            cache.put(key, svg)

        store.add_node(...)   # cache dropped
        assert cache.get(key) is None
    """

    def __init__(self):
        self._diagrams: Dict[Any, str] = {}

    def on_changed(self, store: "TopologyStore", action: str) -> None:
        self._diagrams.clear()

    def get(self, key: Any) -> Optional[str]:
        return self._diagrams.get(key)

    def put(self, key: Any, markup: str) -> None:
        self._diagrams[key] = markup

    def __len__(self) -> int:
        return len(self._diagrams)


# ============================================================================
# Topology Store
# ============================================================================

class TopologyStore:
    """Editable hydraulic network with undo/redo history.

    Tracked operations snapshot the undoable state (nodes, edges,
    computational parameters, output requests) onto the past stack before
    mutating it. Both stacks hold at most ``history_limit`` snapshots; the
    oldest are dropped first.

    Mutations addressed to unknown ids leave the collections unchanged
    rather than raising.
    """

    def __init__(
        self,
        history_limit: Optional[int] = None,
        project_name: Optional[str] = None,
    ):
        """Initialize an empty network.

        Args:
            history_limit: Max snapshots per history stack (settings default)
            project_name: Initial project name (settings default)
        """
        self._history_limit = (
            history_limit if history_limit is not None else get_setting('history_limit')
        )
        self._default_project_name = project_name or get_setting('default_project_name')

        self._nodes: List[Node] = []
        self._edges: List[Edge] = []
        self._computational_params = ComputationalParameters()
        self._output_requests: List[OutputRequest] = []

        self.selected_element_id: Optional[str] = None
        self.selected_element_type: Optional[ElementType] = None
        self.is_locked = False
        self.project_name = self._default_project_name

        self._past: Deque[HistorySnapshot] = deque(maxlen=self._history_limit)
        self._future: Deque[HistorySnapshot] = deque(maxlen=self._history_limit)
        self._id_counter = 1
        self._hooks: List[TopologyHook] = []

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges)

    @property
    def computational_params(self) -> ComputationalParameters:
        return self._computational_params

    @property
    def output_requests(self) -> List[OutputRequest]:
        return list(self._output_requests)

    @property
    def past(self) -> Tuple[HistorySnapshot, ...]:
        """Undo stack, most recent first."""
        return tuple(self._past)

    @property
    def future(self) -> Tuple[HistorySnapshot, ...]:
        """Redo stack, most recent first."""
        return tuple(self._future)

    @property
    def history_limit(self) -> int:
        return self._history_limit

    @property
    def next_id(self) -> str:
        """Id the next created element will receive."""
        return str(self._id_counter)

    def can_undo(self) -> bool:
        return bool(self._past)

    def can_redo(self) -> bool:
        return bool(self._future)

    def get_node(self, node_id: str) -> Optional[Node]:
        return next((n for n in self._nodes if n.id == node_id), None)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return next((e for e in self._edges if e.id == edge_id), None)

    def snapshot(self) -> HistorySnapshot:
        """Undoable state as an immutable snapshot."""
        return HistorySnapshot(
            nodes=tuple(self._nodes),
            edges=tuple(self._edges),
            computationalParams=self._computational_params,
            outputRequests=tuple(self._output_requests),
        )

    def export_network(self) -> NetworkSnapshot:
        """Full project state for persistence collaborators."""
        return NetworkSnapshot(
            nodes=tuple(self._nodes),
            edges=tuple(self._edges),
            computationalParams=self._computational_params,
            outputRequests=tuple(self._output_requests),
            projectName=self.project_name,
        )

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def add_hook(self, hook: TopologyHook) -> None:
        """Register a change hook."""
        if hook not in self._hooks:
            self._hooks.append(hook)

    def remove_hook(self, hook: TopologyHook) -> None:
        """Unregister a change hook."""
        if hook in self._hooks:
            self._hooks.remove(hook)

    def _notify(self, action: str) -> None:
        for hook in self._hooks:
            try:
                hook.on_changed(self, action)
            except Exception as e:
                logger.warning(f"Hook on_changed failed after {action}: {e}")

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def save_to_history(self) -> None:
        """Push the current state onto the undo stack and clear redo."""
        self._past.appendleft(self.snapshot())
        self._future.clear()

    def _apply_snapshot(self, snapshot: HistorySnapshot) -> None:
        self._nodes = list(snapshot.nodes)
        self._edges = list(snapshot.edges)
        self._computational_params = snapshot.computationalParams
        self._output_requests = list(snapshot.outputRequests)

    def undo(self) -> bool:
        """Restore the most recent snapshot.

        Returns:
            True if a step was undone, False if there was nothing to undo
        """
        if not self._past:
            return False

        previous = self._past.popleft()
        self._future.appendleft(self.snapshot())
        self._apply_snapshot(previous)
        logger.debug(f"Undo: {len(self._past)} past, {len(self._future)} future")
        self._notify("undo")
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone snapshot.

        Returns:
            True if a step was redone, False if there was nothing to redo
        """
        if not self._future:
            return False

        following = self._future.popleft()
        self._past.appendleft(self.snapshot())
        self._apply_snapshot(following)
        logger.debug(f"Redo: {len(self._past)} past, {len(self._future)} future")
        self._notify("redo")
        return True

    # ------------------------------------------------------------------
    # Tracked mutations
    # ------------------------------------------------------------------

    def _next_id(self) -> str:
        element_id = str(self._id_counter)
        self._id_counter += 1
        return element_id

    def add_node(self, node_type: Union[NodeType, str], position: Optional[PositionLike] = None) -> Node:
        """Create a node with the type's default attributes.

        Args:
            node_type: NodeType or its string value
            position: Editor position as NodePosition, {"x", "y"} or (x, y)

        Returns:
            The new Node
        """
        node_type = NodeType(node_type)
        self.save_to_history()
        node_id = self._next_id()
        number = numeric_id(node_id)

        data = dict(NODE_DEFAULTS[node_type])
        data["label"] = data["label"].format(number=number, id=node_id)
        data["nodeNumber"] = number
        data["type"] = node_type.value

        node = Node(id=node_id, position=_as_position(position), data=validate_node_data(data))
        self._nodes.append(node)
        logger.debug(f"Added {node_type.value} node {node_id}")
        self._notify("add_node")
        return node

    def connect(self, source: str, target: str) -> Edge:
        """Create a conduit from ``source`` to ``target``.

        The label is ``C{n+1}`` where n is the current number of conduits.
        Self-loops are not checked here; callers reject them.

        Returns:
            The new Edge
        """
        self.save_to_history()
        edge_id = self._next_id()
        conduit_count = sum(1 for e in self._edges if e.data.type == EdgeType.CONDUIT.value)

        edge = Edge(
            id=edge_id,
            source=str(source),
            target=str(target),
            data=ConduitData(label=f"C{conduit_count + 1}", **CONDUIT_DEFAULTS),
            style=EdgeStyle(stroke=NEW_CONNECTION_COLOR, strokeWidth=2),
            markerEnd=EdgeMarker(color=NEW_CONNECTION_COLOR),
        )
        self._edges.append(edge)
        logger.debug(f"Connected {source} -> {target} as {edge.data.label}")
        self._notify("connect")
        return edge

    def update_node_data(self, node_id: str, partial: Mapping[str, Any]) -> None:
        """Shallow-merge ``partial`` into a node's attributes.

        The merged attributes are validated before history is touched, so a
        rejected update leaves both stacks as they were.
        """
        updated = []
        for node in self._nodes:
            if node.id == node_id:
                merged = {**node.data.model_dump(exclude_none=True), **partial}
                node = node.model_copy(update={"data": validate_node_data(merged)})
            updated.append(node)
        self.save_to_history()
        self._nodes = updated
        self._notify("update_node_data")

    def update_edge_data(self, edge_id: str, partial: Mapping[str, Any]) -> None:
        """Shallow-merge ``partial`` into an edge's attributes.

        Changing ``type`` regenerates the label from the number of other
        edges of the new type (``C`` for conduits, ``D`` for dummies). The
        stroke style is always reassigned from the resulting type. Invalid
        updates raise before history is touched.
        """
        updated = []
        for edge in self._edges:
            if edge.id == edge_id:
                edge = self._merge_edge(edge, partial)
            updated.append(edge)
        self.save_to_history()
        self._edges = updated
        self._notify("update_edge_data")

    def _merge_edge(self, edge: Edge, partial: Mapping[str, Any]) -> Edge:
        old_type = edge.data.type
        requested = partial.get("type")
        new_type = EdgeType(requested or old_type).value
        label = partial.get("label") or edge.data.label or ""

        if requested and new_type != old_type:
            same_type = sum(
                1 for e in self._edges if e.data.type == new_type and e.id != edge.id
            )
            label = f"{EDGE_LABEL_PREFIX[new_type]}{same_type + 1}"

        merged = {
            **edge.data.model_dump(exclude_none=True),
            **partial,
            "type": new_type,
            "label": label,
        }
        style, marker = EDGE_STYLES[new_type]
        return edge.model_copy(
            update={"data": validate_edge_data(merged), "style": style, "markerEnd": marker}
        )

    def delete_element(self, element_id: str, element_type: ElementType) -> None:
        """Remove a node (and every incident edge) or a single edge."""
        self.save_to_history()
        if element_type == "node":
            self._nodes = [n for n in self._nodes if n.id != element_id]
            self._edges = [
                e for e in self._edges
                if e.source != element_id and e.target != element_id
            ]
        else:
            self._edges = [e for e in self._edges if e.id != element_id]

        if self.selected_element_id == element_id:
            self.selected_element_id = None
            self.selected_element_type = None
        logger.debug(f"Deleted {element_type} {element_id}")
        self._notify("delete_element")

    def clear_network(self) -> None:
        """Empty the network and reset the project name and id counter.

        Computational parameters are kept.
        """
        self.save_to_history()
        self._nodes = []
        self._edges = []
        self._output_requests = []
        self.selected_element_id = None
        self.selected_element_type = None
        self.project_name = self._default_project_name
        self._id_counter = 1
        logger.info("Network cleared")
        self._notify("clear_network")

    def update_computational_params(self, partial: Mapping[str, Any]) -> None:
        """Shallow-merge simulation time controls."""
        merged = {**self._computational_params.model_dump(), **partial}
        params = ComputationalParameters.model_validate(merged)
        self.save_to_history()
        self._computational_params = params
        self._notify("update_computational_params")

    def add_output_request(
        self,
        element_id: str,
        element_type: ElementType,
        request_type: str,
        variables: Iterable[str] = (),
    ) -> OutputRequest:
        """Request engine output for a node or edge.

        Returns:
            The new OutputRequest
        """
        request = OutputRequest(
            id=f"req-{uuid.uuid4().hex[:12]}",
            elementId=str(element_id),
            elementType=element_type,
            requestType=request_type,
            variables=tuple(variables or ()),
        )
        self.save_to_history()
        self._output_requests.append(request)
        self._notify("add_output_request")
        return request

    def remove_output_request(self, request_id: str) -> None:
        self.save_to_history()
        self._output_requests = [r for r in self._output_requests if r.id != request_id]
        self._notify("remove_output_request")

    # ------------------------------------------------------------------
    # Untracked state
    # ------------------------------------------------------------------

    def move_node(self, node_id: str, position: PositionLike) -> None:
        """Set a node's editor position (drag); not undoable."""
        new_position = _as_position(position)
        self._nodes = [
            n.model_copy(update={"position": new_position}) if n.id == node_id else n
            for n in self._nodes
        ]
        self._notify("move_node")

    def select_element(self, element_id: Optional[str], element_type: Optional[ElementType]) -> None:
        self.selected_element_id = element_id
        self.selected_element_type = element_type
        self._notify("select_element")

    def toggle_lock(self) -> bool:
        """Flip the editor lock.

        Returns:
            The new lock state
        """
        self.is_locked = not self.is_locked
        self._notify("toggle_lock")
        return self.is_locked

    def set_project_name(self, name: str) -> None:
        self.project_name = name
        self._notify("set_project_name")

    def load_network(
        self,
        nodes: Iterable[Union[Node, Mapping[str, Any]]],
        edges: Iterable[Union[Edge, Mapping[str, Any]]],
        params: Optional[Union[ComputationalParameters, Mapping[str, Any]]] = None,
        requests: Optional[Iterable[Union[OutputRequest, Mapping[str, Any]]]] = None,
        project_name: Optional[str] = None,
    ) -> None:
        """Replace the whole network.

        Loading is a fresh baseline: it is not undoable and discards both
        history stacks. The id counter restarts after the highest numeric
        node or edge id, and nested ``variableData`` on edges is flattened
        with ``variable=True``.

        Args:
            nodes: Nodes as models or editor-format dicts
            edges: Edges as models or editor-format dicts
            params: Computational parameters (current ones kept if None)
            requests: Output requests (emptied if None)
            project_name: Project name (current one kept if None or empty)

        Raises:
            pydantic.ValidationError: If an element is ill-typed
        """
        loaded_nodes = [
            n if isinstance(n, Node) else Node.model_validate(dict(n)) for n in nodes
        ]

        loaded_edges = []
        for edge in edges:
            if isinstance(edge, Edge):
                if "variableData" not in (edge.data.model_extra or {}):
                    loaded_edges.append(edge)
                    continue
                edge = edge.model_dump()
            loaded_edges.append(Edge.model_validate(_flatten_variable_data(dict(edge))))

        max_id = max(
            [numeric_id(n.id) for n in loaded_nodes]
            + [numeric_id(e.id) for e in loaded_edges]
            + [0]
        )
        self._id_counter = max_id + 1

        self._nodes = loaded_nodes
        self._edges = loaded_edges
        if params is not None:
            self._computational_params = (
                params if isinstance(params, ComputationalParameters)
                else ComputationalParameters.model_validate(dict(params))
            )
        self._output_requests = [
            r if isinstance(r, OutputRequest) else OutputRequest.model_validate(dict(r))
            for r in (requests or [])
        ]
        if project_name:
            self.project_name = project_name
        self.selected_element_id = None
        self.selected_element_type = None
        self._past.clear()
        self._future.clear()

        logger.info(
            f"Loaded network '{self.project_name}': {len(self._nodes)} nodes, "
            f"{len(self._edges)} edges (next id {self._id_counter})"
        )
        self._notify("load_network")
