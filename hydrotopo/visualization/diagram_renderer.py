"""
System diagram renderer for hydraulic networks.

Turns nodes and edges into a self-contained SVG document:
- Positions come from a layout engine (layered by default)
- Each element type has a fixed shape and colour
- Every element carries a hover tooltip listing its defined attributes
- Labels (with legible backgrounds for edges) are optional

Rendering is pure. Inputs are never modified and edges whose endpoints
cannot be resolved are left out of the drawing instead of failing.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from lxml import etree
from pydantic import BaseModel, ConfigDict

from hydrotopo.layout.engines import LayoutEngine, LayeredLayoutEngine
from hydrotopo.models.layout_metadata import DiagramLayout
from hydrotopo.models.network import Edge, EdgeType, Node, NodeType

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
TOOLTIP_SEPARATOR = " | "

# Characters XML 1.0 cannot carry, tab, newline and carriage return excepted
_XML_INVALID = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")

DIAGRAM_CSS = """
.diagram-edge, .node { cursor: pointer; }
.diagram-edge:hover path { stroke-width: 5; stroke: #2980b9; }
.node:hover rect, .node:hover circle, .node:hover path { stroke-width: 4; stroke: #2c3e50; }
"""

# Attribute name -> tooltip caption, in display order
NODE_TOOLTIP_FIELDS: List[Tuple[str, str]] = [
    ("label", "Label"),
    ("nodeNumber", "Node #"),
    ("elevation", "Elevation"),
    ("topElevation", "Top Elev"),
    ("bottomElevation", "Bottom Elev"),
    ("diameter", "Diameter"),
    ("celerity", "Celerity"),
    ("friction", "Friction"),
    ("scheduleNumber", "Schedule"),
    ("comment", "Comment"),
]

EDGE_TOOLTIP_FIELDS: List[Tuple[str, str]] = [
    ("label", "Label"),
    ("length", "Length"),
    ("diameter", "Diameter"),
    ("celerity", "Celerity"),
    ("friction", "Friction"),
    ("numSegments", "Segments"),
    ("cplus", "C+"),
    ("cminus", "C-"),
    ("variable", "Variable"),
    ("distance", "Distance"),
    ("area", "Area"),
    ("d", "D"),
    ("a", "A"),
    ("comment", "Comment"),
]

EDGE_STROKES: Dict[str, Dict[str, str]] = {
    EdgeType.CONDUIT.value: {"stroke": "#3498db", "stroke-width": "3"},
    EdgeType.DUMMY.value: {"stroke": "#95a5a6", "stroke-width": "2", "stroke-dasharray": "5,5"},
}


class DiagramOptions(BaseModel):
    """Display options for a render pass."""

    model_config = ConfigDict(frozen=True)

    show_labels: bool = True


# ============================================================================
# Helpers
# ============================================================================

def _fmt(value: Any) -> str:
    """Format numbers without trailing zeros (80.0 -> "80")."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return format(value, ".10g")
    return str(value)


def xml_safe(text: str) -> str:
    """Drop characters that cannot appear in an XML document."""
    return _XML_INVALID.sub("", text)


def _el(parent: etree._Element, tag: str, text: Optional[str] = None, **attrs: Any) -> etree._Element:
    element = etree.SubElement(parent, f"{{{SVG_NS}}}{tag}")
    for name, value in attrs.items():
        element.set(name.rstrip("_").replace("_", "-"), xml_safe(_fmt(value)))
    if text is not None:
        element.text = xml_safe(text)
    return element


def build_tooltip(element_id: str, element_type: str, attributes: Dict[str, Any],
                  fields: List[Tuple[str, str]]) -> str:
    """Join id, type and every defined attribute with the tooltip separator.

    Known attributes come first, in ``fields`` order, followed by any extra
    attributes the element carries. Unset and empty values are skipped.
    """
    parts = [f"ID: {element_id}", f"Type: {element_type}"]
    known = set()
    for key, caption in fields:
        known.add(key)
        value = attributes.get(key)
        if value is None or value == "":
            continue
        parts.append(f"{caption}: {_fmt(value)}")
    for key, value in attributes.items():
        if key in known or key == "type" or value is None or value == "":
            continue
        parts.append(f"{key}: {_fmt(value)}")
    return TOOLTIP_SEPARATOR.join(parts)


def edge_path(p1: Tuple[float, float], p2: Tuple[float, float]) -> str:
    """Quadratic curve bowed away from the chord by 10% of the vertical delta."""
    x1, y1 = p1
    x2, y2 = p2
    dy = y2 - y1
    mx = (x1 + x2) / 2
    my = (y1 + y2) / 2
    return (
        f"M {_fmt(x1)} {_fmt(y1)} "
        f"Q {_fmt(mx)} {_fmt(my - dy * 0.1)} "
        f"{_fmt(x2)} {_fmt(y2)}"
    )


def label_box_width(label: str) -> int:
    return len(label) * 8 + 12


# ============================================================================
# Document skeleton
# ============================================================================

def _create_root(width: float, height: float) -> etree._Element:
    root = etree.Element(f"{{{SVG_NS}}}svg", nsmap={None: SVG_NS})
    root.set("id", "system-diagram-svg")
    root.set("viewBox", f"0 0 {_fmt(width)} {_fmt(height)}")
    root.set("preserveAspectRatio", "xMidYMid meet")
    root.set("class", "w-full h-full bg-white")

    _el(root, "style", text=DIAGRAM_CSS)

    defs = _el(root, "defs")
    marker = _el(defs, "marker", id="arrowhead", markerWidth=10, markerHeight=10,
                 refX=9, refY=3, orient="auto")
    _el(marker, "polygon", points="0 0, 10 3, 0 6", fill="#3498db")

    shadow = _el(defs, "filter", id="shadow", x="-20%", y="-20%", width="140%", height="140%")
    _el(shadow, "feGaussianBlur", in_="SourceAlpha", stdDeviation=2)
    _el(shadow, "feOffset", dx=1, dy=1, result="offsetblur")
    transfer = _el(shadow, "feComponentTransfer")
    _el(transfer, "feFuncA", type="linear", slope=0.3)
    merge = _el(shadow, "feMerge")
    _el(merge, "feMergeNode")
    _el(merge, "feMergeNode", in_="SourceGraphic")
    return root


# ============================================================================
# Edges
# ============================================================================

def _draw_edge(root: etree._Element, edge: Edge, p1: Tuple[float, float],
               p2: Tuple[float, float], show_labels: bool) -> None:
    attributes = edge.data.defined_attributes()
    path = edge_path(p1, p2)

    group = _el(root, "g", class_="diagram-edge")
    group.set("data-id", xml_safe(edge.id))
    _el(group, "title", text=build_tooltip(edge.id, edge.data.type, attributes, EDGE_TOOLTIP_FIELDS))

    visible = _el(group, "path", d=path, fill="none")
    for name, value in EDGE_STROKES.get(edge.data.type, EDGE_STROKES[EdgeType.CONDUIT.value]).items():
        visible.set(name, value)
    if edge.data.type != EdgeType.DUMMY.value:
        visible.set("marker-end", "url(#arrowhead)")

    # Hit area
    _el(group, "path", d=path, stroke="transparent", stroke_width=20, fill="none")

    if not show_labels:
        return
    label = xml_safe(str(edge.data.label or attributes.get("pipeId") or ""))
    if not label:
        return

    mid_x = (p1[0] + p2[0]) / 2
    mid_y = (p1[1] + p2[1]) / 2 - 15
    box_width = label_box_width(label)

    label_group = _el(root, "g", class_="edge-label")
    _el(label_group, "rect", x=mid_x - box_width / 2, y=mid_y - 12, width=box_width, height=24,
        fill="white", fill_opacity=0.9, rx=4, stroke="#bdc3c7", stroke_width=1)
    _el(label_group, "text", text=label, x=mid_x, y=mid_y + 4, font_size=10, fill="#2c3e50",
        font_weight="bold", text_anchor="middle")


# ============================================================================
# Nodes
# ============================================================================

def _draw_reservoir(group, node: Node, x: float, y: float) -> float:
    _el(group, "rect", x=x - 25, y=y - 20, width=50, height=40, fill="#3498db",
        stroke="#2980b9", stroke_width=2, rx=4)
    _el(group, "text", text=node.data.label or "HW", x=x, y=y + 5, text_anchor="middle",
        fill="white", font_size=12, font_weight="bold")
    return y - 30


def _draw_surge_tank(group, node: Node, x: float, y: float) -> float:
    _el(group, "rect", x=x - 20, y=y - 30, width=40, height=60, fill="#f39c12",
        stroke="#e67e22", stroke_width=2, rx=4)
    _el(group, "text", text="ST", x=x, y=y + 5, text_anchor="middle", fill="white",
        font_size=11, font_weight="bold")
    return y - 40


def _draw_flow_boundary(group, node: Node, x: float, y: float) -> float:
    _el(group, "path", d=f"M {_fmt(x - 25)} {_fmt(y - 15)} L {_fmt(x + 25)} {_fmt(y)} "
                        f"L {_fmt(x - 25)} {_fmt(y + 15)} Z",
        fill="#2ecc71", stroke="#27ae60", stroke_width=2)
    _el(group, "text", text=node.data.label or "FB", x=x - 5, y=y + 4, text_anchor="middle",
        fill="white", font_size=10, font_weight="bold")
    return y + 30


def _draw_junction(group, node: Node, x: float, y: float) -> float:
    _el(group, "circle", cx=x, cy=y, r=8, fill="#e74c3c", stroke="#c0392b", stroke_width=2)
    return y - 15


def _draw_default(group, node: Node, x: float, y: float) -> float:
    _el(group, "circle", cx=x, cy=y, r=6, fill="#95a5a6", stroke="#7f8c8d", stroke_width=2)
    return y - 15


NODE_SHAPES: Dict[str, Callable[[Any, Node, float, float], float]] = {
    NodeType.RESERVOIR.value: _draw_reservoir,
    NodeType.SURGE_TANK.value: _draw_surge_tank,
    NodeType.FLOW_BOUNDARY.value: _draw_flow_boundary,
    NodeType.JUNCTION.value: _draw_junction,
}


def _draw_node(root: etree._Element, node: Node, x: float, y: float, show_labels: bool) -> None:
    attributes = node.data.defined_attributes()
    draw = NODE_SHAPES.get(node.data.type)

    group = _el(root, "g", class_="node")
    group.set("data-id", xml_safe(node.id))
    if draw is not None:
        group.set("filter", "url(#shadow)")
    else:
        draw = _draw_default
    _el(group, "title", text=build_tooltip(node.id, node.data.type, attributes, NODE_TOOLTIP_FIELDS))

    caption_y = draw(group, node, x, y)

    if show_labels:
        number = attributes.get("nodeNumber") or node.id
        _el(group, "text", text=f"Node {_fmt(number)}", x=x, y=caption_y, text_anchor="middle",
            fill="#2c3e50", font_size=10, font_weight="bold")


# ============================================================================
# Entry point
# ============================================================================

def render_system_diagram(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    options: Optional[Union[DiagramOptions, Dict[str, Any]]] = None,
    engine: Optional[LayoutEngine] = None,
    layout: Optional[DiagramLayout] = None,
) -> str:
    """Render the network as an SVG document.

    Args:
        nodes: Nodes to draw (the caller's list is not modified)
        edges: Edges to draw; those with unresolved endpoints are skipped
        options: DiagramOptions or dict (``show_labels`` defaults to True)
        engine: Layout engine (LayeredLayoutEngine if None)
        layout: Precomputed layout for these nodes (skips the engine)

    Returns:
        SVG markup string
    """
    if options is None:
        options = DiagramOptions()
    elif not isinstance(options, DiagramOptions):
        options = DiagramOptions.model_validate(options)

    diagram_nodes = list(nodes)
    if layout is None:
        layout = (engine or LayeredLayoutEngine()).layout(diagram_nodes, list(edges))

    by_id = {n.id: n for n in diagram_nodes}
    root = _create_root(layout.width, layout.height)

    skipped = 0
    for edge in edges:
        p1 = layout.get(edge.source)
        p2 = layout.get(edge.target)
        if edge.source not in by_id or edge.target not in by_id or p1 is None or p2 is None:
            skipped += 1
            continue
        _draw_edge(root, edge, p1.to_point(), p2.to_point(), options.show_labels)

    for node in diagram_nodes:
        placement = layout.get(node.id)
        if placement is None:
            continue
        _draw_node(root, node, placement.x, placement.y, options.show_labels)

    if skipped:
        logger.debug(f"Skipped {skipped} edge(s) with unresolved endpoints")

    return etree.tostring(root, encoding="unicode", pretty_print=True)


generate_system_diagram = render_system_diagram
