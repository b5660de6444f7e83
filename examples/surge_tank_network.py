#!/usr/bin/env python3
"""
Surge Tank Network Example
Builds a reservoir -> penstock -> surge tank -> valve network, renders the
diagram and saves the project.
"""

import logging
from pathlib import Path

from hydrotopo.core.topology_store import TopologyStore
from hydrotopo.persistence.project_persistence import ProjectPersistence, project_filename
from hydrotopo.tools.editor_tools import EditorTools


def check(result: dict) -> dict:
    if not result.get("ok"):
        raise RuntimeError(result)
    return result["data"]


def create_surge_tank_network(output_dir: Path) -> None:
    """Create and save a small surge tank network."""
    print("Creating Surge Tank Network Example...")
    print("=" * 50)

    store = TopologyStore(project_name="Surge Tank Example")
    editor = EditorTools(store)

    # 1. Nodes
    print("\n1. Adding nodes")
    hw = check(editor.handle_command("editor_add_node", {"node_type": "reservoir", "position": [0, 0]}))
    j1 = check(editor.handle_command("editor_add_node", {"node_type": "junction", "position": [200, 0]}))
    st = check(editor.handle_command("editor_add_node", {"node_type": "surgeTank", "position": [200, -100]}))
    fb = check(editor.handle_command("editor_add_node", {"node_type": "flowBoundary", "position": [400, 0]}))
    print(f"   Added {hw['data']['label']}, {j1['data']['label']}, {st['data']['label']}, {fb['data']['label']}")

    # 2. Links
    print("\n2. Connecting")
    penstock = check(editor.handle_command("editor_connect", {"source": hw["id"], "target": j1["id"]}))
    riser = check(editor.handle_command("editor_connect", {"source": j1["id"], "target": st["id"]}))
    tail = check(editor.handle_command("editor_connect", {"source": j1["id"], "target": fb["id"]}))

    check(editor.handle_command("editor_update_edge", {
        "id": penstock["id"],
        "data": {"length": 2400, "diameter": 3.2, "numSegments": 12},
    }))
    check(editor.handle_command("editor_update_edge", {"id": riser["id"], "data": {"type": "dummy"}}))
    print(f"   Conduits: {penstock['data']['label']}, {tail['data']['label']}; riser is a dummy link")

    # 3. Analysis settings
    print("\n3. Setting computational parameters and outputs")
    check(editor.handle_command("editor_set_params", {"params": {"dtcomp": 0.005, "tmax": 120}}))
    check(editor.handle_command("editor_add_output_request", {
        "element_id": st["id"],
        "element_type": "node",
        "request_type": "PLOT",
        "variables": ["HEAD", "Q"],
    }))

    # 4. Render and save
    print("\n4. Rendering and saving")
    diagram = check(editor.handle_command("editor_render"))
    persistence = ProjectPersistence()
    project_path = output_dir / project_filename(store.project_name)
    saved = persistence.save_project(store, project_path)
    svg_path = persistence.save_diagram(diagram["svg"], project_path.with_suffix(".svg"))

    print(f"   Project: {saved['path']} ({saved['nodes']} nodes, {saved['edges']} edges)")
    print(f"   Diagram: {svg_path}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_surge_tank_network(Path("/tmp/example_projects/surge_tank"))
