"""Tests for editor command tools.

Covers command routing, canvas rules (self-loops, lock), project loading
checks, error envelopes and the rendered diagram cache.
"""

import pytest

from hydrotopo.core.topology_store import TopologyStore
from hydrotopo.tools.editor_tools import EditorTools
from hydrotopo.utils.response import is_success


@pytest.fixture
def store():
    return TopologyStore()


@pytest.fixture
def tools(store):
    return EditorTools(store)


@pytest.fixture
def populated(tools):
    """Reservoir connected to a junction."""
    tools.handle_command("editor_add_node", {"node_type": "reservoir", "position": {"x": 0, "y": 0}})
    tools.handle_command("editor_add_node", {"node_type": "junction", "position": [100, 0]})
    tools.handle_command("editor_connect", {"source": "1", "target": "2"})
    return tools


@pytest.fixture
def project():
    """Project in the editor's file layout."""
    return {
        "projectName": "Penstock",
        "nodes": [
            {"id": "1", "type": "reservoir", "position": {"x": 0, "y": 0},
             "data": {"type": "reservoir", "label": "HW", "elevation": 120}},
            {"id": "2", "type": "node", "position": {"x": 150, "y": 0},
             "data": {"type": "node", "label": "Node 2"}},
        ],
        "edges": [
            {"id": "3", "source": "1", "target": "2", "type": "smoothstep",
             "data": {"type": "conduit", "label": "C1", "length": 800}},
        ],
        "computationalParams": {"dtcomp": 0.02, "dtout": 0.2, "tmax": 120},
    }


class TestRouting:
    """Test command dispatch."""

    def test_list_commands(self, tools):
        commands = tools.list_commands()
        assert "editor_add_node" in commands
        assert "editor_render" in commands
        assert commands == sorted(commands)

    def test_unknown_command(self, tools):
        result = tools.handle_command("editor_explode", {})

        assert not is_success(result)
        assert result["error"]["code"] == "UNKNOWN_COMMAND"

    def test_missing_argument(self, tools):
        """Missing required arguments give INVALID_ARGUMENTS."""
        result = tools.handle_command("editor_connect", {"source": "1"})

        assert not is_success(result)
        assert result["error"]["code"] == "INVALID_ARGUMENTS"
        assert result["error"]["details"]["command"] == "editor_connect"

    def test_unknown_node_type(self, tools, store):
        result = tools.handle_command("editor_add_node", {"node_type": "volcano"})

        assert result["error"]["code"] == "INVALID_ARGUMENTS"
        assert store.nodes == []
        assert not store.can_undo()

    def test_unknown_layout_engine(self, store):
        with pytest.raises(ValueError):
            EditorTools(store, layout_engine="force")


class TestElementCommands:
    """Test element editing commands."""

    def test_add_node(self, tools):
        result = tools.handle_command("editor_add_node", {"node_type": "surgeTank"})

        assert is_success(result)
        assert result["data"]["id"] == "1"
        assert result["data"]["type"] == "surgeTank"
        assert result["data"]["data"]["label"] == "ST"

    def test_connect(self, populated, store):
        assert len(store.edges) == 1
        assert store.edges[0].data.label == "C1"

    def test_self_loop_rejected(self, populated, store):
        """Connecting a node to itself is refused and not recorded."""
        depth = len(store.past)
        result = populated.handle_command("editor_connect", {"source": "2", "target": "2"})

        assert result["error"]["code"] == "SELF_LOOP"
        assert len(store.edges) == 1
        assert len(store.past) == depth

    def test_locked_blocks_connect_and_move(self, populated, store):
        populated.handle_command("editor_toggle_lock")

        connect = populated.handle_command("editor_connect", {"source": "2", "target": "1"})
        move = populated.handle_command("editor_move_node", {"id": "1", "position": [5, 5]})

        assert connect["error"]["code"] == "LOCKED"
        assert move["error"]["code"] == "LOCKED"
        assert store.get_node("1").position.x == 0

    def test_locked_allows_attribute_edits(self, populated, store):
        populated.handle_command("editor_toggle_lock")
        result = populated.handle_command("editor_update_node", {"id": "1", "data": {"elevation": 140}})

        assert is_success(result)
        assert store.get_node("1").data.elevation == 140

    def test_move_node(self, populated, store):
        result = populated.handle_command("editor_move_node", {"id": "2", "position": {"x": 300, "y": 20}})

        assert is_success(result)
        assert store.get_node("2").position.x == 300

    def test_update_edge_type(self, populated, store):
        result = populated.handle_command("editor_update_edge", {"id": "3", "data": {"type": "dummy"}})

        assert is_success(result)
        assert result["data"]["data"]["label"] == "D1"
        assert result["data"]["style"]["strokeDasharray"] == "5,5"

    def test_update_missing_element_warns(self, populated):
        result = populated.handle_command("editor_update_node", {"id": "42", "data": {"elevation": 1}})

        assert is_success(result)
        assert result["data"] is None
        assert result["warnings"] == ["Node 42 not found"]

    def test_invalid_attribute_value(self, populated):
        """Ill-typed attributes come back as a validation error."""
        result = populated.handle_command(
            "editor_update_edge", {"id": "3", "data": {"length": "very long"}}
        )

        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert result["error"]["details"]["errors"]

    def test_delete_node(self, populated, store):
        result = populated.handle_command("editor_delete", {"id": "2", "element_type": "node"})

        assert result["data"] == {"nodes": 1, "edges": 0}

    def test_delete_bad_element_type(self, populated):
        result = populated.handle_command("editor_delete", {"id": "2", "element_type": "port"})
        assert result["error"]["code"] == "INVALID_ARGUMENTS"

    def test_select_and_clear_selection(self, populated, store):
        populated.handle_command("editor_select", {"id": "2", "element_type": "node"})
        assert store.selected_element_id == "2"

        result = populated.handle_command("editor_select", {"id": None})
        assert result["data"] == {"selected_element_id": None, "selected_element_type": None}


class TestHistoryCommands:
    """Test undo/redo commands."""

    def test_undo_redo(self, tools):
        tools.handle_command("editor_add_node", {"node_type": "reservoir"})

        undo = tools.handle_command("editor_undo")
        assert undo["data"] == {"applied": True, "can_undo": False, "can_redo": True}

        redo = tools.handle_command("editor_redo")
        assert redo["data"] == {"applied": True, "can_undo": True, "can_redo": False}

    def test_undo_nothing(self, tools):
        result = tools.handle_command("editor_undo")

        assert is_success(result)
        assert result["data"]["applied"] is False


class TestProjectCommands:
    """Test project-level commands."""

    def test_rename(self, tools, store):
        tools.handle_command("editor_rename", {"name": "Upper Dam"})
        assert store.project_name == "Upper Dam"

    def test_set_params(self, tools):
        result = tools.handle_command("editor_set_params", {"params": {"tmax": 60}})
        assert result["data"] == {"dtcomp": 0.01, "dtout": 0.1, "tmax": 60.0}

    def test_output_requests(self, populated, store):
        added = populated.handle_command("editor_add_output_request", {
            "element_id": "3",
            "element_type": "edge",
            "request_type": "PLOT",
            "variables": ["Q", "Q", "HEAD"],
        })
        assert added["data"]["variables"] == ["Q", "HEAD"]

        removed = populated.handle_command("editor_remove_output_request", {"id": added["data"]["id"]})
        assert removed["data"] == {"output_requests": 0}

    def test_bad_request_type(self, populated):
        result = populated.handle_command("editor_add_output_request", {
            "element_id": "3",
            "element_type": "edge",
            "request_type": "MOVIE",
        })
        assert result["error"]["code"] == "VALIDATION_ERROR"

    def test_clear(self, populated, store):
        populated.handle_command("editor_rename", {"name": "Dam"})
        result = populated.handle_command("editor_clear")

        assert result["data"] == {"project_name": "Untitled Network"}
        assert store.nodes == []

    def test_load(self, tools, store, project):
        result = tools.handle_command("editor_load", {"project": project})

        assert result["data"] == {"project_name": "Penstock", "nodes": 2, "edges": 1}
        assert store.get_node("2").type == "simpleNode"
        assert store.computational_params.tmax == 120
        assert store.next_id == "4"

    def test_load_requires_nodes_and_edges(self, tools):
        result = tools.handle_command("editor_load", {"project": {"nodes": []}})
        assert result["error"]["code"] == "INVALID_PROJECT"

    def test_load_empty_network(self, tools, store):
        """A project without nodes is refused."""
        result = tools.handle_command("editor_load", {"project": {"nodes": [], "edges": []}})

        assert result["error"]["code"] == "EMPTY_NETWORK"
        assert store.nodes == []

    def test_load_ill_typed(self, tools, project):
        project["nodes"][0]["data"]["type"] = "volcano"
        project["nodes"][0]["type"] = "volcano"
        result = tools.handle_command("editor_load", {"project": project})

        assert result["error"]["code"] == "VALIDATION_ERROR"

    def test_export(self, tools, project):
        tools.handle_command("editor_load", {"project": project})
        result = tools.handle_command("editor_export")
        data = result["data"]

        assert data["projectName"] == "Penstock"
        assert [n["id"] for n in data["nodes"]] == ["1", "2"]
        assert data["edges"][0]["data"]["length"] == 800
        assert data["computationalParams"]["dtcomp"] == 0.02


class TestRenderCommand:
    """Test diagram rendering and caching."""

    def test_render(self, populated):
        result = populated.handle_command("editor_render")

        assert is_success(result)
        assert result["data"]["svg"].startswith("<svg")
        assert result["data"]["cached"] is False

    def test_render_cached_until_change(self, populated):
        populated.handle_command("editor_render")
        again = populated.handle_command("editor_render")
        assert again["data"]["cached"] is True

        populated.handle_command("editor_add_node", {"node_type": "junction"})
        after = populated.handle_command("editor_render")
        assert after["data"]["cached"] is False

    def test_cache_keyed_by_options(self, populated):
        labelled = populated.handle_command("editor_render", {"show_labels": True})
        plain = populated.handle_command("editor_render", {"show_labels": False})

        assert plain["data"]["cached"] is False
        assert "edge-label" in labelled["data"]["svg"]
        assert "edge-label" not in plain["data"]["svg"]


class TestMalformedPayloads:
    """Test that malformed arguments come back as error envelopes."""

    @pytest.mark.parametrize("data", [None, ["elevation", 1], "elevation=1"])
    def test_update_node_data_not_object(self, populated, store, data):
        depth = len(store.past)
        result = populated.handle_command("editor_update_node", {"id": "1", "data": data})

        assert not is_success(result)
        assert result["error"]["code"] == "INVALID_ARGUMENTS"
        assert len(store.past) == depth

    def test_update_edge_data_not_object(self, populated):
        result = populated.handle_command("editor_update_edge", {"id": "3", "data": None})
        assert result["error"]["code"] == "INVALID_ARGUMENTS"

    def test_params_not_object(self, populated, store):
        depth = len(store.past)
        result = populated.handle_command("editor_set_params", {"params": None})

        assert result["error"]["code"] == "INVALID_ARGUMENTS"
        assert len(store.past) == depth

    def test_variables_must_be_list(self, populated, store):
        result = populated.handle_command("editor_add_output_request", {
            "element_id": "3",
            "element_type": "edge",
            "request_type": "PLOT",
            "variables": "Q",
        })

        assert result["error"]["code"] == "INVALID_ARGUMENTS"
        assert store.output_requests == []

    def test_variables_omitted(self, populated):
        result = populated.handle_command("editor_add_output_request", {
            "element_id": "3",
            "element_type": "edge",
            "request_type": "PLOT",
            "variables": None,
        })

        assert is_success(result)
        assert result["data"]["variables"] == []

    def test_arguments_not_object(self, populated):
        result = populated.handle_command("editor_connect", ["1", "2"])
        assert result["error"]["code"] == "INVALID_ARGUMENTS"

    def test_rejected_update_keeps_redo(self, populated, store):
        """A refused edit does not discard undone steps."""
        populated.handle_command("editor_update_node", {"id": "1", "data": {"elevation": 130}})
        populated.handle_command("editor_undo")

        result = populated.handle_command("editor_update_node", {"id": "1", "data": {"elevation": "high"}})

        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert store.can_redo()
