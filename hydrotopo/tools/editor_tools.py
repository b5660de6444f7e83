"""Editor command tools.

Routes named editor commands to an injected TopologyStore and wraps the
results in standard response envelopes. This is where canvas rules live
that the store itself does not enforce:
- a link may not connect a node to itself
- a locked editor ignores connect and drag gestures
- a loaded project must contain at least one node
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError

from hydrotopo.config.settings import get_setting
from hydrotopo.core.topology_store import DiagramCacheHook, TopologyStore
from hydrotopo.layout.engines import get_engine
from hydrotopo.utils.response import error_response, success_response, validation_error_response
from hydrotopo.visualization.diagram_renderer import DiagramOptions, render_system_diagram

logger = logging.getLogger(__name__)


def _mapping_arg(args: dict, key: str) -> Mapping[str, Any]:
    value = args.get(key, {})
    if not isinstance(value, Mapping):
        raise ValueError(f"'{key}' must be an object, got {type(value).__name__}")
    return value


def _list_arg(args: dict, key: str) -> List[Any]:
    value = args.get(key) or []
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"'{key}' must be a list, got {type(value).__name__}")
    return list(value)


class EditorTools:
    """Editor commands over a single topology store."""

    def __init__(self, store: TopologyStore, layout_engine: Optional[str] = None):
        """Initialize with the store being edited.

        Args:
            store: TopologyStore owned by the editing session
            layout_engine: Registered engine name (settings default)
        """
        self.store = store
        self.engine = get_engine(layout_engine or get_setting('layout_engine'))()
        self.diagram_cache = DiagramCacheHook()
        store.add_hook(self.diagram_cache)

    def list_commands(self) -> List[str]:
        return sorted(self._handlers())

    def _handlers(self) -> Dict[str, Callable[[dict], dict]]:
        return {
            "editor_add_node": self._add_node,
            "editor_connect": self._connect,
            "editor_update_node": self._update_node,
            "editor_update_edge": self._update_edge,
            "editor_move_node": self._move_node,
            "editor_delete": self._delete,
            "editor_select": self._select,
            "editor_undo": self._undo,
            "editor_redo": self._redo,
            "editor_toggle_lock": self._toggle_lock,
            "editor_rename": self._rename,
            "editor_set_params": self._set_params,
            "editor_add_output_request": self._add_output_request,
            "editor_remove_output_request": self._remove_output_request,
            "editor_clear": self._clear,
            "editor_load": self._load,
            "editor_export": self._export,
            "editor_render": self._render,
        }

    def handle_command(self, name: str, arguments: Optional[dict] = None) -> dict:
        """Route a command to its handler.

        Args:
            name: Command name
            arguments: Command arguments

        Returns:
            Standardized response
        """
        arguments = arguments or {}
        if not isinstance(arguments, Mapping):
            return error_response(
                f"Arguments for {name} must be an object",
                "INVALID_ARGUMENTS",
                details={"command": name}
            )
        handler = self._handlers().get(name)
        if not handler:
            return error_response(
                f"Unknown editor command: {name}",
                "UNKNOWN_COMMAND"
            )

        try:
            return handler(arguments)
        except ValidationError as e:
            logger.warning(f"Invalid arguments for {name}: {e.error_count()} error(s)")
            return validation_error_response(name, e)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Rejected {name}: {e}")
            return error_response(
                str(e),
                "INVALID_ARGUMENTS",
                details={"command": name}
            )

    # ------------------------------------------------------------------
    # Element commands
    # ------------------------------------------------------------------

    def _add_node(self, args: dict) -> dict:
        node = self.store.add_node(args["node_type"], args.get("position"))
        return success_response(node.model_dump(mode="json"))

    def _connect(self, args: dict) -> dict:
        source, target = str(args["source"]), str(args["target"])
        if self.store.is_locked:
            return error_response("Editor is locked", "LOCKED")
        if source == target:
            return error_response(
                "An element cannot be connected to itself.",
                "SELF_LOOP",
                details={"node_id": source}
            )
        edge = self.store.connect(source, target)
        return success_response(edge.model_dump(mode="json"))

    def _update_node(self, args: dict) -> dict:
        self.store.update_node_data(str(args["id"]), _mapping_arg(args, "data"))
        node = self.store.get_node(str(args["id"]))
        warnings = None if node else [f"Node {args['id']} not found"]
        return success_response(node.model_dump(mode="json") if node else None, warnings)

    def _update_edge(self, args: dict) -> dict:
        self.store.update_edge_data(str(args["id"]), _mapping_arg(args, "data"))
        edge = self.store.get_edge(str(args["id"]))
        warnings = None if edge else [f"Edge {args['id']} not found"]
        return success_response(edge.model_dump(mode="json") if edge else None, warnings)

    def _move_node(self, args: dict) -> dict:
        if self.store.is_locked:
            return error_response("Editor is locked", "LOCKED")
        self.store.move_node(str(args["id"]), args["position"])
        return success_response({"id": str(args["id"])})

    def _delete(self, args: dict) -> dict:
        element_type = args.get("element_type", "node")
        if element_type not in ("node", "edge"):
            raise ValueError(f"element_type must be 'node' or 'edge', got {element_type!r}")
        self.store.delete_element(str(args["id"]), element_type)
        return success_response({
            "nodes": len(self.store.nodes),
            "edges": len(self.store.edges),
        })

    def _select(self, args: dict) -> dict:
        element_id = args.get("id")
        self.store.select_element(
            str(element_id) if element_id is not None else None,
            args.get("element_type") if element_id is not None else None,
        )
        return success_response({
            "selected_element_id": self.store.selected_element_id,
            "selected_element_type": self.store.selected_element_type,
        })

    # ------------------------------------------------------------------
    # History and project commands
    # ------------------------------------------------------------------

    def _history_state(self, applied: bool) -> dict:
        return {
            "applied": applied,
            "can_undo": self.store.can_undo(),
            "can_redo": self.store.can_redo(),
        }

    def _undo(self, args: dict) -> dict:
        return success_response(self._history_state(self.store.undo()))

    def _redo(self, args: dict) -> dict:
        return success_response(self._history_state(self.store.redo()))

    def _toggle_lock(self, args: dict) -> dict:
        return success_response({"is_locked": self.store.toggle_lock()})

    def _rename(self, args: dict) -> dict:
        self.store.set_project_name(args["name"])
        return success_response({"project_name": self.store.project_name})

    def _set_params(self, args: dict) -> dict:
        self.store.update_computational_params(_mapping_arg(args, "params"))
        return success_response(self.store.computational_params.model_dump())

    def _add_output_request(self, args: dict) -> dict:
        request = self.store.add_output_request(
            args["element_id"],
            args["element_type"],
            args["request_type"],
            _list_arg(args, "variables"),
        )
        return success_response(request.model_dump(mode="json"))

    def _remove_output_request(self, args: dict) -> dict:
        self.store.remove_output_request(args["id"])
        return success_response({"output_requests": len(self.store.output_requests)})

    def _clear(self, args: dict) -> dict:
        self.store.clear_network()
        return success_response({"project_name": self.store.project_name})

    def _load(self, args: dict) -> dict:
        project = args.get("project")
        if not isinstance(project, dict) or "nodes" not in project or "edges" not in project:
            return error_response("Project must contain 'nodes' and 'edges'", "INVALID_PROJECT")
        if not project["nodes"]:
            return error_response("Project contains no nodes", "EMPTY_NETWORK")

        self.store.load_network(
            project["nodes"],
            project["edges"],
            project.get("computationalParams"),
            project.get("outputRequests"),
            project.get("projectName"),
        )
        return success_response({
            "project_name": self.store.project_name,
            "nodes": len(self.store.nodes),
            "edges": len(self.store.edges),
        })

    def _export(self, args: dict) -> dict:
        return success_response(self.store.export_network().to_dict())

    def _render(self, args: dict) -> dict:
        options = DiagramOptions(show_labels=args.get("show_labels", True))
        markup = self.diagram_cache.get(options)
        cached = markup is not None
        if not cached:
            markup = render_system_diagram(
                self.store.nodes, self.store.edges, options, engine=self.engine
            )
            self.diagram_cache.put(options, markup)
        return success_response({"svg": markup, "cached": cached})
