"""JSON project persistence for hydraulic network topologies."""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from hydrotopo.core.topology_store import TopologyStore

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ProjectFormatError(ValueError):
    """Raised when a project file is not a network topology."""

    def __init__(self, path: PathLike, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Invalid project file {path}: {reason}")


def canonical_json_dump(data: Any, file_path: Path, **kwargs) -> None:
    """Write JSON with sorted keys for deterministic output.

    Args:
        data: Data to serialize
        file_path: Path to write to
        **kwargs: Additional arguments passed to json.dump
    """
    with open(file_path, "w") as f:
        json.dump(data, f, indent=2, sort_keys=True, **kwargs)


def project_filename(project_name: str, timestamp: Optional[datetime] = None) -> str:
    """Build a download-style file name: ``{slug}_{epoch millis}.json``.

    Characters outside ``[a-z0-9]`` become underscores; an empty slug falls
    back to ``network``.
    """
    slug = re.sub(r"[^a-z0-9]", "_", project_name, flags=re.IGNORECASE).lower() or "network"
    stamp = int((timestamp or datetime.now()).timestamp() * 1000)
    return f"{slug}_{stamp}.json"


class ProjectPersistence:
    """Saves and restores editor projects as JSON files.

    The file layout is the store's export shape::

        {"projectName": ..., "nodes": [...], "edges": [...],
         "computationalParams": {...}, "outputRequests": [...]}
    """

    def save_project(self, store: TopologyStore, file_path: PathLike) -> Dict[str, Any]:
        """Write the store's current network to ``file_path``.

        Returns:
            Dict with the written path and element counts
        """
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        snapshot = store.export_network()
        canonical_json_dump(snapshot.to_dict(), path)
        logger.info(f"Saved project '{snapshot.projectName}' to {path}")

        return {
            "path": str(path),
            "project_name": snapshot.projectName,
            "nodes": len(snapshot.nodes),
            "edges": len(snapshot.edges),
        }

    def read_project(self, file_path: PathLike) -> Dict[str, Any]:
        """Read and shape-check a project file without loading it.

        Raises:
            ProjectFormatError: If the file is not JSON or lacks nodes/edges
        """
        path = Path(file_path)
        try:
            with open(path) as f:
                content = json.load(f)
        except json.JSONDecodeError as e:
            raise ProjectFormatError(path, f"not valid JSON ({e.msg})") from e

        if not isinstance(content, dict) or "nodes" not in content or "edges" not in content:
            raise ProjectFormatError(path, "missing 'nodes' or 'edges'")

        if not content.get("projectName"):
            content["projectName"] = re.sub(r"\.json$", "", path.name, flags=re.IGNORECASE)
        return content

    def load_project(self, store: TopologyStore, file_path: PathLike) -> Dict[str, Any]:
        """Replace the store's network with the one in ``file_path``.

        The project name falls back to the file name without ``.json``.

        Returns:
            Dict with the loaded project name and element counts

        Raises:
            ProjectFormatError: If the file is not a network topology
            pydantic.ValidationError: If elements are ill-typed
        """
        content = self.read_project(file_path)
        store.load_network(
            content["nodes"],
            content["edges"],
            content.get("computationalParams"),
            content.get("outputRequests"),
            content["projectName"],
        )
        return {
            "project_name": store.project_name,
            "nodes": len(store.nodes),
            "edges": len(store.edges),
        }

    def save_diagram(self, markup: str, file_path: PathLike) -> str:
        """Write rendered SVG markup to ``file_path``.

        Returns:
            The written path
        """
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(markup, encoding="utf-8")
        logger.info(f"Saved diagram to {path}")
        return str(path)
