"""Base layout engine protocol.

Defines the interface that all layout engines must implement.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

from hydrotopo.models.layout_metadata import DiagramLayout
from hydrotopo.models.network import Edge, Node


class LayoutEngine(ABC):
    """Abstract base class for layout engines.

    Layout engines convert graph topology into positioned layouts. They are
    pure: the same nodes and edges in the same order always give the same
    placements, and inputs are never modified.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine name (e.g., 'layered')."""
        ...

    @abstractmethod
    def layout(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        options: Optional[Dict[str, Any]] = None,
    ) -> DiagramLayout:
        """Compute layout for a graph.

        Args:
            nodes: Nodes to place, in display order
            edges: Edges (may reference unknown node ids)
            options: Engine-specific layout options

        Returns:
            DiagramLayout with one placement per node
        """
        ...
