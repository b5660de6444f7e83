"""Layout metadata for computed diagram positions.

This module provides schemas for the output of a layout pass:
- Node placements (level/column plus pixel coordinates)
- Canvas size
- A content etag so repeated layouts of the same graph can be compared

Computed placements are separate from the editor-assigned
``Node.position``; a layout never writes back into the topology.
"""

import hashlib
import json
import logging
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class NodePlacement(BaseModel):
    """Computed position of a single node.

    Attributes:
        level: Column index (breadth-first tier from the reservoirs)
        x: Horizontal pixel coordinate
        y: Vertical pixel coordinate
    """

    model_config = ConfigDict(frozen=True)

    level: int = Field(..., ge=0, description="Column index")
    x: float = Field(..., description="Horizontal coordinate")
    y: float = Field(..., description="Vertical coordinate")

    def to_point(self) -> Tuple[float, float]:
        return (self.x, self.y)


class DiagramLayout(BaseModel):
    """Result of a layout pass.

    Attributes:
        algorithm: Engine name that produced the layout
        placements: Node id -> NodePlacement, in input node order
        width: Canvas width
        height: Canvas height
        levelCount: Number of distinct levels in use
        etag: SHA-256 of the canonical content (auto-computed)
    """

    algorithm: str = Field(..., description="Layout algorithm used")
    placements: Dict[str, NodePlacement] = Field(default_factory=dict)
    width: float = Field(..., description="Canvas width")
    height: float = Field(..., description="Canvas height")
    levelCount: int = Field(default=0, description="Distinct levels in use")
    etag: str = Field(default="", description="Content hash")

    def model_post_init(self, __context) -> None:
        """Compute etag if not provided."""
        if not self.etag:
            object.__setattr__(self, "etag", self.compute_etag())

    def compute_etag(self) -> str:
        """Compute SHA-256 etag from canonical content.

        Returns:
            64-character hex string
        """
        canonical = {
            "algorithm": self.algorithm,
            "height": self.height,
            "levelCount": self.levelCount,
            "placements": {
                k: v.model_dump() for k, v in sorted(self.placements.items())
            },
            "width": self.width,
        }
        content = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    @property
    def levels(self) -> Dict[str, int]:
        """Node id -> level."""
        return {node_id: p.level for node_id, p in self.placements.items()}

    def get(self, node_id: str):
        return self.placements.get(node_id)
