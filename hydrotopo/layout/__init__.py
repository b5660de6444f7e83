"""Layout module for automatic diagram positioning.

This module provides:
- Layout engine abstraction (LayoutEngine)
- Layered layout rooted at reservoirs (LayeredLayoutEngine)
"""

from hydrotopo.layout.engines.base import LayoutEngine
from hydrotopo.layout.engines.layered import LayeredLayoutEngine, compute_levels

__all__ = [
    "LayoutEngine",
    "LayeredLayoutEngine",
    "compute_levels",
]
