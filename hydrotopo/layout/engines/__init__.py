"""Diagram layout engines.

Engines are looked up by name so the editor's default can come from
settings (``HYDROTOPO_LAYOUT_ENGINE``). Only the layered engine ships.
"""

from typing import Dict, Type

from hydrotopo.layout.engines.base import LayoutEngine
from hydrotopo.layout.engines.layered import (
    LayeredLayoutEngine,
    LayeredLayoutOptions,
    compute_levels,
)

ENGINES: Dict[str, Type[LayoutEngine]] = {
    "layered": LayeredLayoutEngine,
}


def get_engine(name: str) -> Type[LayoutEngine]:
    """Resolve a registered engine class.

    Raises:
        ValueError: If no engine is registered under ``name``
    """
    engine_cls = ENGINES.get(name.strip().lower())
    if engine_cls is None:
        raise ValueError(f"Unknown layout engine: {name}. Available: {sorted(ENGINES)}")
    return engine_cls


__all__ = [
    "ENGINES",
    "LayeredLayoutEngine",
    "LayeredLayoutOptions",
    "LayoutEngine",
    "compute_levels",
    "get_engine",
]
