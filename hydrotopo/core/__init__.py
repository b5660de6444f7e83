"""
Core Layer - Editable network state

Modules:
- topology_store: network model, mutations, undo/redo history, change hooks
"""

from .topology_store import (
    TopologyStore,
    TopologyHook,
    DiagramCacheHook,
)

__all__ = [
    'TopologyStore',
    'TopologyHook',
    'DiagramCacheHook',
]
