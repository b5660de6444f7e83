"""Hydraulic network topology editor core.

Topology store with undo/redo, layered layout and SVG diagram rendering
for networks prepared for a hydraulic-transient analysis engine.
"""

__version__ = "0.1.0"
