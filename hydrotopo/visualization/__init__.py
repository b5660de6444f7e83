"""Diagram rendering for hydraulic networks."""

from .diagram_renderer import DiagramOptions, generate_system_diagram, render_system_diagram

__all__ = ["DiagramOptions", "generate_system_diagram", "render_system_diagram"]
