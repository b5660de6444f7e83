"""Editor command tools."""

from .editor_tools import EditorTools

__all__ = ["EditorTools"]
