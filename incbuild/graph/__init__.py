"""Build graph module.

This module handles:
- File system access rooted at the working directory
- Target/Edge model
- Staleness evaluation and plan ordering
- Plan execution
"""

from incbuild.graph.models import BuildGraph, Edge, Target

__all__ = ["BuildGraph", "Edge", "Target"]
