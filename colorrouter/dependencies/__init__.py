"""
ColorRouter Dependency Graph

Provides:
- DependencyGraph: prerequisite/dependent edges, topological ordering,
  affected-closure queries
"""

from .graph import DependencyGraph

__all__ = [
    "DependencyGraph",
]
