"""
ColorRouter Dependency Graph

Directed graph of token dependencies. An edge runs from a prerequisite to
the dependent that reads it, so `successors` are dependents and
`predecessors` are prerequisites. Backed by a networkx DiGraph, which keeps
both directions in step.

The graph knows nothing about token values.
"""

from __future__ import annotations
from collections import deque
from typing import Any, Dict, Iterable, List, Optional, Set
import logging

import networkx as nx

from colorrouter.core.definitions import Definition, edge_type_for
from colorrouter.core.enums import EdgeType
from colorrouter.errors.taxonomy import CircularDependencyError, ErrorCode

logger = logging.getLogger(__name__)


class DependencyGraph:
    """
    Prerequisite/dependent edges between token keys.

    Usage:
        graph = DependencyGraph()
        graph.update_edges("base.b", Reference("base.a"))
        graph.get_evaluation_order_for("base.a")   # ["base.a", "base.b"]
    """

    def __init__(self):
        self._graph = nx.DiGraph()

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def update_edges(self, key: str, definition: Definition) -> None:
        """
        Replace all prerequisite edges of `key` with those of `definition`.

        Calling again with the same definition yields the same edge set.
        """
        self._replace_prerequisites(
            key, definition.dependency_keys, edge_type_for(definition)
        )

    def link_inheritance(self, key: str, source_key: str) -> None:
        """
        Make `key` depend on the ancestor key whose definition it inherits.

        The link is dropped as soon as `key` receives its own definition.
        """
        self._replace_prerequisites(key, (source_key,), EdgeType.INHERITANCE)

    def _replace_prerequisites(
        self,
        key: str,
        prerequisites: Iterable[str],
        edge_type: EdgeType,
    ) -> None:
        if key in self._graph:
            old = list(self._graph.predecessors(key))
            self._graph.remove_edges_from((p, key) for p in old)
        else:
            self._graph.add_node(key)

        for prereq in prerequisites:
            self._graph.add_edge(prereq, key, edge_type=edge_type)

        logger.debug(
            f"Edges for '{key}': {self.get_prerequisites_for(key)} ({edge_type.value})"
        )

    def restore_edges(self, key: str, edges: Dict[str, EdgeType]) -> None:
        """Reinstate a prerequisite edge set captured by `get_prerequisite_edges`."""
        if key in self._graph:
            old = list(self._graph.predecessors(key))
            self._graph.remove_edges_from((p, key) for p in old)
        else:
            self._graph.add_node(key)
        for prereq, edge_type in edges.items():
            self._graph.add_edge(prereq, key, edge_type=edge_type)

    def remove_node(self, key: str) -> None:
        """
        Delete `key` and every edge touching it.

        Dependents of `key` keep their other prerequisites.
        """
        if key in self._graph:
            self._graph.remove_node(key)
            logger.debug(f"Removed node '{key}'")

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    def get_evaluation_order_for(self, start_key: str) -> List[str]:
        """
        Everything a change to `start_key` can affect, prerequisites first.

        The affected closure is built by BFS over dependent edges and
        includes `start_key` itself.
        """
        return self.topological_sort(self._affected_closure([start_key]))

    def get_evaluation_order_for_many(self, start_keys: Iterable[str]) -> List[str]:
        """Merged affected closure of several keys, sorted in one pass."""
        return self.topological_sort(self._affected_closure(start_keys))

    def _affected_closure(self, start_keys: Iterable[str]) -> List[str]:
        closure: List[str] = []
        seen: Set[str] = set()
        queue = deque(start_keys)

        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            closure.append(current)
            if current in self._graph:
                queue.extend(self._graph.successors(current))

        return closure

    def topological_sort(self, keys: Iterable[str]) -> List[str]:
        """
        Depth-first topological sort restricted to `keys`.

        Prerequisites outside `keys` are treated as already resolved.

        Raises:
            CircularDependencyError: with the DFS stack plus the closing node
        """
        keys = list(keys)
        in_scope = set(keys)
        ordered: List[str] = []
        visited: Set[str] = set()
        stack: List[str] = []
        on_stack: Set[str] = set()

        def visit(node: str) -> None:
            if node in visited:
                return
            if node in on_stack:
                error = CircularDependencyError(
                    stack + [node], code=ErrorCode.CYC_DEFINITION_GRAPH
                )
                logger.debug(f"Circular dependency detected for '{node}': {error.message}")
                raise error

            stack.append(node)
            on_stack.add(node)

            if node in self._graph:
                for prereq in self._graph.predecessors(node):
                    if prereq in in_scope:
                        visit(prereq)

            stack.pop()
            on_stack.discard(node)
            visited.add(node)
            ordered.append(node)

        for key in keys:
            if key not in visited:
                visit(key)

        return ordered

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_prerequisites_for(self, key: str) -> List[str]:
        """Keys that `key` directly depends on."""
        if key not in self._graph:
            return []
        return list(self._graph.predecessors(key))

    def get_dependents_of(self, key: str) -> List[str]:
        """Keys that directly depend on `key`."""
        if key not in self._graph:
            return []
        return list(self._graph.successors(key))

    def get_prerequisite_edges(self, key: str) -> Dict[str, EdgeType]:
        """Direct prerequisites of `key` with their edge types."""
        if key not in self._graph:
            return {}
        return {
            prereq: data["edge_type"]
            for prereq, _, data in self._graph.in_edges(key, data=True)
        }

    def get_edge_type(self, prerequisite: str, dependent: str) -> Optional[EdgeType]:
        data = self._graph.get_edge_data(prerequisite, dependent)
        return data["edge_type"] if data else None

    def has_node(self, key: str) -> bool:
        return key in self._graph

    def get_all_dependencies(self, key: str) -> Set[str]:
        """All upstream prerequisites (transitive closure)."""
        if key not in self._graph:
            return set()
        return nx.ancestors(self._graph, key)

    def get_all_downstream(self, key: str) -> Set[str]:
        """All downstream dependents (transitive closure)."""
        if key not in self._graph:
            return set()
        return nx.descendants(self._graph, key)

    def get_all_nodes(self) -> List[str]:
        return list(self._graph.nodes)

    def get_node_degree(self, key: str, incoming: bool = True) -> int:
        """Number of prerequisites (incoming) or dependents (outgoing)."""
        if key not in self._graph:
            return 0
        return self._graph.in_degree(key) if incoming else self._graph.out_degree(key)

    def has_cycles(self) -> bool:
        return not nx.is_directed_acyclic_graph(self._graph)

    def _view(self, upstream: bool) -> nx.DiGraph:
        return self._graph.reverse(copy=False) if upstream else self._graph

    def dfs_traversal(self, start_key: str, upstream: bool = True) -> List[str]:
        """Depth-first walk over prerequisites (upstream) or dependents."""
        if start_key not in self._graph:
            return [start_key]
        return list(nx.dfs_preorder_nodes(self._view(upstream), start_key))

    def bfs_traversal(self, start_key: str, upstream: bool = True) -> List[str]:
        """Breadth-first walk over prerequisites (upstream) or dependents."""
        if start_key not in self._graph:
            return [start_key]
        return [start_key] + [v for _, v in nx.bfs_edges(self._view(upstream), start_key)]

    def find_shortest_path(
        self,
        from_key: str,
        to_key: str,
        upstream: bool = True,
    ) -> Optional[List[str]]:
        """Shortest path between two keys, or None if unreachable."""
        if from_key == to_key:
            return [from_key]
        try:
            return nx.shortest_path(self._view(upstream), from_key, to_key)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None

    def has_path(self, from_key: str, to_key: str, upstream: bool = True) -> bool:
        return self.find_shortest_path(from_key, to_key, upstream) is not None

    def get_adjacency_list(self, show_prerequisites: bool = True) -> Dict[str, List[str]]:
        """Node -> prerequisites, or node -> dependents."""
        if show_prerequisites:
            return {n: list(self._graph.predecessors(n)) for n in self._graph.nodes}
        return {
            n: list(self._graph.successors(n))
            for n in self._graph.nodes
            if self._graph.out_degree(n) > 0
        }

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot of the graph for diagnostics."""
        return {
            "nodes": self.get_all_nodes(),
            "edges": [
                {
                    "prerequisite": source,
                    "dependent": target,
                    "edge_type": data["edge_type"].value,
                }
                for source, target, data in self._graph.edges(data=True)
            ],
        }

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def __contains__(self, key: str) -> bool:
        return key in self._graph
