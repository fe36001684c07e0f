"""
DAG (Directed Acyclic Graph) builder and analyzer for stack entities.
"""

import heapq
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from collections import defaultdict

from moraine.core.errors import CyclicDependencyError


@dataclass
class DAGNode:
    """Represents a node in the provisioning DAG."""

    name: str
    entity: Any
    index: int
    """Insertion position, used to break ties deterministically"""
    dependencies: List[str] = field(default_factory=list)
    dependents: List[str] = field(default_factory=list)


class DAG:
    """
    Directed Acyclic Graph of provisioning dependencies.

    Provides:
    1. Dependency tracking
    2. Stable topological sorting (ties broken by insertion order)
    3. Cycle detection
    """

    def __init__(self):
        self.nodes: Dict[str, DAGNode] = {}
        self._adjacency_list: Dict[str, List[str]] = defaultdict(list)

    def add_node(self, name: str, entity: Any) -> None:
        """Add a node to the DAG. Re-adding an existing name is a no-op."""
        if name not in self.nodes:
            self.nodes[name] = DAGNode(name=name, entity=entity, index=len(self.nodes))

    def add_edge(self, from_node: str, to_node: str) -> None:
        """
        Add a directed edge from one node to another.

        Args:
            from_node: The node that 'to_node' depends on
            to_node: The dependent node
        """
        if from_node not in self.nodes or to_node not in self.nodes:
            raise ValueError(
                f"Both nodes must exist in DAG before adding edge "
                f"({from_node} -> {to_node})"
            )
        if to_node in self._adjacency_list[from_node]:
            return

        self._adjacency_list[from_node].append(to_node)
        self.nodes[to_node].dependencies.append(from_node)
        self.nodes[from_node].dependents.append(to_node)

    def get_dependencies(self, node_name: str) -> List[str]:
        """Get all nodes that this node depends on."""
        return self.nodes[node_name].dependencies if node_name in self.nodes else []

    def get_dependents(self, node_name: str) -> List[str]:
        """Get all nodes that depend on this node."""
        return self.nodes[node_name].dependents if node_name in self.nodes else []

    def topological_sort(self) -> List[str]:
        """
        Return a topological ordering of the DAG.

        Kahn's algorithm with a min-heap on insertion index as the ready
        queue: whenever several nodes are free to go next, the one added
        first wins. Identical input therefore always yields the same order.

        Raises:
            CyclicDependencyError: If the graph contains cycles
        """
        in_degree = {name: len(node.dependencies) for name, node in self.nodes.items()}

        ready = [(node.index, name) for name, node in self.nodes.items() if in_degree[name] == 0]
        heapq.heapify(ready)
        result = []

        while ready:
            _, name = heapq.heappop(ready)
            result.append(name)

            for dependent in self._adjacency_list[name]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, (self.nodes[dependent].index, dependent))

        if len(result) != len(self.nodes):
            raise CyclicDependencyError(self.detect_cycles())

        return result

    def detect_cycles(self) -> Optional[List[str]]:
        """
        Detect if there are any cycles in the DAG.

        Returns:
            A cycle path if one exists, None otherwise
        """
        visited = set()
        rec_stack = set()
        path = []

        def dfs(node: str) -> Optional[List[str]]:
            visited.add(node)
            rec_stack.add(node)
            path.append(node)

            for neighbor in self._adjacency_list[node]:
                if neighbor not in visited:
                    cycle = dfs(neighbor)
                    if cycle:
                        return cycle
                elif neighbor in rec_stack:
                    cycle_start = path.index(neighbor)
                    return path[cycle_start:] + [neighbor]

            path.pop()
            rec_stack.remove(node)
            return None

        for node in self.nodes:
            if node not in visited:
                cycle = dfs(node)
                if cycle:
                    return cycle

        return None

    def __repr__(self) -> str:
        return f"DAG(nodes={len(self.nodes)}, edges={sum(len(deps) for deps in self._adjacency_list.values())})"
