"""Build directed dependency graph from resource nodes."""

import networkx as nx
from typing import Dict, Iterable, List, Optional, Set
from ..ingest.models import ResourceId, ResourceNode
from ..utils.errors import CycleError, ReferenceResolutionError
from ..utils.logging import get_logger

logger = get_logger("graph.dependency_graph")

_WHITE, _GRAY, _BLACK = 0, 1, 2


class DependencyGraph:
    """Directed dependency graph: nodes=resource addresses, edges=dependent -> dependency."""

    def __init__(self):
        self.graph = nx.DiGraph()
        self._node_map: Dict[str, ResourceNode] = {}

    def add_node(self, node: ResourceNode) -> None:
        """Add a resource node (edges are added by build_from_nodes)."""
        self.graph.add_node(node.address, node=node, index=node.declaration_index)
        self._node_map[node.address] = node

    def build_from_nodes(self, nodes: Iterable[ResourceNode]) -> None:
        """
        Build the complete graph from nodes in declaration order.

        Edges come from explicit depends_on, implicit references inside
        property values, and child resources pointing at a declared parent.

        Raises:
            ReferenceResolutionError: A reference or dependency names no node
            CycleError: A node references itself
        """
        nodes = list(nodes)
        for node in nodes:
            self.add_node(node)

        for node in nodes:
            for dependency in node.depends_on:
                self._add_dependency(node, dependency, "dependsOn")
            for reference in node.references():
                self._add_dependency(node, reference.target, f"reference to '{reference.attribute}'")
            parent = node.id.parent
            if parent is not None and parent.address in self._node_map:
                self._add_dependency(node, parent, "parent resource")

        logger.info(f"Built dependency graph with {self.graph.number_of_nodes()} nodes and {self.graph.number_of_edges()} edges")

    def _add_dependency(self, node: ResourceNode, target: ResourceId, via: str) -> None:
        if target.address not in self._node_map:
            raise ReferenceResolutionError(node.address, target.address, f"{via} does not match any declared resource")
        if target.address == node.address:
            raise CycleError([node.address])
        if not self.graph.has_edge(node.address, target.address):
            self.graph.add_edge(node.address, target.address)
            logger.debug(f"Added dependency edge: {node.address} -> {target.address} ({via})")

    def _index(self, address: str) -> int:
        return self.graph.nodes[address]["index"]

    def topological_order(self) -> List[str]:
        """
        Dependencies-first order via depth-first traversal.

        Roots and each node's dependencies are visited in declaration order,
        so independent nodes keep their declared order and repeated runs on
        the same input give the same result.

        Raises:
            CycleError: With the participating addresses in cycle order
        """
        state: Dict[str, int] = {address: _WHITE for address in self.graph.nodes}
        order: List[str] = []
        roots = sorted(self.graph.nodes, key=self._index)

        for root in roots:
            if state[root] != _WHITE:
                continue
            path = [root]
            stack = [iter(self.dependencies_of(root))]
            state[root] = _GRAY
            while stack:
                child = next(stack[-1], None)
                if child is None:
                    done = path.pop()
                    stack.pop()
                    state[done] = _BLACK
                    order.append(done)
                    continue
                if state[child] == _GRAY:
                    raise CycleError(path[path.index(child):])
                if state[child] == _WHITE:
                    state[child] = _GRAY
                    path.append(child)
                    stack.append(iter(self.dependencies_of(child)))

        return order

    def ordered_nodes(self) -> List[ResourceNode]:
        return [self._node_map[address] for address in self.topological_order()]

    def dependencies_of(self, address: str) -> List[str]:
        """Direct dependencies in declaration order."""
        if address not in self.graph:
            return []
        return sorted(self.graph.successors(address), key=self._index)

    def dependents_of(self, address: str) -> List[str]:
        """Direct dependents in declaration order."""
        if address not in self.graph:
            return []
        return sorted(self.graph.predecessors(address), key=self._index)

    def get_downstream_resources(self, address: str) -> Set[str]:
        """All resources that depend on the given resource, transitively."""
        if address not in self.graph:
            return set()
        return set(nx.ancestors(self.graph, address))

    def get_upstream_resources(self, address: str) -> Set[str]:
        """All resources the given resource depends on, transitively."""
        if address not in self.graph:
            return set()
        return set(nx.descendants(self.graph, address))

    def get_node(self, address: str) -> Optional[ResourceNode]:
        return self._node_map.get(address)

    def get_all_nodes(self) -> List[ResourceNode]:
        """All nodes in declaration order."""
        return sorted(self._node_map.values(), key=lambda node: node.declaration_index)

    def __contains__(self, address: str) -> bool:
        return address in self._node_map

    def __len__(self) -> int:
        return len(self._node_map)


def build_graph(nodes: Iterable[ResourceNode]) -> DependencyGraph:
    """Build a graph and verify it orders cleanly (raises CycleError otherwise)."""
    graph = DependencyGraph()
    graph.build_from_nodes(nodes)
    graph.topological_order()
    return graph
