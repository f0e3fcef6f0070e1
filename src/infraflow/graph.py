"""
Graph module for infrastructure diagrams.

Provides the typed resource graph and small analysis helpers. Nodes are
owned by the graph and keyed by id; edges refer to their endpoints by id
only, and the adjacency maps are derived indexes that can be rebuilt from
the edge list at any time.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import networkx as nx

from .catalog import Category

# Shared by every edge without connection details. Read-only.
EMPTY_METADATA: Mapping[str, str] = MappingProxyType({})


@dataclass
class Node:
    """A resource in the diagram."""

    id: str
    name: str
    category: Category = Category.UNKNOWN
    provider: str = ""
    type: str = ""
    attributes: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class Edge:
    """
    A directed relationship between two nodes.

    Attributes:
        source: Id of the node the edge starts at.
        target: Id of the node the edge points to.
        relationship: Semantic label, e.g. "protects" or "routes_to".
        metadata: Connection details such as port and protocol.
    """

    source: str
    target: str
    relationship: str = "depends_on"
    metadata: Mapping[str, str] = field(default_factory=lambda: EMPTY_METADATA)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.source, self.target)


class Graph:
    """Directed resource graph."""

    def __init__(self):
        self.nodes: Dict[str, Node] = {}
        self.edges: List[Edge] = []
        self.cancelled = False
        self._edge_keys = set()
        self._adjacency: Dict[str, List[str]] = defaultdict(list)
        self._reverse_adjacency: Dict[str, List[str]] = defaultdict(list)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def add_node(self, node: Node) -> None:
        """Add a node, replacing any node with the same id."""
        self.nodes[node.id] = node

    def add_edge(
        self,
        source: str,
        target: str,
        relationship: str = "depends_on",
        metadata: Optional[Mapping[str, str]] = None,
    ) -> bool:
        """
        Add a directed edge between two existing nodes.

        Adding a (source, target) pair that is already present is a no-op,
        as is an edge with an endpoint that is not in the graph.

        Returns:
            True if a new edge was stored.
        """
        if source not in self.nodes or target not in self.nodes:
            return False
        if (source, target) in self._edge_keys:
            return False

        edge = Edge(
            source=source,
            target=target,
            relationship=relationship,
            metadata=metadata if metadata else EMPTY_METADATA,
        )
        self.edges.append(edge)
        self._edge_keys.add(edge.key)
        self._adjacency[source].append(target)
        self._reverse_adjacency[target].append(source)
        return True

    def has_edge(self, source: str, target: str) -> bool:
        """Check whether the ordered pair is already connected."""
        return (source, target) in self._edge_keys

    def get_edge(self, source: str, target: str) -> Optional[Edge]:
        """Return the edge for an ordered pair, if any."""
        if not self.has_edge(source, target):
            return None
        for edge in self.edges:
            if edge.source == source and edge.target == target:
                return edge
        return None

    def get_nodes(self) -> List[str]:
        """Return node ids in insertion order."""
        return list(self.nodes)

    def get_edges(self) -> List[Tuple[str, str]]:
        """Return edges as (source, target) tuples."""
        return [edge.key for edge in self.edges]

    def get_successors(self, node_id: str) -> List[str]:
        """Get all nodes that this node points to."""
        return self._adjacency.get(node_id, [])

    def get_predecessors(self, node_id: str) -> List[str]:
        """Get all nodes that point to this node."""
        return self._reverse_adjacency.get(node_id, [])

    def in_degrees(self) -> Dict[str, int]:
        """Return the in-degree of every node."""
        return {node_id: len(self.get_predecessors(node_id)) for node_id in self.nodes}

    def get_roots(self) -> List[str]:
        """Get nodes with no incoming edges."""
        return [node_id for node_id in self.nodes if not self.get_predecessors(node_id)]

    def get_leaves(self) -> List[str]:
        """Get nodes with no outgoing edges."""
        return [node_id for node_id in self.nodes if not self.get_successors(node_id)]

    def rebuild_adjacency(self) -> None:
        """Recompute the derived adjacency maps from the edge list."""
        self._edge_keys = set()
        self._adjacency = defaultdict(list)
        self._reverse_adjacency = defaultdict(list)
        for edge in self.edges:
            self._edge_keys.add(edge.key)
            self._adjacency[edge.source].append(edge.target)
            self._reverse_adjacency[edge.target].append(edge.source)

    def to_networkx(self) -> nx.DiGraph:
        """
        Build a networkx view of the graph.

        Node and edge insertion order follow the graph, so algorithms that
        iterate the view behave deterministically.
        """
        digraph = nx.DiGraph()
        for node_id, node in self.nodes.items():
            digraph.add_node(node_id, category=node.category, name=node.name)
        for edge in self.edges:
            digraph.add_edge(edge.source, edge.target, relationship=edge.relationship)
        return digraph

    def has_cycle(self) -> bool:
        """Check if the graph contains a directed cycle."""
        return not nx.is_directed_acyclic_graph(self.to_networkx())

    def category_counts(self) -> Dict[Category, int]:
        """Count nodes per category."""
        counts: Dict[Category, int] = defaultdict(int)
        for node in self.nodes.values():
            counts[node.category] += 1
        return dict(counts)


def create_graph(
    nodes: Iterable[Node], connections: Iterable[Tuple[str, str]] = ()
) -> Graph:
    """
    Create a Graph from nodes and (source, target) connections.

    Connections are labelled "depends_on"; use GraphBuilder for inferred
    relationships.
    """
    graph = Graph()
    for node in nodes:
        graph.add_node(node)
    for source, target in connections:
        graph.add_edge(source, target)
    return graph
