"""
Layer assignment and crossing minimization.

Uses networkx for:
- Strongly connected components when the graph has no roots
- Picking restart points inside cycles

Layering is a breadth-first walk from the graph's roots: a node joins the
next layer once every one of its parents has been placed. Within a layer,
nodes start out grouped by category so that networks and security rules
sit before the compute they serve, and the barycenter heuristic then
reorders layers to reduce crossings.
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

import networkx as nx

from .cancellation import CancelToken, is_cancelled
from .catalog import FOUNDATION_CATEGORIES, category_priority
from .graph import Graph

logger = logging.getLogger(__name__)

# At most this many Security/Network nodes seed a graph without roots.
MAX_FOUNDATION_SEEDS = 3

# Forward + backward passes of the barycenter heuristic.
SWEEPS = 3


class Layerer:
    """
    Assigns every node of a graph to a layer.

    Attributes:
        cancelled: True if the last call observed cancellation.
    """

    def __init__(self, max_foundation_seeds: int = MAX_FOUNDATION_SEEDS):
        self.max_foundation_seeds = max_foundation_seeds
        self.cancelled = False
        self._digraph: Optional[nx.DiGraph] = None

    def assign_layers(
        self, graph: Graph, cancel: Optional[CancelToken] = None
    ) -> List[List[str]]:
        """
        Group nodes into ordered layers.

        Args:
            graph: The resource graph.
            cancel: Optional cancellation token, polled once per layer.

        Returns:
            Layers of node ids, each sorted by category priority and name.
            Every node appears in exactly one layer.
        """
        self.cancelled = False
        self._digraph = None
        if not graph.nodes:
            return []

        total = len(graph.nodes)
        in_degree = graph.in_degrees()
        current = [node_id for node_id in graph.nodes if in_degree[node_id] == 0]
        if not current:
            logger.debug("graph has no roots, seeding from strongly connected parts")

        layers: List[List[str]] = []
        processed: Set[str] = set()

        # Each iteration places at least one node, so the bound is never the
        # reason to stop on a complete run.
        while len(processed) < total and len(layers) < total:
            if is_cancelled(cancel):
                logger.warning(
                    "layer assignment cancelled after %d layers", len(layers)
                )
                self.cancelled = True
                break

            if not current:
                current = self._restart_seeds(graph, processed)

            layer = self.sort_layer(graph, current)
            layers.append(layer)
            processed.update(layer)

            next_layer: List[str] = []
            seen: Set[str] = set()
            for node_id in layer:
                for child in graph.get_successors(node_id):
                    if child in processed or child in seen:
                        continue
                    if all(p in processed for p in graph.get_predecessors(child)):
                        next_layer.append(child)
                        seen.add(child)

            current = next_layer

        leftovers = [node_id for node_id in graph.nodes if node_id not in processed]
        if leftovers:
            if not layers:
                layers.append([])
            layers[-1] = self.sort_layer(graph, layers[-1] + leftovers)

        return layers

    def _restart_seeds(self, graph: Graph, processed: Set[str]) -> List[str]:
        """
        Choose where to continue when the frontier is empty.

        Candidates come from the source components of the unplaced
        subgraph, so nothing chosen has an unplaced parent outside its own
        cycle. Security and Network nodes are preferred, following the
        convention that they are the foundation of the infrastructure.
        """
        if self._digraph is None:
            self._digraph = graph.to_networkx()

        remaining = [node_id for node_id in graph.nodes if node_id not in processed]
        condensed = nx.condensation(self._digraph.subgraph(remaining))

        candidates: Set[str] = set()
        for component in condensed.nodes:
            if condensed.in_degree(component) == 0:
                candidates.update(condensed.nodes[component]["members"])

        ordered = [node_id for node_id in remaining if node_id in candidates]
        foundation = [
            node_id
            for node_id in ordered
            if graph.nodes[node_id].category in FOUNDATION_CATEGORIES
        ]
        if foundation:
            return foundation[: self.max_foundation_seeds]
        return ordered[:1]

    @staticmethod
    def sort_layer(graph: Graph, node_ids: Sequence[str]) -> List[str]:
        """Sort node ids by category priority, then name, then id."""

        def key(node_id: str) -> Tuple[int, str, str]:
            node = graph.nodes[node_id]
            return (category_priority(node.category), node.name, node_id)

        return sorted(node_ids, key=key)


class CrossingMinimizer:
    """
    Reorders nodes within layers using the barycenter heuristic.

    The result depends only on the input: ties keep their previous order
    because Python's sort is stable.
    """

    def __init__(self, sweeps: int = SWEEPS):
        self.sweeps = sweeps

    def minimize(self, layers: List[List[str]], graph: Graph) -> List[List[str]]:
        """
        Order nodes within each layer to reduce edge crossings.

        Args:
            layers: Layers of node ids. Not modified.
            graph: The graph the layers were built from.

        Returns:
            New list of reordered layers.
        """
        layers = [list(layer) for layer in layers]
        if len(layers) <= 1:
            return layers

        for _ in range(self.sweeps):
            # Forward pass
            for i in range(1, len(layers)):
                self.reorder_layer(layers, i, graph, forward=True)

            # Backward pass
            for i in range(len(layers) - 2, -1, -1):
                self.reorder_layer(layers, i, graph, forward=False)

        return layers

    def reorder_layer(
        self, layers: List[List[str]], index: int, graph: Graph, forward: bool
    ) -> None:
        """
        Reorder one layer in place against its neighbour.

        A forward pass compares against the layer above using predecessors,
        a backward pass against the layer below using successors. Layers
        without such a neighbour are left alone.
        """
        if index < 0 or index >= len(layers):
            return
        if forward and index == 0:
            return
        if not forward and index == len(layers) - 1:
            return

        ref_layer = layers[index - 1] if forward else layers[index + 1]
        layers[index] = self._order_layer_by_barycenter(
            layers[index], ref_layer, graph, use_predecessors=forward
        )

    @staticmethod
    def _order_layer_by_barycenter(
        layer: List[str],
        ref_layer: List[str],
        graph: Graph,
        use_predecessors: bool,
    ) -> List[str]:
        ref_positions = {node_id: i for i, node_id in enumerate(ref_layer)}
        barycenters: Dict[str, float] = {}

        for i, node_id in enumerate(layer):
            if use_predecessors:
                neighbors = graph.get_predecessors(node_id)
            else:
                neighbors = graph.get_successors(node_id)

            positions = [ref_positions[n] for n in neighbors if n in ref_positions]
            if positions:
                barycenters[node_id] = sum(positions) / len(positions)
            else:
                barycenters[node_id] = float(i)

        return sorted(layer, key=lambda node_id: barycenters[node_id])


def count_crossings(layers: List[List[str]], edges: Sequence[Tuple[str, str]]) -> int:
    """
    Count crossings between edges that join adjacent layers.

    Edges spanning more than one layer or staying inside a layer are not
    counted.
    """
    layer_of: Dict[str, int] = {}
    position_of: Dict[str, int] = {}
    for layer_idx, layer in enumerate(layers):
        for pos_idx, node_id in enumerate(layer):
            layer_of[node_id] = layer_idx
            position_of[node_id] = pos_idx

    # (upper position, lower position) per gap between layers
    spans: Dict[int, List[Tuple[int, int]]] = {}
    for source, target in edges:
        if source not in layer_of or target not in layer_of:
            continue
        a, b = layer_of[source], layer_of[target]
        if abs(a - b) != 1:
            continue
        upper, lower = (source, target) if a < b else (target, source)
        spans.setdefault(min(a, b), []).append(
            (position_of[upper], position_of[lower])
        )

    crossings = 0
    for segments in spans.values():
        for i in range(len(segments)):
            for j in range(i + 1, len(segments)):
                (u1, l1), (u2, l2) = segments[i], segments[j]
                if (u1 - u2) * (l1 - l2) < 0:
                    crossings += 1
    return crossings
