"""
Main layout generator module.

Combines graph building, layering, positioning and edge routing to turn
infrastructure resources into a diagram layout ready for rendering.
"""

import logging
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from .builder import GraphBuilder
from .cancellation import CancelToken, is_cancelled
from .catalog import Resource
from .graph import Graph
from .layout import CrossingMinimizer, Layerer, count_crossings
from .models import DIRECTIONS, Layout
from .positioning import CollisionResolver, CoordinateAssigner
from .router import EdgeRouter
from .tracer import LayoutTrace

logger = logging.getLogger(__name__)

# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_NODE_WIDTH = 220.0
DEFAULT_NODE_HEIGHT = 160.0

# Base spacing of 140 x 120 scaled by 1.5 for edge labels
DEFAULT_HORIZONTAL_SPACING = 210.0
DEFAULT_VERTICAL_SPACING = 180.0

DEFAULT_DIRECTION = "TB"

# =============================================================================

ResourceInput = Union[Resource, Mapping[str, Any]]


class LayoutGenerator:
    """
    Generate diagram layouts from infrastructure resources.

    Example:
        >>> generator = LayoutGenerator(direction="LR")
        >>> graph, layout = generator.generate(resources)
        >>> for node_id, box in layout.nodes.items():
        ...     print(graph.nodes[node_id].name, box.x, box.y)
    """

    def __init__(
        self,
        node_width: float = DEFAULT_NODE_WIDTH,
        node_height: float = DEFAULT_NODE_HEIGHT,
        horizontal_spacing: float = DEFAULT_HORIZONTAL_SPACING,
        vertical_spacing: float = DEFAULT_VERTICAL_SPACING,
        direction: str = DEFAULT_DIRECTION,
    ):
        """
        Initialize the layout generator.

        Args:
            node_width: Width of every node box
            node_height: Height of every node box
            horizontal_spacing: Gap between boxes along x
            vertical_spacing: Gap between boxes along y
            direction: Flow direction - "TB", "BT", "LR" or "RL"
        """
        self.direction = direction.upper()

        if self.direction not in DIRECTIONS:
            raise ValueError("direction must be one of 'TB', 'BT', 'LR' or 'RL'")
        if node_width <= 0 or node_height <= 0:
            raise ValueError("node_width and node_height must be positive")
        if horizontal_spacing < 0 or vertical_spacing < 0:
            raise ValueError("horizontal_spacing and vertical_spacing must be >= 0")

        self.node_width = node_width
        self.node_height = node_height
        self.horizontal_spacing = horizontal_spacing
        self.vertical_spacing = vertical_spacing

        self.builder = GraphBuilder()
        self.layerer = Layerer()
        self.minimizer = CrossingMinimizer()
        self.assigner = CoordinateAssigner(
            node_width, node_height, horizontal_spacing, vertical_spacing
        )
        self.resolver = CollisionResolver()

        self._trace: Optional[LayoutTrace] = None

    def generate(
        self,
        resources: Sequence[ResourceInput],
        cancel: Optional[CancelToken] = None,
        debug: bool = False,
    ) -> Tuple[Graph, Layout]:
        """
        Build the resource graph and lay it out.

        Args:
            resources: Resource records, or dicts in the same shape
            cancel: Optional cancellation token (e.g. threading.Event)
            debug: If True, record a LayoutTrace (see get_trace)

        Returns:
            The graph and its layout. If cancellation was observed,
            ``layout.cancelled`` is True and the result must not be
            rendered.
        """
        records = [
            item if isinstance(item, Resource) else Resource.from_dict(item)
            for item in resources
        ]

        self._trace = (
            LayoutTrace(resource_count=len(records), direction=self.direction)
            if debug
            else None
        )

        graph = self.builder.build(records, cancel)
        if self._trace is not None:
            self._trace.add_stage(
                "build",
                {
                    "nodes": len(graph.nodes),
                    "edges": len(graph.edges),
                    "excluded": self.builder.excluded,
                    "explicit_edges": self.builder.explicit_edges,
                    "implicit_edges": self.builder.implicit_edges,
                    "dropped_references": self.builder.dropped_references,
                },
            )

        if graph.cancelled:
            layout = Layout(direction=self.direction, cancelled=True)
            self._finish_trace(layout)
            return graph, layout

        return graph, self.layout(graph, cancel)

    def layout(self, graph: Graph, cancel: Optional[CancelToken] = None) -> Layout:
        """
        Lay out an existing graph.

        Phases after a cancellation are skipped; the partial layout is
        returned with ``cancelled`` set.
        """
        layers = self.layerer.assign_layers(graph, cancel)
        cancelled = self.layerer.cancelled
        self._add_stage(
            "layers",
            {
                "count": len(layers),
                "sizes": [len(layer) for layer in layers],
                "layers": layers,
            },
        )

        if not cancelled and not is_cancelled(cancel):
            before = count_crossings(layers, graph.get_edges())
            layers = self.minimizer.minimize(layers, graph)
            self._add_stage(
                "ordering",
                {
                    "crossings_before": before,
                    "crossings_after": count_crossings(layers, graph.get_edges()),
                    "layers": layers,
                },
            )
        else:
            cancelled = True

        layout = self.assigner.assign(layers, self.direction)
        self._add_stage(
            "coordinates",
            {"width": layout.width, "height": layout.height},
        )

        if not cancelled and not is_cancelled(cancel):
            pushes = self.resolver.resolve(layout)
            self.assigner.measure(layout)
            self._add_stage(
                "collisions",
                {
                    "pushes": pushes,
                    "passes": self.resolver.passes,
                    "width": layout.width,
                    "height": layout.height,
                },
            )
        else:
            cancelled = True

        if not cancelled and not is_cancelled(cancel):
            layout.edges = EdgeRouter(layout).route_edges(graph)
            styles = {}
            for edge in layout.edges:
                styles[edge.style] = styles.get(edge.style, 0) + 1
            self._add_stage("routing", {"edges": len(layout.edges), "styles": styles})
        else:
            cancelled = True

        layout.cancelled = cancelled
        self._finish_trace(layout)

        if cancelled:
            logger.warning("layout cancelled, returning partial result")
        else:
            logger.info(
                "laid out %d nodes in %d layers with %d edges (%.0f x %.0f)",
                len(layout.nodes),
                len(layout.layers),
                len(layout.edges),
                layout.width,
                layout.height,
            )
        return layout

    def get_trace(self) -> Optional[LayoutTrace]:
        """
        Get the trace from the last generate() call with debug=True.

        Returns:
            The LayoutTrace, or None if debug was not enabled
        """
        return self._trace

    def _add_stage(self, name: str, data: dict) -> None:
        if self._trace is not None:
            self._trace.add_stage(name, data)

    def _finish_trace(self, layout: Layout) -> None:
        if self._trace is not None:
            self._trace.cancelled = layout.cancelled


def compute_layout(
    graph: Graph,
    cancel: Optional[CancelToken] = None,
    **options: Any,
) -> Layout:
    """
    Lay out a graph with a fresh LayoutGenerator.

    Keyword options are passed to LayoutGenerator.
    """
    return LayoutGenerator(**options).layout(graph, cancel)


def generate_layout(
    resources: Sequence[ResourceInput],
    cancel: Optional[CancelToken] = None,
    **options: Any,
) -> Tuple[Graph, Layout]:
    """Build the graph for resources and lay it out in one call."""
    return LayoutGenerator(**options).generate(resources, cancel)
