"""
Edge routing module for diagram layout.

Computes the point path of every edge once nodes are placed:
- Anchor points on the facing sides of the two boxes, with a clearance gap
  in front of the target so arrowheads never touch it
- Incoming edges spread symmetrically along the target's entry side
- Orthogonal paths between nodes of the same layer, routed through the
  gap next to the layer instead of across its boxes
- Two-curve detours around nodes that sit on the straight line
- Cubic Bezier curves for everything else, straight lines for short hops
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple

from .graph import Edge, Graph
from .models import EdgeLayout, Layout, NodeLayout, Point, is_vertical

# =============================================================================
# ROUTING CONFIGURATION
# =============================================================================

# Gap between the end of an edge and the target box
ARROW_CLEARANCE = 10.0

# Distance between neighbouring end anchors on a shared target
TARGET_SPREAD = 30.0

# Share of the entry side that spread anchors may occupy
TARGET_SPREAD_SHARE = 0.8

# Margin added around third-party boxes when testing for obstacles
OBSTACLE_MARGIN = 20.0

# Distance a detour waypoint keeps from the obstacle's expanded box
DETOUR_CLEARANCE = 40.0

# Anchors closer than this are joined by a straight line
MIN_CURVE_DISTANCE = 50.0

# Control point offset = min(|main axis delta| * CURVE_FACTOR, CURVE_CAP)
CURVE_FACTOR = 0.4
CURVE_CAP = 100.0

# Segments per sampled Bezier curve
BEZIER_STEPS = 25

# Distance from a layer's far side to the channel used by same-layer edges
SAME_LAYER_OFFSET = 40.0

# =============================================================================


def cubic_bezier(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    """Evaluate a cubic Bezier curve at parameter t."""
    mt = 1 - t
    a = mt * mt * mt
    b = 3 * mt * mt * t
    c = 3 * mt * t * t
    d = t * t * t
    return Point(
        a * p0.x + b * p1.x + c * p2.x + d * p3.x,
        a * p0.y + b * p1.y + c * p2.y + d * p3.y,
    )


def bezier_points(
    p0: Point, p1: Point, p2: Point, p3: Point, steps: int = BEZIER_STEPS
) -> List[Point]:
    """Sample a cubic Bezier curve into steps + 1 points, endpoints exact."""
    points = [p0]
    for i in range(1, steps):
        points.append(cubic_bezier(p0, p1, p2, p3, i / steps))
    points.append(p3)
    return points


def _entry_parameter(
    p1: Point, p2: Point, x1: float, y1: float, x2: float, y2: float
) -> Optional[float]:
    """
    Clip a segment against a rectangle (Liang-Barsky).

    Returns:
        The segment parameter in [0, 1] where it enters the rectangle, or
        None if it misses.
    """
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    t0, t1 = 0.0, 1.0

    for p, q in (
        (-dx, p1.x - x1),
        (dx, x2 - p1.x),
        (-dy, p1.y - y1),
        (dy, y2 - p1.y),
    ):
        if p == 0:
            if q < 0:
                return None
            continue
        r = q / p
        if p < 0:
            if r > t1:
                return None
            t0 = max(t0, r)
        else:
            if r < t0:
                return None
            t1 = min(t1, r)

    return t0


def segment_intersects_rect(
    p1: Point, p2: Point, x1: float, y1: float, x2: float, y2: float
) -> bool:
    """Check if the segment p1-p2 touches the rectangle (x1, y1)-(x2, y2)."""
    return _entry_parameter(p1, p2, x1, y1, x2, y2) is not None


class EdgeRouter:
    """
    Routes the edges of a graph over a positioned layout.

    The router only reads node positions; it never moves nodes.
    """

    def __init__(self, layout: Layout):
        self.layout = layout
        self.vertical = is_vertical(layout.direction)

    def route_edges(self, graph: Graph) -> List[EdgeLayout]:
        """
        Route all edges of the graph.

        Edges whose endpoints have no position (a cancelled layout) are
        skipped.

        Returns:
            One EdgeLayout per routed edge, in graph edge order.
        """
        edges = [
            edge
            for edge in graph.edges
            if edge.source in self.layout.nodes and edge.target in self.layout.nodes
        ]
        offsets = self.target_offsets(edges)
        return [self.route_edge(edge, offsets.get(edge.key, 0.0)) for edge in edges]

    def target_offsets(self, edges: Sequence[Edge]) -> Dict[Tuple[str, str], float]:
        """
        Spread the end anchors of edges that share a target.

        Incoming edges are grouped by the side they enter, ordered by their
        source's centre along that side and receive offsets symmetric about
        the target centre. All anchors stay within TARGET_SPREAD_SHARE of
        the entry side.
        """
        by_target: Dict[Tuple[str, bool], List[Tuple[float, int, Edge]]] = {}
        for order, edge in enumerate(edges):
            source = self.layout.nodes[edge.source]
            along_x = self._offset_along_x(source, self.layout.nodes[edge.target])
            cross = source.center.x if along_x else source.center.y
            by_target.setdefault((edge.target, along_x), []).append(
                (cross, order, edge)
            )

        offsets: Dict[Tuple[str, str], float] = {}
        for (target, along_x), incoming in by_target.items():
            count = len(incoming)
            if count < 2:
                continue

            node = self.layout.nodes[target]
            side = node.width if along_x else node.height
            spread = min(TARGET_SPREAD, side * TARGET_SPREAD_SHARE / (count - 1))
            total = (count - 1) * spread

            for index, (_, _, edge) in enumerate(sorted(incoming, key=lambda e: e[:2])):
                offsets[edge.key] = index * spread - total / 2

        return offsets

    def _offset_along_x(self, source: NodeLayout, target: NodeLayout) -> bool:
        """Whether the end anchor offset of an edge runs along the x axis."""
        if source.layer == target.layer:
            return self.vertical
        if self.vertical:
            side_entry = not (target.y > source.y2 or target.y2 < source.y)
        else:
            side_entry = not (target.x > source.x2 or target.x2 < source.x)
        return self.vertical != side_entry

    def route_edge(self, edge: Edge, offset: float = 0.0) -> EdgeLayout:
        """
        Compute the path of a single edge.

        Shape priority: same layer -> orthogonal; straight line blocked by
        another node -> detour; short distance -> straight; otherwise a
        Bezier curve.
        """
        source = self.layout.nodes[edge.source]
        target = self.layout.nodes[edge.target]

        if source.layer == target.layer:
            points = self._route_same_layer(source, target, offset)
            style = "orthogonal"
        else:
            start, end = self.anchors(source, target, offset)
            obstacle = self._first_obstacle(start, end, source, target)
            if obstacle is not None:
                points = self._route_detour(start, end, obstacle)
                style = "detour"
            elif math.dist(start, end) < MIN_CURVE_DISTANCE:
                points = [start, end]
                style = "straight"
            else:
                points = self._route_curve(start, end)
                style = "curved"

        return EdgeLayout(
            source=edge.source,
            target=edge.target,
            relationship=edge.relationship,
            points=points,
            style=style,
        )

    def anchors(
        self, source: NodeLayout, target: NodeLayout, offset: float = 0.0
    ) -> Tuple[Point, Point]:
        """
        Pick the start and end points of an edge.

        The start sits on the source boundary facing the target. The end
        sits ARROW_CLEARANCE in front of the target boundary, shifted by
        ``offset`` along that side.
        """
        src = source.center
        tgt = target.center

        if self.vertical:
            if target.y > source.y2:
                return (
                    Point(src.x, source.y2),
                    Point(tgt.x + offset, target.y - ARROW_CLEARANCE),
                )
            if target.y2 < source.y:
                return (
                    Point(src.x, source.y),
                    Point(tgt.x + offset, target.y2 + ARROW_CLEARANCE),
                )
        else:
            if target.x > source.x2:
                return (
                    Point(source.x2, src.y),
                    Point(target.x - ARROW_CLEARANCE, tgt.y + offset),
                )
            if target.x2 < source.x:
                return (
                    Point(source.x, src.y),
                    Point(target.x2 + ARROW_CLEARANCE, tgt.y + offset),
                )

        # Boxes overlap on the main axis: connect the facing sides.
        if self.vertical:
            if tgt.x >= src.x:
                return (
                    Point(source.x2, src.y),
                    Point(target.x - ARROW_CLEARANCE, tgt.y + offset),
                )
            return (
                Point(source.x, src.y),
                Point(target.x2 + ARROW_CLEARANCE, tgt.y + offset),
            )
        if tgt.y >= src.y:
            return (
                Point(src.x, source.y2),
                Point(tgt.x + offset, target.y - ARROW_CLEARANCE),
            )
        return (
            Point(src.x, source.y),
            Point(tgt.x + offset, target.y2 + ARROW_CLEARANCE),
        )

    def _layer_far_side(self, layer: int) -> Tuple[float, float]:
        """
        Return the far side of a layer and the free gap beyond it.

        "Far" is the bottom for vertical directions and the right side for
        horizontal ones.
        """
        members = [
            node for node in self.layout.nodes.values() if node.layer == layer
        ]
        if self.vertical:
            far = max(node.y2 for node in members)
            beyond = [node.y for node in self.layout.nodes.values() if node.y >= far]
        else:
            far = max(node.x2 for node in members)
            beyond = [node.x for node in self.layout.nodes.values() if node.x >= far]

        if beyond:
            gap = min(beyond) - far
        else:
            bound = self.layout.height if self.vertical else self.layout.width
            gap = bound - far if bound > far else 2 * SAME_LAYER_OFFSET
        return far, gap

    def _route_same_layer(
        self, source: NodeLayout, target: NodeLayout, offset: float
    ) -> List[Point]:
        """
        Orthogonal path between two nodes of one layer.

        Leaves the source from its far side, runs along a channel in the
        gap beyond the layer and enters the target from the same side.
        """
        far, gap = self._layer_far_side(source.layer)
        # At most half the free gap beyond the layer.
        depth = min(SAME_LAYER_OFFSET, gap / 2)
        clearance = min(ARROW_CLEARANCE, depth / 2)
        channel = far + depth
        src = source.center
        tgt = target.center

        if self.vertical:
            start = Point(src.x, source.y2)
            end = Point(tgt.x + offset, target.y2 + clearance)
            return [start, Point(start.x, channel), Point(end.x, channel), end]

        start = Point(source.x2, src.y)
        end = Point(target.x2 + clearance, tgt.y + offset)
        return [start, Point(channel, start.y), Point(channel, end.y), end]

    def _first_obstacle(
        self, start: Point, end: Point, source: NodeLayout, target: NodeLayout
    ) -> Optional[NodeLayout]:
        """Return the node the straight line enters first, if any."""
        best: Optional[Tuple[float, int, int, str]] = None
        hit: Optional[NodeLayout] = None

        for node in self.layout.nodes.values():
            if node is source or node is target:
                continue
            t = _entry_parameter(
                start,
                end,
                node.x - OBSTACLE_MARGIN,
                node.y - OBSTACLE_MARGIN,
                node.x2 + OBSTACLE_MARGIN,
                node.y2 + OBSTACLE_MARGIN,
            )
            if t is None:
                continue
            key = (t, node.layer, node.position, node.node_id)
            if best is None or key < best:
                best = key
                hit = node

        return hit

    def _route_detour(
        self, start: Point, end: Point, obstacle: NodeLayout
    ) -> List[Point]:
        """
        Route around an obstacle with two curves joined beside it.

        The waypoint goes on the side of the obstacle nearer to the straight
        line's midpoint, unless that side lies at negative coordinates.
        """
        mid_x = (start.x + end.x) / 2
        mid_y = (start.y + end.y) / 2
        reach = OBSTACLE_MARGIN + DETOUR_CLEARANCE
        center = obstacle.center

        if self.vertical:
            low = obstacle.x - reach
            high = obstacle.x2 + reach
            side = low if abs(mid_x - low) < abs(mid_x - high) and low >= 0 else high
            waypoint = Point(side, center.y)
        else:
            low = obstacle.y - reach
            high = obstacle.y2 + reach
            side = low if abs(mid_y - low) < abs(mid_y - high) and low >= 0 else high
            waypoint = Point(center.x, side)

        first = self._route_curve(start, waypoint)
        second = self._route_curve(waypoint, end)
        return first + second[1:]

    def _route_curve(self, start: Point, end: Point) -> List[Point]:
        """
        Sample a cubic Bezier between two points.

        Control points are pulled along the main layout axis so curves leave
        and enter boxes head-on.
        """
        if self.vertical:
            delta = end.y - start.y
            strength = math.copysign(min(abs(delta) * CURVE_FACTOR, CURVE_CAP), delta)
            cp1 = Point(start.x, start.y + strength)
            cp2 = Point(end.x, end.y - strength)
        else:
            delta = end.x - start.x
            strength = math.copysign(min(abs(delta) * CURVE_FACTOR, CURVE_CAP), delta)
            cp1 = Point(start.x + strength, start.y)
            cp2 = Point(end.x - strength, end.y)

        return bezier_points(start, cp1, cp2, end)
