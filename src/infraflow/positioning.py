"""
Position calculation for diagram layout.

This module handles the geometric side of the layout:
- Mapping (layer, order in layer) to absolute coordinates for all four
  flow directions (TB, BT, LR, RL)
- Centering every layer against the widest one
- Measuring the overall diagram size
- Detecting and correcting overlapping node boxes

The main axis is the axis layers advance along (y for TB/BT, x for LR/RL);
the cross axis is the one nodes of a layer are spread along.
"""

import logging
import math
from typing import List, Optional, Tuple

from .models import Layout, NodeLayout, is_reversed, is_vertical

logger = logging.getLogger(__name__)

# Minimum gap kept between any two node boxes.
COLLISION_MARGIN = 10.0

# Push applied per overlap, as a fraction of the node width.
PUSH_FRACTION = 0.2

# Relaxation passes before falling back to a deterministic sweep.
MAX_PASSES = 50


class CoordinateAssigner:
    """
    Assigns absolute coordinates to ordered layers.

    All nodes share one size; spacing is the empty gap between boxes.

    Attributes:
        node_width: Width of every node box.
        node_height: Height of every node box.
        horizontal_spacing: Gap between boxes along x.
        vertical_spacing: Gap between boxes along y.
    """

    def __init__(
        self,
        node_width: float,
        node_height: float,
        horizontal_spacing: float,
        vertical_spacing: float,
    ):
        self.node_width = node_width
        self.node_height = node_height
        self.horizontal_spacing = horizontal_spacing
        self.vertical_spacing = vertical_spacing

    def _axes(self, direction: str) -> Tuple[float, float, float, float]:
        """Return (cross size, cross spacing, main size, main spacing)."""
        if is_vertical(direction):
            return (
                self.node_width,
                self.horizontal_spacing,
                self.node_height,
                self.vertical_spacing,
            )
        return (
            self.node_height,
            self.vertical_spacing,
            self.node_width,
            self.horizontal_spacing,
        )

    def assign(self, layers: List[List[str]], direction: str = "TB") -> Layout:
        """
        Place every node of the given layers.

        Args:
            layers: Ordered layers of node ids.
            direction: One of "TB", "BT", "LR", "RL".

        Returns:
            A Layout with node boxes, layers, direction and size filled in
            and no edges.
        """
        layout = Layout(layers=[list(layer) for layer in layers], direction=direction)
        if not layers:
            return layout

        cross_size, cross_spacing, main_size, main_spacing = self._axes(direction)

        def extent(count: int) -> float:
            if count == 0:
                return 0.0
            return count * cross_size + (count - 1) * cross_spacing

        max_extent = max(extent(len(layer)) for layer in layers)
        last_layer = len(layers) - 1

        for layer_idx, layer in enumerate(layers):
            offset = (max_extent - extent(len(layer))) / 2
            rank = last_layer - layer_idx if is_reversed(direction) else layer_idx
            main = rank * (main_size + main_spacing)

            for pos_idx, node_id in enumerate(layer):
                cross = offset + pos_idx * (cross_size + cross_spacing)
                if is_vertical(direction):
                    x, y = cross, main
                else:
                    x, y = main, cross

                layout.nodes[node_id] = NodeLayout(
                    node_id=node_id,
                    layer=layer_idx,
                    position=pos_idx,
                    x=x,
                    y=y,
                    width=self.node_width,
                    height=self.node_height,
                )

        self.measure(layout)
        return layout

    def measure(self, layout: Layout) -> None:
        """
        Set layout width and height from the node boxes.

        The size is the far edge of the furthest node plus one spacing unit
        of margin. Nodes pushed to negative coordinates are shifted back so
        the diagram starts at the origin.
        """
        if not layout.nodes:
            layout.width = 0.0
            layout.height = 0.0
            return

        min_x = min(node.x for node in layout.nodes.values())
        min_y = min(node.y for node in layout.nodes.values())
        shift_x = -min_x if min_x < 0 else 0.0
        shift_y = -min_y if min_y < 0 else 0.0
        if shift_x or shift_y:
            for node in layout.nodes.values():
                node.x += shift_x
                node.y += shift_y

        layout.width = (
            max(node.x2 for node in layout.nodes.values()) + self.horizontal_spacing
        )
        layout.height = (
            max(node.y2 for node in layout.nodes.values()) + self.vertical_spacing
        )


def boxes_overlap(
    a: NodeLayout, b: NodeLayout, margin: float = COLLISION_MARGIN
) -> bool:
    """
    Check whether two boxes are closer than ``margin`` on both axes.

    Boxes exactly ``margin`` apart do not overlap.
    """
    return not (
        a.x2 + margin <= b.x
        or b.x2 + margin <= a.x
        or a.y2 + margin <= b.y
        or b.y2 + margin <= a.y
    )


class CollisionResolver:
    """
    Pushes overlapping nodes apart.

    Each pass walks every pair in layer order and moves the second node of
    an overlapping pair away from the first along the line between their
    centres. Passes repeat until one finds no overlap or ``max_passes`` is
    reached; any overlap left after that is removed by sliding nodes along
    the cross axis, which always terminates.

    Attributes:
        margin: Minimum gap between boxes.
        push_distance: Distance moved per overlap. Defaults to
            PUSH_FRACTION of the widest node.
        max_passes: Upper bound on relaxation passes.
        passes: Relaxation passes used by the last call.
        pushes: Overlaps corrected by the last call.
    """

    def __init__(
        self,
        margin: float = COLLISION_MARGIN,
        push_distance: Optional[float] = None,
        max_passes: int = MAX_PASSES,
    ):
        self.margin = margin
        self.push_distance = push_distance
        self.max_passes = max_passes
        self.passes = 0
        self.pushes = 0

    def resolve(self, layout: Layout) -> int:
        """
        Remove overlaps from a layout in place.

        Returns:
            Number of overlaps corrected.
        """
        self.passes = 0
        self.pushes = 0
        nodes = sorted(
            layout.nodes.values(), key=lambda n: (n.layer, n.position, n.node_id)
        )
        if len(nodes) < 2:
            return 0

        step = self.push_distance
        if step is None:
            step = max(node.width for node in nodes) * PUSH_FRACTION
        cross_is_x = is_vertical(layout.direction)

        for _ in range(self.max_passes):
            self.passes += 1
            moved = False
            for i in range(len(nodes)):
                for j in range(i + 1, len(nodes)):
                    if boxes_overlap(nodes[i], nodes[j], self.margin):
                        self._push(nodes[i], nodes[j], step, cross_is_x)
                        self.pushes += 1
                        moved = True
            if not moved:
                break
        else:
            if self._sweep(nodes, cross_is_x):
                logger.debug(
                    "overlaps left after %d passes, separated along cross axis",
                    self.max_passes,
                )

        return self.pushes

    @staticmethod
    def _push(a: NodeLayout, b: NodeLayout, step: float, cross_is_x: bool) -> None:
        dx = b.center.x - a.center.x
        dy = b.center.y - a.center.y
        distance = math.hypot(dx, dy)

        if distance < 1e-9:
            # Coincident centres: no direction to follow, use the cross axis.
            ux, uy = (1.0, 0.0) if cross_is_x else (0.0, 1.0)
        else:
            ux, uy = dx / distance, dy / distance

        b.x += ux * step
        b.y += uy * step

    def _sweep(self, nodes: List[NodeLayout], cross_is_x: bool) -> int:
        """
        Slide nodes along the cross axis until no pair overlaps.

        Nodes are placed one at a time in cross-axis order and never move
        again once placed. A node that overlaps placed nodes jumps past the
        furthest of them, so each node moves at most once per placed node.

        Returns:
            Number of nodes moved.
        """

        def cross(node: NodeLayout) -> float:
            return node.x if cross_is_x else node.y

        moved = 0
        placed: List[NodeLayout] = []
        order = sorted(nodes, key=lambda n: (cross(n), n.layer, n.position, n.node_id))
        for node in order:
            while True:
                hits = [
                    other for other in placed if boxes_overlap(node, other, self.margin)
                ]
                if not hits:
                    break
                moved += 1
                if cross_is_x:
                    node.x = max(other.x2 for other in hits) + self.margin
                else:
                    node.y = max(other.y2 for other in hits) + self.margin
            placed.append(node)
        return moved
