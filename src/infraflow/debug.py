"""
Debug utilities for infraflow.

This module provides tools for understanding and troubleshooting computed
layouts without a full renderer.

Key Components:
- LayoutInspector: Queries over a finished Layout (overlaps, crossings,
  edge shapes)
- render_snapshot: Quick Pillow rendering of boxes and edge paths

Usage:
    >>> graph, layout = LayoutGenerator().generate(resources)
    >>> inspector = LayoutInspector(layout)
    >>> print(inspector.summary())

    # Eyeball the result:
    >>> from infraflow.debug import render_snapshot
    >>> render_snapshot(layout, graph, "snapshot.png")
"""

from typing import Dict, List, Optional, Tuple

from PIL import Image, ImageDraw

from .graph import Graph
from .layout import count_crossings
from .models import Layout
from .positioning import COLLISION_MARGIN, boxes_overlap
from .styles import lighten_color, node_color, truncate

# Snapshot colours
BACKGROUND_COLOR = (255, 255, 255)
EDGE_COLOR = (96, 96, 96)
TEXT_COLOR = (0, 0, 0)


class LayoutInspector:
    """
    Utilities for inspecting a computed layout.

    Provides methods for checking the geometric properties a layout is
    expected to have.
    """

    def __init__(self, layout: Layout):
        """
        Initialize the inspector.

        Args:
            layout: The layout to inspect
        """
        self._layout = layout

    def find_overlaps(self, margin: float = COLLISION_MARGIN) -> List[Tuple[str, str]]:
        """
        Find all pairs of nodes closer than margin.

        Returns:
            List of (node_id, node_id) pairs, sorted
        """
        nodes = sorted(self._layout.nodes.values(), key=lambda n: n.node_id)
        pairs = []
        for i in range(len(nodes)):
            for j in range(i + 1, len(nodes)):
                if boxes_overlap(nodes[i], nodes[j], margin):
                    pairs.append((nodes[i].node_id, nodes[j].node_id))
        return pairs

    def count_crossings(self) -> int:
        """Count crossings between routed edges of adjacent layers."""
        edges = [(edge.source, edge.target) for edge in self._layout.edges]
        return count_crossings(self._layout.layers, edges)

    def edge_styles(self) -> Dict[str, int]:
        """Count routed edges per path style."""
        counts: Dict[str, int] = {}
        for edge in self._layout.edges:
            counts[edge.style] = counts.get(edge.style, 0) + 1
        return counts

    def out_of_bounds(self) -> List[str]:
        """Get ids of nodes that fall outside the layout's width and height."""
        return sorted(
            node.node_id
            for node in self._layout.nodes.values()
            if node.x < 0
            or node.y < 0
            or node.x2 > self._layout.width
            or node.y2 > self._layout.height
        )

    def summary(self) -> str:
        layout = self._layout
        lines = [
            f"Direction: {layout.direction}",
            f"Size: {layout.width:.0f} x {layout.height:.0f}",
            f"Nodes: {len(layout.nodes)} in {len(layout.layers)} layers",
            f"Edges: {len(layout.edges)}",
            f"Overlaps: {len(self.find_overlaps())}",
            f"Crossings: {self.count_crossings()}",
        ]
        for style, count in sorted(self.edge_styles().items()):
            lines.append(f"  {style}: {count}")
        if layout.cancelled:
            lines.append("CANCELLED (partial result)")
        return "\n".join(lines)


def _hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    hex_color = hex_color.lstrip("#")
    return (
        int(hex_color[0:2], 16),
        int(hex_color[2:4], 16),
        int(hex_color[4:6], 16),
    )


def render_snapshot(
    layout: Layout,
    graph: Graph,
    path: Optional[str] = None,
    scale: float = 1.0,
) -> Image.Image:
    """
    Draw a layout as a plain PNG for debugging.

    Boxes are filled with a light tint of their category colour and
    labelled with the resource name; edges are drawn as their point
    polylines.

    Args:
        layout: The layout to draw
        graph: The graph the layout was computed from
        path: If given, the image is also saved there as PNG
        scale: Pixel multiplier

    Returns:
        The rendered Pillow image
    """
    width = max(1, int(round(layout.width * scale)))
    height = max(1, int(round(layout.height * scale)))
    img = Image.new("RGB", (width, height), BACKGROUND_COLOR)
    draw = ImageDraw.Draw(img)

    for edge in layout.edges:
        points = [(p.x * scale, p.y * scale) for p in edge.points]
        if len(points) >= 2:
            draw.line(points, fill=EDGE_COLOR, width=max(1, int(2 * scale)))

    for node_id, box in layout.nodes.items():
        node = graph.nodes.get(node_id)
        color = node_color(node) if node is not None else "#757575"
        x1, y1 = box.x * scale, box.y * scale
        x2, y2 = box.x2 * scale, box.y2 * scale
        draw.rectangle(
            [x1, y1, x2, y2],
            fill=_hex_to_rgb(lighten_color(color, 80)),
            outline=_hex_to_rgb(color),
            width=max(1, int(2 * scale)),
        )
        label = truncate(node.name if node is not None else node_id, 24)
        draw.text((x1 + 6 * scale, y1 + 6 * scale), label, fill=TEXT_COLOR)

    if path:
        img.save(path, "PNG")
    return img
