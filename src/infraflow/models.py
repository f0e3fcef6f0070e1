"""
Data models for computed layouts.

This module contains the dataclasses handed from the layout engine to a
renderer: absolute node boxes, routed edge paths and the layout that
aggregates them. A renderer pairs a Layout with the Graph it came from and
looks up ``graph.nodes[node_id]`` for display attributes.

Classes:
    Point: A 2D coordinate.
    NodeLayout: Position and size of one node, plus its layer.
    EdgeLayout: The routed path of one edge.
    Layout: Everything a renderer needs to draw the diagram.
"""

from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple

DIRECTIONS = ("TB", "BT", "LR", "RL")


def is_vertical(direction: str) -> bool:
    """Return True for directions whose layers stack vertically."""
    return direction in ("TB", "BT")


def is_reversed(direction: str) -> bool:
    """Return True for directions that place layer 0 at the far end."""
    return direction in ("BT", "RL")


class Point(NamedTuple):
    """A 2D coordinate."""

    x: float
    y: float


@dataclass
class NodeLayout:
    """
    Layout information for a single node.

    Attributes:
        node_id: Id of the node in the originating Graph.
        layer: Rank assigned by the layerer (0-based).
        position: Index of the node inside its layer.
        x: Left edge.
        y: Top edge.
        width: Box width.
        height: Box height.
    """

    node_id: str
    layer: int = 0
    position: int = 0
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)


@dataclass
class EdgeLayout:
    """
    A routed edge.

    Attributes:
        source: Id of the source node.
        target: Id of the target node.
        relationship: Relationship label copied from the graph edge.
        points: Path from the source anchor to the target anchor. Two
            points form a straight line, more form a polyline.
        style: How the path was shaped: "straight", "orthogonal",
            "curved" or "detour".
    """

    source: str
    target: str
    relationship: str = "depends_on"
    points: List[Point] = field(default_factory=list)
    style: str = "straight"


@dataclass
class Layout:
    """Result of the layout pipeline."""

    nodes: Dict[str, NodeLayout] = field(default_factory=dict)
    edges: List[EdgeLayout] = field(default_factory=list)
    layers: List[List[str]] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0
    direction: str = "TB"
    cancelled: bool = False
