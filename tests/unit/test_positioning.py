"""Unit tests for the positioning module."""

import random

import pytest

from infraflow.models import Layout, NodeLayout
from infraflow.positioning import (
    COLLISION_MARGIN,
    CollisionResolver,
    CoordinateAssigner,
    boxes_overlap,
)


@pytest.fixture
def assigner():
    """CoordinateAssigner with the default diagram sizes."""
    return CoordinateAssigner(
        node_width=220, node_height=160, horizontal_spacing=210, vertical_spacing=180
    )


def box(node_id, x, y, width=220, height=160, layer=0, position=0):
    return NodeLayout(
        node_id=node_id,
        layer=layer,
        position=position,
        x=x,
        y=y,
        width=width,
        height=height,
    )


def random_layout(seed, count=20):
    """Layout with boxes scattered over a small area."""
    rng = random.Random(seed)
    layout = Layout()
    for i in range(count):
        layout.nodes[f"n{i}"] = box(
            f"n{i}",
            rng.uniform(0, 600),
            rng.uniform(0, 400),
            layer=i % 4,
            position=i // 4,
        )
    return layout


def all_separated(layout, margin=COLLISION_MARGIN):
    nodes = list(layout.nodes.values())
    for i in range(len(nodes)):
        for j in range(i + 1, len(nodes)):
            if boxes_overlap(nodes[i], nodes[j], margin):
                return False
    return True


class TestCoordinateAssigner:
    """Tests for CoordinateAssigner.assign."""

    def test_top_to_bottom(self, assigner):
        layout = assigner.assign([["a"], ["b", "c"]], "TB")
        a, b, c = (layout.nodes[n] for n in "abc")

        # Single node centred over a two-node layer of extent 650
        assert (a.x, a.y) == (215, 0)
        assert (b.x, b.y) == (0, 340)
        assert (c.x, c.y) == (430, 340)
        assert (a.layer, b.layer, c.position) == (0, 1, 1)
        assert layout.width == 860
        assert layout.height == 680

    def test_bottom_to_top(self, assigner):
        layout = assigner.assign([["a"], ["b", "c"]], "BT")
        assert layout.nodes["a"].y == 340
        assert layout.nodes["b"].y == 0

    def test_left_to_right(self, assigner):
        layout = assigner.assign([["a"], ["b", "c"]], "LR")
        a, b, c = (layout.nodes[n] for n in "abc")
        assert (a.x, a.y) == (0, 170)
        assert (b.x, b.y) == (430, 0)
        assert (c.x, c.y) == (430, 340)

    def test_right_to_left(self, assigner):
        layout = assigner.assign([["a"], ["b", "c"]], "RL")
        assert layout.nodes["a"].x == 430
        assert layout.nodes["b"].x == 0

    def test_node_size(self, assigner):
        layout = assigner.assign([["a"]])
        assert layout.nodes["a"].width == 220
        assert layout.nodes["a"].height == 160
        assert layout.direction == "TB"

    def test_empty(self, assigner):
        layout = assigner.assign([])
        assert layout.nodes == {}
        assert layout.width == 0
        assert layout.height == 0

    def test_measure_shifts_negative_coordinates(self, assigner):
        layout = Layout()
        layout.nodes["a"] = box("a", -50, 0)
        layout.nodes["b"] = box("b", 300, -20)
        assigner.measure(layout)
        assert (layout.nodes["a"].x, layout.nodes["a"].y) == (0, 20)
        assert (layout.nodes["b"].x, layout.nodes["b"].y) == (350, 0)
        assert layout.width == 350 + 220 + 210


class TestBoxesOverlap:
    """Tests for boxes_overlap."""

    def test_exact_margin_is_separated(self):
        assert not boxes_overlap(box("a", 0, 0, 100), box("b", 110, 0, 100), 10)

    def test_inside_margin_overlaps(self):
        assert boxes_overlap(box("a", 0, 0, 100), box("b", 109, 0, 100), 10)

    def test_separated_on_one_axis_is_enough(self):
        assert not boxes_overlap(box("a", 0, 0), box("b", 0, 500))


class TestCollisionResolver:
    """Tests for CollisionResolver.resolve."""

    def test_no_overlap_unchanged(self):
        layout = Layout()
        layout.nodes["a"] = box("a", 0, 0)
        layout.nodes["b"] = box("b", 500, 0, position=1)
        assert CollisionResolver().resolve(layout) == 0
        assert layout.nodes["b"].x == 500

    def test_coincident_nodes_pushed_along_cross_axis(self):
        layout = Layout()
        layout.nodes["a"] = box("a", 0, 0)
        layout.nodes["b"] = box("b", 0, 0, position=1)
        resolver = CollisionResolver()
        pushes = resolver.resolve(layout)

        assert pushes > 0
        assert layout.nodes["a"].x == 0
        assert layout.nodes["b"].y == 0
        assert layout.nodes["b"].x >= 230
        assert all_separated(layout)

    def test_horizontal_layout_pushes_along_y(self):
        layout = Layout(direction="LR")
        layout.nodes["a"] = box("a", 0, 0)
        layout.nodes["b"] = box("b", 0, 0, position=1)
        CollisionResolver().resolve(layout)
        assert layout.nodes["b"].x == 0
        assert layout.nodes["b"].y > 0

    def test_sweep_only(self):
        """Test the fallback sweep separates nodes on its own."""
        layout = random_layout(seed=1)
        CollisionResolver(max_passes=0).resolve(layout)
        assert all_separated(layout)

    @pytest.mark.parametrize("seed", range(8))
    def test_random_layouts_separated(self, seed):
        layout = random_layout(seed)
        CollisionResolver().resolve(layout)
        assert all_separated(layout)

    @pytest.mark.parametrize("seed", range(3))
    def test_deterministic(self, seed):
        first = random_layout(seed)
        second = random_layout(seed)
        CollisionResolver().resolve(first)
        CollisionResolver().resolve(second)
        assert first.nodes == second.nodes

    def test_single_node(self):
        layout = Layout()
        layout.nodes["a"] = box("a", 0, 0)
        assert CollisionResolver().resolve(layout) == 0
