"""
InfraFlow - Infrastructure Dependency Diagrams

A Python library that turns cloud resource records into a dependency graph
and lays it out as a layered diagram.

Example:
    >>> from infraflow import LayoutGenerator, Resource
    >>> resources = [
    ...     Resource(type="aws_vpc", name="main", id="vpc-1"),
    ...     Resource(type="aws_subnet", name="app", id="subnet-1",
    ...              dependencies=("vpc-1",)),
    ... ]
    >>> graph, layout = LayoutGenerator().generate(resources)
    >>> layout.nodes["vpc-1"].layer
    0

Debug Mode Example:
    >>> generator = LayoutGenerator()
    >>> graph, layout = generator.generate(resources, debug=True)
    >>> print(generator.get_trace().summary())
"""

import logging

from .builder import AttributeIndex, GraphBuilder, build_graph, extract_metadata
from .catalog import Category, Resource, ResourceError, category_for
from .debug import LayoutInspector, render_snapshot
from .generator import LayoutGenerator, compute_layout, generate_layout
from .graph import Edge, Graph, Node, create_graph
from .layout import CrossingMinimizer, Layerer, count_crossings
from .models import EdgeLayout, Layout, NodeLayout, Point
from .positioning import CollisionResolver, CoordinateAssigner
from .router import EdgeRouter
from .tracer import LayoutTrace, PipelineStage

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Main API
    "LayoutGenerator",
    "compute_layout",
    "generate_layout",
    # Input
    "Resource",
    "ResourceError",
    "Category",
    "category_for",
    # Graph
    "Graph",
    "Node",
    "Edge",
    "create_graph",
    "GraphBuilder",
    "AttributeIndex",
    "build_graph",
    "extract_metadata",
    # Layout
    "Layerer",
    "CrossingMinimizer",
    "count_crossings",
    "CoordinateAssigner",
    "CollisionResolver",
    "EdgeRouter",
    "Layout",
    "NodeLayout",
    "EdgeLayout",
    "Point",
    # Debug/Tracing (for development and debugging)
    "LayoutTrace",
    "PipelineStage",
    "LayoutInspector",
    "render_snapshot",
]
