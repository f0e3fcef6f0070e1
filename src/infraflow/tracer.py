"""
Debug tracing infrastructure for infraflow.

This module provides data structures for capturing traces of the layout
pipeline. When debug mode is enabled, the generator records a snapshot of
the relevant numbers at every stage of processing.

This is primarily useful for:
1. Debugging layout issues (why a node ended up in a given layer)
2. Understanding the pipeline flow (seeing intermediate states)
3. Writing targeted tests (verifying specific layout decisions)

Usage:
    >>> generator = LayoutGenerator()
    >>> graph, layout = generator.generate(resources, debug=True)
    >>> trace = generator.get_trace()
    >>> print(trace.summary())
    >>> trace.dump_to_file("layout_trace.txt")

The trace captures the stages build, layers, ordering, coordinates,
collisions and routing.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class PipelineStage:
    """
    Snapshot of state at a pipeline stage.

    The layout pipeline has these stages:
    1. build - Resources turned into a graph
    2. layers - Nodes assigned to layers
    3. ordering - Layers reordered to reduce crossings
    4. coordinates - Absolute positions assigned
    5. collisions - Overlapping boxes pushed apart
    6. routing - Edge paths computed

    Attributes:
        name: Name of this pipeline stage
        data: Dictionary of relevant data at this stage
    """

    name: str
    data: Dict[str, Any]

    def __str__(self) -> str:
        lines = [f"=== Stage: {self.name} ==="]
        for key, value in self.data.items():
            # Truncate long values
            str_val = str(value)
            if len(str_val) > 100:
                str_val = str_val[:100] + "..."
            lines.append(f"  {key}: {str_val}")
        return "\n".join(lines)


@dataclass
class LayoutTrace:
    """
    Complete trace of a layout run.

    Attributes:
        stages: List of pipeline stages with their data
        resource_count: Number of resources handed to the pipeline
        direction: The flow direction (TB, BT, LR or RL)
        cancelled: True if the run stopped early
    """

    stages: List[PipelineStage] = field(default_factory=list)
    resource_count: int = 0
    direction: str = "TB"
    cancelled: bool = False

    def add_stage(self, name: str, data: Dict[str, Any]) -> None:
        """
        Add a pipeline stage snapshot.

        Args:
            name: Name of the stage (e.g., "layers")
            data: Dictionary of relevant data at this stage
        """
        self.stages.append(PipelineStage(name, data.copy()))

    def get_stage(self, name: str) -> Optional[PipelineStage]:
        """Get a specific pipeline stage by name."""
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def stage_names(self) -> List[str]:
        return [stage.name for stage in self.stages]

    def summary(self) -> str:
        """
        Generate a human-readable summary of the trace.

        Returns a string with the direction, the input size, the stages
        reached and whether the run was cancelled.
        """
        lines = [
            "=" * 60,
            "LAYOUT TRACE SUMMARY",
            "=" * 60,
            "",
            f"Direction: {self.direction}",
            f"Resources: {self.resource_count}",
            f"Cancelled: {'yes' if self.cancelled else 'no'}",
            "",
            f"Pipeline stages: {len(self.stages)}",
        ]

        for stage in self.stages:
            lines.append(f"  - {stage.name} ({len(stage.data)} values)")

        return "\n".join(lines)

    def dump(self) -> str:
        """
        Generate a complete human-readable dump of the trace.

        This includes all stages with their full data.
        """
        lines = [self.summary(), "", "=" * 60, "DETAILED TRACE", "=" * 60, ""]

        lines.append("PIPELINE STAGES:")
        lines.append("-" * 40)
        for stage in self.stages:
            lines.append(str(stage))
            lines.append("")

        return "\n".join(lines)

    def dump_to_file(self, filename: str) -> None:
        """Write the complete trace dump to a file."""
        with open(filename, "w", encoding="utf-8") as f:
            f.write(self.dump())
