"""
Tests for the tracer module.

These tests verify the debug tracing infrastructure used to capture
information about the layout pipeline.
"""

from infraflow import LayoutGenerator
from infraflow.tracer import LayoutTrace, PipelineStage


class TestPipelineStage:
    """Tests for PipelineStage dataclass."""

    def test_creation(self):
        """Test basic creation."""
        stage = PipelineStage(name="layers", data={"count": 3})
        assert stage.name == "layers"
        assert stage.data == {"count": 3}

    def test_str(self):
        """Test string representation lists the data."""
        stage = PipelineStage(name="layers", data={"count": 3})
        result = str(stage)
        assert "=== Stage: layers ===" in result
        assert "count: 3" in result

    def test_str_truncates_long_values(self):
        """Test long values are cut at 100 characters."""
        stage = PipelineStage(name="ordering", data={"layers": "x" * 300})
        result = str(stage)
        assert "x" * 100 + "..." in result
        assert "x" * 101 not in result


class TestLayoutTrace:
    """Tests for LayoutTrace."""

    def test_add_and_get_stage(self):
        trace = LayoutTrace()
        trace.add_stage("build", {"nodes": 2})
        trace.add_stage("layers", {"count": 1})
        assert trace.get_stage("build").data == {"nodes": 2}
        assert trace.get_stage("routing") is None
        assert trace.stage_names() == ["build", "layers"]

    def test_add_stage_copies_data(self):
        """Test later changes to the dict do not leak into the trace."""
        trace = LayoutTrace()
        data = {"nodes": 2}
        trace.add_stage("build", data)
        data["nodes"] = 5
        assert trace.get_stage("build").data["nodes"] == 2

    def test_summary(self):
        trace = LayoutTrace(resource_count=4, direction="LR")
        trace.add_stage("build", {"nodes": 3, "edges": 2})
        summary = trace.summary()
        assert "LAYOUT TRACE SUMMARY" in summary
        assert "Direction: LR" in summary
        assert "Resources: 4" in summary
        assert "build (2 values)" in summary
        assert "Cancelled: no" in summary

    def test_dump_to_file(self, tmp_path):
        trace = LayoutTrace()
        trace.add_stage("build", {"nodes": 3})
        path = tmp_path / "trace.txt"
        trace.dump_to_file(str(path))
        content = path.read_text(encoding="utf-8")
        assert "DETAILED TRACE" in content
        assert "=== Stage: build ===" in content


class TestGeneratorTrace:
    """Tests for tracing through LayoutGenerator."""

    def test_no_trace_by_default(self, chain_resources):
        generator = LayoutGenerator()
        generator.generate(chain_resources)
        assert generator.get_trace() is None

    def test_all_stages_recorded(self, chain_resources):
        generator = LayoutGenerator()
        generator.generate(chain_resources, debug=True)
        trace = generator.get_trace()

        assert trace.stage_names() == [
            "build",
            "layers",
            "ordering",
            "coordinates",
            "collisions",
            "routing",
        ]
        assert trace.resource_count == 3
        assert trace.get_stage("build").data["nodes"] == 3
        assert trace.get_stage("layers").data["sizes"] == [1, 1, 1]
        assert trace.get_stage("routing").data["edges"] == 2
        assert not trace.cancelled
