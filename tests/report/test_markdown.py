"""Tests for markdown report generation."""

from pathlib import Path
import tempfile
import pytest
from deploygraph.contracts import PlanReport
from deploygraph.planner import Planner
from deploygraph.report.markdown import generate_plan_markdown
from deploygraph.state import RemoteState
from deploygraph.utils.errors import DeployGraphError


@pytest.fixture
def sample_report(network_template, make_graph):
    """PlanReport for the hub network against empty state."""
    template, graph = make_graph(network_template, {"adminPassword": "hunter2-Passw0rd"})
    plan = Planner().plan(graph, RemoteState(), scope_id=template.scope_id, target_scope="resourceGroup")
    return PlanReport.from_plan(plan, template)


class TestDeterminism:
    """Test that the same PlanReport produces the same markdown report."""

    def test_markdown_determinism(self, sample_report):
        """Same PlanReport -> same markdown file content."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output_path1 = Path(tmpdir) / "report1.md"
            output_path2 = Path(tmpdir) / "report2.md"

            generate_plan_markdown(sample_report, output_path1)
            generate_plan_markdown(sample_report, output_path2)

            content1 = output_path1.read_text(encoding='utf-8')
            content2 = output_path2.read_text(encoding='utf-8')

            assert content1 == content2, "Markdown reports must be identical"

    def test_markdown_structure(self, sample_report):
        """Markdown report must have expected structure."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output_path = Path(tmpdir) / "report.md"
            generate_plan_markdown(sample_report, output_path)

            content = output_path.read_text(encoding='utf-8')

            assert "# deploygraph Plan Report" in content
            assert "## Summary" in content
            assert "## Parameters" in content
            assert "## Operations" in content
            assert "- **create:** 5" in content
            assert "### 1. create: `Microsoft.Network/virtualNetworks/vnet-test`" in content
            assert "(known after apply)" in content

    def test_sensitive_values_redacted(self, sample_report):
        with tempfile.TemporaryDirectory() as tmpdir:
            output_path = Path(tmpdir) / "report.md"
            generate_plan_markdown(sample_report, output_path)
            content = output_path.read_text(encoding='utf-8')

            assert "hunter2" not in content
            assert "| `adminPassword` | \"(sensitive)\" |" in content

    def test_write_failure(self, sample_report, tmp_path):
        blocker = tmp_path / "file.txt"
        blocker.write_text("x", encoding='utf-8')
        with pytest.raises(DeployGraphError, match="Failed to write markdown report"):
            generate_plan_markdown(sample_report, blocker / "report.md")
