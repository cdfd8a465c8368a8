"""Tests for JSON report artifacts."""

import json
import pytest
from deploygraph.contracts import ApplyReport, PlanReport
from deploygraph.contracts.reports import REPORT_VERSION
from deploygraph.executor import Executor
from deploygraph.planner import Planner
from deploygraph.provider import InMemoryProvider
from deploygraph.report.artifact import report_to_json, write_json_report
from deploygraph.state import RemoteState
from deploygraph.utils.errors import DeployGraphError


@pytest.fixture
def plan_and_template(network_template, make_graph):
    template, graph = make_graph(network_template, {"adminPassword": "hunter2-Passw0rd"})
    return Planner().plan(graph, RemoteState(), scope_id=template.scope_id), template


class TestReports:
    """Versioned JSON contracts."""

    def test_plan_report_json(self, plan_and_template, tmp_path):
        plan, template = plan_and_template
        path = write_json_report(PlanReport.from_plan(plan, template), tmp_path / "plan.json")
        data = json.loads(path.read_text(encoding='utf-8'))

        assert data["version"] == REPORT_VERSION
        assert data["has_changes"] is True
        assert data["summary"]["create"] == 5
        assert data["operations"][0]["action"] == "create"
        assert "node" not in data["operations"][0]
        assert data["parameters"]["adminPassword"] == "(sensitive)"
        assert "hunter2" not in path.read_text(encoding='utf-8')

    def test_json_is_stable(self, plan_and_template):
        plan, template = plan_and_template
        report = PlanReport.from_plan(plan, template)
        assert report_to_json(report) == report_to_json(report)

    def test_apply_report(self, plan_and_template, fast_retrying):
        plan, _ = plan_and_template
        result = Executor(InMemoryProvider(), retrying=fast_retrying).execute(plan, RemoteState())
        data = json.loads(report_to_json(ApplyReport.from_result(result, plan)))

        assert data["succeeded"] is True
        assert data["summary"]["applied"] == 5
        assert data["results"][0]["status"] == "applied"
        assert data["scope_id"] == plan.scope_id

    def test_write_failure(self, plan_and_template, tmp_path):
        plan, _ = plan_and_template
        blocker = tmp_path / "file.txt"
        blocker.write_text("x", encoding='utf-8')
        with pytest.raises(DeployGraphError, match="Failed to write report"):
            write_json_report(PlanReport.from_plan(plan), blocker / "plan.json")
